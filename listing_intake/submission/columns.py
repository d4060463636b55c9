"""Layout constants of the submission template.

Row layout (1-based):
  1  Business Group ID   | value
  2  Business Group Name | value
  3  Account ID          | value
  4  PASS                | value
  5  (blank)
  6  detail header row
  7+ detail rows

Both the English and the Japanese template labels are recognised.
"""

HEADER_VALUE_COL = 2
DETAIL_HEADER_ROW = 6

HEADER_ROWS = {
    1: "business_group_id",
    2: "business_group_name",
    3: "account_id",
    4: "password",
}

REQUIRED_HEADER_FIELDS = {
    "business_group_id": "business group ID is missing",
    "account_id": "account ID is missing",
}

# Values the template ships with; they mean "not filled in"
HEADER_PLACEHOLDERS = frozenset({
    "accounts/",
    "accounts/XXXXXX",
    "accounts/XXXXXXXXX",
    "(required)",
    "（必須）",
})

DETAIL_COLUMN_LABELS = {
    "Business Name": "business_name",
    "Store Code": "store_code",
    "Product Category": "product_category",
    "Product Name": "product_name",
    "Product Description": "description",
    "Price": "price",
    "Button": "button_label",
    "Landing Page URL": "landing_page_url",
    "Image Path": "image_path",
    "ビジネス名": "business_name",
    "店舗コード": "store_code",
    "商品カテゴリ": "product_category",
    "商品・サービス名": "product_name",
    "商品の説明": "description",
    "商品価格": "price",
    "ボタン追加": "button_label",
    "商品のランディングページURL": "landing_page_url",
    "画像ファイルパス": "image_path",
}

NO_BUTTON_LABELS = frozenset({"None", "なし"})

# Button label -> call-to-action code. "" means no button.
BUTTON_ACTION_TYPES = {
    "None": "",
    "Learn more": "LEARN_MORE",
    "Book": "BOOK",
    "Order online": "ORDER",
    "Buy": "SHOP",
    "Sign up": "SIGN_UP",
    "Call now": "CALL",
    "なし": "",
    "詳細": "LEARN_MORE",
    "予約": "BOOK",
    "オンライン注文": "ORDER",
    "購入": "SHOP",
    "登録": "SIGN_UP",
    "今すぐ電話": "CALL",
}

DEFAULT_ACTION_TYPE = "LEARN_MORE"
