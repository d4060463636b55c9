from __future__ import annotations

import re

from listing_intake.models.submission import SubmissionRow
from listing_intake.submission.columns import NO_BUTTON_LABELS

"""Row-level validation rules.

Every rule is evaluated; a row collects all of its problems instead of stopping
at the first one.
"""

__all__ = [
    "validate_row",
]

_URL_SCHEME = re.compile(r"^https?://", re.IGNORECASE)

_REQUIRED_FIELDS = (
    ("business_name", "business name is missing"),
    ("store_code", "store code is missing"),
    ("product_name", "product name is missing"),
    ("description", "product description is missing"),
)


def validate_row(row: SubmissionRow) -> list[str]:
    prefix = f"row {row.row_number}: "
    errors = [prefix + message for attr, message in _REQUIRED_FIELDS if not getattr(row, attr)]

    if row.landing_page_url and not _URL_SCHEME.match(row.landing_page_url):
        errors.append(prefix + f"landing page URL is malformed: {row.landing_page_url}")

    if row.button_label and row.button_label not in NO_BUTTON_LABELS and not row.landing_page_url:
        errors.append(prefix + "a landing page URL is required when a button is specified")

    return errors
