from __future__ import annotations

from dataclasses import dataclass

"""Store configuration sheet rows (media sync).

Column layout of the store configuration sheet (0-based):
A store name | B account id | C location id | D folder id | E photo category |
F last upload | G status
"""

__all__ = [
    "StoreColumn",
    "StoreConfig",
    "MediaSyncResult",
]


class StoreColumn:
    STORE_NAME = 0
    ACCOUNT_ID = 1
    LOCATION_ID = 2
    FOLDER_ID = 3
    CATEGORY = 4
    LAST_UPLOAD = 5
    STATUS = 6

    WIDTH = 7


@dataclass(frozen=True)
class StoreConfig:
    row_number: int  # 1-based sheet row, header is row 1
    store_name: str
    account_id: str
    location_id: str
    folder_id: str
    category: str


@dataclass(frozen=True)
class MediaSyncResult:
    stores: int = 0
    uploaded: int = 0
    failed: int = 0
