from __future__ import annotations

import logging

from listing_intake.collaborators.interfaces import DirectoryApi
from listing_intake.google.api import ApiError

"""Store code -> location resolution.

The map is built from a full, paginated listing of the account's locations
and rebuilt for every file; accounts differ between files and nothing is
cached across them.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ACCOUNT_PREFIX",
    "LOCATION_PAGE_SIZE",
    "DirectoryFetchError",
    "LocationResolver",
    "normalize_account_name",
    "resolve_location",
]

ACCOUNT_PREFIX = "accounts/"
LOCATION_PAGE_SIZE = 100


class DirectoryFetchError(Exception):
    """Location listing failed; fatal for the whole file."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


def normalize_account_name(raw: str) -> str:
    """``123`` / ``accounts/123`` -> ``accounts/123``; blank stays blank."""
    value = (raw or "").strip()
    if not value or value.startswith(ACCOUNT_PREFIX):
        return value
    return ACCOUNT_PREFIX + value


class LocationResolver:
    """Builds the store code lookup for one business account."""

    def __init__(self, directory: DirectoryApi, page_size: int = LOCATION_PAGE_SIZE) -> None:
        """Initialize the resolver.

        Args:
            directory: Directory API the locations are listed from
            page_size: Locations requested per page
        """
        self._directory = directory
        self._page_size = page_size

    def build_location_map(self, account_name: str) -> dict[str, str]:
        """Fetch every location page and map ``storeCode -> location name``.

        Args:
            account_name: ``123`` or ``accounts/123``

        Returns:
            Store code to fully qualified location name; locations without a
            store code are left out (logged as warnings)

        Raises:
            DirectoryFetchError: account is blank, or any page request failed
        """
        account = normalize_account_name(account_name)
        if not account:
            raise DirectoryFetchError(0, "account ID is empty; cannot list locations")

        location_map: dict[str, str] = {}
        page_token: str | None = None
        pages = 0
        while True:
            pages += 1
            try:
                data = self._directory.list_locations(
                    account, page_size=self._page_size, page_token=page_token
                )
            except ApiError as e:
                raise DirectoryFetchError(
                    e.status, f"failed to list locations (page {pages}): {e}"
                ) from e

            for location in data.get("locations", []):
                store_code = location.get("storeCode")
                if store_code:
                    location_map[str(store_code)] = location["name"]
                else:
                    logger.warning(
                        "location without store code skipped: %s (%s)",
                        location.get("name", "?"),
                        location.get("locationName", "-"),
                    )

            page_token = data.get("nextPageToken") or None
            if not page_token:
                break

        logger.info("location map built: %d locations (%d pages)", len(location_map), pages)
        return location_map


def resolve_location(location_map: dict[str, str], store_code: str) -> str | None:
    """Exact lookup; None when no location carries ``store_code``."""
    return location_map.get(store_code)
