from __future__ import annotations

from typing import Any

from listing_intake.collaborators.interfaces import DirectoryApi
from listing_intake.google.api import GoogleApiClient, TokenProvider

"""Business Profile REST client.

Accounts come from the account management API; locations, media and local
posts from the v4 API. Resource names are passed through verbatim
(``accounts/1``, ``accounts/1/locations/2``).
"""

__all__ = [
    "BusinessProfileClient",
]


class BusinessProfileClient(GoogleApiClient, DirectoryApi):

    def __init__(
        self,
        base_url: str,
        account_management_base: str,
        token_provider: TokenProvider,
        *,
        timeout: float = 30.0,
        session: Any = None,
    ) -> None:
        super().__init__(base_url, token_provider, timeout=timeout, session=session)
        self.account_management_base = account_management_base.rstrip("/")

    def list_accounts(self) -> dict[str, Any]:
        return self.request("GET", f"{self.account_management_base}/accounts", "listAccounts")

    def list_locations(
        self, account_name: str, page_size: int = 100, page_token: str | None = None
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"pageSize": page_size}
        if page_token:
            params["pageToken"] = page_token
        return self.request("GET", f"{account_name}/locations", "listLocations", params=params)

    def list_media(self, account_name: str, location_name: str) -> dict[str, Any]:
        return self.request("GET", f"{account_name}/{location_name}/media", "listMedia")

    def create_local_post(self, location_name: str, payload: dict[str, Any]) -> dict[str, Any]:
        return self.request("POST", f"{location_name}/localPosts", "createProduct", payload=payload)

    def upload_media(
        self, account_name: str, location_name: str, payload: dict[str, Any]
    ) -> dict[str, Any]:
        return self.request(
            "POST", f"{account_name}/{location_name}/media", "uploadMedia", payload=payload
        )
