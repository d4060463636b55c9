from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any

from listing_intake.collaborators.interfaces import DirectoryApi
from listing_intake.google.api import ApiError
from listing_intake.models.submission import SubmissionRow
from listing_intake.services.exposure import AssetNotFoundError, ExposureManager
from listing_intake.submission.columns import DEFAULT_ACTION_TYPE

"""Listing publisher: one validated row -> one local post."""

logger = logging.getLogger(__name__)

__all__ = [
    "PublishError",
    "ImagePreparationError",
    "PublishResult",
    "Publisher",
    "build_local_post",
]


class PublishError(Exception):
    """The directory rejected the listing."""

    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = status
        self.message = message


class ImagePreparationError(Exception):
    """The row's image could not be resolved or exposed."""


@dataclass(frozen=True)
class PublishResult:
    external_id: str


def build_local_post(
    row: SubmissionRow,
    image_url: str | None,
    language_code: str = "ja",
    currency_code: str = "JPY",
) -> dict[str, Any]:
    """Build the local post payload for one validated row.

    Args:
        row: Validated submission row
        image_url: Publicly fetchable image URL, or None for a text-only post
        language_code: Post language
        currency_code: Currency of the price block

    Returns:
        Payload for ``POST .../localPosts``; price, call-to-action and media
        blocks are present only when the row supplies them
    """
    post: dict[str, Any] = {
        "languageCode": language_code,
        "topicType": "PRODUCT",
        "summary": row.description,
        "product": {
            "name": row.product_name,
            "category": row.product_category,
            "description": row.description,
        },
    }

    if row.price > 0:
        # whole currency units only
        post["product"]["price"] = {
            "currencyCode": currency_code,
            "units": str(math.floor(row.price)),
        }

    if row.landing_page_url:
        post["callToAction"] = {
            "actionType": row.button_action_type or DEFAULT_ACTION_TYPE,
            "url": row.landing_page_url,
        }

    if image_url:
        post["media"] = [{"mediaFormat": "PHOTO", "sourceUrl": image_url}]

    return post


class Publisher:
    """Publishes validated rows as local posts, one directory call per row.

    Holds no per-file state; the orchestrator builds one per file so the image
    root folder of that run is used for asset lookups.
    """

    def __init__(
        self,
        directory: DirectoryApi,
        exposure: ExposureManager,
        *,
        language_code: str = "ja",
        currency_code: str = "JPY",
    ) -> None:
        """Initialize the publisher.

        Args:
            directory: Directory API the posts are created through
            exposure: Exposure manager used for row images
            language_code: ``languageCode`` of every post
            currency_code: Currency of the price block
        """
        self._directory = directory
        self._exposure = exposure
        self._language_code = language_code
        self._currency_code = currency_code

    def _post(self, location_name: str, payload: dict[str, Any]) -> dict[str, Any]:
        """Create the post; provider rejections become PublishError."""
        try:
            return self._directory.create_local_post(location_name, payload)
        except ApiError as e:
            raise PublishError(e.status, str(e)) from e

    def publish(self, location_name: str, row: SubmissionRow) -> PublishResult:
        """Create the listing for ``row`` at ``location_name``.

        The image (if any) is exposed only while the post request runs and is
        restored whether or not the request succeeds.

        Raises:
            ImagePreparationError: image missing or could not be exposed
            PublishError: the directory API rejected the post
        """
        try:
            with self._exposure.exposed(row.image_path) as handle:
                payload = build_local_post(
                    row,
                    handle.public_url if handle else None,
                    self._language_code,
                    self._currency_code,
                )
                response = self._post(location_name, payload)
        except AssetNotFoundError as e:
            raise ImagePreparationError(str(e)) from e
        except ApiError as e:
            # only acquiring the image can raise ApiError here; _post wraps its own
            raise ImagePreparationError(f"failed to share image {row.image_path}: {e}") from e

        external_id = response.get("name", "")
        logger.debug("published row=%d location=%s id=%s", row.row_number, location_name, external_id)
        return PublishResult(external_id=external_id)
