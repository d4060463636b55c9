from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

"""Sharing state and exposure handle models."""

__all__ = [
    "Access",
    "Permission",
    "SharingState",
    "ExposureHandle",
]


class Access(Enum):
    PRIVATE = "PRIVATE"
    ANYONE_WITH_LINK = "ANYONE_WITH_LINK"
    ANYONE = "ANYONE"
    DOMAIN_WITH_LINK = "DOMAIN_WITH_LINK"
    DOMAIN = "DOMAIN"


class Permission(Enum):
    NONE = "NONE"
    VIEW = "VIEW"
    COMMENT = "COMMENT"
    EDIT = "EDIT"


@dataclass(frozen=True)
class SharingState:
    access: Access
    permission: Permission
    domain: str | None = None  # only meaningful for DOMAIN / DOMAIN_WITH_LINK


PUBLIC_LINK_VIEW = SharingState(Access.ANYONE_WITH_LINK, Permission.VIEW)


@dataclass(frozen=True)
class ExposureHandle:
    """Proof of a temporary exposure; must be passed to restore() exactly once."""
    asset_ref: str
    file_id: str
    public_url: str
    original: SharingState
