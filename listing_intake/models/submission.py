from __future__ import annotations

from dataclasses import dataclass, field

"""Submission models.

A submission file has a fixed header block (rows 1-4, value in column B) and a
detail table whose header sits on row 6. ``SubmissionRow`` is one detail row
after field extraction, derivation (price, button action) and validation.
"""

__all__ = [
    "SubmissionHeader",
    "SubmissionRow",
    "ParsedSubmission",
]


@dataclass(frozen=True)
class SubmissionHeader:
    """Header block of a submission file. Immutable once parsed."""
    business_group_id: str = ""
    business_group_name: str = ""
    account_id: str = ""
    password: str = ""  # "PASS" row, carried through but not used


@dataclass(frozen=True)
class SubmissionRow:
    """One detail row of a submission file.

    ``row_number`` is the 1-based row in the source grid (first detail row = 7).
    ``errors`` holds validation messages; the row is valid iff it is empty.
    """
    row_number: int
    business_name: str = ""
    store_code: str = ""
    product_category: str = ""
    product_name: str = ""
    description: str = ""
    price: float = 0.0
    button_label: str = ""
    button_action_type: str = ""
    landing_page_url: str = ""
    image_path: str = ""
    errors: tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class ParsedSubmission:
    """Result of parsing one submission file.

    ``header is None`` marks a fatal document: nothing below the header was
    validated and no row may be processed.
    """
    header: SubmissionHeader | None
    rows: list[SubmissionRow] = field(default_factory=list)
    header_errors: list[str] = field(default_factory=list)

    @property
    def is_fatal(self) -> bool:
        return self.header is None
