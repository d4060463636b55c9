from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

One bar per inbox pass, one tick per submission file. In non-TTY
environments (cron, CI) the bar is disabled so the log stays free of control
sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    """Check whether the progress bar should be drawn.

    Returns:
        True if stdout is a TTY, False otherwise
    """
    return sys.stdout.isatty()


class ProgressTracker:
    """File-level progress bar for one inbox pass.

    Row-level progress is not shown; rows are reported through the log.
    """

    def __init__(self, total_files: int, *, description: str = "Processing submissions") -> None:
        """Initialize the tracker.

        Args:
            total_files: Number of submission files found in the inbox
            description: Label shown left of the bar
        """
        self.total_files = total_files
        self.description = description
        self.current_file = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total_files,
                desc=description,
                unit="file",
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def start_file(self, file_name: str) -> None:
        """Show the submission currently being processed.

        Args:
            file_name: Storage name of the submission file
        """
        self.current_file += 1
        if self.enabled and self.pbar is not None:
            self.pbar.set_description(f"{self.description} ({file_name})")

    def finish_file(self) -> None:
        """Advance the bar by one file and restore the plain label."""
        if self.enabled and self.pbar is not None:
            self.pbar.update(1)
            self.pbar.set_description(self.description)

    def set_postfix(self, **kwargs: Any) -> None:
        """Show running counters next to the bar.

        Args:
            **kwargs: Counter name / value pairs (e.g. processed=3, error=1)
        """
        if self.enabled and self.pbar is not None:
            self.pbar.set_postfix(**kwargs)

    def close(self) -> None:
        """Close the bar; safe to call more than once."""
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
