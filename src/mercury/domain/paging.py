"""Offset pagination with server-computed page counts.

Pages are zero-based internally: ``skip = page_index * page_size``.
Page counts use integer ceiling division so totals of any size are exact.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class Page(BaseModel):
    """A window over an ordered result set."""

    model_config = {"frozen": True}

    page_index: int = Field(ge=0)
    page_size: int = Field(ge=1)

    @property
    def skip(self) -> int:
        return self.page_index * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size

    @property
    def horizon(self) -> int:
        """Rows needed to fill this page and every page before it."""
        return (self.page_index + 1) * self.page_size


def page_count(total: int, page_size: int) -> int:
    """Number of pages needed to cover *total* rows at *page_size* per page.

    Examples:
        >>> page_count(27, 100)
        1
        >>> page_count(201, 100)
        3
        >>> page_count(0, 10)
        0

    Raises:
        ValueError: If *page_size* is not positive or *total* is negative.
    """
    if page_size < 1:
        msg = f"page_size must be positive, got {page_size}"
        raise ValueError(msg)
    if total < 0:
        msg = f"total must not be negative, got {total}"
        raise ValueError(msg)
    return (total + page_size - 1) // page_size
