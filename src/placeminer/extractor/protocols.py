"""
Protocols for pluggable field extraction strategies.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

if TYPE_CHECKING:
    from .page import ParsedPage


@runtime_checkable
class FieldStrategy(Protocol):
    """One structural or textual way of finding a single field value."""

    name: str

    def find(self, page: ParsedPage) -> Optional[str]:
        """Return a non-empty value, or None when this strategy does not match.

        Args:
            page: Parsed snapshot of the render surface

        Returns:
            The field value, or None
        """
        ...
