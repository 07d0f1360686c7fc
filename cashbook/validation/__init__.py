"""Input validation package."""

from cashbook.validation.validator import LedgerValidator

__all__ = ["LedgerValidator"]
