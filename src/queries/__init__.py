"""Birthday list query package."""

from src.queries.filters import filter_birthdays

__all__ = ["filter_birthdays"]
