"""
Category Service

The user's category list lives in the settings collection. The first read
initialises it with the default categories.

The transfer category is always valid, whether or not it is in the list.
"""

from typing import Optional

from finai.config import LedgerSettings, get_settings
from finai.services.storage import LedgerStorageInterface


class CategoryService:
    """Read and edit the user's category list."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        settings: Optional[LedgerSettings] = None,
    ):
        self._storage = storage
        self._settings = settings or get_settings().ledger

    async def get_categories(self) -> list[str]:
        """The stored list; the defaults are saved and returned when absent."""
        categories = await self._storage.get_categories()
        if categories is None:
            categories = list(self._settings.default_categories)
            await self._storage.save_categories(categories)
        return categories

    async def valid_categories(self) -> list[str]:
        """Categories a transaction may use: the user's list plus transfer."""
        categories = await self.get_categories()
        transfer = self._settings.transfer_category
        if transfer.lower() not in (c.lower() for c in categories):
            categories = [*categories, transfer]
        return categories

    async def add_category(self, name: str) -> list[str]:
        """
        Append a category. Blank names and case-insensitive duplicates
        leave the list unchanged.
        """
        name = name.strip()
        categories = await self.get_categories()
        if not name or name.lower() in (c.lower() for c in categories):
            return categories

        categories.append(name)
        await self._storage.save_categories(categories)
        return categories

    async def delete_category(self, name: str) -> list[str]:
        """
        Remove a category, ignoring case. The fallback category stays:
        unknown model categories are mapped onto it.
        """
        wanted = name.strip().lower()
        if wanted == self._settings.fallback_category.lower():
            return await self.get_categories()

        categories = await self.get_categories()
        remaining = [c for c in categories if c.lower() != wanted]
        if len(remaining) != len(categories):
            await self._storage.save_categories(remaining)
        return remaining
