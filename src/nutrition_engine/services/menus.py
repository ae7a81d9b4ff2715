"""Menu lookup shared by the calculation services."""

from typing import Protocol
from uuid import UUID

from nutrition_engine.domain.errors import MenuNotFoundError
from nutrition_engine.domain.inventory import MenuRecord


class MenuRepository(Protocol):
    """Persistence interface for tenant-scoped menus."""

    def get_menu(self, tenant_id: UUID, menu_id: UUID) -> MenuRecord | None:
        """Return a menu with ingredients and inventory items, if visible."""


def require_menu(
    repository: MenuRepository, tenant_id: UUID, menu_id: UUID
) -> MenuRecord:
    """Return the menu or raise MenuNotFoundError."""
    menu = repository.get_menu(tenant_id, menu_id)
    if menu is None:
        raise MenuNotFoundError(menu_id)
    return menu
