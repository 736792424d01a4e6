"""Inventory listing: paginated client with a short-lived per-owner cache."""

from steam_pricer.inventory.client import InventoryClient

__all__ = ["InventoryClient"]
