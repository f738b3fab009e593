"""Routes package initializer."""

from .inventory_routes import register_inventory_routes

__all__ = [
    "register_inventory_routes",
]
