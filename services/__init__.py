"""Services package - exports all service modules."""

from .catalog_client import CatalogClient
from .product_formatter import (
    format_product,
    render_product_cards,
    render_action_cards,
)
from .bot_message import render_reply, random_error_fallback

__all__ = [
    "CatalogClient",
    "format_product",
    "render_product_cards",
    "render_action_cards",
    "render_reply",
    "random_error_fallback",
]
