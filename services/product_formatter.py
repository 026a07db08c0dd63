"""
Product Formatter

Converts raw WooCommerce product data into Product records and renders
product cards as HTML for the chat widget.
"""

import re
from html import escape
from typing import List, Optional, Sequence

from app_config import STORE_URL
from core.helpers import action_url, cart_url, checkout_url, product_url
from models import ActionKind, Product, to_decimal


def format_product(raw: dict) -> Optional[Product]:
    """
    Convert a raw WooCommerce product to a Product.

    Returns None for rows the assistant cannot sell: no id, no name, or no
    usable price.
    """
    price = to_decimal(raw.get("price"))
    if price is None:
        price = to_decimal(raw.get("regular_price"))
    name = _clean_html(raw.get("name", ""))
    if price is None or not name or raw.get("id") is None:
        return None

    images = raw.get("images") or []
    image_urls = [img.get("src", "") for img in images if isinstance(img, dict) and img.get("src")]

    categories = raw.get("categories") or []
    cat_names = [c.get("name", "") for c in categories if isinstance(c, dict) and c.get("name")]

    description = _clean_html(raw.get("short_description", "")) or _clean_html(raw.get("description", ""))

    return Product(
        id=int(raw["id"]),
        title=name,
        price=price,
        description=description,
        slug=raw.get("slug", "") or "",
        category=cat_names[0] if cat_names else None,
        image_url=image_urls[0] if image_urls else None,
        inventory=_safe_int(raw.get("stock_quantity")),
    )


def _safe_int(val) -> int:
    """Safely convert to int."""
    try:
        return int(val) if val not in ("", None) else 0
    except (ValueError, TypeError):
        return 0


def _clean_html(html: str) -> str:
    """Strip HTML tags from description."""
    if not html:
        return ""
    clean = re.sub(r'<[^>]+>', '', html)
    clean = re.sub(r'\s+', ' ', clean).strip()
    return clean


# ─────────────────────────────────────────────
# HTML CARDS
# ─────────────────────────────────────────────

_LIST_OPEN = '<ul style="list-style-type: none; padding: 0;">'
_LIST_CLOSE = "</ul>"
_CARD_STYLE = (
    "background:#f9f9f9; padding:16px; border:1px solid #ddd; border-radius:8px; "
    "margin-bottom:12px; display:flex; flex-direction:column; align-items:center; "
    "text-align:center; box-shadow: 0 4px 8px rgba(0, 0, 0, 0.1);"
)
_BUTTON_STYLE = (
    "background:{color}; color:#fff; padding:10px 20px; border-radius:6px; "
    "text-decoration:none; font-size:1rem;"
)
_BLUE = "#2563EB"
_GREEN = "#059669"

_ACTION_LABELS = {
    ActionKind.BUY: ("Buy Now", _GREEN),
    ActionKind.VIEW: ("View Product", _BLUE),
    ActionKind.CART: ("Add to Cart", _BLUE),
}


def _button(href: str, label: str, color: str) -> str:
    return (
        f"<a href='{escape(href, quote=True)}' target='_blank' "
        f"style='{_BUTTON_STYLE.format(color=color)}'>{label}</a>"
    )


def _card(product: Product, buttons: List[str]) -> str:
    title = escape(product.title)
    image = ""
    if product.image_url:
        image = (
            f"<img src='{escape(product.image_url, quote=True)}' "
            "style='max-width:100%; height:auto; max-height:200px; margin-bottom:12px; "
            f"border-radius:8px;' alt='{escape(product.title, quote=True)}' />"
        )
    blurb = ""
    if product.description:
        text = product.description if len(product.description) <= 120 else product.description[:117] + "..."
        blurb = f"<p style='font-size:1rem; color:#555; margin:8px 0;'>{escape(text)}</p>"
    return (
        f"<li style='{_CARD_STYLE}'>"
        f"{image}"
        f"<strong style='font-size:1.2rem; font-weight:bold; color:#333;'>{title}</strong>"
        f"{blurb}"
        f"<p style='font-size:1.1rem; color:#333; font-weight:bold; margin-bottom:12px;'>"
        f"Price: ${product.price:.2f}</p>"
        "<div style=\"display: flex; flex-wrap: wrap; justify-content: center; gap: 10px; width: 100%;\">"
        f"{''.join(buttons)}"
        "</div></li>"
    )


def render_product_cards(products: Sequence[Product], store_url: str = STORE_URL) -> str:
    """Listing cards with view, cart and buy buttons."""
    cards = [
        _card(p, [
            _button(product_url(p, store_url), "View Product", _BLUE),
            _button(cart_url(p, store_url), "Add to Cart", _BLUE),
            _button(checkout_url(p.id, store_url), "Buy Now", _GREEN),
        ])
        for p in products
    ]
    return _LIST_OPEN + "".join(cards) + _LIST_CLOSE


def render_action_cards(
    products: Sequence[Product],
    action: ActionKind,
    store_url: str = STORE_URL,
) -> str:
    """Cards with a single button for the requested action."""
    label, color = _ACTION_LABELS[action]
    cards = [_card(p, [_button(action_url(action, p, store_url), label, color)]) for p in products]
    return _LIST_OPEN + "".join(cards) + _LIST_CLOSE
