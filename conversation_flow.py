"""
Conversation flow context for the shopping assistant.

Rebuilds pending state ("did the assistant just ask a yes/no question?")
from the tail of the history. The assistant attaches a structured `pending`
record to every confirmation prompt it emits; older or client-supplied
history without that record falls back to recognizing the prompt wording.

The prompt builders live here too, so the wording the assistant emits and
the patterns that recognize it cannot drift apart.
"""

import re
from decimal import Decimal
from typing import Optional, List, Dict, Any, Sequence

from models import (
    ActionKind, ChatMessage, ConversationContext, PendingPurchase, Product, to_decimal,
)


# ── Prompt templates ──
PURCHASE_PROMPT = "Would you like to proceed with purchasing {title} for ${price}?"
VIEW_PROMPT = "Would you like to view details for {title}?"
CART_PROMPT = "Would you like to add {title} (${price}) to your cart?"

_PURCHASE_RE = re.compile(
    r"Would you like to proceed with purchasing (.+?) for \$([\d,]+(?:\.\d+)?)\?", re.I)
_VIEW_RE = re.compile(r"Would you like to view details for (.+?)\?", re.I)
_CART_RE = re.compile(
    r"Would you like to add (.+?) \(\$([\d,]+(?:\.\d+)?)\) to your cart\?", re.I)


def _format_price(price: Decimal) -> str:
    return f"{Decimal(price):.2f}"


def purchase_prompt(product: Product) -> str:
    return PURCHASE_PROMPT.format(title=product.title, price=_format_price(product.price))


def view_prompt(product: Product) -> str:
    return VIEW_PROMPT.format(title=product.title)


def cart_prompt(product: Product) -> str:
    return CART_PROMPT.format(title=product.title, price=_format_price(product.price))


PROMPT_BUILDERS = {
    ActionKind.BUY: purchase_prompt,
    ActionKind.VIEW: view_prompt,
    ActionKind.CART: cart_prompt,
}


def confirmation_prompt(action: ActionKind, product: Product) -> str:
    return PROMPT_BUILDERS[action](product)


def pending_record(action: ActionKind, product: Product) -> Dict[str, Any]:
    """Structured confirmation record stored on the assistant message."""
    return {
        "action": action.value,
        "productId": product.id,
        "title": product.title,
        "price": str(product.price),
        "slug": product.slug,
    }


# ─────────────────────────────────────────────
# CONTEXT EXTRACTION
# ─────────────────────────────────────────────

def _resolve_title(title: str, last_shown: Sequence[Product]) -> Optional[Product]:
    wanted = title.strip().lower()
    for product in last_shown:
        if product.title.strip().lower() == wanted:
            return product
    return None


def _context_from_record(record: Dict[str, Any], last_shown: List[Product]) -> ConversationContext:
    try:
        action = ActionKind(record.get("action"))
    except ValueError:
        return ConversationContext(last_shown_products=last_shown)

    title = str(record.get("title") or "")
    product_id = record.get("productId")
    if not isinstance(product_id, int) or isinstance(product_id, bool):
        product_id = None

    ctx = ConversationContext(
        pending_action=action,
        pending_target=title or None,
        last_shown_products=last_shown,
    )
    if action is ActionKind.BUY:
        ctx.pending_purchase = PendingPurchase(
            product_id=product_id,
            title=title,
            price=to_decimal(record.get("price")),
            slug=str(record.get("slug") or "") if product_id is not None else "",
        )
    return ctx


def _context_from_text(content: str, last_shown: List[Product]) -> ConversationContext:
    match = _PURCHASE_RE.search(content)
    if match:
        title = match.group(1).strip()
        product = _resolve_title(title, last_shown)
        return ConversationContext(
            pending_purchase=PendingPurchase(
                product_id=product.id if product else None,
                title=title,
                price=to_decimal(match.group(2)),
                slug=product.slug if product else "",
            ),
            pending_action=ActionKind.BUY,
            pending_target=title,
            last_shown_products=last_shown,
        )

    match = _CART_RE.search(content)
    if match:
        return ConversationContext(
            pending_action=ActionKind.CART,
            pending_target=match.group(1).strip(),
            last_shown_products=last_shown,
        )

    match = _VIEW_RE.search(content)
    if match:
        return ConversationContext(
            pending_action=ActionKind.VIEW,
            pending_target=match.group(1).strip(),
            last_shown_products=last_shown,
        )

    return ConversationContext(last_shown_products=last_shown)


def extract_context(
    history: Sequence[ChatMessage],
    last_shown_products: Optional[Sequence[Product]] = None,
) -> ConversationContext:
    """
    Project pending state from the last message of the history.

    Only the final message is examined, and only when it was written by the
    assistant and the history holds at least one full exchange. Malformed
    entries yield an empty context rather than an error.
    """
    last_shown = list(last_shown_products or [])
    if not history or len(history) < 2:
        return ConversationContext(last_shown_products=last_shown)

    last = history[-1]
    if getattr(last, "role", None) != "assistant" or not isinstance(getattr(last, "content", None), str):
        return ConversationContext(last_shown_products=last_shown)

    if isinstance(last.pending, dict):
        return _context_from_record(last.pending, last_shown)
    return _context_from_text(last.content, last_shown)
