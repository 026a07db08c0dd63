import random
from typing import List

from app_config import STORE_URL
from models import ActionKind, ReplyKind, TurnDecision
from services.product_formatter import render_action_cards, render_product_cards


CLARIFYING_QUESTIONS = [
    "Happy to help! What kind of product are you looking for today?",
    "Sure! Could you tell me a bit more about what you need, like the type of product or your budget?",
    "I'd love to help you find something. Are you shopping for anything in particular?",
    "Of course! What are you shopping for, and do you have a price range in mind?",
]

GENERAL_FALLBACKS = [
    "I'm here to help you shop! Ask me for product recommendations, comparisons, or anything about the store.",
    "Good question! I'm best at helping you find products. What are you looking for today?",
    "I'm not able to answer that right now, but I can help you find the right product. What do you need?",
]

ERROR_FALLBACKS = [
    "Sorry, I'm having trouble reaching the store right now. Please try again in a moment.",
    "Oops, something went wrong on my end. Could you try that again?",
    "I hit a snag while looking that up. Please try again shortly.",
]

ANYTHING_ELSE = "Is there anything else I can help you with?"

_ACTION_VERBS = {
    ActionKind.BUY: "buy",
    ActionKind.VIEW: "view",
    ActionKind.CART: "add to your cart",
}


def random_clarifying_question() -> str:
    return random.choice(CLARIFYING_QUESTIONS)


def random_general_fallback() -> str:
    return random.choice(GENERAL_FALLBACKS)


def random_error_fallback() -> str:
    return random.choice(ERROR_FALLBACKS)


def _describe_search(keywords: List[str], price_text: str) -> str:
    subject = " ".join(keywords) if keywords else "products"
    return f"{subject} {price_text}".strip()


def render_reply(decision: TurnDecision, store_url: str = STORE_URL) -> str:
    """Turn a resolver decision into the reply string shown in the chat widget."""
    kind = decision.kind
    price_text = decision.price_range.describe() if decision.price_range else ""
    verb = _ACTION_VERBS.get(decision.action, "choose")

    if kind in (ReplyKind.QUICK_REPLY, ReplyKind.ACTION_CONFIRM, ReplyKind.REDIRECT):
        return decision.text or ""

    if kind is ReplyKind.GENERAL_ANSWER:
        return decision.text or random_general_fallback()

    if kind is ReplyKind.CLARIFY:
        return decision.text or random_clarifying_question()

    if kind is ReplyKind.PRODUCTS:
        intro = f"Here are some {_describe_search(decision.keywords, price_text)} you might like:"
        return f"{intro}\n{render_product_cards(decision.products, store_url)}\n{ANYTHING_ELSE}"

    if kind is ReplyKind.NO_MATCH:
        return (
            f"Sorry, we don't have {_describe_search(decision.keywords, price_text)} right now. "
            "Would you like to look for something else?"
        )

    if kind is ReplyKind.NOT_SURE:
        return (
            "I'm not sure I found exactly what you're looking for. Could you tell me a bit more, "
            "like the type of product or your budget?"
        )

    if kind is ReplyKind.EMPTY_CATALOG:
        return "Sorry, we don't have any products available right now. Please check back soon!"

    if kind is ReplyKind.ACTION_CARDS:
        footer = decision.text or f"Which one would you like to {verb}?"
        return f"{render_action_cards(decision.products, decision.action, store_url)}\n{footer}"

    if kind is ReplyKind.ACTION_CLARIFY:
        return decision.text or f"Which product would you like to {verb}? Tell me its name and I'll take care of it."

    if kind is ReplyKind.CONFIRM_DECLINED:
        return f"No problem! {ANYTHING_ELSE}"

    if kind is ReplyKind.NAME_PRODUCT:
        return f"Sure! Which product would you like to {verb}? Just tell me its name."

    if kind is ReplyKind.UNRESOLVED_REFERENCE:
        name = decision.missing[0] if decision.missing else "that product"
        return (
            f"Sorry, I couldn't find {name} among the products I showed you. "
            "Could you tell me the product name again?"
        )

    if kind is ReplyKind.COMPARISON:
        cards = render_product_cards(decision.products, store_url) if decision.products else ""
        return f"{decision.text or ''}\n{cards}".strip()

    if kind is ReplyKind.COMPARISON_UNRESOLVED:
        missing = " or ".join(f'"{name}"' for name in decision.missing) or "those products"
        reply = f"I couldn't find {missing} in our catalog, so I can't compare them yet."
        if decision.products:
            reply += (
                " Here are some products you might compare instead:\n"
                + render_product_cards(decision.products, store_url)
            )
        return reply

    return random_error_fallback()
