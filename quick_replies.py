"""
Quick replies: canned answers for greetings, thanks, identity and store info.

`quick_reply` is tried twice per turn: once before the catalog is fetched
(products=None) and once in the general branch with the catalog available,
where store-info questions can list the store's categories.
"""

import re
from typing import Optional, Sequence

from app_config import STORE_NAME
from models import Product

QUICK_REPLY_PATTERNS = [
    ("greeting", re.compile(
        r"(?:hi+|hello+|hey+|hiya|howdy|yo|good\s+(?:morning|afternoon|evening))"
        r"(?:\s+there)?[\s!.,]*", re.I)),
    ("thanks", re.compile(
        r"(?:thanks?(?:\s+you)?|thank\s+you(?:\s+so\s+much|\s+very\s+much)?|thx|ty|cheers)"
        r"[\s!.,]*", re.I)),
    ("goodbye", re.compile(
        r"(?:bye|goodbye|bye\s+bye|see\s+you(?:\s+later)?|that'?s\s+all|nothing\s+else)[\s!.,]*",
        re.I)),
    ("identity", re.compile(
        r"(?:who\s+are\s+you|what\s+are\s+you|what(?:'s|\s+is)\s+your\s+name|are\s+you\s+a\s+bot)"
        r"[\s?!.]*", re.I)),
    ("help", re.compile(
        r"(?:help|what\s+can\s+you\s+do|how\s+does\s+this\s+work|how\s+can\s+you\s+help(?:\s+me)?)"
        r"[\s?!.]*", re.I)),
    ("store_info", re.compile(
        r"(?:what\s+(?:do\s+you\s+sell|categories\s+do\s+you\s+have|kind\s+of\s+(?:products|things|items)"
        r"\s+do\s+you\s+(?:sell|have))|what\s+is\s+this\s+store|tell\s+me\s+about\s+(?:the|your)\s+store)"
        r"[\s?!.]*", re.I)),
]

CANNED_REPLIES = {
    "greeting": "Hi there! Looking for something in particular today? I can help you find products, compare them, or check out.",
    "thanks": "You're welcome! Let me know if there's anything else I can help you find.",
    "goodbye": "Thanks for stopping by! Come back anytime.",
    "identity": f"I'm the {STORE_NAME} shopping assistant. I can recommend products, compare items, and take you straight to checkout.",
    "help": "I can recommend products (try \"chairs under $100\"), compare two items, or open a product page, cart or checkout for you.",
}

MAX_LISTED_CATEGORIES = 8


def match_quick_reply(query: str) -> Optional[str]:
    """Return the name of the canned pattern that matches the whole query."""
    text = (query or "").strip()
    for name, pattern in QUICK_REPLY_PATTERNS:
        if pattern.fullmatch(text):
            return name
    return None


def _store_info_reply(products: Sequence[Product]) -> Optional[str]:
    categories = []
    for product in products:
        if product.category and product.category not in categories:
            categories.append(product.category)
    if not categories:
        return f"{STORE_NAME} carries a range of products. Tell me what you're looking for and I'll find a match."
    listed = ", ".join(categories[:MAX_LISTED_CATEGORIES])
    return f"At {STORE_NAME} we carry {listed}. What are you shopping for today?"


def quick_reply(query: str, products: Optional[Sequence[Product]] = None) -> Optional[str]:
    """
    Canned reply for the query, or None.

    Store-info questions need the catalog, so without products they return
    None and the turn continues to the catalog fetch.
    """
    name = match_quick_reply(query)
    if name is None:
        return None
    if name == "store_info":
        return _store_info_reply(products) if products is not None else None
    return CANNED_REPLIES[name]
