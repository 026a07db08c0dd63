"""
Product matcher: keyword + price-range scoring over the catalog.

All matching is lexical. A product qualifies when one of the query keywords
appears in its title (strong match) or when a keyword belongs to a semantic
category whose other synonyms appear as whole words in the product text
(weak match).
"""

import re
from typing import Dict, FrozenSet, List, Optional, Sequence

from app_config import MAX_MATCHED_PRODUCTS
from extractors import detect_price_range, extract_product_keywords
from models import Product


# ─────────────────────────────────────────────
# SEMANTIC CATEGORIES
# ─────────────────────────────────────────────

SEMANTIC_CATEGORIES: Dict[str, FrozenSet[str]] = {
    "seating": frozenset({"chair", "chairs", "seat", "seating", "stool", "stools",
                          "armchair", "recliner", "bench"}),
    "sofa": frozenset({"sofa", "sofas", "couch", "couches", "loveseat", "sectional", "settee"}),
    "table": frozenset({"table", "tables", "desk", "desks", "counter", "nightstand"}),
    "bed": frozenset({"bed", "beds", "mattress", "mattresses", "bunk", "headboard", "bedframe"}),
    "lighting": frozenset({"lamp", "lamps", "light", "lights", "lighting", "chandelier",
                           "sconce", "bulb", "lantern"}),
    "storage": frozenset({"storage", "shelf", "shelves", "shelving", "cabinet", "cabinets",
                          "drawer", "drawers", "dresser", "wardrobe", "bookcase", "rack"}),
    "rug": frozenset({"rug", "rugs", "carpet", "carpets", "mat", "mats", "runner"}),
    "decor": frozenset({"decor", "vase", "vases", "mirror", "mirrors", "frame", "frames",
                        "artwork", "painting", "candle", "candles", "ornament"}),
    "clothing": frozenset({"shirt", "shirts", "tshirt", "t-shirt", "tee", "top", "tops",
                           "dress", "dresses", "jacket", "jackets", "coat", "coats",
                           "hoodie", "sweater", "jeans", "pants", "trousers", "shorts"}),
    "shoes": frozenset({"shoe", "shoes", "sneaker", "sneakers", "boot", "boots",
                        "sandal", "sandals", "heels", "loafers", "footwear"}),
    "bags": frozenset({"bag", "bags", "backpack", "backpacks", "handbag", "purse",
                       "tote", "wallet", "luggage", "suitcase"}),
    "electronics": frozenset({"phone", "phones", "smartphone", "laptop", "laptops",
                              "computer", "tablet", "headphones", "earbuds", "speaker",
                              "speakers", "charger", "camera", "monitor"}),
    "kitchen": frozenset({"kitchen", "cookware", "pan", "pans", "pot", "pots", "mug", "mugs",
                          "cup", "cups", "plate", "plates", "knife", "knives", "kettle"}),
    "outdoor": frozenset({"outdoor", "garden", "patio", "hammock", "umbrella", "planter"}),
    "jewelry": frozenset({"jewelry", "jewellery", "necklace", "ring", "rings", "bracelet",
                          "earrings", "watch", "watches"}),
}

# keyword → names of the categories it belongs to
_KEYWORD_INDEX: Dict[str, List[str]] = {}
for _category, _words in SEMANTIC_CATEGORIES.items():
    for _word in _words:
        _KEYWORD_INDEX.setdefault(_word, []).append(_category)

_WORD_RE = re.compile(r"[a-z0-9]+(?:-[a-z0-9]+)*")


def _words_of(text: str) -> set:
    return set(_WORD_RE.findall((text or "").lower()))


def _search_text(product: Product) -> str:
    return " ".join(filter(None, [product.title, product.description, product.category]))


def _semantic_match(keyword: str, product_words: set) -> bool:
    """True when another synonym from the keyword's category appears as a whole word."""
    for category in _KEYWORD_INDEX.get(keyword, []):
        synonyms = SEMANTIC_CATEGORIES[category] - {keyword}
        if synonyms & product_words:
            return True
    return False


def _qualifies(keywords: List[str], product: Product) -> bool:
    title = product.title.lower()
    if any(kw in title for kw in keywords):
        return True
    product_words = _words_of(_search_text(product))
    return any(_semantic_match(kw, product_words) for kw in keywords)


def _score(keywords: List[str], product: Product) -> int:
    title = product.title.lower()
    score = sum(2 * len(kw) for kw in keywords if kw in title)
    if len(keywords) >= 2 and " ".join(keywords) in title:
        score += 10
    if product.inventory:
        score += 1
    if product.image_url:
        score += 1
    return score


# ─────────────────────────────────────────────
# PUBLIC API
# ─────────────────────────────────────────────

def find_matching_products(
    query: str,
    products: Sequence[Product],
    limit: int = MAX_MATCHED_PRODUCTS,
) -> List[Product]:
    """
    Rank catalog products against a free-text query.

    An active price range filters first; a query with no content keywords
    matches nothing. Ties keep catalog order.
    """
    limit = max(0, min(limit, MAX_MATCHED_PRODUCTS))
    price_range = detect_price_range(query)
    candidates = [p for p in products if price_range is None or price_range.contains(p.price)]

    keywords = extract_product_keywords(query)
    if not keywords:
        return []

    qualified = [p for p in candidates if _qualifies(keywords, p)]
    # sorted() is stable, so equal scores keep catalog order
    ranked = sorted(qualified, key=lambda p: _score(keywords, p), reverse=True)
    return ranked[:limit]


def find_best_product_match(name: str, products: Sequence[Product]) -> Optional[Product]:
    """Resolve a user-typed product name to one catalog product."""
    needle = (name or "").strip().lower()
    if not needle:
        return None

    for product in products:
        title = product.title.lower()
        if needle in title or title in needle:
            return product

    tokens = [t for t in _WORD_RE.findall(needle) if len(t) > 2]
    best, best_score = None, 0
    for product in products:
        product_words = _words_of(f"{product.title} {product.description}")
        score = sum(len(t) for t in tokens if t in product_words)
        if score > best_score:
            best, best_score = product, score
    return best


def cheapest_products(products: Sequence[Product], limit: int = MAX_MATCHED_PRODUCTS) -> List[Product]:
    return sorted(products, key=lambda p: p.price)[:limit]
