"""
Lexical extractors: raw utterance text → structured signals.

Every function here is pure and case-insensitive. Matching is keyword and
regex based; there is no learned model anywhere in the pipeline.
"""

import re
from typing import List, Optional, Sequence

from models import (
    ActionKind, ActionRequest, ComparisonPair, Confirmation, PriceRange, Product,
)


# ─────────────────────────────────────────────
# PRICE RANGE
# ─────────────────────────────────────────────

_NUM = r"\$?\s?(\d+(?:,\d{3})*(?:\.\d+)?)(?:\s*(?:dollars|usd|bucks))?"

# Precedence is the list order: only the first matching pattern is applied.
PRICE_PATTERNS = [
    ("between", re.compile(
        rf"\b(?:between|from)\s+{_NUM}\s*(?:and|to|-)\s*{_NUM}"
        rf"|\$(\d+(?:,\d{{3}})*(?:\.\d+)?)\s*(?:to|-)\s*{_NUM}", re.I)),
    ("under", re.compile(
        rf"\b(?:under|below|less\s+than|cheaper\s+than|up\s+to|no\s+more\s+than|"
        rf"at\s+most|max(?:imum)?(?:\s+of)?|within)\s+{_NUM}", re.I)),
    ("over", re.compile(
        rf"\b(?:over|above|more\s+than|greater\s+than|at\s+least|min(?:imum)?(?:\s+of)?|"
        rf"starting\s+(?:at|from))\s+{_NUM}", re.I)),
    ("around", re.compile(
        rf"\b(?:around|approximately|approx\.?|about|roughly|near|close\s+to)\s+{_NUM}", re.I)),
    ("exact", re.compile(
        rf"\b(?:exactly|precisely|priced\s+at|costing)\s+{_NUM}|\$(\d+(?:,\d{{3}})*(?:\.\d+)?)", re.I)),
]

AROUND_TOLERANCE = 0.20
EXACT_TOLERANCE = 0.05


def _to_number(raw: str) -> float:
    return float(raw.replace(",", ""))


def detect_price_range(text: str) -> Optional[PriceRange]:
    """Extract a price range from text, or None when no price phrase is present."""
    if not text:
        return None

    for name, pattern in PRICE_PATTERNS:
        match = pattern.search(text)
        if not match:
            continue
        values = [_to_number(g) for g in match.groups() if g is not None]

        if name == "between":
            low, high = sorted(values[:2])
            return PriceRange(min_price=low, max_price=high)
        if name == "under":
            return PriceRange(max_price=values[0])
        if name == "over":
            return PriceRange(min_price=values[0])
        if name == "around":
            value = values[0]
            return PriceRange(
                min_price=round(value * (1 - AROUND_TOLERANCE), 2),
                max_price=round(value * (1 + AROUND_TOLERANCE), 2),
            )
        value = values[0]
        return PriceRange(
            min_price=round(value * (1 - EXACT_TOLERANCE), 2),
            max_price=round(value * (1 + EXACT_TOLERANCE), 2),
        )

    return None


def strip_price_phrases(text: str) -> str:
    """Remove every recognized price phrase from text."""
    for _, pattern in PRICE_PATTERNS:
        text = pattern.sub(" ", text)
    return text


# ─────────────────────────────────────────────
# PRODUCT KEYWORDS
# ─────────────────────────────────────────────

# Price trigger words are stop words too, so joined keywords can never form
# a new price phrase on a second pass.
STOP_WORDS = frozenset({
    "a", "an", "the", "and", "or", "but", "if", "so", "as", "by",
    "i", "im", "i'm", "ive", "i've", "id", "i'd", "me", "my", "mine", "we", "our", "us",
    "you", "your", "yours", "it", "its", "this", "that", "these", "those", "they", "them",
    "is", "are", "was", "were", "be", "been", "am", "do", "does", "did", "done",
    "have", "has", "had", "can", "could", "would", "should", "will", "shall", "may", "might",
    "please", "pls", "thanks", "thank", "hey", "hello",
    "show", "find", "get", "give", "want", "wanna", "need", "looking", "look", "see", "let",
    "tell", "know", "help", "got", "like", "love", "prefer",
    "for", "to", "of", "in", "on", "at", "with", "without", "into", "onto", "off",
    "some", "any", "something", "anything", "everything", "all", "other", "another", "same",
    "what", "which", "who", "whom", "how", "where", "when", "why", "there", "here",
    "recommend", "recommended", "recommendation", "recommendations",
    "suggest", "suggestion", "suggestions", "option", "options", "idea", "ideas",
    "good", "best", "better", "nice", "great", "cool", "top", "popular",
    "cheap", "cheaper", "cheapest", "affordable", "inexpensive", "expensive", "budget",
    "price", "prices", "priced", "pricing", "cost", "costs", "costing",
    "dollar", "dollars", "usd", "bucks",
    "under", "below", "over", "above", "around", "about", "approximately", "approx",
    "roughly", "near", "close", "between", "from", "exactly", "precisely",
    "less", "more", "than", "least", "most", "max", "maximum", "min", "minimum",
    "up", "within", "greater", "starting", "no", "not",
    "buy", "purchase", "order", "shop", "shopping", "store", "sell", "sells", "selling",
    "available", "carry", "stock",
    "product", "products", "item", "items", "thing", "things", "stuff", "one", "ones",
    "also", "just", "really", "very", "much", "many", "new", "some",
    "don't", "dont", "can't", "cant",
})

_KEYWORD_CLEAN_RE = re.compile(r"[^a-z0-9'\s-]")


def extract_product_keywords(text: str) -> List[str]:
    """Content words from text, in first-occurrence order; never None."""
    if not text:
        return []

    cleaned = strip_price_phrases(text.lower())
    cleaned = _KEYWORD_CLEAN_RE.sub(" ", cleaned)

    keywords: List[str] = []
    seen = set()
    for token in cleaned.split():
        token = token.strip("-'")
        if len(token) <= 2 or token in STOP_WORDS or token in seen:
            continue
        seen.add(token)
        keywords.append(token)
    return keywords


# ─────────────────────────────────────────────
# COMPARISON
# ─────────────────────────────────────────────

_COMPARISON_TRIGGER_RE = re.compile(
    r"\b(?:compare|comparing|comparison|vs|versus|difference|differences|better|"
    r"which\s+(?:one\s+)?should\s+i)\b",
    re.I,
)

# Tried in order; the first structural match with two usable names wins.
COMPARISON_PATTERNS = [
    re.compile(r"\bcompar(?:e|ing)\s+(.+?)\s+(?:and|with|to|vs\.?|versus|or)\s+(.+)$", re.I),
    re.compile(r"\bdifferences?\s+between\s+(.+?)\s+and\s+(.+)$", re.I),
    re.compile(
        r"\bwhich\s+(?:one\s+)?(?:is\s+better|should\s+i\s+(?:buy|get|choose|pick))"
        r"\s*[,:]?\s*(.+?)\s+or\s+(.+)$", re.I),
    re.compile(r"^(.+?)\s+or\s+(.+?)\s*[,:]?\s*which\s+(?:one\s+)?is\s+better$", re.I),
    re.compile(r"\bis\s+(.+?)\s+better\s+than\s+(.+)$", re.I),
    re.compile(r"^(.+?)\s+(?:vs\.?|versus)\s+(.+)$", re.I),
    re.compile(r"^(.+?)\s+(?:and|or)\s+(.+)$", re.I),
]

_LEADING_ARTICLE_RE = re.compile(r"^(?:the|a|an)\s+", re.I)


def _clean_comparison_name(name: str) -> str:
    name = name.strip(" \t,.:;!?\"'")
    while _LEADING_ARTICLE_RE.match(name):
        name = _LEADING_ARTICLE_RE.sub("", name, count=1).strip()
    return name


def is_comparison_query(text: str) -> Optional[ComparisonPair]:
    """Return the two names being compared, keeping the user's casing."""
    if not text or not _COMPARISON_TRIGGER_RE.search(text):
        return None

    cleaned = re.sub(r"\s+", " ", text.strip()).rstrip("?.! ")
    for pattern in COMPARISON_PATTERNS:
        match = pattern.search(cleaned)
        if not match:
            continue
        left = _clean_comparison_name(match.group(1))
        right = _clean_comparison_name(match.group(2))
        if len(left) > 1 and len(right) > 1:
            return ComparisonPair(left=left, right=right)
    return None


# ─────────────────────────────────────────────
# CONFIRMATION
# ─────────────────────────────────────────────

AFFIRMATIVE_RESPONSES = frozenset({
    "yes", "y", "yeah", "yea", "yep", "yup", "ya", "sure", "ok", "okay", "k",
    "of course", "absolutely", "definitely", "certainly", "alright", "all right",
    "yes please", "yes, please", "please do", "go ahead", "do it", "sounds good",
    "proceed", "confirm", "confirmed", "correct", "that's right", "thats right",
    "yes i do", "i do", "yes i would", "i would", "let's do it", "lets do it",
    "sure thing", "why not", "affirmative", "go for it",
})

NEGATIVE_RESPONSES = frozenset({
    "no", "n", "nope", "nah", "no thanks", "no thank you", "no, thanks",
    "no, thank you", "not now", "not yet", "cancel", "never mind", "nevermind",
    "don't", "dont", "do not", "not really", "maybe later", "stop", "no way",
    "i don't", "i dont", "no i don't", "no i dont", "not interested", "skip",
})

_TRAILING_PUNCT_RE = re.compile(r"[.!?]+$")


def _normalize_short_reply(text: str) -> str:
    t = (text or "").strip().lower().replace("’", "'")
    t = _TRAILING_PUNCT_RE.sub("", t).strip()
    return re.sub(r"\s+", " ", t)


def is_confirmation_response(text: str) -> Optional[Confirmation]:
    """Exact whitelist match; anything else is not a confirmation."""
    t = _normalize_short_reply(text)
    if t in AFFIRMATIVE_RESPONSES:
        return Confirmation.YES
    if t in NEGATIVE_RESPONSES:
        return Confirmation.NO
    return None


# ─────────────────────────────────────────────
# NONSENSE / VAGUE
# ─────────────────────────────────────────────

def is_nonsense_query(text: str) -> bool:
    t = (text or "").strip().lower()
    if not t:
        return False
    if re.search(r"(.)\1{4,}", t):
        return True
    if len(t) > 6 and not re.search(r"[aeiou]", t):
        return True
    if len(t.split()) == 1 and len(t) < 3:
        return True
    if re.fullmatch(r"[\d\s.,]+", t) and re.search(r"\d", t):
        return True
    return False


VAGUE_PRODUCT_REQUESTS = frozenset({
    "show me products", "show products", "show me your products", "show me some products",
    "show me the products", "show me all products", "show all products", "list products",
    "list all products", "show me items", "show me some items", "show items",
    "show me something", "show me anything", "show me stuff", "show me what you have",
    "show me what you've got", "show me what you got", "show me the catalog",
    "show catalog", "show me your catalog", "browse products", "browse",
    "what do you have", "what have you got", "what do you offer",
    "what products do you have", "what products do you sell", "what items do you have",
    "what can i buy", "what can i get", "what's available", "whats available",
    "what is available", "anything available",
    "recommend something", "recommend me something", "recommend a product",
    "recommend products", "recommend me products", "recommend me a product",
    "can you recommend something", "could you recommend something",
    "what do you recommend", "what would you recommend", "any recommendations",
    "give me recommendations", "give me a recommendation", "recommendations",
    "suggest something", "suggest me something", "suggest a product", "suggest products",
    "can you suggest something", "what do you suggest", "any suggestions",
    "give me suggestions", "suggestions",
    "i want to buy something", "i want to buy", "i want to shop", "i want something",
    "i need something", "i'd like to buy something", "i would like to buy something",
    "i'm looking for something", "im looking for something", "looking for something",
    "i am looking for something", "help me find something", "help me shop",
    "i want to purchase something", "i need to buy something",
    "products", "items", "recommend", "suggest", "catalog", "shop", "show me",
})


def _normalize_phrase(text: str) -> str:
    t = (text or "").lower().replace("’", "'")
    t = re.sub(r"[^a-z0-9'\s]", " ", t)
    return re.sub(r"\s+", " ", t).strip()


def is_vague_product_request(text: str) -> bool:
    """Whole-string match against generic 'show me products' phrasings."""
    return _normalize_phrase(text) in VAGUE_PRODUCT_REQUESTS


# ─────────────────────────────────────────────
# RECOMMENDATION TRIGGERS
# ─────────────────────────────────────────────

_RECOMMENDATION_TRIGGER_RE = re.compile(
    r"\b(?:recommend\w*|suggest\w*|show|looking\s+for|look\s+for|find|search\w*|"
    r"need|want|buy|purchase|order|checkout|view|details?|add|cart|shop\w*|browse|"
    r"do\s+you\s+(?:have|sell|carry|stock)|what\s+do\s+you\s+(?:have|offer)|available|"
    r"options?|ideas?|gift|cheap\w*|affordable|budget|best|top\s+rated|"
    r"under|below|between|around)\b",
    re.I,
)


def is_recommendation_query(text: str) -> bool:
    return bool(text) and bool(_RECOMMENDATION_TRIGGER_RE.search(text))


# ─────────────────────────────────────────────
# DIRECT ACTIONS (buy / view / cart)
# ─────────────────────────────────────────────

_ACTION_PREFIX = (
    r"(?:(?:please|pls|ok|okay|so|then|now|great|cool)\s*,?\s+)*"
    r"(?:i\s+(?:want|would\s+like|'d\s+like|wanna|need)\s+to\s+|i'?ll\s+|i\s+will\s+|"
    r"let\s+me\s+|can\s+i\s+|could\s+i\s+|let'?s\s+|please\s+)?"
)

# Ordered: cart phrasings first since they can embed other verbs.
ACTION_PATTERNS = [
    (ActionKind.CART, re.compile(
        rf"^{_ACTION_PREFIX}(?:add|put|place)\s+(?P<target>.*?)\s*(?:to|in|into)\s+"
        rf"(?:my\s+|the\s+)?(?:shopping\s+)?(?:cart|basket|bag)$")),
    (ActionKind.CART, re.compile(
        rf"^{_ACTION_PREFIX}add\s+to\s+(?:my\s+|the\s+)?cart\b\s*(?P<target>.*)$")),
    (ActionKind.BUY, re.compile(
        rf"^{_ACTION_PREFIX}(?:buy|purchase|order|checkout|check\s+out)(?:\s+now)?\b\s*(?P<target>.*)$")),
    (ActionKind.VIEW, re.compile(
        rf"^{_ACTION_PREFIX}(?:view|open|see|show)\s+(?:me\s+)?(?:the\s+)?"
        rf"(?:details?|product\s+page|page)(?:\s+(?:of|for|on))?\b\s*(?P<target>.*)$")),
    (ActionKind.VIEW, re.compile(
        rf"^{_ACTION_PREFIX}view\b\s*(?P<target>.*)$")),
]

VAGUE_TARGETS = frozenset({
    "", "it", "this", "that", "one", "this one", "that one", "the one", "them",
    "these", "those", "item", "product", "this item", "that item", "this product",
    "that product", "one of them", "something", "same", "the same",
})

_TARGET_TRAILER_RE = re.compile(r"\s+(?:now|please|for\s+me|right\s+now|today)$")
_TARGET_DETERMINER_RE = re.compile(r"^(?:the|a|an|this|that|my|some)\s+")


def _clean_target(raw: str) -> str:
    target = raw.strip(" \t.,!?\"'")
    target = _TARGET_TRAILER_RE.sub("", target).strip()
    if target in VAGUE_TARGETS:
        return ""
    target = _TARGET_DETERMINER_RE.sub("", target, count=1).strip()
    return "" if target in VAGUE_TARGETS else target


def is_direct_action_request(
    text: str,
    products: Sequence[Product],
) -> Optional[ActionRequest]:
    """Recognize buy/view/cart requests and try to resolve their target."""
    normalized = re.sub(r"\s+", " ", (text or "").lower().replace("’", "'")).strip(" .!?")
    if not normalized:
        return None

    for action, pattern in ACTION_PATTERNS:
        match = pattern.match(normalized)
        if not match:
            continue

        target = _clean_target(match.group("target") or "")
        if not target:
            return ActionRequest(action=action, target_name="", vague=True)

        # Local import: the matcher depends on this module's extractors.
        from product_matcher import find_matching_products

        matches = find_matching_products(target, products, limit=1)
        return ActionRequest(
            action=action,
            target_name=target,
            vague=False,
            product=matches[0] if matches else None,
        )

    return None
