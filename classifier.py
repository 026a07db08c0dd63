"""
Dialogue phase classifier for the shopping assistant.

Decides which branch of the turn resolver handles an utterance. The rules
are an explicit ordered table; the first predicate that holds wins, so the
table order is the priority order.
"""

import re
from typing import Callable, List, Sequence, Tuple

from extractors import (
    extract_product_keywords,
    is_comparison_query,
    is_confirmation_response,
    is_nonsense_query,
    is_recommendation_query,
)
from models import ChatMessage, ConversationContext, Phase

MIN_QUERY_LENGTH = 2

_GREETING_RE = re.compile(
    r"^(?:hi+|hello+|hey+|hiya|howdy|yo|good\s+(?:morning|afternoon|evening)|"
    r"thanks?(?:\s+you)?|thank\s+you(?:\s+so\s+much)?|thx|bye|goodbye|see\s+you)[\s!.,?]*$",
    re.I,
)

_GENERAL_KEYWORD_RE = re.compile(
    r"\b(?:shipping|ship|delivery|deliver|returns?|refunds?|exchange|warranty|guarantee|"
    r"payment|pay|paypal|hours|opening|contact|email|address|location|located|policy|"
    r"policies|privacy|track(?:ing)?|order\s+status|where\s+is\s+my\s+order|"
    r"who\s+are\s+you|your\s+name|about\s+(?:you|us|the\s+store|your\s+store)|"
    r"what\s+(?:categories|kind\s+of\s+(?:products|things|items))|how\s+does\s+this\s+work|"
    r"what\s+do\s+you\s+sell|what\s+is\s+this\s+store|tell\s+me\s+about\s+(?:the|your)\s+store|"
    r"help\s+me\s+with|can\s+you\s+help)\b",
    re.I,
)

Predicate = Callable[[str, Sequence[ChatMessage], ConversationContext], bool]


def _pending_confirmation(query, history, context) -> bool:
    return context.has_pending and is_confirmation_response(query) is not None


def _comparison(query, history, context) -> bool:
    return is_comparison_query(query) is not None


def _empty_or_nonsense(query, history, context) -> bool:
    text = (query or "").strip()
    return len(text) < MIN_QUERY_LENGTH or is_nonsense_query(text)


def _general_keyword(query, history, context) -> bool:
    text = query.strip()
    return bool(_GREETING_RE.match(text) or _GENERAL_KEYWORD_RE.search(text))


def _recommendation_trigger(query, history, context) -> bool:
    return is_recommendation_query(query)


def _keywords_without_ask(query, history, context) -> bool:
    return bool(extract_product_keywords(query))


def _default(query, history, context) -> bool:
    return True


# (rule_name, predicate, phase), checked top to bottom
PHASE_RULES: List[Tuple[str, Predicate, Phase]] = [
    ("pending_confirmation", _pending_confirmation, Phase.RECOMMENDATION),
    ("comparison", _comparison, Phase.COMPARISON),
    ("empty_or_nonsense", _empty_or_nonsense, Phase.GENERAL),
    ("general_keyword", _general_keyword, Phase.GENERAL),
    ("recommendation_trigger", _recommendation_trigger, Phase.RECOMMENDATION),
    ("keywords_without_ask", _keywords_without_ask, Phase.GENERAL),
    ("default", _default, Phase.GENERAL),
]


def explain_phase(
    query: str,
    history: Sequence[ChatMessage],
    context: ConversationContext,
) -> Tuple[Phase, str]:
    """Return the phase together with the name of the rule that decided it."""
    for name, predicate, phase in PHASE_RULES:
        if predicate(query or "", history, context):
            return phase, name
    return Phase.GENERAL, "default"


def detect_phase(
    query: str,
    history: Sequence[ChatMessage],
    context: ConversationContext,
) -> Phase:
    return explain_phase(query, history, context)[0]
