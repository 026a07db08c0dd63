"""
Data models for the Shopping Assistant dialogue engine.
"""

from enum import Enum
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Optional, List, Dict, Any


class Phase(Enum):
    GENERAL          = "general"
    RECOMMENDATION   = "recommendation"
    COMPARISON       = "comparison"


class ActionKind(Enum):
    BUY   = "buy"
    VIEW  = "view"
    CART  = "cart"


class Confirmation(Enum):
    YES = "yes"
    NO  = "no"


class ReplyKind(Enum):
    # Small talk & general Q&A
    QUICK_REPLY            = "quick_reply"
    GENERAL_ANSWER         = "general_answer"

    # Recommendation
    CLARIFY                = "clarify"
    PRODUCTS               = "products"
    NO_MATCH               = "no_match"
    NOT_SURE               = "not_sure"
    EMPTY_CATALOG          = "empty_catalog"

    # Direct actions
    REDIRECT               = "redirect"
    ACTION_CARDS           = "action_cards"
    ACTION_CONFIRM         = "action_confirm"
    ACTION_CLARIFY         = "action_clarify"

    # Confirmation handling
    CONFIRM_DECLINED       = "confirm_declined"
    NAME_PRODUCT           = "name_product"
    UNRESOLVED_REFERENCE   = "unresolved_reference"

    # Comparison
    COMPARISON             = "comparison"
    COMPARISON_UNRESOLVED  = "comparison_unresolved"

    ERROR                  = "error"


class ErrorKind(Enum):
    VALIDATION            = "validation_error"
    UPSTREAM_TIMEOUT      = "upstream_timeout"
    UPSTREAM_FAILURE      = "upstream_failure"
    UNRESOLVED_REFERENCE  = "unresolved_reference"
    INTERNAL              = "internal_error"


class RequestValidationError(ValueError):
    """Malformed or out-of-bounds chat request."""

    def __init__(self, field_errors: Dict[str, List[str]]):
        self.field_errors = field_errors
        fields = ", ".join(sorted(field_errors))
        super().__init__(f"Invalid request fields: {fields}")


class UpstreamError(RuntimeError):
    """A collaborator call (catalog or completion) timed out or failed."""

    def __init__(self, kind: ErrorKind, source: str, detail: str = ""):
        self.kind = kind
        self.source = source
        self.detail = detail
        super().__init__(f"{source} {kind.value}: {detail}" if detail else f"{source} {kind.value}")


def to_decimal(value: Any) -> Optional[Decimal]:
    """Parse a price value; returns None for blanks and garbage."""
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        return None


@dataclass(frozen=True)
class Product:
    id: int
    title: str
    price: Decimal
    description: str = ""
    slug: str = ""
    category: Optional[str] = None
    image_url: Optional[str] = None
    inventory: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "price": str(self.price),
            "description": self.description,
            "slug": self.slug,
            "category": self.category,
            "imageUrl": self.image_url,
            "inventory": self.inventory,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Product":
        """Build from the camelCase wire format. Raises ValueError on bad input."""
        if not isinstance(data, dict):
            raise ValueError("product must be an object")
        try:
            product_id = int(data["id"])
        except (KeyError, TypeError, ValueError):
            raise ValueError("product.id must be an integer")
        title = data.get("title")
        if not isinstance(title, str) or not title.strip():
            raise ValueError("product.title must be a non-empty string")
        price = to_decimal(data.get("price"))
        if price is None:
            raise ValueError("product.price must be a number")
        try:
            inventory = int(data.get("inventory") or 0)
        except (TypeError, ValueError):
            inventory = 0
        return cls(
            id=product_id,
            title=title.strip(),
            price=price,
            description=str(data.get("description") or ""),
            slug=str(data.get("slug") or ""),
            category=data.get("category") or None,
            image_url=data.get("imageUrl") or data.get("image_url") or None,
            inventory=inventory,
        )


@dataclass
class ChatMessage:
    role: str          # "user" | "assistant"
    content: str
    pending: Optional[Dict[str, Any]] = None   # structured confirmation record

    def to_dict(self) -> dict:
        d = {"role": self.role, "content": self.content}
        if self.pending:
            d["pending"] = self.pending
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "ChatMessage":
        pending = data.get("pending")
        return cls(
            role=data["role"],
            content=data["content"],
            pending=pending if isinstance(pending, dict) else None,
        )


@dataclass
class PriceRange:
    min_price: Optional[float] = None
    max_price: Optional[float] = None

    def contains(self, price) -> bool:
        value = float(price)
        if self.min_price is not None and value < self.min_price:
            return False
        if self.max_price is not None and value > self.max_price:
            return False
        return True

    def describe(self) -> str:
        if self.min_price is not None and self.max_price is not None:
            return f"between ${self.min_price:g} and ${self.max_price:g}"
        if self.max_price is not None:
            return f"under ${self.max_price:g}"
        if self.min_price is not None:
            return f"over ${self.min_price:g}"
        return ""


@dataclass
class ComparisonPair:
    left: str
    right: str


@dataclass
class ActionRequest:
    action: ActionKind
    target_name: str = ""
    vague: bool = False
    product: Optional[Product] = None


@dataclass
class PendingPurchase:
    product_id: Optional[int]
    title: str
    price: Optional[Decimal] = None
    slug: str = ""


@dataclass
class ConversationContext:
    """Pending state projected from the last assistant turn."""
    pending_purchase: Optional[PendingPurchase] = None
    pending_action: Optional[ActionKind] = None
    pending_target: Optional[str] = None
    last_shown_products: List[Product] = field(default_factory=list)

    @property
    def has_pending(self) -> bool:
        return self.pending_action is not None


@dataclass
class TurnDecision:
    """What the resolver decided for one turn, before any markup is produced."""
    kind: ReplyKind
    phase: Phase = Phase.GENERAL
    products: List[Product] = field(default_factory=list)
    action: Optional[ActionKind] = None
    redirect: Optional[str] = None
    text: Optional[str] = None
    pending: Optional[Dict[str, Any]] = None
    missing: List[str] = field(default_factory=list)
    keywords: List[str] = field(default_factory=list)
    price_range: Optional[PriceRange] = None
    degraded: bool = False
    error: Optional[str] = None

    @property
    def shows_products(self) -> bool:
        return bool(self.products) and self.kind in (
            ReplyKind.PRODUCTS,
            ReplyKind.ACTION_CARDS,
            ReplyKind.COMPARISON,
            ReplyKind.COMPARISON_UNRESOLVED,
        )


@dataclass
class ChatRequest:
    query: str
    history: Optional[List[ChatMessage]] = None   # None: use the stored session history
    last_shown_products: Optional[List[Product]] = None
    session_id: Optional[str] = None
