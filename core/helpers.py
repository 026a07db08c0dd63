"""
Core Helpers

Timeout wrapper for external calls, history capping, redirect URL builders,
and chat request parsing/validation.
"""

import atexit
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from app_config import MAX_HISTORY_MESSAGES, MAX_QUERY_LENGTH, STORE_URL
from models import (
    ActionKind, ChatMessage, ChatRequest, ErrorKind, Product, RequestValidationError,
)

# Catalog fetches and completions use separate pools: abandoned completions
# must not occupy catalog workers. Timed-out futures are abandoned and the
# worker finishes in the background.
catalog_executor = ThreadPoolExecutor(max_workers=16, thread_name_prefix="catalog-call")
completion_executor = ThreadPoolExecutor(max_workers=64, thread_name_prefix="completion-call")
atexit.register(catalog_executor.shutdown, wait=False)
atexit.register(completion_executor.shutdown, wait=False)


@dataclass
class CallResult:
    """Outcome of one external call: ok, timeout or failure."""
    value: Any = None
    error: Optional[ErrorKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


def call_with_timeout(
    fn: Callable[..., Any],
    timeout: float,
    *args,
    executor: Optional[ThreadPoolExecutor] = None,
    **kwargs,
) -> CallResult:
    """Run fn on `executor` (the catalog pool by default) and wait at most `timeout` seconds."""
    future = (executor or catalog_executor).submit(fn, *args, **kwargs)
    try:
        return CallResult(value=future.result(timeout=timeout))
    except FutureTimeout:
        return CallResult(error=ErrorKind.UPSTREAM_TIMEOUT, detail=f"no result after {timeout:g}s")
    except Exception as e:
        return CallResult(error=ErrorKind.UPSTREAM_FAILURE, detail=f"{type(e).__name__}: {e}")


def cap_history(history: List[ChatMessage], limit: int = MAX_HISTORY_MESSAGES) -> List[ChatMessage]:
    """Keep the most recent `limit` messages."""
    if limit <= 0:
        return []
    return list(history[-limit:])


# ─── Redirect URLs ───

def product_url(product: Product, store_url: str = STORE_URL) -> str:
    return f"{store_url}/product/{product.slug}/"


def cart_url(product: Product, store_url: str = STORE_URL) -> str:
    return f"{store_url}/shop/?add-to-cart={product.id}"


def checkout_url(product_id: int, store_url: str = STORE_URL) -> str:
    return f"{store_url}/checkout/?add-to-cart={product_id}"


def action_url(action: ActionKind, product: Product, store_url: str = STORE_URL) -> str:
    if action is ActionKind.BUY:
        return checkout_url(product.id, store_url)
    if action is ActionKind.CART:
        return cart_url(product, store_url)
    return product_url(product, store_url)


# ─── Request parsing ───

def parse_chat_request(data: Any) -> ChatRequest:
    """
    Validate a /chat JSON body and build a ChatRequest.

    Collects every field problem before raising, so the client sees all of
    them at once.

    Raises:
        RequestValidationError: with a {field: [messages]} mapping
    """
    errors: Dict[str, List[str]] = {}

    def add(field_name: str, message: str):
        errors.setdefault(field_name, []).append(message)

    if not isinstance(data, dict):
        raise RequestValidationError({"body": ["Request body must be a JSON object"]})

    query = data.get("query")
    if not isinstance(query, str):
        add("query", "query is required and must be a string")
        query = ""
    else:
        query = query.strip()
        if not query:
            add("query", "query must not be empty")
        elif len(query) > MAX_QUERY_LENGTH:
            add("query", f"query must be at most {MAX_QUERY_LENGTH} characters")

    session_id = data.get("sessionId")
    if session_id is not None and not isinstance(session_id, str):
        add("sessionId", "sessionId must be a string or null")
        session_id = None

    history: List[ChatMessage] = []
    raw_history = data.get("history")
    if raw_history is not None:
        if not isinstance(raw_history, list):
            add("history", "history must be a list")
        else:
            for i, item in enumerate(raw_history):
                if not isinstance(item, dict):
                    add(f"history[{i}]", "message must be an object")
                    continue
                if item.get("role") not in ("user", "assistant"):
                    add(f"history[{i}].role", "role must be 'user' or 'assistant'")
                    continue
                if not isinstance(item.get("content"), str):
                    add(f"history[{i}].content", "content must be a string")
                    continue
                history.append(ChatMessage.from_dict(item))

    last_shown: Optional[List[Product]] = None
    raw_products = data.get("lastShownProducts")
    if raw_products is not None:
        if not isinstance(raw_products, list):
            add("lastShownProducts", "lastShownProducts must be a list")
        else:
            last_shown = []
            for i, item in enumerate(raw_products):
                try:
                    last_shown.append(Product.from_dict(item))
                except ValueError as e:
                    add(f"lastShownProducts[{i}]", str(e))

    if errors:
        raise RequestValidationError(errors)

    return ChatRequest(
        query=query,
        history=history if raw_history is not None else None,
        last_shown_products=last_shown,
        session_id=session_id or None,
    )
