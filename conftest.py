"""
Pytest configuration and fixtures for shopping assistant tests.

Provides a small furniture catalog, an in-memory catalog stub, a scripted
completion service and a session store driven by a controllable clock.
"""

import time
from decimal import Decimal
from typing import List, Optional

import pytest

from core.session import SessionStore
from models import ChatMessage, Product


def make_product(pid: int, title: str, price: str, **kwargs) -> Product:
    return Product(
        id=pid,
        title=title,
        price=Decimal(price),
        slug=kwargs.pop("slug", title.lower().replace(" ", "-")),
        **kwargs,
    )


SAMPLE_PRODUCTS = [
    make_product(1, "Oak Dining Chair", "80.00",
                 description="Solid oak chair with a cushioned seat.",
                 category="Seating", image_url="https://example.com/oak.jpg", inventory=5),
    make_product(2, "Velvet Accent Chair", "150.00",
                 description="Plush velvet armchair for the living room.",
                 category="Seating"),
    make_product(3, "Walnut Coffee Table", "220.00",
                 description="Mid-century table in solid walnut.",
                 category="Tables", inventory=2),
    make_product(4, "Linen Sofa", "899.00",
                 description="Three-seat couch in natural linen.",
                 category="Sofas", inventory=1),
    make_product(5, "Brass Floor Lamp", "45.50",
                 description="Adjustable reading lamp with a brass finish.",
                 category="Lighting", image_url="https://example.com/lamp.jpg"),
    make_product(6, "Wool Area Rug", "120.00",
                 description="Hand-woven rug in neutral tones.",
                 category="Rugs"),
]


class FakeCatalog:
    """Catalog stub: returns a fixed product list or raises a set error."""

    def __init__(self, products: Optional[List[Product]] = None, error: Exception = None, delay: float = 0):
        self.products = list(products if products is not None else SAMPLE_PRODUCTS)
        self.error = error
        self.delay = delay
        self.calls = 0

    def fetch_all(self) -> List[Product]:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return list(self.products)


class FakeLLM:
    """Completion stub that records every call and returns a scripted reply."""

    def __init__(self, reply: str = "Happy to help!", error: Exception = None, delay: float = 0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.calls = []

    def complete(self, system_persona, conversation_turns, user_prompt, max_tokens=800, temperature=0.7):
        self.calls.append({
            "system_persona": system_persona,
            "conversation_turns": list(conversation_turns),
            "user_prompt": user_prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if self.delay:
            time.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


class FakeClock:
    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


def assistant(content: str, pending: dict = None) -> ChatMessage:
    return ChatMessage(role="assistant", content=content, pending=pending)


def user(content: str) -> ChatMessage:
    return ChatMessage(role="user", content=content)


@pytest.fixture
def products() -> List[Product]:
    return list(SAMPLE_PRODUCTS)


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def llm() -> FakeLLM:
    return FakeLLM()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def session_store(clock) -> SessionStore:
    return SessionStore(ttl_seconds=300, stale_seconds=3600, sweep_interval=60, clock=clock)
