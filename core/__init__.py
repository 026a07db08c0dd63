"""Core package - exports core functionality."""

from .session import Session, SessionStore
from .helpers import (
    CallResult,
    call_with_timeout,
    cap_history,
    action_url,
    checkout_url,
    parse_chat_request,
)

__all__ = [
    "Session",
    "SessionStore",
    "CallResult",
    "call_with_timeout",
    "cap_history",
    "action_url",
    "checkout_url",
    "parse_chat_request",
]
