"""
LLM completion client, prompts and deterministic fallbacks.

The completion service is used for two things only:
1. General Q&A in the store persona (general phase)
2. Neutral two-product comparisons (comparison phase)

Both call sites wrap `LLMClient.complete` with a timeout and fall back to
canned text, so a slow or unavailable provider never fails a turn.

Privacy-First Design:
- User text is scrubbed of PII (emails, phone numbers, cards) before sending
- Only public catalog data (titles, prices, descriptions) goes into prompts
"""

import re
import time
from decimal import Decimal
from typing import Dict, List, Optional, Any, Sequence

import requests

from chat_logger import get_logger, truncate_for_log
from app_config import (
    STORE_NAME,
    LLM_PROVIDER,
    LLM_MODEL,
    LLM_API_KEY,
    LLM_API_BASE_URL,
    LLM_TEMPERATURE,
    LLM_MAX_TOKENS,
    LLM_TIMEOUT_SECONDS,
    LLM_COST_PER_1K_INPUT,
    LLM_COST_PER_1K_OUTPUT,
    LLM_CONTEXT_MESSAGES,
    COMPARISON_MAX_WORDS,
)
from models import ChatMessage, Product

logger = get_logger("shopping_assistant.llm")


# ══════════════════════════════════════════════════════════════
# PRIVACY & SANITIZATION
# ══════════════════════════════════════════════════════════════

def _sanitize_for_llm(text: str) -> str:
    """
    Remove PII from user messages before sending to LLM.

    Strips email addresses, credit card numbers, SSN-like patterns and
    phone numbers. Card numbers are replaced before phone numbers so a
    16-digit card is not split into phone fragments.
    """
    if not text:
        return text

    text = re.sub(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b', '[EMAIL]', text)
    text = re.sub(r'\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b', '[CARD]', text)
    text = re.sub(r'\b\d{3}-\d{2}-\d{4}\b', '[SSN]', text)
    text = re.sub(r'(?<!\w)\+\d{1,3}[-.\s]?\(?\d{1,4}\)?[-.\s]?\d{2,4}[-.\s]?\d{3,9}\b', '[PHONE]', text)
    text = re.sub(r'\(?\b\d{3}\)?[-.\s]?\d{3}[-.\s]\d{4}\b', '[PHONE]', text)

    return text


# ══════════════════════════════════════════════════════════════
# LLM CLIENT (Multi-Provider Support)
# ══════════════════════════════════════════════════════════════

class LLMClient:
    """
    Abstraction over LLM providers, configurable via environment variables.

    Supported providers:
    - openai: OpenAI API
    - anthropic: Anthropic Claude API
    - azure_openai: Azure OpenAI Service
    """

    def __init__(
        self,
        provider: str = LLM_PROVIDER,
        model: str = LLM_MODEL,
        api_key: str = LLM_API_KEY,
        api_url: str = LLM_API_BASE_URL,
        timeout: float = LLM_TIMEOUT_SECONDS,
    ):
        self.provider = provider.lower()
        self.model = model
        self.api_key = api_key
        self.timeout = timeout
        self.session = requests.Session()

        if self.provider == "openai":
            self.api_url = api_url or "https://api.openai.com/v1/chat/completions"
        elif self.provider == "anthropic":
            self.api_url = api_url or "https://api.anthropic.com/v1/messages"
        elif self.provider == "azure_openai":
            if not api_url:
                raise ValueError("LLM_API_BASE_URL is required for azure_openai")
            self.api_url = api_url
        else:
            raise ValueError(f"Unsupported LLM provider: {self.provider}")

    def complete(
        self,
        system_persona: str,
        conversation_turns: Sequence[ChatMessage],
        user_prompt: str,
        max_tokens: int = LLM_MAX_TOKENS,
        temperature: float = LLM_TEMPERATURE,
    ) -> str:
        """
        Send one completion request and return the reply text.

        Only the trailing LLM_CONTEXT_MESSAGES turns are forwarded, each
        scrubbed of PII.

        Raises:
            requests.RequestException: transport or HTTP errors
            ValueError: malformed provider response
        """
        start_time = time.time()
        messages = [
            {"role": m.role, "content": _sanitize_for_llm(m.content)}
            for m in list(conversation_turns)[-LLM_CONTEXT_MESSAGES:]
            if m.role in ("user", "assistant") and m.content
        ]
        messages.append({"role": "user", "content": _sanitize_for_llm(user_prompt)})

        try:
            if self.provider == "anthropic":
                result = self._anthropic_completion(system_persona, messages, max_tokens, temperature)
            else:
                result = self._openai_style_completion(system_persona, messages, max_tokens, temperature)
        except Exception as e:
            logger.error(f"LLM API call failed | provider={self.provider} | error={e}")
            raise

        latency_ms = int((time.time() - start_time) * 1000)
        cost = (
            result["input_tokens"] / 1000 * LLM_COST_PER_1K_INPUT
            + result["output_tokens"] / 1000 * LLM_COST_PER_1K_OUTPUT
        )
        logger.info(
            f"LLM completion | provider={self.provider} | model={self.model} | "
            f"tokens={result['input_tokens']}+{result['output_tokens']} | "
            f"cost=${cost:.5f} | latency={latency_ms}ms"
        )
        return result["content"].strip()

    def _openai_style_completion(
        self,
        system_prompt: str,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> Dict[str, Any]:
        """OpenAI-compatible API call (works for OpenAI and Azure OpenAI)."""
        headers = {"Content-Type": "application/json"}
        if self.provider == "azure_openai":
            headers["api-key"] = self.api_key
        else:
            headers["Authorization"] = f"Bearer {self.api_key}"

        payload = {
            "model": self.model,
            "messages": [{"role": "system", "content": system_prompt}] + messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        with self.session.post(self.api_url, headers=headers, json=payload, timeout=self.timeout) as response:
            response.raise_for_status()
            data = response.json()

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ValueError("Malformed completion response")
        usage = data.get("usage", {})

        return {
            "content": content or "",
            "input_tokens": usage.get("prompt_tokens", 0),
            "output_tokens": usage.get("completion_tokens", 0),
        }

    def _anthropic_completion(
        self,
        system_prompt: str,
        messages: List[Dict[str, str]],
        max_tokens: int,
        temperature: float,
    ) -> Dict[str, Any]:
        """Anthropic Messages API call."""
        headers = {
            "Content-Type": "application/json",
            "x-api-key": self.api_key,
            "anthropic-version": "2023-06-01",
        }

        # The Messages API requires the first turn to come from the user.
        while messages and messages[0]["role"] != "user":
            messages = messages[1:]

        payload = {
            "model": self.model,
            "system": system_prompt,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": max_tokens,
        }

        with self.session.post(self.api_url, headers=headers, json=payload, timeout=self.timeout) as response:
            response.raise_for_status()
            data = response.json()

        try:
            content = data["content"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise ValueError("Malformed completion response")
        usage = data.get("usage", {})

        return {
            "content": content or "",
            "input_tokens": usage.get("input_tokens", 0),
            "output_tokens": usage.get("output_tokens", 0),
        }


# ══════════════════════════════════════════════════════════════
# PROMPTS
# ══════════════════════════════════════════════════════════════

def build_store_persona(store_name: str = STORE_NAME) -> str:
    return (
        f"You are a friendly, helpful shopping assistant for {store_name}. "
        "Sound like a real person: warm, natural, and concise. Use contractions "
        "and carry the conversation forward, referencing what the customer said before.\n\n"
        "Guidelines:\n"
        "- Answer questions about the store, shopping, orders and policies briefly\n"
        "- Do not invent products, prices, or policies you were not given\n"
        "- Do not recommend products unless the customer asks for them\n"
        "- If you need to clarify, ask one friendly follow-up question\n"
        "- Politely decline requests unrelated to shopping, and do not engage with abusive messages\n"
        "- If the customer names products we carry, you may mention them but do not list details or prices\n"
        "- Reply in plain text, no HTML or markdown"
    )


def build_general_prompt(query: str, mentioned_titles: Sequence[str] = ()) -> str:
    prompt = f'Customer question: "{query}"'
    if mentioned_titles:
        prompt += "\n\nProducts from our store named in the question: " + ", ".join(mentioned_titles)
    return prompt


COMPARISON_PERSONA = (
    "You are a neutral product advisor. Compare products objectively, "
    "focusing on price and value for money. Do not favour either product "
    "without a reason drawn from the data given."
)


def _describe_for_prompt(product: Product) -> str:
    description = (product.description or "").strip()[:200] or "No description available"
    category = f"\nCategory: {product.category}" if product.category else ""
    return f"Title: {product.title}\nPrice: ${product.price}{category}\nDescription: {description}"


def build_comparison_prompt(left: Product, right: Product, max_words: int = COMPARISON_MAX_WORDS) -> str:
    return (
        "Compare these two products for a shopper.\n\n"
        f"Product A:\n{_describe_for_prompt(left)}\n\n"
        f"Product B:\n{_describe_for_prompt(right)}\n\n"
        f"Keep the answer under {max_words} words, plain text, and end with a short "
        "note on which suits a tighter budget."
    )


# ══════════════════════════════════════════════════════════════
# DETERMINISTIC FALLBACKS
# ══════════════════════════════════════════════════════════════

def _snippet(text: str, limit: int = 80) -> str:
    text = re.sub(r"\s+", " ", (text or "")).strip()
    if len(text) <= limit:
        return text
    return text[:limit].rsplit(" ", 1)[0] + "..."


def fallback_comparison(left: Product, right: Product) -> str:
    """Comparison built from catalog data alone: price delta plus description snippets."""
    delta = abs(Decimal(left.price) - Decimal(right.price))
    if delta == 0:
        price_line = f"{left.title} and {right.title} are the same price (${left.price:.2f})."
    else:
        cheaper, pricier = (left, right) if left.price < right.price else (right, left)
        price_line = (
            f"{cheaper.title} (${cheaper.price:.2f}) is ${delta:.2f} cheaper than "
            f"{pricier.title} (${pricier.price:.2f})."
        )

    lines = [price_line]
    for product in (left, right):
        snippet = _snippet(product.description)
        if snippet:
            lines.append(f"{product.title}: {snippet}")
    return "\n".join(lines)


def log_prompt(kind: str, query: str):
    logger.debug(f"LLM prompt | kind={kind} | query='{truncate_for_log(query)}'")
