"""
Application configuration for the Shopping Assistant Chat API.
Contains environment variables, constants, and settings.
"""

import os
from dotenv import load_dotenv

load_dotenv()

# ═══════════════════════════════════════════
# STORE
# ═══════════════════════════════════════════

STORE_NAME = os.getenv("STORE_NAME", "Shopping Store")
STORE_URL = os.getenv("STORE_URL", "http://plugin.ijkstaging.com").rstrip("/")

# ═══════════════════════════════════════════
# CATALOG (WooCommerce REST API)
# ═══════════════════════════════════════════

WOO_BASE_URL = os.getenv("WOO_BASE_URL", f"{STORE_URL}/wp-json/wc/v3")
WOO_CONSUMER_KEY = os.getenv("WOO_CONSUMER_KEY", "")
WOO_CONSUMER_SECRET = os.getenv("WOO_CONSUMER_SECRET", "")

CATALOG_PAGE_SIZE = int(os.getenv("CATALOG_PAGE_SIZE", "100"))
CATALOG_MAX_PRODUCTS = int(os.getenv("CATALOG_MAX_PRODUCTS", "200"))
CATALOG_TIMEOUT_SECONDS = float(os.getenv("CATALOG_TIMEOUT_SECONDS", "8"))

# ═══════════════════════════════════════════
# HTTP HEADERS
# ═══════════════════════════════════════════

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/121.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
}

# ═══════════════════════════════════════════
# LLM COMPLETION SERVICE
# ═══════════════════════════════════════════

LLM_PROVIDER = os.getenv("LLM_PROVIDER", "openai")  # openai, anthropic, azure_openai
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-3.5-turbo")
LLM_API_KEY = os.getenv("LLM_API_KEY", os.getenv("OPENAI_API_KEY", ""))
LLM_API_BASE_URL = os.getenv("LLM_API_BASE_URL", "")

LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.7"))
LLM_MAX_TOKENS = int(os.getenv("LLM_MAX_TOKENS", "800"))
LLM_TIMEOUT_SECONDS = float(os.getenv("LLM_TIMEOUT_SECONDS", "20"))

# Comparison replies are kept short and neutral
COMPARISON_MAX_WORDS = int(os.getenv("COMPARISON_MAX_WORDS", "150"))
COMPARISON_TEMPERATURE = float(os.getenv("COMPARISON_TEMPERATURE", "0.3"))
COMPARISON_MAX_TOKENS = int(os.getenv("COMPARISON_MAX_TOKENS", "300"))

# Cost estimation (USD per 1000 tokens)
LLM_COST_PER_1K_INPUT = float(os.getenv("LLM_COST_PER_1K_INPUT", "0.0005"))
LLM_COST_PER_1K_OUTPUT = float(os.getenv("LLM_COST_PER_1K_OUTPUT", "0.0015"))

# ═══════════════════════════════════════════
# SESSIONS & CONVERSATION MEMORY
# ═══════════════════════════════════════════

SESSION_TTL_SECONDS = int(os.getenv("SESSION_TTL_SECONDS", str(5 * 60)))
SESSION_STALE_SECONDS = int(os.getenv("SESSION_STALE_SECONDS", str(60 * 60)))
SESSION_SWEEP_INTERVAL_SECONDS = int(os.getenv("SESSION_SWEEP_INTERVAL_SECONDS", "60"))

MAX_HISTORY_MESSAGES = int(os.getenv("MAX_HISTORY_MESSAGES", "12"))  # 6 exchanges
LLM_CONTEXT_MESSAGES = 5  # Trailing turns forwarded to the completion service

# ═══════════════════════════════════════════
# REQUEST LIMITS & MATCHING
# ═══════════════════════════════════════════

MAX_QUERY_LENGTH = 500
MAX_MATCHED_PRODUCTS = 6
MAX_ACTION_CARDS = 3

WELCOME_MESSAGE = "Hello! I'm your shopping assistant. How can I assist you today?"

# ═══════════════════════════════════════════
# APP SETTINGS
# ═══════════════════════════════════════════

PORT = int(os.getenv("PORT", 5009))
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_TO_FILE = os.getenv("LOG_TO_FILE", "true").lower() == "true"
