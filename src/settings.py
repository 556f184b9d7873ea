"""Static configuration for affibot.

Domain allow-lists, resolver limits, storage and logging live in a single
JSON file for quick edits without touching Python. Secrets stay in the
environment (see client.py).
"""

import json
import os

from core.config import DEFAULT_MARKETPLACE_TLDS, DEFAULT_SHORTENER_DOMAINS

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.environ.get("AFFIBOT_CONFIG", os.path.join(PROJECT_ROOT, "config.json"))


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _domain_list(raw_values, default: tuple) -> tuple:
    """Lower-case and de-duplicate a configured domain list, keeping order."""

    if not raw_values:
        return default
    values = []
    for value in raw_values:
        value = str(value).strip().lower()
        if value and value not in values:
            values.append(value)
    return tuple(values)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Amazon marketplaces are listed by TLD ("com", "co.uk", ...); shorteners by
# full domain. Adding a shortener here needs no code change.
_amazon = _CONFIG.get("amazon", {})
MARKETPLACE_TLDS = _domain_list(_amazon.get("marketplaces"), DEFAULT_MARKETPLACE_TLDS)
SHORTENER_DOMAINS = _domain_list(_amazon.get("shorteners"), DEFAULT_SHORTENER_DOMAINS)

# Redirect resolution limits. The hop cap bounds the chain, the timeout
# bounds the total wait.
_resolver = _CONFIG.get("resolver", {})
RESOLVER_MAX_REDIRECTS = int(_resolver.get("max_redirects", 10))
RESOLVER_TIMEOUT_SECONDS = float(_resolver.get("timeout_seconds", 10))
RESOLVER_USER_AGENT = _resolver.get("user_agent", "Mozilla/5.0 (compatible; affibot/1.0)")

# Where to store the SQLite database with tags and pending /settag state.
_storage = _CONFIG.get("storage", {})
DB_PATH = _resolve_path(_storage.get("db_path", "affibot.db"))
# Pending /settag markers older than this are dropped at startup.
PENDING_TTL_MINUTES = int(_storage.get("pending_ttl_minutes", 60))

# Webhook server settings (serve mode only).
_webhook = _CONFIG.get("webhook", {})
WEBHOOK_HOST = _webhook.get("host", "0.0.0.0")
WEBHOOK_PORT = int(os.environ.get("PORT", _webhook.get("port", 8080)))
WEBHOOK_PATH = _webhook.get("path", "/")

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
