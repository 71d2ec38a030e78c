"""Cache Policy — URL-pattern dispatch table shared with the storefront service worker.

Invariants:
    - determine_strategy is total: every path maps to exactly one CacheStrategy
    - Rules are evaluated in table order; first match wins
    - Cache names are always prefixed with CACHE_VERSION so a version bump orphans old caches

Design Decisions:
    - The table is data (CACHE_RULES), served as JSON at /api/v1/cache-policy, so the
      service worker and the HTTP Cache-Control headers cannot drift apart
    - Payment and admin API responses are forced to no-store regardless of the table
"""

import re
from dataclasses import dataclass

from smokehouse.core.domain_types import CacheStrategy

CACHE_VERSION = "troy-bbq-v1.5.0"
NETWORK_TIMEOUT_SECONDS = 3

STATIC_CACHE = f"{CACHE_VERSION}-static"
DYNAMIC_CACHE = f"{CACHE_VERSION}-dynamic"
IMAGE_CACHE = f"{CACHE_VERSION}-images"
API_CACHE = f"{CACHE_VERSION}-api"

PRECACHE_RESOURCES = ("/", "/offline.html", "/manifest.json")

NO_STORE_PREFIXES = (
    "/api/v1/admin/",
    "/api/v1/checkout/",
    "/api/v1/catering/payments/",
)

_IMAGE_RE = re.compile(r"\.(jpg|jpeg|png|webp|avif|svg)$", re.IGNORECASE)
_ASSET_RE = re.compile(r"\.(css|js)$", re.IGNORECASE)

_SHELL_PAGES = ("/", "/menu", "/catering", "/about", "/contact")
_DYNAMIC_PAGES = ("/cart", "/checkout", "/track-order")


@dataclass(frozen=True)
class CacheRule:
    description: str
    strategy: CacheStrategy
    prefixes: tuple[str, ...] = ()
    exact: tuple[str, ...] = ()
    pattern: str | None = None
    destination: str | None = None

    def matches(self, path: str, destination: str | None) -> bool:
        if self.destination and destination == self.destination:
            return True
        if self.pattern and re.search(self.pattern, path, re.IGNORECASE):
            return True
        if any(path.startswith(p) for p in self.prefixes):
            return True
        return path in self.exact

    def to_dict(self) -> dict:
        return {
            "description": self.description,
            "strategy": self.strategy.value,
            "prefixes": list(self.prefixes),
            "exact": list(self.exact),
            "pattern": self.pattern,
            "destination": self.destination,
        }


CACHE_RULES: tuple[CacheRule, ...] = (
    CacheRule("API requests", CacheStrategy.NETWORK_FIRST, prefixes=("/api/",)),
    CacheRule("Admin pages", CacheStrategy.NETWORK_ONLY, prefixes=("/admin/",)),
    CacheRule(
        "Images", CacheStrategy.CACHE_FIRST,
        pattern=_IMAGE_RE.pattern, destination="image",
    ),
    CacheRule(
        "Static assets", CacheStrategy.CACHE_FIRST,
        prefixes=("/assets/", "/chunks/"), pattern=_ASSET_RE.pattern,
    ),
    CacheRule("Shell pages", CacheStrategy.STALE_WHILE_REVALIDATE, exact=_SHELL_PAGES),
    CacheRule("Dynamic pages", CacheStrategy.NETWORK_FIRST, exact=_DYNAMIC_PAGES),
)
DEFAULT_STRATEGY = CacheStrategy.STALE_WHILE_REVALIDATE

_CACHE_CONTROL = {
    CacheStrategy.NETWORK_ONLY: "no-store",
    CacheStrategy.NETWORK_FIRST: "no-cache",
    CacheStrategy.CACHE_FIRST: "public, max-age=31536000, immutable",
    CacheStrategy.STALE_WHILE_REVALIDATE: "public, max-age=0, stale-while-revalidate=86400",
}


def determine_strategy(path: str, destination: str | None = None) -> CacheStrategy:
    for rule in CACHE_RULES:
        if rule.matches(path, destination):
            return rule.strategy
    return DEFAULT_STRATEGY


def cache_name(strategy: CacheStrategy, path: str) -> str:
    """Which versioned cache bucket a response for `path` belongs in."""
    if path.startswith("/api/"):
        return API_CACHE
    if _IMAGE_RE.search(path):
        return IMAGE_CACHE
    if strategy == CacheStrategy.CACHE_FIRST:
        return STATIC_CACHE
    return DYNAMIC_CACHE


def cache_control_header(strategy: CacheStrategy) -> str:
    return _CACHE_CONTROL[strategy]


def is_no_store_path(path: str) -> bool:
    return path.startswith(NO_STORE_PREFIXES)


def policy_document() -> dict:
    """JSON body for GET /api/v1/cache-policy."""
    return {
        "version": CACHE_VERSION,
        "caches": {
            "static": STATIC_CACHE,
            "dynamic": DYNAMIC_CACHE,
            "images": IMAGE_CACHE,
            "api": API_CACHE,
        },
        "precache": list(PRECACHE_RESOURCES),
        "network_timeout_seconds": NETWORK_TIMEOUT_SECONDS,
        "rules": [rule.to_dict() for rule in CACHE_RULES],
        "default_strategy": DEFAULT_STRATEGY.value,
    }
