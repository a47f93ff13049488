"""
Recipe Link Validator.

LLM-proposed recipe URLs are often invented or point at the wrong dish.
`RecipeLinkValidator.sanitize` only ever returns a URL on an allow-listed
recipe site whose path corroborates the meal title, a URL recovered through
a live site search, or a search-page fallback on the primary site. Network
failures degrade to the fallback and are never raised.
"""

import logging
import re
import time
from collections import OrderedDict
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Mapping, Optional, Sequence
from urllib.parse import SplitResult, parse_qs, quote, unquote, urljoin, urlsplit, urlunsplit

import httpx

from ..core.text import normalize_label

logger = logging.getLogger("pantryplan.links")

ALLOWED_RECIPE_DOMAINS = (
    "www.marmiton.org",
    "marmiton.org",
    "cuisine.journaldesfemmes.fr",
    "www.cuisineaz.com",
    "cuisineaz.com",
    "www.bbcgoodfood.com",
    "www.allrecipes.com",
    "www.jamieoliver.com",
    "www.delish.com",
)

RECIPE_KEYWORD_STOP_WORDS = frozenset({
    "avec", "aux", "des", "les", "dans", "pour", "sur", "sans", "entre",
    "quelque", "quelques", "recette", "plat", "plats", "facile", "faciles",
    "rapide", "rapides",
})

# Cooking methods and connectives: a link may omit them and still be the dish.
OPTIONAL_RECIPE_KEYWORDS = frozenset({
    "saute", "rotis", "rotie", "roties", "gratin", "grillade", "grille",
    "grillee", "grillees", "poelee", "poelees", "poele", "poeles", "curry",
    "sauce", "au", "aux", "du", "de", "des",
})

KEYWORD_SYNONYMS = {
    "cochon": ("cochon", "porc", "porcine", "porcelet"),
    "porc": ("porc", "cochon"),
    "porcines": ("porc", "porcine", "cochon"),
    "porcinet": ("porcelet", "porc", "cochon"),
    "porcelet": ("porcelet", "porc", "cochon"),
    "boeuf": ("boeuf", "beouf"),
    "boeufs": ("boeuf",),
    "pommes": ("pomme", "pommes"),
    "pomme": ("pomme", "pommes"),
    "terre": ("terre",),
    "patate": ("patate", "patates", "pommes"),
    "patates": ("patate", "patates", "pommes"),
}

FALLBACK_SEARCH_URL = "https://www.marmiton.org/recettes/recherche.aspx?aqt={query}"
DEFAULT_FALLBACK_QUERY = "recette facile famille"

CACHE_TTL_SEC = 60 * 60
CACHE_MAX_ENTRIES = 200


def _encode_component(value: str) -> str:
    # Same escaping as JavaScript's encodeURIComponent
    return quote(value, safe="!~*'()")


# --- Keyword heuristics ---

@dataclass(frozen=True)
class KeywordRules:
    """Data-driven keyword tables; swap them to tune matching per cuisine."""
    stop_words: frozenset = RECIPE_KEYWORD_STOP_WORDS
    optional_keywords: frozenset = OPTIONAL_RECIPE_KEYWORDS
    synonyms: Mapping[str, Sequence[str]] = field(default_factory=lambda: dict(KEYWORD_SYNONYMS))
    min_length: int = 3

    def extract(self, value: Any) -> list[str]:
        normalized = normalize_label(value)
        if not normalized:
            return []
        return [
            word for word in normalized.split(" ")
            if len(word) >= self.min_length and word not in self.stop_words
        ]

    def matches(self, word: str, candidate_set: Iterable[str]) -> bool:
        candidates = set(candidate_set)
        return any(syn in candidates for syn in self.synonyms.get(word, (word,)))

    def has_essential_coverage(self, expected: Sequence[str], candidate: Sequence[str]) -> bool:
        if not expected:
            return True
        if not candidate:
            return False
        candidate_set = set(candidate)
        return all(
            word in self.optional_keywords or self.matches(word, candidate_set)
            for word in expected
        )


DEFAULT_KEYWORD_RULES = KeywordRules()


def extract_recipe_keywords(value: Any, rules: KeywordRules = DEFAULT_KEYWORD_RULES) -> list[str]:
    """"Sauté de cochon aux pommes de terre" -> ["saute", "cochon", "pommes", "terre"]"""
    return rules.extract(value)


def has_sufficient_keyword_overlap(expected: Sequence[str], candidate: Sequence[str]) -> bool:
    """All words when one or two are expected, else half (rounded up, at least 2)."""
    if not expected:
        return True
    if not candidate:
        return False
    candidate_set = set(candidate)
    matches = sum(1 for word in expected if word in candidate_set)
    if len(expected) <= 2:
        return matches >= len(expected)
    required = min(len(expected), max(2, -(-len(expected) // 2)))
    return matches >= required


def keyword_matches(word: str, candidate_set: Iterable[str], rules: KeywordRules = DEFAULT_KEYWORD_RULES) -> bool:
    return rules.matches(word, candidate_set)


def has_essential_keyword_coverage(
    expected: Sequence[str],
    candidate: Sequence[str],
    rules: KeywordRules = DEFAULT_KEYWORD_RULES,
) -> bool:
    return rules.has_essential_coverage(expected, candidate)


# --- URL helpers ---

def _split_http_url(value: Any) -> Optional[SplitResult]:
    if not value or not isinstance(value, str):
        return None
    try:
        parts = urlsplit(value.strip())
    except ValueError:
        return None
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        return None
    return parts


def _href(parts: SplitResult) -> str:
    return urlunsplit((
        parts.scheme.lower(), parts.netloc.lower(), parts.path or "/", parts.query, parts.fragment
    ))


def parse_allowed_recipe_url(value: Any, allowed_domains: Sequence[str] = ALLOWED_RECIPE_DOMAINS) -> Optional[str]:
    """The URL when it is on an allowed domain and not the site root."""
    parts = _split_http_url(value)
    if parts is None or parts.hostname not in allowed_domains:
        return None
    if not parts.path or parts.path == "/":
        return None
    return _href(parts)


def build_fallback_recipe_url(title: Optional[str] = "") -> str:
    return FALLBACK_SEARCH_URL.format(query=_encode_component(title or DEFAULT_FALLBACK_QUERY))


# --- Site search ---

@dataclass(frozen=True)
class SearchStrategy:
    base_url: str
    search_url: str  # "{query}" placeholder
    link_pattern: "re.Pattern[str]"

    def build_search_url(self, keywords: Sequence[str]) -> str:
        return self.search_url.format(query=_encode_component(" ".join(keywords)))


RECIPE_SEARCH_STRATEGIES = (
    SearchStrategy(
        base_url="https://www.cuisineaz.com",
        search_url="https://www.cuisineaz.com/recherche?q={query}",
        link_pattern=re.compile(r'href="(/recettes/[^"#?]+\.aspx)"', re.IGNORECASE),
    ),
    SearchStrategy(
        base_url="https://www.marmiton.org",
        search_url="https://www.marmiton.org/recettes/recherche.aspx?aqt={query}",
        link_pattern=re.compile(r'href="(/recettes/[^"#?]+)"', re.IGNORECASE),
    ),
)


def extract_recipe_links_from_html(html: Optional[str], strategy: SearchStrategy) -> list[str]:
    """Absolute recipe links in page order, deduplicated."""
    if not html:
        return []
    links = (urljoin(strategy.base_url, m.group(1)) for m in strategy.link_pattern.finditer(html))
    return list(dict.fromkeys(links))


# --- Cache ---

class TTLCache:
    """Size-bounded map with per-entry timestamps; the oldest entry is evicted first."""

    def __init__(
        self,
        max_entries: int = CACHE_MAX_ENTRIES,
        ttl_seconds: float = CACHE_TTL_SEC,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, tuple[float, Any]]" = OrderedDict()

    def get(self, key: str) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return None
        stored_at, value = entry
        if self._clock() - stored_at > self.ttl_seconds:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (self._clock(), value)
        self._entries.move_to_end(key)
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)

    def __len__(self) -> int:
        return len(self._entries)


# --- Validator ---

class RecipeLinkValidator:
    def __init__(
        self,
        *,
        cache: Optional[TTLCache] = None,
        rules: KeywordRules = DEFAULT_KEYWORD_RULES,
        allowed_domains: Sequence[str] = ALLOWED_RECIPE_DOMAINS,
        strategies: Sequence[SearchStrategy] = RECIPE_SEARCH_STRATEGIES,
        http_client: Optional[httpx.AsyncClient] = None,
        network_enabled: bool = True,
        redirect_timeout: float = 2.0,
        search_timeout: float = 3.0,
    ):
        self.cache = cache if cache is not None else TTLCache()
        self.rules = rules
        self.allowed_domains = tuple(allowed_domains)
        self.strategies = tuple(strategies)
        self.network_enabled = network_enabled
        self.redirect_timeout = redirect_timeout
        self.search_timeout = search_timeout
        self._http_client = http_client

    @classmethod
    def from_settings(cls, settings, **overrides) -> "RecipeLinkValidator":
        options = dict(
            cache=TTLCache(
                max_entries=settings.recipe_link_cache_max_entries,
                ttl_seconds=settings.recipe_link_cache_ttl_sec,
            ),
            network_enabled=settings.recipe_link_network_enabled,
            redirect_timeout=settings.recipe_redirect_timeout_sec,
            search_timeout=settings.recipe_search_timeout_sec,
        )
        options.update(overrides)
        return cls(**options)

    @asynccontextmanager
    async def _http(self):
        if self._http_client is not None:
            yield self._http_client
        else:
            async with httpx.AsyncClient() as client:
                yield client

    def _is_allowed(self, host: Optional[str]) -> bool:
        return bool(host) and host.lower() in self.allowed_domains

    def _matches_title(self, expected: Sequence[str], parts: SplitResult) -> bool:
        candidate = self.rules.extract(unquote(parts.path))
        return (
            has_sufficient_keyword_overlap(expected, candidate)
            and self.rules.has_essential_coverage(expected, candidate)
        )

    async def resolve_redirect(self, url: str) -> Optional[str]:
        """Target of a single HTTP redirect, or None (no redirect, or any network error)."""
        if not self.network_enabled:
            return None
        try:
            async with self._http() as client:
                response = await client.head(url, follow_redirects=False, timeout=self.redirect_timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Could not probe recipe redirect for %s: %s", url, e)
            return None
        if 300 <= response.status_code < 400:
            location = response.headers.get("location")
            if location:
                return urljoin(url, location)
        return None

    async def fetch_text(self, url: str) -> Optional[str]:
        if not self.network_enabled:
            return None
        try:
            async with self._http() as client:
                response = await client.get(url, follow_redirects=True, timeout=self.search_timeout)
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.warning("Could not fetch recipe search page %s: %s", url, e)
            return None
        if not response.is_success:
            return None
        return response.text

    async def find_recipe_from_keywords(self, keywords: Sequence[str]) -> Optional[str]:
        """First search hit on an allowed site whose path matches the keywords."""
        if not keywords or not self.network_enabled:
            return None

        for strategy in self.strategies:
            html = await self.fetch_text(strategy.build_search_url(keywords))
            for candidate in extract_recipe_links_from_html(html, strategy):
                parts = _split_http_url(candidate)
                if parts is None or not self._matches_title(keywords, parts):
                    continue
                redirected = await self.resolve_redirect(candidate)
                if redirected:
                    target = _split_http_url(redirected)
                    if target is None or not self._matches_title(keywords, target):
                        continue
                    if self._is_allowed(target.hostname):
                        return _href(target)
                    continue
                if self._is_allowed(parts.hostname):
                    return _href(parts)
        return None

    async def _recover(self, title: Optional[str], keywords: Sequence[str]) -> str:
        alternative = await self.find_recipe_from_keywords(keywords)
        return (
            alternative
            or parse_allowed_recipe_url(title, self.allowed_domains)
            or build_fallback_recipe_url(title)
        )

    async def sanitize(self, url: Any, title: Optional[str]) -> Optional[str]:
        """
        Return a trustworthy recipe URL for `title`, or None when `url` is not
        an http(s) URL at all.
        """
        if not isinstance(url, str):
            return None
        trimmed = url.strip()
        if not trimmed or not re.match(r"^https?://", trimmed, re.IGNORECASE):
            return None
        initial = _split_http_url(trimmed)
        if initial is None:
            return None

        cache_key = f"{trimmed}__{normalize_label(title)}"
        cached = self.cache.get(cache_key)
        if cached:
            return cached

        def remember(value: str) -> str:
            self.cache.set(cache_key, value)
            return value

        title_keywords = self.rules.extract(title)

        # Search page wrapping the real link in its query string
        if "/recherche" in initial.path:
            params = parse_qs(initial.query)
            target = (params.get("aqt") or params.get("q") or [None])[0]
            unwrapped = parse_allowed_recipe_url(target, self.allowed_domains)
            if unwrapped:
                return remember(unwrapped)

        if not self._is_allowed(initial.hostname):
            return remember(await self._recover(title, title_keywords))

        if not self._matches_title(title_keywords, initial):
            logger.info("Recipe link %s does not match title %r", trimmed, title)
            return remember(await self._recover(title, title_keywords))

        redirected = await self.resolve_redirect(trimmed)
        if redirected:
            target = _split_http_url(redirected)
            if (
                target is None
                or not self._is_allowed(target.hostname)
                or not self._matches_title(title_keywords, target)
            ):
                return remember(await self._recover(title, title_keywords))
            return remember(_href(target))

        if len(initial.path) < 2:
            return remember(await self._recover(title, title_keywords))

        return remember(trimmed)
