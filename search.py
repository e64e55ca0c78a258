"""Product search: whole-word relevance scoring with tiered fallbacks."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from catalog import Product, load_catalog
from utils import SYNONYMS, expand_token, normalize

logger = logging.getLogger(__name__)

SUGGESTION_LIMIT = 12
PHRASE_BONUS = 20
TITLE_WORD, DESC_WORD, CAT_WORD = 8, 5, 4
TITLE_PREFIX, DESC_PREFIX = 3, 2
MIN_PREFIX_LENGTH = 3

SORT_KEYS = ("relevance", "price-asc", "price-desc", "rating-desc", "title-asc")

Tiers = Dict[str, List[Product]]


@dataclass(frozen=True)
class Haystacks:
    title: str
    desc: str
    cat: str
    all: str


HaystackFn = Callable[[Product], Haystacks]


def pad(text: str) -> str:
    return f" {text} "


def contains_whole_word(haystack: str, word: str) -> bool:
    """``haystack`` must already be padded with boundary spaces."""
    return f" {word} " in haystack


def _starts_any_word(text: str, prefix: str) -> bool:
    return any(word.startswith(prefix) for word in text.split(" "))


def build_haystacks(product: Product) -> Haystacks:
    title = normalize(product.get("title", ""))
    desc = normalize(product.get("description", ""))
    cat = normalize(product.get("category", ""))
    return Haystacks(title=title, desc=desc, cat=cat, all=pad(f"{title} {desc} {cat}"))


def score_product(
    product: Product,
    query: Optional[str],
    synonyms: Mapping[str, Iterable[str]] = SYNONYMS,
    *,
    haystacks: HaystackFn = build_haystacks,
) -> int:
    """Score ``product`` against ``query``: phrase > title > description > category > prefix.

    Every expanded variant of a token contributes on its own, so a product
    hit by several synonyms of the same word scores higher.
    """
    phrase = normalize(query)
    if not phrase:
        return 0
    hay = haystacks(product)
    title, desc, cat = pad(hay.title), pad(hay.desc), pad(hay.cat)
    score = 0

    if contains_whole_word(hay.all, phrase):
        score += PHRASE_BONUS

    for token in phrase.split():
        for variant in expand_token(token, synonyms):
            if contains_whole_word(title, variant):
                score += TITLE_WORD
            if contains_whole_word(desc, variant):
                score += DESC_WORD
            if contains_whole_word(cat, variant):
                score += CAT_WORD
            if len(variant) >= MIN_PREFIX_LENGTH:
                if _starts_any_word(hay.title, variant):
                    score += TITLE_PREFIX
                if _starts_any_word(hay.desc, variant):
                    score += DESC_PREFIX
    return score


def _matches_all_tokens(hay: Haystacks, tokens: List[str], synonyms: Mapping[str, Iterable[str]]) -> bool:
    for token in tokens:
        if not any(
            contains_whole_word(hay.all, variant)
            or (
                len(variant) >= MIN_PREFIX_LENGTH
                and (
                    _starts_any_word(hay.title, variant)
                    or _starts_any_word(hay.desc, variant)
                    or _starts_any_word(hay.cat, variant)
                )
            )
            for variant in expand_token(token, synonyms)
        ):
            return False
    return True


def _category_gate(selected_category: Optional[str]) -> str:
    selected = selected_category or ""
    return "" if selected == "all" else selected


def filter_and_rank(
    products: Iterable[Product],
    query: Optional[str],
    selected_category: Optional[str] = "",
    synonyms: Mapping[str, Iterable[str]] = SYNONYMS,
    *,
    haystacks: HaystackFn = build_haystacks,
) -> List[Product]:
    """Keep products in the selected category that match every query token.

    Category tags are compared verbatim. Without a query the catalog order is
    kept; otherwise matches are sorted by descending score (ties stay put).
    """
    selected = _category_gate(selected_category)
    gated = [p for p in products if not selected or p.get("category") == selected]

    tokens = normalize(query).split()
    if not tokens:
        return gated

    matched = [p for p in gated if _matches_all_tokens(haystacks(p), tokens, synonyms)]
    scores = {id(p): score_product(p, query, synonyms, haystacks=haystacks) for p in matched}
    return sorted(matched, key=lambda p: scores[id(p)], reverse=True)


def _number(value: object) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return value


def rating_of(product: Product) -> Tuple[float, float]:
    """``(rate, count)`` with anything missing read as zero."""
    rating = product.get("rating")
    if not isinstance(rating, Mapping):
        return 0.0, 0.0
    return _number(rating.get("rate")) or 0, _number(rating.get("count")) or 0


def top_rated(products: Iterable[Product]) -> List[Product]:
    def key(product: Product) -> Tuple[float, float]:
        rate, count = rating_of(product)
        return -rate, -count

    return sorted(products, key=key)


def build_tiers(
    products: Iterable[Product],
    query: Optional[str],
    selected_category: Optional[str] = "",
    synonyms: Mapping[str, Iterable[str]] = SYNONYMS,
    *,
    suggestion_limit: int = SUGGESTION_LIMIT,
    haystacks: HaystackFn = build_haystacks,
) -> Tiers:
    """Build the three result tiers shown by the storefront.

    - ``primary``: matches inside the selected category (``"all"`` = none).
    - ``global``: matches across every category, only when primary is empty.
    - ``suggestions``: top-rated products absent from the tiers above.

    An empty query only produces ``primary`` (the plain browse listing).
    """
    products = list(products)
    q = (query or "").strip()
    selected = _category_gate(selected_category)

    primary = filter_and_rank(products, q, selected, synonyms, haystacks=haystacks)
    if not q:
        return {"primary": primary, "global": [], "suggestions": []}

    global_ = filter_and_rank(products, q, "", synonyms, haystacks=haystacks) if not primary else []

    shown = {p.get("id") for p in primary}
    shown.update(p.get("id") for p in global_)
    suggestions = top_rated(p for p in products if p.get("id") not in shown)[:suggestion_limit]

    return {"primary": primary, "global": global_, "suggestions": suggestions}


def _price_or_none(product: Product) -> Optional[float]:
    return _number(product.get("price"))


def sort_products(products: Iterable[Product], sort_key: str = "relevance") -> List[Product]:
    """Reorder a tier for display; ``relevance`` keeps the tier's own order."""
    out = list(products)
    if sort_key == "relevance":
        return out
    if sort_key in ("price-asc", "price-desc"):
        priced = [p for p in out if _price_or_none(p) is not None]
        unpriced = [p for p in out if _price_or_none(p) is None]
        priced.sort(key=_price_or_none, reverse=sort_key == "price-desc")
        return priced + unpriced
    if sort_key == "rating-desc":
        out.sort(key=lambda p: rating_of(p)[0], reverse=True)
        return out
    if sort_key == "title-asc":
        out.sort(key=lambda p: str(p.get("title") or "").casefold())
        return out
    raise ValueError(f"Unknown sort '{sort_key}'. Expected one of: {', '.join(SORT_KEYS)}.")


def _text_fields(product: Product) -> Tuple[object, ...]:
    return product.get("title"), product.get("description"), product.get("category")


class ProductSearchEngine:
    """Tiered search over an in-memory catalog snapshot.

    With ``cache_haystacks`` the normalized fields of every product are built
    once up front; results are identical to the uncached path.
    """

    def __init__(
        self,
        products: Iterable[Product] = (),
        *,
        synonyms: Optional[Mapping[str, Iterable[str]]] = None,
        suggestion_limit: int = SUGGESTION_LIMIT,
        cache_haystacks: bool = False,
    ) -> None:
        self.synonyms = SYNONYMS if synonyms is None else synonyms
        self.suggestion_limit = suggestion_limit
        self.cache_haystacks = cache_haystacks
        self.products: List[Product] = []
        self.categories: List[str] = []
        self.last_index_build_ms: float = 0.0
        self._haystack_cache: Dict[int, Tuple[Tuple[object, ...], Haystacks]] = {}
        self.set_products(products)

    @classmethod
    def from_file(
        cls,
        path: Union[str, Path],
        column_override: Optional[Dict[str, str]] = None,
        **kwargs,
    ) -> "ProductSearchEngine":
        engine = cls(load_catalog(path, column_override), **kwargs)
        logger.info(
            "Loaded %d products from %s in %.2f ms",
            len(engine.products),
            path,
            engine.last_index_build_ms,
        )
        return engine

    def set_products(self, products: Iterable[Product]) -> None:
        start = time.perf_counter()
        self.products = list(products)
        # Only string tags can be selected; the category gate compares raw values.
        self.categories = sorted(
            {p["category"] for p in self.products if isinstance(p.get("category"), str) and p["category"]}
        )
        self._haystack_cache = {}
        if self.cache_haystacks:
            self._haystack_cache = {id(p): (_text_fields(p), build_haystacks(p)) for p in self.products}
        self.last_index_build_ms = (time.perf_counter() - start) * 1000

    def haystacks(self, product: Product) -> Haystacks:
        """Cached haystacks, rebuilt when the record's text fields were edited in place."""
        entry = self._haystack_cache.get(id(product))
        if entry is None:
            return build_haystacks(product)
        fields, cached = entry
        current = _text_fields(product)
        if current != fields:
            cached = build_haystacks(product)
            self._haystack_cache[id(product)] = (current, cached)
        return cached

    def score(self, product: Product, query: Optional[str]) -> int:
        return score_product(product, query, self.synonyms, haystacks=self.haystacks)

    def search(
        self,
        query: Optional[str],
        *,
        category: Optional[str] = None,
        sort: str = "relevance",
        debug: bool = False,
    ) -> Tuple[Tiers, Dict[str, object]]:
        if sort not in SORT_KEYS:
            raise ValueError(f"Unknown sort '{sort}'. Expected one of: {', '.join(SORT_KEYS)}.")

        start = time.perf_counter()
        tiers = build_tiers(
            self.products,
            query,
            category,
            self.synonyms,
            suggestion_limit=self.suggestion_limit,
            haystacks=self.haystacks,
        )
        diagnostics: Dict[str, object] = {
            "query": (query or "").strip(),
            "query_tokens": normalize(query).split(),
            "category": category or "all",
            "total_products": len(self.products),
            "index_build_ms": round(self.last_index_build_ms, 2),
            "counts": {name: len(items) for name, items in tiers.items()},
        }
        if debug:
            diagnostics["top_scores"] = [
                {"id": p.get("id"), "title": p.get("title"), "score": self.score(p, query)}
                for p in (tiers["primary"] or tiers["global"])[:5]
            ]

        tiers = {name: sort_products(items, sort) for name, items in tiers.items()}
        diagnostics["query_time_ms"] = round((time.perf_counter() - start) * 1000, 2)
        logger.debug(
            "search query=%r category=%r counts=%s in %.2f ms",
            diagnostics["query"],
            diagnostics["category"],
            diagnostics["counts"],
            diagnostics["query_time_ms"],
        )
        return tiers, diagnostics
