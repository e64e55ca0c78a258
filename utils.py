"""Utility helpers for text normalization, token expansion and catalog fields."""

from __future__ import annotations

import json
import re
import unicodedata
from types import MappingProxyType
from typing import Dict, Iterable, Mapping, Optional, Sequence, Set, Tuple
from urllib.parse import unquote

SYNONYMS: Mapping[str, Tuple[str, ...]] = MappingProxyType(
    {
        "shirt": ("shirts", "tshirt", "t-shirt", "tee", "tees", "top", "tops"),
        "pant": ("pants", "trouser", "trousers"),
        "jean": ("jeans", "denim"),
        "shoe": ("shoes", "sneaker", "sneakers", "footwear", "boot", "boots"),
        "jacket": ("coat", "outerwear", "hoodie", "sweatshirt"),
        "men": ("mens", "men's", "male", "man", "guys"),
        "women": ("womens", "women's", "ladies", "female", "girl", "girls", "woman"),
        "jewelry": ("jewelery", "jewellery", "necklace", "ring", "earrings", "bracelet"),
        "jewelery": ("jewelry", "jewellery", "necklace", "ring", "earrings", "bracelet"),
        "electronic": ("electronics", "tech", "gadget", "device", "devices"),
    }
)

CATEGORY_LABELS: Mapping[str, str] = MappingProxyType(
    {
        "all": "All Categories",
        "electronics": "Electronics",
        "jewelery": "Jewelery",
        "men's clothing": "Men's Clothing",
        "women's clothing": "Women's Clothing",
    }
)

COLUMN_CANDIDATES: Dict[str, Sequence[str]] = {
    "id": ("id", "product_id", "sku", "uid"),
    "title": ("title", "name", "product_name", "product"),
    "description": ("description", "desc", "details", "content"),
    "price": ("price", "selling_price", "amount", "cost"),
    "rating": ("rating", "rate", "average_rating", "stars"),
    "rating_count": ("rating_count", "count", "reviews", "review_count", "votes"),
    "image": ("image", "image_url", "images", "thumbnail", "photo"),
    "category": ("category", "sub_category", "type", "department"),
}

_APOSTROPHES = re.compile(r"['‘’`]")
_SEPARATORS = re.compile(r"[&/|\\._-]+")
_NON_ALNUM = re.compile(r"[^a-z0-9\s]+")
_WHITESPACE = re.compile(r"\s+")


def strip_accents(text: str) -> str:
    """Remove accents for robust lexical matching."""
    normalized = unicodedata.normalize("NFD", text)
    return "".join(char for char in normalized if unicodedata.category(char) != "Mn")


def normalize(text: object = "") -> str:
    """Lowercase, deaccent and reduce ``text`` to ``[a-z0-9 ]`` words.

    Apostrophes vanish without leaving a gap (``Men's`` -> ``mens``) while
    separators such as ``&``, ``/``, ``_`` and ``-`` become spaces.
    """
    if text is None:
        return ""
    cleaned = strip_accents(str(text).lower())
    cleaned = _APOSTROPHES.sub("", cleaned)
    cleaned = _SEPARATORS.sub(" ", cleaned)
    cleaned = _NON_ALNUM.sub("", cleaned)
    return _WHITESPACE.sub(" ", cleaned).strip()


def expand_token(raw: object, synonyms: Mapping[str, Iterable[str]] = SYNONYMS) -> Set[str]:
    """Return every form a single query token should match.

    The plural heuristic only toggles a trailing ``s``; synonyms are looked
    up by the literal normalized token, never in reverse.
    """
    base = normalize(raw)
    variants = {base}

    if base.endswith("s"):
        variants.add(base[:-1])
    else:
        variants.add(base + "s")

    # Hyphens are already spaces after normalize(); keep both forms anyway.
    variants.add(base.replace("-", ""))
    variants.add(base.replace("-", " "))

    for synonym in synonyms.get(base, ()):
        variants.add(normalize(synonym))
    return {variant for variant in variants if variant}


def normalize_category(value: Optional[str]) -> str:
    """Map loose category input (URL params, labels) to a canonical slug.

    Unknown values fall back to ``"all"``. "women" is tested before "men"
    so that ``women's clothing`` never lands in the men's bucket.
    """
    if value is None:
        return "all"
    text = unquote(str(value)).replace("+", " ")
    text = text.replace("’", "'").replace("‘", "'")
    text = text.strip().lower()

    if not text or re.search(r"\ball\b", text):
        return "all"
    if re.search(r"\bwomen(?:'s)?\b", text) or re.search(r"\bwomens\b", text) or re.search(r"women[-\s]clothing", text):
        return "women's clothing"
    if re.search(r"\bmen(?:'s)?\b", text) or re.search(r"\bmens\b", text) or re.search(r"men[-\s]clothing", text):
        return "men's clothing"
    if re.search(r"\belectronic", text):
        return "electronics"
    if re.search(r"\bjewel+e?ry\b", text):
        return "jewelery"
    return "all"


def category_label(value: Optional[str]) -> str:
    """Pretty label for a category selector."""
    canonical = normalize_category(value)
    return CATEGORY_LABELS.get(canonical, canonical)


def parse_numeric(value: object) -> Optional[float]:
    """Parse numbers safely from messy CSV values (e.g. '2,309', '30%')."""
    if value is None:
        return None
    raw = str(value).strip()
    if not raw:
        return None
    cleaned = raw.replace(" ", "")
    cleaned = cleaned.replace("%", "")
    if "," in cleaned and "." not in cleaned:
        if cleaned.count(",") == 1 and len(cleaned.split(",")[1]) <= 2:
            cleaned = cleaned.replace(",", ".")
        else:
            cleaned = cleaned.replace(",", "")
    cleaned = re.sub(r"[^0-9.\-]", "", cleaned)
    if not cleaned or cleaned in {"-", "."}:
        return None
    try:
        return float(cleaned)
    except ValueError:
        return None


def _load_json_object(raw_value: Optional[str]) -> Dict[str, object]:
    if not raw_value:
        return {}
    try:
        payload = json.loads(raw_value)
    except json.JSONDecodeError:
        return {}
    if isinstance(payload, dict):
        return payload
    return {}


def parse_column_map(raw_value: Optional[str]) -> Dict[str, str]:
    """Load optional user column mapping from JSON string."""
    return {str(k): str(v) for k, v in _load_json_object(raw_value).items()}


def parse_synonym_map(raw_value: Optional[str]) -> Dict[str, Tuple[str, ...]]:
    """Load extra synonyms from JSON, e.g. ``{"hat": ["cap", "beanie"]}``.

    Keys are normalized so they line up with expanded tokens. A bare string
    value is treated as a single synonym.
    """
    table: Dict[str, Tuple[str, ...]] = {}
    for key, value in _load_json_object(raw_value).items():
        term = normalize(key)
        if not term:
            continue
        if isinstance(value, str):
            table[term] = (value,)
        elif isinstance(value, list):
            table[term] = tuple(str(item) for item in value)
    return table


def merge_synonyms(extra: Mapping[str, Iterable[str]]) -> Mapping[str, Tuple[str, ...]]:
    """Overlay ``extra`` on the default table and freeze the result."""
    merged = dict(SYNONYMS)
    for term, alternates in extra.items():
        merged[term] = tuple(alternates)
    return MappingProxyType(merged)


def detect_columns(headers: Iterable[str], override: Optional[Dict[str, str]] = None) -> Dict[str, Optional[str]]:
    """Heuristic column detection with optional explicit overrides."""
    available = [h.strip() for h in headers if h]
    normalized_to_original = {normalize(h).replace(" ", ""): h for h in available}
    mapping: Dict[str, Optional[str]] = {key: None for key in COLUMN_CANDIDATES}

    if override:
        for canonical, chosen in override.items():
            if chosen in available:
                mapping[canonical] = chosen

    for canonical, candidates in COLUMN_CANDIDATES.items():
        if mapping.get(canonical):
            continue
        for candidate in candidates:
            key = normalize(candidate).replace(" ", "")
            if key in normalized_to_original and normalized_to_original[key] not in mapping.values():
                mapping[canonical] = normalized_to_original[key]
                break
    return mapping
