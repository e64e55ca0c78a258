from __future__ import annotations

import logging
import os
from typing import Any, Dict, List

from flask import Flask, jsonify, request

from search import SORT_KEYS, ProductSearchEngine
from utils import category_label, merge_synonyms, normalize_category, parse_column_map, parse_synonym_map

PRODUCTS_PATH = os.getenv("PRODUCTS_PATH", "products.json")
COLUMN_MAP_JSON = os.getenv("COLUMN_MAP_JSON", "")
COLUMN_OVERRIDE = parse_column_map(COLUMN_MAP_JSON)
SYNONYMS_JSON = os.getenv("SYNONYMS_JSON", "")
SUGGESTION_LIMIT = int(os.getenv("SUGGESTION_LIMIT", "12"))
CACHE_HAYSTACKS = os.getenv("CACHE_HAYSTACKS", "1").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

EXAMPLE_QUERIES = ["mens jacket", "t-shirt", "gold ring", "ssd drive"]

logger = logging.getLogger(__name__)

app = Flask(__name__)
engine: ProductSearchEngine | None = None
startup_error: str | None = None


@app.before_request
def lazy_load_engine() -> None:
    global engine, startup_error
    if engine is None and startup_error is None:
        try:
            engine = ProductSearchEngine.from_file(
                PRODUCTS_PATH,
                COLUMN_OVERRIDE,
                synonyms=merge_synonyms(parse_synonym_map(SYNONYMS_JSON)),
                suggestion_limit=SUGGESTION_LIMIT,
                cache_haystacks=CACHE_HAYSTACKS,
            )
        except Exception as exc:  # noqa: BLE001 - convert errors into an API message
            logger.exception("Failed to load catalog from %s", PRODUCTS_PATH)
            startup_error = str(exc)


def _categories() -> List[Dict[str, str]]:
    assert engine is not None
    return [{"value": cat, "label": category_label(cat)} for cat in engine.categories]


@app.route("/", methods=["GET"])
def index() -> Any:
    if startup_error:
        return jsonify({"error": startup_error}), 500

    assert engine is not None
    return jsonify(
        {
            "total_products": len(engine.products),
            "categories": _categories(),
            "examples": EXAMPLE_QUERIES,
            "sorts": list(SORT_KEYS),
        }
    )


@app.route("/categories", methods=["GET"])
def categories() -> Any:
    if startup_error:
        return jsonify({"error": startup_error}), 500
    return jsonify(_categories())


@app.route("/search", methods=["POST"])
def search() -> Any:
    if startup_error:
        return jsonify({"error": startup_error}), 500

    assert engine is not None
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    query = str(payload.get("query") or "").strip()
    sort = str(payload.get("sort") or "relevance")
    debug = bool(payload.get("debug", False))

    category = str(payload.get("category") or "all")
    if category not in engine.categories:
        category = normalize_category(category)

    try:
        tiers, diagnostics = engine.search(query, category=category, sort=sort, debug=debug)
    except ValueError as exc:
        return jsonify({"error": str(exc)}), 400

    def serialize(items: List[Dict[str, Any]], ranked: bool) -> List[Dict[str, Any]]:
        if not ranked:
            return [dict(item) for item in items]
        return [{**item, "score": engine.score(item, query)} for item in items]

    ranked = bool(query)
    return jsonify(
        {
            "primary": serialize(tiers["primary"], ranked),
            "global": serialize(tiers["global"], ranked),
            "suggestions": serialize(tiers["suggestions"], False),
            "diagnostics": diagnostics,
        }
    )


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL)
    app.run(host="0.0.0.0", port=8000, debug=True)
