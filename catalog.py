"""Load product catalogs from JSON dumps or CSV exports."""

from __future__ import annotations

import csv
import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Union

from utils import detect_columns, parse_numeric

logger = logging.getLogger(__name__)

Product = Dict[str, object]


def load_catalog(path: Union[str, Path], column_override: Optional[Dict[str, str]] = None) -> List[Product]:
    """Read product records from ``path``, picking the parser from the suffix."""
    catalog_path = Path(path)
    suffix = catalog_path.suffix.lower()
    if suffix == ".json":
        products = load_json_catalog(catalog_path)
    elif suffix == ".csv":
        products = load_csv_catalog(catalog_path, column_override)
    else:
        raise ValueError(f"Unsupported catalog format '{suffix or catalog_path.name}': expected .json or .csv.")

    if not products:
        logger.warning("Catalog %s contains no products", catalog_path)
    return products


def load_json_catalog(path: Union[str, Path]) -> List[Product]:
    """Accept either a bare list of products or ``{"products": [...]}``."""
    with open(path, "r", encoding="utf-8") as f:
        payload = json.load(f)

    if isinstance(payload, dict):
        payload = payload.get("products")
    if not isinstance(payload, list):
        raise ValueError("The JSON catalog must be a list of products or an object with a 'products' list.")

    products: List[Product] = []
    for idx, entry in enumerate(payload):
        if not isinstance(entry, dict):
            logger.warning("Skipping catalog entry %d: expected an object, got %s", idx, type(entry).__name__)
            continue
        products.append(entry)
    return products


def load_csv_catalog(path: Union[str, Path], column_override: Optional[Dict[str, str]] = None) -> List[Product]:
    with open(path, "r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        if not reader.fieldnames:
            raise ValueError("The CSV file has no header row.")

        columns = detect_columns(reader.fieldnames, column_override)
        if not columns.get("title"):
            raise ValueError(
                "Could not detect a title column. Set COLUMN_MAP_JSON, e.g. {\"title\": \"product_name\"}."
            )

        def cell(row: Dict[str, str], field: str) -> str:
            column = columns.get(field)
            return (row.get(column) or "").strip() if column else ""

        products: List[Product] = []
        skipped = 0
        for idx, row in enumerate(reader):
            title = cell(row, "title")
            if not title:
                skipped += 1
                continue

            product: Product = {
                "id": cell(row, "id") or idx,
                "title": title,
                "description": cell(row, "description"),
                "category": cell(row, "category"),
                "price": parse_numeric(cell(row, "price")),
                "image": cell(row, "image"),
            }
            rate = parse_numeric(cell(row, "rating"))
            count = parse_numeric(cell(row, "rating_count"))
            if rate is not None or count is not None:
                product["rating"] = {"rate": rate or 0.0, "count": int(count or 0)}
            products.append(product)

    if skipped:
        logger.warning("Skipped %d CSV rows without a title in %s", skipped, path)
    return products
