import pytest

from utils import (
    SYNONYMS,
    category_label,
    detect_columns,
    expand_token,
    merge_synonyms,
    normalize,
    normalize_category,
    parse_numeric,
    parse_synonym_map,
)


def test_normalize_removes_accents_apostrophes_and_separators() -> None:
    assert normalize("Men's Shoes") == "mens shoes"
    assert normalize("Men’s Shoes") == "mens shoes"
    assert normalize("café-bar_baz") == "cafe bar baz"
    assert normalize("  Rock & Roll / Jazz|Blues\\Soul.mp3  ") == "rock roll jazz blues soul mp3"
    assert normalize("50% OFF!!") == "50 off"


def test_normalize_handles_missing_and_non_string_input() -> None:
    assert normalize(None) == ""
    assert normalize() == ""
    assert normalize(42) == "42"


@pytest.mark.parametrize(
    "text",
    ["Men's Shoes", "café-bar_baz", "  ÉTÉ -- été  ", "T-Shirt (XL) ’90s", "", "a!b?c", "\tTabs\nand  lines"],
)
def test_normalize_is_idempotent(text: str) -> None:
    once = normalize(text)
    assert normalize(once) == once


def test_expand_token_adds_plural_and_synonyms() -> None:
    variants = expand_token("shirt")
    assert {"shirt", "shirts", "tee", "top", "tshirt", "t shirt"} <= variants
    assert "pant" not in variants


def test_expand_token_strips_trailing_s() -> None:
    assert expand_token("Boots") == {"boots", "boot"}


def test_expand_token_synonym_lookup_is_one_directional() -> None:
    assert "jewelery" in expand_token("jewelry")
    assert "jewelry" in expand_token("jewelery")
    assert "shirt" not in expand_token("tee")


def test_expand_token_accepts_custom_table() -> None:
    assert expand_token("hat", {"hat": ["Beanie", "cap"]}) == {"hat", "hats", "beanie", "cap"}
    assert "tee" not in expand_token("shirt", {})


def test_synonym_table_is_read_only() -> None:
    with pytest.raises(TypeError):
        SYNONYMS["hat"] = ("cap",)  # type: ignore[index]


def test_parse_synonym_map_and_merge() -> None:
    extra = parse_synonym_map('{"Hat": ["cap", "beanie"], "bag": "tote", "bad": 3}')
    assert extra == {"hat": ("cap", "beanie"), "bag": ("tote",)}
    assert parse_synonym_map("not json") == {}

    merged = merge_synonyms(extra)
    assert merged["hat"] == ("cap", "beanie")
    assert merged["shirt"] == SYNONYMS["shirt"]
    assert "hat" not in SYNONYMS


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        (None, "all"),
        ("", "all"),
        ("All Categories", "all"),
        ("Men’s clothing", "men's clothing"),
        ("men%27s+clothing", "men's clothing"),
        ("mens", "men's clothing"),
        ("women's clothing", "women's clothing"),
        ("Womens", "women's clothing"),
        ("electronic gadgets", "electronics"),
        ("Jewelry", "jewelery"),
        ("jewellery", "jewelery"),
        ("garden", "all"),
    ],
)
def test_normalize_category(raw, expected) -> None:
    assert normalize_category(raw) == expected


def test_category_label() -> None:
    assert category_label("men's clothing") == "Men's Clothing"
    assert category_label("jewelry") == "Jewelery"
    assert category_label("unknown") == "All Categories"


def test_parse_numeric_handles_messy_values() -> None:
    assert parse_numeric("2,309") == 2309.0
    assert parse_numeric("19,90") == 19.9
    assert parse_numeric("30%") == 30.0
    assert parse_numeric("") is None
    assert parse_numeric("n/a") is None


def test_detect_columns_with_aliases_and_override() -> None:
    columns = detect_columns(["Product Name", "Price", "Rate", "Count", "Department", "SKU"])
    assert columns["title"] == "Product Name"
    assert columns["rating"] == "Rate"
    assert columns["rating_count"] == "Count"
    assert columns["category"] == "Department"
    assert columns["id"] == "SKU"
    assert columns["description"] is None

    overridden = detect_columns(["label", "Price"], {"title": "label"})
    assert overridden["title"] == "label"
