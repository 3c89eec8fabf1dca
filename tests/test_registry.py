import json

import pytest

from rentradar.connectors.registry import SourceRegistry, build_source
from rentradar.domain.types import PaginationStyle


def test_builtin_catalog_loads():
    registry = SourceRegistry.load()

    ids = registry.active_ids()
    assert ids[:3] == ["fincaraiz", "metrocuadrado", "trovit"]
    assert "pads" not in ids
    assert "pads" in registry
    assert len(registry) == 9

    ml = registry.get("mercadolibre")
    assert ml is not None
    assert ml.pagination.style == PaginationStyle.offset
    assert registry.get("arriendo").pagination.style == PaginationStyle.none


def test_site_specific_candidates_come_first():
    source = build_source(
        {
            "id": "x",
            "base_url": "https://x.example/",
            "search_url_template": "{base}/buscar",
            "extraction": {"field_selectors": {"price": [".valor", ".price"]}},
        }
    )
    price = source.extraction.field_selectors["price"]
    assert price[0] == ".valor"
    assert price.count(".price") == 1
    # generic fields are always present
    assert "title" in source.extraction.field_selectors
    assert "area" in source.extraction.regex_patterns
    assert source.base_url == "https://x.example"
    assert source.name == "x"


def test_missing_required_field_rejected():
    with pytest.raises(ValueError):
        build_source({"id": "x", "search_url_template": "{base}"})


def test_duplicate_ids_rejected(make_source):
    with pytest.raises(ValueError):
        SourceRegistry([make_source("a"), make_source("a")])


def test_sources_file_overrides_catalog(tmp_path):
    path = tmp_path / "sources.json"
    path.write_text(
        json.dumps(
            {
                "sources": [
                    {"id": "late", "base_url": "https://late.example", "search_url_template": "{base}", "priority": 5},
                    {"id": "early", "base_url": "https://early.example", "search_url_template": "{base}", "priority": 1},
                    {"id": "off", "base_url": "https://off.example", "search_url_template": "{base}", "is_active": False},
                ]
            }
        ),
        encoding="utf-8",
    )
    registry = SourceRegistry.load(path)

    assert registry.active_ids() == ["early", "late"]
    assert registry.priority_of("late") == 5
    assert registry.priority_of("nope") == 10_000
