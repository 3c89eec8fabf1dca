# tests/test_extraction.py
import pytest

from rentradar.connectors.extraction import ExtractionPipeline
from rentradar.domain.parsing import coerce_amount, first_number
from rentradar.services.normalize import normalize

PAGE_URL = "https://www.demo.example/arriendo/apartamento/bogota"

CARD_PAGE = """
<html><body>
  <div class="card">
    <h3>Apartamento en Chicó</h3>
    <span class="price">$2.500.000</span>
    <span class="area">80 m²</span>
    <span class="rooms">3 hab</span>
    <span class="location">Calle 93, Chicó</span>
    <img src="/img/1.jpg">
    <a href="/inmueble/123">ver</a>
  </div>
  <div class="card">
    <h3>Solo un título</h3>
  </div>
  <a class="next" href="?page=2">Siguiente</a>
</body></html>
"""


def test_markup_card_end_to_end(make_source):
    source = make_source()
    page = ExtractionPipeline(source).extract(CARD_PAGE, PAGE_URL)

    assert len(page.records) == 1
    assert page.discarded == 1
    assert page.has_next is True

    rec = page.records[0]
    assert rec.origin == "markup"
    assert rec.title == "Apartamento en Chicó"
    assert rec.url == "https://www.demo.example/inmueble/123"
    assert rec.images == ["https://www.demo.example/img/1.jpg"]

    prop = normalize(rec, source)
    assert prop.price == 2_500_000
    assert prop.area == 80.0
    assert prop.rooms == 3
    assert prop.total_price == 2_500_000
    assert prop.price_per_m2 == 31_250
    assert prop.location.neighborhood == "Chicó"


def test_regex_fallback_fills_missing_fields(make_source):
    html = """
    <div class="card">
      <a href="/x/apartamento-2-habitaciones"><b>Apartamento amoblado</b></a>
      <div>Precio $1.900.000 · 65 m2 · 2 habitaciones · 2 baños · Estrato 4</div>
    </div>
    """
    page = ExtractionPipeline(make_source()).extract(html, PAGE_URL)

    assert len(page.records) == 1
    rec = page.records[0]
    assert coerce_amount(rec.price) == 1_900_000
    assert first_number(rec.area) == 65.0
    assert rec.rooms == "2"
    assert rec.bathrooms == "2"
    assert rec.stratum == "4"
    assert rec.metadata.get("furnished") is True
    assert page.has_next is False


def test_structured_data_bypasses_markup(make_source):
    html = """
    <html><head>
    <script type="application/ld+json">
      {"itemListElement": [
        {"id": "a1", "price": 3000000, "name": "Apartamento con terraza", "area": 70, "rooms": 2, "url": "/a1"},
        {"id": "a2", "price": 4100000, "name": "Casa en Suba", "area": 120, "rooms": 4, "url": "/a2"}
      ]}
    </script>
    </head><body>
      <div class="card"><h3>Markup card</h3><span class="price">$9.999.999</span><span class="rooms">9 hab</span></div>
    </body></html>
    """
    page = ExtractionPipeline(make_source()).extract(html, PAGE_URL)

    assert [r.title for r in page.records] == ["Apartamento con terraza", "Casa en Suba"]
    assert page.structured == 2
    assert page.markup == 0
    assert all(r.origin == "structured" for r in page.records)
    assert page.records[0].url == "https://www.demo.example/a1"


def test_embedded_state_assignment(make_source):
    html = """
    <script>
      window.__INITIAL_STATE__ = {"listings": [
        {"propertyId": "x9", "rentPrice": 1800000, "areaPrivate": 55, "numRooms": 2, "neighborhood": "Cedritos"}
      ]};
    </script>
    """
    source = make_source()
    page = ExtractionPipeline(source).extract(html, PAGE_URL)

    assert len(page.records) == 1
    rec = page.records[0]
    assert rec.title == "Inmueble en arriendo en Cedritos"
    prop = normalize(rec, source)
    assert prop.price == 1_800_000
    assert prop.area == 55.0
    assert prop.location.neighborhood == "Cedritos"


def test_disabled_next_link_is_not_a_next_page(make_source):
    html = """
    <div class="card"><h3>Apartamento norte</h3><span class="price">$2.000.000</span><span class="area">60 m2</span></div>
    <a class="next disabled" href="#">Siguiente</a>
    """
    page = ExtractionPipeline(make_source()).extract(html, PAGE_URL)
    assert len(page.records) == 1
    assert page.has_next is False


def test_bad_selector_is_dropped_not_fatal(make_source):
    source = make_source(extraction={"card_selectors": ["div[", ".card"]})
    pipeline = ExtractionPipeline(source)
    assert pipeline.card_selectors == (".card",)

    page = pipeline.extract(CARD_PAGE, PAGE_URL)
    assert len(page.records) == 1


def test_thin_structured_items_fall_through_to_cards(make_source):
    html = """
    <html><head>
    <script type="application/ld+json">
      [{"@id": "a1", "price": 2500000, "name": "Apartamento en Cedritos"},
       {"@id": "a2", "price": 2700000, "name": "Apartamento en Usaquén"}]
    </script>
    </head><body>
      <div class="card"><a href="/inmueble/a1">Apartamento en Cedritos</a><p>$2.500.000 / 80 m² / 3 hab</p></div>
      <div class="card"><a href="/inmueble/a2">Apartamento en Usaquén</a><p>$2.700.000 / 85 m² / 3 hab</p></div>
    </body></html>
    """
    page = ExtractionPipeline(make_source()).extract(html, PAGE_URL)

    assert len(page.records) == 2
    assert page.markup == 2
    assert page.structured == 0
    assert [r.url for r in page.records] == [
        "https://www.demo.example/inmueble/a1",
        "https://www.demo.example/inmueble/a2",
    ]
    assert all(r.area and r.rooms for r in page.records)


def test_thin_card_level_structured_uses_cascade(make_source):
    html = """
    <div class="card">
      <script type="application/ld+json">{"sku": "z1", "price": 1900000}</script>
      <h3>Apartaestudio en Chapinero</h3>
      <span class="price">$1.900.000</span><span class="area">40 m2</span>
    </div>
    """
    page = ExtractionPipeline(make_source()).extract(html, PAGE_URL)

    assert len(page.records) == 1
    assert page.records[0].origin == "markup"
    assert page.records[0].title == "Apartaestudio en Chapinero"


def test_same_item_twice_on_a_page_is_emitted_once(make_source):
    card = '<div class="card"><h3>Apartamento repetido</h3><span class="price">$2.000.000</span><span class="rooms">2 hab</span><a href="/r/1">x</a></div>'
    page = ExtractionPipeline(make_source()).extract(card + card, PAGE_URL)
    assert len(page.records) == 1


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("$2.500.000", 2_500_000),
        ("2,500,000 COP", 2_500_000),
        ("$ 1.200.000,00", 1_200_000),
        ("$2.500.000 $3.100.000", 2_500_000),
        ("25000003100000", None),
        (1_500_000, 1_500_000),
        (-5, None),
        ("sin precio", None),
        (None, None),
    ],
)
def test_coerce_amount(raw, expected):
    assert coerce_amount(raw) == expected


def test_first_number_accepts_decimal_comma():
    assert first_number("80,5 m²") == 80.5
    assert first_number("sin datos") is None
