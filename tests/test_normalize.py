from datetime import datetime, timezone

from rentradar.domain.errors import ParseError
from rentradar.domain.types import RawRecord
from rentradar.services.normalize import absolute_url, normalize, normalize_location, property_id


def test_derived_prices_are_always_recomputed(make_source):
    source = make_source()
    raw = RawRecord(
        source_id=source.id,
        title="Apartamento en Rosales",
        price="$3.000.000",
        admin_fee="Administración $450.000",
        area="90,5 m²",
        rooms="3 habitaciones",
        location="Cra 4 # 70-10, Rosales, Bogotá",
        url="/inmueble/rosales-1",
    )
    p = normalize(raw, source)

    assert p.price == 3_000_000
    assert p.admin_fee == 450_000
    assert p.total_price == 3_450_000
    assert p.area == 90.5
    assert p.rooms == 3
    assert p.price_per_m2 == round(3_000_000 / 90.5)
    assert p.url == "https://www.demo.example/inmueble/rosales-1"
    assert p.source == "Demo"
    assert p.source_id == "demo"


def test_unknown_fields_default_to_zero(make_source):
    source = make_source()
    p = normalize(RawRecord(source_id=source.id, title="Apartaestudio", price="$1.200.000"), source)

    assert p.area == 0.0
    assert p.rooms == 0
    assert p.admin_fee == 0
    assert p.price_per_m2 == 0
    assert p.bathrooms is None
    assert p.stratum is None


def test_nothing_numeric_is_a_parse_error(make_source):
    source = make_source()
    res = normalize(RawRecord(source_id=source.id, title="Consulte precio", price="a convenir"), source)
    assert isinstance(res, ParseError)
    assert res.source_id == source.id


def test_title_fallback_and_cap(make_source):
    source = make_source()
    p = normalize(RawRecord(source_id=source.id, price=2_000_000, rooms=2, location="Calle 1, Suba"), source)
    assert p.title == "Inmueble en Suba"

    p2 = normalize(RawRecord(source_id=source.id, title="x" * 500, price=2_000_000, rooms=2), source)
    assert len(p2.title) == 200


def test_out_of_range_stratum_is_dropped(make_source):
    source = make_source()
    p = normalize(RawRecord(source_id=source.id, title="Casa grande", price=5_000_000, rooms=4, stratum="9"), source)
    assert p.stratum is None


def test_parking_sets_metadata_flag(make_source):
    source = make_source()
    p = normalize(RawRecord(source_id=source.id, title="Apto", price=2_000_000, rooms=2, parking="1 garaje"), source)
    assert p.parking == 1
    assert p.metadata["parking"] is True


def test_location_string_split():
    loc = normalize_location("Calle 140 # 12-30, Cedritos, Bogotá", default_city="Bogotá")
    assert loc.address == "Calle 140 # 12-30, Cedritos, Bogotá"
    assert loc.neighborhood == "Cedritos"
    assert loc.city == "Bogotá"

    single = normalize_location("Chapinero")
    assert single.neighborhood == "Chapinero"

    empty = normalize_location(None)
    assert empty.address == ""
    assert empty.neighborhood is None


def test_location_dict_passes_through():
    loc = normalize_location(
        {"address": "Cl 10 # 43", "neighborhood": "El Poblado", "city": "Medellín", "coordinates": {"lat": 6.2, "lng": -75.5}}
    )
    assert loc.city == "Medellín"
    assert loc.neighborhood == "El Poblado"
    assert loc.coordinates is not None
    assert loc.coordinates.lat == 6.2


def test_id_is_stable_across_runs(make_source):
    source = make_source()
    raw = RawRecord(source_id=source.id, title="Apto Chicó", price=2_800_000, rooms=2, url="https://www.demo.example/i/9/")
    first = normalize(raw, source, scraped_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
    second = normalize(raw, source, scraped_at=datetime(2026, 3, 1, tzinfo=timezone.utc))

    assert first.id == second.id
    assert first.id.startswith("demo_")
    assert first.first_seen_at != second.first_seen_at

    # www and trailing slash do not change identity
    assert property_id("demo", "https://demo.example/i/9", "", 0) == property_id("demo", "https://www.demo.example/i/9/", "", 0)


def test_absolute_url():
    base = "https://www.demo.example"
    assert absolute_url("/a/1", base) == "https://www.demo.example/a/1"
    assert absolute_url("a/1", base) == "https://www.demo.example/a/1"
    assert absolute_url("//cdn.example/x.jpg", base) == "https://cdn.example/x.jpg"
    assert absolute_url("https://other.example/z", base) == "https://other.example/z"
    assert absolute_url(None, base) == ""
