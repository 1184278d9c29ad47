import sys
from decimal import Decimal
from pathlib import Path

sys.path.append(str(Path(__file__).resolve().parents[1]))

from prodtrack.core.pricing import item_price, price_text, specification_price
from prodtrack.core.settings import EngineSettings, load_settings
from prodtrack.core.spec_parser import parse_items


def test_specification_price_sums_items():
    settings = EngineSettings()
    items = parse_items("[2x Post + 1x Carrousel 4p]")
    assert [item_price(item, settings) for item in items] == [Decimal("40"), Decimal("40"), Decimal("80")]
    assert specification_price(items, settings) == Decimal("160")


def test_malformed_specification_prices_at_zero():
    settings = EngineSettings()
    assert price_text("", settings) == Decimal("0")
    assert price_text("no brackets here", settings) == Decimal("0")


def test_flat_types_share_the_unit_price():
    settings = EngineSettings(unit_price=Decimal("55"))
    items = parse_items("[1x Post + 1x Miniature + 1x Logo]")
    assert {item_price(item, settings) for item in items} == {Decimal("55.00")}


def test_odd_page_carousel_keeps_fraction():
    settings = EngineSettings(unit_price=Decimal("45"))
    (item,) = parse_items("[1x Carrousel 3p]")
    assert item_price(item, settings) == Decimal("67.50")


def test_rounding_is_configurable():
    (item,) = parse_items("[1x Carrousel 3p]")
    whole_up = EngineSettings(unit_price=Decimal("45"), price_quantum=Decimal("1"), price_rounding="ROUND_HALF_UP")
    whole_down = EngineSettings(unit_price=Decimal("45"), price_quantum=Decimal("1"), price_rounding="ROUND_DOWN")
    assert item_price(item, whole_up) == Decimal("68")
    assert item_price(item, whole_down) == Decimal("67")


def test_settings_file_and_env_overrides(tmp_path, monkeypatch):
    config = tmp_path / "engine.yaml"
    config.write_text("unit_price: 30\ndefault_video_rate: 90\n", encoding="utf-8")
    monkeypatch.setenv("PRODTRACK_DEFAULT_VIDEO_RATE", "120")

    settings = load_settings(config, delivery_batch_seconds=60)

    assert settings.unit_price == Decimal("30")
    assert settings.default_video_rate == Decimal("120")
    assert settings.delivery_batch_seconds == 60
    assert price_text("[1x Post]", settings) == Decimal("30")


def test_bundled_defaults(monkeypatch):
    for name in ("PRODTRACK_UNIT_PRICE", "PRODTRACK_DEFAULT_VIDEO_RATE", "PRODTRACK_BATCH_SECONDS", "PRODTRACK_MAX_WORKERS", "PRODTRACK_MAX_ITEMS_PER_SEGMENT"):
        monkeypatch.delenv(name, raising=False)
    settings = load_settings(Path(__file__).resolve().parents[1] / "prodtrack" / "config" / "engine.yaml")
    assert settings.unit_price == Decimal("40")
    assert settings.default_video_rate == Decimal("100")
    assert settings.delivery_batch_seconds == 0
    assert settings.max_items_per_segment == 500
