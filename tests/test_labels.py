import pytest

from conftest import make_product
from labels import LabelSettings, barcode_type, build_label, mm_to_dots, safe_text


def label_lines(product, copies=1, settings=None):
    return build_label(product, copies, settings).splitlines()


def test_mm_to_dots():
    assert mm_to_dots(50, 203) == 400
    assert mm_to_dots(25, 203) == 200
    assert mm_to_dots(25.4, 300) == 300


def test_barcode_type():
    assert barcode_type("8901234567890") == "EAN13"
    assert barcode_type("890123456789") == "CODE128"
    assert barcode_type("ABC123") == "CODE128"


def test_safe_text_replaces_double_quotes():
    assert safe_text('12" Pizza') == "12' Pizza"
    assert safe_text(None) == ""


def test_header_commands():
    lines = label_lines(make_product(name="Tea", price=10, barcode="ABC123"))
    assert lines[:6] == ["SIZE 50 mm,25 mm", "GAP 3 mm,0", "SPEED 3", "DENSITY 12",
                         "DIRECTION 1", "CLS"]
    assert lines[-2:] == ["PRINT 1", "FEED 1"]


def test_text_and_barcode_positions():
    lines = label_lines(make_product(name="Tea", price=10, barcode="ABC123"))
    assert 'TEXT 188,21,"0",0,2,2,"Tea"' in lines
    assert 'TEXT 168,69,"0",0,2,2,"Rs.10.00"' in lines
    assert 'BARCODE 134,121,"CODE128",88,1,0,2,4,"ABC123"' in lines


def test_ean13_barcode():
    lines = label_lines(make_product(name="Tea", price=10, barcode="8901234567890"))
    assert 'BARCODE 57,121,"EAN13",88,1,0,2,4,"8901234567890"' in lines


def test_sku_printed_rotated():
    lines = label_lines(make_product(name="Tea", price=10, sku="TEA-01"))
    assert 'TEXT 6,172,"0",90,1,1,"TEA-01"' in lines


def test_sku_used_as_barcode_fallback():
    lines = label_lines(make_product(name="Tea", price=10, sku="TEA-01"))
    assert any(ln.startswith("BARCODE") and ln.endswith('"TEA-01"') for ln in lines)


def test_copies_and_no_feed():
    settings = LabelSettings(feed_after_label=False)
    lines = label_lines(make_product(barcode="1"), copies=3, settings=settings)
    assert lines[-1] == "PRINT 3"


def test_copies_must_be_positive():
    with pytest.raises(ValueError):
        build_label(make_product(), copies=0)


def test_long_name_truncated():
    settings = LabelSettings(truncate_len=10)
    lines = label_lines(make_product(name="Handloom Cotton Saree"), settings=settings)
    assert any('"Handloo..."' in ln for ln in lines)


def test_offsets_move_text():
    plain = label_lines(make_product(name="Tea", price=10, barcode="ABC123"))
    shifted = label_lines(make_product(name="Tea", price=10, barcode="ABC123"),
                          settings=LabelSettings(offset_x_mm=1, offset_y_mm=1))
    assert 'TEXT 188,21,"0",0,2,2,"Tea"' in plain
    assert 'TEXT 196,29,"0",0,2,2,"Tea"' in shifted


class TestLabelSettings:
    def test_unknown_setting(self):
        with pytest.raises(ValueError):
            LabelSettings(colour="red")

    def test_from_config_ignores_unknown_keys(self):
        settings = LabelSettings.from_config({"labels": {"dpi": 300, "theme": "x"}})
        assert settings.dpi == 300

    def test_font_size(self):
        s = LabelSettings()
        assert s.font_px("large", None, "medium") == 18
        assert s.font_px("custom", 30, "medium") == 30.0
        assert s.font_px("custom", None, "small") == 10.0
        assert s.font_px("bogus", None, "small") == 10

    def test_multiplier_bounds(self):
        assert LabelSettings.multiplier(1) == 1
        assert LabelSettings.multiplier(14) == 2
        assert LabelSettings.multiplier(1000) == 40
