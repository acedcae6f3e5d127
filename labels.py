# labels.py
"""
TSPL commands for 50 x 25 mm product labels: name, price and barcode.
Text is printed with the printer's built-in font (no bitmap rendering).
"""
import math
import re

LABEL_WIDTH_MM = 50
LABEL_HEIGHT_MM = 25
GAP_MM = 3

PRESET_TO_PX = {
    "small": 10,
    "medium": 14,
    "large": 18,
    "xlarge": 22,
}

DEFAULT_SETTINGS = {
    "dpi": 203,
    "offset_x_mm": 0,
    "offset_y_mm": 0,
    "label_offset_y_mm": None,
    "barcode_offset_x_mm": 0,
    "barcode_offset_y_mm": 0,
    "module_width_dots": 2,
    "barcode_height_mm": 11,
    "name_preset": "medium",
    "name_custom_px": 14,
    "price_preset": "small",
    "price_custom_px": 12,
    "price_unit": "Rs.",
    "truncate": True,
    "truncate_len": 40,
    "speed": 3,
    "density": 12,
    "feed_after_label": True,
}


def round_half_up(x) -> int:
    return int(math.floor(x + 0.5))


def mm_to_dots(mm, dpi) -> int:
    return round_half_up(mm / 25.4 * dpi)


def safe_text(s) -> str:
    """TSPL strings are double-quoted; swap inner quotes for single ones."""
    return str(s or "").replace('"', "'")


def barcode_type(code: str) -> str:
    return "EAN13" if re.fullmatch(r"\d{13}", code) else "CODE128"


class LabelSettings:
    """Printer calibration for label printing."""
    def __init__(self, **overrides):
        unknown = set(overrides) - set(DEFAULT_SETTINGS)
        if unknown:
            raise ValueError(f"Unknown label settings: {', '.join(sorted(unknown))}")
        for key, value in {**DEFAULT_SETTINGS, **overrides}.items():
            setattr(self, key, value)

    @classmethod
    def from_config(cls, config: dict):
        return cls(**{k: v for k, v in config.get("labels", {}).items() if k in DEFAULT_SETTINGS})

    def font_px(self, preset, custom_px, fallback):
        if preset == "custom":
            return float(custom_px or PRESET_TO_PX[fallback])
        return PRESET_TO_PX.get(preset, PRESET_TO_PX[fallback])

    @staticmethod
    def multiplier(px) -> int:
        return max(1, min(40, round_half_up(px / 6)))

    def label_name(self, name: str) -> str:
        if self.truncate and len(name) > self.truncate_len:
            return name[:self.truncate_len - 3] + "..."
        return name


def build_label(product, copies: int = 1, settings: LabelSettings = None) -> str:
    """TSPL program for `copies` labels of one product."""
    if copies < 1:
        raise ValueError("copies must be at least 1")
    s = settings or LabelSettings()
    dpi = int(s.dpi)

    pw = mm_to_dots(LABEL_WIDTH_MM, dpi)
    ph = mm_to_dots(LABEL_HEIGHT_MM, dpi)

    label_offset_y = s.label_offset_y_mm if s.label_offset_y_mm is not None else s.offset_y_mm
    off_x = mm_to_dots(s.offset_x_mm or 0, dpi)
    off_y = mm_to_dots(label_offset_y or 0, dpi)
    bc_off_x = mm_to_dots(s.barcode_offset_x_mm or 0, dpi)
    bc_off_y = mm_to_dots(s.barcode_offset_y_mm or 0, dpi)

    name_y = mm_to_dots(2.6, dpi) + off_y
    price_y = name_y + mm_to_dots(6.0, dpi)
    barcode_y = price_y + mm_to_dots(6.5, dpi) + off_y + bc_off_y

    name = s.label_name(safe_text((product.name or "Product")[:240]))
    price = safe_text(f"{s.price_unit or 'Rs.'}{(product.price or 0):.2f}")
    code = str(product.primary_barcode or "000000000000")
    bc_type = barcode_type(code)

    module_w = max(1, round_half_up(s.module_width_dots or 2))
    barcode_w = max(60, len(code) * 11) * module_w
    barcode_x = max(4, round_half_up((pw - barcode_w) / 2) + off_x + bc_off_x)

    parts = [
        f"SIZE {LABEL_WIDTH_MM} mm,{LABEL_HEIGHT_MM} mm",
        f"GAP {GAP_MM} mm,0",
        f"SPEED {s.speed}",
        f"DENSITY {s.density}",
        "DIRECTION 1",
        "CLS",
    ]

    for text, y, px in (
        (name, name_y, s.font_px(s.name_preset, s.name_custom_px, "medium")),
        (price, price_y, s.font_px(s.price_preset, s.price_custom_px, "small")),
    ):
        mul = s.multiplier(px)
        approx_w = round_half_up(len(text) * (6 + mul))
        x = max(4, round_half_up((pw - approx_w) / 2) + off_x)
        parts.append(f'TEXT {x},{y},"0",0,{mul},{mul},"{text}"')

    sku = safe_text(product.sku)
    if sku:
        sku_y = round_half_up(ph - mm_to_dots(3.5, dpi) + off_y)
        parts.append(f'TEXT {6 + off_x},{sku_y},"0",90,1,1,"{sku}"')

    bc_height = mm_to_dots(s.barcode_height_mm or 11, dpi)
    wide = max(2, round_half_up(module_w * 2))
    parts.append(f'BARCODE {barcode_x},{barcode_y},"{bc_type}",{bc_height},1,0,{module_w},{wide},"{code}"')

    parts.append(f"PRINT {copies}")
    if s.feed_after_label:
        parts.append("FEED 1")
    return "\n".join(parts) + "\n"
