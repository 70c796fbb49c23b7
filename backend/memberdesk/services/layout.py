"""Certificate and ID card layouts: defaults, merging and CSS style maps.

A layout maps each element of a closed set to a position on a fixed canvas
(800x1131 px certificate, 396x280 px ID card). Saved layouts are merged
element by element over the defaults, so a loaded layout always has every
element and never carries unknown ones.
"""

from __future__ import annotations

import copy
from typing import Any, Optional

CERTIFICATE = "certificate"
ID_CARD = "id-card"
LAYOUT_KINDS = (CERTIFICATE, ID_CARD)

SETTINGS_COLLECTION = "settings"
LAYOUT_DOCUMENTS = {
    CERTIFICATE: "certificateLayout",
    ID_CARD: "idCardLayout",
}

CERTIFICATE_CANVAS = (800, 1131)
ID_CARD_CANVAS = (396, 280)

SELECTED_OUTLINE = "2px dashed #007bff"

DEFAULT_CERTIFICATE_LAYOUT: dict[str, dict[str, Any]] = {
    "photo": {"top": 223, "left": 530},
    "name": {"top": 457, "left": 154},
    "garage": {"top": 508, "left": 122},
    "address": {"top": 564, "left": 80, "line_spacing": 32},
    "meta": {"top": 390, "left": 132},
    "issuedDate": {"top": 765, "left": 240},
    "expiryDate": {"top": 765, "left": 468},
}

DEFAULT_ID_CARD_LAYOUT: dict[str, dict[str, Any]] = {
    "photo": {"top": 92, "left": 24, "width": 90, "height": 112},
    "name": {
        "top": 92, "left": 126, "font_size": 15, "font_weight": "bold", "color": "#0D47A1",
        "width": 250, "text_align": "left", "text_transform": "uppercase",
    },
    "shopName": {
        "top": 115, "left": 126, "font_size": 10, "font_weight": "bold", "color": "#000000",
        "width": 250, "text_align": "left", "text_transform": "uppercase",
    },
    "address": {
        "top": 130, "left": 126, "font_size": 10, "font_weight": "normal", "color": "#333333",
        "width": 250, "text_align": "left",
    },
    "detailsLine1": {"top": 216, "left": 25, "font_size": 11, "font_weight": "normal", "color": "#000000"},
    "dob": {"top": 216, "left": 160, "font_size": 11, "font_weight": "normal", "color": "#000000"},
    "detailsLine2": {"top": 236, "left": 25, "font_size": 11, "font_weight": "normal", "color": "#000000"},
    "dlNumber": {"top": 236, "left": 160, "font_size": 11, "font_weight": "normal", "color": "#000000"},
    "detailsLine4": {"top": 216, "left": 290, "font_size": 11, "font_weight": "bold", "color": "#D32F2F"},
}

POSITION_KEYS = {
    CERTIFICATE: frozenset({"top", "left", "line_spacing"}),
    ID_CARD: frozenset({
        "top", "left", "width", "height", "font_size", "font_weight",
        "color", "text_align", "text_transform", "background_color",
    }),
}

# Layouts saved by the earlier web console used camelCase position keys.
_POSITION_ALIASES = {
    "lineSpacing": "line_spacing",
    "fontSize": "font_size",
    "fontWeight": "font_weight",
    "textAlign": "text_align",
    "textTransform": "text_transform",
    "backgroundColor": "background_color",
}


def _defaults_for(kind: str) -> dict[str, dict[str, Any]]:
    if kind == CERTIFICATE:
        return DEFAULT_CERTIFICATE_LAYOUT
    if kind == ID_CARD:
        return DEFAULT_ID_CARD_LAYOUT
    raise ValueError(f"Unknown layout kind: {kind}")


def default_layout(kind: str) -> dict[str, dict[str, Any]]:
    return copy.deepcopy(_defaults_for(kind))


def layout_elements(kind: str) -> tuple[str, ...]:
    return tuple(_defaults_for(kind))


def normalize_position(kind: str, position: dict[str, Any]) -> dict[str, Any]:
    """Rename legacy keys and drop keys the card type does not know."""
    allowed = POSITION_KEYS[kind]
    result: dict[str, Any] = {}
    for key, value in position.items():
        key = _POSITION_ALIASES.get(key, key)
        if key in allowed and value is not None:
            result[key] = value
    return result


def merge_layout(kind: str, saved: Optional[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    merged = default_layout(kind)
    if not saved:
        return merged
    for element, position in saved.items():
        if element in merged and isinstance(position, dict):
            merged[element].update(normalize_position(kind, position))
    return merged


def _px(value: Any) -> str:
    return f"{float(value):g}px"


def _outline(selected: bool) -> dict[str, str]:
    return {
        "outline": SELECTED_OUTLINE if selected else "none",
        "outline-offset": "2px",
    }


def certificate_element_style(element: str, position: dict[str, Any], *, selected: bool = False) -> dict[str, str]:
    """CSS properties of one certificate element."""
    if element == "photo":
        return {
            "position": "absolute",
            "top": _px(position["top"]),
            "left": _px(position["left"]),
            "width": "138px",
            "height": "172px",
            "object-fit": "cover",
            **_outline(selected),
        }

    style = {
        "font-family": "'Times New Roman', Times, serif",
        "color": "#00008B",
        "position": "absolute",
        "margin": "0",
        "padding": "2px 5px",
        "display": "block",
        "word-spacing": "normal",
        "top": _px(position["top"]),
        "left": _px(position["left"]),
        **_outline(selected),
    }
    if element == "name":
        # Name styling is fixed; saved colors do not apply.
        style.update({"color": "red", "width": "450px", "text-align": "center", "font-size": "28px", "font-weight": "bold"})
    elif element == "garage":
        style.update({"width": "480px", "text-align": "center", "font-size": "28px", "font-weight": "bold"})
    elif element == "address":
        line_spacing = position.get("line_spacing")
        style.update({
            "width": "580px",
            "text-align": "center",
            "font-size": "24px",
            "line-height": _px(line_spacing) if line_spacing else "normal",
        })
    elif element == "meta":
        style["font-size"] = "18px"
    elif element in ("issuedDate", "expiryDate"):
        style.update({"font-size": "28px", "font-weight": "bold"})
    return style


def id_card_element_style(element: str, position: dict[str, Any], *, selected: bool = False) -> dict[str, str]:
    """CSS properties of one ID card element."""
    style = {
        "position": "absolute",
        "margin": "0",
        "padding": "2px",
        "top": _px(position.get("top") or 0),
        "left": _px(position.get("left") or 0),
        **_outline(selected),
    }
    if element == "photo":
        style.update({
            "width": _px(position.get("width") or 120),
            "height": _px(position.get("height") or 150),
            "object-fit": "cover",
            "border": "3px solid white",
            "box-shadow": "0 2px 4px rgba(0,0,0,0.2)",
        })
        return style

    width = position.get("width")
    style.update({
        "font-family": "'PT Sans', sans-serif",
        "font-size": _px(position.get("font_size") or 14),
        "font-weight": position.get("font_weight") or "normal",
        "color": position.get("color") or "#000000",
        "width": _px(width) if width else "auto",
        "text-align": position.get("text_align") or "left",
        "text-transform": position.get("text_transform") or "none",
        "background-color": position.get("background_color") or "transparent",
    })
    if element == "address":
        style.update({"line-height": "1.3", "white-space": "normal"})
    else:
        style["white-space"] = "nowrap"
    return style


def style_attribute(style: dict[str, str]) -> str:
    return "; ".join(f"{name}: {value}" for name, value in style.items())
