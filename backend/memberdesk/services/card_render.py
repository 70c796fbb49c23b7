"""HTML rendering of certificates and ID cards.

Previews are fragments with an optional highlighted element. Print
documents are standalone pages sized for the printer (A4 certificate,
105x74 mm ID card) without any selection outline; the browser's
print-to-PDF produces the final file.
"""

from __future__ import annotations

from html import escape
from typing import Any, Optional

from ..config import settings
from ..schemas import Member
from .layout import (
    CERTIFICATE_CANVAS,
    ID_CARD_CANVAS,
    certificate_element_style,
    id_card_element_style,
    style_attribute,
)
from .member_state import format_card_date

_BACKGROUND = "background-size: {size}; background-repeat: no-repeat; background-position: center; print-color-adjust: exact; -webkit-print-color-adjust: exact"


def _container_style(url: str, canvas: tuple[int, int], size: str) -> str:
    width, height = canvas
    return (
        f"width: {width}px; height: {height}px; position: relative; overflow: hidden; "
        f"background-color: white; background-image: url('{escape(url, quote=True)}'); "
        + _BACKGROUND.format(size=size)
    )


def _text(tag_style: dict[str, str], body: str) -> str:
    return f'<p style="{escape(style_attribute(tag_style), quote=True)}">{body}</p>'


def _image(tag_style: dict[str, str], src: str, alt: str) -> str:
    return (
        f'<img src="{escape(src, quote=True)}" alt="{escape(alt, quote=True)}" '
        f'style="{escape(style_attribute(tag_style), quote=True)}">'
    )


def _label(label: str, value: str, color: Optional[str] = None) -> str:
    style = "font-weight: bold" + (f"; color: {color}" if color else "")
    return f'<span style="{escape(style, quote=True)}">{escape(label)}</span> {escape(value)}'


def render_certificate(member: Member, layout: dict[str, dict[str, Any]], selected: Optional[str] = None) -> str:
    """Certificate canvas as an HTML fragment."""
    certificate = member.certificate

    def style(element: str) -> dict[str, str]:
        return certificate_element_style(element, layout[element], selected=element == selected)

    issued = format_card_date(certificate.issued_date if certificate else None)
    expiry = format_card_date(certificate.expiry_date if certificate else None)
    certificate_id = certificate.id if certificate else "N/A"

    parts = [
        _image(style("photo"), member.photo_url, member.name),
        _text(style("name"), escape(member.name.upper())),
        _text(style("garage"), escape(member.garage_name.upper())),
        _text(style("address"), escape(member.address)),
        _text(style("meta"), escape(f"Member ID: {member.id} | Cert No: {certificate_id}")),
        _text(style("issuedDate"), escape(issued)),
        _text(style("expiryDate"), escape(expiry)),
    ]
    container = _container_style(settings.CERTIFICATE_BACKGROUND_URL, CERTIFICATE_CANVAS, "contain")
    return f'<div class="certificate-print-container" style="{container}">' + "".join(parts) + "</div>"


def render_id_card_front(member: Member, layout: dict[str, dict[str, Any]], selected: Optional[str] = None) -> str:
    certificate = member.certificate

    def style(element: str) -> dict[str, str]:
        return id_card_element_style(element, layout[element], selected=element == selected)

    validity_style = style("detailsLine4")
    parts = [
        _image(style("photo"), member.photo_url, member.name),
        _text(style("name"), escape(member.name)),
        _text(style("shopName"), escape(member.garage_name)),
        _text(style("address"), escape(member.address)),
        _text(style("detailsLine1"), f"{_label('ID:', member.id)} | {_label('Blood:', member.blood_group)}"),
        _text(style("dob"), _label("DOB:", format_card_date(member.dob))),
        _text(style("detailsLine2"), _label("Mobile:", member.mobile)),
        _text(style("dlNumber"), _label("DL:", member.driving_license_number or "N/A")),
        _text(
            validity_style,
            _label(
                "Valid:",
                format_card_date(certificate.expiry_date if certificate else None),
                validity_style["color"],
            ),
        ),
    ]
    container = _container_style(settings.ID_CARD_FRONT_URL, ID_CARD_CANVAS, "cover")
    return f'<div class="id-card-print-container" style="{container}">' + "".join(parts) + "</div>"


def render_id_card_back() -> str:
    container = _container_style(settings.ID_CARD_BACK_URL, ID_CARD_CANVAS, "cover")
    return f'<div class="id-card-print-container" style="{container}"></div>'


def _document(title: str, css: str, body: str) -> str:
    return (
        "<!DOCTYPE html><html><head>"
        f"<meta charset=\"utf-8\"><title>{escape(title)}</title>"
        f"<style>{css}</style>"
        f"</head><body>{body}</body></html>"
    )


def certificate_print_document(member: Member, layout: dict[str, dict[str, Any]]) -> str:
    css = (
        "@import url('https://fonts.googleapis.com/css2?family=PT+Sans:wght@400;700&display=swap');"
        " body { margin: 0; } @page { size: A4; margin: 0; }"
    )
    return _document(f"{member.id}-{member.name}-certificate.pdf", css, render_certificate(member, layout))


def id_card_print_document(member: Member, layout: dict[str, dict[str, Any]]) -> str:
    css = (
        "@import url('https://fonts.googleapis.com/css2?family=PT+Sans:wght@400;700&display=swap');"
        " body { margin: 0; } @page { size: 105mm 74mm; margin: 0; }"
        " .id-card-print-container { page-break-inside: avoid; page-break-after: always; }"
    )
    body = render_id_card_front(member, layout) + render_id_card_back()
    return _document(f"{member.id}-{member.name}-id-card.pdf", css, body)
