"""Layout persistence and the in-memory layout editor."""
from __future__ import annotations

import logging
from typing import Any, Optional

from pydantic import ValidationError

from ..domain_errors import DomainError
from ..schemas import CertificatePosition, IdCardPosition
from ..services.document_store import DocumentStoreError, DocumentStore
from ..services.layout import (
    CERTIFICATE,
    LAYOUT_DOCUMENTS,
    SETTINGS_COLLECTION,
    default_layout,
    layout_elements,
    merge_layout,
    normalize_position,
)
from ..services.toasts import Toast, ToastLog, failure, success

logger = logging.getLogger(__name__)

_LABELS = {CERTIFICATE: "certificate", "id-card": "ID card"}


def _layout_invalid(kind: str, errors: list[dict[str, str]]) -> DomainError:
    return DomainError(
        code="VALIDATION_FAILED",
        http_status=422,
        message=f"Invalid {_LABELS[kind]} layout",
        details={"errors": errors},
    )


def validate_positions(kind: str, positions: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Check every element against the card's position schema."""
    model = CertificatePosition if kind == CERTIFICATE else IdCardPosition
    known = set(layout_elements(kind))
    errors: list[dict[str, str]] = []
    cleaned: dict[str, dict[str, Any]] = {}
    for element, position in positions.items():
        if element not in known:
            errors.append({"field": element, "message": "Unknown layout element"})
            continue
        if not isinstance(position, dict):
            errors.append({"field": element, "message": "Position must be an object"})
            continue
        try:
            parsed = model.model_validate(normalize_position(kind, position))
        except ValidationError as exc:
            errors.extend(
                {"field": ".".join([element, *(str(part) for part in error["loc"])]), "message": error["msg"]}
                for error in exc.errors()
            )
            continue
        cleaned[element] = parsed.model_dump(exclude_none=True)
    if errors:
        raise _layout_invalid(kind, errors)
    return cleaned


def load_layout_use_case(*, store: DocumentStore, kind: str) -> dict[str, dict[str, Any]]:
    """Saved layout merged over defaults; defaults when nothing is saved or the read fails."""
    try:
        snapshot = store.get(SETTINGS_COLLECTION, LAYOUT_DOCUMENTS[kind])
    except DocumentStoreError:
        logger.exception("Failed to load layout kind=%s, using defaults", kind)
        return default_layout(kind)
    if snapshot is None:
        return default_layout(kind)
    return merge_layout(kind, snapshot.get("positions"))


def save_layout_use_case(
    *, store: DocumentStore, kind: str, positions: dict[str, Any]
) -> dict[str, dict[str, Any]]:
    """Overwrite the stored layout with `positions` (missing elements take defaults)."""
    layout = merge_layout(kind, validate_positions(kind, positions))
    try:
        store.set(SETTINGS_COLLECTION, LAYOUT_DOCUMENTS[kind], {"positions": layout})
    except DocumentStoreError as exc:
        raise DomainError(
            code="LAYOUT_SAVE_FAILED",
            http_status=502,
            message=f"Could not save the {_LABELS[kind]} layout",
            details={"reason": str(exc)},
        ) from exc
    logger.info("Layout saved kind=%s", kind)
    return layout


class LayoutEditor:
    """Draft layout being edited; persisted only on save."""

    def __init__(self, store: DocumentStore, kind: str, toasts: Optional[ToastLog] = None) -> None:
        self._store = store
        self.kind = kind
        self.toasts = toasts or ToastLog()
        self.positions = default_layout(kind)
        self.loaded = False

    def load(self) -> dict[str, dict[str, Any]]:
        self.positions = load_layout_use_case(store=self._store, kind=self.kind)
        self.loaded = True
        return self.positions

    def update_element(self, element: str, changes: dict[str, Any]) -> dict[str, Any]:
        if not self.loaded:
            self.load()
        candidate = {**self.positions.get(element, {}), **normalize_position(self.kind, changes)}
        cleaned = validate_positions(self.kind, {element: candidate})
        self.positions[element] = cleaned[element]
        return self.positions[element]

    def save(self) -> Toast:
        label = _LABELS[self.kind]
        try:
            self.positions = save_layout_use_case(store=self._store, kind=self.kind, positions=self.positions)
        except DomainError as exc:
            logger.warning("Layout save failed kind=%s code=%s", self.kind, exc.code)
            return self.toasts.push(failure("Save Failed", f"Could not save the {label} layout. {exc.message}"))
        return self.toasts.push(success("Layout Saved", f"The {label} layout has been saved."))
