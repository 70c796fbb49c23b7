"""Domain-level exception primitives with stable machine-readable codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(eq=False)
class DomainError(Exception):
    """Use-case level error with stable code and HTTP mapping."""

    code: str
    http_status: int
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


def member_not_found(member_id: str) -> DomainError:
    return DomainError(
        code="MEMBER_NOT_FOUND",
        http_status=404,
        message="Member not found",
        details={"member_id": member_id},
    )


def store_unavailable(exc: Exception) -> DomainError:
    return DomainError(
        code="STORE_UNAVAILABLE",
        http_status=503,
        message="The member database could not be reached. Please try again.",
        details={"reason": str(exc)},
    )
