"""Domain exceptions used across API and services."""

from __future__ import annotations

from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any


@dataclass(slots=True)
class DomainError(Exception):
    """Base exception for predictable domain failures."""

    code: str
    message: str
    status_code: int
    details: dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message


class NotFoundError(DomainError):
    """Raised when a deal, category or product cannot be resolved."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="NOT_FOUND",
            message=message or "Requested resource was not found.",
            status_code=HTTPStatus.NOT_FOUND,
            details=details or {},
        )


class InvalidStateError(DomainError):
    """Raised when a deal status does not allow the requested operation."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="INVALID_STATE",
            message=message or "Deal is not active.",
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class DealExpiredError(DomainError):
    """Raised when a deal expiry date has already passed."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="DEAL_EXPIRED",
            message=message or "Deal has expired.",
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class DealFullError(DomainError):
    """Raised when every capacity slot of a deal is taken."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="DEAL_FULL",
            message=message or "Deal is full.",
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class DuplicateJoinError(DomainError):
    """Raised when a user tries to join a deal twice."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="DUPLICATE_JOIN",
            message=message or "User has already joined this deal.",
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class CategoryMismatchError(DomainError):
    """Raised when the selected product belongs to another category."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="CATEGORY_MISMATCH",
            message=message or "Product category does not match the deal category.",
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class OutOfStockError(DomainError):
    """Raised when the selected product has no stock left."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="OUT_OF_STOCK",
            message=message or "Product is out of stock.",
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class UnauthorizedError(DomainError):
    """Raised when the request carries no resolvable actor."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="UNAUTHORIZED",
            message=message or "Authentication required.",
            status_code=HTTPStatus.UNAUTHORIZED,
            details=details or {},
        )


class ForbiddenError(DomainError):
    """Raised when the actor lacks a capability or does not own the resource."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="FORBIDDEN",
            message=message or "Insufficient permissions.",
            status_code=HTTPStatus.FORBIDDEN,
            details=details or {},
        )


class ValidationError(DomainError):
    """Raised when input is malformed or violates a field invariant."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="VALIDATION_ERROR",
            message=message or "Request data failed validation.",
            status_code=HTTPStatus.BAD_REQUEST,
            details=details or {},
        )


class ConflictError(DomainError):
    """Raised when a unique business key is already taken."""

    def __init__(
        self,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code="CONFLICT",
            message=message or "Resource conflicts with existing data.",
            status_code=HTTPStatus.CONFLICT,
            details=details or {},
        )
