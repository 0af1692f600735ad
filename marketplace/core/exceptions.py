"""Custom exceptions for the vendor lead marketplace."""

from __future__ import annotations


class MarketplaceException(Exception):
    """Base exception for the marketplace application."""

    pass


class ValidationError(MarketplaceException):
    """Raised when validation fails."""

    pass


class NotFoundError(MarketplaceException):
    """Raised when a resource is not found."""

    pass


class DatabaseError(MarketplaceException):
    """Raised when a database operation fails."""

    pass


class ServiceError(MarketplaceException):
    """Raised when a service operation fails."""

    pass


class ConfigurationError(MarketplaceException):
    """Raised when configuration is invalid."""

    pass


class AuthenticationError(MarketplaceException):
    """Raised when the caller cannot be resolved to a vendor."""

    pass


class AuthorizationError(MarketplaceException):
    """Raised when a resolved vendor may not act on a resource."""

    pass


class ConflictError(MarketplaceException):
    """Raised when a write collides with existing state."""

    def __init__(self, message: str, code: str = "CONFLICT") -> None:
        super().__init__(message)
        self.code = code


class InsufficientBalanceError(ConflictError):
    """Raised when a wallet cannot cover a debit."""

    def __init__(self, message: str = "Insufficient available balance") -> None:
        super().__init__(message, code="INSUFFICIENT_BALANCE")


class ReferralError(MarketplaceException):
    """Referral failure tagged with an explicit kind."""

    INVALID_CODE = "INVALID_CODE"
    SELF_REFERRAL = "SELF_REFERRAL"
    ALREADY_LINKED = "ALREADY_LINKED"

    def __init__(self, message: str, kind: str) -> None:
        super().__init__(message)
        self.kind = kind


class InvalidReferralError(ReferralError):
    """Client-side referral problem; maps to 400."""

    pass
