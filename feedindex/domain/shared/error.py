"""Error hierarchy for feedindex.

Error layers:
- FeedIndexError: Base class for all feedindex errors
- DomainError: Malformed requests or records, invalid feed definitions
- InfrastructureError: Misconfiguration or unavailable collaborators

Store and producer errors are not wrapped; they reach the caller unchanged.
"""


class FeedIndexError(Exception):
    """Base class for all feedindex errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        super().__init__(message)


# =============================================================================
# Domain Errors (bad input data)
# =============================================================================


class DomainError(FeedIndexError):
    """Base class for domain errors."""


class ValidationError(DomainError):
    """Input validation failed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR")
        self.field = field


class NotFoundError(DomainError):
    """Feed or collaborator not found."""


# =============================================================================
# Infrastructure Errors (system-level failures)
# =============================================================================


class InfrastructureError(FeedIndexError):
    """Base class for infrastructure/system errors."""


class ConfigurationError(InfrastructureError):
    """System misconfiguration detected."""
