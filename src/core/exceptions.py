class DomainError(Exception):
    """Base class for domain-specific errors."""

    pass


class EstimationNotFoundError(DomainError):
    """Raised when an estimation id is unknown or has already been purged."""

    pass
