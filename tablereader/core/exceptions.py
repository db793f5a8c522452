"""Custom exceptions for the recognition engine."""

class ApplicationError(Exception):
    """Base application error."""
    pass

class InvalidImageError(ApplicationError):
    """Image is empty, zero-area or cannot be resampled."""
    pass

class NoVarianceError(ApplicationError):
    """Template sample has (near) zero standard deviation."""
    pass

class CorruptPersistenceError(ApplicationError):
    """Stored template metadata and pixel data disagree."""
    pass

class RecognizerError(ApplicationError):
    """Text recognizer or classifier backend failed."""
    pass

class RequestCancelledError(ApplicationError):
    """Recognition request was superseded before it completed."""
    pass

class ConfigError(ApplicationError):
    """Configuration-related errors."""
    pass
