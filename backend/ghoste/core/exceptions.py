class GhosteError(Exception):
    """Base exception for the Ghoste credits service."""

    pass


class ConfigurationError(GhosteError):
    """Raised when a required setting is missing or malformed."""

    pass
