"""Project-wide error types."""


class PmoSaverError(Exception):
    """Base for all PMO saver errors."""


class ConfigurationError(PmoSaverError):
    """Settings that fail validation; the message is shown to the user."""


class ExternalServiceError(PmoSaverError):
    """Gmail, Drive or another third-party service failed."""


__all__ = ["PmoSaverError", "ConfigurationError", "ExternalServiceError"]
