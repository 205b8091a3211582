"""Domain-specific errors for gattecho."""


class GattEchoError(Exception):
    """Base error for gattecho."""


class ConfigLoadError(GattEchoError):
    """Raised when a configuration file cannot be read."""


class ConfigValidationError(GattEchoError):
    """Raised when configuration does not conform to schema or semantics."""


class DecodeError(GattEchoError):
    """Raised when inbound bytes are not a well-formed protocol message."""


class RadioError(GattEchoError):
    """Base radio-stack error."""


class RadioUnavailableError(RadioError):
    """Raised when no usable GATT server backend is installed."""
