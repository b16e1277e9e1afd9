"""
Custom exceptions for the cloud control-plane layer.

Probes treat any CloudAPIError as "capacity unknown, assume unavailable";
the orchestrator's prerequisite check turns authentication failures into
a ConfigurationError.
"""


class CloudAPIError(Exception):
    """
    Base exception for all control-plane errors.

    Wraps SDK-specific errors so callers never import the SDK.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class CloudAuthenticationError(CloudAPIError):
    """
    Raised when the SDK config is missing, invalid, or rejected.

    Examples:
    - ~/.oci/config not found
    - Profile missing keys
    - 401 NotAuthenticated from the API
    """
    pass
