"""
Error taxonomy for capacity hunting.

These exceptions let the orchestrator and monitor distinguish conditions
that must stop the run (configuration problems, exhausted quota, operator
cancellation) from the expected, retryable capacity failures.
"""


class CapacityHunterError(Exception):
    """
    Base exception for all capacity hunter errors.

    All domain-specific exceptions inherit from this to allow catching
    any hunter-related error with a single except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(CapacityHunterError):
    """
    Raised when required configuration or credentials are missing.

    Examples:
    - OCI_COMPARTMENT_ID or OCI_SUBNET_ID not set
    - SSH public key file not found
    - OCI CLI/SDK not configured, Terraform not installed

    Always fatal: aborts the run immediately, never retried.
    """
    pass


class CapacityExhausted(CapacityHunterError):
    """
    Raised when the provider reports no host capacity for the shape.

    This is the expected failure while hunting and is always retryable.
    """
    pass


class QuotaExceeded(CapacityHunterError):
    """
    Raised when the tenancy service limit for the shape is exhausted.

    Retrying does not help until the operator frees quota (typically an
    existing A1 instance already uses the allowance). Stops the run once no
    placement target remains eligible.
    """
    pass


class UnexpectedProviderError(CapacityHunterError):
    """
    Raised for provider failures that match no known pattern.

    Retryable, but logged distinctly from capacity exhaustion so operators
    can notice anomalies.
    """
    pass


class NotificationFailure(CapacityHunterError):
    """
    Raised by notifier backends when a delivery channel fails.

    Never fatal: BaseNotifier.deliver() swallows it.
    """
    pass


class OperationCancelled(CapacityHunterError):
    """
    Raised at a suspension point once the cancellation token is tripped.

    Propagates out of loops after scoped cleanup has run.
    """
    pass
