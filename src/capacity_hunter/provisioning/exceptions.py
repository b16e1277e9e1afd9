"""
Custom exceptions for the provisioning layer.

Raised when the provisioner could not produce a result at all (binary
missing, init failure, timeout). A Terraform run that finishes with a
nonzero exit code is not an exception: it comes back as a result with
success=False and is classified by provisioning.classifier.
"""


class ProvisionerError(Exception):
    """
    Base exception for provisioner failures.

    Attributes:
        message: Human-readable summary
        details: Context (command, workspace, output snippet)
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ProvisionerTimeout(ProvisionerError):
    """
    Raised when a Terraform command exceeds its time budget.

    The subprocess is interrupted (SIGINT, then SIGKILL) before this is raised.
    """
    pass
