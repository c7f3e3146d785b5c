"""Exceptions raised by image-pull-creds.

Every failure that ends a reconciliation run surfaces as one of these, with
the underlying client or provider exception chained as ``__cause__``.
"""

from typing import Optional


class ImagePullCredsError(Exception):
    """Base exception for all image-pull-creds errors."""

    pass


class ConfigError(ImagePullCredsError):
    """Raised when a configuration value is missing or malformed."""

    pass


class ProviderConfigError(ImagePullCredsError):
    """Raised when a credential provider cannot be constructed.

    This can occur when:
    - No credential material was supplied
    - The registry list is empty
    - The configured provider kind is unknown
    """

    pass


class ProviderError(ImagePullCredsError):
    """Raised when a credential provider fails to produce a payload."""

    pass


class ClusterConnectionError(ImagePullCredsError):
    """Raised when no Kubernetes client configuration can be loaded."""

    pass


class ReconcileError(ImagePullCredsError):
    """Raised when a cluster call fails during a reconciliation run.

    Attributes:
        operation: Short description of the step that failed.
        namespace: The namespace being processed, if any.
    """

    def __init__(self, operation: str, namespace: Optional[str] = None, reason: str = ""):
        self.operation = operation
        self.namespace = namespace
        message = operation
        if namespace:
            message = f"{message} in namespace {namespace}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ReconcileBusyError(ImagePullCredsError):
    """Raised when another run holds the lock past the configured wait."""

    pass
