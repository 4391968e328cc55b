"""Summary: Exception taxonomy for FocusBoard.

Importance: Lets fetchers degrade locally while credential failures surface as authorization errors.
Alternatives: Raise RuntimeError everywhere and inspect messages.
"""

from __future__ import annotations


class FocusboardError(Exception):
    """Base exception for FocusBoard errors."""


class Unauthenticated(FocusboardError):
    """Raised when a request carries no resolvable user identity."""


class NoCredential(FocusboardError):
    """Raised when a user has no usable provider credential."""


class ProviderUnavailable(FocusboardError):
    """Raised on network errors or non-success responses from a provider endpoint."""


class MalformedUpstreamData(FocusboardError):
    """Raised when a provider payload does not match the expected schema."""


class CredentialStoreUnavailable(FocusboardError):
    """Raised when the credential store cannot be read or written."""
