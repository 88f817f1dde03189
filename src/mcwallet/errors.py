"""
Exceptions raised by mcwallet components.
"""

from __future__ import annotations


class MCWalletError(Exception):
    """Base class for all mcwallet errors."""

    pass


class RpcError(MCWalletError):
    """Error reported by a node in reply to a request."""

    def __init__(self, message: str, code: int | str | None = None):
        super().__init__(message)
        self.code = code


class OperatorDisposedError(MCWalletError):
    """An operator (or service) was used after disposal or before one was available."""

    pass


class SpendingError(MCWalletError):
    """Transaction construction, signing or broadcast failed."""

    pass


class UnsupportedOperationError(MCWalletError):
    """The coin family has no way of performing the requested operation."""

    pass


class StreamCompletedError(MCWalletError):
    """A stream completed while someone was still waiting for a value."""

    pass


class SignerError(MCWalletError):
    """The external signer (usually a hardware wallet) failed."""

    pass
