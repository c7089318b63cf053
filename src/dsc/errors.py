"""Exception hierarchy shared by the codec and both endpoints."""

from __future__ import annotations


class DscError(Exception):
    """Base exception for all protocol errors."""


class TransportError(DscError):
    """A socket operation failed."""


class ConnectError(TransportError):
    """An endpoint could not be opened (resolve, socket or bind failure)."""


class RequestTimeout(TransportError):
    """No datagram arrived within the receive timeout."""


class IntegrityError(DscError, ValueError):
    """A received datagram failed verification and must not be trusted."""


class SignatureError(IntegrityError):
    pass


class LengthError(IntegrityError):
    pass


class ChecksumError(IntegrityError):
    pass


class EncodeError(DscError, ValueError):
    """A packet's fields cannot be represented on the wire."""


class PayloadTooLarge(EncodeError):
    """The payload does not fit in one datagram."""


class InvalidStateError(DscError, RuntimeError):
    """An endpoint was used while not open."""
