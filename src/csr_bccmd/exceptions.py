"""Exception hierarchy for the BCCMD engine."""

from __future__ import annotations


class BccmdError(Exception):
    """Base class for every error raised by this package."""


class TransportError(BccmdError):
    """A transport backend could not carry a request."""


class UnsupportedTransport(TransportError):
    """The requested transport kind is not one of the known backends."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unsupported transport: {name}")
        self.name = name


class TransportOpenFailed(TransportError):
    """Opening the transport failed.

    The underlying OS error (if any) is chained as ``__cause__`` and its
    errno is copied to :attr:`errno`.
    """

    def __init__(self, message: str, errno: int | None = None) -> None:
        super().__init__(message)
        self.errno = errno


class OperationNotSupported(TransportError):
    """The backend has no implementation for this primitive."""


class ProtocolIOError(TransportError):
    """A request failed at the backend or was rejected by the chip.

    Attributes:
        varid: Operation identifier of the failed request, if known.
        status: BCCMD status code reported by the chip, if any.
    """

    def __init__(
        self,
        message: str,
        varid: int | None = None,
        status: int | None = None,
    ) -> None:
        super().__init__(message)
        self.varid = varid
        self.status = status


class FrameTooLarge(BccmdError):
    """A frame would not fit the fixed working buffer."""


class KeyTooLarge(FrameTooLarge):
    """The chip reported a PS key length that cannot be read in one frame."""

    def __init__(self, key: int, length: int, limit: int) -> None:
        super().__init__(
            f"PS key 0x{key:04x} is {length} words, "
            f"larger than the {limit}-word buffer"
        )
        self.key = key
        self.length = length


class InvalidKeyToken(BccmdError, ValueError):
    """A PS key token could not be resolved to a key id."""

    def __init__(self, token: str) -> None:
        super().__init__(f"Invalid PS key: {token!r}")
        self.token = token


class InvalidArgument(BccmdError, ValueError):
    """A store, value, or channel argument is malformed or out of range."""


class ArgumentCountMismatch(BccmdError):
    """The number of value tokens does not match the key length."""

    def __init__(self, key: int, expected: int, got: int) -> None:
        super().__init__(
            f"PS key 0x{key:04x} needs {expected} value(s), got {got}"
        )
        self.key = key
        self.expected = expected
        self.got = got


class RecordFileError(BccmdError):
    """A PS record file could not be opened or parsed."""

    def __init__(self, message: str, path: str = "", line: int | None = None) -> None:
        if line is not None:
            message = f"{path}:{line}: {message}"
        elif path:
            message = f"{path}: {message}"
        super().__init__(message)
        self.path = path
        self.line = line
