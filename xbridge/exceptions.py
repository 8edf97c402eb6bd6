"""
xbridge Exceptions

Custom exception classes for the transfer verification engine.

Input-validation errors derive from ``ValueError`` so codec callers can treat
them like any other malformed-value failure.
"""


class XBridgeException(Exception):
    """Base exception for xbridge."""
    pass


class InvalidInputError(XBridgeException, ValueError):
    """Malformed input rejected at a codec boundary."""
    pass


class InvalidHashError(InvalidInputError):
    """Transfer hash is not 32 bytes / 64 hex characters."""
    pass


class InvalidAddressError(InvalidInputError):
    """Invalid account, address or token encoding."""
    pass


class InvalidChainIdError(InvalidInputError):
    """Chain identifier does not fit in 4 bytes."""
    pass


class InvalidAmountError(InvalidInputError):
    """Amount or nonce outside the unsigned 256-bit range."""
    pass


class NetworkError(XBridgeException):
    """Network communication error."""
    pass


class AllEndpointsFailedError(NetworkError):
    """Every redundant endpoint of a ledger failed for one call."""

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class ResponseFormatError(XBridgeException):
    """A ledger answered, but the payload could not be decoded."""
    pass


class ConfigurationError(XBridgeException):
    """Configuration error."""
    pass


class LedgerRpcError(NetworkError):
    """A JSON-RPC endpoint answered with an ``error`` object."""

    def __init__(self, message: str, code=None):
        super().__init__(message)
        self.code = code
