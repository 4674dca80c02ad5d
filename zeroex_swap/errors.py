"""
Exception types raised by the swap pipeline.

Every stage raises one of these; the executor maps them onto a terminal
ExecutionOutcome. Third-party exceptions are chained, never swallowed.
"""
from typing import Any, List, Optional


class SwapError(Exception):
    """Base class for all swap pipeline errors."""


class ConfigurationError(SwapError):
    """Missing or invalid setting. Raised at startup before any network call."""


class QuoteRequestError(SwapError):
    """0x API request failed (transport error or non-success HTTP status)."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class QuoteSchemaError(SwapError):
    """0x API response body does not match the expected shape."""


class AddressDecodeError(SwapError):
    """An address byte array from the aggregator cannot be decoded."""


class LookupTableResolutionError(SwapError):
    """A referenced address lookup table does not exist or is inaccessible."""

    def __init__(self, message: str, address: Optional[str] = None):
        super().__init__(message)
        self.address = address


class BlockhashFetchError(SwapError):
    """Latest blockhash could not be fetched."""


class TransactionAssemblyError(SwapError):
    """MessageV0 compilation failed."""


class SimulationError(SwapError):
    """Simulation reported an error or could not be performed."""

    def __init__(self, message: str, err: Any = None, logs: Optional[List[str]] = None):
        super().__init__(message)
        self.err = err
        self.logs = logs or []


class SendError(SwapError):
    """Broadcasting the transaction failed."""


class ConfirmationError(SwapError):
    """Transaction landed but failed on-chain."""

    def __init__(self, message: str, err: Any = None, signature: Optional[str] = None):
        super().__init__(message)
        self.err = err
        self.signature = signature


class UnconfirmedTransactionError(SwapError):
    """No confirmation observed before the blockhash expired or the RPC failed."""

    def __init__(self, message: str, signature: Optional[str] = None):
        super().__init__(message)
        self.signature = signature
