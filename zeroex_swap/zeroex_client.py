"""
0x Swap API client for Solana swap instructions.
"""
import httpx
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .config import TradeParams, ZEROEX_DEFAULT_API_URL
from .errors import QuoteRequestError, QuoteSchemaError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SwapAccountMeta:
    """Account metadata for a swap instruction (address as raw bytes)."""
    pubkey: bytes
    is_signer: bool
    is_writable: bool


@dataclass(frozen=True)
class SwapInstructionSpec:
    """Single instruction in 0x wire format."""
    program_id: bytes
    accounts: List[SwapAccountMeta]
    data: bytes


@dataclass(frozen=True)
class ZeroExQuote:
    """Swap instructions response from the 0x API."""
    amount_out: int
    instructions: List[SwapInstructionSpec]
    address_lookup_tables: List[str]


def _require(obj: Dict[str, Any], key: str, path: str) -> Any:
    if key not in obj:
        raise QuoteSchemaError(f"{path}{key}: missing required field")
    return obj[key]


def _parse_int(value: Any, path: str) -> int:
    # bool is an int subclass in Python, reject it explicitly
    if isinstance(value, bool) or not isinstance(value, int):
        raise QuoteSchemaError(f"{path}: expected integer, got {type(value).__name__}")
    return value


def _parse_bool(value: Any, path: str) -> bool:
    if not isinstance(value, bool):
        raise QuoteSchemaError(f"{path}: expected boolean, got {type(value).__name__}")
    return value


def _parse_byte_array(value: Any, path: str) -> bytes:
    if not isinstance(value, list):
        raise QuoteSchemaError(f"{path}: expected byte array, got {type(value).__name__}")
    for i, item in enumerate(value):
        if isinstance(item, bool) or not isinstance(item, int) or not 0 <= item <= 255:
            raise QuoteSchemaError(f"{path}[{i}]: expected byte (0-255), got {item!r}")
    return bytes(value)


def _parse_object(value: Any, path: str) -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise QuoteSchemaError(f"{path}: expected object, got {type(value).__name__}")
    return value


def _parse_account(value: Any, path: str) -> SwapAccountMeta:
    account = _parse_object(value, path)
    prefix = f"{path}."
    return SwapAccountMeta(
        pubkey=_parse_byte_array(_require(account, "pubkey", prefix), f"{prefix}pubkey"),
        is_signer=_parse_bool(_require(account, "is_signer", prefix), f"{prefix}is_signer"),
        is_writable=_parse_bool(_require(account, "is_writable", prefix), f"{prefix}is_writable")
    )


def _parse_instruction(value: Any, path: str) -> SwapInstructionSpec:
    instruction = _parse_object(value, path)
    prefix = f"{path}."

    raw_accounts = _require(instruction, "accounts", prefix)
    if not isinstance(raw_accounts, list):
        raise QuoteSchemaError(f"{prefix}accounts: expected list, got {type(raw_accounts).__name__}")

    return SwapInstructionSpec(
        program_id=_parse_byte_array(_require(instruction, "program_id", prefix), f"{prefix}program_id"),
        accounts=[
            _parse_account(account, f"{prefix}accounts[{i}]")
            for i, account in enumerate(raw_accounts)
        ],
        data=_parse_byte_array(_require(instruction, "data", prefix), f"{prefix}data")
    )


def parse_quote_response(data: Any) -> ZeroExQuote:
    """
    Validate a swap-instructions response body and build a ZeroExQuote.

    Every required field is checked, including nested instruction and account
    fields. Extra fields are ignored. A missing or null address_lookup_tables
    means no tables.

    Raises:
        QuoteSchemaError: If any field is missing or has the wrong type
    """
    body = _parse_object(data, "response")

    amount_out = _parse_int(_require(body, "amount_out", ""), "amount_out")

    raw_instructions = _require(body, "instructions", "")
    if not isinstance(raw_instructions, list):
        raise QuoteSchemaError(f"instructions: expected list, got {type(raw_instructions).__name__}")
    instructions = [
        _parse_instruction(instruction, f"instructions[{i}]")
        for i, instruction in enumerate(raw_instructions)
    ]

    raw_alts = body.get("address_lookup_tables")
    if raw_alts is None:
        raw_alts = []
    if not isinstance(raw_alts, list):
        raise QuoteSchemaError(f"address_lookup_tables: expected list, got {type(raw_alts).__name__}")
    for i, alt in enumerate(raw_alts):
        if not isinstance(alt, str):
            raise QuoteSchemaError(f"address_lookup_tables[{i}]: expected string, got {type(alt).__name__}")

    return ZeroExQuote(
        amount_out=amount_out,
        instructions=instructions,
        address_lookup_tables=list(raw_alts)
    )


class ZeroExClient:
    """Client for the 0x Swap API (Solana swap instructions)."""

    SWAP_INSTRUCTIONS_PATH = "/solana/swap-instructions"

    def __init__(
        self,
        api_key: str,
        api_url: Optional[str] = None,
        timeout: float = 10.0
    ):
        """
        Initialize 0x API client.

        Args:
            api_key: 0x API key, sent in the 0x-api-key header
            api_url: Base API URL (defaults to https://api.0x.org)
            timeout: Request timeout in seconds
        """
        self.api_url = (api_url or ZEROEX_DEFAULT_API_URL).rstrip('/')
        self.api_key = api_key
        self.timeout = timeout

        headers = {
            "0x-api-key": api_key,
            "Content-Type": "application/json"
        }
        self.client = httpx.AsyncClient(timeout=timeout, headers=headers)

    async def get_swap_instructions(self, trade: TradeParams, taker: str) -> ZeroExQuote:
        """
        Request swap instructions for a single swap.

        Args:
            trade: Swap parameters (mints, amount in base units, slippage bps)
            taker: Taker public key (base58)

        Returns:
            Validated ZeroExQuote

        Raises:
            QuoteRequestError: On transport failure or non-success HTTP status
            QuoteSchemaError: If the response body is not the expected shape
        """
        url = f"{self.api_url}{self.SWAP_INSTRUCTIONS_PATH}"
        payload = {
            "token_out": trade.token_out,
            "token_in": trade.token_in,
            "amount_in": trade.amount_in,
            "slippage_bps": trade.slippage_bps,
            "taker": taker
        }

        logger.debug(
            f"Requesting 0x quote: {trade.token_in[:8]}... -> {trade.token_out[:8]}... "
            f"amount_in={trade.amount_in} slippage_bps={trade.slippage_bps}"
        )

        try:
            response = await self.client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise QuoteRequestError(f"Failed to fetch quote: {e}") from e

        if not response.is_success:
            raise QuoteRequestError(
                f"Failed to fetch quote: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as e:
            raise QuoteSchemaError(f"Quote response is not valid JSON: {e}") from e

        quote = parse_quote_response(data)
        logger.debug(
            f"Quote parsed: amount_out={quote.amount_out}, "
            f"{len(quote.instructions)} instructions, {len(quote.address_lookup_tables)} ALTs"
        )
        return quote

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()
