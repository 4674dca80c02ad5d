"""
Solana RPC client for lookup tables, blockhash, simulation, sending and confirmation.
"""
import base64
import logging
from dataclasses import dataclass, field
from typing import Any, List, Optional

from solders.address_lookup_table_account import AddressLookupTable, AddressLookupTableAccount
from solders.pubkey import Pubkey
from solders.rpc.responses import RpcBlockhash
from solders.signature import Signature
from solders.transaction import VersionedTransaction
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts

from .errors import (
    BlockhashFetchError,
    ConfirmationError,
    LookupTableResolutionError,
    SendError,
    SimulationError,
    UnconfirmedTransactionError,
)

logger = logging.getLogger(__name__)


@dataclass
class SimulationResult:
    """Outcome of simulateTransaction."""
    err: Any
    logs: List[str] = field(default_factory=list)
    units_consumed: Optional[int] = None

    @property
    def succeeded(self) -> bool:
        return self.err is None

    def raise_for_error(self):
        """Raise SimulationError carrying err and logs if the simulation failed."""
        if self.err is not None:
            raise SimulationError(
                f"Simulation returned an error: {self.err}",
                err=self.err,
                logs=self.logs
            )


def _account_data_bytes(raw: Any) -> bytes:
    """
    Normalize account data to bytes.

    solana-py returns bytes, but raw JSON responses carry a base64 string or
    a ["<base64>", "base64"] list.
    """
    if isinstance(raw, (bytes, bytearray)):
        return bytes(raw)
    if isinstance(raw, str):
        return base64.b64decode(raw, validate=True)
    if isinstance(raw, list) and raw and isinstance(raw[0], str):
        encoding = raw[1] if len(raw) > 1 else "base64"
        if encoding != "base64":
            raise TypeError(f"Unsupported account data encoding: {encoding}")
        return base64.b64decode(raw[0], validate=True)
    raise TypeError(f"Unexpected account data type: {type(raw).__name__} (expected bytes, str, or list)")


class SolanaClient:
    """Client for the Solana RPC operations used by the swap pipeline."""

    def __init__(self, rpc_url: str):
        self.rpc_url = rpc_url
        self.client = AsyncClient(rpc_url)

    async def get_address_lookup_table_accounts(
        self,
        addresses: List[str]
    ) -> List[AddressLookupTableAccount]:
        """
        Resolve Address Lookup Table (ALT) accounts with one batched RPC call.

        Args:
            addresses: List of ALT addresses (base58 strings)

        Returns:
            AddressLookupTableAccount list in the same order as addresses

        Raises:
            LookupTableResolutionError: If any ALT cannot be loaded; no partial list is returned
        """
        if not addresses:
            return []

        pubkeys: List[Pubkey] = []
        for alt_address in addresses:
            try:
                pubkeys.append(Pubkey.from_string(alt_address))
            except ValueError as e:
                raise LookupTableResolutionError(
                    f"Invalid address lookup table address: {alt_address}", address=alt_address
                ) from e

        try:
            response = await self.client.get_multiple_accounts(pubkeys, commitment=Confirmed, encoding="base64")
        except Exception as e:
            raise LookupTableResolutionError(f"Failed to fetch address lookup tables: {e}") from e

        account_infos = list(response.value or [])

        alt_accounts: List[AddressLookupTableAccount] = []
        for i, (alt_address, pubkey) in enumerate(zip(addresses, pubkeys)):
            account_info = account_infos[i] if i < len(account_infos) else None
            if account_info is None:
                raise LookupTableResolutionError(
                    f"Failed to resolve address lookup table: {alt_address}", address=alt_address
                )

            try:
                table = AddressLookupTable.deserialize(_account_data_bytes(account_info.data))
            except Exception as e:
                logger.debug(f"ALT {alt_address}: data_type={type(account_info.data).__name__}")
                raise LookupTableResolutionError(
                    f"Cannot decode address lookup table {alt_address}: {e}", address=alt_address
                ) from e

            alt_accounts.append(AddressLookupTableAccount(pubkey, table.addresses))
            logger.debug(f"Loaded ALT account: {alt_address} with {len(table.addresses)} addresses")

        logger.debug(f"Resolved {len(alt_accounts)} address lookup table(s)")
        return alt_accounts

    async def get_latest_blockhash(self) -> RpcBlockhash:
        """
        Get the latest blockhash and its last valid block height.

        Raises:
            BlockhashFetchError: If the RPC call fails or returns nothing
        """
        try:
            result = await self.client.get_latest_blockhash(commitment=Confirmed)
        except Exception as e:
            raise BlockhashFetchError(f"Error getting latest blockhash: {e}") from e

        if result.value is None:
            raise BlockhashFetchError("get_latest_blockhash returned no value")

        logger.debug(
            f"Latest blockhash: {result.value.blockhash} "
            f"(last_valid_block_height={result.value.last_valid_block_height})"
        )
        return result.value

    async def simulate_versioned_transaction(self, tx: VersionedTransaction) -> SimulationResult:
        """
        Simulate a signed VersionedTransaction with signature verification.

        An on-chain error is returned in the result, not raised.

        Raises:
            SimulationError: If the simulation request itself fails
        """
        try:
            result = await self.client.simulate_transaction(tx, sig_verify=True, commitment=Confirmed)
        except Exception as e:
            raise SimulationError(f"Error simulating transaction: {e}") from e

        sim = result.value
        sim_result = SimulationResult(
            err=sim.err,
            logs=list(sim.logs or []),
            units_consumed=sim.units_consumed
        )
        if sim_result.err is not None:
            logger.debug(f"Simulation error: {sim_result.err}")
        return sim_result

    async def send_versioned_transaction(self, tx: VersionedTransaction) -> Signature:
        """
        Send a signed VersionedTransaction with preflight checks enabled.

        No retries are made here or by the RPC node.

        Raises:
            SendError: If the send fails or returns no signature
        """
        opts = TxOpts(
            skip_preflight=False,
            preflight_commitment=Confirmed,
            max_retries=0
        )
        try:
            result = await self.client.send_transaction(tx, opts=opts)
        except Exception as e:
            raise SendError(f"Error sending transaction: {e}") from e

        if result.value is None:
            raise SendError("Transaction send returned no signature")

        logger.debug(f"Transaction sent: {result.value}")
        return result.value

    async def confirm_transaction(
        self,
        signature: Signature,
        latest_blockhash: RpcBlockhash
    ) -> None:
        """
        Wait for 'confirmed' commitment, bounded by the blockhash used to build the transaction.

        Args:
            signature: Transaction signature
            latest_blockhash: Blockhash fetched at assembly time

        Raises:
            ConfirmationError: If the transaction landed with an on-chain error
            UnconfirmedTransactionError: If confirmation could not be observed
        """
        logger.debug(
            f"Confirming {signature} against blockhash {latest_blockhash.blockhash} "
            f"(last_valid_block_height={latest_blockhash.last_valid_block_height})"
        )
        try:
            result = await self.client.confirm_transaction(
                signature,
                commitment=Confirmed,
                last_valid_block_height=latest_blockhash.last_valid_block_height
            )
        except Exception as e:
            raise UnconfirmedTransactionError(
                f"Error confirming transaction {signature}: {e}", signature=str(signature)
            ) from e

        status = result.value[0] if result.value else None
        if status is None:
            raise UnconfirmedTransactionError(
                f"No status returned for transaction {signature}", signature=str(signature)
            )
        if status.err is not None:
            raise ConfirmationError(
                f"Transaction {signature} failed on-chain: {status.err}",
                err=status.err,
                signature=str(signature)
            )

    async def close(self):
        """Close RPC client."""
        await self.client.close()
