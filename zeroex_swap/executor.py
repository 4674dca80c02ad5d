"""
Swap execution: quote -> decode -> (ALTs || blockhash) -> assemble -> sign
-> simulate -> send -> confirm.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.rpc.responses import RpcBlockhash

from .config import SwapConfig
from .errors import (
    AddressDecodeError,
    BlockhashFetchError,
    ConfirmationError,
    LookupTableResolutionError,
    QuoteRequestError,
    QuoteSchemaError,
    SendError,
    SimulationError,
    TransactionAssemblyError,
    UnconfirmedTransactionError,
)
from .instructions import build_instructions
from .solana_client import SolanaClient
from .transaction import assemble_transaction, sign_transaction
from .utils import format_sim_logs, get_terminal_colors, solscan_tx_url
from .zeroex_client import ZeroExClient

# Get terminal colors (empty if output is redirected)
colors = get_terminal_colors()

logger = logging.getLogger(__name__)

# Program logs shown in the simulation failure message; ExecutionResult keeps all of them
SIM_LOG_TAIL = 40


class ExecutionOutcome(Enum):
    """Terminal state of one swap run."""
    QUOTE_FAILED = "quote_failed"
    DECODE_FAILED = "decode_failed"
    PREPARATION_FAILED = "preparation_failed"
    NO_KEY_STOPPED = "no_key_stopped"
    SIMULATION_FAILED = "simulation_failed"
    DRY_RUN_STOPPED = "dry_run_stopped"
    SEND_FAILED = "send_failed"
    CONFIRMATION_UNKNOWN = "confirmation_unknown"
    CONFIRMED_OK = "confirmed_ok"
    CONFIRMED_WITH_ERROR = "confirmed_with_error"
    UNEXPECTED_ERROR = "unexpected_error"


# Safety gates end the run cleanly; they are not failures
SUCCESSFUL_OUTCOMES = frozenset({
    ExecutionOutcome.NO_KEY_STOPPED,
    ExecutionOutcome.DRY_RUN_STOPPED,
    ExecutionOutcome.CONFIRMED_OK,
})


@dataclass
class ExecutionResult:
    """What happened in one run and where it stopped."""
    outcome: ExecutionOutcome
    amount_out: Optional[int] = None
    signature: Optional[str] = None
    error: Optional[str] = None
    logs: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.outcome in SUCCESSFUL_OUTCOMES


class SwapExecutor:
    """Runs a single swap end-to-end. One instance per run; holds no state between runs."""

    def __init__(
        self,
        zeroex_client: ZeroExClient,
        solana_client: SolanaClient,
        config: SwapConfig
    ):
        self.zeroex = zeroex_client
        self.solana = solana_client
        self.config = config

    async def execute_swap(self) -> ExecutionResult:
        """
        Execute the swap pipeline once.

        Never raises: expected failures are mapped to their outcome by the
        stage that produced them, anything else ends as UNEXPECTED_ERROR.
        Nothing is retried.
        """
        try:
            return await self._execute()
        except Exception as e:
            logger.error(
                f"{colors['RED']}Failed to process quote and swap: {e}{colors['RESET']}",
                exc_info=True
            )
            return ExecutionResult(ExecutionOutcome.UNEXPECTED_ERROR, error=str(e))

    def _stop(
        self,
        outcome: ExecutionOutcome,
        message: str,
        error: Optional[object] = None,
        **details
    ) -> ExecutionResult:
        """Log the single terminal message for a failed run and build its result."""
        logger.error(f"{colors['RED']}{message}{colors['RESET']}")
        return ExecutionResult(
            outcome,
            error=str(error) if error is not None else None,
            **details
        )

    async def _resolve_tables_and_blockhash(
        self,
        alt_addresses: List[str]
    ) -> Tuple[List[AddressLookupTableAccount], RpcBlockhash]:
        """
        Resolve ALTs and fetch the latest blockhash concurrently.

        Both must succeed. On the first failure the other request is cancelled
        and its result discarded.
        """
        alt_task = asyncio.create_task(
            self.solana.get_address_lookup_table_accounts(alt_addresses)
        )
        blockhash_task = asyncio.create_task(self.solana.get_latest_blockhash())
        try:
            alt_accounts, latest_blockhash = await asyncio.gather(alt_task, blockhash_task)
        except BaseException:
            for task in (alt_task, blockhash_task):
                if not task.done():
                    task.cancel()
            raise
        return alt_accounts, latest_blockhash

    async def _execute(self) -> ExecutionResult:
        keypair_config = self.config.keypair_config
        payer = keypair_config.keypair.pubkey()
        trade = self.config.trade

        # === Quote ===
        try:
            quote = await self.zeroex.get_swap_instructions(trade, str(payer))
        except (QuoteRequestError, QuoteSchemaError) as e:
            return self._stop(ExecutionOutcome.QUOTE_FAILED, f"Quote failed: {e}", e)

        amount_out = quote.amount_out
        logger.info(
            f"Quote received: {colors['GREEN']}{amount_out}{colors['RESET']} base units of "
            f"{colors['CYAN']}{trade.token_out}{colors['RESET']}"
        )

        # === Decode instructions ===
        try:
            instructions = build_instructions(quote.instructions)
        except AddressDecodeError as e:
            return self._stop(
                ExecutionOutcome.DECODE_FAILED,
                f"Malformed instruction data from 0x API: {e}",
                e,
                amount_out=amount_out
            )

        # === Resolve ALTs || blockhash, then assemble ===
        try:
            alt_accounts, latest_blockhash = await self._resolve_tables_and_blockhash(
                quote.address_lookup_tables
            )
            message = assemble_transaction(
                payer,
                latest_blockhash.blockhash,
                instructions,
                alt_accounts
            )
        except (LookupTableResolutionError, BlockhashFetchError, TransactionAssemblyError) as e:
            return self._stop(
                ExecutionOutcome.PREPARATION_FAILED,
                f"Failed to build transaction: {e}",
                e,
                amount_out=amount_out
            )

        # Signed even with a generated key so every run exercises the same path
        versioned_tx = sign_transaction(message, keypair_config.keypair)
        logger.debug(
            f"Transaction signed: {len(instructions)} instructions, "
            f"{len(alt_accounts)} ALTs, blockhash {latest_blockhash.blockhash}"
        )

        if not keypair_config.is_user_provided:
            logger.info(
                f"{colors['YELLOW']}No private key provided. Please provide PRIVATE_KEY to enable "
                f"simulation and transaction sending.{colors['RESET']}"
            )
            return ExecutionResult(ExecutionOutcome.NO_KEY_STOPPED, amount_out=amount_out)

        # === Simulate ===
        try:
            simulation = await self.solana.simulate_versioned_transaction(versioned_tx)
            simulation.raise_for_error()
        except SimulationError as e:
            message = f"Simulation failed: {e}"
            if e.err is not None:
                logs = format_sim_logs(e.logs, tail=SIM_LOG_TAIL)
                message += f"\nLogs:\n{colors['DIM']}{logs}{colors['RESET']}"
            return self._stop(
                ExecutionOutcome.SIMULATION_FAILED,
                message,
                e,
                amount_out=amount_out,
                logs=e.logs
            )

        if self.config.dry_run:
            logger.info(
                f"{colors['GREEN']}Simulation succeeded.{colors['RESET']} "
                f"{colors['YELLOW']}Dry run complete. Set DRY_RUN=false to send the transaction.{colors['RESET']}"
            )
            return ExecutionResult(
                ExecutionOutcome.DRY_RUN_STOPPED,
                amount_out=amount_out,
                logs=simulation.logs
            )

        logger.info(f"{colors['GREEN']}Simulation succeeded{colors['RESET']}")

        # === Send ===
        try:
            signature = await self.solana.send_versioned_transaction(versioned_tx)
        except SendError as e:
            return self._stop(
                ExecutionOutcome.SEND_FAILED,
                f"Failed to send transaction: {e}",
                e,
                amount_out=amount_out
            )

        logger.info(f"Transaction sent with signature: {colors['CYAN']}{signature}{colors['RESET']}")

        # === Confirm ===
        try:
            await self.solana.confirm_transaction(signature, latest_blockhash)
        except ConfirmationError as e:
            return self._stop(
                ExecutionOutcome.CONFIRMED_WITH_ERROR,
                f"Transaction failed on-chain: {e.err}",
                e,
                amount_out=amount_out,
                signature=str(signature)
            )
        except UnconfirmedTransactionError as e:
            return self._stop(
                ExecutionOutcome.CONFIRMATION_UNKNOWN,
                f"Transaction not confirmed: {e}. Check {solscan_tx_url(signature)}",
                e,
                amount_out=amount_out,
                signature=str(signature)
            )

        logger.info(
            f"{colors['GREEN']}Transaction confirmed:{colors['RESET']} "
            f"{colors['CYAN']}{solscan_tx_url(signature)}{colors['RESET']}"
        )
        return ExecutionResult(
            ExecutionOutcome.CONFIRMED_OK,
            amount_out=amount_out,
            signature=str(signature)
        )
