"""
Versioned (v0) transaction assembly and signing.
"""
import logging
from typing import List, Sequence

from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.instruction import Instruction
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.pubkey import Pubkey
from solders.transaction import VersionedTransaction

from .errors import TransactionAssemblyError

logger = logging.getLogger(__name__)


def assemble_transaction(
    payer: Pubkey,
    recent_blockhash: Hash,
    instructions: Sequence[Instruction],
    lookup_tables: Sequence[AddressLookupTableAccount]
) -> MessageV0:
    """
    Compile instructions and ALTs into an unsigned v0 message.

    MessageV0.try_compile collects account keys from the instructions, builds
    the header and moves eligible keys into address_table_lookups.

    Raises:
        TransactionAssemblyError: If compilation fails
    """
    try:
        message_v0 = MessageV0.try_compile(
            payer=payer,
            instructions=list(instructions),
            address_lookup_table_accounts=list(lookup_tables),
            recent_blockhash=recent_blockhash
        )
    except Exception as e:
        raise TransactionAssemblyError(f"Failed to compile v0 message: {e}") from e

    logger.debug(
        f"Compiled v0 message: {len(instructions)} instructions, "
        f"{len(message_v0.account_keys)} static keys, "
        f"{len(message_v0.address_table_lookups)} table lookups"
    )
    return message_v0


def sign_transaction(message: MessageV0, keypair: Keypair) -> VersionedTransaction:
    """Sign a compiled message. The signature is only valid for this message's blockhash."""
    signers: List[Keypair] = [keypair]
    return VersionedTransaction(message, signers)
