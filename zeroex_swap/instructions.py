"""
Conversion of 0x wire-format instructions into solders instructions.
"""
from typing import List, Sequence, Union

from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from .errors import AddressDecodeError
from .zeroex_client import SwapInstructionSpec

PUBKEY_LENGTH = 32


def decode_pubkey(raw: Union[bytes, Sequence[int]]) -> Pubkey:
    """
    Decode a raw 32-byte address.

    Raises:
        AddressDecodeError: If the input is not exactly 32 valid bytes
    """
    if len(raw) != PUBKEY_LENGTH:
        raise AddressDecodeError(f"Address must be {PUBKEY_LENGTH} bytes, got {len(raw)}")
    try:
        return Pubkey.from_bytes(bytes(raw))
    except (TypeError, ValueError) as e:
        raise AddressDecodeError(f"Invalid address bytes: {e}") from e


def build_instruction(spec: SwapInstructionSpec) -> Instruction:
    """Convert a single SwapInstructionSpec to a solders Instruction."""
    accounts = [
        AccountMeta(
            pubkey=decode_pubkey(account.pubkey),
            is_signer=account.is_signer,
            is_writable=account.is_writable
        )
        for account in spec.accounts
    ]

    return Instruction(
        program_id=decode_pubkey(spec.program_id),
        accounts=accounts,
        data=bytes(spec.data)
    )


def build_instructions(specs: Sequence[SwapInstructionSpec]) -> List[Instruction]:
    """
    Convert 0x instructions to solders Instructions.

    Instruction and account order are kept as given and accounts are not
    deduplicated: both determine account indexing on-chain.
    """
    return [build_instruction(spec) for spec in specs]
