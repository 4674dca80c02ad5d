"""
Tests for solana_client.py
"""
import base64
import struct
import pytest
from unittest.mock import MagicMock, patch
from solders.address_lookup_table_account import AddressLookupTableAccount
from solders.hash import Hash
from solders.instruction import AccountMeta, Instruction
from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature
from solana.rpc.commitment import Confirmed
from zeroex_swap.errors import (
    BlockhashFetchError,
    ConfirmationError,
    LookupTableResolutionError,
    SendError,
    SimulationError,
    UnconfirmedTransactionError
)
from zeroex_swap.solana_client import SimulationResult, SolanaClient, _account_data_bytes
from zeroex_swap.transaction import assemble_transaction


def _accounts_response(*datas):
    """getMultipleAccounts response; None entries mean the account does not exist."""
    response = MagicMock()
    response.value = [None if data is None else MagicMock(data=data) for data in datas]
    return response


def _lookup_table_data(addresses):
    """On-chain ALT account layout: 56-byte meta header followed by packed addresses."""
    header = struct.pack(
        "<IQQB",
        1,                   # LookupTable discriminator
        2 ** 64 - 1,         # deactivation_slot: active
        0,                   # last_extended_slot
        0                    # last_extended_slot_start_index
    )
    header += b"\x00" * 33   # authority: None
    header += b"\x00" * 2    # padding
    return header + b"".join(bytes(address) for address in addresses)


class TestSolanaClient:
    """Tests for SolanaClient class."""

    @pytest.fixture
    def client(self):
        """Create a SolanaClient instance for testing."""
        return SolanaClient("https://api.mainnet-beta.solana.com")

    @pytest.fixture
    def alt_addresses(self):
        return [str(Pubkey.new_unique()) for _ in range(3)]

    @pytest.fixture
    def table_addresses(self):
        return [Pubkey.new_unique(), Pubkey.new_unique()]

    @pytest.fixture
    def mock_alt_deserialize(self, table_addresses):
        """Patch ALT deserialization to return a table with known addresses."""
        with patch('zeroex_swap.solana_client.AddressLookupTable') as mock_table_cls:
            mock_table_cls.deserialize.return_value = MagicMock(addresses=table_addresses)
            yield mock_table_cls

    def test_solana_client_initialization(self, client):
        """Test SolanaClient can be initialized."""
        assert client.rpc_url == "https://api.mainnet-beta.solana.com"

    @pytest.mark.asyncio
    async def test_resolve_empty_list_makes_no_call(self, client):
        """Empty input returns [] without touching the RPC."""
        with patch.object(client.client, 'get_multiple_accounts') as mock_get:
            result = await client.get_address_lookup_table_accounts([])

        assert result == []
        mock_get.assert_not_called()

    @pytest.mark.asyncio
    async def test_resolve_uses_single_batched_call(self, client, alt_addresses, table_addresses, mock_alt_deserialize):
        """N addresses are fetched with one getMultipleAccounts call, results in input order."""
        response = _accounts_response(b"alt0", b"alt1", b"alt2")

        with patch.object(client.client, 'get_multiple_accounts', return_value=response) as mock_get:
            result = await client.get_address_lookup_table_accounts(alt_addresses)

        mock_get.assert_called_once()
        requested = mock_get.call_args[0][0]
        assert requested == [Pubkey.from_string(a) for a in alt_addresses]
        assert mock_get.call_args[1]["commitment"] == Confirmed

        assert [str(alt.key) for alt in result] == alt_addresses
        assert all(isinstance(alt, AddressLookupTableAccount) for alt in result)
        assert list(result[0].addresses) == table_addresses
        assert [c[0][0] for c in mock_alt_deserialize.deserialize.call_args_list] == [b"alt0", b"alt1", b"alt2"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing_index", [0, 1, 2])
    async def test_resolve_missing_entry_names_address(self, client, alt_addresses, mock_alt_deserialize, missing_index):
        """An unresolved position fails the whole batch, naming that address."""
        datas = [b"alt0", b"alt1", b"alt2"]
        datas[missing_index] = None

        with patch.object(client.client, 'get_multiple_accounts', return_value=_accounts_response(*datas)) as mock_get:
            with pytest.raises(LookupTableResolutionError) as exc_info:
                await client.get_address_lookup_table_accounts(alt_addresses)

        mock_get.assert_called_once()
        assert exc_info.value.address == alt_addresses[missing_index]
        assert alt_addresses[missing_index] in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_resolve_short_response_names_first_missing(self, client, alt_addresses, mock_alt_deserialize):
        """A response with fewer entries than requested is treated as missing entries."""
        with patch.object(client.client, 'get_multiple_accounts', return_value=_accounts_response(b"alt0")):
            with pytest.raises(LookupTableResolutionError) as exc_info:
                await client.get_address_lookup_table_accounts(alt_addresses)

        assert exc_info.value.address == alt_addresses[1]

    @pytest.mark.asyncio
    async def test_resolve_invalid_address(self, client):
        with patch.object(client.client, 'get_multiple_accounts') as mock_get:
            with pytest.raises(LookupTableResolutionError, match="not-a-pubkey"):
                await client.get_address_lookup_table_accounts(["not-a-pubkey"])

        mock_get.assert_not_called()

    @pytest.mark.asyncio
    async def test_resolve_rpc_error(self, client, alt_addresses):
        with patch.object(client.client, 'get_multiple_accounts', side_effect=Exception("RPC error")):
            with pytest.raises(LookupTableResolutionError, match="RPC error"):
                await client.get_address_lookup_table_accounts(alt_addresses)

    @pytest.mark.asyncio
    async def test_resolve_undecodable_data(self, client, alt_addresses):
        """Account data that is not an ALT fails resolution for that address."""
        response = _accounts_response(b"\x00", b"\x00", b"\x00")

        with patch.object(client.client, 'get_multiple_accounts', return_value=response):
            with pytest.raises(LookupTableResolutionError) as exc_info:
                await client.get_address_lookup_table_accounts(alt_addresses)

        assert exc_info.value.address == alt_addresses[0]

    @pytest.mark.asyncio
    async def test_resolve_real_table_feeds_assembly(self, client):
        """Real ALT account bytes decode and compile into a v0 table lookup."""
        table_key = Pubkey.new_unique()
        pool_account = Pubkey.new_unique()
        table_contents = [Pubkey.new_unique(), pool_account]
        response = _accounts_response(_lookup_table_data(table_contents))

        with patch.object(client.client, 'get_multiple_accounts', return_value=response):
            alt_accounts = await client.get_address_lookup_table_accounts([str(table_key)])

        assert alt_accounts[0].key == table_key
        assert list(alt_accounts[0].addresses) == table_contents

        payer = Keypair()
        instruction = Instruction(
            program_id=Pubkey.new_unique(),
            accounts=[
                AccountMeta(pubkey=payer.pubkey(), is_signer=True, is_writable=True),
                AccountMeta(pubkey=pool_account, is_signer=False, is_writable=True),
            ],
            data=b"\x01"
        )
        message = assemble_transaction(payer.pubkey(), Hash.new_unique(), [instruction], alt_accounts)

        assert len(message.address_table_lookups) == 1
        assert message.address_table_lookups[0].account_key == table_key
        assert list(message.address_table_lookups[0].writable_indexes) == [1]
        assert pool_account not in message.account_keys

    def test_account_data_bytes_formats(self):
        """Account data is normalized from bytes, base64 string and list forms."""
        raw = b"\x01\x02\x03"
        encoded = base64.b64encode(raw).decode()

        assert _account_data_bytes(raw) == raw
        assert _account_data_bytes(bytearray(raw)) == raw
        assert _account_data_bytes(encoded) == raw
        assert _account_data_bytes([encoded, "base64"]) == raw

        with pytest.raises(TypeError):
            _account_data_bytes(123)

    @pytest.mark.asyncio
    async def test_get_latest_blockhash_success(self, client, latest_blockhash):
        mock_response = MagicMock()
        mock_response.value = latest_blockhash

        with patch.object(client.client, 'get_latest_blockhash', return_value=mock_response):
            result = await client.get_latest_blockhash()

        assert result.blockhash == latest_blockhash.blockhash
        assert result.last_valid_block_height == 250_000_000

    @pytest.mark.asyncio
    async def test_get_latest_blockhash_failure(self, client):
        with patch.object(client.client, 'get_latest_blockhash', side_effect=Exception("RPC error")):
            with pytest.raises(BlockhashFetchError, match="RPC error"):
                await client.get_latest_blockhash()

    @pytest.mark.asyncio
    async def test_simulate_success(self, client):
        """Simulation runs with signature verification and returns logs."""
        mock_sim = MagicMock(err=None, logs=["Program log: test"], units_consumed=1000)
        mock_tx = MagicMock()

        with patch.object(client.client, 'simulate_transaction', return_value=MagicMock(value=mock_sim)) as mock_simulate:
            result = await client.simulate_versioned_transaction(mock_tx)

        assert isinstance(result, SimulationResult)
        assert result.succeeded
        assert result.logs == ["Program log: test"]
        assert result.units_consumed == 1000
        assert mock_simulate.call_args[0][0] is mock_tx
        assert mock_simulate.call_args[1]["sig_verify"] is True

    @pytest.mark.asyncio
    async def test_simulate_with_error(self, client):
        """An on-chain simulation error is returned, not raised."""
        mock_sim = MagicMock(err={"InstructionError": [0, {"Custom": 1}]}, logs=None, units_consumed=0)

        with patch.object(client.client, 'simulate_transaction', return_value=MagicMock(value=mock_sim)):
            result = await client.simulate_versioned_transaction(MagicMock())

        assert not result.succeeded
        assert result.logs == []

    def test_raise_for_error_carries_err_and_logs(self):
        err = {"InstructionError": [0, {"Custom": 6001}]}
        result = SimulationResult(err=err, logs=["Program log: slippage exceeded"])

        with pytest.raises(SimulationError) as exc_info:
            result.raise_for_error()

        assert exc_info.value.err == err
        assert exc_info.value.logs == ["Program log: slippage exceeded"]
        assert "6001" in str(exc_info.value)

    def test_raise_for_error_noop_on_success(self):
        SimulationResult(err=None, logs=["Program log: ok"]).raise_for_error()

    @pytest.mark.asyncio
    async def test_simulate_transport_failure(self, client):
        with patch.object(client.client, 'simulate_transaction', side_effect=Exception("RPC error")):
            with pytest.raises(SimulationError, match="RPC error"):
                await client.simulate_versioned_transaction(MagicMock())

    @pytest.mark.asyncio
    async def test_send_success_with_preflight(self, client):
        """Send keeps preflight checks on and returns the signature."""
        sig = Signature.new_unique()

        with patch.object(client.client, 'send_transaction', return_value=MagicMock(value=sig)) as mock_send:
            result = await client.send_versioned_transaction(MagicMock())

        assert result == sig
        mock_send.assert_called_once()
        opts = mock_send.call_args[1]["opts"]
        assert opts.skip_preflight is False

    @pytest.mark.asyncio
    async def test_send_failure_not_retried(self, client):
        with patch.object(client.client, 'send_transaction', side_effect=Exception("node unhealthy")) as mock_send:
            with pytest.raises(SendError, match="node unhealthy"):
                await client.send_versioned_transaction(MagicMock())

        mock_send.assert_called_once()

    @pytest.mark.asyncio
    async def test_send_no_signature(self, client):
        with patch.object(client.client, 'send_transaction', return_value=MagicMock(value=None)):
            with pytest.raises(SendError, match="no signature"):
                await client.send_versioned_transaction(MagicMock())

    @pytest.mark.asyncio
    async def test_confirm_success(self, client, latest_blockhash):
        """Confirmation uses 'confirmed' and the assembly-time last valid block height."""
        sig = Signature.new_unique()
        response = MagicMock(value=[MagicMock(err=None)])

        with patch.object(client.client, 'confirm_transaction', return_value=response) as mock_confirm:
            await client.confirm_transaction(sig, latest_blockhash)

        assert mock_confirm.call_args[0][0] == sig
        assert mock_confirm.call_args[1]["commitment"] == Confirmed
        assert mock_confirm.call_args[1]["last_valid_block_height"] == latest_blockhash.last_valid_block_height

    @pytest.mark.asyncio
    async def test_confirm_on_chain_error(self, client, latest_blockhash):
        sig = Signature.new_unique()
        response = MagicMock(value=[MagicMock(err={"InstructionError": [1, "Custom"]})])

        with patch.object(client.client, 'confirm_transaction', return_value=response):
            with pytest.raises(ConfirmationError) as exc_info:
                await client.confirm_transaction(sig, latest_blockhash)

        assert exc_info.value.signature == str(sig)
        assert exc_info.value.err == {"InstructionError": [1, "Custom"]}

    @pytest.mark.asyncio
    async def test_confirm_expired(self, client, latest_blockhash):
        """Expiry or transport failure is distinct from an on-chain error."""
        with patch.object(client.client, 'confirm_transaction', side_effect=Exception("block height exceeded")):
            with pytest.raises(UnconfirmedTransactionError, match="block height exceeded"):
                await client.confirm_transaction(Signature.new_unique(), latest_blockhash)

    @pytest.mark.asyncio
    async def test_confirm_no_status(self, client, latest_blockhash):
        with patch.object(client.client, 'confirm_transaction', return_value=MagicMock(value=[None])):
            with pytest.raises(UnconfirmedTransactionError):
                await client.confirm_transaction(Signature.new_unique(), latest_blockhash)

    @pytest.mark.asyncio
    async def test_close(self, client):
        with patch.object(client.client, 'close') as mock_close:
            await client.close()
        mock_close.assert_awaited_once()
