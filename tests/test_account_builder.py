"""
Tests for the account-model builder and its fee-leg pairing.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest
from eth_utils import function_signature_to_4byte_selector

from txbuilder.account import AccountTransactionBuilder, EthAccountSigner
from txbuilder.account import abi
from txbuilder.errors import BroadcastError, SigningError, ValidationError
from txbuilder.fees import FeePolicy
from txbuilder.models import (
    AccountTxFields,
    AccountTxPair,
    GasOptions,
    NFTTransferOptions,
    SignedTransaction,
)

GWEI = 10**9
MAX_FEE = 22 * GWEI  # 2 * 10 gwei base + 2 gwei priority


@pytest.fixture
def fake_signer() -> MagicMock:
    signer = MagicMock()
    signer.sign.side_effect = lambda fields, key: SignedTransaction(
        encoded=f"0xraw{fields.nonce}", txid=f"0xtx{fields.nonce}"
    )
    return signer


@pytest.fixture
def builder(
    account_backend: AsyncMock, fake_signer: MagicMock, account_fee_policy: FeePolicy
) -> AccountTransactionBuilder:
    return AccountTransactionBuilder(account_backend, fake_signer, account_fee_policy, chain_id=1)


def signed_fields(signer: MagicMock) -> list[AccountTxFields]:
    return [call.args[0] for call in signer.sign.call_args_list]


class TestNativeTransfer:
    @pytest.mark.asyncio
    async def test_fee_leg_pairing(
        self,
        builder: AccountTransactionBuilder,
        account_backend: AsyncMock,
        fake_signer: MagicMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
        eth_collector: str,
    ) -> None:
        """1 ETH at 0.5%: recipient gets 0.995 ETH, collector 0.005 ETH at nonce + 1."""
        result = await builder.build_native_transfer(
            eth_sender, eth_recipient, 10**18, eth_sender_key
        )

        primary, fee = signed_fields(fake_signer)
        assert primary.nonce == 7
        assert primary.to == eth_recipient
        assert primary.value == 10**18 - 5 * 10**15
        assert primary.gas_limit == 21_000
        assert primary.data == b""

        assert fee.nonce == 8
        assert fee.to == eth_collector
        assert fee.value == 5 * 10**15
        assert fee.gas_limit == 21_000
        assert fee.max_fee_per_gas == primary.max_fee_per_gas == MAX_FEE
        assert fee.max_priority_fee_per_gas == primary.max_priority_fee_per_gas == 2 * GWEI

        assert result.txid == "0xtx7"
        assert result.fee_leg is not None
        assert result.fee_leg.txid == "0xtx8"
        assert result.fee_leg.value == 5 * 10**15
        assert result.network_fee == 2 * 21_000 * MAX_FEE
        assert result.protocol_fee == 5 * 10**15
        assert result.total_fee == result.network_fee + result.protocol_fee

    @pytest.mark.asyncio
    async def test_single_snapshot(
        self,
        builder: AccountTransactionBuilder,
        account_backend: AsyncMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
    ) -> None:
        await builder.build_native_transfer(eth_sender, eth_recipient, 10**18, eth_sender_key)

        account_backend.get_transaction_count.assert_awaited_once_with(eth_sender)
        account_backend.get_gas_market.assert_awaited_once()
        account_backend.estimate_gas.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_waived_fee_has_no_leg(
        self,
        builder: AccountTransactionBuilder,
        fake_signer: MagicMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
    ) -> None:
        # 0.5% of 100 wei floors to 0
        result = await builder.build_native_transfer(eth_sender, eth_recipient, 100, eth_sender_key)

        assert fake_signer.sign.call_count == 1
        assert signed_fields(fake_signer)[0].value == 100
        assert result.fee_leg is None
        assert result.protocol_fee == 0
        assert result.network_fee == 21_000 * MAX_FEE

    @pytest.mark.asyncio
    async def test_gas_price_override(
        self,
        builder: AccountTransactionBuilder,
        fake_signer: MagicMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
    ) -> None:
        gas = GasOptions(max_fee_per_gas=50 * GWEI, max_priority_fee_per_gas=3 * GWEI)
        await builder.build_native_transfer(
            eth_sender, eth_recipient, 10**18, eth_sender_key, gas=gas
        )

        for fields in signed_fields(fake_signer):
            assert fields.max_fee_per_gas == 50 * GWEI
            assert fields.max_priority_fee_per_gas == 3 * GWEI


class TestTokenTransfers:
    @pytest.mark.asyncio
    async def test_erc20(
        self,
        builder: AccountTransactionBuilder,
        account_backend: AsyncMock,
        fake_signer: MagicMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
        eth_collector: str,
        token_contract: str,
    ) -> None:
        result = await builder.build_token_transfer(
            eth_sender, token_contract, eth_recipient, 500, eth_sender_key
        )

        primary, fee = signed_fields(fake_signer)
        assert primary.to == token_contract
        assert primary.value == 0
        assert primary.data[:4].hex() == "a9059cbb"
        assert primary.data == abi.erc20_transfer(eth_recipient, 500)
        assert primary.gas_limit == 60_000
        account_backend.estimate_gas.assert_awaited_once_with(
            eth_sender, token_contract, primary.data, 0
        )

        assert fee.to == eth_collector
        assert fee.value == 10**15
        assert result.network_fee == (60_000 + 21_000) * MAX_FEE
        assert result.metadata["standard"] == "erc20"
        assert result.metadata["amount"] == 500

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "options,selector",
        [
            (None, "23b872dd"),
            (NFTTransferOptions(safe=True), "42842e0e"),
            (NFTTransferOptions(safe=True, data=b"\x01\x02"), "b88d4fde"),
        ],
    )
    async def test_erc721_variants(
        self,
        builder: AccountTransactionBuilder,
        fake_signer: MagicMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
        token_contract: str,
        options: NFTTransferOptions | None,
        selector: str,
    ) -> None:
        result = await builder.build_nft_transfer(
            eth_sender, token_contract, eth_recipient, 42, eth_sender_key, options
        )

        primary = signed_fields(fake_signer)[0]
        assert primary.data[:4].hex() == selector
        assert result.metadata["token_id"] == 42

    @pytest.mark.asyncio
    async def test_erc721_gas_limit_skips_estimate(
        self,
        builder: AccountTransactionBuilder,
        account_backend: AsyncMock,
        fake_signer: MagicMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
        token_contract: str,
    ) -> None:
        await builder.build_nft_transfer(
            eth_sender,
            token_contract,
            eth_recipient,
            1,
            eth_sender_key,
            NFTTransferOptions(gas_limit=100_000),
        )

        account_backend.estimate_gas.assert_not_awaited()
        primary, fee = signed_fields(fake_signer)
        assert primary.gas_limit == 100_000
        assert fee.gas_limit == 21_000

    @pytest.mark.asyncio
    async def test_erc1155(
        self,
        builder: AccountTransactionBuilder,
        fake_signer: MagicMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
        token_contract: str,
    ) -> None:
        result = await builder.build_multi_token_transfer(
            eth_sender, token_contract, eth_recipient, 7, 3, eth_sender_key
        )

        primary = signed_fields(fake_signer)[0]
        assert primary.data[:4].hex() == "f242432a"
        assert result.metadata == {
            "standard": "erc1155",
            "contract": token_contract,
            "recipient": eth_recipient,
            "token_id": 7,
            "amount": 3,
        }


class TestValidation:
    @pytest.mark.asyncio
    async def test_invalid_recipient(
        self,
        builder: AccountTransactionBuilder,
        account_backend: AsyncMock,
        eth_sender: str,
        eth_sender_key: str,
    ) -> None:
        with pytest.raises(ValidationError, match="recipient"):
            await builder.build_native_transfer(eth_sender, "0x1234", 10**18, eth_sender_key)
        account_backend.get_transaction_count.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_contract(
        self,
        builder: AccountTransactionBuilder,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
    ) -> None:
        with pytest.raises(ValidationError, match="contract"):
            await builder.build_token_transfer(
                eth_sender, "not-a-contract", eth_recipient, 1, eth_sender_key
            )

    @pytest.mark.asyncio
    async def test_invalid_key(
        self, builder: AccountTransactionBuilder, eth_sender: str, eth_recipient: str
    ) -> None:
        with pytest.raises(ValidationError, match="private key"):
            await builder.build_native_transfer(eth_sender, eth_recipient, 10**18, "0xdead")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("value", [0, -1])
    async def test_non_positive_value(
        self,
        builder: AccountTransactionBuilder,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
        value: int,
    ) -> None:
        with pytest.raises(ValidationError):
            await builder.build_native_transfer(eth_sender, eth_recipient, value, eth_sender_key)

    def test_pair_requires_consecutive_nonces(self, eth_recipient: str) -> None:
        primary = AccountTxFields(1, 5, eth_recipient, 1, 21_000, MAX_FEE, GWEI)
        fee = AccountTxFields(1, 7, eth_recipient, 1, 21_000, MAX_FEE, GWEI)
        with pytest.raises(ValueError):
            AccountTxPair(primary=primary, fee=fee)


class TestSubmission:
    @pytest.mark.asyncio
    async def test_primary_then_fee(
        self,
        builder: AccountTransactionBuilder,
        account_backend: AsyncMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
    ) -> None:
        result = await builder.build_native_transfer(
            eth_sender, eth_recipient, 10**18, eth_sender_key
        )

        receipt = await builder.submit_with_fee(result)

        sent = [call.args[0] for call in account_backend.send_raw_transaction.await_args_list]
        assert sent == ["0xraw7", "0xraw8"]
        assert receipt.txid == "0xhash-0xraw7"
        assert receipt.fee_txid == "0xhash-0xraw8"

    @pytest.mark.asyncio
    async def test_failed_primary_skips_fee_leg(
        self,
        builder: AccountTransactionBuilder,
        account_backend: AsyncMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
    ) -> None:
        result = await builder.build_native_transfer(
            eth_sender, eth_recipient, 10**18, eth_sender_key
        )
        account_backend.send_raw_transaction.side_effect = BroadcastError("nonce too low")

        with pytest.raises(BroadcastError):
            await builder.submit_with_fee(result)
        assert account_backend.send_raw_transaction.await_count == 1

    @pytest.mark.asyncio
    async def test_submit_without_fee_leg(
        self,
        builder: AccountTransactionBuilder,
        account_backend: AsyncMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
    ) -> None:
        result = await builder.build_native_transfer(eth_sender, eth_recipient, 100, eth_sender_key)

        receipt = await builder.submit_with_fee(result)

        assert receipt.fee_txid is None
        account_backend.send_raw_transaction.assert_awaited_once_with("0xraw7")

    @pytest.mark.asyncio
    async def test_submit_primary_only(
        self,
        builder: AccountTransactionBuilder,
        account_backend: AsyncMock,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
    ) -> None:
        result = await builder.build_native_transfer(
            eth_sender, eth_recipient, 10**18, eth_sender_key
        )

        receipt = await builder.submit(result)

        assert receipt.txid == "0xhash-0xraw7"
        account_backend.send_raw_transaction.assert_awaited_once_with("0xraw7")


class TestEthAccountSigner:
    def test_signs_type2(self, eth_sender_key: str, eth_recipient: str) -> None:
        fields = AccountTxFields(
            chain_id=1,
            nonce=0,
            to=eth_recipient,
            value=10**18,
            gas_limit=21_000,
            max_fee_per_gas=MAX_FEE,
            max_priority_fee_per_gas=2 * GWEI,
        )
        signed = EthAccountSigner().sign(fields, eth_sender_key)
        assert signed.encoded.startswith("0x02")
        assert signed.txid.startswith("0x")
        assert len(signed.txid) == 66

    def test_address_for(self, eth_sender_key: str, eth_sender: str) -> None:
        assert EthAccountSigner().address_for(eth_sender_key) == eth_sender

    def test_bad_key(self, eth_recipient: str) -> None:
        fields = AccountTxFields(1, 0, eth_recipient, 1, 21_000, MAX_FEE, GWEI)
        with pytest.raises(SigningError):
            EthAccountSigner().sign(fields, "0x00")

    @pytest.mark.asyncio
    async def test_builds_with_real_signer(
        self,
        account_backend: AsyncMock,
        account_fee_policy: FeePolicy,
        eth_sender: str,
        eth_sender_key: str,
        eth_recipient: str,
    ) -> None:
        builder = AccountTransactionBuilder(
            account_backend, EthAccountSigner(), account_fee_policy, chain_id=1
        )
        result = await builder.build_native_transfer(
            eth_sender, eth_recipient, 10**18, eth_sender_key
        )
        assert result.encoded_transaction.startswith("0x02")
        assert result.fee_leg is not None
        assert result.fee_leg.txid != result.txid


class TestCalldata:
    def test_selectors(self) -> None:
        assert function_signature_to_4byte_selector(abi.ERC20_TRANSFER).hex() == "a9059cbb"
        assert (
            function_signature_to_4byte_selector(abi.ERC1155_SAFE_TRANSFER_FROM).hex()
            == "f242432a"
        )

    def test_erc20_layout(self, eth_recipient: str) -> None:
        data = abi.erc20_transfer(eth_recipient, 5)
        assert len(data) == 4 + 64
        assert data[4 + 12 : 4 + 32].hex() == eth_recipient[2:].lower()
        assert int.from_bytes(data[36:], "big") == 5
