"""
txbuilder CLI - quote fees, build, sign and broadcast transfers.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import typer
from loguru import logger

from txbuilder.constants import DEFAULT_FEE_RATE
from txbuilder.errors import TxBuilderError
from txbuilder.models import FeePriority, TransactionResult, TransferRequest

app = typer.Typer(
    name="txbuilder",
    help="Multi-protocol transaction builder",
    add_completion=False,
)


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def _print_result(result: TransactionResult) -> None:
    typer.echo(result.model_dump_json(indent=2))


@app.command("fee-quote")
def fee_quote(
    amount: int = typer.Option(0, "--amount", "-a", help="Transfer amount in sats"),
    fee_rate: float = typer.Option(DEFAULT_FEE_RATE, "--fee-rate", "-r", help="sat/vB"),
    inputs: int = typer.Option(1, "--inputs", help="Number of inputs"),
    outputs: int = typer.Option(2, "--outputs", help="Payment and change outputs"),
    flat: bool = typer.Option(False, "--flat", help="Quote the flat protocol fee"),
    log_level: str = typer.Option("WARNING", "--log-level", "-l"),
) -> None:
    """Quote the protocol fee and network fee without touching the network."""
    from txbuilder.address import is_valid_address
    from txbuilder.config import get_settings
    from txbuilder.estimator import estimate_fee, estimate_size
    from txbuilder.fees import FeePolicy

    setup_logging(log_level)
    settings = get_settings()

    try:
        policy = FeePolicy(
            settings.utxo_fee_schedule(),
            lambda address: is_valid_address(address, settings.network),
        )
    except TxBuilderError as e:
        logger.error(f"Invalid fee configuration: {e}")
        raise typer.Exit(1)

    decision = policy.flat() if flat else policy.percentage(amount)
    num_outputs = outputs + (1 if decision.required else 0)
    size = estimate_size(inputs, num_outputs)
    network_fee = estimate_fee(inputs, num_outputs, fee_rate)

    status = "required" if decision.required else "waived"
    typer.echo(f"Protocol fee: {decision.amount} sats ({decision.mode.value}, {status})")
    typer.echo(f"Network fee:  {network_fee} sats ({size} vB at {fee_rate} sat/vB)")
    typer.echo(f"Total fee:    {network_fee + decision.charged} sats")


@app.command("send-btc")
def send_btc(
    recipient: str = typer.Option(..., "--recipient", "-t", help="Destination address"),
    amount: int = typer.Option(..., "--amount", "-a", help="Amount in sats"),
    wif: str = typer.Option(..., "--wif", envvar="TXBUILDER_WIF", help="Sender WIF key"),
    fee_rate: float | None = typer.Option(None, "--fee-rate", "-r", help="sat/vB"),
    priority: FeePriority | None = typer.Option(None, "--priority", "-p"),
    broadcast: bool = typer.Option(False, "--broadcast", help="Broadcast after signing"),
    log_level: str = typer.Option("INFO", "--log-level", "-l"),
) -> None:
    """Send bitcoin from the P2WPKH address of a WIF key."""
    from txbuilder.models import NativeTransfer

    setup_logging(log_level)
    asyncio.run(_run_utxo(NativeTransfer(recipient, amount), wif, fee_rate or priority, broadcast))


@app.command()
def inscribe(
    content_type: str = typer.Option(..., "--content-type", "-c", help="MIME type"),
    file: Path | None = typer.Option(None, "--file", "-f", help="File to inscribe"),
    text: str | None = typer.Option(None, "--text", help="Text to inscribe"),
    wif: str = typer.Option(..., "--wif", envvar="TXBUILDER_WIF", help="Sender WIF key"),
    fee_rate: float | None = typer.Option(None, "--fee-rate", "-r", help="sat/vB"),
    priority: FeePriority | None = typer.Option(None, "--priority", "-p"),
    broadcast: bool = typer.Option(False, "--broadcast", help="Broadcast after signing"),
    log_level: str = typer.Option("INFO", "--log-level", "-l"),
) -> None:
    """Create a data inscription from a file or text."""
    from txbuilder.models import InscriptionRequest

    setup_logging(log_level)

    if file is not None:
        if not file.exists():
            logger.error(f"File not found: {file}")
            raise typer.Exit(1)
        content: bytes | str = file.read_bytes()
    elif text is not None:
        content = text
    else:
        logger.error("Content required. Use --file or --text")
        raise typer.Exit(1)

    request = InscriptionRequest(content_type, content)
    asyncio.run(_run_utxo(request, wif, fee_rate or priority, broadcast))


async def _run_utxo(
    request: TransferRequest, wif: str, fee_hint: float | FeePriority | None, broadcast: bool
) -> None:
    from txbuilder.address import is_valid_address
    from txbuilder.backends.mempool import MempoolBackend
    from txbuilder.builder import UtxoTransactionBuilder
    from txbuilder.config import get_settings
    from txbuilder.fees import FeePolicy
    from txbuilder.signing import P2WPKHSigner

    settings = get_settings()
    signer = P2WPKHSigner(settings.network)
    backend = MempoolBackend(
        base_url=settings.mempool_url, network=settings.network, timeout=settings.http_timeout
    )

    try:
        policy = FeePolicy(
            settings.utxo_fee_schedule(),
            lambda address: is_valid_address(address, settings.network),
        )
        builder = UtxoTransactionBuilder(
            backend,
            signer,
            policy,
            network=settings.network,
            default_priority=settings.default_fee_priority,
        )
        sender = signer.address_for(wif)
        logger.info(f"Sender: {sender}")

        result = await builder.build(request, sender, wif, fee_hint, submit=broadcast)
        _print_result(result)
        if broadcast:
            typer.echo(f"Broadcast: {result.txid}")

    except TxBuilderError as e:
        logger.error(f"Transaction failed: {e}")
        raise typer.Exit(1)
    finally:
        await backend.close()


@app.command("send-eth")
def send_eth(
    recipient: str = typer.Option(..., "--recipient", "-t", help="Destination address"),
    value: int = typer.Option(..., "--value", "-v", help="Amount in wei"),
    key: str = typer.Option(..., "--key", envvar="TXBUILDER_ETH_KEY", help="Hex private key"),
    rpc_url: str | None = typer.Option(None, "--rpc-url", envvar="TXBUILDER_EVM_RPC_URL"),
    submit: bool = typer.Option(False, "--submit", help="Submit primary and fee transactions"),
    log_level: str = typer.Option("INFO", "--log-level", "-l"),
) -> None:
    """Send ether with a paired protocol-fee transaction."""
    setup_logging(log_level)
    asyncio.run(_send_eth(recipient, value, key, rpc_url, submit))


async def _send_eth(
    recipient: str, value: int, key: str, rpc_url: str | None, submit: bool
) -> None:
    from txbuilder.account import AccountTransactionBuilder, EthAccountSigner
    from txbuilder.address import is_valid_account_address
    from txbuilder.backends.evm_rpc import JsonRpcBackend
    from txbuilder.config import get_settings
    from txbuilder.fees import FeePolicy

    settings = get_settings()
    backend = JsonRpcBackend(rpc_url or settings.evm_rpc_url, timeout=settings.http_timeout)
    signer = EthAccountSigner()

    try:
        policy = FeePolicy(settings.account_fee_schedule(), is_valid_account_address)
        builder = AccountTransactionBuilder(backend, signer, policy, chain_id=settings.chain_id)
        sender = signer.address_for(key)
        logger.info(f"Sender: {sender}")

        result = await builder.build_native_transfer(sender, recipient, value, key)
        _print_result(result)

        if submit:
            receipt = await builder.submit_with_fee(result)
            typer.echo(f"Submitted: {receipt.txid}")
            if receipt.fee_txid:
                typer.echo(f"Fee transaction: {receipt.fee_txid}")

    except TxBuilderError as e:
        logger.error(f"Transaction failed: {e}")
        raise typer.Exit(1)
    finally:
        await backend.close()


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
