"""
mcwallet CLI - Query a node through the coin operators.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import TypeVar

import typer
from loguru import logger

from mcwallet.coins import Coin, ethereum, skycoin
from mcwallet.config import get_settings, setup_logging
from mcwallet.models import AddressBase, WalletBase
from mcwallet.operators.base import OperatorContext
from mcwallet.operators.registry import OperatorService, OperatorSet
from mcwallet.rpc import EthRpcClient, FiberApiClient
from mcwallet.wallets import InMemoryWalletSource

T = TypeVar("T")

app = typer.Typer(
    name="mcwallet",
    help="Multi-coin wallet operators",
    add_completion=False,
)


class Family(str, Enum):
    fiber = "fiber"
    eth = "eth"


def build_coin(
    family: Family,
    node_url: str | None,
    local: bool,
    decimals: int | None = None,
    confirmations: int | None = None,
) -> Coin:
    if family == Family.eth:
        coin = ethereum(node_url or "http://127.0.0.1:8545", is_local=local)
    else:
        coin = skycoin(node_url or "http://127.0.0.1:6420", is_local=local)

    update: dict[str, int] = {}
    if decimals is not None:
        update["decimals"] = decimals
    if confirmations is not None:
        update["confirmations_needed"] = confirmations
    return coin.model_copy(update=update) if update else coin


async def run_with_operators(
    coin: Coin,
    wallets: list[WalletBase],
    action: Callable[[OperatorSet], Awaitable[T]],
    timeout: float,
) -> T:
    """Start the operators for coin, run action with them and dispose everything."""
    settings = get_settings()
    context = OperatorContext(
        eth_rpc=EthRpcClient(timeout=settings.rpc_timeout),
        fiber_api=FiberApiClient(timeout=settings.rpc_timeout),
        wallets=InMemoryWalletSource(wallets),
        settings=settings,
    )
    service = OperatorService(context)
    try:
        operators = service.switch_coin(coin)
        return await asyncio.wait_for(action(operators), timeout)
    finally:
        service.close()
        await context.close()


def _run(coro: Awaitable[T]) -> T:
    try:
        return asyncio.run(coro)
    except TimeoutError:
        logger.error("The node did not reply in time")
        raise typer.Exit(1) from None


@app.command()
def balance(
    addresses: list[str] = typer.Argument(..., help="Addresses to check"),
    family: Family = typer.Option(Family.fiber, "--family", "-c", help="Coin family"),
    node_url: str | None = typer.Option(None, "--node-url", "-u", envvar="MCWALLET_NODE_URL"),
    local: bool = typer.Option(True, "--local/--remote", help="Whether the node is local"),
    decimals: int | None = typer.Option(None, "--decimals"),
    confirmations: int | None = typer.Option(None, "--confirmations", min=1),
    timeout: float = typer.Option(60.0, "--timeout", "-t"),
    log_level: str = typer.Option("WARNING", "--log-level", "-l"),
) -> None:
    """Show the confirmed and predicted balance of addresses."""
    setup_logging(log_level)

    coin = build_coin(family, node_url, local, decimals, confirmations)
    wallet = WalletBase(
        id="cli",
        label="cli",
        coin=coin.coin_name,
        addresses=[AddressBase(address=a) for a in addresses],
    )

    async def get_balance(operators: OperatorSet):
        balance_operator = operators.balance_and_outputs
        await balance_operator.first_full_update_made.first(lambda done: done)
        return balance_operator.saved_balance_data[wallet.id]

    result = _run(run_with_operators(coin, [wallet], get_balance, timeout))

    show_hours = coin.features.coin_hours
    for address in addresses:
        address_balance = result.addresses[address]
        line = (
            f"{address}: {address_balance.current} {coin.coin_symbol} confirmed, "
            f"{address_balance.predicted} {coin.coin_symbol} predicted"
        )
        if show_hours:
            line += f", {address_balance.predicted_hours} {coin.hours_name}"
        typer.echo(line)

    typer.echo(f"Total: {result.current} confirmed, {result.predicted} predicted")
    if result.has_pending_transactions:
        typer.echo("There are pending transactions")


@app.command()
def sync_status(
    family: Family = typer.Option(Family.fiber, "--family", "-c"),
    node_url: str | None = typer.Option(None, "--node-url", "-u", envvar="MCWALLET_NODE_URL"),
    local: bool = typer.Option(True, "--local/--remote"),
    timeout: float = typer.Option(60.0, "--timeout", "-t"),
    log_level: str = typer.Option("WARNING", "--log-level", "-l"),
) -> None:
    """Show the synchronization state of the node."""
    setup_logging(log_level)
    coin = build_coin(family, node_url, local)

    async def get_progress(operators: OperatorSet):
        return await operators.blockchain.progress.first()

    progress = _run(run_with_operators(coin, [], get_progress, timeout))
    if progress.synchronized:
        typer.echo("Synchronized")
    else:
        typer.echo(f"Synchronizing: block {progress.current_block} of {progress.highest_block}")


@app.command()
def node_version(
    family: Family = typer.Option(Family.fiber, "--family", "-c"),
    node_url: str | None = typer.Option(None, "--node-url", "-u", envvar="MCWALLET_NODE_URL"),
    local: bool = typer.Option(True, "--local/--remote"),
    timeout: float = typer.Option(60.0, "--timeout", "-t"),
    log_level: str = typer.Option("WARNING", "--log-level", "-l"),
) -> None:
    """Show the version of the node."""
    setup_logging(log_level)
    coin = build_coin(family, node_url, local)

    async def get_version(operators: OperatorSet):
        await operators.node.remote_node_data_updated.first(lambda updated: updated)
        return operators.node.node_version

    typer.echo(_run(run_with_operators(coin, [], get_version, timeout)))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
