#!/usr/bin/env python3
"""
run_simulation.py - CLI entrypoint for pool action simulation.

Usage:
    python run_simulation.py --action supply --user 0x... --asset USDC --amount 5000000
    python run_simulation.py --action borrow --asset USDC --amount 15000000 --demo
    python run_simulation.py --action repay --mode stable --user 0x... --asset DAI --amount 1000000000000000000 --estimate-gas
"""

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

import click

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent))

from chains.providers import RPCProvider
from config import DEFAULT_NETWORK, MarketConfig, get_market_config
from core.constants import Action, InterestRateMode
from core.exceptions import LendSimError
from core.logging import get_logger, set_global_context, setup_logging
from core.models import SimulationResult, TxPayload
from lending.memory import InMemoryStateSource
from lending.simulator import SimulationEngine
from lending.state_reader import RPCStateSource, StateReader
from lending.tx_builder import TxPayloadBuilder, estimate_gas

logger = get_logger("lendsim.cli")

DEMO_USER = "0x1234567890123456789012345678901234567890"


def resolve_asset(market: MarketConfig, asset: str) -> str:
    """Symbol from the market config, or a raw address."""
    listed = market.get_asset(asset)
    return listed.address if listed else asset


def build_payload(builder: TxPayloadBuilder, result: SimulationResult, user: str) -> TxPayload:
    """Payload for the clamped amount the simulation says would go through."""
    outcome = result.expected_outcome
    if result.action == Action.SUPPLY:
        return builder.build_supply(result.asset, int(outcome.a_tokens_received), user)
    if result.action == Action.WITHDRAW:
        return builder.build_withdraw(result.asset, int(outcome.actual_withdraw_amount), user)
    if result.action == Action.BORROW:
        return builder.build_borrow(
            result.asset, int(outcome.actual_borrow_amount), result.interest_rate_mode, user
        )
    return builder.build_repay(
        result.asset, int(outcome.actual_repay_amount), result.interest_rate_mode, user
    )


async def run(
    market: MarketConfig,
    action: str,
    user: str,
    asset: str,
    amount: int,
    mode: InterestRateMode,
    demo: bool,
    with_gas: bool,
) -> dict[str, Any]:
    """Simulate one action and build its payload."""
    builder = TxPayloadBuilder(market.pool)

    async with RPCProvider(market.chain_id, market.rpc_urls, market.timeout_seconds) as provider:
        source = InMemoryStateSource() if demo else RPCStateSource(provider, market)
        engine = SimulationEngine(StateReader(source))

        result = await engine.simulate(action, user, asset, amount, mode)
        payload = build_payload(builder, result, user)

        output: dict[str, Any] = {
            "simulation": result.to_dict(),
            "transaction": payload.to_dict(),
        }

        if with_gas:
            try:
                output["gas_estimate"] = str(await estimate_gas(provider, payload, user))
            except LendSimError as e:
                # Gas failures never invalidate the simulation itself
                output["gas_estimate"] = None
                output["gas_error"] = e.to_dict()

        return output


@click.command()
@click.option(
    "--network",
    "-n",
    default=DEFAULT_NETWORK,
    help="Market from config/markets.yaml",
)
@click.option(
    "--action",
    "-a",
    required=True,
    type=click.Choice([a.value for a in Action]),
    help="Pool action to simulate",
)
@click.option(
    "--user",
    "-u",
    default=DEMO_USER,
    help="Account address",
)
@click.option(
    "--asset",
    required=True,
    help="Asset symbol (from the market config) or address",
)
@click.option(
    "--amount",
    required=True,
    help="Amount in asset-native units (decimal, or 0x-prefixed hex)",
)
@click.option(
    "--mode",
    "-m",
    default="variable",
    type=click.Choice(["stable", "variable"]),
    help="Interest rate mode for borrow/repay",
)
@click.option(
    "--demo/--live",
    default=False,
    help="Use the in-memory demo position instead of RPC reads",
)
@click.option(
    "--estimate-gas",
    "with_gas",
    is_flag=True,
    default=False,
    help="Also run eth_estimateGas on the payload",
)
@click.option(
    "--log-level",
    "-l",
    default="WARNING",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=False,
    help="Use JSON log format",
)
def main(
    network: str,
    action: str,
    user: str,
    asset: str,
    amount: str,
    mode: str,
    demo: bool,
    with_gas: bool,
    log_level: str,
    json_logs: bool,
) -> None:
    """
    LENDSIM pool action simulation.

    Projects the outcome of supply / withdraw / borrow / repay and prints
    the payload that would execute it. Nothing is signed or sent.
    """
    setup_logging(level=log_level, json_format=json_logs)
    set_global_context(service="lendsim-cli", network=network)

    text = amount.strip()
    try:
        # Decimal unless 0x-prefixed; leading zeros stay decimal
        amount_units = int(text, 16) if text.lower().startswith("0x") else int(text)
    except ValueError as e:
        raise click.BadParameter(f"not an integer: {amount!r}", param_hint="--amount") from e

    try:
        market = get_market_config(network)
        rate_mode = InterestRateMode.STABLE if mode == "stable" else InterestRateMode.VARIABLE
        output = asyncio.run(
            run(
                market=market,
                action=action,
                user=user,
                asset=resolve_asset(market, asset),
                amount=amount_units,
                mode=rate_mode,
                demo=demo,
                with_gas=with_gas,
            )
        )
    except LendSimError as e:
        logger.error(
            f"Simulation failed: {e}",
            extra={"context": e.to_dict()},
        )
        click.echo(json.dumps({"error": e.to_dict()}, indent=2, default=str), err=True)
        sys.exit(1)

    click.echo(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
