# PATH: tests/integration/test_scenario.py
"""
Scenario replay through the full stack.

SimulationEngine -> StateReader -> InMemoryStateSource, with each
simulated result booked back into the ledger before the next action.
Deterministic, no network.
"""

import asyncio

import pytest

from core.constants import HEALTH_FACTOR_MAX, InterestRateMode
from lending.memory import InMemoryStateSource
from lending.simulator import SimulationEngine
from lending.state_reader import StateReader
from lending.tx_builder import TxPayloadBuilder
from lending import abi

USER = "0x1234567890123456789012345678901234567890"
ASSET = "0x2791bca1f2de4661ed88a30c99a7a9449aa84174"
POOL = "0x794a61358d6845594f94dc1db02a252b5b4814ad"

pytestmark = pytest.mark.integration


async def step(engine, source, action, amount, mode=InterestRateMode.VARIABLE):
    result = await engine.simulate(action, USER, ASSET, amount, mode)
    source.apply(result)
    return result.expected_outcome


class TestSequentialReplay:
    """supply -> withdraw -> borrow -> repay, each on the updated ledger."""

    @pytest.mark.asyncio
    async def test_sequence(self, engine, memory_source):
        supply = await step(engine, memory_source, "supply", 5_000_000)
        assert supply.new_collateral_value == "25000000"
        assert supply.new_health_factor == "2656250000000000000"

        withdraw = await step(engine, memory_source, "withdraw", 7_000_000)
        assert withdraw.actual_withdraw_amount == "7000000"
        assert withdraw.new_collateral_value == "18000000"
        # 18 * 0.85 / 8
        assert withdraw.new_health_factor == "1912500000000000000"
        assert withdraw.would_cause_liquidation is False

        borrow = await step(engine, memory_source, "borrow", 3_000_000)
        assert borrow.can_borrow is True
        assert borrow.new_total_debt == "11000000"
        # 18 * 0.85 / 11
        assert borrow.new_health_factor == "1390909090909090909"

        repay = await step(engine, memory_source, "repay", 5_000_000)
        assert repay.actual_repay_amount == "5000000"
        assert repay.new_total_debt == "6000000"
        assert repay.debt_fully_repaid is False
        # 18 * 0.85 / 6
        assert repay.new_health_factor == "2550000000000000000"

        ledger = memory_source.snapshot()
        assert ledger["user_reserve"]["current_a_token_balance"] == 18_000_000
        assert ledger["user_reserve"]["current_variable_debt"] == 6_000_000
        assert ledger["account"]["total_collateral_base"] == 18_000_000
        assert ledger["account"]["total_debt_base"] == 6_000_000
        # 8 + 4 (supply at 80%) - 5.6 (withdraw) - 3 (borrow) + 5 (repay)
        assert ledger["account"]["available_borrows_base"] == 8_400_000
        assert ledger["account"]["health_factor"] == 2_550_000_000_000_000_000
        # Four reads per simulation
        assert memory_source.reads == 16

    @pytest.mark.asyncio
    async def test_stable_leg_round_trip(self, engine, memory_source):
        borrow = await step(engine, memory_source, "borrow", 2_000_000, InterestRateMode.STABLE)
        assert borrow.borrow_rate == str(55 * 10**24)
        assert memory_source.user_reserve["current_stable_debt"] == 2_000_000

        repay = await step(engine, memory_source, "repay", 5_000_000, InterestRateMode.STABLE)
        assert repay.actual_repay_amount == "2000000"
        assert repay.debt_fully_repaid is True
        assert repay.new_total_debt == "8000000"
        assert memory_source.user_reserve["current_stable_debt"] == 0
        assert memory_source.user_reserve["current_variable_debt"] == 8_000_000

    @pytest.mark.asyncio
    async def test_full_exit(self, engine, memory_source):
        repay = await step(engine, memory_source, "repay", 20_000_000)
        assert repay.new_health_factor == str(HEALTH_FACTOR_MAX)

        withdraw = await step(engine, memory_source, "withdraw", 20_000_000)
        assert withdraw.new_collateral_value == "0"
        assert withdraw.new_health_factor == str(HEALTH_FACTOR_MAX)
        assert withdraw.would_cause_liquidation is False

    @pytest.mark.asyncio
    async def test_reset(self, engine, memory_source):
        await step(engine, memory_source, "borrow", 1_000_000)
        memory_source.reset()
        assert memory_source.account["total_debt_base"] == 8_000_000
        assert memory_source.reads == 0


class TestExcessiveAmounts:
    """Oversized requests are clamped, never rejected."""

    @pytest.mark.asyncio
    async def test_withdraw_more_than_balance(self, engine):
        result = await engine.simulate_withdraw(USER, ASSET, 50_000_000)
        outcome = result.expected_outcome
        assert outcome.actual_withdraw_amount == "20000000"
        assert outcome.would_cause_liquidation is True
        assert outcome.slippage_bps == "6000"

    @pytest.mark.asyncio
    async def test_borrow_more_than_headroom(self, engine):
        result = await engine.simulate_borrow(USER, ASSET, 15_000_000)
        outcome = result.expected_outcome
        assert outcome.can_borrow is False
        assert outcome.actual_borrow_amount == "8000000"

    @pytest.mark.asyncio
    async def test_repay_more_than_debt(self, engine):
        result = await engine.simulate_repay(USER, ASSET, 20_000_000)
        outcome = result.expected_outcome
        assert outcome.actual_repay_amount == "8000000"
        assert outcome.debt_fully_repaid is True
        assert outcome.new_health_factor == str(HEALTH_FACTOR_MAX)

    @pytest.mark.asyncio
    async def test_concurrent_simulations_read_independently(self):
        source = InMemoryStateSource()
        engine = SimulationEngine(StateReader(source))

        results = await asyncio.gather(
            engine.simulate_supply(USER, ASSET, 5_000_000),
            engine.simulate_withdraw(USER, ASSET, 50_000_000),
            engine.simulate_borrow(USER, ASSET, 15_000_000),
            engine.simulate_repay(USER, ASSET, 20_000_000),
        )

        assert [r.action.value for r in results] == ["supply", "withdraw", "borrow", "repay"]
        assert source.reads == 16


class TestPayloadForClampedAmount:
    """The payload built from an outcome carries the clamped amount."""

    @pytest.mark.asyncio
    async def test_borrow_payload(self, engine):
        result = await engine.simulate_borrow(USER, ASSET, 15_000_000)
        payload = TxPayloadBuilder(POOL).build_borrow(
            ASSET,
            int(result.expected_outcome.actual_borrow_amount),
            result.interest_rate_mode,
            USER,
        )

        decoded = abi.decode_call_args(payload.function_signature, payload.data)
        assert decoded[1] == 8_000_000
        assert decoded[2] == int(InterestRateMode.VARIABLE)
