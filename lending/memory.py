"""
lending/memory.py - In-memory StateSource.

A stateful stand-in for the chain: serves one position through the same
four reads the RPC source answers, and can apply simulated results so a
sequence of actions can be replayed without a node. Used by the demo
CLI and the integration tests.

Reads return named mappings keyed the way the contracts name their
fields, so everything still goes through StateReader normalization.
"""

import copy
from dataclasses import asdict
from typing import Any, Dict

from core.constants import BPS_DENOMINATOR, Action, InterestRateMode
from core.math import to_base_units
from core.models import (
    AccountSummary,
    ProtocolState,
    ReserveSummary,
    SimulationResult,
    UserReserveSummary,
)


def demo_state() -> ProtocolState:
    """
    A 6-decimal stablecoin position priced at 1.0.

    Base values share the asset's 6 decimals: 20.0 collateral, 8.0
    variable debt, 8.0 borrowing headroom, 85% liquidation threshold,
    80% LTV, HF 2.125.
    """
    return ProtocolState(
        account=AccountSummary(
            total_collateral_base=20_000_000,
            total_debt_base=8_000_000,
            available_borrows_base=8_000_000,
            current_liquidation_threshold=8500,
            ltv=8000,
            health_factor=2_125_000_000_000_000_000,
        ),
        reserve=ReserveSummary(
            liquidity_rate=25 * 10**24,
            variable_borrow_rate=45 * 10**24,
            stable_borrow_rate=55 * 10**24,
            liquidity_index=10**27,
            variable_borrow_index=108 * 10**25,
        ),
        user_reserve=UserReserveSummary(
            current_a_token_balance=20_000_000,
            current_stable_debt=0,
            current_variable_debt=8_000_000,
            usage_as_collateral_enabled=True,
        ),
        asset_price=10**18,
    )


class InMemoryStateSource:
    """
    Mutable single-position ledger implementing StateSource.

    Addresses are accepted and ignored: the ledger holds one user in
    one reserve.
    """

    def __init__(self, state: ProtocolState | None = None):
        self._initial = state or demo_state()
        self.reset()

    def reset(self) -> None:
        """Restore the state the source was created with."""
        self.account: Dict[str, int] = asdict(self._initial.account)
        self.reserve: Dict[str, int] = asdict(self._initial.reserve)
        self.user_reserve: Dict[str, Any] = asdict(self._initial.user_reserve)
        self.asset_price: int = self._initial.asset_price
        self.reads = 0

    # -------------------------------------------------------------------------
    # StateSource
    # -------------------------------------------------------------------------

    async def get_user_account_data(self, user: str) -> Dict[str, int]:
        self.reads += 1
        return {
            "totalCollateralBase": self.account["total_collateral_base"],
            "totalDebtBase": self.account["total_debt_base"],
            "availableBorrowsBase": self.account["available_borrows_base"],
            "currentLiquidationThreshold": self.account["current_liquidation_threshold"],
            "ltv": self.account["ltv"],
            "healthFactor": self.account["health_factor"],
        }

    async def get_reserve_data(self, asset: str) -> Dict[str, int]:
        self.reads += 1
        return {
            "currentLiquidityRate": self.reserve["liquidity_rate"],
            "currentVariableBorrowRate": self.reserve["variable_borrow_rate"],
            "currentStableBorrowRate": self.reserve["stable_borrow_rate"],
            "liquidityIndex": self.reserve["liquidity_index"],
            "variableBorrowIndex": self.reserve["variable_borrow_index"],
        }

    async def get_user_reserve_data(self, asset: str, user: str) -> Dict[str, Any]:
        self.reads += 1
        return {
            "currentATokenBalance": self.user_reserve["current_a_token_balance"],
            "currentStableDebt": self.user_reserve["current_stable_debt"],
            "currentVariableDebt": self.user_reserve["current_variable_debt"],
            "usageAsCollateralEnabled": self.user_reserve["usage_as_collateral_enabled"],
        }

    async def get_asset_price(self, asset: str) -> int:
        self.reads += 1
        return self.asset_price

    # -------------------------------------------------------------------------
    # Replay
    # -------------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of the raw ledger fields."""
        return copy.deepcopy({
            "account": self.account,
            "reserve": self.reserve,
            "user_reserve": self.user_reserve,
            "asset_price": self.asset_price,
        })

    def apply(self, result: SimulationResult) -> None:
        """
        Book a simulated action as if it had been executed.

        Uses the clamped amounts from the outcome, so replaying an
        oversized request books only what would really happen.
        """
        outcome = result.expected_outcome
        account = self.account
        position = self.user_reserve

        if result.action == Action.SUPPLY:
            amount = int(outcome.a_tokens_received)
            position["current_a_token_balance"] += amount
            account["total_collateral_base"] = int(outcome.new_collateral_value)
            account["available_borrows_base"] += self._borrow_power(amount)

        elif result.action == Action.WITHDRAW:
            amount = int(outcome.actual_withdraw_amount)
            position["current_a_token_balance"] -= amount
            account["total_collateral_base"] = int(outcome.new_collateral_value)
            account["available_borrows_base"] = max(
                0, account["available_borrows_base"] - self._borrow_power(amount)
            )

        elif result.action == Action.BORROW:
            amount = int(outcome.actual_borrow_amount)
            leg = _debt_leg(result.interest_rate_mode)
            position[leg] += amount
            account["total_debt_base"] = int(outcome.new_total_debt)
            account["available_borrows_base"] = max(
                0, account["available_borrows_base"] - to_base_units(amount, self.asset_price)
            )

        elif result.action == Action.REPAY:
            amount = int(outcome.actual_repay_amount)
            leg = _debt_leg(result.interest_rate_mode)
            position[leg] = max(0, position[leg] - amount)
            account["total_debt_base"] = int(outcome.new_total_debt)
            account["available_borrows_base"] += to_base_units(amount, self.asset_price)

        else:
            raise ValueError(f"Unknown action: {result.action}")

        account["health_factor"] = int(outcome.new_health_factor)

    def _borrow_power(self, amount: int) -> int:
        """Borrowing capacity an asset amount adds as collateral, at the account LTV."""
        return to_base_units(amount, self.asset_price) * self.account["ltv"] // BPS_DENOMINATOR


def _debt_leg(mode: InterestRateMode | None) -> str:
    if mode == InterestRateMode.STABLE:
        return "current_stable_debt"
    return "current_variable_debt"
