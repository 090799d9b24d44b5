"""
lending/simulator.py - Supply / withdraw / borrow / repay projections.

Two layers:
- project_*(): pure functions of a ProtocolState snapshot and an amount
- SimulationEngine: reads a fresh snapshot, then projects

CLAMPING CONTRACT:
Requested amounts are never rejected for exceeding a capacity. Each
action is clamped to its binding constraint (aToken balance, borrowing
headroom, outstanding debt) and the outcome reports what would actually
happen, with the shortfall visible as slippage.

HEALTH FACTOR CONTRACT:
All four actions use the same formula on post-action values:
    HF = collateral * liquidation_threshold_bps * 1e18 / (debt * 10000)
HEALTH_FACTOR_MAX when post-action debt is zero.
"""

from typing import Union

from core.constants import Action, InterestRateMode
from core.exceptions import ValidationError
from core.logging import get_logger
from core.math import (
    calculate_health_factor,
    calculate_slippage_bps,
    from_base_units,
    is_liquidatable,
    ray_div,
    safe_int,
    to_base_units,
)
from core.models import (
    BorrowOutcome,
    FeeBreakdown,
    ProtocolState,
    RepayOutcome,
    SimulationResult,
    SupplyOutcome,
    WithdrawOutcome,
)
from lending.rates import calculate_apy
from lending.state_reader import ProtocolStateReader

logger = get_logger(__name__)

Amount = Union[int, str]


def coerce_rate_mode(mode: Union[int, InterestRateMode]) -> InterestRateMode:
    """Accept 1/2 or the enum; anything else is a caller error."""
    try:
        return InterestRateMode(int(mode))
    except (TypeError, ValueError) as e:
        raise ValidationError(
            f"Invalid interest rate mode: {mode!r} (expected 1=stable or 2=variable)",
            details={"mode": repr(mode)},
        ) from e


# =============================================================================
# PURE PROJECTIONS
# =============================================================================

def project_supply(state: ProtocolState, asset: str, amount: Amount) -> SimulationResult:
    amount = safe_int(amount)
    account = state.account

    collateral_increase = to_base_units(amount, state.asset_price)
    new_collateral = account.total_collateral_base + collateral_increase
    new_health_factor = calculate_health_factor(
        new_collateral, account.current_liquidation_threshold, account.total_debt_base
    )

    # aTokens mint 1:1 nominally; the scaled balance exposes index rounding
    liquidity_index = state.reserve.liquidity_index
    scaled_a_tokens = ray_div(amount, liquidity_index) if liquidity_index > 0 else amount

    return SimulationResult(
        action=Action.SUPPLY,
        asset=asset,
        requested_amount=str(amount),
        expected_outcome=SupplyOutcome(
            a_tokens_received=str(amount),
            new_collateral_value=str(new_collateral),
            new_health_factor=str(new_health_factor),
            estimated_apy=calculate_apy(state.reserve.liquidity_rate),
            slippage_bps=str(calculate_slippage_bps(amount, scaled_a_tokens)),
        ),
        fees=FeeBreakdown(),
    )


def project_withdraw(state: ProtocolState, asset: str, amount: Amount) -> SimulationResult:
    amount = safe_int(amount)
    account = state.account

    actual = min(amount, state.user_reserve.current_a_token_balance)

    collateral_decrease = to_base_units(actual, state.asset_price)
    new_collateral = max(0, account.total_collateral_base - collateral_decrease)
    new_health_factor = calculate_health_factor(
        new_collateral, account.current_liquidation_threshold, account.total_debt_base
    )

    return SimulationResult(
        action=Action.WITHDRAW,
        asset=asset,
        requested_amount=str(amount),
        expected_outcome=WithdrawOutcome(
            actual_withdraw_amount=str(actual),
            a_tokens_burned=str(actual),
            new_collateral_value=str(new_collateral),
            new_health_factor=str(new_health_factor),
            would_cause_liquidation=is_liquidatable(new_health_factor, account.total_debt_base),
            slippage_bps=str(calculate_slippage_bps(amount, actual)),
        ),
        fees=FeeBreakdown(),
    )


def project_borrow(
    state: ProtocolState,
    asset: str,
    amount: Amount,
    interest_rate_mode: Union[int, InterestRateMode] = InterestRateMode.VARIABLE,
) -> SimulationResult:
    amount = safe_int(amount)
    mode = coerce_rate_mode(interest_rate_mode)
    account = state.account
    price = state.asset_price

    available = account.available_borrows_base
    requested_in_base = to_base_units(amount, price)
    can_borrow = requested_in_base <= available
    # price > 0 whenever can_borrow is False
    actual = amount if can_borrow else from_base_units(available, price)

    new_total_debt = account.total_debt_base + to_base_units(actual, price)
    new_health_factor = calculate_health_factor(
        account.total_collateral_base, account.current_liquidation_threshold, new_total_debt
    )

    borrow_rate = state.reserve.borrow_rate(mode)

    return SimulationResult(
        action=Action.BORROW,
        asset=asset,
        requested_amount=str(amount),
        interest_rate_mode=mode,
        expected_outcome=BorrowOutcome(
            actual_borrow_amount=str(actual),
            new_total_debt=str(new_total_debt),
            new_health_factor=str(new_health_factor),
            borrow_rate=str(borrow_rate),
            estimated_apy=calculate_apy(borrow_rate),
            slippage_bps=str(calculate_slippage_bps(amount, actual)),
            can_borrow=can_borrow,
        ),
        fees=FeeBreakdown(),
    )


def project_repay(
    state: ProtocolState,
    asset: str,
    amount: Amount,
    interest_rate_mode: Union[int, InterestRateMode] = InterestRateMode.VARIABLE,
) -> SimulationResult:
    amount = safe_int(amount)
    mode = coerce_rate_mode(interest_rate_mode)
    account = state.account

    current_debt = state.user_reserve.debt(mode)
    actual = min(amount, current_debt)

    debt_reduction = to_base_units(actual, state.asset_price)
    new_total_debt = max(0, account.total_debt_base - debt_reduction)
    new_health_factor = calculate_health_factor(
        account.total_collateral_base, account.current_liquidation_threshold, new_total_debt
    )

    return SimulationResult(
        action=Action.REPAY,
        asset=asset,
        requested_amount=str(amount),
        interest_rate_mode=mode,
        expected_outcome=RepayOutcome(
            actual_repay_amount=str(actual),
            new_total_debt=str(new_total_debt),
            new_health_factor=str(new_health_factor),
            slippage_bps=str(calculate_slippage_bps(amount, actual)),
            debt_fully_repaid=actual >= current_debt,
        ),
        fees=FeeBreakdown(),
    )


# =============================================================================
# ENGINE
# =============================================================================

class SimulationEngine:
    """
    Projects pool actions against live state.

    Usage:
        engine = SimulationEngine(StateReader(source))
        result = await engine.simulate_borrow(user, asset, 3_000_000)

    The reader is injected; anything with
    `async read(user, asset) -> ProtocolState` works.
    """

    def __init__(self, reader: ProtocolStateReader):
        self.reader = reader

    def _log(self, user: str, result: SimulationResult) -> None:
        logger.info(
            f"Simulated {result.action.value}",
            extra={
                "context": {
                    "user": user,
                    "asset": result.asset,
                    "requested_amount": result.requested_amount,
                    **result.expected_outcome.to_dict(),
                }
            },
        )

    async def simulate_supply(self, user: str, asset: str, amount: Amount) -> SimulationResult:
        state = await self.reader.read(user, asset)
        result = project_supply(state, asset, amount)
        self._log(user, result)
        return result

    async def simulate_withdraw(self, user: str, asset: str, amount: Amount) -> SimulationResult:
        state = await self.reader.read(user, asset)
        result = project_withdraw(state, asset, amount)
        self._log(user, result)
        return result

    async def simulate_borrow(
        self,
        user: str,
        asset: str,
        amount: Amount,
        interest_rate_mode: Union[int, InterestRateMode] = InterestRateMode.VARIABLE,
    ) -> SimulationResult:
        mode = coerce_rate_mode(interest_rate_mode)
        state = await self.reader.read(user, asset)
        result = project_borrow(state, asset, amount, mode)
        self._log(user, result)
        return result

    async def simulate_repay(
        self,
        user: str,
        asset: str,
        amount: Amount,
        interest_rate_mode: Union[int, InterestRateMode] = InterestRateMode.VARIABLE,
    ) -> SimulationResult:
        mode = coerce_rate_mode(interest_rate_mode)
        state = await self.reader.read(user, asset)
        result = project_repay(state, asset, amount, mode)
        self._log(user, result)
        return result

    async def simulate(
        self,
        action: Union[str, Action],
        user: str,
        asset: str,
        amount: Amount,
        interest_rate_mode: Union[int, InterestRateMode] = InterestRateMode.VARIABLE,
    ) -> SimulationResult:
        """Dispatch by action name."""
        try:
            action = Action(action)
        except ValueError as e:
            raise ValidationError(f"Unknown action: {action!r}") from e

        if action == Action.SUPPLY:
            return await self.simulate_supply(user, asset, amount)
        if action == Action.WITHDRAW:
            return await self.simulate_withdraw(user, asset, amount)
        if action == Action.BORROW:
            return await self.simulate_borrow(user, asset, amount, interest_rate_mode)
        return await self.simulate_repay(user, asset, amount, interest_rate_mode)
