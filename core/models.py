# PATH: core/models.py
"""
Core data models for LENDSIM.

NO-FLOAT CONTRACT
=================
- State snapshots hold raw ints exactly as the chain reports them.
- Outcome records hold every quantity as a decimal string so they can be
  serialized and handed across process or language boundaries without
  precision loss.
- The only non-numeric derived value is the APY display string.

SNAPSHOT CONTRACT
=================
ProtocolState is frozen. Simulations produce new outcome records; they
never modify the snapshot they were given.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Union

from core.constants import (
    GAS_FEE_PLACEHOLDER,
    PROTOCOL_FEE,
    Action,
    InterestRateMode,
)


# ============================================================================
# STATE SNAPSHOT
# ============================================================================

@dataclass(frozen=True)
class AccountSummary:
    """Pool.getUserAccountData, all values in base currency units."""
    total_collateral_base: int
    total_debt_base: int
    available_borrows_base: int
    current_liquidation_threshold: int  # bps
    ltv: int  # bps
    health_factor: int  # WAD

    def to_dict(self) -> Dict[str, str]:
        return {
            "total_collateral_base": str(self.total_collateral_base),
            "total_debt_base": str(self.total_debt_base),
            "available_borrows_base": str(self.available_borrows_base),
            "current_liquidation_threshold": str(self.current_liquidation_threshold),
            "ltv": str(self.ltv),
            "health_factor": str(self.health_factor),
        }


@dataclass(frozen=True)
class ReserveSummary:
    """Reserve rates and indices, all ray-scaled."""
    liquidity_rate: int
    variable_borrow_rate: int
    stable_borrow_rate: int
    liquidity_index: int
    variable_borrow_index: int

    def borrow_rate(self, mode: InterestRateMode) -> int:
        if mode == InterestRateMode.STABLE:
            return self.stable_borrow_rate
        return self.variable_borrow_rate

    def to_dict(self) -> Dict[str, str]:
        return {
            "liquidity_rate": str(self.liquidity_rate),
            "variable_borrow_rate": str(self.variable_borrow_rate),
            "stable_borrow_rate": str(self.stable_borrow_rate),
            "liquidity_index": str(self.liquidity_index),
            "variable_borrow_index": str(self.variable_borrow_index),
        }


@dataclass(frozen=True)
class UserReserveSummary:
    """User position in one reserve, in asset-native units."""
    current_a_token_balance: int
    current_stable_debt: int
    current_variable_debt: int
    usage_as_collateral_enabled: bool

    def debt(self, mode: InterestRateMode) -> int:
        if mode == InterestRateMode.STABLE:
            return self.current_stable_debt
        return self.current_variable_debt

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_a_token_balance": str(self.current_a_token_balance),
            "current_stable_debt": str(self.current_stable_debt),
            "current_variable_debt": str(self.current_variable_debt),
            "usage_as_collateral_enabled": self.usage_as_collateral_enabled,
        }


@dataclass(frozen=True)
class ProtocolState:
    """Everything needed to simulate one action, read at simulation time."""
    account: AccountSummary
    reserve: ReserveSummary
    user_reserve: UserReserveSummary
    asset_price: int  # base units per whole asset unit, WAD-scaled

    def to_dict(self) -> Dict[str, Any]:
        return {
            "account": self.account.to_dict(),
            "reserve": self.reserve.to_dict(),
            "user_reserve": self.user_reserve.to_dict(),
            "asset_price": str(self.asset_price),
        }


# ============================================================================
# SIMULATION OUTCOMES
# ============================================================================

@dataclass(frozen=True)
class FeeBreakdown:
    """Fees attached to a simulated action."""
    protocol_fee: str = PROTOCOL_FEE
    gas_fee: str = GAS_FEE_PLACEHOLDER

    def to_dict(self) -> Dict[str, str]:
        return {"protocol_fee": self.protocol_fee, "gas_fee": self.gas_fee}


@dataclass(frozen=True)
class SupplyOutcome:
    a_tokens_received: str
    new_collateral_value: str
    new_health_factor: str
    estimated_apy: str
    slippage_bps: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "a_tokens_received": self.a_tokens_received,
            "new_collateral_value": self.new_collateral_value,
            "new_health_factor": self.new_health_factor,
            "estimated_apy": self.estimated_apy,
            "slippage_bps": self.slippage_bps,
        }


@dataclass(frozen=True)
class WithdrawOutcome:
    actual_withdraw_amount: str
    a_tokens_burned: str
    new_collateral_value: str
    new_health_factor: str
    would_cause_liquidation: bool
    slippage_bps: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actual_withdraw_amount": self.actual_withdraw_amount,
            "a_tokens_burned": self.a_tokens_burned,
            "new_collateral_value": self.new_collateral_value,
            "new_health_factor": self.new_health_factor,
            "would_cause_liquidation": self.would_cause_liquidation,
            "slippage_bps": self.slippage_bps,
        }


@dataclass(frozen=True)
class BorrowOutcome:
    actual_borrow_amount: str
    new_total_debt: str
    new_health_factor: str
    borrow_rate: str
    estimated_apy: str
    slippage_bps: str
    can_borrow: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actual_borrow_amount": self.actual_borrow_amount,
            "new_total_debt": self.new_total_debt,
            "new_health_factor": self.new_health_factor,
            "borrow_rate": self.borrow_rate,
            "estimated_apy": self.estimated_apy,
            "slippage_bps": self.slippage_bps,
            "can_borrow": self.can_borrow,
        }


@dataclass(frozen=True)
class RepayOutcome:
    actual_repay_amount: str
    new_total_debt: str
    new_health_factor: str
    slippage_bps: str
    debt_fully_repaid: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actual_repay_amount": self.actual_repay_amount,
            "new_total_debt": self.new_total_debt,
            "new_health_factor": self.new_health_factor,
            "slippage_bps": self.slippage_bps,
            "debt_fully_repaid": self.debt_fully_repaid,
        }


Outcome = Union[SupplyOutcome, WithdrawOutcome, BorrowOutcome, RepayOutcome]


@dataclass(frozen=True)
class SimulationResult:
    """Projected result of one pool action."""
    action: Action
    asset: str
    requested_amount: str
    expected_outcome: Outcome
    fees: FeeBreakdown = field(default_factory=FeeBreakdown)
    interest_rate_mode: Optional[InterestRateMode] = None

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "action": self.action.value,
            "asset": self.asset,
            "requested_amount": self.requested_amount,
        }
        if self.interest_rate_mode is not None:
            result["interest_rate_mode"] = int(self.interest_rate_mode)
        result["expected_outcome"] = self.expected_outcome.to_dict()
        result["fees"] = self.fees.to_dict()
        return result


# ============================================================================
# TRANSACTION PAYLOAD
# ============================================================================

@dataclass(frozen=True)
class TxPayload:
    """Unsigned call to the pool, ready for a wallet or relayer."""
    to: str
    data: str  # 0x-prefixed call data
    function_signature: str
    parameters: Dict[str, Any]
    value: int = 0

    @property
    def selector(self) -> str:
        return self.data[:10]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "to": self.to,
            "data": self.data,
            "value": str(self.value),
            "function_signature": self.function_signature,
            "parameters": dict(self.parameters),
        }
