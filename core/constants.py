# PATH: core/constants.py
"""
Constants for LENDSIM.

Contains fixed-point scales, sentinels, enums and error codes.

PRECISION CONTRACT:
- Base currency values: oracle base unit (8 decimals on USD markets)
- Asset prices: 1e18-scaled (WAD)
- Rates and indices: 1e27-scaled (RAY)
- Thresholds and LTV: basis points (0-10000)
"""

from enum import Enum
from typing import Final

# =============================================================================
# FIXED-POINT SCALES
# =============================================================================

WAD: Final[int] = 10**18
RAY: Final[int] = 10**27
BPS_DENOMINATOR: Final[int] = 10_000

# Health factor is WAD-scaled: 1e18 is the liquidation boundary
HEALTH_FACTOR_LIQUIDATION_THRESHOLD: Final[int] = WAD

# type(uint256).max, reported when there is no debt
HEALTH_FACTOR_MAX: Final[int] = 2**256 - 1

# =============================================================================
# SIMULATION DEFAULTS
# =============================================================================

DEFAULT_PERIODS_PER_YEAR = 365
DEFAULT_REFERRAL_CODE = 0

# Protocol charges nothing on the four pool actions
PROTOCOL_FEE = "0"
GAS_FEE_PLACEHOLDER = "estimated_gas_fee"

APY_ERROR_PREFIX = "Error calculating APY"


class InterestRateMode(int, Enum):
    """Debt leg selector, values match the pool ABI."""
    STABLE = 1
    VARIABLE = 2


class Action(str, Enum):
    """Pool actions LENDSIM can simulate."""
    SUPPLY = "supply"
    WITHDRAW = "withdraw"
    BORROW = "borrow"
    REPAY = "repay"


class ErrorCode(str, Enum):
    """
    Error codes carried by every LendSimError.

    Grouped by layer: infra (transport), state (reads),
    tx (payload and gas), calc (math), input/config.
    """
    # Infrastructure
    INFRA_RPC_ERROR = "INFRA_RPC_ERROR"
    INFRA_TIMEOUT = "INFRA_TIMEOUT"

    # State reads
    STATE_FETCH_FAILED = "STATE_FETCH_FAILED"
    STATE_MALFORMED = "STATE_MALFORMED"

    # Transactions
    ENCODING_FAILED = "ENCODING_FAILED"
    GAS_ESTIMATION_FAILED = "GAS_ESTIMATION_FAILED"

    # Math
    CALCULATION_FAILED = "CALCULATION_FAILED"

    # Input / config
    VALIDATION_FAILED = "VALIDATION_FAILED"
    CONFIG_INVALID = "CONFIG_INVALID"

    UNKNOWN = "UNKNOWN"
