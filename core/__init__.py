"""
core - Core utilities and models for LENDSIM.

This package contains:
- constants.py: Fixed-point scales, sentinels, enums, error codes
- exceptions.py: Typed exceptions with error codes
- math.py: Integer fixed-point math (no float)
- models.py: State snapshot, outcomes, tx payload
- logging.py: Structured JSON logging
"""

from core.constants import (
    HEALTH_FACTOR_MAX,
    RAY,
    WAD,
    Action,
    ErrorCode,
    InterestRateMode,
)
from core.exceptions import (
    CalculationError,
    ConfigError,
    EncodingError,
    GasEstimationError,
    InfraError,
    LendSimError,
    StateFetchError,
    ValidationError,
)
from core.logging import get_logger, setup_logging
from core.models import (
    AccountSummary,
    ProtocolState,
    ReserveSummary,
    SimulationResult,
    TxPayload,
    UserReserveSummary,
)

__all__ = [
    # Constants
    "HEALTH_FACTOR_MAX",
    "RAY",
    "WAD",
    "Action",
    "ErrorCode",
    "InterestRateMode",
    # Exceptions
    "CalculationError",
    "ConfigError",
    "EncodingError",
    "GasEstimationError",
    "InfraError",
    "LendSimError",
    "StateFetchError",
    "ValidationError",
    # Models
    "AccountSummary",
    "ProtocolState",
    "ReserveSummary",
    "SimulationResult",
    "TxPayload",
    "UserReserveSummary",
    # Logging
    "get_logger",
    "setup_logging",
]
