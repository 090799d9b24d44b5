# PATH: core/exceptions.py
"""
Typed exceptions for LENDSIM.

Every error carries an ErrorCode, a message and a details dict.
Transport errors (InfraError) are kept separate from the errors the
simulation layers raise so callers can tell a dead RPC from bad input.
"""

from typing import Optional

from core.constants import ErrorCode


class LendSimError(Exception):
    """Base exception for LENDSIM."""

    default_code = ErrorCode.UNKNOWN

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}

    def __str__(self):
        return f"[{self.code.value}] {self.message}"

    def to_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
        }


class InfraError(LendSimError):
    """Infrastructure-related errors (RPC, timeouts)."""
    default_code = ErrorCode.INFRA_RPC_ERROR


class StateFetchError(LendSimError):
    """One of the protocol state reads failed or returned garbage."""
    default_code = ErrorCode.STATE_FETCH_FAILED


class GasEstimationError(LendSimError):
    """eth_estimateGas failed."""
    default_code = ErrorCode.GAS_ESTIMATION_FAILED


class EncodingError(LendSimError):
    """Call data could not be built from the given arguments."""
    default_code = ErrorCode.ENCODING_FAILED


class CalculationError(LendSimError):
    """A value could not be converted for a derived metric."""
    default_code = ErrorCode.CALCULATION_FAILED


class ValidationError(LendSimError):
    """Caller input rejected."""
    default_code = ErrorCode.VALIDATION_FAILED


class ConfigError(LendSimError):
    """Market configuration missing or invalid."""
    default_code = ErrorCode.CONFIG_INVALID
