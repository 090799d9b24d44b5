"""
lending/rates.py - Ray rate to APY conversion.

Display only: the compounded yield is computed in float because it is a
human-readable percentage. Money math never comes through here.
"""

import math
from decimal import Decimal, InvalidOperation

from core.constants import APY_ERROR_PREFIX, DEFAULT_PERIODS_PER_YEAR
from core.exceptions import CalculationError
from core.logging import get_logger
from core.math import ray_to_decimal

logger = get_logger(__name__)


def _compound(rate: float, periods_per_year: int) -> float:
    if periods_per_year <= 0:
        raise CalculationError(
            f"periods_per_year must be positive, got {periods_per_year}",
            details={"periods_per_year": periods_per_year},
        )
    apy = ((1 + rate / periods_per_year) ** periods_per_year - 1) * 100
    if isinstance(apy, complex) or not math.isfinite(apy):
        raise CalculationError(
            f"APY is not a finite number for rate {rate}",
            details={"rate": rate},
        )
    return apy


def calculate_apy(rate: int | str | Decimal, periods_per_year: int = DEFAULT_PERIODS_PER_YEAR) -> str:
    """
    Convert an annual ray-scaled rate to a compounded APY string.

    apy = (1 + rate / periods) ** periods - 1

    Args:
        rate: Annual rate, ray-scaled (1e27 == 100%)
        periods_per_year: Compounding periods (365 = daily)

    Returns:
        Percentage with two decimals, e.g. "2.53%". If the rate cannot be
        turned into a finite number, a descriptive "Error calculating APY: ..."
        string instead, so outcome records stay well-formed.
    """
    try:
        rate_decimal = ray_to_decimal(int(Decimal(str(rate))))
        apy = _compound(float(rate_decimal), periods_per_year)
    except CalculationError as e:
        logger.warning(
            "APY calculation failed",
            extra={"context": {"rate": str(rate), "error": e.message}},
        )
        return f"{APY_ERROR_PREFIX}: {e.message}"
    except (InvalidOperation, ValueError, TypeError, OverflowError, ZeroDivisionError) as e:
        logger.warning(
            "APY calculation failed",
            extra={"context": {"rate": str(rate), "error": str(e)}},
        )
        return f"{APY_ERROR_PREFIX}: {e}"

    return f"{apy:.2f}%"
