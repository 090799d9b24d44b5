# PATH: core/math.py
"""
Math utilities for LENDSIM.

Integer fixed-point arithmetic only (no float money). Every division
truncates the way the protocol's uint256 math does.
"""

from decimal import Decimal
from typing import Union

from core.constants import (
    BPS_DENOMINATOR,
    HEALTH_FACTOR_LIQUIDATION_THRESHOLD,
    HEALTH_FACTOR_MAX,
    RAY,
    WAD,
)
from core.exceptions import ValidationError


def safe_int(value: Union[str, int, Decimal]) -> int:
    """
    Convert an amount to int without going through float.

    Args:
        value: int, decimal string or integral Decimal

    Returns:
        int value

    Raises:
        ValidationError: float input, bool input or non-integral value
    """
    if isinstance(value, bool) or isinstance(value, float):
        raise ValidationError(
            f"Float values are not allowed for amounts: {value!r}",
            details={"value": repr(value)},
        )
    if isinstance(value, int):
        return value
    try:
        dec = Decimal(str(value).strip())
    except Exception as e:
        raise ValidationError(f"Not an integer amount: {value!r}") from e
    if dec != dec.to_integral_value():
        raise ValidationError(f"Not an integer amount: {value!r}")
    return int(dec)


def to_base_units(amount: int, asset_price: int) -> int:
    """
    Convert an asset amount to base currency units.

    Args:
        amount: Asset amount in native units
        asset_price: Price in base units, WAD-scaled

    Returns:
        Value in base currency units (truncated)
    """
    return (amount * asset_price) // WAD


def from_base_units(base_value: int, asset_price: int) -> int:
    """
    Convert a base currency value back to an asset amount.

    Args:
        base_value: Value in base currency units
        asset_price: Price in base units, WAD-scaled (must be > 0)

    Returns:
        Asset amount (truncated)
    """
    return (base_value * WAD) // asset_price


def ray_div(amount: int, index: int) -> int:
    """Scale an amount down by a ray index (amount * RAY / index)."""
    return (amount * RAY) // index


def calculate_health_factor(
    collateral_base: int,
    liquidation_threshold_bps: int,
    debt_base: int,
) -> int:
    """
    Health factor, WAD-scaled.

    HF = collateral * threshold / (debt * 10000), with 1e18 == 1.0.
    No debt means no liquidation risk: HEALTH_FACTOR_MAX.
    """
    if debt_base <= 0:
        return HEALTH_FACTOR_MAX
    return (collateral_base * liquidation_threshold_bps * WAD) // (
        debt_base * BPS_DENOMINATOR
    )


def is_liquidatable(health_factor: int, debt_base: int) -> bool:
    """True when the position can be liquidated (HF < 1.0 with debt)."""
    return debt_base > 0 and health_factor < HEALTH_FACTOR_LIQUIDATION_THRESHOLD


def calculate_slippage_bps(expected: int, actual: int) -> int:
    """
    Calculate slippage in basis points.

    Args:
        expected: Requested amount
        actual: Amount that would actually be realized

    Returns:
        Signed bps, floor division. Positive = shortfall, negative = excess.
        0 when expected is 0.
    """
    if expected == 0:
        return 0
    return ((expected - actual) * BPS_DENOMINATOR) // expected


def ray_to_decimal(value: int) -> Decimal:
    """Convert a ray-scaled int to a Decimal fraction (1e27 -> 1)."""
    return Decimal(value) / Decimal(RAY)

