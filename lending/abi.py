"""
lending/abi.py - Call data encoding and return data decoding.

Thin layer over eth-abi. Function signatures are kept as canonical
strings, selectors are derived from them, never hardcoded.
"""

from typing import Any, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError, EncodingError as AbiEncodingError, ParseError
from eth_utils import function_signature_to_4byte_selector

from core.constants import ErrorCode
from core.exceptions import EncodingError, StateFetchError


# =============================================================================
# POOL (mutating)
# =============================================================================

SUPPLY_SIGNATURE = "supply(address,uint256,address,uint16)"
WITHDRAW_SIGNATURE = "withdraw(address,uint256,address)"
# referralCode precedes onBehalfOf in the pool ABI
BORROW_SIGNATURE = "borrow(address,uint256,uint256,uint16,address)"
REPAY_SIGNATURE = "repay(address,uint256,uint256,address)"

# =============================================================================
# READS
# =============================================================================

GET_USER_ACCOUNT_DATA_SIGNATURE = "getUserAccountData(address)"
GET_USER_ACCOUNT_DATA_OUTPUT = ["uint256"] * 6

# Pool.getReserveData returns the static ReserveData struct, which decodes
# the same as its flattened fields
GET_RESERVE_DATA_SIGNATURE = "getReserveData(address)"
GET_RESERVE_DATA_OUTPUT = [
    "uint256",  # configuration
    "uint128",  # liquidityIndex
    "uint128",  # currentLiquidityRate
    "uint128",  # variableBorrowIndex
    "uint128",  # currentVariableBorrowRate
    "uint128",  # currentStableBorrowRate
    "uint40",   # lastUpdateTimestamp
    "uint16",   # id
    "address",  # aTokenAddress
    "address",  # stableDebtTokenAddress
    "address",  # variableDebtTokenAddress
    "address",  # interestRateStrategyAddress
    "uint128",  # accruedToTreasury
    "uint128",  # unbacked
    "uint128",  # isolationModeTotalDebt
]

GET_USER_RESERVE_DATA_SIGNATURE = "getUserReserveData(address,address)"
GET_USER_RESERVE_DATA_OUTPUT = [
    "uint256",  # currentATokenBalance
    "uint256",  # currentStableDebt
    "uint256",  # currentVariableDebt
    "uint256",  # principalStableDebt
    "uint256",  # scaledVariableDebt
    "uint256",  # stableBorrowRate
    "uint256",  # liquidityRate
    "uint40",   # stableRateLastUpdated
    "bool",     # usageAsCollateralEnabled
]

GET_ASSET_PRICE_SIGNATURE = "getAssetPrice(address)"
GET_ASSET_PRICE_OUTPUT = ["uint256"]


def signature_types(signature: str) -> list[str]:
    """
    Argument types of a flat function signature.

    Example:
        >>> signature_types("withdraw(address,uint256,address)")
        ['address', 'uint256', 'address']
    """
    inner = signature[signature.index("(") + 1:signature.rindex(")")]
    return [t for t in inner.split(",") if t]


def selector(signature: str) -> str:
    """4-byte selector as 0x-prefixed hex."""
    return "0x" + function_signature_to_4byte_selector(signature).hex()


def encode_call(signature: str, args: Sequence[Any]) -> str:
    """
    Encode a function call.

    Args:
        signature: Canonical signature, e.g. "supply(address,uint256,address,uint16)"
        args: Arguments in signature order

    Returns:
        0x-prefixed call data

    Raises:
        EncodingError: Encoder rejected the signature or the arguments
    """
    try:
        types = signature_types(signature)
        body = encode(types, list(args))
    except (AbiEncodingError, ParseError, TypeError, ValueError) as e:
        raise EncodingError(
            f"Cannot encode {signature}: {e}",
            details={
                "signature": signature,
                "args": [str(a) for a in args],
                "error_type": type(e).__name__,
            },
        ) from e
    return selector(signature) + body.hex()


def decode_call_args(signature: str, data: str) -> tuple:
    """Decode the arguments of call data built by encode_call."""
    raw = bytes.fromhex(data[2:] if data.startswith("0x") else data)
    return decode(signature_types(signature), raw[4:])


def decode_result(output_types: Sequence[str], hex_result: str | None) -> tuple:
    """
    Decode eth_call return data.

    Raises:
        StateFetchError: Empty or malformed return data
    """
    if not hex_result or hex_result == "0x":
        raise StateFetchError(
            "Empty eth_call result",
            code=ErrorCode.STATE_MALFORMED,
            details={"expected": list(output_types)},
        )

    try:
        raw = bytes.fromhex(hex_result[2:] if hex_result.startswith("0x") else hex_result)
        return decode(list(output_types), raw)
    except (DecodingError, ValueError) as e:
        raise StateFetchError(
            f"Malformed eth_call result: {e}",
            code=ErrorCode.STATE_MALFORMED,
            details={"expected": list(output_types), "raw": hex_result[:100]},
        ) from e
