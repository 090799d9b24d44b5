"""
lending/state_reader.py - Protocol state snapshot reads.

The four reads behind every simulation (account data, reserve data,
user reserve data, asset price) are issued concurrently. The first
failure cancels the others and surfaces as StateFetchError; no partial
snapshot is ever returned.

Sources may hand back named records (mappings or objects with
attributes) or bare positional tuples. Both are normalized here, once,
into the typed records of core.models.

Usage:
    async with RPCProvider(market.chain_id, market.rpc_urls) as provider:
        reader = StateReader(RPCStateSource(provider, market))
        state = await reader.read(user, asset)
"""

import asyncio
from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from chains.providers import RPCProvider
from config import MarketConfig
from core.constants import BPS_DENOMINATOR, ErrorCode
from core.exceptions import LendSimError, StateFetchError
from core.logging import get_logger
from core.models import (
    AccountSummary,
    ProtocolState,
    ReserveSummary,
    UserReserveSummary,
)
from lending import abi

logger = get_logger(__name__)


class StateSource(Protocol):
    """Raw read interface a StateReader pulls from."""

    async def get_user_account_data(self, user: str) -> Any: ...

    async def get_reserve_data(self, asset: str) -> Any: ...

    async def get_user_reserve_data(self, asset: str, user: str) -> Any: ...

    async def get_asset_price(self, asset: str) -> Any: ...


class ProtocolStateReader(Protocol):
    """What the simulation engine depends on."""

    async def read(self, user: str, asset: str) -> ProtocolState: ...


# =============================================================================
# NORMALIZATION
# =============================================================================

# (field, aliases, positional index)
ACCOUNT_FIELDS = (
    ("total_collateral_base", ("totalCollateralBase", "total_collateral_base"), 0),
    ("total_debt_base", ("totalDebtBase", "total_debt_base"), 1),
    ("available_borrows_base", ("availableBorrowsBase", "available_borrows_base"), 2),
    ("current_liquidation_threshold", ("currentLiquidationThreshold", "current_liquidation_threshold"), 3),
    ("ltv", ("ltv",), 4),
    ("health_factor", ("healthFactor", "health_factor"), 5),
)

RESERVE_FIELDS = (
    ("liquidity_rate", ("currentLiquidityRate", "liquidityRate", "liquidity_rate"), 2),
    ("variable_borrow_rate", ("currentVariableBorrowRate", "variableBorrowRate", "variable_borrow_rate"), 4),
    ("stable_borrow_rate", ("currentStableBorrowRate", "stableBorrowRate", "stable_borrow_rate"), 5),
    ("liquidity_index", ("liquidityIndex", "liquidity_index"), 1),
    ("variable_borrow_index", ("variableBorrowIndex", "variable_borrow_index"), 3),
)

USER_RESERVE_FIELDS = (
    ("current_a_token_balance", ("currentATokenBalance", "current_a_token_balance"), 0),
    ("current_stable_debt", ("currentStableDebt", "current_stable_debt"), 1),
    ("current_variable_debt", ("currentVariableDebt", "current_variable_debt"), 2),
)
USAGE_AS_COLLATERAL = (("usageAsCollateralEnabled", "usage_as_collateral_enabled"), 8)

_MISSING = object()


def _named_value(raw: Any, aliases: tuple[str, ...]) -> Any:
    for name in aliases:
        if isinstance(raw, Mapping):
            if name in raw:
                return raw[name]
        elif hasattr(raw, name):
            return getattr(raw, name)
    return _MISSING


def _pick(raw: Any, record: str, aliases: tuple[str, ...], index: int) -> Any:
    """Named member first, positional element as fallback."""
    value = _named_value(raw, aliases)
    if value is not _MISSING:
        return value

    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)) and len(raw) > index:
        return raw[index]

    raise StateFetchError(
        f"{record}: missing field {aliases[0]} (index {index})",
        code=ErrorCode.STATE_MALFORMED,
        details={"record": record, "field": aliases[0], "index": index},
    )


def _as_uint(value: Any, record: str, name: str) -> int:
    if isinstance(value, bool):
        raise StateFetchError(
            f"{record}.{name}: expected integer, got bool",
            code=ErrorCode.STATE_MALFORMED,
        )
    try:
        if isinstance(value, str):
            number = int(value, 16) if value.lower().startswith("0x") else int(value)
        else:
            number = int(value)
    except (TypeError, ValueError) as e:
        raise StateFetchError(
            f"{record}.{name}: not an integer: {value!r}",
            code=ErrorCode.STATE_MALFORMED,
            details={"record": record, "field": name},
        ) from e
    if number < 0:
        raise StateFetchError(
            f"{record}.{name}: negative value {number}",
            code=ErrorCode.STATE_MALFORMED,
            details={"record": record, "field": name},
        )
    return number


def _as_bps(value: int, record: str, name: str) -> int:
    if value > BPS_DENOMINATOR:
        raise StateFetchError(
            f"{record}.{name}: {value} bps out of range 0-{BPS_DENOMINATOR}",
            code=ErrorCode.STATE_MALFORMED,
            details={"record": record, "field": name, "value": value},
        )
    return value


def _fields(raw: Any, record: str, layout: tuple) -> dict[str, int]:
    return {
        name: _as_uint(_pick(raw, record, aliases, index), record, name)
        for name, aliases, index in layout
    }


def normalize_account_summary(raw: Any) -> AccountSummary:
    values = _fields(raw, "account_data", ACCOUNT_FIELDS)
    for name in ("current_liquidation_threshold", "ltv"):
        _as_bps(values[name], "account_data", name)
    return AccountSummary(**values)


def normalize_reserve_summary(raw: Any) -> ReserveSummary:
    return ReserveSummary(**_fields(raw, "reserve_data", RESERVE_FIELDS))


def normalize_user_reserve_summary(raw: Any) -> UserReserveSummary:
    values = _fields(raw, "user_reserve_data", USER_RESERVE_FIELDS)
    aliases, index = USAGE_AS_COLLATERAL
    flag = _pick(raw, "user_reserve_data", aliases, index)
    if isinstance(flag, str):
        flag = flag.strip().lower() in ("true", "1")
    return UserReserveSummary(usage_as_collateral_enabled=bool(flag), **values)


def normalize_asset_price(raw: Any) -> int:
    # Oracles return a bare uint256, sometimes wrapped in a 1-tuple
    if isinstance(raw, Sequence) and not isinstance(raw, (str, bytes)):
        if len(raw) != 1:
            raise StateFetchError(
                f"asset_price: expected a single value, got {len(raw)}",
                code=ErrorCode.STATE_MALFORMED,
            )
        raw = raw[0]
    return _as_uint(raw, "asset_price", "price")


# =============================================================================
# READER
# =============================================================================

class StateReader:
    """
    Reads a fresh ProtocolState for every call. No caching.
    """

    def __init__(self, source: StateSource):
        self.source = source

    async def read(self, user: str, asset: str) -> ProtocolState:
        """
        Fetch and normalize the four reads concurrently.

        Raises:
            StateFetchError: Any read failed or returned malformed data
        """
        tasks = [
            asyncio.ensure_future(self.source.get_user_account_data(user)),
            asyncio.ensure_future(self.source.get_reserve_data(asset)),
            asyncio.ensure_future(self.source.get_user_reserve_data(asset, user)),
            asyncio.ensure_future(self.source.get_asset_price(asset)),
        ]

        try:
            account_raw, reserve_raw, user_reserve_raw, price_raw = await asyncio.gather(*tasks)
            state = ProtocolState(
                account=normalize_account_summary(account_raw),
                reserve=normalize_reserve_summary(reserve_raw),
                user_reserve=normalize_user_reserve_summary(user_reserve_raw),
                asset_price=normalize_asset_price(price_raw),
            )
        except Exception as e:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

            logger.warning(
                "State fetch failed",
                extra={"context": {"user": user, "asset": asset, "error": str(e)}},
            )
            if isinstance(e, StateFetchError):
                raise
            message = e.message if isinstance(e, LendSimError) else str(e)
            raise StateFetchError(
                f"Failed to fetch on-chain state: {message}",
                details={
                    "user": user,
                    "asset": asset,
                    "error_type": type(e).__name__,
                },
            ) from e

        logger.debug(
            "State fetched",
            extra={"context": {"user": user, "asset": asset, "asset_price": state.asset_price}},
        )
        return state


# =============================================================================
# RPC SOURCE
# =============================================================================

class RPCStateSource:
    """
    StateSource backed by eth_call against a market's contracts.

    Pool: getUserAccountData, getReserveData
    PoolDataProvider: getUserReserveData
    Price oracle: getAssetPrice
    """

    def __init__(self, provider: RPCProvider, market: MarketConfig, block: str = "latest"):
        self.provider = provider
        self.market = market
        self.block = block

    async def _call(self, to: str, signature: str, args: list, output_types: list[str]) -> tuple:
        data = abi.encode_call(signature, args)
        response = await self.provider.eth_call(to=to, data=data, block=self.block)
        return abi.decode_result(output_types, response.result)

    async def get_user_account_data(self, user: str) -> tuple:
        return await self._call(
            self.market.pool,
            abi.GET_USER_ACCOUNT_DATA_SIGNATURE,
            [user],
            abi.GET_USER_ACCOUNT_DATA_OUTPUT,
        )

    async def get_reserve_data(self, asset: str) -> tuple:
        return await self._call(
            self.market.pool,
            abi.GET_RESERVE_DATA_SIGNATURE,
            [asset],
            abi.GET_RESERVE_DATA_OUTPUT,
        )

    async def get_user_reserve_data(self, asset: str, user: str) -> tuple:
        return await self._call(
            self.market.pool_data_provider,
            abi.GET_USER_RESERVE_DATA_SIGNATURE,
            [asset, user],
            abi.GET_USER_RESERVE_DATA_OUTPUT,
        )

    async def get_asset_price(self, asset: str) -> int:
        (price,) = await self._call(
            self.market.price_oracle,
            abi.GET_ASSET_PRICE_SIGNATURE,
            [asset],
            abi.GET_ASSET_PRICE_OUTPUT,
        )
        return price
