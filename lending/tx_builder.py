"""
lending/tx_builder.py - Pool call payloads.

Builders are pure functions of their arguments: they never read state
and never touch the network. The only failure mode is the encoder
rejecting an argument, surfaced as EncodingError.

Gas estimation is the one network call here and is kept separate.
"""

from typing import Any, Union

from eth_utils import is_address, to_checksum_address

from chains.providers import RPCProvider
from core.constants import DEFAULT_REFERRAL_CODE, InterestRateMode
from core.exceptions import EncodingError, GasEstimationError, LendSimError
from core.logging import get_logger
from core.models import TxPayload
from lending import abi

logger = get_logger(__name__)


class TxPayloadBuilder:
    """
    Builds unsigned calls to one pool contract.

    Usage:
        builder = TxPayloadBuilder(market.pool)
        payload = builder.build_supply(asset, 1_000_000, user)
    """

    def __init__(self, pool_address: str):
        if not isinstance(pool_address, str) or not is_address(pool_address):
            raise EncodingError(
                f"Invalid pool address: {pool_address!r}",
                details={"pool_address": repr(pool_address)},
            )
        self.pool_address = to_checksum_address(pool_address)

    def _payload(self, signature: str, args: list, parameters: dict[str, Any]) -> TxPayload:
        return TxPayload(
            to=self.pool_address,
            data=abi.encode_call(signature, args),
            value=0,
            function_signature=signature,
            parameters=parameters,
        )

    def build_supply(
        self,
        asset: str,
        amount: int,
        on_behalf_of: str,
        referral_code: int = DEFAULT_REFERRAL_CODE,
    ) -> TxPayload:
        return self._payload(
            abi.SUPPLY_SIGNATURE,
            [asset, amount, on_behalf_of, referral_code],
            {
                "asset": asset,
                "amount": str(amount),
                "on_behalf_of": on_behalf_of,
                "referral_code": referral_code,
            },
        )

    def build_withdraw(self, asset: str, amount: int, to: str) -> TxPayload:
        return self._payload(
            abi.WITHDRAW_SIGNATURE,
            [asset, amount, to],
            {
                "asset": asset,
                "amount": str(amount),
                "to": to,
            },
        )

    def build_borrow(
        self,
        asset: str,
        amount: int,
        interest_rate_mode: Union[int, InterestRateMode],
        on_behalf_of: str,
        referral_code: int = DEFAULT_REFERRAL_CODE,
    ) -> TxPayload:
        # ABI order: asset, amount, interestRateMode, referralCode, onBehalfOf
        mode = _mode_value(interest_rate_mode)
        return self._payload(
            abi.BORROW_SIGNATURE,
            [asset, amount, mode, referral_code, on_behalf_of],
            {
                "asset": asset,
                "amount": str(amount),
                "interest_rate_mode": mode,
                "referral_code": referral_code,
                "on_behalf_of": on_behalf_of,
            },
        )

    def build_repay(
        self,
        asset: str,
        amount: int,
        interest_rate_mode: Union[int, InterestRateMode],
        on_behalf_of: str,
    ) -> TxPayload:
        mode = _mode_value(interest_rate_mode)
        return self._payload(
            abi.REPAY_SIGNATURE,
            [asset, amount, mode, on_behalf_of],
            {
                "asset": asset,
                "amount": str(amount),
                "interest_rate_mode": mode,
                "on_behalf_of": on_behalf_of,
            },
        )


def _mode_value(mode: Union[int, InterestRateMode]) -> int:
    # Plain int goes to the encoder untouched; it validates the uint256
    return int(mode) if isinstance(mode, InterestRateMode) else mode


async def estimate_gas(provider: RPCProvider, payload: TxPayload, sender: str) -> int:
    """
    Estimate gas for a payload sent from `sender`.

    Raises:
        GasEstimationError: Node rejected the estimate or was unreachable
    """
    tx = {
        "to": payload.to,
        "data": payload.data,
        "from": sender,
        "value": payload.value,
    }
    try:
        gas = await provider.estimate_gas(tx)
    except (LendSimError, ValueError, TypeError) as e:
        message = e.message if isinstance(e, LendSimError) else str(e)
        logger.warning(
            "Gas estimation failed",
            extra={"context": {"to": payload.to, "sender": sender, "error": message}},
        )
        raise GasEstimationError(
            f"Gas estimation failed: {message}",
            details={
                "to": payload.to,
                "sender": sender,
                "function_signature": payload.function_signature,
            },
        ) from e

    logger.debug(
        "Gas estimated",
        extra={"context": {"function_signature": payload.function_signature, "gas": gas}},
    )
    return gas
