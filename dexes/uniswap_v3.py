"""Uniswap V3 swaps through the SwapRouter."""

import logging
from typing import List

from eth_abi.packed import encode_packed

from config import DEFAULT_V3_FEE_TIER, MAX_UINT256, UNISWAP_V3_ROUTER
from core.chain import TxStep, await_step
from .base import BaseDEXAdapter

logger = logging.getLogger(__name__)

# Fee tiers (in hundredths of a bip): 0.01%, 0.05%, 0.3%, 1%
FEE_TIERS = [100, 500, 3000, 10000]


def encode_path(token_in: str, fee: int, token_out: str) -> bytes:
    """Single-hop V3 path: token_in (20 bytes) ++ fee (uint24) ++ token_out (20 bytes)."""
    return encode_packed(["address", "uint24", "address"], [token_in, fee, token_out])


class UniswapV3Adapter(BaseDEXAdapter):
    """Adapter for Uniswap V3 exact-input swaps."""

    name = "uniswap_v3"

    def swap_exact_input(
        self,
        token_in: str,
        token_out: str,
        amount_in: int,
        amount_out_minimum: int,
        recipient: str,
        fee: int = DEFAULT_V3_FEE_TIER,
        deadline: int = MAX_UINT256,
    ) -> List[TxStep]:
        """Approve the router for `amount_in`, then swap along one pool.

        Returns:
            Steps in submission order: approve, exactInput
        """
        if fee not in FEE_TIERS:
            logger.warning("Fee tier %s is not a standard Uniswap V3 tier", fee)

        router = self.contract(UNISWAP_V3_ROUTER)
        steps = [self.approve(token_in, router, amount_in)]

        path = encode_path(token_in, fee, token_out)
        params = (path, recipient, deadline, amount_in, amount_out_minimum)
        tx_hash = self.client.transact(router, "uniswap_v3_router", "exactInput", params)
        steps.append(await_step(self.client, "exactInput", tx_hash))
        return steps
