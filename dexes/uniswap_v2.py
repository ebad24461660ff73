"""Uniswap V2 liquidity provision (also works for forks sharing the router ABI)."""

import logging
from typing import List

from config import UNISWAP_V2_FACTORY, UNISWAP_V2_ROUTER, ZERO_ADDRESS
from core.chain import TxStep, await_step
from core.errors import PoolNotFound
from .base import BaseDEXAdapter, Pool

logger = logging.getLogger(__name__)


def quote_amount_b(amount_a: int, reserve_a: int, reserve_b: int) -> int:
    """Amount of token B matching `amount_a` at the pool's current price.

    An empty pool has no price yet, so the amounts are taken 1:1.
    Integer division truncates, matching the router's own quote().
    """
    if reserve_a == 0 or reserve_b == 0:
        return amount_a
    return amount_a * reserve_b // reserve_a


def min_amount(amount: int, slippage_percent: int) -> int:
    """Lower bound for `amount` after a slippage tolerance, rounded down."""
    return amount * (100 - slippage_percent) // 100


class UniswapV2Adapter(BaseDEXAdapter):
    """Adapter for Uniswap V2 liquidity."""

    name = "uniswap_v2"

    def get_pool(self, token_a: str, token_b: str) -> Pool:
        """Find the pair for two tokens and read its reserves.

        Reserves are returned in (token_a, token_b) order regardless of
        how the pair sorts its own token0/token1.

        Raises:
            PoolNotFound: the factory has no pair for these tokens
        """
        factory = self.contract(UNISWAP_V2_FACTORY)
        pair_address = self.client.call(factory, "uniswap_v2_factory", "getPair", token_a, token_b)

        if int(pair_address, 16) == int(ZERO_ADDRESS, 16):
            raise PoolNotFound(token_a, token_b)

        reserves = self.client.call(pair_address, "uniswap_v2_pair", "getReserves")
        token0 = self.client.call(pair_address, "uniswap_v2_pair", "token0")

        reserve0, reserve1 = reserves[0], reserves[1]
        if token0.lower() == token_a.lower():
            reserve_a, reserve_b = reserve0, reserve1
        else:
            reserve_a, reserve_b = reserve1, reserve0

        logger.debug("Pair %s reserves: %s / %s", pair_address, reserve_a, reserve_b)
        return Pool(
            address=pair_address,
            dex_name="Uniswap V2",
            token_a=token_a,
            token_b=token_b,
            reserve_a=reserve_a,
            reserve_b=reserve_b,
        )

    def add_liquidity(
        self,
        token_a: str,
        token_b: str,
        amount_a_desired: int,
        amount_b_desired: int,
        amount_a_min: int,
        amount_b_min: int,
        to: str,
        deadline: int,
    ) -> List[TxStep]:
        """Approve both tokens to the router, then add liquidity.

        Returns:
            Steps in submission order: approve A, approve B, addLiquidity
        """
        router = self.contract(UNISWAP_V2_ROUTER)

        steps = [
            self.approve(token_a, router, amount_a_desired),
            self.approve(token_b, router, amount_b_desired),
        ]

        tx_hash = self.client.transact(
            router, "uniswap_v2_router", "addLiquidity",
            token_a, token_b,
            amount_a_desired, amount_b_desired,
            amount_a_min, amount_b_min,
            to, deadline,
        )
        steps.append(await_step(self.client, "addLiquidity", tx_hash))
        return steps
