"""ERC20 token reads and amount conversion."""

import logging
import re
from typing import Union

from core.errors import InvalidAmount

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")


def _parse_whole_number(value: Union[str, int], what: str) -> int:
    if isinstance(value, bool):
        raise InvalidAmount(f"Invalid {what}: {value!r}")
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip()
        if not _DIGITS.fullmatch(text):
            raise InvalidAmount(
                f"Invalid {what}: {value!r} (expected ASCII digits only, fractions are not supported)"
            )
        number = int(text)
    if number < 0:
        raise InvalidAmount(f"Invalid {what}: {value!r} (must not be negative)")
    return number


def scale_amount(value: Union[str, int], decimals: int) -> int:
    """Convert a whole-unit amount to base units.

    Uses integer arithmetic only, so "1000000" at 18 decimals is exactly
    1000000 * 10**18.

    Args:
        value: Whole number of tokens, as a decimal string or int
        decimals: Token decimals()

    Returns:
        Amount in base units
    """
    if decimals < 0:
        raise InvalidAmount(f"Invalid token decimals: {decimals}")
    return _parse_whole_number(value, "amount") * 10 ** decimals


def parse_base_units(value: Union[str, int]) -> int:
    """Parse an amount that is already in base units (e.g. wei)."""
    return _parse_whole_number(value, "amount")


def format_units(amount: int, decimals: int) -> str:
    """Format base units with the decimal point placed exactly."""
    if decimals == 0:
        return str(amount)
    sign = "-" if amount < 0 else ""
    whole, frac = divmod(abs(amount), 10 ** decimals)
    frac_str = str(frac).rjust(decimals, "0").rstrip("0")
    if not frac_str:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{frac_str}"


class TokenReader:
    """Live ERC20 reads through a chain client."""

    def __init__(self, client):
        self.client = client

    def symbol(self, token_address: str) -> str:
        return self.client.call(token_address, "erc20", "symbol")

    def decimals(self, token_address: str) -> int:
        decimals = int(self.client.call(token_address, "erc20", "decimals"))
        logger.debug("decimals(%s) = %s", token_address, decimals)
        return decimals

    def balance_of(self, token_address: str, holder_address: str) -> int:
        """Get token balance for an address.

        Args:
            token_address: Token contract address
            holder_address: Holder address to check

        Returns:
            Balance in base units
        """
        return int(self.client.call(token_address, "erc20", "balanceOf", holder_address))
