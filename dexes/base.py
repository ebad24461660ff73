"""Base DEX adapter interface."""

import logging
from dataclasses import dataclass
from typing import Optional

from core.addressbook import Addressbook, default_addressbook
from core.chain import TxStep, await_step

logger = logging.getLogger(__name__)


@dataclass
class Pool:
    """A V2-style pair, with reserves oriented to the caller's token order."""
    address: str
    dex_name: str
    token_a: str
    token_b: str
    reserve_a: int
    reserve_b: int

    @property
    def is_empty(self) -> bool:
        return self.reserve_a == 0 or self.reserve_b == 0


class BaseDEXAdapter:
    """Shared plumbing for DEX adapters.

    Subclasses set `name` and use `approve` to grant the router an
    allowance before acting. Every approval is confirmed before `approve`
    returns, so a dependent call never races its approval.
    """

    # Override in subclass
    name: str = "base"

    def __init__(self, client, chain: str, addressbook: Optional[Addressbook] = None):
        """Initialize the adapter.

        Args:
            client: Chain client for the network
            chain: Network name (ethereum, arbitrum, ...)
            addressbook: Contract addresses (bundled addressbook by default)
        """
        self.client = client
        self.chain = chain
        self.addressbook = addressbook or default_addressbook()

    def contract(self, contract_name: str) -> str:
        """Address of a DEX contract on this chain (ContractNotDeployed if missing)."""
        return self.addressbook.require_contract(contract_name, self.chain)

    def approve(self, token_address: str, spender: str, amount: int) -> TxStep:
        """Approve `spender` for `amount` of a token and wait for the receipt."""
        logger.info("%s: approving %s for %s of %s", self.name, spender, amount, token_address)
        tx_hash = self.client.transact(token_address, "erc20", "approve", spender, amount)
        return await_step(self.client, f"approve {token_address}", tx_hash)
