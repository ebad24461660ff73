"""Identifier -> address resolution."""

import logging
from typing import Iterable, List, Optional

from core.addressbook import Addressbook, default_addressbook
from core.contract import parse_address
from core.errors import InvalidAddress, UnresolvedIdentifier

logger = logging.getLogger(__name__)


class Resolver:
    """Turns user input into a checksummed address.

    Stages, first match wins:
    1. literal hex address
    2. whitelisted wallet name (any chain)
    3. addressbook contract name on the given chain

    The literal parse goes first so that a wallet or contract named like
    an address can never shadow the address itself. Only in-memory
    tables are consulted; the chain is never queried.
    """

    def __init__(self, whitelist, addressbook: Optional[Addressbook] = None):
        self.whitelist = whitelist
        self.addressbook = addressbook or default_addressbook()

    def resolve(self, identifier: str, chain: str) -> str:
        """Resolve one identifier.

        Args:
            identifier: Hex address, wallet name or addressbook name
            chain: Network name used for the addressbook stage

        Returns:
            Checksummed address

        Raises:
            UnresolvedIdentifier: no stage matched
        """
        try:
            address = parse_address(identifier)
            logger.debug("Resolved %r as literal address", identifier)
            return address
        except InvalidAddress as e:
            parse_error = e

        wallet = self.whitelist.find_wallet_by_name(identifier)
        if wallet is not None:
            logger.debug("Resolved %r to whitelisted wallet %s", identifier, wallet.address)
            return wallet.address

        address = self.addressbook.contract_address(identifier, chain)
        if address is not None:
            logger.debug("Resolved %r to addressbook entry %s on %s", identifier, address, chain)
            return address

        raise UnresolvedIdentifier(identifier) from parse_error

    def resolve_many(self, identifiers: Iterable[str], chain: str) -> List[str]:
        return [self.resolve(identifier, chain) for identifier in identifiers]
