"""Static lookup of well-known contract addresses per network."""

import json
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional

from web3 import Web3

from config import normalize_network
from core.errors import ContractNotDeployed

ADDRESSBOOK_PATH = Path(__file__).parent / "addressbook.json"


class Addressbook:
    """Read-only contract name -> network -> address table.

    Built once and never mutated afterwards, so it can be shared freely.
    """

    def __init__(self, entries: Mapping[str, Mapping[str, str]]):
        table: Dict[str, Mapping[str, str]] = {}
        for name, addresses in entries.items():
            table[name] = MappingProxyType({
                normalize_network(chain): Web3.to_checksum_address(address)
                for chain, address in addresses.items()
            })
        self._table = MappingProxyType(table)

    @classmethod
    def from_file(cls, path: Path) -> "Addressbook":
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        return cls({name: entry["addresses"] for name, entry in data.items()})

    def contract_address(self, name: str, chain: str) -> Optional[str]:
        """Address of `name` on `chain`, or None when unknown."""
        addresses = self._table.get(name)
        if addresses is None:
            return None
        return addresses.get(normalize_network(chain))

    def require_contract(self, name: str, chain: str) -> str:
        """Address of `name` on `chain`.

        Raises:
            ContractNotDeployed: no entry for this network
        """
        address = self.contract_address(name, chain)
        if address is None:
            raise ContractNotDeployed(name, chain)
        return address

    def contract_names(self) -> List[str]:
        return list(self._table)


@lru_cache(maxsize=1)
def default_addressbook() -> Addressbook:
    """The bundled addressbook, loaded on first use."""
    return Addressbook.from_file(ADDRESSBOOK_PATH)
