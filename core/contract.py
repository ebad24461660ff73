"""ABI loading, address parsing and bound contract functions."""

import json
import re
from pathlib import Path
from typing import Any, Dict, List, Tuple

from web3 import Web3
from web3.contract import Contract
from web3.contract.contract import ContractFunction

from core.errors import InvalidAddress

ABIS_DIR = Path(__file__).parent / "abis"

_HEX_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


def parse_address(value: str) -> str:
    """Parse a literal 0x-prefixed 20-byte hex address.

    Any letter casing is accepted. The result is always checksummed, and
    that is the form stored and compared everywhere.

    Raises:
        InvalidAddress: if value is not exactly 0x + 40 hex digits
    """
    if not isinstance(value, str) or not _HEX_ADDRESS.match(value.strip()):
        raise InvalidAddress(value)
    return Web3.to_checksum_address(value.strip())


def load_abis(abis_dir: Path = ABIS_DIR) -> Dict[str, List]:
    """Read every <name>.json ABI in `abis_dir`, keyed by name."""
    abis = {}
    for abi_file in sorted(abis_dir.glob("*.json")):
        with open(abi_file, encoding="utf-8") as f:
            abis[abi_file.stem] = json.load(f)
    return abis


class ContractHelper:
    """Binds the bundled ABIs to addresses on one web3 connection."""

    def __init__(self, web3: Web3, abis: Dict[str, List] = None):
        self.web3 = web3
        self.abis = abis if abis is not None else load_abis()
        self._contracts: Dict[Tuple[str, str], Contract] = {}

    def get_contract(self, address: str, abi_name: str) -> Contract:
        """Contract instance for `address`, built once per (address, ABI).

        Raises:
            ValueError: unknown ABI name
        """
        if abi_name not in self.abis:
            raise ValueError(f"No bundled ABI named {abi_name!r}")

        address = Web3.to_checksum_address(address)
        key = (address, abi_name)
        if key not in self._contracts:
            self._contracts[key] = self.web3.eth.contract(address=address, abi=self.abis[abi_name])
        return self._contracts[key]

    def get_function(
        self,
        address: str,
        abi_name: str,
        function: str,
        *args: Any,
    ) -> ContractFunction:
        """Bind a contract function with its arguments.

        Args:
            address: Contract address
            abi_name: Bundled ABI (erc20, weth, uniswap_v2_router, ...)
            function: Function name as it appears in the ABI
            *args: Positional call arguments

        Returns:
            Bound ContractFunction, ready for .call() or .build_transaction()
        """
        contract = self.get_contract(address, abi_name)
        return getattr(contract.functions, function)(*args)
