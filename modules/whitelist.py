"""Persisted allow-list of wallets and tokens."""

import json
import logging
import os
import tempfile
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

from core.contract import parse_address
from core.errors import ContractCallFailed, InvalidAddress, PersistenceError

logger = logging.getLogger(__name__)


@dataclass
class WalletInfo:
    """Whitelisted wallet."""
    address: str
    name: Optional[str] = None


@dataclass
class TokenInfo:
    """Whitelisted token on one chain."""
    address: str
    chain_id: int
    symbol: str
    name: Optional[str] = None

    @property
    def key(self) -> str:
        return token_key(self.address, self.chain_id)


def token_key(address: str, chain_id: int) -> str:
    return f"{address}:{chain_id}"


def _stored_address(value: str) -> str:
    try:
        return parse_address(value)
    except InvalidAddress as e:
        raise PersistenceError(f"Whitelist contains an invalid address: {value!r}") from e


def _check_fields(kind: str, key: str, entry: Any, required: Dict[str, tuple], optional: Dict[str, tuple]):
    if not isinstance(entry, dict):
        raise PersistenceError(f"{kind} entry {key!r} must be an object")
    unknown = set(entry) - set(required) - set(optional)
    if unknown:
        raise PersistenceError(f"{kind} entry {key!r} has unknown fields: {sorted(unknown)}")
    for field_name, types in required.items():
        if field_name not in entry:
            raise PersistenceError(f"{kind} entry {key!r} is missing {field_name!r}")
        if not isinstance(entry[field_name], types) or isinstance(entry[field_name], bool):
            raise PersistenceError(f"{kind} entry {key!r} has invalid {field_name!r}")
    for field_name, types in optional.items():
        value = entry.get(field_name)
        if value is not None and not isinstance(value, types):
            raise PersistenceError(f"{kind} entry {key!r} has invalid {field_name!r}")


class Whitelist:
    """Wallet and token allow-list.

    Addresses are checksummed on the way in and on every lookup, so
    membership never depends on the caller's letter casing. Both tables
    are insertion-ordered dicts, which makes name lookup deterministic.

    One instance is shared by every component of a process run. Writes
    are expected from one process at a time (no file locking).
    """

    def __init__(self):
        self.wallet_addresses: Dict[str, WalletInfo] = {}
        self.token_addresses: Dict[str, TokenInfo] = {}

    # ─── Wallets ───

    def add_wallet(self, address: str, name: Optional[str] = None) -> WalletInfo:
        address = parse_address(address)
        info = WalletInfo(address=address, name=name)
        self.wallet_addresses[address] = info
        logger.info("Whitelisted wallet %s%s", address, f" ({name})" if name else "")
        return info

    def remove_wallet(self, address: str) -> bool:
        """Remove a wallet. Returns False when it was not present."""
        try:
            address = parse_address(address)
        except InvalidAddress:
            return False
        removed = self.wallet_addresses.pop(address, None) is not None
        if removed:
            logger.info("Removed wallet %s from whitelist", address)
        return removed

    def is_wallet_whitelisted(self, address: str) -> bool:
        try:
            return parse_address(address) in self.wallet_addresses
        except InvalidAddress:
            return False

    def find_wallet_by_name(self, name: str) -> Optional[WalletInfo]:
        """First wallet (in insertion order) carrying this display name."""
        for info in self.wallet_addresses.values():
            if info.name == name:
                return info
        return None

    def wallets(self) -> List[WalletInfo]:
        return list(self.wallet_addresses.values())

    # ─── Tokens ───

    def add_token(
        self,
        address: str,
        chain_id: int,
        client,
        name: Optional[str] = None,
    ) -> TokenInfo:
        """Whitelist a token, reading its symbol() from the chain.

        Args:
            address: Token contract address
            chain_id: Chain the token lives on
            client: Chain client connected to that chain
            name: Optional display name

        Raises:
            InvalidAddress: malformed address
            ContractCallFailed: symbol() could not be read; store unchanged
        """
        address = parse_address(address)
        symbol = client.call(address, "erc20", "symbol")
        if not isinstance(symbol, str):
            raise ContractCallFailed(f"symbol() on {address} returned {symbol!r}")

        info = TokenInfo(address=address, chain_id=int(chain_id), symbol=symbol, name=name)
        self.token_addresses[info.key] = info
        logger.info("Whitelisted token %s (%s) on chain %s", symbol, address, chain_id)
        return info

    def remove_token(self, address: str, chain_id: int) -> bool:
        try:
            address = parse_address(address)
        except InvalidAddress:
            return False
        removed = self.token_addresses.pop(token_key(address, int(chain_id)), None) is not None
        if removed:
            logger.info("Removed token %s on chain %s from whitelist", address, chain_id)
        return removed

    def is_token_whitelisted(self, address: str, chain_id: int) -> bool:
        try:
            return token_key(parse_address(address), int(chain_id)) in self.token_addresses
        except InvalidAddress:
            return False

    def get_token(self, address: str, chain_id: int) -> Optional[TokenInfo]:
        try:
            return self.token_addresses.get(token_key(parse_address(address), int(chain_id)))
        except InvalidAddress:
            return None

    def tokens(self, chain_id: Optional[int] = None) -> List[TokenInfo]:
        return [
            info for info in self.token_addresses.values()
            if chain_id is None or info.chain_id == chain_id
        ]

    # ─── Persistence ───

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wallet_addresses": {k: asdict(v) for k, v in self.wallet_addresses.items()},
            "token_addresses": {k: asdict(v) for k, v in self.token_addresses.items()},
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Whitelist":
        """Build a whitelist from its document form, validating strictly."""
        if not isinstance(data, dict):
            raise PersistenceError("Whitelist document must be a JSON object")
        expected = {"wallet_addresses", "token_addresses"}
        if set(data) != expected:
            raise PersistenceError(
                f"Whitelist document must have exactly {sorted(expected)}, got {sorted(data)}"
            )
        wallets, tokens = data["wallet_addresses"], data["token_addresses"]
        if not isinstance(wallets, dict) or not isinstance(tokens, dict):
            raise PersistenceError("wallet_addresses and token_addresses must be objects")

        whitelist = cls()
        for key, entry in wallets.items():
            _check_fields("Wallet", key, entry, {"address": (str,)}, {"name": (str,)})
            if entry["address"] != key:
                raise PersistenceError(f"Wallet key {key!r} does not match its address")
            address = _stored_address(entry["address"])
            whitelist.wallet_addresses[address] = WalletInfo(
                address=address, name=entry.get("name"),
            )

        for key, entry in tokens.items():
            _check_fields(
                "Token", key, entry,
                {"address": (str,), "chain_id": (int,), "symbol": (str,)},
                {"name": (str,)},
            )
            info = TokenInfo(
                address=entry["address"],
                chain_id=entry["chain_id"],
                symbol=entry["symbol"],
                name=entry.get("name"),
            )
            if info.key != key:
                raise PersistenceError(f"Token key {key!r} does not match {info.key!r}")
            info.address = _stored_address(info.address)
            whitelist.token_addresses[info.key] = info

        return whitelist

    def save(self, path) -> None:
        """Write the whitelist as pretty-printed JSON.

        The document is written to a temporary file next to the target and
        renamed over it, so readers never see a partial file.
        """
        path = Path(path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self.to_dict(), f, indent=2, ensure_ascii=False)
                    f.write("\n")
                os.replace(tmp_name, path)
            except BaseException:
                if os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                raise
        except OSError as e:
            raise PersistenceError(f"Cannot write whitelist {path}: {e}") from e
        logger.debug("Saved whitelist to %s", path)

    @classmethod
    def load(cls, path) -> "Whitelist":
        """Read a whitelist document.

        Raises:
            PersistenceError: missing file, invalid JSON or schema mismatch
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise PersistenceError(f"Whitelist file not found: {path}") from e
        except json.JSONDecodeError as e:
            raise PersistenceError(f"Invalid JSON in whitelist {path}: {e}") from e
        except OSError as e:
            raise PersistenceError(f"Cannot read whitelist {path}: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def load_or_create(cls, path) -> "Whitelist":
        """Load the whitelist, or start empty when the file does not exist."""
        if not Path(path).exists():
            logger.debug("No whitelist at %s, starting empty", path)
            return cls()
        return cls.load(path)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Whitelist):
            return NotImplemented
        return (
            self.wallet_addresses == other.wallet_addresses
            and self.token_addresses == other.token_addresses
        )

    def __len__(self) -> int:
        return len(self.wallet_addresses) + len(self.token_addresses)
