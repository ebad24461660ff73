"""Chain access: reads, signed submission and receipts over one web3 connection."""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

import requests
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import Web3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from config import ChainConfig, Settings, get_chain
from core.contract import ContractHelper
from core.errors import (
    ChainTransportError,
    ContractCallFailed,
    ContractReverted,
    SignerUnavailable,
    TransactionTimeout,
    UnsupportedNetwork,
)

logger = logging.getLogger(__name__)

POLL_INTERVAL = 2.0


@dataclass
class TxStep:
    """One submitted and confirmed transaction of an operation."""
    label: str
    tx_hash: str
    receipt: Dict[str, Any]

    @property
    def block_number(self) -> Optional[int]:
        return self.receipt.get("blockNumber")

    @property
    def gas_used(self) -> Optional[int]:
        return self.receipt.get("gasUsed")


def await_step(client, label: str, tx_hash: str) -> TxStep:
    """Wait for `tx_hash` to confirm and record it as a step."""
    receipt = client.wait_for_receipt(tx_hash)
    return TxStep(label=label, tx_hash=tx_hash, receipt=receipt)


@contextmanager
def translate_errors(action: str):
    """Re-raise web3 and transport failures as ContractCallFailed subclasses."""
    try:
        yield
    except ContractLogicError as e:
        raise ContractReverted(f"{action} reverted: {e}") from e
    except TimeExhausted as e:
        raise TransactionTimeout(f"{action} timed out: {e}") from e
    except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
        raise ChainTransportError(f"{action} failed (network): {e}") from e
    except (Web3Exception, ValueError) as e:
        raise ContractCallFailed(f"{action} failed: {e}") from e


class ChainClient:
    """Chain capability injected into the orchestrator.

    One instance per network, shared for the lifetime of an EVMInterface.
    """

    def __init__(
        self,
        web3: Web3,
        chain: ChainConfig,
        account: Optional[LocalAccount] = None,
        receipt_timeout: float = 180,
    ):
        self.web3 = web3
        self.chain = chain
        self.account = account
        self.receipt_timeout = receipt_timeout
        self.helper = ContractHelper(web3)

    @property
    def address(self) -> Optional[str]:
        """Signer address, or None for a read-only client."""
        return self.account.address if self.account else None

    @property
    def chain_id(self) -> int:
        return self.chain.chain_id

    # ─── Reads ───

    def get_balance(self, address: str) -> int:
        with translate_errors("get_balance"):
            return self.web3.eth.get_balance(Web3.to_checksum_address(address))

    def get_transaction_count(self, address: str) -> int:
        with translate_errors("get_transaction_count"):
            return self.web3.eth.get_transaction_count(Web3.to_checksum_address(address))

    def get_block_number(self) -> int:
        with translate_errors("get_block_number"):
            return self.web3.eth.block_number

    def get_gas_price(self) -> int:
        with translate_errors("get_gas_price"):
            return self.web3.eth.gas_price

    def get_block(self, block_identifier) -> Dict[str, Any]:
        with translate_errors(f"get_block({block_identifier})"):
            return dict(self.web3.eth.get_block(block_identifier))

    def get_transaction(self, tx_hash: str) -> Dict[str, Any]:
        with translate_errors(f"get_transaction({tx_hash})"):
            return dict(self.web3.eth.get_transaction(tx_hash))

    def call(self, address: str, abi_name: str, function: str, *args: Any) -> Any:
        """Read-only contract call."""
        logger.debug("call %s.%s%s on %s", abi_name, function, args, address)
        with translate_errors(f"{function}() on {address}"):
            return self.helper.get_function(address, abi_name, function, *args).call()

    # ─── Submission ───

    def _require_account(self) -> LocalAccount:
        if self.account is None:
            raise SignerUnavailable(
                "No signer configured. Set DEV_PRIVATE_KEY to submit transactions."
            )
        return self.account

    def _sign_and_send(self, tx: Dict[str, Any]) -> str:
        account = self._require_account()
        signed = account.sign_transaction(tx)
        tx_hash = self.web3.eth.send_raw_transaction(signed.raw_transaction)
        return Web3.to_hex(tx_hash)

    def send_transaction(self, request: Dict[str, Any]) -> str:
        """Sign and broadcast a plain transaction.

        Args:
            request: Dict with "to", "value" and optionally "data"

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        account = self._require_account()
        with translate_errors("send_transaction"):
            tx = {
                "from": account.address,
                "to": Web3.to_checksum_address(request["to"]),
                "value": request.get("value", 0),
                "nonce": self.web3.eth.get_transaction_count(account.address, "pending"),
                "chainId": self.chain_id,
            }
            if request.get("data"):
                tx["data"] = request["data"]
            tx["gas"] = self.web3.eth.estimate_gas(tx)
            tx["gasPrice"] = self.web3.eth.gas_price
            tx_hash = self._sign_and_send(tx)

        logger.info("Transaction sent: %s", tx_hash)
        return tx_hash

    def transact(
        self,
        address: str,
        abi_name: str,
        function: str,
        *args: Any,
        value: int = 0,
    ) -> str:
        """Build, sign and send a state-changing contract call.

        Returns:
            Transaction hash (0x-prefixed hex)
        """
        account = self._require_account()
        with translate_errors(f"{function}() on {address}"):
            func = self.helper.get_function(address, abi_name, function, *args)
            tx = func.build_transaction({
                "from": account.address,
                "value": value,
                "nonce": self.web3.eth.get_transaction_count(account.address, "pending"),
                "chainId": self.chain_id,
            })
            tx_hash = self._sign_and_send(tx)

        logger.info("%s.%s sent: %s", abi_name, function, tx_hash)
        return tx_hash

    def wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        """Block until the transaction is mined (one confirmation).

        Raises:
            TransactionTimeout: if not mined within receipt_timeout
            ContractReverted: if the receipt status is 0
        """
        with translate_errors(f"Transaction {tx_hash}"):
            receipt = dict(self.web3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.receipt_timeout,
            ))

        if receipt.get("status") != 1:
            raise ContractReverted(f"Transaction reverted: {tx_hash}")
        logger.info("Transaction %s mined in block %s", tx_hash, receipt.get("blockNumber"))
        return receipt

    # ─── Subscriptions ───
    # HTTP transport has no push subscriptions, so these poll web3 filters.

    def _poll(self, filter_params) -> Iterator[Any]:
        with translate_errors("create filter"):
            event_filter = self.web3.eth.filter(filter_params)
        while True:
            with translate_errors("poll filter"):
                entries = event_filter.get_new_entries()
            yield from entries
            time.sleep(POLL_INTERVAL)

    def subscribe_blocks(self) -> Iterator[Dict[str, Any]]:
        for block_hash in self._poll("latest"):
            yield self.get_block(block_hash)

    def subscribe_pending_txs(self) -> Iterator[str]:
        for tx_hash in self._poll("pending"):
            yield Web3.to_hex(tx_hash)

    def subscribe_logs(self, filter_params: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        for log in self._poll(filter_params or {}):
            yield dict(log)


def connect(network: str, settings: Settings, require_signer: bool = False) -> ChainClient:
    """Open an HTTP connection to `network` and attach the configured signer.

    Args:
        network: Network name or alias
        settings: Runtime settings (RPC URL, timeouts, private key)
        require_signer: Fail early when no private key is configured

    Returns:
        ChainClient bound to the network
    """
    chain = get_chain(network)
    rpc_url = settings.rpc_url_for(network)

    web3 = Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": settings.rpc_timeout}))

    with translate_errors(f"Connecting to {chain.name}"):
        remote_chain_id = web3.eth.chain_id
    if remote_chain_id != chain.chain_id:
        raise UnsupportedNetwork(
            f"RPC endpoint reports chain id {remote_chain_id}, expected {chain.chain_id} ({chain.name})"
        )

    account = None
    if settings.private_key:
        try:
            account = Account.from_key(settings.private_key)
        except ValueError as e:
            raise SignerUnavailable("DEV_PRIVATE_KEY is not a valid private key") from e
    elif require_signer:
        raise SignerUnavailable(
            "No signer configured. Set DEV_PRIVATE_KEY to submit transactions."
        )

    logger.debug("Connected to %s (chain id %s)", chain.name, chain.chain_id)
    return ChainClient(web3, chain, account, receipt_timeout=settings.receipt_timeout)
