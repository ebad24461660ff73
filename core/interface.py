"""Per-network interface: guarded value-moving operations and chain queries."""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple

from config import WETH_NAME, Settings, get_chain, normalize_network
from core import chain as chain_module
from core.addressbook import Addressbook, default_addressbook
from core.chain import TxStep, await_step
from core.errors import RecipientNotWhitelisted, SignerNotWhitelisted, TokenNotWhitelisted
from dexes.uniswap_v2 import UniswapV2Adapter, min_amount, quote_amount_b
from dexes.uniswap_v3 import UniswapV3Adapter
from modules.resolver import Resolver
from modules.token import TokenReader, parse_base_units, scale_amount

logger = logging.getLogger(__name__)

WALLET = "wallet"
TOKEN = "token"


@dataclass(frozen=True)
class Participant:
    """An address-shaped argument of a guarded operation."""
    arg: str
    role: str                          # WALLET or TOKEN
    fixed_name: Optional[str] = None   # addressbook name; bypasses the resolver


@dataclass(frozen=True)
class AmountSpec:
    """An amount argument; scaled by the decimals of `scale_by` when set."""
    arg: str
    scale_by: Optional[str] = None


@dataclass(frozen=True)
class OperationPlan:
    """Pre-flight shape shared by every guarded operation."""
    name: str
    participants: Tuple[Participant, ...]
    amounts: Tuple[AmountSpec, ...] = ()


SEND_ETH = OperationPlan(
    name="send_eth",
    participants=(Participant("to", WALLET),),
    amounts=(AmountSpec("amount"),),
)

SEND_ERC20 = OperationPlan(
    name="send_erc20",
    participants=(Participant("token", TOKEN), Participant("to", WALLET)),
    amounts=(AmountSpec("amount", scale_by="token"),),
)

SEND_ERC20_RAW = OperationPlan(
    name="send_erc20",
    participants=SEND_ERC20.participants,
    amounts=(AmountSpec("amount"),),
)

WRAP_ETH = OperationPlan(
    name="wrap_eth",
    participants=(Participant("weth", TOKEN, fixed_name=WETH_NAME),),
    amounts=(AmountSpec("amount"),),
)

SWAP_UNISWAP_V3 = OperationPlan(
    name="swap_tokens_uniswap_v3",
    participants=(
        Participant("token_in", TOKEN),
        Participant("token_out", TOKEN),
        Participant("recipient", WALLET),
    ),
    amounts=(
        AmountSpec("amount_in", scale_by="token_in"),
        AmountSpec("amount_out_minimum", scale_by="token_out"),
    ),
)

ADD_LIQUIDITY_UNISWAP_V2 = OperationPlan(
    name="add_liquidity_uniswap_v2",
    participants=(
        Participant("token_a", TOKEN),
        Participant("token_b", TOKEN),
        Participant("to", WALLET),
    ),
    amounts=(
        AmountSpec("amount_a_desired", scale_by="token_a"),
        AmountSpec("amount_a_min", scale_by="token_a"),
    ),
)


@dataclass
class Preflight:
    """Resolved, whitelist-checked and scaled arguments. Nothing submitted yet."""
    addresses: Dict[str, str]
    amounts: Dict[str, int]
    decimals: Dict[str, int] = field(default_factory=dict)


@dataclass
class OperationResult:
    """Outcome of a guarded operation."""
    operation: str
    steps: List[TxStep]
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def final(self) -> TxStep:
        return self.steps[-1]


class EVMInterface:
    """Guarded operations for one network.

    Every value-moving call runs the same pre-flight pipeline (resolve,
    whitelist-check, compute amounts) before any transaction is built.
    Submitted transactions are awaited one at a time; approvals always
    confirm before the action that depends on them.
    """

    def __init__(
        self,
        network: str,
        client,
        whitelist,
        settings: Optional[Settings] = None,
        resolver: Optional[Resolver] = None,
        addressbook: Optional[Addressbook] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.network = normalize_network(network)
        self.chain = get_chain(self.network)
        self.client = client
        self.whitelist = whitelist
        self.settings = settings or Settings()
        self.addressbook = addressbook or default_addressbook()
        self.resolver = resolver or Resolver(whitelist, self.addressbook)
        self.tokens = TokenReader(client)
        self.clock = clock

    @classmethod
    def connect(cls, network: str, whitelist, settings: Settings) -> "EVMInterface":
        """Connect to `network` with the configured signer.

        Raises:
            SignerNotWhitelisted: the signer wallet is not on the whitelist
        """
        client = chain_module.connect(network, settings)
        if client.address is not None and not whitelist.is_wallet_whitelisted(client.address):
            raise SignerNotWhitelisted(client.address)
        return cls(network, client, whitelist, settings)

    # ─── Pre-flight pipeline ───

    def _resolve_participant(self, participant: Participant, args: Dict[str, Any]) -> str:
        if participant.fixed_name:
            return self.addressbook.require_contract(participant.fixed_name, self.network)
        return self.resolver.resolve(args[participant.arg], self.network)

    def _check_participant(self, participant: Participant, address: str):
        if participant.role == TOKEN:
            if not self.whitelist.is_token_whitelisted(address, self.chain.chain_id):
                raise TokenNotWhitelisted(address, self.chain.chain_id)
        elif not self.whitelist.is_wallet_whitelisted(address):
            raise RecipientNotWhitelisted(address)

    def preflight(self, plan: OperationPlan, args: Dict[str, Any]) -> Preflight:
        """Resolve, whitelist-check and scale the arguments of an operation.

        Performs only reads (decimals()); never submits a transaction.
        """
        addresses = {
            p.arg: self._resolve_participant(p, args) for p in plan.participants
        }
        for p in plan.participants:
            self._check_participant(p, addresses[p.arg])

        whole = {spec.arg: parse_base_units(args[spec.arg]) for spec in plan.amounts}

        decimals: Dict[str, int] = {}
        amounts: Dict[str, int] = {}
        for spec in plan.amounts:
            if spec.scale_by is None:
                amounts[spec.arg] = whole[spec.arg]
                continue
            if spec.scale_by not in decimals:
                decimals[spec.scale_by] = self.tokens.decimals(addresses[spec.scale_by])
            amounts[spec.arg] = scale_amount(whole[spec.arg], decimals[spec.scale_by])

        logger.debug("%s preflight: %s %s", plan.name, addresses, amounts)
        return Preflight(addresses=addresses, amounts=amounts, decimals=decimals)

    # ─── Guarded operations ───

    def send_eth(self, to: str, amount) -> OperationResult:
        """Send native currency to a whitelisted wallet.

        Args:
            to: Recipient identifier
            amount: Amount in wei
        """
        pre = self.preflight(SEND_ETH, {"to": to, "amount": amount})
        recipient, value = pre.addresses["to"], pre.amounts["amount"]

        tx_hash = self.client.send_transaction({"to": recipient, "value": value})
        step = await_step(self.client, "transfer", tx_hash)
        return OperationResult("send_eth", [step], {"to": recipient, "value": value})

    def send_erc20(self, token: str, to: str, amount, raw: bool = False) -> OperationResult:
        """Transfer a whitelisted token to a whitelisted wallet.

        Args:
            token: Token identifier
            to: Recipient identifier
            amount: Whole tokens, scaled by decimals(); base units when raw=True
            raw: Treat amount as base units
        """
        plan = SEND_ERC20_RAW if raw else SEND_ERC20
        pre = self.preflight(plan, {"token": token, "to": to, "amount": amount})
        token_address, recipient = pre.addresses["token"], pre.addresses["to"]
        value = pre.amounts["amount"]

        tx_hash = self.client.transact(token_address, "erc20", "transfer", recipient, value)
        step = await_step(self.client, "transfer", tx_hash)
        return OperationResult(
            "send_erc20", [step],
            {"token": token_address, "to": recipient, "amount": value},
        )

    def wrap_eth(self, amount) -> OperationResult:
        """Deposit native currency into the chain's WETH contract.

        Args:
            amount: Amount in wei
        """
        pre = self.preflight(WRAP_ETH, {"amount": amount})
        weth, value = pre.addresses["weth"], pre.amounts["amount"]

        tx_hash = self.client.transact(weth, "weth", "deposit", value=value)
        step = await_step(self.client, "deposit", tx_hash)
        return OperationResult("wrap_eth", [step], {"weth": weth, "value": value})

    def swap_tokens_uniswap_v3(
        self,
        token_in: str,
        token_out: str,
        amount_in,
        amount_out_minimum,
        recipient: str,
    ) -> OperationResult:
        """Single-hop exact-input swap on Uniswap V3.

        Amounts are whole tokens, scaled by each token's decimals().
        """
        pre = self.preflight(SWAP_UNISWAP_V3, {
            "token_in": token_in,
            "token_out": token_out,
            "recipient": recipient,
            "amount_in": amount_in,
            "amount_out_minimum": amount_out_minimum,
        })
        addresses, amounts = pre.addresses, pre.amounts

        adapter = UniswapV3Adapter(self.client, self.network, self.addressbook)
        steps = adapter.swap_exact_input(
            token_in=addresses["token_in"],
            token_out=addresses["token_out"],
            amount_in=amounts["amount_in"],
            amount_out_minimum=amounts["amount_out_minimum"],
            recipient=addresses["recipient"],
            fee=self.settings.v3_fee_tier,
        )
        return OperationResult("swap_tokens_uniswap_v3", steps, {
            **addresses, **amounts, "fee": self.settings.v3_fee_tier,
        })

    def add_liquidity_uniswap_v2(
        self,
        token_a: str,
        token_b: str,
        amount_a_desired,
        amount_a_min,
        to: str,
        deadline: int = 0,
    ) -> OperationResult:
        """Add liquidity to an existing Uniswap V2 pair.

        Token B's amount is derived from the pool's reserves. Its minimum
        applies the configured slippage tolerance.

        Args:
            deadline: Unix timestamp; 0 means now + liquidity_deadline_seconds
        """
        pre = self.preflight(ADD_LIQUIDITY_UNISWAP_V2, {
            "token_a": token_a,
            "token_b": token_b,
            "to": to,
            "amount_a_desired": amount_a_desired,
            "amount_a_min": amount_a_min,
        })
        addr_a, addr_b, recipient = (
            pre.addresses["token_a"], pre.addresses["token_b"], pre.addresses["to"],
        )
        amount_a = pre.amounts["amount_a_desired"]

        adapter = UniswapV2Adapter(self.client, self.network, self.addressbook)
        pool = adapter.get_pool(addr_a, addr_b)
        if pool.is_empty:
            logger.info("Pair %s has no reserves yet, depositing at 1:1", pool.address)

        amount_b = quote_amount_b(amount_a, pool.reserve_a, pool.reserve_b)
        amount_b_min = min_amount(amount_b, self.settings.v2_slippage_percent)

        if not deadline:
            deadline = int(self.clock()) + self.settings.liquidity_deadline_seconds

        steps = adapter.add_liquidity(
            token_a=addr_a,
            token_b=addr_b,
            amount_a_desired=amount_a,
            amount_b_desired=amount_b,
            amount_a_min=pre.amounts["amount_a_min"],
            amount_b_min=amount_b_min,
            to=recipient,
            deadline=deadline,
        )
        return OperationResult("add_liquidity_uniswap_v2", steps, {
            "pair": pool.address,
            "amount_a_desired": amount_a,
            "amount_b_desired": amount_b,
            "amount_a_min": pre.amounts["amount_a_min"],
            "amount_b_min": amount_b_min,
            "deadline": deadline,
        })

    # ─── Read-only queries ───

    def get_block_number(self) -> int:
        return self.client.get_block_number()

    def get_gas_price(self) -> int:
        return self.client.get_gas_price()

    def get_balance(self, who: str) -> Tuple[str, int]:
        address = self.resolver.resolve(who, self.network)
        return address, self.client.get_balance(address)

    def get_nonce(self, who: str) -> Tuple[str, int]:
        address = self.resolver.resolve(who, self.network)
        return address, self.client.get_transaction_count(address)

    def get_block_details(self, block_number: int) -> Dict[str, Any]:
        return self.client.get_block(block_number)

    def get_tx_details(self, tx_hash: str) -> Dict[str, Any]:
        return self.client.get_transaction(tx_hash)

    def get_erc20_balance(self, wallet: str, token: str) -> Dict[str, Any]:
        wallet_address, token_address = self.resolver.resolve_many([wallet, token], self.network)
        return {
            "wallet": wallet_address,
            "token": token_address,
            "symbol": self.tokens.symbol(token_address),
            "decimals": self.tokens.decimals(token_address),
            "balance": self.tokens.balance_of(token_address, wallet_address),
        }

    def subscribe_blocks(self) -> Iterator[Dict[str, Any]]:
        return self.client.subscribe_blocks()

    def subscribe_pending_transactions(self) -> Iterator[str]:
        return self.client.subscribe_pending_txs()

    def subscribe_logs(self, filter_params: Optional[Dict[str, Any]] = None) -> Iterator[Dict[str, Any]]:
        return self.client.subscribe_logs(filter_params)
