"""Shared fixtures: an in-memory chain client and a small addressbook."""

import pytest

from config import ZERO_ADDRESS
from core.addressbook import Addressbook
from core.errors import ContractCallFailed
from core.interface import EVMInterface
from modules.whitelist import TokenInfo, Whitelist

# Digit-only addresses are their own checksum form.
SIGNER = "0x" + "1" * 40
ALICE = "0x" + "2" * 40
BOB = "0x" + "3" * 40
TOKEN_A = "0x" + "4" * 40
TOKEN_B = "0x" + "5" * 40
WETH = "0x" + "6" * 40
V2_FACTORY = "0x" + "7" * 40
V2_ROUTER = "0x" + "8" * 40
V3_ROUTER = "0x" + "9" * 40
PAIR = "0x" + "12" * 20

NOW = 1_700_000_000


class FakeChainClient:
    """Records every read, submission and receipt wait in order."""

    def __init__(self, address=SIGNER, chain_id=1):
        self.address = address
        self.chain_id = chain_id
        self.decimals = {}
        self.symbols = {}
        self.token_balances = {}
        self.balances = {}
        self.nonces = {}
        self.pairs = {}
        self.reserves = {}
        self.token0 = {}
        self.calls = []
        self.transactions = []
        self.events = []

    # Reads

    def call(self, address, abi_name, function, *args):
        self.calls.append((address, function, args))
        if function == "decimals":
            return self.decimals[address]
        if function == "symbol":
            if address not in self.symbols:
                raise ContractCallFailed(f"symbol() on {address} reverted")
            return self.symbols[address]
        if function == "balanceOf":
            return self.token_balances.get((address, args[0]), 0)
        if function == "getPair":
            return self.pairs.get(frozenset(args), ZERO_ADDRESS)
        if function == "getReserves":
            reserve0, reserve1 = self.reserves[address]
            return [reserve0, reserve1, NOW]
        if function == "token0":
            return self.token0[address]
        raise AssertionError(f"unexpected call {abi_name}.{function}")

    def get_balance(self, address):
        return self.balances.get(address, 0)

    def get_transaction_count(self, address):
        return self.nonces.get(address, 0)

    def get_block_number(self):
        return 17_000_000

    def get_gas_price(self):
        return 30_000_000_000

    # Submission

    def _submit(self, record):
        self.transactions.append(record)
        tx_hash = "0x" + f"{len(self.transactions):064x}"
        self.events.append(("submit", record["function"], tx_hash))
        return tx_hash

    def send_transaction(self, request):
        return self._submit({
            "to": request["to"], "function": "transfer", "args": (), "value": request["value"],
        })

    def transact(self, address, abi_name, function, *args, value=0):
        return self._submit({
            "to": address, "abi": abi_name, "function": function, "args": args, "value": value,
        })

    def wait_for_receipt(self, tx_hash):
        self.events.append(("receipt", tx_hash))
        return {"status": 1, "blockNumber": 100 + len(self.events), "gasUsed": 21000}


@pytest.fixture
def client():
    fake = FakeChainClient()
    fake.decimals.update({TOKEN_A: 6, TOKEN_B: 18, WETH: 18})
    fake.symbols.update({TOKEN_A: "USDC", TOKEN_B: "DAI", WETH: "WETH"})
    return fake


@pytest.fixture
def addressbook():
    return Addressbook({
        "weth": {"ethereum": WETH},
        "usdc": {"ethereum": TOKEN_A},
        "dai": {"ethereum": TOKEN_B, "polygon": TOKEN_B},
        "uniswap_v2_factory": {"ethereum": V2_FACTORY},
        "uniswap_v2_router": {"ethereum": V2_ROUTER},
        "uniswap_v3_router": {"ethereum": V3_ROUTER},
    })


@pytest.fixture
def whitelist():
    wl = Whitelist()
    wl.add_wallet(SIGNER, "me")
    wl.add_wallet(ALICE, "alice")
    for address, symbol in ((TOKEN_A, "USDC"), (TOKEN_B, "DAI")):
        info = TokenInfo(address=address, chain_id=1, symbol=symbol)
        wl.token_addresses[info.key] = info
    return wl


@pytest.fixture
def interface(client, whitelist, addressbook):
    return EVMInterface("ethereum", client, whitelist, addressbook=addressbook, clock=lambda: NOW)
