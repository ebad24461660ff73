import pytest

from core import chain as chain_module
from core.errors import (
    InvalidAmount,
    PoolNotFound,
    RecipientNotWhitelisted,
    SignerNotWhitelisted,
    TokenNotWhitelisted,
    UnresolvedIdentifier,
)
from core.interface import EVMInterface
from config import Settings
from modules.whitelist import TokenInfo, Whitelist

from conftest import (
    ALICE, BOB, NOW, PAIR, SIGNER, TOKEN_A, TOKEN_B, V2_FACTORY, V2_ROUTER, V3_ROUTER, WETH,
    FakeChainClient,
)


def _whitelist_weth(whitelist):
    info = TokenInfo(address=WETH, chain_id=1, symbol="WETH")
    whitelist.token_addresses[info.key] = info


def test_send_eth_to_named_wallet(interface, client):
    result = interface.send_eth("alice", "1000")

    assert client.transactions == [
        {"to": ALICE, "function": "transfer", "args": (), "value": 1000},
    ]
    assert result.operation == "send_eth"
    assert result.details == {"to": ALICE, "value": 1000}
    assert result.final.receipt["status"] == 1


def test_send_eth_to_unlisted_address_submits_nothing(interface, client):
    with pytest.raises(RecipientNotWhitelisted):
        interface.send_eth(BOB, "1000")
    assert client.transactions == []


def test_send_eth_to_unknown_name_submits_nothing(interface, client):
    with pytest.raises(UnresolvedIdentifier):
        interface.send_eth("carol", "1000")
    assert client.transactions == []


def test_send_eth_rejects_fractional_amount(interface, client):
    with pytest.raises(InvalidAmount):
        interface.send_eth("alice", "1.5")
    assert client.transactions == []


def test_send_erc20_scales_by_decimals(interface, client):
    result = interface.send_erc20("usdc", "alice", "5")

    [tx] = client.transactions
    assert tx["to"] == TOKEN_A
    assert tx["function"] == "transfer"
    assert tx["args"] == (ALICE, 5_000_000)
    assert result.details["amount"] == 5_000_000


def test_send_erc20_raw_amount_skips_decimals(interface, client):
    interface.send_erc20(TOKEN_A, "alice", "5", raw=True)

    assert client.transactions[0]["args"] == (ALICE, 5)
    assert not [c for c in client.calls if c[1] == "decimals"]


def test_send_erc20_unlisted_token_reads_nothing(interface, client):
    with pytest.raises(TokenNotWhitelisted):
        interface.send_erc20("weth", "alice", "1")
    assert client.transactions == []
    assert client.calls == []


def test_wrap_eth_requires_whitelisted_weth(interface, client):
    with pytest.raises(TokenNotWhitelisted):
        interface.wrap_eth("10")
    assert client.transactions == []


def test_wrap_eth_deposits_value(interface, client, whitelist):
    _whitelist_weth(whitelist)

    result = interface.wrap_eth("10")

    assert client.transactions == [
        {"to": WETH, "abi": "weth", "function": "deposit", "args": (), "value": 10},
    ]
    assert result.details == {"weth": WETH, "value": 10}


def test_swap_approves_before_swapping(interface, client):
    result = interface.swap_tokens_uniswap_v3("usdc", "dai", "100", "1", "alice")

    kinds = [(event[0], event[1] if event[0] == "submit" else None) for event in client.events]
    assert kinds == [
        ("submit", "approve"),
        ("receipt", None),
        ("submit", "exactInput"),
        ("receipt", None),
    ]
    approve, swap = client.transactions
    assert approve["to"] == TOKEN_A
    assert approve["args"] == (V3_ROUTER, 100_000_000)

    path, recipient, _deadline, amount_in, amount_out_min = swap["args"][0]
    assert swap["to"] == V3_ROUTER
    assert len(path) == 43
    assert recipient == ALICE
    assert amount_in == 100_000_000
    assert amount_out_min == 10 ** 18
    assert [step.label for step in result.steps] == [f"approve {TOKEN_A}", "exactInput"]
    assert result.details["fee"] == 3000


def test_swap_uses_configured_fee_tier(client, whitelist, addressbook):
    interface = EVMInterface(
        "ethereum", client, whitelist, Settings(v3_fee_tier=500), addressbook=addressbook,
    )
    interface.swap_tokens_uniswap_v3("usdc", "dai", "1", "0", "alice")

    path = client.transactions[1]["args"][0][0]
    assert path[20:23] == (500).to_bytes(3, "big")


@pytest.mark.parametrize("args,expected,address", [
    (("usdc", "dai", "1", "0", "bob-unknown"), UnresolvedIdentifier, None),
    (("usdc", "dai", "1", "0", BOB), RecipientNotWhitelisted, BOB),
    (("usdc", "weth", "1", "0", "alice"), TokenNotWhitelisted, WETH),
    (("weth", "dai", "1", "0", "alice"), TokenNotWhitelisted, WETH),
])
def test_swap_rejections_submit_nothing(interface, client, args, expected, address):
    with pytest.raises(expected) as exc_info:
        interface.swap_tokens_uniswap_v3(*args)
    if address is not None:
        assert exc_info.value.address == address
    assert client.transactions == []


def test_send_erc20_checks_token_before_recipient(interface, client):
    with pytest.raises(TokenNotWhitelisted) as exc_info:
        interface.send_erc20("weth", BOB, "1")
    assert exc_info.value.address == WETH
    assert client.transactions == []


def test_swap_checks_token_out_before_recipient(interface, client):
    with pytest.raises(TokenNotWhitelisted) as exc_info:
        interface.swap_tokens_uniswap_v3("usdc", "weth", "1", "0", BOB)
    assert exc_info.value.address == WETH
    assert client.transactions == []


def test_swap_checks_token_in_before_token_out(interface, client):
    unlisted = "0x" + "13" * 20
    with pytest.raises(TokenNotWhitelisted) as exc_info:
        interface.swap_tokens_uniswap_v3(unlisted, "weth", "1", "0", BOB)
    assert exc_info.value.address == unlisted
    assert client.transactions == []


def test_add_liquidity_checks_tokens_before_recipient(interface, client):
    with pytest.raises(TokenNotWhitelisted) as exc_info:
        interface.add_liquidity_uniswap_v2("usdc", "weth", "1", "1", BOB)
    assert exc_info.value.address == WETH
    assert client.transactions == []
    assert client.calls == []


def _add_pair(client, reserve_a, reserve_b):
    client.pairs[frozenset((TOKEN_A, TOKEN_B))] = PAIR
    # the pair sorts token B first
    client.token0[PAIR] = TOKEN_B
    client.reserves[PAIR] = (reserve_b, reserve_a)


def test_add_liquidity_derives_amount_b_from_reserves(interface, client):
    client.decimals[TOKEN_A] = 0
    _add_pair(client, reserve_a=100, reserve_b=300)

    result = interface.add_liquidity_uniswap_v2("usdc", "dai", "10", "9", "alice")

    approve_a, approve_b, add = client.transactions
    assert approve_a["to"] == TOKEN_A and approve_a["args"] == (V2_ROUTER, 10)
    assert approve_b["to"] == TOKEN_B and approve_b["args"] == (V2_ROUTER, 30)
    assert add["to"] == V2_ROUTER
    assert add["args"] == (TOKEN_A, TOKEN_B, 10, 30, 9, 28, ALICE, NOW + 3600)
    assert result.details["pair"] == PAIR
    assert result.details["deadline"] == NOW + 3600


def test_add_liquidity_confirms_both_approvals_first(interface, client):
    client.decimals[TOKEN_A] = 0
    _add_pair(client, reserve_a=100, reserve_b=300)

    interface.add_liquidity_uniswap_v2("usdc", "dai", "10", "9", "alice")

    assert [event[0] for event in client.events] == [
        "submit", "receipt", "submit", "receipt", "submit", "receipt",
    ]


def test_add_liquidity_empty_pool_is_one_to_one(interface, client):
    client.decimals[TOKEN_A] = 0
    _add_pair(client, reserve_a=0, reserve_b=0)

    result = interface.add_liquidity_uniswap_v2("usdc", "dai", "10", "9", "alice")

    assert result.details["amount_b_desired"] == 10
    assert result.details["amount_b_min"] == 9


def test_add_liquidity_explicit_deadline(interface, client):
    client.decimals[TOKEN_A] = 0
    _add_pair(client, reserve_a=100, reserve_b=300)

    interface.add_liquidity_uniswap_v2("usdc", "dai", "10", "9", "alice", deadline=NOW + 60)

    assert client.transactions[-1]["args"][-1] == NOW + 60


def test_add_liquidity_without_pool_submits_nothing(interface, client):
    with pytest.raises(PoolNotFound):
        interface.add_liquidity_uniswap_v2("usdc", "dai", "10", "9", "alice")
    assert client.transactions == []
    assert any(call[0] == V2_FACTORY for call in client.calls)


def test_connect_rejects_unlisted_signer(monkeypatch):
    monkeypatch.setattr(chain_module, "connect", lambda network, settings: FakeChainClient(address=BOB))

    with pytest.raises(SignerNotWhitelisted):
        EVMInterface.connect("ethereum", Whitelist(), Settings())


def test_connect_accepts_listed_signer(monkeypatch, whitelist):
    fake = FakeChainClient(address=SIGNER)
    monkeypatch.setattr(chain_module, "connect", lambda network, settings: fake)

    interface = EVMInterface.connect("eth", whitelist, Settings())

    assert interface.client is fake
    assert interface.network == "ethereum"


def test_read_only_queries_resolve_names(interface, client):
    client.balances[ALICE] = 42
    client.nonces[ALICE] = 7
    client.token_balances[(TOKEN_A, ALICE)] = 2_500_000

    assert interface.get_balance("alice") == (ALICE, 42)
    assert interface.get_nonce("alice") == (ALICE, 7)
    assert interface.get_erc20_balance("alice", "usdc") == {
        "wallet": ALICE,
        "token": TOKEN_A,
        "symbol": "USDC",
        "decimals": 6,
        "balance": 2_500_000,
    }
    assert interface.get_block_number() == 17_000_000
    assert client.transactions == []
