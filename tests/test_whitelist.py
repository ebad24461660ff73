import json

import pytest

from core.errors import ContractCallFailed, InvalidAddress, PersistenceError
from modules.whitelist import Whitelist

from conftest import ALICE, BOB, TOKEN_A, FakeChainClient

MIXED = "0x" + "ab" * 20


def test_add_and_remove_wallet():
    wl = Whitelist()
    wl.add_wallet(ALICE, "alice")

    assert wl.is_wallet_whitelisted(ALICE)
    assert wl.remove_wallet(ALICE) is True
    assert not wl.is_wallet_whitelisted(ALICE)


def test_remove_missing_wallet_is_noop():
    wl = Whitelist()
    wl.add_wallet(ALICE)

    assert wl.remove_wallet(BOB) is False
    assert wl.remove_wallet("not-an-address") is False
    assert len(wl) == 1


def test_wallet_membership_ignores_case():
    wl = Whitelist()
    wl.add_wallet(MIXED.lower())

    assert wl.is_wallet_whitelisted(MIXED.upper().replace("0X", "0x"))
    assert wl.remove_wallet(MIXED.upper().replace("0X", "0x")) is True


def test_add_wallet_rejects_malformed_address():
    wl = Whitelist()
    with pytest.raises(InvalidAddress):
        wl.add_wallet("0x1234")
    assert len(wl) == 0


def test_find_wallet_by_name_takes_first_inserted():
    wl = Whitelist()
    wl.add_wallet(ALICE, "shared")
    wl.add_wallet(BOB, "shared")

    assert wl.find_wallet_by_name("shared").address == ALICE
    assert wl.find_wallet_by_name("nobody") is None


def test_add_token_reads_symbol():
    client = FakeChainClient()
    client.symbols[TOKEN_A] = "USDC"
    wl = Whitelist()

    info = wl.add_token(TOKEN_A, 1, client, name="USD Coin")

    assert info.symbol == "USDC"
    assert wl.is_token_whitelisted(TOKEN_A, 1)
    assert not wl.is_token_whitelisted(TOKEN_A, 137)
    assert wl.get_token(TOKEN_A, 1).name == "USD Coin"


def test_add_token_failure_leaves_store_unchanged():
    wl = Whitelist()
    before = wl.to_dict()

    with pytest.raises(ContractCallFailed):
        wl.add_token(TOKEN_A, 1, FakeChainClient())

    assert wl.to_dict() == before


def test_add_token_rejects_non_string_symbol():
    client = FakeChainClient()
    client.symbols[TOKEN_A] = b"USDC"
    wl = Whitelist()

    with pytest.raises(ContractCallFailed):
        wl.add_token(TOKEN_A, 1, client)
    assert len(wl) == 0


def test_remove_token_is_per_chain():
    client = FakeChainClient()
    client.symbols[TOKEN_A] = "USDC"
    wl = Whitelist()
    wl.add_token(TOKEN_A, 1, client)
    wl.add_token(TOKEN_A, 137, client)

    assert wl.remove_token(TOKEN_A, 1) is True
    assert wl.remove_token(TOKEN_A, 1) is False
    assert [t.chain_id for t in wl.tokens()] == [137]


def test_save_and_load_round_trip(tmp_path):
    client = FakeChainClient()
    client.symbols[TOKEN_A] = "USDC"
    wl = Whitelist()
    wl.add_wallet(ALICE, "Ålice 🚀")
    wl.add_wallet(BOB)
    wl.add_token(TOKEN_A, 1, client)

    path = tmp_path / "whitelist.json"
    wl.save(path)

    assert Whitelist.load(path) == wl
    assert "Ålice 🚀" in path.read_text(encoding="utf-8")


def test_empty_round_trip(tmp_path):
    path = tmp_path / "nested" / "whitelist.json"
    Whitelist().save(path)

    assert json.loads(path.read_text()) == {"wallet_addresses": {}, "token_addresses": {}}
    assert Whitelist.load(path) == Whitelist()


def test_load_normalizes_address_case():
    lower = MIXED.lower()
    wl = Whitelist.from_dict({
        "wallet_addresses": {lower: {"address": lower, "name": None}},
        "token_addresses": {},
    })
    assert wl.is_wallet_whitelisted(lower)
    assert list(wl.wallet_addresses) != [lower]


def test_load_or_create_missing_file(tmp_path):
    assert len(Whitelist.load_or_create(tmp_path / "absent.json")) == 0


@pytest.mark.parametrize("document", [
    [],
    {"wallet_addresses": {}},
    {"wallet_addresses": {}, "token_addresses": {}, "extra": {}},
    {"wallet_addresses": [], "token_addresses": {}},
    {"wallet_addresses": {ALICE: {"address": BOB}}, "token_addresses": {}},
    {"wallet_addresses": {ALICE: {"address": ALICE, "nick": "a"}}, "token_addresses": {}},
    {"wallet_addresses": {ALICE: {"name": "a"}}, "token_addresses": {}},
    {"wallet_addresses": {"0x12": {"address": "0x12"}}, "token_addresses": {}},
    {"wallet_addresses": {}, "token_addresses": {
        f"{TOKEN_A}:1": {"address": TOKEN_A, "chain_id": "1", "symbol": "USDC"},
    }},
    {"wallet_addresses": {}, "token_addresses": {
        f"{TOKEN_A}:1": {"address": TOKEN_A, "chain_id": 137, "symbol": "USDC"},
    }},
    {"wallet_addresses": {}, "token_addresses": {
        f"{TOKEN_A}:1": {"address": TOKEN_A, "chain_id": 1},
    }},
])
def test_from_dict_rejects_malformed_documents(document):
    with pytest.raises(PersistenceError):
        Whitelist.from_dict(document)


def test_load_rejects_invalid_json(tmp_path):
    path = tmp_path / "whitelist.json"
    path.write_text("{not json")

    with pytest.raises(PersistenceError):
        Whitelist.load(path)


def test_load_missing_file(tmp_path):
    with pytest.raises(PersistenceError):
        Whitelist.load(tmp_path / "absent.json")
