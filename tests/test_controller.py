import pytest

from tokenbal import abi
from tokenbal.controller import NftBalances, TokenBalances
from tokenbal.errors import RpcApplicationError, ValidationError
from tokenbal.models import TokenMetadata
from tokenbal.registry import InMemoryStore, TokenRegistry

from conftest import string_result, uint_result

TOKEN = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
TOKEN_B = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
WALLET = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
WALLET_B = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"


def erc20(node, address, symbol="TKN", decimals=18):
    node.on_call(address, abi.DECIMALS, uint_result(decimals))
    node.on_call(address, abi.SYMBOL, string_result(symbol))


def balance_of(node, token, wallet, value):
    node.on_call(token, abi.encode_selector_call(abi.BALANCE_OF, wallet), value)


@pytest.fixture
def tokens(service):
    return TokenBalances(service, TokenRegistry.erc20(InMemoryStore()))


@pytest.mark.parametrize("text", ["0xabc", TOKEN[2:], "", "0x" + "g" * 40])
def test_register_rejects_invalid_address_without_network(node, tokens, text):
    with pytest.raises(ValidationError):
        tokens.register(text)
    assert node.bodies == []


def test_register_accepts_mixed_case_and_whitespace(node, tokens):
    erc20(node, TOKEN, "USDC", 6)
    meta = tokens.register(f"  {TOKEN} ")
    assert meta == TokenMetadata(TOKEN, "USDC", 6)
    assert tokens.active == meta


def test_register_duplicate_rejected_before_fetch(node, tokens):
    erc20(node, TOKEN)
    tokens.register(TOKEN)
    sent = len(node.bodies)
    with pytest.raises(ValidationError):
        tokens.register(TOKEN.lower())
    assert len(node.bodies) == sent


def test_register_rejects_concurrent_registration_of_same_address(node, tokens):
    seen = []

    def decimals_reply():
        try:
            tokens.register(TOKEN.lower())
        except ValidationError as exc:
            seen.append(exc)
        return uint_result(18)

    node.on_call(TOKEN, abi.DECIMALS, decimals_reply)
    node.on_call(TOKEN, abi.SYMBOL, string_result("TKN"))

    tokens.register(TOKEN)

    assert len(seen) == 1
    assert len(tokens.registry) == 1


def test_register_required_field_failure_registers_nothing(node, tokens):
    with pytest.raises(RpcApplicationError):
        tokens.register(TOKEN)
    assert len(tokens.registry) == 0
    assert tokens.active is None
    # a later attempt is not blocked as "in progress"
    erc20(node, TOKEN)
    tokens.register(TOKEN)
    assert len(tokens.registry) == 1


def test_refresh_without_active_token(node, tokens):
    assert tokens.refresh() is None
    assert node.bodies == []


def test_refresh_with_invalid_wallet_marks_unavailable_without_network(node, tokens):
    erc20(node, TOKEN)
    tokens.register(TOKEN)
    tokens.set_wallet(TOKEN, "0x123")
    sent = len(node.bodies)

    reading = tokens.refresh()

    assert reading is not None
    assert reading.amount is None
    assert not reading.available
    assert len(node.bodies) == sent
    assert tokens.formatted_balance(TOKEN) is None


def test_refresh_writes_and_formats_balance(node, tokens):
    erc20(node, TOKEN, "USDC", 6)
    tokens.register(TOKEN)
    tokens.set_wallet(TOKEN, WALLET)
    balance_of(node, TOKEN, WALLET, uint_result(1_500_000))

    reading = tokens.refresh()

    assert reading.amount == 1_500_000
    assert reading.wallet_address == WALLET
    assert tokens.balance(TOKEN.lower()) == reading
    assert tokens.formatted_balance(TOKEN) == "1.5"
    assert tokens.updated_at(TOKEN) == reading.updated_at


def test_refresh_failure_stores_unavailable(node, tokens):
    erc20(node, TOKEN)
    tokens.register(TOKEN)
    tokens.set_wallet(TOKEN, WALLET)

    reading = tokens.refresh()

    assert reading.amount is None
    assert "execution reverted" in reading.error


def test_stale_refresh_is_discarded_when_wallet_changes(node, tokens):
    erc20(node, TOKEN)
    tokens.register(TOKEN)
    tokens.set_wallet(TOKEN, WALLET)

    def edited_while_in_flight():
        tokens.set_wallet(TOKEN, WALLET_B)
        return uint_result(999)

    balance_of(node, TOKEN, WALLET, edited_while_in_flight)

    assert tokens.refresh() is None
    assert tokens.balance(TOKEN) is None

    balance_of(node, TOKEN, WALLET_B, uint_result(7))
    assert tokens.refresh().amount == 7
    assert tokens.balance(TOKEN).wallet_address == WALLET_B


def test_stale_refresh_does_not_overwrite_previous_reading(node, tokens):
    erc20(node, TOKEN)
    erc20(node, TOKEN_B)
    tokens.register(TOKEN_B)
    tokens.register(TOKEN)
    tokens.set_wallet(TOKEN, WALLET)
    balance_of(node, TOKEN, WALLET, uint_result(5))
    first = tokens.refresh()

    def switched_tab():
        tokens.set_active(TOKEN_B)
        return uint_result(6)

    balance_of(node, TOKEN, WALLET, switched_tab)

    assert tokens.refresh() is None
    assert tokens.balance(TOKEN) == first


def test_remove_active_token_moves_to_first_remaining(node, tokens):
    erc20(node, TOKEN)
    erc20(node, TOKEN_B)
    tokens.register(TOKEN)
    tokens.register(TOKEN_B)
    tokens.set_wallet(TOKEN_B, WALLET)
    assert tokens.active.address == TOKEN_B

    tokens.remove(TOKEN_B.lower())

    assert tokens.active.address == TOKEN
    assert tokens.wallet(TOKEN_B) == ""
    assert tokens.balance(TOKEN_B) is None
    assert TOKEN_B not in tokens.registry


def test_set_active_and_wallet_require_registration(tokens):
    with pytest.raises(ValidationError):
        tokens.set_active(TOKEN)
    with pytest.raises(ValidationError):
        tokens.set_wallet(TOKEN, WALLET)


def test_active_defaults_to_first_persisted_token(service):
    store = InMemoryStore()
    TokenRegistry.erc20(store).add(TokenMetadata(TOKEN, "TKN", 18))
    controller = TokenBalances(service, TokenRegistry.erc20(store))
    assert controller.active.address == TOKEN


def test_nft_balances(node, service):
    node.on_call(TOKEN, abi.NAME, string_result("Apes"))
    nfts = NftBalances(service, TokenRegistry.erc721(InMemoryStore()))

    meta = nfts.register(TOKEN)
    nfts.set_wallet(TOKEN, WALLET)
    balance_of(node, TOKEN, WALLET, uint_result(3))
    nfts.refresh()

    assert (meta.name, meta.symbol) == ("Apes", "?")
    assert nfts.formatted_balance(TOKEN) == "3"


def test_overlapping_refresh_keeps_newest_reading(node, tokens):
    erc20(node, TOKEN)
    tokens.register(TOKEN)
    tokens.set_wallet(TOKEN, WALLET)
    newer = []

    def slow_reply():
        # a second refresh starts and finishes while the first is in flight
        balance_of(node, TOKEN, WALLET, uint_result(2))
        newer.append(tokens.refresh())
        return uint_result(1)

    balance_of(node, TOKEN, WALLET, slow_reply)

    assert tokens.refresh() is None
    assert newer[0].amount == 2
    assert tokens.balance(TOKEN).amount == 2
