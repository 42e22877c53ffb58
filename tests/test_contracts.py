import pytest

from stacksim.blockchain.contracts import Contract, ContractAbort, public, read_only
from stacksim.blockchain.core.events import TX_APPLIED
from stacksim.blockchain.observability import metrics_registry
from stacksim.protocol.types.clarity import (
    ClarityValue, Principal, UInt, bool_, err, ok, principal, string_ascii, uint,
)
from stacksim.protocol.types.common import ContractError, ValidationError
from stacksim.protocol.types.tx import Transaction


class Vault(Contract):
    """Deposits STX into the contract, records balances and prints on every change."""

    def on_deploy(self, ctx):
        ctx.var_set("total", uint(0))

    @public("deposit", UInt)
    def deposit(self, ctx, amount):
        paid = ctx.stx_transfer(amount.value, ctx.tx_sender, ctx.contract_id)
        if paid.is_err:
            return paid
        current = ctx.map_get("deposits", principal(ctx.tx_sender))
        new = (current.value if current else 0) + amount.value
        ctx.map_set("deposits", principal(ctx.tx_sender), uint(new))
        ctx.var_set("total", uint(ctx.var_get("total").value + amount.value))
        ctx.print(string_ascii("deposit"))
        return ok(uint(new))

    @public("withdraw", UInt)
    def withdraw(self, ctx, amount):
        # The contract pays out of its own balance
        return ctx.stx_transfer(amount.value, ctx.contract_id, ctx.tx_sender)

    @public("deposit-then-fail", UInt)
    def deposit_then_fail(self, ctx, amount):
        self.deposit(ctx, amount)
        return err(uint(500))

    @public("steal", Principal, UInt)
    def steal(self, ctx, victim, amount):
        return ctx.stx_transfer(amount.value, victim.value, ctx.tx_sender)

    @public("forget-deposit")
    def forget_deposit(self, ctx):
        return ok(bool_(ctx.map_delete("deposits", principal(ctx.tx_sender))))

    @public("panic")
    def panic(self, ctx):
        ctx.var_set("total", uint(999))
        raise ContractAbort("unwrap failed")

    @public("not-a-response")
    def not_a_response(self, ctx):
        return uint(1)

    @public("claim-badge", UInt)
    def claim_badge(self, ctx, badge):
        minted = ctx.nft_mint("badge", badge, ctx.tx_sender)
        if minted.is_err:
            return minted
        ctx.map_insert("first-claim", badge, principal(ctx.tx_sender))
        return ok(badge)

    @public("give-badge", UInt, Principal)
    def give_badge(self, ctx, badge, recipient):
        return ctx.nft_transfer("badge", badge, ctx.tx_sender, recipient.value)

    @read_only("get-total")
    def get_total(self, ctx):
        return ctx.var_get("total")

    @read_only("get-deposit", Principal)
    def get_deposit(self, ctx, who):
        found = ctx.map_get("deposits", who)
        return found if found else uint(0)

    @read_only("sneaky-write")
    def sneaky_write(self, ctx):
        ctx.var_set("total", uint(1))
        return bool_(True)


class Sub(Vault):
    @read_only("describe")
    def describe(self, ctx):
        return string_ascii(ctx.contract_id)


@pytest.fixture
def vault(simnet):
    simnet.deploy_contract("vault", Vault())
    return simnet


def call(chain, function, args, sender_name):
    return Transaction.contract_call("vault", function, args, chain.address_of(sender_name))


def test_registered_functions():
    assert "deposit" in Vault.function_names()
    assert Vault().get_function("get-total").is_public is False
    assert Vault().get_function("deposit").arg_types == (UInt,)
    # Subclasses inherit registrations
    assert set(Vault.function_names()) < set(Sub.function_names())
    assert "describe" not in Vault.function_names()


def test_on_deploy_initialises_storage(vault):
    result = vault.call_read_only_fn("vault", "get-total", [], vault.deployer)
    assert result.result == uint(0)


def test_deposit_updates_storage_and_emits_events(vault):
    block = vault.mine_block([call(vault, "deposit", [uint(1_000)], "wallet_1")])
    receipt = block.receipts[0]
    contract_id = vault.resolve_contract("vault").contract_id

    receipt.result.expect_ok().expect_uint(1_000)
    receipt.expect_stx_transfer_event(1_000, vault.address_of("wallet_1"), contract_id)
    receipt.expect_print_event(contract_id, string_ascii("deposit"))
    assert vault.get_balance(contract_id) == 1_000
    assert vault.call_read_only_fn("vault", "get-total", [], vault.deployer).result == uint(1_000)
    deposited = vault.call_read_only_fn("vault", "get-deposit", [principal(vault.address_of("wallet_1"))], vault.deployer)
    assert deposited.result == uint(1_000)


def test_contract_pays_from_its_own_balance(vault):
    vault.mine_block([call(vault, "deposit", [uint(5_000)], "wallet_1")])
    block = vault.mine_block([call(vault, "withdraw", [uint(2_000)], "wallet_2")])

    block.receipts[0].result.expect_ok().expect_bool(True)
    contract_id = vault.resolve_contract("vault").contract_id
    assert vault.get_balance(contract_id) == 3_000


def test_err_result_rolls_back_everything(vault):
    contract_id = vault.resolve_contract("vault").contract_id
    before = vault.get_assets_maps()

    block = vault.mine_block([call(vault, "deposit-then-fail", [uint(1_000)], "wallet_1")])
    receipt = block.receipts[0]

    receipt.result.expect_err().expect_uint(500)
    assert receipt.events == []
    assert receipt.fee == 0
    assert vault.get_assets_maps() == before
    assert vault.get_balance(contract_id) == 0
    assert vault.call_read_only_fn("vault", "get-total", [], vault.deployer).result == uint(0)


def test_transfer_from_other_principal_is_rejected(vault):
    block = vault.mine_block([
        call(vault, "steal", [principal(vault.address_of("wallet_2")), uint(10)], "wallet_1"),
    ])
    block.receipts[0].result.expect_err().expect_uint(4)


def test_failed_inner_transfer_propagates_code(vault):
    block = vault.mine_block([call(vault, "withdraw", [uint(1)], "wallet_1")])
    # Contract holds nothing
    block.receipts[0].result.expect_err().expect_uint(1)


def test_abort_rolls_back_and_records_message(vault):
    block = vault.mine_block([
        call(vault, "panic", [], "wallet_1"),
        call(vault, "deposit", [uint(10)], "wallet_1"),
    ])
    aborted, after = block.receipts

    aborted.result.expect_err().expect_none()
    assert aborted.error == "unwrap failed"
    after.result.expect_ok().expect_uint(10)
    assert vault.call_read_only_fn("vault", "get-total", [], vault.deployer).result == uint(10)


def test_public_function_must_return_response(vault):
    before = vault.get_assets_maps()
    with pytest.raises(ContractError, match="must return a response"):
        vault.mine_block([
            call(vault, "deposit", [uint(10)], "wallet_1"),
            call(vault, "not-a-response", [], "wallet_1"),
        ])
    # Nothing from the broken block is kept
    assert vault.height == 0
    assert vault.get_assets_maps() == before
    assert vault.get_account("wallet_1").nonce == 0


def test_read_only_function_cannot_write(vault):
    with pytest.raises(ContractError, match="read-only"):
        vault.call_read_only_fn("vault", "sneaky-write", [], vault.deployer)


def test_nft_mint_and_transfer(vault):
    w1, w2 = vault.address_of("wallet_1"), vault.address_of("wallet_2")
    asset = f"{vault.resolve_contract('vault').contract_id}::badge"

    block = vault.mine_block([
        call(vault, "claim-badge", [uint(1)], "wallet_1"),
        call(vault, "claim-badge", [uint(1)], "wallet_2"),
    ])
    block.receipts[0].expect_nft_mint_event(uint(1), w1, asset)
    block.receipts[1].result.expect_err().expect_uint(1)

    moved = vault.mine_block([call(vault, "give-badge", [uint(1), principal(w2)], "wallet_1")])
    moved.receipts[0].expect_nft_transfer_event(uint(1), w1, w2, asset)
    assert vault.get_assets_maps()[asset] == {w2: 1}

    # wallet_1 no longer owns it
    again = vault.mine_block([call(vault, "give-badge", [uint(1), principal(w2)], "wallet_1")])
    again.receipts[0].result.expect_err().expect_uint(1)


def test_missing_event_raises(vault):
    block = vault.mine_block([call(vault, "deposit", [uint(10)], "wallet_1")])
    with pytest.raises(AssertionError, match="stx_transfer_event"):
        block.receipts[0].expect_stx_transfer_event(11, vault.address_of("wallet_1"), vault.deployer)


def test_duplicate_deployment(vault):
    with pytest.raises(ContractError, match="already deployed"):
        vault.deploy_contract("vault", Vault())


def test_same_name_from_two_deployers_is_ambiguous(vault):
    vault.deploy_contract("vault", Vault(), deployer="wallet_1")
    with pytest.raises(ValidationError, match="Ambiguous"):
        vault.resolve_contract("vault")
    full_id = f"{vault.address_of('wallet_1')}.vault"
    assert vault.resolve_contract(full_id).deployer == vault.address_of("wallet_1")


def test_invalid_contract_name(simnet):
    with pytest.raises(ValidationError):
        simnet.deploy_contract("9lives", Vault())
    with pytest.raises(ContractError):
        simnet.deploy_contract("plain", object())


def test_fee_charged_on_ok_call(vault):
    w1 = vault.address_of("wallet_1")
    before = vault.get_balance(w1)
    block = vault.mine_block([call(vault, "deposit", [uint(10)], "wallet_1")])
    assert block.receipts[0].fee > 0
    assert vault.get_balance(w1) == before - 10 - block.receipts[0].fee


def test_args_must_be_clarity_values(vault):
    with pytest.raises(Exception):
        Transaction.contract_call("vault", "deposit", [10], vault.deployer)
    assert isinstance(
        Transaction.contract_call("vault", "deposit", [uint(10)], vault.deployer).args[0], ClarityValue,
    )
    # StringAscii where UInt expected fails validation, not execution
    with pytest.raises(ValidationError):
        vault.mine_block([call(vault, "deposit", [string_ascii("10")], "wallet_1")])


def test_map_delete(vault):
    w1 = principal(vault.address_of("wallet_1"))
    vault.mine_block([call(vault, "deposit", [uint(10)], "wallet_1")])

    block = vault.mine_block([
        call(vault, "forget-deposit", [], "wallet_1"),
        call(vault, "forget-deposit", [], "wallet_1"),
    ])
    assert [str(r.result) for r in block.receipts] == ["(ok true)", "(ok false)"]
    assert vault.call_read_only_fn("vault", "get-deposit", [w1], vault.deployer).result == uint(0)


def _ok_call_count():
    value = metrics_registry.get_sample_value(
        'stacksim_transactions_total', {'tx_type': 'contract_call', 'status': 'ok'},
    )
    return value or 0


def test_rolled_back_block_publishes_nothing(vault):
    seen = []
    vault.events.subscribe(TX_APPLIED, lambda **data: seen.append(data))
    calls_before = _ok_call_count()

    with pytest.raises(ContractError):
        vault.mine_block([
            call(vault, "deposit", [uint(10)], "wallet_1"),
            call(vault, "not-a-response", [], "wallet_1"),
        ])
    assert seen == []
    assert _ok_call_count() == calls_before
    assert vault.state.total_burned == 0

    # The next good block reports its own transactions once
    block = vault.mine_block([call(vault, "deposit", [uint(10)], "wallet_1")])
    assert [(e['height'], e['ok']) for e in seen] == [(1, True)]
    assert seen[0]['txid'] == block.receipts[0].txid
    assert _ok_call_count() == calls_before + 1


class Fragile(Contract):
    def on_deploy(self, ctx):
        ctx.var_set("ready", bool_(True))
        raise RuntimeError("init failed")

    @read_only("is-ready")
    def is_ready(self, ctx):
        return ctx.var_get("ready", bool_(False))


def test_failed_on_deploy_leaves_nothing_behind(simnet):
    with pytest.raises(RuntimeError, match="init failed"):
        simnet.deploy_contract("fragile", Fragile())

    assert simnet.contracts == {}
    with pytest.raises(ValidationError, match="Unknown contract"):
        simnet.resolve_contract("fragile")
    contract_id = f"{simnet.deployer}.fragile"
    assert contract_id not in simnet.state._storage

    # Retrying is not blocked by a stale registration
    simnet.deploy_contract("fragile", Vault())
    assert simnet.call_read_only_fn("fragile", "get-total", [], simnet.deployer).result == uint(0)
