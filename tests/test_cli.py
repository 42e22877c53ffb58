import json
import sys

import pytest

from stacksim.cli.main import load_contract, main

from nft_guestbook import NftGuestbook


def write_scenario(tmp_path, data):
    path = tmp_path / "scenario.json"
    path.write_text(json.dumps(data))
    return str(path)


def test_accounts_lists_genesis(capsys):
    main(["accounts", "--network", "simnet"])
    out = capsys.readouterr().out
    assert "deployer" in out
    assert "wallet_8" in out
    assert "100,000,000.000000 STX" in out


def test_accounts_with_genesis_file(tmp_path, capsys):
    genesis = tmp_path / "genesis.json"
    genesis.write_text(json.dumps({"accounts": {"deployer": 2_500_000, "alice": 1}}))

    main(["accounts", "--genesis", str(genesis)])
    out = capsys.readouterr().out
    assert "alice" in out
    assert "2.500000 STX" in out
    assert "wallet_1" not in out


def test_run_scenario(tmp_path, capsys):
    scenario = write_scenario(tmp_path, {
        "contracts": {"nft-guestbook": "nft_guestbook:NftGuestbook"},
        "blocks": [
            [
                {"type": "contract_call", "contract": "nft-guestbook", "function": "mint-entry",
                 "args": [{"type": "string-ascii", "value": "Hello"}], "sender": "wallet_1"},
                {"type": "contract_call", "contract": "nft-guestbook", "function": "mint-entry",
                 "args": [{"type": "string-ascii", "value": "World"}], "sender": "wallet_2"},
            ],
            {"empty": 2},
            [
                {"type": "transfer", "amount": 5, "sender": "wallet_3", "recipient": "wallet_4"},
                {"type": "contract_call", "contract": "nft-guestbook", "function": "get-entry",
                 "args": [{"type": "uint", "value": 999}], "sender": "deployer"},
            ],
        ],
    })

    main(["run", scenario])
    out = json.loads(capsys.readouterr().out)

    assert out["height"] == 4
    first, last = out["blocks"]
    assert first["height"] == 1
    assert [r["result"] for r in first["receipts"]] == ["(ok u1)", "(ok u2)"]
    assert last["height"] == 4
    assert [r["result"] for r in last["receipts"]] == ["(ok true)", "(err u1004)"]
    assert last["receipts"][0]["events"][0]["type"] == "stx_transfer_event"
    assert out["balances"]["wallet_4"] == out["balances"]["wallet_5"] + 5


def test_run_reports_bad_scenario(tmp_path, capsys):
    scenario = write_scenario(tmp_path, {
        "blocks": [[{"type": "contract_call", "contract": "missing", "function": "f", "sender": "deployer"}]],
    })
    with pytest.raises(SystemExit) as exc:
        main(["run", scenario])
    assert exc.value.code == 1
    assert "Unknown contract" in capsys.readouterr().out


def test_run_missing_file(tmp_path, capsys):
    with pytest.raises(SystemExit):
        main(["run", str(tmp_path / "absent.json")])
    assert "cannot read scenario" in capsys.readouterr().out


def test_load_contract():
    assert isinstance(load_contract("nft_guestbook:NftGuestbook"), NftGuestbook)
    with pytest.raises(ValueError):
        load_contract("nft_guestbook")
    with pytest.raises(ValueError):
        load_contract("nft_guestbook:Nope")


def test_run_extra_path_is_not_left_on_sys_path(tmp_path, capsys):
    contracts_dir = tmp_path / "contracts"
    contracts_dir.mkdir()
    (contracts_dir / "flag_contract.py").write_text(
        "from stacksim.blockchain.contracts import Contract, public\n"
        "from stacksim.protocol.types.clarity import bool_, ok\n"
        "\n"
        "class Flag(Contract):\n"
        "    @public('raise-flag')\n"
        "    def raise_flag(self, ctx):\n"
        "        return ok(bool_(True))\n"
    )
    scenario = write_scenario(tmp_path, {
        "contracts": {"flag": "flag_contract:Flag"},
        "blocks": [[{"type": "contract_call", "contract": "flag", "function": "raise-flag", "sender": "wallet_1"}]],
    })
    before = list(sys.path)

    main(["run", scenario, "--path", str(contracts_dir)])
    out = json.loads(capsys.readouterr().out)
    assert out["blocks"][0]["receipts"][0]["result"] == "(ok true)"
    assert sys.path == before

    # Failing runs restore it too
    with pytest.raises(SystemExit):
        main(["run", write_scenario(tmp_path, {"contracts": {"x": "no_such_module:X"}}), "--path", str(contracts_dir)])
    assert sys.path == before
