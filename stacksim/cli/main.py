# MIT License
# Copyright (c) 2025 Hashborn

import argparse
import importlib
import json
import logging
import sys
from typing import Dict, List, Optional

from ..blockchain.core.chain import Simnet
from ..blockchain.contracts.base import Contract
from ..protocol.types.tx import Transaction
from ..protocol.types.clarity import parse_value
from ..protocol.types.common import ProtocolError
from ..protocol.config.params import CURRENT_NETWORK, DENOM, MICRO_PER_STX, get_network

logger = logging.getLogger(__name__)

def build_simnet(args) -> Simnet:
    config = get_network(args.network) if args.network else CURRENT_NETWORK
    return Simnet(config=config, genesis_path=args.genesis)

def load_contract(path: str) -> Contract:
    """Instantiates 'package.module:ClassName'."""
    module_name, sep, class_name = path.partition(":")
    if not sep or not class_name:
        raise ValueError(f"Contract must be given as module:Class, got {path!r}")
    module = importlib.import_module(module_name)
    cls = getattr(module, class_name, None)
    if cls is None:
        raise ValueError(f"{module_name} has no attribute {class_name}")
    return cls()

def parse_tx(chain: Simnet, data: Dict) -> Transaction:
    kind = data.get("type")
    sender = chain.address_of(data.get("sender", ""))
    if kind == "contract_call":
        args = [parse_value(a) for a in data.get("args", [])]
        return Transaction.contract_call(data["contract"], data["function"], args, sender)
    if kind == "transfer":
        return Transaction.transfer(int(data["amount"]), sender, chain.address_of(data["recipient"]))
    raise ValueError(f"Unknown transaction type: {kind!r}")

def run_scenario(chain: Simnet, scenario: Dict) -> List[Dict]:
    """Deploys the scenario's contracts and mines its blocks. Returns the mined blocks as dicts."""
    for name, path in scenario.get("contracts", {}).items():
        chain.deploy_contract(name, load_contract(path))

    mined = []
    for entry in scenario.get("blocks", []):
        if isinstance(entry, dict) and "empty" in entry:
            chain.mine_empty_block(int(entry["empty"]))
            continue
        block = chain.mine_block([parse_tx(chain, tx) for tx in entry])
        mined.append({
            "height": block.height,
            "hash": block.hash(),
            "receipts": [
                {
                    "txid": r.txid,
                    "result": str(r.result),
                    "fee": r.fee,
                    "events": [e.model_dump(mode="json") for e in r.events],
                }
                for r in block.receipts
            ],
        })
    return mined

# --- Commands ---
def cmd_accounts(args):
    try:
        chain = build_simnet(args)
    except (ProtocolError, ValueError) as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"{'Name':<12} {'Address':<45} {'Balance':>20}")
    print("-" * 80)
    for name, acc in chain.accounts.items():
        print(f"{name:<12} {acc.address:<45} {acc.balance / MICRO_PER_STX:>16,.6f} STX")

def cmd_run(args):
    try:
        with open(args.scenario, "r") as f:
            scenario = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        print(f"Error: cannot read scenario {args.scenario}: {e}")
        sys.exit(1)

    saved_path = list(sys.path)
    sys.path[:0] = args.path
    try:
        chain = build_simnet(args)
        blocks = run_scenario(chain, scenario)
    except (ProtocolError, ValueError, ImportError) as e:
        print(f"Error: {e}")
        sys.exit(1)
    finally:
        sys.path[:] = saved_path

    print(json.dumps({
        "chain_id": chain.config.chain_id,
        "height": chain.height,
        "blocks": blocks,
        "balances": {name: acc.balance for name, acc in chain.accounts.items()},
        "denom": DENOM,
    }, indent=2))

def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser(description="stacksim: simulated ledger for contract tests")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_chain_args(p):
        p.add_argument("--network", default=None, help="Network profile (simnet, devnet)")
        p.add_argument("--genesis", default=None, help="Genesis JSON with an 'accounts' object")

    accounts_parser = subparsers.add_parser("accounts", help="List genesis accounts")
    add_chain_args(accounts_parser)

    run_parser = subparsers.add_parser("run", help="Run a JSON scenario and print the mined blocks")
    run_parser.add_argument("scenario", help="Scenario JSON file")
    run_parser.add_argument("--path", action="append", default=[], help="Extra import path for contracts")
    add_chain_args(run_parser)

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s: %(message)s',
        datefmt='%H:%M:%S',
        stream=sys.stderr,
    )

    if args.command == "accounts":
        cmd_accounts(args)
    elif args.command == "run":
        cmd_run(args)

if __name__ == "__main__":
    main()
