# MIT License
# Copyright (c) 2025 Hashborn

from typing import Dict, List, Optional, Sequence, Tuple
import json
import logging
import os
import threading

from pydantic import BaseModel, Field

from ...protocol.types.block import Block, BlockHeader, Receipt
from ...protocol.types.tx import Transaction
from ...protocol.types.clarity import AnyValue, ClarityValue, bool_, err, ok, uint
from ...protocol.types.common import ContractError, TxType, ValidationError
from ...protocol.types.events import AnyEvent, StxTransferEvent
from ...protocol.crypto.hash import merkle_root
from ...protocol.crypto.addresses import account_address, contract_principal, is_valid_principal
from ...protocol.config.params import CURRENT_NETWORK, NetworkConfig
from ..contracts.base import Contract
from ..contracts.context import ContractContext, DeployedContract, execute_call
from ..observability import metrics
from .accounts import Account
from .events import BLOCK_MINED, TX_APPLIED, EventBus, event_bus
from .state import LedgerState, TransferError, ERR_INSUFFICIENT_BALANCE

logger = logging.getLogger(__name__)


class ReadOnlyResult(BaseModel):
    """Result of call_read_only_fn: evaluated at the tip, never mined."""
    result: AnyValue
    events: List[AnyEvent] = Field(default_factory=list)
    error: Optional[str] = None


class Simnet:
    """
    In-memory simulated chain.

    Holds the genesis accounts, the deployed contracts and the list of mined
    blocks. Each transaction runs against a clone of the ledger state that is
    committed only when its result is (ok ...), so a failing transaction never
    leaves partial effects and never aborts the rest of its block.
    """

    def __init__(self, config: Optional[NetworkConfig] = None, genesis_path: Optional[str] = None,
                 events: Optional[EventBus] = None):
        self.config = config or CURRENT_NETWORK
        self._lock = threading.RLock()
        self.state = LedgerState()
        self.events = events or event_bus

        self.blocks: List[Block] = []
        self.contracts: Dict[str, DeployedContract] = {}
        # account name -> address
        self._names: Dict[str, str] = {}

        self._apply_genesis_allocation(genesis_path)
        logger.info(f"Simnet {self.config.chain_id} initialized with {len(self._names)} accounts")

    # --- Genesis ---

    def _apply_genesis_allocation(self, genesis_path: Optional[str]):
        """Creates the named accounts, with balances from genesis.json if given."""
        alloc: Dict[str, dict] = {
            name: {"balance": self.config.default_balance} for name in self.config.account_names
        }

        if genesis_path:
            if not os.path.exists(genesis_path):
                raise ValidationError(f"Genesis file not found: {genesis_path}")
            with open(genesis_path, "r") as f:
                try:
                    data = json.load(f)
                except json.JSONDecodeError as e:
                    raise ValidationError(f"Invalid genesis file {genesis_path}: {e}")

            accounts = data.get("accounts")
            if not isinstance(accounts, dict):
                raise ValidationError(f"Genesis file {genesis_path} must contain an 'accounts' object")

            # Explicit genesis replaces the default account set
            alloc = {}
            for name, entry in accounts.items():
                if isinstance(entry, int):
                    entry = {"balance": entry}
                if not isinstance(entry, dict) or not isinstance(entry.get("balance", 0), int):
                    raise ValidationError(f"Invalid genesis entry for '{name}': {entry!r}")
                alloc[name] = entry

        for name, entry in alloc.items():
            address = entry.get("address") or account_address(
                name, self.config.chain_id, prefix=self.config.address_prefix
            )
            if not is_valid_principal(address):
                raise ValidationError(f"Invalid genesis address for '{name}': {address}")
            balance = int(entry.get("balance", 0))
            if balance < 0:
                raise ValidationError(f"Negative genesis balance for '{name}'")
            self.state.set_account(Account(address=address, balance=balance, name=name))
            self._names[name] = address

        if self.config.deployer_name not in self._names:
            logger.warning(f"No '{self.config.deployer_name}' account in genesis; deployments need an explicit deployer")

    # --- Queries ---

    @property
    def height(self) -> int:
        """Height of the last mined block (0 before the first block)."""
        return len(self.blocks)

    @property
    def last_hash(self) -> str:
        return self.blocks[-1].hash() if self.blocks else "0" * 64

    @property
    def accounts(self) -> Dict[str, Account]:
        """Snapshot of the named accounts: name -> Account."""
        return {name: self.state.get_account(addr).model_copy() for name, addr in self._names.items()}

    @property
    def deployer(self) -> Optional[str]:
        return self._names.get(self.config.deployer_name)

    def address_of(self, name_or_address: str) -> str:
        return self._names.get(name_or_address, name_or_address)

    def get_account(self, name_or_address: str) -> Account:
        return self.state.get_account(self.address_of(name_or_address)).model_copy()

    def get_balance(self, name_or_address: str) -> int:
        return self.state.get_account(self.address_of(name_or_address)).balance

    def get_block(self, height: int) -> Optional[Block]:
        if 1 <= height <= len(self.blocks):
            return self.blocks[height - 1]
        return None

    def get_assets_maps(self) -> Dict[str, Dict[str, int]]:
        """'STX' -> address -> balance, plus one entry per NFT asset identifier -> owner -> count."""
        assets = {"STX": {acc.address: acc.balance for acc in self.state.get_all_accounts()}}
        assets.update(self.state.nft_holdings())
        return assets

    # --- Contracts ---

    def deploy_contract(self, name: str, contract: Contract, deployer: Optional[str] = None) -> str:
        """Registers `contract` as '<deployer>.<name>' and runs its on_deploy hook."""
        with self._lock:
            deployer_addr = self.address_of(deployer) if deployer else self.deployer
            if not deployer_addr:
                raise ValidationError("No deployer account available")
            try:
                contract_id = contract_principal(deployer_addr, name)
            except ValueError as e:
                raise ValidationError(str(e))
            if contract_id in self.contracts:
                raise ContractError(f"Contract {contract_id} already deployed")
            if not isinstance(contract, Contract):
                raise ContractError(f"{type(contract).__name__} is not a Contract")

            deployed = DeployedContract(
                contract_id=contract_id, name=name, deployer=deployer_addr,
                instance=contract, deployed_at=self.height,
            )
            # A failing on_deploy leaves neither the registration nor its writes behind
            tmp_state = self.state.clone()
            ctx = ContractContext(tmp_state, deployed, tx_sender=deployer_addr, block_height=self.height)
            try:
                contract.on_deploy(ctx)
            except Exception as e:
                logger.error(f"on_deploy of {contract_id} failed: {e}")
                raise

            self.state = tmp_state
            self.contracts[contract_id] = deployed
            logger.info(f"Deployed {contract_id} ({len(contract.function_names())} functions)")
            return contract_id

    def resolve_contract(self, ref: str) -> DeployedContract:
        """Accepts a full '<deployer>.<name>' id or a bare name."""
        if ref in self.contracts:
            return self.contracts[ref]
        matches = [c for c in self.contracts.values() if c.name == ref]
        if len(matches) == 1:
            return matches[0]
        if not matches:
            raise ValidationError(f"Unknown contract: {ref}")
        raise ValidationError(f"Ambiguous contract name {ref}: {[c.contract_id for c in matches]}")

    # --- Mining ---

    def mine_block(self, transactions: Sequence[Transaction]) -> Block:
        """
        Applies `transactions` in order and appends a block.

        Raises ValidationError (and mines nothing) if any transaction is
        malformed. Contract failures never raise: they become (err ...)
        receipts.
        """
        with self._lock:
            txs = list(transactions)
            if len(txs) > self.config.max_tx_per_block:
                raise ValidationError(f"Too many transactions: {len(txs)} > {self.config.max_tx_per_block}")
            for tx in txs:
                self._validate_transaction(tx)

            height = self.height + 1
            included: List[Transaction] = []
            receipts: List[Receipt] = []
            # A contract bug (ContractError) must not leave half a block applied
            snapshot = self.state.clone()
            try:
                for tx in txs:
                    tx_with_nonce, receipt = self._apply_transaction(tx, height)
                    included.append(tx_with_nonce)
                    receipts.append(receipt)
            except Exception:
                self.state = snapshot
                raise

            return self._append_block(height, included, receipts)

    def mine_empty_block(self, count: int = 1) -> int:
        """Mines `count` blocks without transactions. Returns the new height."""
        if count < 1:
            raise ValueError(f"count must be positive, got {count}")
        with self._lock:
            for _ in range(count):
                self._append_block(self.height + 1, [], [])
            return self.height

    def mine_empty_block_until(self, target_height: int) -> int:
        """Mines empty blocks until the chain reaches `target_height`."""
        with self._lock:
            if target_height <= self.height:
                raise ValueError(f"Chain already at height {self.height}, cannot mine until {target_height}")
            return self.mine_empty_block(target_height - self.height)

    def call_read_only_fn(self, contract: str, function: str, args: Sequence[ClarityValue],
                          sender: str) -> ReadOnlyResult:
        """Evaluates a function at the current tip. State changes are discarded and no block is mined."""
        with self._lock:
            probe = Transaction.contract_call(contract, function, args, self.address_of(sender))
            self._validate_transaction(probe)
            deployed = self.resolve_contract(contract)
            fn = deployed.instance.get_function(function)
            outcome = execute_call(
                self.state.clone(), deployed, fn, probe.args, probe.sender, self.height,
            )
            return ReadOnlyResult(result=outcome.result, events=outcome.events, error=outcome.error)

    # --- Internals ---

    def _validate_transaction(self, tx: Transaction):
        if not is_valid_principal(tx.sender):
            raise ValidationError(f"Invalid sender address: {tx.sender}")
        if not self.state.has_account(tx.sender):
            raise ValidationError(f"Unknown sender: {tx.sender}")

        if tx.tx_type == TxType.TRANSFER:
            if not tx.recipient or not is_valid_principal(tx.recipient):
                raise ValidationError(f"Invalid recipient address: {tx.recipient}")
        elif tx.tx_type == TxType.CONTRACT_CALL:
            if not tx.contract or not tx.function:
                raise ValidationError("Contract call must name a contract and a function")
            deployed = self.resolve_contract(tx.contract)
            fn = deployed.instance.get_function(tx.function)
            if fn is None:
                raise ValidationError(f"Unknown function {tx.function} in {deployed.contract_id}")
            fn.check_args(tx.args)
        else:
            raise ValidationError(f"Unsupported transaction type: {tx.tx_type}")

    def _apply_transaction(self, tx: Transaction, height: int) -> Tuple[Transaction, Receipt]:
        nonce = self.state.get_account(tx.sender).nonce
        tx = tx.model_copy(update={"nonce": nonce})
        txid = tx.hash()
        fee = self.config.fee_for(tx.tx_type)

        tmp_state = self.state.clone()
        error: Optional[str] = None

        if tx.tx_type == TxType.TRANSFER:
            result, events = self._run_transfer(tmp_state, tx, fee)
        else:
            # The contract decides the outcome; the fee never replaces its result
            deployed = self.resolve_contract(tx.contract)
            fn = deployed.instance.get_function(tx.function)
            outcome = execute_call(tmp_state, deployed, fn, tx.args, tx.sender, height)
            result, events, error = outcome.result, outcome.events, outcome.error

        charged = 0
        if result.is_ok:
            # A call that spent the sender's balance pays what is left
            charged = min(fee, tmp_state.get_account(tx.sender).balance)
            if charged:
                tmp_state.burn(tx.sender, charged)
            # Commit
            self.state = tmp_state

        self.state.bump_nonce(tx.sender)

        receipt = Receipt(txid=txid, result=result, fee=charged, events=events, error=error)
        level = logging.DEBUG if result.is_ok else logging.INFO
        logger.log(level, f"Tx {txid[:16]}... {tx.describe()} -> {result}")
        return tx, receipt

    def _run_transfer(self, state: LedgerState, tx: Transaction, fee: int):
        sender = state.get_account(tx.sender)
        if tx.amount > 0 and tx.sender != tx.recipient and sender.balance < tx.amount + fee:
            return err(uint(ERR_INSUFFICIENT_BALANCE)), []
        try:
            state.transfer_stx(tx.amount, tx.sender, tx.recipient)
        except TransferError as e:
            return err(uint(e.code)), []
        event = StxTransferEvent(sender=tx.sender, recipient=tx.recipient, amount=tx.amount)
        return ok(bool_(True)), [event]

    def _append_block(self, height: int, txs: List[Transaction], receipts: List[Receipt]) -> Block:
        tx_root = merkle_root([bytes.fromhex(r.txid) for r in receipts]).hex()
        header = BlockHeader(
            height=height,
            prev_hash=self.last_hash,
            timestamp=self.config.genesis_timestamp + height * self.config.block_time_sec,
            chain_id=self.config.chain_id,
            tx_root=tx_root,
            state_root=self.state.compute_state_root(),
        )
        block = Block(header=header, txs=txs, receipts=receipts)
        self.blocks.append(block)

        # Per-tx notifications only for transactions that made it into a block
        for tx, receipt in zip(txs, receipts):
            metrics.record_transaction(tx.tx_type.value, receipt.is_ok, receipt.fee)
            self.events.emit(TX_APPLIED, txid=receipt.txid, height=height, ok=receipt.is_ok,
                             result=str(receipt.result))

        metrics.update_block_metrics(height, len(receipts))
        self.events.emit(BLOCK_MINED, height=height, hash=block.hash(), tx_count=len(receipts))
        logger.info(f"Block {height} mined with {len(receipts)} tx(s). Hash: {block.hash()[:8]}...")
        return block
