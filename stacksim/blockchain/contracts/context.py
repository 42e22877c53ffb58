# MIT License
# Copyright (c) 2025 Hashborn

from dataclasses import dataclass, field
from typing import List, Optional, Sequence
import logging

from .base import Contract, ContractAbort, ContractFunction
from ..core.state import LedgerState, TransferError, ERR_SENDER_NOT_AUTHORIZED
from ...protocol.types.clarity import ClarityValue, ResponseErr, ResponseOk, bool_, err, none, ok, uint
from ...protocol.types.common import ContractError
from ...protocol.types.events import NftMintEvent, NftTransferEvent, PrintEvent, StxTransferEvent, TxEvent

logger = logging.getLogger(__name__)

ERR_NFT_ALREADY_EXISTS = 1


@dataclass
class DeployedContract:
    contract_id: str        # '<deployer>.<name>'
    name: str
    deployer: str
    instance: Contract
    deployed_at: int = 0    # chain height at deployment


@dataclass
class CallOutcome:
    result: ClarityValue
    events: List[TxEvent] = field(default_factory=list)
    error: Optional[str] = None


class ContractContext:
    """
    Execution environment handed to contract functions.

    Mirrors the Clarity built-ins a contract can reach: tx-sender,
    contract-caller, block-height, stx-transfer?, nft-mint?, data vars and
    maps, print. All writes go to the LedgerState the call runs against.
    """

    def __init__(self, state: LedgerState, contract: DeployedContract, tx_sender: str,
                 block_height: int, read_only: bool = False):
        self._state = state
        self._contract = contract
        self.tx_sender = tx_sender
        self.contract_caller = tx_sender
        self.block_height = block_height
        self.read_only = read_only
        self.events: List[TxEvent] = []

    @property
    def contract_id(self) -> str:
        return self._contract.contract_id

    @property
    def contract_owner(self) -> str:
        """Address that deployed the contract."""
        return self._contract.deployer

    def asset_identifier(self, asset: str) -> str:
        return f"{self.contract_id}::{asset}"

    def _ensure_writable(self, op: str):
        if self.read_only:
            raise ContractError(f"{op} not allowed in read-only function of {self.contract_id}")

    # --- STX ---

    def stx_balance(self, address: str) -> int:
        return self._state.get_account(address).balance

    def stx_transfer(self, amount: int, sender: str, recipient: str) -> ClarityValue:
        """stx-transfer?: returns (ok true) or (err u1|u2|u3|u4)."""
        self._ensure_writable("stx-transfer?")
        if sender not in (self.tx_sender, self.contract_id):
            return err(uint(ERR_SENDER_NOT_AUTHORIZED))
        try:
            self._state.transfer_stx(amount, sender, recipient)
        except TransferError as e:
            logger.debug(f"stx-transfer? failed in {self.contract_id}: {e}")
            return err(uint(e.code))
        self.events.append(StxTransferEvent(sender=sender, recipient=recipient, amount=amount))
        return ok(bool_(True))

    # --- NFTs ---

    def nft_mint(self, asset: str, token: ClarityValue, recipient: str) -> ClarityValue:
        """nft-mint?: returns (ok true) or (err u1) when the token already exists."""
        self._ensure_writable("nft-mint?")
        asset_id = self.asset_identifier(asset)
        if not self._state.nft_mint(asset_id, token, recipient):
            return err(uint(ERR_NFT_ALREADY_EXISTS))
        self.events.append(NftMintEvent(asset_identifier=asset_id, recipient=recipient, value=token))
        return ok(bool_(True))

    def nft_get_owner(self, asset: str, token: ClarityValue) -> Optional[str]:
        return self._state.nft_owner(self.asset_identifier(asset), token)

    def nft_transfer(self, asset: str, token: ClarityValue, sender: str, recipient: str) -> ClarityValue:
        """nft-transfer?: returns (ok true) or (err u1|u2|u3)."""
        self._ensure_writable("nft-transfer?")
        asset_id = self.asset_identifier(asset)
        try:
            self._state.nft_transfer(asset_id, token, sender, recipient)
        except TransferError as e:
            return err(uint(e.code))
        self.events.append(
            NftTransferEvent(asset_identifier=asset_id, sender=sender, recipient=recipient, value=token)
        )
        return ok(bool_(True))

    # --- Data vars / maps ---

    def var_get(self, name: str, default: Optional[ClarityValue] = None) -> Optional[ClarityValue]:
        return self._state.storage(self.contract_id).data_vars.get(name, default)

    def var_set(self, name: str, value: ClarityValue):
        self._ensure_writable("var-set")
        _require_value(value)
        self._state.storage(self.contract_id).data_vars[name] = value

    def map_get(self, map_name: str, key: ClarityValue) -> Optional[ClarityValue]:
        entry = self._state.storage(self.contract_id).maps.get(map_name, {}).get(str(key))
        return entry[1] if entry else None

    def map_set(self, map_name: str, key: ClarityValue, value: ClarityValue):
        self._ensure_writable("map-set")
        _require_value(key)
        _require_value(value)
        self._state.storage(self.contract_id).maps.setdefault(map_name, {})[str(key)] = (key, value)

    def map_insert(self, map_name: str, key: ClarityValue, value: ClarityValue) -> bool:
        """map-insert: only writes when the key is absent."""
        self._ensure_writable("map-insert")
        if self.map_get(map_name, key) is not None:
            return False
        self.map_set(map_name, key, value)
        return True

    def map_delete(self, map_name: str, key: ClarityValue) -> bool:
        self._ensure_writable("map-delete")
        entries = self._state.storage(self.contract_id).maps.get(map_name, {})
        return entries.pop(str(key), None) is not None

    # --- Misc ---

    def print(self, value: ClarityValue) -> ClarityValue:
        _require_value(value)
        self.events.append(PrintEvent(contract_identifier=self.contract_id, value=value))
        return value


def _require_value(value):
    if not isinstance(value, ClarityValue):
        raise ContractError(f"Expected a Clarity value, got {type(value).__name__}")


def execute_call(state: LedgerState, contract: DeployedContract, function: ContractFunction,
                 args: Sequence[ClarityValue], tx_sender: str, block_height: int) -> CallOutcome:
    """
    Runs one contract function against `state`.

    The caller owns rollback: on an (err ...) result or an abort the state
    passed in must be discarded. Aborts become (err none) with the abort
    message recorded on the outcome.
    """
    ctx = ContractContext(state, contract, tx_sender, block_height, read_only=not function.is_public)
    method = getattr(contract.instance, function.method_name)

    try:
        result = method(ctx, *args)
    except ContractAbort as e:
        logger.warning(f"Call {contract.contract_id}::{function.name} aborted: {e}")
        return CallOutcome(result=err(none()), events=[], error=str(e) or "aborted")

    if not isinstance(result, ClarityValue):
        raise ContractError(
            f"{contract.contract_id}::{function.name} returned {type(result).__name__}, expected a Clarity value"
        )
    if function.is_public and not isinstance(result, (ResponseOk, ResponseErr)):
        raise ContractError(
            f"Public function {contract.contract_id}::{function.name} must return a response, got {result}"
        )

    # Events of a failed call are discarded along with its state changes
    events = ctx.events if not result.is_err else []
    return CallOutcome(result=result, events=events)
