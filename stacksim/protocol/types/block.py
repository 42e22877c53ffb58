from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from .tx import Transaction
from .clarity import AnyValue, ClarityValue
from .common import ExpectationError
from .events import AnyEvent, NftMintEvent, NftTransferEvent, PrintEvent, StxTransferEvent
from ..crypto.hash import hash_fields

class Receipt(BaseModel):
    """Outcome of one transaction: its result value, fee and emitted events."""
    txid: str
    result: AnyValue
    fee: int = 0                          # charged only when result is (ok ...)
    events: List[AnyEvent] = Field(default_factory=list)
    error: Optional[str] = None           # set when the call aborted at runtime

    @property
    def is_ok(self) -> bool:
        return self.result.is_ok

    def expect_stx_transfer_event(self, amount: int, sender: str, recipient: str) -> StxTransferEvent:
        return self._expect_event(
            StxTransferEvent(amount=amount, sender=sender, recipient=recipient),
        )

    def expect_nft_mint_event(self, value: ClarityValue, recipient: str, asset_identifier: str) -> NftMintEvent:
        return self._expect_event(
            NftMintEvent(value=value, recipient=recipient, asset_identifier=asset_identifier),
        )

    def expect_nft_transfer_event(self, value: ClarityValue, sender: str, recipient: str,
                                  asset_identifier: str) -> NftTransferEvent:
        return self._expect_event(
            NftTransferEvent(value=value, sender=sender, recipient=recipient, asset_identifier=asset_identifier),
        )

    def expect_print_event(self, contract_identifier: str, value: ClarityValue) -> PrintEvent:
        return self._expect_event(
            PrintEvent(contract_identifier=contract_identifier, value=value),
        )

    def _expect_event(self, wanted):
        for event in self.events:
            if event == wanted:
                return event
        found = ", ".join(e.type for e in self.events) or "no events"
        raise ExpectationError(f"Expected {wanted!r} in receipt {self.txid[:16]}..., found {found}")


class BlockHeader(BaseModel):
    model_config = ConfigDict(frozen=True)

    height: int                 # block number, 1 for the first mined block
    prev_hash: str              # hex string of SHA256 of previous block
    timestamp: int              # simulated unix time
    chain_id: str

    tx_root: str                # Merkle root of all txids
    state_root: str             # Merkle root of account state after the block

    def hash(self) -> str:
        # Header only; txs and receipts are committed through tx_root and state_root
        return hash_fields((
            self.height, self.prev_hash, self.timestamp, self.chain_id, self.tx_root, self.state_root,
        ))

class Block(BaseModel):
    model_config = ConfigDict(frozen=True)

    header: BlockHeader
    txs: List[Transaction] = Field(default_factory=list)
    receipts: List[Receipt] = Field(default_factory=list)

    @property
    def height(self) -> int:
        return self.header.height

    def hash(self) -> str:
        return self.header.hash()
