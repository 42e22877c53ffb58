from pydantic import BaseModel, Field
from typing import Optional, List, Sequence
from ..crypto.hash import hash_fields
from .common import TxType
from .clarity import AnyValue, ClarityValue

# Note: TxType is imported from common to share with other modules

class Transaction(BaseModel):
    tx_type: TxType
    sender: str
    # CONTRACT_CALL
    contract: Optional[str] = None   # short name or '<deployer>.<name>'
    function: Optional[str] = None
    args: List[AnyValue] = Field(default_factory=list)
    # TRANSFER
    recipient: Optional[str] = None
    amount: int = 0                  # in micro-units

    # Assigned by the chain when the tx is included in a block
    nonce: Optional[int] = None

    @classmethod
    def contract_call(cls, contract: str, function: str, args: Sequence[ClarityValue], sender: str) -> 'Transaction':
        return cls(
            tx_type=TxType.CONTRACT_CALL,
            sender=sender,
            contract=contract,
            function=function,
            args=list(args),
        )

    @classmethod
    def transfer(cls, amount: int, sender: str, recipient: str) -> 'Transaction':
        return cls(
            tx_type=TxType.TRANSFER,
            sender=sender,
            recipient=recipient,
            amount=amount,
        )

    def hash(self) -> str:
        return hash_fields((
            self.tx_type.value,
            self.sender,
            self.contract,
            self.function,
            len(self.args),
            *self.args,
            self.recipient,
            self.amount,
            self.nonce,
        ))

    def describe(self) -> str:
        if self.tx_type == TxType.TRANSFER:
            return f"transfer {self.amount} {self.sender} -> {self.recipient}"
        args = " ".join(str(a) for a in self.args)
        return f"({self.contract}::{self.function}{' ' + args if args else ''}) from {self.sender}"
