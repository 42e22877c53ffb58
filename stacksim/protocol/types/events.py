"""
Events recorded on a receipt while a transaction executes.
"""

from typing import Annotated, Literal, Union
from pydantic import BaseModel, ConfigDict, Field
from .clarity import AnyValue


class TxEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str


class StxTransferEvent(TxEvent):
    type: Literal["stx_transfer_event"] = "stx_transfer_event"
    sender: str
    recipient: str
    amount: int


class NftMintEvent(TxEvent):
    type: Literal["nft_mint_event"] = "nft_mint_event"
    asset_identifier: str    # '<contract id>::<asset name>'
    recipient: str
    value: AnyValue


class NftTransferEvent(TxEvent):
    type: Literal["nft_transfer_event"] = "nft_transfer_event"
    asset_identifier: str
    sender: str
    recipient: str
    value: AnyValue


class PrintEvent(TxEvent):
    type: Literal["print_event"] = "print_event"
    contract_identifier: str
    value: AnyValue


AnyEvent = Annotated[
    Union[StxTransferEvent, NftMintEvent, NftTransferEvent, PrintEvent],
    Field(discriminator="type"),
]
