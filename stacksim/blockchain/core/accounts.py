from pydantic import BaseModel
from typing import Optional

class Account(BaseModel):
    address: str
    balance: int = 0
    nonce: int = 0

    # Genesis name ("deployer", "wallet_1", ...); None for accounts created by transfers
    name: Optional[str] = None
