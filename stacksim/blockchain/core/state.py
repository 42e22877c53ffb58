from typing import Dict, Optional, List, Tuple
from .accounts import Account
from ...protocol.crypto.hash import hash_fields, merkle_root
from ...protocol.types.clarity import ClarityValue

# stx-transfer? / nft-transfer? error codes
ERR_INSUFFICIENT_BALANCE = 1
ERR_SAME_SENDER_RECIPIENT = 2
ERR_NON_POSITIVE_AMOUNT = 3
ERR_SENDER_NOT_AUTHORIZED = 4

ERR_NFT_NOT_OWNER = 1
ERR_NFT_SAME_SENDER_RECIPIENT = 2
ERR_NFT_NOT_FOUND = 3

class TransferError(ValueError):
    """Raised when an STX or NFT transfer cannot be applied. Carries the Clarity error code."""
    def __init__(self, code: int, message: str):
        super().__init__(message)
        self.code = code

class ContractStorage:
    """Data vars and maps of one contract. Keys are the Clarity rendering of the key value."""
    def __init__(self, data_vars: Dict[str, ClarityValue] = None,
                 maps: Dict[str, Dict[str, Tuple[ClarityValue, ClarityValue]]] = None):
        self.data_vars: Dict[str, ClarityValue] = data_vars if data_vars is not None else {}
        self.maps: Dict[str, Dict[str, Tuple[ClarityValue, ClarityValue]]] = maps if maps is not None else {}

    def clone(self) -> 'ContractStorage':
        # Values are frozen models, so copying the containers is enough
        return ContractStorage(
            dict(self.data_vars),
            {name: dict(entries) for name, entries in self.maps.items()},
        )

class LedgerState:
    def __init__(self,
                 accounts: Dict[str, Account] = None,
                 storage: Dict[str, ContractStorage] = None,
                 nft_owners: Dict[str, Dict[str, Tuple[ClarityValue, str]]] = None):
        # address -> Account
        self._accounts: Dict[str, Account] = accounts if accounts is not None else {}
        # contract id -> storage
        self._storage: Dict[str, ContractStorage] = storage if storage is not None else {}
        # asset identifier -> rendered token id -> (token id, owner)
        self._nft_owners: Dict[str, Dict[str, Tuple[ClarityValue, str]]] = nft_owners if nft_owners is not None else {}

        self.total_burned = 0

    def clone(self) -> 'LedgerState':
        """Creates a copy of the state (for per-transaction rollback)."""
        new_accounts = {k: v.model_copy() for k, v in self._accounts.items()}
        new_storage = {k: v.clone() for k, v in self._storage.items()}
        new_nfts = {k: dict(v) for k, v in self._nft_owners.items()}
        cloned = LedgerState(new_accounts, new_storage, new_nfts)
        cloned.total_burned = self.total_burned
        return cloned

    # --- Accounts ---

    def get_account(self, address: str) -> Account:
        if address in self._accounts:
            return self._accounts[address]

        # Return generic new account
        return Account(address=address)

    def has_account(self, address: str) -> bool:
        return address in self._accounts

    def set_account(self, account: Account):
        """Updates account in local cache."""
        self._accounts[account.address] = account

    def get_all_accounts(self) -> List[Account]:
        return list(self._accounts.values())

    def transfer_stx(self, amount: int, sender: str, recipient: str):
        """Moves `amount` micro-units. Raises TransferError without touching balances on failure."""
        if amount <= 0:
            raise TransferError(ERR_NON_POSITIVE_AMOUNT, f"Non-positive amount: {amount}")
        if sender == recipient:
            raise TransferError(ERR_SAME_SENDER_RECIPIENT, "Sender and recipient are the same")

        src = self.get_account(sender)
        if src.balance < amount:
            raise TransferError(ERR_INSUFFICIENT_BALANCE, f"Insufficient balance: have {src.balance}, need {amount}")

        src.balance -= amount
        self.set_account(src)

        dst = self.get_account(recipient)
        dst.balance += amount
        self.set_account(dst)

    def burn(self, address: str, amount: int):
        acc = self.get_account(address)
        if acc.balance < amount:
            raise TransferError(ERR_INSUFFICIENT_BALANCE, f"Insufficient balance: have {acc.balance}, need {amount}")
        acc.balance -= amount
        self.set_account(acc)
        self.total_burned += amount

    def bump_nonce(self, address: str) -> int:
        acc = self.get_account(address)
        nonce = acc.nonce
        acc.nonce += 1
        self.set_account(acc)
        return nonce

    # --- Contract storage ---

    def storage(self, contract_id: str) -> ContractStorage:
        if contract_id not in self._storage:
            self._storage[contract_id] = ContractStorage()
        return self._storage[contract_id]

    # --- Non-fungible assets ---

    def nft_owner(self, asset_identifier: str, token: ClarityValue) -> Optional[str]:
        entry = self._nft_owners.get(asset_identifier, {}).get(str(token))
        return entry[1] if entry else None

    def nft_mint(self, asset_identifier: str, token: ClarityValue, recipient: str) -> bool:
        owners = self._nft_owners.setdefault(asset_identifier, {})
        key = str(token)
        if key in owners:
            return False
        owners[key] = (token, recipient)
        return True

    def nft_transfer(self, asset_identifier: str, token: ClarityValue, sender: str, recipient: str):
        owner = self.nft_owner(asset_identifier, token)
        if owner is None:
            raise TransferError(ERR_NFT_NOT_FOUND, f"{asset_identifier} {token} does not exist")
        if sender == recipient:
            raise TransferError(ERR_NFT_SAME_SENDER_RECIPIENT, "Sender and recipient are the same")
        if owner != sender:
            raise TransferError(ERR_NFT_NOT_OWNER, f"{sender} does not own {asset_identifier} {token}")
        self._nft_owners[asset_identifier][str(token)] = (token, recipient)

    def nft_holdings(self) -> Dict[str, Dict[str, int]]:
        """asset identifier -> owner -> number of tokens held."""
        holdings: Dict[str, Dict[str, int]] = {}
        for asset, owners in self._nft_owners.items():
            counts = holdings.setdefault(asset, {})
            for _, owner in owners.values():
                counts[owner] = counts.get(owner, 0) + 1
        return holdings

    # --- Commitments ---

    def compute_state_root(self) -> str:
        """Merkle root over account balances and nonces, then NFT ownership."""
        leaves = [
            bytes.fromhex(hash_fields(("account", addr, acc.balance, acc.nonce)))
            for addr, acc in sorted(self._accounts.items())
        ]
        for asset_id in sorted(self._nft_owners):
            for token_key, (_, owner) in sorted(self._nft_owners[asset_id].items()):
                leaves.append(bytes.fromhex(hash_fields(("nft", asset_id, token_key, owner))))
        return merkle_root(leaves).hex()
