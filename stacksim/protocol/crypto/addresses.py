import re
import bech32 # type: ignore
from .hash import hash160
from typing import Tuple, Optional

CONTRACT_NAME_RE = re.compile(r"^[a-zA-Z]([a-zA-Z0-9]|[-_])*$")
MAX_CONTRACT_NAME_LENGTH = 40

def address_from_seed(seed: bytes, prefix: str = "st") -> str:
    """Creates a deterministic Bech32 address from arbitrary seed bytes."""
    h20 = hash160(seed)

    # Convert to 5-bit words
    five_bit_r = bech32.convertbits(h20, 8, 5)
    if five_bit_r is None:
        raise ValueError("Error converting to bech32 words")

    return bech32.bech32_encode(prefix, five_bit_r)

def account_address(name: str, chain_id: str, prefix: str = "st") -> str:
    """Address of a named simnet account; stable for a given chain id."""
    return address_from_seed(f"{chain_id}/{name}".encode("utf-8"), prefix=prefix)

def decode_address(addr: str) -> Tuple[str, bytes]:
    """Decodes Bech32 address to (prefix, h20_bytes)."""
    hrp, data = bech32.bech32_decode(addr)
    if hrp is None or data is None:
        raise ValueError("Invalid bech32 address")

    decoded = bech32.convertbits(data, 5, 8, False)
    if decoded is None:
        raise ValueError("Error converting from bech32 words")

    return hrp, bytes(decoded)

def is_valid_address(addr: str, expected_prefix: Optional[str] = None) -> bool:
    try:
        hrp, _ = decode_address(addr)
        if expected_prefix and hrp != expected_prefix:
            return False
        return True
    except ValueError:
        return False

def is_valid_contract_name(name: str) -> bool:
    return len(name) <= MAX_CONTRACT_NAME_LENGTH and bool(CONTRACT_NAME_RE.match(name))

def contract_principal(deployer: str, name: str) -> str:
    """Returns the contract identifier '<deployer>.<name>'."""
    if not is_valid_contract_name(name):
        raise ValueError(f"Invalid contract name: {name!r}")
    return f"{deployer}.{name}"

def split_contract_principal(contract_id: str) -> Tuple[str, str]:
    """Splits '<deployer>.<name>' into (deployer, name)."""
    deployer, sep, name = contract_id.partition(".")
    if not sep or not name:
        raise ValueError(f"Not a contract principal: {contract_id!r}")
    return deployer, name

def is_valid_principal(value: str) -> bool:
    """Accepts standard principals and contract principals."""
    if "." in value:
        try:
            deployer, name = split_contract_principal(value)
        except ValueError:
            return False
        return is_valid_address(deployer) and is_valid_contract_name(name)
    return is_valid_address(value)
