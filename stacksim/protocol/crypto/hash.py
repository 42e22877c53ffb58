import hashlib
from typing import Iterable, List

EMPTY_ROOT = b'\x00' * 32
# Length prefix reserved for None; no str() field is 4 GiB long
NONE_FIELD = b'\xff' * 4

def sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()

def hash160(data: bytes) -> bytes:
    """20-byte digest used as the body of simnet addresses: SHA256(SHA256(data))[:20]."""
    return sha256(sha256(data))[:20]

def hash_fields(fields: Iterable[object]) -> str:
    """
    Hex digest over a sequence of fields.

    Each field is rendered with str() and length-prefixed, so ('ab', 'c') and
    ('a', 'bc') hash differently. None is written as the NONE_FIELD marker
    with no body, so it never collides with an empty string.
    """
    h = hashlib.sha256()
    for field in fields:
        if field is None:
            h.update(NONE_FIELD)
            continue
        raw = str(field).encode("utf-8")
        h.update(len(raw).to_bytes(4, "big"))
        h.update(raw)
    return h.hexdigest()

def merkle_root(leaves: List[bytes]) -> bytes:
    """Merkle root over `leaves`. An odd node is paired with itself; no leaves gives EMPTY_ROOT."""
    if not leaves:
        return EMPTY_ROOT
    level = list(leaves)
    while len(level) > 1:
        if len(level) % 2:
            level.append(level[-1])
        level = [sha256(level[i] + level[i + 1]) for i in range(0, len(level), 2)]
    return level[0]
