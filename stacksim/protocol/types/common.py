from enum import Enum

class TxType(str, Enum):
    TRANSFER = "TRANSFER"
    CONTRACT_CALL = "CONTRACT_CALL"

class ProtocolError(Exception):
    pass

class ValidationError(ProtocolError):
    pass

class ContractError(ProtocolError):
    pass

class ExpectationError(AssertionError):
    pass
