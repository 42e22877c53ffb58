from .base import Contract, ContractAbort, ContractFunction, public, read_only
from .context import ContractContext, DeployedContract

__all__ = [
    'Contract', 'ContractAbort', 'ContractFunction', 'ContractContext',
    'DeployedContract', 'public', 'read_only',
]
