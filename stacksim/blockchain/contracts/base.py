# MIT License
# Copyright (c) 2025 Hashborn

"""
Contract interface.

A simulated contract is a Python class whose callable surface is declared
with the ``public`` and ``read_only`` decorators. Each registered method
receives a ContractContext followed by the typed call arguments:

    class Counter(Contract):
        def on_deploy(self, ctx):
            ctx.var_set("count", uint(0))

        @public("increment")
        def increment(self, ctx):
            count = ctx.var_get("count").value + 1
            ctx.var_set("count", uint(count))
            return ok(uint(count))

        @read_only("get-count")
        def get_count(self, ctx):
            return ok(ctx.var_get("count"))

Contracts hold no state of their own; everything lives in the ledger and is
reached through the context, so rollback of failed calls is handled by the
chain.
"""

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple, Type

from ...protocol.types.clarity import ClarityValue
from ...protocol.types.common import ValidationError

PUBLIC = "public"
READ_ONLY = "read-only"


class ContractAbort(Exception):
    """Raised by contract code to abort the current call (unwrap-panic, asserts, ...)."""
    pass


@dataclass(frozen=True)
class ContractFunction:
    """
    A function exposed by a contract.

    Attributes:
        name: Clarity name used by callers (e.g. 'mint-entry')
        method_name: Python method implementing it
        access: PUBLIC or READ_ONLY
        arg_types: Expected ClarityValue subclass per positional argument
    """
    name: str
    method_name: str
    access: str
    arg_types: Tuple[Type[ClarityValue], ...] = ()

    @property
    def is_public(self) -> bool:
        return self.access == PUBLIC

    def check_args(self, args: Sequence[ClarityValue]) -> None:
        if len(args) != len(self.arg_types):
            raise ValidationError(
                f"{self.name} expects {len(self.arg_types)} argument(s), got {len(args)}"
            )
        for i, (arg, expected) in enumerate(zip(args, self.arg_types)):
            if not isinstance(arg, expected):
                raise ValidationError(
                    f"{self.name} argument {i}: expected {expected.__name__}, got {arg}"
                )


def _register(access: str, name: str, arg_types: Tuple[Type[ClarityValue], ...]) -> Callable:
    def decorator(fn: Callable) -> Callable:
        fn._contract_function = ContractFunction(name, fn.__name__, access, tuple(arg_types))
        return fn
    return decorator


def public(name: str, *arg_types: Type[ClarityValue]) -> Callable:
    """Registers a public function. It must return (ok ...) or (err ...)."""
    return _register(PUBLIC, name, arg_types)


def read_only(name: str, *arg_types: Type[ClarityValue]) -> Callable:
    """Registers a read-only function. It may not write to the ledger."""
    return _register(READ_ONLY, name, arg_types)


class Contract:
    _functions: Dict[str, ContractFunction] = {}

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        functions: Dict[str, ContractFunction] = {}
        for klass in reversed(cls.__mro__):
            for attr in vars(klass).values():
                spec = getattr(attr, "_contract_function", None)
                if spec is not None:
                    functions[spec.name] = spec
        cls._functions = functions

    def on_deploy(self, ctx) -> None:
        """Runs once at deployment (data-var initialisation)."""
        pass

    def get_function(self, name: str) -> Optional[ContractFunction]:
        return self._functions.get(name)

    @classmethod
    def function_names(cls) -> Tuple[str, ...]:
        return tuple(sorted(cls._functions))
