# MIT License
# Copyright (c) 2025 Hashborn

"""
Typed values exchanged with contracts.

Every argument passed to a contract and every result recorded in a receipt is
one of the models below. Values render in Clarity syntax (``u1``, ``(ok u1)``,
``{message: "hi", minter: 'st1...}``) and round-trip through JSON using the
``type`` discriminator.

The ``expect_*`` helpers are the assertion surface for test suites: each one
raises ExpectationError unless the value has the expected shape, and returns
the unwrapped payload so calls can be chained:

    block.receipts[0].result.expect_ok().expect_uint(1)
"""

from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Sequence, Union
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictInt, TypeAdapter, field_validator

from .common import ExpectationError
from ..crypto.addresses import is_valid_principal

UINT_MAX = 2**128 - 1
INT_MIN = -2**127
INT_MAX = 2**127 - 1

_ASCII_EXTRA = {"\n", "\t", "\r"}


class ClarityValue(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str

    def _mismatch(self, expected: str) -> ExpectationError:
        return ExpectationError(f"Expected {expected}, got {self}")

    # Responses / optionals
    def expect_ok(self) -> "ClarityValue":
        raise self._mismatch("(ok ...)")

    def expect_err(self) -> "ClarityValue":
        raise self._mismatch("(err ...)")

    def expect_some(self) -> "ClarityValue":
        raise self._mismatch("(some ...)")

    def expect_none(self) -> None:
        raise self._mismatch("none")

    # Primitives
    def expect_uint(self, expected: Optional[int] = None) -> int:
        raise self._mismatch("uint" if expected is None else f"u{expected}")

    def expect_int(self, expected: Optional[int] = None) -> int:
        raise self._mismatch("int" if expected is None else str(expected))

    def expect_bool(self, expected: Optional[bool] = None) -> bool:
        raise self._mismatch("bool")

    def expect_ascii(self, expected: Optional[str] = None) -> str:
        raise self._mismatch("string-ascii")

    def expect_utf8(self, expected: Optional[str] = None) -> str:
        raise self._mismatch("string-utf8")

    def expect_buff(self, expected: Optional[bytes] = None) -> bytes:
        raise self._mismatch("buff")

    def expect_principal(self, expected: Optional[str] = None) -> str:
        raise self._mismatch("principal")

    # Composites
    def expect_tuple(self, expected: Optional[Mapping[str, "ClarityValue"]] = None) -> Dict[str, "ClarityValue"]:
        raise self._mismatch("tuple")

    def expect_list(self, expected: Optional[Sequence["ClarityValue"]] = None) -> List["ClarityValue"]:
        raise self._mismatch("list")

    @property
    def is_ok(self) -> bool:
        return False

    @property
    def is_err(self) -> bool:
        return False

    def _check(self, actual: Any, expected: Any, rendered: str) -> None:
        if expected is not None and actual != expected:
            raise ExpectationError(f"Expected {rendered}, got {self}")


class UInt(ClarityValue):
    type: Literal["uint"] = "uint"
    value: StrictInt

    @field_validator("value")
    @classmethod
    def _in_range(cls, v: int) -> int:
        if v < 0 or v > UINT_MAX:
            raise ValueError(f"uint out of range: {v}")
        return v

    def expect_uint(self, expected: Optional[int] = None) -> int:
        self._check(self.value, expected, f"u{expected}")
        return self.value

    def __str__(self) -> str:
        return f"u{self.value}"


class Int(ClarityValue):
    type: Literal["int"] = "int"
    value: StrictInt

    @field_validator("value")
    @classmethod
    def _in_range(cls, v: int) -> int:
        if v < INT_MIN or v > INT_MAX:
            raise ValueError(f"int out of range: {v}")
        return v

    def expect_int(self, expected: Optional[int] = None) -> int:
        self._check(self.value, expected, str(expected))
        return self.value

    def __str__(self) -> str:
        return str(self.value)


class Bool(ClarityValue):
    type: Literal["bool"] = "bool"
    value: StrictBool

    def expect_bool(self, expected: Optional[bool] = None) -> bool:
        self._check(self.value, expected, str(expected).lower())
        return self.value

    def __str__(self) -> str:
        return "true" if self.value else "false"


class StringAscii(ClarityValue):
    type: Literal["string-ascii"] = "string-ascii"
    value: str

    @field_validator("value")
    @classmethod
    def _printable(cls, v: str) -> str:
        for ch in v:
            if ch not in _ASCII_EXTRA and not (32 <= ord(ch) <= 126):
                raise ValueError(f"non-ascii character {ch!r} in string-ascii")
        return v

    def expect_ascii(self, expected: Optional[str] = None) -> str:
        self._check(self.value, expected, _quote(expected or ""))
        return self.value

    def __str__(self) -> str:
        return _quote(self.value)


class StringUtf8(ClarityValue):
    type: Literal["string-utf8"] = "string-utf8"
    value: str

    def expect_utf8(self, expected: Optional[str] = None) -> str:
        self._check(self.value, expected, "u" + _quote(expected or ""))
        return self.value

    def __str__(self) -> str:
        return "u" + _quote(self.value)


class Buff(ClarityValue):
    type: Literal["buff"] = "buff"
    data: str  # hex, no 0x prefix

    @field_validator("data")
    @classmethod
    def _hex(cls, v: str) -> str:
        v = v[2:] if v.startswith("0x") else v
        bytes.fromhex(v)
        return v.lower()

    @property
    def raw(self) -> bytes:
        return bytes.fromhex(self.data)

    def expect_buff(self, expected: Optional[bytes] = None) -> bytes:
        self._check(self.raw, expected, "0x" + (expected or b"").hex())
        return self.raw

    def __str__(self) -> str:
        return "0x" + self.data


class Principal(ClarityValue):
    type: Literal["principal"] = "principal"
    value: str

    @field_validator("value")
    @classmethod
    def _valid(cls, v: str) -> str:
        if not is_valid_principal(v):
            raise ValueError(f"invalid principal: {v!r}")
        return v

    @property
    def is_contract(self) -> bool:
        return "." in self.value

    def expect_principal(self, expected: Optional[str] = None) -> str:
        self._check(self.value, expected, f"'{expected}")
        return self.value

    def __str__(self) -> str:
        return f"'{self.value}"


class OptionalNone(ClarityValue):
    type: Literal["none"] = "none"

    def expect_none(self) -> None:
        return None

    def __str__(self) -> str:
        return "none"


class OptionalSome(ClarityValue):
    type: Literal["some"] = "some"
    value: "AnyValue"

    def expect_some(self) -> "ClarityValue":
        return self.value

    def __str__(self) -> str:
        return f"(some {self.value})"


class ResponseOk(ClarityValue):
    type: Literal["ok"] = "ok"
    value: "AnyValue"

    @property
    def is_ok(self) -> bool:
        return True

    def expect_ok(self) -> "ClarityValue":
        return self.value

    def __str__(self) -> str:
        return f"(ok {self.value})"


class ResponseErr(ClarityValue):
    type: Literal["err"] = "err"
    value: "AnyValue"

    @property
    def is_err(self) -> bool:
        return True

    def expect_err(self) -> "ClarityValue":
        return self.value

    def __str__(self) -> str:
        return f"(err {self.value})"


class ClarityTuple(ClarityValue):
    type: Literal["tuple"] = "tuple"
    data: Dict[str, "AnyValue"]

    def __getitem__(self, key: str) -> "ClarityValue":
        return self.data[key]

    def expect_tuple(self, expected: Optional[Mapping[str, "ClarityValue"]] = None) -> Dict[str, "ClarityValue"]:
        if expected is not None and dict(expected) != self.data:
            rendered = ClarityTuple(data=dict(expected))
            raise ExpectationError(f"Expected {rendered}, got {self}")
        return dict(self.data)

    def __str__(self) -> str:
        fields = ", ".join(f"{k}: {self.data[k]}" for k in sorted(self.data))
        return "{" + fields + "}"


class ClarityList(ClarityValue):
    type: Literal["list"] = "list"
    items: List["AnyValue"] = Field(default_factory=list)

    def expect_list(self, expected: Optional[Sequence["ClarityValue"]] = None) -> List["ClarityValue"]:
        if expected is not None and list(expected) != self.items:
            rendered = ClarityList(items=list(expected))
            raise ExpectationError(f"Expected {rendered}, got {self}")
        return list(self.items)

    def __str__(self) -> str:
        if not self.items:
            return "(list)"
        return "(list " + " ".join(str(i) for i in self.items) + ")"


AnyValue = Annotated[
    Union[
        UInt, Int, Bool, StringAscii, StringUtf8, Buff, Principal,
        OptionalNone, OptionalSome, ResponseOk, ResponseErr, ClarityTuple, ClarityList,
    ],
    Field(discriminator="type"),
]

for _model in (OptionalSome, ResponseOk, ResponseErr, ClarityTuple, ClarityList):
    _model.model_rebuild()

value_adapter: TypeAdapter = TypeAdapter(AnyValue)


def parse_value(data: Union[str, bytes, Dict[str, Any]]) -> ClarityValue:
    """Parses a value from its JSON form (string/bytes) or an already-decoded dict."""
    if isinstance(data, (str, bytes)):
        return value_adapter.validate_json(data)
    return value_adapter.validate_python(data)


def _quote(s: str) -> str:
    return '"' + s.replace("\\", "\\\\").replace('"', '\\"') + '"'


# --- Constructors ---

def uint(value: int) -> UInt:
    return UInt(value=value)

def int_(value: int) -> Int:
    return Int(value=value)

def bool_(value: bool) -> Bool:
    return Bool(value=value)

def string_ascii(value: str) -> StringAscii:
    return StringAscii(value=value)

def string_utf8(value: str) -> StringUtf8:
    return StringUtf8(value=value)

def buff(value: bytes) -> Buff:
    return Buff(data=value.hex())

def principal(value: str) -> Principal:
    return Principal(value=value)

NONE = OptionalNone()

def none() -> OptionalNone:
    return NONE

def some(value: ClarityValue) -> OptionalSome:
    return OptionalSome(value=value)

def ok(value: ClarityValue) -> ResponseOk:
    return ResponseOk(value=value)

def err(value: ClarityValue) -> ResponseErr:
    return ResponseErr(value=value)

def tuple_(data: Optional[Mapping[str, ClarityValue]] = None, **fields: ClarityValue) -> ClarityTuple:
    merged = dict(data or {})
    merged.update(fields)
    return ClarityTuple(data=merged)

def list_(items: Sequence[ClarityValue] = ()) -> ClarityList:
    return ClarityList(items=list(items))
