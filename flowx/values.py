from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any


class DecodeError(ValueError):
    pass


INTEGER_RANGES: dict[str, tuple[int | None, int | None]] = {
    "Int": (None, None),
    "Int8": (-(2**7), 2**7 - 1),
    "Int16": (-(2**15), 2**15 - 1),
    "Int32": (-(2**31), 2**31 - 1),
    "Int64": (-(2**63), 2**63 - 1),
    "Int128": (-(2**127), 2**127 - 1),
    "Int256": (-(2**255), 2**255 - 1),
    "UInt": (0, None),
    "UInt8": (0, 2**8 - 1),
    "UInt16": (0, 2**16 - 1),
    "UInt32": (0, 2**32 - 1),
    "UInt64": (0, 2**64 - 1),
    "UInt128": (0, 2**128 - 1),
    "UInt256": (0, 2**256 - 1),
    "Word8": (0, 2**8 - 1),
    "Word16": (0, 2**16 - 1),
    "Word32": (0, 2**32 - 1),
    "Word64": (0, 2**64 - 1),
}

FIX64_SCALE = 8
FIX64_FACTOR = 10**FIX64_SCALE

# Bounds are in raw units (value * 10^8).
FIXED_POINT_RANGES: dict[str, tuple[int, int]] = {
    "Fix64": (-(2**63), 2**63 - 1),
    "UFix64": (0, 2**64 - 1),
}

PATH_DOMAINS = ("storage", "private", "public")

ADDRESS_HEX_LENGTH = 16

_FIXED_POINT_TEXT = re.compile(r"^(-?)(\d+)\.(\d+)$")
_INTEGER_TEXT = re.compile(r"-?[0-9]+")
_HEX_DIGITS = set("0123456789abcdef")


@dataclass(frozen=True)
class Value:
    """A typed contract-language value.

    ``value`` holds the Python representation for ``type``:

    - integers: ``int``; fixed points: ``int`` in raw units (10^-8)
    - ``String``/``Character``: ``str``; ``Bool``: ``bool``
    - ``Address``: ``"0x"`` followed by 16 lowercase hex digits
    - ``Optional``: nested ``Value`` or ``None``; ``Void``: ``None``
    - ``Array``: ``tuple[Value, ...]``
    - ``Dictionary``: ``tuple[tuple[Value, Value], ...]``
    - ``Path``: ``(domain, identifier)``
    """

    type: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return encode_value(self)

    @classmethod
    def from_dict(cls, data: Any) -> "Value":
        return decode_value(data)

    def __str__(self) -> str:
        return format_value(self)


def normalize_address_hex(text: str) -> str:
    """Return a 16-digit lowercase hex address without the ``0x`` prefix."""
    raw = str(text).strip().lower()
    if raw.startswith("0x"):
        raw = raw[2:]
    if not raw or len(raw) > ADDRESS_HEX_LENGTH or not set(raw) <= _HEX_DIGITS:
        raise ValueError(f"Invalid address: {text!r}")
    return raw.rjust(ADDRESS_HEX_LENGTH, "0")


def check_integer_range(type_name: str, number: int) -> int:
    low, high = INTEGER_RANGES[type_name]
    if (low is not None and number < low) or (high is not None and number > high):
        raise ValueError(f"{number} is out of range for {type_name}")
    return number


def parse_fixed_point_text(type_name: str, text: str) -> int:
    match = _FIXED_POINT_TEXT.match(text.strip())
    if match is None:
        raise ValueError(f"Invalid {type_name} value: {text!r}")
    sign, whole, fraction = match.groups()
    if len(fraction) > FIX64_SCALE:
        raise ValueError(f"{type_name} supports at most {FIX64_SCALE} fractional digits")
    raw = int(whole) * FIX64_FACTOR + int(fraction.ljust(FIX64_SCALE, "0"))
    if sign:
        raw = -raw
    low, high = FIXED_POINT_RANGES[type_name]
    if raw < low or raw > high:
        raise ValueError(f"{text} is out of range for {type_name}")
    return raw


def format_fixed_point(raw: int) -> str:
    sign = "-" if raw < 0 else ""
    whole, fraction = divmod(abs(raw), FIX64_FACTOR)
    return f"{sign}{whole}.{fraction:08d}"


def format_value(value: Value) -> str:
    kind = value.type
    if kind == "Void":
        return "()"
    if kind == "Optional":
        return "nil" if value.value is None else format_value(value.value)
    if kind == "Bool":
        return "true" if value.value else "false"
    if kind in ("String", "Character"):
        return json.dumps(value.value)
    if kind in FIXED_POINT_RANGES:
        return format_fixed_point(value.value)
    if kind == "Array":
        return "[" + ", ".join(format_value(item) for item in value.value) + "]"
    if kind == "Dictionary":
        pairs = (f"{format_value(key)}: {format_value(item)}" for key, item in value.value)
        return "{" + ", ".join(pairs) + "}"
    if kind == "Path":
        domain, identifier = value.value
        return f"/{domain}/{identifier}"
    return str(value.value)


def encode_value(value: Value) -> dict[str, Any]:
    kind = value.type
    if kind == "Void":
        return {"type": "Void"}
    if kind == "Optional":
        inner = None if value.value is None else encode_value(value.value)
        return {"type": "Optional", "value": inner}
    if kind == "Bool":
        return {"type": "Bool", "value": bool(value.value)}
    if kind in ("String", "Character", "Address"):
        return {"type": kind, "value": value.value}
    if kind in INTEGER_RANGES:
        return {"type": kind, "value": str(value.value)}
    if kind in FIXED_POINT_RANGES:
        return {"type": kind, "value": format_fixed_point(value.value)}
    if kind == "Array":
        return {"type": "Array", "value": [encode_value(item) for item in value.value]}
    if kind == "Dictionary":
        return {
            "type": "Dictionary",
            "value": [{"key": encode_value(key), "value": encode_value(item)} for key, item in value.value],
        }
    if kind == "Path":
        domain, identifier = value.value
        return {"type": "Path", "value": {"domain": domain, "identifier": identifier}}
    raise DecodeError(f"Unsupported value type: {kind}")


def _expect_str(kind: str, raw: Any) -> str:
    if not isinstance(raw, str):
        raise DecodeError(f"{kind} value must be a string")
    return raw


def decode_value(data: Any) -> Value:
    if not isinstance(data, dict):
        raise DecodeError("Encoded value must be a JSON object")
    kind = data.get("type")
    if not isinstance(kind, str) or not kind:
        raise DecodeError("Encoded value is missing a type")
    if kind != "Void" and "value" not in data:
        raise DecodeError(f"{kind} value is missing")
    raw = data.get("value")

    if kind == "Void":
        return Value("Void")
    if kind == "Optional":
        return Value("Optional", None if raw is None else decode_value(raw))
    if kind == "Bool":
        if not isinstance(raw, bool):
            raise DecodeError("Bool value must be true or false")
        return Value("Bool", raw)
    if kind == "String":
        return Value("String", _expect_str(kind, raw))
    if kind == "Character":
        text = _expect_str(kind, raw)
        if len(text) != 1:
            raise DecodeError("Character value must be a single character")
        return Value("Character", text)
    if kind == "Address":
        try:
            return Value("Address", "0x" + normalize_address_hex(_expect_str(kind, raw)))
        except ValueError as exc:
            raise DecodeError(str(exc)) from exc
    if kind in INTEGER_RANGES:
        text = _expect_str(kind, raw)
        if not _INTEGER_TEXT.fullmatch(text):
            raise DecodeError(f"Invalid {kind} value: {text!r} is not a decimal integer")
        try:
            return Value(kind, check_integer_range(kind, int(text)))
        except ValueError as exc:
            raise DecodeError(f"Invalid {kind} value: {exc}") from exc
    if kind in FIXED_POINT_RANGES:
        try:
            return Value(kind, parse_fixed_point_text(kind, _expect_str(kind, raw)))
        except ValueError as exc:
            raise DecodeError(str(exc)) from exc
    if kind == "Array":
        if not isinstance(raw, list):
            raise DecodeError("Array value must be a list")
        return Value("Array", tuple(decode_value(item) for item in raw))
    if kind == "Dictionary":
        if not isinstance(raw, list):
            raise DecodeError("Dictionary value must be a list of key/value objects")
        pairs = []
        for entry in raw:
            if not isinstance(entry, dict) or "key" not in entry or "value" not in entry:
                raise DecodeError("Dictionary entries must have key and value")
            pairs.append((decode_value(entry["key"]), decode_value(entry["value"])))
        return Value("Dictionary", tuple(pairs))
    if kind == "Path":
        if not isinstance(raw, dict):
            raise DecodeError("Path value must be an object")
        domain = raw.get("domain")
        identifier = raw.get("identifier")
        if domain not in PATH_DOMAINS or not isinstance(identifier, str) or not identifier:
            raise DecodeError("Path value must have a valid domain and identifier")
        return Value("Path", (domain, identifier))

    raise DecodeError(f"Unsupported value type: {kind}")


def encode_json(values: list[Value]) -> str:
    return json.dumps([encode_value(value) for value in values])


def decode_json(text: str) -> list[Value]:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise DecodeError(f"Arguments are not valid JSON: {exc}") from exc
    if not isinstance(data, list):
        raise DecodeError("Arguments JSON must be a list")
    values: list[Value] = []
    for index, item in enumerate(data):
        try:
            values.append(decode_value(item))
        except DecodeError as exc:
            raise DecodeError(f"argument {index}: {exc}") from exc
    return values
