# services/canonical.py
"""
Canonical JSON serialization for ledger payload snapshots.

Two snapshots that are semantically equal (same keys and values, any key
insertion order) always serialize to the same string. The output is what
JSON.stringify produces for a recursively key-sorted object, so browsers can
recompute the same hash:

- object keys sorted by code point
- arrays keep their order
- compact separators, no whitespace
- non-ASCII characters emitted as-is (hashed as UTF-8)
- integral floats written as integers (76.0 -> 76)
- NaN / Infinity rejected
"""
import json
import math
from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from .exceptions import CanonicalizationError


def canonicalize(value: Any) -> str:
     """Serialize a payload tree to its canonical JSON string."""
     parts: list[str] = []
     _emit(value, parts)
     return "".join(parts)


def _emit(value: Any, out: list[str]) -> None:
     if value is None:
          out.append("null")
     elif isinstance(value, bool):
          out.append("true" if value else "false")
     elif isinstance(value, int):
          out.append(str(value))
     elif isinstance(value, float):
          out.append(_format_float(value))
     elif isinstance(value, str):
          out.append(json.dumps(value, ensure_ascii=False))
     elif isinstance(value, Mapping):
          _emit_object(value, out)
     elif isinstance(value, (list, tuple)):
          out.append("[")
          for index, item in enumerate(value):
               if index:
                    out.append(",")
               _emit(item, out)
          out.append("]")
     else:
          raise CanonicalizationError(f"Cannot canonicalize value of type {type(value).__name__}")


def _emit_object(obj: Mapping, out: list[str]) -> None:
     for key in obj:
          if not isinstance(key, str):
               raise CanonicalizationError(f"Object keys must be strings, got {type(key).__name__}")
     out.append("{")
     for index, key in enumerate(sorted(obj)):
          if index:
               out.append(",")
          out.append(json.dumps(key, ensure_ascii=False))
          out.append(":")
          _emit(obj[key], out)
     out.append("}")


def _format_float(value: float) -> str:
     if not math.isfinite(value):
          raise CanonicalizationError(f"Non-finite number in payload: {value!r}")
     if value.is_integer() and abs(value) < 1e21:
          # Shortest round-trip digits, zero-padded: 2.0**60 -> 1152921504606847000
          return str(int(Decimal(repr(value))))

     text = repr(value)
     if "e" not in text:
          return text

     mantissa, exp = text.split("e")
     exponent = int(exp)
     if exponent in (-5, -6):
          # JS keeps fixed notation down to 1e-6
          sign = "-" if mantissa.startswith("-") else ""
          digits = mantissa.lstrip("-").replace(".", "")
          return f"{sign}0.{'0' * (-exponent - 1)}{digits}"
     return f"{mantissa}e{'+' if exponent > 0 else '-'}{abs(exponent)}"
