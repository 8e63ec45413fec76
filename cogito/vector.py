"""Embedding vectors with float32 elements, stored in pgvector text form."""

from __future__ import annotations

import math
import struct
from decimal import Decimal
from typing import Iterable, Optional, Union

_MAX_PRECISION = 9


def _to_f32(value: float) -> float:
    """Round a number to the nearest float32, saturating to infinity."""
    value = float(value)
    try:
        return struct.unpack("<f", struct.pack("<f", value))[0]
    except OverflowError:
        return math.copysign(math.inf, value)


def _format_f32(value: float) -> str:
    """Shortest fixed-point text that reads back as the same float32."""
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "+Inf" if value > 0 else "-Inf"
    text = repr(value)
    for precision in range(1, _MAX_PRECISION + 1):
        candidate = f"{value:.{precision}g}"
        if _to_f32(float(candidate)) == value:
            text = candidate
            break
    return format(Decimal(text), "f")


def _parse_element(text: str, index: int) -> float:
    text = text.strip()
    if not text or "_" in text:
        raise ValueError(f"failed to parse vector element {index}: invalid syntax {text!r}")
    try:
        parsed = float(text)
    except ValueError as exc:
        raise ValueError(f"failed to parse vector element {index}: {exc}") from exc
    rounded = _to_f32(parsed)
    if math.isinf(rounded) and not math.isinf(parsed):
        raise ValueError(f"failed to parse vector element {index}: {text!r} out of range")
    return rounded


class Vector(list):
    """A list of float32 values used as an embedding."""

    def __init__(self, values: Iterable[float] = ()) -> None:
        super().__init__(_to_f32(v) for v in values)

    @classmethod
    def from_sql(cls, src: Union[str, bytes, bytearray, memoryview, None]) -> Optional["Vector"]:
        """Parse a pgvector value such as ``[0.1,0.2,0.3]``; empty input gives None."""
        if src is None:
            return None
        if isinstance(src, (bytes, bytearray, memoryview)):
            text = bytes(src).decode("utf-8")
        elif isinstance(src, str):
            text = src
        else:
            raise TypeError(f"cannot scan {type(src).__name__} into Vector")

        text = text.removeprefix("[").removesuffix("]")
        if not text:
            return None
        return cls(_parse_element(part, i) for i, part in enumerate(text.split(",")))

    def to_sql(self) -> str:
        """Render the vector in pgvector text form."""
        return "[" + ",".join(_format_f32(v) for v in self) + "]"

    def to_float32(self) -> list[float]:
        """Return the elements as a plain list."""
        return list(self)


def new_vector(values: Iterable[float]) -> Vector:
    """Build a Vector from any iterable of numbers."""
    return Vector(values)