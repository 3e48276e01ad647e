"""Big-endian packing of fixed-width integers for command payloads."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from ..errors import EncodingError


@dataclass(frozen=True)
class IntValue:
    """An integer tagged with its wire width in bytes and signedness."""

    value: int
    width: int
    signed: bool

    def to_bytes(self) -> bytes:
        try:
            return self.value.to_bytes(self.width, "big", signed=self.signed)
        except OverflowError:
            kind = "int" if self.signed else "uint"
            raise EncodingError(
                f"{self.value} does not fit in {kind}{self.width * 8}"
            ) from None


def int8(value: int) -> IntValue:
    return IntValue(value, 1, True)


def uint8(value: int) -> IntValue:
    return IntValue(value, 1, False)


def int16(value: int) -> IntValue:
    return IntValue(value, 2, True)


def uint16(value: int) -> IntValue:
    return IntValue(value, 2, False)


def encode(values: Iterable[IntValue]) -> bytes:
    """Concatenate the big-endian bytes of ``values``, in order.

    No length prefix and no padding are added.

    Raises:
        EncodingError: If a value cannot be represented in its width.
    """
    return b"".join(v.to_bytes() for v in values)
