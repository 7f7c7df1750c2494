# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Binary Canonical Serialization (BCS) writer used to build Sui transactions.

Sui encodes every transaction, pure Move call argument and object reference with
BCS, the canonical format originally designed for Diem. Only the writing half is
needed here: transactions are built locally and handed to a signer, while the
node answers in JSON.

Learn more at https://github.com/diem/bcs

Examples:
    Encoding a pure string argument::

        from sui_nft.bcs import Serializer, encoder

        data = encoder("Cat", Serializer.str)  # b"\\x03Cat"

    Writing a custom structure::

        class ObjectRef:
            def serialize(self, serializer):
                serializer.struct(self.object_id)
                serializer.u64(self.version)
                serializer.to_bytes(self.digest)
"""

from __future__ import annotations

import io
import typing
import unittest

from typing_extensions import Protocol

MAX_U8 = 2**8 - 1
MAX_U16 = 2**16 - 1
MAX_U32 = 2**32 - 1
MAX_U64 = 2**64 - 1


class Serializable(Protocol):
    """Anything that can write itself into a BCS stream."""

    def to_bytes(self) -> bytes:
        ser = Serializer()
        ser.struct(self)
        return ser.output()

    def serialize(self, serializer: Serializer):
        ...


class Serializer:
    """A BCS serializer for writing data to a byte stream.

    The serializer accumulates output in memory; call :meth:`output` once all
    fields have been written.

    Examples:
        Basic usage::

            ser = Serializer()
            ser.variant_index(0)
            ser.str("simple_nft")
            ser.u64(1_000)
            data = ser.output()

        Serializing collections::

            ser.sequence(["a", "b", "c"], Serializer.str)
    """

    _output: io.BytesIO

    def __init__(self):
        self._output = io.BytesIO()

    def output(self) -> bytes:
        """Return the BCS-encoded bytes written so far."""
        return self._output.getvalue()

    def bool(self, value: bool):
        self._write_int(int(value), 1)

    def to_bytes(self, value: bytes):
        """Write a byte vector: ULEB128 length followed by the raw bytes."""
        self.uleb128(len(value))
        self._output.write(value)

    def fixed_bytes(self, value):
        """Write raw bytes without a length prefix (addresses, nested encodings)."""
        self._output.write(value)

    @staticmethod
    def sequence_serializer(
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        """Return an encoder for a whole sequence built from an element encoder.

        Examples:
            Encoding a vector of strings as a pure argument::

                TransactionArgument(
                    ["a", "b"], Serializer.sequence_serializer(Serializer.str)
                )
        """
        return lambda self, values: self.sequence(values, value_encoder)

    def sequence(
        self,
        values: typing.Sequence[typing.Any],
        value_encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        """Write a sequence: ULEB128 length followed by each encoded element."""
        self.uleb128(len(values))
        for value in values:
            self.fixed_bytes(encoder(value, value_encoder))

    def str(self, value: str):
        """Write a UTF-8 string as a byte vector."""
        self.to_bytes(value.encode())

    def struct(self, value: typing.Any):
        """Delegate to the value's own ``serialize`` method."""
        value.serialize(self)

    def u8(self, value: int):
        if value > MAX_U8:
            raise Exception(f"Cannot encode {value} into u8")

        self._write_int(value, 1)

    def u16(self, value: int):
        if value > MAX_U16:
            raise Exception(f"Cannot encode {value} into u16")

        self._write_int(value, 2)

    def u64(self, value: int):
        if value > MAX_U64:
            raise Exception(f"Cannot encode {value} into u64")

        self._write_int(value, 8)

    def uleb128(self, value: int):
        """Write a ULEB128 encoded integer (lengths and enum tags).

        Each byte carries 7 bits of data; the high bit marks a continuation.

        Raises:
            Exception: If the value exceeds the u32 range.
        """
        if value > MAX_U32:
            raise Exception(f"Cannot encode {value} into uleb128")

        while value >= 0x80:
            # Write 7 (lowest) bits of data and set the 8th bit to 1.
            byte = value & 0x7F
            self.u8(byte | 0x80)
            value >>= 7

        # Write the remaining bits of data and set the highest bit to 0.
        self.u8(value & 0x7F)

    def variant_index(self, index: int):
        """Write the tag of a Rust-style enum variant (ULEB128)."""
        self.uleb128(index)

    def _write_int(self, value: int, length: int):
        self._output.write(value.to_bytes(length, "little", signed=False))


def encoder(
    value: typing.Any, encoder: typing.Callable[[Serializer, typing.Any], typing.Any]
) -> bytes:
    """Encode a single value with the given encoder and return the bytes.

    Examples:
        Encoding an integer::

            data = encoder(42, Serializer.u64)
    """
    ser = Serializer()
    encoder(ser, value)
    return ser.output()


class Test(unittest.TestCase):
    def test_bool(self):
        self.assertEqual(encoder(True, Serializer.bool), b"\x01")
        self.assertEqual(encoder(False, Serializer.bool), b"\x00")

    def test_bytes(self):
        self.assertEqual(encoder(b"\x01\x02", Serializer.to_bytes), b"\x02\x01\x02")

    def test_sequence(self):
        output = encoder(["a", "bc"], Serializer.sequence_serializer(Serializer.str))
        self.assertEqual(output, b"\x02\x01a\x02bc")

    def test_str(self):
        self.assertEqual(encoder("Cat", Serializer.str), b"\x03Cat")
        # Multi-byte characters are length-prefixed by byte count.
        self.assertEqual(encoder("é", Serializer.str), b"\x02\xc3\xa9")

    def test_u16(self):
        self.assertEqual(encoder(258, Serializer.u16), b"\x02\x01")

    def test_u64(self):
        self.assertEqual(
            encoder(1_000, Serializer.u64), b"\xe8\x03\x00\x00\x00\x00\x00\x00"
        )
        with self.assertRaises(Exception):
            encoder(MAX_U64 + 1, Serializer.u64)

    def test_uleb128(self):
        self.assertEqual(encoder(0, Serializer.uleb128), b"\x00")
        self.assertEqual(encoder(127, Serializer.uleb128), b"\x7f")
        self.assertEqual(encoder(128, Serializer.uleb128), b"\x80\x01")
        self.assertEqual(encoder(300, Serializer.uleb128), b"\xac\x02")


if __name__ == "__main__":
    unittest.main()
