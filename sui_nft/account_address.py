# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Addresses and object ids on the Sui ledger.

Accounts and objects share one identifier space on Sui: a 32-byte value written
as ``0x`` followed by 64 hexadecimal characters. Nodes sometimes abbreviate
framework addresses (``0x2``) inside type strings, so a relaxed parser that pads
short forms is provided next to the strict one.

Examples:
    Parsing and formatting::

        addr = SuiAddress.from_str_relaxed("0x2")
        str(addr)      # "0x000...0002"
        addr.short()   # "0x0000…0002"

    Deriving an account address from a public key::

        addr = SuiAddress.from_key(private_key.public_key())
"""

from __future__ import annotations

import hashlib
import unittest

from . import ed25519
from .bcs import Serializer


class SignatureScheme:
    """Flag bytes prefixed to a public key before hashing it into an address."""

    Ed25519: bytes = b"\x00"
    Secp256k1: bytes = b"\x01"
    Secp256r1: bytes = b"\x02"
    MultiSig: bytes = b"\x03"


class ParseAddressError(Exception):
    """Raised when a string or byte sequence is not a valid Sui address.

    Examples:
        Catching parse errors::

            try:
                addr = SuiAddress.from_str("invalid")
            except ParseAddressError as e:
                print(f"Failed to parse address: {e}")
    """


class SuiAddress:
    """A 32-byte Sui account address or object id.

    Attributes:
        address: The raw 32-byte value.
        LENGTH: The required byte length of all addresses (32).
    """

    address: bytes

    LENGTH: int = 32

    def __init__(self, address: bytes):
        self.address = address

        if len(address) != SuiAddress.LENGTH:
            raise ParseAddressError("Expected address of length 32")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SuiAddress):
            return NotImplemented
        return self.address == other.address

    def __hash__(self) -> int:
        return hash(self.address)

    def __str__(self):
        """Return the canonical long form, ``0x`` followed by 64 hex characters."""
        return f"0x{self.address.hex()}"

    def __repr__(self):
        return self.__str__()

    def short(self) -> str:
        """Return the abbreviated display form used in galleries and prompts.

        Examples:
            Displaying a connected account::

                SuiAddress.from_str_relaxed("0xa1").short()  # "0x0000…00a1"
        """
        value = str(self)
        return f"{value[:6]}…{value[-4:]}"

    @staticmethod
    def normalize(address: str) -> str:
        """Return the canonical long form of any relaxed address string."""
        return str(SuiAddress.from_str_relaxed(address))

    @staticmethod
    def from_str(address: str) -> SuiAddress:
        """Parse an address in its canonical long form only.

        Args:
            address: ``0x`` followed by exactly 64 hex characters.

        Raises:
            ParseAddressError: If the prefix or length is wrong, or the string
                contains non-hexadecimal characters.
        """
        if not address.startswith("0x"):
            raise ParseAddressError("Hex string must start with a leading 0x.")

        if len(address) != SuiAddress.LENGTH * 2 + 2:
            raise ParseAddressError(
                "The given hex string must be represented as 0x + 64 chars."
            )

        return SuiAddress.from_str_relaxed(address)

    @staticmethod
    def from_str_relaxed(address: str) -> SuiAddress:
        """Parse an address leniently.

        Accepts 1 to 64 hex characters, with or without a leading ``0x``;
        short values are left padded with zeroes.

        Raises:
            ParseAddressError: If the string is empty, too long or not hex.

        Examples:
            Equivalent spellings::

                SuiAddress.from_str_relaxed("0x2")
                SuiAddress.from_str_relaxed("2")
                SuiAddress.from_str_relaxed("0x" + "0" * 63 + "2")
        """
        addr = address
        if address[0:2] == "0x":
            addr = address[2:]

        if len(addr) < 1:
            raise ParseAddressError(
                "Hex string is too short, must be 1 to 64 chars long, excluding the "
                "leading 0x."
            )

        if len(addr) > 64:
            raise ParseAddressError(
                "Hex string is too long, must be 1 to 64 chars long, excluding the "
                "leading 0x."
            )

        if len(addr) < SuiAddress.LENGTH * 2:
            pad = "0" * (SuiAddress.LENGTH * 2 - len(addr))
            addr = pad + addr

        try:
            return SuiAddress(bytes.fromhex(addr))
        except ValueError as e:
            raise ParseAddressError(f"Invalid hex string: {address}") from e

    @staticmethod
    def from_key(key: ed25519.PublicKey) -> SuiAddress:
        """Derive the account address controlled by an Ed25519 public key.

        The address is ``blake2b-256(flag || public key bytes)`` where the flag
        identifies the signature scheme.
        """
        hasher = hashlib.blake2b(digest_size=SuiAddress.LENGTH)
        hasher.update(SignatureScheme.Ed25519)
        hasher.update(key.to_crypto_bytes())
        return SuiAddress(hasher.digest())

    def serialize(self, serializer: Serializer):
        serializer.fixed_bytes(self.address)


def serialize_address_str(serializer: Serializer, value: str):
    """BCS encoder for an address given as a (relaxed) string.

    Used for pure transaction arguments so that the string is only parsed
    when the transaction is actually serialized.
    """
    SuiAddress.from_str_relaxed(value).serialize(serializer)


class Test(unittest.TestCase):
    LONG = "0x" + "0" * 62 + "a1"

    def test_from_str(self):
        self.assertEqual(str(SuiAddress.from_str(self.LONG)), self.LONG)
        with self.assertRaises(ParseAddressError):
            SuiAddress.from_str("0xa1")
        with self.assertRaises(ParseAddressError):
            SuiAddress.from_str(self.LONG[2:])

    def test_from_str_relaxed(self):
        self.assertEqual(str(SuiAddress.from_str_relaxed("0xa1")), self.LONG)
        self.assertEqual(str(SuiAddress.from_str_relaxed("a1")), self.LONG)
        self.assertEqual(SuiAddress.normalize("0x00a1"), self.LONG)
        with self.assertRaises(ParseAddressError):
            SuiAddress.from_str_relaxed("0x")
        with self.assertRaises(ParseAddressError):
            SuiAddress.from_str_relaxed("0x" + "1" * 65)
        with self.assertRaises(ParseAddressError):
            SuiAddress.from_str_relaxed("0xTOK1")

    def test_short(self):
        addr = SuiAddress.from_str_relaxed("0x" + "ab" * 31 + "cd")
        self.assertEqual(addr.short(), "0xabab…abcd")

    def test_serialize(self):
        ser = Serializer()
        serialize_address_str(ser, "0x2")
        self.assertEqual(ser.output(), b"\x00" * 31 + b"\x02")

    def test_from_key(self):
        private_key = ed25519.PrivateKey.from_hex("00" * 32)
        address = SuiAddress.from_key(private_key.public_key())
        hasher = hashlib.blake2b(digest_size=32)
        hasher.update(b"\x00" + private_key.public_key().to_crypto_bytes())
        self.assertEqual(address.address, hasher.digest())
        self.assertEqual(hash(address), hash(SuiAddress(hasher.digest())))


if __name__ == "__main__":
    unittest.main()
