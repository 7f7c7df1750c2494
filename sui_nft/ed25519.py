# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Ed25519 keys and signatures for signing Sui transactions.

Backed by PyNaCl. Private keys can be read from a plain hex string (with or
without ``0x``) or from the base64 form stored in a Sui keystore, which prefixes
the 32 key bytes with the signature scheme flag.

Examples:
    Key handling::

        private_key = PrivateKey.random()
        public_key = private_key.public_key()
        signature = private_key.sign(b"message")
        assert public_key.verify(b"message", signature)

    Loading a keystore entry::

        private_key = PrivateKey.from_str("AJ7f...base64...")
"""

from __future__ import annotations

import base64
import binascii
import unittest

from nacl.signing import SigningKey, VerifyKey

from .bcs import Serializer

ED25519_FLAG = 0x00


class PrivateKey:
    """Ed25519 private key (32 bytes).

    Attributes:
        LENGTH: The byte length of Ed25519 private keys (32)
        key: The underlying NaCl SigningKey instance
    """

    LENGTH: int = 32

    key: SigningKey

    def __init__(self, key: SigningKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self):
        return self.hex()

    @staticmethod
    def from_hex(value: str | bytes) -> PrivateKey:
        """Create a private key from hex text or raw key bytes.

        Raises:
            ValueError: If the input is not hex or not 32 bytes long.
        """
        if isinstance(value, bytes):
            key = value
        else:
            if value[0:2] == "0x":
                value = value[2:]
            key = bytes.fromhex(value)
        if len(key) != PrivateKey.LENGTH:
            raise ValueError(f"Expected a {PrivateKey.LENGTH} byte private key")
        return PrivateKey(SigningKey(key))

    @staticmethod
    def from_str(value: str) -> PrivateKey:
        """Parse a private key from hex or from the Sui keystore base64 form.

        The keystore form is ``base64(flag || key)`` with the Ed25519 flag.

        Raises:
            ValueError: If the string is in neither format, or the keystore
                entry is not an Ed25519 key.
        """
        value = value.strip()
        try:
            return PrivateKey.from_hex(value)
        except ValueError:
            pass

        try:
            raw = base64.b64decode(value, validate=True)
        except binascii.Error as e:
            raise ValueError("Private key is neither hex nor base64") from e

        if len(raw) != PrivateKey.LENGTH + 1:
            raise ValueError("Keystore entry must be a flag byte followed by 32 bytes")
        if raw[0] != ED25519_FLAG:
            raise ValueError(f"Unsupported signature scheme flag: {raw[0]}")
        return PrivateKey.from_hex(raw[1:])

    def hex(self) -> str:
        return f"0x{self.key.encode().hex()}"

    def keystore(self) -> str:
        """Return the key in the Sui keystore base64 form."""
        return base64.b64encode(bytes([ED25519_FLAG]) + self.key.encode()).decode()

    def public_key(self) -> PublicKey:
        return PublicKey(self.key.verify_key)

    @staticmethod
    def random() -> PrivateKey:
        return PrivateKey(SigningKey.generate())

    def sign(self, data: bytes) -> Signature:
        return Signature(self.key.sign(data).signature)


class PublicKey:
    """Ed25519 public key (32 bytes)."""

    LENGTH: int = 32

    key: VerifyKey

    def __init__(self, key: VerifyKey):
        self.key = key

    def __eq__(self, other: object):
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.key == other.key

    def __str__(self) -> str:
        return f"0x{self.key.encode().hex()}"

    @staticmethod
    def from_str(value: str) -> PublicKey:
        if value[0:2] == "0x":
            value = value[2:]
        return PublicKey(VerifyKey(bytes.fromhex(value)))

    def verify(self, data: bytes, signature: Signature) -> bool:
        """Return True when ``signature`` is valid for ``data`` under this key."""
        try:
            self.key.verify(data, signature.data())
        except Exception:
            return False
        return True

    def to_crypto_bytes(self) -> bytes:
        return self.key.encode()

    def serialize(self, serializer: Serializer):
        serializer.to_bytes(self.key.encode())


class Signature:
    """Ed25519 signature (64 bytes)."""

    LENGTH: int = 64

    signature: bytes

    def __init__(self, signature: bytes):
        self.signature = signature

    def __eq__(self, other: object):
        if not isinstance(other, Signature):
            return NotImplemented
        return self.signature == other.signature

    def __str__(self) -> str:
        return f"0x{self.signature.hex()}"

    def data(self) -> bytes:
        return self.signature

    @staticmethod
    def from_str(value: str) -> Signature:
        if value[0:2] == "0x":
            value = value[2:]
        return Signature(bytes.fromhex(value))


class Test(unittest.TestCase):
    KEY_HEX = "0x4e5e3be60f4bbd5e98d086d932f3ce779ff4b58da99bf9e5241ae1212a29e5fe"

    def test_private_key_from_str(self):
        from_hex = PrivateKey.from_str(self.KEY_HEX)
        from_plain_hex = PrivateKey.from_str(self.KEY_HEX[2:])
        from_keystore = PrivateKey.from_str(from_hex.keystore())
        self.assertEqual(from_hex, from_plain_hex)
        self.assertEqual(from_hex, from_keystore)
        self.assertEqual(from_hex.hex(), self.KEY_HEX)

    def test_private_key_rejects_other_schemes(self):
        secp256k1_entry = base64.b64encode(b"\x01" + b"\x11" * 32).decode()
        with self.assertRaises(ValueError):
            PrivateKey.from_str(secp256k1_entry)
        with self.assertRaises(ValueError):
            PrivateKey.from_str("not a key!")

    def test_sign_and_verify(self):
        in_value = b"test_message"

        private_key = PrivateKey.random()
        public_key = private_key.public_key()

        signature = private_key.sign(in_value)
        self.assertEqual(len(signature.data()), Signature.LENGTH)
        self.assertTrue(public_key.verify(in_value, signature))
        self.assertFalse(public_key.verify(b"other_message", signature))

    def test_public_key_from_str(self):
        public_key = PrivateKey.random().public_key()
        self.assertEqual(PublicKey.from_str(str(public_key)), public_key)


if __name__ == "__main__":
    unittest.main()
