# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import base64
import hashlib
import json
import os
import tempfile
import unittest

from . import ed25519
from .account_address import SignatureScheme, SuiAddress
from .transactions import intent_message


class Account:
    """A Sui account controlled by a local Ed25519 private key.

    The address is derived from the public key, so an account is fully
    described by its private key. Accounts can be generated, imported from a
    hex or keystore string, and persisted to JSON.

    Examples:
        Create and persist an account::

            account = Account.generate()
            account.store("./wallet.json")
            restored = Account.load("./wallet.json")
            assert account == restored

        Sign transaction bytes for submission::

            signature = account.sign_transaction(tx_bytes)
            await client.execute_transaction_block(tx_bytes, [signature])
    """

    account_address: SuiAddress
    private_key: ed25519.PrivateKey

    def __init__(self, account_address: SuiAddress, private_key: ed25519.PrivateKey):
        self.account_address = account_address
        self.private_key = private_key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Account):
            return NotImplemented
        return (
            self.account_address == other.account_address
            and self.private_key == other.private_key
        )

    @staticmethod
    def generate() -> Account:
        """Generate an account with a fresh random Ed25519 key."""
        private_key = ed25519.PrivateKey.random()
        account_address = SuiAddress.from_key(private_key.public_key())
        return Account(account_address, private_key)

    @staticmethod
    def load_key(key: str) -> Account:
        """Create an account from a hex or Sui keystore private key string.

        Raises:
            ValueError: If the key cannot be parsed.
        """
        private_key = ed25519.PrivateKey.from_str(key)
        account_address = SuiAddress.from_key(private_key.public_key())
        return Account(account_address, private_key)

    @staticmethod
    def load(path: str) -> Account:
        """Load an account from a JSON file written by :meth:`store`.

        File Format:
            ::

                {
                    "account_address": "0x<64 hex chars>",
                    "private_key": "0x<64 hex chars>"
                }

        Raises:
            FileNotFoundError: If the file doesn't exist.
            KeyError: If a required field is missing.
            ValueError: If the stored address does not belong to the key.
        """
        with open(path) as file:
            data = json.load(file)
        account = Account.load_key(data["private_key"])
        stored = SuiAddress.from_str_relaxed(data["account_address"])
        if stored != account.account_address:
            raise ValueError(
                f"Stored address {stored} does not match the private key in {path}"
            )
        return account

    def store(self, path: str):
        data = {
            "account_address": str(self.account_address),
            "private_key": self.private_key.hex(),
        }
        with open(path, "w") as file:
            json.dump(data, file)

    def address(self) -> SuiAddress:
        return self.account_address

    def public_key(self) -> ed25519.PublicKey:
        return self.private_key.public_key()

    def sign(self, data: bytes) -> ed25519.Signature:
        return self.private_key.sign(data)

    def sign_transaction(self, tx_bytes: bytes) -> str:
        """Sign BCS transaction bytes and return the serialized signature.

        Sui signs the blake2b-256 digest of the intent message rather than the
        transaction bytes themselves.

        Returns:
            ``base64(flag || signature || public key)`` as accepted by
            ``sui_executeTransactionBlock``.
        """
        digest = hashlib.blake2b(intent_message(tx_bytes), digest_size=32).digest()
        signature = self.sign(digest)
        return serialized_signature(signature, self.public_key())


def serialized_signature(
    signature: ed25519.Signature, public_key: ed25519.PublicKey
) -> str:
    """Encode an Ed25519 signature the way Sui nodes expect it."""
    return base64.b64encode(
        SignatureScheme.Ed25519 + signature.data() + public_key.to_crypto_bytes()
    ).decode()


class Test(unittest.TestCase):
    def test_load_and_store(self):
        (file, path) = tempfile.mkstemp()
        os.close(file)
        start = Account.generate()
        start.store(path)
        load = Account.load(path)
        os.remove(path)

        self.assertEqual(start, load)
        self.assertEqual(start.address(), SuiAddress.from_key(start.public_key()))

    def test_load_rejects_mismatched_address(self):
        (file, path) = tempfile.mkstemp()
        os.close(file)
        with open(path, "w") as handle:
            json.dump(
                {
                    "account_address": "0x1",
                    "private_key": Account.generate().private_key.hex(),
                },
                handle,
            )
        with self.assertRaises(ValueError):
            Account.load(path)
        os.remove(path)

    def test_load_key_keystore(self):
        account = Account.generate()
        self.assertEqual(Account.load_key(account.private_key.keystore()), account)

    def test_sign_transaction(self):
        account = Account.generate()
        tx_bytes = b"\x00\x01\x02"
        raw = base64.b64decode(account.sign_transaction(tx_bytes))

        self.assertEqual(len(raw), 1 + 64 + 32)
        self.assertEqual(raw[0:1], SignatureScheme.Ed25519)
        self.assertEqual(raw[65:], account.public_key().to_crypto_bytes())

        digest = hashlib.blake2b(b"\x00\x00\x00" + tx_bytes, digest_size=32).digest()
        self.assertTrue(
            account.public_key().verify(digest, ed25519.Signature(raw[1:65]))
        )


if __name__ == "__main__":
    unittest.main()
