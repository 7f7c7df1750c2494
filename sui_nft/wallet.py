# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Signing capabilities used by the NFT manager.

The manager only needs to know whether a wallet is connected, which address it
controls, and how to have a :class:`TransactionPayload` signed and executed.
Browser or hardware wallets can implement :class:`WalletCapability` directly;
:class:`KeypairWallet` implements it with a local :class:`Account` and a node
client.
"""

from __future__ import annotations

import base64
import logging
import unittest
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock, Mock

import base58
from typing_extensions import Protocol

from .account import Account
from .account_address import SuiAddress
from .async_client import SuiClient
from .exceptions import NotConnected
from .transactions import (
    GasData,
    MoveCall,
    ObjectArgument,
    ObjectRef,
    ResolvedObject,
    SharedObjectRef,
    TransactionData,
    TransactionPayload,
)

# Upper bound on gas payment coins accepted by the protocol.
MAX_GAS_COINS = 256


@dataclass
class SubmittedTransaction:
    digest: str
    effects: Dict[str, Any] = field(default_factory=dict)


class WalletCapability(Protocol):
    @property
    def connected(self) -> bool:
        ...

    @property
    def address(self) -> Optional[str]:
        ...

    def disconnect(self):
        ...

    async def sign_and_submit(
        self, payload: TransactionPayload
    ) -> SubmittedTransaction:
        ...


class TransactionFailed(Exception):
    """The transaction was executed but its effects report a failure"""

    digest: Optional[str]

    def __init__(self, message: str, digest: Optional[str] = None):
        # Call the base class constructor with the parameters it needs
        super().__init__(message)
        self.digest = digest


class KeypairWallet:
    """A wallet backed by a local Ed25519 account.

    Object arguments are resolved to their current reference just before
    signing: owned and immutable objects by version and digest, shared objects
    by their initial shared version.
    """

    client: SuiClient
    account: Optional[Account]

    def __init__(self, client: SuiClient, account: Optional[Account] = None):
        self.client = client
        self.account = account

    @property
    def connected(self) -> bool:
        return self.account is not None

    @property
    def address(self) -> Optional[str]:
        if self.account is None:
            return None
        return str(self.account.address())

    def connect(self, account: Account):
        self.account = account

    def disconnect(self):
        self.account = None

    async def sign_and_submit(
        self, payload: TransactionPayload
    ) -> SubmittedTransaction:
        """Resolve, sign and execute ``payload``.

        :raises NotConnected: If no account is loaded.
        :raises TransactionFailed: If the effects report a failure status.
        :raises ApiError: If any node call fails.
        """
        if self.account is None:
            raise NotConnected()
        sender = self.account.address()

        resolved: Dict[str, ResolvedObject] = {}
        for object_id in payload.object_ids():
            resolved[object_id] = await self.resolve_object(object_id)

        kind = payload.to_programmable(resolved)
        gas_data = GasData(
            await self.select_gas(sender),
            sender,
            await self.client.get_reference_gas_price(),
            self.client.client_config.gas_budget,
        )
        tx_bytes = TransactionData(kind, sender, gas_data).to_bytes()
        signature = self.account.sign_transaction(tx_bytes)

        logging.info(f"Submitting {payload} from {sender}")
        result = await self.client.execute_transaction_block(tx_bytes, [signature])
        digest = result.get("digest")
        effects = result.get("effects") or {}
        status = effects.get("status", {})
        if status.get("status") != "success":
            raise TransactionFailed(
                status.get("error", f"Transaction {digest} failed"), digest
            )
        return SubmittedTransaction(digest, effects)

    async def resolve_object(self, object_id: str) -> ResolvedObject:
        data = await self.client.get_object(object_id)
        owner = data.get("owner")
        if isinstance(owner, dict) and "Shared" in owner:
            return SharedObjectRef(
                SuiAddress.from_str_relaxed(data["objectId"]),
                int(owner["Shared"]["initial_shared_version"]),
                True,
            )
        return ObjectRef.parse(data)

    async def select_gas(self, sender: SuiAddress) -> List[ObjectRef]:
        """Pick coins of the sender covering the configured gas budget.

        :raises TransactionFailed: If the sender owns no gas coins.
        """
        coins = await self.client.get_coins(str(sender))
        budget = self.client.client_config.gas_budget
        payment: List[ObjectRef] = []
        total = 0
        for coin in coins[:MAX_GAS_COINS]:
            payment.append(ObjectRef.parse(coin))
            total += int(coin.get("balance", 0))
            if total >= budget:
                break
        if not payment:
            raise TransactionFailed(f"No gas coins owned by {sender}")
        return payment


class Test(unittest.IsolatedAsyncioTestCase):
    DIGEST = base58.b58encode(b"\x01" * 32).decode()
    NFT = "0x" + "22" * 32

    def setUp(self):
        self.account = Account.generate()
        self.client = AsyncMock(spec=SuiClient)
        self.client.client_config = Mock(gas_budget=1_000)
        self.client.get_object.return_value = {
            "objectId": self.NFT,
            "version": "4",
            "digest": self.DIGEST,
            "owner": {"AddressOwner": str(self.account.address())},
        }
        self.client.get_coins.return_value = [
            {
                "coinObjectId": "0x" + "33" * 32,
                "version": "2",
                "digest": self.DIGEST,
                "balance": "5000",
            },
            {
                "coinObjectId": "0x" + "44" * 32,
                "version": "2",
                "digest": self.DIGEST,
                "balance": "5000",
            },
        ]
        self.client.get_reference_gas_price.return_value = 750
        self.client.execute_transaction_block.return_value = {
            "digest": "0xDEAD",
            "effects": {"status": {"status": "success"}},
        }
        self.wallet = KeypairWallet(self.client, self.account)

    def burn(self) -> TransactionPayload:
        return TransactionPayload(
            MoveCall.natural(
                "0xabc::simple_nft", "burn_nft", [], [ObjectArgument(self.NFT)]
            )
        )

    async def test_sign_and_submit(self):
        submitted = await self.wallet.sign_and_submit(self.burn())

        self.assertEqual(submitted.digest, "0xDEAD")
        self.client.get_object.assert_awaited_once_with(self.NFT)
        (tx_bytes, signatures) = self.client.execute_transaction_block.await_args.args
        self.assertEqual(len(signatures), 1)
        # One gas coin covers the budget.
        self.assertIn(bytes.fromhex("33" * 32), tx_bytes)
        self.assertNotIn(bytes.fromhex("44" * 32), tx_bytes)
        self.assertEqual(base64.b64decode(signatures[0])[0], 0)

    async def test_shared_object(self):
        self.client.get_object.return_value = {
            "objectId": self.NFT,
            "version": "9",
            "digest": self.DIGEST,
            "owner": {"Shared": {"initial_shared_version": 3}},
        }
        resolved = await self.wallet.resolve_object(self.NFT)
        self.assertEqual(
            resolved, SharedObjectRef(SuiAddress.from_str(self.NFT), 3, True)
        )

    async def test_failed_effects(self):
        self.client.execute_transaction_block.return_value = {
            "digest": "0xBAD",
            "effects": {"status": {"status": "failure", "error": "MoveAbort"}},
        }
        with self.assertRaises(TransactionFailed) as cm:
            await self.wallet.sign_and_submit(self.burn())
        self.assertEqual(f"{cm.exception}", "MoveAbort")
        self.assertEqual(cm.exception.digest, "0xBAD")

    async def test_no_gas(self):
        self.client.get_coins.return_value = []
        with self.assertRaises(TransactionFailed):
            await self.wallet.sign_and_submit(self.burn())
        self.client.execute_transaction_block.assert_not_awaited()

    async def test_disconnected(self):
        self.wallet.disconnect()
        self.assertFalse(self.wallet.connected)
        self.assertIsNone(self.wallet.address)
        with self.assertRaises(NotConnected):
            await self.wallet.sign_and_submit(self.burn())


if __name__ == "__main__":
    unittest.main()
