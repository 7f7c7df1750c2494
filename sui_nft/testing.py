# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
In-memory stand-ins for a Sui node and a wallet.

Used by the unit tests and the behave steps so that no test needs network
access.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional

from .transactions import TransactionPayload
from .wallet import SubmittedTransaction


class FakeLedger:
    """``LedgerRpc`` serving a fixed set of records."""

    def __init__(self, records: Optional[List[Dict[str, Any]]] = None):
        self.records = records if records is not None else []
        self.error: Optional[Exception] = None
        self.calls: List[str] = []

    async def get_owned_objects(
        self, owner: str, options: Optional[Dict[str, bool]] = None
    ) -> List[Dict[str, Any]]:
        self.calls.append(owner)
        if self.error is not None:
            raise self.error
        return list(self.records)


class FakeWallet:
    """``WalletCapability`` that records payloads instead of signing.

    ``on_submit`` runs after the payload is accepted and may change the ledger
    the way the real transaction would. Setting ``gate`` holds every submission
    until the event is set.
    """

    def __init__(self, address: Optional[str] = "0xA1", digest: str = "0xDEAD"):
        self._address = address
        self.digest = digest
        self.error: Optional[Exception] = None
        self.payloads: List[TransactionPayload] = []
        self.on_submit: Optional[Callable[[TransactionPayload], None]] = None
        self.gate: Optional[asyncio.Event] = None

    @property
    def connected(self) -> bool:
        return self._address is not None

    @property
    def address(self) -> Optional[str]:
        return self._address

    def connect(self, address: str):
        self._address = address

    def disconnect(self):
        self._address = None

    async def sign_and_submit(
        self, payload: TransactionPayload
    ) -> SubmittedTransaction:
        self.payloads.append(payload)
        # Always yield, a real wallet prompt never resolves synchronously.
        await asyncio.sleep(0)
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        if self.on_submit is not None:
            self.on_submit(payload)
        return SubmittedTransaction(self.digest)


def nft_record(
    object_id: str, package_id: str, fields: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """A ``suix_getOwnedObjects`` entry for a ``SimpleNFT``, as nodes return it."""
    object_type = f"{package_id}::simple_nft::SimpleNFT"
    return {
        "data": {
            "objectId": object_id,
            "version": "1",
            "digest": "11111111111111111111111111111111",
            "type": object_type,
            "content": {
                "dataType": "moveObject",
                "type": object_type,
                "fields": fields if fields is not None else {},
            },
        }
    }
