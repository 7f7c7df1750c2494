# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
The NFT manager: runs user-triggered operations one at a time.

Every mutation goes through the same sequence of states::

    IDLE -> VALIDATING -> BUILDING -> AWAITING_SIGNATURE -> SUBMITTING
         -> RECONCILING -> IDLE

and any error short-circuits through ``FAILED`` back to ``IDLE``. While an
operation is between ``VALIDATING`` and ``RECONCILING`` every other request is
rejected as busy rather than queued. The in-flight flag is taken before the
first suspension point, so two calls started back to back on the same event
loop can never both proceed.

Operations never raise for expected failures. Each one returns a single
:class:`OperationResult` with a human readable message.

Examples:
    Minting with a local key::

        client = SuiClient(NODE_URL)
        manager = NftManager(
            SimpleNftClient(client, ContractConfig.from_env()),
            KeypairWallet(client, Account.load("./account.json")),
        )
        await manager.sync_wallet()
        result = await manager.mint("Cat", "A cat", "https://img/cat.png")
        print(result.message)             # NFT Minted! TX: ...
        print(manager.collection_snapshot())
"""

from __future__ import annotations

import asyncio
import dataclasses
import enum
import logging
import unittest
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .collection import CollectionState
from .exceptions import (
    Busy,
    ErrorKind,
    NftError,
    NotConnected,
    QueryFailed,
    ReconcileFailed,
    SubmissionFailed,
    ValidationFailed,
)
from .nft_client import (
    ContractConfig,
    OperationKind,
    OperationRequest,
    SimpleNftClient,
    Token,
)
from .testing import FakeLedger, FakeWallet, nft_record
from .wallet import WalletCapability


class OperationState(enum.Enum):
    IDLE = "Idle"
    VALIDATING = "Validating"
    BUILDING = "Building"
    AWAITING_SIGNATURE = "AwaitingSignature"
    SUBMITTING = "Submitting"
    RECONCILING = "Reconciling"
    FAILED = "Failed"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of one user-triggered operation.

    Attributes:
        success: Whether the operation reached its goal. A mutation whose
            follow-up refresh failed still counts as a success.
        message: The one message to show for this outcome.
        kind: The mutation kind, None for refreshes and wallet syncs.
        digest: Transaction digest of a submitted mutation.
        error: Classification of the failure.
        warning: Secondary notice, set when the local view may be stale.
        clear_form: Whether the caller may clear its input fields.
    """

    success: bool
    message: str
    kind: Optional[OperationKind] = None
    digest: Optional[str] = None
    error: Optional[ErrorKind] = None
    warning: Optional[str] = None
    clear_form: bool = False


@dataclass(frozen=True)
class Messages:
    progress: str
    success: str
    failure: str


MESSAGES = {
    OperationKind.MINT: Messages(
        "Minting NFT... Please approve in wallet",
        "NFT Minted! TX: {}",
        "Failed to mint: {}",
    ),
    OperationKind.TRANSFER: Messages(
        "Transferring NFT...", "NFT Transferred! TX: {}", "Failed to transfer: {}"
    ),
    OperationKind.UPDATE: Messages(
        "Updating description...",
        "Description Updated! TX: {}",
        "Failed to update: {}",
    ),
    OperationKind.BURN: Messages(
        "Burning NFT...", "NFT Burned! TX: {}", "Failed to burn: {}"
    ),
}

STALE_VIEW_WARNING = "The local view may be stale, refresh to reload your NFTs"

StatusListener = Callable[[OperationState, Optional[str]], None]


class NftManager:
    """Single-flight orchestrator for NFT operations on one wallet session."""

    nft_client: SimpleNftClient
    wallet: WalletCapability
    collection: CollectionState

    def __init__(
        self,
        nft_client: SimpleNftClient,
        wallet: WalletCapability,
        collection: Optional[CollectionState] = None,
    ):
        self.nft_client = nft_client
        self.wallet = wallet
        self.collection = CollectionState() if collection is None else collection
        self._state = OperationState.IDLE
        self._in_flight = False
        self._session = 0
        self._listeners: List[StatusListener] = []

    @property
    def state(self) -> OperationState:
        return self._state

    def is_busy(self) -> bool:
        return self._in_flight

    def collection_snapshot(self) -> Tuple[Token, ...]:
        return self.collection.snapshot()

    def add_status_listener(self, listener: StatusListener):
        """Register ``listener(state, message)``, called on every transition."""
        self._listeners.append(listener)

    def remove_status_listener(self, listener: StatusListener):
        self._listeners.remove(listener)

    #
    # Mutations
    #

    async def mint(
        self, name: Optional[str], description: Optional[str], image_url: Optional[str]
    ) -> OperationResult:
        """Mint a token to the connected address."""
        return await self._execute(OperationRequest.mint(name, description, image_url))

    async def transfer(
        self, token_id: Optional[str], recipient: Optional[str]
    ) -> OperationResult:
        return await self._execute(OperationRequest.transfer(token_id, recipient))

    async def update(
        self, token_id: Optional[str], new_description: Optional[str]
    ) -> OperationResult:
        return await self._execute(OperationRequest.update(token_id, new_description))

    async def burn(self, token_id: Optional[str]) -> OperationResult:
        return await self._execute(OperationRequest.burn(token_id))

    #
    # Reads and wallet lifecycle
    #

    async def refresh(self, address: Optional[str] = None) -> OperationResult:
        """Reload the collection for ``address``, the connected one by default.

        The collection is left as it was when the query fails.
        """
        owner = address if address else self._connected_address()
        if not owner:
            return self._reject(NotConnected(), None)
        if self._in_flight:
            return self._reject(Busy(), None)

        self._in_flight = True
        session = self._session
        try:
            self._transition(OperationState.RECONCILING, "Loading NFTs...")
            try:
                tokens = await self.nft_client.owned_tokens(owner)
            except QueryFailed as e:
                return self._fail(e, None)
            if session == self._session:
                self.collection.replace(owner, tokens)
            self._transition(OperationState.IDLE, None)
            return OperationResult(True, f"Loaded {len(tokens)} NFTs")
        finally:
            self._in_flight = False

    async def sync_wallet(self) -> OperationResult:
        """Follow the wallet: load its collection, or clear it when disconnected.

        When the wallet disconnected or switched accounts on its own, the old
        collection is dropped at once and an operation still in flight no
        longer applies its refresh.
        """
        address = self._connected_address()
        if not address or address != self.collection.owner:
            self._session += 1
            self.collection.clear()
        if not address:
            return self._reject(NotConnected(), None)
        return await self.refresh()

    def disconnect(self):
        """Disconnect the wallet and forget its collection.

        A mutation still in flight completes, but its refresh no longer
        repopulates the collection.
        """
        self.wallet.disconnect()
        self._session += 1
        self.collection.clear()

    #
    # State machine
    #

    async def _execute(self, request: OperationRequest) -> OperationResult:
        kind = request.kind
        address = self._connected_address()
        if not address:
            return self._reject(NotConnected(), kind)
        if self._in_flight:
            return self._reject(Busy(), kind)

        # Taken before the first await so concurrent callers observe it.
        self._in_flight = True
        session = self._session
        messages = MESSAGES[kind]
        try:
            self._transition(OperationState.VALIDATING, None)
            if kind == OperationKind.MINT:
                request = dataclasses.replace(request, recipient=address)
            try:
                self.nft_client.validate(request)
            except ValidationFailed as e:
                return self._fail(e, kind)

            self._transition(OperationState.BUILDING, None)
            payload = self.nft_client.build(request)

            self._transition(OperationState.AWAITING_SIGNATURE, messages.progress)
            try:
                submitted = await self.wallet.sign_and_submit(payload)
            except Exception as e:
                logging.error(e, exc_info=True)
                return self._fail(SubmissionFailed(messages.failure.format(e)), kind)

            self._transition(OperationState.SUBMITTING, messages.progress)
            if not submitted.digest:
                error = SubmissionFailed(
                    messages.failure.format("no transaction digest returned")
                )
                return self._fail(error, kind)
            logging.info(f"{kind.value} confirmed in transaction {submitted.digest}")

            self._transition(OperationState.RECONCILING, messages.progress)
            warning = await self._reconcile(address, session)

            message = messages.success.format(submitted.digest)
            self._transition(OperationState.IDLE, message)
            return OperationResult(
                True,
                message,
                kind=kind,
                digest=submitted.digest,
                warning=warning,
                clear_form=True,
            )
        finally:
            self._in_flight = False

    async def _reconcile(self, address: str, session: int) -> Optional[str]:
        try:
            tokens = await self.nft_client.owned_tokens(address)
        except QueryFailed as e:
            warning = ReconcileFailed(f"{e}. {STALE_VIEW_WARNING}")
            logging.warning(warning.message)
            return warning.message

        if session != self._session or self._connected_address() != address:
            logging.info(f"Wallet changed, not applying refreshed NFTs of {address}")
            return None
        self.collection.replace(address, tokens)
        return None

    def _connected_address(self) -> Optional[str]:
        if not self.wallet.connected:
            return None
        return self.wallet.address or None

    def _transition(self, state: OperationState, message: Optional[str]):
        logging.debug(f"{self._state.value} -> {state.value}")
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state, message)
            except Exception as e:
                logging.error(e, exc_info=True)

    def _fail(self, error: NftError, kind: Optional[OperationKind]) -> OperationResult:
        logging.error(f"{error.kind.value}: {error.message}")
        self._transition(OperationState.FAILED, error.message)
        self._transition(OperationState.IDLE, None)
        return OperationResult(False, error.message, kind=kind, error=error.kind)

    def _reject(
        self, error: NftError, kind: Optional[OperationKind]
    ) -> OperationResult:
        # Entry guards leave the state machine untouched.
        logging.warning(f"{error.kind.value}: {error.message}")
        return OperationResult(False, error.message, kind=kind, error=error.kind)



class Test(unittest.IsolatedAsyncioTestCase):
    PACKAGE = "0xabc"

    def setUp(self):
        self.ledger = FakeLedger()
        self.wallet = FakeWallet()
        self.manager = NftManager(
            SimpleNftClient(self.ledger, ContractConfig(self.PACKAGE)), self.wallet
        )
        self.states: List[OperationState] = []
        self.manager.add_status_listener(lambda state, _: self.states.append(state))

    def own(self, *tokens: Tuple[str, str]):
        self.ledger.records = [
            nft_record(token_id, self.PACKAGE, {"name": name})
            for (token_id, name) in tokens
        ]

    async def test_mint_reconciles(self):
        self.wallet.on_submit = lambda payload: self.own(("0xC47", "Cat"))

        result = await self.manager.mint("Cat", "A cat", "http://img/cat.png")

        self.assertTrue(result.success)
        self.assertEqual(result.digest, "0xDEAD")
        self.assertIn("0xDEAD", result.message)
        self.assertTrue(result.clear_form)
        self.assertEqual(
            [token.name for token in self.manager.collection_snapshot()], ["Cat"]
        )
        self.assertEqual(self.ledger.calls, ["0xA1"])
        call = self.wallet.payloads[0].calls[0]
        self.assertEqual(call.function, "mint_nft")
        self.assertEqual(call.args[3].value, "0xA1")
        self.assertEqual(
            self.states,
            [
                OperationState.VALIDATING,
                OperationState.BUILDING,
                OperationState.AWAITING_SIGNATURE,
                OperationState.SUBMITTING,
                OperationState.RECONCILING,
                OperationState.IDLE,
            ],
        )
        self.assertFalse(self.manager.is_busy())

    async def test_transfer_empty_recipient(self):
        result = await self.manager.transfer("0xTOK1", "")

        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorKind.VALIDATION_FAILED)
        self.assertEqual(self.wallet.payloads, [])
        self.assertEqual(self.ledger.calls, [])
        self.assertEqual(
            self.states,
            [OperationState.VALIDATING, OperationState.FAILED, OperationState.IDLE],
        )

    async def test_mint_missing_fields(self):
        result = await self.manager.mint("Cat", "", "http://img/cat.png")
        self.assertEqual(result.error, ErrorKind.VALIDATION_FAILED)
        self.assertEqual(result.message, "Please fill all fields!")
        self.assertFalse(result.clear_form)

    async def test_concurrent_operations(self):
        self.own(("0xTOK1", "Cat"))
        await self.manager.refresh()
        before = self.manager.collection_snapshot()

        (burned, updated) = await asyncio.gather(
            self.manager.burn("0xTOK1"), self.manager.update("0xTOK1", "x")
        )

        self.assertTrue(burned.success)
        self.assertEqual(updated.error, ErrorKind.BUSY)
        self.assertEqual(len(self.wallet.payloads), 1)
        self.assertEqual(self.wallet.payloads[0].calls[0].function, "burn_nft")
        self.assertEqual(self.manager.collection_snapshot(), before)

    async def test_busy_leaves_state_untouched(self):
        self.own(("0xTOK1", "Cat"))
        await self.manager.refresh()
        before = self.manager.collection_snapshot()
        self.wallet.gate = asyncio.Event()

        burn = asyncio.ensure_future(self.manager.burn("0xTOK1"))
        await asyncio.sleep(0)
        self.assertTrue(self.manager.is_busy())
        state = self.manager.state

        for call in (
            self.manager.mint("Dog", "A dog", "http://img/dog.png"),
            self.manager.transfer("0xTOK1", "0xB0B"),
            self.manager.update("0xTOK1", "x"),
            self.manager.burn("0xTOK1"),
            self.manager.refresh(),
        ):
            result = await call
            self.assertEqual(result.error, ErrorKind.BUSY)
            self.assertEqual(self.manager.state, state)
            self.assertEqual(self.manager.collection_snapshot(), before)

        self.wallet.gate.set()
        self.assertTrue((await burn).success)
        self.assertEqual(len(self.wallet.payloads), 1)

    async def test_submission_failed_keeps_collection(self):
        self.own(("0xTOK1", "Cat"))
        await self.manager.refresh()
        before = self.manager.collection_snapshot()
        self.ledger.calls.clear()
        self.wallet.error = RuntimeError("User rejected the request")

        with self.assertLogs(level="ERROR"):
            result = await self.manager.burn("0xTOK1")

        self.assertFalse(result.success)
        self.assertEqual(result.error, ErrorKind.SUBMISSION_FAILED)
        self.assertEqual(result.message, "Failed to burn: User rejected the request")
        self.assertEqual(self.manager.collection_snapshot(), before)
        self.assertEqual(self.ledger.calls, [])
        self.assertFalse(self.manager.is_busy())

    async def test_reconcile_failed_is_success_with_warning(self):
        self.own(("0xTOK1", "Cat"))
        await self.manager.refresh()
        before = self.manager.collection_snapshot()

        def fail_queries(payload):
            self.ledger.error = ConnectionError("node down")

        self.wallet.on_submit = fail_queries
        with self.assertLogs(level="WARNING"):
            result = await self.manager.update("0xTOK1", "new")

        self.assertTrue(result.success)
        self.assertIsNone(result.error)
        self.assertEqual(result.message, "Description Updated! TX: 0xDEAD")
        self.assertIsNotNone(result.warning)
        self.assertEqual(self.manager.collection_snapshot(), before)

    async def test_not_connected(self):
        self.wallet.disconnect()
        result = await self.manager.burn("0xTOK1")

        self.assertEqual(result.error, ErrorKind.NOT_CONNECTED)
        self.assertEqual(result.message, "Please connect wallet first!")
        self.assertEqual(self.states, [])
        self.assertEqual(self.ledger.calls, [])

    async def test_not_connected_before_busy(self):
        self.wallet.gate = asyncio.Event()
        burn = asyncio.ensure_future(self.manager.burn("0xTOK1"))
        await asyncio.sleep(0)

        self.wallet._address = None
        result = await self.manager.update("0xTOK1", "")
        self.assertEqual(result.error, ErrorKind.NOT_CONNECTED)

        self.wallet._address = "0xA1"
        result = await self.manager.update("0xTOK1", "")
        self.assertEqual(result.error, ErrorKind.BUSY)

        self.wallet.gate.set()
        await burn

    async def test_refresh_failure_keeps_collection(self):
        self.own(("0xTOK1", "Cat"), ("0xTOK2", "Dog"))
        self.assertTrue((await self.manager.refresh()).success)
        before = self.manager.collection_snapshot()
        self.ledger.error = ConnectionError("boom")

        with self.assertLogs(level="ERROR"):
            result = await self.manager.refresh()

        self.assertEqual(result.error, ErrorKind.QUERY_FAILED)
        self.assertEqual(result.message, "Failed to load NFTs from blockchain")
        self.assertEqual(self.manager.collection_snapshot(), before)

    async def test_refresh_other_address(self):
        self.own(("0xTOK1", "Cat"))
        await self.manager.refresh("0xB0B")
        self.assertEqual(self.ledger.calls, ["0xB0B"])
        self.assertEqual(self.manager.collection.owner, "0xB0B")

    async def test_sync_wallet_and_disconnect(self):
        self.own(("0xTOK1", "Cat"))
        self.assertTrue((await self.manager.sync_wallet()).success)
        self.assertEqual(len(self.manager.collection_snapshot()), 1)

        self.manager.disconnect()
        self.assertFalse(self.wallet.connected)
        self.assertEqual(self.manager.collection_snapshot(), ())
        result = await self.manager.sync_wallet()
        self.assertEqual(result.error, ErrorKind.NOT_CONNECTED)

    async def test_disconnect_during_operation(self):
        self.own(("0xTOK1", "Cat"))
        self.wallet.gate = asyncio.Event()
        burn = asyncio.ensure_future(self.manager.burn("0xTOK1"))
        await asyncio.sleep(0)

        self.manager.disconnect()
        self.wallet.gate.set()

        self.assertTrue((await burn).success)
        self.assertEqual(self.manager.collection_snapshot(), ())

    async def test_wallet_drops_connection_during_operation(self):
        self.own(("0xTOK1", "Cat"))
        self.wallet.gate = asyncio.Event()
        burn = asyncio.ensure_future(self.manager.burn("0xTOK1"))
        await asyncio.sleep(0)

        self.wallet.disconnect()
        result = await self.manager.sync_wallet()
        self.assertEqual(result.error, ErrorKind.NOT_CONNECTED)
        self.wallet.gate.set()

        self.assertTrue((await burn).success)
        self.assertEqual(self.manager.collection_snapshot(), ())

    async def test_account_switch_during_operation(self):
        self.own(("0xTOK1", "Cat"))
        await self.manager.refresh()
        self.wallet.gate = asyncio.Event()
        burn = asyncio.ensure_future(self.manager.burn("0xTOK1"))
        await asyncio.sleep(0)

        self.wallet.connect("0xB0B")
        result = await self.manager.sync_wallet()
        self.assertEqual(result.error, ErrorKind.BUSY)
        self.assertEqual(self.manager.collection_snapshot(), ())
        self.wallet.gate.set()

        self.assertTrue((await burn).success)
        self.assertEqual(self.manager.collection_snapshot(), ())
        self.assertTrue((await self.manager.sync_wallet()).success)
        self.assertEqual(self.manager.collection.owner, "0xB0B")

    async def test_listener_error_does_not_escape(self):
        self.own(("0xTOK1", "Cat"))

        def broken(state, message):
            raise RuntimeError("listener failed")

        self.manager.add_status_listener(broken)
        with self.assertLogs(level="ERROR"):
            result = await self.manager.burn("0xTOK1")

        self.assertTrue(result.success)
        self.assertEqual(self.manager.state, OperationState.IDLE)
        self.assertFalse(self.manager.is_busy())
        self.assertEqual(self.states[-1], OperationState.IDLE)

    async def test_remove_status_listener(self):
        seen: List[OperationState] = []

        def listener(state, message):
            seen.append(state)

        self.manager.add_status_listener(listener)
        await self.manager.refresh()
        self.manager.remove_status_listener(listener)
        await self.manager.refresh()

        self.assertEqual(seen, [OperationState.RECONCILING, OperationState.IDLE])


if __name__ == "__main__":
    unittest.main()
