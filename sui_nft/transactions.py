# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Programmable transaction model for the Sui ledger.

Building a transaction happens in two steps. First a :class:`TransactionPayload`
is assembled from Move calls whose arguments are either pure values
(:class:`TransactionArgument`) or references to ledger objects by id
(:class:`ObjectArgument`). A payload is what the application hands to a wallet.
The wallet then resolves every object id into a versioned reference, picks gas,
and produces the BCS encoded :class:`TransactionData` that gets signed.

Examples:
    Building a payload::

        payload = TransactionPayload(
            MoveCall.natural(
                "0xabc::simple_nft",
                "transfer_nft",
                [],
                [
                    ObjectArgument("0x5e..."),
                    TransactionArgument("0xb0b", serialize_address_str),
                ],
            )
        )

    Producing signable bytes::

        kind = payload.to_programmable(resolved_objects)
        data = TransactionData(kind, sender, GasData(coins, sender, price, budget))
        tx_bytes = data.to_bytes()
"""

from __future__ import annotations

import typing
import unittest
from typing import Dict, List, Union

import base58

from .account_address import SuiAddress, serialize_address_str
from .bcs import Serializable, Serializer, encoder
from .type_tag import StructTag, TypeTag

INTENT_PREFIX = bytes([0, 0, 0])


def intent_message(tx_bytes: bytes) -> bytes:
    """Prefix transaction bytes with the transaction-data intent (scope 0, V0, Sui)."""
    return INTENT_PREFIX + tx_bytes


class TransactionArgument:
    """A pure Move call argument and the BCS encoder for it.

    Encoding is deferred until :meth:`encode` is called, so a payload can be
    built from unchecked user input and fail only when it is serialized.
    """

    value: typing.Any
    encoder: typing.Callable[[Serializer, typing.Any], None]

    def __init__(
        self,
        value: typing.Any,
        encoder: typing.Callable[[Serializer, typing.Any], None],
    ):
        self.value = value
        self.encoder = encoder

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransactionArgument):
            return NotImplemented
        return self.value == other.value and self.encoder == other.encoder

    def __str__(self) -> str:
        return f"{self.value}"

    def encode(self) -> bytes:
        return encoder(self.value, self.encoder)


class ObjectArgument:
    """A Move call argument naming a ledger object by its id."""

    object_id: str

    def __init__(self, object_id: str):
        self.object_id = object_id

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectArgument):
            return NotImplemented
        return self.object_id == other.object_id

    def __str__(self) -> str:
        return f"Object<{self.object_id}>"


Argument = Union[TransactionArgument, ObjectArgument]


class ObjectRef(Serializable):
    """Reference to a specific version of an owned or immutable object."""

    object_id: SuiAddress
    version: int
    digest: str

    def __init__(self, object_id: SuiAddress, version: int, digest: str):
        self.object_id = object_id
        self.version = version
        self.digest = digest

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ObjectRef):
            return NotImplemented
        return (
            self.object_id == other.object_id
            and self.version == other.version
            and self.digest == other.digest
        )

    def __str__(self) -> str:
        return f"ObjectRef[{self.object_id}, {self.version}, {self.digest}]"

    @staticmethod
    def parse(data: Dict[str, typing.Any]) -> ObjectRef:
        """Build a reference from an object or coin record returned by a node.

        Object records use ``objectId`` while coin records use ``coinObjectId``.
        """
        object_id = data.get("objectId", data.get("coinObjectId"))
        return ObjectRef(
            SuiAddress.from_str_relaxed(object_id),
            int(data["version"]),
            data["digest"],
        )

    def serialize(self, serializer: Serializer):
        self.object_id.serialize(serializer)
        serializer.u64(self.version)
        serializer.to_bytes(base58.b58decode(self.digest))


class SharedObjectRef(Serializable):
    object_id: SuiAddress
    initial_shared_version: int
    mutable: bool

    def __init__(
        self, object_id: SuiAddress, initial_shared_version: int, mutable: bool = True
    ):
        self.object_id = object_id
        self.initial_shared_version = initial_shared_version
        self.mutable = mutable

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SharedObjectRef):
            return NotImplemented
        return (
            self.object_id == other.object_id
            and self.initial_shared_version == other.initial_shared_version
            and self.mutable == other.mutable
        )

    def serialize(self, serializer: Serializer):
        self.object_id.serialize(serializer)
        serializer.u64(self.initial_shared_version)
        serializer.bool(self.mutable)


ResolvedObject = Union[ObjectRef, SharedObjectRef]


class CallArg(Serializable):
    """An input of a programmable transaction: pure bytes or an object."""

    PURE: int = 0
    OBJECT: int = 1

    IMM_OR_OWNED_OBJECT: int = 0
    SHARED_OBJECT: int = 1

    value: typing.Union[bytes, ResolvedObject]

    def __init__(self, value: typing.Union[bytes, ResolvedObject]):
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CallArg):
            return NotImplemented
        return self.value == other.value

    def serialize(self, serializer: Serializer):
        if isinstance(self.value, bytes):
            serializer.variant_index(CallArg.PURE)
            serializer.to_bytes(self.value)
            return

        serializer.variant_index(CallArg.OBJECT)
        if isinstance(self.value, SharedObjectRef):
            serializer.variant_index(CallArg.SHARED_OBJECT)
        else:
            serializer.variant_index(CallArg.IMM_OR_OWNED_OBJECT)
        serializer.struct(self.value)


class InputArgument(Serializable):
    """Reference from a command to an entry of the transaction inputs."""

    GAS_COIN: int = 0
    INPUT: int = 1
    RESULT: int = 2
    NESTED_RESULT: int = 3

    index: int

    def __init__(self, index: int):
        self.index = index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InputArgument):
            return NotImplemented
        return self.index == other.index

    def serialize(self, serializer: Serializer):
        serializer.variant_index(InputArgument.INPUT)
        serializer.u16(self.index)


class MoveCall:
    """A call to a public Move function.

    Attributes:
        package: Package id; kept as given until serialization.
        module: Module name.
        function: Function name.
        type_args: Type arguments for generic functions.
        args: Ordered arguments.
    """

    package: str
    module: str
    function: str
    type_args: List[TypeTag]
    args: List[Argument]

    def __init__(
        self,
        package: str,
        module: str,
        function: str,
        type_args: List[TypeTag],
        args: List[Argument],
    ):
        self.package = package
        self.module = module
        self.function = function
        self.type_args = type_args
        self.args = args

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MoveCall):
            return NotImplemented
        return (
            self.package == other.package
            and self.module == other.module
            and self.function == other.function
            and self.type_args == other.type_args
            and self.args == other.args
        )

    def __str__(self) -> str:
        args = ", ".join(str(arg) for arg in self.args)
        return f"{self.target()}({args})"

    @staticmethod
    def natural(
        module: str,
        function: str,
        type_args: List[TypeTag],
        args: List[Argument],
    ) -> MoveCall:
        """Create a call from a ``package::module`` string.

        Examples:
            ::

                MoveCall.natural("0xabc::simple_nft", "burn_nft", [], [nft])
        """
        package, module_name = module.rsplit("::", 1)
        return MoveCall(package, module_name, function, type_args, args)

    def target(self) -> str:
        return f"{self.package}::{self.module}::{self.function}"

    def object_ids(self) -> List[str]:
        return [arg.object_id for arg in self.args if isinstance(arg, ObjectArgument)]


class TransactionPayload:
    """The mutation request handed to a wallet: one or more ordered Move calls."""

    calls: List[MoveCall]

    def __init__(self, calls: typing.Union[MoveCall, List[MoveCall]]):
        if isinstance(calls, MoveCall):
            calls = [calls]
        self.calls = calls

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TransactionPayload):
            return NotImplemented
        return self.calls == other.calls

    def __str__(self) -> str:
        return "; ".join(str(call) for call in self.calls)

    def object_ids(self) -> List[str]:
        """Return every referenced object id once, in first-use order."""
        ids: List[str] = []
        for call in self.calls:
            for object_id in call.object_ids():
                if object_id not in ids:
                    ids.append(object_id)
        return ids

    def to_programmable(
        self, resolved: Dict[str, ResolvedObject]
    ) -> ProgrammableTransaction:
        """Lower the payload into inputs and commands.

        Args:
            resolved: Reference for every id returned by :meth:`object_ids`.

        Raises:
            KeyError: If an object id has no resolved reference.
            ParseAddressError: If a package id or address argument is malformed.
        """
        inputs: List[CallArg] = []
        object_inputs: Dict[str, int] = {}
        commands = []

        for call in self.calls:
            arguments = []
            for arg in call.args:
                if isinstance(arg, ObjectArgument):
                    if arg.object_id not in object_inputs:
                        object_inputs[arg.object_id] = len(inputs)
                        inputs.append(CallArg(resolved[arg.object_id]))
                    arguments.append(InputArgument(object_inputs[arg.object_id]))
                else:
                    arguments.append(InputArgument(len(inputs)))
                    inputs.append(CallArg(arg.encode()))
            commands.append(
                ProgrammableMoveCall(
                    SuiAddress.from_str_relaxed(call.package),
                    call.module,
                    call.function,
                    call.type_args,
                    arguments,
                )
            )

        return ProgrammableTransaction(inputs, commands)


class ProgrammableMoveCall(Serializable):
    MOVE_CALL: int = 0

    def __init__(
        self,
        package: SuiAddress,
        module: str,
        function: str,
        type_args: List[TypeTag],
        arguments: List[InputArgument],
    ):
        self.package = package
        self.module = module
        self.function = function
        self.type_args = type_args
        self.arguments = arguments

    def serialize(self, serializer: Serializer):
        serializer.variant_index(ProgrammableMoveCall.MOVE_CALL)
        self.package.serialize(serializer)
        serializer.str(self.module)
        serializer.str(self.function)
        serializer.sequence(self.type_args, Serializer.struct)
        serializer.sequence(self.arguments, Serializer.struct)


class ProgrammableTransaction(Serializable):
    PROGRAMMABLE_TRANSACTION: int = 0

    inputs: List[CallArg]
    commands: List[ProgrammableMoveCall]

    def __init__(self, inputs: List[CallArg], commands: List[ProgrammableMoveCall]):
        self.inputs = inputs
        self.commands = commands

    def serialize(self, serializer: Serializer):
        serializer.variant_index(ProgrammableTransaction.PROGRAMMABLE_TRANSACTION)
        serializer.sequence(self.inputs, Serializer.struct)
        serializer.sequence(self.commands, Serializer.struct)


class GasData(Serializable):
    payment: List[ObjectRef]
    owner: SuiAddress
    price: int
    budget: int

    def __init__(
        self, payment: List[ObjectRef], owner: SuiAddress, price: int, budget: int
    ):
        self.payment = payment
        self.owner = owner
        self.price = price
        self.budget = budget

    def serialize(self, serializer: Serializer):
        serializer.sequence(self.payment, Serializer.struct)
        self.owner.serialize(serializer)
        serializer.u64(self.price)
        serializer.u64(self.budget)


class TransactionData(Serializable):
    """Signable transaction (``TransactionData::V1``) without expiration."""

    V1: int = 0
    NO_EXPIRATION: int = 0

    kind: ProgrammableTransaction
    sender: SuiAddress
    gas_data: GasData

    def __init__(
        self, kind: ProgrammableTransaction, sender: SuiAddress, gas_data: GasData
    ):
        self.kind = kind
        self.sender = sender
        self.gas_data = gas_data

    def serialize(self, serializer: Serializer):
        serializer.variant_index(TransactionData.V1)
        serializer.struct(self.kind)
        self.sender.serialize(serializer)
        serializer.struct(self.gas_data)
        serializer.variant_index(TransactionData.NO_EXPIRATION)


class Test(unittest.TestCase):
    PACKAGE = "0xabc"
    NFT = "0x" + "11" * 32
    DIGEST = base58.b58encode(b"\x07" * 32).decode()

    def transfer_payload(self, recipient: str) -> TransactionPayload:
        return TransactionPayload(
            MoveCall.natural(
                f"{self.PACKAGE}::simple_nft",
                "transfer_nft",
                [],
                [
                    ObjectArgument(self.NFT),
                    TransactionArgument(recipient, serialize_address_str),
                ],
            )
        )

    def test_natural(self):
        call = MoveCall.natural("0xabc::simple_nft", "burn_nft", [], [])
        self.assertEqual(call.package, "0xabc")
        self.assertEqual(call.module, "simple_nft")
        self.assertEqual(call.target(), "0xabc::simple_nft::burn_nft")

    def test_object_ids_are_unique(self):
        call = MoveCall.natural(
            "0xabc::m", "f", [], [ObjectArgument("0x1"), ObjectArgument("0x1")]
        )
        payload = TransactionPayload([call, call])
        self.assertEqual(payload.object_ids(), ["0x1"])

    def test_to_programmable(self):
        object_ref = ObjectRef(SuiAddress.from_str(self.NFT), 3, self.DIGEST)
        kind = self.transfer_payload("0xb0b").to_programmable({self.NFT: object_ref})

        self.assertEqual(len(kind.inputs), 2)
        self.assertEqual(kind.inputs[0], CallArg(object_ref))
        self.assertEqual(
            kind.inputs[1], CallArg(encoder("0xb0b", serialize_address_str))
        )
        self.assertEqual(
            kind.commands[0].arguments, [InputArgument(0), InputArgument(1)]
        )

    def test_invalid_address_fails_on_lowering(self):
        object_ref = ObjectRef(SuiAddress.from_str(self.NFT), 3, self.DIGEST)
        payload = self.transfer_payload("not-an-address")
        with self.assertRaises(Exception):
            payload.to_programmable({self.NFT: object_ref})

    def test_object_ref_serialize(self):
        object_ref = ObjectRef.parse(
            {"objectId": "0x2", "version": "5", "digest": self.DIGEST}
        )
        expected = (
            b"\x00" * 31 + b"\x02" + b"\x05" + b"\x00" * 7 + b"\x20" + b"\x07" * 32
        )
        self.assertEqual(object_ref.to_bytes(), expected)

    def test_shared_call_arg(self):
        shared = SharedObjectRef(SuiAddress.from_str_relaxed("0x6"), 1, False)
        expected = b"\x01\x01" + b"\x00" * 31 + b"\x06" + b"\x01" + b"\x00" * 7 + b"\x00"
        self.assertEqual(CallArg(shared).to_bytes(), expected)

    def test_transaction_data(self):
        sender = SuiAddress.from_str_relaxed("0xa1")
        call = MoveCall.natural(
            "0x2::coin",
            "zero",
            [TypeTag(StructTag.from_str("0x2::sui::SUI"))],
            [],
        )
        kind = TransactionPayload(call).to_programmable({})
        gas = GasData([], sender, 1_000, 10_000_000)
        data = TransactionData(kind, sender, gas).to_bytes()

        # V1, ProgrammableTransaction, no inputs, one MoveCall command
        self.assertEqual(data[0:4], b"\x00\x00\x00\x01")
        self.assertEqual(data[4], 0)
        # Ends with gas price, gas budget and no expiration
        self.assertEqual(
            data[-17:],
            (1_000).to_bytes(8, "little") + (10_000_000).to_bytes(8, "little") + b"\x00",
        )

    def test_intent_message(self):
        self.assertEqual(intent_message(b"\x09"), b"\x00\x00\x00\x09")


if __name__ == "__main__":
    unittest.main()
