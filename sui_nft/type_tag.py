# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Move type tags as they appear on the Sui ledger.

Nodes report the type of every object as a string such as
``0x2::coin::Coin<0x2::sui::SUI>``. This module parses those strings so that
object types can be compared reliably (addresses are normalized before
comparison) and serializes type tags for Move call type arguments.

Examples:
    Parsing and comparing::

        tag = StructTag.from_str("0xabc::simple_nft::SimpleNFT")
        tag.matches(StructTag.from_str("0x0abc::simple_nft::SimpleNFT"))  # True

    Generic types::

        coin = StructTag.from_str("0x2::coin::Coin<0x2::sui::SUI>")
        str(coin.type_args[0])  # "0x000...0002::sui::SUI"
"""

from __future__ import annotations

import typing
import unittest
from typing import List, Tuple

from .account_address import SuiAddress
from .bcs import Serializable, Serializer


class TypeTag(Serializable):
    """Discriminated union of Move types, numbered as Sui numbers them.

    Attributes:
        value: The wrapped ``PrimitiveTag``, ``VectorTag`` or ``StructTag``.
    """

    BOOL: int = 0
    U8: int = 1
    U64: int = 2
    U128: int = 3
    ADDRESS: int = 4
    SIGNER: int = 5
    VECTOR: int = 6
    STRUCT: int = 7
    U16: int = 8
    U32: int = 9
    U256: int = 10

    value: typing.Any

    def __init__(self, value: typing.Any):
        self.value = value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypeTag):
            return NotImplemented
        return (
            self.value.variant() == other.value.variant() and self.value == other.value
        )

    def __str__(self):
        return self.value.__str__()

    def __repr__(self):
        return self.__str__()

    def serialize(self, serializer: Serializer):
        serializer.variant_index(self.value.variant())
        serializer.struct(self.value)


class PrimitiveTag(Serializable):
    """A non-struct Move type such as ``u64`` or ``address``."""

    VARIANTS = {
        "bool": TypeTag.BOOL,
        "u8": TypeTag.U8,
        "u16": TypeTag.U16,
        "u32": TypeTag.U32,
        "u64": TypeTag.U64,
        "u128": TypeTag.U128,
        "u256": TypeTag.U256,
        "address": TypeTag.ADDRESS,
        "signer": TypeTag.SIGNER,
    }

    name: str

    def __init__(self, name: str):
        if name not in PrimitiveTag.VARIANTS:
            raise ValueError(f"Unknown primitive type: {name}")
        self.name = name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrimitiveTag):
            return NotImplemented
        return self.name == other.name

    def __str__(self) -> str:
        return self.name

    def variant(self):
        return PrimitiveTag.VARIANTS[self.name]

    def serialize(self, serializer: Serializer):
        # Primitive variants carry no payload.
        pass


class VectorTag(Serializable):
    """``vector<T>``."""

    element: TypeTag

    def __init__(self, element: TypeTag):
        self.element = element

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VectorTag):
            return NotImplemented
        return self.element == other.element

    def __str__(self) -> str:
        return f"vector<{self.element}>"

    def variant(self):
        return TypeTag.VECTOR

    def serialize(self, serializer: Serializer):
        serializer.struct(self.element)


class StructTag(Serializable):
    """Type tag for Move struct types.

    A struct type is located by the package address and module that declare
    it, plus its name and any generic type arguments.

    Attributes:
        address: Package address where the module is published.
        module: The name of the module containing the struct.
        name: The name of the struct.
        type_args: Type arguments of a generic struct.
    """

    address: SuiAddress
    module: str
    name: str
    type_args: List[TypeTag]

    def __init__(self, address, module, name, type_args):
        self.address = address
        self.module = module
        self.name = name
        self.type_args = type_args

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StructTag):
            return NotImplemented
        return (
            self.address == other.address
            and self.module == other.module
            and self.name == other.name
            and self.type_args == other.type_args
        )

    def __str__(self) -> str:
        value = f"{self.address}::{self.module}::{self.name}"
        if len(self.type_args) > 0:
            value += f"<{self.type_args[0]}"
            for type_arg in self.type_args[1:]:
                value += f", {type_arg}"
            value += ">"
        return value

    def matches(self, other: StructTag) -> bool:
        """Compare the struct identity only, ignoring generic type arguments."""
        return (
            self.address == other.address
            and self.module == other.module
            and self.name == other.name
        )

    @staticmethod
    def from_str(type_tag: str) -> StructTag:
        """Parse a struct type string.

        Raises:
            ValueError: If the string is not a struct type.

        Examples:
            Parsing simple and nested struct types::

                simple = StructTag.from_str("0x2::object::UID")
                nested = StructTag.from_str(
                    "0x2::coin::Coin<0x2::sui::SUI>"
                )
        """
        tags, _ = StructTag._from_str_internal(type_tag, 0)
        if len(tags) != 1 or not isinstance(tags[0].value, StructTag):
            raise ValueError(f"Not a struct type: {type_tag}")
        return tags[0].value

    @staticmethod
    def _from_str_internal(type_tag: str, index: int) -> Tuple[List[TypeTag], int]:
        name = ""
        tags = []
        inner_tags: List[TypeTag] = []

        while index < len(type_tag):
            letter = type_tag[index]
            index += 1

            if letter == " ":
                continue

            if letter == "<":
                (inner_tags, index) = StructTag._from_str_internal(type_tag, index)
            elif letter == ",":
                tags.append(StructTag._tag_from_parts(name, inner_tags))
                name = ""
                inner_tags = []
            elif letter == ">":
                break
            else:
                name += letter

        tags.append(StructTag._tag_from_parts(name, inner_tags))
        return (tags, index)

    @staticmethod
    def _tag_from_parts(name: str, inner_tags: List[TypeTag]) -> TypeTag:
        if name == "vector":
            if len(inner_tags) != 1:
                raise ValueError("vector takes exactly one type argument")
            return TypeTag(VectorTag(inner_tags[0]))

        split = name.split("::")
        if len(split) == 1:
            return TypeTag(PrimitiveTag(name))
        if len(split) != 3:
            raise ValueError(f"Malformed struct type: {name}")

        return TypeTag(
            StructTag(
                SuiAddress.from_str_relaxed(split[0]),
                split[1],
                split[2],
                inner_tags,
            )
        )

    def variant(self):
        return TypeTag.STRUCT

    def serialize(self, serializer: Serializer):
        self.address.serialize(serializer)
        serializer.str(self.module)
        serializer.str(self.name)
        serializer.sequence(self.type_args, Serializer.struct)


class Test(unittest.TestCase):
    def test_nested_structs(self):
        l0 = f"{SuiAddress.normalize('0x0')}::l0::L0"
        l10 = f"{SuiAddress.normalize('0x1')}::l10::L10"
        l20 = f"{SuiAddress.normalize('0x2')}::l20::L20"
        l11 = f"{SuiAddress.normalize('0x1')}::l11::L11"
        composite = f"{l0}<{l10}<{l20}>, {l11}>"
        derived = StructTag.from_str(composite)
        self.assertEqual(composite, f"{derived}")

    def test_primitive_and_vector_args(self):
        tag = StructTag.from_str("0x2::table::Table<u64, vector<address>>")
        self.assertEqual(tag.type_args[0], TypeTag(PrimitiveTag("u64")))
        self.assertEqual(
            tag.type_args[1], TypeTag(VectorTag(TypeTag(PrimitiveTag("address"))))
        )

    def test_matches_ignores_padding_and_type_args(self):
        short = StructTag.from_str("0xab::simple_nft::SimpleNFT")
        long = StructTag.from_str(
            f"{SuiAddress.normalize('0xab')}::simple_nft::SimpleNFT<u8>"
        )
        self.assertTrue(short.matches(long))
        self.assertNotEqual(short, long)
        other = StructTag.from_str("0xab::simple_nft::MintCap")
        self.assertFalse(short.matches(other))

    def test_malformed(self):
        with self.assertRaises(ValueError):
            StructTag.from_str("u64")
        with self.assertRaises(ValueError):
            StructTag.from_str("0x2::coin")

    def test_serialize(self):
        ser = Serializer()
        TypeTag(StructTag.from_str("0x2::sui::SUI")).serialize(ser)
        expected = (
            b"\x07" + b"\x00" * 31 + b"\x02" + b"\x03sui" + b"\x03SUI" + b"\x00"
        )
        self.assertEqual(ser.output(), expected)


if __name__ == "__main__":
    unittest.main()
