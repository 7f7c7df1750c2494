# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Client for the ``simple_nft`` Move module.

This module holds the pure parts of the NFT manager:

- :class:`Token` decodes raw object records returned by a node into display
  values, substituting defaults for anything that is missing.
- :meth:`SimpleNftClient.owned_tokens` lists the tokens owned by an address with
  a single ownership query, keeping only objects of the configured token type.
- :meth:`SimpleNftClient.build` validates an :class:`OperationRequest` and turns
  it into the :class:`TransactionPayload` a wallet signs.

The contract exposes these entry points::

    mint_nft(name, description, image_url, recipient)
    mint_nft_with_cap(cap, name, description, image_url, recipient)
    transfer_nft(nft, recipient)
    update_description(nft, new_description)
    burn_nft(nft)

Examples:
    Listing tokens::

        client = SimpleNftClient(SuiClient(node_url), ContractConfig(package_id))
        for token in await client.owned_tokens("0xa1..."):
            print(token.name, token.image_url)

    Building a transfer::

        payload = client.build(OperationRequest.transfer(token.id, "0xb0b..."))
"""

from __future__ import annotations

import enum
import logging
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, cast

from typing_extensions import Protocol

from . import config
from .account_address import ParseAddressError, SuiAddress, serialize_address_str
from .bcs import Serializer
from .exceptions import QueryFailed, ValidationFailed
from .testing import FakeLedger, nft_record
from .transactions import (
    MoveCall,
    ObjectArgument,
    TransactionArgument,
    TransactionPayload,
)
from .type_tag import StructTag

DEFAULT_NAME = "Unknown"
DEFAULT_DESCRIPTION = "No description"
DEFAULT_IMAGE_URL = "https://via.placeholder.com/400"
DEFAULT_CREATOR = "Unknown"

OWNED_OBJECT_OPTIONS = {"showType": True, "showContent": True, "showDisplay": True}


class LedgerRpc(Protocol):
    """The part of a node client the token query depends on."""

    async def get_owned_objects(
        self, owner: str, options: Optional[Dict[str, bool]] = None
    ) -> List[Dict[str, Any]]:
        ...


@dataclass
class ContractConfig:
    """Where the ``simple_nft`` module is published.

    The package id is passed through as given; it is never validated here.
    """

    package_id: str
    module: str = "simple_nft"
    struct_name: str = "SimpleNFT"
    mint_cap_id: Optional[str] = None

    @property
    def module_id(self) -> str:
        """``package::module``, the prefix of every call target."""
        return f"{self.package_id}::{self.module}"

    @property
    def token_type(self) -> str:
        return f"{self.module_id}::{self.struct_name}"

    @staticmethod
    def from_env() -> ContractConfig:
        return ContractConfig(config.PACKAGE_ID, mint_cap_id=config.MINT_CAP_ID)


@dataclass(frozen=True)
class Token:
    """One ``SimpleNFT`` owned by the connected address."""

    id: str
    name: str = DEFAULT_NAME
    description: str = DEFAULT_DESCRIPTION
    image_url: str = DEFAULT_IMAGE_URL
    creator: str = DEFAULT_CREATOR

    def __str__(self) -> str:
        return (
            f"Token[id: {self.id}, name: {self.name}, description: "
            f"{self.description}, image_url: {self.image_url}, creator: {self.creator}]"
        )

    @staticmethod
    def parse(record: Dict[str, Any]) -> Token:
        """Decode a raw object record, as returned by ``suix_getOwnedObjects``.

        Never fails: every display field that is missing, empty or of an
        unexpected shape falls back to its default on its own.
        """
        data = record.get("data") if isinstance(record, dict) else None
        data = data if isinstance(data, dict) else {}
        content = data.get("content")
        fields = content.get("fields") if isinstance(content, dict) else None
        fields = fields if isinstance(fields, dict) else {}

        return Token(
            id=_text(data.get("objectId")) or "",
            name=_text(fields.get("name")) or DEFAULT_NAME,
            description=_text(fields.get("description")) or DEFAULT_DESCRIPTION,
            image_url=_text(fields.get("image_url")) or DEFAULT_IMAGE_URL,
            creator=_text(fields.get("creator")) or DEFAULT_CREATOR,
        )


def _text(value: Any) -> Optional[str]:
    # Url and String fields may be rendered either flat or as nested structs.
    if isinstance(value, dict):
        nested = value.get("fields")
        if isinstance(nested, dict):
            return _text(nested.get("url", nested.get("bytes")))
        return None
    if isinstance(value, str) and value != "":
        return value
    return None


class OperationKind(enum.Enum):
    MINT = "mint"
    TRANSFER = "transfer"
    UPDATE = "update"
    BURN = "burn"


@dataclass(frozen=True)
class OperationRequest:
    """Inputs of one user-triggered mutation.

    ``recipient`` is the new owner for a transfer and the connected address
    for a mint.
    """

    kind: OperationKind
    target_token_id: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    recipient: Optional[str] = None
    new_description: Optional[str] = None

    @staticmethod
    def mint(
        name: Optional[str],
        description: Optional[str],
        image_url: Optional[str],
        recipient: Optional[str] = None,
    ) -> OperationRequest:
        return OperationRequest(
            OperationKind.MINT,
            name=name,
            description=description,
            image_url=image_url,
            recipient=recipient,
        )

    @staticmethod
    def transfer(token_id: Optional[str], recipient: Optional[str]) -> OperationRequest:
        return OperationRequest(
            OperationKind.TRANSFER, target_token_id=token_id, recipient=recipient
        )

    @staticmethod
    def update(
        token_id: Optional[str], new_description: Optional[str]
    ) -> OperationRequest:
        return OperationRequest(
            OperationKind.UPDATE,
            target_token_id=token_id,
            new_description=new_description,
        )

    @staticmethod
    def burn(token_id: Optional[str]) -> OperationRequest:
        return OperationRequest(OperationKind.BURN, target_token_id=token_id)


def _missing(value: Optional[str]) -> bool:
    return value is None or value.strip() == ""


class SimpleNftClient:
    """Queries and builds transactions for the ``simple_nft`` module."""

    client: LedgerRpc
    contract: ContractConfig

    def __init__(self, client: LedgerRpc, contract: ContractConfig):
        self.client = client
        self.contract = contract

    #
    # Query
    #

    async def owned_tokens(self, owner: str) -> List[Token]:
        """Return the tokens owned by ``owner`` in ledger order.

        Issues one ownership query. Only records of the configured token type
        are kept; when an id repeats, its first occurrence wins.

        :raises QueryFailed: If the query fails for any reason.
        """
        try:
            records = await self.client.get_owned_objects(owner, OWNED_OBJECT_OPTIONS)
        except Exception as e:
            logging.error(e, exc_info=True)
            raise QueryFailed("Failed to load NFTs from blockchain") from e

        tokens: List[Token] = []
        seen = set()
        for record in records:
            if not self.is_nft(record):
                continue
            token = Token.parse(record)
            if token.id in seen:
                logging.warning(f"Dropping duplicate object {token.id} from query")
                continue
            seen.add(token.id)
            tokens.append(token)
        return tokens

    def is_nft(self, record: Dict[str, Any]) -> bool:
        """Return True when ``record`` is an object of the configured token type.

        Generic type arguments are ignored and addresses are compared in
        normalized form. Records without an id or with an unparsable type are
        not tokens.
        """
        data = record.get("data") if isinstance(record, dict) else None
        if not isinstance(data, dict) or not data.get("objectId"):
            return False
        object_type = data.get("type")
        if not isinstance(object_type, str):
            return False

        try:
            expected = StructTag.from_str(self.contract.token_type)
        except (ValueError, ParseAddressError):
            return object_type.split("<")[0] == self.contract.token_type

        try:
            actual = StructTag.from_str(object_type)
        except (ValueError, ParseAddressError):
            return False
        return expected.matches(actual)

    #
    # Transaction building
    #

    def mint_nft_payload(
        self, name: str, description: str, image_url: str, recipient: str
    ) -> TransactionPayload:
        transaction_arguments = [
            TransactionArgument(name, Serializer.str),
            TransactionArgument(description, Serializer.str),
            TransactionArgument(image_url, Serializer.str),
            TransactionArgument(recipient, serialize_address_str),
        ]

        if self.contract.mint_cap_id:
            function = "mint_nft_with_cap"
            arguments = [ObjectArgument(self.contract.mint_cap_id)]
            arguments.extend(transaction_arguments)
        else:
            function = "mint_nft"
            arguments = transaction_arguments

        payload = MoveCall.natural(
            self.contract.module_id,
            function,
            [],
            arguments,
        )
        return TransactionPayload(payload)

    def transfer_nft_payload(self, nft: str, recipient: str) -> TransactionPayload:
        payload = MoveCall.natural(
            self.contract.module_id,
            "transfer_nft",
            [],
            [
                ObjectArgument(nft),
                TransactionArgument(recipient, serialize_address_str),
            ],
        )
        return TransactionPayload(payload)

    def update_description_payload(
        self, nft: str, new_description: str
    ) -> TransactionPayload:
        payload = MoveCall.natural(
            self.contract.module_id,
            "update_description",
            [],
            [
                ObjectArgument(nft),
                TransactionArgument(new_description, Serializer.str),
            ],
        )
        return TransactionPayload(payload)

    def burn_nft_payload(self, nft: str) -> TransactionPayload:
        payload = MoveCall.natural(
            self.contract.module_id,
            "burn_nft",
            [],
            [ObjectArgument(nft)],
        )
        return TransactionPayload(payload)

    @staticmethod
    def validate(request: OperationRequest):
        """Check that every input the operation kind requires is present.

        :raises ValidationFailed: Naming the first missing field.
        """
        if request.kind == OperationKind.MINT:
            for field in ("name", "description", "image_url"):
                if _missing(getattr(request, field)):
                    raise ValidationFailed("Please fill all fields!", field)
            if _missing(request.recipient):
                raise ValidationFailed("Recipient address is required", "recipient")
            return

        if _missing(request.target_token_id):
            raise ValidationFailed("Token id is required", "target_token_id")
        if request.kind == OperationKind.TRANSFER and _missing(request.recipient):
            raise ValidationFailed("Recipient address is required", "recipient")
        if request.kind == OperationKind.UPDATE and _missing(request.new_description):
            raise ValidationFailed("New description is required", "new_description")

    def build(self, request: OperationRequest) -> TransactionPayload:
        """Validate ``request`` and return the payload for its entry point.

        No network call is made.

        :raises ValidationFailed: If a required field is missing or empty.
        """
        self.validate(request)

        # validate() guarantees the fields used below are set.
        if request.kind == OperationKind.MINT:
            return self.mint_nft_payload(
                cast(str, request.name),
                cast(str, request.description),
                cast(str, request.image_url),
                cast(str, request.recipient),
            )
        token_id = cast(str, request.target_token_id)
        if request.kind == OperationKind.TRANSFER:
            return self.transfer_nft_payload(token_id, cast(str, request.recipient))
        if request.kind == OperationKind.UPDATE:
            return self.update_description_payload(
                token_id, cast(str, request.new_description)
            )
        return self.burn_nft_payload(token_id)


class Test(unittest.IsolatedAsyncioTestCase):
    PACKAGE = "0xabc"

    def setUp(self):
        self.ledger = FakeLedger()
        self.client = SimpleNftClient(self.ledger, ContractConfig(self.PACKAGE))

    def test_parse_defaults(self):
        self.assertEqual(
            Token.parse(nft_record("0x1", self.PACKAGE)),
            Token("0x1", "Unknown", "No description", DEFAULT_IMAGE_URL, "Unknown"),
        )
        self.assertEqual(Token.parse({}), Token(""))
        self.assertEqual(Token.parse({"data": {"content": None}}).name, "Unknown")

    def test_parse_each_field_independently(self):
        fields = {
            "name": "Cat",
            "description": "",
            "image_url": {"type": "0x2::url::Url", "fields": {"url": "http://img"}},
            "creator": 7,
        }
        token = Token.parse(nft_record("0x1", self.PACKAGE, fields))
        self.assertEqual(token.name, "Cat")
        self.assertEqual(token.description, DEFAULT_DESCRIPTION)
        self.assertEqual(token.image_url, "http://img")
        self.assertEqual(token.creator, DEFAULT_CREATOR)

    def test_is_nft(self):
        self.assertTrue(self.client.is_nft(nft_record("0x1", self.PACKAGE)))
        self.assertTrue(
            self.client.is_nft(nft_record("0x1", SuiAddress.normalize(self.PACKAGE)))
        )
        self.assertFalse(self.client.is_nft(nft_record("0x1", "0xdef")))
        coin = {"data": {"objectId": "0x2", "type": "0x2::coin::Coin<0x2::sui::SUI>"}}
        self.assertFalse(self.client.is_nft(coin))
        self.assertFalse(self.client.is_nft({"error": {"code": "deleted"}}))
        self.assertFalse(self.client.is_nft({"data": {"objectId": "0x3", "type": "?"}}))

    def test_is_nft_with_opaque_package(self):
        client = SimpleNftClient(self.ledger, ContractConfig("pkg"))
        self.assertTrue(client.is_nft(nft_record("0x1", "pkg")))
        self.assertFalse(client.is_nft(nft_record("0x1", self.PACKAGE)))

    async def test_owned_tokens_filters_and_keeps_order(self):
        self.ledger.records = [
            nft_record("0x3", self.PACKAGE, {"name": "C"}),
            {"data": {"objectId": "0x9", "type": "0x2::coin::Coin<0x2::sui::SUI>"}},
            nft_record("0x1", self.PACKAGE, {"name": "A"}),
        ]
        tokens = await self.client.owned_tokens("0xa1")
        self.assertEqual([token.id for token in tokens], ["0x3", "0x1"])
        self.assertEqual(self.ledger.calls, ["0xa1"])

    async def test_owned_tokens_drops_duplicates(self):
        self.ledger.records = [
            nft_record("0x1", self.PACKAGE, {"name": "first"}),
            nft_record("0x1", self.PACKAGE, {"name": "second"}),
        ]
        with self.assertLogs(level="WARNING"):
            tokens = await self.client.owned_tokens("0xa1")
        self.assertEqual([token.name for token in tokens], ["first"])

    async def test_owned_tokens_query_failed(self):
        self.ledger.error = ConnectionError("boom")
        with self.assertLogs(level="ERROR"):
            with self.assertRaises(QueryFailed) as cm:
                await self.client.owned_tokens("0xa1")
        self.assertEqual(cm.exception.message, "Failed to load NFTs from blockchain")

    def test_build_mint(self):
        payload = self.client.build(
            OperationRequest.mint("Cat", "A cat", "http://img/cat.png", "0xa1")
        )
        call = payload.calls[0]
        self.assertEqual(call.target(), "0xabc::simple_nft::mint_nft")
        self.assertEqual(
            call.args,
            [
                TransactionArgument("Cat", Serializer.str),
                TransactionArgument("A cat", Serializer.str),
                TransactionArgument("http://img/cat.png", Serializer.str),
                TransactionArgument("0xa1", serialize_address_str),
            ],
        )

    def test_build_mint_with_cap(self):
        client = SimpleNftClient(self.ledger, ContractConfig("0xabc", mint_cap_id="0xcap"))
        call = client.build(OperationRequest.mint("Cat", "A", "u", "0xa1")).calls[0]
        self.assertEqual(call.function, "mint_nft_with_cap")
        self.assertEqual(call.args[0], ObjectArgument("0xcap"))
        self.assertEqual(len(call.args), 5)

    def test_build_other_kinds(self):
        transfer = self.client.build(OperationRequest.transfer("0xTOK1", "0xb0b"))
        self.assertEqual(
            transfer.calls[0].args,
            [
                ObjectArgument("0xTOK1"),
                TransactionArgument("0xb0b", serialize_address_str),
            ],
        )
        update = self.client.build(OperationRequest.update("0xTOK1", "x"))
        self.assertEqual(update.calls[0].function, "update_description")
        self.assertEqual(
            update.calls[0].args[1], TransactionArgument("x", Serializer.str)
        )
        burn = self.client.build(OperationRequest.burn("0xTOK1"))
        self.assertEqual(burn.calls[0].target(), "0xabc::simple_nft::burn_nft")
        self.assertEqual(burn.calls[0].args, [ObjectArgument("0xTOK1")])

    def test_build_validation(self):
        invalid = [
            (OperationRequest.mint("", "A", "u", "0xa1"), "name"),
            (OperationRequest.mint("Cat", "  ", "u", "0xa1"), "description"),
            (OperationRequest.mint("Cat", "A", None, "0xa1"), "image_url"),
            (OperationRequest.mint("Cat", "A", "u", None), "recipient"),
            (OperationRequest.transfer("0xTOK1", ""), "recipient"),
            (OperationRequest.transfer(None, "0xb0b"), "target_token_id"),
            (OperationRequest.update("0xTOK1", ""), "new_description"),
            (OperationRequest.burn(""), "target_token_id"),
        ]
        for request, field in invalid:
            with self.assertRaises(ValidationFailed) as cm:
                self.client.build(request)
            self.assertEqual(cm.exception.field, field)
        self.assertEqual(self.ledger.calls, [])

    def test_contract_config(self):
        contract = ContractConfig("0xabc")
        self.assertEqual(contract.token_type, "0xabc::simple_nft::SimpleNFT")
        self.assertEqual(contract.module_id, "0xabc::simple_nft")
        from_env = ContractConfig.from_env()
        self.assertEqual(from_env.package_id, config.PACKAGE_ID)
        self.assertEqual(from_env.mint_cap_id, config.MINT_CAP_ID)


if __name__ == "__main__":
    unittest.main()
