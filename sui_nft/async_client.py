# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Asynchronous JSON-RPC client for Sui full nodes.

Only the calls needed to enumerate owned objects, resolve object references and
gas, and execute signed transactions are wrapped. Every method issues exactly
one request; no retry or pagination is performed.

Examples:
    Listing owned objects::

        client = SuiClient("https://fullnode.testnet.sui.io:443")
        records = await client.get_owned_objects(
            "0xa1...", {"showType": True, "showContent": True}
        )
        await client.close()
"""

from __future__ import annotations

import base64
import itertools
import json
import logging
import unittest
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from unittest.mock import patch

import httpx

from .metadata import Metadata

SUI_COIN_TYPE = "0x2::sui::SUI"


@dataclass
class ClientConfig:
    """Common configuration for talking to a Sui node.

    Attributes:
        gas_budget: Gas budget in MIST attached to every transaction.
        request_type: Execution mode passed to ``sui_executeTransactionBlock``.
        http2: Enable HTTP/2.
        api_key: Optional bearer token for hosted RPC providers.
        timeout: Transport timeout in seconds.
        coin_type: Coin used to pay for gas.
    """

    gas_budget: int = 10_000_000
    request_type: str = "WaitForLocalExecution"
    http2: bool = True
    api_key: Optional[str] = None
    timeout: float = 60.0
    coin_type: str = SUI_COIN_TYPE


class SuiClient:
    """A thin wrapper around the Sui JSON-RPC API."""

    client: httpx.AsyncClient
    client_config: ClientConfig
    base_url: str

    def __init__(self, base_url: str, client_config: ClientConfig = ClientConfig()):
        self.base_url = base_url
        # Default limits
        limits = httpx.Limits()
        # No pool timeout, queued requests wait as long as progress is being made.
        timeout = httpx.Timeout(client_config.timeout, pool=None)
        headers = {Metadata.CLIENT_HEADER: Metadata.get_client_header_val()}
        self.client = httpx.AsyncClient(
            http2=client_config.http2,
            limits=limits,
            timeout=timeout,
            headers=headers,
        )
        self.client_config = client_config
        self._request_ids = itertools.count(1)
        if client_config.api_key:
            self.client.headers["Authorization"] = f"Bearer {client_config.api_key}"

    async def close(self):
        await self.client.aclose()

    #
    # Object accessors
    #

    async def get_owned_objects(
        self, owner: str, options: Optional[Dict[str, bool]] = None
    ) -> List[Dict[str, Any]]:
        """Fetch the first page of objects owned by ``owner``.

        :param owner: Address of the owner, as given by the caller.
        :param options: Which parts of each object to include, e.g.
            ``{"showType": True, "showContent": True, "showDisplay": True}``.
        :return: Raw object records in the order the node returned them.
        """
        query = {"options": options or {}}
        result = await self._call("suix_getOwnedObjects", [owner, query])
        return result.get("data", [])

    async def get_object(
        self, object_id: str, options: Optional[Dict[str, bool]] = None
    ) -> Dict[str, Any]:
        """
        Fetch a single object.

        :param object_id: Id of the object.
        :param options: Defaults to ``{"showOwner": True}`` so callers can tell
            owned objects from shared ones.
        :return: The ``data`` part of the response.
        :raises ObjectNotFound: If the node reports no such object.
        """
        options = {"showOwner": True} if options is None else options
        result = await self._call("sui_getObject", [object_id, options])
        if "error" in result or "data" not in result:
            raise ObjectNotFound(f"{result.get('error')}", object_id)
        return result["data"]

    async def get_coins(
        self, owner: str, coin_type: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        coin_type = self.client_config.coin_type if coin_type is None else coin_type
        result = await self._call("suix_getCoins", [owner, coin_type])
        return result.get("data", [])

    async def get_reference_gas_price(self) -> int:
        return int(await self._call("suix_getReferenceGasPrice", []))

    #
    # Transactions
    #

    async def execute_transaction_block(
        self,
        tx_bytes: bytes,
        signatures: List[str],
        options: Optional[Dict[str, bool]] = None,
    ) -> Dict[str, Any]:
        """
        Submit a signed transaction and wait for local execution.

        :param tx_bytes: BCS encoded ``TransactionData``.
        :param signatures: Serialized signatures, base64 encoded.
        :param options: Response options, effects are included by default.
        :return: The transaction block response, including ``digest``.
        """
        options = {"showEffects": True} if options is None else options
        tx_b64 = base64.b64encode(tx_bytes).decode()
        result = await self._call(
            "sui_executeTransactionBlock",
            [tx_b64, signatures, options, self.client_config.request_type],
        )
        logging.info(f"Executed transaction {result.get('digest')}")
        return result

    async def get_transaction_block(
        self, digest: str, options: Optional[Dict[str, bool]] = None
    ) -> Dict[str, Any]:
        options = {"showEffects": True} if options is None else options
        return await self._call("sui_getTransactionBlock", [digest, options])

    async def _call(self, method: str, params: List[Any]) -> Any:
        request_id = next(self._request_ids)
        response = await self.client.post(
            url=self.base_url,
            json={
                "jsonrpc": "2.0",
                "id": request_id,
                "method": method,
                "params": params,
            },
        )
        if response.status_code >= 400:
            raise ApiError(response.text, response.status_code)

        body = response.json()
        if "error" in body:
            error = body["error"]
            raise RpcError(error.get("message", f"{error}"), error.get("code", 0))
        return body["result"]


class ApiError(Exception):
    """The node returned a non-success status code, e.g., >= 400"""

    status_code: int

    def __init__(self, message: str, status_code: int):
        # Call the base class constructor with the parameters it needs
        super().__init__(message)
        self.status_code = status_code


class RpcError(ApiError):
    """The node answered with a JSON-RPC error object"""

    def __init__(self, message: str, code: int):
        super().__init__(message, 200)
        self.code = code


class ObjectNotFound(Exception):
    """The requested object does not exist or was deleted"""

    object_id: str

    def __init__(self, message: str, object_id: str):
        # Call the base class constructor with the parameters it needs
        super().__init__(message)
        self.object_id = object_id


class Test(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.requests: List[Dict[str, Any]] = []
        self.responses: List[httpx.Response] = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(json.loads(request.content))
            return self.responses.pop(0)

        with patch.object(Metadata, "get_client_header_val", return_value="test/0"):
            self.client = SuiClient(
                "http://node", ClientConfig(http2=False, api_key="k")
            )
        self.assertEqual(self.client.client.headers["Authorization"], "Bearer k")
        await self.client.close()
        self.client.client = httpx.AsyncClient(transport=httpx.MockTransport(handler))

    async def asyncTearDown(self):
        await self.client.close()

    def reply(self, result: Any = None, error: Any = None, status: int = 200):
        body: Dict[str, Any] = {"jsonrpc": "2.0", "id": 1}
        if error is not None:
            body["error"] = error
        else:
            body["result"] = result
        self.responses.append(httpx.Response(status, json=body))

    async def test_get_owned_objects(self):
        self.reply({"data": [{"data": {"objectId": "0x1"}}], "hasNextPage": True})
        records = await self.client.get_owned_objects("0xa1", {"showType": True})

        self.assertEqual(records, [{"data": {"objectId": "0x1"}}])
        self.assertEqual(self.requests[0]["method"], "suix_getOwnedObjects")
        self.assertEqual(
            self.requests[0]["params"], ["0xa1", {"options": {"showType": True}}]
        )

    async def test_http_error(self):
        self.responses.append(httpx.Response(503, text="unavailable"))
        with self.assertRaises(ApiError) as cm:
            await self.client.get_reference_gas_price()
        self.assertEqual(cm.exception.status_code, 503)

    async def test_rpc_error(self):
        self.reply(error={"code": -32602, "message": "Invalid params"})
        with self.assertRaises(RpcError) as cm:
            await self.client.get_coins("0xa1")
        self.assertEqual(cm.exception.code, -32602)
        self.assertEqual(f"{cm.exception}", "Invalid params")

    async def test_get_object_not_found(self):
        self.reply({"error": {"code": "notExists", "object_id": "0x9"}})
        with self.assertRaises(ObjectNotFound):
            await self.client.get_object("0x9")

    async def test_execute_transaction_block(self):
        self.reply({"digest": "0xDEAD", "effects": {"status": {"status": "success"}}})
        result = await self.client.execute_transaction_block(b"\x01\x02", ["sig"])

        self.assertEqual(result["digest"], "0xDEAD")
        self.assertEqual(
            self.requests[0]["params"],
            ["AQI=", ["sig"], {"showEffects": True}, "WaitForLocalExecution"],
        )

    async def test_gas_price(self):
        self.reply("750")
        self.assertEqual(await self.client.get_reference_gas_price(), 750)


if __name__ == "__main__":
    unittest.main()
