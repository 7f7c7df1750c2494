# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Command line front end for managing ``simple_nft`` tokens.

Supported Commands:
- list: Show the tokens owned by the account (or by ``--address``)
- mint: Mint a token to the account
- transfer: Send a token to another address
- update: Change the description of a token
- burn: Destroy a token
- generate-key: Create a new account file

Examples:
    ::

        python -m sui_nft.cli generate-key --private-key-path ./account.json
        python -m sui_nft.cli mint --name Cat --description "A cat" \\
            --image-url https://img/cat.png --private-key-path ./account.json
        python -m sui_nft.cli list --address 0xa1...

Every command prints one result line and exits with status 1 when the
operation did not succeed.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import sys
import tempfile
import unittest
from typing import List, Optional
from unittest.mock import patch

from . import config
from .account import Account
from .async_client import SuiClient
from .nft_client import ContractConfig, SimpleNftClient
from .orchestrator import NftManager, OperationResult, OperationState
from .testing import FakeLedger, FakeWallet, nft_record
from .wallet import KeypairWallet

COMMANDS = ["list", "mint", "transfer", "update", "burn", "generate-key"]


def load_account(path: str) -> Account:
    """Load an account from a JSON account file or a file holding a bare key.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the key cannot be parsed.
    """
    with open(path) as f:
        content = f.read().strip()
    if content.startswith("{"):
        return Account.load(path)
    return Account.load_key(content)


def log_status(state: OperationState, message: Optional[str]):
    if message:
        logging.info(f"[{state.value}] {message}")


async def run_command(
    parsed_args: argparse.Namespace, manager: NftManager
) -> OperationResult:
    command = parsed_args.command
    if command == "list":
        result = await manager.refresh(parsed_args.address)
        if result.success:
            for token in manager.collection_snapshot():
                print(f"{token.id}\t{token.name}\t{token.description}\t{token.image_url}")
        return result
    if command == "mint":
        return await manager.mint(
            parsed_args.name, parsed_args.description, parsed_args.image_url
        )
    if command == "transfer":
        return await manager.transfer(parsed_args.token, parsed_args.recipient)
    if command == "update":
        return await manager.update(parsed_args.token, parsed_args.description)
    return await manager.burn(parsed_args.token)


def parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Manage simple_nft tokens on Sui")
    parser.add_argument(
        "command", type=str, help="The command to execute", choices=COMMANDS
    )
    parser.add_argument(
        "--node-url", help="Sui JSON-RPC endpoint", type=str, default=config.NODE_URL
    )
    parser.add_argument(
        "--package-id",
        help="Package id where simple_nft is published",
        type=str,
        default=config.PACKAGE_ID,
    )
    parser.add_argument(
        "--mint-cap-id",
        help="Mint capability object, mints use mint_nft_with_cap when set",
        type=str,
        default=config.MINT_CAP_ID,
    )
    parser.add_argument(
        "--private-key-path",
        help="Account JSON file, or a file holding a hex or keystore private key",
        type=str,
        default=config.PRIVATE_KEY_PATH,
    )
    parser.add_argument("--address", help="Owner to list (list only)", type=str)
    parser.add_argument("--name", help="Token name (mint)", type=str)
    parser.add_argument(
        "--description", help="Token description (mint, update)", type=str
    )
    parser.add_argument("--image-url", help="Token image URL (mint)", type=str)
    parser.add_argument(
        "--token", help="Token object id (transfer, update, burn)", type=str
    )
    parser.add_argument("--recipient", help="New owner (transfer)", type=str)
    parser.add_argument("--verbose", help="Log progress", action="store_true")
    return parser


async def main(args: List[str]) -> int:
    """Parse ``args``, run one command and return the process exit status."""
    arg_parser = parser()
    parsed_args = arg_parser.parse_args(args)
    logging.basicConfig(
        level=logging.INFO if parsed_args.verbose else logging.WARNING,
        format="%(levelname)s %(message)s",
    )

    if parsed_args.command == "generate-key":
        if os.path.exists(parsed_args.private_key_path):
            arg_parser.error(f"Refusing to overwrite {parsed_args.private_key_path}")
        directory = os.path.dirname(parsed_args.private_key_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        account = Account.generate()
        account.store(parsed_args.private_key_path)
        print(f"Generated account {account.address()}")
        return 0

    account = None
    if os.path.exists(parsed_args.private_key_path):
        try:
            account = load_account(parsed_args.private_key_path)
        except Exception as e:
            arg_parser.error(f"Failed to load private key: {e}")
    elif parsed_args.command != "list" or parsed_args.address is None:
        arg_parser.error(
            f"Private key file not found: {parsed_args.private_key_path}"
        )

    client = SuiClient(parsed_args.node_url)
    try:
        manager = NftManager(
            SimpleNftClient(
                client,
                ContractConfig(
                    parsed_args.package_id, mint_cap_id=parsed_args.mint_cap_id
                ),
            ),
            KeypairWallet(client, account),
        )
        manager.add_status_listener(log_status)
        result = await run_command(parsed_args, manager)
    finally:
        await client.close()

    print(result.message)
    if result.warning:
        print(result.warning, file=sys.stderr)
    return 0 if result.success else 1


class Test(unittest.IsolatedAsyncioTestCase):
    PACKAGE = "0xabc"

    def setUp(self):
        self.ledger = FakeLedger([nft_record("0xTOK1", self.PACKAGE, {"name": "Cat"})])
        self.wallet = FakeWallet()
        self.manager = NftManager(
            SimpleNftClient(self.ledger, ContractConfig(self.PACKAGE)), self.wallet
        )

    async def test_list(self):
        parsed_args = parser().parse_args(["list"])
        with patch("builtins.print") as mock_print:
            result = await run_command(parsed_args, self.manager)
        self.assertTrue(result.success)
        printed = mock_print.call_args.args[0]
        self.assertTrue(printed.startswith("0xTOK1\tCat"))

    async def test_transfer(self):
        parsed_args = parser().parse_args(
            ["transfer", "--token", "0xTOK1", "--recipient", "0xB0B"]
        )
        result = await run_command(parsed_args, self.manager)
        self.assertEqual(result.message, "NFT Transferred! TX: 0xDEAD")
        self.assertEqual(
            self.wallet.payloads[0].calls[0].function, "transfer_nft"
        )

    async def test_update_requires_description(self):
        parsed_args = parser().parse_args(["update", "--token", "0xTOK1"])
        result = await run_command(parsed_args, self.manager)
        self.assertFalse(result.success)
        self.assertEqual(self.wallet.payloads, [])

    async def test_generate_key(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "keys", "account.json")
            with patch("builtins.print"):
                status = await main(["generate-key", "--private-key-path", path])
            self.assertEqual(status, 0)
            with open(path) as f:
                stored = json.load(f)
            self.assertEqual(
                str(load_account(path).address()), stored["account_address"]
            )

            with patch("sys.stderr"):
                with self.assertRaises(SystemExit):
                    await main(["generate-key", "--private-key-path", path])

    async def test_missing_key(self):
        with tempfile.TemporaryDirectory() as directory:
            path = os.path.join(directory, "missing.json")
            with patch("sys.stderr"):
                with self.assertRaises(SystemExit):
                    await main(["burn", "--token", "0x1", "--private-key-path", path])

    def test_load_bare_key(self):
        account = Account.generate()
        (file, path) = tempfile.mkstemp()
        with os.fdopen(file, "w") as f:
            f.write(account.private_key.keystore() + "\n")
        self.assertEqual(load_account(path), account)
        os.remove(path)


def run():
    sys.exit(asyncio.run(main(sys.argv[1:])))


if __name__ == "__main__":
    run()
