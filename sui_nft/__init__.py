# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Sui NFT SDK - manage ``simple_nft`` collectibles on the Sui ledger.

The package lists the tokens an address owns, builds the Move calls that mint,
transfer, amend and burn them, has those calls signed by a wallet, and keeps
a local copy of the collection in sync with the ledger afterwards.

Layout:
- **nft_client**: token decoding, ownership queries and transaction building
- **orchestrator**: ``NftManager``, one operation at a time with a single
  result message per operation
- **collection**: the in-memory collection snapshot
- **wallet**: the signing capability and a local keypair implementation
- **async_client**: JSON-RPC client for Sui full nodes
- **account**, **ed25519**, **account_address**, **bcs**, **type_tag**,
  **transactions**: keys, addresses and BCS transaction encoding
- **cli**: command line front end
- **testing**: in-memory ledger and wallet used by the tests

Examples:
    Minting from a script::

        import asyncio

        from sui_nft.account import Account
        from sui_nft.async_client import SuiClient
        from sui_nft.config import NODE_URL
        from sui_nft.nft_client import ContractConfig, SimpleNftClient
        from sui_nft.orchestrator import NftManager
        from sui_nft.wallet import KeypairWallet

        async def mint():
            client = SuiClient(NODE_URL)
            manager = NftManager(
                SimpleNftClient(client, ContractConfig.from_env()),
                KeypairWallet(client, Account.load("./account.json")),
            )
            result = await manager.mint("Cat", "A cat", "https://img/cat.png")
            print(result.message)
            await client.close()

        asyncio.run(mint())

Requirements:
    - httpx for JSON-RPC requests
    - pynacl for Ed25519 signing
    - base58 for object digests

License:
    Apache License 2.0
"""
