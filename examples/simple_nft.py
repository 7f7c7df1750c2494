# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Simple NFT walkthrough against a live Sui node.

Mints a token, amends its description and sends it to a second account,
printing the collection of each account along the way.

The first account is read from ``SUI_PRIVATE_KEY_PATH`` and must own SUI on
the target network to pay for gas. The second account is generated and funded
with nothing, so the example hands it the token and then, as the first
account, burns a second freshly minted token.

Examples:
    ::

        SUI_PRIVATE_KEY_PATH=./account.json python -m examples.simple_nft
"""

import asyncio

from sui_nft.account import Account
from sui_nft.async_client import SuiClient
from sui_nft.config import NODE_URL, PRIVATE_KEY_PATH
from sui_nft.nft_client import ContractConfig, SimpleNftClient
from sui_nft.orchestrator import NftManager
from sui_nft.wallet import KeypairWallet


def print_collection(title: str, manager: NftManager):
    print(f"\n=== {title} ===")
    for token in manager.collection_snapshot():
        print(f"{token.id}: {token.name} - {token.description}")


async def main():
    alice = Account.load(PRIVATE_KEY_PATH)
    bob = Account.generate()

    print("\n=== Addresses ===")
    print(f"Alice: {alice.address().short()}")
    print(f"Bob: {bob.address().short()}")

    client = SuiClient(NODE_URL)
    nft_client = SimpleNftClient(client, ContractConfig.from_env())
    manager = NftManager(nft_client, KeypairWallet(client, alice))
    manager.add_status_listener(
        lambda state, message: message and print(f"  [{state.value}] {message}")
    )

    print((await manager.sync_wallet()).message)
    print_collection("Alice's NFTs", manager)

    # :!:>section_1
    result = await manager.mint(
        "Sui Cat", "A cat living on Sui", "https://example.com/cat.png"
    )
    print(result.message)
    # <:!:section_1
    assert result.success, result.message
    minted = [t for t in manager.collection_snapshot() if t.name == "Sui Cat"]
    token_id = minted[-1].id

    result = await manager.update(token_id, "A cat that moved")
    print(result.message)
    print_collection("Alice's NFTs", manager)

    result = await manager.transfer(token_id, str(bob.address()))
    print(result.message)
    print_collection("Alice's NFTs after the transfer", manager)

    print((await manager.refresh(str(bob.address()))).message)
    print_collection("Bob's NFTs", manager)

    result = await manager.mint("Short lived", "Burned right away", "https://x.y/z")
    print(result.message)
    doomed = [t for t in manager.collection_snapshot() if t.name == "Short lived"]
    result = await manager.burn(doomed[-1].id)
    print(result.message)
    print_collection("Alice's NFTs", manager)

    await client.close()


if __name__ == "__main__":
    asyncio.run(main())
