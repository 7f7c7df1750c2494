# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Static configuration read from the environment.

Environment Variables:
    SUI_NODE_URL: JSON-RPC endpoint of a Sui full node.
    SIMPLE_NFT_PACKAGE_ID: Package id where ``simple_nft`` is published.
    SIMPLE_NFT_MINT_CAP_ID: Optional mint capability object; when set, mints go
        through ``mint_nft_with_cap``.
    SUI_PRIVATE_KEY_PATH: JSON account file used by the command line.

Values are read once, at import time.
"""

import os
import os.path

# Sui full node endpoint
# Default: public testnet fullnode
NODE_URL = os.getenv("SUI_NODE_URL", "https://fullnode.testnet.sui.io:443")

# Package published on testnet with the simple_nft module
PACKAGE_ID = os.getenv(
    "SIMPLE_NFT_PACKAGE_ID",
    "0xfbbf9e467f594d891cadefaf1f5e764b5f5e85b055bf295cf5bfab8decf7e140",
)

# Unset or empty means the public mint entry point
MINT_CAP_ID = os.getenv("SIMPLE_NFT_MINT_CAP_ID") or None

PRIVATE_KEY_PATH = os.getenv(
    "SUI_PRIVATE_KEY_PATH",
    os.path.expanduser("~/.sui_nft/account.json"),
)
