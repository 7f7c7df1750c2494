"""
Runnable examples for the Sui NFT SDK.

Example Categories:
- **simple_nft**: mint, amend, transfer and burn tokens with a local key

Network settings come from ``sui_nft.config`` and can be overridden with the
``SUI_NODE_URL``, ``SIMPLE_NFT_PACKAGE_ID``, ``SIMPLE_NFT_MINT_CAP_ID`` and
``SUI_PRIVATE_KEY_PATH`` environment variables.
"""
