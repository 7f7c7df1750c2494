# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Client identification sent with every request to a Sui node.

Examples:
    ::

        headers = {Metadata.CLIENT_HEADER: Metadata.get_client_header_val()}
        # {"x-sui-nft-client": "sui-nft-sdk/0.1.0"}
"""

import importlib.metadata as metadata

PACKAGE_NAME = "sui-nft-sdk"


class Metadata:
    CLIENT_HEADER = "x-sui-nft-client"

    @staticmethod
    def get_client_header_val():
        """Return ``sui-nft-sdk/<installed version>``.

        Raises:
            PackageNotFoundError: If the distribution is not installed.
        """
        version = metadata.version(PACKAGE_NAME)
        return f"{PACKAGE_NAME}/{version}"
