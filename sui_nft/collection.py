# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

from __future__ import annotations

import unittest
from typing import Iterable, Optional, Tuple

from .nft_client import Token


class CollectionState:
    """The tokens owned by the connected address as of the last sync.

    The collection is only ever replaced as a whole. Readers get an immutable
    snapshot, so they observe either the old or the new collection, never a
    mix of both.
    """

    _tokens: Tuple[Token, ...]
    _owner: Optional[str]

    def __init__(self):
        self._tokens = ()
        self._owner = None

    def __len__(self) -> int:
        return len(self._tokens)

    def __str__(self) -> str:
        return f"CollectionState[owner: {self._owner}, tokens: {len(self._tokens)}]"

    @property
    def owner(self) -> Optional[str]:
        """Address the current snapshot was loaded for."""
        return self._owner

    def snapshot(self) -> Tuple[Token, ...]:
        return self._tokens

    def get(self, token_id: str) -> Optional[Token]:
        for token in self._tokens:
            if token.id == token_id:
                return token
        return None

    def replace(self, owner: str, tokens: Iterable[Token]):
        self._tokens = tuple(tokens)
        self._owner = owner

    def clear(self):
        self._tokens = ()
        self._owner = None


class Test(unittest.TestCase):
    def test_lifecycle(self):
        state = CollectionState()
        self.assertEqual(state.snapshot(), ())
        self.assertIsNone(state.owner)

        tokens = [Token("0x1", "A"), Token("0x2", "B")]
        state.replace("0xa1", tokens)
        before = state.snapshot()
        tokens.append(Token("0x3"))

        self.assertEqual(len(state), 2)
        self.assertEqual(state.owner, "0xa1")
        self.assertEqual(state.get("0x2"), Token("0x2", "B"))
        self.assertIsNone(state.get("0x3"))

        state.replace("0xa1", [Token("0x3")])
        self.assertEqual(before, (Token("0x1", "A"), Token("0x2", "B")))
        self.assertEqual(state.snapshot(), (Token("0x3"),))

        state.clear()
        self.assertEqual(state.snapshot(), ())
        self.assertIsNone(state.owner)


if __name__ == "__main__":
    unittest.main()
