# Copyright © Aptos Foundation
# SPDX-License-Identifier: Apache-2.0

"""
Errors reported by the NFT manager.

Every failure of a user-triggered operation is classified by an
:class:`ErrorKind`. The query and build layers raise these exceptions; the
manager turns them into an ``OperationResult`` with a single message.
"""

from __future__ import annotations

import enum


class ErrorKind(enum.Enum):
    NOT_CONNECTED = "NotConnected"
    VALIDATION_FAILED = "ValidationFailed"
    BUSY = "Busy"
    SUBMISSION_FAILED = "SubmissionFailed"
    QUERY_FAILED = "QueryFailed"
    RECONCILE_FAILED = "ReconcileFailed"


class NftError(Exception):
    """Base class for classified NFT manager errors."""

    kind: ErrorKind

    def __init__(self, message: str, kind: ErrorKind):
        # Call the base class constructor with the parameters it needs
        super().__init__(message)
        self.message = message
        self.kind = kind


class NotConnected(NftError):
    """No wallet, or no address, is connected"""

    def __init__(self, message: str = "Please connect wallet first!"):
        super().__init__(message, ErrorKind.NOT_CONNECTED)


class ValidationFailed(NftError):
    """A required input is missing or empty"""

    field: str

    def __init__(self, message: str, field: str):
        super().__init__(message, ErrorKind.VALIDATION_FAILED)
        self.field = field


class Busy(NftError):
    """Another operation is already in flight"""

    def __init__(self, message: str = "Another operation is in progress"):
        super().__init__(message, ErrorKind.BUSY)


class SubmissionFailed(NftError):
    """The wallet rejected, or failed to submit, a transaction"""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.SUBMISSION_FAILED)


class QueryFailed(NftError):
    """Listing owned objects failed"""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.QUERY_FAILED)


class ReconcileFailed(NftError):
    """The refresh after a confirmed mutation failed"""

    def __init__(self, message: str):
        super().__init__(message, ErrorKind.RECONCILE_FAILED)
