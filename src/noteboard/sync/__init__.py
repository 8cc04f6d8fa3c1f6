"""Synchronization of the local note set with the store."""

from noteboard.sync.notices import Notice, NoticeBoard
from noteboard.sync.reconciliation import ReconciliationLayer
from noteboard.sync.submission import SubmissionGate

__all__ = [
    "Notice",
    "NoticeBoard",
    "ReconciliationLayer",
    "SubmissionGate",
]
