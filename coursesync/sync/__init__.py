"""Sync core: records, tagged store results, cache, resource sync, views, outcomes."""

from .outcomes import Notice, NoticeLevel, Notifier, Outcome, OutcomeKind
from .records import Record, ResourceSpec
from .resource import ResourceSync
from .results import Err, ErrorKind, Ok, RemoteError

__all__ = [
    "Err",
    "ErrorKind",
    "Notice",
    "NoticeLevel",
    "Notifier",
    "Ok",
    "Outcome",
    "OutcomeKind",
    "Record",
    "RemoteError",
    "ResourceSpec",
    "ResourceSync",
]
