"""Filesystem operations for transactional export.

This module provides the reversible filesystem layer used by exports: a
postorder directory walk, a transaction that can undo moves, copies,
deletions and directory creations, and the ownership manifest that guards
destinations against deleting files packforge did not create.
"""

from packforge.fs.manifest import OwnershipManifest
from packforge.fs.transaction import (
    InverseAction,
    RemoveCreatedCopy,
    RemoveCreatedDirectoryChain,
    RestoreMoved,
    Transaction,
)
from packforge.fs.walk import EntryKind, WalkEntry, postorder_walk

__all__ = [
    "EntryKind",
    "InverseAction",
    "OwnershipManifest",
    "RemoveCreatedCopy",
    "RemoveCreatedDirectoryChain",
    "RestoreMoved",
    "Transaction",
    "WalkEntry",
    "postorder_walk",
]
