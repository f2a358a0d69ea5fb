"""ascvm stores — Content Store and DRS Store collaborators.

The VM talks to stores only through the protocols below; ``ContentStore``
and ``DrsStore`` are the in-memory reference implementations.
"""

from ._protocols import (
    ContentStoreLike,
    DrsStoreLike,
    DynamicsLike,
    NotFoundError,
    StoreError,
    Triplet,
)
from .content import ContentStore, digest
from .drs import DrsStore

__all__ = [
    "ContentStore",
    "ContentStoreLike",
    "DrsStore",
    "DrsStoreLike",
    "DynamicsLike",
    "NotFoundError",
    "StoreError",
    "Triplet",
    "digest",
]
