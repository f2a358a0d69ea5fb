"""In-memory Content Store: digest-keyed storage of IU sequences."""

from __future__ import annotations

import logging
import threading
from collections.abc import Sequence

from ascvm.model.iu import IU, IU_WIDTH

from ._protocols import NotFoundError, StoreError

logger = logging.getLogger(__name__)

# Odd, so adding it permutes the n-bit space.
_DIGEST_STEP = 0x9E5


def digest(chars: Sequence[IU], width: int = IU_WIDTH) -> IU:
    """Deterministic, order-sensitive fold of *chars* into one IU.

    Seeded with the sequence length; each character is mixed in by
    rotating the accumulator left by 5, XOR-ing the character and adding
    a fixed odd step.
    """
    mask = (1 << width) - 1
    h = IU(len(chars) & mask, width=width)
    step = _DIGEST_STEP & mask | 1
    for c in chars:
        h = h.rotate_left(5) ^ c
        h = IU((h.value + step) & mask, width=width)
    return h


class ContentStore:
    """Thread-safe mapping from digest to the sequence it was enfolded from.

    Enfolding the same sequence twice is idempotent.  Enfolding a different
    sequence that hashes to an occupied digest raises ``StoreError``.
    """

    def __init__(self, width: int = IU_WIDTH) -> None:
        self.width = width
        self._lock = threading.RLock()
        self._entries: dict[IU, tuple[IU, ...]] = {}

    def enfold(self, chars: Sequence[IU]) -> IU:
        seq = tuple(chars)
        for c in seq:
            if c.width != self.width:
                raise StoreError(f"character {c!r} is not {self.width} bits wide")
        key = digest(seq, self.width)
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None and existing != seq:
                raise StoreError(
                    f"digest collision at {key}: already holds a different "
                    f"{len(existing)}-element sequence"
                )
            self._entries[key] = seq
        logger.debug("enfolded %d chars under digest %s", len(seq), key)
        return key

    def unfold(self, digest: IU) -> tuple[IU, ...]:
        with self._lock:
            try:
                return self._entries[digest]
            except KeyError:
                raise NotFoundError(f"no content stored under digest {digest}") from None

    def __contains__(self, digest: object) -> bool:
        with self._lock:
            return digest in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
