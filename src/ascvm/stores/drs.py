"""In-memory DRS store: (subject, relation, object) triplets of IUs."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from ascvm.model.iu import IU

from ._protocols import DynamicsLike, StoreError, Triplet

logger = logging.getLogger(__name__)


class DrsStore:
    """Thread-safe set of triplets with exact and basin-level queries.

    Parameters
    ----------
    dynamics : DynamicsLike | None
        Default ``basin_id`` source for ``query_by_basin``.  Without it,
        basin queries must pass ``basin_id`` or they raise ``StoreError``.
    """

    def __init__(self, dynamics: DynamicsLike | None = None) -> None:
        self.dynamics = dynamics
        self._lock = threading.RLock()
        self._triplets: set[Triplet] = set()

    def insert(self, subject: IU, relation: IU, obj: IU) -> None:
        with self._lock:
            self._triplets.add(Triplet(subject, relation, obj))

    def query_exact(
        self,
        subject: IU | None = None,
        relation: IU | None = None,
        obj: IU | None = None,
    ) -> set[Triplet]:
        """Triplets matching every non-``None`` component."""
        pattern = (subject, relation, obj)
        with self._lock:
            return {
                t for t in self._triplets
                if all(p is None or p == v for p, v in zip(pattern, t))
            }

    def query_by_basin(
        self,
        subject: IU | None = None,
        relation: IU | None = None,
        obj: IU | None = None,
        basin_id: Callable[[IU], IU] | None = None,
    ) -> set[Triplet]:
        """Triplets whose components lie in the given basins.

        Each argument is a basin id; ``None`` matches any basin.  Stored
        components are classified with *basin_id* when given, which must be
        the same function that produced the query's basin ids; otherwise
        the store's own dynamics is used.
        """
        if basin_id is None:
            if self.dynamics is None:
                raise StoreError("basin queries need a dynamics module")
            basin_id = self.dynamics.basin_id
        signature = (subject, relation, obj)
        with self._lock:
            matches = {
                t for t in self._triplets
                if all(b is None or basin_id(v) == b for b, v in zip(signature, t))
            }
        logger.debug("basin query %s matched %d triplets", signature, len(matches))
        return matches

    def __contains__(self, triplet: object) -> bool:
        with self._lock:
            return triplet in self._triplets

    def __len__(self) -> int:
        with self._lock:
            return len(self._triplets)
