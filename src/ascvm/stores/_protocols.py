"""Collaborator protocols consumed by the VM.

These ``@runtime_checkable`` protocols describe the external stores and
the dynamics module only at their interface; any object with matching
methods can be attached to a machine state.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import NamedTuple, Protocol, runtime_checkable

from ascvm.model.iu import IU


class StoreError(Exception):
    """A store could not satisfy a request."""


class NotFoundError(StoreError, KeyError):
    """Lookup of a key the store does not hold."""


class Triplet(NamedTuple):
    subject: IU
    relation: IU
    obj: IU


@runtime_checkable
class DynamicsLike(Protocol):
    def basin_id(self, iu: IU) -> IU: ...

    def apply_rule(self, rule_name: str, iu: IU) -> IU: ...


@runtime_checkable
class ContentStoreLike(Protocol):
    width: int

    def enfold(self, chars: Sequence[IU]) -> IU: ...

    def unfold(self, digest: IU) -> tuple[IU, ...]: ...


@runtime_checkable
class DrsStoreLike(Protocol):
    def insert(self, subject: IU, relation: IU, obj: IU) -> None: ...

    def query_exact(
        self,
        subject: IU | None = None,
        relation: IU | None = None,
        obj: IU | None = None,
    ) -> set[Triplet]: ...

    def query_by_basin(
        self,
        subject: IU | None = None,
        relation: IU | None = None,
        obj: IU | None = None,
        basin_id: Callable[[IU], IU] | None = None,
    ) -> set[Triplet]: ...
