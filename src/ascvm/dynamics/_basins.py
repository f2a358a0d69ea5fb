"""Trajectory tracing and basin identification.

Because the IU space is finite, repeatedly applying a rule always ends in
a cycle.  The basin of a value is labelled by the smallest IU on the
cycle its trajectory falls into.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from ascvm.model.iu import IU, IU_WIDTH

from ._rules import Rule, RuleSet

logger = logging.getLogger(__name__)

BasinId = IU


@dataclass(frozen=True)
class Trajectory:
    """Values visited before the cycle (*transient*) and the cycle itself."""

    transient: tuple[IU, ...]
    cycle: tuple[IU, ...]

    @property
    def basin_id(self) -> BasinId:
        return min(self.cycle)

    def __len__(self) -> int:
        return len(self.transient) + len(self.cycle)


def trace(rule: Rule, start: IU) -> Trajectory:
    """Follow *rule* from *start* until a value repeats."""
    seen: dict[IU, int] = {}
    path: list[IU] = []
    x = start
    while x not in seen:
        seen[x] = len(path)
        path.append(x)
        x = rule(x)
    entry = seen[x]
    return Trajectory(transient=tuple(path[:entry]), cycle=tuple(path[entry:]))


class Dynamics:
    """Rule application and basin analysis for one governing rule.

    Parameters
    ----------
    rules : RuleSet
        Rules available to ``apply_rule``.  Defaults to the builtins.
    basin_rule : str
        Name of the rule whose attractors define basins.
    """

    def __init__(self, rules: RuleSet | None = None, basin_rule: str = "collatz") -> None:
        self.rules = rules if rules is not None else RuleSet()
        self.basin_rule = basin_rule
        self._rule = self.rules.get(basin_rule)
        self._basin_cache: dict[IU, BasinId] = {}

    def apply_rule(self, rule_name: str, iu: IU) -> IU:
        return self.rules.get(rule_name)(iu)

    def trajectory(self, iu: IU) -> Trajectory:
        return trace(self._rule, iu)

    def basin_id(self, iu: IU) -> BasinId:
        cached = self._basin_cache.get(iu)
        if cached is not None:
            return cached
        traj = self.trajectory(iu)
        basin = traj.basin_id
        # Every value on the trajectory shares the basin.
        for x in traj.transient + traj.cycle:
            self._basin_cache[x] = basin
        return basin

    def basins(self, width: int = IU_WIDTH) -> dict[BasinId, list[IU]]:
        """Partition the whole *width*-bit space by basin."""
        result: dict[BasinId, list[IU]] = {}
        for value in range(1 << width):
            iu = IU(value, width=width)
            result.setdefault(self.basin_id(iu), []).append(iu)
        logger.debug(
            "rule %s partitions %d values into %d basins",
            self.basin_rule, 1 << width, len(result),
        )
        return result
