"""ascvm dynamics — named rules, trajectories and basins.

Usage::

    from ascvm.dynamics import Dynamics

    dyn = Dynamics(basin_rule="collatz")
    dyn.apply_rule("rotl1", IU(1))   # IU(2)
    dyn.basin_id(IU(7))              # smallest value on the attractor
"""

from ._basins import BasinId, Dynamics, Trajectory, trace
from ._rules import BUILTIN_RULES, Rule, RuleSet, UnknownRuleError

__all__ = [
    "BUILTIN_RULES",
    "BasinId",
    "Dynamics",
    "Rule",
    "RuleSet",
    "Trajectory",
    "UnknownRuleError",
    "trace",
]
