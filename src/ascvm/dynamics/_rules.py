"""Named transformation rules over IUs.

A rule is a pure, total function ``IU -> IU`` that preserves width.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator

from ascvm.model.iu import IU

Rule = Callable[[IU], IU]


class UnknownRuleError(KeyError):
    """Lookup of a rule name that is not registered."""


# ---------------------------------------------------------------------------
# Builtin rules
# ---------------------------------------------------------------------------

def identity(x: IU) -> IU:
    return x


def complement(x: IU) -> IU:
    return ~x


def rotl1(x: IU) -> IU:
    return x.rotate_left(1)


def rotr1(x: IU) -> IU:
    return x.rotate_right(1)


def increment(x: IU) -> IU:
    """x + 1, wrapping at 2**n."""
    return IU((x.value + 1) & x.mask, width=x.width)


def xorshift(x: IU) -> IU:
    """Marsaglia-style scramble restricted to the n-bit field."""
    x = x ^ x.shl(3)
    x = x ^ x.shr(5)
    return x ^ x.shl(1)


def collatz(x: IU) -> IU:
    """Even values halve; odd values map to ``3x + 1`` mod 2**n."""
    if x.value & 1 == 0:
        return x.shr(1)
    return IU((3 * x.value + 1) & x.mask, width=x.width)


BUILTIN_RULES: dict[str, Rule] = {
    "identity": identity,
    "complement": complement,
    "rotl1": rotl1,
    "rotr1": rotr1,
    "increment": increment,
    "xorshift": xorshift,
    "collatz": collatz,
}


class RuleSet:
    """Registry of named rules.

    Starts with the builtin rules unless *include_builtins* is False.
    """

    def __init__(self, rules: dict[str, Rule] | None = None, include_builtins: bool = True) -> None:
        self._rules: dict[str, Rule] = dict(BUILTIN_RULES) if include_builtins else {}
        if rules:
            for name, rule in rules.items():
                self.register(name, rule)

    def register(self, name: str, rule: Rule) -> None:
        if name in self._rules:
            raise ValueError(f"Rule already registered: {name}")
        self._rules[name] = rule

    def get(self, name: str) -> Rule:
        try:
            return self._rules[name]
        except KeyError:
            raise UnknownRuleError(
                f"Unknown rule '{name}'. Available: {sorted(self._rules)}"
            ) from None

    def __contains__(self, name: object) -> bool:
        return name in self._rules

    def __iter__(self) -> Iterator[str]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)
