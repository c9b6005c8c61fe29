# -*- coding: utf-8 -*-
# GP Rules: Gap Repair
# Copyright (c) 2025 Jan Sarivuo

"""
Aukkojen automaattinen paikkaus.

Kaksivaiheinen protokolla:
1. propose(rules)        -> lista aukkoja (käyttäjä voi hyväksyä ne)
2. apply(rules, gaps)    -> uusi sääntölista, jossa hyväksytyt aukot on täytetty

Alkuperäisiä sääntöjä ei muuteta. Aukon kohdalle lisätään Between-sääntö,
jonka kate jatkuu naapurisäännöistä. Jos naapuri puuttuu, kate on 0 ja
sääntö merkitään käyttäjän tarkistettavaksi (flagged).
"""

import logging
import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from gp_rules import (
    AllGp,
    Between,
    GreaterThan,
    LessThan,
    entry_gp,
    exit_gp,
    interval_rules,
    range_of,
)
from rule_coverage import Gap, find_issues

log = logging.getLogger("GpRuleEngine")

# Kate, jota käytetään kun naapurisääntöä ei löydy
MISSING_GP = 0


@dataclass
class RepairResult:
    rules: List = field(default_factory=list)
    flagged: List = field(default_factory=list)  # tarkistettavat, 0 %-katteiset säännöt

    @property
    def needs_review(self) -> bool:
        return bool(self.flagged)


def _upper_bound(rule):
    """Säännön yläraja alkuperäisessä numeromuodossaan (int pysyy intinä)."""
    return rule.max


def _lower_bound(rule):
    return 0 if isinstance(rule, LessThan) else rule.min


def _ending_at(rules: Sequence, value: float):
    for rule in interval_rules(rules):
        if range_of(rule)[1] == value:
            return rule
    return None


def _starting_at(rules: Sequence, value: float):
    for rule in interval_rules(rules):
        if range_of(rule)[0] == value:
            return rule
    return None


def _as_number(value: float):
    """Kokonaislukuarvoinen liukuluku tallennetaan kokonaislukuna."""
    return int(value) if float(value).is_integer() else value


def propose(rules: Sequence) -> List[Gap]:
    """Havaitsee aukot. Ei muuta mitään."""
    return find_issues(rules).gaps


def _bridge(result: List, gap: Gap, flagged: List) -> None:
    left = _ending_at(result, gap.lo)
    right = _starting_at(result, gap.hi)

    bridge = Between(
        min=_upper_bound(left) if left is not None else _as_number(gap.lo),
        max=_lower_bound(right) if right is not None else _as_number(gap.hi),
        start_gp=exit_gp(left) if left is not None else MISSING_GP,
        end_gp=entry_gp(right) if right is not None else MISSING_GP,
    )
    if left is None or right is None:
        flagged.append(bridge)

    if left is not None:
        result.insert(result.index(left) + 1, bridge)
    elif right is not None:
        result.insert(result.index(right), bridge)
    else:
        result.append(bridge)


def _add_less_than(result: List, gap: Gap, flagged: List) -> None:
    right = _starting_at(result, gap.hi)
    rule = LessThan(
        max=_lower_bound(right) if right is not None else _as_number(max(gap.hi, 0.0)),
        gp=entry_gp(right) if right is not None else MISSING_GP,
    )
    if right is None:
        flagged.append(rule)
    result.insert(0, rule)


def _add_greater_than(result: List, gap: Gap, flagged: List) -> None:
    left = _ending_at(result, gap.lo)
    rule = GreaterThan(
        min=_upper_bound(left) if left is not None else _as_number(max(gap.lo, 0.0)),
        gp=exit_gp(left) if left is not None else MISSING_GP,
    )
    if left is None or left in flagged:
        flagged.append(rule)
    result.append(rule)


def apply(rules: Sequence, accepted_gaps: Sequence[Gap]) -> RepairResult:
    """
    Täyttää hyväksytyt aukot. Rajattomille aukoille lisätään puuttuva
    LessThan- tai GreaterThan-sääntö.
    """
    result = list(rules)
    flagged: List = []

    if any(isinstance(r, AllGp) for r in result):
        # Yleiskatteella ei ole välejä, joten paikattavaa ei ole
        return RepairResult(rules=result)

    for gap in accepted_gaps:
        if gap.bounded:
            _bridge(result, gap, flagged)
        elif math.isinf(gap.lo) and math.isinf(gap.hi):
            _add_less_than(result, Gap(-math.inf, 0.0), flagged)
            _add_greater_than(result, Gap(0.0, math.inf), flagged)
        elif math.isinf(gap.lo):
            _add_less_than(result, gap, flagged)
        else:
            _add_greater_than(result, gap, flagged)

    log.info(f"Repaired {len(accepted_gaps)} gap(s), {len(flagged)} rule(s) flagged for review")
    return RepairResult(rules=result, flagged=flagged)


def repair(rules: Sequence, gaps: Optional[Sequence[Gap]] = None) -> RepairResult:
    """Ei-interaktiivinen oikotie: havaitsee ja paikkaa kaikki aukot."""
    if gaps is None:
        gaps = propose(rules)
    return apply(rules, gaps)
