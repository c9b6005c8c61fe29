# -*- coding: utf-8 -*-
# GP Rules: Coverage Validator
# Copyright (c) 2025 Jan Sarivuo

"""
Sääntöjoukon kattavuuden tarkistus.

Välisäännöt järjestetään alarajan mukaan ja käydään läpi yhdellä
pyyhkäisyllä. Kaikki aukot ja päällekkäisyydet kerätään kerralla, jotta
korjaus (gap_repair) voi paikata ne yhdellä kertaa.
"""

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from gp_rules import (
    Between,
    GreaterThan,
    LessThan,
    check_structure,
    is_universal,
    range_of,
    sort_rules,
)
from rule_errors import DegenerateRuleError, GapError, OverlapError
from rule_inputs import check_rule_values


@dataclass(frozen=True)
class Gap:
    """Kattamaton väli (lo, hi). Rajattomalla aukolla lo = -inf tai hi = inf."""
    lo: float
    hi: float

    @property
    def bounded(self) -> bool:
        return not (math.isinf(self.lo) or math.isinf(self.hi))

    def describe(self) -> str:
        if math.isinf(self.lo) and math.isinf(self.hi):
            return "every price (no range rules)"
        if math.isinf(self.lo):
            return f"below £{self.hi:.2f} (missing Less Than rule)"
        if math.isinf(self.hi):
            return f"above £{self.lo:.2f} (missing Greater Than rule)"
        return f"£{self.lo:.2f} to £{self.hi:.2f}"

    def as_dict(self) -> dict:
        # JSON ei tunne äärettömyyttä, joten rajaton pää on None
        return {
            "lo": None if math.isinf(self.lo) else self.lo,
            "hi": None if math.isinf(self.hi) else self.hi,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Gap":
        lo = data.get("lo")
        hi = data.get("hi")
        return cls(
            lo=-math.inf if lo is None else float(lo),
            hi=math.inf if hi is None else float(hi),
        )


@dataclass
class CoverageReport:
    gaps: List[Gap] = field(default_factory=list)
    overlaps: List[Tuple[object, object]] = field(default_factory=list)
    degenerate: List[Between] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not (self.gaps or self.overlaps or self.degenerate)

    def raise_for_errors(self) -> None:
        """Nostaa vakavimman virheen: nollaleveä sääntö, päällekkäisyys, aukko."""
        if self.degenerate:
            raise DegenerateRuleError(self.degenerate)
        if self.overlaps:
            raise OverlapError(self.overlaps)
        if self.gaps:
            raise GapError(self.gaps)


def _is_degenerate(rule) -> bool:
    return isinstance(rule, Between) and rule.min >= rule.max


def _sweep(rules: Sequence) -> CoverageReport:
    report = CoverageReport()
    ordered = sort_rules(rules)

    report.degenerate = [r for r in ordered if _is_degenerate(r)]
    spans = [(r, range_of(r)) for r in ordered if not _is_degenerate(r)]

    # Päällekkäisyydet: jokainen pari, jonka välit leikkaavat enemmän kuin
    # yhdessä pisteessä. Järjestyksen ansiosta sisempi silmukka voi katketa.
    for i, (rule_a, (_, hi_a)) in enumerate(spans):
        for rule_b, (lo_b, _) in spans[i + 1:]:
            if lo_b >= hi_a:
                break
            report.overlaps.append((rule_a, rule_b))

    # Aukot: pidetään kirjaa pisimmälle katetusta rajasta
    covered_to: Optional[float] = None
    for _, (lo, hi) in spans:
        if covered_to is not None and lo > covered_to:
            report.gaps.append(Gap(covered_to, lo))
        covered_to = hi if covered_to is None else max(covered_to, hi)

    has_less = any(isinstance(r, LessThan) for r, _ in spans)
    has_greater = any(isinstance(r, GreaterThan) for r, _ in spans)

    if not spans:
        report.gaps.append(Gap(-math.inf, math.inf))
        return report
    if not has_less:
        report.gaps.insert(0, Gap(-math.inf, spans[0][1][0]))
    if not has_greater:
        report.gaps.append(Gap(covered_to, math.inf))
    return report


def find_issues(rules: Sequence) -> CoverageReport:
    """
    Kerää kaikki kattavuusongelmat nostamatta niitä.
    Rakenne- ja kenttävirheet (StructureError, InputError) nostetaan heti.
    """
    check_structure(rules)
    for rule in rules:
        check_rule_values(rule)

    if is_universal(rules):
        return CoverageReport()
    return _sweep(rules)


def validate(rules: Sequence) -> CoverageReport:
    """Tarkistaa sääntöjoukon ennen tallennusta. Palauttaa raportin, jos kaikki on kunnossa."""
    report = find_issues(rules)
    report.raise_for_errors()
    return report


def check_overlaps(rules: Sequence) -> CoverageReport:
    """
    Kevyempi tarkistus keskeneräiselle sääntöjoukolle: aukot sallitaan,
    nollaleveät ja päällekkäiset säännöt eivät.
    """
    check_structure(rules, allow_empty=True)
    if not rules or is_universal(rules):
        return CoverageReport()

    report = _sweep(rules)
    if report.degenerate:
        raise DegenerateRuleError(report.degenerate)
    if report.overlaps:
        raise OverlapError(report.overlaps)
    return report
