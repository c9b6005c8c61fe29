# -*- coding: utf-8 -*-
# GP Rules: Rule-Set Builder
# Copyright (c) 2025 Jan Sarivuo

"""
Sääntöjoukon vaiheittainen rakentaminen.

Rakentaja on muuttumaton arvo: jokainen operaatio palauttaa uuden
rakentajan, ja epäonnistunut operaatio jättää vanhan ennalleen.
Tilat: tyhjä -> yleiskate (AllGp) tai oma sääntöjoukko
(LessThan + Between* + GreaterThan).
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from gap_repair import apply as apply_repair
from gp_rules import (
    AllGp,
    Between,
    GreaterThan,
    LessThan,
    check_structure,
    exit_gp,
    is_universal,
    sort_rules,
)
from pricing_engine import PricingEngine
from rule_coverage import check_overlaps, validate
from rule_errors import BuilderStateError, GpRuleError, StructureError
from rule_inputs import check_rule_values

log = logging.getLogger("GpRuleEngine")


def _is_zero_width(rule) -> bool:
    return isinstance(rule, Between) and rule.min >= rule.max


def _inserted_index(old: Sequence, new: Sequence) -> int:
    for i, rule in enumerate(new):
        if i >= len(old) or rule is not old[i]:
            return i
    return len(new) - 1


@dataclass(frozen=True)
class RuleSetBuilder:
    rules: Tuple = ()
    editing: Optional[int] = None

    @classmethod
    def from_rules(cls, rules: Sequence) -> "RuleSetBuilder":
        """Jatketaan tallennetun sääntöjoukon muokkausta."""
        check_structure(rules, allow_empty=True)
        return cls(rules=tuple(rules))

    # ----------------------------------------------------------------
    # Tila
    # ----------------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return not self.rules

    @property
    def is_universal(self) -> bool:
        return is_universal(self.rules)

    @property
    def is_custom(self) -> bool:
        return bool(self.rules) and not self.is_universal

    @property
    def editing_rule(self):
        return None if self.editing is None else self.rules[self.editing]

    def _find(self, kind) -> Optional[int]:
        for i, rule in enumerate(self.rules):
            if isinstance(rule, kind):
                return i
        return None

    def _at(self, index: int):
        if not 0 <= index < len(self.rules):
            raise BuilderStateError(f"No rule at position {index}.")
        return self.rules[index]

    # ----------------------------------------------------------------
    # Aloitus
    # ----------------------------------------------------------------

    def add_universal(self, gp: float = PricingEngine.DEFAULT_GP) -> "RuleSetBuilder":
        if self.rules:
            raise BuilderStateError("A universal GP can only be added to an empty rule set.")
        rule = AllGp(gp=gp)
        check_rule_values(rule)
        return replace(self, rules=(rule,), editing=None)

    def start_custom(self, discard: bool = False) -> "RuleSetBuilder":
        """Aloittaa oman sääntöjoukon. Olemassa olevat säännöt hylätään vain luvalla."""
        if self.rules and not discard:
            raise BuilderStateError("Discard the current rules before starting a custom rule set.")
        return RuleSetBuilder(rules=(LessThan(max=0, gp=0),), editing=0)

    # ----------------------------------------------------------------
    # Muokkaus
    # ----------------------------------------------------------------

    def open(self, index: int) -> "RuleSetBuilder":
        self._at(index)
        return replace(self, editing=index)

    def cancel(self) -> "RuleSetBuilder":
        return replace(self, editing=None)

    def _check_commit(self, candidate: List, index: int) -> None:
        # Muut nollaleveät luonnokset eivät estä tätä muutosta; finish() hylkää ne
        others = [r for i, r in enumerate(candidate) if i == index or not _is_zero_width(r)]
        check_overlaps(others)

    def commit(self, rule, index: Optional[int] = None) -> "RuleSetBuilder":
        """
        Vahvistaa muokatun säännön. Päällekkäisyys tai virheellinen arvo
        hylkää muutoksen ja rakentaja jää ennalleen.
        """
        if index is None:
            index = self.editing
        if index is None:
            raise BuilderStateError("No rule is open for editing.")

        current = self._at(index)
        if type(rule) is not type(current):
            raise StructureError(f"Cannot change a {current.type} rule into a {rule.type} rule.")

        candidate = list(self.rules)
        candidate[index] = rule
        try:
            check_rule_values(rule)
            self._check_commit(candidate, index)
        except GpRuleError as exc:
            log.warning(f"Rule edit rejected: {exc.message}")
            raise

        built = RuleSetBuilder(rules=tuple(candidate), editing=None)
        if isinstance(rule, LessThan):
            return built._after_less_than(rule)
        if isinstance(rule, GreaterThan):
            return built._after_greater_than(rule)
        return built

    def _after_less_than(self, less: LessThan) -> "RuleSetBuilder":
        if self._find(GreaterThan) is not None:
            return self
        greater = GreaterThan(min=less.max, gp=less.gp)
        return replace(self, rules=self.rules + (greater,), editing=len(self.rules))

    def _after_greater_than(self, greater: GreaterThan) -> "RuleSetBuilder":
        less_index = self._find(LessThan)
        if self._find(Between) is not None or less_index is None:
            return self
        less = self.rules[less_index]
        if greater.min <= less.max:
            return self

        bridge = Between(min=less.max, max=greater.min, start_gp=less.gp, end_gp=greater.gp)
        position = self._find(GreaterThan)
        rules = self.rules[:position] + (bridge,) + self.rules[position:]
        return replace(self, rules=rules, editing=position)

    def add_between(self) -> "RuleSetBuilder":
        """
        Lisää Between-säännön ensimmäiseen aukkoon naapureiden katteilla.
        Jos aukkoa ei ole, lisätään nollaleveä luonnos ennen GreaterThan-sääntöä.
        """
        if not self.is_custom:
            raise BuilderStateError("Between rules can only be added to a custom rule set.")

        settled = [r for r in self.rules if not _is_zero_width(r)]
        gaps = [gap for gap in check_overlaps(settled).gaps if gap.bounded]
        if gaps:
            repaired = apply_repair(self.rules, gaps[:1]).rules
            return replace(self, rules=tuple(repaired), editing=_inserted_index(self.rules, repaired))

        greater_index = self._find(GreaterThan)
        ordered = [r for r in sort_rules(settled) if not isinstance(r, GreaterThan)]
        if greater_index is not None:
            greater = self.rules[greater_index]
            anchor = greater.min
            start_gp = exit_gp(ordered[-1]) if ordered else greater.gp
            draft = Between(min=anchor, max=anchor, start_gp=start_gp, end_gp=greater.gp)
            rules = self.rules[:greater_index] + (draft,) + self.rules[greater_index:]
            return replace(self, rules=rules, editing=greater_index)

        if ordered:
            anchor = ordered[-1].max
            gp = exit_gp(ordered[-1])
        else:
            # Pelkkiä luonnoksia: aloitetaan nollasta oletuskatteella
            anchor, gp = 0, PricingEngine.DEFAULT_GP
        draft = Between(min=anchor, max=anchor, start_gp=gp, end_gp=gp)
        return replace(self, rules=self.rules + (draft,), editing=len(self.rules))

    def delete(self, index: int) -> "RuleSetBuilder":
        """Vain Between- ja AllGp-säännöt voi poistaa."""
        rule = self._at(index)
        if isinstance(rule, (LessThan, GreaterThan)):
            raise BuilderStateError("Less Than and Greater Than rules cannot be deleted.")

        rules = self.rules[:index] + self.rules[index + 1:]
        editing = self.editing
        if editing == index:
            editing = None
        elif editing is not None and editing > index:
            editing -= 1
        return replace(self, rules=rules, editing=editing)

    # ----------------------------------------------------------------
    # Valmis
    # ----------------------------------------------------------------

    def finish(self) -> List:
        """Täysi tarkistus ennen tallennusta. Palauttaa tallennettavan listan."""
        validate(self.rules)
        return list(self.rules)
