# -*- coding: utf-8 -*-
# GP Rules: Rule Model & Interval Normalizer
# Copyright (c) 2025 Jan Sarivuo

"""
Katesääntöjen tietomalli.

Sääntö on yksi neljästä tyypistä, jotka erotellaan `type`-kentän avulla:

- less_than    : kustannus < max            -> gp
- greater_than : kustannus > min            -> gp
- between      : min <= kustannus <= max    -> gp interpoloidaan start_gp -> end_gp
- all_gp       : kaikki kustannushinnat     -> gp (ei voi yhdistää muihin)

Moduuli vastaa myös välien normalisoinnista: jokaiselle välisäännölle
johdetaan väli (lo, hi), joiden perusteella säännöt järjestetään ja
niiden vierekkäisyys luokitellaan.
Yhteinen raja kuuluu alemmalle säännölle (ks. PricingEngine.gp_for).
"""

import math
from typing import Annotated, Any, Iterable, List, Literal, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from rule_errors import InputError, StructureError

# Kokonaisluvut pidetään kokonaislukuina, jotta tallennettu JSON säilyy
# tavulleen samana (13 ei muutu muotoon 13.0).
Number = Union[int, float]


class _RuleBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")


class LessThan(_RuleBase):
    type: Literal["less_than"] = "less_than"
    max: Number
    gp: Number


class GreaterThan(_RuleBase):
    type: Literal["greater_than"] = "greater_than"
    min: Number
    gp: Number


class Between(_RuleBase):
    type: Literal["between"] = "between"
    min: Number
    max: Number
    start_gp: Number
    end_gp: Number


class AllGp(_RuleBase):
    type: Literal["all_gp"] = "all_gp"
    gp: Number


Rule = Annotated[Union[LessThan, GreaterThan, Between, AllGp], Field(discriminator="type")]
IntervalRule = Union[LessThan, Between, GreaterThan]

_RULE_LIST = TypeAdapter(List[Rule])

# Tasatilanteissa järjestys: LessThan < Between < GreaterThan
KIND_PRECEDENCE = {LessThan: 0, Between: 1, GreaterThan: 2}

TOUCHING = "touching"
GAP = "gap"
OVERLAP = "overlap"


# --------------------------------------------------------------------
# Välien normalisointi
# --------------------------------------------------------------------


def range_of(rule) -> Tuple[float, float]:
    """
    Palauttaa säännön tehollisen välin (lo, hi).
    LessThan alkaa aina nollasta, GreaterThan jatkuu äärettömyyteen.
    """
    if isinstance(rule, LessThan):
        return 0.0, float(rule.max)
    if isinstance(rule, Between):
        return float(rule.min), float(rule.max)
    if isinstance(rule, GreaterThan):
        return float(rule.min), math.inf
    if isinstance(rule, AllGp):
        raise StructureError("A universal GP rule has no price range.")
    raise TypeError(f"Unknown rule kind: {type(rule).__name__}")


def interval_rules(rules: Iterable) -> List[IntervalRule]:
    return [r for r in rules if not isinstance(r, AllGp)]


def sort_key(rule) -> Tuple[float, int]:
    lo, _ = range_of(rule)
    return lo, KIND_PRECEDENCE[type(rule)]


def sort_rules(rules: Iterable) -> List[IntervalRule]:
    """Järjestää välisäännöt alarajan mukaan. AllGp jätetään pois."""
    return sorted(interval_rules(rules), key=sort_key)


def classify_adjacency(lower, upper) -> str:
    """Vertaa alemman säännön ylärajaa ylemmän säännön alarajaan."""
    _, hi = range_of(lower)
    lo, _ = range_of(upper)
    if hi == lo:
        return TOUCHING
    return GAP if hi < lo else OVERLAP


def entry_gp(rule) -> float:
    """Kate säännön alarajalla."""
    if isinstance(rule, Between):
        return rule.start_gp
    if isinstance(rule, (LessThan, GreaterThan, AllGp)):
        return rule.gp
    raise TypeError(f"Unknown rule kind: {type(rule).__name__}")


def exit_gp(rule) -> float:
    """Kate säännön ylärajalla."""
    if isinstance(rule, Between):
        return rule.end_gp
    if isinstance(rule, (LessThan, GreaterThan, AllGp)):
        return rule.gp
    raise TypeError(f"Unknown rule kind: {type(rule).__name__}")


# --------------------------------------------------------------------
# Rakennetarkistukset
# --------------------------------------------------------------------


def is_universal(rules: Sequence) -> bool:
    return len(rules) == 1 and isinstance(rules[0], AllGp)


def check_structure(rules: Sequence, allow_empty: bool = False) -> None:
    """
    Tarkistaa sääntötyyppien yhdistelmän:
    joko yksi AllGp, tai korkeintaan yksi LessThan ja yksi GreaterThan
    sekä vapaa määrä Between-sääntöjä.
    """
    if not rules:
        if allow_empty:
            return
        raise StructureError("You must have at least one rule.")

    if any(isinstance(r, AllGp) for r in rules):
        if len(rules) > 1:
            raise StructureError("A universal GP rule cannot be combined with other rules.")
        return

    if sum(isinstance(r, LessThan) for r in rules) > 1:
        raise StructureError("Only one Less Than rule is allowed.")
    if sum(isinstance(r, GreaterThan) for r in rules) > 1:
        raise StructureError("Only one Greater Than rule is allowed.")


# --------------------------------------------------------------------
# Tallennusmuoto
# --------------------------------------------------------------------


def dump_rules(rules: Iterable) -> List[dict]:
    """Tallennusmuoto: lista sanakirjoja, `type` ensimmäisenä kenttänä."""
    return [rule.model_dump() for rule in rules]


def load_rules(data: Any) -> List[Rule]:
    """
    Muuntaa tallennetun listan takaisin sääntöolioiksi.
    Virheellinen data nostetaan InputErrorina.
    """
    try:
        return _RULE_LIST.validate_python(data)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first.get("loc", ())) or "rules"
        raise InputError(field, f"Invalid rule data: {first.get('msg')}") from exc
