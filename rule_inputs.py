# -*- coding: utf-8 -*-
# GP Rules: Field Input Parsing
# Copyright (c) 2025 Jan Sarivuo

"""
Syötekenttien käsittely.

Käyttöliittymän kentät ovat tekstiä. Näppäilytason funktiot
(sanitize_input, validate_input, safe_parse) eivät koskaan nosta
poikkeusta, vaan hylkäävät arvon paikallisesti. parse_field ja
check_rule_values nostavat InputErrorin, kun arvo on lopullisesti virheellinen.
"""

import math
import re
from typing import Optional

from gp_rules import AllGp, Between, GreaterThan, LessThan
from rule_errors import InputError

GP_MIN = 1      # poissulkeva alaraja
GP_MAX = 100    # sisältyvä yläraja

_NUMERIC = re.compile(r"^\d*\.?\d*$")


def sanitize_input(value: str, is_gp_field: bool = False) -> str:
    """
    Poistaa kaikki merkit paitsi numerot ja yhden desimaalipisteen.
    Katekentissä sallitaan yksi desimaali, hintakentissä kaksi.
    """
    sanitized = re.sub(r"[^\d.]", "", value or "")

    parts = sanitized.split(".")
    if len(parts) > 2:
        sanitized = parts[0] + "." + "".join(parts[1:])
        parts = sanitized.split(".")

    if len(parts) > 1:
        decimals = 1 if is_gp_field else 2
        sanitized = parts[0] + "." + parts[1][:decimals]

    return sanitized


def _in_domain(parsed: float, is_gp_field: bool) -> bool:
    if math.isnan(parsed) or math.isinf(parsed):
        return False
    if is_gp_field:
        return GP_MIN < parsed <= GP_MAX
    return parsed >= 0


def validate_input(value: str, is_gp_field: bool = False) -> bool:
    """Näppäilyn aikainen tarkistus. Tyhjä kenttä on sallittu."""
    if value == "":
        return True
    if not _NUMERIC.match(value):
        return False
    try:
        parsed = float(value)
    except ValueError:
        # pelkkä "." ei ole vielä luku, mutta näppäily saa jatkua
        return value == "."
    return _in_domain(parsed, is_gp_field)


def safe_parse(value: str, is_gp_field: bool = False) -> Optional[float]:
    """Lopullinen jäsennys. Palauttaa None, jos arvo puuttuu tai on virheellinen."""
    if value is None or value == "":
        return None
    try:
        parsed = float(value)
    except ValueError:
        return None
    if not _in_domain(parsed, is_gp_field):
        return None
    return parsed


def parse_field(value: str, is_gp_field: bool = False, field: str = "value") -> float:
    """Kuten safe_parse, mutta virheellinen arvo nostetaan InputErrorina."""
    parsed = safe_parse((value or "").strip(), is_gp_field)
    if parsed is None:
        raise InputError(field, _domain_message(field, is_gp_field))
    return parsed


def _domain_message(field: str, is_gp_field: bool) -> str:
    if is_gp_field:
        return f"{field} must be a number above {GP_MIN} and at most {GP_MAX}."
    return f"{field} must be a non-negative number."


def _check_number(value, field: str, is_gp_field: bool) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InputError(field, f"{field} must be a valid number.")
    if not _in_domain(float(value), is_gp_field):
        raise InputError(field, _domain_message(field, is_gp_field))


def check_rule_values(rule) -> None:
    """Tarkistaa säännön jokaisen kentän arvoalueen."""
    if isinstance(rule, LessThan):
        _check_number(rule.max, "max", False)
        _check_number(rule.gp, "gp", True)
    elif isinstance(rule, GreaterThan):
        _check_number(rule.min, "min", False)
        _check_number(rule.gp, "gp", True)
    elif isinstance(rule, Between):
        _check_number(rule.min, "min", False)
        _check_number(rule.max, "max", False)
        _check_number(rule.start_gp, "start_gp", True)
        _check_number(rule.end_gp, "end_gp", True)
    elif isinstance(rule, AllGp):
        _check_number(rule.gp, "gp", True)
    else:
        raise TypeError(f"Unknown rule kind: {type(rule).__name__}")
