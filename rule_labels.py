# -*- coding: utf-8 -*-
# GP Rules: Rule Labels
# Copyright (c) 2025 Jan Sarivuo

"""
Säännön rajat luettavassa muodossa virheilmoituksia varten.
Tunnistaa säännön `type`-kentästä, joten virheluokat voivat käyttää
tätä ilman riippuvuutta tietomalliin.
"""


def _money(value: float) -> str:
    return f"£{float(value):.2f}"


def rule_label(rule) -> str:
    kind = getattr(rule, "type", None)
    if kind == "less_than":
        return f"under {_money(rule.max)}"
    if kind == "greater_than":
        return f"from {_money(rule.min)} up"
    if kind == "between":
        return f"{_money(rule.min)}-{_money(rule.max)}"
    if kind == "all_gp":
        return "all prices"
    raise TypeError(f"Unknown rule kind: {type(rule).__name__}")
