# -*- coding: utf-8 -*-
# Business Logic: GP & Pricing Rules
# Copyright (c) 2025 Jan Sarivuo

"""
Keskitetty hinnoittelulogiikka (Business Logic Layer).

Tämä moduuli vastaa katteen valinnasta ja myyntihinnan laskennasta.
Eriyttämällä logiikan tänne, varmistamme että:
1. API ja sääntöjen rakentaja laskevat hinnat samalla kaavalla.
2. ALV-muutokset tarvitsee tehdä vain yhteen paikkaan.
"""

from decimal import Decimal, ROUND_HALF_UP
from typing import List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel

from gp_rules import AllGp, Between, GreaterThan, LessThan, sort_rules
from rule_errors import InputError

Pour = Union[int, str]


class PriceRow(BaseModel):
    label: str
    price: float


class PriceSuggestion(BaseModel):
    cost_price: float
    by_the_glass: bool
    wine_type: str
    gp_percent: float       # sääntöjen antama tarkka kate
    suggested_gp: int       # pyöristetty ehdotus
    applied_gp: float       # hinnoittelussa käytetty kate (ehdotus tai käyttäjän arvo)
    price_table: List[PriceRow]


def _round_to(value: float, step: str) -> Decimal:
    """Pyöristää lähimpään askeleeseen (puoliväli ylöspäin)."""
    unit = Decimal(step)
    steps = (Decimal(str(value)) / unit).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return (steps * unit).quantize(Decimal("0.01"))


def _between_gp(rule: Between, cost: float) -> float:
    if cost == rule.max:
        return rule.end_gp
    span = rule.max - rule.min
    return rule.start_gp - ((cost - rule.min) / span) * (rule.start_gp - rule.end_gp)


def _matches(rule, cost: float) -> bool:
    if isinstance(rule, LessThan):
        return cost < rule.max
    if isinstance(rule, GreaterThan):
        return cost > rule.min
    if isinstance(rule, Between):
        return rule.min < rule.max and rule.min <= cost <= rule.max
    if isinstance(rule, AllGp):
        return True
    raise TypeError(f"Unknown rule kind: {type(rule).__name__}")


class PricingEngine:
    # Määritellään verokanta (20 %)
    # Tämän muuttaminen päivittää hinnat koko järjestelmässä
    VAT_RATE = 0.20

    # Kate, jos käyttäjällä ei ole sääntöjä tai mikään sääntö ei osu
    DEFAULT_GP = 70

    # Pullon koko, johon kaikki annoshinnat suhteutetaan
    REFERENCE_VOLUME_ML = 750
    BOTTLE = "Bottle"

    # Lasimyynnissä pullohinnasta annetaan alennus
    BTG_BOTTLE_DISCOUNT = 0.05

    WINE_SIZES = {
        "Dry": ["125", "175", "250", "500", BOTTLE],
        "Sweet": ["75", BOTTLE],
        "Sparkling": ["150", BOTTLE],
    }

    @staticmethod
    def matching_rules(cost: float, rules: Sequence) -> List:
        """
        Säännöt, jotka osuvat kustannushintaan, alarajan mukaisessa järjestyksessä.
        Ensimmäinen on se, jonka katetta käytetään.
        """
        ordered = sort_rules(rules)
        matched = [rule for rule in ordered if _matches(rule, cost)]
        if not matched:
            # LessThan ja GreaterThan koskettavat suoraan: raja kuuluu LessThanille
            matched = [r for r in ordered if isinstance(r, LessThan) and cost == r.max]
        return matched

    @staticmethod
    def gp_for(cost: float, rules: Sequence) -> float:
        """
        Palauttaa katteen (%) kustannushinnalle.

        - Tyhjä sääntölista -> oletuskate (70 %)
        - AllGp-sääntö ohittaa kaikki muut
        - Muuten alimman osuvan säännön kate. Yhteinen raja kuuluu
          alemmalle säännölle, joten Between antaa ylärajallaan end_gp:n.
        """
        if not rules:
            return PricingEngine.DEFAULT_GP

        for rule in rules:
            if isinstance(rule, AllGp):
                return rule.gp

        matched = PricingEngine.matching_rules(cost, rules)
        if not matched:
            return PricingEngine.DEFAULT_GP

        rule = matched[0]
        if isinstance(rule, Between):
            return _between_gp(rule, cost)
        return rule.gp

    @staticmethod
    def price_for(cost: float, gp: float) -> float:
        """
        Laskee verollisen myyntihinnan kustannushinnasta ja katteesta.
        (Kustannus * 1.20) / (1 - kate)
        """
        if cost is None or cost < 0:
            raise InputError("cost", "Cost price must be a non-negative number.")
        if gp >= 100:
            raise InputError("gp", "GP must be below 100% to calculate a price.")
        if gp <= 0:
            raise InputError("gp", "GP must be above 0% to calculate a price.")

        return round(PricingEngine._reference_price(cost, gp), 2)

    @staticmethod
    def _reference_price(cost: float, gp: float) -> float:
        return (cost * (1 + PricingEngine.VAT_RATE)) / (1 - gp / 100)

    @staticmethod
    def pour_volume(pour: Pour) -> int:
        if isinstance(pour, str):
            if pour.lower() == PricingEngine.BOTTLE.lower():
                return PricingEngine.REFERENCE_VOLUME_ML
            if not pour.isdigit():
                raise InputError("pour", f"Unknown pour size: {pour}")
            pour = int(pour)
        if pour <= 0:
            raise InputError("pour", "Pour size must be a positive number of millilitres.")
        return pour

    @staticmethod
    def price_for_pour(cost: float, gp: float, pour: Pour, by_the_glass: bool = False) -> float:
        """
        Hinta annokselle. Pullohinta pyöristetään täyteen yksikköön,
        lasihinnat lähimpään puoleen yksikköön.
        """
        PricingEngine.price_for(cost, gp)  # arvojen tarkistus
        base = PricingEngine._reference_price(cost, gp)
        volume = PricingEngine.pour_volume(pour)

        if volume >= PricingEngine.REFERENCE_VOLUME_ML:
            if by_the_glass:
                base = base * (1 - PricingEngine.BTG_BOTTLE_DISCOUNT)
            scaled = base / PricingEngine.REFERENCE_VOLUME_ML * volume
            return float(_round_to(scaled, "1"))

        scaled = base / PricingEngine.REFERENCE_VOLUME_ML * volume
        return float(_round_to(scaled, "0.5"))

    @staticmethod
    def available_sizes(wine_type: str, by_the_glass: bool) -> List[str]:
        """Pullomyynnissä vain pullo, lasimyynnissä viinityypin annoskoot."""
        if wine_type not in PricingEngine.WINE_SIZES:
            raise InputError("wine_type", f"Unknown wine type: {wine_type}")
        if not by_the_glass:
            return [PricingEngine.BOTTLE]
        return list(PricingEngine.WINE_SIZES[wine_type])

    @staticmethod
    def price_table(cost: float, gp: float, wine_type: str = "Dry",
                    by_the_glass: bool = False) -> List[Tuple[str, float]]:
        rows = []
        for size in PricingEngine.available_sizes(wine_type, by_the_glass):
            label = size if size == PricingEngine.BOTTLE else f"{size}ml"
            rows.append((label, PricingEngine.price_for_pour(cost, gp, size, by_the_glass)))
        return rows

    @staticmethod
    def suggest(cost: float, rules: Sequence, by_the_glass: bool = False,
                wine_type: str = "Dry", gp_override: Optional[float] = None) -> PriceSuggestion:
        """Koko ehdotus: tarkka kate, pyöristetty kate ja hintataulukko."""
        gp = PricingEngine.gp_for(cost, rules)
        suggested = int(Decimal(str(gp)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        applied = suggested if gp_override is None else gp_override

        table = PricingEngine.price_table(cost, applied, wine_type, by_the_glass)
        return PriceSuggestion(
            cost_price=cost,
            by_the_glass=by_the_glass,
            wine_type=wine_type,
            gp_percent=gp,
            suggested_gp=suggested,
            applied_gp=applied,
            price_table=[PriceRow(label=label, price=price) for label, price in table],
        )
