# -*- coding: utf-8 -*-
# GP Rules: Error Taxonomy
# Copyright (c) 2025 Jan Sarivuo

"""
Katesääntömoottorin virheluokat.

Jokaisella virheellä on koneluettava koodi, ihmiselle tarkoitettu viesti
sekä lisätiedot (esim. päällekkäiset säännöt tai puuttuvat välit).
HTTP-kerros muuntaa nämä suoraan ErrorResponse-muotoon.
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel

from rule_labels import rule_label


class ErrorResponse(BaseModel):
    """Yhtenäinen virhevastaus API:lle."""
    code: str
    message: str
    details: Dict[str, Any] = {}


class GpRuleError(Exception):
    """Kaikkien katesääntövirheiden kantaluokka."""

    code = "GP_RULE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        return ErrorResponse(code=self.code, message=self.message, details=self.details)


class InputError(GpRuleError):
    """Kentän arvo ei ole numero tai se on sallitun alueen ulkopuolella."""

    code = "INPUT_ERROR"

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(message, {"field": field})


class OverlapError(GpRuleError):
    """Kaksi sääntöä kattaa saman kustannushinnan osavälin."""

    code = "OVERLAP_ERROR"

    def __init__(self, pairs: List[Tuple[Any, Any]]):
        self.pairs = list(pairs)
        first_a, first_b = self.pairs[0]
        message = (
            f"Rules {rule_label(first_a)} and {rule_label(first_b)} overlap. "
            "Please adjust the ranges."
        )
        details = {
            "overlaps": [
                {
                    "first": a.model_dump(),
                    "second": b.model_dump(),
                    "first_range": rule_label(a),
                    "second_range": rule_label(b),
                }
                for a, b in self.pairs
            ]
        }
        super().__init__(message, details)


class GapError(GpRuleError):
    """Sääntöjoukko ei kata koko hinta-akselia."""

    code = "GAP_ERROR"

    def __init__(self, gaps: List[Any]):
        self.gaps = list(gaps)
        described = ", ".join(gap.describe() for gap in self.gaps)
        super().__init__(
            f"Detected gaps in your pricing rules: {described}.",
            {"gaps": [gap.as_dict() for gap in self.gaps]},
        )


class DegenerateRuleError(GpRuleError):
    """Between-säännön min >= max (nollaleveä tai käänteinen väli)."""

    code = "DEGENERATE_RULE"

    def __init__(self, rules: List[Any]):
        self.rules = list(rules)
        labels = ", ".join(rule_label(r) for r in self.rules)
        super().__init__(
            f"Between rules must have a minimum below their maximum: {labels}.",
            {"rules": [r.model_dump() for r in self.rules]},
        )


class StructureError(GpRuleError):
    """Sääntötyyppien yhdistelmä on virheellinen (esim. AllGp muiden kanssa)."""

    code = "STRUCTURE_ERROR"


class BuilderStateError(GpRuleError):
    """Operaatio ei ole sallittu rakentajan nykyisessä tilassa."""

    code = "BUILDER_STATE_ERROR"


class PersistenceError(GpRuleError):
    """Tallennuskerroksen virhe. Viesti välitetään käyttäjälle sellaisenaan."""

    code = "PERSISTENCE_ERROR"

    def __init__(self, message: str, user_id: Optional[str] = None):
        super().__init__(message, {"user_id": user_id} if user_id else None)
