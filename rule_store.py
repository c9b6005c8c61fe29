# -*- coding: utf-8 -*-
# GP Rules: Rule Set Storage (SQLAlchemy)
# Copyright (c) 2025 Jan Sarivuo

"""
Käyttäjäkohtaisten katesääntöjen tallennus.

Jokaisella käyttäjällä on yksi rivi gp_settings-taulussa. Sääntöjoukko
korvataan aina kokonaisuudessaan (ei osittaisia päivityksiä), ja
samanaikaisissa tallennuksissa viimeinen voittaa.

Säännöt tallennetaan JSON-tekstinä täsmälleen siinä muodossa kuin
dump_rules ne tuottaa, joten lataus ja uudelleentallennus säilyttävät
datan tavulleen samana.
"""

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence

from cachetools import TTLCache
from sqlalchemy import Column, DateTime, Integer, String, Text, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base

from gp_rules import dump_rules, load_rules
from rule_errors import InputError, PersistenceError

log = logging.getLogger("RuleStore")

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# --------------------------------------------------------------------
# Tietokantamalli
# --------------------------------------------------------------------


class GpSettings(Base):
    """Yhden käyttäjän sääntöjoukko."""

    __tablename__ = "gp_settings"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String, unique=True, index=True, nullable=False)
    rules = Column(Text, nullable=False)              # JSON-lista sääntöjä
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


def init_schema(engine) -> None:
    Base.metadata.create_all(engine)


def serialize_rules(rules: Sequence) -> str:
    return json.dumps(dump_rules(rules))


# --------------------------------------------------------------------
# Tallennusrajapinta
# --------------------------------------------------------------------


class RuleStore:
    """
    Lataa ja tallentaa sääntöjoukot.
    Luetut joukot pidetään lyhyen aikaa TTL-välimuistissa; tallennus
    korvaa välimuistin arvon heti.
    """

    def __init__(self, session_factory, cache_ttl: int = 60, cache_size: int = 1_000):
        self._sessions = session_factory
        self._cache: TTLCache = TTLCache(maxsize=cache_size, ttl=cache_ttl)

    def _fetch(self, session, user_id: str) -> Optional[GpSettings]:
        stmt = select(GpSettings).where(GpSettings.user_id == user_id)
        return session.execute(stmt).scalar_one_or_none()

    def load_raw(self, user_id: str) -> Optional[str]:
        """Tallennettu JSON sellaisenaan, tai None jos käyttäjällä ei ole sääntöjä."""
        try:
            with self._sessions() as session:
                row = self._fetch(session, user_id)
                return row.rules if row is not None else None
        except SQLAlchemyError as exc:
            log.exception(f"Loading rules failed for user {user_id}")
            raise PersistenceError(str(exc), user_id) from exc

    def load(self, user_id: str) -> List:
        if user_id in self._cache:
            return list(self._cache[user_id])

        raw = self.load_raw(user_id)
        if raw is None:
            return []

        try:
            rules = load_rules(json.loads(raw))
        except (ValueError, InputError) as exc:
            log.error(f"Stored rules for user {user_id} are unreadable: {exc}")
            raise PersistenceError(f"Stored rules are unreadable: {exc}", user_id) from exc

        self._cache[user_id] = tuple(rules)
        return rules

    def save(self, user_id: str, rules: Sequence) -> None:
        """
        Korvaa käyttäjän sääntöjoukon (upsert).
        Virhetilanteessa transaktio perutaan eikä välimuistia muuteta.
        """
        payload = serialize_rules(rules)
        try:
            with self._sessions() as session, session.begin():
                row = self._fetch(session, user_id)
                if row is None:
                    session.add(GpSettings(user_id=user_id, rules=payload))
                else:
                    row.rules = payload
        except SQLAlchemyError as exc:
            log.exception(f"Saving rules failed for user {user_id}")
            raise PersistenceError(str(exc), user_id) from exc

        self._cache[user_id] = tuple(rules)
        log.info(f"Saved {len(rules)} rule(s) for user {user_id}")
