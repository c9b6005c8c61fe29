# -*- coding: utf-8 -*-
# GP Rules API (FastAPI)
# Copyright (c) 2025 Jan Sarivuo

"""
FastAPI-pohjainen taustajärjestelmä katesääntöjen hallintaan ja
myyntihintojen ehdottamiseen.

Ominaisuudet:
- Käyttäjäkohtaisen sääntöjoukon lataus ja tallennus (SQLAlchemy)
- Kattavuuden tarkistus: aukot, päällekkäisyydet, nollaleveät säännöt
- Aukkojen korjausehdotukset ja niiden hyväksyminen
- Hintaehdotukset pullo- ja lasimyyntiin
- Konfiguraatio ympäristömuuttujista (.env)
"""

__author__ = "Jan Sarivuo"
__version__ = "1.0.0"

import os
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import create_engine, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from gap_repair import apply as apply_repair, propose, repair
from gp_rules import Rule
from pricing_engine import PriceSuggestion, PricingEngine
from rule_coverage import Gap, find_issues, validate
from rule_errors import (
    BuilderStateError,
    DegenerateRuleError,
    GapError,
    GpRuleError,
    InputError,
    OverlapError,
    PersistenceError,
    StructureError,
)
from rule_inputs import parse_field
from rule_labels import rule_label
from rule_store import RuleStore, init_schema

# -----------------------------------------------------------------------------
# 1. KONFIGURAATIO JA YMPÄRISTÖMUUTTUJAT
# -----------------------------------------------------------------------------

BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"

load_dotenv(ENV_PATH)

DATABASE_URL = os.getenv("GP_DATABASE_URL", "sqlite:///./gp_rules.db")
RULE_CACHE_TTL = int(os.getenv("GP_RULE_CACHE_TTL", "60"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# CORS-asetukset (sallitaan määritellyt front-endit)
ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]

logging.basicConfig(
    level=LOG_LEVEL,
    format='[%(asctime)s] %(levelname)s %(name)s: %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
log = logging.getLogger("GpRulesAPI")

# SQLite vaatii erillisen asetuksen, koska FastAPI ajaa endpointit säiepoolissa
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, echo=False, connect_args=_connect_args)
SessionLocal = sessionmaker(bind=engine, autoflush=False)

rule_store = RuleStore(SessionLocal, cache_ttl=RULE_CACHE_TTL)


def get_store() -> RuleStore:
    return rule_store


# -----------------------------------------------------------------------------
# 2. SOVELLUKSEN ALUSTUS
# -----------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_schema(engine)
    log.info("GP rules API started")
    yield


app = FastAPI(
    title="GP Rules API",
    description="Gross-profit rules per cost price and suggested selling prices.",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "OPTIONS"],
    allow_headers=["*"],
)

# Virheluokka -> HTTP-tilakoodi
ERROR_STATUS = [
    (InputError, 400),
    (OverlapError, 409),
    (BuilderStateError, 409),
    (GapError, 422),
    (DegenerateRuleError, 422),
    (StructureError, 422),
    (PersistenceError, 503),
]


@app.exception_handler(GpRuleError)
async def gp_rule_error_handler(request: Request, exc: GpRuleError):
    status = next((code for cls, code in ERROR_STATUS if isinstance(exc, cls)), 400)
    return JSONResponse(status_code=status, content=exc.to_response().model_dump())


# -----------------------------------------------------------------------------
# 3. TIETOMALLIT (Pydantic)
# -----------------------------------------------------------------------------


class RuleSetIn(BaseModel):
    rules: List[Rule]


class SaveRequest(RuleSetIn):
    accept_repair: bool = False  # täytetäänkö aukot automaattisesti ennen tallennusta


class GapModel(BaseModel):
    """Rajaton pää ilmaistaan None-arvolla."""
    lo: Optional[float] = None
    hi: Optional[float] = None


class RepairRequest(RuleSetIn):
    gaps: Optional[List[GapModel]] = None  # None = ehdota aukot, lista = hyväksytyt aukot


class RuleSetOut(BaseModel):
    user_id: str
    rules: List[Rule]
    flagged: List[Rule] = []


class OverlapModel(BaseModel):
    first: Rule
    second: Rule
    first_range: str
    second_range: str


class ValidationReport(BaseModel):
    ok: bool
    gaps: List[GapModel]
    overlaps: List[OverlapModel]
    degenerate: List[Rule]


class RepairResponse(BaseModel):
    gaps: List[GapModel]
    rules: List[Rule]
    flagged: List[Rule]


def _gap_models(gaps: List[Gap]) -> List[GapModel]:
    return [GapModel(**gap.as_dict()) for gap in gaps]


# -----------------------------------------------------------------------------
# 4. API RAJAPINNAT (ENDPOINTS)
# -----------------------------------------------------------------------------


@app.get("/health", tags=["meta"])
def health_check() -> dict:
    """Kevyt tilan tarkistus, joka varmistaa myös tietokantayhteyden."""
    try:
        with engine.connect() as conn:
            conn.execute(select(1))
    except SQLAlchemyError as exc:
        log.error(f"Health check failed: {exc}")
        raise HTTPException(status_code=500, detail=str(exc))

    return {"status": "ok", "service": "gp-rules-api"}


@app.get("/users/{user_id}/rules", response_model=RuleSetOut, tags=["rules"])
def get_rules(user_id: str, store: RuleStore = Depends(get_store)) -> RuleSetOut:
    return RuleSetOut(user_id=user_id, rules=store.load(user_id))


@app.put("/users/{user_id}/rules", response_model=RuleSetOut, tags=["rules"])
def save_rules(user_id: str, payload: SaveRequest, store: RuleStore = Depends(get_store)) -> RuleSetOut:
    """
    Tallentaa koko sääntöjoukon.

    - Aukot estävät tallennuksen, ellei accept_repair ole päällä.
    - Korjauksessa syntyneet 0 %-säännöt palautetaan flagged-listassa.
    """
    rules = list(payload.rules)
    flagged: List = []

    if payload.accept_repair:
        result = repair(rules)
        rules, flagged = result.rules, result.flagged

    try:
        validate(rules)
    except GpRuleError as exc:
        log.warning(f"Rejected rule set for user {user_id}: {exc.message}")
        raise

    store.save(user_id, rules)
    return RuleSetOut(user_id=user_id, rules=rules, flagged=flagged)


@app.post("/rules/validate", response_model=ValidationReport, tags=["rules"])
def validate_rules(payload: RuleSetIn) -> ValidationReport:
    """Palauttaa kaikki kattavuusongelmat kerralla nostamatta virhettä."""
    report = find_issues(payload.rules)
    return ValidationReport(
        ok=report.ok,
        gaps=_gap_models(report.gaps),
        overlaps=[
            OverlapModel(first=a, second=b, first_range=rule_label(a), second_range=rule_label(b))
            for a, b in report.overlaps
        ],
        degenerate=report.degenerate,
    )


@app.post("/rules/repair", response_model=RepairResponse, tags=["rules"])
def repair_rules(payload: RepairRequest) -> RepairResponse:
    """
    Kaksivaiheinen korjaus:
    1. Ilman gaps-kenttää palautetaan ehdotetut aukot (säännöt ennallaan).
    2. gaps-kentän kanssa hyväksytyt aukot täytetään.
    """
    rules = list(payload.rules)
    if payload.gaps is None:
        return RepairResponse(gaps=_gap_models(propose(rules)), rules=rules, flagged=[])

    accepted = [Gap.from_dict(g.model_dump()) for g in payload.gaps]
    result = apply_repair(rules, accepted)
    log.info(f"Applied {len(accepted)} gap repair(s)")
    return RepairResponse(gaps=_gap_models(accepted), rules=result.rules, flagged=result.flagged)


@app.get("/users/{user_id}/price", response_model=PriceSuggestion, tags=["pricing"])
def suggest_price(
    user_id: str,
    cost: str = Query(..., description="Kustannushinta (ALV 0 %)"),
    by_the_glass: bool = Query(False, description="Lasimyynti"),
    wine_type: str = Query("Dry", description="Dry, Sweet tai Sparkling"),
    gp: Optional[str] = Query(None, description="Käyttäjän oma kate ehdotuksen sijaan"),
    store: RuleStore = Depends(get_store),
) -> PriceSuggestion:
    cost_price = parse_field(cost, is_gp_field=False, field="cost")
    gp_override = parse_field(gp, is_gp_field=True, field="gp") if gp is not None else None

    rules = store.load(user_id)
    return PricingEngine.suggest(
        cost_price,
        rules,
        by_the_glass=by_the_glass,
        wine_type=wine_type,
        gp_override=gp_override,
    )
