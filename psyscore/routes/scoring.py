# psyscore/routes/scoring.py
from __future__ import annotations

import json
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from .. import models, schemas
from ..db import get_db
from ..settings import get_settings
from ..logging_config import log_event, log_failure, log_score

from psyscore.engine import (
    DivisionByZeroError,
    MalformedFormulaError,
    ParsedFormula,
    parse,
    score_with_details,
)

router = APIRouter(prefix="/scoring", tags=["scoring"])
settings = get_settings()


# -------------------------
# FORMULA CACHE
# -------------------------
# ParsedFormula is immutable, so a parse can be shared across requests.
@lru_cache(maxsize=settings.FORMULA_CACHE_SIZE)
def cached_parse(source: str) -> ParsedFormula:
    return parse(source)


def _parse_or_reject(source: str) -> ParsedFormula:
    if len(source) > settings.MAX_FORMULA_LENGTH:
        raise HTTPException(413, f"Formula longer than {settings.MAX_FORMULA_LENGTH} characters")
    return cached_parse(source)


# -------------------------
# EVENTS / FAILURE LOGGING
# -------------------------
def record_event(
    db: Session,
    action: models.ActionEnum,
    payload: dict,
    test_id: int | None = None,
    metric_id: int | None = None,
):
    evt = models.Event(
        test_id=test_id,
        metric_id=metric_id,
        action=action,
        actor_type="SYSTEM",
        payload=json.dumps(payload, ensure_ascii=False, default=str),
        app_version=settings.APP_VERSION,
        engine_version=settings.ENGINE_VERSION,
        schema_version=settings.SCHEMA_VERSION,
    )
    db.add(evt)
    db.commit()


def record_failure(
    db: Session,
    stage: str,
    error: Exception | str,
    formula: str,
    error_code: str,
    test_id: int | None = None,
) -> str:
    evt = models.Event(
        test_id=test_id,
        action=models.ActionEnum.FAILURE_LOG,
        actor_type="SYSTEM",
        payload=json.dumps(
            log_failure(error_code, {"stage": stage, "error": str(error), "formula": formula}),
            ensure_ascii=False,
        ),
        app_version=settings.APP_VERSION,
        engine_version=settings.ENGINE_VERSION,
        schema_version=settings.SCHEMA_VERSION,
    )
    db.add(evt)
    db.commit()
    db.refresh(evt)
    return str(evt.id)


# -------------------------
# SCORE
# -------------------------
@router.post("/score", response_model=schemas.ScoreResponse)
def score_test(body: schemas.ScoreRequest, db: Session = Depends(get_db)):
    """
    Score one completed attempt. The caller has already fetched the questions
    referenced by the answers and the test's formula + metric.
    """
    try:
        parsed = _parse_or_reject(body.formula)
        questions = [q.to_engine() for q in body.questions]
        result, evaluation = score_with_details(parsed, questions, body.submitted(), body.metric_id)
    except MalformedFormulaError as exc:
        record_failure(db, "parse", exc, body.formula, "MALFORMED_FORMULA", body.test_id)
        raise
    except DivisionByZeroError as exc:
        record_failure(db, "normalize", exc, body.formula, "DIVISION_BY_ZERO", body.test_id)
        raise

    unresolved = list(evaluation.unresolved)
    payload = log_score(result.metric_id, result.value, len(parsed.terms), unresolved)
    payload.update({"formula": body.formula, "raw_total": evaluation.total})
    record_event(db, models.ActionEnum.SCORE_TEST, payload, body.test_id, result.metric_id)

    return schemas.ScoreResponse(
        metric_id=result.metric_id,
        value=result.value,
        raw_total=evaluation.total,
        unresolved_references=unresolved,
    )


# -------------------------
# PARSE (author diagnostics)
# -------------------------
@router.post("/parse", response_model=schemas.ParseResponse)
def parse_formula(body: schemas.ParseRequest, db: Session = Depends(get_db)):
    try:
        parsed = _parse_or_reject(body.formula)
    except MalformedFormulaError as exc:
        record_failure(db, "parse", exc, body.formula, "MALFORMED_FORMULA")
        raise

    out = schemas.ParseResponse.from_parsed(parsed, body.relative_ids)
    log_event("PARSE_FORMULA", "formula parsed", {"terms": len(out.terms), "missing": out.missing_relative_ids})
    record_event(
        db,
        models.ActionEnum.PARSE_FORMULA,
        {"formula": body.formula, "missing_relative_ids": out.missing_relative_ids},
    )
    return out
