# psyscore/schemas.py
from __future__ import annotations

import json
from decimal import Decimal
from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

from .engine import ParsedFormula, Question
from .engine.aggregator import option_value


def _plain_number(v: Any):
    # engine keeps fractions as Decimal; JSON gets a float
    return float(v) if isinstance(v, Decimal) else v


class AnswerOptionIn(BaseModel):
    id: int
    title: Optional[str] = None
    value: int = 0

    @field_validator("value", mode="before")
    @classmethod
    def _coerce_value(cls, v: Any):
        # stored catalogs carry numeric strings as often as ints
        return option_value(v)


class QuestionIn(BaseModel):
    """
    A fetched question. The catalog may be given as `answers` (a list) or as
    `value`, the JSON string it is stored as; both go through
    Question.from_stored.
    """
    model_config = ConfigDict(from_attributes=True)

    id: int
    relative_id: int
    answers: List[AnswerOptionIn] = Field(default_factory=list)
    value: Optional[str] = None

    _question: Optional[Question] = PrivateAttr(default=None)

    @model_validator(mode="after")
    def _build_question(self):
        catalog = [a.model_dump() for a in self.answers] if self.answers else (self.value or None)
        try:
            self._question = Question.from_stored(self.id, self.relative_id, catalog)
        except (ValueError, KeyError, TypeError) as exc:
            raise ValueError(f"question {self.id}: invalid answer catalog ({exc})") from exc
        return self

    def to_engine(self) -> Question:
        return self._question


class SubmittedAnswerIn(BaseModel):
    question_id: int
    answer: List[int] = Field(default_factory=list)

    @field_validator("answer", mode="before")
    @classmethod
    def _coerce_list(cls, v: Any):
        if v is None:
            return []
        if isinstance(v, int):
            return [v]
        return v


class ScoreRequest(BaseModel):
    test_id: Optional[int] = None
    metric_id: int
    formula: str = Field(..., min_length=1)
    questions: List[QuestionIn] = Field(default_factory=list)
    answers: List[SubmittedAnswerIn] = Field(default_factory=list)

    def submitted(self) -> dict[int, set[int]]:
        out: dict[int, set[int]] = {}
        for a in self.answers:
            out.setdefault(a.question_id, set()).update(a.answer)
        return out


class ScoreResponse(BaseModel):
    metric_id: int
    value: int
    raw_total: Union[int, float]
    unresolved_references: List[int] = Field(default_factory=list)

    @field_validator("raw_total", mode="before")
    @classmethod
    def _decimal_to_float(cls, v: Any):
        return _plain_number(v)


class OperandOut(BaseModel):
    kind: str
    value: Union[int, float]
    sign: int

    @field_validator("value", mode="before")
    @classmethod
    def _decimal_to_float(cls, v: Any):
        return _plain_number(v)


class TermOut(BaseModel):
    sum: Optional[OperandOut] = None
    composition: Optional[OperandOut] = None
    item: OperandOut


class ParseRequest(BaseModel):
    formula: str = Field(..., min_length=1)
    relative_ids: Optional[List[int]] = None


class ParseResponse(BaseModel):
    terms: List[TermOut]
    divisor: Union[int, float]
    referenced_relative_ids: List[int] = Field(default_factory=list)
    missing_relative_ids: List[int] = Field(default_factory=list)

    @field_validator("divisor", mode="before")
    @classmethod
    def _decimal_to_float(cls, v: Any):
        return _plain_number(v)

    @classmethod
    def from_parsed(cls, parsed: ParsedFormula, relative_ids: Optional[List[int]] = None) -> "ParseResponse":
        def op(o):
            if o is None:
                return None
            return OperandOut(kind=o.kind.value, value=o.value, sign=o.sign)

        referenced = list(parsed.referenced_relative_ids())
        known = set(relative_ids) if relative_ids is not None else None
        return cls(
            terms=[TermOut(sum=op(t.sum), composition=op(t.composition), item=op(t.item)) for t in parsed.terms],
            divisor=parsed.divisor,
            referenced_relative_ids=referenced,
            missing_relative_ids=[r for r in referenced if known is not None and r not in known],
        )


class EventOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    test_id: Optional[int] = None
    metric_id: Optional[int] = None
    action: str
    actor_type: Optional[str] = None
    payload: dict = Field(default_factory=dict)

    @field_validator("action", mode="before")
    @classmethod
    def _enum_value(cls, v: Any):
        return v.value if hasattr(v, "value") else str(v)

    @field_validator("payload", mode="before")
    @classmethod
    def _decode_payload(cls, v: Any):
        if isinstance(v, dict):
            return v
        try:
            parsed = json.loads(v or "{}")
        except ValueError:
            return {}
        return parsed if isinstance(parsed, dict) else {}
