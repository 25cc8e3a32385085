# psyscore/engine/aggregator.py
from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Any, Collection, Iterable, Mapping, Tuple

SubmittedAnswers = Mapping[int, Collection[int]]

_LEADING_INT_RE = re.compile(r"\s*([+-]?\d+)")


@dataclass(frozen=True)
class AnswerOption:
    option_id: int
    value: int


@dataclass(frozen=True)
class Question:
    """
    Question reference data as the engine sees it.

    `id` is the storage id (what submitted answers are keyed by);
    `relative_id` is the author-facing id formulas refer to.
    """
    id: int
    relative_id: int
    answer_catalog: Tuple[AnswerOption, ...] = field(default_factory=tuple)

    @classmethod
    def from_stored(cls, id: int, relative_id: int, value: str | list | None) -> "Question":
        """
        Build from the stored catalog, a JSON string such as
        '[{"id": 6, "title": "Never", "value": 0}, ...]' or the decoded list.
        """
        raw = json.loads(value) if isinstance(value, str) else (value or [])
        if not isinstance(raw, list):
            raise ValueError(f"question {id}: answer catalog must be a list")
        catalog = tuple(
            AnswerOption(option_id=int(opt["id"]), value=option_value(opt.get("value")))
            for opt in raw
        )
        return cls(id=int(id), relative_id=int(relative_id), answer_catalog=catalog)


def option_value(value: Any) -> int:
    """
    Catalog values are stored as ints or numeric strings. Strings (and floats)
    keep their leading integer, as parseInt does: "2.0" -> 2, "3.5" -> 3.
    """
    if value is None:
        return 0
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    m = _LEADING_INT_RE.match(str(value))
    if not m:
        raise ValueError(f"answer value must start with an integer, got {value!r}")
    return int(m.group(1))


def question_value(question: Question, selected: Collection[int]) -> int:
    if not selected:
        return 0
    chosen = set(selected)
    return sum(opt.value for opt in question.answer_catalog if opt.option_id in chosen)


def matching_questions(relative_id: int, questions: Iterable[Question]) -> Tuple[Question, ...]:
    return tuple(q for q in questions if q.relative_id == relative_id)


def resolve(relative_id: int, questions: Iterable[Question], answers: SubmittedAnswers) -> int:
    """
    Sum of selected option values over every fetched question with this
    relative id. Questions without a submitted answer count as no selection.
    """
    total = 0
    for question in matching_questions(relative_id, questions):
        total += question_value(question, answers.get(question.id, ()))
    return total
