# psyscore/engine/evaluator.py
from __future__ import annotations

import logging
import warnings
from concurrent.futures import Executor
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import FrozenSet, Iterable, Optional, Sequence, Tuple

from .aggregator import Question, SubmittedAnswers, resolve
from .exceptions import DivisionByZeroError, UnresolvedReferenceWarning
from .formula import Number, Operand, OperandKind, ParsedFormula, Term

logger = logging.getLogger("psyscore.engine")


@dataclass(frozen=True)
class TestResult:
    __test__ = False  # not a pytest class

    metric_id: int
    value: int


@dataclass(frozen=True)
class Evaluation:
    """Raw evaluation: total, per-term contributions (formula order), unresolved ids."""
    total: Number
    contributions: Tuple[Number, ...] = field(default_factory=tuple)
    unresolved: Tuple[int, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class _TermOutcome:
    value: Number
    unresolved: FrozenSet[int]


class _TermEvaluator:
    """Evaluates one term at a time against read-only question/answer data."""

    def __init__(self, questions: Sequence[Question], answers: SubmittedAnswers):
        self.questions = questions
        self.answers = answers
        self.known_ids = frozenset(q.relative_id for q in questions)

    def operand(self, op: Operand, missing: set) -> Number:
        if op.kind is OperandKind.CONSTANT:
            return op.value
        relative_id = int(op.value)
        if relative_id not in self.known_ids:
            missing.add(relative_id)
            return 0
        return resolve(relative_id, self.questions, self.answers)

    def __call__(self, term: Term) -> _TermOutcome:
        missing: set = set()
        item_value: Number = 0
        multiplier: Number = 1

        if term.sum is not None:
            item_value += self.operand(term.sum, missing) * term.sum.sign
        if term.composition is not None:
            multiplier = self.operand(term.composition, missing) * term.composition.sign
        item_value += self.operand(term.item, missing) * term.item.sign * multiplier

        return _TermOutcome(value=item_value, unresolved=frozenset(missing))


def run(
    parsed: ParsedFormula,
    questions: Iterable[Question],
    answers: SubmittedAnswers,
    executor: Optional[Executor] = None,
) -> Evaluation:
    """
    Evaluate every term and sum the contributions.

    Terms share no state, so with an `executor` they are mapped across it;
    the result is identical to the sequential path.
    """
    term_eval = _TermEvaluator(tuple(questions), answers)
    if executor is not None:
        outcomes = list(executor.map(term_eval, parsed.terms))
    else:
        outcomes = [term_eval(term) for term in parsed.terms]

    total: Number = 0
    unresolved: set = set()
    for index, outcome in enumerate(outcomes, start=1):
        logger.debug("term %d contributes %s", index, outcome.value)
        total += outcome.value
        unresolved |= outcome.unresolved

    for relative_id in sorted(unresolved):
        logger.warning("unresolved formula reference: relative_id=%s", relative_id)
        warnings.warn(UnresolvedReferenceWarning(relative_id), stacklevel=2)

    return Evaluation(
        total=total,
        contributions=tuple(o.value for o in outcomes),
        unresolved=tuple(sorted(unresolved)),
    )


def evaluate(
    parsed: ParsedFormula,
    questions: Iterable[Question],
    answers: SubmittedAnswers,
    executor: Optional[Executor] = None,
) -> Number:
    """Raw total before normalization."""
    return run(parsed, questions, answers, executor).total


def normalize(total: Number, divisor: Number) -> int:
    """
    round(total / divisor * 100), half away from zero, in Decimal so there is
    no intermediate float rounding.
    """
    if divisor == 0:
        raise DivisionByZeroError("formula divisor is 0")
    scaled = Decimal(str(total)) / Decimal(str(divisor)) * 100
    return int(scaled.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def score_with_details(
    parsed: ParsedFormula,
    questions: Iterable[Question],
    answers: SubmittedAnswers,
    metric_id: int,
    executor: Optional[Executor] = None,
) -> Tuple[TestResult, Evaluation]:
    # fail closed before touching any answers
    if parsed.divisor == 0:
        raise DivisionByZeroError("formula divisor is 0")
    evaluation = run(parsed, questions, answers, executor)
    result = TestResult(metric_id=metric_id, value=normalize(evaluation.total, parsed.divisor))
    return result, evaluation


def score(
    parsed: ParsedFormula,
    questions: Iterable[Question],
    answers: SubmittedAnswers,
    metric_id: int,
    executor: Optional[Executor] = None,
) -> TestResult:
    return score_with_details(parsed, questions, answers, metric_id, executor)[0]
