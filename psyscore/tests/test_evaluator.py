from __future__ import annotations

import dataclasses
import random
import warnings
from concurrent.futures import ThreadPoolExecutor
from decimal import Decimal

import pytest

from psyscore.engine import (
    AnswerOption,
    DivisionByZeroError,
    ParsedFormula,
    Question,
    Term,
    TestResult,
    UnresolvedReferenceWarning,
    constant,
    evaluate,
    normalize,
    parse,
    reference,
    run,
    score,
)


def _q(id, relative_id, *pairs):
    return Question(
        id=id,
        relative_id=relative_id,
        answer_catalog=tuple(AnswerOption(option_id=o, value=v) for o, v in pairs),
    )


def _negated(op):
    return dataclasses.replace(op, sign=-op.sign)


# relative id 1 -> selected values 1 + 3 = 4
Q1 = _q(10, 1, (1, 1), (2, 2), (3, 3))
# relative id 2 -> selected value 5
Q2 = _q(20, 2, (4, 5), (5, 7))
QUESTIONS = [Q1, Q2]
ANSWERS = {10: {1, 3}, 20: {4}}


# -------------------------
# END-TO-END EXAMPLES
# -------------------------
def test_constant_item_over_two():
    parsed = parse("{item=10} / 2")
    assert evaluate(parsed, [], {}) == 10
    assert score(parsed, [], {}, metric_id=7) == TestResult(metric_id=7, value=500)


def test_sum_reference_plus_composed_constant():
    parsed = parse("{sum=q1 comp=2 item=3} / 1")
    assert evaluate(parsed, [Q1], {10: {1, 3}}) == 4 + 3 * 2
    assert score(parsed, [Q1], {10: {1, 3}}, metric_id=1).value == 1000


def test_reference_composition_multiplies_item():
    parsed = parse("{comp=q2 item=q1} / 1")
    assert evaluate(parsed, QUESTIONS, ANSWERS) == 4 * 5


def test_constant_composition_uses_its_own_value():
    parsed = parse("{comp=3 item=q1} / 1")
    assert evaluate(parsed, QUESTIONS, ANSWERS) == 12


# -------------------------
# SLOT DEFAULTS
# -------------------------
def test_missing_sum_equals_zero_constant():
    bare = ParsedFormula(terms=(Term(item=reference(1)),), divisor=3)
    explicit = ParsedFormula(terms=(Term(item=reference(1), sum=constant(0)),), divisor=3)
    assert score(bare, QUESTIONS, ANSWERS, 1) == score(explicit, QUESTIONS, ANSWERS, 1)


def test_missing_composition_equals_one_constant():
    bare = ParsedFormula(terms=(Term(item=reference(2), sum=reference(1)),), divisor=3)
    explicit = ParsedFormula(
        terms=(Term(item=reference(2), sum=reference(1), composition=constant(1)),), divisor=3
    )
    assert evaluate(bare, QUESTIONS, ANSWERS) == evaluate(explicit, QUESTIONS, ANSWERS) == 9


# -------------------------
# SIGNS
# -------------------------
@pytest.mark.parametrize("slot", ["sum", "composition", "item"])
def test_negating_one_operand_changes_only_its_contribution(slot):
    base = Term(sum=reference(1), composition=constant(2), item=reference(2))
    flipped = Term(**{
        "sum": base.sum, "composition": base.composition, "item": base.item,
        slot: _negated(getattr(base, slot)),
    })
    before = evaluate(ParsedFormula((base,), 1), QUESTIONS, ANSWERS)
    after = evaluate(ParsedFormula((flipped,), 1), QUESTIONS, ANSWERS)

    sum_part, item_part = 4, 5 * 2
    expected = {
        "sum": -sum_part + item_part,
        "composition": sum_part - item_part,
        "item": sum_part - item_part,
    }[slot]
    assert before == sum_part + item_part
    assert after == expected


# -------------------------
# ORDER INDEPENDENCE / CONCURRENCY
# -------------------------
FORMULA = "{sum=q1 comp=-2 item=q2} {item=-q1} {sum=3 item=q2} {comp=q1 item=7} / 6"


def test_permuting_terms_keeps_score():
    parsed = parse(FORMULA)
    expected = score(parsed, QUESTIONS, ANSWERS, 1)
    rng = random.Random(1234)
    for _ in range(10):
        terms = list(parsed.terms)
        rng.shuffle(terms)
        shuffled = ParsedFormula(tuple(terms), parsed.divisor)
        assert score(shuffled, QUESTIONS, ANSWERS, 1) == expected


def test_executor_matches_sequential():
    parsed = parse(FORMULA)
    with ThreadPoolExecutor(max_workers=4) as pool:
        parallel = run(parsed, QUESTIONS, ANSWERS, executor=pool)
    sequential = run(parsed, QUESTIONS, ANSWERS)
    assert parallel == sequential
    assert sequential.contributions == (4 - 10, -4, 3 + 5, 28)
    assert sequential.total == sum(sequential.contributions)


def test_fractional_constants_are_order_independent():
    parsed = parse("{item=0.05} {item=0.1} {item=0.35} / 4")
    reversed_terms = ParsedFormula(tuple(reversed(parsed.terms)), parsed.divisor)

    # 0.5 / 4 * 100 = 12.5 exactly
    assert evaluate(parsed, [], {}) == evaluate(reversed_terms, [], {}) == Decimal("0.50")
    assert score(parsed, [], {}, 1).value == score(reversed_terms, [], {}, 1).value == 13

    rng = random.Random(99)
    for _ in range(10):
        terms = list(parsed.terms)
        rng.shuffle(terms)
        assert score(ParsedFormula(tuple(terms), parsed.divisor), [], {}, 1).value == 13


def test_fractional_tie_rounds_on_exact_total():
    # 1.55 / 2 * 100 = 77.5
    parsed = parse("{item=0.05} {item=0.1} {item=1.4} / 2")
    assert evaluate(parsed, [], {}) == Decimal("1.55")
    assert score(parsed, [], {}, 1).value == 78


def test_fractional_composition_times_reference():
    parsed = parse("{sum=0.1 comp=0.2 item=q1} / 1")
    # 0.1 + 4 * 0.2
    assert evaluate(parsed, QUESTIONS, ANSWERS) == Decimal("0.9")
    assert score(parsed, QUESTIONS, ANSWERS, 1).value == 90


# -------------------------
# NORMALIZATION
# -------------------------
def test_divisor_zero_fails_closed():
    parsed = parse("{item=q1} / 0")
    with pytest.raises(DivisionByZeroError):
        score(parsed, QUESTIONS, ANSWERS, 1)


def test_divisor_zero_is_a_zero_division_error():
    with pytest.raises(ZeroDivisionError):
        normalize(5, 0)


@pytest.mark.parametrize(
    "total, divisor, expected",
    [
        (1, 3, 33),
        (2, 3, 67),
        (1, 8, 13),      # 12.5 -> away from zero
        (-1, 8, -13),
        (57, 200, 29),   # 28.5
        (0.285, 1, 29),  # no float drift at 28.499999...
        (7, -2, -350),
    ],
)
def test_normalize_rounds_half_away_from_zero(total, divisor, expected):
    assert normalize(total, divisor) == expected


# -------------------------
# UNRESOLVED REFERENCES
# -------------------------
def test_unresolved_reference_counts_zero_and_warns():
    parsed = parse("{sum=q99 item=q1} / 1")
    with pytest.warns(UnresolvedReferenceWarning) as record:
        evaluation = run(parsed, QUESTIONS, ANSWERS)
    assert evaluation.total == 4
    assert evaluation.unresolved == (99,)
    assert record[0].message.relative_id == 99


def test_unanswered_but_fetched_question_is_not_unresolved():
    parsed = parse("{item=q2} / 1")
    with warnings.catch_warnings():
        warnings.simplefilter("error", UnresolvedReferenceWarning)
        evaluation = run(parsed, QUESTIONS, {})
    assert evaluation.total == 0
    assert evaluation.unresolved == ()
