from __future__ import annotations

import json

import pytest

from psyscore.engine import AnswerOption, Question, resolve
from psyscore.engine.aggregator import option_value, question_value


def _catalog(*pairs):
    return tuple(AnswerOption(option_id=o, value=v) for o, v in pairs)


# Catalog ids that do not start at 1, as stored tests often have.
FREQ = _catalog((6, 0), (7, 1), (8, 2), (9, 3), (10, 4), (11, 5), (12, 6))


def test_selected_options_are_summed():
    q = Question(id=100, relative_id=1, answer_catalog=FREQ)
    assert resolve(1, [q], {100: {8, 10}}) == 2 + 4


def test_unselected_and_unknown_options_ignored():
    q = Question(id=100, relative_id=1, answer_catalog=FREQ)
    assert resolve(1, [q], {100: {12, 999}}) == 6


def test_questions_sharing_relative_id_both_contribute():
    a = Question(id=100, relative_id=3, answer_catalog=_catalog((1, 2), (2, 5)))
    b = Question(id=200, relative_id=3, answer_catalog=_catalog((3, 7), (4, 11)))
    answers = {100: {2}, 200: {3}}

    expected = question_value(a, answers[100]) + question_value(b, answers[200])
    assert expected == 12
    assert resolve(3, [a, b], answers) == expected


def test_non_matching_questions_never_contribute():
    a = Question(id=100, relative_id=1, answer_catalog=_catalog((1, 10)))
    b = Question(id=200, relative_id=2, answer_catalog=_catalog((1, 50)))
    assert resolve(1, [a, b], {100: {1}, 200: {1}}) == 10


def test_missing_submission_counts_as_no_selection():
    q = Question(id=100, relative_id=1, answer_catalog=FREQ)
    assert resolve(1, [q], {}) == 0


def test_no_match_is_zero():
    q = Question(id=100, relative_id=1, answer_catalog=FREQ)
    assert resolve(42, [q], {100: {6, 7}}) == 0


def test_result_is_int():
    q = Question(id=1, relative_id=1, answer_catalog=_catalog((1, 3), (2, 4)))
    out = resolve(1, [q], {1: [1, 2]})
    assert out == 7 and isinstance(out, int)


# -------------------------
# STORED CATALOGS
# -------------------------
def test_from_stored_json_string():
    stored = json.dumps([
        {"id": 6, "title": "Never", "value": "0"},
        {"id": 7, "title": "Rarely", "value": "1"},
        {"id": 8, "title": "Often", "value": 4},
    ])
    q = Question.from_stored(id=5, relative_id=9, value=stored)
    assert q.answer_catalog == _catalog((6, 0), (7, 1), (8, 4))
    assert resolve(9, [q], {5: {7, 8}}) == 5


def test_from_stored_empty():
    q = Question.from_stored(id=5, relative_id=9, value=None)
    assert q.answer_catalog == ()


def test_from_stored_rejects_non_list():
    with pytest.raises(ValueError):
        Question.from_stored(id=5, relative_id=9, value='{"id": 1}')


@pytest.mark.parametrize(
    "raw, expected",
    [
        (3, 3),
        ("4", 4),
        (" 5 ", 5),
        (None, 0),
        # leading integer, like parseInt
        ("2.0", 2),
        ("3.5", 3),
        ("-1", -1),
        ("7 points", 7),
        (2.0, 2),
        (2.5, 2),
    ],
)
def test_option_value_coercion(raw, expected):
    assert option_value(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "", ".5"])
def test_option_value_rejects_non_numeric(raw):
    with pytest.raises(ValueError):
        option_value(raw)


def test_from_stored_with_decimal_string_value():
    stored = json.dumps([{"id": 1, "value": "2.0"}, {"id": 2, "value": "3.5"}])
    q = Question.from_stored(id=1, relative_id=1, value=stored)
    assert resolve(1, [q], {1: {1, 2}}) == 5
