# psyscore/engine/parser.py
"""
Formula source -> ParsedFormula.

Syntax:

    {sum=q1 comp=2 item=3} {item=-q4} / 2

- each `{...}` is one term; `item` is mandatory, `sum` and `comp`
  (or `composition`) are optional. Slots may be separated by spaces or commas,
  terms may be separated by `;`.
- an operand is an optional sign, then either `q<relative id>` (question
  reference) or a number (constant).
- exactly one trailing `/ <number>` divisor, applied to the whole total.
"""
from __future__ import annotations

import logging
import re
from decimal import Decimal
from typing import Dict, List, Optional

from .exceptions import MalformedFormulaError
from .formula import Number, Operand, OperandKind, ParsedFormula, Term

logger = logging.getLogger("psyscore.engine")

_TERM_RE = re.compile(r"\s*\{(?P<body>[^{}]*)\}\s*;?")
_OPERAND_RE = re.compile(r"(?P<sign>[+-]?)(?P<ref>[qQ]?)(?P<num>\d+(?:\.\d+)?)")
_NUMBER_RE = re.compile(r"[+-]?\d+(?:\.\d+)?")
_SLOT_SPLIT_RE = re.compile(r"[\s,]+")
_EQUALS_RE = re.compile(r"\s*=\s*")

ROLES = {
    "sum": "sum",
    "comp": "composition",
    "composition": "composition",
    "item": "item",
}


def _number(text: str) -> Number:
    return Decimal(text) if "." in text else int(text)


def parse_operand(text: str, term: Optional[int] = None, slot: Optional[str] = None) -> Operand:
    m = _OPERAND_RE.fullmatch(text.strip())
    if not m:
        raise MalformedFormulaError(f"cannot parse operand {text!r}", term, slot)

    sign = -1 if m.group("sign") == "-" else 1
    num = m.group("num")
    if m.group("ref"):
        if "." in num:
            raise MalformedFormulaError(f"relative id must be an integer, got {num!r}", term, slot)
        return Operand(OperandKind.REFERENCE, int(num), sign)
    return Operand(OperandKind.CONSTANT, _number(num), sign)


def _parse_term(body: str, index: int) -> Term:
    slots: Dict[str, Operand] = {}
    normalized = _EQUALS_RE.sub("=", body).strip()
    tokens = [t for t in _SLOT_SPLIT_RE.split(normalized) if t]

    for token in tokens:
        role_text, eq, operand_text = token.partition("=")
        if not eq or not role_text:
            raise MalformedFormulaError(f"expected role=operand, got {token!r}", index)
        role = ROLES.get(role_text.lower())
        if role is None:
            raise MalformedFormulaError(f"unknown role {role_text!r}", index, role_text)
        if role in slots:
            raise MalformedFormulaError("slot given more than once", index, role)
        if not operand_text:
            raise MalformedFormulaError("operand is empty", index, role)
        slots[role] = parse_operand(operand_text, index, role)

    if "item" not in slots:
        raise MalformedFormulaError("missing mandatory slot", index, "item")

    return Term(item=slots["item"], sum=slots.get("sum"), composition=slots.get("composition"))


def _parse_divisor(rest: str, pos: int) -> Number:
    stripped = rest.strip()
    if not stripped:
        raise MalformedFormulaError("missing divisor (expected '/ <number>' at the end)", slot="divisor")
    if not stripped.startswith("/"):
        raise MalformedFormulaError(f"unexpected text at position {pos}: {stripped[:20]!r}")

    text = stripped[1:].strip()
    if not _NUMBER_RE.fullmatch(text):
        raise MalformedFormulaError(f"divisor must be a number, got {text!r}", slot="divisor")
    return _number(text)


def parse(source: str) -> ParsedFormula:
    """
    Parse a formula. Raises MalformedFormulaError naming the term/slot at fault;
    never returns a partial result.

    A zero divisor is accepted here and rejected when scoring.
    """
    if not isinstance(source, str) or not source.strip():
        raise MalformedFormulaError("formula is empty")

    terms: List[Term] = []
    pos = 0
    while True:
        m = _TERM_RE.match(source, pos)
        if not m:
            break
        terms.append(_parse_term(m.group("body"), len(terms) + 1))
        pos = m.end()

    rest = source[pos:]
    if rest.lstrip().startswith("{"):
        raise MalformedFormulaError("term is not closed with '}'", len(terms) + 1)
    if not terms and not rest.strip().startswith("/"):
        raise MalformedFormulaError(f"expected '{{' at position {pos}")

    divisor = _parse_divisor(rest, pos)
    if not terms:
        raise MalformedFormulaError("formula has no terms")

    parsed = ParsedFormula(terms=tuple(terms), divisor=divisor)
    logger.debug("parsed formula: %d term(s), divisor=%s", len(parsed.terms), parsed.divisor)
    return parsed
