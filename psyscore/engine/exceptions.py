# psyscore/engine/exceptions.py
from __future__ import annotations

from typing import Optional


class MalformedFormulaError(ValueError):
    """
    Formula source cannot be decomposed into terms plus a divisor.

    `term` is the 1-based index of the offending term (None when the problem is
    outside any term, e.g. the divisor) and `slot` the role that failed.
    """

    def __init__(self, message: str, term: Optional[int] = None, slot: Optional[str] = None):
        self.term = term
        self.slot = slot
        where = []
        if term is not None:
            where.append(f"term {term}")
        if slot is not None:
            where.append(f"slot '{slot}'")
        prefix = f"{', '.join(where)}: " if where else ""
        super().__init__(f"{prefix}{message}")
        self.reason = message


class DivisionByZeroError(ZeroDivisionError):
    """Formula divisor is zero; no score is produced."""


class UnresolvedReferenceWarning(UserWarning):
    """A REFERENCE operand matched none of the fetched questions and counted as 0."""

    def __init__(self, relative_id: int):
        self.relative_id = relative_id
        super().__init__(f"relative id {relative_id} matches no fetched question; counted as 0")
