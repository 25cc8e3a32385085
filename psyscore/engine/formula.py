# psyscore/engine/formula.py
from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional, Tuple, Union

# fractional values are Decimal so sums stay exact and order independent
Number = Union[int, Decimal]


class OperandKind(str, enum.Enum):
    CONSTANT = "CONSTANT"
    REFERENCE = "REFERENCE"


@dataclass(frozen=True)
class Operand:
    """
    A single signed value.

    - CONSTANT: `value` is the literal magnitude.
    - REFERENCE: `value` is a question relative id, resolved at evaluation time.
    """
    kind: OperandKind
    value: Number
    sign: int = 1

    def __post_init__(self) -> None:
        if self.sign not in (1, -1):
            raise ValueError(f"Operand sign must be +1 or -1, got {self.sign!r}")
        if isinstance(self.value, float):
            object.__setattr__(self, "value", Decimal(str(self.value)))

    @property
    def is_reference(self) -> bool:
        return self.kind is OperandKind.REFERENCE


def constant(value: Number, sign: int = 1) -> Operand:
    return Operand(OperandKind.CONSTANT, value, sign)


def reference(relative_id: int, sign: int = 1) -> Operand:
    return Operand(OperandKind.REFERENCE, relative_id, sign)


@dataclass(frozen=True)
class Term:
    item: Operand
    sum: Optional[Operand] = None
    composition: Optional[Operand] = None  # multiplier; 1 when absent

    def operands(self) -> Tuple[Operand, ...]:
        return tuple(op for op in (self.sum, self.composition, self.item) if op is not None)


@dataclass(frozen=True)
class ParsedFormula:
    terms: Tuple[Term, ...] = field(default_factory=tuple)
    divisor: Number = 1

    def referenced_relative_ids(self) -> Tuple[int, ...]:
        """Relative ids used anywhere in the formula, sorted, without duplicates."""
        ids = {
            int(op.value)
            for term in self.terms
            for op in term.operands()
            if op.is_reference
        }
        return tuple(sorted(ids))
