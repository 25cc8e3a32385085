# psyscore/engine/__init__.py
from .formula import Operand, OperandKind, Term, ParsedFormula, constant, reference
from .exceptions import MalformedFormulaError, DivisionByZeroError, UnresolvedReferenceWarning
from .parser import parse
from .aggregator import AnswerOption, Question, resolve
from .evaluator import Evaluation, TestResult, evaluate, normalize, run, score, score_with_details
