"""Evaluation engine module for formcalc.

This module provides functions for evaluating derived fields of a compiled
form. Expression errors never escape: they become tagged results that carry
a fallback value.

Key types:
- EvaluationError: Kind and message of a failed evaluation
- EvaluationResult: Outcome of evaluating one field
- PassResult: Outcome of one propagation pass
- run_pass: Evaluate a set of fields in dependency order
- evaluate_form: Pure function evaluating every derived field
"""

from ._engine import ResultListener, build_context, evaluate_field, evaluate_form, run_pass
from ._result import EvaluationError, EvaluationResult, PassResult

__all__ = [
    "EvaluationError",
    "EvaluationResult",
    "PassResult",
    "ResultListener",
    "build_context",
    "evaluate_field",
    "evaluate_form",
    "run_pass",
]
