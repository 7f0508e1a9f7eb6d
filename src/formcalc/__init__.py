"""Derived form fields: expressions, dependency graph and debounced propagation."""

__all__ = [
    "ChangePropagator",
    "CompiledExpression",
    "DependencyGraph",
    "Diagnostic",
    "DiagnosticKind",
    "ErrorKind",
    "EvaluationError",
    "EvaluationResult",
    "ExpressionError",
    "ExpressionMode",
    "ExpressionParseError",
    "ExpressionSpec",
    "ExpressionTypeError",
    "FieldChange",
    "FieldDescriptor",
    "FieldSnapshot",
    "FieldSpec",
    "FormGraph",
    "FormSchema",
    "ManualTimerScheduler",
    "PassResult",
    "PropagatorState",
    "Schedule",
    "SchemaLoadError",
    "Severity",
    "TimerScheduler",
    "UnresolvedReferenceError",
    "ValueContext",
    "build_form_graph",
    "compile_expression",
    "evaluate",
    "evaluate_field",
    "evaluate_form",
    "export_values_to_toml",
    "interpolate",
    "load_changes",
    "load_schema",
    "load_values",
    "run_pass",
    "schedule",
    "template_references",
]

from ._diagnostics import Diagnostic, DiagnosticKind, Severity
from ._eval_engine import EvaluationError, EvaluationResult, PassResult, evaluate_field, evaluate_form, run_pass
from ._expr import (
    CompiledExpression,
    ErrorKind,
    ExpressionError,
    ExpressionParseError,
    ExpressionTypeError,
    FieldSnapshot,
    UnresolvedReferenceError,
    ValueContext,
    compile_expression,
    evaluate,
)
from ._graph import DependencyGraph, Schedule, schedule
from ._io import SchemaLoadError, export_values_to_toml, load_changes, load_schema, load_values
from ._ir import FieldSpec, FormGraph, build_form_graph
from ._propagation import ChangePropagator, ManualTimerScheduler, PropagatorState, TimerScheduler
from ._schema import ExpressionMode, ExpressionSpec, FieldChange, FieldDescriptor, FormSchema
from ._template import interpolate, template_references
