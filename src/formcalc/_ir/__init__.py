"""Intermediate Representation (IR) module for formcalc.

This module contains pure data structures describing a compiled form,
separated from the pydantic schema models and from evaluation.

Key types:
- FieldSpec: Specification of a single field
- FormGraph: All field specs, the dependency graph and schema diagnostics
- build_form_graph: Builder function to construct a FormGraph from a FormSchema
"""

from ._builder import build_form_graph
from ._field_spec import FieldSpec
from ._form_graph import FormGraph

__all__ = [
    "FieldSpec",
    "FormGraph",
    "build_form_graph",
]
