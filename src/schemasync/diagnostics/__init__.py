"""
Diagnostic classification package for schemasync.

This package provides:
- Boolean specification combinators for declarative rules
- Ordered error message resolvers with batch unwrapping
- Built-in rules for database and file system failures
"""

from .resolvers import (
    BatchErrorResolver,
    CauseResolver,
    CompositeErrorMessageResolver,
    DefaultErrorResolver,
    Diagnosis,
    DiagnosticClassifier,
    ErrorCategory,
    ErrorMessageResolver,
    RuleResolver,
)
from .rules import create_default_classifier, database_rules, file_system_rules, general_rules
from .specification import Spec, Specification

__all__ = [
    "BatchErrorResolver",
    "CauseResolver",
    "CompositeErrorMessageResolver",
    "DefaultErrorResolver",
    "Diagnosis",
    "DiagnosticClassifier",
    "ErrorCategory",
    "ErrorMessageResolver",
    "RuleResolver",
    "create_default_classifier",
    "database_rules",
    "file_system_rules",
    "general_rules",
    "Spec",
    "Specification",
]
