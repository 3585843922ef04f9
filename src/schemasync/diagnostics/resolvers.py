"""
Error message resolvers for schemasync.

Turns exceptions raised by repositories, the file system or the
reconciler into short, user-actionable messages. Resolvers are tried in
order; the first one that returns a diagnosis wins and a default resolver
always produces the error's own text.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable, List, Optional, Sequence, Union

from ..exceptions import SchemaParseError
from .specification import Specification


logger = logging.getLogger(__name__)


class ErrorCategory(str, Enum):
    """How a caller may react to a failure."""

    RETRYABLE = "retryable"
    SKIPPABLE = "skippable"
    FATAL = "fatal"


@dataclass(frozen=True)
class Diagnosis:
    """A resolved error message and its category."""

    message: str
    category: ErrorCategory = ErrorCategory.FATAL

    def __str__(self) -> str:
        return self.message


def inner_errors(error: BaseException) -> List[BaseException]:
    """Errors wrapped one level below ``error`` in a batch."""
    if isinstance(error, BaseExceptionGroup):
        return list(error.exceptions)
    if isinstance(error, SchemaParseError):
        return list(error.errors)
    return []


class ErrorMessageResolver(ABC):
    """Resolves a diagnosis for an error, or declines with ``None``."""

    @abstractmethod
    def resolve(self, error: BaseException) -> Optional[Diagnosis]:
        ...

    def resolve_message(self, error: BaseException) -> Optional[str]:
        diagnosis = self.resolve(error)
        return diagnosis.message if diagnosis else None


MessageFactory = Union[str, Callable[[BaseException], str]]


class RuleResolver(ErrorMessageResolver):
    """A (specification, message) pair."""

    def __init__(
        self,
        specification: Specification[BaseException],
        message: MessageFactory,
        category: ErrorCategory = ErrorCategory.FATAL,
    ):
        self.specification = specification
        self.message = message
        self.category = category

    def resolve(self, error: BaseException) -> Optional[Diagnosis]:
        if not self.specification.is_satisfied_by(error):
            return None
        message = self.message(error) if callable(self.message) else self.message
        return Diagnosis(message, self.category)


class CompositeErrorMessageResolver(ErrorMessageResolver):
    """Tries each resolver in registration order."""

    def __init__(self, resolvers: Optional[Iterable[ErrorMessageResolver]] = None):
        self.resolvers: List[ErrorMessageResolver] = list(resolvers or [])

    def add(self, resolver: ErrorMessageResolver) -> "CompositeErrorMessageResolver":
        self.resolvers.append(resolver)
        return self

    def add_rule(
        self,
        specification: Specification[BaseException],
        message: MessageFactory,
        category: ErrorCategory = ErrorCategory.FATAL,
    ) -> "CompositeErrorMessageResolver":
        return self.add(RuleResolver(specification, message, category))

    def resolve(self, error: BaseException) -> Optional[Diagnosis]:
        if error is None:
            return None
        for resolver in self.resolvers:
            diagnosis = resolver.resolve(error)
            if diagnosis is not None:
                return diagnosis
        return None


class BatchErrorResolver(ErrorMessageResolver):
    """
    Unwraps one level of a batch of errors.

    Each inner error, and failing that its direct cause, is passed to
    ``inner``; the first diagnosis found is returned. Declines when the
    error is not a batch or no inner error resolves.
    """

    def __init__(self, inner: ErrorMessageResolver):
        self.inner = inner

    def resolve(self, error: BaseException) -> Optional[Diagnosis]:
        for inner_error in inner_errors(error):
            diagnosis = self.inner.resolve(inner_error)
            if diagnosis is None and inner_error.__cause__ is not None:
                diagnosis = self.inner.resolve(inner_error.__cause__)
            if diagnosis is not None:
                return diagnosis
        return None


class CauseResolver(ErrorMessageResolver):
    """Resolves the causes of an error with ``inner``, nearest cause first."""

    def __init__(self, inner: ErrorMessageResolver, max_depth: int = 5):
        self.inner = inner
        self.max_depth = max_depth

    def resolve(self, error: BaseException) -> Optional[Diagnosis]:
        cause = error.__cause__
        depth = 0
        while cause is not None and depth < self.max_depth:
            diagnosis = self.inner.resolve(cause)
            if diagnosis is not None:
                return diagnosis
            cause = cause.__cause__
            depth += 1
        return None


class DefaultErrorResolver(ErrorMessageResolver):
    """Always matches, using the error's own message text."""

    def resolve(self, error: BaseException) -> Diagnosis:
        if isinstance(error, BaseExceptionGroup):
            # str() of a group carries the sub-exception count
            message = str(error)
        else:
            message = getattr(error, "message", None) or str(error)
        if not message:
            message = error.__class__.__name__
        return Diagnosis(message, ErrorCategory.FATAL)


class DiagnosticClassifier:
    """
    Ordered resolver chain that always yields a diagnosis.

    Order: batch unwrapping, the registered rules, the rules applied to the
    error's cause chain, then the default resolver.
    """

    def __init__(
        self,
        resolvers: Optional[Sequence[ErrorMessageResolver]] = None,
        default: Optional[ErrorMessageResolver] = None,
    ):
        self.rules = CompositeErrorMessageResolver(resolvers)
        self.default = default or DefaultErrorResolver()
        self.chain = CompositeErrorMessageResolver(
            [BatchErrorResolver(self.rules), self.rules, CauseResolver(self.rules)]
        )

    def add_rule(
        self,
        specification: Specification[BaseException],
        message: MessageFactory,
        category: ErrorCategory = ErrorCategory.FATAL,
    ) -> "DiagnosticClassifier":
        self.rules.add_rule(specification, message, category)
        return self

    def diagnose(self, error: BaseException) -> Diagnosis:
        try:
            diagnosis = self.chain.resolve(error)
        except Exception as e:
            # A broken rule must not hide the original error
            logger.warning(f"Error resolver failed for {type(error).__name__}: {e}")
            diagnosis = None
        return diagnosis or self.default.resolve(error)

    def resolve_message(self, error: BaseException) -> str:
        return self.diagnose(error).message

    def is_retryable(self, error: BaseException) -> bool:
        return self.diagnose(error).category == ErrorCategory.RETRYABLE
