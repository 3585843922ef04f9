"""
Boolean specification combinators.

Specifications are small predicate objects that compose with ``&``, ``|``
and ``~`` so classification rules can be declared as data:

    not_found = Spec.instance_of(FileNotFoundError) | Spec.message_contains("not found")
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Iterable, Tuple, Type, TypeVar


T = TypeVar("T")
P = TypeVar("P")


class Specification(ABC, Generic[T]):
    """A predicate over values of type ``T``."""

    @abstractmethod
    def is_satisfied_by(self, obj: T) -> bool:
        ...

    def and_(self, other: "Specification[T]") -> "Specification[T]":
        return Composite(all, self, other)

    def or_(self, other: "Specification[T]") -> "Specification[T]":
        return Composite(any, self, other)

    def not_(self) -> "Specification[T]":
        return Transform(lambda result: not result, self)

    __and__ = and_
    __or__ = or_

    def __invert__(self) -> "Specification[T]":
        return self.not_()

    def __call__(self, obj: T) -> bool:
        return self.is_satisfied_by(obj)


class Predicate(Specification[T]):
    """Wraps a plain callable."""

    def __init__(self, predicate: Callable[[T], bool]):
        self.predicate = predicate

    def is_satisfied_by(self, obj: T) -> bool:
        return bool(self.predicate(obj))


class Composite(Specification[T]):
    """Combines sub-specification results with ``all`` or ``any``."""

    def __init__(
        self,
        composition: Callable[[Iterable[bool]], bool],
        *subspecifications: Specification[T],
    ):
        self.composition = composition
        self.subspecifications: Tuple[Specification[T], ...] = subspecifications

    def is_satisfied_by(self, obj: T) -> bool:
        # Generator keeps all/any short-circuiting
        return self.composition(spec.is_satisfied_by(obj) for spec in self.subspecifications)


class Transform(Specification[T]):
    """Maps the result of another specification."""

    def __init__(self, transformation: Callable[[bool], bool], specification: Specification[T]):
        self.transformation = transformation
        self.specification = specification

    def is_satisfied_by(self, obj: T) -> bool:
        return self.transformation(self.specification.is_satisfied_by(obj))


class Property(Specification[T], Generic[T, P]):
    """Applies a sub-specification to a projected value."""

    def __init__(self, getter: Callable[[T], P], specification: Specification[P]):
        self.getter = getter
        self.specification = specification

    def is_satisfied_by(self, obj: T) -> bool:
        return self.specification.is_satisfied_by(self.getter(obj))


class AnyOf(Specification[T], Generic[T, P]):
    """Satisfied when any projected element satisfies the sub-specification."""

    def __init__(self, getter: Callable[[T], Iterable[P]], specification: Specification[P]):
        self.getter = getter
        self.specification = specification

    def is_satisfied_by(self, obj: T) -> bool:
        return any(self.specification.is_satisfied_by(item) for item in self.getter(obj))


class Spec:
    """Factory helpers for common specifications."""

    @staticmethod
    def is_true(predicate: Callable[[Any], bool]) -> Specification[Any]:
        return Predicate(predicate)

    @staticmethod
    def always() -> Specification[Any]:
        return Predicate(lambda obj: True)

    @staticmethod
    def equals(value: Any) -> Specification[Any]:
        return Predicate(lambda obj: obj == value)

    @staticmethod
    def instance_of(*types: Type) -> Specification[Any]:
        return Predicate(lambda obj: isinstance(obj, types))

    @staticmethod
    def not_none(getter: Callable[[Any], Any]) -> Specification[Any]:
        return Property(getter, Predicate(lambda value: value is not None))

    @staticmethod
    def none(getter: Callable[[Any], Any]) -> Specification[Any]:
        return Spec.not_none(getter).not_()

    @staticmethod
    def non_empty_string(getter: Callable[[Any], str]) -> Specification[Any]:
        return Property(getter, Predicate(lambda value: bool(value)))

    @staticmethod
    def message_contains(text: str, case_sensitive: bool = False) -> Specification[Any]:
        """Substring match on ``str(obj)``."""
        if case_sensitive:
            return Predicate(lambda obj: text in str(obj))
        lowered = text.lower()
        return Predicate(lambda obj: lowered in str(obj).lower())

    @staticmethod
    def property(getter: Callable[[Any], Any], specification: Specification[Any]) -> Specification[Any]:
        return Property(getter, specification)

    @staticmethod
    def any_of(getter: Callable[[Any], Iterable[Any]], specification: Specification[Any]) -> Specification[Any]:
        return AnyOf(getter, specification)
