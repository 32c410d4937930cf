"""Internal custom exceptions for tblbind."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass


class TblbindError(Exception):
    """Base exception for all errors raised by tblbind."""

    pass


@dataclass(frozen=True)
class SourceLocation:
    """A position in a schema source file, as reported by the table parser."""

    file: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}"


class SchemaIngestionError(TblbindError):
    """Raised when the schema files cannot be parsed into records."""

    def __init__(self, message: str, location: SourceLocation | None = None):
        self.message = message
        self.location = location
        super().__init__(f"{location}: {message}" if location else message)


class FieldExtractionError(TblbindError):
    """
    Raised when a schema record lacks an expected field or has the wrong shape.

    Both the record and the field are named so that the schema can be fixed
    without reading generator internals.
    """

    def __init__(self, record: str, field: str, message: str):
        self.record = record
        self.field = field
        super().__init__(f"record '{record}', field '{field}': {message}")


class FieldError(FieldExtractionError):
    """Base class for errors raised by the record accessor."""

    pass


class FieldAbsentError(FieldError):
    """The field is missing or unset; callers may treat this as an empty value."""

    def __init__(self, record: str, field: str):
        super().__init__(record, field, "field is absent")


class FieldTypeMismatchError(FieldError):
    """The field exists but its value does not have the expected shape."""

    def __init__(self, record: str, field: str, expected: str, actual: object):
        self.expected = expected
        super().__init__(
            record,
            field,
            f"expected {expected}, found {type(actual).__name__} {actual!r}",
        )


class NamespaceNotFoundError(TblbindError):
    """Raised when the requested dialect is not declared in the schema."""

    def __init__(self, namespace: str, known: Sequence[str]):
        self.namespace = namespace
        self.known = tuple(known)
        names = ", ".join(self.known) if self.known else "none"
        super().__init__(f"dialect '{namespace}' not found (known dialects: {names})")


class ModelError(TblbindError):
    """Raised when an operation record cannot be turned into a model."""

    def __init__(self, operation: str, message: str):
        self.operation = operation
        super().__init__(f"operation '{operation}': {message}")


class ConstraintResolutionError(ModelError):
    """
    Raised when a constraint cannot be resolved, even as an opaque value.

    This happens for references to unknown records and for cyclic
    constraint chains.
    """

    pass


class ModelConsistencyError(ModelError):
    """Raised when an operation's declared shape is self-contradictory."""

    pass


class InconsistentCardinalityError(ModelConsistencyError):
    """Raised when variable-length fields violate the variadic policy."""

    pass


class DuplicateNameError(ModelConsistencyError):
    """Raised when two fields of one operation share a name."""

    def __init__(self, operation: str, name: str):
        self.name = name
        super().__init__(operation, f"duplicate field name '{name}'")


class TraitConflictError(ModelConsistencyError):
    """Raised when an applied trait disagrees with the declared fields."""

    def __init__(self, operation: str, trait: str, message: str):
        self.trait = trait
        super().__init__(operation, f"trait '{trait}' {message}")


class BindingError(TblbindError):
    """Base class for errors raised by generated bindings at runtime."""

    def __init__(self, operation: str, field: str, message: str):
        self.operation = operation
        self.field = field
        super().__init__(f"operation '{operation}', field '{field}': {message}")


class MalformedOperationError(BindingError):
    """
    Raised when a handle claiming an operation's name lacks a declared field.

    This is an invariant violation: a correctly built operation always has
    every exactly-one field.
    """

    pass


class MissingFieldError(BindingError):
    """Raised when a builder is finalized without a required field."""

    def __init__(self, operation: str, field: str):
        super().__init__(operation, field, "required field is not set")


class FieldSizeMismatchError(BindingError):
    """Raised when variadic groups that must share a size do not."""

    pass
