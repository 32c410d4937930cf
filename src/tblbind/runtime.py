"""
Support code for generated operation bindings.

Generated modules import this module as `_rt`. It defines the protocols the
bindings expect from the IR runtime (`OperationHandle`, `OperationFactory`),
the base classes of every typed wrapper and builder, and the result type of
best-effort downcasts.

The value and attribute kinds below (`IntegerValue`, `StringAttr`, ...) are
structural protocols with no members: they document the constraint a field
was declared with and let type checkers tell fields apart, while any object
the IR runtime hands out satisfies them.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, Protocol, TypeVar, Union, cast, overload

from ._internal.exceptions import (
    BindingError,
    FieldSizeMismatchError,
    MalformedOperationError,
    MissingFieldError,
)

__all__ = [
    "BindingError",
    "Converted",
    "Downcast",
    "FieldSizeMismatchError",
    "FieldSlice",
    "MalformedOperationError",
    "MissingFieldError",
    "OperationBuilder",
    "OperationFactory",
    "OperationHandle",
    "TypedOperation",
    "Unchanged",
    "narrow",
]


class Value(Protocol):
    """An SSA value: an operation result or a block argument."""


class IntegerValue(Value, Protocol): ...


class IndexValue(Value, Protocol): ...


class FloatValue(Value, Protocol): ...


class ComplexValue(Value, Protocol): ...


class ShapedValue(Value, Protocol): ...


class TensorValue(ShapedValue, Protocol): ...


class MemRefValue(ShapedValue, Protocol): ...


class VectorValue(ShapedValue, Protocol): ...


class Type(Protocol):
    """An IR type, used to declare result types when building."""


class Region(Protocol): ...


class Block(Protocol):
    """A block, used as a successor."""


class Attribute(Protocol): ...


class UnitAttr(Attribute, Protocol): ...


class BoolAttr(Attribute, Protocol): ...


class IntegerAttr(Attribute, Protocol): ...


class FloatAttr(Attribute, Protocol): ...


class StringAttr(Attribute, Protocol): ...


class TypeAttr(Attribute, Protocol): ...


class SymbolRefAttr(Attribute, Protocol): ...


class ArrayAttr(Attribute, Protocol): ...


class DenseArrayAttr(Attribute, Protocol): ...


class DictionaryAttr(Attribute, Protocol): ...


class ElementsAttr(Attribute, Protocol): ...


class OperationHandle(Protocol):
    """
    The generic, dynamically-typed operation the bindings wrap.

    Operands, results, regions and successors are positional and must be in
    the order the schema declares them. Attributes are looked up by name.
    """

    @property
    def name(self) -> str: ...

    @property
    def operands(self) -> Sequence[Any]: ...

    @property
    def results(self) -> Sequence[Any]: ...

    @property
    def attributes(self) -> Mapping[str, Any]: ...

    @property
    def regions(self) -> Sequence[Any]: ...

    @property
    def successors(self) -> Sequence[Any]: ...


class OperationFactory(Protocol):
    """Creates generic operations; passing `results=None` asks it to infer them."""

    def create(
        self,
        name: str,
        *,
        operands: Sequence[Any],
        results: Sequence[Any] | None,
        attributes: Mapping[str, Any],
        regions: Sequence[Any],
        successors: Sequence[Any],
    ) -> OperationHandle: ...


V = TypeVar("V")
T = TypeVar("T")
W = TypeVar("W", bound="TypedOperation")


def narrow(kind: type[V], value: object) -> V:
    """
    Narrows a generic value to the kind its field was declared with.

    The IR runtime has already checked the value when the operation was
    built or parsed, so this only changes its static type.
    """
    return cast(V, value)


@dataclass(frozen=True)
class Converted(Generic[T]):
    """A successful downcast."""

    value: T


@dataclass(frozen=True)
class Unchanged:
    """A rejected downcast; `operation` is the very handle that was passed in."""

    operation: OperationHandle


Downcast = Union[Converted[T], Unchanged]


class FieldSlice(Sequence[T], Generic[T]):
    """
    A lazy, restartable view of a contiguous run of a handle's values.

    Nothing is copied: each access goes to the underlying sequence, so the
    view can be iterated any number of times.
    """

    __slots__ = ("_values", "_start", "_stop", "_convert")

    def __init__(
        self,
        values: Sequence[Any],
        start: int,
        stop: int,
        convert: Callable[[Any], T] | None = None,
    ):
        self._values = values
        self._start = start
        self._stop = max(start, stop)
        self._convert = convert

    def __len__(self) -> int:
        return self._stop - self._start

    @overload
    def __getitem__(self, index: int) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[T]: ...

    def __getitem__(self, index: int | slice) -> T | Sequence[T]:
        if isinstance(index, slice):
            start, stop, step = index.indices(len(self))
            if step != 1:
                return [self[i] for i in range(start, stop, step)]
            return FieldSlice(
                self._values, self._start + start, self._start + stop, self._convert
            )
        if index < 0:
            index += len(self)
        if not 0 <= index < len(self):
            raise IndexError("field index out of range")
        value = self._values[self._start + index]
        return self._convert(value) if self._convert else value

    def __iter__(self) -> Iterator[T]:
        for index in range(len(self)):
            yield self[index]

    def __repr__(self) -> str:
        return f"FieldSlice({list(self)!r})"


class TypedOperation:
    """
    Base class of every generated operation wrapper.

    A wrapper borrows a generic handle; it never copies the operation.
    Generated subclasses set `OPERATION_NAME` and add one property per field.
    """

    OPERATION_NAME: ClassVar[str]

    __slots__ = ("_operation",)

    def __init__(self, operation: OperationHandle):
        self._operation = operation

    @classmethod
    def try_from(cls: type[W], operation: OperationHandle) -> Downcast[W]:
        """Wraps `operation` if it has this class's name, else hands it back."""
        if operation.name == cls.OPERATION_NAME:
            return Converted(cls(operation))
        return Unchanged(operation)

    @property
    def operation_name(self) -> str:
        return self.OPERATION_NAME

    def as_operation(self) -> OperationHandle:
        """Returns the underlying generic handle."""
        return self._operation

    def duplicate(self: W) -> W:
        """Returns a new wrapper around the same underlying operation."""
        return type(self)(self._operation)

    __copy__ = duplicate

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypedOperation) or type(other) is not type(self):
            return NotImplemented
        return self._operation == other._operation

    __hash__ = None  # type: ignore[assignment]

    def __str__(self) -> str:
        return str(self._operation)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._operation!r})"

    def _sequence(self, kind: str) -> Sequence[Any]:
        return cast(Sequence[Any], getattr(self._operation, kind))

    def _malformed(self, field: str, message: str) -> MalformedOperationError:
        return MalformedOperationError(self.OPERATION_NAME, field, message)

    def _value(self, kind: str, field: str, index: int) -> Any:
        values = self._sequence(kind)
        if not -len(values) <= index < len(values):
            raise self._malformed(
                field, f"{kind} index {index} out of range for {len(values)} {kind}"
            )
        return values[index]

    def _value_in(self, kind: str, field: str, start: int, stop: int) -> Any:
        if stop - start != 1:
            raise self._malformed(field, f"expected one value, found {stop - start}")
        return self._value(kind, field, start)

    def _optional_value(self, kind: str, field: str, start: int, stop: int) -> Any:
        if stop <= start:
            return None
        return self._value_in(kind, field, start, stop)

    def _values(
        self,
        kind: str,
        field: str,
        start: int,
        stop: int,
        convert: Callable[[Any], T] | None = None,
    ) -> FieldSlice[T]:
        values = self._sequence(kind)
        if start < 0 or stop < start or stop > len(values):
            raise self._malformed(
                field, f"{kind} range {start}:{stop} out of range for {len(values)}"
            )
        return FieldSlice(values, start, stop, convert)

    def _count(self, kind: str) -> int:
        return len(self._sequence(kind))

    def _group_size(self, kind: str, field: str, fixed: int, groups: int) -> int:
        """Size of each of `groups` equally sized variable-length groups."""
        remaining = self._count(kind) - fixed
        if remaining < 0 or remaining % groups:
            raise self._malformed(
                field,
                f"{self._count(kind)} {kind} cannot be split into {fixed} fixed "
                f"values and {groups} equal groups",
            )
        return remaining // groups

    def _segment_bounds(
        self, kind: str, field: str, attribute: str, position: int
    ) -> tuple[int, int]:
        """Start and stop of the `position`-th group of a segment sizes attribute."""
        sizes = [int(size) for size in self._attribute(attribute)]
        if position >= len(sizes) or sum(sizes) != self._count(kind):
            raise self._malformed(
                field,
                f"segment sizes {sizes} do not describe {self._count(kind)} {kind}",
            )
        start = sum(sizes[:position])
        return start, start + sizes[position]

    def _attribute(self, name: str) -> Any:
        attributes = self._operation.attributes
        if name not in attributes:
            raise self._malformed(name, "required attribute is missing")
        return attributes[name]

    def _optional_attribute(self, name: str) -> Any:
        attributes = self._operation.attributes
        return attributes[name] if name in attributes else None

    def _attribute_or_default(self, name: str, default: object) -> Any:
        attributes = self._operation.attributes
        return attributes[name] if name in attributes else default

    def _has_attribute(self, name: str) -> bool:
        return name in self._operation.attributes


class OperationBuilder(Generic[W]):
    """
    Base class of every generated operation builder.

    Setters record values by field name; the generated `build` reads them
    back, fills in defaults and calls the factory.
    """

    OPERATION_NAME: ClassVar[str]

    def __init__(self, factory: OperationFactory):
        self._factory = factory
        self._fields: dict[str, Any] = {}

    def _set(self, field: str, value: Any) -> None:
        self._fields[field] = value

    def _is_set(self, field: str) -> bool:
        return field in self._fields

    def _require(self, field: str) -> Any:
        if field not in self._fields:
            raise MissingFieldError(self.OPERATION_NAME, field)
        return self._fields[field]

    def _get(self, field: str, default: Any) -> Any:
        value = self._fields.get(field)
        return default if value is None else value

    def _optional(self, field: str) -> tuple[Any, ...]:
        """The values of an optional field: empty or one element."""
        if field in self._fields and self._fields[field] is not None:
            return (self._fields[field],)
        return ()

    def _variadic(self, field: str) -> tuple[Any, ...]:
        return tuple(self._fields.get(field, ()))

    def _same_size(self, *fields: tuple[str, Sequence[Any]]) -> None:
        sizes = {len(values) for _, values in fields}
        if len(sizes) > 1:
            names = ", ".join(f"{name}={len(values)}" for name, values in fields)
            raise FieldSizeMismatchError(
                self.OPERATION_NAME,
                fields[0][0],
                f"variable-length groups must have the same size ({names})",
            )

    def _create(
        self,
        *,
        operands: Sequence[Any],
        results: Sequence[Any] | None,
        attributes: Mapping[str, Any],
        regions: Sequence[Any],
        successors: Sequence[Any],
    ) -> OperationHandle:
        return self._factory.create(
            self.OPERATION_NAME,
            operands=operands,
            results=results,
            attributes=attributes,
            regions=regions,
            successors=successors,
        )
