"""
Typed access to the records of a `llvm-tblgen --dump-json` dump.

The dump is a JSON object mapping record names to field objects. Keys that
start with `!` are metadata (`!name`, `!superclasses`, `!anonymous`); the
top-level `!instanceof` entry maps every class to the names of the records
derived from it. Field values are encoded as:

- strings and code blocks as JSON strings, `int` and `bit` as numbers;
- lists as JSON arrays;
- record references as `{"kind": "def", "def": <name>, ...}`;
- dags as `{"kind": "dag", "operator": <def>, "args": [[<value>, <name>], ...]}`;
- unset (`?`) values as `null`.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import Any

from . import exceptions as _e

_MISSING: Any = object()


@dataclass(frozen=True)
class DagArgument:
    """One `value:$name` entry of a dag."""

    value: Record
    name: str | None


@dataclass(frozen=True)
class Dag:
    operator: str
    arguments: tuple[DagArgument, ...]


class Record:
    """A single definition in the record keeper."""

    def __init__(self, keeper: RecordKeeper, name: str, data: Mapping[str, Any]):
        self._keeper = keeper
        self._name = name
        self._data = data

    @property
    def name(self) -> str:
        return self._name

    @property
    def keeper(self) -> RecordKeeper:
        return self._keeper

    @property
    def superclasses(self) -> tuple[str, ...]:
        return tuple(self._data.get("!superclasses", ()))

    @property
    def is_anonymous(self) -> bool:
        return bool(self._data.get("!anonymous", False))

    def is_subclass_of(self, class_name: str) -> bool:
        return class_name in self.superclasses

    def has_field(self, field: str) -> bool:
        return self._data.get(field) is not None

    def _raw(self, field: str, default: Any) -> Any:
        value = self._data.get(field)
        if value is None:
            if default is _MISSING:
                raise _e.FieldAbsentError(self._name, field)
            return _MISSING
        return value

    def get_string(self, field: str, default: Any = _MISSING) -> str:
        value = self._raw(field, default)
        if value is _MISSING:
            return default
        if not isinstance(value, str):
            raise _e.FieldTypeMismatchError(self._name, field, "string", value)
        return value

    def get_int(self, field: str, default: Any = _MISSING) -> int:
        value = self._raw(field, default)
        if value is _MISSING:
            return default
        if isinstance(value, bool) or not isinstance(value, int):
            raise _e.FieldTypeMismatchError(self._name, field, "int", value)
        return value

    def get_bool(self, field: str, default: Any = _MISSING) -> bool:
        """Returns a `bit` field; `bit` values are dumped as 0 or 1."""
        value = self._raw(field, default)
        if value is _MISSING:
            return default
        if value not in (0, 1) or isinstance(value, float):
            raise _e.FieldTypeMismatchError(self._name, field, "bit", value)
        return bool(value)

    def get_def(self, field: str, default: Any = _MISSING) -> Record:
        value = self._raw(field, default)
        if value is _MISSING:
            return default
        return self._to_record(field, value)

    def get_records(self, field: str, default: Any = _MISSING) -> list[Record]:
        value = self._raw(field, default)
        if value is _MISSING:
            return default
        if not isinstance(value, list):
            raise _e.FieldTypeMismatchError(self._name, field, "list", value)
        return [self._to_record(field, item) for item in value]

    def get_dag(self, field: str, default: Any = _MISSING) -> Dag:
        value = self._raw(field, default)
        if value is _MISSING:
            return default
        if not isinstance(value, dict) or value.get("kind") != "dag":
            raise _e.FieldTypeMismatchError(self._name, field, "dag", value)
        operator = self._to_record(field, value.get("operator"))
        arguments = []
        for item in value.get("args", ()):
            if not isinstance(item, list) or len(item) != 2:
                raise _e.FieldTypeMismatchError(self._name, field, "dag argument", item)
            arg_value, arg_name = item
            if arg_name is not None and not isinstance(arg_name, str):
                raise _e.FieldTypeMismatchError(
                    self._name, field, "dag argument name", arg_name
                )
            arguments.append(
                DagArgument(value=self._to_record(field, arg_value), name=arg_name)
            )
        return Dag(operator=operator.name, arguments=tuple(arguments))

    def _to_record(self, field: str, value: Any) -> Record:
        if (
            not isinstance(value, dict)
            or value.get("kind") != "def"
            or not isinstance(value.get("def"), str)
        ):
            raise _e.FieldTypeMismatchError(self._name, field, "record reference", value)
        name = value["def"]
        record = self._keeper.get(name)
        if record is None:
            # Placeholder for a name missing from the dump; resolvers report it
            # with the referencing operation as context.
            return Record(self._keeper, name, {"!unresolved": True})
        return record

    @property
    def is_unresolved(self) -> bool:
        return bool(self._data.get("!unresolved", False))

    def __repr__(self) -> str:
        return f"Record({self._name!r})"

    def __eq__(self, other: object) -> bool:
        return isinstance(other, Record) and other._name == self._name

    def __hash__(self) -> int:
        return hash(self._name)


class RecordKeeper:
    """The complete, immutable set of records produced by one schema parse."""

    def __init__(self, dump: Mapping[str, Any]):
        self._instances: dict[str, tuple[str, ...]] = {
            class_name: tuple(names)
            for class_name, names in dump.get("!instanceof", {}).items()
        }
        self._records = {
            name: Record(self, name, data)
            for name, data in dump.items()
            if not name.startswith("!") and isinstance(data, dict)
        }

    def get(self, name: str) -> Record | None:
        return self._records.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._records

    def __iter__(self) -> Iterator[Record]:
        return iter(self._records.values())

    def __len__(self) -> int:
        return len(self._records)

    def all_derived_definitions(self, class_name: str) -> Iterator[Record]:
        """Yields every record derived from `class_name`."""
        if class_name in self._instances:
            for name in self._instances[class_name]:
                record = self._records.get(name)
                if record is not None:
                    yield record
            return
        for record in self._records.values():
            if record.is_subclass_of(class_name):
                yield record
