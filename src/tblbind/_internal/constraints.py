"""
Resolution of type and attribute constraint records.

Constraints are looked up by record name first and then by superclass, in
table order, so more specific classes must come before the classes they
derive from. Accessor types name protocols in `tblbind.runtime`.
"""

from __future__ import annotations

from . import exceptions as _e
from .defs import AttributeConstraint, TypeConstraint
from .diagnostics import Diagnostics
from .records import Record

RUNTIME = "_rt"


def _value(kind: str) -> TypeConstraint:
    return TypeConstraint(
        accessor_type=f"{RUNTIME}.{kind}",
        narrow_expr_template=f"{RUNTIME}.narrow({RUNTIME}.{kind}, {{value}})",
    )


def _attribute(kind: str, *, is_unit: bool = False) -> AttributeConstraint:
    return AttributeConstraint(
        accessor_type=f"{RUNTIME}.{kind}",
        narrow_expr_template=f"{RUNTIME}.narrow({RUNTIME}.{kind}, {{value}})",
        is_unit=is_unit,
    )


ANY_VALUE = TypeConstraint(accessor_type=f"{RUNTIME}.Value")
OPAQUE_VALUE = TypeConstraint(accessor_type=f"{RUNTIME}.Value", is_opaque=True)
ANY_ATTRIBUTE = AttributeConstraint(accessor_type=f"{RUNTIME}.Attribute")
OPAQUE_ATTRIBUTE = AttributeConstraint(
    accessor_type=f"{RUNTIME}.Attribute", is_opaque=True
)
SEGMENT_SIZES_ATTRIBUTE = _attribute("DenseArrayAttr")

TYPE_TABLE: tuple[tuple[str, TypeConstraint], ...] = (
    ("AnyType", ANY_VALUE),
    ("TensorOf", _value("TensorValue")),
    ("RankedTensorOf", _value("TensorValue")),
    ("MemRefOf", _value("MemRefValue")),
    ("VectorOf", _value("VectorValue")),
    ("ShapedContainerType", _value("ShapedValue")),
    ("AnyShaped", _value("ShapedValue")),
    ("Index", _value("IndexValue")),
    ("AnyInteger", _value("IntegerValue")),
    ("AnySignlessInteger", _value("IntegerValue")),
    ("AnyI", _value("IntegerValue")),
    ("I", _value("IntegerValue")),
    ("SI", _value("IntegerValue")),
    ("UI", _value("IntegerValue")),
    ("AnyFloat", _value("FloatValue")),
    ("F", _value("FloatValue")),
    ("Complex", _value("ComplexValue")),
    ("AnyComplex", _value("ComplexValue")),
)

ATTRIBUTE_TABLE: tuple[tuple[str, AttributeConstraint], ...] = (
    ("UnitAttr", _attribute("UnitAttr", is_unit=True)),
    ("BoolAttr", _attribute("BoolAttr")),
    ("SignlessIntegerAttrBase", _attribute("IntegerAttr")),
    ("TypedSignlessIntegerAttrBase", _attribute("IntegerAttr")),
    ("TypedUnsignedIntegerAttrBase", _attribute("IntegerAttr")),
    ("IntegerAttrBase", _attribute("IntegerAttr")),
    ("AnyIntegerAttr", _attribute("IntegerAttr")),
    ("IndexAttr", _attribute("IntegerAttr")),
    ("FloatAttrBase", _attribute("FloatAttr")),
    ("StrAttr", _attribute("StringAttr")),
    ("StringBasedAttr", _attribute("StringAttr")),
    ("TypeAttrBase", _attribute("TypeAttr")),
    ("TypeAttr", _attribute("TypeAttr")),
    ("FlatSymbolRefAttr", _attribute("SymbolRefAttr")),
    ("SymbolRefAttr", _attribute("SymbolRefAttr")),
    ("DenseArrayAttrBase", _attribute("DenseArrayAttr")),
    ("TypedArrayAttrBase", _attribute("ArrayAttr")),
    ("ArrayAttr", _attribute("ArrayAttr")),
    ("DictionaryAttr", _attribute("DictionaryAttr")),
    ("ElementsAttrBase", _attribute("ElementsAttr")),
    ("AnyAttr", ANY_ATTRIBUTE),
)

_TYPE_WRAPPERS = ("Variadic", "VariadicOfVariadic", "Optional")
_TYPE_FORWARDERS = ("ConfinedType",)
_ATTRIBUTE_WRAPPERS = ("OptionalAttr", "DefaultValuedAttr", "ConfinedAttr")


def _lookup(record: Record, table: tuple[tuple[str, object], ...]) -> object | None:
    for name, constraint in table:
        if record.name == name:
            return constraint
    for name, constraint in table:
        if record.is_subclass_of(name):
            return constraint
    return None


class ConstraintResolver:
    """
    Resolves constraint records for one generation run.

    Results are memoized by record name. Opaque fallbacks are reported to
    `diagnostics` for every operation that uses them, cached or not.
    """

    def __init__(self, diagnostics: Diagnostics):
        self.diagnostics = diagnostics
        self._types: dict[str, TypeConstraint] = {}
        self._attributes: dict[str, AttributeConstraint] = {}
        self._fallbacks: dict[tuple[str, str], tuple[str, ...]] = {}
        self._pending: list[str] = []

    def resolve_type(self, operation: str, record: Record) -> TypeConstraint:
        key = ("type", record.name)
        if record.name in self._types:
            self._replay(operation, key)
        else:
            self._pending = []
            self._types[record.name] = self._resolve_type(operation, record, ())
            self._fallbacks[key] = tuple(self._pending)
        return self._types[record.name]

    def resolve_attribute(self, operation: str, record: Record) -> AttributeConstraint:
        key = ("attribute", record.name)
        if record.name in self._attributes:
            self._replay(operation, key)
        else:
            self._pending = []
            self._attributes[record.name] = self._resolve_attribute(
                operation, record, ()
            )
            self._fallbacks[key] = tuple(self._pending)
        return self._attributes[record.name]

    def _replay(self, operation: str, key: tuple[str, str]) -> None:
        for message in self._fallbacks.get(key, ()):
            self.diagnostics.warn(operation, message)

    def _unrecognized(self, operation: str, message: str) -> None:
        self._pending.append(message)
        self.diagnostics.warn(operation, message)

    def _enter(
        self, operation: str, record: Record, chain: tuple[str, ...]
    ) -> tuple[str, ...]:
        if record.is_unresolved:
            raise _e.ConstraintResolutionError(
                operation, f"constraint refers to unknown record '{record.name}'"
            )
        if record.name in chain:
            cycle = " -> ".join((*chain, record.name))
            raise _e.ConstraintResolutionError(
                operation, f"cyclic constraint chain: {cycle}"
            )
        return (*chain, record.name)

    def _resolve_type(
        self, operation: str, record: Record, chain: tuple[str, ...]
    ) -> TypeConstraint:
        chain = self._enter(operation, record, chain)

        if any(record.is_subclass_of(name) for name in _TYPE_WRAPPERS):
            base = self._resolve_type(operation, record.get_def("baseType"), chain)
            # A variable-length wrapper cannot itself be wrapped again.
            return TypeConstraint(
                accessor_type=base.accessor_type,
                narrow_expr_template=base.narrow_expr_template,
                is_variadic_compatible=False,
                is_opaque=base.is_opaque,
            )
        if any(record.is_subclass_of(name) for name in _TYPE_FORWARDERS):
            return self._resolve_type(operation, record.get_def("baseType"), chain)

        found = _lookup(record, TYPE_TABLE)
        if found is not None:
            return found  # type: ignore[return-value]

        if record.is_subclass_of("AnyTypeOf") or record.is_subclass_of("AllOfType"):
            members = [
                self._resolve_type(operation, member, chain)
                for member in record.get_records("allowedTypes", default=[])
            ]
            return self._combine(
                members, widen=record.is_subclass_of("AnyTypeOf")
            )

        if record.has_field("baseType"):
            return self._resolve_type(operation, record.get_def("baseType"), chain)

        self._unrecognized(
            operation,
            f"type constraint '{record.name}' is not recognized; "
            "its accessors return unchecked values",
        )
        return OPAQUE_VALUE

    @staticmethod
    def _combine(members: list[TypeConstraint], *, widen: bool) -> TypeConstraint:
        if not members:
            return ANY_VALUE
        precise = [m for m in members if m.accessor_type != ANY_VALUE.accessor_type]
        types = {m.accessor_type for m in members}
        if len(types) == 1:
            return members[0]
        if widen or not precise:
            return ANY_VALUE
        # All-of: the value satisfies every member, so the first precise one
        # is a sound narrowing.
        return precise[0]

    def _resolve_attribute(
        self, operation: str, record: Record, chain: tuple[str, ...]
    ) -> AttributeConstraint:
        chain = self._enter(operation, record, chain)

        if any(record.is_subclass_of(name) for name in _ATTRIBUTE_WRAPPERS):
            return self._resolve_attribute(
                operation, record.get_def("baseAttr"), chain
            )

        found = _lookup(record, ATTRIBUTE_TABLE)
        if found is not None:
            return found  # type: ignore[return-value]

        if record.has_field("baseAttr"):
            return self._resolve_attribute(
                operation, record.get_def("baseAttr"), chain
            )

        self._unrecognized(
            operation,
            f"attribute constraint '{record.name}' is not recognized; "
            "its accessors return unchecked attributes",
        )
        return OPAQUE_ATTRIBUTE
