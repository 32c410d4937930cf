"""
Internal, immutable data structures for fully-resolved operation definitions.

These objects are the final product of model building and are consumed by
code generators. They hold no references back into the record keeper.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from . import naming as _n
from .traits import TraitKind, TraitTag


class Cardinality(Enum):
    ONE = "one"
    OPTIONAL = "optional"
    VARIADIC = "variadic"


class SegmentLayout(Enum):
    """How the variable-length groups of an operand or result list are sized."""

    # At most one variable-length group; its size is whatever is left over.
    SINGLE = "single"
    # Every variable-length group has the same size.
    SAME_SIZE = "same_size"
    # Group sizes are stored in a dense integer array attribute.
    ATTRIBUTE = "attribute"


@dataclass(frozen=True, kw_only=True)
class SegmentSizes:
    """Names of the attributes recording operand and result group sizes."""

    operands: str = "operandSegmentSizes"
    results: str = "resultSegmentSizes"


DEFAULT_SEGMENT_SIZES = SegmentSizes()


@dataclass(frozen=True, kw_only=True)
class TypeConstraint:
    """
    The resolved form of a type constraint.

    `narrow_expr_template` is a format string with a single `{value}` field
    that narrows a generic value to `accessor_type` in generated code.
    """

    accessor_type: str
    narrow_expr_template: str = "{value}"
    is_variadic_compatible: bool = True
    is_opaque: bool = False

    def narrow(self, value: str) -> str:
        return self.narrow_expr_template.format(value=value)


@dataclass(frozen=True, kw_only=True)
class AttributeConstraint:
    accessor_type: str
    narrow_expr_template: str = "{value}"
    is_unit: bool = False
    is_opaque: bool = False

    def narrow(self, value: str) -> str:
        return self.narrow_expr_template.format(value=value)


@dataclass(frozen=True, kw_only=True)
class FieldSpec:
    """An operand or a result."""

    name: str
    constraint: TypeConstraint
    cardinality: Cardinality

    @property
    def is_variable_length(self) -> bool:
        return self.cardinality is not Cardinality.ONE

    @property
    def identifier(self) -> str:
        return _n.to_identifier(_n.to_snake_case(self.name))


@dataclass(frozen=True, kw_only=True)
class AttributeSpec:
    name: str
    constraint: AttributeConstraint
    has_default: bool = False
    is_optional: bool = False
    default_value: object = None
    is_implicit: bool = False

    @property
    def is_required(self) -> bool:
        return not (self.has_default or self.is_optional or self.is_implicit)

    @property
    def identifier(self) -> str:
        return _n.to_identifier(_n.to_snake_case(self.name))


@dataclass(frozen=True, kw_only=True)
class RegionSpec:
    name: str
    is_variadic: bool

    @property
    def identifier(self) -> str:
        return _n.to_identifier(_n.to_snake_case(self.name))


@dataclass(frozen=True, kw_only=True)
class SuccessorSpec:
    name: str
    is_variadic: bool

    @property
    def identifier(self) -> str:
        return _n.to_identifier(_n.to_snake_case(self.name))


@dataclass(frozen=True, kw_only=True)
class OperationModel:
    """A complete, immutable definition of one operation."""

    namespace: str
    short_name: str
    record_name: str
    operands: Sequence[FieldSpec] = ()
    results: Sequence[FieldSpec] = ()
    attributes: Sequence[AttributeSpec] = ()
    regions: Sequence[RegionSpec] = ()
    successors: Sequence[SuccessorSpec] = ()
    traits: frozenset[TraitTag] = frozenset()
    summary: str = ""
    documentation: str = ""
    operand_layout: SegmentLayout = SegmentLayout.SINGLE
    result_layout: SegmentLayout = SegmentLayout.SINGLE
    segment_sizes: SegmentSizes = DEFAULT_SEGMENT_SIZES

    @property
    def qualified_name(self) -> str:
        """The runtime name of the op (e.g., 'arith.addi')."""
        return f"{self.namespace}.{self.short_name}"

    @property
    def class_name(self) -> str:
        """The generated wrapper class name (e.g., `AddIOperation`)."""
        name = self.record_name
        if "_" in name:
            name = name.split("_", 1)[1]
        if name.endswith("Op") and len(name) > 2:
            name = name[:-2]
        return _n.to_pascal_case(name) + "Operation"

    @property
    def function_name(self) -> str:
        """The generated constructor function name (e.g., `addi`)."""
        return _n.to_identifier(
            _n.to_snake_case(self.short_name.replace(".", "_")), module_level=True
        )

    def has_trait(self, kind: TraitKind) -> bool:
        return any(tag.kind is kind for tag in self.traits)

    @property
    def infers_result_types(self) -> bool:
        return self.has_trait(TraitKind.INFER_TYPE)
