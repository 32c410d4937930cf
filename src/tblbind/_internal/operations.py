"""Builds immutable `OperationModel`s from operation records."""

from __future__ import annotations

import ast
import inspect
import logging
from collections.abc import Sequence

from . import exceptions as _e
from . import traits as _t
from .constraints import SEGMENT_SIZES_ATTRIBUTE, ConstraintResolver
from .defs import (
    DEFAULT_SEGMENT_SIZES,
    AttributeSpec,
    Cardinality,
    FieldSpec,
    OperationModel,
    RegionSpec,
    SegmentLayout,
    SegmentSizes,
    SuccessorSpec,
)
from .diagnostics import Diagnostics
from .records import Dag, Record

logger = logging.getLogger(__name__)

_CARDINALITY_WRAPPERS = (
    ("VariadicOfVariadic", Cardinality.VARIADIC),
    ("Variadic", Cardinality.VARIADIC),
    ("Optional", Cardinality.OPTIONAL),
)


def dialect_name(record: Record) -> str:
    """Returns the name of the dialect an operation record belongs to."""
    return record.get_def("opDialect").get_string("name")


def default_literal(text: str) -> object:
    """
    Converts a schema default value to a Python literal where it is one.

    Defaults are written as host-language expressions; numbers, booleans and
    quoted strings map onto Python values, anything else is kept verbatim.
    """
    stripped = text.strip()
    if stripped in ("true", "false"):
        return stripped == "true"
    try:
        value = ast.literal_eval(stripped)
    except (ValueError, SyntaxError):
        return text
    if isinstance(value, (bool, int, float, str)):
        return value
    return text


class OperationModelBuilder:
    """Turns operation records into models for one generation run."""

    def __init__(
        self,
        diagnostics: Diagnostics | None = None,
        segment_sizes: SegmentSizes = DEFAULT_SEGMENT_SIZES,
    ):
        self.diagnostics = diagnostics or Diagnostics()
        self.segment_sizes = segment_sizes
        self.constraints = ConstraintResolver(self.diagnostics)

    def build(self, record: Record) -> OperationModel:
        namespace = dialect_name(record)
        short_name = record.get_string("opName")
        if not namespace or not short_name:
            raise _e.FieldExtractionError(
                record.name, "opName", "operation and dialect names must be non-empty"
            )
        operation = f"{namespace}.{short_name}"
        logger.debug("building model for %s from %s", operation, record.name)

        traits = _t.resolve_traits(
            operation, record.get_records("traits", default=[]), self.diagnostics
        )
        trait_kinds = {tag.kind for tag in traits}

        operands: list[FieldSpec] = []
        attributes: list[AttributeSpec] = []
        arguments = record.get_dag("arguments", default=None)
        for index, argument in enumerate(_arguments(arguments)):
            value, name = argument
            if value.is_subclass_of("Attr"):
                attributes.append(
                    self._attribute(operation, value, name or f"attribute_{index}")
                )
            elif value.is_subclass_of("TypeConstraint"):
                operands.append(
                    self._field(operation, value, name or f"operand_{len(operands)}")
                )
            else:
                raise _e.ConstraintResolutionError(
                    operation,
                    f"argument '{name}' uses '{value.name}', "
                    "which is neither a type constraint nor an attribute",
                )

        results = [
            self._field(operation, value, name or f"result_{index}")
            for index, (value, name) in enumerate(
                _arguments(record.get_dag("results", default=None))
            )
        ]

        operand_layout = self._layout(
            operation,
            "operand",
            operands,
            attribute_sized=_t.TraitKind.ATTR_SIZED_OPERAND_SEGMENTS in trait_kinds,
            same_size=_t.TraitKind.SAME_VARIADIC_OPERAND_SIZE in trait_kinds,
        )
        result_layout = self._layout(
            operation,
            "result",
            results,
            attribute_sized=_t.TraitKind.ATTR_SIZED_RESULT_SEGMENTS in trait_kinds,
            same_size=_t.TraitKind.SAME_VARIADIC_RESULT_SIZE in trait_kinds,
        )
        if operand_layout is SegmentLayout.ATTRIBUTE:
            attributes.append(self._segment_attribute(self.segment_sizes.operands))
        if result_layout is SegmentLayout.ATTRIBUTE:
            attributes.append(self._segment_attribute(self.segment_sizes.results))

        regions = [
            RegionSpec(
                name=name or f"region_{index}",
                is_variadic=value.is_subclass_of("VariadicRegion"),
            )
            for index, (value, name) in enumerate(
                _arguments(record.get_dag("regions", default=None))
            )
        ]
        successors = [
            SuccessorSpec(
                name=name or f"successor_{index}",
                is_variadic=value.is_subclass_of("VariadicSuccessor"),
            )
            for index, (value, name) in enumerate(
                _arguments(record.get_dag("successors", default=None))
            )
        ]
        _check_trailing_variadic(operation, "region", regions)
        _check_trailing_variadic(operation, "successor", successors)

        model = OperationModel(
            namespace=namespace,
            short_name=short_name,
            record_name=record.name,
            operands=tuple(operands),
            results=tuple(results),
            attributes=tuple(attributes),
            regions=tuple(regions),
            successors=tuple(successors),
            traits=traits,
            summary=record.get_string("summary", default="").strip(),
            documentation=inspect.cleandoc(record.get_string("description", default="")),
            operand_layout=operand_layout,
            result_layout=result_layout,
            segment_sizes=self.segment_sizes,
        )
        _check_unique_names(model)
        _t.check_structure(model)
        return model

    def _field(self, operation: str, record: Record, name: str) -> FieldSpec:
        cardinality = Cardinality.ONE
        constraint_record = record
        for class_name, wrapper_cardinality in _CARDINALITY_WRAPPERS:
            if record.is_subclass_of(class_name):
                cardinality = wrapper_cardinality
                constraint_record = record.get_def("baseType")
                break
        if record.is_subclass_of("VariadicOfVariadic") and constraint_record.is_subclass_of(
            "Variadic"
        ):
            # Groups of groups are exposed as one flat variadic field.
            constraint_record = constraint_record.get_def("baseType")
        constraint = self.constraints.resolve_type(operation, constraint_record)
        if cardinality is not Cardinality.ONE and not constraint.is_variadic_compatible:
            raise _e.InconsistentCardinalityError(
                operation, f"field '{name}' nests one variable-length wrapper in another"
            )
        return FieldSpec(name=name, constraint=constraint, cardinality=cardinality)

    def _attribute(self, operation: str, record: Record, name: str) -> AttributeSpec:
        constraint = self.constraints.resolve_attribute(operation, record)
        default = record.get_string("defaultValue", default="")
        is_optional = record.get_bool("isOptional", default=False) or (
            record.is_subclass_of("OptionalAttr")
        )
        return AttributeSpec(
            name=name,
            constraint=constraint,
            has_default=bool(default),
            is_optional=is_optional,
            default_value=default_literal(default) if default else None,
        )

    def _segment_attribute(self, name: str) -> AttributeSpec:
        return AttributeSpec(
            name=name, constraint=SEGMENT_SIZES_ATTRIBUTE, is_implicit=True
        )

    @staticmethod
    def _layout(
        operation: str,
        kind: str,
        fields: Sequence[FieldSpec],
        *,
        attribute_sized: bool,
        same_size: bool,
    ) -> SegmentLayout:
        if attribute_sized:
            return SegmentLayout.ATTRIBUTE
        variable = [field.name for field in fields if field.is_variable_length]
        if len(variable) <= 1:
            return SegmentLayout.SINGLE
        if same_size:
            return SegmentLayout.SAME_SIZE
        raise _e.InconsistentCardinalityError(
            operation,
            f"{len(variable)} variable-length {kind} fields {variable} need a "
            f"size-inference trait (AttrSized{kind.title()}Segments or "
            f"SameVariadic{kind.title()}Size)",
        )


def _unwrap_variable(record: Record) -> Record:
    # `Arg<...>`/`Res<...>` only annotate the constraint they hold.
    while record.is_subclass_of("OpVariable"):
        record = record.get_def("constraint")
    return record


def _arguments(dag: Dag | None) -> list[tuple[Record, str | None]]:
    if dag is None:
        return []
    return [
        (_unwrap_variable(argument.value), argument.name) for argument in dag.arguments
    ]


def _check_trailing_variadic(
    operation: str, kind: str, fields: Sequence[RegionSpec | SuccessorSpec]
) -> None:
    for field in fields[:-1]:
        if field.is_variadic:
            raise _e.InconsistentCardinalityError(
                operation, f"variadic {kind} '{field.name}' must be the last {kind}"
            )


def _check_unique_names(model: OperationModel) -> None:
    seen: set[str] = set()
    fields = (
        *model.operands,
        *model.results,
        *model.attributes,
        *model.regions,
        *model.successors,
    )
    for field in fields:
        for name in {field.name, field.identifier}:
            if name in seen:
                raise _e.DuplicateNameError(model.qualified_name, name)
        seen.update({field.name, field.identifier})
