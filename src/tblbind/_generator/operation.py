"""
Emits the typed wrapper, builder and constructor function of one operation.

All cardinality arithmetic happens here, at generation time: the generated
accessors only call the positional helpers of `tblbind.runtime.TypedOperation`
with precomputed indices or with the group size of the operation at hand.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from .._internal import defs as _d
from .._internal import naming as _n
from .emitter import CodeEmitter

RT = "_rt"


@dataclass(frozen=True)
class Parameter:
    """One parameter of a generated constructor function."""

    name: str
    annotation: str
    default: str | None = None
    keyword_only: bool = False

    def render(self) -> str:
        if self.default is None:
            return f"{self.name}: {self.annotation}"
        return f"{self.name}: {self.annotation} = {self.default}"


def _tuple(items: Sequence[str]) -> str:
    if len(items) == 1:
        return f"({items[0]},)"
    return f"({', '.join(items)})"


def _offset(fixed: int, groups: int) -> str:
    """Renders the generated expression `fixed + groups * size`."""
    terms = []
    if fixed:
        terms.append(str(fixed))
    if groups == 1:
        terms.append("size")
    elif groups > 1:
        terms.append(f"{groups} * size")
    return " + ".join(terms) or "0"


class OperationEmitter:
    """Emits Python bindings for a single `OperationModel`."""

    def __init__(self, model: _d.OperationModel):
        self.model = model
        self.class_name = model.class_name
        self.builder_name = f"{model.class_name}Builder"

    @property
    def exported_names(self) -> list[str]:
        return [self.class_name, self.builder_name, self.model.function_name]

    def emit(self, emitter: CodeEmitter) -> None:
        self._emit_wrapper(emitter)
        emitter.blank_line(2)
        self._emit_builder(emitter)
        emitter.blank_line(2)
        self._emit_function(emitter)

    # -- wrapper -------------------------------------------------------------

    def _docstring(self) -> str:
        model = self.model
        parts = [f"`{model.qualified_name}` operation."]
        if model.summary:
            parts.append(_n.to_docstring(model.summary))
        if model.documentation:
            parts.append(_n.to_docstring(model.documentation))
        return "\n\n".join(parts)

    def _emit_wrapper(self, emitter: CodeEmitter) -> None:
        model = self.model
        with emitter.block(f"class {self.class_name}({RT}.TypedOperation):"):
            emitter.docstring(self._docstring())
            emitter.blank_line()
            emitter.line(
                f'OPERATION_NAME: ClassVar[str] = "{model.qualified_name}"'
            )
            emitter.blank_line()
            emitter.line("@classmethod")
            with emitter.block(
                f"def builder(cls, factory: {RT}.OperationFactory) -> {self.builder_name}:"
            ):
                emitter.line(
                    f'"""Returns a builder for `{model.qualified_name}` operations."""'
                )
                emitter.line(f"return {self.builder_name}(factory)")

            self._emit_value_accessors(
                emitter, "operands", model.operands, model.operand_layout,
                model.segment_sizes.operands,
            )
            self._emit_value_accessors(
                emitter, "results", model.results, model.result_layout,
                model.segment_sizes.results,
            )
            for attribute in model.attributes:
                self._emit_attribute_accessor(emitter, attribute)
            for kind, fields, annotation in (
                ("regions", model.regions, f"{RT}.Region"),
                ("successors", model.successors, f"{RT}.Block"),
            ):
                for index, field in enumerate(fields):
                    self._emit_positional_accessor(emitter, kind, index, field, annotation)

    def _property(self, emitter: CodeEmitter, name: str, annotation: str) -> None:
        emitter.blank_line()
        emitter.line("@property")
        emitter.line(f"def {name}(self) -> {annotation}:")

    def _emit_value_accessors(
        self,
        emitter: CodeEmitter,
        kind: str,
        fields: Sequence[_d.FieldSpec],
        layout: _d.SegmentLayout,
        segment_attribute: str,
    ) -> None:
        fixed = sum(1 for f in fields if not f.is_variable_length)
        groups = len(fields) - fixed

        for position, field in enumerate(fields):
            constraint = field.constraint
            if field.cardinality is _d.Cardinality.VARIADIC:
                annotation = f"Sequence[{constraint.accessor_type}]"
            elif field.cardinality is _d.Cardinality.OPTIONAL:
                annotation = f"{constraint.accessor_type} | None"
            else:
                annotation = constraint.accessor_type
            self._property(emitter, field.identifier, annotation)

            with emitter.indent():
                ref = f'"{kind}", "{field.name}"'
                fixed_before = sum(1 for f in fields[:position] if not f.is_variable_length)
                groups_before = position - fixed_before

                if layout is _d.SegmentLayout.ATTRIBUTE:
                    emitter.line(
                        f'start, stop = self._segment_bounds({ref}, '
                        f'"{segment_attribute}", {position})'
                    )
                    start, stop = "start", "stop"
                elif groups_before == 0 and not field.is_variable_length:
                    emitter.line(
                        f"return {constraint.narrow(f'self._value({ref}, {position})')}"
                    )
                    continue
                else:
                    emitter.line(
                        f"size = self._group_size({ref}, {fixed}, {groups})"
                    )
                    start = _offset(fixed_before, groups_before)
                    stop = _offset(fixed_before, groups_before + 1)

                if field.cardinality is _d.Cardinality.ONE:
                    getter = (
                        f"self._value_in({ref}, {start}, {stop})"
                        if layout is _d.SegmentLayout.ATTRIBUTE
                        else f"self._value({ref}, {start})"
                    )
                    emitter.line(f"return {constraint.narrow(getter)}")
                elif field.cardinality is _d.Cardinality.OPTIONAL:
                    emitter.line(
                        f"value = self._optional_value({ref}, {start}, {stop})"
                    )
                    emitter.line(
                        f"return None if value is None else {constraint.narrow('value')}"
                    )
                else:
                    convert = ""
                    if constraint.narrow("value") != "value":
                        convert = f", lambda value: {constraint.narrow('value')}"
                    emitter.line(
                        f"return self._values({ref}, {start}, {stop}{convert})"
                    )

    def _emit_attribute_accessor(
        self, emitter: CodeEmitter, attribute: _d.AttributeSpec
    ) -> None:
        constraint = attribute.constraint
        name = f'"{attribute.name}"'

        if attribute.is_implicit:
            self._property(emitter, attribute.identifier, "tuple[int, ...]")
            with emitter.indent():
                emitter.line(
                    f"return tuple(int(size) for size in self._attribute({name}))"
                )
        elif constraint.is_unit:
            self._property(emitter, attribute.identifier, "bool")
            with emitter.indent():
                emitter.line(f"return self._has_attribute({name})")
        elif attribute.has_default:
            self._property(emitter, attribute.identifier, constraint.accessor_type)
            with emitter.indent():
                getter = (
                    f"self._attribute_or_default({name}, "
                    f"{attribute.default_value!r})"
                )
                emitter.line(f"return {constraint.narrow(getter)}")
        elif attribute.is_optional:
            self._property(
                emitter, attribute.identifier, f"{constraint.accessor_type} | None"
            )
            with emitter.indent():
                emitter.line(f"value = self._optional_attribute({name})")
                emitter.line(
                    f"return None if value is None else {constraint.narrow('value')}"
                )
        else:
            self._property(emitter, attribute.identifier, constraint.accessor_type)
            with emitter.indent():
                emitter.line(f"return {constraint.narrow(f'self._attribute({name})')}")

    def _emit_positional_accessor(
        self,
        emitter: CodeEmitter,
        kind: str,
        index: int,
        field: _d.RegionSpec | _d.SuccessorSpec,
        annotation: str,
    ) -> None:
        ref = f'"{kind}", "{field.name}"'
        if field.is_variadic:
            self._property(emitter, field.identifier, f"Sequence[{annotation}]")
            with emitter.indent():
                emitter.line(
                    f'return self._values({ref}, {index}, self._count("{kind}"))'
                )
        else:
            self._property(emitter, field.identifier, annotation)
            with emitter.indent():
                emitter.line(f"return self._value({ref}, {index})")

    # -- builder -------------------------------------------------------------

    def _setter(
        self, emitter: CodeEmitter, name: str, field: str, parameter: str, body: str
    ) -> None:
        emitter.blank_line()
        with emitter.block(f"def {name}(self, {parameter}) -> {self.builder_name}:"):
            emitter.line(f'self._set("{field}", {body})')
            emitter.line("return self")

    def _value_setter(
        self, emitter: CodeEmitter, field: _d.FieldSpec, annotation: str
    ) -> None:
        if field.cardinality is _d.Cardinality.VARIADIC:
            self._setter(
                emitter, field.identifier, field.name,
                f"values: Sequence[{annotation}]", "tuple(values)",
            )
        elif field.cardinality is _d.Cardinality.OPTIONAL:
            self._setter(
                emitter, field.identifier, field.name,
                f"value: {annotation} | None", "value",
            )
        else:
            self._setter(
                emitter, field.identifier, field.name, f"value: {annotation}", "value"
            )

    def _emit_builder(self, emitter: CodeEmitter) -> None:
        model = self.model
        with emitter.block(
            f"class {self.builder_name}({RT}.OperationBuilder[{self.class_name}]):"
        ):
            emitter.line(f'"""Builder for `{model.qualified_name}` operations."""')
            emitter.blank_line()
            emitter.line(f'OPERATION_NAME: ClassVar[str] = "{model.qualified_name}"')

            for operand in model.operands:
                self._value_setter(emitter, operand, operand.constraint.accessor_type)
            for result in model.results:
                self._value_setter(emitter, result, f"{RT}.Type")
            for attribute in model.attributes:
                if attribute.is_implicit:
                    continue
                annotation = attribute.constraint.accessor_type
                if attribute.constraint.is_unit:
                    self._setter(
                        emitter, attribute.identifier, attribute.name,
                        "value: bool = True", "value",
                    )
                elif attribute.is_required:
                    self._setter(
                        emitter, attribute.identifier, attribute.name,
                        f"value: {annotation}", "value",
                    )
                else:
                    self._setter(
                        emitter, attribute.identifier, attribute.name,
                        f"value: {annotation} | None", "value",
                    )
            for fields, annotation in (
                (model.regions, f"{RT}.Region"),
                (model.successors, f"{RT}.Block"),
            ):
                for field in fields:
                    if field.is_variadic:
                        self._setter(
                            emitter, field.identifier, field.name,
                            f"values: Sequence[{annotation}]", "tuple(values)",
                        )
                    else:
                        self._setter(
                            emitter, field.identifier, field.name,
                            f"value: {annotation}", "value",
                        )

            emitter.blank_line()
            with emitter.block(f"def build(self) -> {self.class_name}:"):
                emitter.docstring(
                    f"Creates the `{model.qualified_name}` operation.\n\n"
                    "Raises `MissingFieldError` naming the first required field\n"
                    "that was not set."
                )
                self._emit_build_body(emitter)

    @staticmethod
    def _field_values(field: _d.FieldSpec) -> str:
        """An expression for the list entries a field contributes."""
        if field.cardinality is _d.Cardinality.VARIADIC:
            return f'*self._variadic("{field.name}")'
        if field.cardinality is _d.Cardinality.OPTIONAL:
            return f'*self._optional("{field.name}")'
        return f'self._require("{field.name}")'

    @staticmethod
    def _field_size(field: _d.FieldSpec) -> str:
        if field.cardinality is _d.Cardinality.VARIADIC:
            return f'len(self._variadic("{field.name}"))'
        if field.cardinality is _d.Cardinality.OPTIONAL:
            return f'len(self._optional("{field.name}"))'
        return "1"

    def _emit_same_size_check(
        self, emitter: CodeEmitter, fields: Sequence[_d.FieldSpec]
    ) -> None:
        groups = []
        for field in fields:
            if field.cardinality is _d.Cardinality.VARIADIC:
                groups.append(f'("{field.name}", self._variadic("{field.name}"))')
            elif field.cardinality is _d.Cardinality.OPTIONAL:
                groups.append(f'("{field.name}", self._optional("{field.name}"))')
        emitter.call("self._same_size(", groups)

    def _emit_build_body(self, emitter: CodeEmitter) -> None:
        model = self.model

        if model.operand_layout is _d.SegmentLayout.SAME_SIZE:
            self._emit_same_size_check(emitter, model.operands)
        emitter.call(
            "operands = [", [self._field_values(f) for f in model.operands], "]"
        )

        if model.result_layout is _d.SegmentLayout.SAME_SIZE:
            self._emit_same_size_check(emitter, model.results)
        result_values = [self._field_values(f) for f in model.results]
        if model.infers_result_types:
            names = _tuple([f'"{f.name}"' for f in model.results])
            emitter.line("results: list[Any] | None = None")
            with emitter.block(
                f"if any(self._is_set(field) for field in {names}):"
            ):
                emitter.call("results = [", result_values, "]")
        else:
            emitter.call("results = [", result_values, "]")

        emitter.line("attributes: dict[str, Any] = {}")
        for attribute in model.attributes:
            key = f'attributes["{attribute.name}"]'
            if attribute.is_implicit:
                fields = (
                    model.operands
                    if attribute.name == model.segment_sizes.operands
                    else model.results
                )
                emitter.line(f"{key} = {_tuple([self._field_size(f) for f in fields])}")
            elif attribute.constraint.is_unit:
                with emitter.block(f'if self._get("{attribute.name}", False):'):
                    emitter.line(f"{key} = True")
            elif attribute.has_default:
                emitter.line(
                    f'{key} = self._get("{attribute.name}", {attribute.default_value!r})'
                )
            elif attribute.is_optional:
                with emitter.block(f'if self._optional("{attribute.name}"):'):
                    emitter.line(f'{key} = self._require("{attribute.name}")')
            else:
                emitter.line(f'{key} = self._require("{attribute.name}")')

        for kind, fields in (("regions", model.regions), ("successors", model.successors)):
            emitter.call(
                f"{kind} = [",
                [
                    f'*self._variadic("{f.name}")'
                    if f.is_variadic
                    else f'self._require("{f.name}")'
                    for f in fields
                ],
                "]",
            )

        emitter.call(
            "handle = self._create(",
            [
                "operands=operands",
                "results=results",
                "attributes=attributes",
                "regions=regions",
                "successors=successors",
            ],
        )
        emitter.line(f"return {self.class_name}(handle)")

    # -- constructor function ------------------------------------------------

    def _parameters(self) -> list[tuple[Parameter, str]]:
        """Constructor parameters paired with the builder call that applies them."""
        model = self.model
        params: list[tuple[Parameter, str]] = []

        def add(name: str, annotation: str, *, keyword_only: bool,
                default: str | None = None, guard: str | None = None) -> None:
            call = f"builder.{name}({name})"
            if guard:
                call = f"if {guard}:\n    {call}"
            params.append(
                (Parameter(name, annotation, default, keyword_only), call)
            )

        for field in model.operands:
            annotation = field.constraint.accessor_type
            if field.cardinality is _d.Cardinality.ONE:
                add(field.identifier, annotation, keyword_only=False)
            elif field.cardinality is _d.Cardinality.VARIADIC:
                add(field.identifier, f"Sequence[{annotation}]", keyword_only=True,
                    default="()")
            else:
                add(field.identifier, f"{annotation} | None", keyword_only=True,
                    default="None", guard=f"{field.identifier} is not None")

        for attribute in model.attributes:
            if attribute.is_implicit:
                continue
            annotation = attribute.constraint.accessor_type
            if attribute.constraint.is_unit:
                add(attribute.identifier, "bool", keyword_only=True, default="False",
                    guard=attribute.identifier)
            elif attribute.is_required:
                add(attribute.identifier, annotation, keyword_only=False)
            else:
                add(attribute.identifier, f"{annotation} | None", keyword_only=True,
                    default="None", guard=f"{attribute.identifier} is not None")

        infer = model.infers_result_types
        for field in model.results:
            annotation = f"{RT}.Type"
            if field.cardinality is _d.Cardinality.VARIADIC:
                annotation = f"Sequence[{annotation}]"
            if infer or field.cardinality is _d.Cardinality.OPTIONAL:
                add(field.identifier, f"{annotation} | None", keyword_only=True,
                    default="None", guard=f"{field.identifier} is not None")
            elif field.cardinality is _d.Cardinality.VARIADIC:
                add(field.identifier, annotation, keyword_only=True, default="()")
            else:
                add(field.identifier, annotation, keyword_only=True)

        for fields, annotation in (
            (model.regions, f"{RT}.Region"),
            (model.successors, f"{RT}.Block"),
        ):
            for field in fields:
                if field.is_variadic:
                    add(field.identifier, f"Sequence[{annotation}]", keyword_only=True,
                        default="()")
                else:
                    add(field.identifier, annotation, keyword_only=True)
        return params

    def _emit_function(self, emitter: CodeEmitter) -> None:
        model = self.model
        params = self._parameters()
        positional = [p.render() for p, _ in params if not p.keyword_only]
        # Keyword-only parameters without defaults first, for readability.
        keyword = sorted(
            (p for p, _ in params if p.keyword_only),
            key=lambda p: p.default is not None,
        )
        signature = [f"factory: {RT}.OperationFactory", *positional]
        if keyword:
            signature.append("*")
            signature.extend(p.render() for p in keyword)

        emitter.call(f"def {model.function_name}(", signature, f") -> {self.class_name}:")
        with emitter.indent():
            emitter.line(f'"""Creates a `{model.qualified_name}` operation."""')
            emitter.line(f"builder = {self.class_name}.builder(factory)")
            for _, call in params:
                for line in call.splitlines():
                    emitter.line(line)
            emitter.line("return builder.build()")
