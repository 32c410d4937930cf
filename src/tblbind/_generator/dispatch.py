"""
Emits the per-namespace dispatch over every wrapper class of a dialect.

The dispatch is a `Union` of the wrapper classes, a tuple listing them, and a
function that downcasts a generic handle to whichever variant its name
selects.
"""

from __future__ import annotations

from collections.abc import Sequence

from .._internal import defs as _d
from .._internal import naming as _n
from .emitter import CodeEmitter

RT = "_rt"


class DispatchEmitter:
    """Emits the dispatch code for the operations of one namespace."""

    def __init__(self, namespace: str, models: Sequence[_d.OperationModel]):
        self.namespace = namespace
        self.models = list(models)
        self.union_name = f"{_n.to_pascal_case(namespace)}Operation"
        self.classes_name = f"{_n.to_snake_case(namespace).upper()}_OPERATIONS"
        self.function_name = f"try_into_{_n.to_snake_case(namespace)}_operation"

    @property
    def exported_names(self) -> list[str]:
        if not self.models:
            return []
        return [self.union_name, self.classes_name, self.function_name]

    def emit(self, emitter: CodeEmitter) -> None:
        """Writes the dispatch code; writes nothing for an empty namespace."""
        if not self.models:
            return
        classes = [model.class_name for model in self.models]

        emitter.call(f"{self.union_name} = Union[", classes, "]")
        emitter.docstring(f"Any operation of the `{self.namespace}` dialect.")
        emitter.blank_line()
        emitter.call(
            f"{self.classes_name}: tuple[type[{RT}.TypedOperation], ...] = (",
            classes,
        )
        emitter.blank_line(2)

        with emitter.block(
            f"def {self.function_name}("
            f"operation: {RT}.OperationHandle) -> {RT}.Downcast[{self.union_name}]:"
        ):
            emitter.docstring(
                f"Wraps `operation` in the `{self.namespace}` class its name selects.\n\n"
                "Returns `Unchanged` with the very same handle when the name\n"
                "belongs to no operation of this dialect."
            )
            with emitter.block("match operation.name:"):
                for model in self.models:
                    with emitter.block(f'case "{model.qualified_name}":'):
                        emitter.line(
                            f"return {RT}.Converted({model.class_name}(operation))"
                        )
                with emitter.block("case _:"):
                    emitter.line(f"return {RT}.Unchanged(operation)")
