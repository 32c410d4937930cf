"""
Assembles the Python binding module of one dialect.

The module holds, in order: a header, the imports every binding needs, the
wrapper, builder and constructor function of each operation, the dispatch
code and `__all__`.
"""

from __future__ import annotations

from collections.abc import Sequence

from .._internal import defs as _d
from .._internal import naming as _n
from .dispatch import DispatchEmitter
from .emitter import CodeEmitter
from .operation import OperationEmitter

HEADER = (
    "# AUTO-GENERATED by tblbind. DO NOT EDIT.",
    "# flake8: noqa",
    "# pylint: skip-file",
)

IMPORTS = (
    "from __future__ import annotations",
    "",
    "from collections.abc import Sequence",
    "from typing import Any, ClassVar, Union",
    "",
    "from tblbind import runtime as _rt",
)


class PythonModuleEmitter:
    """Emits the binding module for a dialect and its sorted operations."""

    def __init__(
        self,
        namespace: str,
        models: Sequence[_d.OperationModel],
        description: str = "",
    ):
        self.namespace = namespace
        self.description = description
        self.operations = [OperationEmitter(model) for model in models]
        self.dispatch = DispatchEmitter(namespace, models)

    def emit(self) -> str:
        emitter = CodeEmitter()
        for line in HEADER:
            emitter.line(line)
        emitter.blank_line()

        docstring = f"`{self.namespace}` dialect."
        if self.description:
            docstring += "\n\n" + _n.to_docstring(self.description)
        emitter.docstring(docstring)
        emitter.blank_line()
        for line in IMPORTS:
            emitter.line(line)

        for operation in self.operations:
            emitter.blank_line(2)
            operation.emit(emitter)

        if self.dispatch.models:
            emitter.blank_line(2)
            self.dispatch.emit(emitter)

        emitter.blank_line(2)
        exported = [
            name for operation in self.operations for name in operation.exported_names
        ]
        exported.extend(self.dispatch.exported_names)
        emitter.call("__all__ = [", [f'"{name}"' for name in exported], "]")
        return emitter.get()


def emit_dialect_python(
    namespace: str,
    models: Sequence[_d.OperationModel],
    description: str = "",
) -> str:
    """
    Top-level function to generate the Python bindings of a dialect.

    Returns:
        The source of the generated module.
    """
    return PythonModuleEmitter(namespace, models, description).emit()
