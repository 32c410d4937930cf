"""
Generation of the Python bindings of one dialect namespace.

This is the entry point used by the CLI and by build scripts: it loads the
schema, builds a model for every operation of the namespace, and assembles
the binding module. Any error aborts the run before output is produced.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass

from ._generator.dispatch import DispatchEmitter
from ._generator.operation import OperationEmitter
from ._generator.python import emit_dialect_python
from ._internal import exceptions as _e
from ._internal.defs import DEFAULT_SEGMENT_SIZES, OperationModel, SegmentSizes
from ._internal.diagnostics import Diagnostics, GenerationWarning
from ._internal.ingest import load_records
from ._internal.operations import OperationModelBuilder, dialect_name
from ._internal.records import Record, RecordKeeper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GeneratedModule:
    """The outcome of one generation run."""

    namespace: str
    source: str
    warnings: tuple[GenerationWarning, ...] = ()
    operations: tuple[str, ...] = ()


def dialect_names(keeper: RecordKeeper) -> list[str]:
    """Returns the sorted names of every dialect declared in the schema."""
    return sorted(
        {
            record.get_string("name")
            for record in keeper.all_derived_definitions("Dialect")
            if record.get_string("name", default="")
        }
    )


def find_dialect(keeper: RecordKeeper, namespace: str) -> Record:
    for record in keeper.all_derived_definitions("Dialect"):
        if record.get_string("name", default="") == namespace:
            return record
    raise _e.NamespaceNotFoundError(namespace, dialect_names(keeper))


def operation_records(keeper: RecordKeeper, namespace: str) -> list[Record]:
    """Returns the operation records of `namespace`, skipping anonymous ones."""
    return [
        record
        for record in keeper.all_derived_definitions("Op")
        if not record.is_anonymous and dialect_name(record) == namespace
    ]


def _check_generated_names(
    namespace: str, models: Sequence[OperationModel]
) -> None:
    """Raises when two operations would generate the same module-level name."""
    owners: dict[str, str] = {}
    dispatch = DispatchEmitter(namespace, models)
    for name in dispatch.exported_names:
        owners[name] = f"the `{namespace}` dispatch"
    for model in models:
        for name in OperationEmitter(model).exported_names:
            if name in owners:
                raise _e.ModelConsistencyError(
                    model.qualified_name,
                    f"generated name '{name}' is already used by {owners[name]}",
                )
            owners[name] = model.qualified_name


def emit_dialect_module(
    keeper: RecordKeeper,
    namespace: str,
    *,
    segment_sizes: SegmentSizes = DEFAULT_SEGMENT_SIZES,
) -> GeneratedModule:
    """Generates the bindings of `namespace` from already loaded records."""
    dialect = find_dialect(keeper, namespace)
    diagnostics = Diagnostics()
    builder = OperationModelBuilder(diagnostics, segment_sizes)

    models = sorted(
        (builder.build(record) for record in operation_records(keeper, namespace)),
        key=lambda model: model.qualified_name,
    )
    _check_generated_names(namespace, models)
    if not models:
        logger.info("dialect '%s' declares no operations", namespace)

    source = emit_dialect_python(
        namespace, models, dialect.get_string("description", default="")
    )
    logger.info(
        "generated %d operation(s) for dialect '%s' with %d warning(s)",
        len(models),
        namespace,
        len(diagnostics.warnings),
    )
    return GeneratedModule(
        namespace=namespace,
        source=source,
        warnings=diagnostics.warnings,
        operations=tuple(model.qualified_name for model in models),
    )


def generate_dialect(
    namespace: str,
    schema_files: Sequence[str],
    include_directories: Sequence[str] = (),
    *,
    tblgen: str | None = None,
    segment_sizes: SegmentSizes = DEFAULT_SEGMENT_SIZES,
) -> GeneratedModule:
    """
    Loads the schema and generates the bindings of one dialect namespace.

    Returns:
        A `GeneratedModule` holding the module source, the warnings raised
        while building models and the qualified names of the operations.
    """
    keeper = load_records(schema_files, include_directories, tblgen)
    return emit_dialect_module(keeper, namespace, segment_sizes=segment_sizes)
