"""
tblbind: typed Python bindings generated from TableGen operation definitions.

This package reads the operation-definition records of an IR dialect and
generates a Python module with one typed wrapper, builder and constructor
function per operation, plus a dispatch over every operation of the dialect.

Example:
    from tblbind import generate_dialect

    module = generate_dialect("arith", ["mlir/Dialect/Arith/IR/ArithOps.td"],
                              include_directories=["/usr/lib/llvm/include"])
    Path("arith.py").write_text(module.source)
"""

__version__ = "0.0.0-dev"

from . import runtime
from ._internal.defs import DEFAULT_SEGMENT_SIZES, SegmentSizes
from ._internal.diagnostics import GenerationWarning
from ._internal.exceptions import (
    BindingError,
    ConstraintResolutionError,
    DuplicateNameError,
    FieldAbsentError,
    FieldError,
    FieldExtractionError,
    FieldSizeMismatchError,
    FieldTypeMismatchError,
    InconsistentCardinalityError,
    MalformedOperationError,
    MissingFieldError,
    ModelConsistencyError,
    ModelError,
    NamespaceNotFoundError,
    SchemaIngestionError,
    SourceLocation,
    TblbindError,
    TraitConflictError,
)
from ._internal.ingest import load_records
from .generate import GeneratedModule, emit_dialect_module, generate_dialect

__all__ = [
    "generate_dialect",
    "emit_dialect_module",
    "load_records",
    "GeneratedModule",
    "GenerationWarning",
    "SegmentSizes",
    "DEFAULT_SEGMENT_SIZES",
    "runtime",
    "TblbindError",
    "SourceLocation",
    "SchemaIngestionError",
    "FieldExtractionError",
    "FieldError",
    "FieldAbsentError",
    "FieldTypeMismatchError",
    "NamespaceNotFoundError",
    "ModelError",
    "ConstraintResolutionError",
    "ModelConsistencyError",
    "InconsistentCardinalityError",
    "DuplicateNameError",
    "TraitConflictError",
    "BindingError",
    "MalformedOperationError",
    "MissingFieldError",
    "FieldSizeMismatchError",
]
