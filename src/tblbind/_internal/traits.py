"""
Resolution of applied trait records into trait tags.

Only a fixed vocabulary of traits is understood. Anything else is kept as an
opaque tag so that schemas using traits the generator does not know about
still generate, with a warning.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from . import exceptions as _e
from .diagnostics import Diagnostics
from .records import Record

if TYPE_CHECKING:
    from .defs import OperationModel


class TraitKind(Enum):
    """Traits the generator recognizes, keyed by their schema name."""

    SINGLE_RESULT = "OneResult"
    ZERO_OPERANDS = "ZeroOperands"
    ZERO_RESULTS = "ZeroResults"
    ZERO_REGIONS = "ZeroRegions"
    ZERO_SUCCESSORS = "ZeroSuccessors"
    SINGLE_REGION = "OneRegion"
    SINGLE_BLOCK = "SingleBlock"
    NO_TERMINATOR = "NoTerminator"
    TERMINATOR = "IsTerminator"
    NO_SIDE_EFFECT = "NoMemoryEffect"
    ALWAYS_SPECULATABLE = "AlwaysSpeculatableImplTrait"
    COMMUTATIVE = "IsCommutative"
    ISOLATED_FROM_ABOVE = "IsolatedFromAbove"
    SYMBOL = "Symbol"
    SYMBOL_TABLE = "SymbolTable"
    SAME_OPERANDS_AND_RESULT_TYPE = "SameOperandsAndResultType"
    ATTR_SIZED_OPERAND_SEGMENTS = "AttrSizedOperandSegments"
    ATTR_SIZED_RESULT_SEGMENTS = "AttrSizedResultSegments"
    SAME_VARIADIC_OPERAND_SIZE = "SameVariadicOperandSize"
    SAME_VARIADIC_RESULT_SIZE = "SameVariadicResultSize"
    INFER_TYPE = "InferTypeOpInterface"


_ALIASES = {
    "Terminator": TraitKind.TERMINATOR,
    "NoSideEffect": TraitKind.NO_SIDE_EFFECT,
    "Commutative": TraitKind.COMMUTATIVE,
    "SymbolOpInterface": TraitKind.SYMBOL,
}
_BY_NAME = {kind.value: kind for kind in TraitKind}


@dataclass(frozen=True, order=True)
class TraitTag:
    name: str
    kind: TraitKind | None = None

    @property
    def is_known(self) -> bool:
        return self.kind is not None


def _lookup(name: str) -> TraitKind | None:
    if name in _BY_NAME:
        return _BY_NAME[name]
    return _ALIASES.get(name)


def trait_tag(record: Record) -> TraitTag:
    """Names a single (non-list) trait record."""
    kind = _lookup(record.name)
    if kind is not None:
        return TraitTag(record.name, kind)
    for field in ("trait", "cppInterfaceName"):
        name = record.get_string(field, default="")
        if name:
            return TraitTag(name, _lookup(name))
    return TraitTag(record.name, None)


def _flatten(records: Iterable[Record], seen: set[str]) -> Iterable[Record]:
    for record in records:
        if record.name in seen:
            continue
        seen.add(record.name)
        if record.is_subclass_of("TraitList"):
            yield from _flatten(record.get_records("traits", default=[]), seen)
        else:
            yield record


def resolve_traits(
    operation: str, records: Iterable[Record], diagnostics: Diagnostics
) -> frozenset[TraitTag]:
    """Maps the trait records applied to `operation` to trait tags."""
    tags = set()
    for record in _flatten(records, set()):
        tag = trait_tag(record)
        if not tag.is_known:
            diagnostics.warn(
                operation, f"unknown trait '{tag.name}' has no effect on bindings"
            )
        tags.add(tag)
    return frozenset(tags)


def check_structure(model: OperationModel) -> None:
    """Raises `TraitConflictError` when a trait disagrees with declared fields."""
    name = model.qualified_name

    def conflict(kind: TraitKind, message: str) -> _e.TraitConflictError:
        return _e.TraitConflictError(name, kind.value, message)

    if model.has_trait(TraitKind.SINGLE_RESULT):
        if len(model.results) != 1 or model.results[0].is_variable_length:
            raise conflict(
                TraitKind.SINGLE_RESULT,
                f"requires exactly one result, found {len(model.results)}",
            )
    empty_lists = (
        (TraitKind.ZERO_OPERANDS, "operands", model.operands),
        (TraitKind.ZERO_RESULTS, "results", model.results),
        (TraitKind.ZERO_REGIONS, "regions", model.regions),
        (TraitKind.ZERO_SUCCESSORS, "successors", model.successors),
    )
    for kind, label, fields in empty_lists:
        if model.has_trait(kind) and fields:
            raise conflict(kind, f"forbids {label}, found {len(fields)}")
    if model.has_trait(TraitKind.SINGLE_REGION) and (
        len(model.regions) != 1 or model.regions[0].is_variadic
    ):
        raise conflict(TraitKind.SINGLE_REGION, "requires exactly one region")
    if model.successors and not model.has_trait(TraitKind.TERMINATOR):
        raise conflict(
            TraitKind.TERMINATOR, "is required by operations with successors"
        )
