import importlib.util
import itertools
import sys
from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import pytest

from tblbind import emit_dialect_module
from tblbind._internal.records import RecordKeeper

TYPE_BASES = ["Constraint", "TypeConstraint", "Type"]
ATTR_BASES = ["Constraint", "AttrConstraint", "Attr"]
TRAIT_BASES = ["Trait", "NativeTrait", "NativeOpTrait"]


def ref(name: str) -> dict[str, Any]:
    return {"kind": "def", "def": name, "printable": name}


def dag(operator: str, entries) -> dict[str, Any]:
    return {
        "kind": "dag",
        "operator": ref(operator),
        "printable": f"({operator} ...)",
        "args": [[value, name] for value, name in entries],
    }


class SchemaBuilder:
    """Builds record dumps shaped like `llvm-tblgen --dump-json` output."""

    def __init__(self) -> None:
        self.records: dict[str, dict[str, Any]] = {}
        self._counter = itertools.count()
        self._add_builtins()

    def add(self, name, superclasses=(), /, *, anonymous=False, **fields):
        data = {
            "!name": name,
            "!superclasses": list(superclasses),
            "!anonymous": anonymous,
        }
        data.update(fields)
        self.records[name] = data
        return ref(name)

    def anonymous(self, superclasses, **fields):
        return self.add(
            f"anonymous_{next(self._counter)}", superclasses, anonymous=True, **fields
        )

    def _add_builtins(self) -> None:
        for operator in ("ins", "outs", "region", "successor"):
            self.add(operator)
        self.add("AnyType", TYPE_BASES)
        self.add("I32", [*TYPE_BASES, "I"])
        self.add("I64", [*TYPE_BASES, "I"])
        self.add("F32", [*TYPE_BASES, "F"])
        self.add("Index", TYPE_BASES)
        self.add("AnyTensor", [*TYPE_BASES, "ShapedContainerType", "TensorOf"])
        self.add("I64Attr", [*ATTR_BASES, "TypedAttrBase", "SignlessIntegerAttrBase"])
        self.add("StrAttr", [*ATTR_BASES, "StringBasedAttr"])
        self.add("BoolAttr", ATTR_BASES)
        self.add("UnitAttr", ATTR_BASES)
        self.add("AnyRegion", ["Region"])
        self.add("AnySuccessor", ["Successor"])
        for name, trait in (
            ("Commutative", "IsCommutative"),
            ("Terminator", "IsTerminator"),
            ("NoMemoryEffect", "NoMemoryEffect"),
            ("AlwaysSpeculatable", "AlwaysSpeculatableImplTrait"),
            ("AttrSizedOperandSegments", "AttrSizedOperandSegments"),
            ("AttrSizedResultSegments", "AttrSizedResultSegments"),
            ("SameVariadicOperandSize", "SameVariadicOperandSize"),
            ("SameVariadicResultSize", "SameVariadicResultSize"),
            ("OneRegion", "OneRegion"),
            ("ZeroOperands", "ZeroOperands"),
            ("OneResult", "OneResult"),
        ):
            self.add(name, TRAIT_BASES, trait=trait)
        self.add(
            "Pure",
            ["TraitList"],
            traits=[ref("AlwaysSpeculatable"), ref("NoMemoryEffect")],
        )
        self.add(
            "InferTypeOpInterface",
            ["Trait", "Interface", "OpInterfaceTrait", "OpInterface"],
            cppInterfaceName="InferTypeOpInterface",
        )

    def variadic(self, base):
        return self.anonymous([*TYPE_BASES, "Variadic"], baseType=base)

    def optional(self, base):
        return self.anonymous([*TYPE_BASES, "Optional"], baseType=base)

    def default_valued(self, base, value: str):
        return self.anonymous(
            [*ATTR_BASES, "DefaultValuedAttr"],
            baseAttr=base,
            defaultValue=value,
            isOptional=0,
        )

    def optional_attr(self, base):
        return self.anonymous(
            [*ATTR_BASES, "OptionalAttr"],
            baseAttr=base,
            defaultValue=None,
            isOptional=1,
        )

    def variadic_region(self, base=None):
        return self.anonymous(["Region", "VariadicRegion"], region=base or ref("AnyRegion"))

    def arg(self, constraint, description: str = ""):
        return self.anonymous(
            ["OpVariable", "Arg"], constraint=constraint, description=description
        )

    def res(self, constraint, description: str = ""):
        return self.anonymous(
            ["OpVariable", "Res"], constraint=constraint, description=description
        )

    def dialect(self, name: str, description: str = ""):
        return self.add(
            f"{name.title()}_Dialect",
            ["Dialect"],
            name=name,
            summary="",
            description=description,
            cppNamespace=f"::mlir::{name}",
        )

    def op(
        self,
        dialect,
        record_name: str,
        op_name: str,
        *,
        arguments=(),
        results=(),
        regions=(),
        successors=(),
        traits=(),
        summary: str = "",
        description: str = "",
    ):
        return self.add(
            record_name,
            ["Op"],
            opDialect=dialect,
            opName=op_name,
            arguments=dag("ins", arguments),
            results=dag("outs", results),
            regions=dag("region", regions),
            successors=dag("successor", successors),
            traits=[ref(trait) if isinstance(trait, str) else trait for trait in traits],
            summary=summary,
            description=description,
        )

    def dump(self) -> dict[str, Any]:
        instances: dict[str, list[str]] = defaultdict(list)
        for name, data in self.records.items():
            for superclass in data["!superclasses"]:
                instances[superclass].append(name)
        return {"!instanceof": dict(instances), **self.records}

    def keeper(self) -> RecordKeeper:
        return RecordKeeper(self.dump())


@dataclass
class FakeOperation:
    """Stands in for the generic operation handle of an IR runtime."""

    name: str
    operands: list[Any] = field(default_factory=list)
    results: list[Any] = field(default_factory=list)
    attributes: dict[str, Any] = field(default_factory=dict)
    regions: list[Any] = field(default_factory=list)
    successors: list[Any] = field(default_factory=list)

    def __str__(self) -> str:
        return f'"{self.name}"({", ".join(map(str, self.operands))})'


class FakeFactory:
    """Records `create` calls; inferred results are reported as `"inferred"`."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def create(self, name, *, operands, results, attributes, regions, successors):
        self.calls.append(
            {
                "name": name,
                "operands": list(operands),
                "results": None if results is None else list(results),
                "attributes": dict(attributes),
                "regions": list(regions),
                "successors": list(successors),
            }
        )
        return FakeOperation(
            name=name,
            operands=list(operands),
            results=["inferred"] if results is None else list(results),
            attributes=dict(attributes),
            regions=list(regions),
            successors=list(successors),
        )


def load_module(path: Path, name: str):
    spec = importlib.util.spec_from_file_location(name, path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    sys.modules[name] = module
    spec.loader.exec_module(module)
    return module


@pytest.fixture()
def schema() -> SchemaBuilder:
    return SchemaBuilder()


@pytest.fixture()
def factory() -> FakeFactory:
    return FakeFactory()


@pytest.fixture()
def bindings(tmp_path, request):
    """Generates and imports the bindings of a namespace."""
    counter = itertools.count()

    def load(schema: SchemaBuilder, namespace: str, **kwargs):
        generated = emit_dialect_module(schema.keeper(), namespace, **kwargs)
        name = f"generated_{request.node.name}_{next(counter)}".replace("[", "_")
        name = "".join(c if c.isalnum() else "_" for c in name)
        path = tmp_path / f"{name}.py"
        path.write_text(generated.source)
        try:
            return load_module(path, name)
        finally:
            sys.modules.pop(name, None)

    return load


@pytest.fixture()
def dialect(schema):
    return schema.dialect("test", "A dialect for tests.")


@pytest.fixture()
def add_schema(schema, dialect):
    """The `test.add` operation: two integer operands and one integer result."""
    schema.op(
        dialect,
        "Test_AddOp",
        "add",
        arguments=[(ref("I32"), "lhs"), (ref("I32"), "rhs")],
        results=[(ref("I32"), "result")],
        summary="Integer addition.",
    )
    return schema
