import json

import pytest

from conftest import ref
from tblbind import (
    ModelConsistencyError,
    NamespaceNotFoundError,
    emit_dialect_module,
    generate_dialect,
)


def test_generated_module_layout(add_schema):
    generated = emit_dialect_module(add_schema.keeper(), "test")
    source = generated.source

    assert source.startswith("# AUTO-GENERATED by tblbind. DO NOT EDIT.\n")
    assert '"""`test` dialect.\n\nA dialect for tests.\n"""' in source
    assert "from tblbind import runtime as _rt" in source
    assert "class AddOperation(_rt.TypedOperation):" in source
    assert "class AddOperationBuilder(_rt.OperationBuilder[AddOperation]):" in source
    assert "def add(\n" in source
    assert "TestOperation = Union[" in source
    assert "match operation.name:" in source
    assert generated.operations == ("test.add",)
    assert generated.warnings == ()
    compile(source, "bindings.py", "exec")


def test_generation_is_idempotent(add_schema, dialect):
    add_schema.op(dialect, "Test_NopOp", "nop")
    first = emit_dialect_module(add_schema.keeper(), "test").source
    second = emit_dialect_module(add_schema.keeper(), "test").source
    assert first == second


def test_operations_are_sorted_by_name(schema, dialect):
    schema.op(dialect, "Test_ZOp", "zeta")
    schema.op(dialect, "Test_AOp", "alpha")
    generated = emit_dialect_module(schema.keeper(), "test")

    assert generated.operations == ("test.alpha", "test.zeta")
    assert generated.source.index("class AOperation") < generated.source.index(
        "class ZOperation"
    )


def test_other_namespaces_are_ignored(add_schema):
    other = add_schema.dialect("other")
    add_schema.op(other, "Other_AddOp", "add")

    assert emit_dialect_module(add_schema.keeper(), "test").operations == ("test.add",)
    assert emit_dialect_module(add_schema.keeper(), "other").operations == ("other.add",)


def test_unknown_namespace_lists_known_ones(add_schema):
    add_schema.dialect("other")
    with pytest.raises(NamespaceNotFoundError) as info:
        emit_dialect_module(add_schema.keeper(), "missing")
    assert info.value.known == ("other", "test")


def test_warnings_are_returned(schema, dialect):
    schema.add("Test_Widget", ["Constraint", "TypeConstraint", "Type", "DialectType"])
    schema.op(dialect, "Test_MakeOp", "make", results=[(ref("Test_Widget"), "widget")])

    generated = emit_dialect_module(schema.keeper(), "test")

    assert len(generated.warnings) == 1
    assert generated.warnings[0].record == "test.make"
    compile(generated.source, "bindings.py", "exec")


def test_colliding_class_names(schema, dialect):
    schema.op(dialect, "Test_AddOp", "add")
    schema.op(dialect, "Other_AddOp", "add2")
    with pytest.raises(ModelConsistencyError, match="AddOperation"):
        emit_dialect_module(schema.keeper(), "test")


def test_generate_dialect_from_json(add_schema, tmp_path):
    dump = tmp_path / "test.json"
    dump.write_text(json.dumps(add_schema.dump()))

    generated = generate_dialect("test", [str(dump)])
    assert generated.source == emit_dialect_module(add_schema.keeper(), "test").source
