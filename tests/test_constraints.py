import pytest

from conftest import ATTR_BASES, TYPE_BASES, ref
from tblbind import ConstraintResolutionError
from tblbind._internal.constraints import ConstraintResolver
from tblbind._internal.diagnostics import Diagnostics


@pytest.fixture()
def resolver():
    return ConstraintResolver(Diagnostics())


def resolve_type(resolver, schema, name):
    return resolver.resolve_type("test.op", schema.keeper().get(name))


def test_known_types_narrow_to_runtime_kinds(resolver, schema):
    assert resolve_type(resolver, schema, "I32").accessor_type == "_rt.IntegerValue"
    assert resolve_type(resolver, schema, "F32").accessor_type == "_rt.FloatValue"
    assert resolve_type(resolver, schema, "Index").accessor_type == "_rt.IndexValue"
    assert resolve_type(resolver, schema, "AnyTensor").accessor_type == "_rt.TensorValue"

    any_type = resolve_type(resolver, schema, "AnyType")
    assert any_type.accessor_type == "_rt.Value"
    assert any_type.narrow("v") == "v"


def test_narrowing_expression(resolver, schema):
    constraint = resolve_type(resolver, schema, "I32")
    assert constraint.narrow("x") == "_rt.narrow(_rt.IntegerValue, x)"


def test_type_unions(resolver, schema):
    schema.add("Ints", [*TYPE_BASES, "AnyTypeOf"], allowedTypes=[ref("I32"), ref("I64")])
    schema.add("Mixed", [*TYPE_BASES, "AnyTypeOf"], allowedTypes=[ref("I32"), ref("F32")])

    assert resolve_type(resolver, schema, "Ints").accessor_type == "_rt.IntegerValue"
    assert resolve_type(resolver, schema, "Mixed").accessor_type == "_rt.Value"


def test_derived_constraint_follows_base_type(resolver, schema):
    schema.add("PositiveI32", [*TYPE_BASES, "ConfinedType"], baseType=ref("I32"))
    schema.add("Custom", TYPE_BASES, baseType=ref("F32"))

    assert resolve_type(resolver, schema, "PositiveI32").accessor_type == "_rt.IntegerValue"
    assert resolve_type(resolver, schema, "Custom").accessor_type == "_rt.FloatValue"


def test_unknown_constraint_is_opaque_with_warning(schema):
    diagnostics = Diagnostics()
    resolver = ConstraintResolver(diagnostics)
    schema.add("Test_Widget", [*TYPE_BASES, "DialectType"])

    constraint = resolve_type(resolver, schema, "Test_Widget")
    resolve_type(resolver, schema, "Test_Widget")

    assert constraint.is_opaque
    assert constraint.accessor_type == "_rt.Value"
    assert len(diagnostics.warnings) == 1
    assert "Test_Widget" in diagnostics.warnings[0].message


def test_unresolved_reference_is_fatal(resolver, schema):
    schema.add("Broken", [*TYPE_BASES, "ConfinedType"], baseType=ref("Missing"))
    with pytest.raises(ConstraintResolutionError, match="Missing"):
        resolve_type(resolver, schema, "Broken")


def test_cycle_is_fatal(resolver, schema):
    schema.add("Ping", TYPE_BASES, baseType=ref("Pong"))
    schema.add("Pong", TYPE_BASES, baseType=ref("Ping"))
    with pytest.raises(ConstraintResolutionError, match="cyclic"):
        resolve_type(resolver, schema, "Ping")


def test_attribute_wrappers_resolve_to_base(resolver, schema):
    defaulted_ref = schema.default_valued(ref("I64Attr"), "0")
    optional_ref = schema.optional_attr(ref("StrAttr"))
    keeper = schema.keeper()

    defaulted = resolver.resolve_attribute("test.op", keeper.get(defaulted_ref["def"]))
    optional = resolver.resolve_attribute("test.op", keeper.get(optional_ref["def"]))
    unit = resolver.resolve_attribute("test.op", keeper.get("UnitAttr"))

    assert defaulted.accessor_type == "_rt.IntegerAttr"
    assert optional.accessor_type == "_rt.StringAttr"
    assert unit.is_unit


def test_unknown_attribute_is_opaque(schema):
    diagnostics = Diagnostics()
    schema.add("Test_FancyAttr", [*ATTR_BASES, "AttrDef"])
    constraint = ConstraintResolver(diagnostics).resolve_attribute(
        "test.op", schema.keeper().get("Test_FancyAttr")
    )
    assert constraint.is_opaque
    assert diagnostics.warnings


def test_opaque_fallback_is_reported_for_every_operation(schema):
    diagnostics = Diagnostics()
    resolver = ConstraintResolver(diagnostics)
    schema.add("Test_Widget", [*TYPE_BASES, "DialectType"])
    schema.add("Test_FancyAttr", [*ATTR_BASES, "AttrDef"])
    keeper = schema.keeper()

    for operation in ("test.a", "test.b"):
        resolver.resolve_type(operation, keeper.get("Test_Widget"))
        resolver.resolve_attribute(operation, keeper.get("Test_FancyAttr"))
    resolver.resolve_type("test.b", keeper.get("Test_Widget"))

    assert [(w.record, "Test_Widget" in w.message) for w in diagnostics.warnings] == [
        ("test.a", True),
        ("test.a", False),
        ("test.b", True),
        ("test.b", False),
    ]
