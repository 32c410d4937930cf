import pytest

from conftest import ref
from tblbind import (
    ConstraintResolutionError,
    DuplicateNameError,
    FieldExtractionError,
    InconsistentCardinalityError,
    ModelConsistencyError,
    SegmentSizes,
)
from tblbind._internal.defs import Cardinality, SegmentLayout
from tblbind._internal.operations import OperationModelBuilder, default_literal


def build(schema, record_name, **kwargs):
    return OperationModelBuilder(**kwargs).build(schema.keeper().get(record_name))


def test_add_model(add_schema):
    model = build(add_schema, "Test_AddOp")

    assert model.qualified_name == "test.add"
    assert model.class_name == "AddOperation"
    assert model.function_name == "add"
    assert [field.name for field in model.operands] == ["lhs", "rhs"]
    assert [field.cardinality for field in model.operands] == [Cardinality.ONE] * 2
    assert model.results[0].constraint.accessor_type == "_rt.IntegerValue"
    assert model.summary == "Integer addition."
    assert model.operand_layout is SegmentLayout.SINGLE


def test_cardinality_wrappers(schema, dialect):
    schema.op(
        dialect,
        "Test_CallOp",
        "call",
        arguments=[
            (ref("StrAttr"), "callee"),
            (schema.variadic(ref("AnyType")), "args"),
            (schema.optional(ref("I32")), "token"),
        ],
        results=[(schema.variadic(ref("AnyType")), "outs")],
        traits=["SameVariadicOperandSize"],
    )
    model = build(schema, "Test_CallOp")

    assert [(f.name, f.cardinality) for f in model.operands] == [
        ("args", Cardinality.VARIADIC),
        ("token", Cardinality.OPTIONAL),
    ]
    assert model.operand_layout is SegmentLayout.SAME_SIZE
    assert model.results[0].cardinality is Cardinality.VARIADIC
    assert [attribute.name for attribute in model.attributes] == ["callee"]


def test_two_variadics_without_trait_fail(schema, dialect):
    schema.op(
        dialect,
        "Test_ConcatOp",
        "concat",
        arguments=[
            (schema.variadic(ref("AnyType")), "first"),
            (schema.variadic(ref("AnyType")), "second"),
        ],
    )
    with pytest.raises(ModelConsistencyError) as info:
        build(schema, "Test_ConcatOp")
    assert isinstance(info.value, InconsistentCardinalityError)
    assert "first" in str(info.value) and "second" in str(info.value)


def test_attribute_sized_segments_add_implicit_attribute(schema, dialect):
    schema.op(
        dialect,
        "Test_ConcatOp",
        "concat",
        arguments=[
            (schema.variadic(ref("AnyType")), "first"),
            (schema.variadic(ref("AnyType")), "second"),
        ],
        traits=["AttrSizedOperandSegments"],
    )
    model = build(schema, "Test_ConcatOp", segment_sizes=SegmentSizes(operands="sizes"))

    assert model.operand_layout is SegmentLayout.ATTRIBUTE
    (segments,) = model.attributes
    assert segments.name == "sizes"
    assert segments.is_implicit
    assert not segments.is_required


def test_nested_variadic_fails(schema, dialect):
    nested = schema.variadic(schema.variadic(ref("I32")))
    schema.op(dialect, "Test_NestOp", "nest", arguments=[(nested, "groups")])
    with pytest.raises(InconsistentCardinalityError, match="groups"):
        build(schema, "Test_NestOp")


def test_attributes(schema, dialect):
    schema.op(
        dialect,
        "Test_ShiftOp",
        "shift",
        arguments=[
            (ref("I64Attr"), "amount"),
            (schema.default_valued(ref("BoolAttr"), "false"), "wrap"),
            (schema.optional_attr(ref("StrAttr")), "label"),
            (ref("UnitAttr"), "exact"),
        ],
    )
    amount, wrap, label, exact = build(schema, "Test_ShiftOp").attributes

    assert amount.is_required
    assert wrap.has_default and wrap.default_value is False and not wrap.is_required
    assert label.is_optional and not label.is_required
    assert exact.constraint.is_unit


def test_duplicate_names_across_kinds(schema, dialect):
    schema.op(
        dialect,
        "Test_DupOp",
        "dup",
        arguments=[(ref("I32"), "value")],
        results=[(ref("I32"), "value")],
    )
    with pytest.raises(DuplicateNameError) as info:
        build(schema, "Test_DupOp")
    assert info.value.name == "value"
    assert info.value.operation == "test.dup"


def test_duplicate_identifiers(schema, dialect):
    schema.op(
        dialect,
        "Test_DupOp",
        "dup",
        arguments=[(ref("I32"), "inputValue"), (ref("I32"), "input_value")],
    )
    with pytest.raises(DuplicateNameError):
        build(schema, "Test_DupOp")


def test_variadic_region_must_be_last(schema, dialect):
    schema.op(
        dialect,
        "Test_CaseOp",
        "case",
        regions=[(schema.variadic_region(), "cases"), (ref("AnyRegion"), "default")],
    )
    with pytest.raises(InconsistentCardinalityError, match="cases"):
        build(schema, "Test_CaseOp")


def test_unnamed_fields_get_positional_names(schema, dialect):
    schema.op(
        dialect,
        "Test_PairOp",
        "pair",
        arguments=[(ref("I32"), None), (ref("I32"), None)],
        results=[(ref("I32"), None)],
    )
    model = build(schema, "Test_PairOp")
    assert [field.name for field in model.operands] == ["operand_0", "operand_1"]
    assert model.results[0].name == "result_0"


def test_non_constraint_argument(schema, dialect):
    schema.add("Whatever", ["Something"])
    schema.op(dialect, "Test_OddOp", "odd", arguments=[(ref("Whatever"), "x")])
    with pytest.raises(ConstraintResolutionError, match="Whatever"):
        build(schema, "Test_OddOp")


def test_empty_operation_name(schema, dialect):
    schema.op(dialect, "Test_NamelessOp", "")
    with pytest.raises(FieldExtractionError):
        build(schema, "Test_NamelessOp")


def test_reserved_and_keyword_names_are_escaped(schema, dialect):
    schema.op(
        dialect,
        "Test_ImportOp",
        "import",
        arguments=[(ref("I32"), "from"), (ref("StrAttr"), "builder")],
    )
    model = build(schema, "Test_ImportOp")

    assert model.function_name == "import_"
    assert model.operands[0].identifier == "from_"
    assert model.attributes[0].identifier == "builder_"


def test_argument_and_result_annotations_are_unwrapped(schema, dialect):
    schema.op(
        dialect,
        "Test_LoadOp",
        "load",
        arguments=[
            (schema.arg(ref("AnyTensor"), "the loaded tensor"), "memref"),
            (schema.arg(schema.variadic(ref("Index"))), "indices"),
            (schema.arg(ref("I64Attr")), "alignment"),
        ],
        results=[(schema.res(schema.variadic(ref("AnyTensor"))), "values")],
    )
    model = build(schema, "Test_LoadOp")

    assert [(f.name, f.cardinality) for f in model.operands] == [
        ("memref", Cardinality.ONE),
        ("indices", Cardinality.VARIADIC),
    ]
    assert model.operands[0].constraint.accessor_type == "_rt.TensorValue"
    assert model.operands[1].constraint.accessor_type == "_rt.IndexValue"
    assert [a.name for a in model.attributes] == ["alignment"]
    assert model.attributes[0].constraint.accessor_type == "_rt.IntegerAttr"
    (values,) = model.results
    assert values.cardinality is Cardinality.VARIADIC
    assert not values.constraint.is_opaque


def test_function_names_do_not_shadow_module_globals(schema, dialect):
    schema.op(dialect, "Test_AnyOp", "any")
    schema.op(dialect, "Test_LenOp", "len")
    schema.op(dialect, "Test_SelectOp", "select")

    assert build(schema, "Test_AnyOp").function_name == "any_"
    assert build(schema, "Test_LenOp").function_name == "len_"
    assert build(schema, "Test_SelectOp").function_name == "select"


@pytest.mark.parametrize(
    "text, expected",
    [
        ("0", 0),
        ("1.5", 1.5),
        ("true", True),
        ('"ceil"', "ceil"),
        ("::mlir::arith::FastMathFlags::none", "::mlir::arith::FastMathFlags::none"),
    ],
)
def test_default_literal(text, expected):
    assert default_literal(text) == expected
