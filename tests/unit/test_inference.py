"""Unit tests for dslmeta.introspect — annotation inference and naming."""
from __future__ import annotations

import typing
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, ClassVar, Optional

import pytest

from dslmeta.annotations.markers import Field, Relation
from dslmeta.core.descriptors import Cardinality, Primitive, ValueKind
from dslmeta.introspect import (
    ForwardName,
    build_field,
    field_annotations,
    forward_namespace,
    is_pascal_case,
    resolve_annotation,
    to_snake_case,
)


class Color(Enum):
    RED = "red"
    GREEN = "green"


class Supplier:
    pass


# ===========================================================================
# Naming
# ===========================================================================


class TestNaming:
    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("Order", "order"),
            ("OrderLine", "order_line"),
            ("orderLine", "order_line"),
            ("HTTPRequest", "http_request"),
            ("order_line", "order_line"),
            ("Line2Item", "line2_item"),
        ],
    )
    def test_to_snake_case(self, name: str, expected: str) -> None:
        assert to_snake_case(name) == expected

    def test_is_pascal_case(self) -> None:
        assert is_pascal_case("OrderLine")
        assert not is_pascal_case("orderLine")
        assert not is_pascal_case("order_line")


# ===========================================================================
# Forward references
# ===========================================================================


class TestResolveAnnotation:
    def test_non_string_returned_unchanged(self) -> None:
        assert resolve_annotation(int) is int

    def test_known_names_resolve(self) -> None:
        assert resolve_annotation("Decimal", {"Decimal": Decimal}) is Decimal

    def test_builtins_resolve(self) -> None:
        assert resolve_annotation("list[int]") == list[int]

    def test_unknown_name_becomes_placeholder(self) -> None:
        tp = resolve_annotation("Invoice")
        assert isinstance(tp, type)
        assert issubclass(tp, ForwardName)
        assert tp.__name__ == "Invoice"

    def test_placeholders_are_cached_by_name(self) -> None:
        assert resolve_annotation("Invoice") is resolve_annotation("Invoice")

    def test_forward_ref_object(self) -> None:
        tp = resolve_annotation(typing.ForwardRef("Invoice"))
        assert tp.__name__ == "Invoice"

    def test_placeholder_inside_optional(self) -> None:
        tp = resolve_annotation("Invoice | None", forward_namespace())
        assert type(None) in typing.get_args(tp)

    def test_namespace_reports_every_name(self) -> None:
        ns = forward_namespace({"Decimal": Decimal})
        assert "Invoice" in ns
        assert ns["Decimal"] is Decimal
        assert ns["len"] is len

    def test_annotated_string_keeps_metadata(self) -> None:
        tp = resolve_annotation("Annotated[str, 'label']", {"Annotated": typing.Annotated})
        assert typing.get_args(tp) == (str, "label")


class TestFieldAnnotations:
    def test_declaration_order_and_skips(self) -> None:
        class Sample:
            b: int
            a: str
            _private: int
            counter: ClassVar[int] = 0

        assert [name for name, _ in field_annotations(Sample)] == ["b", "a"]

    def test_inherited_annotations_are_not_collected(self) -> None:
        class Base:
            id: str

        class Child(Base):
            name: str

        assert [name for name, _ in field_annotations(Child)] == ["name"]


# ===========================================================================
# build_field
# ===========================================================================


class TestBuildFieldPrimitives:
    @pytest.mark.parametrize(
        ("annotation", "expected"),
        [
            (str, Primitive.STRING),
            (int, Primitive.INTEGER),
            (float, Primitive.NUMBER),
            (bool, Primitive.BOOLEAN),
            (Decimal, Primitive.DECIMAL),
            (datetime, Primitive.DATE),
            (date, Primitive.DATE),
            (dict, Primitive.JSON),
        ],
    )
    def test_primitive_mapping(self, annotation: object, expected: Primitive) -> None:
        f = build_field("value", annotation)
        assert f.kind is ValueKind.PRIMITIVE
        assert f.primitive is expected
        assert f.nullable is False

    def test_parameterized_dict_is_json(self) -> None:
        assert build_field("meta", dict[str, int]).primitive is Primitive.JSON

    def test_optional_is_nullable(self) -> None:
        f = build_field("email", Optional[str])
        assert f.nullable is True
        assert f.primitive is Primitive.STRING

    def test_pipe_none_is_nullable(self) -> None:
        assert build_field("email", str | None).nullable is True

    def test_string_annotation(self) -> None:
        f = build_field("email", "str | None")
        assert f.nullable is True
        assert f.primitive is Primitive.STRING

    def test_unsupported_annotation_names_field(self) -> None:
        with pytest.raises(TypeError, match="weird"):
            build_field("weird", int | str)


class TestBuildFieldEnumsAndCollections:
    def test_enum(self) -> None:
        f = build_field("color", Color)
        assert f.kind is ValueKind.ENUM
        assert f.enum_values == ("red", "green")

    def test_primitive_collection(self) -> None:
        f = build_field("tags", list[str])
        assert f.kind is ValueKind.COLLECTION
        assert f.primitive is Primitive.STRING
        assert f.relation is None

    def test_tuple_ellipsis_collection(self) -> None:
        assert build_field("scores", tuple[int, ...]).primitive is Primitive.INTEGER

    def test_bare_list_is_json_collection(self) -> None:
        f = build_field("items", list)
        assert f.kind is ValueKind.COLLECTION
        assert f.primitive is Primitive.JSON

    def test_entity_collection_is_many_relation(self) -> None:
        f = build_field("suppliers", list[Supplier])
        assert f.kind is ValueKind.COLLECTION
        assert f.relation is not None
        assert f.relation.target == "Supplier"
        assert f.relation.cardinality is Cardinality.MANY


class TestBuildFieldReferences:
    def test_class_reference(self) -> None:
        f = build_field("supplier", Supplier)
        assert f.kind is ValueKind.REFERENCE
        assert f.relation is not None
        assert f.relation.target == "Supplier"
        assert f.relation.cardinality is Cardinality.ONE

    def test_identify_maps_class_to_identifier(self) -> None:
        f = build_field("supplier", Supplier, identify=lambda tp: "Vendor" if tp is Supplier else None)
        assert f.relation is not None
        assert f.relation.target == "Vendor"

    def test_forward_reference_by_name(self) -> None:
        f = build_field("invoice", "Optional[Invoice]", namespace=forward_namespace({"Optional": Optional}))
        assert f.kind is ValueKind.REFERENCE
        assert f.nullable is True
        assert f.relation is not None
        assert f.relation.target == "Invoice"


class TestBuildFieldMarkers:
    def test_field_marker_options(self) -> None:
        f = build_field(
            "total",
            Annotated[Decimal, Field(label="Total", precision=12, scale=2, column="total_amount")],
        )
        assert f.primitive is Primitive.DECIMAL
        assert f.label == "Total"
        assert (f.precision, f.scale) == (12, 2)
        assert f.column == "total_amount"
        assert f.validation is None

    def test_field_type_overrides_inference(self) -> None:
        f = build_field("amount", Annotated[str, Field(type="decimal")])
        assert f.primitive is Primitive.DECIMAL

    def test_field_nullable_overrides_annotation(self) -> None:
        assert build_field("note", Annotated[str | None, Field(nullable=False)]).nullable is False

    def test_primary_key_marker(self) -> None:
        assert build_field("code", Annotated[str, Field(primary_key=True)]).primary_key is True

    def test_validation_hints_recorded(self) -> None:
        f = build_field("name", Annotated[str, Field(min_length=1, max_length=80, pattern=r"^\w+$")])
        assert f.validation is not None
        assert f.validation.max_length == 80
        assert f.validation.pattern == r"^\w+$"

    def test_annotated_inside_optional(self) -> None:
        f = build_field("note", Optional[Annotated[str, Field(label="Note")]])
        assert f.nullable is True
        assert f.label == "Note"

    def test_relation_marker_with_explicit_target(self) -> None:
        f = build_field("orderId", Annotated[str, Relation(to="Order", join_column="order_ref")])
        assert f.kind is ValueKind.REFERENCE
        assert f.primitive is None
        assert f.relation is not None
        assert f.relation.target == "Order"
        assert f.relation.join_column == "order_ref"

    def test_relation_marker_forces_many(self) -> None:
        f = build_field("supplier", Annotated[Supplier, Relation(many=True, cascade=True)])
        assert f.kind is ValueKind.COLLECTION
        assert f.relation is not None
        assert f.relation.cardinality is Cardinality.MANY
        assert f.relation.cascade is True

    def test_relation_marker_on_primitive_without_target_raises(self) -> None:
        with pytest.raises(TypeError, match="Relation"):
            build_field("code", Annotated[str, Relation()])

    def test_extra_markers_argument(self) -> None:
        f = build_field("total", Decimal, markers=(Field(label="Total"),))
        assert f.label == "Total"


class TestFieldMarkerValidation:
    def test_unknown_type_rejected(self) -> None:
        with pytest.raises(ValueError):
            Field(type="money")

    def test_scale_requires_precision(self) -> None:
        with pytest.raises(ValueError, match="precision"):
            Field(scale=2)
