"""
Tests for the BHV2 value model.

These tests verify:
    - Each kind builds the right value variant
    - Field slots are either complete or holes
    - Accessors navigate structs and cells and reject the wrong kind
"""

import numpy as np
import pytest

from bhv2.dtypes import ElementKind
from bhv2.examples import (
    cell_value,
    char_value,
    double_scalar,
    numeric_array,
    struct_array,
    struct_value,
)
from bhv2.model import (
    CellValue,
    CharValue,
    FieldSlot,
    NumericValue,
    StructValue,
    cell_element,
    element_at,
    get_double,
    get_string,
    make_value_shell,
    resolve_path,
    struct_field,
)


class TestValueShell:
    """make_value_shell picks the variant from the kind."""

    @pytest.mark.parametrize("kind", [
        ElementKind.F64, ElementKind.F32, ElementKind.U8, ElementKind.I64, ElementKind.BOOL,
    ])
    def test_numeric_kinds(self, kind):
        value = make_value_shell(kind, (2, 3))
        assert isinstance(value, NumericValue)
        assert value.kind == kind
        assert value.element_count == 6

    def test_char(self):
        value = make_value_shell(ElementKind.CHAR, [1, 4])
        assert isinstance(value, CharValue)
        assert value.kind == ElementKind.CHAR
        assert value.shape == (1, 4)

    def test_struct_and_cell(self):
        assert isinstance(make_value_shell(ElementKind.STRUCT, (1, 1)), StructValue)
        assert isinstance(make_value_shell(ElementKind.CELL, (1, 1)), CellValue)

    def test_zero_dimension(self):
        assert make_value_shell(ElementKind.F64, (3, 0, 2)).element_count == 0

    def test_rank_zero(self):
        value = make_value_shell(ElementKind.F64, ())
        assert value.rank == 0
        assert value.element_count == 1
        assert value.is_scalar()

    def test_negative_dimension_rejected(self):
        with pytest.raises(ValueError):
            make_value_shell(ElementKind.F64, (1, -1))


class TestNumericValue:
    """Numeric payloads are flat typed arrays."""

    def test_data_is_coerced_to_kind_dtype(self):
        value = NumericValue(kind=ElementKind.I16, shape=(1, 3), data=[1, 2, 3])
        assert isinstance(value.data, np.ndarray)
        assert value.data.dtype == np.dtype("<i2")

    def test_data_is_flattened(self):
        value = NumericValue(kind=ElementKind.F64, shape=(2, 2), data=np.ones((2, 2)))
        assert value.data.shape == (4,)

    def test_equality_compares_contents(self):
        a = numeric_array([1.0, 2.0])
        assert a == numeric_array(np.array([1.0, 2.0]))
        assert a != numeric_array([1.0, 3.0])
        assert a != numeric_array([1.0, 2.0], kind=ElementKind.F32)
        assert a != numeric_array([1.0, 2.0], shape=(2, 1))

    def test_element_at_returns_python_number(self):
        assert type(element_at(numeric_array([7], kind=ElementKind.U8), 1, 1)) is int


class TestFieldSlot:
    """Slots are complete or holes, never half-filled."""

    def test_complete_slot(self):
        slot = FieldSlot("A", double_scalar(1))
        assert not slot.is_hole

    def test_hole(self):
        slot = FieldSlot.hole()
        assert slot.is_hole
        assert slot.name is None and slot.value is None

    def test_name_without_value_rejected(self):
        with pytest.raises(ValueError):
            FieldSlot("A", None)

    def test_value_without_name_rejected(self):
        with pytest.raises(ValueError):
            FieldSlot(None, double_scalar(1))


class TestStructAccess:
    """Navigate struct values."""

    def test_get_by_name(self):
        s = struct_value({"A": double_scalar(1), "B": char_value("b")})
        assert s.get("B").text == "b"
        assert s.get("Missing") is None
        assert s.field_names == ["A", "B"]

    def test_struct_array_elements(self):
        s = struct_array([{"v": double_scalar(1)}, {"v": double_scalar(2)}])
        assert struct_field(s, "v", 1).data.tolist() == [2.0]
        with pytest.raises(IndexError):
            struct_field(s, "v", 2)

    def test_holes_are_not_found(self):
        s = StructValue(shape=(1, 1), field_width=2, slots=[
            FieldSlot.hole(),
            FieldSlot("B", double_scalar(2)),
        ])
        assert s.get("B").data.tolist() == [2.0]
        assert s.field_names == ["B"]

    def test_struct_field_rejects_non_struct(self):
        with pytest.raises(TypeError):
            struct_field(double_scalar(1), "A")

    def test_empty_struct_array_has_no_names(self):
        assert struct_array([]).field_names == []


class TestCellAccess:
    """Navigate cell values."""

    def test_cell_element(self):
        c = cell_value([double_scalar(1), char_value("x")])
        assert get_string(cell_element(c, 1)) == "x"

    def test_out_of_range(self):
        with pytest.raises(IndexError):
            cell_element(cell_value([]), 0)

    def test_wrong_kind(self):
        with pytest.raises(TypeError):
            cell_element(char_value("x"), 0)


class TestScalarAccess:
    """Typed element accessors."""

    def test_get_double_converts(self):
        assert get_double(numeric_array([3, 4], kind=ElementKind.I32), 1) == 4.0
        assert get_double(numeric_array([True], kind=ElementKind.BOOL)) == 1.0

    def test_get_double_errors(self):
        with pytest.raises(IndexError):
            get_double(double_scalar(1), 1)
        with pytest.raises(TypeError):
            get_double(char_value("x"))

    def test_get_string(self):
        assert get_string(char_value("abc")) == "abc"
        assert get_string(double_scalar(1)) is None

    def test_element_at_is_column_major(self):
        # 2x3 matrix stored column by column: [[1, 3, 5], [2, 4, 6]]
        m = numeric_array([1, 2, 3, 4, 5, 6], kind=ElementKind.I8, shape=(2, 3))
        assert element_at(m, 1, 1) == 1
        assert element_at(m, 2, 1) == 2
        assert element_at(m, 1, 3) == 5
        assert element_at(m, 2, 3) == 6

    def test_element_at_cell_and_char(self):
        c = CellValue(shape=(2, 1), cells=[double_scalar(1), char_value("b")], names=["", ""])
        assert element_at(c, 2, 1).text == "b"
        assert element_at(char_value("xyz"), 1, 3) == "z"

    def test_element_at_struct_rejected(self):
        with pytest.raises(TypeError):
            element_at(struct_value({"A": double_scalar(1)}), 1, 1)


class TestResolvePath:
    """Dotted whole-value navigation."""

    def test_nested_path(self):
        s = struct_value({"AnalogData": struct_value({"Eye": numeric_array([1.0, 2.0])})})
        assert resolve_path(s, "AnalogData.Eye").data.tolist() == [1.0, 2.0]

    def test_missing_segment(self):
        s = struct_value({"A": double_scalar(1)})
        assert resolve_path(s, "B") is None
        assert resolve_path(s, "A.B") is None

    def test_empty_path_is_the_value(self):
        s = struct_value({})
        assert resolve_path(s, "") is s
