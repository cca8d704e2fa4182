"""
Tests for the streaming file session.

These tests verify:
    - The name/data state machine and its protocol errors
    - End-of-stream is reported, not raised, and is idempotent
    - Rewind and close semantics
    - Mixing skip, full and selective reads keeps the cursor in sync
"""

import pytest

from bhv2 import BHV2File, SessionState, open_stream
from bhv2.codec import encode_variable, write_variables
from bhv2.dtypes import ElementKind
from bhv2.errors import BHV2FormatError, BHV2IOError, BHV2ProtocolError
from bhv2.examples import (
    build_example_variables,
    char_value,
    double_scalar,
    numeric_array,
    struct_value,
)
from bhv2.model import NamedVariable, StructValue


@pytest.fixture
def xy_file(tmp_path):
    """File with "X" (double scalar) then "Y" (struct)."""
    path = tmp_path / "xy.bhv2"
    write_variables(str(path), [
        NamedVariable("X", double_scalar(1.5)),
        NamedVariable("Y", struct_value({
            "A": double_scalar(1),
            "B": numeric_array(range(20)),
            "C": char_value("c"),
        })),
    ])
    return str(path)


class TestStreaming:
    """Walk a file variable by variable."""

    def test_skip_then_read_then_end(self, xy_file):
        with open_stream(xy_file) as f:
            assert f.next_name() == "X"
            f.skip_value()
            assert f.next_name() == "Y"
            y = f.read_value()
            assert isinstance(y, StructValue)
            assert y.get("C").text == "c"
            assert f.next_name() is None
            assert f.state == SessionState.EXHAUSTED

    def test_end_of_stream_is_idempotent(self, xy_file):
        with open_stream(xy_file) as f:
            list(f.iter_names())
            assert f.next_name() is None
            assert f.next_name() is None
            assert f.position == f.size

    def test_selective_read_keeps_position(self, xy_file):
        with open_stream(xy_file) as f:
            f.next_name()
            f.skip_value()
            f.next_name()
            y = f.read_value_selective({"A", "C"})
            assert [slot.is_hole for slot in y.slots] == [False, True, False]
            assert f.position == f.size
            assert f.next_name() is None

    def test_selective_on_non_struct_decodes_fully(self, xy_file):
        with open_stream(xy_file) as f:
            f.next_name()
            x = f.read_value_selective({"A"})
            assert x.data.tolist() == [1.5]

    def test_header_and_skip(self, xy_file):
        with open_stream(xy_file) as f:
            f.next_name()
            x = f.read_header_and_skip()
            assert x.kind is ElementKind.F64
            assert x.shape == (1, 1)
            f.next_name()
            y = f.read_header_and_skip()
            assert y.field_width == 3
            assert f.next_name() is None

    def test_read_next_variable(self, xy_file):
        with open_stream(xy_file) as f:
            x = f.read_next_variable()
            assert x.name == "X"
            assert x.value.data.tolist() == [1.5]
            assert f.read_next_variable().name == "Y"
            assert f.read_next_variable() is None

    def test_iteration_yields_all_variables(self, tmp_path):
        path = str(tmp_path / "example.bhv2")
        variables = build_example_variables(trial_count=4, samples=8)
        write_variables(path, variables)
        with open_stream(path) as f:
            assert list(f) == variables

    def test_iter_names(self, tmp_path):
        path = str(tmp_path / "example.bhv2")
        write_variables(path, build_example_variables(trial_count=2, samples=4))
        with open_stream(path) as f:
            assert list(f.iter_names()) == ["MLConfig", "Trial1", "Trial2"]

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.bhv2"
        path.write_bytes(b"")
        with open_stream(str(path)) as f:
            assert f.next_name() is None


class TestProtocol:
    """Operations in the wrong state are protocol errors."""

    def test_read_value_twice(self, xy_file):
        with open_stream(xy_file) as f:
            f.next_name()
            f.read_value()
            with pytest.raises(BHV2ProtocolError):
                f.read_value()

    def test_data_operations_at_name(self, xy_file):
        with open_stream(xy_file) as f:
            with pytest.raises(BHV2ProtocolError):
                f.read_value()
            with pytest.raises(BHV2ProtocolError):
                f.skip_value()
            with pytest.raises(BHV2ProtocolError):
                f.read_value_selective({"A"})
            # Nothing was consumed
            assert f.position == 0
            assert f.next_name() == "X"

    def test_next_name_at_data(self, xy_file):
        with open_stream(xy_file) as f:
            f.next_name()
            with pytest.raises(BHV2ProtocolError):
                f.next_name()
            assert f.state == SessionState.AT_DATA

    def test_data_operation_after_end(self, xy_file):
        with open_stream(xy_file) as f:
            list(f.iter_names())
            assert f.next_name() is None
            with pytest.raises(BHV2ProtocolError):
                f.skip_value()

    def test_closed_session_is_unusable(self, xy_file):
        f = open_stream(xy_file)
        f.close()
        assert f.closed
        with pytest.raises(BHV2ProtocolError):
            f.next_name()
        with pytest.raises(BHV2ProtocolError):
            f.rewind()
        with pytest.raises(BHV2ProtocolError):
            f.read_value()

    def test_close_is_idempotent(self, xy_file):
        f = open_stream(xy_file)
        f.close()
        f.close()
        assert f.state == SessionState.CLOSED

    def test_single_string_wanted_consumes_nothing(self, xy_file):
        with open_stream(xy_file) as f:
            f.next_name()
            f.skip_value()
            f.next_name()
            with pytest.raises(TypeError):
                f.read_value_selective("A")
            assert f.state == SessionState.AT_DATA
            y = f.read_value_selective(["A"])
            assert y.field_names == ["A"]


class TestRewind:
    """Rewind returns to the first variable from any state."""

    def test_rewind_from_data(self, xy_file):
        with open_stream(xy_file) as f:
            f.next_name()
            f.rewind()
            assert f.state == SessionState.AT_NAME
            assert f.next_name() == "X"

    def test_rewind_after_end(self, xy_file):
        with open_stream(xy_file) as f:
            first = [v.name for v in f]
            f.rewind()
            second = [v.name for v in f]
            assert first == second == ["X", "Y"]


class TestResources:
    """The session owns and releases its file handle."""

    def test_context_manager_closes(self, xy_file):
        with open_stream(xy_file) as f:
            pass
        assert f.closed

    def test_context_manager_closes_on_error(self, xy_file):
        with pytest.raises(BHV2ProtocolError):
            with open_stream(xy_file) as f:
                f.read_value()
        assert f.closed

    def test_missing_file(self, tmp_path):
        with pytest.raises(BHV2IOError):
            open_stream(str(tmp_path / "missing.bhv2"))

    def test_constructor_matches_open_stream(self, xy_file):
        with BHV2File(xy_file) as f:
            assert f.path == xy_file
            assert f.state == SessionState.AT_NAME


class TestCorruptFiles:
    """Data errors surface from the operation that hit them."""

    def test_truncated_last_value(self, tmp_path):
        data = encode_variable("X", double_scalar(1.0)) + encode_variable("Y", numeric_array(range(10)))
        path = tmp_path / "truncated.bhv2"
        path.write_bytes(data[:-5])
        with open_stream(str(path)) as f:
            assert f.next_name() == "X"
            f.read_value()
            assert f.next_name() == "Y"
            with pytest.raises(BHV2IOError):
                f.skip_value()
            # The data operation is over; the session is back at a name boundary.
            assert f.state == SessionState.AT_NAME

    def test_truncated_name(self, tmp_path):
        path = tmp_path / "name.bhv2"
        path.write_bytes(encode_variable("Variable", double_scalar(1.0))[:10])
        with open_stream(str(path)) as f:
            with pytest.raises(BHV2IOError):
                f.next_name()

    def test_variable_name_too_long(self, tmp_path):
        path = tmp_path / "long.bhv2"
        path.write_bytes((20000).to_bytes(8, "little") + b"x" * 32)
        with open_stream(str(path)) as f:
            with pytest.raises(BHV2FormatError):
                f.next_name()
