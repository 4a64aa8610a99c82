#!/usr/bin/env python3
"""
Test GIS model persistence.

Tests:
1. Predicate sorting and outcome pattern grouping
2. Exact binary layout
3. Binary, plain text and gzip round trips
4. Output handling on failure
5. Malformed model detection
"""

import io
import itertools
import struct
import sys
from pathlib import Path

import pytest

# Add backend to path
sys.path.insert(0, str(Path(__file__).parent))

from classifier_engine.models import (
    BinaryGISModelReader,
    BinaryGISModelWriter,
    GISModel,
    GISModelWriter,
    PlainTextGISModelReader,
    PlainTextGISModelWriter,
    Predicate,
    compress_outcomes,
    read_model,
    sort_and_group,
    sort_values,
    write_model,
)
from classifier_engine.models.data_stream import decode_modified_utf8, encode_modified_utf8
from shared.errors import ModelFormatError


def utf(value):
    encoded = value.encode("utf-8")
    return struct.pack(">H", len(encoded)) + encoded


def scenario_model(order=("w1", "w2", "w3")):
    predicates = {
        "w1": Predicate((0, 1), (0.2, -0.1)),
        "w2": Predicate((0, 1), (0.5, 0.3)),
        "w3": Predicate((1,), (0.9,)),
    }
    return GISModel(["A", "B"], {name: predicates[name] for name in order})


def larger_model():
    patterns = [(0,), (1,), (0, 1), (0, 2), (1, 2), (0, 1, 2), (2,)]
    predicates = {}
    for i, pattern in enumerate(itertools.islice(itertools.cycle(patterns), 40)):
        predicates[f"p{i:02d}"] = Predicate(pattern, tuple(0.1 * (i + k) for k in range(len(pattern))))
    return GISModel(["x", "y", "z"], predicates)


def to_bytes(model):
    buffer = io.BytesIO()
    BinaryGISModelWriter(model, buffer).persist()
    return buffer.getvalue()


def test_scenario_sorting_and_grouping():
    sorted_preds, groups = sort_and_group(scenario_model())

    assert [p.name for p in sorted_preds] == ["w3", "w1", "w2"]
    assert len(groups) == 2
    assert [g.token for g in groups] == ["1 1", "2 0 1"]
    assert [[m.name for m in g.members] for g in groups] == [["w3"], ["w1", "w2"]]
    assert sum(g.member_count for g in groups) == 3


def test_sort_order_is_independent_of_insertion_order():
    expected = to_bytes(scenario_model())
    for order in itertools.permutations(["w1", "w2", "w3"]):
        assert to_bytes(scenario_model(order)) == expected


def test_sort_is_a_total_order_over_patterns():
    sorted_preds = sort_values(larger_model())

    for earlier, later in zip(sorted_preds, sorted_preds[1:]):
        assert earlier < later
        assert (len(earlier.outcomes), earlier.outcomes) <= (len(later.outcomes), later.outcomes)
        if earlier.outcomes == later.outcomes:
            assert earlier.name < later.name


def test_grouping_is_exhaustive_and_exact():
    model = larger_model()
    sorted_preds, groups = sort_and_group(model)

    members = [m.name for g in groups for m in g.members]
    assert members == [p.name for p in sorted_preds]
    assert sorted(members) == sorted(model.predicates)

    for group in groups:
        assert all(m.outcomes == group.outcomes for m in group.members)
    patterns = [g.outcomes for g in groups]
    assert len(patterns) == len(set(patterns)) == 7


def test_compress_outcomes_of_nothing():
    assert compress_outcomes([]) == []


def test_binary_layout_is_exact():
    expected = (
        utf("GIS")
        + struct.pack(">i", 1)
        + struct.pack(">d", 1.0)
        + struct.pack(">i", 2) + utf("A") + utf("B")
        + struct.pack(">i", 2) + utf("1 1") + utf("2 0 1")
        + struct.pack(">i", 3) + utf("w3") + utf("w1") + utf("w2")
        + struct.pack(">5d", 0.9, 0.2, -0.1, 0.5, 0.3)
    )

    assert to_bytes(scenario_model()) == expected


def test_empty_predicate_set_writes_header():
    model = GISModel(["A", "B"], {})
    expected = (
        utf("GIS")
        + struct.pack(">i", 1)
        + struct.pack(">d", 1.0)
        + struct.pack(">i", 2) + utf("A") + utf("B")
        + struct.pack(">i", 0)
        + struct.pack(">i", 0)
    )

    data = to_bytes(model)
    assert data == expected
    assert BinaryGISModelReader(io.BytesIO(data)).get_model() == model


def test_plain_text_layout():
    buffer = io.StringIO()
    PlainTextGISModelWriter(scenario_model(), buffer).persist()

    assert buffer.getvalue().splitlines() == [
        "GIS", "1", "1.0",
        "2", "A", "B",
        "2", "1 1", "2 0 1",
        "3", "w3", "w1", "w2",
        "0.9", "0.2", "-0.1", "0.5", "0.3",
    ]


@pytest.mark.parametrize("model_factory", [scenario_model, larger_model])
def test_binary_round_trip(model_factory):
    model = model_factory()
    restored = BinaryGISModelReader(io.BytesIO(to_bytes(model))).get_model()

    assert restored == model
    assert restored.outcome_labels == model.outcome_labels
    for name, predicate in model.predicates.items():
        assert restored.predicates[name].outcomes == predicate.outcomes
        assert restored.predicates[name].params == predicate.params


def test_plain_text_round_trip():
    model = larger_model()
    buffer = io.StringIO()
    PlainTextGISModelWriter(model, buffer).persist()
    buffer.seek(0)

    assert PlainTextGISModelReader(buffer).get_model() == model


@pytest.mark.parametrize("filename", ["model.bin", "model.bin.gz", "model.txt", "model.txt.gz"])
def test_file_round_trip(tmp_path, filename):
    model = larger_model()
    path = tmp_path / filename

    write_model(model, path)

    assert read_model(path) == model


def test_gzip_output_is_compressed(tmp_path):
    path = tmp_path / "model.bin.gz"
    write_model(scenario_model(), path)

    assert path.read_bytes()[:2] == b"\x1f\x8b"


def test_non_ascii_labels_round_trip():
    model = GISModel(["ja", "néin", "\U0001F600"], {"\x00nul": Predicate((2,), (1.5,))})

    assert BinaryGISModelReader(io.BytesIO(to_bytes(model))).get_model() == model


def test_modified_utf8():
    assert encode_modified_utf8("abc") == b"abc"
    assert encode_modified_utf8("\x00") == b"\xc0\x80"
    assert encode_modified_utf8("é") == b"\xc3\xa9"
    assert encode_modified_utf8("\U0001F600") == b"\xed\xa0\xbd\xed\xb8\x80"
    for value in ["", "abc", "\x00", "été", "€", "\U0001F600x"]:
        assert decode_modified_utf8(encode_modified_utf8(value)) == value


def test_too_long_string_fails_and_closes_output(tmp_path):
    model = GISModel(["A", "B"], {"x" * 70000: Predicate((0,), (1.0,))})
    path = tmp_path / "model.bin"
    writer = BinaryGISModelWriter(model, path)

    with pytest.raises(ModelFormatError):
        writer.persist()

    assert writer._stream.closed


@pytest.mark.parametrize("name", ["two\nlines", "carriage\rreturn"])
def test_plain_text_rejects_line_breaks(tmp_path, name):
    model = GISModel(["A", "B"], {name: Predicate((0,), (1.0,))})
    path = tmp_path / "model.txt"
    writer = PlainTextGISModelWriter(model, path)

    with pytest.raises(ModelFormatError):
        writer.persist()

    assert writer._stream.closed

    # Binary models keep such names
    assert BinaryGISModelReader(io.BytesIO(to_bytes(model))).get_model() == model


class RecordingWriter(GISModelWriter):
    """Writer that fails on the first double and records closing."""

    def __init__(self, model):
        super().__init__(model)
        self.fields = []
        self.closed = False

    def write_utf(self, value):
        self.fields.append(value)

    def write_int(self, value):
        self.fields.append(value)

    def write_double(self, value):
        raise OSError("disk full")

    def close(self):
        self.closed = True


def test_write_failure_propagates_and_closes():
    writer = RecordingWriter(scenario_model())

    with pytest.raises(OSError, match="disk full"):
        writer.persist()

    assert writer.closed
    assert writer.fields == ["GIS", 1]


def test_caller_stream_is_flushed_and_left_open():
    buffer = io.BytesIO()
    BinaryGISModelWriter(scenario_model(), buffer).persist()

    assert not buffer.closed


def test_reader_rejects_other_model_types():
    data = utf("Perceptron") + to_bytes(scenario_model())[5:]

    with pytest.raises(ModelFormatError):
        BinaryGISModelReader(io.BytesIO(data)).get_model()


def test_reader_rejects_truncated_model():
    data = to_bytes(scenario_model())

    with pytest.raises(ModelFormatError):
        BinaryGISModelReader(io.BytesIO(data[:-4])).get_model()


def test_reader_rejects_group_counts_not_matching_predicates():
    lines = ["GIS", "1", "1.0", "2", "A", "B", "1", "3 0", "2", "a", "b", "0.1", "0.2"]

    with pytest.raises(ModelFormatError):
        PlainTextGISModelReader(io.StringIO("\n".join(lines) + "\n")).get_model()


def test_reader_rejects_bad_group_token():
    lines = ["GIS", "1", "1.0", "2", "A", "B", "1", "one 0", "1", "a", "0.1"]

    with pytest.raises(ModelFormatError):
        PlainTextGISModelReader(io.StringIO("\n".join(lines) + "\n")).get_model()
