import pyarrow as pa
import pytest

from tidyground.compute import PyArrowTableDataSource
from tidyground.compute.join import JoinNode, JoinType
from tidyground.errors import InvalidColumn, NameCollision

# Sample data for testing
LEFT_TEST_DATA = pa.record_batch(
    {
        "id": pa.array([1, 2, 3, 4]),
        "name": pa.array(["Alice", "Bob", "Charlie", "David"]),
    }
)

RIGHT_TEST_DATA = pa.record_batch(
    {
        "id": pa.array([3, 4, 5, 6]),
        "age": pa.array([25, 30, 35, 40]),
    }
)


@pytest.fixture
def left_data_source():
    return PyArrowTableDataSource(LEFT_TEST_DATA)


@pytest.fixture
def right_data_source():
    return PyArrowTableDataSource(RIGHT_TEST_DATA)


@pytest.mark.parametrize(
    "how,expected_output",
    [
        (
            JoinType.INNER,
            {"id": [3, 4], "name": ["Charlie", "David"], "age": [25, 30]},
        ),
        (
            JoinType.LEFT,
            {
                "id": [1, 2, 3, 4],
                "name": ["Alice", "Bob", "Charlie", "David"],
                "age": [None, None, 25, 30],
            },
        ),
        (
            JoinType.RIGHT,
            {
                "id": [3, 4, 5, 6],
                "name": ["Charlie", "David", None, None],
                "age": [25, 30, 35, 40],
            },
        ),
        (
            JoinType.FULL,
            {
                "id": [1, 2, 3, 4, 5, 6],
                "name": ["Alice", "Bob", "Charlie", "David", None, None],
                "age": [None, None, 25, 30, 35, 40],
            },
        ),
        (JoinType.SEMI, {"id": [3, 4], "name": ["Charlie", "David"]}),
        (JoinType.ANTI, {"id": [1, 2], "name": ["Alice", "Bob"]}),
    ],
)
def test_join_node(left_data_source, right_data_source, how, expected_output):
    join_node = JoinNode(["id"], ["id"], left_data_source, right_data_source, how=how)
    result_batches = list(join_node.batches())

    assert len(result_batches) == 1
    assert result_batches[0].to_pydict() == expected_output


def test_join_type_from_string(left_data_source, right_data_source):
    join_node = JoinNode(["id"], ["id"], left_data_source, right_data_source, how="anti")
    assert join_node.how is JoinType.ANTI
    assert join_node.stage == "anti_join"


def test_join_unknown_type(left_data_source, right_data_source):
    with pytest.raises(ValueError):
        JoinNode(["id"], ["id"], left_data_source, right_data_source, how="cross")


def test_join_mismatched_keys(left_data_source, right_data_source):
    with pytest.raises(ValueError):
        JoinNode(["id", "name"], ["id"], left_data_source, right_data_source)


def test_join_duplicate_keys_multiply():
    left = pa.record_batch({"movie": ["Room", "Room", "Carol"], "actor": ["Larson", "Tremblay", "Blanchett"]})
    right = pa.record_batch({"movie": ["Room", "Room"], "award": ["Oscar", "Globe"]})
    join_node = JoinNode(
        ["movie"], ["movie"], PyArrowTableDataSource(left), PyArrowTableDataSource(right)
    )
    result = next(join_node.batches())
    assert result.to_pydict() == {
        "movie": ["Room", "Room", "Room", "Room"],
        "actor": ["Larson", "Larson", "Tremblay", "Tremblay"],
        "award": ["Oscar", "Globe", "Oscar", "Globe"],
    }


@pytest.mark.parametrize(
    "how,expected_ids",
    [
        (JoinType.INNER, [1]),
        (JoinType.LEFT, [1, None]),
        (JoinType.FULL, [1, None, None]),
        (JoinType.SEMI, [1]),
        (JoinType.ANTI, [None]),
    ],
)
def test_join_missing_keys_never_match(how, expected_ids):
    left = pa.record_batch({"id": [1, None], "x": ["a", "b"]})
    right = pa.record_batch({"id": [None, 1], "y": ["c", "d"]})
    join_node = JoinNode(
        ["id"], ["id"], PyArrowTableDataSource(left), PyArrowTableDataSource(right), how=how
    )
    result = next(join_node.batches())
    assert result.column("id").to_pylist() == expected_ids


def test_join_multiple_keys_with_different_names():
    left = pa.record_batch({"year": [2015, 2015, 2016], "title": ["Room", "Carol", "Room"]})
    right = pa.record_batch({"movie": ["Room", "Room"], "released": [2015, 2016], "rating": [8.1, 7.0]})
    join_node = JoinNode(
        ["title", "year"],
        ["movie", "released"],
        PyArrowTableDataSource(left),
        PyArrowTableDataSource(right),
        how=JoinType.LEFT,
    )
    result = next(join_node.batches())
    assert result.to_pydict() == {
        "year": [2015, 2015, 2016],
        "title": ["Room", "Carol", "Room"],
        "rating": [8.1, None, 7.0],
    }


def test_join_suffix_for_conflicting_columns():
    left = pa.record_batch({"id": [1, 2], "name": ["Alice", "Bob"]})
    right = pa.record_batch({"id": [1, 2], "name": ["Smith", "Jones"]})
    join_node = JoinNode(
        ["id"], ["id"], PyArrowTableDataSource(left), PyArrowTableDataSource(right), suffix="_y"
    )
    result = next(join_node.batches())
    assert result.column_names == ["id", "name", "name_y"]
    assert result.column("name_y").to_pylist() == ["Smith", "Jones"]


def test_join_suffix_collision():
    left = pa.record_batch({"id": [1], "name": ["Alice"], "name_right": ["A"]})
    right = pa.record_batch({"id": [1], "name": ["Smith"]})
    join_node = JoinNode(
        ["id"], ["id"], PyArrowTableDataSource(left), PyArrowTableDataSource(right)
    )
    with pytest.raises(NameCollision) as err:
        next(join_node.batches())
    assert err.value.stage == "inner_join"


def test_join_invalid_key(left_data_source, right_data_source):
    join_node = JoinNode(["id"], ["ident"], left_data_source, right_data_source, how="left")
    with pytest.raises(InvalidColumn) as err:
        next(join_node.batches())
    assert err.value.stage == "left_join"
    assert err.value.column == "ident"


def test_join_node_str(left_data_source, right_data_source):
    join_node = JoinNode(["id"], ["id"], left_data_source, right_data_source)
    assert str(join_node) == (
        "JoinNode(how=inner, left_keys=['id'], right_keys=['id'], "
        "left=PyArrowTableDataSource(columns=['id', 'name'], rows=4), "
        "right=PyArrowTableDataSource(columns=['id', 'age'], rows=4))"
    )


@pytest.mark.parametrize(
    "how,expected_output",
    [
        (
            JoinType.FULL,
            {"id": [1.0, 2.0, 2.5], "a": ["p", "q", None], "b": ["r", None, "s"]},
        ),
        (JoinType.RIGHT, {"id": [1.0, 2.5], "a": ["p", None], "b": ["r", "s"]}),
    ],
)
def test_join_integer_and_float_keys(how, expected_output):
    left = pa.record_batch({"id": pa.array([1, 2], type=pa.int64()), "a": ["p", "q"]})
    right = pa.record_batch({"id": pa.array([1.0, 2.5], type=pa.float64()), "b": ["r", "s"]})
    join_node = JoinNode(
        ["id"], ["id"], PyArrowTableDataSource(left), PyArrowTableDataSource(right), how=how
    )
    result = next(join_node.batches())
    assert result.schema.field("id").type == pa.float64()
    assert result.to_pydict() == expected_output


@pytest.mark.parametrize("how", [JoinType.RIGHT, JoinType.FULL])
def test_join_all_missing_left_keys(how):
    left = pa.record_batch({"id": pa.nulls(2), "x": ["a", "b"]})
    right = pa.record_batch({"id": pa.array([3], type=pa.int64()), "y": ["c"]})
    join_node = JoinNode(
        ["id"], ["id"], PyArrowTableDataSource(left), PyArrowTableDataSource(right), how=how
    )
    result = next(join_node.batches())
    assert result.schema.field("id").type == pa.int64()
    if how == JoinType.RIGHT:
        assert result.to_pydict() == {"id": [3], "x": [None], "y": ["c"]}
    else:
        assert result.to_pydict() == {
            "id": [None, None, 3],
            "x": ["a", "b", None],
            "y": [None, None, "c"],
        }
