import pyarrow as pa
import pytest

from tidyground.compute.base import QueryPlanNode
from tidyground.compute.sorting import ArrangeNode
from tidyground.errors import InvalidColumn


class MockQueryPlanNode(QueryPlanNode):
    def __init__(self, batches):
        self._batches = batches

    def batches(self):
        for batch in self._batches:
            yield batch

    def __str__(self):
        return "MockQueryPlanNode"


def test_arrange_node_single_batch():
    data = pa.record_batch({"values": [5, 3, 1, 4, 2]})
    sort_node = ArrangeNode(["values"], [False], MockQueryPlanNode([data]))

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column(0).to_pylist() == [1, 2, 3, 4, 5]


def test_arrange_node_multiple_batches():
    data1 = pa.record_batch({"values": [5, 3]})
    data2 = pa.record_batch({"values": [1, 4, 2]})
    sort_node = ArrangeNode(["values"], [False], MockQueryPlanNode([data1, data2]))

    sorted_batches = list(sort_node.batches())
    assert len(sorted_batches) == 1
    assert sorted_batches[0].column(0).to_pylist() == [1, 2, 3, 4, 5]


def test_arrange_node_descending():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    sort_node = ArrangeNode(["values"], [True], MockQueryPlanNode([data]))

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.column(0).to_pylist() == [5, 4, 3, 2, 1]


def test_arrange_node_is_stable_and_puts_missing_last():
    data = pa.record_batch(
        {"order": ["b", None, "a", "b"], "name": ["first", "second", "third", "fourth"]}
    )
    sort_node = ArrangeNode(["order"], [False], MockQueryPlanNode([data]))

    sorted_batch = next(sort_node.batches())
    assert sorted_batch.to_pydict() == {
        "order": ["a", "b", "b", None],
        "name": ["third", "first", "fourth", "second"],
    }


def test_arrange_node_invalid_keys_and_descending_length():
    data = pa.record_batch({"values": [1, 2, 3, 4, 5]})
    with pytest.raises(ValueError):
        ArrangeNode(["values"], [True, False], MockQueryPlanNode([data]))


def test_arrange_node_unknown_column():
    data = pa.record_batch({"values": [1, 2, 3]})
    sort_node = ArrangeNode(["missing"], [False], MockQueryPlanNode([data]))
    with pytest.raises(InvalidColumn) as err:
        next(sort_node.batches())
    assert err.value.stage == "arrange"


def test_arrange_node_str():
    data = pa.record_batch({"values": [1]})
    sort_node = ArrangeNode(["values"], [True], MockQueryPlanNode([data]))
    assert str(sort_node) == "ArrangeNode(sorting=[('values', 'descending')], MockQueryPlanNode)"
