import pyarrow as pa
import pytest

from tidyground.compute import PyArrowTableDataSource
from tidyground.compute.aggregate import (
    AggregateNode,
    CountAggregation,
    CountDistinctAggregation,
    FirstAggregation,
    LastAggregation,
    MaxAggregation,
    MeanAggregation,
    MinAggregation,
    StdDevAggregation,
    SumAggregation,
    partition,
)
from tidyground.errors import EmptyReduction, InvalidColumn, KindMismatch, NameCollision

TEST_DATA = pa.record_batch(
    {
        "city": pa.array(
            ["New York", "New York", "Los Angeles", "Los Angeles", "New York"]
        ),
        "shop": pa.array(["Shop A", "Shop B", "Shop A", "Shop A2", "Shop B"]),
        "n_employees": pa.array([10, 15, 8, 12, 20]),
    }
)

MISSING_DATA = pa.record_batch(
    {
        "order": pa.array(["Carnivora", "Carnivora", "Primates", "Rodentia"]),
        "sleep_rem": pa.array([2.0, None, 1.5, None], type=pa.float64()),
    }
)


def aggregate(keys, aggregations, data=TEST_DATA):
    node = AggregateNode(keys, aggregations, PyArrowTableDataSource(data))
    return next(node.batches())


@pytest.mark.parametrize("keys", [["city"], ["city", "shop"]])
def test_basic_aggregation(keys):
    result = aggregate(keys, {"total_employees": SumAggregation("n_employees")})

    if keys == ["city"]:
        assert result.column_names == ["city", "total_employees"]
        assert result.column(0).to_pylist() == ["New York", "Los Angeles"]
        assert result.column(1).to_pylist() == [45, 20]
    else:
        assert result.column_names == ["city", "shop", "total_employees"]
        assert result.column(0).to_pylist() == [
            "New York",
            "New York",
            "Los Angeles",
            "Los Angeles",
        ]
        assert result.column(1).to_pylist() == ["Shop A", "Shop B", "Shop A", "Shop A2"]
        assert result.column(2).to_pylist() == [10, 35, 8, 12]


@pytest.mark.parametrize("keys", [["city"], ["city", "shop"]])
def test_aggregate_node_str(keys):
    aggregate = AggregateNode(
        keys,
        {"total_employees": SumAggregation("n_employees")},
        PyArrowTableDataSource(TEST_DATA),
    )
    assert str(aggregate) == (
        "AggregateNode(keys=%r, aggregations={'total_employees': SumAggregation(n_employees)}, "
        "PyArrowTableDataSource(columns=['city', 'shop', 'n_employees'], rows=5))"
        % (keys,)
    )


@pytest.mark.parametrize(
    "aggregation, expected",
    [
        (MinAggregation("n_employees"), [10, 8]),
        (MaxAggregation("n_employees"), [20, 12]),
        (MeanAggregation("n_employees"), [15.0, 10.0]),
        (CountAggregation("n_employees"), [3, 2]),
        (CountAggregation(), [3, 2]),
        (CountDistinctAggregation("shop"), [2, 2]),
        (FirstAggregation("shop"), ["Shop A", "Shop A"]),
        (LastAggregation("shop"), ["Shop B", "Shop A2"]),
        (StdDevAggregation("n_employees"), [pytest.approx(5.0), pytest.approx(2.8284271)]),
    ],
)
def test_aggregations(aggregation, expected):
    result = aggregate(["city"], {"result": aggregation})
    assert result.column("city").to_pylist() == ["New York", "Los Angeles"]
    assert result.column("result").to_pylist() == expected


def test_result_types():
    result = aggregate(
        ["city"],
        {
            "sum": SumAggregation("n_employees"),
            "mean": MeanAggregation("n_employees"),
            "count": CountAggregation(),
            "min": MinAggregation("shop"),
        },
    )
    assert result.schema.field("sum").type == pa.int64()
    assert result.schema.field("mean").type == pa.float64()
    assert result.schema.field("count").type == pa.int64()
    assert result.schema.field("min").type == pa.string()


def test_summarize_without_keys():
    result = aggregate([], {"total": SumAggregation("n_employees"), "n": CountAggregation()})
    assert result.to_pydict() == {"total": [65], "n": [5]}


def test_partition_covers_every_row_once():
    groups = partition(TEST_DATA, ["city", "shop"])
    indices = sorted(i for _, rows in groups for i in rows)
    assert indices == list(range(TEST_DATA.num_rows))
    assert [key for key, _ in groups] == [
        ("New York", "Shop A"),
        ("New York", "Shop B"),
        ("Los Angeles", "Shop A"),
        ("Los Angeles", "Shop A2"),
    ]


def test_partition_without_keys():
    assert partition(TEST_DATA, []) == [((), [0, 1, 2, 3, 4])]


def test_partition_invalid_key():
    with pytest.raises(InvalidColumn):
        partition(TEST_DATA, ["country"])


def test_missing_values_propagate():
    result = aggregate(["order"], {"rem": MeanAggregation("sleep_rem")}, MISSING_DATA)
    assert result.column("rem").to_pylist() == [None, 1.5, None]


def test_missing_values_skipped():
    result = aggregate(
        ["order"], {"rem": MeanAggregation("sleep_rem", skip_missing=True)}, MISSING_DATA
    )
    # Rodentia has no values left, so the result is missing.
    assert result.column("rem").to_pylist() == [2.0, 1.5, None]


def test_strict_empty_reduction():
    aggregation = SumAggregation("sleep_rem", skip_missing=True, strict=True)
    with pytest.raises(EmptyReduction) as err:
        aggregate(["order"], {"rem": aggregation}, MISSING_DATA)
    assert err.value.stage == "summarize"
    assert err.value.column == "sleep_rem"


def test_count_includes_missing():
    result = aggregate(
        ["order"],
        {"n": CountAggregation("sleep_rem"), "distinct": CountDistinctAggregation("sleep_rem")},
        MISSING_DATA,
    )
    assert result.column("n").to_pylist() == [2, 1, 1]
    assert result.column("distinct").to_pylist() == [2, 1, 1]


def test_first_last_skip_missing():
    result = aggregate(
        ["order"],
        {
            "first": FirstAggregation("sleep_rem", skip_missing=True),
            "last": LastAggregation("sleep_rem", skip_missing=True),
        },
        MISSING_DATA,
    )
    assert result.column("first").to_pylist() == [2.0, 1.5, None]
    assert result.column("last").to_pylist() == [2.0, 1.5, None]


def test_stddev_single_value():
    result = aggregate(["order"], {"sd": StdDevAggregation("sleep_rem")}, MISSING_DATA)
    assert result.column("sd").to_pylist() == [None, None, None]


def test_numeric_aggregation_on_text():
    with pytest.raises(KindMismatch) as err:
        aggregate(["city"], {"avg": MeanAggregation("shop")})
    assert err.value.column == "shop"


def test_aggregation_named_as_key():
    with pytest.raises(NameCollision):
        aggregate(["city"], {"city": CountAggregation()})


def test_aggregation_invalid_column():
    with pytest.raises(InvalidColumn) as err:
        aggregate(["city"], {"total": SumAggregation("salary")})
    assert err.value.stage == "summarize"


def test_aggregate_empty_data():
    empty = TEST_DATA.slice(0, 0)
    result = aggregate(["city"], {"total": SumAggregation("n_employees")}, empty)
    assert result.num_rows == 0
    assert result.column_names == ["city", "total"]


def test_summarize_without_keys_requires_aggregations():
    with pytest.raises(ValueError):
        AggregateNode([], {}, PyArrowTableDataSource(TEST_DATA))


def test_group_without_aggregations():
    result = aggregate(["city"], {})
    assert result.to_pydict() == {"city": ["New York", "Los Angeles"]}
