"""Selection of columns by name, range, predicate or complement.

Many verbs need to know which columns they should operate on,
a gather for example has to be told which columns must be turned into rows.
Tutorials on data wrangling usually express those as bare
names and ranges like ``Google:Twitter``; here they are
explicit selector objects resolved against the current
columns of the data at the moment the verb is executed.

>>> columns = ["time", "Google", "Facebook", "Twitter"]
>>> RangeSelector("Google", "Twitter").resolve(columns)
['Google', 'Facebook', 'Twitter']
>>> (~NameSelector("time")).resolve(columns)
['Google', 'Facebook', 'Twitter']
>>> ends_with("er").resolve(columns)
['Twitter']
>>> as_selector(["Twitter", starts_with("G")]).resolve(columns)
['Twitter', 'Google']
"""

import abc
import re
from typing import Callable, Iterable

from ..errors import InvalidColumn
from .base import reporting_stage

__all__ = (
    "ColumnSelector",
    "NameSelector",
    "RangeSelector",
    "PredicateSelector",
    "ComplementSelector",
    "UnionSelector",
    "as_selector",
    "resolve_selection",
    "cols",
    "col_range",
    "starts_with",
    "ends_with",
    "contains",
    "matches",
    "one_of",
    "everything",
)


class ColumnSelector(abc.ABC):
    """Identifies one or more columns of a batch.

    Selectors are resolved against the ordered list of
    column names, and return the selected names in the
    order they have to be used.
    """

    @abc.abstractmethod
    def resolve(self, columns: list[str]) -> list[str]:
        """Return the names of the selected columns."""
        ...

    @abc.abstractmethod
    def __str__(self) -> str: ...

    def __repr__(self) -> str:
        return str(self)

    def __invert__(self) -> "ComplementSelector":
        return ComplementSelector(self)


class NameSelector(ColumnSelector):
    """Select a single column by its name."""

    def __init__(self, name: str) -> None:
        self.name = name

    def __str__(self) -> str:
        return f"NameSelector({self.name})"

    def resolve(self, columns: list[str]) -> list[str]:
        if self.name not in columns:
            raise InvalidColumn("selected column does not exist", column=self.name)
        return [self.name]


class RangeSelector(ColumnSelector):
    """Select all the columns from ``first`` to ``last``, both included.

    The range is based on the current order of the columns,
    when ``last`` comes before ``first`` the columns are
    selected in reverse order.
    """

    def __init__(self, first: str, last: str) -> None:
        self.first = first
        self.last = last

    def __str__(self) -> str:
        return f"RangeSelector({self.first}:{self.last})"

    def resolve(self, columns: list[str]) -> list[str]:
        for name in (self.first, self.last):
            if name not in columns:
                raise InvalidColumn("range boundary does not exist", column=name)

        start = columns.index(self.first)
        end = columns.index(self.last)
        if start <= end:
            return columns[start : end + 1]
        return columns[end : start + 1][::-1]


class PredicateSelector(ColumnSelector):
    """Select the columns whose name satisfies a predicate.

    The columns are selected in their current order,
    and a predicate that matches nothing selects nothing.
    """

    def __init__(self, predicate: Callable[[str], bool], description: str) -> None:
        """
        :param predicate: Function receiving a column name and returning if it is selected.
        :param description: Human readable version of the predicate.
        """
        self.predicate = predicate
        self.description = description

    def __str__(self) -> str:
        return f"PredicateSelector({self.description})"

    def resolve(self, columns: list[str]) -> list[str]:
        return [name for name in columns if self.predicate(name)]


class ComplementSelector(ColumnSelector):
    """Select all the columns except those selected by another selector."""

    def __init__(self, selector: ColumnSelector) -> None:
        self.selector = selector

    def __str__(self) -> str:
        return f"ComplementSelector({self.selector})"

    def resolve(self, columns: list[str]) -> list[str]:
        excluded = set(self.selector.resolve(columns))
        return [name for name in columns if name not in excluded]


class UnionSelector(ColumnSelector):
    """Combine multiple selectors, keeping each column only once."""

    def __init__(self, *selectors: ColumnSelector) -> None:
        self.selectors = selectors

    def __str__(self) -> str:
        return f"UnionSelector({', '.join(map(str, self.selectors))})"

    def resolve(self, columns: list[str]) -> list[str]:
        selected: dict[str, None] = {}
        for selector in self.selectors:
            for name in selector.resolve(columns):
                selected.setdefault(name, None)
        return list(selected)


def as_selector(obj: "str | ColumnSelector | Iterable[str | ColumnSelector]") -> ColumnSelector:
    """Convert names and lists of names or selectors into a selector."""
    if isinstance(obj, ColumnSelector):
        return obj
    if isinstance(obj, str):
        return NameSelector(obj)
    return UnionSelector(*(as_selector(item) for item in obj))


def resolve_selection(selector: "str | ColumnSelector | Iterable", columns: list[str], stage: str) -> list[str]:
    """Resolve a selector on behalf of a verb.

    Errors raised while resolving are reported as
    failures of the verb that required the selection.
    """
    with reporting_stage(stage):
        return as_selector(selector).resolve(columns)


def cols(*names: str | ColumnSelector) -> ColumnSelector:
    """Select the listed columns in the given order."""
    return as_selector(names)


def col_range(first: str, last: str) -> RangeSelector:
    """Select the contiguous columns between first and last."""
    return RangeSelector(first, last)


def starts_with(prefix: str) -> PredicateSelector:
    return PredicateSelector(lambda name: name.startswith(prefix), f"starts_with({prefix!r})")


def ends_with(suffix: str) -> PredicateSelector:
    return PredicateSelector(lambda name: name.endswith(suffix), f"ends_with({suffix!r})")


def contains(text: str) -> PredicateSelector:
    return PredicateSelector(lambda name: text in name, f"contains({text!r})")


def matches(pattern: str) -> PredicateSelector:
    """Select the columns whose name matches a regular expression anywhere."""
    regex = re.compile(pattern)
    return PredicateSelector(lambda name: regex.search(name) is not None, f"matches({pattern!r})")


def one_of(*names: str) -> PredicateSelector:
    """Select the columns that are part of a set of names.

    Unlike :func:`cols` missing names are ignored and
    the columns are selected in the order they have in the data.
    """
    wanted = frozenset(names)
    return PredicateSelector(lambda name: name in wanted, f"one_of{tuple(names)!r}")


def everything() -> PredicateSelector:
    return PredicateSelector(lambda name: True, "everything")
