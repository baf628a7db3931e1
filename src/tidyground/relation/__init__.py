"""Tidy data verbs built on top of the tidyground compute engine.

Data wrangling tutorials teach a small set of verbs that,
combined, cover most of the transformations needed to tidy
and analyse a dataset:

* ``gather`` and ``spread`` reshape data between wide and long format.
* ``separate`` and ``unite`` split and merge columns.
* ``select``, ``filter``, ``mutate`` and ``arrange`` pick and compute columns and rows.
* ``group_by`` and ``summarize`` compute statistics for groups of rows.
* ``inner_join``, ``left_join``, ``right_join``, ``full_join``,
  ``semi_join`` and ``anti_join`` combine two relations.

This module provides those verbs as methods of the :class:`Relation`
object, using the tidyground compute nodes as their foundation.
Each verb can be chained with the next one::

    result = (
        nominations
        .gather("category", "nominee", starts_with("best_"))
        .inner_join(winners, by="movie")
        .group_by("movie")
        .summarize(awards=CountAggregation())
    )
"""

from ..kinds import Kind
from .relation import GroupedRelation, Relation

__all__ = ("Relation", "GroupedRelation", "Kind")
