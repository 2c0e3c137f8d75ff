"""
Schema-reconciling merge of staged frames.

Files do not always report the same header cards, so per-file frames can
have different column sets. ``merge`` pads each side with typed null columns
for whatever only the other side has, then concatenates. Column order is the
first-seen union (left columns, then the right side's new ones), which makes
``merge`` associative: any parenthesization of a fold over the same ordered
frames yields the same columns in the same order and the same rows.
"""

from __future__ import annotations

from typing import Callable, List, Sequence

import polars as pl

from .errors import TableConstructionError

MERGED_TABLE = "<merged table>"


def _concat(a: pl.DataFrame, b: pl.DataFrame) -> pl.DataFrame:
    try:
        return pl.concat([a, b], how="vertical_relaxed", rechunk=False)
    except pl.exceptions.PolarsError as e:
        raise TableConstructionError(MERGED_TABLE, str(e)) from e


def pad_missing(df: pl.DataFrame, reference: pl.DataFrame) -> pl.DataFrame:
    """
    Add every column of ``reference`` that ``df`` lacks, filled with nulls.

    The null column takes its dtype from ``reference`` so the later
    concatenation does not have to guess a type.
    """
    missing = [c for c in reference.columns if c not in df.columns]
    if not missing:
        return df
    return df.with_columns([pl.lit(None, dtype=reference.schema[c]).alias(c) for c in missing])


def union_columns(a: pl.DataFrame, b: pl.DataFrame) -> List[str]:
    """First-seen union of two column lists."""
    seen = set(a.columns)
    return a.columns + [c for c in b.columns if c not in seen]


def merge(a: pl.DataFrame, b: pl.DataFrame) -> pl.DataFrame:
    """
    Vertically combine two frames, reconciling column sets.

    Args:
        a: Left frame (its columns come first in the result)
        b: Right frame

    Returns:
        Frame with a's rows then b's rows, over the union of both column sets.
        Cells for columns a row's source did not have are null.

    Raises:
        TableConstructionError: Columns with incompatible types

    Example:
        >>> a = pl.DataFrame({"x": [1.0], "y": [2.0]})
        >>> b = pl.DataFrame({"y": [3.0], "z": ["s"]})
        >>> merge(a, b).columns
        ['x', 'y', 'z']
    """
    if set(a.columns) == set(b.columns):
        return _concat(a, b.select(a.columns))

    order = union_columns(a, b)
    left = pad_missing(a, b).select(order)
    right = pad_missing(b, a).select(order)
    return _concat(left, right)


def tree_reduce(
    frames: Sequence[pl.DataFrame],
    combine: Callable[[pl.DataFrame, pl.DataFrame], pl.DataFrame] = merge,
) -> pl.DataFrame:
    """
    Fold frames pairwise, divide-and-conquer.

    Each half is reduced independently and owns its accumulator; the halves
    are then combined. Frame order is preserved.

    Raises:
        ValueError: If ``frames`` is empty
    """
    if not frames:
        raise ValueError("cannot reduce an empty sequence of frames")
    if len(frames) == 1:
        return frames[0]
    mid = len(frames) // 2
    return combine(tree_reduce(frames[:mid], combine), tree_reduce(frames[mid:], combine))


def merge_all(frames: Sequence[pl.DataFrame]) -> pl.DataFrame:
    """Merge any number of frames into one contiguous table."""
    return tree_reduce(list(frames)).rechunk()
