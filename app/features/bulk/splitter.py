"""Batch splitter for bulk processing.

CRITICAL: Order is preserved across and within sub-batches.

Example (7 items, size=3):
    Sub-batch 0: items[0:3]
    Sub-batch 1: items[3:6]
    Sub-batch 2: items[6:7]
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class SubBatch(Generic[T]):
    """A bounded slice of a batch.

    Attributes:
        number: 0-based ordinal of the sub-batch.
        offset: Index of the first item in the original batch.
        items: The items of this slice, in original order.
    """

    number: int
    offset: int
    items: tuple[T, ...]


def split_batches(items: Sequence[T], size: int) -> list[SubBatch[T]]:
    """Split items into ordered sub-batches of at most ``size`` items.

    Produces ceil(len(items) / size) sub-batches; sub-batch k holds
    items[k*size : min((k+1)*size, len(items))]. Pure function.

    Args:
        items: Ordered items to split.
        size: Maximum sub-batch size (must be positive).

    Returns:
        List of sub-batches whose concatenation equals ``items``.

    Raises:
        ValueError: If size is not positive.
    """
    if size < 1:
        raise ValueError(f"Sub-batch size must be positive, got {size}")

    return [
        SubBatch(number=number, offset=offset, items=tuple(items[offset : offset + size]))
        for number, offset in enumerate(range(0, len(items), size))
    ]
