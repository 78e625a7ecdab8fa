"""
Confidence-descending in-place sort for detection lists.

Two interchangeable strategies: a sequential partition-exchange sort and a
variant that hands the two halves of the top-level partitions to a thread pool.
Both produce a non-increasing score order; equal scores may land in any order.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Protocol, Tuple

from .types import Detection


class SortStrategy(Protocol):
    def sort(self, dets: List[Detection]) -> None:
        ...


def _partition(dets: List[Detection], left: int, right: int) -> Tuple[int, int]:
    """
    Hoare-style partition around the middle element's score.

    Returns (j, i): [left, j] holds scores >= pivot, [i, right] holds scores <= pivot.
    """

    i, j = left, right
    p = dets[(left + right) // 2].score
    while i <= j:
        while dets[i].score > p:
            i += 1
        while dets[j].score < p:
            j -= 1
        if i <= j:
            dets[i], dets[j] = dets[j], dets[i]
            i += 1
            j -= 1
    return j, i


def _sort_range(dets: List[Detection], left: int, right: int) -> None:
    # Explicit stack instead of recursion so large inputs cannot hit the recursion limit.
    stack = [(left, right)]
    while stack:
        lo, hi = stack.pop()
        if lo >= hi:
            continue
        j, i = _partition(dets, lo, hi)
        if lo < j:
            stack.append((lo, j))
        if i < hi:
            stack.append((i, hi))


class QuickSortStrategy:
    def sort(self, dets: List[Detection]) -> None:
        if not dets:
            return
        _sort_range(dets, 0, len(dets) - 1)


class ParallelQuickSortStrategy:
    """
    Partition up to `depth` levels on the calling thread, then sort the resulting
    disjoint ranges on a thread pool. Returns only after every range is sorted.
    """

    def __init__(self, max_workers: Optional[int] = None, depth: int = 2, min_size: int = 256):
        if depth < 0:
            raise ValueError("depth must be >= 0")
        if max_workers is not None and max_workers < 1:
            raise ValueError("max_workers must be >= 1 when set")
        if min_size < 2:
            raise ValueError("min_size must be >= 2")
        self.max_workers = max_workers
        self.depth = depth
        self.min_size = min_size

    def _split(self, dets: List[Detection]) -> List[Tuple[int, int]]:
        ranges = [(0, len(dets) - 1)]
        for _ in range(self.depth):
            nxt: List[Tuple[int, int]] = []
            for lo, hi in ranges:
                if hi - lo + 1 < self.min_size:
                    nxt.append((lo, hi))
                    continue
                j, i = _partition(dets, lo, hi)
                if lo < j:
                    nxt.append((lo, j))
                if i < hi:
                    nxt.append((i, hi))
            ranges = nxt
        return ranges

    def sort(self, dets: List[Detection]) -> None:
        if not dets:
            return
        ranges = self._split(dets)
        if len(ranges) == 1:
            _sort_range(dets, *ranges[0])
            return
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = [pool.submit(_sort_range, dets, lo, hi) for lo, hi in ranges]
            for fut in futures:
                fut.result()


def sort_by_confidence(dets: List[Detection], strategy: Optional[SortStrategy] = None) -> List[Detection]:
    """Sort `dets` in place by descending score and return it."""

    (strategy or QuickSortStrategy()).sort(dets)
    return dets
