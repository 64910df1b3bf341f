"""
Parallel Executor - Runs one call per node, sequentially or on a thread pool
"""
import logging
from typing import Callable, List, Optional, Sequence, TypeVar
from concurrent.futures import ThreadPoolExecutor, as_completed
from ..models import Node

logger = logging.getLogger(__name__)

T = TypeVar('T')


class ParallelExecutor:
    """
    Executes a per-node call across a list of nodes.

    With max_workers == 1 calls run in the caller's thread and stop at the
    first error. Otherwise calls run on a thread pool; every submitted call
    finishes, then the error of the first failing node in list order is raised.
    Results are always returned in node order.
    """

    def __init__(self, max_workers: int = 1):
        self.max_workers = max(1, max_workers)

    def run_for_nodes(self, nodes: Sequence[Node], func: Callable[[Node], T]) -> List[T]:
        if self.max_workers == 1 or len(nodes) <= 1:
            return [func(node) for node in nodes]

        results: List[Optional[T]] = [None] * len(nodes)
        errors: List[Optional[Exception]] = [None] * len(nodes)

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(nodes))) as executor:
            futures = {executor.submit(func, node): index for index, node in enumerate(nodes)}

            for future in as_completed(futures):
                index = futures[future]
                try:
                    results[index] = future.result()
                except Exception as e:
                    errors[index] = e

        failed = [error for error in errors if error is not None]
        if failed:
            logger.debug(f"{len(failed)}/{len(nodes)} node calls failed")
            raise failed[0]

        return results
