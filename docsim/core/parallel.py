"""
Fork/join helpers for the data-parallel pipeline stages.

Each stage submits independent units of work to a shared executor and
waits for all of them before the next stage starts. Completion order is
arbitrary; callers impose any ordering they need afterwards.
"""

import threading
from concurrent.futures import Executor, as_completed
from typing import Callable, Iterable, List, Optional, TypeVar

from tqdm import tqdm

from .logging_config import get_logger
from .validation import AnalysisCancelledError

logger = get_logger(__name__)

T = TypeVar('T')
R = TypeVar('R')


def raise_if_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
    """Abort the current stage when the external cancellation signal is set."""
    if cancel_event is not None and cancel_event.is_set():
        raise AnalysisCancelledError(stage)


def fork_join(executor: Executor,
              worker: Callable[[T], R],
              partitions: Iterable[T],
              stage: str,
              cancel_event: Optional[threading.Event] = None,
              show_progress: bool = False,
              unit: str = "task") -> List[R]:
    """
    Run ``worker`` over every partition and join on all results.

    Args:
        executor: Worker pool shared by the run
        worker: Function applied to one partition
        partitions: Independent units of work
        stage: Stage name used for progress and cancellation reporting
        cancel_event: External cancellation signal
        show_progress: Whether to draw a tqdm progress bar
        unit: Progress bar unit label

    Returns:
        Worker results in completion order

    Raises:
        AnalysisCancelledError: If cancellation was requested
    """
    raise_if_cancelled(cancel_event, stage)
    futures = [executor.submit(worker, partition) for partition in partitions]
    results: List[R] = []

    try:
        for future in tqdm(as_completed(futures), total=len(futures), desc=stage,
                           unit=unit, disable=not show_progress, leave=False):
            results.append(future.result())
            raise_if_cancelled(cancel_event, stage)
    except BaseException:
        pending = sum(1 for future in futures if future.cancel())
        logger.debug(f"Stage {stage} aborted, {pending} queued tasks cancelled")
        raise

    logger.debug(f"Stage {stage} joined {len(results)} tasks")
    return results
