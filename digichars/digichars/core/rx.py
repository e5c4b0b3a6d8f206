"""
Provides reactivex support
"""
import multiprocessing

from reactivex.scheduler import ThreadPoolScheduler
from reactivex.scheduler.scheduler import Scheduler

# used to deliver published events to observers off of the publishing thread
default_scheduler: Scheduler = ThreadPoolScheduler(multiprocessing.cpu_count())


def bounded_scheduler(max_concurrency: int) -> ThreadPoolScheduler:
    """
    Scheduler used to cap the number of actions that run concurrently, e.g., ledger reads that are in flight.
    Actions scheduled beyond the cap wait in the pool's queue until a worker frees up.

    :param max_concurrency: must be >= 1
    """
    if max_concurrency < 1:
        raise ValueError("max_concurrency must be >= 1")
    return ThreadPoolScheduler(max_concurrency)
