# tree_pricing/utils/timer.py
"""Timing of expensive analysis steps.

PDP and ICE sweeps, H-statistics and model fits are wrapped with
``@timer`` or ``timed_operation``. Durations are logged at DEBUG and
collected per operation name, so a long analysis can end with
``timing_report()`` to see where the time went.
"""

import functools
import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, TypeVar

import pandas as pd

from .logger import get_logger

logger = get_logger(__name__)

F = TypeVar('F', bound=Callable[..., Any])


class TimingRegistry:
    """Thread-safe store of completed durations per operation name."""

    def __init__(self) -> None:
        self._durations: Dict[str, List[float]] = defaultdict(list)
        self._lock = threading.Lock()

    def record(self, name: str, duration: float) -> None:
        with self._lock:
            self._durations[name].append(duration)

    def stats(self, name: str) -> Dict[str, float]:
        """Call count and total/mean/min/max seconds of one operation ({} if unseen)."""
        with self._lock:
            durations = list(self._durations.get(name, []))
        if not durations:
            return {}
        return {
            'call_count': len(durations),
            'total_time': sum(durations),
            'avg_time': sum(durations) / len(durations),
            'min_time': min(durations),
            'max_time': max(durations),
        }

    def names(self) -> List[str]:
        with self._lock:
            return sorted(self._durations)

    def reset(self, name: Optional[str] = None) -> None:
        with self._lock:
            if name is None:
                self._durations.clear()
            else:
                self._durations.pop(name, None)


_registry = TimingRegistry()


def _finish(name: str, start: float, log_result: bool, track_performance: bool) -> float:
    duration = time.perf_counter() - start
    if log_result:
        logger.debug(f"{name} finished", extra={'duration': duration})
    if track_performance:
        _registry.record(name, duration)
    return duration


def timer(
    name: Optional[str] = None,
    log_result: bool = True,
    track_performance: bool = True
) -> Callable[[F], F]:
    """Decorator that times each call of the wrapped function.

    Failed calls are logged and re-raised without being recorded.

    Args:
        name: Operation name (defaults to the qualified function name)
        log_result: Log the duration at DEBUG level
        track_performance: Record the duration in the timing registry

    Example:
        >>> @timer(name="h_statistic")
        ... def h_statistic(model, data, feature_pair):
        ...     ...
    """
    def decorator(func: F) -> F:
        operation = name or f"{func.__module__}.{func.__qualname__}"

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            start = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                logger.error(f"{operation} failed after {time.perf_counter() - start:.3f}s: {e}")
                raise
            _finish(operation, start, log_result, track_performance)
            return result

        return wrapper

    return decorator


@contextmanager
def timed_operation(
    name: str,
    log_result: bool = True,
    track_performance: bool = True
) -> Iterator[Dict[str, float]]:
    """Time a block of code.

    Yields:
        Dictionary whose ``duration`` is set when the block exits

    Example:
        >>> with timed_operation("sweep_ageph") as timing:
        ...     curve = partial_dependence(model, sample, 'ageph', numeric_grid(18, 90))
        >>> timing['duration']
    """
    timing = {'duration': 0.0}
    start = time.perf_counter()
    try:
        yield timing
    except Exception as e:
        logger.error(f"{name} failed after {time.perf_counter() - start:.3f}s: {e}")
        raise
    timing['duration'] = _finish(name, start, log_result, track_performance)


def get_performance_stats(name: Optional[str] = None) -> Dict[str, Any]:
    """Statistics of one operation, or of every recorded operation keyed by name."""
    if name is not None:
        return _registry.stats(name)
    return {operation: _registry.stats(operation) for operation in _registry.names()}


def reset_performance_stats(name: Optional[str] = None) -> None:
    """Forget recorded durations of one operation, or of all."""
    _registry.reset(name)


def timing_report() -> pd.DataFrame:
    """Recorded operations as a table sorted by total time, slowest first."""
    columns = ['call_count', 'total_time', 'avg_time', 'min_time', 'max_time']
    stats = get_performance_stats()
    report = pd.DataFrame.from_dict(stats, orient='index', columns=columns)
    report.index.name = 'operation'
    return report.sort_values('total_time', ascending=False)
