# stockroom/utils/concurrency.py
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, List, Optional, TypeVar

from stockroom.config import config

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')


def fan_out(
    func: Callable[[T], Optional[R]],
    elements: Iterable[T],
    max_workers: Optional[int] = None,
    label: str = "element"
) -> List[R]:
    """Run independent reads concurrently and join the results.

    Results come back in input order. A call that returns None is dropped,
    and a call that raises is logged and dropped, so one failed read never
    spoils the others.

    Args:
        func: Function applied to every element
        elements: Input elements
        max_workers: Optional pool size (defaults to configuration)
        label: Name used for elements in log messages

    Returns:
        List of non-None results
    """
    elements = list(elements)
    if not elements:
        return []

    workers = max_workers or config.batch_config['max_workers']
    workers = max(1, min(workers, len(elements)))

    results = []
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [executor.submit(func, element) for element in elements]
        for element, future in zip(elements, futures):
            try:
                result = future.result()
            except Exception as e:
                logger.error(f"Skipping {label} {element!r}: {str(e)}")
                continue
            if result is not None:
                results.append(result)

    return results
