"""Progress reporting utilities for embviz.

Provides progress bars for the sequential Drive downloads, using tqdm for
terminal output.
"""

from typing import Optional
import logging

from tqdm import tqdm

logger = logging.getLogger(__name__)


def get_progress_reporter(total: Optional[int] = None, desc: str = "Processing", unit: str = "file") -> tqdm:
    """
    Get a progress reporter instance.

    Args:
        total: Total number of items (for bar length).
        desc: Description for the progress bar.
        unit: Unit label shown next to the counter.

    Returns:
        tqdm instance.
    """
    bar = tqdm(total=total, desc=desc, unit=unit)
    logger.debug(f"Progress bar created for '{desc}' with total {total}")
    return bar


def update_progress(reporter: Optional[tqdm], increment: int = 1, desc: Optional[str] = None) -> None:
    """
    Update the progress reporter.

    Args:
        reporter: Progress reporter from get_progress_reporter.
        increment: Number of steps to advance.
        desc: New description (optional).
    """
    if reporter is None:
        return
    if desc:
        reporter.set_description(desc)
    reporter.update(increment)


def close_progress(reporter: Optional[tqdm]) -> None:
    if reporter is None:
        return
    reporter.close()
    logger.debug("Progress bar closed")
