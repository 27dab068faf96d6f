"""
Earth Engine batch exports to Google Drive and lookup of the exported files.

Exports run asynchronously on Earth Engine. ``export_*`` functions only start a
task and return it; downloads are a separate step once the files exist in the
Drive folder. ``wait_for_tasks`` is available for callers that prefer to block.
"""

import logging
import re
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence

import ee

from ..core.exceptions import ExportError, ExportNotFoundError
from ..core.geometry import Region
from ..ingestion.earth_engine import region_geometry
from .drive import DriveFile

logger = logging.getLogger(__name__)

DEFAULT_FOLDER = "earthengine-exports"
DEFAULT_MAX_PIXELS = 1e13
FINISHED_STATES = ("COMPLETED", "FAILED", "CANCELLED")

_CLUSTER_K_RE = re.compile(r"clusters_k(\d+)")
_EMBEDDING_YEAR_RE = re.compile(r"embeddings_(\d{4})")


def cluster_prefix(k: int) -> str:
    return f"clusters_k{int(k)}"


def cluster_description(k: int) -> str:
    return f"clusters_k{int(k)}_export"


def embeddings_prefix(year: int) -> str:
    return f"embeddings_{int(year)}"


def parse_cluster_k(name: str) -> Optional[int]:
    """Cluster count encoded in an exported file name, or None."""
    match = _CLUSTER_K_RE.search(name)
    return int(match.group(1)) if match else None


def parse_embedding_year(name: str) -> Optional[int]:
    """Year encoded in an exported embeddings file name, or None."""
    match = _EMBEDDING_YEAR_RE.search(name)
    return int(match.group(1)) if match else None


def export_image(
    image: ee.Image,
    file_name_prefix: str,
    region: Region,
    scale: int = 10,
    folder: str = DEFAULT_FOLDER,
    description: Optional[str] = None,
    max_pixels: float = DEFAULT_MAX_PIXELS,
    file_format: str = "GeoTIFF",
):
    """
    Start an ``Export.image.toDrive`` task.

    Parameters
    ----------
    image : ee.Image
        Image to export.
    file_name_prefix : str
        Name of the file(s) written to Drive, without extension. A path such as
        ``"out/embeddings_2018.tif"`` is reduced to ``"embeddings_2018"``.
    region : Region
        Export extent.
    scale : int
        Pixel size in metres.
    folder : str
        Drive folder name.
    description : str, optional
        Task name shown in the Earth Engine task list (defaults to the prefix).
    max_pixels : float
        Upper bound on exported pixels.
    file_format : str
        Output format understood by Earth Engine.

    Returns
    -------
    ee.batch.Task
        The started task.
    """
    prefix = Path(file_name_prefix).stem
    task = ee.batch.Export.image.toDrive(
        image=image,
        description=description or prefix,
        folder=folder,
        fileNamePrefix=prefix,
        region=region_geometry(region),
        scale=int(scale),
        fileFormat=file_format,
        maxPixels=max_pixels,
    )
    task.start()
    logger.info(f"Started Drive export '{prefix}' -> {folder}/ (task {getattr(task, 'id', '?')})")
    return task


def export_clusters(clustered: ee.Image, k: int, region: Region, **kwargs):
    """Export a K-class cluster image as integers clipped to ``region``."""
    image = clustered.toInt().clip(region_geometry(region))
    return export_image(
        image,
        cluster_prefix(k),
        region,
        description=cluster_description(k),
        **kwargs,
    )


def export_embeddings(image: ee.Image, year: int, region: Region, **kwargs):
    """Export a yearly embedding mosaic as ``embeddings_{year}``."""
    return export_image(image, embeddings_prefix(year), region, **kwargs)


def _task_state(task) -> str:
    status = task.status() or {}
    return status.get("state", "UNKNOWN")


def _task_name(task) -> str:
    return (getattr(task, "config", None) or {}).get("description") or task.id


def wait_for_tasks(
    tasks: Sequence,
    poll_seconds: float = 30.0,
    timeout: Optional[float] = None,
    sleep=time.sleep,
) -> List[str]:
    """
    Poll export tasks until all of them have finished.

    State is tracked per task, so tasks sharing a description are counted
    separately.

    Args:
        tasks: Started ``ee.batch.Task`` objects.
        poll_seconds: Pause between status rounds.
        timeout: Give up after this many seconds (None waits indefinitely).
        sleep: Sleep function, replaceable in tests.

    Returns:
        Final state of each task, in the order given.

    Raises:
        ExportError: If any task failed or was cancelled, or on timeout.
    """
    tasks = list(tasks)
    names = [_task_name(task) for task in tasks]
    states = ["UNKNOWN"] * len(tasks)
    waited = 0.0
    done_prev = -1
    while True:
        for i, task in enumerate(tasks):
            if states[i] not in FINISHED_STATES:
                states[i] = _task_state(task)
        done = sum(1 for s in states if s in FINISHED_STATES)
        if done != done_prev:
            logger.info(f"Progress: {done}/{len(tasks)} export task(s) finished")
            done_prev = done
        if done >= len(tasks):
            break
        if timeout is not None and waited >= timeout:
            pending = [n for n, s in zip(names, states) if s not in FINISHED_STATES]
            raise ExportError(f"Timed out after {waited:.0f}s waiting for exports: {', '.join(pending)}")
        sleep(poll_seconds)
        waited += poll_seconds

    failed = [(n, s) for n, s in zip(names, states) if s != "COMPLETED"]
    if failed:
        details = "; ".join(f"{n}: {s}" for n, s in failed)
        raise ExportError(f"Export task(s) did not complete: {details}")
    logger.info(f"All {len(tasks)} export task(s) completed")
    return states


def select_export_file(k: int, files: Iterable[DriveFile]) -> DriveFile:
    """
    Pick the exported cluster raster for ``k`` from a Drive folder listing.

    Candidates start with ``clusters_k{k}`` not followed by another digit, so
    K=1 never picks up ``clusters_k10.tif``. A GeoTIFF is preferred over other
    formats (e.g. a ``.zip`` of tiles); otherwise listing order is kept.

    Raises:
        ExportNotFoundError: If no file matches.
    """
    pattern = re.compile(rf"^{re.escape(cluster_prefix(k))}(?!\d)")
    matches: List[DriveFile] = [f for f in files if pattern.match(f.name)]
    if not matches:
        raise ExportNotFoundError(f"K={k}")
    matches.sort(key=lambda f: not f.name.lower().endswith(".tif"))
    chosen = matches[0]
    logger.debug(f"K={k}: chose {chosen.name} out of {len(matches)} candidate(s)")
    return chosen


def select_embedding_files(files: Iterable[DriveFile], years: Sequence[int]) -> Dict[int, DriveFile]:
    """Map each requested year to its exported embeddings file.

    Raises:
        ExportNotFoundError: If a year has no ``embeddings_{year}`` file.
    """
    by_year: Dict[int, DriveFile] = {}
    for f in files:
        year = parse_embedding_year(f.name)
        if year is None:
            continue
        if year not in by_year or f.name.lower().endswith(".tif") and not by_year[year].name.lower().endswith(".tif"):
            by_year[year] = f
    missing = [y for y in years if y not in by_year]
    if missing:
        raise ExportNotFoundError(f"year {missing[0]}")
    return {y: by_year[y] for y in years}


__all__ = [
    "cluster_prefix",
    "cluster_description",
    "embeddings_prefix",
    "parse_cluster_k",
    "parse_embedding_year",
    "export_image",
    "export_clusters",
    "export_embeddings",
    "wait_for_tasks",
    "select_export_file",
    "select_embedding_files",
]
