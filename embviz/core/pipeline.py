"""
Core Pipeline Module.

Orchestrates the embeddings workflow: Earth Engine setup -> clustering ->
interactive map -> Drive export -> download -> cluster panel, and the change
detection branch: yearly export -> download -> difference / cosine similarity.

Exports finish on Earth Engine's schedule, so each stage is a separate method
that can be re-run later; nothing here keeps state between runs beyond the
files written to ``download_dir`` and ``output_dir``.
"""

import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional, Sequence, TypeVar

from .config import EmbeddingsConfig, normalize_cluster_values
from .exceptions import EmbVizError, ExportNotFoundError, PipelineError
from .progress import close_progress, get_progress_reporter, update_progress
from ..ingestion import earth_engine
from ..io import exports
from ..io.drive import DriveClient, DriveFile, load_credentials
from ..io.rasters import read_raster
from ..modeling import clustering
from ..modeling.similarity import change_rasters
from ..visualization.maps_2d import InteractiveMapGenerator
from ..visualization.plots import ClusterPanelPlot, CosineChangePlot, DifferencePlot, save_figure

T = TypeVar("T")


class EmbeddingsPipeline:
    """
    High-level orchestrator for the satellite embeddings workflow.

    Earth Engine and Drive are only touched by the stages that need them and are
    initialised lazily, so local-only stages (``plot_clusters``, ``detect_change``)
    run offline.
    """

    def __init__(self, config: Optional[EmbeddingsConfig] = None, drive: Optional[DriveClient] = None):
        """
        Initialize the pipeline with configuration.

        Args:
            config: Validated configuration (defaults when omitted).
            drive: Drive client to use instead of building one from credentials.
        """
        self.config = config or EmbeddingsConfig()
        self.region = self.config.region
        self.download_dir = Path(self.config.download_dir)
        self.output_dir = Path(self.config.output_dir)
        self.logger = logging.getLogger(__name__)
        self._drive = drive
        self._connected = False
        self._embeddings = None
        self._training = None

    # ------------------------------------------------------------------ helpers

    def _stage(self, name: str, func: Callable[[], T]) -> T:
        self.logger.info(f"Stage: {name}")
        try:
            result = func()
        except EmbVizError:
            raise
        except Exception as e:
            raise PipelineError(f"{name} failed: {e}") from e
        self.logger.debug(f"{name} completed")
        return result

    @property
    def drive(self) -> DriveClient:
        if self._drive is None:
            self._drive = DriveClient(credentials=load_credentials(self.config.credentials_file))
        return self._drive

    def connect(self) -> int:
        """Initialize Earth Engine and run the connectivity test (returns 3)."""
        def _connect():
            earth_engine.connect(self.config.project)
            self._connected = True
            return earth_engine.connectivity_test()
        return self._stage("connect", _connect)

    def _ensure_connected(self) -> None:
        if not self._connected:
            earth_engine.connect(self.config.project)
            self._connected = True

    def embeddings(self):
        """Embedding mosaic for the clustering year (built once)."""
        if self._embeddings is None:
            self._ensure_connected()
            self._embeddings = earth_engine.get_satellite_embeddings(
                self.region, self.config.year, collection=self.config.collection
            )
        return self._embeddings

    def training(self):
        if self._training is None:
            c = self.config.clustering
            self._training = clustering.sample_training(
                self.embeddings(), self.region, scale=self.config.scale, num_pixels=c.n_samples, seed=c.seed
            )
        return self._training

    def clusters(self, k: int):
        return clustering.get_clusters(self.embeddings(), self.training(), k)

    def _export_kwargs(self) -> Dict:
        e = self.config.export
        return {
            "scale": self.config.scale,
            "folder": e.folder,
            "max_pixels": e.max_pixels,
            "file_format": e.file_format,
        }

    def _cluster_values(self, ks: Optional[Sequence[int]]) -> List[int]:
        """Requested Ks (config default), de-duplicated and range-checked."""
        return normalize_cluster_values(ks or self.config.clustering.cluster_values)

    def _folder_files(self) -> List[DriveFile]:
        folder_id = self.drive.ensure_folder(self.config.export.folder)
        files = self.drive.list_files(folder_id)
        self.logger.info(f"{len(files)} file(s) in Drive folder '{self.config.export.folder}'")
        return files

    def _download_all(self, files: Sequence[DriveFile], desc: str) -> List[Path]:
        paths = []
        bar = get_progress_reporter(total=len(files), desc=desc)
        try:
            for f in files:
                paths.append(self.drive.download(f, self.download_dir / f.name, overwrite=True))
                update_progress(bar)
        finally:
            close_progress(bar)
        return paths

    # ------------------------------------------------------------------ stages

    def interactive_map(self, k: Optional[int] = None, output_path: Optional[Path] = None) -> Path:
        """Cluster at K and save the Leaflet map as HTML."""
        k = normalize_cluster_values([k or self.config.clustering.map_clusters])[0]
        output_path = Path(output_path or self.output_dir / f"clusters_k{k}_map.html")

        def _map():
            generator = InteractiveMapGenerator(zoom_start=self.config.plot.zoom)
            m = generator.generate(
                self.clusters(k).toInt(),
                vis_params=clustering.cluster_vis_params(k),
                region=self.region,
                satellite_base=self.config.plot.satellite_base,
                layer_name=f"K={k} clusters",
            )
            output_path.parent.mkdir(parents=True, exist_ok=True)
            m.save(str(output_path))
            self.logger.info(f"Saved interactive map {output_path}")
            return output_path

        return self._stage("interactive map", _map)

    def export_clusters(self, ks: Optional[Sequence[int]] = None, wait: bool = False) -> List:
        """Start one Drive export per K; optionally block until they finish."""
        ks = self._cluster_values(ks)

        def _export():
            tasks = [
                exports.export_clusters(self.clusters(k), k, self.region, **self._export_kwargs())
                for k in ks
            ]
            if wait:
                exports.wait_for_tasks(tasks, poll_seconds=self.config.export.poll_seconds)
            return tasks

        return self._stage("export clusters", _export)

    def download_clusters(self, ks: Optional[Sequence[int]] = None) -> Dict[int, Path]:
        """Find each K's exported raster in Drive and download it."""
        ks = self._cluster_values(ks)

        def _download():
            files = self._folder_files()
            chosen = [exports.select_export_file(k, files) for k in ks]
            paths = self._download_all(chosen, desc="Cluster rasters")
            return dict(zip(ks, paths))

        return self._stage("download clusters", _download)

    def plot_clusters(self, ks: Optional[Sequence[int]] = None, output_path: Optional[Path] = None) -> Path:
        """Render the cluster panel from previously downloaded rasters."""
        ks = self._cluster_values(ks)
        output_path = Path(output_path or self.output_dir / "clusters_panel.png")

        def _plot():
            rasters, profiles = {}, {}
            for path in sorted(self.download_dir.glob("clusters_k*.tif")):
                k = exports.parse_cluster_k(path.name)
                if k in ks and k not in rasters:
                    rasters[k], profiles[k] = read_raster(path)
            missing = [k for k in ks if k not in rasters]
            if missing:
                raise ExportNotFoundError(f"K={missing[0]}")
            fig = ClusterPanelPlot().generate(rasters, profiles=profiles)
            return save_figure(fig, output_path, dpi=self.config.plot.dpi)

        return self._stage("plot clusters", _plot)

    def export_embeddings(self, wait: bool = False) -> List:
        """Start one Drive export per change-detection year."""
        def _export():
            self._ensure_connected()
            tasks = []
            for year in self.config.change_years:
                image = earth_engine.get_satellite_embeddings(
                    self.region, year, collection=self.config.collection
                )
                tasks.append(exports.export_embeddings(image, year, self.region, **self._export_kwargs()))
            if wait:
                exports.wait_for_tasks(tasks, poll_seconds=self.config.export.poll_seconds)
            return tasks

        return self._stage("export embeddings", _export)

    def download_embeddings(self) -> Dict[int, Path]:
        def _download():
            files = self._folder_files()
            by_year = exports.select_embedding_files(files, self.config.change_years)
            years = list(by_year)
            paths = self._download_all([by_year[y] for y in years], desc="Embeddings")
            return dict(zip(years, paths))

        return self._stage("download embeddings", _download)

    def _local_embedding_paths(self) -> Dict[int, Path]:
        paths: Dict[int, Path] = {}
        for path in sorted(self.download_dir.glob("embeddings_*.tif")):
            year = exports.parse_embedding_year(path.name)
            if year is not None:
                paths.setdefault(year, path)
        for year in self.config.change_years:
            if year not in paths:
                raise ExportNotFoundError(f"year {year}")
        return paths

    def detect_change(self) -> Dict[str, Path]:
        """
        Local change detection between the two downloaded embedding years.

        Writes the mean absolute difference PNG, the cosine similarity GeoTIFF and
        the cosine change heatmap PNG. Files are matched to years by name.

        Returns:
            Dictionary of artifact paths.
        """
        def _detect():
            start, end = self.config.change_years
            paths = self._local_embedding_paths()
            plot_cfg = self.config.plot
            size = (plot_cfg.width, plot_cfg.height)
            artifacts: Dict[str, Path] = {}

            cosine_tif = self.output_dir / f"cosine_{start}_{end}.tif"
            diff, cosine, profile = change_rasters(paths[start], paths[end], cosine_out=cosine_tif)
            artifacts["cosine_tif"] = cosine_tif

            fig = DifferencePlot().generate(diff, profile=profile, figsize=size)
            artifacts["difference_png"] = save_figure(
                fig, self.output_dir / "mean_absolute_difference.png", dpi=plot_cfg.dpi
            )

            fig = CosineChangePlot().generate(cosine, years=(start, end), profile=profile, figsize=size)
            artifacts["cosine_png"] = save_figure(
                fig, self.output_dir / "cosine_change_heatmap.png", dpi=plot_cfg.dpi
            )
            return artifacts

        return self._stage("change detection", _detect)
