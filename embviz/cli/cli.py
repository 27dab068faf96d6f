import click
from pathlib import Path
from typing import Optional, Tuple
from embviz import __version__
from embviz.core.config import EmbeddingsConfig
from embviz.core.exceptions import EmbVizError
from embviz.utils.logging import configure_logging
from dotenv import load_dotenv

load_dotenv()


def _pipeline(ctx: click.Context):
    from embviz.core.pipeline import EmbeddingsPipeline
    return EmbeddingsPipeline(config=ctx.obj["config"])


def _fail(e: Exception) -> None:
    if isinstance(e, (EmbVizError, ValueError)):
        click.echo(click.style(f"Error: {str(e)}", fg="red"), err=True)
    else:
        click.echo(click.style(f"Unexpected error: {str(e)}", fg="red"), err=True)
    raise click.Abort()


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "--version", message="embviz %(version)s")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False),
    help="Path to configuration YAML file (optional; defaults plus EE_PROJECT are used otherwise)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging",
)
@click.pass_context
def cli(ctx: click.Context, config: Optional[str], verbose: bool) -> None:
    """Clustering and change detection on Google Satellite Embeddings."""
    try:
        config_obj = EmbeddingsConfig.from_yaml(config) if config else EmbeddingsConfig.from_yaml("config.yaml")
    except EmbVizError as e:
        _fail(e)
    configure_logging("DEBUG" if verbose else config_obj.log_level)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config_obj


@cli.command()
@click.pass_context
def check(ctx: click.Context) -> None:
    """Initialize Earth Engine and run a connectivity test (1 + 2)."""
    try:
        result = _pipeline(ctx).connect()
        click.echo(f"Earth Engine connected (project: {ctx.obj['config'].project}); 1 + 2 = {result}")
    except Exception as e:
        _fail(e)


@cli.command(name="map")
@click.option("--k", "k", type=int, default=None, help="Number of clusters (default: clustering.map_clusters)")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="HTML file to write (default: <output_dir>/clusters_k<K>_map.html)",
)
@click.pass_context
def map_command(ctx: click.Context, k: Optional[int], output: Optional[str]) -> None:
    """Cluster the embeddings on Earth Engine and save an interactive map.

    Example: embviz map --k 5 -o clusters.html
    """
    try:
        path = _pipeline(ctx).interactive_map(k=k, output_path=Path(output) if output else None)
        click.echo(f"Interactive map saved to: {path}")
    except Exception as e:
        _fail(e)


@cli.command(name="export-clusters")
@click.option("-k", "ks", type=int, multiple=True, help="Cluster count to export (repeatable; default from config)")
@click.option("--wait", is_flag=True, help="Block until the export tasks finish")
@click.pass_context
def export_clusters(ctx: click.Context, ks: Tuple[int, ...], wait: bool) -> None:
    """Start Drive exports of the cluster rasters.

    Example: embviz export-clusters -k 3 -k 5 -k 10 --wait
    """
    try:
        tasks = _pipeline(ctx).export_clusters(list(ks) or None, wait=wait)
        state = "finished" if wait else "started"
        click.echo(f"{len(tasks)} cluster export(s) {state}.")
    except Exception as e:
        _fail(e)


@cli.command(name="download-clusters")
@click.option("-k", "ks", type=int, multiple=True, help="Cluster count to download (repeatable; default from config)")
@click.pass_context
def download_clusters(ctx: click.Context, ks: Tuple[int, ...]) -> None:
    """Download the exported cluster rasters from Drive."""
    try:
        paths = _pipeline(ctx).download_clusters(list(ks) or None)
        for k, path in sorted(paths.items()):
            click.echo(f"K={k}: {path}")
    except Exception as e:
        _fail(e)


@cli.command(name="plot-clusters")
@click.option("-k", "ks", type=int, multiple=True, help="Cluster count to plot (repeatable; default from config)")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="PNG file to write (default: <output_dir>/clusters_panel.png)",
)
@click.pass_context
def plot_clusters(ctx: click.Context, ks: Tuple[int, ...], output: Optional[str]) -> None:
    """Plot downloaded cluster rasters side by side."""
    try:
        path = _pipeline(ctx).plot_clusters(list(ks) or None, output_path=Path(output) if output else None)
        click.echo(f"Cluster panel saved to: {path}")
    except Exception as e:
        _fail(e)


@cli.command(name="export-embeddings")
@click.option("--wait", is_flag=True, help="Block until the export tasks finish")
@click.pass_context
def export_embeddings(ctx: click.Context, wait: bool) -> None:
    """Start Drive exports of the embeddings for both change years."""
    try:
        tasks = _pipeline(ctx).export_embeddings(wait=wait)
        state = "finished" if wait else "started"
        click.echo(f"{len(tasks)} embedding export(s) {state}.")
    except Exception as e:
        _fail(e)


@cli.command(name="download-embeddings")
@click.pass_context
def download_embeddings(ctx: click.Context) -> None:
    """Download the exported embedding rasters from Drive."""
    try:
        paths = _pipeline(ctx).download_embeddings()
        for year, path in sorted(paths.items()):
            click.echo(f"{year}: {path}")
    except Exception as e:
        _fail(e)


@cli.command()
@click.pass_context
def change(ctx: click.Context) -> None:
    """Compute difference and cosine-similarity change maps from downloaded embeddings.

    Runs locally; Earth Engine is not contacted.
    """
    try:
        artifacts = _pipeline(ctx).detect_change()
        click.echo("Change detection completed successfully!")
        for name, path in artifacts.items():
            click.echo(f"{name}: {path}")
    except Exception as e:
        _fail(e)


if __name__ == "__main__":
    cli()
