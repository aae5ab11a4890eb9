"""CLI interface for codeviz.

Runs the graph engine on JSON files: lay out a graph, analyze it, walk
its dependencies, cluster code entities, or classify an impact.
Results go to stdout as JSON; logs and errors go to stderr.
"""

import json
import sys
from pathlib import Path
from typing import Any

import click
from dotenv import load_dotenv

# Load .env before importing other codeviz modules
load_dotenv()

from codeviz import __version__  # noqa: E402
from codeviz.analyzers.impact import calculate_impact_severity  # noqa: E402
from codeviz.analyzers.layout import LayoutType  # noqa: E402
from codeviz.models.clusters import ClusteringAlgorithm  # noqa: E402
from codeviz.models.graph import Graph, json_to_graph  # noqa: E402


def _load_json(path: str) -> Any:
    return json.loads(Path(path).read_text(encoding="utf-8"))


def _load_graph(path: str) -> Graph:
    return json_to_graph(_load_json(path))


@click.group()
@click.version_option(version=__version__, prog_name="codeviz")
def cli() -> None:
    """codeviz - graph engine for code-knowledge visualization."""
    pass


@cli.command()
@click.argument("graph_json", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--type",
    "layout_type",
    type=click.Choice([t.value for t in LayoutType]),
    default=LayoutType.FORCE.value,
    help="Layout algorithm (default: force)",
)
@click.option("--iterations", type=int, default=300, help="Simulation iterations (default: 300)")
@click.option("--width", type=float, default=1200, help="Canvas width (default: 1200)")
@click.option("--height", type=float, default=800, help="Canvas height (default: 800)")
@click.option("--seed", type=int, default=None, help="Seed for random initial placement")
@click.option("--root", "root_id", default=None, help="Root node id for the radial layout")
def layout(
    graph_json: str,
    layout_type: str,
    iterations: int,
    width: float,
    height: float,
    seed: int | None,
    root_id: str | None,
) -> None:
    """Compute node positions for a graph.

    GRAPH_JSON: Path to a graph JSON file (nodes, edges, metadata).
    """
    from codeviz.analyzers.layout import LayoutOptions, apply_layout
    from codeviz.models.graph import graph_to_json

    try:
        graph = _load_graph(graph_json)
        options = LayoutOptions(width=width, height=height, iterations=iterations, seed=seed)
        positioned = apply_layout(graph, layout_type, options, root_id=root_id)
        click.echo(json.dumps(graph_to_json(positioned), indent=2))
    except Exception as e:
        click.echo(f"Layout failed: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("graph_json", type=click.Path(exists=True, dir_okay=False))
@click.option("--top", type=int, default=10, help="Number of top-ranked nodes (default: 10)")
def analyze(graph_json: str, top: int) -> None:
    """Report statistics, cycles, coupled components, and key nodes.

    GRAPH_JSON: Path to a graph JSON file.
    """
    from codeviz.analyzers.graph_algorithms import GraphAnalyzer, top_n

    try:
        analyzer = GraphAnalyzer(_load_graph(graph_json))
        importance = top_n(analyzer.calculate_importance_scores(), n=top)
        bottlenecks = top_n(analyzer.calculate_betweenness_centrality(), n=top)
        report = {
            "statistics": analyzer.get_statistics().model_dump(by_alias=True),
            "cycles": analyzer.find_circular_dependencies(),
            "stronglyConnected": analyzer.find_strongly_connected_components(),
            "importance": [
                {"node": node_id, "score": round(score, 6)} for node_id, score in importance
            ],
            "bottlenecks": [
                {"node": node_id, "betweenness": round(score, 6)}
                for node_id, score in bottlenecks
                if score > 0
            ],
        }
        click.echo(json.dumps(report, indent=2))
    except Exception as e:
        click.echo(f"Analysis failed: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("graph_json", type=click.Path(exists=True, dir_okay=False))
@click.argument("start")
@click.option("--depth", type=int, default=3, help="Traversal depth (default: 3)")
@click.option("--reverse", is_flag=True, help="Follow incoming edges (find dependents)")
def reach(graph_json: str, start: str, depth: int, reverse: bool) -> None:
    """Map nodes reachable from START to their hop distance.

    GRAPH_JSON: Path to a graph JSON file.
    START: Node id to start from.
    """
    from codeviz.analyzers.graph_algorithms import GraphAnalyzer

    try:
        analyzer = GraphAnalyzer(_load_graph(graph_json))
        if reverse:
            depths = analyzer.find_dependents(start, depth)
        else:
            depths = analyzer.find_reachable(start, depth)
        click.echo(json.dumps(depths, indent=2))
    except Exception as e:
        click.echo(f"Reachability failed: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("entities_json", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--algorithm",
    type=click.Choice([a.value for a in ClusteringAlgorithm]),
    default=ClusteringAlgorithm.KMEANS.value,
    help="Clustering algorithm (default: kmeans)",
)
@click.option("--clusters", "num_clusters", type=int, default=None, help="Target cluster count")
@click.option("--epsilon", type=float, default=0.5, help="DBSCAN radius (default: 0.5)")
@click.option("--min-size", type=int, default=3, help="DBSCAN minimum neighbors (default: 3)")
@click.option("--include-tests", is_flag=True, help="Keep entities from test files")
@click.option("--no-embeddings", is_flag=True, help="Skip the embedding provider")
@click.option("--seed", type=int, default=None, help="Seed for k-means initialization")
def cluster(
    entities_json: str,
    algorithm: str,
    num_clusters: int | None,
    epsilon: float,
    min_size: int,
    include_tests: bool,
    no_embeddings: bool,
    seed: int | None,
) -> None:
    """Group code entities into semantic clusters.

    ENTITIES_JSON: Path to a JSON list of {id, content, type, path} objects.
    """
    from codeviz.analyzers.semantic_clusters import SemanticClusteringEngine
    from codeviz.models.clusters import ClusteringOptions

    try:
        entities = _load_json(entities_json)
        if not isinstance(entities, list):
            raise ValueError("expected a JSON list of entities")
        options = ClusteringOptions(
            algorithm=ClusteringAlgorithm(algorithm),
            num_clusters=num_clusters,
            min_cluster_size=min_size,
            epsilon=epsilon,
            exclude_tests=not include_tests,
            use_embeddings=not no_embeddings,
            seed=seed,
        )
        result = SemanticClusteringEngine().cluster_entities(entities, options)
        click.echo(result.model_dump_json(indent=2, by_alias=True, exclude_none=True))
    except Exception as e:
        click.echo(f"Clustering failed: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.argument("score", type=float)
@click.argument("depth", type=int)
@click.option("--core", is_flag=True, help="The dependent is a core module")
def severity(score: float, depth: int, core: bool) -> None:
    """Classify an impact by SCORE (0-100) and DEPTH (hops)."""
    click.echo(calculate_impact_severity(score, depth, core).value)


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
