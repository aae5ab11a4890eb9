"""Graph layout algorithms for visualizing code dependencies.

Supports force-directed, hierarchical (Sugiyama-style), radial, and organic
(Fruchterman-Reingold) layouts. Each layout takes a Graph and returns a new
Graph with a position on every node; the input graph is never modified.

Force simulations are vectorized with NumPy. Random initial placement uses
a ``numpy.random.Generator``: pass ``seed`` in the options, or inject an
``rng``, for reproducible output.
"""

import math
from collections import deque
from collections.abc import Callable
from enum import StrEnum
from typing import Any

import numpy as np
from pydantic import BaseModel, Field

from codeviz.logging import log_operation, logger
from codeviz.models.graph import Graph, GraphNode, Position

# Force-directed simulation constants
REPULSION_STRENGTH = 5000.0
SPRING_STRENGTH = 0.1
GRAVITY = 0.01
DAMPING = 0.9

# Barycenter ordering passes for the hierarchical layout
BARYCENTER_PASSES = 4


class LayoutType(StrEnum):
    """Available layout algorithms."""

    FORCE = "force"
    HIERARCHICAL = "hierarchical"
    RADIAL = "radial"
    ORGANIC = "organic"


class LayoutOptions(BaseModel):
    """Canvas and simulation parameters shared by all layouts."""

    width: float = Field(default=1200, gt=0)
    height: float = Field(default=800, gt=0)
    padding: float = Field(default=50, ge=0)
    node_spacing: float = Field(
        default=100, alias="nodeSpacing", gt=0, description="Base ideal edge length"
    )
    layer_spacing: float = Field(
        default=150, alias="layerSpacing", gt=0, description="Maximum gap between layers"
    )
    iterations: int = Field(default=300, ge=0)
    center_x: float | None = Field(default=None, alias="centerX")
    center_y: float | None = Field(default=None, alias="centerY")
    seed: int | None = Field(default=None, description="Seed for random initial placement")
    separate_unreached: bool = Field(
        default=False,
        alias="separateUnreached",
        description="Radial: put nodes unreachable from the root on an outer ring",
    )

    model_config = {"populate_by_name": True}

    @property
    def center(self) -> tuple[float, float]:
        """Canvas center, honoring explicit overrides."""
        cx = self.center_x if self.center_x is not None else self.width / 2
        cy = self.center_y if self.center_y is not None else self.height / 2
        return cx, cy


LayoutOptionsLike = LayoutOptions | dict[str, Any] | None


def _resolve_options(options: LayoutOptionsLike) -> LayoutOptions:
    if options is None:
        return LayoutOptions()
    if isinstance(options, LayoutOptions):
        return options
    return LayoutOptions.model_validate(options)


def _index_nodes(graph: Graph) -> dict[str, int]:
    return {node.id: idx for idx, node in enumerate(graph.nodes)}


def _edge_index_arrays(
    graph: Graph,
    index: dict[str, int],
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Source indices, target indices, and weights of edges between known nodes."""
    sources: list[int] = []
    targets: list[int] = []
    weights: list[float] = []
    for edge in graph.edges:
        src = index.get(edge.source)
        tgt = index.get(edge.target)
        if src is None or tgt is None:
            continue
        sources.append(src)
        targets.append(tgt)
        weights.append(edge.weight if edge.weight > 0 else 1.0)
    return (
        np.array(sources, dtype=np.intp),
        np.array(targets, dtype=np.intp),
        np.array(weights, dtype=float),
    )


def _clamp(positions: np.ndarray, opts: LayoutOptions) -> None:
    """Clamp positions in place to [padding, dimension - padding]."""
    high = np.array([opts.width - opts.padding, opts.height - opts.padding])
    low = np.array([opts.padding, opts.padding])
    np.minimum(positions, high, out=positions)
    np.maximum(positions, low, out=positions)


def _pairwise(positions: np.ndarray, zero_distance: float) -> tuple[np.ndarray, np.ndarray]:
    """Pairwise offsets ``delta[i, j] = p[j] - p[i]`` and their lengths."""
    delta = positions[np.newaxis, :, :] - positions[:, np.newaxis, :]
    distance = np.sqrt((delta**2).sum(axis=2))
    distance[distance == 0] = zero_distance
    return delta, distance


def _with_positions(graph: Graph, positions: np.ndarray) -> Graph:
    nodes = [
        node.model_copy(update={"position": Position(x=float(x), y=float(y))})
        for node, (x, y) in zip(graph.nodes, positions, strict=True)
    ]
    return graph.with_nodes(nodes)


# =============================================================================
# Force-Directed Layout
# =============================================================================


def force_directed_layout(
    graph: Graph,
    options: LayoutOptionsLike = None,
    rng: np.random.Generator | None = None,
) -> Graph:
    """Position nodes with a damped spring-electrical simulation.

    Each iteration, with temperature ``alpha = 1 - i / iterations``:
    all pairs repel (inverse square), edges pull toward an ideal length of
    ``node_spacing * (1 + 1 / weight)``, and a weak gravity pulls toward the
    center. Velocities are damped and integrated; nodes with ``fx``/``fy``
    hold those coordinates. Positions are clamped to the padded canvas.

    Args:
        graph: Graph to lay out.
        options: Layout options (model, dict, or None for defaults).
        rng: Random generator for initial placement (defaults to one
            seeded from ``options.seed``).

    Returns:
        New graph with positions assigned.
    """
    opts = _resolve_options(options)
    n = len(graph.nodes)
    if n == 0:
        return graph.with_nodes([])

    rng = rng if rng is not None else np.random.default_rng(opts.seed)
    cx, cy = opts.center
    center = np.array([cx, cy])

    # Random start near the center unless a position is already set
    jitter = rng.random((n, 2)) - 0.5
    positions = center + jitter * np.array([opts.width * 0.5, opts.height * 0.5])
    for i, node in enumerate(graph.nodes):
        if node.position is not None:
            positions[i] = (node.position.x, node.position.y)

    pinned_x = np.array([node.fx is not None for node in graph.nodes])
    pinned_y = np.array([node.fy is not None for node in graph.nodes])
    fixed_x = np.array([node.fx if node.fx is not None else 0.0 for node in graph.nodes])
    fixed_y = np.array([node.fy if node.fy is not None else 0.0 for node in graph.nodes])
    positions[pinned_x, 0] = fixed_x[pinned_x]
    positions[pinned_y, 1] = fixed_y[pinned_y]

    sources, targets, weights = _edge_index_arrays(graph, _index_nodes(graph))
    ideal_lengths = opts.node_spacing * (1 + 1 / weights)
    velocity = np.zeros((n, 2))

    for iteration in range(opts.iterations):
        alpha = 1 - iteration / opts.iterations

        # Repulsion between all pairs
        delta, distance = _pairwise(positions, zero_distance=1.0)
        force = REPULSION_STRENGTH * alpha / (distance * distance)
        np.fill_diagonal(force, 0.0)
        velocity -= (delta / distance[:, :, np.newaxis] * force[:, :, np.newaxis]).sum(axis=1)

        # Spring attraction along edges
        if sources.size:
            offset = positions[targets] - positions[sources]
            length = np.sqrt((offset**2).sum(axis=1))
            length[length == 0] = 1.0
            pull = SPRING_STRENGTH * (length - ideal_lengths) * alpha
            pull_vec = offset / length[:, np.newaxis] * pull[:, np.newaxis]
            np.add.at(velocity, sources, pull_vec)
            np.add.at(velocity, targets, -pull_vec)

        # Center gravity
        velocity += (center - positions) * GRAVITY * alpha

        velocity *= DAMPING
        positions += velocity

        velocity[pinned_x, 0] = 0.0
        positions[pinned_x, 0] = fixed_x[pinned_x]
        velocity[pinned_y, 1] = 0.0
        positions[pinned_y, 1] = fixed_y[pinned_y]

        _clamp(positions, opts)

    if opts.iterations == 0:
        _clamp(positions, opts)

    return _with_positions(graph, positions)


# =============================================================================
# Hierarchical Layout (Sugiyama-style)
# =============================================================================


def hierarchical_layout(graph: Graph, options: LayoutOptionsLike = None) -> Graph:
    """Arrange nodes in horizontal layers by dependency depth.

    1. Layer = longest path from a source (Kahn's algorithm); nodes only
       reachable through cycles stay on layer 0.
    2. Within each layer, order nodes by the barycenter of their
       predecessors in the layer above, over several forward passes.
    3. Layers are spread vertically (at most ``layer_spacing`` apart),
       nodes evenly across the width.

    Args:
        graph: Graph to lay out.
        options: Layout options (model, dict, or None for defaults).

    Returns:
        New graph with positions assigned.
    """
    opts = _resolve_options(options)
    if not graph.nodes:
        return graph.with_nodes([])

    layers = _assign_layers(graph)
    ordered = _order_layers(layers, graph)
    return _assign_hierarchical_positions(ordered, graph, opts)


def _known_adjacency(graph: Graph) -> tuple[dict[str, list[str]], dict[str, list[str]]]:
    """Outgoing and incoming neighbor lists over known node ids."""
    outgoing: dict[str, list[str]] = {node.id: [] for node in graph.nodes}
    incoming: dict[str, list[str]] = {node.id: [] for node in graph.nodes}
    for edge in graph.edges:
        if edge.source in outgoing and edge.target in outgoing:
            outgoing[edge.source].append(edge.target)
            incoming[edge.target].append(edge.source)
    return outgoing, incoming


def _assign_layers(graph: Graph) -> dict[str, int]:
    """Longest-path layering via a topological sort on in-degree."""
    outgoing, incoming = _known_adjacency(graph)
    in_degree = {node_id: len(preds) for node_id, preds in incoming.items()}

    layers: dict[str, int] = {}
    queue: deque[str] = deque()
    for node_id, degree in in_degree.items():
        if degree == 0:
            queue.append(node_id)
            layers[node_id] = 0

    while queue:
        current = queue.popleft()
        current_layer = layers[current]
        for neighbor in outgoing[current]:
            in_degree[neighbor] -= 1
            layers[neighbor] = max(layers.get(neighbor, 0), current_layer + 1)
            if in_degree[neighbor] == 0:
                queue.append(neighbor)

    # Nodes stuck behind cycles
    for node in graph.nodes:
        layers.setdefault(node.id, 0)

    return layers


def _order_layers(layers: dict[str, int], graph: Graph) -> dict[int, list[str]]:
    """Reduce crossings with the barycenter heuristic."""
    ordered: dict[int, list[str]] = {}
    for node in graph.nodes:
        ordered.setdefault(layers[node.id], []).append(node.id)

    _, incoming = _known_adjacency(graph)
    max_layer = max(ordered)

    for _ in range(BARYCENTER_PASSES):
        for layer in range(1, max_layer + 1):
            nodes_in_layer = ordered.get(layer, [])
            prev_positions = {
                node_id: idx for idx, node_id in enumerate(ordered.get(layer - 1, []))
            }

            def barycenter(item: tuple[int, str]) -> float:
                current_idx, node_id = item
                positions = [prev_positions[p] for p in incoming[node_id] if p in prev_positions]
                if not positions:
                    return float(current_idx)
                return sum(positions) / len(positions)

            ranked = sorted(enumerate(nodes_in_layer), key=barycenter)
            ordered[layer] = [node_id for _, node_id in ranked]

    return ordered


def _assign_hierarchical_positions(
    ordered: dict[int, list[str]],
    graph: Graph,
    opts: LayoutOptions,
) -> Graph:
    max_layer = max(ordered)
    available_height = opts.height - 2 * opts.padding
    layer_height = min(opts.layer_spacing, available_height / max(max_layer, 1))
    layer_width = opts.width - 2 * opts.padding

    positions: dict[str, Position] = {}
    for layer, node_ids in ordered.items():
        y = opts.padding + layer * layer_height
        spacing = layer_width / max(len(node_ids), 1)
        for idx, node_id in enumerate(node_ids):
            positions[node_id] = Position(x=opts.padding + (idx + 0.5) * spacing, y=y)

    return graph.with_nodes(
        [node.model_copy(update={"position": positions[node.id]}) for node in graph.nodes]
    )


# =============================================================================
# Radial Layout
# =============================================================================


def radial_layout(
    graph: Graph,
    root_id: str | None = None,
    options: LayoutOptionsLike = None,
) -> Graph:
    """Place nodes on concentric rings by hop distance from a root.

    The root is ``root_id`` if it names a node, else the first node with no
    incoming edges, else the first node. Nodes unreachable from the root
    share level 0 with the root, unless ``separate_unreached`` is set, in
    which case they get their own outermost ring. Each ring starts at the
    top (-90 degrees) and is evenly spaced by angle.

    Args:
        graph: Graph to lay out.
        root_id: Optional root node id.
        options: Layout options (model, dict, or None for defaults).

    Returns:
        New graph with positions assigned.
    """
    opts = _resolve_options(options)
    if not graph.nodes:
        return graph.with_nodes([])

    cx, cy = opts.center
    max_radius = min(opts.width, opts.height) / 2 - opts.padding
    outgoing, incoming = _known_adjacency(graph)

    root = root_id if root_id in outgoing else None
    if root_id is not None and root is None:
        logger.warning("Radial root %s is not in the graph, choosing one", root_id)
    if root is None:
        root = next((node_id for node_id, preds in incoming.items() if not preds), None)
    if root is None:
        root = graph.nodes[0].id

    # BFS to assign levels
    levels: dict[str, int] = {root: 0}
    queue: deque[str] = deque([root])
    while queue:
        current = queue.popleft()
        for neighbor in outgoing[current]:
            if neighbor not in levels:
                levels[neighbor] = levels[current] + 1
                queue.append(neighbor)

    unreached = [node.id for node in graph.nodes if node.id not in levels]
    unreached_level = max(levels.values()) + 1 if opts.separate_unreached else 0
    for node_id in unreached:
        levels[node_id] = unreached_level

    groups: dict[int, list[str]] = {}
    for node_id, level in levels.items():
        groups.setdefault(level, []).append(node_id)

    max_level = max(groups)
    radius_step = max_radius / max(max_level, 1)

    positions: dict[str, Position] = {}
    for level, node_ids in groups.items():
        radius = level * radius_step
        angle_step = 2 * math.pi / len(node_ids)
        for idx, node_id in enumerate(node_ids):
            angle = idx * angle_step - math.pi / 2
            positions[node_id] = Position(
                x=cx + radius * math.cos(angle),
                y=cy + radius * math.sin(angle),
            )

    return graph.with_nodes(
        [node.model_copy(update={"position": positions[node.id]}) for node in graph.nodes]
    )


# =============================================================================
# Organic Layout (Fruchterman-Reingold variant)
# =============================================================================


def organic_layout(
    graph: Graph,
    options: LayoutOptionsLike = None,
    rng: np.random.Generator | None = None,
) -> Graph:
    """Position nodes with Fruchterman-Reingold forces.

    Ideal distance ``k = sqrt(area / n)``; pairs repel with ``k^2 / d`` and
    edges attract with ``d^2 / k``. Each iteration a node moves at most the
    current temperature, which cools linearly from ``width / 10`` to zero.

    Args:
        graph: Graph to lay out.
        options: Layout options (model, dict, or None for defaults).
        rng: Random generator for initial placement (defaults to one
            seeded from ``options.seed``).

    Returns:
        New graph with positions assigned.
    """
    opts = _resolve_options(options)
    n = len(graph.nodes)
    if n == 0:
        return graph.with_nodes([])

    rng = rng if rng is not None else np.random.default_rng(opts.seed)
    k = math.sqrt(opts.width * opts.height / n)
    temperature = opts.width / 10

    spread = np.array([opts.width - 2 * opts.padding, opts.height - 2 * opts.padding])
    positions = opts.padding + rng.random((n, 2)) * spread
    for i, node in enumerate(graph.nodes):
        if node.position is not None:
            positions[i] = (node.position.x, node.position.y)

    sources, targets, _ = _edge_index_arrays(graph, _index_nodes(graph))

    for iteration in range(opts.iterations):
        current_temp = temperature * (1 - iteration / opts.iterations)

        # Repulsive forces
        delta, distance = _pairwise(positions, zero_distance=0.01)
        repulsion = (k * k) / distance
        np.fill_diagonal(repulsion, 0.0)
        displacement = -(delta / distance[:, :, np.newaxis] * repulsion[:, :, np.newaxis]).sum(
            axis=1
        )

        # Attractive forces
        if sources.size:
            offset = positions[targets] - positions[sources]
            length = np.sqrt((offset**2).sum(axis=1))
            length[length == 0] = 0.01
            attraction = (length * length) / k
            pull = offset / length[:, np.newaxis] * attraction[:, np.newaxis]
            np.add.at(displacement, sources, pull)
            np.add.at(displacement, targets, -pull)

        # Apply displacements with temperature limiting
        magnitude = np.sqrt((displacement**2).sum(axis=1))
        moving = magnitude > 0
        step = np.minimum(magnitude[moving], current_temp)
        positions[moving] += displacement[moving] / magnitude[moving, np.newaxis] * step[:, np.newaxis]

        _clamp(positions, opts)

    if opts.iterations == 0:
        _clamp(positions, opts)

    return _with_positions(graph, positions)


# =============================================================================
# Layout Dispatcher
# =============================================================================


def _run_force(graph: Graph, options: LayoutOptionsLike, root_id: str | None) -> Graph:
    return force_directed_layout(graph, options)


def _run_hierarchical(graph: Graph, options: LayoutOptionsLike, root_id: str | None) -> Graph:
    return hierarchical_layout(graph, options)


def _run_radial(graph: Graph, options: LayoutOptionsLike, root_id: str | None) -> Graph:
    return radial_layout(graph, root_id, options)


def _run_organic(graph: Graph, options: LayoutOptionsLike, root_id: str | None) -> Graph:
    return organic_layout(graph, options)


_LAYOUTS: dict[LayoutType, Callable[[Graph, LayoutOptionsLike, str | None], Graph]] = {
    LayoutType.FORCE: _run_force,
    LayoutType.HIERARCHICAL: _run_hierarchical,
    LayoutType.RADIAL: _run_radial,
    LayoutType.ORGANIC: _run_organic,
}


def apply_layout(
    graph: Graph,
    layout_type: LayoutType | str,
    options: LayoutOptionsLike = None,
    root_id: str | None = None,
) -> Graph:
    """Apply a layout by name.

    Unknown layout types log a warning and fall back to force-directed.

    Args:
        graph: Graph to lay out.
        layout_type: One of force, hierarchical, radial, organic.
        options: Layout options (model, dict, or None for defaults).
        root_id: Root node for the radial layout.

    Returns:
        New graph with positions assigned.
    """
    try:
        kind = LayoutType(layout_type)
    except ValueError:
        logger.warning("Unknown layout type %r, using force-directed", layout_type)
        kind = LayoutType.FORCE

    with log_operation(f"{kind.value} layout", {"nodes": len(graph.nodes)}):
        return _LAYOUTS[kind](graph, options, root_id)
