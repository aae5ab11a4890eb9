"""Pytest configuration and shared fixtures."""

import json
import tempfile
from pathlib import Path

import pytest

from codeviz.analyzers import collaborators
from codeviz.analyzers.builder import GraphBuilder, create_edge, create_node
from codeviz.models.clusters import CodeEntity
from codeviz.models.graph import Graph, graph_to_json


def build_graph(
    node_ids: list[str],
    edges: list[tuple[str, str]],
    node_type: str = "file",
) -> Graph:
    """Build a graph of same-typed nodes with ``imports`` edges."""
    builder = GraphBuilder()
    for node_id in node_ids:
        builder.add_node(create_node(node_id, node_type, node_id, path=f"src/{node_id}.ts"))
    for source, target in edges:
        builder.add_edge(create_edge(source, target, "imports"))
    return builder.build()


@pytest.fixture(autouse=True)
def _isolate_collaborators(monkeypatch: pytest.MonkeyPatch):
    """Keep collaborator env config from leaking between tests."""
    for var in (
        "CODEVIZ_EMBEDDING_PROVIDER",
        "CODEVIZ_EMBEDDING_URL",
        "CODEVIZ_LABELER",
        "CODEVIZ_LABELER_URL",
        "CODEVIZ_API_KEY",
    ):
        monkeypatch.delenv(var, raising=False)
    collaborators.reset_collaborators()
    yield
    collaborators.reset_collaborators()


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def chain_graph() -> Graph:
    """a -> b -> c -> d"""
    return build_graph(["a", "b", "c", "d"], [("a", "b"), ("b", "c"), ("c", "d")])


@pytest.fixture
def cycle_graph() -> Graph:
    """a -> b -> c -> a, plus an acyclic tail c -> d."""
    return build_graph(
        ["a", "b", "c", "d"],
        [("a", "b"), ("b", "c"), ("c", "a"), ("c", "d")],
    )


@pytest.fixture
def diamond_graph() -> Graph:
    """root -> left/right -> leaf"""
    return build_graph(
        ["root", "left", "right", "leaf"],
        [("root", "left"), ("root", "right"), ("left", "leaf"), ("right", "leaf")],
    )


@pytest.fixture
def sample_entities() -> list[CodeEntity]:
    """Two obvious topics (auth and rendering) plus a test file."""
    return [
        CodeEntity(
            id="auth.login",
            content="login user password token session authenticate",
            type="function",
            path="src/auth/login.ts",
        ),
        CodeEntity(
            id="auth.logout",
            content="logout user session token invalidate authenticate",
            type="function",
            path="src/auth/logout.ts",
        ),
        CodeEntity(
            id="auth.refresh",
            content="refresh token session user authenticate expiry",
            type="function",
            path="src/auth/refresh.ts",
        ),
        CodeEntity(
            id="ui.canvas",
            content="render canvas pixel draw frame paint",
            type="class",
            path="src/ui/canvas.ts",
        ),
        CodeEntity(
            id="ui.sprite",
            content="render sprite pixel draw frame texture",
            type="class",
            path="src/ui/sprite.ts",
        ),
        CodeEntity(
            id="ui.scene",
            content="render scene draw frame paint texture",
            type="class",
            path="src/ui/scene.ts",
        ),
        CodeEntity(
            id="auth.test",
            content="test login user password token",
            type="function",
            path="src/auth/login.test.ts",
        ),
    ]


@pytest.fixture
def graph_file(temp_dir: Path, diamond_graph: Graph) -> Path:
    """Diamond graph written as JSON."""
    filepath = temp_dir / "graph.json"
    filepath.write_text(json.dumps(graph_to_json(diamond_graph)))
    return filepath


@pytest.fixture
def entities_file(temp_dir: Path, sample_entities: list[CodeEntity]) -> Path:
    """Sample entities written as JSON."""
    filepath = temp_dir / "entities.json"
    filepath.write_text(json.dumps([entity.model_dump() for entity in sample_entities]))
    return filepath


@pytest.fixture
def make_graph():
    """Factory fixture wrapping ``build_graph``."""
    return build_graph
