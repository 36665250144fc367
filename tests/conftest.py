"""Shared fixtures and helpers for tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

from code_couplet.core.index import CollectingSink, CouplingIndex, CouplingWorkspace
from code_couplet.documents.buffers import BufferedDocuments
from code_couplet.models import Comment, Configuration, SchemaFile, make_range
from code_couplet.store.json_store import JsonSchemaStore

_REPO_ROOT = Path(__file__).parent.parent


# ---------------------------------------------------------------------------
# Auto-marker: tag tests as "unit" or "integration" based on directory
# ---------------------------------------------------------------------------


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        test_path = Path(str(item.fspath))
        rel = test_path.relative_to(_REPO_ROOT / "tests")
        parts = rel.parts
        if parts and parts[0] == "integration":
            item.add_marker(pytest.mark.integration)
        else:
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Shared unit-test fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """A project directory marked as a git checkout, so it is its own save root."""
    root = tmp_path / "project"
    (root / ".git").mkdir(parents=True)
    return root


@pytest.fixture
def write_file() -> Callable[[Path, str], Path]:
    def _write(path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path

    return _write


@pytest.fixture
def store() -> JsonSchemaStore:
    return JsonSchemaStore()


@pytest.fixture
def documents() -> BufferedDocuments:
    return BufferedDocuments()


@pytest.fixture
def sink() -> CollectingSink:
    return CollectingSink()


@pytest.fixture
def index(project: Path, store: JsonSchemaStore, documents: BufferedDocuments, sink: CollectingSink) -> CouplingIndex:
    return CouplingIndex(project, store, documents, sink=sink)


@pytest.fixture
def workspace(store: JsonSchemaStore, documents: BufferedDocuments, sink: CollectingSink) -> CouplingWorkspace:
    return CouplingWorkspace(store, documents, sink=sink)


@pytest.fixture
def sample_schema() -> SchemaFile:
    """One pin: the comment on line 0, its code on line 1 of the same file."""
    return SchemaFile(
        version=1,
        configuration=Configuration(line_comment="//"),
        comments=[
            Comment(
                id=0,
                comment_range=make_range(0, 0, 0, 10),
                comment_value="// add one",
                code_range=make_range(1, 0, 1, 6),
                code_value="foo();",
                code_relative_path="",
            )
        ],
    )
