from pathlib import Path

import pytest

from gitox import base
from gitox.data import Repository


@pytest.fixture
def repo(tmp_path: Path) -> Repository:
    """An initialised repository whose worktree is ``tmp_path``."""
    repo_ = Repository(str(tmp_path))
    base.init(repo_)
    return repo_


@pytest.fixture
def write_file(repo: Repository):
    def write(path: str, content: str | bytes) -> Path:
        full_path = Path(repo.root) / path
        full_path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode()
        full_path.write_bytes(content)
        return full_path

    return write


@pytest.fixture
def read_file(repo: Repository):
    def read(path: str) -> bytes:
        return (Path(repo.root) / path).read_bytes()

    return read
