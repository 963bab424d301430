# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src/ to sys.path so `import paperrepo` works without installing.
"""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

# Also add project root so `tests.fakes` is importable
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from paperrepo.utils.logging_config import Logger  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_logs(tmp_path, monkeypatch):
    """Point the file logger at a per-test directory."""
    monkeypatch.setenv("PAPERREPO_LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("PAPERREPO_BCRYPT_ROUNDS", "4")
    Logger.close()
    yield
    Logger.close()


@pytest.fixture()
def db_url(tmp_path):
    return f"sqlite:///{tmp_path / 'test.db'}"
