import os
import sys
from pathlib import Path

import pytest

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'stratum' and tests/ importable as 'tests'
for p in (SRC_ROOT, REPO_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))

from stratum.core.logging_setup import reset_logging_for_tests
from stratum.core.tokens import CharRatioCounter
from tests.helpers.io_utils import write_yaml


@pytest.fixture
def isolated_project_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """
    Isolated project environment for tests.

    - Project root is ``tmp_path/repo`` (also the CWD and STRATUM_PROJECT_ROOT)
    - HOME is ``tmp_path/home`` so user config and personal instructions are isolated
    - Token counting uses the offline character-ratio counter
    """
    repo = tmp_path / "repo"
    home = tmp_path / "home"
    repo.mkdir()
    home.mkdir()

    # Developer environments may set overrides; tests must be deterministic.
    for key in list(os.environ):
        if key.startswith("STRATUM_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("STRATUM_PROJECT_ROOT", str(repo))
    monkeypatch.chdir(repo)

    write_yaml(
        repo / ".stratum" / "config" / "tokens.yaml",
        {"tokens": {"counter": "chars", "chars_per_token": 4}},
    )

    yield repo

    reset_logging_for_tests()


@pytest.fixture
def home_dir(isolated_project_env: Path) -> Path:
    return isolated_project_env.parent / "home"


@pytest.fixture
def counter() -> CharRatioCounter:
    return CharRatioCounter(chars_per_token=4)
