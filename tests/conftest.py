"""
This file contains shared fixtures for all tests.
"""

import pytest

from projenv.config import CI_VENDORS

# Every input variable projenv reads, so tests never pick up the real CI environment.
INPUT_VARIABLES = ["PROJ_ROOT", "NAMESPACE", "DOCKER_REPO", "DOCKER_TAG", "PROJENV_CONFIG"] + [
    var for _, build_var, commit_var in CI_VENDORS for var in (build_var, commit_var)
]


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Removes projenv inputs inherited from the shell running the tests."""
    for var in INPUT_VARIABLES:
        monkeypatch.delenv(var, raising=False)


@pytest.fixture
def project_dir(tmp_path):
    """A project directory with a recognizable base name."""
    path = tmp_path / "myproject"
    path.mkdir()
    return path
