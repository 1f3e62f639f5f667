"""
Pytest configuration for the otrflow test suite.

No test needs network access or ffmpeg: external collaborators are
replaced by the fakes in fakes.py.
"""

import sys
from pathlib import Path

import pytest

# Add backend to Python path for test imports
backend_path = Path(__file__).parent.parent
sys.path.insert(0, str(backend_path))

from otrflow.library import WorkingDirectory  # noqa: E402

from fakes import FakeCutter, FakeProber, FakeProvider  # noqa: E402


@pytest.fixture
def workdir(tmp_path: Path) -> WorkingDirectory:
    """Empty working directory with all areas created."""
    root = tmp_path / "otr"
    root.mkdir()
    wd = WorkingDirectory(root)
    wd.ensure()
    return wd


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def cutter() -> FakeCutter:
    return FakeCutter()


@pytest.fixture
def prober() -> FakeProber:
    return FakeProber()
