"""Shared test fixtures."""

from pathlib import Path

import pytest

from silencecut.models import LoudnessSample

FIXTURES_DIR = Path(__file__).parent / "fixtures"


@pytest.fixture
def sample_manifest_path() -> Path:
    return FIXTURES_DIR / "sample_manifest.json"


@pytest.fixture
def sample_fcpxml_path() -> Path:
    return FIXTURES_DIR / "sample.fcpxml"


def make_levels(levels_db: list[float]) -> list[LoudnessSample]:
    return [LoudnessSample(index=i, level_db=db) for i, db in enumerate(levels_db)]
