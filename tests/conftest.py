import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))


@pytest.fixture
def profile_dir(tmp_path, monkeypatch):
    directory = tmp_path / "profile"
    monkeypatch.setenv("OCR_TRANSLATOR_PROFILE_DIR", str(directory))
    return directory
