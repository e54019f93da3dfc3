import os
import tempfile
from pathlib import Path

import pytest

# Point the application at a throwaway database before exam_api is imported.
_DB_DIR = Path(tempfile.mkdtemp(prefix="exam-tests-"))
os.environ["DB_DIR"] = str(_DB_DIR)
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_DIR / 'exam.db'}"
os.environ["LOG_LEVEL"] = "DEBUG"

from tests.support import InMemoryStore, grammar_tree, sample_tree  # noqa: E402


@pytest.fixture
def tree():
    return sample_tree()


@pytest.fixture
def store(tree):
    return InMemoryStore(tree, grammar_tree())
