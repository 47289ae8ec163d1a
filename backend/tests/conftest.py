import pytest

from backend.reference.store import load_reference_store
from backend.settings import Settings


@pytest.fixture(scope="session")
def store():
    return load_reference_store()


@pytest.fixture
def settings():
    return Settings(page_delay_seconds=0.0, probe_workers=2)
