"""
Shared pytest fixtures.
"""
import io

import pytest

from ypbank.config import reset_settings
from ypbank.models import TransactionRecord, TransactionStatus, TransactionType

ENV_VARS = ["YPBANK_APP_NAME", "YPBANK_LOG_LEVEL", "YPBANK_ENCODING"]


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Start every test from default settings."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def sample_record():
    return TransactionRecord(
        id=1001,
        kind=TransactionType.DEPOSIT,
        from_user_id=0,
        to_user_id=501,
        amount=50000,
        timestamp=1672531200000,
        status=TransactionStatus.SUCCESS,
        description="Initial account funding",
    )


@pytest.fixture
def make_source():
    """Build an in-memory binary source from text."""
    def _make(text: str) -> io.BytesIO:
        return io.BytesIO(text.encode("utf-8"))
    return _make
