"""Test configuration and fixtures for the cricket-sync test suite."""

import os
import sys
import pathlib

# Force test-safe defaults before any other imports
os.environ.setdefault('ENV', 'TEST')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

# Ensure tests can import from src/
ROOT = pathlib.Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from datetime import datetime, timezone

import pytest

from cricket_sync.config import AppSettings
from cricket_sync.pipelines.context import PipelineContext

from tests.fakes import FakeFeedClient, InMemoryStore, RecordingPacer

FIXED_NOW = datetime(2025, 1, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    """Settings with a configured store and no pacing or retry delays."""
    return AppSettings(
        STORE_URL="postgresql://cricket@localhost:5432/cricket",
        STORE_KEY="secret",
        PACING_DELAY_S=0,
        RETRY_MAX=1,
        RETRY_BACKOFF_FACTOR=0,
        _env_file=None,
    )


@pytest.fixture
def store():
    store = InMemoryStore()
    store.clock = lambda: FIXED_NOW
    return store


@pytest.fixture
def feed():
    return FakeFeedClient()


@pytest.fixture
def pacer():
    return RecordingPacer()


@pytest.fixture
def ctx(settings, feed, store, pacer):
    """Pipeline context wired to in-memory collaborators and a fixed clock."""
    return PipelineContext(
        settings=settings,
        feed=feed,
        store=store,
        pacer=pacer,
        now=lambda: FIXED_NOW,
    )


@pytest.fixture
def dry_ctx(ctx):
    ctx.dry_run = True
    return ctx
