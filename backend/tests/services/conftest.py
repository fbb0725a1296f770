"""Service test fixtures - session engine wired to in-process fakes.

Invariants:
    - Every test gets a fresh SessionRuntime (state holder, reconciler, facade)
    - Retry delays are recorded, never slept
"""

import pytest

from app.core.profile import Credential
from app.services.session_runtime import SessionRuntime

from tests.fakes import FakeIdentityClient, FakeProfileStore, RecordingSleep


@pytest.fixture
def identity():
    return FakeIdentityClient()


@pytest.fixture
def store():
    return FakeProfileStore()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def credential():
    return Credential(email="alice@test.dev", password="s3cret-pass")


@pytest.fixture
async def runtime(identity, store, sleep):
    rt = SessionRuntime(identity, store, sleep=sleep)
    yield rt
    await rt.aclose()


@pytest.fixture
async def started(runtime):
    """Runtime subscribed and booted with no existing session."""
    await runtime.start()
    return runtime
