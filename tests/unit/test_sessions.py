"""Unit tests for the in-memory session registry"""

import pytest
from onboarding_gateway.domain.exceptions import SessionNotFoundError
from onboarding_gateway.domain.models import EntryFlow, ProfileBranch
from onboarding_gateway.infrastructure.sessions import SessionRegistry


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def test_get_unknown_session_raises(clock):
    with pytest.raises(SessionNotFoundError):
        SessionRegistry(ttl_seconds=60, clock=clock).get("missing")


async def test_idle_session_expires_with_its_draft(clock, drive_to_confirmation):
    """Test an idle session is dropped and its cached files released"""
    registry = SessionRegistry(ttl_seconds=60, clock=clock)
    session = registry.create(EntryFlow.BORROWER)
    await drive_to_confirmation(session, ProfileBranch.INDIVIDUAL_BORROWER)
    assert session.encoder.cached_handles

    clock.now += 61

    with pytest.raises(SessionNotFoundError):
        registry.get(session.session_id)
    assert len(registry) == 0
    assert dict(session.draft.details) == {}
    assert session.encoder.cached_handles == frozenset()


def test_access_keeps_session_alive(clock):
    registry = SessionRegistry(ttl_seconds=60, clock=clock)
    session = registry.create(EntryFlow.INVESTOR)

    for _ in range(3):
        clock.now += 45
        assert registry.get(session.session_id) is session


def test_expiry_runs_on_create(clock):
    registry = SessionRegistry(ttl_seconds=60, clock=clock)
    stale = registry.create(EntryFlow.BORROWER)

    clock.now += 120
    fresh = registry.create(EntryFlow.BORROWER)

    assert len(registry) == 1
    assert registry.get(fresh.session_id) is fresh
    with pytest.raises(SessionNotFoundError):
        registry.get(stale.session_id)


async def test_submitting_session_is_never_expired(clock, drive_to_confirmation):
    registry = SessionRegistry(ttl_seconds=60, clock=clock)
    session = registry.create(EntryFlow.INVESTOR)
    await drive_to_confirmation(session, ProfileBranch.DIRECT_LENDER)
    session.begin_submission()

    clock.now += 600

    assert registry.expire_idle() == 0
    assert registry.get(session.session_id) is session


def test_zero_ttl_disables_expiry(clock):
    registry = SessionRegistry(ttl_seconds=0, clock=clock)
    session = registry.create(EntryFlow.BORROWER)

    clock.now += 10**6

    assert registry.get(session.session_id) is session


def test_discard_removes_session(clock):
    registry = SessionRegistry(ttl_seconds=60, clock=clock)
    session = registry.create(EntryFlow.BORROWER)

    registry.discard(session.session_id)

    assert len(registry) == 0
    with pytest.raises(SessionNotFoundError):
        registry.get(session.session_id)
