"""
Tests for the capacity & window guard.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from app.core.errors import CapacityExceeded, WindowClosed
from app.services.guard import check_admission, check_capacity, check_window
from hubgate_shared.schemas.common import ResourceKind, ResourceType

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


class TestCapacity:
    async def test_no_capacity_is_unbounded(self, session, seed):
        hub = await seed.hub()
        event = await seed.resource(hub, "event")
        for i in range(3):
            await seed.member(await seed.user(f"u{i}"), event)
        await check_capacity(event, session)

    async def test_below_capacity_passes(self, session, seed):
        hub = await seed.hub()
        event = await seed.resource(hub, "event", capacity=2)
        await seed.member(await seed.user(), event)
        await check_capacity(event, session)

    async def test_equal_to_capacity_fails(self, session, seed):
        hub = await seed.hub()
        event = await seed.resource(hub, "event", capacity=2)
        await seed.member(await seed.user("a"), event)
        await seed.member(await seed.user("b"), event)
        with pytest.raises(CapacityExceeded):
            await check_capacity(event, session)

    async def test_supervisors_do_not_take_seats(self, session, seed):
        hub = await seed.hub()
        event = await seed.resource(hub, "event", capacity=1)
        await seed.member(await seed.user("sup"), event, role="supervisor")
        await check_capacity(event, session)


class TestWindow:
    async def test_unbounded(self, seed):
        hub = await seed.hub()
        event = await seed.resource(hub, "event")
        check_window(event, NOW)

    async def test_before_start(self, seed):
        hub = await seed.hub()
        event = await seed.resource(hub, "event", starts_at=NOW + timedelta(days=1))
        with pytest.raises(WindowClosed):
            check_window(event, NOW)

    async def test_after_end(self, seed):
        hub = await seed.hub()
        programme = await seed.resource(hub, "programme", ends_at=NOW - timedelta(seconds=1))
        with pytest.raises(WindowClosed):
            check_window(programme, NOW)

    async def test_bounds_are_inclusive(self, seed):
        hub = await seed.hub()
        event = await seed.resource(hub, "event", starts_at=NOW, ends_at=NOW)
        check_window(event, NOW)

    async def test_naive_bounds_are_utc(self, seed):
        hub = await seed.hub()
        event = await seed.resource(
            hub, "event", ends_at=(NOW - timedelta(hours=1)).replace(tzinfo=None)
        )
        with pytest.raises(WindowClosed):
            check_window(event, NOW)


class TestCheckAdmission:
    async def test_capacity_checked_before_window(self, session, seed):
        hub = await seed.hub()
        event = await seed.resource(
            hub, "event", capacity=1, ends_at=NOW - timedelta(days=1)
        )
        await seed.member(await seed.user(), event)
        with pytest.raises(CapacityExceeded):
            await check_admission(event, session, now=NOW)

    async def test_kind_can_switch_checks_off(self, session, seed):
        hub = await seed.hub()
        event = await seed.resource(
            hub, "event", capacity=1, ends_at=NOW - timedelta(days=1)
        )
        await seed.member(await seed.user(), event)
        lenient = ResourceKind(
            type=ResourceType.EVENT,
            requires_hub_membership=False,
            enforces_capacity=False,
            enforces_window=False,
            default_message="",
        )
        await check_admission(event, session, now=NOW, kind=lenient)
