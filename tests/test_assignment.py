# tests/test_assignment.py
from __future__ import annotations

import asyncio

import pytest

from taskdesk.bootstrap import Container
from taskdesk.domain.common.errors import Forbidden, NotFound
from taskdesk.domain.common.models import Principal

from .fakes import task_fields


def test_admin_assigns_task_to_user(container: Container, admin: Principal, alice: Principal) -> None:
    async def run():
        task = await container.tasks.assign(admin, alice.id, task_fields(title="Audit"))
        assert task.user_id == alice.id
        assert task.assigned_by == admin.id
        # the assignee can work on it
        seen = await container.tasks.get(alice, task.id)
        assert seen.title == "Audit"
        done = await container.tasks.update(alice, task.id, {"status": "completed"})
        assert done.assigned_by == admin.id

    asyncio.run(run())


def test_user_cannot_assign(container: Container, alice: Principal, bob: Principal) -> None:
    with pytest.raises(Forbidden):
        asyncio.run(container.tasks.assign(alice, bob.id, task_fields()))


def test_assign_to_unknown_user(container: Container, admin: Principal) -> None:
    with pytest.raises(NotFound):
        asyncio.run(container.tasks.assign(admin, "missing", task_fields()))


def test_assign_to_deactivated_user(container: Container, admin: Principal, bob: Principal) -> None:
    async def run():
        await container.identity.update_user(admin, bob.id, is_active=False)
        with pytest.raises(NotFound):
            await container.tasks.assign(admin, bob.id, task_fields())

    asyncio.run(run())


def test_user_cannot_create_for_someone_else(container: Container, alice: Principal, bob: Principal) -> None:
    with pytest.raises(Forbidden):
        asyncio.run(container.tasks.create(alice, task_fields(user_id=bob.id)))


def test_own_task_is_not_marked_assigned(container: Container, alice: Principal) -> None:
    task = asyncio.run(container.tasks.create(alice, task_fields()))
    assert task.user_id == alice.id
    assert task.assigned_by is None


def test_admin_reassigns_via_update(
    container: Container, admin: Principal, alice: Principal, bob: Principal
) -> None:
    async def run():
        task = await container.tasks.create(alice, task_fields())
        moved = await container.tasks.update(admin, task.id, {"user_id": bob.id})
        assert moved.user_id == bob.id
        assert moved.assigned_by == admin.id
        with pytest.raises(Forbidden):
            await container.tasks.get(alice, task.id)

    asyncio.run(run())


def test_user_cannot_reassign_own_task(container: Container, alice: Principal, bob: Principal) -> None:
    async def run():
        task = await container.tasks.create(alice, task_fields())
        with pytest.raises(Forbidden):
            await container.tasks.update(alice, task.id, {"user_id": bob.id})
        # naming yourself as owner is a no-op, not a reassignment
        same = await container.tasks.update(alice, task.id, {"user_id": alice.id, "title": "Kept"})
        assert same.user_id == alice.id and same.assigned_by is None

    asyncio.run(run())


def test_foreign_task_access_is_forbidden(container: Container, alice: Principal, bob: Principal) -> None:
    async def run():
        task = await container.tasks.create(alice, task_fields())
        with pytest.raises(Forbidden):
            await container.tasks.get(bob, task.id)
        with pytest.raises(Forbidden):
            await container.tasks.update(bob, task.id, {"title": "mine now"})
        with pytest.raises(Forbidden):
            await container.tasks.delete(bob, task.id)

    asyncio.run(run())


def test_admin_taking_over_task_is_not_an_assignment(
    container: Container, admin: Principal, alice: Principal
) -> None:
    async def run():
        task = await container.tasks.create(alice, task_fields())
        mine = await container.tasks.update(admin, task.id, {"user_id": admin.id})
        assert mine.user_id == admin.id
        assert mine.assigned_by is None

    asyncio.run(run())
