"""
Accounts: registration, login throttling, profile changes and the admin rules.
"""
from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from taskdesk.bootstrap import Container
from taskdesk.domain.common.errors import Conflict, Forbidden, InvalidField, NotFound
from taskdesk.domain.common.models import Principal
from taskdesk.domain.users.models import UserCriteria

from .fakes import NOW, FixedClock, add_user


def test_register_normalises_and_hashes(container: Container) -> None:
    user = asyncio.run(container.identity.register(" carol ", "Carol@Example.COM", "secret123"))
    assert user.username == "carol"
    assert user.email == "carol@example.com"
    assert user.role == "user" and user.is_active
    assert user.password_hash != "secret123"


def test_register_reports_all_invalid_fields(container: Container) -> None:
    with pytest.raises(InvalidField) as exc:
        asyncio.run(container.identity.register("x!", "not-an-email", "123", "root"))
    assert sorted(exc.value.fields) == ["email", "password", "role", "username"]


def test_password_longer_than_72_bytes_is_rejected(container: Container) -> None:
    with pytest.raises(InvalidField) as exc:
        asyncio.run(container.identity.register("carol", "carol@example.com", "é" * 37))
    assert exc.value.fields == ["password"]


def test_register_conflicts(container: Container, alice: Principal) -> None:
    with pytest.raises(Conflict, match="email"):
        asyncio.run(container.identity.register("alice2", "ALICE@example.com", "secret123"))
    with pytest.raises(Conflict, match="Username"):
        asyncio.run(container.identity.register("ALICE", "other@example.com", "secret123"))


def test_login_by_email_or_username(container: Container, alice: Principal) -> None:
    async def run():
        by_email = await container.identity.authenticate("Alice@Example.com", "secret123")
        by_name = await container.identity.authenticate("alice", "secret123")
        assert by_email.id == by_name.id == alice.id
        assert by_name.last_login_at == NOW

    asyncio.run(run())


def test_login_failures_are_uniform(container: Container, alice: Principal) -> None:
    async def run():
        with pytest.raises(Forbidden, match="Invalid credentials"):
            await container.identity.authenticate("alice", "wrong-pass")
        with pytest.raises(Forbidden, match="Invalid credentials"):
            await container.identity.authenticate("nobody", "secret123")

    asyncio.run(run())


def test_login_is_throttled_then_recovers(container: Container, clock: FixedClock, alice: Principal) -> None:
    async def run():
        # max attempts is 3 in the test settings
        for _ in range(3):
            with pytest.raises(Forbidden, match="Invalid credentials"):
                await container.identity.authenticate("alice", "wrong-pass")
        with pytest.raises(Forbidden, match="Too many"):
            await container.identity.authenticate("alice", "secret123")

        clock.advance(timedelta(minutes=16))
        user = await container.identity.authenticate("alice", "secret123")
        assert user.id == alice.id

    asyncio.run(run())


def test_successful_login_resets_counter(container: Container, alice: Principal) -> None:
    async def run():
        for _ in range(2):
            with pytest.raises(Forbidden):
                await container.identity.authenticate("alice", "nope-nope")
        await container.identity.authenticate("alice", "secret123")
        for _ in range(2):
            with pytest.raises(Forbidden, match="Invalid credentials"):
                await container.identity.authenticate("alice", "nope-nope")

    asyncio.run(run())


def test_deactivated_user_cannot_log_in(container: Container, admin: Principal, alice: Principal) -> None:
    async def run():
        await container.identity.update_user(admin, alice.id, is_active=False)
        with pytest.raises(Forbidden, match="deactivated"):
            await container.identity.authenticate("alice", "secret123")
        with pytest.raises(NotFound):
            await container.identity.principal_for(alice.id)

    asyncio.run(run())


def test_last_active_admin_is_protected(container: Container, admin: Principal) -> None:
    async def run():
        with pytest.raises(Conflict, match="active admin"):
            await container.identity.update_user(admin, admin.id, role="user")
        with pytest.raises(Conflict, match="own account"):
            await container.identity.update_user(admin, admin.id, is_active=False)
        still = await container.identity.principal_for(admin.id)
        assert still.is_admin

    asyncio.run(run())


def test_second_admin_can_be_demoted_or_deactivated(container: Container, admin: Principal) -> None:
    other = add_user(container, "root2", "admin")
    third = add_user(container, "root3", "admin")

    async def run():
        demoted = await container.identity.update_user(admin, other.id, role="user")
        assert demoted.role == "user"

        off = await container.identity.update_user(admin, third.id, is_active=False)
        assert off.is_active is False

        # admin is now the only active admin again
        with pytest.raises(Conflict):
            await container.identity.update_user(admin, admin.id, role="user")

    asyncio.run(run())


def test_admin_operations_require_admin(container: Container, alice: Principal, bob: Principal) -> None:
    async def run():
        with pytest.raises(Forbidden):
            await container.identity.update_user(alice, bob.id, role="admin")
        with pytest.raises(Forbidden):
            await container.identity.list_users(alice)
        with pytest.raises(Forbidden):
            await container.identity.add_user(alice, "eve", "eve@example.com", "secret123")

    asyncio.run(run())


def test_list_users_filters_and_paginates(
    container: Container, clock: FixedClock, admin: Principal, alice: Principal
) -> None:
    clock.advance(timedelta(minutes=1))
    bob = add_user(container, "bob")

    async def run():
        await container.identity.update_user(admin, bob.id, is_active=False)

        everyone = await container.identity.list_users(admin)
        assert everyone.total == 3
        assert [u.username for u in everyone.items][0] == "bob"

        active = await container.identity.list_users(admin, UserCriteria(is_active=True))
        assert {u.username for u in active.items} == {"admin", "alice"}

        found = await container.identity.list_users(admin, UserCriteria(search="ALI"))
        assert [u.username for u in found.items] == ["alice"]

        paged = await container.identity.list_users(admin, page=2, page_size=2)
        assert len(paged.items) == 1 and paged.total_pages == 2

    asyncio.run(run())


def test_update_profile(container: Container, alice: Principal, bob: Principal) -> None:
    async def run():
        with pytest.raises(Conflict):
            await container.identity.update_profile(alice, username="bob")
        with pytest.raises(InvalidField) as exc:
            await container.identity.update_profile(alice, new_password="newsecret", current_password="wrong")
        assert exc.value.fields == ["current_password"]

        user = await container.identity.update_profile(
            alice, username="alicia", email="Alicia@Example.com",
            current_password="secret123", new_password="newsecret",
        )
        assert (user.username, user.email) == ("alicia", "alicia@example.com")
        again = await container.identity.authenticate("alicia", "newsecret")
        assert again.id == alice.id

    asyncio.run(run())


def test_profile_image_reference(container: Container, alice: Principal) -> None:
    async def run():
        user = await container.identity.set_profile_image(alice, "uploads/alice.png")
        assert user.profile_image == "uploads/alice.png"
        cleared = await container.identity.set_profile_image(alice, None)
        assert cleared.profile_image is None

    asyncio.run(run())


def test_seed_admin_runs_once(container: Container) -> None:
    async def run():
        first = await container.identity.ensure_admin("boss", "boss@example.com", "secret123")
        assert first is not None and first.role == "admin"
        assert await container.identity.ensure_admin("boss2", "boss2@example.com", "secret123") is None

    asyncio.run(run())


def test_deactivate_own_account(container: Container, alice: Principal) -> None:
    async def run():
        user = await container.identity.deactivate_self(alice)
        assert user.is_active is False
        with pytest.raises(Forbidden, match="deactivated"):
            await container.identity.authenticate("alice", "secret123")

    asyncio.run(run())


def test_last_admin_cannot_deactivate_self(container: Container, admin: Principal) -> None:
    other = add_user(container, "root2", "admin")

    async def run():
        gone = await container.identity.deactivate_self(other)
        assert gone.is_active is False
        with pytest.raises(Conflict, match="active admin"):
            await container.identity.deactivate_self(admin)

    asyncio.run(run())


def test_assignable_users_are_active_non_admins_by_name(
    container: Container, admin: Principal, bob: Principal, alice: Principal
) -> None:
    carol = add_user(container, "Carol")
    dave = add_user(container, "dave")
    add_user(container, "root2", "admin")

    async def run():
        await container.identity.update_user(admin, dave.id, is_active=False)
        users = await container.identity.list_assignable_users(admin)
        assert [u.username for u in users] == ["alice", "bob", "Carol"]
        with pytest.raises(Forbidden):
            await container.identity.list_assignable_users(carol)

    asyncio.run(run())
