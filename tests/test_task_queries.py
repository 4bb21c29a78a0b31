"""
List scoping, group shortcuts, search, sorting and pagination against a real SQLite file.

Run with: python -m pytest tests/test_task_queries.py -v
"""
from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from taskdesk.bootstrap import Container
from taskdesk.domain.common.errors import InvalidParameter
from taskdesk.domain.common.models import Principal
from taskdesk.domain.tasks.models import TaskFilters, TaskListRequest

from .fakes import NOW, FixedClock, add_user, make_container, make_settings, task_fields

UTC = timezone.utc
MIDNIGHT = datetime(2026, 3, 10, tzinfo=UTC)


def _list(container: Container, principal: Principal, **kwargs):
    filters = kwargs.pop("filters", TaskFilters())
    request = TaskListRequest(filters=filters, **kwargs)
    return asyncio.run(container.tasks.list_tasks(principal, request))


def _titles(page) -> list[str]:
    return [t.title for t in page.items]


def _create(container: Container, principal: Principal, **fields):
    return asyncio.run(container.tasks.create(principal, task_fields(**fields)))


def test_non_admin_is_pinned_to_own_tasks(container: Container, alice: Principal, bob: Principal) -> None:
    _create(container, alice, title="mine")
    _create(container, bob, title="theirs")

    page = _list(container, alice, filters=TaskFilters(user_id=bob.id))
    assert _titles(page) == ["mine"]
    assert page.total == 1


def test_admin_sees_everything_or_filters_by_owner(
    container: Container, admin: Principal, alice: Principal, bob: Principal
) -> None:
    _create(container, alice, title="a")
    _create(container, bob, title="b")

    assert _list(container, admin).total == 2
    assert _titles(_list(container, admin, filters=TaskFilters(user_id=bob.id))) == ["b"]


# ----- group shortcuts -----


def test_today_group_midnight_boundaries(container: Container, alice: Principal) -> None:
    """00:00 today is inside [today, tomorrow); one microsecond earlier is not."""
    _create(container, alice, title="at midnight", due_date=MIDNIGHT)
    _create(container, alice, title="just before", due_date=MIDNIGHT - timedelta(microseconds=1))
    _create(container, alice, title="late today", due_date=MIDNIGHT + timedelta(hours=23, minutes=59))
    _create(container, alice, title="tomorrow", due_date=MIDNIGHT + timedelta(days=1))
    _create(container, alice, title="done today", due_date=MIDNIGHT + timedelta(hours=1), status="completed")

    page = _list(container, alice, filters=TaskFilters(group="today"), sort_by="dueDate", sort_order="asc")
    assert _titles(page) == ["at midnight", "late today"]


def test_today_group_uses_reporting_timezone(tmp_path: Path) -> None:
    # 2026-03-10 in New York (EDT, UTC-4) starts at 04:00 UTC
    container = make_container(make_settings(tmp_path, timezone="America/New_York"), FixedClock())
    alice = add_user(container, "alice")
    local_midnight = datetime(2026, 3, 10, 4, 0, tzinfo=UTC)
    _create(container, alice, title="utc morning", due_date=local_midnight - timedelta(hours=1))
    _create(container, alice, title="local morning", due_date=local_midnight)

    page = _list(container, alice, filters=TaskFilters(group="today"))
    assert _titles(page) == ["local morning"]


def test_overdue_group_matches_overdue_predicate(container: Container, alice: Principal) -> None:
    past = NOW - timedelta(days=1)
    _create(container, alice, title="late", due_date=past)
    _create(container, alice, title="late but working", due_date=past, status="in-progress")
    _create(container, alice, title="late and done", due_date=past, status="completed")
    _create(container, alice, title="late and dropped", due_date=past, status="cancelled")
    _create(container, alice, title="future", due_date=NOW + timedelta(days=1))

    page = _list(container, alice, filters=TaskFilters(group="overdue"), sort_by="title", sort_order="asc")
    assert _titles(page) == ["late", "late but working"]
    assert all(t.is_overdue(NOW) for t in page.items)


def test_completed_and_all_groups(container: Container, alice: Principal) -> None:
    _create(container, alice, title="open")
    _create(container, alice, title="closed", status="completed")
    _create(container, alice, title="dropped", status="cancelled")

    assert _titles(_list(container, alice, filters=TaskFilters(group="completed"))) == ["closed"]
    everything_open = _list(container, alice, filters=TaskFilters(group="all"), sort_by="title", sort_order="asc")
    assert _titles(everything_open) == ["dropped", "open"]


def test_group_overrides_status_filter(container: Container, alice: Principal) -> None:
    """group=completed wins over status=pending."""
    _create(container, alice, title="open")
    _create(container, alice, title="closed", status="completed")

    page = _list(container, alice, filters=TaskFilters(group="completed", status="pending"))
    assert _titles(page) == ["closed"]


# ----- filters and search -----


def test_raw_filters_are_anded(container: Container, alice: Principal) -> None:
    _create(container, alice, title="a", category="Work", priority="High")
    _create(container, alice, title="b", category="Work", priority="Low")
    _create(container, alice, title="c", category="Health", priority="High")
    _create(container, alice, title="d", category="Work", priority="High", status="in-progress")

    page = _list(container, alice, filters=TaskFilters(category="Work", priority="High", status="pending"))
    assert _titles(page) == ["a"]


def test_search_is_case_insensitive_across_fields(container: Container, alice: Principal) -> None:
    _create(container, alice, title="Café with Ana")
    _create(container, alice, title="Gym", description="leg DAY at the café")
    _create(container, alice, title="Groceries", category="Shopping")
    _create(container, alice, title="Unrelated")

    assert _list(container, alice, filters=TaskFilters(search="CAFÉ")).total == 2
    assert _titles(_list(container, alice, filters=TaskFilters(search="shop"))) == ["Groceries"]
    # whitespace-only search is ignored by list
    assert _list(container, alice, filters=TaskFilters(search="   ")).total == 4


def test_search_entry_point(container: Container, alice: Principal) -> None:
    _create(container, alice, title="Quarterly report")
    _create(container, alice, title="Dentist")

    page = asyncio.run(container.tasks.search(alice, "REPORT"))
    assert _titles(page) == ["Quarterly report"]
    with pytest.raises(InvalidParameter):
        asyncio.run(container.tasks.search(alice, "  "))


# ----- sorting and pagination -----


def test_sort_by_priority_uses_rank(container: Container, alice: Principal) -> None:
    for title, priority in [("m", "Medium"), ("c", "Critical"), ("l", "Low"), ("h", "High")]:
        _create(container, alice, title=title, priority=priority)

    asc = _list(container, alice, sort_by="priority", sort_order="asc")
    assert _titles(asc) == ["l", "m", "h", "c"]
    desc = _list(container, alice, sort_by="priority", sort_order="DESC")
    assert _titles(desc) == ["c", "h", "m", "l"]


def test_sort_ties_keep_insertion_order(container: Container, alice: Principal) -> None:
    # fixed clock: all created_at values are equal
    for title in ["first", "second", "third"]:
        _create(container, alice, title=title)

    assert _titles(_list(container, alice)) == ["first", "second", "third"]
    assert _titles(_list(container, alice, sort_order="asc")) == ["first", "second", "third"]


def test_default_sort_is_newest_first(container: Container, clock: FixedClock, alice: Principal) -> None:
    _create(container, alice, title="old")
    clock.advance(timedelta(minutes=1))
    _create(container, alice, title="new")

    assert _titles(_list(container, alice)) == ["new", "old"]


def test_pagination_law(container: Container, alice: Principal) -> None:
    for i in range(7):
        _create(container, alice, title=f"t{i}")

    pages = [_list(container, alice, page=n, page_size=3, sort_order="asc") for n in (1, 2, 3, 4)]
    assert [len(p.items) for p in pages] == [3, 3, 1, 0]
    assert [t for p in pages for t in _titles(p)] == [f"t{i}" for i in range(7)]

    first, last = pages[0], pages[2]
    assert first.total == 7 and first.total_pages == 3
    assert first.has_next_page and not first.has_prev_page
    assert not last.has_next_page and last.has_prev_page
    assert last.pagination() == {
        "currentPage": 3,
        "totalPages": 3,
        "total": 7,
        "pageSize": 3,
        "hasNextPage": False,
        "hasPrevPage": True,
    }


def test_page_size_is_capped(container: Container, alice: Principal) -> None:
    page = _list(container, alice, page_size=10_000)
    assert page.page_size == 100
    assert page.total_pages == 0 and not page.has_next_page


@pytest.mark.parametrize(
    "kwargs",
    [
        {"filters": TaskFilters(group="someday")},
        {"filters": TaskFilters(status="done")},
        {"filters": TaskFilters(category="Chores")},
        {"filters": TaskFilters(priority="Urgent")},
        {"sort_by": "color"},
        {"sort_order": "sideways"},
        {"page": 0},
        {"page_size": 0},
    ],
)
def test_invalid_parameters(container: Container, alice: Principal, kwargs: dict) -> None:
    with pytest.raises(InvalidParameter):
        _list(container, alice, **kwargs)


def test_assignment_filters_are_admin_only(
    container: Container, admin: Principal, alice: Principal
) -> None:
    asyncio.run(container.tasks.assign(admin, alice.id, task_fields(title="assigned")))
    _create(container, alice, title="own")

    assert _titles(_list(container, admin, filters=TaskFilters(is_assigned=True))) == ["assigned"]
    assert _titles(_list(container, admin, filters=TaskFilters(assigned_by=admin.id))) == ["assigned"]
    assert _titles(_list(container, admin, filters=TaskFilters(is_assigned=False))) == ["own"]
    # ignored for regular users
    assert _list(container, alice, filters=TaskFilters(is_assigned=True)).total == 2
