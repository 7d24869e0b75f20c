from __future__ import annotations

from datetime import datetime, timezone

from core.context import build_context, domain_from_url, make_active_tab, new_recent_events, push_recent_event
from core.models import HumorTrigger, TabState

NOW = datetime(2024, 1, 1, 23, 15, tzinfo=timezone.utc)


def test_snapshot_reads_tab_state_and_clock() -> None:
    tab = make_active_tab("https://github.com/org/repo", "Pull requests")
    state = TabState(tab_count=12, group_count=2, active_tab=tab)

    context = build_context(HumorTrigger(type="TabClosed"), state, NOW, ("TabClosed",))

    assert context.tab_count == 12
    assert context.group_count == 2
    assert context.current_hour == 23
    assert context.active_tab is not None
    assert context.active_tab.domain == "github.com"
    assert context.recent_events == ("TabClosed",)


def test_trigger_tab_count_overrides_collaborator() -> None:
    trigger = HumorTrigger(type="TabGroupCreated", data={"group_name": "Work", "tab_count": 42})

    context = build_context(trigger, TabState(tab_count=7), NOW)

    assert context.tab_count == 42


def test_recent_events_are_bounded_most_recent_first() -> None:
    recent = new_recent_events(limit=3)
    for event in ["TabOpened", "TabClosed", "TabGroupCreated", "FeelingLuckyClicked"]:
        push_recent_event(recent, event)

    assert list(recent) == ["FeelingLuckyClicked", "TabGroupCreated", "TabClosed"]


def test_domain_from_url_handles_missing_scheme_and_empty() -> None:
    assert domain_from_url("https://WWW.Example.com:8080/path") == "www.example.com"
    assert domain_from_url("example.org/page") == "example.org"
    assert domain_from_url("") == ""


def test_active_tab_defaults_title() -> None:
    assert make_active_tab("https://example.com", "").title == "Untitled"
