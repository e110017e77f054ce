from __future__ import annotations

from typing import Callable

import pytest

from senko_bot.integrations.chat.conversation_store import (
    IDLE_EXPIRY_SECONDS,
    ConversationStore,
    ConversationTurn,
    Flavor,
    session_key,
)


class _FakeTimer:
    def __init__(self, clock: "_FakeClock", due: float, callback: Callable[[], None]) -> None:
        self._clock = clock
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class _FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.timers: list[_FakeTimer] = []

    def call_later(self, delay: float, callback: Callable[[], None]) -> _FakeTimer:
        timer = _FakeTimer(self, self.now + delay, callback)
        self.timers.append(timer)
        return timer

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in list(self.timers):
            if not timer.cancelled and timer.due <= self.now:
                self.timers.remove(timer)
                timer.callback()


@pytest.fixture()
def clock() -> _FakeClock:
    return _FakeClock()


@pytest.fixture()
def store(clock: _FakeClock) -> ConversationStore:
    return ConversationStore(call_later=clock.call_later)


def test_session_key_combines_channel_and_user() -> None:
    assert session_key("chan-1", "user-1") == "chan-1:user-1"
    assert session_key("1", "23") != session_key("12", "3")


def test_conversation_turn_validates_role() -> None:
    with pytest.raises(ValueError):
        ConversationTurn("robot", "beep")
    turn = ConversationTurn.from_payload({"role": "assistant", "content": "hi"})
    assert turn.to_payload() == {"role": "assistant", "content": "hi"}
    with pytest.raises(ValueError):
        ConversationTurn.from_payload({"role": "user"})


def test_get_or_create_same_flavor_keeps_appended_turns(store: ConversationStore) -> None:
    history = store.get_or_create("k", Flavor.NONE, "You are an assistant.")
    assert history == [ConversationTurn("system", "You are an assistant.")]

    store.append("k", ConversationTurn("user", "hello"))
    store.append("k", ConversationTurn("assistant", "hi there"))

    again = store.get_or_create("k", Flavor.NONE, "ignored prompt")
    assert [turn.content for turn in again] == [
        "You are an assistant.",
        "hello",
        "hi there",
    ]


def test_get_or_create_returns_a_copy(store: ConversationStore) -> None:
    history = store.get_or_create("k", Flavor.NONE, "sys")
    history.append(ConversationTurn("user", "not stored"))
    assert store.get("k") == [ConversationTurn("system", "sys")]


def test_flavor_switch_resets_history(store: ConversationStore) -> None:
    store.get_or_create("k", Flavor.NONE, "plain")
    store.append("k", ConversationTurn("user", "hello"))

    history = store.get_or_create("k", Flavor.SENKO, "fox")

    assert history == [ConversationTurn("system", "fox")]
    assert store.get("k") == [ConversationTurn("system", "fox")]
    assert store.flavor_of("k") is Flavor.SENKO


def test_snapshot_does_not_store_anything(store: ConversationStore) -> None:
    assert store.snapshot("k", Flavor.NONE, "sys") == [ConversationTurn("system", "sys")]
    assert "k" not in store

    store.get_or_create("k", Flavor.NONE, "sys")
    store.append("k", ConversationTurn("user", "q"))
    assert len(store.snapshot("k", Flavor.NONE, "other")) == 2
    assert store.snapshot("k", Flavor.SENKO, "fox") == [ConversationTurn("system", "fox")]
    assert store.flavor_of("k") is Flavor.NONE


def test_append_requires_existing_session(store: ConversationStore) -> None:
    with pytest.raises(KeyError):
        store.append("missing", ConversationTurn("user", "hello"))


def test_replace_requires_leading_system_turn(store: ConversationStore) -> None:
    with pytest.raises(ValueError):
        store.replace("k", [ConversationTurn("user", "hello")], Flavor.NONE)
    with pytest.raises(ValueError):
        store.replace("k", [], Flavor.NONE)


def test_replace_last_write_wins(store: ConversationStore) -> None:
    base = [ConversationTurn("system", "sys")]
    first = base + [ConversationTurn("user", "a"), ConversationTurn("assistant", "A")]
    second = base + [ConversationTurn("user", "b"), ConversationTurn("assistant", "B")]

    store.replace("k", first, Flavor.NONE)
    store.replace("k", second, Flavor.NONE)

    assert store.get("k") == second


def test_idle_expiry_removes_session(clock: _FakeClock, store: ConversationStore) -> None:
    store.get_or_create("k", Flavor.NONE, "sys")
    store.touch("k")

    clock.advance(IDLE_EXPIRY_SECONDS - 1)
    assert "k" in store

    clock.advance(2)
    assert "k" not in store
    assert store.flavor_of("k") is None


def test_touch_restarts_the_idle_timer(clock: _FakeClock, store: ConversationStore) -> None:
    store.get_or_create("k", Flavor.NONE, "sys")
    clock.advance(IDLE_EXPIRY_SECONDS - 10)
    store.touch("k")
    clock.advance(20)
    assert "k" in store

    clock.advance(IDLE_EXPIRY_SECONDS)
    assert "k" not in store


def test_clear_deletes_and_cancels_timer(clock: _FakeClock, store: ConversationStore) -> None:
    store.get_or_create("k", Flavor.NONE, "sys")
    assert store.clear("k") is True
    assert store.clear("k") is False
    assert "k" not in store
    assert all(timer.cancelled for timer in clock.timers)


def test_stale_timer_does_not_remove_recreated_session(
    clock: _FakeClock, store: ConversationStore
) -> None:
    store.get_or_create("k", Flavor.NONE, "sys")
    stale = clock.timers[-1]
    store.clear("k")
    store.get_or_create("k", Flavor.NONE, "sys")

    stale.callback()

    assert "k" in store


def test_close_cancels_everything(clock: _FakeClock, store: ConversationStore) -> None:
    store.get_or_create("a", Flavor.NONE, "sys")
    store.get_or_create("b", Flavor.SENKO, "fox")

    store.close()

    assert len(store) == 0
    assert all(timer.cancelled for timer in clock.timers)
