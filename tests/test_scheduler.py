"""Tests for the update loop."""

from beat_upm.scheduler import UpdateLoop


def test_tick_invokes_callbacks_until_unsubscribed():
    loop = UpdateLoop()
    calls = []

    def callback():
        calls.append(len(calls))
        if len(calls) == 3:
            loop.unsubscribe(callback)

    loop.subscribe(callback)
    loop.subscribe(callback)
    assert loop.pending == 1

    for _ in range(5):
        loop.tick()

    assert calls == [0, 1, 2]
    assert loop.pending == 0


def test_callback_removed_mid_tick_is_not_called():
    loop = UpdateLoop()
    calls = []

    def second():
        calls.append("second")

    def first():
        calls.append("first")
        loop.unsubscribe(second)

    loop.subscribe(first)
    loop.subscribe(second)
    loop.tick()

    assert calls == ["first"]


def test_callback_added_mid_tick_runs_next_tick():
    loop = UpdateLoop()
    calls = []

    def later():
        calls.append("later")
        loop.unsubscribe(later)

    def first():
        calls.append("first")
        loop.unsubscribe(first)
        loop.subscribe(later)

    loop.subscribe(first)
    loop.tick()
    assert calls == ["first"]

    loop.tick()
    assert calls == ["first", "later"]


def test_run_until_idle_drains():
    loop = UpdateLoop()
    remaining = [3]

    def countdown():
        remaining[0] -= 1
        if remaining[0] == 0:
            loop.unsubscribe(countdown)

    loop.subscribe(countdown)
    assert loop.run_until_idle(interval=0)
    assert remaining == [0]


def test_run_until_idle_times_out():
    loop = UpdateLoop()
    loop.subscribe(lambda: None)

    assert not loop.run_until_idle(interval=0.01, timeout=0.05)
    assert loop.pending == 1


def test_run_until_idle_with_nothing_pending():
    assert UpdateLoop().run_until_idle(timeout=0)
