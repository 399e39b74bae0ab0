import asyncio
import logging
import operator

import pytest
from mvvm_counter import (
    Computed,
    Effect,
    Signal,
    Untrack,
    computed,
    effect,
)
from mvvm_counter.reactive import Batch, flush_effects


def test_signal_creation_and_access():
    s = Signal(10, name="s")
    assert s() == 10


def test_signal_update():
    s = Signal(10, name="s")
    s.write(20)
    assert s() == 20


def test_simple_computed():
    s = Signal(10, name="s")
    c = Computed(lambda: s() * 2, name="c")
    assert c() == 20
    s.write(20)
    assert c() == 40


def test_simple_effect():
    s = Signal(10, name="s")
    effect_value = 0

    @effect
    def my_effect():
        nonlocal effect_value
        effect_value = s()

    flush_effects()

    assert my_effect.runs == 1
    assert effect_value == 10

    s.write(20)
    flush_effects()
    assert my_effect.runs == 2
    assert effect_value == 20

    # Test that effect doesn't run if value is the same
    s.write(20)
    flush_effects()
    assert my_effect.runs == 2
    my_effect.dispose()


def test_computed_chain():
    s = Signal(2, name="s")
    c1 = Computed(lambda: s() * 2, name="c1")
    c2 = Computed(lambda: c1() * 2, name="c2")

    assert c2() == 8

    s.write(3)

    assert c1() == 6
    assert c2() == 12


def test_dynamic_dependencies():
    s1 = Signal(10, name="s1")
    s2 = Signal(20, name="s2")
    toggle = Signal(True, name="toggle")

    c = Computed(lambda: s1() if toggle() else s2(), name="c")

    assert c() == 10

    toggle.write(False)
    assert c() == 20

    runs = 0
    c_val = None

    def effect_on_c():
        nonlocal runs, c_val
        c_val = c()
        runs += 1

    e = Effect(effect_on_c, name="effect_on_c")
    flush_effects()
    assert runs == 1
    assert c_val == 20

    # Now that toggle is False, c depends on s2.
    # Changing s1 should not cause c to recompute or the effect to run.
    s1.write(50)
    flush_effects()
    assert runs == 1

    # Changing s2 should trigger a re-run.
    s2.write(200)
    flush_effects()
    assert c_val == 200
    assert runs == 2
    e.dispose()


def test_untrack():
    s1 = Signal(1, name="s1")
    s2 = Signal(10, name="s2")

    runs = 0

    def my_effect():
        nonlocal runs
        runs += 1
        s1()  # dependency
        with Untrack():
            s2()  # no dependency

    e = Effect(my_effect, name="untrack_effect")
    flush_effects()

    assert runs == 1

    s2.write(20)  # should not trigger effect
    flush_effects()
    assert runs == 1

    s1.write(2)  # should trigger effect
    flush_effects()
    assert runs == 2
    e.dispose()


def test_batching():
    s1 = Signal(1, name="s1")
    s2 = Signal(10, name="s2")

    c = Computed(lambda: s1() + s2(), name="c")

    @effect
    def batching_effect():
        c()

    flush_effects()

    assert batching_effect.runs == 1
    assert c() == 11

    with Batch():
        s1.write(2)
        s2.write(20)

    assert c() == 22
    assert batching_effect.runs == 2
    batching_effect.dispose()


def test_computed_updates_within_batch():
    s = Signal(1)
    double = Computed(lambda: 2 * s())
    with Batch():
        s.write(2)
        assert double() == 4


def test_effect_cleanup_runs_before_rerun_and_on_dispose():
    s = Signal(1)
    log: list[str] = []

    @effect(immediate=True)
    def e():
        value = s()
        log.append(f"run {value}")
        return lambda: log.append(f"cleanup {value}")

    s.write(2)
    flush_effects()
    e.dispose()

    assert log == ["run 1", "cleanup 1", "run 2", "cleanup 2"]


def test_disposed_effect_stops_running():
    s = Signal(1)

    @effect(immediate=True)
    def e():
        s()

    e.dispose()
    s.write(2)
    flush_effects()
    assert e.runs == 1


def test_immediate_and_lazy_effect_is_rejected():
    with pytest.raises(ValueError):
        Effect(lambda: None, immediate=True, lazy=True)


def test_computed_cannot_write_signals():
    s = Signal(1)
    other = Signal(0)

    def bad():
        other.write(s())
        return s()

    c = Computed(bad, name="bad")
    with pytest.raises(RuntimeError, match="Computeds should be read-only"):
        c()


def test_computed_cannot_create_effects():
    s = Signal(1)

    def bad():
        Effect(lambda: None, lazy=True)
        return s()

    c = Computed(bad, name="bad")
    with pytest.raises(RuntimeError, match="pure calculations"):
        c()


def test_effect_created_during_a_run_is_independent():
    s = Signal(1, name="s")
    inner_runs = []
    inner: list[Effect] = []

    def outer_fn():
        s()
        if not inner:
            inner.append(
                Effect(lambda: inner_runs.append(s()), name="inner", immediate=True)
            )

    outer = Effect(outer_fn, name="outer", immediate=True)
    outer.dispose()

    s.write(2)
    flush_effects()

    assert inner_runs == [1, 2]
    inner[0].dispose()


def test_computed_decorator_rejects_arguments():
    with pytest.raises(TypeError):

        @computed
        def _(x):  # pyright: ignore[reportUnusedFunction]
            return x


def test_effect_decorator_rejects_arguments():
    with pytest.raises(TypeError):

        @effect
        def _(x):  # pyright: ignore[reportUnusedFunction]
            return x


# --- Subscriptions ---


def test_signal_subscribers_receive_every_change_in_order():
    s = Signal(0, name="s")
    seen: list[int] = []
    s.subscribe(seen.append)

    s.write(1)
    s.write(2)
    s.write(2)  # equal value -> no-op
    s.write(3)

    assert seen == [1, 2, 3]


def test_identity_signal_notifies_on_equal_replacement():
    s = Signal([1], name="s", equals=operator.is_)
    seen: list[list[int]] = []
    s.subscribe(seen.append)

    s.write([1])
    s.write([1])

    assert len(seen) == 2


def test_subscription_dispose_stops_notifications():
    s = Signal(0)
    seen: list[int] = []
    sub = s.subscribe(seen.append)

    s.write(1)
    sub()
    s.write(2)
    sub.dispose()  # second call is harmless

    assert seen == [1]
    assert not sub.active


def test_subscriber_writing_back_keeps_order_for_everyone():
    s = Signal(0, name="s")
    first: list[int] = []
    second: list[int] = []

    def bump(value: int):
        first.append(value)
        if value == 1:
            s.write(2)

    s.subscribe(bump)
    s.subscribe(second.append)

    s.write(1)

    assert first == [1, 2]
    assert second == [1, 2]


def test_failing_subscriber_does_not_stop_the_others(caplog: pytest.LogCaptureFixture):
    s = Signal(0, name="s")
    seen: list[int] = []

    def explode(_):
        raise RuntimeError("boom")

    s.subscribe(explode)
    s.subscribe(seen.append)

    with caplog.at_level(logging.ERROR):
        s.write(1)

    assert seen == [1]
    assert any("subscriber of s" in rec.getMessage() for rec in caplog.records)


def test_computed_subscribers_only_see_value_changes():
    s = Signal((0, "a"), name="s")
    first = Computed(lambda: s()[0], name="first")
    seen: list[int] = []
    first.subscribe(seen.append)

    s.write((0, "b"))
    s.write((1, "b"))
    s.write((1, "c"))
    s.write((2, "c"))

    assert seen == [1, 2]


def test_subscribed_computed_in_a_chain_still_notifies():
    s = Signal(1, name="s")
    double = Computed(lambda: s() * 2, name="double")
    quadruple = Computed(lambda: double() * 2, name="quadruple")
    doubles: list[int] = []
    quadruples: list[int] = []
    quadruple.subscribe(quadruples.append)
    double.subscribe(doubles.append)

    s.write(2)

    assert doubles == [4]
    assert quadruples == [8]


def test_disposed_computed_detaches_from_dependencies():
    s = Signal(1)
    c = Computed(lambda: s() + 1)
    seen: list[int] = []
    c.subscribe(seen.append)

    c.dispose()
    s.write(5)

    assert seen == []
    assert c not in s.obs
    # Still readable afterwards
    assert c() == 6


@pytest.mark.asyncio
async def test_sync_writes_are_batched():
    a = Signal(1, "a")
    b = Signal(2, "b")

    @effect
    def e():
        a()
        b()

    assert e.runs == 0

    # Give the async loop time to run the effect
    await asyncio.sleep(0)
    assert e.runs == 1

    a.write(2)
    assert e.runs == 1
    b.write(4)
    assert e.runs == 1

    # Give the async loop time to process queued tasks
    await asyncio.sleep(0)
    assert e.runs == 2
    e.dispose()
