"""
Unit tests for the fixed-interval polling driver.
"""

import threading

from rxalerts.poller import PollingDriver


def test_driver_ticks_until_stopped():
    ticked = threading.Event()
    calls = []

    def tick():
        calls.append(1)
        if len(calls) >= 2:
            ticked.set()

    driver = PollingDriver(tick, 0.01, name="test-poll")
    driver.start()
    assert ticked.wait(2)
    driver.stop(wait=True)
    assert not driver.running

    count = len(calls)
    threading.Event().wait(0.05)
    assert len(calls) == count


def test_first_tick_waits_one_interval():
    calls = []
    driver = PollingDriver(lambda: calls.append(1), 3600)
    driver.start()
    try:
        assert driver.running
        assert calls == []
    finally:
        driver.stop(wait=True)


def test_tick_exceptions_are_logged_and_polling_continues(capsys):
    done = threading.Event()
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("boom")
        done.set()

    driver = PollingDriver(flaky, 0.01, name="flaky")
    driver.start()
    assert done.wait(2)
    driver.stop(wait=True)
    assert "[WARN] flaky tick failed: boom" in capsys.readouterr().err


def test_start_twice_keeps_one_thread():
    driver = PollingDriver(lambda: None, 3600)
    driver.start()
    first = driver._thread
    driver.start()
    try:
        assert driver._thread is first
    finally:
        driver.stop(wait=True)
