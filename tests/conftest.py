"""
Shared test fixtures
====================

Controllers in these tests run against a RecordingTransport (or the
simulator) with a delay function that records the requested microseconds
instead of sleeping.
"""

import pytest

from hd44780 import DisplayConfig, RecordingTransport, initialize


class DelayRecorder:
    """Delay function double: remembers every requested delay."""

    def __init__(self):
        self.calls: list[int] = []

    def __call__(self, microseconds: int) -> None:
        self.calls.append(microseconds)


@pytest.fixture
def delays():
    return DelayRecorder()


@pytest.fixture
def spy():
    return RecordingTransport()


@pytest.fixture
def make_lcd(spy, delays):
    """
    Factory: initialized Controller on the spy transport.

    The initialization traffic is discarded so tests only see what their
    own operations put on the bus.
    """
    def factory(**options):
        lcd = initialize(DisplayConfig(**options), spy, delay=delays)
        spy.clear()
        delays.calls.clear()
        return lcd
    return factory
