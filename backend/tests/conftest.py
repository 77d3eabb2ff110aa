import random

import pytest
from fastapi.testclient import TestClient

from flipmatch.engine import GameEngine
from flipmatch.main import create_app


class FakeHandle:
    def __init__(self, due, callback):
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Детерминированное время: колбэки срабатывают только в advance()."""

    def __init__(self):
        self.now = 0.0
        self._pending = []

    def call_later(self, delay, callback):
        handle = FakeHandle(self.now + delay, callback)
        self._pending.append(handle)
        return handle

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self._pending if not h.cancelled and h.due <= target + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.due)
            self._pending.remove(handle)
            self.now = handle.due
            handle.callback()
        self.now = target


class RecordingChannel:
    def __init__(self):
        self.sent = []

    def send(self, message):
        self.sent.append(message)

    def types(self):
        return [m["type"] for m in self.sent]


@pytest.fixture()
def scheduler():
    return FakeScheduler()


@pytest.fixture()
def channel():
    return RecordingChannel()


@pytest.fixture()
def engine(scheduler, channel):
    return GameEngine(channel=channel, scheduler=scheduler, rng=random.Random(7), auto_tick=False)


@pytest.fixture()
def relay_app():
    return create_app()


@pytest.fixture()
def client(relay_app):
    with TestClient(relay_app) as test_client:
        yield test_client
