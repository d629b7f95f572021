import pytest

from game_room import GameRoom
from settings import GameConfig


class ManualScheduler:
    """Records background tasks instead of running them."""

    def __init__(self):
        self.tasks = []
        self.sleeps = []

    def start_background_task(self, target, *args, **kwargs):
        self.tasks.append((target, args))

    def sleep(self, seconds):
        self.sleeps.append(seconds)

    def run(self, index):
        target, args = self.tasks[index]
        return target(*args)


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class Recorder:
    def __init__(self):
        self.events = []

    def __call__(self, event, payload):
        self.events.append((event, payload))

    def named(self, event):
        return [payload for name, payload in self.events if name == event]

    def clear(self):
        self.events = []


class FakeTransport:
    def __init__(self):
        self.sent = []
        self.broadcasts = []
        self.subscriptions = set()

    def send(self, sid, event, payload):
        self.sent.append((sid, event, payload))

    def broadcast(self, room_id, event, payload):
        self.broadcasts.append((room_id, event, payload))

    def subscribe(self, sid, room_id):
        self.subscriptions.add((sid, room_id))

    def unsubscribe(self, sid, room_id):
        self.subscriptions.discard((sid, room_id))

    def sent_to(self, sid, event):
        return [payload for target, name, payload in self.sent if target == sid and name == event]

    def broadcast_to(self, room_id, event):
        return [payload for target, name, payload in self.broadcasts if target == room_id and name == event]


@pytest.fixture
def config():
    return GameConfig()


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def transport():
    return FakeTransport()


@pytest.fixture
def room(config, scheduler, recorder, clock):
    return GameRoom("test-room", config, scheduler, broadcast=recorder, clock=clock)
