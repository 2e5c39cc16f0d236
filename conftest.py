"""Shared fakes for the decision-engine tests (no device, no network)."""
import pytest

from automation_base import ElementHandle, InputDispatcher, UIProbe

SCREEN_SIZE = (1080, 1920)


def handle(x1, y1, x2, y2, text="", element=None) -> ElementHandle:
    return ElementHandle(element=element, bounds=(x1, y1, x2, y2), text=text)


class FakeProbe(UIProbe):
    """UI tree stand-in.

    roles: ElementRole -> ElementHandle
    texts: visible text -> ElementHandle (find_by_text is containment, like XPath contains())
    failing_roles: roles whose lookup raises
    """

    def __init__(self, roles=None, texts=None, failing_roles=()):
        self.roles = dict(roles or {})
        self.texts = dict(texts or {})
        self.failing_roles = set(failing_roles)
        self.text_queries = []

    def find_by_role(self, role):
        if role in self.failing_roles:
            raise RuntimeError(f"probe failure for {role.name}")
        found = self.roles.get(role)
        return [found] if found is not None else []

    def find_by_text(self, text):
        self.text_queries.append(text)
        return [h for t, h in self.texts.items() if text in t]


class FakeDispatcher(InputDispatcher):
    """Records every input into a shared event list."""

    def __init__(self, events, size=SCREEN_SIZE, fail_on_tap=False):
        self.events = events
        self.size = size
        self.fail_on_tap = fail_on_tap

    def tap(self, x, y):
        if self.fail_on_tap:
            raise RuntimeError("tap failed")
        self.events.append(('tap', x, y))

    def swipe(self, path, duration_ms):
        self.events.append(('swipe', list(path), duration_ms))

    def set_text(self, handle, text):
        self.events.append(('set_text', handle, text))

    def navigate_back(self):
        self.events.append(('back',))

    def screen_size(self):
        return self.size


class ScriptedRandom:
    """Deterministic stand-in for random.Random.

    Queued values are used first, then the defaults. uniform() returns the
    lower bound and choice() the first item.
    """

    def __init__(self, randrange_values=(), random_values=(), randint_value=None,
                 default_randrange=0, default_random=0.0):
        self.randrange_values = list(randrange_values)
        self.random_values = list(random_values)
        self.randint_value = randint_value
        self.default_randrange = default_randrange
        self.default_random = default_random

    def randrange(self, *args):
        if self.randrange_values:
            return self.randrange_values.pop(0)
        return self.default_randrange

    def random(self):
        if self.random_values:
            return self.random_values.pop(0)
        return self.default_random

    def uniform(self, a, b):
        return a

    def randint(self, a, b):
        return a if self.randint_value is None else self.randint_value

    def choice(self, seq):
        return seq[0]


class FakeClock:
    def __init__(self, now=0.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def events():
    return []


@pytest.fixture
def dispatcher(events):
    return FakeDispatcher(events)


@pytest.fixture
def record_sleep(events):
    def sleep(seconds):
        events.append(('sleep', seconds))
    return sleep


@pytest.fixture
def clock():
    return FakeClock()
