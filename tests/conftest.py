"""Fakes standing in for the Hue bridge."""

import pytest
from aiohttp import ClientConnectionError

from huevision.bridge import BridgeClient, Credentials, LightInfo
from huevision.config import ConfigStore
from huevision.dispatcher import PollContext, SceneDispatcher
from huevision.scenes import load_scene_book


class FakeConnection:
    def __init__(self, host="192.168.1.20", lights=None, failing=()):
        self.host = host
        self.lights = lights or []
        self.failing = set(failing)
        self.calls = []
        self.closed = False

    async def list_lights(self):
        if isinstance(self.lights, Exception):
            raise self.lights
        return self.lights

    async def set_light_state(self, light_id, state):
        self.calls.append((light_id, state))
        if light_id in self.failing:
            raise ConnectionResetError(f"light {light_id} unreachable")

    async def close(self):
        self.closed = True


class FakeResponse:
    def __init__(self, payload):
        self.payload = payload

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    def raise_for_status(self):
        pass

    async def json(self):
        return self.payload


class FailingResponse(FakeResponse):
    async def __aenter__(self):
        raise ClientConnectionError("tls handshake failed")


class FakeSession:
    """aiohttp session answering POSTs by scheme ("https" or "http")."""

    def __init__(self, responses):
        self.responses = responses
        self.posts = []

    def post(self, url, json=None, **kwargs):
        self.posts.append((url, json))
        return self.responses[url.split(":", 1)[0]]


class SessionClient(BridgeClient):
    """Real BridgeClient over a FakeSession, with discovery stubbed out."""

    def __init__(self, session, hosts=("192.168.1.20",)):
        super().__init__(session)
        self.hosts = list(hosts)

    async def discover(self):
        return self.hosts


class FakeClient:
    """Scriptable BridgeClient.

    ``users`` is a list of results for successive create_user calls: an
    exception instance is raised, anything else is returned. ``connect_results``
    maps a host to a connection or an exception instance.
    """

    def __init__(self, hosts=None, users=None, connect_results=None):
        self.hosts = ["192.168.1.20"] if hosts is None else hosts
        self.users = list(users or [])
        self.connect_results = connect_results or {}
        self.discover_calls = 0
        self.create_user_calls = []
        self.connect_calls = []

    async def discover(self):
        self.discover_calls += 1
        if isinstance(self.hosts, Exception):
            raise self.hosts
        return list(self.hosts)

    async def create_user(self, host, devicetype):
        self.create_user_calls.append((host, devicetype))
        result = self.users.pop(0) if len(self.users) > 1 else self.users[0]
        if isinstance(result, Exception):
            raise result
        return result

    async def connect(self, host, username):
        self.connect_calls.append((host, username))
        result = self.connect_results[host]
        if isinstance(result, Exception):
            raise result
        return result


class RecordingSleep:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def scene_book():
    return load_scene_book()


@pytest.fixture
def connection():
    return FakeConnection(lights=[LightInfo(20, "Tira leds", {"on": True, "hue": 31298, "xy": [0.2, 0.5]})])


@pytest.fixture
def context(connection):
    return PollContext(SceneDispatcher(connection))


@pytest.fixture
def store(tmp_path):
    return ConfigStore(tmp_path / "config" / "config.json", environ={}).load()


@pytest.fixture
def credentials():
    return Credentials("hue-user-0001", "CLIENTKEY0001")


@pytest.fixture
def sleep():
    return RecordingSleep()
