import asyncio

import pytest
from aiohttp import ClientConnectionError
from aiohue.errors import Unauthorized

from conftest import FakeClient, FakeConnection
from huevision.config import ConfigStore
from huevision.errors import BridgeConnectionError, NoBridgeFound
from huevision.reconnect import ensure_connected


@pytest.fixture
def paired_store(store):
    store.set("bridge.ipaddress", "192.168.1.20")
    store.set("bridge.username", "hue-user-0001")
    store.set("bridge.clientkey", "CLIENTKEY0001")
    store.save()
    return ConfigStore(store.path, environ={}).load()


async def test_connects_to_persisted_address(paired_store):
    connection = FakeConnection("192.168.1.20")
    client = FakeClient(connect_results={"192.168.1.20": connection})

    assert await ensure_connected(client, paired_store) is connection
    assert client.discover_calls == 0
    assert client.connect_calls == [("192.168.1.20", "hue-user-0001")]


@pytest.mark.parametrize("error", [ClientConnectionError("unreachable"), asyncio.TimeoutError()])
async def test_rediscovers_unreachable_bridge(paired_store, error):
    connection = FakeConnection("192.168.1.42")
    client = FakeClient(
        hosts=["192.168.1.42"],
        connect_results={"192.168.1.20": error, "192.168.1.42": connection},
    )

    assert await ensure_connected(client, paired_store) is connection
    assert client.discover_calls == 1

    reloaded = ConfigStore(paired_store.path, environ={}).load()
    assert reloaded.get("bridge.ipaddress") == "192.168.1.42"
    assert reloaded.get("bridge.username") == "hue-user-0001"
    assert reloaded.get("bridge.clientkey") == "CLIENTKEY0001"


async def test_rediscovery_finds_nothing(paired_store):
    client = FakeClient(hosts=[], connect_results={"192.168.1.20": ClientConnectionError("unreachable")})

    with pytest.raises(NoBridgeFound):
        await ensure_connected(client, paired_store)
    assert client.discover_calls == 1


async def test_retried_connection_failure_is_fatal(paired_store):
    client = FakeClient(
        hosts=["192.168.1.42"],
        connect_results={
            "192.168.1.20": ClientConnectionError("unreachable"),
            "192.168.1.42": ClientConnectionError("still unreachable"),
        },
    )

    with pytest.raises(BridgeConnectionError):
        await ensure_connected(client, paired_store)
    assert client.discover_calls == 1

    reloaded = ConfigStore(paired_store.path, environ={}).load()
    assert reloaded.get("bridge.ipaddress") == "192.168.1.20"


async def test_authorization_error_does_not_rediscover(paired_store):
    client = FakeClient(connect_results={"192.168.1.20": Unauthorized("unauthorized user")})

    with pytest.raises(BridgeConnectionError):
        await ensure_connected(client, paired_store)
    assert client.discover_calls == 0


async def test_missing_address_goes_straight_to_discovery(store):
    store.set("bridge.username", "hue-user-0001")
    store.set("bridge.clientkey", "CLIENTKEY0001")
    connection = FakeConnection("192.168.1.42")
    client = FakeClient(hosts=["192.168.1.42"], connect_results={"192.168.1.42": connection})

    assert await ensure_connected(client, store) is connection
    assert client.discover_calls == 1
    assert client.connect_calls == [("192.168.1.42", "hue-user-0001")]

    reloaded = ConfigStore(store.path, environ={}).load()
    assert reloaded.get("bridge.ipaddress") == "192.168.1.42"
    assert reloaded.get("bridge.username") == "hue-user-0001"
    assert reloaded.get("bridge.clientkey") == "CLIENTKEY0001"
