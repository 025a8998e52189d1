import pytest
from aiohttp import ClientConnectionError
from aiohue.errors import LinkButtonNotPressed, Unauthorized

from conftest import FakeClient, FakeResponse, FakeSession, SessionClient
from huevision.config import ConfigStore
from huevision.errors import NoBridgeFound, PairingError
from huevision.pairing import discover_bridge, pair


async def test_pair_first_attempt_persists_credentials(store, credentials, sleep):
    client = FakeClient(users=[credentials])

    result = await pair(client, store, sleep=sleep)

    assert result.attempts == 1
    assert result.config.ipaddress == "192.168.1.20"
    assert sleep.delays == []

    reloaded = ConfigStore(store.path, environ={}).load()
    assert reloaded.get("bridge.ipaddress") == "192.168.1.20"
    assert reloaded.get("bridge.username") == "hue-user-0001"
    assert reloaded.get("bridge.clientkey") == "CLIENTKEY0001"


async def test_pair_retries_until_button_pressed(store, credentials, sleep, capsys):
    pending = [LinkButtonNotPressed("link button not pressed")] * 3
    client = FakeClient(users=pending + [credentials])

    result = await pair(client, store, sleep=sleep)

    assert result.attempts == 4
    assert sleep.delays == [1.0, 1.0, 1.0]
    out = capsys.readouterr().out
    assert "Attempt 3 of 30." in out
    assert "Attempt 4 of 30." not in out


async def test_pair_gives_up_after_thirty_attempts(store, sleep):
    client = FakeClient(users=[LinkButtonNotPressed("link button not pressed")])

    with pytest.raises(PairingError) as excinfo:
        await pair(client, store, sleep=sleep)

    assert excinfo.value.attempts == 30
    assert len(client.create_user_calls) == 30
    assert sleep.delays == [1.0] * 29
    assert not store.path.exists()


async def test_pair_aborts_on_other_bridge_error(store, sleep):
    client = FakeClient(users=[Unauthorized("unauthorized user")])

    with pytest.raises(PairingError) as excinfo:
        await pair(client, store, sleep=sleep)

    assert excinfo.value.attempts == 1
    assert len(client.create_user_calls) == 1
    assert sleep.delays == []


async def test_pair_rejects_non_hue_reply(store, sleep):
    client = SessionClient(FakeSession({"https": FakeResponse({"status": "ok"})}))

    with pytest.raises(PairingError, match="Unexpected response") as excinfo:
        await pair(client, store, sleep=sleep)

    assert excinfo.value.attempts == 1
    assert sleep.delays == []
    assert not store.path.exists()


async def test_pair_uses_app_and_device_name(store, credentials, sleep):
    store.set("appName", "huevision")
    store.set("deviceName", "livingroom")
    client = FakeClient(users=[credentials])

    await pair(client, store, sleep=sleep)

    assert client.create_user_calls == [("192.168.1.20", "huevision#livingroom")]


async def test_discover_bridge_takes_first():
    client = FakeClient(hosts=["10.0.0.2", "10.0.0.3"])
    assert await discover_bridge(client) == "10.0.0.2"


async def test_discover_bridge_none_found():
    with pytest.raises(NoBridgeFound):
        await discover_bridge(FakeClient(hosts=[]))


async def test_discover_bridge_network_failure():
    with pytest.raises(NoBridgeFound):
        await discover_bridge(FakeClient(hosts=ClientConnectionError("offline")))
