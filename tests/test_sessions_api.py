import json
import pytest

pytestmark = pytest.mark.asyncio


async def test_put_session_feeds_enrichment(client, broker):
    resp = await client.put("/sessions/tok9", json={"Name": "Globex", "Jid": "55@s"})

    assert resp.status_code == 200
    assert resp.json() == {"Name": "Globex", "Jid": "55@s"}

    await client.post("/events/Message", json={"id": 2}, params={"token": "tok9"})

    [(_, message)] = broker.channel.default_exchange.published
    assert json.loads(message.body)["instanceName"] == "Globex"


async def test_get_session(client):
    resp = await client.get("/sessions/tok1")
    assert resp.status_code == 200
    assert resp.json()["Name"] == "Acme"


async def test_get_unknown_session(client):
    resp = await client.get("/sessions/nope")
    assert resp.status_code == 404
