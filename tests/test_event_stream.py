"""
tests/test_event_stream.py — Live Event Feed
=============================================
The hub is driven directly on a private event loop.  The stream route is
called on that loop too, so its response body can be read frame by frame
while admin mutations arrive through the HTTP client on another thread.  The
remaining HTTP tests check that mutations reach ``publish`` with the right
payloads.
"""

from __future__ import annotations

import asyncio
import json

from conftest import auth_header, run

from lasexta.api.routes.events import stream_events
from lasexta.services import catalog_service
from lasexta.services.event_stream import EventStreamHub, format_frame, ping_payload


def _decode(frame: str) -> dict:
    assert frame.startswith("data: ")
    assert frame.endswith("\n\n")
    return json.loads(frame[len("data: "):])


SNAPSHOT = {"type": "snapshot", "events": []}


class TestFrames:
    def test_format_frame(self):
        assert format_frame({"type": "deleted", "eventId": "e1"}) == (
            'data: {"type": "deleted", "eventId": "e1"}\n\n'
        )

    def test_ping_carries_epoch_millis(self):
        payload = ping_payload()
        assert payload["type"] == "ping"
        assert payload["at"] > 1_600_000_000_000


class TestHub:
    def test_snapshot_then_published_frames(self):
        hub = EventStreamHub(keepalive_seconds=60)

        async def scenario():
            channel = hub.open_channel()
            stream = hub.stream(channel, SNAPSHOT)
            first = await stream.__anext__()
            hub.publish({"type": "deleted", "eventId": "e1"})
            second = await asyncio.wait_for(stream.__anext__(), 1)
            await stream.aclose()
            await asyncio.sleep(0)
            return first, second

        first, second = run(scenario())
        assert _decode(first) == SNAPSHOT
        assert _decode(second) == {"type": "deleted", "eventId": "e1"}
        assert hub.channel_count == 0

    def test_fan_out_to_every_channel(self):
        hub = EventStreamHub(keepalive_seconds=60)

        async def scenario():
            streams = []
            for _ in range(3):
                stream = hub.stream(hub.open_channel(), SNAPSHOT)
                await stream.__anext__()
                streams.append(stream)
            reached = hub.publish({"type": "deleted", "eventId": "e2"})
            frames = [await asyncio.wait_for(s.__anext__(), 1) for s in streams]
            for stream in streams:
                await stream.aclose()
            await asyncio.sleep(0)
            return reached, frames

        reached, frames = run(scenario())
        assert reached == 3
        assert all(_decode(f)["eventId"] == "e2" for f in frames)

    def test_keepalive_follows_channel_count(self):
        hub = EventStreamHub(keepalive_seconds=0.01)

        async def scenario():
            assert not hub.keepalive_running
            channel = hub.open_channel()
            assert hub.keepalive_running
            stream = hub.stream(channel, SNAPSHOT)
            await stream.__anext__()
            ping = await asyncio.wait_for(stream.__anext__(), 1)
            await stream.aclose()
            await asyncio.sleep(0)
            return ping

        ping = run(scenario())
        assert _decode(ping)["type"] == "ping"
        assert not hub.keepalive_running

    def test_slow_reader_is_pruned(self):
        hub = EventStreamHub(keepalive_seconds=60, queue_size=1)

        async def scenario():
            channel = hub.open_channel()
            other = hub.stream(hub.open_channel(), SNAPSHOT)
            await other.__anext__()

            hub.publish({"type": "deleted", "eventId": "a"})
            await asyncio.sleep(0)
            received = await asyncio.wait_for(other.__anext__(), 1)
            hub.publish({"type": "deleted", "eventId": "b"})
            await asyncio.sleep(0)
            # `channel` never read its first frame, so the second overflowed it.
            alive = hub.channel_count
            await other.aclose()
            await asyncio.sleep(0)
            return channel, alive, received

        channel, alive, received = run(scenario())
        assert alive == 1
        assert _decode(received)["eventId"] == "a"
        assert channel.queue.get_nowait() is None

    def test_channel_on_closed_loop_is_pruned(self):
        hub = EventStreamHub(keepalive_seconds=60)

        async def open_and_stop():
            channel = hub.open_channel()
            hub._keepalive_task.cancel()
            await asyncio.sleep(0)
            return channel

        run(open_and_stop())
        assert hub.channel_count == 1
        assert hub.publish({"type": "deleted", "eventId": "x"}) == 0
        assert hub.channel_count == 0

    def test_close_all_wakes_readers(self):
        hub = EventStreamHub(keepalive_seconds=60)

        async def scenario():
            stream = hub.stream(hub.open_channel(), SNAPSHOT)
            await stream.__anext__()
            hub.close_all()
            frames = [frame async for frame in stream]
            return frames

        assert run(scenario()) == []
        assert hub.channel_count == 0


# ===========================================================================
# Admin mutations → publish
# ===========================================================================
class TestEventRoutes:
    EVENT = {
        "titulo": "Noche de rock",
        "fecha": "2026-11-07",
        "hora": "23:00",
        "dia": "Sábado",
    }

    def _record(self, hub, monkeypatch) -> list[dict]:
        published: list[dict] = []
        monkeypatch.setattr(hub, "publish", lambda payload: published.append(payload) or 0)
        return published

    def test_create_update_delete_are_published(self, client, hub, admin_user, monkeypatch):
        published = self._record(hub, monkeypatch)
        headers = auth_header(admin_user)

        created = client.post("/api/admin/events", json=self.EVENT, headers=headers)
        assert created.status_code == 201
        event = created.json()["event"]
        assert event["location"] == "LA SEXTA"
        assert event["background_image"] == "/card1.jpeg"

        updated = client.put(
            f"/api/admin/events/{event['id']}", json={"hora": "22:30"}, headers=headers
        )
        assert updated.status_code == 200
        assert updated.json()["event"]["time"] == "22:30"
        assert updated.json()["event"]["title"] == "Noche de rock"

        deleted = client.delete(f"/api/admin/events/{event['id']}", headers=headers)
        assert deleted.status_code == 204

        assert [p["type"] for p in published] == ["created", "updated", "deleted"]
        assert published[2] == {"type": "deleted", "eventId": event["id"]}

    def test_failed_mutation_publishes_nothing(self, client, hub, admin_user, monkeypatch):
        published = self._record(hub, monkeypatch)
        resp = client.post(
            "/api/admin/events", json={"titulo": "  "}, headers=auth_header(admin_user)
        )
        assert resp.status_code == 400
        missing = client.delete("/api/admin/events/nope", headers=auth_header(admin_user))
        assert missing.status_code == 404
        assert published == []

    def test_public_listing_is_ordered(self, client, admin_user):
        headers = auth_header(admin_user)
        for fecha, hora in (("2026-11-14", "23:00"), ("2026-11-07", "23:30"), ("2026-11-07", "22:00")):
            client.post("/api/admin/events", json={**self.EVENT, "fecha": fecha, "hora": hora}, headers=headers)

        events = client.get("/api/events").json()["events"]
        assert [(e["date"], e["time"]) for e in events] == [
            ("2026-11-07", "22:00"),
            ("2026-11-07", "23:30"),
            ("2026-11-14", "23:00"),
        ]

    def test_admin_listing_requires_admin(self, client, alice):
        assert client.get("/api/admin/events").status_code == 401
        assert client.get("/api/admin/events", headers=auth_header(alice)).status_code == 403


# ===========================================================================
# GET /api/events/stream
# ===========================================================================
class TestStreamRoute:
    def _create_event(self, engine, title: str):
        return catalog_service.create_event(
            engine, actor_id=None, title=title, date="2026-11-07", time="23:00", day="Sábado"
        )

    def test_snapshot_first_then_deletion(self, client, db_engine, hub, admin_user):
        kept = self._create_event(db_engine, "Noche de rock")
        doomed = self._create_event(db_engine, "Noche de cumbia")
        hub.keepalive_seconds = 60

        async def scenario():
            response = await stream_events(db_engine, hub)
            body = response.body_iterator
            first = await asyncio.wait_for(body.__anext__(), 1)

            deleted = await asyncio.to_thread(
                client.delete, f"/api/admin/events/{doomed.id}", headers=auth_header(admin_user)
            )
            pushed = await asyncio.wait_for(body.__anext__(), 1)

            reopened = await stream_events(db_engine, hub)
            later = await asyncio.wait_for(reopened.body_iterator.__anext__(), 1)

            await body.aclose()
            await reopened.body_iterator.aclose()
            await asyncio.sleep(0)
            return response, first, deleted.status_code, pushed, later

        response, first, status, pushed, later = run(scenario())

        assert response.media_type == "text/event-stream"
        assert response.headers["cache-control"].startswith("no-cache")

        snapshot = _decode(first)
        assert snapshot["type"] == "snapshot"
        assert {e["id"] for e in snapshot["events"]} == {kept.id, doomed.id}

        assert status == 204
        assert _decode(pushed) == {"type": "deleted", "eventId": doomed.id}

        assert [e["id"] for e in _decode(later)["events"]] == [kept.id]
        assert hub.channel_count == 0
        assert not hub.keepalive_running

