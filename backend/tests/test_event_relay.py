"""
Event relay and notification tests.

Verifies:
- Fan-out to every subscriber, drop-on-full for slow subscribers
- SSE frame encoding and the /api/events stream lifecycle
- Notifications are listed per user and only their owner can mark them read
"""

import json

from bizops.extensions import relay
from bizops.services.event_relay import EventRelay, format_sse
from bizops.services.notification_service import create_notification


class TestEventRelay:

    def test_publish_reaches_every_subscriber(self):
        events = EventRelay(maxsize=10)
        first = events.subscribe()
        second = events.subscribe()

        delivered = events.publish("order_update", {"id": 1})

        assert delivered == 2
        assert first.get_nowait() == {"type": "order_update", "data": {"id": 1}}
        assert second.get_nowait() == {"type": "order_update", "data": {"id": 1}}

    def test_full_queue_drops_without_blocking(self):
        events = EventRelay(maxsize=1)
        slow = events.subscribe()
        fast = events.subscribe()

        assert events.publish("notification", {"n": 1}) == 2
        fast.get_nowait()

        assert events.publish("notification", {"n": 2}) == 1
        assert slow.get_nowait()["data"] == {"n": 1}
        assert slow.empty()
        assert fast.get_nowait()["data"] == {"n": 2}

    def test_unsubscribe_stops_delivery(self):
        events = EventRelay()
        q = events.subscribe()
        events.unsubscribe(q)

        assert events.subscriber_count == 0
        assert events.publish("notification", {}) == 0
        assert q.empty()

    def test_unsubscribe_twice_is_harmless(self):
        events = EventRelay()
        q = events.subscribe()

        events.unsubscribe(q)
        events.unsubscribe(q)

        assert events.subscriber_count == 0

    def test_format_sse(self):
        frame = format_sse({"type": "low_stock_alert", "data": {"product_id": 3}})

        lines = frame.split("\n")
        assert lines[0] == "event: low_stock_alert"
        assert json.loads(lines[1][len("data: "):]) == {"type": "low_stock_alert", "data": {"product_id": 3}}
        assert frame.endswith("\n\n")


class TestEventStream:

    def test_stream_delivers_published_events(self, client, sales_headers):
        before = relay.subscriber_count

        resp = client.get("/api/events", headers=sales_headers, buffered=False)
        assert resp.status_code == 200
        assert resp.mimetype == "text/event-stream"
        assert relay.subscriber_count == before + 1

        chunks = iter(resp.response)
        assert next(chunks) == b": connected\n\n"

        relay.publish("order_update", {"id": 42})
        frame = next(chunks).decode()
        assert frame.startswith("event: order_update\n")
        assert '"id": 42' in frame

        resp.close()
        assert relay.subscriber_count == before


class TestNotifications:

    def test_list_own_notifications(self, client, sales_user, admin_user, sales_headers):
        create_notification(user_id=sales_user.id, title="Hello", message="First")
        create_notification(user_id=sales_user.id, title="Again", message="Second", type="warning")
        create_notification(user_id=admin_user.id, title="Not yours", message="Admin only")

        resp = client.get("/api/notifications", headers=sales_headers)

        assert resp.status_code == 200
        titles = {n["title"] for n in resp.get_json()}
        assert titles == {"Hello", "Again"}

    def test_mark_read_and_filter_unread(self, client, sales_user, sales_headers):
        read_me = create_notification(user_id=sales_user.id, title="Read me", message="x")
        create_notification(user_id=sales_user.id, title="Leave me", message="y")

        resp = client.post(f"/api/notifications/{read_me.id}/read", headers=sales_headers)
        assert resp.status_code == 200
        assert resp.get_json()["is_read"] is True

        unread = client.get("/api/notifications?unread=1", headers=sales_headers).get_json()
        assert [n["title"] for n in unread] == ["Leave me"]

    def test_cannot_mark_another_users_notification(self, client, admin_user, sales_headers):
        theirs = create_notification(user_id=admin_user.id, title="Private", message="z")

        resp = client.post(f"/api/notifications/{theirs.id}/read", headers=sales_headers)

        assert resp.status_code == 404

    def test_creation_is_pushed_to_subscribers(self, sales_user):
        q = relay.subscribe()
        try:
            create_notification(user_id=sales_user.id, title="Live", message="pushed")
            message = q.get_nowait()
        finally:
            relay.unsubscribe(q)

        assert message["type"] == "notification"
        assert message["data"]["title"] == "Live"
