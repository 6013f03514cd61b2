import json
import unittest
from datetime import datetime, timezone

import httpx

from autobackup.config import WebhookConfig
from autobackup.notifiers import (
    PERFORM_BACKUP,
    CallbackSink,
    EventBus,
    NotificationError,
    WebhookSink,
)
from autobackup.services import trigger_backup


class CallbackSinkTests(unittest.TestCase):
    def test_passes_event_to_callback(self):
        received = []
        CallbackSink(received.append).notify(PERFORM_BACKUP)
        self.assertEqual(received, ["perform-backup"])

    def test_wraps_callback_errors(self):
        def boom(event):
            raise RuntimeError("window closed")

        with self.assertRaises(NotificationError):
            CallbackSink(boom).notify(PERFORM_BACKUP)


class EventBusTests(unittest.TestCase):
    def test_no_receiver_is_a_delivery_error(self):
        with self.assertRaises(NotificationError):
            EventBus().notify(PERFORM_BACKUP)

    def test_delivers_in_subscription_order(self):
        bus = EventBus()
        calls = []
        bus.subscribe(PERFORM_BACKUP, lambda: calls.append("first"))
        bus.subscribe(PERFORM_BACKUP, lambda: calls.append("second"))
        bus.subscribe("other-event", lambda: calls.append("other"))

        bus.notify(PERFORM_BACKUP)

        self.assertEqual(calls, ["first", "second"])

    def test_unsubscribe(self):
        bus = EventBus()
        calls = []
        unsubscribe = bus.subscribe(PERFORM_BACKUP, lambda: calls.append("x"))
        self.assertEqual(bus.listener_count(PERFORM_BACKUP), 1)
        unsubscribe()
        unsubscribe()
        self.assertEqual(bus.listener_count(PERFORM_BACKUP), 0)

    def test_failing_listener_does_not_block_others(self):
        bus = EventBus()
        calls = []

        def broken():
            raise RuntimeError("broken receiver")

        bus.subscribe(PERFORM_BACKUP, broken)
        bus.subscribe(PERFORM_BACKUP, lambda: calls.append("ok"))

        with self.assertLogs("autobackup.notifiers.base", level="ERROR"):
            bus.notify(PERFORM_BACKUP)
        self.assertEqual(calls, ["ok"])

    def test_all_listeners_failing_raises(self):
        bus = EventBus()

        def broken():
            raise RuntimeError("broken receiver")

        bus.subscribe(PERFORM_BACKUP, broken)
        with self.assertLogs("autobackup.notifiers.base", level="ERROR"):
            with self.assertRaises(NotificationError):
                bus.notify(PERFORM_BACKUP)


class WebhookSinkTests(unittest.TestCase):
    def _sink(self, handler):
        client = httpx.Client(transport=httpx.MockTransport(handler))
        config = WebhookConfig(url="http://receiver.local/events", headers={"X-Token": "abc"})
        clock = lambda: datetime(2024, 1, 2, 0, 0, 1, tzinfo=timezone.utc)
        return WebhookSink(config, client=client, clock=clock), client

    def test_posts_event_payload(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(204)

        sink, client = self._sink(handler)
        with client:
            sink.notify(PERFORM_BACKUP)

        self.assertEqual(len(requests), 1)
        request = requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(str(request.url), "http://receiver.local/events")
        self.assertEqual(request.headers["X-Token"], "abc")
        self.assertEqual(
            json.loads(request.content),
            {"event": "perform-backup", "sent_at": "2024-01-02T00:00:01Z"},
        )

    def test_error_status_raises_notification_error(self):
        sink, client = self._sink(lambda request: httpx.Response(503))
        with client:
            with self.assertRaises(NotificationError):
                sink.notify(PERFORM_BACKUP)

    def test_transport_error_raises_notification_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        sink, client = self._sink(handler)
        with client:
            with self.assertRaises(NotificationError):
                sink.notify(PERFORM_BACKUP)


class ManualTriggerTests(unittest.TestCase):
    def test_emits_perform_backup(self):
        received = []
        self.assertTrue(trigger_backup(CallbackSink(received.append)))
        self.assertEqual(received, [PERFORM_BACKUP])

    def test_delivery_failure_is_logged_and_reported(self):
        with self.assertLogs("autobackup.services.manual_trigger", level="ERROR"):
            self.assertFalse(trigger_backup(EventBus()))


if __name__ == "__main__":
    unittest.main()
