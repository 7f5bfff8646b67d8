from datetime import datetime, timezone

from redis.exceptions import ConnectionError as RedisConnectionError

from sklad_sync.schemas import SyncReport
from sklad_sync.services import sync_queue


class FakeRedis:
    def __init__(self, broken: bool = False):
        self.data = {}
        self.broken = broken

    def _check(self):
        if self.broken:
            raise RedisConnectionError("Connection refused")

    def set(self, key, value, ex=None):
        self._check()
        self.data[key] = value.encode("utf-8") if isinstance(value, str) else value

    def get(self, key):
        self._check()
        return self.data.get(key)

    def delete(self, key):
        self._check()
        self.data.pop(key, None)


def _use_redis(monkeypatch, redis):
    monkeypatch.setattr(sync_queue, "_redis_connection", lambda: redis)


def test_has_active_worker_checks_sync_queue(monkeypatch):
    queue = object()
    seen = {}

    def fake_all(queue=None):
        seen["queue"] = queue
        return ["worker-1"]

    monkeypatch.setattr(sync_queue, "_queue", lambda: queue)
    monkeypatch.setattr(sync_queue.Worker, "all", staticmethod(fake_all))

    assert sync_queue.has_active_worker() is True
    assert seen["queue"] is queue


def test_has_active_worker_without_workers(monkeypatch):
    monkeypatch.setattr(sync_queue, "_queue", lambda: object())
    monkeypatch.setattr(sync_queue.Worker, "all", staticmethod(lambda queue=None: []))

    assert sync_queue.has_active_worker() is False


def test_has_active_worker_when_redis_is_down(monkeypatch):
    def refused(queue=None):
        raise RedisConnectionError("Connection refused")

    monkeypatch.setattr(sync_queue, "_queue", lambda: object())
    monkeypatch.setattr(sync_queue.Worker, "all", staticmethod(refused))

    assert sync_queue.has_active_worker() is False


def test_last_error_is_stored_and_cleared(monkeypatch):
    redis = FakeRedis()
    _use_redis(monkeypatch, redis)

    sync_queue.set_last_error("Beta (orders): HTTP 500")
    assert sync_queue.get_last_error() == "Beta (orders): HTTP 500"

    sync_queue.clear_last_error()
    assert sync_queue.get_last_error() is None


def test_last_report_round_trip_and_corrupted_value(monkeypatch):
    redis = FakeRedis()
    _use_redis(monkeypatch, redis)
    report = SyncReport(started_at=datetime(2024, 5, 1, tzinfo=timezone.utc), synced=["Alpha"])

    sync_queue.set_last_report(report)
    assert sync_queue.get_last_report().synced == ["Alpha"]

    redis.data[sync_queue.REPORT_KEY] = b"{not json"
    assert sync_queue.get_last_report() is None


def test_status_survives_unavailable_redis(monkeypatch):
    _use_redis(monkeypatch, FakeRedis(broken=True))
    monkeypatch.setattr(sync_queue, "has_active_worker", lambda: False)

    sync_queue.set_last_error("ошибка")
    sync_queue.clear_last_error()

    assert sync_queue.get_worker_status() == {
        "rq_worker_online": False,
        "last_error": None,
        "last_report": None,
    }
