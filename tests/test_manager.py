import json

import pytest
from fastapi.testclient import TestClient

from trade_manager import manager
from shared.constants import KEY_AUTO_PAUSE, KEY_HEARTBEAT, KEY_LAST_FILL, KEY_PAUSE_FLAG
from shared.redis_client import trading_paused

NOW = 1_700_000_000.0


@pytest.fixture
def beats(stub_redis, monkeypatch):
    monkeypatch.setattr(manager, "HEARTBEAT_MAX", 90.0)

    def set_beats(age):
        for svc in manager.SERVICES:
            stub_redis.set(KEY_HEARTBEAT.format(svc), NOW - age)
    return set_beats


def test_fresh_heartbeats_leave_trading_on(beats, stub_redis):
    beats(10)
    assert manager.check_once(NOW) is False
    assert not trading_paused()


def test_missing_heartbeat_pauses(beats, stub_redis):
    beats(10)
    stub_redis.delete(KEY_HEARTBEAT.format("data_retainer"))
    assert manager.stale_services(NOW) == ["data_retainer"]
    assert manager.check_once(NOW) is True
    assert stub_redis.get(KEY_PAUSE_FLAG) == "1"
    assert stub_redis.get(KEY_AUTO_PAUSE) == "1"


def test_auto_pause_lifts_when_heartbeats_return(beats, stub_redis):
    beats(500)
    manager.check_once(NOW)
    assert trading_paused()
    beats(1)
    assert manager.check_once(NOW) is False
    assert not trading_paused()
    assert stub_redis.get(KEY_AUTO_PAUSE) is None


def test_operator_pause_survives_healthy_heartbeats(beats, stub_redis):
    beats(1)
    manager.set_pause(True, "operator")
    assert manager.check_once(NOW) is True
    assert trading_paused()


def test_redis_outage_reads_as_paused(monkeypatch):
    import redis
    from shared.redis_client import rds

    class Down:
        def get(self, key):
            raise redis.ConnectionError("down")

    monkeypatch.setattr(rds, "_client", Down())
    assert trading_paused()


# ───── REST ──────────────────────────────────────────────────────────
@pytest.fixture
def api(beats):
    beats(1)
    return TestClient(manager.app)


def test_status_reports_fills(api, stub_redis):
    stub_redis.hset(KEY_LAST_FILL, "EURUSD", json.dumps({"symbol": "EURUSD", "fill_px": 1.1}))
    body = api.get("/status").json()
    assert body["paused"] is False
    assert set(body["heartbeats"]) == set(manager.SERVICES)
    assert body["last_fills"]["EURUSD"]["fill_px"] == 1.1


def test_pause_and_resume(api, stub_redis):
    assert api.post("/pause").json() == {"paused": True}
    assert trading_paused()
    # manual pause is not lifted by the supervisor
    assert manager.check_once(NOW) is True

    assert api.post("/resume").json() == {"paused": False}
    assert not trading_paused()


def test_operator_pause_is_not_lifted_after_an_outage(beats, stub_redis):
    beats(1)
    manager.set_pause(True, "operator")
    beats(500)
    manager.check_once(NOW)
    assert stub_redis.get(KEY_AUTO_PAUSE) is None
    beats(1)
    assert manager.check_once(NOW) is True


def test_rest_pause_takes_over_a_supervisor_pause(api, beats, stub_redis):
    beats(500)
    manager.check_once(NOW)
    assert stub_redis.get(KEY_AUTO_PAUSE) == "1"
    api.post("/pause")
    assert stub_redis.get(KEY_AUTO_PAUSE) is None
    beats(1)
    assert manager.check_once(NOW) is True
