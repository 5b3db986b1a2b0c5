import logging

from hidrazy.logging_config import configure_logging


def test_health_reports_database_and_llm(client):
    res = client.get("/health")
    assert res.status_code == 200
    assert res.json() == {"status": "ok", "llm_configured": False, "database": "ok"}


def test_unknown_route_uses_error_body(client):
    res = client.get("/does-not-exist")
    assert res.status_code == 404
    assert res.json()["success"] is False


def test_configure_logging_is_idempotent():
    configure_logging("DEBUG")
    configure_logging("DEBUG")
    root = logging.getLogger()
    ours = [h for h in root.handlers if getattr(h, "_hidrazy", False)]
    assert len(ours) == 1
    assert logging.getLogger("httpx").level == logging.WARNING
