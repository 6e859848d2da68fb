import httpx
import pytest

from app.scripts import send_weekly_summary as script


def _client(status_code, payload, seen):
    def handler(request):
        seen.append(request)
        return httpx.Response(status_code, json=payload)
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_posts_with_secret():
    seen = []
    result = script.send_weekly_summaries(
        "https://kindora.test/", "s3cret", _client(200, {"emails_sent": 3, "families_processed": 2}, seen)
    )
    assert result == {"emails_sent": 3, "families_processed": 2}
    assert str(seen[0].url) == "https://kindora.test/api/cron/weekly-summary"
    assert seen[0].headers["X-Cron-Secret"] == "s3cret"


def test_main_exits_on_rejection(monkeypatch):
    seen = []
    real_send = script.send_weekly_summaries

    def fake_send(base_url, cron_secret):
        return real_send(base_url, cron_secret, _client(401, {"detail": "Invalid cron secret"}, seen))

    monkeypatch.setattr(script, "send_weekly_summaries", fake_send)
    with pytest.raises(SystemExit) as exc:
        script.main()
    assert exc.value.code == 1
