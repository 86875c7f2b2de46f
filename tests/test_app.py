from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from scrapii.app import app


@pytest.fixture
def client():
    return TestClient(app)


class TestMeta:
    def test_healthz(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestAnalyze:
    """POST /api/analyze runs the engine on caller-supplied content"""

    def test_analyze_page(self, client, clean_html, strong_headers):
        response = client.post(
            "/api/analyze",
            json={"html": clean_html, "headers": strong_headers, "url": "https://acme.example/"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["privacyScore"] >= 90
        assert body["sslAnalysis"]["httpsEnabled"] is True

    def test_explicit_technologies(self, client):
        response = client.post(
            "/api/analyze",
            json={
                "html": "<p>hi</p>",
                "url": "https://acme.example/",
                "technologies": ["PHP", {"name": "jQuery", "version": "1.9.2"}],
            },
        )
        body = response.json()
        assert [tech["name"] for tech in body["technologies"]] == ["PHP", "jQuery"]
        assert body["siteContext"]["allowsFileUploads"] is True

    def test_empty_body_is_accepted(self, client):
        response = client.post("/api/analyze", json={})
        assert response.status_code == 200
        assert 0 <= response.json()["privacyScore"] <= 100


class TestScan:
    """POST /api/scan and the SSE stream delegate to run_scan"""

    def test_scan_success(self, client):
        report = {"meta": {"target": "https://acme.example/"}, "analysis": {}, "subdomains": []}
        with patch("scrapii.app.run_scan", return_value=report) as run:
            response = client.post(
                "/api/scan", json={"url": "https://acme.example", "include_subdomains": True}
            )
        assert response.status_code == 200
        assert response.json() == report
        assert run.call_args.kwargs["include_subdomains"] is True

    def test_scan_failure_is_400(self, client):
        with patch("scrapii.app.run_scan", side_effect=RuntimeError("Could not reach it")):
            response = client.post("/api/scan", json={"url": "https://down.example"})
        assert response.status_code == 400
        assert "Could not reach" in response.json()["detail"]

    def test_invalid_url_rejected(self, client):
        response = client.post("/api/scan", json={"url": "not a url"})
        assert response.status_code == 422

    def test_stream_emits_progress_and_report(self, client):
        def fake_run(url, progress_callback=None, include_subdomains=False):
            progress_callback({"type": "phase", "phase": "fetch", "progress": 5})
            return {"meta": {"target": url}}

        with patch("scrapii.app.run_scan", side_effect=fake_run):
            response = client.get("/api/scan/stream", params={"url": "https://acme.example"})
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        events = [line[len("data: "):] for line in response.text.splitlines() if line.startswith("data: ")]
        assert '"phase": "fetch"' in events[0]
        assert '"type": "report"' in events[-1]

    def test_stream_reports_errors(self, client):
        with patch("scrapii.app.run_scan", side_effect=RuntimeError("offline")):
            response = client.get("/api/scan/stream", params={"url": "https://acme.example"})
        assert '"type": "error"' in response.text
        assert "offline" in response.text
