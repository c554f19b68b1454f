import json
from datetime import datetime, timezone

import httpx
import pytest

from report_ai.domain.exceptions import StorageError
from report_ai.storage.fallback_store import FallbackReportStore
from report_ai.storage.models import ReportCreate, ReportStatus, ReportUpdate
from report_ai.storage.remote_store import RemoteReportStore
from report_ai.storage.sqlite_store import SQLiteReportStore

pytestmark = [pytest.mark.integration, pytest.mark.asyncio]

BASE_URL = "https://project.db.test"
NOW = datetime(2024, 5, 1, tzinfo=timezone.utc)


def _row(report_id: str = "3f1c", title: str = "Remote") -> dict:
    return {
        "id": report_id,
        "title": title,
        "content": {"markdown": "# Remote"},
        "status": "draft",
        "owner_id": "owner",
        "tags": ["trend"],
        "metadata": {},
        "view_count": 0,
        "download_count": 0,
        "created_at": "2024-05-01T00:00:00+00:00",
        "updated_at": "2024-05-01T00:00:00+00:00",
    }


def _store(handler) -> RemoteReportStore:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return RemoteReportStore(client, BASE_URL, "anon-key", clock=lambda: NOW)


async def test_create_posts_payload_with_auth_headers():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["request"] = request
        captured["body"] = json.loads(request.content)
        return httpx.Response(201, json=[_row()])

    report = await _store(handler).create(ReportCreate(title="Remote", tags=["trend"]))

    sent = captured["request"]
    assert sent.method == "POST"
    assert str(sent.url) == f"{BASE_URL}/rest/v1/reports"
    assert sent.headers["apikey"] == "anon-key"
    assert sent.headers["authorization"] == "Bearer anon-key"
    assert sent.headers["prefer"] == "return=representation"
    assert captured["body"]["title"] == "Remote"
    assert report.id == "3f1c"
    assert report.status is ReportStatus.DRAFT


async def test_get_and_list_use_query_filters():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.params)
        if "id" in request.url.params:
            return httpx.Response(200, json=[])
        return httpx.Response(200, json=[_row("b", "Newer"), _row("a", "Older")])

    store = _store(handler)

    assert await store.get("missing") is None
    reports = await store.list(page=2, page_size=2)

    assert seen[0]["id"] == "eq.missing"
    assert seen[1]["order"] == "created_at.desc"
    assert seen[1]["limit"] == "2"
    assert seen[1]["offset"] == "2"
    assert [report.title for report in reports] == ["Newer", "Older"]


async def test_update_sends_only_changed_fields():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=[{**_row(), "status": "published"}])

    report = await _store(handler).update("3f1c", ReportUpdate(status=ReportStatus.PUBLISHED))

    assert captured["method"] == "PATCH"
    assert captured["body"] == {"status": "published", "updated_at": NOW.isoformat()}
    assert report.status is ReportStatus.PUBLISHED


async def test_delete_reports_whether_a_row_was_removed():
    responses = iter([httpx.Response(200, json=[_row()]), httpx.Response(204)])
    store = _store(lambda request: next(responses))

    assert await store.delete("3f1c") is True
    assert await store.delete("3f1c") is False


async def test_error_status_becomes_storage_error():
    store = _store(lambda request: httpx.Response(503))
    with pytest.raises(StorageError) as exc_info:
        await store.get("3f1c")
    assert exc_info.value.context["status_code"] == 503


async def test_unreachable_remote_falls_back_to_local_store(tmp_path):
    attempts = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("offline", request=request)

    combined = FallbackReportStore(_store(handler), SQLiteReportStore(tmp_path / "local.db"))

    report = await combined.create(ReportCreate(title="Saved offline"))

    assert report.id == "local_report_1"
    assert len(attempts) == 2
