"""Tests for the HTTP API."""

from __future__ import annotations

from pathlib import Path

import pytest

from navdoc.api import ApiRouter, merge_request_data, parse_endpoint
from navdoc.app import create_app
from navdoc.errors import MalformedInput, UnknownEndpoint
from navdoc.vcs import DisabledGateway


class TestParseEndpoint:
    def test_normalizes_case(self) -> None:
        assert parse_endpoint("nav/addItem/main") == ("Nav", "additem", ["main"])
        assert parse_endpoint("/DOC/Get/docs/a.md/") == ("Doc", "get", ["docs", "a.md"])

    def test_empty(self) -> None:
        with pytest.raises(UnknownEndpoint):
            parse_endpoint("")

    def test_missing_action(self) -> None:
        with pytest.raises(MalformedInput):
            parse_endpoint("nav")


def test_merge_request_data_later_sources_win() -> None:
    merged = merge_request_data({"a": "query", "b": "query"}, None, {"b": "json"})
    assert merged == {"a": "query", "b": "json"}


class TestRouting:
    def test_unknown_resource(self, client) -> None:
        response = client.get("/api/widget/get")
        assert response.status_code == 404
        body = response.get_json()
        assert body["success"] is False
        assert body["error"] == "Invalid resource: Widget. Valid resources are: Doc, Nav"
        assert body["code"] == "unknown_endpoint"

    def test_unknown_action(self, client) -> None:
        response = client.get("/api/nav/explode/main")
        assert response.status_code == 404
        assert response.get_json()["error"] == "Action 'explode' not found in resource 'Nav'"

    def test_no_endpoint(self, client) -> None:
        assert client.get("/api").status_code == 404
        assert client.get("/api/").status_code == 404

    def test_options_preflight(self, client) -> None:
        response = client.open("/api/nav/get/main", method="OPTIONS")
        assert response.status_code == 204
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert "DELETE" in response.headers["Access-Control-Allow-Methods"]
        allowed = [h.strip() for h in response.headers["Access-Control-Allow-Headers"].split(",")]
        assert {"Content-Type", "Authorization", "X-Author-Email"} <= set(allowed)

    def test_invalid_json_body(self, client) -> None:
        response = client.post("/api/nav/save/side", data="{not json", content_type="application/json")
        assert response.status_code == 400
        assert response.get_json()["code"] == "malformed_input"

    def test_health(self, client, content_root: Path) -> None:
        body = client.get("/health").get_json()
        assert body["status"] == "ok"
        assert body["vcs_enabled"] is True


class TestDocEndpoints:
    def test_save_get_list_delete(self, client, content_root: Path) -> None:
        saved = client.post("/api/doc/save/docs/guide/a.md", json={"content": "# A\n", "commit_message": "Add A"})
        assert saved.status_code == 200
        assert saved.get_json()["data"]["commit"]["message"] == "Add A"

        fetched = client.get("/api/doc/get/docs/guide/a.md").get_json()["data"]
        assert fetched["content"] == "# A\n"

        listed = client.get("/api/doc/list").get_json()["data"]
        assert [entry["path"] for entry in listed] == ["docs/guide/a.md"]

        deleted = client.delete("/api/doc/delete/docs/guide/a.md")
        assert deleted.status_code == 200
        assert not (content_root / "docs" / "guide" / "a.md").exists()

    def test_form_body(self, client, content_root: Path) -> None:
        response = client.post("/api/doc/save/docs/a.md", data={"content": "from form"})
        assert response.status_code == 200
        assert (content_root / "docs" / "a.md").read_text(encoding="utf-8") == "from form"

    def test_traversal_is_rejected(self, client) -> None:
        response = client.get("/api/doc/get/docs/../nav/main.json")
        assert response.status_code == 400
        assert response.get_json()["code"] == "invalid_path"

    def test_missing_document(self, client) -> None:
        response = client.get("/api/doc/get/docs/missing.md")
        assert response.status_code == 404
        assert response.get_json()["error"] == "Document not found: docs/missing.md"

    def test_history_version_compare(self, client) -> None:
        first = client.post("/api/doc/save/docs/a.md", json={"content": "one\n"}).get_json()["data"]["commit"]["hash"]
        second = client.post("/api/doc/save/docs/a.md", json={"content": "two\n"}).get_json()["data"]["commit"]["hash"]

        history = client.get("/api/doc/history/docs/a.md?limit=1").get_json()["data"]
        assert history["path"] == "docs/a.md"
        assert [entry["hash"] for entry in history["history"]] == [second]

        version = client.get(f"/api/doc/version/docs/a.md/{first}").get_json()["data"]
        assert version["content"] == "one\n"

        compare = client.get(f"/api/doc/compare/docs/a.md/{first}/{second}").get_json()["data"]
        assert "+two" in compare["diff"].splitlines()

    def test_author_from_basic_auth(self, client, memory_gateway) -> None:
        client.post(
            "/api/doc/save/docs/a.md",
            json={"content": "x"},
            auth=("carol", "secret"),
            headers={"X-Author-Email": "carol@example.com"},
        )
        assert memory_gateway.commits[-1]["author"] == "carol"
        assert memory_gateway.commits[-1]["email"] == "carol@example.com"
        assert memory_gateway.commits[-1]["message"].endswith("[via API by carol]")

    def test_bad_limit(self, client) -> None:
        response = client.get("/api/doc/history/docs/a.md?limit=lots")
        assert response.status_code == 400


class TestNavEndpoints:
    def test_item_lifecycle(self, client) -> None:
        assert client.post("/api/nav/save/test", json={"content": [{"title": "Home"}]}).status_code == 200

        added = client.post(
            "/api/nav/addItem/test",
            json={"item": {"title": "Docs"}, "parent_path": "Home", "position": 0},
        ).get_json()["data"]
        assert added["content"] == [{"title": "Home", "children": [{"title": "Docs"}]}]

        found = client.get("/api/nav/item/test/Home/Docs").get_json()["data"]
        assert found["item"] == {"title": "Docs"}

        updated = client.post("/api/nav/updateItem/test/Home/Docs", json={"updates": {"path": "docs/d.md"}})
        assert updated.get_json()["data"]["content"][0]["children"][0] == {"title": "Docs", "path": "docs/d.md"}

        removed = client.post("/api/nav/removeItem/test", json={"item_path": "Home/Docs"}).get_json()["data"]
        assert removed["content"] == [{"title": "Home"}]

    def test_list_history_delete(self, client) -> None:
        client.post("/api/nav/save/main", json={"content": {"sidemenu": []}})
        client.post("/api/nav/save/side", json={"content": []})

        assert [entry["name"] for entry in client.get("/api/nav/list").get_json()["data"]] == ["main", "side"]

        history = client.get("/api/nav/history/main.json").get_json()["data"]
        assert history["name"] == "main"
        assert len(history["history"]) == 1

        assert client.delete("/api/nav/delete/side").status_code == 200
        assert client.get("/api/nav/get/side").status_code == 404

    def test_version_and_compare(self, client) -> None:
        first = client.post("/api/nav/save/side", json={"content": [{"title": "A"}]}).get_json()["data"]["commit"]["hash"]
        second = client.post("/api/nav/save/side", json={"content": [{"title": "B"}]}).get_json()["data"]["commit"]["hash"]

        version = client.get(f"/api/nav/version/side/{first}").get_json()["data"]
        assert version["content"] == [{"title": "A"}]

        compare = client.get("/api/nav/compare/side", query_string={"from": first, "to": second})
        assert compare.status_code == 200
        assert compare.get_json()["data"]["diff"]

    @pytest.mark.parametrize(
        ("endpoint", "payload", "code"),
        [
            ("/api/nav/updateItem/test/Home/child", {"updates": {"title": "x"}}, "path_segment_not_found"),
            ("/api/nav/removeItem/test/Nope", {}, "target_not_found"),
            ("/api/nav/addItem/test", {"item": {"title": "x"}, "parent_path": "Nope"}, "parent_not_found"),
        ],
    )
    def test_addressing_errors(self, client, endpoint: str, payload: dict, code: str) -> None:
        client.post("/api/nav/save/test", json={"content": [{"title": "Home"}]})
        response = client.post(endpoint, json=payload)
        assert response.status_code == 404
        assert response.get_json()["code"] == code

    def test_item_path_required(self, client) -> None:
        client.post("/api/nav/save/test", json={"content": []})
        response = client.post("/api/nav/removeItem/test", json={})
        assert response.status_code == 400


class TestDiagnostics:
    def test_git_status_reports_backend(self, client) -> None:
        body = client.get("/api/diagnostic/git").get_json()["data"]
        assert body["backend"] == "memory"
        assert body["enabled"] is True


class TestDegradedMode:
    @pytest.fixture
    def degraded_client(self, settings):
        app = create_app(settings, DisabledGateway("git not installed"))
        return app.test_client()

    def test_save_and_history_without_version_control(self, degraded_client) -> None:
        saved = degraded_client.post("/api/doc/save/docs/a.md", json={"content": "x"}).get_json()
        assert saved["success"] is True
        assert saved["data"]["commit"] is None

        history = degraded_client.get("/api/doc/history/docs/a.md").get_json()["data"]
        assert history["history"] == []

    def test_router_dispatch_directly(self, settings) -> None:
        app = create_app(settings, DisabledGateway())
        router: ApiRouter = app.extensions["navdoc"]
        assert router.dispatch("nav/list") == []
