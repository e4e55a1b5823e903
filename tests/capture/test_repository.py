"""Tests for the captured response repository."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
import json
from pathlib import Path

from laradoc.commands.capture.repository import SOURCE, CapturedResponseRepository
from tests.conftest import make_context


class TestCapturedResponseRepository:
    def setup_method(self) -> None:
        self.now = datetime.now(timezone.utc)

    def _repository(self, tmp_path: Path) -> CapturedResponseRepository:
        return CapturedResponseRepository(tmp_path / "responses")

    def test_store_and_read(self, tmp_path: Path) -> None:
        repository = self._repository(tmp_path)
        path = repository.store_capture("api/users/{user}", "get", 200, response={"id": 1})
        assert path.name == "GET_api_users_user.json"
        assert repository.exists("api/users/{user}", "GET")
        exchanges = repository.get_for_route("api/users/{user}", "GET")
        assert exchanges is not None
        assert exchanges[200].response == {"id": 1}

    def test_statuses_accumulate_and_replace(self, tmp_path: Path) -> None:
        repository = self._repository(tmp_path)
        repository.store_capture("api/users", "GET", 200, response=[1])
        repository.store_capture("api/users", "GET", 401, response={"message": "Unauthenticated."})
        repository.store_capture("api/users", "GET", 200, response=[2])
        exchanges = repository.get_for_route("api/users", "GET")
        assert exchanges is not None
        assert sorted(exchanges) == [200, 401]
        assert exchanges[200].response == [2]

    def test_sensitive_values_are_redacted(self, tmp_path: Path) -> None:
        repository = self._repository(tmp_path)
        path = repository.store_capture(
            "api/login", "POST", 200,
            response={"token": "abc"},
            request_body={"email": "a@b.c", "password": "x"},
            headers={"Authorization": "Bearer abc"},
        )
        raw = path.read_text()
        assert "abc" not in raw
        stored = json.loads(raw)["200"]
        assert stored["request"]["body"] == {"email": "a@b.c", "password": "***REDACTED***"}

    def test_missing_or_unreadable(self, tmp_path: Path) -> None:
        repository = self._repository(tmp_path)
        assert repository.get_for_route("api/users", "GET") is None
        assert repository.get_all() == []
        repository.storage_path.mkdir()
        repository.path_for("GET", "api/users").write_text("{broken")
        assert repository.get_for_route("api/users", "GET") is None

    def test_get_all_and_statistics(self, tmp_path: Path) -> None:
        repository = self._repository(tmp_path)
        repository.store_capture("api/users", "GET", 200, response=[])
        repository.store_capture("api/users", "POST", 201, response={})
        repository.store_capture("api/users", "POST", 422, response={})
        routes = repository.get_all()
        assert [(r.method, r.route, sorted(r.responses)) for r in routes] == [
            ("GET", "api_users", [200]),
            ("POST", "api_users", [201, 422]),
        ]
        assert repository.statistics() == {
            "total_routes": 2,
            "total_responses": 3,
            "by_method": {"GET": 1, "POST": 1},
            "by_status": {200: 1, 201: 1, 422: 1},
        }

    def test_delete_and_clear(self, tmp_path: Path) -> None:
        repository = self._repository(tmp_path)
        repository.store_capture("api/users", "GET", 200, response=[])
        repository.store_capture("api/posts", "GET", 200, response=[])
        assert repository.delete("api/users", "GET")
        assert not repository.delete("api/users", "GET")
        assert repository.clear_all() == 1
        assert repository.get_all() == []

    def test_is_stale(self, tmp_path: Path) -> None:
        repository = self._repository(tmp_path)
        assert repository.is_stale("api/users", "GET")
        repository.store_capture("api/users", "GET", 200, response=[], captured_at=self.now - timedelta(days=10))
        assert repository.is_stale("api/users", "GET")
        assert not repository.is_stale("api/users", "GET", max_age_days=30)
        repository.store_capture("api/users", "GET", 404, response={}, captured_at=self.now)
        assert not repository.is_stale("api/users", "GET")

    def test_captured_results(self, tmp_path: Path) -> None:
        repository = self._repository(tmp_path)
        repository.store_capture(
            "api/users", "POST", 201,
            response={"id": 5, "email": "ada@example.com"},
            request_body={"name": "Ada"},
            query={"notify": "true"},
            headers={"Location": "/api/users/5", "Content-Type": "application/json"},
        )
        repository.store_capture("api/users", "POST", 204)
        results = repository.captured_results(make_context(uri="api/users", method="POST"))

        assert results.request_body is not None
        assert results.request_body.examples == {"captured": {"name": "Ada"}}
        assert results.request_body.source == SOURCE
        created = results.responses[201]
        assert (created.schema.properties or {})["email"].format == "email"
        assert created.examples == {"captured": {"id": 5, "email": "ada@example.com"}}
        assert list(created.headers) == ["Location"]
        assert results.responses[204].schema is None
        (notify,) = results.query_parameters
        assert notify.name == "notify"
        assert notify.schema.type == "boolean"
        assert notify.example == "true"

    def test_no_captures(self, tmp_path: Path) -> None:
        results = self._repository(tmp_path).captured_results(make_context())
        assert results.request_body is None
        assert results.responses == {}
        assert results.query_parameters == []
