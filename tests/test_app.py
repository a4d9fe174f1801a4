"""CLI tests driven through typer's CliRunner against a mock GitHub."""

from __future__ import annotations

import json

import httpx
import pytest
from typer.testing import CliRunner

from conftest import BASE_URL, Recorder
from ghstubs import __version__
from ghstubs.app import app
from ghstubs.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_INVALID_USAGE,
    EXIT_NOT_FOUND,
)
from ghstubs.factory import ServiceFactory


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _github(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/users/octocat":
        return httpx.Response(
            200,
            json={"login": "octocat", "id": 1},
            headers={"Cache-Control": "private, max-age=60", "ETag": '"u1"'},
        )
    if path == "/search/repositories":
        return httpx.Response(
            200,
            json={"total_count": 3, "items": [{"id": 1}, {"id": 2}]},
            headers={
                "Link": f'<{BASE_URL}/search/repositories?q=x&page=2>; rel="next", '
                f'<{BASE_URL}/search/repositories?q=x&page=2>; rel="last"'
            },
        )
    if path == "/user":
        return httpx.Response(401, json={"message": "Requires authentication"})
    if path.startswith("/user/starred/"):
        return httpx.Response(204)
    return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def github(factory: ServiceFactory, recorder: Recorder) -> Recorder:
    recorder.responder = _github
    return recorder


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"ghstubs {__version__}" in result.output

    def test_no_args_shows_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, [])
        assert "call" in result.output
        assert "services" in result.output


# ---------------------------------------------------------------------------
# call
# ---------------------------------------------------------------------------


class TestCall:
    def test_prints_json_body(self, runner: CliRunner, github: Recorder) -> None:
        result = runner.invoke(app, ["--json", "-q", "call", "users", "get_user", "username=octocat"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"login": "octocat", "id": 1}

    def test_plain_output(self, runner: CliRunner, github: Recorder) -> None:
        result = runner.invoke(app, ["--plain", "call", "users", "get_user", "username=octocat"])
        assert result.exit_code == 0, result.output
        assert "login\toctocat" in result.stdout

    def test_stub_options(self, runner: CliRunner, github: Recorder) -> None:
        result = runner.invoke(
            app,
            [
                "--json", "-q", "call", "search", "search_repositories", "q=x",
                "--page-size", "2", "--token", "tok", "--accept", "application/json",
            ],
        )
        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == [{"id": 1}, {"id": 2}]
        request = github.last
        assert request.url.params["per_page"] == "2"
        assert request.headers["authorization"] == "Token tok"
        assert request.headers["accept"] == "application/json"

    def test_next_page_hint(self, runner: CliRunner, github: Recorder) -> None:
        result = runner.invoke(app, ["--plain", "call", "search", "search_repositories", "q=x"])
        assert result.exit_code == 0, result.output
        assert "Next page: 2" in result.output

    def test_second_call_uses_cache(self, runner: CliRunner, github: Recorder) -> None:
        args = ["--json", "-q", "call", "users", "get_user", "username=octocat"]
        runner.invoke(app, args)
        runner.invoke(app, args)
        assert len(github.requests) == 1

    def test_no_cache(self, runner: CliRunner, github: Recorder) -> None:
        args = ["--json", "-q", "call", "users", "get_user", "username=octocat"]
        runner.invoke(app, args)
        runner.invoke(app, args + ["--no-cache"])
        assert len(github.requests) == 2
        assert github.last.headers["cache-control"] == "no-cache"

    def test_empty_body(self, runner: CliRunner, github: Recorder) -> None:
        result = runner.invoke(
            app, ["--plain", "call", "repos", "star_repository", "owner=octo", "repo=hello"]
        )
        assert result.exit_code == 0, result.output
        assert github.last.method == "PUT"
        assert "HTTP 204" in result.output

    def test_body_option(self, runner: CliRunner, github: Recorder) -> None:
        runner.invoke(
            app,
            [
                "call", "issues", "create_issue", "owner=octo", "repo=hello",
                "--body", '{"title": "bug"}',
            ],
        )
        assert github.last.method == "POST"
        assert json.loads(github.last.content) == {"title": "bug"}

    def test_not_found_exit_code(self, runner: CliRunner, github: Recorder) -> None:
        result = runner.invoke(app, ["call", "users", "get_user", "username=ghost"])
        assert result.exit_code == EXIT_NOT_FOUND
        assert "HTTP 404: Not Found" in result.output

    def test_auth_exit_code(self, runner: CliRunner, github: Recorder) -> None:
        result = runner.invoke(app, ["call", "users", "get_authenticated_user"])
        assert result.exit_code == EXIT_AUTH_FAILURE

    def test_connection_error(self, runner: CliRunner, github: Recorder) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("no route", request=request)

        github.responder = fail
        result = runner.invoke(app, ["call", "users", "get_user", "username=octocat"])
        assert result.exit_code == EXIT_CONNECTION_ERROR
        assert "no route" in result.output

    @pytest.mark.parametrize(
        "args",
        [
            ["call", "gists", "list"],
            ["call", "users", "delete_everything"],
            ["call", "users", "get_user", "octocat"],
            ["call", "users", "get_user"],
            ["call", "users", "get_user", "username=octocat", "--page-size", "0"],
            ["call", "issues", "create_issue", "owner=o", "repo=r", "--body", "{bad"],
        ],
        ids=["service", "method", "pair", "missing-arg", "page-size", "body"],
    )
    def test_invalid_usage(self, runner: CliRunner, github: Recorder, args: list[str]) -> None:
        result = runner.invoke(app, args)
        assert result.exit_code == EXIT_INVALID_USAGE, result.output
        assert github.requests == []


# ---------------------------------------------------------------------------
# Other commands
# ---------------------------------------------------------------------------


class TestServices:
    def test_lists_endpoints(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--json", "services"])
        assert result.exit_code == 0, result.output
        rows = json.loads(result.stdout)
        row = next(r for r in rows if r["method"] == "get_user")
        assert row["service"] == "users"
        assert row["endpoint"] == "GET /users/{username}"
        assert {r["service"] for r in rows} == {"users", "repos", "issues", "search"}


class TestVisited:
    def test_lists_urls(self, runner: CliRunner, github: Recorder) -> None:
        runner.invoke(app, ["-q", "call", "users", "get_user", "username=octocat"])
        result = runner.invoke(app, ["visited"])
        assert result.exit_code == 0
        assert result.stdout.strip() == f"{BASE_URL}/users/octocat"


class TestCacheCommands:
    def test_stats(self, runner: CliRunner, github: Recorder) -> None:
        runner.invoke(app, ["-q", "call", "users", "get_user", "username=octocat"])
        result = runner.invoke(app, ["--json", "cache", "stats"])
        assert result.exit_code == 0, result.output
        stats = {r["key"]: r["value"] for r in json.loads(result.stdout)}
        assert stats["max_size_bytes"] == str(20 * 1024 * 1024)
        assert int(stats["size_bytes"]) > 0
        assert stats["database"].endswith("hishel_cache.db")

    def test_clear(self, runner: CliRunner, github: Recorder) -> None:
        runner.invoke(app, ["-q", "call", "users", "get_user", "username=octocat"])
        result = runner.invoke(app, ["--plain", "cache", "clear"])
        assert result.exit_code == 0
        assert "Cleared the response cache." in result.output
        runner.invoke(app, ["-q", "call", "users", "get_user", "username=octocat"])
        assert len(github.requests) == 2

    def test_disabled(self, runner: CliRunner, settings, recorder: Recorder) -> None:
        from ghstubs.factory import init_client

        init_client(
            settings.model_copy(update={"cache": settings.cache.model_copy(update={"enabled": False})}),
            transport=httpx.MockTransport(recorder),
        )
        result = runner.invoke(app, ["cache", "stats"])
        assert result.exit_code == 0
        assert "disabled" in result.output


class TestInitialization:
    def test_initializes_from_settings(self, runner: CliRunner, isolated_config) -> None:
        from ghstubs.factory import get_factory

        result = runner.invoke(app, ["--base-url", "https://ghe.test/api/v3", "--debug", "visited"])
        assert result.exit_code == 0, result.output
        settings = get_factory().settings
        assert settings.base_url == "https://ghe.test/api/v3"
        assert settings.debug is True


class TestMain:
    def test_crash_log(self, isolated_config, monkeypatch: pytest.MonkeyPatch) -> None:
        import ghstubs.app as app_module

        def explode() -> None:
            raise RuntimeError("kaboom")

        monkeypatch.setattr(app_module, "_setup_signal_handlers", lambda: None)
        monkeypatch.setattr(app_module, "app", explode)
        with pytest.raises(SystemExit) as excinfo:
            app_module.main()
        assert excinfo.value.code == 1
        logs = list((isolated_config / "data" / "ghstubs" / "logs").glob("crash-*.log"))
        assert len(logs) == 1
        assert "kaboom" in logs[0].read_text()

    def test_known_error_exit_code(self, isolated_config, monkeypatch: pytest.MonkeyPatch) -> None:
        import ghstubs.app as app_module
        from ghstubs.exceptions import NotFoundError

        def missing() -> None:
            raise NotFoundError("gone")

        monkeypatch.setattr(app_module, "_setup_signal_handlers", lambda: None)
        monkeypatch.setattr(app_module, "app", missing)
        with pytest.raises(SystemExit) as excinfo:
            app_module.main()
        assert excinfo.value.code == EXIT_NOT_FOUND
