from __future__ import annotations

import httpx
import pytest
import typer
from typer.testing import CliRunner

import cli.main as cli_main
from adapters.http_client import build_async_client

runner = CliRunner()


@pytest.fixture
def session_file(monkeypatch: pytest.MonkeyPatch, tmp_path):
    path = tmp_path / "session.json"
    monkeypatch.setenv("CONSOLE_SYNC_SESSION_PATH", str(path))
    monkeypatch.setenv("CONSOLE_SYNC_API_BASE_URL", "https://api.test/api/")
    return path


@pytest.fixture
def mocked_api(monkeypatch: pytest.MonkeyPatch, api):
    monkeypatch.setattr(
        cli_main,
        "build_async_client",
        lambda settings: build_async_client(settings, transport=api.transport),
    )
    return api


def test_help_lists_commands() -> None:
    result = runner.invoke(cli_main.app, ["--help"])

    assert result.exit_code == 0
    for command in ("list", "create", "update", "delete", "session", "orgs", "doctor"):
        assert command in result.stdout


def test_parse_fields_keeps_json_types() -> None:
    fields = cli_main.parse_fields(["name=Acme Corp", "status=1", "active=true", "note=a=b"])

    assert fields == {"name": "Acme Corp", "status": 1, "active": True, "note": "a=b"}
    with pytest.raises(typer.BadParameter):
        cli_main.parse_fields(["oops"])


def test_session_token_round_trip(session_file) -> None:
    assert runner.invoke(cli_main.app, ["session", "set-token", "abcdefghijkl"]).exit_code == 0

    shown = runner.invoke(cli_main.app, ["session", "show"])
    assert "accessToken" in shown.stdout
    assert "abcdefghijkl" not in shown.stdout

    assert runner.invoke(cli_main.app, ["session", "clear"]).exit_code == 0
    assert "accessToken" not in session_file.read_text(encoding="utf-8")


def test_list_filters_by_search(session_file, mocked_api) -> None:
    mocked_api.on(
        "GET",
        "Organization/GetAll-organizations",
        [{"id": 1, "name": "Acme Corp"}, {"id": 2, "name": "Beta"}],
    )
    runner.invoke(cli_main.app, ["session", "set-token", "abc"])

    result = runner.invoke(cli_main.app, ["list", "organizations", "--search", "acme"])

    assert result.exit_code == 0
    assert "Acme Corp" in result.stdout
    assert "Beta" not in result.stdout
    assert mocked_api.requests[0].headers["Authorization"] == "Bearer abc"


def test_list_without_token_fails(session_file, mocked_api) -> None:
    result = runner.invoke(cli_main.app, ["list", "organizations"])

    assert result.exit_code == 1
    assert "Access token is missing" in result.stdout
    assert mocked_api.requests == []


def test_delete_with_yes_skips_prompt(session_file, mocked_api) -> None:
    mocked_api.on("GET", "Organization/GetAll-organizations", [{"id": 1, "name": "Acme Corp"}])
    mocked_api.on("DELETE", "Organization/1", lambda request: httpx.Response(200))
    runner.invoke(cli_main.app, ["session", "set-token", "abc"])

    result = runner.invoke(cli_main.app, ["delete", "organizations", "1", "--yes"])

    assert result.exit_code == 0
    assert "Organization deleted successfully." in result.stdout


def test_orgs_select_persists_exact_match(session_file, mocked_api) -> None:
    mocked_api.on(
        "GET",
        "Organization/GetAll-organizations",
        [{"id": 1, "name": "Acme Corp"}, {"id": 2, "name": "Beta"}],
    )
    runner.invoke(cli_main.app, ["session", "set-token", "abc"])

    result = runner.invoke(cli_main.app, ["orgs", "select", "acme corp", "--source", "organizations"])

    assert result.exit_code == 0
    current = runner.invoke(cli_main.app, ["orgs", "current"])
    assert "Acme Corp" in current.stdout


def test_unknown_resource_is_a_usage_error(session_file) -> None:
    result = runner.invoke(cli_main.app, ["list", "widgets"])

    assert result.exit_code == 2


def test_list_products_sends_category_filter(session_file, mocked_api) -> None:
    mocked_api.on("GET", "Organization/GetAll-organizations", [{"id": 42, "name": "Acme Corp"}])
    mocked_api.on("GET", "Product/get-category", [{"id": 3, "name": "Drinks"}])
    mocked_api.on("GET", "Product/get-productlist", [{"id": 7, "name": "Cola", "categoryId": 3}])
    runner.invoke(cli_main.app, ["session", "set-token", "abc"])
    runner.invoke(cli_main.app, ["orgs", "select", "acme corp", "--source", "organizations"])

    result = runner.invoke(cli_main.app, ["list", "products", "--filter", "CategoryIndex=3"])

    assert result.exit_code == 0
    assert "Cola" in result.stdout
    (products_call,) = mocked_api.calls("GET", "Product/get-productlist")
    assert products_call.url.params["Organization"] == "42"
    assert products_call.url.params["CategoryIndex"] == "3"


def test_list_rejects_unknown_filter(session_file, mocked_api) -> None:
    runner.invoke(cli_main.app, ["session", "set-token", "abc"])

    result = runner.invoke(cli_main.app, ["list", "organizations", "--filter", "Colour=red"])

    assert result.exit_code == 2
    assert mocked_api.requests == []
