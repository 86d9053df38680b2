from pathlib import Path
import json
import textwrap

from rich.console import Console
from typer.testing import CliRunner

from contractproxy.cli import app

runner = CliRunner()


def write(p: Path, s: str) -> None:
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(textwrap.dedent(s), encoding="utf-8")


GOOD = """
    from contractproxy.contracts.annotations import ApiContract, api_route, api_timeout, http_get, http_post
    from contractproxy.contracts.files import FormFile

    @api_route(region_key="main", route_template="api")
    class FilesApi(ApiContract):
        @api_timeout(10)
        @http_get("files/{id}")
        def get(self, id: int): ...

        @http_post("files")
        def upload(self, file: FormFile): ...
    """

BAD = """
    from contractproxy.contracts.annotations import ApiContract, api_route

    @api_route(region_key=" ")
    class BrokenApi(ApiContract):
        def ping(self): ...
    """


def test_check_reports_success(tmp_path: Path, monkeypatch):
    write(tmp_path / "cli_contracts_good_a.py", GOOD)
    monkeypatch.syspath_prepend(str(tmp_path))

    result = runner.invoke(app, ["check", "cli_contracts_good_a"])
    assert result.exit_code == 0, result.output
    assert "1 contract(s), 2 operation(s)" in result.output


def test_check_reports_compilation_error(tmp_path: Path, monkeypatch):
    write(tmp_path / "cli_contracts_bad.py", BAD)
    monkeypatch.syspath_prepend(str(tmp_path))

    result = runner.invoke(app, ["check", "cli_contracts_bad"])
    assert result.exit_code == 1
    assert "MissingRegionKey" in result.output


def test_check_reports_load_error():
    result = runner.invoke(app, ["check", "cli_contracts_missing_module"])
    assert result.exit_code == 2
    assert "load error" in result.output


def test_describe_json(tmp_path: Path, monkeypatch):
    write(tmp_path / "cli_contracts_good_b.py", GOOD)
    monkeypatch.syspath_prepend(str(tmp_path))

    result = runner.invoke(app, ["describe", "cli_contracts_good_b", "--format", "json"])
    assert result.exit_code == 0, result.output

    payload = json.loads(result.output)
    contract = payload["contracts"][0]
    assert contract["route"] == "api/Files"

    methods = {m["name"]: m for m in contract["methods"]}
    assert methods["get"]["timeout"] == 10.0
    assert methods["get"]["template_parameter_keys"] == ["id"]
    assert methods["upload"]["content_type"] == "multipart/form-data"


def test_describe_table_filters_by_contract(tmp_path: Path, monkeypatch):
    write(tmp_path / "cli_contracts_good_c.py", GOOD)
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.setattr("contractproxy.cli.console", Console(width=200))

    result = runner.invoke(app, ["describe", "cli_contracts_good_c"])
    assert result.exit_code == 0, result.output
    assert "FilesApi" in result.output
    assert "multipart/form-data" in result.output

    result = runner.invoke(app, ["describe", "cli_contracts_good_c", "--contract", "OtherApi"])
    assert result.exit_code == 0
    assert "FilesApi" not in result.output


def test_describe_rejects_unknown_format(tmp_path: Path, monkeypatch):
    write(tmp_path / "cli_contracts_good_d.py", GOOD)
    monkeypatch.syspath_prepend(str(tmp_path))

    result = runner.invoke(app, ["describe", "cli_contracts_good_d", "--format", "yaml"])
    assert result.exit_code != 0
