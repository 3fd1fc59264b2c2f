import io
import json
import re
import zipfile
from pathlib import Path

import pytest

from cli import index_server
from cli.index_server import run
from wheelhouse.config import ConfigError, ServerConfig


def _write_wheel(directory: Path, file_name: str, name: str, version: str) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / file_name
    with zipfile.ZipFile(path, "w") as archive:
        archive.writestr(
            f"{name}-{version}.dist-info/METADATA",
            f"Metadata-Version: 2.1\nName: {name}\nVersion: {version}\n",
        )
    return path


def _strip_ansi(text: str) -> str:
    return re.sub(r"\x1b\[[0-9;]*m", "", text)


def test_cli_001_scan_json_prints_index_and_failures(tmp_path: Path) -> None:
    wheel = _write_wheel(tmp_path, "foo_bar-1.0-py3-none-any.whl", "Foo-Bar", "1.0")
    (tmp_path / "broken-1.0-py3-none-any.whl").write_bytes(b"broken")
    stdout = io.StringIO()
    stderr = io.StringIO()

    exit_code = run(
        ["scan", str(tmp_path), "--format", "json"], stdout=stdout, stderr=stderr
    )

    assert exit_code == 0
    payload = json.loads(_strip_ansi(stdout.getvalue()))
    assert payload["generation"] == 1
    assert payload["status"] == "completed_with_errors"
    assert payload["projects"] == [
        {
            "normalized_name": "foo_bar",
            "canonical_name": "Foo-Bar",
            "files": [str(wheel)],
        }
    ]
    assert payload["failures"][0]["kind"] == "malformed_archive"
    assert "artifact_error: malformed_archive" in stderr.getvalue()


def test_cli_002_scan_table_lists_projects(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("COLUMNS", "200")
    _write_wheel(tmp_path, "demo-1.0-py3-none-any.whl", "demo", "1.0")
    stdout = io.StringIO()

    exit_code = run(["scan", str(tmp_path)], stdout=stdout, stderr=io.StringIO())

    assert exit_code == 0
    text = _strip_ansi(stdout.getvalue())
    assert "normalized_name" in text
    assert "demo-1.0-py3-none-any.whl" in text


def test_cli_003_scan_missing_directory_returns_2(tmp_path: Path) -> None:
    stderr = io.StringIO()

    exit_code = run(["scan", str(tmp_path / "missing")], stdout=io.StringIO(), stderr=stderr)

    assert exit_code == 2
    assert "not readable" in stderr.getvalue()


def test_cli_004_invalid_arguments_return_2(tmp_path: Path) -> None:
    assert run(["unknown"], stdout=io.StringIO(), stderr=io.StringIO()) == 2
    assert (
        run(
            ["serve", str(tmp_path), "--port", "0"],
            stdout=io.StringIO(),
            stderr=io.StringIO(),
        )
        == 2
    )
    assert (
        run(
            ["serve", str(tmp_path), "--interval", "-1"],
            stdout=io.StringIO(),
            stderr=io.StringIO(),
        )
        == 2
    )


def test_cli_005_serve_passes_validated_config(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    received: list[ServerConfig] = []
    monkeypatch.setattr(index_server, "serve", received.append)

    exit_code = run(
        ["serve", str(tmp_path), "--port", "8080", "--host", "127.0.0.1", "--interval", "5"],
        stdout=io.StringIO(),
        stderr=io.StringIO(),
    )

    assert exit_code == 0
    assert received == [
        ServerConfig(
            package_dir=tmp_path,
            host="127.0.0.1",
            port=8080,
            rebuild_interval_seconds=5.0,
        )
    ]


def test_cli_006_serve_runs_worker_and_shuts_down_cleanly(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    _write_wheel(tmp_path, "demo-1.0-py3-none-any.whl", "demo", "1.0")
    calls: list[dict[str, object]] = []

    def _fake_uvicorn_run(app: object, **kwargs: object) -> None:
        calls.append(kwargs)

    monkeypatch.setattr(index_server.uvicorn, "run", _fake_uvicorn_run)

    index_server.serve(ServerConfig(package_dir=tmp_path, port=8081))

    assert calls == [{"host": "0.0.0.0", "port": 8081, "log_config": None}]


def test_cli_007_config_validation_rejects_bad_extension(tmp_path: Path) -> None:
    with pytest.raises(ConfigError):
        ServerConfig(package_dir=tmp_path, extension="whl").validate()
    assert ServerConfig(package_dir=tmp_path).validate().port == 80
