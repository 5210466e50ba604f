from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from envsensei.cli import app
from envsensei.config import CONFIG_FILE_NAME

runner = CliRunner()


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _settings(tmp_path: Path) -> list[str]:
    # Keep the real user settings file out of the tests.
    return ["--settings", str(tmp_path / "user-settings.json")]


def test_scan_fails_on_secret(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "db.ts", 'export const dbPassword = "hunter22";\n')
    result = runner.invoke(app, ["scan", str(tmp_path), *_settings(tmp_path)])
    assert result.exit_code == 1
    assert "DB_PASSWORD" in result.stdout
    assert "hunter22" not in result.stdout


def test_scan_config_only_passes_default_threshold(tmp_path: Path) -> None:
    _write(tmp_path / "client.ts", 'const baseUrl = "https://api.acme.io";\n')
    result = runner.invoke(app, ["scan", str(tmp_path), *_settings(tmp_path)])
    assert result.exit_code == 0

    result = runner.invoke(app, ["scan", str(tmp_path), "--fail-on", "warning", *_settings(tmp_path)])
    assert result.exit_code == 1


def test_scan_clean_tree(tmp_path: Path) -> None:
    _write(tmp_path / "app.ts", 'const title = "Dashboard";\n')
    result = runner.invoke(app, ["scan", str(tmp_path), *_settings(tmp_path)])
    assert result.exit_code == 0
    assert "No hardcoded" in result.stdout


def test_scan_json_output(tmp_path: Path) -> None:
    _write(tmp_path / "app.ts", 'const apiToken = "abc123";\nconst baseUrl = "https://api.acme.io";\n')
    result = runner.invoke(
        app, ["scan", str(tmp_path), "--format", "json", "--prefix", "web", *_settings(tmp_path)]
    )
    assert result.exit_code == 1
    assert "abc123" not in result.stdout
    payload = json.loads(result.stdout)
    assert payload["summary"] == {"files": 1, "total": 2, "secret": 1, "config": 1}
    detections = payload["files"][0]["detections"]
    assert [d["proposed_env_var_name"] for d in detections] == ["WEB_API_TOKEN", "WEB_BASE_URL"]
    assert [d["severity"] for d in detections] == ["error", "warning"]


def test_scan_sarif_to_file(tmp_path: Path) -> None:
    _write(tmp_path / "app.ts", 'const apiToken = "abc123";\n')
    out = tmp_path / "reports" / "envsensei.sarif"
    result = runner.invoke(
        app, ["scan", str(tmp_path), "--format", "sarif", "--out", str(out), *_settings(tmp_path)]
    )
    assert result.exit_code == 1
    payload = json.loads(out.read_text(encoding="utf-8"))
    assert payload["runs"][0]["results"][0]["ruleId"] == "key-based"


def test_scan_ignore_word_flag_and_project_file(tmp_path: Path) -> None:
    _write(tmp_path / "app.ts", 'const apiToken = "abc123";\n')
    result = runner.invoke(
        app, ["scan", str(tmp_path), "--ignore-word", "apitoken", *_settings(tmp_path)]
    )
    assert result.exit_code == 0

    _write(tmp_path / CONFIG_FILE_NAME, json.dumps({"ignoredWords": ["apiToken"]}))
    result = runner.invoke(app, ["scan", str(tmp_path), *_settings(tmp_path)])
    assert result.exit_code == 0


def test_scan_rejects_unknown_format(tmp_path: Path) -> None:
    result = runner.invoke(app, ["scan", str(tmp_path), "--format", "xml", *_settings(tmp_path)])
    assert result.exit_code != 0


def test_fix_rewrites_file_and_manifest(tmp_path: Path) -> None:
    source = _write(
        tmp_path / "src" / "db.ts",
        'export const dbPassword = "hunter22";\nexport const baseUrl = "https://api.acme.io";\n',
    )
    _write(tmp_path / ".env.example", "EXISTING=1\n")

    result = runner.invoke(app, ["fix", str(source), "--root", str(tmp_path), *_settings(tmp_path)])
    assert result.exit_code == 0
    assert source.read_text(encoding="utf-8") == (
        "export const dbPassword = process.env.DB_PASSWORD;\n"
        "export const baseUrl = process.env.BASE_URL;\n"
    )
    manifest = (tmp_path / ".env.example").read_text(encoding="utf-8")
    assert manifest == "EXISTING=1\nDB_PASSWORD=__REQUIRED__\nBASE_URL=__SET_ME__\n"
    assert "hunter22" not in result.stdout


def test_fix_dry_run_writes_nothing(tmp_path: Path) -> None:
    original = 'const apiToken = "abc123";\n'
    source = _write(tmp_path / "app.ts", original)
    result = runner.invoke(app, ["fix", str(source), "--dry-run", *_settings(tmp_path)])
    assert result.exit_code == 0
    assert source.read_text(encoding="utf-8") == original
    assert not (tmp_path / ".env.example").exists()


def test_fix_updates_schema_when_enabled(tmp_path: Path) -> None:
    _write(
        tmp_path / CONFIG_FILE_NAME,
        json.dumps({"insertFallback": True, "schemaIntegration": {"enabled": True}}),
    )
    _write(tmp_path / ".env.example", "")
    source = _write(tmp_path / "app.ts", 'const apiToken = "abc123";\n')
    result = runner.invoke(app, ["fix", str(source), "--root", str(tmp_path), *_settings(tmp_path)])
    assert result.exit_code == 0
    assert source.read_text(encoding="utf-8") == 'const apiToken = process.env.API_TOKEN ?? "";\n'
    schema = (tmp_path / "src" / "env.schema.ts").read_text(encoding="utf-8")
    assert "API_TOKEN: z.string().min(1)," in schema


def test_inventory_reports_drift(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "app.ts", "connect(process.env.DB_URL, process.env['TOKEN']);\n")
    _write(tmp_path / ".env.example", "TOKEN=__REQUIRED__\nOLD_FLAG=__SET_ME__\n")

    result = runner.invoke(app, ["inventory", str(tmp_path), "--format", "json", *_settings(tmp_path)])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["used"] == ["DB_URL", "TOKEN"]
    assert [(i["kind"], i["env_var_name"]) for i in payload["issues"]] == [
        ("missing-in-manifest", "DB_URL"),
        ("unused-in-code", "OLD_FLAG"),
    ]

    result = runner.invoke(app, ["inventory", str(tmp_path), "--strict", *_settings(tmp_path)])
    assert result.exit_code == 1


def test_inventory_in_sync(tmp_path: Path) -> None:
    _write(tmp_path / "app.ts", "use(process.env.TOKEN);\n")
    _write(tmp_path / ".env.example", "TOKEN=__REQUIRED__\n")
    result = runner.invoke(app, ["inventory", str(tmp_path), "--strict", *_settings(tmp_path)])
    assert result.exit_code == 0


def test_ignore_writes_project_file(tmp_path: Path) -> None:
    result = runner.invoke(app, ["ignore", "staging", "--root", str(tmp_path)])
    assert result.exit_code == 0
    data = json.loads((tmp_path / CONFIG_FILE_NAME).read_text(encoding="utf-8"))
    assert data == {"ignoredWords": ["staging"]}

    result = runner.invoke(app, ["ignore", "Staging", "--root", str(tmp_path)])
    assert result.exit_code == 0
    assert "already ignored" in result.stdout


def test_ignore_user_settings(tmp_path: Path) -> None:
    settings = tmp_path / "user-settings.json"
    result = runner.invoke(app, ["ignore", "sandbox", "--user", "--settings", str(settings)])
    assert result.exit_code == 0
    assert json.loads(settings.read_text(encoding="utf-8")) == {"ignoredWords": ["sandbox"]}
    assert not (tmp_path / CONFIG_FILE_NAME).exists()


def test_ignore_broken_file_exits_2(tmp_path: Path) -> None:
    _write(tmp_path / CONFIG_FILE_NAME, "{ broken")
    result = runner.invoke(app, ["ignore", "staging", "--root", str(tmp_path)])
    assert result.exit_code == 2
    assert (tmp_path / CONFIG_FILE_NAME).read_text(encoding="utf-8") == "{ broken"


def test_scan_code_line_hides_neighbouring_secrets(tmp_path: Path) -> None:
    bearer = "Bearer " + "abcdefghijkl"
    sk = "sk-" + "ZZZZ1111YYYY2222XXXX3333"
    _write(
        tmp_path / "client.ts",
        f'const headers = {{ Authorization: "{bearer}", "X-Api-Key": "{sk}" }};\n',
    )
    result = runner.invoke(app, ["scan", str(tmp_path), *_settings(tmp_path)])
    assert result.exit_code == 1
    assert "abcdefghijkl" not in result.stdout
    assert "ZZZZ1111YYYY2222XXXX3333" not in result.stdout


def test_fix_gives_distinct_urls_their_own_variables(tmp_path: Path) -> None:
    source = _write(
        tmp_path / "api.ts",
        'fetch("https://api.one.com/a");\nfetch("https://api.two.com/b");\n',
    )
    result = runner.invoke(app, ["fix", str(source), "--root", str(tmp_path), *_settings(tmp_path)])
    assert result.exit_code == 0
    assert source.read_text(encoding="utf-8") == (
        "fetch(process.env.HARDCODED_URL);\nfetch(process.env.HARDCODED_URL_2);\n"
    )
    manifest = (tmp_path / ".env.example").read_text(encoding="utf-8")
    assert manifest == "HARDCODED_URL=__SET_ME__\nHARDCODED_URL_2=__SET_ME__\n"


def test_fix_leaves_source_alone_when_manifest_cannot_be_written(tmp_path: Path) -> None:
    original = 'const apiToken = "abc123";\n'
    source = _write(tmp_path / "app.ts", original)
    (tmp_path / ".env.example").mkdir()
    result = runner.invoke(app, ["fix", str(source), "--root", str(tmp_path), *_settings(tmp_path)])
    assert result.exit_code == 2
    assert source.read_text(encoding="utf-8") == original
