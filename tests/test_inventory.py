from __future__ import annotations

from pathlib import Path

from envsensei.inventory import compare_with_env_example, scan_env_usage
from envsensei.models import EnvExampleEntry, InventoryIssue, IssueKind, Location, SourceRange


def test_scan_env_usage_dotted_and_bracket_forms() -> None:
    code = (
        "const a = process.env.API_KEY;\n"
        'const b = process.env["BASE_URL"];\n'
        "const c = process.env[name];\n"
        "const d = process.env;\n"
        "const e = other.env.NOT_ME;\n"
    )
    usage = scan_env_usage([(Path("src/app.ts"), code)])
    assert list(usage) == ["API_KEY", "BASE_URL"]
    assert usage["API_KEY"] == [Location(path=Path("src/app.ts"), range=SourceRange(0, 10, 0, 29))]
    assert usage["BASE_URL"][0].range.start_line == 1


def test_scan_env_usage_collects_every_location() -> None:
    files = [
        (Path("a.ts"), "use(process.env.TOKEN);"),
        (Path("b.js"), "use(process.env.TOKEN);\nuse(process.env.OTHER);"),
    ]
    usage = scan_env_usage(files)
    assert [loc.path for loc in usage["TOKEN"]] == [Path("a.ts"), Path("b.js")]
    assert [loc.path for loc in usage["OTHER"]] == [Path("b.js")]


def test_scan_env_usage_accepts_a_generator() -> None:
    consumed = []

    def files():
        for name in ("a.ts", "b.ts"):
            consumed.append(name)
            yield Path(name), "process.env.X;"

    usage = scan_env_usage(files())
    assert consumed == ["a.ts", "b.ts"]
    assert len(usage["X"]) == 2


def test_reconciliation_scenario() -> None:
    loc1 = Location(path=Path("src/app.ts"), range=SourceRange(3, 4, 3, 19))
    manifest = Path(".env.example")
    issues = compare_with_env_example(
        {"FOO": [loc1]},
        [EnvExampleEntry(key="BAR", value="__SET_ME__", line_number=0)],
        manifest,
    )
    assert issues == [
        InventoryIssue(kind=IssueKind.missing_in_manifest, env_var_name="FOO", location=loc1),
        InventoryIssue(
            kind=IssueKind.unused_in_code,
            env_var_name="BAR",
            location=Location(path=manifest, range=SourceRange(0, 0, 0, 3)),
        ),
    ]


def test_reconciliation_in_sync() -> None:
    loc = Location(path=Path("a.ts"), range=SourceRange(0, 0, 0, 1))
    entries = [EnvExampleEntry(key="FOO", value="x", line_number=0)]
    assert compare_with_env_example({"FOO": [loc]}, entries, Path(".env.example")) == []


def test_issue_to_dict() -> None:
    issue = InventoryIssue(
        kind=IssueKind.unused_in_code,
        env_var_name="BAR",
        location=Location(path=Path(".env.example"), range=SourceRange(2, 0, 2, 3)),
    )
    assert issue.to_dict() == {
        "kind": "unused-in-code",
        "env_var_name": "BAR",
        "location": {
            "path": ".env.example",
            "range": {"start": {"line": 2, "column": 0}, "end": {"line": 2, "column": 3}},
        },
    }
