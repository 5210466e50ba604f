from __future__ import annotations

# ruff: noqa: UP045
import json
import sys
from pathlib import Path
from typing import Any, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from .config import (
    CONFIG_FILE_NAME,
    SETTINGS_FILE_NAME,
    DetectorConfig,
    add_ignored_word,
    load_config,
    load_host_settings,
)
from .fixes import apply_extractions, disambiguate_names, suggest_ignore_word
from .inventory import compare_with_env_example, scan_env_usage
from .log import set_level
from .manifest import add_to_env_example, find_nearest_env_example, read_env_example
from .patterns import Severity
from .sarif import reports_to_sarif
from .scanner import FileReport, analyze_text, iter_source_files, scan_path, should_fail, summarize
from .schema import add_to_env_schema

app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()

_SEVERITY_STYLE = {
    "error": "bold red",
    "warning": "bold yellow",
    "information": "cyan",
    "hint": "dim",
}


def _write_text(out: Path | None, text: str) -> None:
    if out is None:
        sys.stdout.write(text)
        if not text.endswith("\n"):
            sys.stdout.write("\n")
        return
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(text, encoding="utf-8")


def _default_settings_path() -> Path:
    return Path(typer.get_app_dir("envsensei")) / SETTINGS_FILE_NAME


def _host_settings(
    settings: Path | None,
    prefix: str | None,
    ignore_words: list[str] | None,
) -> dict[str, Any]:
    """User settings file with command-line flags layered on top."""
    host = dict(load_host_settings(settings or _default_settings_path()))
    if prefix is not None:
        host["envVarPrefix"] = prefix
    if ignore_words:
        current = host.get("ignoredWords")
        inherited = current if isinstance(current, list) else []
        host["ignoredWords"] = [*inherited, *ignore_words]
    return host


def _workspace_root(path: Path, root: Path | None) -> Path:
    if root is not None:
        return root.resolve()
    resolved = path.resolve()
    return resolved if resolved.is_dir() else resolved.parent


def _display_path(path: Path, base: Path) -> str:
    try:
        return str(path.resolve().relative_to(base))
    except ValueError:
        return str(path)


def _fail(message: str, code: int = 2) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    raise typer.Exit(code=code)


def _print_reports_text(reports: list[FileReport], summ: dict, cfg: DetectorConfig) -> None:
    if not summ["total"]:
        console.print("[bold green]No hardcoded secrets or config values found.[/bold green]")
        return

    for report in reports:
        for d in report.detections:
            severity = cfg.severity_for(d.category).value
            style = _SEVERITY_STYLE.get(severity, "")
            header = (
                f"[{style}]{severity.upper()}[/{style}]  "
                f"{d.category.value} ({d.source.value})"
            )
            body_lines = [
                f"  File: {escape(report.path)}:{d.range.start_line + 1}:{d.range.start_col + 1}",
                f"  Env var: {d.proposed_env_var_name}",
                f"  Message: {escape(d.message)}",
            ]
            context = report.context_line(d)
            if context:
                body_lines.append(f"  Code: {escape(context)}")
            word = suggest_ignore_word(d)
            if word:
                body_lines.append(f"  Silence with: envsensei ignore {escape(word)}")

            console.print(
                Panel(
                    "\n".join(body_lines),
                    title=header,
                    title_align="left",
                    border_style=style or "dim",
                    expand=False,
                )
            )

    console.print()
    console.print(
        f"[bold]Summary:[/bold] {summ['total']} detection(s) in {summ['files']} file(s): "
        f"[bold red]{summ['secret']} secret[/bold red], "
        f"[bold yellow]{summ['config']} config[/bold yellow]"
    )


@app.command()
def scan(
    path: Path = typer.Argument(Path("."), exists=True),
    root: Optional[Path] = typer.Option(
        None, "--root", help=f"Directory holding {CONFIG_FILE_NAME} (defaults to PATH)"
    ),
    settings: Optional[Path] = typer.Option(None, "--settings", help="User settings JSON file"),
    format: str = typer.Option(
        "text", "--format", help="Output format: text|json|sarif", show_default=True
    ),
    out: Optional[Path] = typer.Option(None, "--out", help="Write output to a file"),
    fail_on: Severity = typer.Option(Severity.error, "--fail-on", help="CI fail threshold"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Prefix for proposed env var names"),
    ignore_word: Optional[list[str]] = typer.Option(
        None, "--ignore-word", help="Skip detections mentioning this word (repeatable)"
    ),
    no_gitignore: bool = typer.Option(False, "--no-gitignore", help="Scan files listed in .gitignore"),
    verbose: bool = typer.Option(False, "--verbose", help="Debug logging on stderr"),
) -> None:
    fmt = format.lower().strip()
    if fmt not in {"text", "json", "sarif"}:
        raise typer.BadParameter("format must be one of: text, json, sarif")
    if verbose:
        set_level("DEBUG")

    cfg = load_config(_workspace_root(path, root), _host_settings(settings, prefix, ignore_word))
    reports = scan_path(path, cfg=cfg, respect_gitignore=not no_gitignore)
    summ = summarize(reports)

    if fmt == "sarif":
        _write_text(out, json.dumps(reports_to_sarif(reports, cfg), indent=2))
    elif fmt == "json":
        payload = {
            "summary": summ,
            "files": [
                {
                    "path": report.path,
                    "detections": [
                        {**d.to_dict(), "severity": cfg.severity_for(d.category).value}
                        for d in report.detections
                    ],
                }
                for report in reports
            ],
        }
        _write_text(out, json.dumps(payload, indent=2))
    else:
        _print_reports_text(reports, summ, cfg)

    raise typer.Exit(code=1 if should_fail(reports, cfg=cfg, fail_on=fail_on) else 0)


@app.command()
def fix(
    file: Path = typer.Argument(..., exists=True, dir_okay=False),
    root: Optional[Path] = typer.Option(
        None, "--root", help=f"Directory holding {CONFIG_FILE_NAME} (defaults to the file's directory)"
    ),
    settings: Optional[Path] = typer.Option(None, "--settings", help="User settings JSON file"),
    prefix: Optional[str] = typer.Option(None, "--prefix", help="Prefix for proposed env var names"),
    ignore_word: Optional[list[str]] = typer.Option(
        None, "--ignore-word", help="Leave literals mentioning this word alone (repeatable)"
    ),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the planned edits without writing"),
) -> None:
    """Replace flagged literals with process.env reads and declare the variables."""
    workspace = _workspace_root(file, root)
    cfg = load_config(workspace, _host_settings(settings, prefix, ignore_word))

    try:
        text = file.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        _fail(f"cannot read {file}: {exc}")

    report = analyze_text(text=text, rel_path=str(file), cfg=cfg)
    if not report.detections:
        console.print("[bold green]Nothing to extract.[/bold green]")
        raise typer.Exit(code=0)
    detections = disambiguate_names(report.detections)

    manifest = find_nearest_env_example(file, cfg.env_example_file_name) or (
        workspace / cfg.env_example_file_name
    )

    table = Table(title=escape(_display_path(file, workspace)), title_justify="left")
    table.add_column("Line", justify="right")
    table.add_column("Env var")
    table.add_column("Category")
    table.add_column("Value")
    for d in detections:
        table.add_row(
            str(d.range.start_line + 1),
            d.proposed_env_var_name,
            d.category.value,
            f"{d.value_length} chars",
        )
    console.print(table)

    if dry_run:
        console.print(f"[dim]Dry run: {escape(str(file))} and {escape(str(manifest))} left unchanged.[/dim]")
        raise typer.Exit(code=0)

    # Declare the variables before the code starts reading them.
    try:
        added = [
            d.proposed_env_var_name
            for d in detections
            if add_to_env_example(manifest, d.proposed_env_var_name, d.category)
        ]
    except OSError as exc:
        _fail(f"cannot update {manifest}: {exc}; {file} left unchanged")

    if cfg.schema_integration.enabled:
        schema_path = workspace / cfg.schema_integration.schema_path
        try:
            for d in detections:
                add_to_env_schema(schema_path, d.proposed_env_var_name, d.category)
        except OSError as exc:
            _fail(f"cannot update {schema_path}: {exc}; {file} left unchanged")

    updated = apply_extractions(text, detections, insert_fallback=cfg.insert_fallback)
    try:
        file.write_text(updated, encoding="utf-8")
    except OSError as exc:
        _fail(f"cannot write {file}: {exc}")

    console.print(
        f"[bold green]Extracted {len(detections)} literal(s).[/bold green] "
        f"{len(added)} new variable(s) in {escape(str(manifest))}."
    )


@app.command()
def inventory(
    root: Path = typer.Argument(Path("."), exists=True, file_okay=False),
    settings: Optional[Path] = typer.Option(None, "--settings", help="User settings JSON file"),
    format: str = typer.Option("text", "--format", help="Output format: text|json", show_default=True),
    out: Optional[Path] = typer.Option(None, "--out", help="Write output to a file"),
    strict: bool = typer.Option(False, "--strict", help="Exit 1 when any issue is reported"),
    no_gitignore: bool = typer.Option(False, "--no-gitignore", help="Scan files listed in .gitignore"),
) -> None:
    """Compare process.env reads with the variables declared in the manifest."""
    fmt = format.lower().strip()
    if fmt not in {"text", "json"}:
        raise typer.BadParameter("format must be one of: text, json")

    workspace = root.resolve()
    cfg = load_config(workspace, _host_settings(settings, None, None))
    files = iter_source_files(workspace, cfg.ignored_globs, respect_gitignore=not no_gitignore)
    usage = scan_env_usage(files)
    manifest = workspace / cfg.env_example_file_name
    issues = compare_with_env_example(usage, read_env_example(manifest), manifest)

    if fmt == "json":
        payload = {
            "manifest": str(manifest),
            "used": sorted(usage),
            "issues": [issue.to_dict() for issue in issues],
        }
        _write_text(out, json.dumps(payload, indent=2))
    elif not issues:
        console.print(
            f"[bold green]{len(usage)} variable(s) in use, all declared in "
            f"{escape(cfg.env_example_file_name)}.[/bold green]"
        )
    else:
        table = Table(title="Env inventory", title_justify="left")
        table.add_column("Issue")
        table.add_column("Variable")
        table.add_column("Location")
        for issue in issues:
            loc = issue.location
            style = "bold red" if issue.kind.value == "missing-in-manifest" else "yellow"
            table.add_row(
                f"[{style}]{issue.kind.value}[/{style}]",
                issue.env_var_name,
                escape(f"{_display_path(loc.path, workspace)}:{loc.range.start_line + 1}"),
            )
        console.print(table)

    raise typer.Exit(code=1 if strict and issues else 0)


@app.command()
def ignore(
    word: str = typer.Argument(..., help="Word to add to ignoredWords"),
    root: Path = typer.Option(Path("."), "--root", help=f"Directory holding {CONFIG_FILE_NAME}"),
    user: bool = typer.Option(False, "--user", help="Write to the user settings file instead"),
    settings: Optional[Path] = typer.Option(None, "--settings", help="User settings JSON file"),
) -> None:
    """Silence future detections that mention WORD."""
    if not word.strip():
        raise typer.BadParameter("word must not be empty")

    target = (settings or _default_settings_path()) if user else root / CONFIG_FILE_NAME
    try:
        added = add_ignored_word(target, word)
    except (OSError, ValueError) as exc:
        _fail(str(exc))

    if added:
        console.print(f"[bold green]Added[/bold green] {escape(word.strip())} to {escape(str(target))}")
    else:
        console.print(f"[dim]{escape(word.strip())} is already ignored in {escape(str(target))}[/dim]")
