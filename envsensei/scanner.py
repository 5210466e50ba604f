from __future__ import annotations

import fnmatch
import os
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from pathlib import Path

from .config import DEFAULT_IGNORED_GLOBS, DetectorConfig
from .detector import Detector
from .log import logger
from .models import Detection
from .patterns import Severity
from .redact import redact_in_line
from .syntax import parse_source

SOURCE_SUFFIXES = (".ts", ".tsx", ".js", ".jsx")
MAX_FILE_SIZE_BYTES = 2 * 1024 * 1024
_VCS_DIRS = {".git", ".hg", ".svn"}


@dataclass(frozen=True)
class FileReport:
    path: str
    detections: list[Detection]
    # Source lines for context rendering; they hold raw values, so never print them as-is.
    lines: tuple[str, ...] = field(default=(), repr=False)

    def context_line(self, detection: Detection) -> str:
        """The detection's first line with every flagged literal on it redacted."""
        row = detection.range.start_line
        if row >= len(self.lines):
            return ""
        line = self.lines[row]

        spans = []
        for d in self.detections:
            rng = d.range
            if not rng.start_line <= row <= rng.end_line:
                continue
            start = rng.start_col if rng.start_line == row else 0
            end = rng.end_col if rng.end_line == row else len(line)
            spans.append((start, end))

        # Back to front so earlier columns stay valid.
        for start, end in sorted(spans, reverse=True):
            line = redact_in_line(line, start, end)
        return line.strip()


def _is_binary(data: bytes) -> bool:
    # NUL byte is a strong signal of a binary blob.
    return b"\x00" in data


def _load_gitignore_patterns(root: Path) -> list[str]:
    """Load .gitignore patterns from root, returned as simple glob strings."""
    gitignore = root / ".gitignore"
    if not gitignore.exists():
        return []
    patterns: list[str] = []
    try:
        for raw in gitignore.read_text(encoding="utf-8", errors="replace").splitlines():
            line = raw.strip()
            if not line or line.startswith("#"):
                continue
            patterns.append(line)
    except OSError:
        pass
    return patterns


def _matches_gitignore(rel_path: str, patterns: list[str]) -> bool:
    """Very lightweight gitignore matcher; handles the common cases."""
    norm = rel_path.replace(os.sep, "/")
    name = norm.split("/")[-1]

    for pat in patterns:
        negated = pat.startswith("!")
        p = pat.lstrip("!")

        # Directory pattern (trailing slash): match path prefix
        if p.endswith("/"):
            p = p.rstrip("/")
            if ("/" + p.lstrip("/") + "/") in ("/" + norm + "/"):
                return not negated
            continue

        if "/" not in p:
            if fnmatch.fnmatch(name, p):
                return not negated
        else:
            if fnmatch.fnmatch(norm, p.lstrip("/")) or fnmatch.fnmatch(norm, "**/" + p):
                return not negated

    return False


def matches_glob(rel_path: str, pattern: str) -> bool:
    """fnmatch with a leading ``**/`` also matching at the root (``node_modules/x.js``)."""
    norm = rel_path.replace(os.sep, "/")
    if fnmatch.fnmatch(norm, pattern):
        return True
    return pattern.startswith("**/") and fnmatch.fnmatch(norm, pattern[3:])


def _is_excluded(rel_path: str, globs: Iterable[str]) -> bool:
    return any(matches_glob(rel_path, g) for g in globs)


def _read_text(fpath: Path) -> str | None:
    try:
        st = fpath.stat()
    except OSError:
        return None
    if st.st_size > MAX_FILE_SIZE_BYTES:
        return None

    try:
        data = fpath.read_bytes()
    except OSError:
        return None
    if _is_binary(data):
        return None
    return data.decode("utf-8", errors="replace")


def iter_source_files(
    root: Path,
    ignored_globs: Iterable[str] = (),
    *,
    respect_gitignore: bool = True,
    suffixes: tuple[str, ...] = SOURCE_SUFFIXES,
) -> Iterator[tuple[Path, str]]:
    """Yield ``(path, text)`` for every JS/TS file under ``root``.

    The default ignore globs always apply; configured globs and .gitignore
    entries are added on top. Oversized, binary and unreadable files are skipped.
    """
    if root.is_file():
        text = _read_text(root)
        if text is not None:
            yield root, text
        return

    globs = (*DEFAULT_IGNORED_GLOBS, *ignored_globs)
    gitignore_patterns = _load_gitignore_patterns(root) if respect_gitignore else []

    for dirpath, dirnames, filenames in os.walk(root):
        rel_dir = os.path.relpath(dirpath, root)
        rel_dir = "" if rel_dir == "." else rel_dir.replace(os.sep, "/") + "/"

        # In-place prune for speed.
        dirnames[:] = sorted(
            d
            for d in dirnames
            if d not in _VCS_DIRS
            and not _is_excluded(rel_dir + d + "/", globs)
            and not (gitignore_patterns and _matches_gitignore(rel_dir + d, gitignore_patterns))
        )

        for name in sorted(filenames):
            if not name.endswith(suffixes):
                continue
            rel = rel_dir + name
            if _is_excluded(rel, globs):
                continue
            if gitignore_patterns and _matches_gitignore(rel, gitignore_patterns):
                continue
            fpath = Path(dirpath) / name
            text = _read_text(fpath)
            if text is None:
                continue
            yield fpath, text


def analyze_text(
    *,
    text: str,
    rel_path: str,
    cfg: DetectorConfig | None = None,
    detector: Detector | None = None,
) -> FileReport:
    detector = detector or Detector(cfg or DetectorConfig())
    tree = parse_source(text, rel_path)
    return FileReport(
        path=rel_path,
        detections=detector.analyze(tree),
        lines=tuple(text.split("\n")),
    )


def scan_path(
    path: Path,
    *,
    cfg: DetectorConfig | None = None,
    respect_gitignore: bool = True,
) -> list[FileReport]:
    """Analyze a file or a directory tree; only files with detections are returned."""
    cfg = cfg or DetectorConfig()
    detector = Detector(cfg)
    reports: list[FileReport] = []

    root = path.resolve()
    base = root if root.is_dir() else root.parent

    scanned = 0
    for fpath, text in iter_source_files(root, cfg.ignored_globs, respect_gitignore=respect_gitignore):
        scanned += 1
        try:
            rel = str(fpath.resolve().relative_to(base))
        except ValueError:
            rel = str(fpath)

        report = analyze_text(text=text, rel_path=rel.replace(os.sep, "/"), detector=detector)
        if report.detections:
            reports.append(report)

    logger.debug("Scanned {} file(s); {} with detections", scanned, len(reports))
    return reports


def summarize(reports: Iterable[FileReport]) -> dict:
    out = {"files": 0, "total": 0, "secret": 0, "config": 0}
    for report in reports:
        out["files"] += 1
        for d in report.detections:
            out["total"] += 1
            out[d.category.value] += 1
    return out


def should_fail(reports: Iterable[FileReport], *, cfg: DetectorConfig, fail_on: Severity) -> bool:
    return any(
        cfg.severity_for(d.category).rank >= fail_on.rank
        for report in reports
        for d in report.detections
    )

