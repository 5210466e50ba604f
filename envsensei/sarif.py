from __future__ import annotations

from collections.abc import Iterable

from . import __version__
from .config import DetectorConfig
from .scanner import FileReport

_LEVEL = {"error": "error", "warning": "warning", "information": "note", "hint": "note"}

_RULE_TEXT = {
    "key-based": "Literal assigned to a secret-sounding name.",
    "header-based": "Literal value of a sensitive HTTP header.",
    "pattern-based": "Literal shaped like a key, token or external URL.",
    "config-based": "Literal assigned to a configuration-sounding name.",
}


def reports_to_sarif(reports: Iterable[FileReport], cfg: DetectorConfig) -> dict:
    rules: list[dict] = []
    rule_index: dict[str, int] = {}
    results: list[dict] = []

    for report in reports:
        for d in report.detections:
            rule_id = d.source.value
            if rule_id not in rule_index:
                rule_index[rule_id] = len(rules)
                rules.append(
                    {
                        "id": rule_id,
                        "name": rule_id,
                        "shortDescription": {"text": _RULE_TEXT.get(rule_id, rule_id)},
                        "help": {
                            "text": "Move the value to an environment variable and list it in "
                            f"{cfg.env_example_file_name} with a placeholder."
                        },
                        "properties": {"tags": ["secret", "configuration"]},
                    }
                )

            severity = cfg.severity_for(d.category)
            results.append(
                {
                    "ruleId": rule_id,
                    "ruleIndex": rule_index[rule_id],
                    "level": _LEVEL.get(severity.value, "warning"),
                    "message": {"text": d.message},
                    "locations": [
                        {
                            "physicalLocation": {
                                "artifactLocation": {"uri": report.path},
                                "region": {
                                    "startLine": d.range.start_line + 1,
                                    "startColumn": d.range.start_col + 1,
                                    "endLine": d.range.end_line + 1,
                                    "endColumn": d.range.end_col + 1,
                                },
                            }
                        }
                    ],
                    "properties": {
                        "category": d.category.value,
                        "proposedEnvVarName": d.proposed_env_var_name,
                        "valueLength": d.value_length,
                    },
                }
            )

    return {
        "$schema": "https://json.schemastore.org/sarif-2.1.0.json",
        "version": "2.1.0",
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": "envsensei",
                        "version": __version__,
                        "rules": rules,
                    }
                },
                "results": results,
            }
        ],
    }
