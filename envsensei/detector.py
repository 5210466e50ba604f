from __future__ import annotations

import dataclasses

from .config import DetectorConfig
from .heuristics import Heuristic, default_heuristics
from .models import Detection
from .naming import to_env_var_name
from .syntax import SourceTree, is_jsx_attribute_value, walk


class Detector:
    """Runs every heuristic over every node of one parsed document.

    The prefix and ignore list are fixed at construction; build a new
    Detector when the configuration changes. ``analyze`` keeps no state
    between calls, so repeated runs over the same document are independent.
    """

    def __init__(self, config: DetectorConfig) -> None:
        self.prefix = config.env_var_prefix
        self.ignored_words = tuple(w.lower() for w in config.ignored_words if w)
        self.heuristics: tuple[Heuristic, ...] = default_heuristics()

    def _is_ignored(self, detection: Detection) -> bool:
        if not self.ignored_words:
            return False
        haystacks = [
            (detection.identifier_hint or "").lower(),
            detection.proposed_env_var_name.lower(),
            detection.raw_value.lower(),
        ]
        return any(word in hay for word in self.ignored_words for hay in haystacks)

    def analyze(self, tree: SourceTree) -> list[Detection]:
        detections: list[Detection] = []
        if tree.is_empty():
            return detections

        # First accepted detection for a range wins, so heuristic order is priority order.
        seen_ranges: set[tuple[int, int, int, int]] = set()

        for node in walk(tree.root):
            in_jsx = is_jsx_attribute_value(node)
            for heuristic in self.heuristics:
                for detection in heuristic.detect(tree, node):
                    key = detection.range.key
                    if key in seen_ranges:
                        continue
                    if self._is_ignored(detection):
                        continue
                    seen_ranges.add(key)
                    changes: dict[str, object] = {}
                    if self.prefix:
                        changes["proposed_env_var_name"] = to_env_var_name(
                            detection.proposed_env_var_name, self.prefix
                        )
                    if in_jsx:
                        changes["jsx_attribute"] = True
                    if changes:
                        detection = dataclasses.replace(detection, **changes)
                    detections.append(detection)

        return detections
