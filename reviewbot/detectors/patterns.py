"""Regex rule strategy: scan every added line against the rule families."""

from __future__ import annotations

from typing import Dict, List, Mapping, Sequence

from reviewbot.diff import map_added_lines
from reviewbot.logger import get_logger, log_with_context
from reviewbot.models import ChangedFile, Finding, ReviewRequest

from .rules import DEFAULT_RULES, FAMILY_OUTCOME, Rule, RuleFamily

logger = get_logger()


class PatternDetector:
    """Language-aware line scanner. At most one finding per family per line."""

    name = "patterns"

    def __init__(self, rules: Mapping[RuleFamily, Sequence[Rule]] | None = None) -> None:
        self._rules = dict(rules or DEFAULT_RULES)
        self._by_extension: Dict[str, Dict[RuleFamily, List[Rule]]] = {}

    def rules_for(self, extension: str) -> Dict[RuleFamily, List[Rule]]:
        cached = self._by_extension.get(extension)
        if cached is None:
            cached = {
                family: [rule for rule in rules if rule.applies_to(extension)]
                for family, rules in self._rules.items()
            }
            self._by_extension[extension] = cached
        return cached

    def analyze(self, file: ChangedFile, context: ReviewRequest | None = None) -> List[Finding]:
        if file.is_removed or not file.patch:
            return []

        rules = self.rules_for(file.extension)
        findings: List[Finding] = []
        for line_number, content in map_added_lines(file.patch):
            if not content:
                continue
            for family, family_rules in rules.items():
                for rule in family_rules:
                    message = rule.match(content)
                    if message is None:
                        continue
                    severity, category = FAMILY_OUTCOME[family]
                    findings.append(Finding(file.filename, line_number, message, severity, category))
                    break

        log_with_context(logger, file=file.filename).debug(f"Pattern scan produced {len(findings)} findings")
        return findings
