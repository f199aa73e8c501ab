"""
Pattern-based detection of OCR artifacts in Ethiopic text.

Each rule is a regular expression with a fixed category, confidence and
suggested fix. Detection only reports; nothing is changed until the
caller applies findings or turns them into suggestions.

Ethiopic letters count as word characters for Python's ``re``, so rules
that need a script boundary use explicit lookarounds instead of ``\\b``.
"""

from __future__ import annotations

import logging
import re
from collections import Counter
from dataclasses import dataclass, field

from fideldoc.models import Finding, FindingCategory, TextSpan
from fideldoc.script import ETHIOPIC_CLASS, NOISE_CLASS, is_target_script

logger = logging.getLogger(__name__)


# =============================================================================
# CONSTANTS
# =============================================================================

ETH = f"[{ETHIOPIC_CLASS}]"

# Fix value that tells apply_findings to keep the first character of the match
KEEP_FIRST_MARK = "\x00first"


# =============================================================================
# DATA STRUCTURES
# =============================================================================


@dataclass(frozen=True)
class DetectionRule:
    """One named pattern rule."""

    name: str
    pattern: re.Pattern
    category: FindingCategory
    confidence: float
    fix: str  # "" removes; KEEP_FIRST_MARK keeps the first character
    reason: str


@dataclass
class DetectionStats:
    """Statistics for one detection run."""

    characters_scanned: int = 0
    findings_total: int = 0
    by_category: dict[str, int] = field(default_factory=dict)
    rules_fired: list[str] = field(default_factory=list)


DEFAULT_RULES: tuple[DetectionRule, ...] = (
    DetectionRule(
        name="ascii_symbol_in_script",
        pattern=re.compile(f"[{NOISE_CLASS}]+(?={ETH})|(?<={ETH})[{NOISE_CLASS}]+"),
        category=FindingCategory.ASCII_NOISE_IN_SCRIPT,
        confidence=0.90,
        fix="",
        reason="ASCII symbol in Amharic",
    ),
    DetectionRule(
        name="digits_in_script",
        pattern=re.compile(f"(?<={ETH})[0-9]+(?={ETH})"),
        category=FindingCategory.ASCII_NOISE_IN_SCRIPT,
        confidence=0.85,
        fix="",
        reason="Numbers mixed with Amharic text",
    ),
    DetectionRule(
        name="numeric_noise_token",
        pattern=re.compile(
            r"(?<![A-Za-z0-9])A\d{3,4}(?![A-Za-z0-9])"
            r"|(?<![A-Za-z0-9])\d{3,4}A\s*F(?![A-Za-z0-9])"
        ),
        category=FindingCategory.INCOMPLETE_FRAGMENT,
        confidence=0.95,
        fix="",
        reason="OCR noise (A+numbers)",
    ),
    DetectionRule(
        name="incomplete_fragment",
        pattern=re.compile(r"\bTh\?(?!\w)"),
        category=FindingCategory.INCOMPLETE_FRAGMENT,
        confidence=0.90,
        fix="",
        reason="Incomplete OCR fragment",
    ),
    DetectionRule(
        name="latin_in_script_word",
        pattern=re.compile(f"(?<={ETH})[A-Za-z]+(?={ETH})"),
        category=FindingCategory.MIXED_SCRIPT_FRAGMENT,
        confidence=0.85,
        fix="",
        reason="Latin letters inside an Amharic word",
    ),
    DetectionRule(
        name="latin_caps_before_script",
        pattern=re.compile(f"(?<![A-Za-z0-9{ETHIOPIC_CLASS}])[A-Z]{{3,}}(?=\\s*{ETH})"),
        category=FindingCategory.MIXED_SCRIPT_FRAGMENT,
        confidence=0.80,
        fix="",
        reason="Latin text mixed with Amharic",
    ),
    DetectionRule(
        name="aic_noise_token",
        pattern=re.compile(r"(?<![A-Za-z0-9])AIC(?![A-Za-z0-9])"),
        category=FindingCategory.MIXED_SCRIPT_FRAGMENT,
        confidence=0.85,
        fix="",
        reason="OCR noise (mixed scripts)",
    ),
    DetectionRule(
        name="ascii_comma_in_script",
        pattern=re.compile(f"(?<={ETH}),(?=\\s*{ETH})"),
        category=FindingCategory.PUNCTUATION_CONFUSION,
        confidence=0.85,
        fix="፣",
        reason="ASCII comma in Amharic text",
    ),
    DetectionRule(
        name="ascii_period_after_script",
        pattern=re.compile(f"(?<={ETH})\\.(?=\\s|$)"),
        category=FindingCategory.PUNCTUATION_CONFUSION,
        confidence=0.80,
        fix="።",
        reason="ASCII period ending an Amharic sentence",
    ),
    DetectionRule(
        name="repeated_ethiopic_punctuation",
        pattern=re.compile(r"([።፤፣፡])\1+"),
        category=FindingCategory.PUNCTUATION_CONFUSION,
        confidence=0.80,
        fix=KEEP_FIRST_MARK,
        reason="Repeated Ethiopic punctuation",
    ),
)


# =============================================================================
# PATTERN DETECTOR
# =============================================================================


class PatternDetector:
    """
    Deterministic rule engine emitting Findings.

    Rules run in a fixed order and each scans the whole text. Findings
    come back sorted by start offset, last first, so they can be applied
    tail-first without shifting earlier offsets. Ties keep rule order.

    Attributes:
        rules: Ordered detection rules.

    Example:
        >>> findings = PatternDetector().detect("ሰ#ላ")
        >>> [(f.category.name, f.span.start, f.span.end) for f in findings]
        [('ASCII_NOISE_IN_SCRIPT', 1, 2)]
    """

    def __init__(self, rules: tuple[DetectionRule, ...] | None = None):
        self.rules = DEFAULT_RULES if rules is None else tuple(rules)

    def detect(self, text: str) -> list[Finding]:
        """
        Detect OCR artifacts in text.

        Args:
            text: Text to scan.

        Returns:
            Findings sorted by span.start descending.

        Raises:
            ValueError: If text is None.
        """
        if text is None:
            raise ValueError("Input text cannot be None")
        if not text:
            return []

        findings: list[Finding] = []
        for rule in self.rules:
            findings.extend(self._scan(rule, text))

        findings.sort(key=lambda f: f.span.start, reverse=True)
        logger.debug("Detected %d findings in %d characters", len(findings), len(text))
        return findings

    def detect_with_stats(self, text: str) -> tuple[list[Finding], DetectionStats]:
        """Detect findings and summarize them per category and rule."""
        findings = self.detect(text)
        by_category = Counter(f.category.value for f in findings)
        fired = []
        for rule in self.rules:
            if any(f.rule == rule.name for f in findings):
                fired.append(rule.name)
        stats = DetectionStats(
            characters_scanned=len(text),
            findings_total=len(findings),
            by_category=dict(by_category),
            rules_fired=fired,
        )
        return findings, stats

    def _scan(self, rule: DetectionRule, text: str) -> list[Finding]:
        found = []
        pos = 0
        while pos <= len(text):
            match = rule.pattern.search(text, pos)
            if match is None:
                break
            start, end = match.span()
            if end == start:
                # Zero-width: step past it without emitting
                pos = start + 1
                continue
            found.append(
                Finding(
                    span=TextSpan(start, end),
                    matched_text=match.group(0),
                    category=rule.category,
                    confidence=rule.confidence,
                    suggested_fix=self._fix_for(rule, text, start, end),
                    rule=rule.name,
                    reason=rule.reason,
                )
            )
            pos = end
        return found

    def _fix_for(self, rule: DetectionRule, text: str, start: int, end: int) -> str:
        if rule.fix == KEEP_FIRST_MARK:
            return text[start]
        if rule.name == "ascii_symbol_in_script":
            before = text[start - 1] if start > 0 else ""
            after = text[end] if end < len(text) else ""
            if is_target_script(before) and is_target_script(after):
                return " "
        return rule.fix


def apply_findings(text: str, findings: list[Finding]) -> str:
    """
    Apply each finding's suggested fix to text, tail-first.

    Findings overlapping one already applied are skipped, as are
    findings whose span no longer matches the text.

    Example:
        >>> detector = PatternDetector()
        >>> apply_findings("ሰ#ላ", detector.detect("ሰ#ላ"))
        'ሰ ላ'
    """
    ordered = sorted(findings, key=lambda f: f.span.start, reverse=True)
    result = text
    boundary = len(text) + 1
    for finding in ordered:
        span = finding.span
        if span.end > boundary or not span.within(text):
            continue
        if text[span.start : span.end] != finding.matched_text:
            logger.warning(
                "Skipping stale finding %s at [%d, %d)", finding.rule, span.start, span.end
            )
            continue
        result = result[: span.start] + finding.suggested_fix + result[span.end :]
        boundary = span.start
    return result
