"""Output sanitizer that strips meta-commentary from model text."""

import re
from dataclasses import dataclass

_EXCESS_NEWLINES = re.compile(r"\n{3,}")


@dataclass(frozen=True)
class SanitizerRule:
    """A pattern whose matches are removed from model output.

    Attributes:
        name: Rule identifier
        pattern: Compiled regular expression
        locale: "ar", "en", or None for every locale
    """

    name: str
    pattern: re.Pattern[str]
    locale: str | None = None


DEFAULT_RULES: list[SanitizerRule] = [
    SanitizerRule(
        name="think_block",
        pattern=re.compile(r"<think>.*?(?:</think>|$)", re.DOTALL | re.IGNORECASE),
    ),
    SanitizerRule(
        name="result_heading",
        pattern=re.compile(r"^#{1,6}\s*result:\s*\w+[ \t]*$", re.MULTILINE | re.IGNORECASE),
    ),
    SanitizerRule(
        name="opener_en",
        pattern=re.compile(
            r"^[ \t]*(?:let me|i'll|i will|i'm going to|allow me to)\s+"
            r"(?:check|search|look|find|see|get|fetch|calculate|use|call|query)\b[^.!?\n]*[.!?:]?",
            re.MULTILINE | re.IGNORECASE,
        ),
        locale="en",
    ),
    SanitizerRule(
        name="opener_ar",
        pattern=re.compile(
            r"^[ \t]*(?:دعني|دعنى|اسمح لي|سأبحث|سأتحقق|سأقوم|سوف أبحث|سوف أتحقق)[^.!؟\n]*[.!؟:]?",
            re.MULTILINE,
        ),
        locale="ar",
    ),
    SanitizerRule(
        name="tool_mention_en",
        pattern=re.compile(
            r"\b(?:according to|based on) the (?:tool|function|search) (?:results?|output|response)[,:]?\s*",
            re.IGNORECASE,
        ),
        locale="en",
    ),
    SanitizerRule(
        name="tool_mention_ar",
        pattern=re.compile(r"(?:بناءً على|بناء على|حسب|وفقاً ل)\s*نتائج (?:الأداة|الدالة|البحث)[،:]?\s*"),
        locale="ar",
    ),
]


class OutputSanitizer:
    """Removes meta-commentary and internal markers from assistant text.

    Rules run in order. When a single match covers more than
    ``discard_ratio`` of the remaining trimmed text the whole chunk is
    dropped, otherwise only the match is cut out.
    """

    def __init__(self, rules: list[SanitizerRule] | None = None, discard_ratio: float = 0.5):
        """Initialize the sanitizer.

        Args:
            rules: Ordered rules (defaults to DEFAULT_RULES)
            discard_ratio: Fraction of the text a match must exceed to discard the chunk
        """
        self.rules = list(DEFAULT_RULES if rules is None else rules)
        self.discard_ratio = discard_ratio

    def add_rule(self, rule: SanitizerRule) -> None:
        self.rules.append(rule)

    def for_locale(self, locale: str) -> "OutputSanitizer":
        """Sanitizer restricted to locale-neutral rules and rules for ``locale``."""
        rules = [r for r in self.rules if r.locale is None or r.locale == locale]
        return OutputSanitizer(rules=rules, discard_ratio=self.discard_ratio)

    def filter(self, chunk: str) -> str:
        """Sanitize a piece of text.

        Args:
            chunk: Raw model text

        Returns:
            Cleaned text, or "" when the chunk is discarded
        """
        text = chunk
        for rule in self.rules:
            trimmed = len(text.strip())
            for match in rule.pattern.finditer(text):
                if len(match.group(0).strip()) > trimmed * self.discard_ratio:
                    return ""
            text = rule.pattern.sub("", text)

        text = _EXCESS_NEWLINES.sub("\n\n", text)
        return text.strip()

    def filter_stream_chunk(self, chunk: str) -> str:
        """Sanitize a streamed fragment, keeping its surrounding whitespace.

        Whitespace-only fragments pass through with newline runs collapsed.
        """
        if not chunk.strip():
            return _EXCESS_NEWLINES.sub("\n\n", chunk)

        cleaned = self.filter(chunk)
        if not cleaned:
            return ""

        stripped_left = chunk.lstrip()
        leading = chunk[: len(chunk) - len(stripped_left)]
        trailing = stripped_left[len(stripped_left.rstrip()) :]
        return (
            _EXCESS_NEWLINES.sub("\n\n", leading)
            + cleaned
            + _EXCESS_NEWLINES.sub("\n\n", trailing)
        )
