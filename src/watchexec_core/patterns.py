"""Glob and regular expression patterns for filtering changed paths.

Both syntaxes go through one compiler: the pattern text is validated against
the supported syntax, then translated into a Python ``re`` expression.

Regex support:
    '.'        any character
    '^'        beginning of string (only at the start)
    '$'        end of string (only at the end)
    '*'        zero or more
    '+'        one or more
    '?'        zero or one
    '[abc]'    one of {'a', 'b', 'c'}
    '[^abc]'   none of {'a', 'b', 'c'}
    '[a-zA-Z]' character ranges
    '\\s' '\\S'  whitespace / non-whitespace
    '\\w' '\\W'  alphanumeric [a-zA-Z0-9_] / non-alphanumeric
    '\\d' '\\D'  digits / non-digits

Glob support:
    '*'        zero or more of any character
    '?'        zero or one of any character
    '[abc]', '[^abc]', '[a-zA-Z]' as above

A regex matches if it is found anywhere in the path; a glob must match the
whole path.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable


class PatternMode(Enum):
    """Pattern syntax."""

    GLOB = "glob"
    REGEX = "regex"

    @property
    def label(self) -> str:
        if self is PatternMode.GLOB:
            return "Glob"
        return "Regular Expression"


class PatternErrorKind(Enum):
    """Compile error kinds, valued by their user-facing description."""

    LATE_START_MARKER = (
        "Start Marker must be placed at the beginning or be escaped if you mean the character literal"
    )
    EARLY_END_MARKER = "End Marker must be placed at the end or be escaped if you mean the character literal"
    INCOMPLETE_ESCAPE = (
        "Incomplete Escape Sequence: If you mean the character literal, escape the escape character"
    )
    INVALID_COUNT_QUALIFIER = "Unescaped Count Qualifier must appear after a valid element"
    MISSING_BRACKET = "A bracket is missing to complete the character grouping"
    INVALID_BRACKET = "Literal Closing Brackets must be escaped"
    INVALID_RANGE = "Ranges must have a lower character on the left of the dash"
    INVALID_RANGE_SYNTAX = "Invalid syntax for character range"
    EMPTY_GROUP = "Empty character groups are not allowed"
    INCOMPLETE_RANGE = "Incomplete character ranges are not allowed"
    INVALID_SPECIAL_CHAR = (
        "Special Characters are not allowed here - escape the character if you mean the character literal"
    )

    @property
    def description(self) -> str:
        return self.value


class PatternCompileError(ValueError):
    """Raised when a pattern does not follow the supported syntax."""

    def __init__(self, kind: PatternErrorKind, offset: int, text: str, mode: PatternMode):
        self.kind = kind
        self.offset = offset
        self.text = text
        self.mode = mode
        super().__init__(f"{mode.label} pattern '{text}': {kind.description} (at offset {offset})")

    def report_lines(self) -> list[str]:
        """Lines describing the error, with a caret under the offending character."""
        return [
            f"Failed to parse the following '{self.mode.label}' pattern: {self.kind.description}:",
            f"  '{self.text}'",
            "   " + " " * self.offset + "^",
        ]


@dataclass(frozen=True)
class PatternSpec:
    """Uncompiled pattern as given on the command line or in a config file."""

    text: str
    mode: PatternMode = PatternMode.GLOB

    def compile(self) -> "Pattern":
        return compile_pattern(self.text, self.mode)


@dataclass(frozen=True)
class Pattern:
    """A compiled glob or regex."""

    text: str
    mode: PatternMode
    regex: re.Pattern = field(repr=False, compare=False)

    def matches(self, path: str) -> bool:
        """Check whether path matches this pattern."""
        if self.mode is PatternMode.GLOB:
            return self.regex.fullmatch(path) is not None
        return self.regex.search(path) is not None


class PatternSet:
    """Ordered collection of patterns; an empty set matches every path."""

    def __init__(self, patterns: Iterable[Pattern] = ()):
        self.patterns = list(patterns)

    def __len__(self) -> int:
        return len(self.patterns)

    def __iter__(self):
        return iter(self.patterns)

    def matches(self, *paths: str | None) -> bool:
        """True if the set is empty or any pattern matches any of the paths."""
        if not self.patterns:
            return True
        candidates = [p for p in paths if p is not None]
        return any(pattern.matches(path) for pattern in self.patterns for path in candidates)


_ESCAPE_CLASSES = {
    "s": r"\s",
    "S": r"\S",
    "w": r"\w",
    "W": r"\W",
    "d": r"\d",
    "D": r"\D",
}


class _Compiler:
    """Single-pass translator from pattern text to a Python regex."""

    def __init__(self, text: str, mode: PatternMode):
        self.text = text
        self.mode = mode
        # Each element is [regex fragment, has quantifier]
        self.elements: list[list] = []
        self.anchor_start = False
        self.anchor_end = False

    def error(self, kind: PatternErrorKind, offset: int) -> PatternCompileError:
        return PatternCompileError(kind, offset, self.text, self.mode)

    def compile(self) -> str:
        p = self.text
        i = 0
        while i < len(p):
            c = p[i]
            if self.mode is PatternMode.REGEX:
                i = self._regex_char(c, i)
            else:
                i = self._glob_char(c, i)
            i += 1

        body = "".join(fragment for fragment, _ in self.elements)
        if self.mode is PatternMode.GLOB:
            return body
        return ("\\A" if self.anchor_start else "") + body + ("\\Z" if self.anchor_end else "")

    def _regex_char(self, c: str, i: int) -> int:
        p = self.text
        if c == ".":
            self.elements.append([".", False])
        elif c == "^":
            if i > 0:
                raise self.error(PatternErrorKind.LATE_START_MARKER, i)
            self.anchor_start = True
        elif c == "$":
            if i + 1 < len(p):
                raise self.error(PatternErrorKind.EARLY_END_MARKER, i)
            self.anchor_end = True
        elif c in "*+?":
            if not self.elements or self.elements[-1][1]:
                raise self.error(PatternErrorKind.INVALID_COUNT_QUALIFIER, i)
            self.elements[-1][0] += c
            self.elements[-1][1] = True
        elif c == "]":
            raise self.error(PatternErrorKind.INVALID_BRACKET, i)
        elif c == "[":
            fragment, i = self._group(i)
            self.elements.append([fragment, False])
        elif c == "\\":
            if i + 1 >= len(p):
                raise self.error(PatternErrorKind.INCOMPLETE_ESCAPE, i)
            i += 1
            self.elements.append([_ESCAPE_CLASSES.get(p[i], re.escape(p[i])), False])
        else:
            self.elements.append([re.escape(c), False])
        return i

    def _glob_char(self, c: str, i: int) -> int:
        p = self.text
        if c == "*":
            self.elements.append([".*", True])
        elif c == "?":
            self.elements.append([".?", True])
        elif c == "]":
            raise self.error(PatternErrorKind.INVALID_BRACKET, i)
        elif c == "[":
            fragment, i = self._group(i)
            self.elements.append([fragment, False])
        elif c == "\\":
            if i + 1 >= len(p):
                raise self.error(PatternErrorKind.INCOMPLETE_ESCAPE, i)
            i += 1
            self.elements.append([re.escape(p[i]), False])
        else:
            self.elements.append([re.escape(c), False])
        return i

    def _group_char(self, j: int) -> tuple[str, int]:
        """Read one (possibly escaped) character inside brackets.

        Returns:
            The character and the index of the last consumed position
        """
        p = self.text
        c = p[j]
        if c == "\\":
            if j + 1 >= len(p):
                raise self.error(PatternErrorKind.INCOMPLETE_ESCAPE, j)
            return p[j + 1], j + 1
        if c in "^-[":
            raise self.error(PatternErrorKind.INVALID_SPECIAL_CHAR, j)
        return c, j

    def _group(self, start: int) -> tuple[str, int]:
        """Translate a bracket group starting at p[start] == '['.

        Returns:
            The regex fragment and the index of the closing bracket
        """
        p = self.text
        n = len(p)
        j = start + 1
        inverted = False
        if j < n and p[j] == "^":
            inverted = True
            j += 1

        items: list[str] = []
        while j < n and p[j] != "]":
            low, k = self._group_char(j)
            if k + 1 < n and p[k + 1] == "-":
                if k + 2 >= n or p[k + 2] == "]":
                    raise self.error(PatternErrorKind.INCOMPLETE_RANGE, k + 1)
                high, m = self._group_char(k + 2)
                if high < low:
                    raise self.error(PatternErrorKind.INVALID_RANGE, j)
                if m + 1 < n and p[m + 1] == "-":
                    raise self.error(PatternErrorKind.INVALID_RANGE_SYNTAX, m + 1)
                items.append(f"{re.escape(low)}-{re.escape(high)}")
                j = m + 1
            else:
                items.append(re.escape(low))
                j = k + 1

        if j >= n:
            raise self.error(PatternErrorKind.MISSING_BRACKET, start)
        if not items:
            raise self.error(PatternErrorKind.EMPTY_GROUP, j)

        return "[" + ("^" if inverted else "") + "".join(items) + "]", j


def compile_pattern(text: str, mode: PatternMode = PatternMode.GLOB) -> Pattern:
    """Compile a glob or regex.

    Args:
        text: Pattern text
        mode: PatternMode.GLOB or PatternMode.REGEX

    Returns:
        Compiled Pattern

    Raises:
        PatternCompileError: If the text is not valid for the given mode
    """
    expression = _Compiler(text, mode).compile()
    flags = re.DOTALL if mode is PatternMode.GLOB else 0
    return Pattern(text=text, mode=mode, regex=re.compile(expression, flags))


def compile_patterns(specs: Iterable[PatternSpec]) -> PatternSet:
    """Compile every spec, failing on the first invalid one."""
    return PatternSet(spec.compile() for spec in specs)
