"""Inclusion/exclusion regex matching for log lines."""

import re


class PatternError(ValueError):
    """Raised when an inclusion or exclusion pattern does not compile."""

    pass


def compile_pattern(pattern: str, name: str = "pattern") -> re.Pattern:
    """Compile a pattern, raising PatternError with the offending text."""
    try:
        return re.compile(pattern)
    except re.error as e:
        raise PatternError(f"invalid {name} '{pattern}': {e}") from e


def matches(line: str, include: re.Pattern, exclude: re.Pattern | None = None) -> bool:
    """Check if a line contains the inclusion pattern and not the exclusion one."""
    if include.search(line) is None:
        return False
    return exclude is None or exclude.search(line) is None


class LineMatcher:
    """Line predicate built from the configured pattern and exceptions."""

    def __init__(self, pattern: str, exceptions: str | None = None):
        """Compile the patterns.

        Args:
            pattern: Inclusion regex, matched anywhere in the line
            exceptions: Optional exclusion regex; empty means no exclusion

        Raises:
            PatternError: If either pattern is not a valid regex
        """
        self.include = compile_pattern(pattern)
        self.exclude = compile_pattern(exceptions, "exceptions") if exceptions else None

    def __call__(self, line: str) -> bool:
        return matches(line, self.include, self.exclude)
