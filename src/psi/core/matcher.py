"""
Wildcard filter matching for test selection.

Only ``*`` is special: it matches zero or more characters. There is no ``?``
and there are no character classes.
"""

from typing import Optional


WILDCARD = '*'


def matches(pattern: Optional[str], name: str) -> bool:
    """
    Check whether a test name is selected by a filter pattern.

    Backtracking two-pointer glob match: on ``*`` remember its position and
    move past it; on a literal mismatch resume just after the last remembered
    wildcard, one character further into the name.

    Args:
        pattern: Filter pattern, or None to select everything
        name: Registered test name

    Returns:
        bool: True if the name is selected
    """
    if pattern is None:
        return True

    p = 0
    n = 0
    star = -1
    resume = 0

    while n < len(name):
        if p < len(pattern) and pattern[p] == WILDCARD:
            star = p
            resume = n
            p += 1
        elif p < len(pattern) and pattern[p] == name[n]:
            p += 1
            n += 1
        elif star >= 0:
            # let the last wildcard absorb one more character
            resume += 1
            n = resume
            p = star + 1
        else:
            return False

    # trailing wildcards match the empty remainder
    while p < len(pattern) and pattern[p] == WILDCARD:
        p += 1

    return p == len(pattern)


def should_skip(pattern: Optional[str], name: str) -> bool:
    """A test is skipped when a pattern is present and does not select it."""
    return pattern is not None and not matches(pattern, name)
