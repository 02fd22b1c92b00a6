"""
Regular-expression natives.

Pattern arguments may be the name of one of the built-in patterns below
instead of a literal expression. Replacement strings refer to groups as
`$1`, `$2`, ... and `$0` for the whole match.
"""
import re
from typing import List

from oro.oro_datatypes import oro_native, require
from oro.oro_errors import OroRuntimeError


NAMED_PATTERNS = {
    "USPhoneNumber": r"((\(\d{3}\) ?)|(\d{3}-))?\d{3}-\d{4}",
    "USSSN": r"\d{3}-\d{2}-\d{4}",
    "Email": r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}",
    "Address": r"(\d{1,}) [a-zA-Z0-9\s]+(,)? [a-zA-Z]+(,)? [A-Z]{2} [0-9]{5,6}",
    "CreditCardNumber": r"\b(?:\d[ -]*?){13,16}\b",
}

_GROUP_REF = re.compile(r"\\(.)|\$(\d+)")


def compile_pattern(pattern: str) -> re.Pattern:
    """Compile a literal or named pattern, raising an Oro error when it is invalid."""
    source = NAMED_PATTERNS.get(pattern, pattern)
    try:
        return re.compile(source)
    except re.error as e:
        raise OroRuntimeError(f"Invalid Regex Pattern: {e}") from None


def _expand(match: re.Match, replacement: str) -> str:
    """Expand `$n` group references; `\\$` is a literal dollar sign."""
    def sub(m: re.Match) -> str:
        if m.group(1) is not None:
            return m.group(1)
        group = int(m.group(2))
        if group > (match.re.groups or 0):
            raise OroRuntimeError(f"No group {group} in pattern.")
        return match.group(group) or ""
    return _GROUP_REF.sub(sub, replacement)


def _limit(value, func: str) -> int:
    position = 3 if func == "regex_find" else 4
    require(value, "number", func, position)
    if not float(value).is_integer():
        raise OroRuntimeError(f"{func}() expects a whole number as argument {position}.")
    return max(int(value), 0)


@oro_native("matchRegex")
def match_regex(text, pattern):
    require(text, "string", "matchRegex", 1)
    require(pattern, "string", "matchRegex", 2)
    return compile_pattern(pattern).fullmatch(text) is not None


@oro_native("regex_match")
def regex_match(pattern, text):
    require(pattern, "string", "regex_match", 1)
    require(text, "string", "regex_match", 2)
    return compile_pattern(pattern).fullmatch(text) is not None


@oro_native("regex_find")
def regex_find(pattern, text, limit) -> List[str]:
    require(pattern, "string", "regex_find", 1)
    require(text, "string", "regex_find", 2)
    count = _limit(limit, "regex_find")
    found = []
    for m in compile_pattern(pattern).finditer(text):
        if len(found) >= count:
            break
        found.append(m.group(0))
    return found


@oro_native("regex_find_all")
def regex_find_all(pattern, text) -> List[str]:
    require(pattern, "string", "regex_find_all", 1)
    require(text, "string", "regex_find_all", 2)
    return [m.group(0) for m in compile_pattern(pattern).finditer(text)]


@oro_native("regex_replace")
def regex_replace(pattern, replacement, text, limit) -> str:
    require(pattern, "string", "regex_replace", 1)
    require(replacement, "string", "regex_replace", 2)
    require(text, "string", "regex_replace", 3)
    count = _limit(limit, "regex_replace")
    if count == 0:
        return text
    return compile_pattern(pattern).sub(lambda m: _expand(m, replacement), text, count=count)


@oro_native("regex_replace_all")
def regex_replace_all(pattern, replacement, text) -> str:
    require(pattern, "string", "regex_replace_all", 1)
    require(replacement, "string", "regex_replace_all", 2)
    require(text, "string", "regex_replace_all", 3)
    return compile_pattern(pattern).sub(lambda m: _expand(m, replacement), text)
