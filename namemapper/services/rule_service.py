"""
auth_to_local rules.

A rule set is a whitespace separated list of rules, tried in order::

    DEFAULT
    RULE:[1:$1@$0](.*@EXAMPLE\\.COM)s/@.*//
    RULE:[2:$1](hdfs)s/.*/hdfs/g/L

``RULE:[n:format]`` only applies to principals with ``n`` components
(``primary@REALM`` has one, ``primary/instance@REALM`` has two). The format
builds a string from ``$0`` (realm), ``$1`` (primary) and ``$2`` (instance);
the optional ``(regex)`` must match that whole string; the optional
``s/from/to/`` substitution rewrites it, once or with ``g`` everywhere;
a trailing ``/L`` lowercases the result. ``DEFAULT`` yields the primary when
the realm is the default realm.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from namemapper.core.exceptions import BadFormatError, NoMatchingRuleError
from namemapper.services.principal_service import Principal

logger = logging.getLogger(__name__)

RULE_PATTERN = re.compile(
    r"\s*(?:(?P<default>DEFAULT)"
    r"|RULE:\[(?P<components>\d+):(?P<format>[^\]]*)\]"
    r"(?:\((?P<match>[^)]*)\))?"
    r"(?:s/(?P<from>[^/]*)/(?P<to>[^/]*)/(?P<repeat>g)?)?)"
    r"/?(?P<lower>L)?"
)
PARAMETER_PATTERN = re.compile(r"\$(\d*)")
NON_SIMPLE_PATTERN = re.compile(r"[/@]")


def _replace_parameters(fmt: str, params: tuple[str, ...]) -> str:
    def substitute(match: re.Match[str]) -> str:
        digits = match.group(1)
        if not digits:
            raise BadFormatError(f"Bad format in username mapping in {fmt!r}: '$' without an index.")
        index = int(digits)
        if index >= len(params):
            raise BadFormatError(
                f"Index {index} from {fmt!r} is outside of the valid range 0 to {len(params) - 1}."
            )
        return params[index]

    return PARAMETER_PATTERN.sub(substitute, fmt)


def _compile_replacement(template: str, groups: int) -> Callable[[re.Match[str]], str]:
    """Turn a ``$n`` style replacement into a callable usable with re.sub."""
    tokens: list[str | int] = []
    literal: list[str] = []
    idx = 0
    while idx < len(template):
        char = template[idx]
        if char == "\\" and idx + 1 < len(template):
            literal.append(template[idx + 1])
            idx += 2
        elif char == "$":
            end = idx + 1
            if end >= len(template) or not template[end].isdigit():
                raise BadFormatError(f"Illegal group reference in replacement {template!r}.")
            group = int(template[end])
            if group > groups:
                raise BadFormatError(f"No group {group} in replacement {template!r}.")
            end += 1
            # further digits extend the reference only while it names an existing group
            while end < len(template) and template[end].isdigit():
                extended = group * 10 + int(template[end])
                if extended > groups:
                    break
                group = extended
                end += 1
            if literal:
                tokens.append("".join(literal))
                literal = []
            tokens.append(group)
            idx = end
        else:
            literal.append(char)
            idx += 1
    if literal:
        tokens.append("".join(literal))

    def expand(match: re.Match[str]) -> str:
        return "".join(token if isinstance(token, str) else (match.group(token) or "") for token in tokens)

    return expand


def _compile(pattern: str, rule_text: str) -> re.Pattern[str]:
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise BadFormatError(f"Invalid regular expression in rule {rule_text!r}: {exc}") from exc


@dataclass(frozen=True, slots=True)
class Rule:
    is_default: bool = False
    components: int = 0
    format: str = ""
    match: re.Pattern[str] | None = None
    from_pattern: re.Pattern[str] | None = None
    to_pattern: str | None = None
    repeat: bool = False
    lowercase: bool = False
    replacement: Callable[[re.Match[str]], str] | None = field(default=None, compare=False, repr=False)

    @classmethod
    def from_match(cls, match: re.Match[str]) -> Rule:
        text = match.group(0).strip()
        lowercase = match.group("lower") is not None
        if match.group("default"):
            return cls(is_default=True, lowercase=lowercase)

        from_pattern = replacement = None
        if match.group("from") is not None:
            from_pattern = _compile(match.group("from"), text)
            replacement = _compile_replacement(match.group("to"), from_pattern.groups)
        return cls(
            components=int(match.group("components")),
            format=match.group("format"),
            match=_compile(match.group("match"), text) if match.group("match") is not None else None,
            from_pattern=from_pattern,
            to_pattern=match.group("to"),
            repeat=match.group("repeat") is not None,
            lowercase=lowercase,
            replacement=replacement,
        )

    def apply(self, principal: Principal, default_realm: str | None) -> str | None:
        if self.is_default:
            if default_realm is None or principal.realm != default_realm:
                return None
            result = principal.primary
        else:
            components = principal.components
            if len(components) != self.components:
                return None
            base = _replace_parameters(self.format, (principal.realm, *components))
            if self.match is not None and not self.match.fullmatch(base):
                return None
            if self.from_pattern is None or self.replacement is None:
                result = base
            else:
                result = self.from_pattern.sub(self.replacement, base, count=0 if self.repeat else 1)

        if NON_SIMPLE_PATTERN.search(result):
            raise NoMatchingRuleError(f"Non-simple name {result} after auth_to_local rule {self}")
        if self.lowercase:
            result = result.lower()
        return result

    def __str__(self) -> str:
        if self.is_default:
            text = "DEFAULT"
        else:
            text = f"RULE:[{self.components}:{self.format}]"
            if self.match is not None:
                text += f"({self.match.pattern})"
            if self.from_pattern is not None:
                text += f"s/{self.from_pattern.pattern}/{self.to_pattern}/"
                if self.repeat:
                    text += "g"
        if self.lowercase:
            text += "/L"
        return text


def parse_rules(rule_string: str) -> tuple[Rule, ...]:
    remaining = (rule_string or "").strip()
    rules: list[Rule] = []
    while remaining:
        match = RULE_PATTERN.match(remaining)
        if not match or not match.group(0).strip():
            raise BadFormatError(f"Invalid rule: {remaining}")
        rules.append(Rule.from_match(match))
        remaining = remaining[match.end() :].strip()
    return tuple(rules)


class RuleTranslator:
    """Default translator backed by an ordered auth_to_local rule list."""

    def __init__(self, default_realm: str | None = None) -> None:
        self._lock = threading.RLock()
        self._rules: tuple[Rule, ...] | None = None
        self._default_realm = default_realm

    @property
    def has_rules(self) -> bool:
        with self._lock:
            return self._rules is not None

    @property
    def rules(self) -> tuple[Rule, ...]:
        with self._lock:
            return self._rules or ()

    @property
    def default_realm(self) -> str | None:
        with self._lock:
            return self._default_realm

    def set_default_realm(self, realm: str | None) -> None:
        with self._lock:
            self._default_realm = realm

    def load_rules(self, rule_string: str) -> None:
        rules = parse_rules(rule_string)
        with self._lock:
            self._rules = rules
        logger.debug("Loaded %s auth_to_local rules", len(rules))

    def clear(self) -> None:
        with self._lock:
            self._rules = None

    def translate(self, principal: Principal) -> str:
        with self._lock:
            rules = self._rules
            default_realm = self._default_realm
        if rules is None:
            raise NoMatchingRuleError("No auth_to_local rules have been loaded.")
        for rule in rules:
            result = rule.apply(principal, default_realm)
            if result is not None:
                return result
        raise NoMatchingRuleError(f"No rules applied to {principal}")
