from __future__ import annotations


class NameMappingError(Exception):
    """Base error for principal-to-local-name resolution."""


class ParseError(NameMappingError, ValueError):
    def __init__(self, text: str) -> None:
        super().__init__(f"Malformed principal name: {text!r}")
        self.text = text


class BadFormatError(NameMappingError, ValueError):
    pass


class NoMatchingRuleError(NameMappingError):
    pass


class ConfigurationError(NameMappingError):
    pass


class ProviderInfrastructureError(NameMappingError):
    """
    Raised by provider implementations when their backend fails.
    The composite mapper contains it; it never reaches resolver callers.
    """
