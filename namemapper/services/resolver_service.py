from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from namemapper.core.configuration import AUTH_TO_LOCAL, AUTHENTICATION, USER_NAME_MAPPING, Configuration
from namemapper.core.exceptions import ConfigurationError, NameMappingError, NoMatchingRuleError, ParseError
from namemapper.core.metrics import provider_failures_total, resolution_failures_total, resolutions_total
from namemapper.core.providers import Answer, Failure, NameMappingProvider, create_provider, provider_label, query_provider
from namemapper.services.principal_service import Principal, parse_principal
from namemapper.services.realm_service import discover_default_realm
from namemapper.services.rule_service import RuleTranslator

logger = logging.getLogger(__name__)

KERBEROS_METHODS = {"kerberos", "kerberos_ssl"}
AUTHENTICATION_METHODS = {"simple", "token"} | KERBEROS_METHODS
KERBEROS_DEFAULT_RULES = "DEFAULT"
SIMPLE_DEFAULT_RULES = "RULE:[1:$1] RULE:[2:$1]"

SOURCE_PROVIDER = "provider"
SOURCE_RULES = "rules"


class _GlobalMappingState:
    def __init__(self) -> None:
        self.lock = threading.RLock()
        self.conf: Configuration | None = None
        self.translator = RuleTranslator()
        self.provider: NameMappingProvider | None = None
        self.provider_built = False
        # lazily installed defaults do not count as configured
        self.conf_explicit = False
        self.rules_explicit = False

    def load(self, conf: Configuration, explicit: bool = True) -> None:
        method = (conf.get_trimmed(AUTHENTICATION) or "simple").lower()
        if method not in AUTHENTICATION_METHODS:
            raise ConfigurationError(f"Invalid attribute value for {AUTHENTICATION} of {method}")

        realm = discover_default_realm(conf)
        if method in KERBEROS_METHODS:
            if not realm:
                raise ConfigurationError("Can't get Kerberos realm")
            default_rules = KERBEROS_DEFAULT_RULES
        else:
            default_rules = SIMPLE_DEFAULT_RULES
        rule_string = conf.get(AUTH_TO_LOCAL) or default_rules

        with self.lock:
            self.translator.load_rules(rule_string)
            self.translator.set_default_realm(realm)
            self.conf = conf
            self.provider = None
            self.provider_built = False
            self.conf_explicit = explicit
            self.rules_explicit = explicit
        logger.debug("auth_to_local rules set to %s (default realm %s)", rule_string, realm)

    def ensure_loaded(self) -> Configuration:
        with self.lock:
            if self.conf is None:
                if self.rules_explicit:
                    self.conf = Configuration()
                else:
                    self.load(Configuration(), explicit=False)
            return self.conf

    def top_level_provider(self) -> NameMappingProvider | None:
        with self.lock:
            conf = self.ensure_loaded()
            if not self.provider_built:
                identifier = conf.get_trimmed(USER_NAME_MAPPING)
                if identifier:
                    logger.debug("%s is %s", USER_NAME_MAPPING, identifier)
                    self.provider = create_provider(identifier, conf)
                else:
                    logger.debug("%s is not defined; using auth_to_local rules only", USER_NAME_MAPPING)
                    self.provider = None
                self.provider_built = True
            return self.provider

    def reset(self) -> None:
        with self.lock:
            self.conf = None
            self.translator.clear()
            self.translator.set_default_realm(None)
            self.provider = None
            self.provider_built = False
            self.conf_explicit = False
            self.rules_explicit = False


_state = _GlobalMappingState()


def set_global_configuration(conf: Configuration) -> None:
    """
    Install the process-wide configuration and load its auth_to_local rules.

    This is a NOP once a configuration has been set. Defaults installed by a
    resolver created earlier are replaced. Rules given to set_rules are kept,
    but the configuration is still remembered for the provider chain. Use
    reload_global_configuration to replace everything.
    """
    with _state.lock:
        if _state.conf_explicit:
            logger.debug("Global configuration is already set; ignoring new configuration")
            return
        if _state.rules_explicit:
            logger.debug("auth_to_local rules were set directly; keeping them")
            _state.conf = conf
            _state.conf_explicit = True
            _state.provider = None
            _state.provider_built = False
            return
        _state.load(conf)


def reload_global_configuration(conf: Configuration) -> None:
    with _state.lock:
        _state.load(conf)


def reset_global_configuration() -> None:
    _state.reset()


def get_global_configuration() -> Configuration | None:
    with _state.lock:
        return _state.conf


def set_rules(rule_string: str) -> None:
    with _state.lock:
        _state.translator.load_rules(rule_string)
        _state.rules_explicit = True


def get_rule_translator() -> RuleTranslator:
    return _state.translator


@dataclass(frozen=True, slots=True)
class Resolution:
    principal: str
    short_name: str
    source: str


class PrincipalResolver:
    """
    A parsed principal that knows how to become a local user name.

    The configured top-level provider is asked first with the original
    principal text; the auth_to_local rules are always the last resort.
    """

    def __init__(self, name: str) -> None:
        try:
            self._principal = parse_principal(name)
        except ParseError:
            resolution_failures_total.labels(reason="parse").inc()
            raise
        self._text = name
        self._provider = _state.top_level_provider()
        logger.debug("User name mapping impl=%s", provider_label(self._provider) if self._provider else None)

    @property
    def principal(self) -> Principal:
        return self._principal

    @property
    def primary(self) -> str:
        return self._principal.primary

    @property
    def instance(self) -> str | None:
        return self._principal.instance

    @property
    def realm(self) -> str:
        return self._principal.realm

    @property
    def provider(self) -> NameMappingProvider | None:
        return self._provider

    def resolve(self) -> Resolution:
        if self._provider is not None:
            outcome = query_provider(self._provider, self._text)
            if isinstance(outcome, Answer):
                resolutions_total.labels(source=SOURCE_PROVIDER).inc()
                return Resolution(principal=self._text, short_name=outcome.name, source=SOURCE_PROVIDER)
            if isinstance(outcome, Failure):
                label = provider_label(self._provider)
                provider_failures_total.labels(provider=label).inc()
                logger.debug(
                    "Provider %s failed for %s; trying auth_to_local rules",
                    label,
                    self._text,
                    exc_info=outcome.error,
                    extra={"principal": self._text, "provider": label},
                )
            else:
                logger.debug("No short name from provider for %s; trying auth_to_local rules", self._text)

        try:
            short_name = _state.translator.translate(self._principal)
        except NameMappingError as exc:
            reason = "no_rule" if isinstance(exc, NoMatchingRuleError) else "bad_format"
            resolution_failures_total.labels(reason=reason).inc()
            raise
        resolutions_total.labels(source=SOURCE_RULES).inc()
        logger.debug(
            "Short name of %s from auth_to_local rules is %s",
            self._text,
            short_name,
            extra={"principal": self._text, "short_name": short_name, "source": SOURCE_RULES},
        )
        return Resolution(principal=self._text, short_name=short_name, source=SOURCE_RULES)

    def get_short_name(self) -> str:
        return self.resolve().short_name

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"PrincipalResolver({self._text!r})"
