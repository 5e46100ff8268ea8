from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from namemapper.core.configuration import (
    CONFLICT_DETECTION,
    USER_NAME_MAPPING,
    USER_NAME_MAPPING_PROVIDER_PREFIX,
    USER_NAME_MAPPING_PROVIDERS,
    Configuration,
)
from namemapper.core.exceptions import ConfigurationError
from namemapper.core.metrics import provider_conflicts_total, provider_failures_total, providers_skipped_total
from namemapper.core.providers import (
    Failure,
    NameMappingProvider,
    NoAnswer,
    create_provider,
    query_provider,
    register_provider,
)

logger = logging.getLogger(__name__)

COMPOSITE_PROVIDER = "composite"


@dataclass(frozen=True, slots=True)
class ProviderEntry:
    name: str
    identifier: str
    provider: NameMappingProvider
    conf: Configuration


class CompositeNameMapper:
    """
    Name mapping provider that chains other providers.

    Providers are listed in ``<root>.providers`` and each one is built from
    ``<root>.provider.<name>``. Settings written as
    ``<root>.provider.<name>.<suffix>`` reach that provider as
    ``<root>.<suffix>``, so an existing provider can be reused inside the
    chain without knowing it is composed. The first non-empty short name wins.

    Duplicate names are not rejected: each occurrence runs in declared order
    with the same scoped configuration.
    """

    name = COMPOSITE_PROVIDER

    def __init__(self, conf: Configuration | None = None) -> None:
        self._lock = threading.RLock()
        self._conf: Configuration | None = None
        self._providers: list[ProviderEntry] = []
        self._conflict_detection = False
        if conf is not None:
            self.configure(conf)

    @property
    def configured(self) -> bool:
        with self._lock:
            return self._conf is not None

    @property
    def conf(self) -> Configuration | None:
        with self._lock:
            return self._conf

    @property
    def providers(self) -> list[ProviderEntry]:
        with self._lock:
            return list(self._providers)

    def configure(self, conf: Configuration) -> None:
        with self._lock:
            if self._conf is not None:
                raise ConfigurationError("Composite name mapping is already configured; build a new one instead.")
            conflict_detection = conf.get_bool(CONFLICT_DETECTION)
            self._conf = conf
            self._conflict_detection = conflict_detection
            self._load_mapping_providers(conf)

    def _load_mapping_providers(self, conf: Configuration) -> None:
        for provider_name in conf.get_strings(USER_NAME_MAPPING_PROVIDERS):
            provider_key = f"{USER_NAME_MAPPING_PROVIDER_PREFIX}.{provider_name}"
            identifier = conf.get_trimmed(provider_key)
            if not identifier:
                providers_skipped_total.inc()
                logger.error("The mapping provider, %s does not have a valid implementation", provider_name)
                continue
            scoped = conf.scoped(provider_key, USER_NAME_MAPPING)
            try:
                provider = create_provider(identifier, scoped)
            except ConfigurationError as exc:
                providers_skipped_total.inc()
                logger.error("The mapping provider, %s could not be created: %s", provider_name, exc)
                continue
            self._providers.append(
                ProviderEntry(name=provider_name, identifier=identifier, provider=provider, conf=scoped)
            )
            logger.debug("Added mapping provider %s (%s)", provider_name, identifier)

    def resolve(self, principal: str) -> str | None:
        with self._lock:
            if self._conf is None:
                raise ConfigurationError("Composite name mapping used before being configured.")

            winner: tuple[ProviderEntry, str] | None = None
            for entry in self._providers:
                outcome = query_provider(entry.provider, principal)
                if isinstance(outcome, Failure):
                    provider_failures_total.labels(provider=entry.name).inc()
                    logger.debug(
                        "Exception trying to get short name of user %s",
                        principal,
                        exc_info=outcome.error,
                        extra={"principal": principal, "provider": entry.name},
                    )
                    continue
                if isinstance(outcome, NoAnswer):
                    continue

                if winner is None:
                    winner = (entry, outcome.name)
                    logger.debug(
                        "Short name of user %s found by provider %s",
                        principal,
                        entry.name,
                        extra={"principal": principal, "provider": entry.name, "short_name": outcome.name},
                    )
                    if not self._conflict_detection:
                        break
                elif outcome.name != winner[1]:
                    provider_conflicts_total.inc()
                    logger.warning(
                        "Providers disagree on %s: %s says %s, %s says %s; keeping %s",
                        principal,
                        winner[0].name,
                        winner[1],
                        entry.name,
                        outcome.name,
                        winner[1],
                        extra={"principal": principal, "provider": entry.name},
                    )

            return winner[1] if winner else None

    def refresh_cache(self) -> None:
        self._broadcast("refresh_cache", lambda provider: provider.refresh_cache())

    def add_to_cache(self, names: Sequence[str]) -> None:
        names = list(names)
        self._broadcast("add_to_cache", lambda provider: provider.add_to_cache(names))

    def _broadcast(self, operation: str, call: Callable[[NameMappingProvider], None]) -> None:
        with self._lock:
            for entry in self._providers:
                try:
                    call(entry.provider)
                except Exception as exc:  # noqa: BLE001
                    provider_failures_total.labels(provider=entry.name).inc()
                    logger.error(
                        "Provider %s failed during %s: %s",
                        entry.name,
                        operation,
                        exc,
                        extra={"provider": entry.name},
                    )


register_provider(COMPOSITE_PROVIDER, CompositeNameMapper)
