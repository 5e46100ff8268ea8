from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from importlib.metadata import entry_points
from typing import Protocol, runtime_checkable

from namemapper.core.configuration import Configuration
from namemapper.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "namemapper.providers"


@runtime_checkable
class NameMappingProvider(Protocol):
    """
    Contract for principal-to-short-name providers.

    ``resolve`` receives the principal text exactly as the caller wrote it and
    returns ``None`` (or an empty string) for principals it does not know.
    Only backend failures raise, preferably ProviderInfrastructureError.
    """

    def resolve(self, principal: str) -> str | None:
        ...

    def refresh_cache(self) -> None:
        ...

    def add_to_cache(self, names: Sequence[str]) -> None:
        ...


ProviderFactory = Callable[[Configuration], NameMappingProvider]


@dataclass(frozen=True, slots=True)
class Answer:
    name: str

    @property
    def short_name(self) -> str | None:
        return self.name


@dataclass(frozen=True, slots=True)
class NoAnswer:
    @property
    def short_name(self) -> str | None:
        return None


@dataclass(frozen=True, slots=True)
class Failure:
    error: Exception

    @property
    def short_name(self) -> str | None:
        return None


ProviderOutcome = Answer | NoAnswer | Failure


def query_provider(provider: NameMappingProvider, principal: str) -> ProviderOutcome:
    try:
        name = provider.resolve(principal)
    except Exception as exc:  # noqa: BLE001
        return Failure(error=exc)
    if not name:
        return NoAnswer()
    return Answer(name=name)


def provider_label(provider: object) -> str:
    return getattr(provider, "name", None) or type(provider).__name__


_registry: dict[str, ProviderFactory] = {}
_registry_lock = threading.RLock()
_entry_points_scanned = False


def register_provider(identifier: str, factory: ProviderFactory) -> None:
    with _registry_lock:
        if identifier in _registry:
            logger.debug("Replacing name mapping provider %s", identifier)
        _registry[identifier] = factory


def unregister_provider(identifier: str) -> None:
    with _registry_lock:
        _registry.pop(identifier, None)


def registered_providers() -> list[str]:
    with _registry_lock:
        return sorted(_registry)


def _scan_entry_points() -> None:
    global _entry_points_scanned
    if _entry_points_scanned:
        return
    _entry_points_scanned = True
    for entry_point in entry_points(group=ENTRY_POINT_GROUP):
        if entry_point.name in _registry:
            continue
        try:
            _registry[entry_point.name] = entry_point.load()
        except Exception as exc:  # noqa: BLE001
            logger.error("Unable to load name mapping provider %s: %s", entry_point.name, exc)


def _lookup(identifier: str) -> ProviderFactory | None:
    with _registry_lock:
        factory = _registry.get(identifier)
        if factory is None:
            _scan_entry_points()
            factory = _registry.get(identifier)
        return factory


def create_provider(identifier: str, conf: Configuration) -> NameMappingProvider:
    factory = _lookup(identifier)
    if factory is None:
        raise ConfigurationError(f"Unknown name mapping provider {identifier!r}.")
    try:
        provider = factory(conf)
    except ConfigurationError:
        raise
    except Exception as exc:  # noqa: BLE001
        raise ConfigurationError(f"Name mapping provider {identifier!r} could not be created: {exc}") from exc
    if not isinstance(provider, NameMappingProvider):
        raise ConfigurationError(f"{identifier!r} does not implement the name mapping provider contract.")
    return provider
