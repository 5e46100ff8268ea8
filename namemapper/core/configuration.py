from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path

from namemapper.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

USER_NAME_MAPPING = "security.user.name.mapping"
USER_NAME_MAPPING_PROVIDERS = f"{USER_NAME_MAPPING}.providers"
USER_NAME_MAPPING_PROVIDER_PREFIX = f"{USER_NAME_MAPPING}.provider"
CONFLICT_DETECTION = f"{USER_NAME_MAPPING}.conflict.detection"
AUTH_TO_LOCAL = "security.auth_to_local"
AUTHENTICATION = "security.authentication"
DEFAULT_REALM = "security.kerberos.default_realm"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _segments(key: str) -> tuple[str, ...]:
    return tuple(key.split("."))


class Configuration:
    """
    Ordered string key/value store shared by the resolver and providers.

    Keys are dotted paths. Scoping and layering operate on whole segments,
    so ``provider.A`` never matches keys that belong to ``provider.AB``.
    """

    def __init__(self, values: Mapping[str, str] | None = None) -> None:
        self._values: dict[str, str] = {}
        if values:
            for key, value in values.items():
                self.set(key, value)

    @classmethod
    def layered(cls, *layers: Configuration | Mapping[str, str] | None) -> Configuration:
        merged = cls()
        for layer in layers:
            if layer is None:
                continue
            items = layer if isinstance(layer, Configuration) else layer.items()
            for key, value in items:
                merged.set(key, value)
        return merged

    @classmethod
    def from_pairs(cls, pairs: Iterable[str]) -> Configuration:
        conf = cls()
        for pair in pairs:
            key, sep, value = pair.partition("=")
            if not sep or not key.strip():
                raise ConfigurationError(f"Expected key=value, got {pair!r}.")
            conf.set(key.strip(), value.strip())
        return conf

    @classmethod
    def from_file(cls, path: str | Path) -> Configuration:
        path = Path(path)
        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise ConfigurationError(f"Unable to read configuration file {path}.") from exc

        conf = cls()
        for number, raw in enumerate(lines, start=1):
            line = raw.strip()
            if not line or line[0] in "#!":
                continue
            separator = min((idx for idx in (line.find("="), line.find(":")) if idx > 0), default=-1)
            if separator < 0:
                raise ConfigurationError(f"{path}:{number}: expected key=value.")
            conf.set(line[:separator].strip(), line[separator + 1 :].strip())
        logger.debug("Loaded %s keys from %s", len(conf), path)
        return conf

    def get(self, key: str, default: str | None = None) -> str | None:
        return self._values.get(key, default)

    def get_trimmed(self, key: str, default: str | None = None) -> str | None:
        value = self._values.get(key)
        if value is None:
            return default
        return value.strip()

    def get_strings(self, key: str) -> list[str]:
        value = self._values.get(key)
        if not value:
            return []
        return [item.strip() for item in value.split(",") if item.strip()]

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get_trimmed(key)
        if value is None or value == "":
            return default
        lowered = value.lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        raise ConfigurationError(f"{key} must be a boolean, got {value!r}.")

    def set(self, key: str, value: str) -> None:
        if not key:
            raise ConfigurationError("Configuration keys must not be empty.")
        self._values[key] = str(value)

    def unset(self, key: str) -> None:
        self._values.pop(key, None)

    def scoped(self, source_prefix: str, target_prefix: str = "") -> Configuration:
        """
        Copy every key strictly below ``source_prefix`` into a fresh
        configuration, re-rooted under ``target_prefix``.

        ``a.provider.x.url`` scoped from ``a.provider.x`` to ``a`` becomes
        ``a.url``. The key equal to ``source_prefix`` itself is not copied.
        """
        source = _segments(source_prefix)
        target = _segments(target_prefix) if target_prefix else ()
        scoped = Configuration()
        for key, value in self._values.items():
            parts = _segments(key)
            if len(parts) <= len(source) or parts[: len(source)] != source:
                continue
            scoped.set(".".join(target + parts[len(source) :]), value)
        return scoped

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __iter__(self) -> Iterator[tuple[str, str]]:
        return iter(list(self._values.items()))

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Configuration):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"Configuration({len(self._values)} keys)"
