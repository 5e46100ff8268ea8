from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from namemapper.core.config import get_settings
from namemapper.core.configuration import DEFAULT_REALM, Configuration

logger = logging.getLogger(__name__)

_SECTION_PATTERN = re.compile(r"^\s*\[(?P<section>[^\]]+)\]\s*$")
_DEFAULT_REALM_PATTERN = re.compile(r"^\s*default_realm\s*=\s*(?P<realm>\S+)\s*$")


def _krb5_config_path() -> Path:
    env_path = os.environ.get("KRB5_CONFIG")
    if env_path:
        # MIT krb5 accepts a colon separated search list; the first file wins.
        return Path(env_path.split(":")[0])
    return get_settings().krb5_config


def read_krb5_default_realm(path: Path) -> str | None:
    try:
        lines = path.read_text(encoding="utf-8").splitlines()
    except OSError:
        return None

    section = None
    for line in lines:
        stripped = line.strip()
        if not stripped or stripped[0] in "#;":
            continue
        header = _SECTION_PATTERN.match(stripped)
        if header:
            section = header.group("section").strip()
            continue
        if section != "libdefaults":
            continue
        found = _DEFAULT_REALM_PATTERN.match(stripped)
        if found:
            return found.group("realm")
    return None


def discover_default_realm(conf: Configuration) -> str | None:
    realm = conf.get_trimmed(DEFAULT_REALM)
    if realm:
        return realm

    realm = get_settings().default_realm
    if realm:
        return realm.strip()

    path = _krb5_config_path()
    realm = read_krb5_default_realm(path)
    if realm:
        logger.debug("Default realm %s read from %s", realm, path)
    return realm
