from __future__ import annotations

import re
from dataclasses import dataclass

from namemapper.core.exceptions import ParseError

PRINCIPAL_PATTERN = re.compile(r"([^/@]+)(?:/([^/@]+))?@(.+)", re.DOTALL)


@dataclass(frozen=True, slots=True)
class Principal:
    primary: str
    realm: str
    instance: str | None = None

    @property
    def components(self) -> tuple[str, ...]:
        if self.instance is None:
            return (self.primary,)
        return (self.primary, self.instance)

    def __str__(self) -> str:
        if self.instance is None:
            return f"{self.primary}@{self.realm}"
        return f"{self.primary}/{self.instance}@{self.realm}"


def parse_principal(text: str) -> Principal:
    match = PRINCIPAL_PATTERN.fullmatch(text or "")
    if not match:
        raise ParseError(text)
    primary, instance, realm = match.groups()
    return Principal(primary=primary, realm=realm, instance=instance)
