from __future__ import annotations

import dataclasses

import pytest

from namemapper.core.exceptions import ParseError
from namemapper.services.principal_service import Principal, parse_principal


@pytest.mark.parametrize(
    "text",
    [
        "user@REALM",
        "nobody@AD.COM",
        "cluster1hdfs/host@AD.COM",
        "hdfs/nn1.example.com@EXAMPLE.COM",
        "odd@realm@with-at",
    ],
)
def test_parse_round_trips(text: str) -> None:
    assert str(parse_principal(text)) == text


def test_parse_components() -> None:
    principal = parse_principal("cluster1hdfs/host@AD.COM")
    assert principal.primary == "cluster1hdfs"
    assert principal.instance == "host"
    assert principal.realm == "AD.COM"
    assert principal.components == ("cluster1hdfs", "host")

    single = parse_principal("joe@AD.COM")
    assert single.instance is None
    assert single.components == ("joe",)


@pytest.mark.parametrize(
    "text",
    ["", "joe", "joe@", "@AD.COM", "a/b/c@AD.COM", "a/@AD.COM", "/host@AD.COM"],
)
def test_parse_rejects_malformed(text: str) -> None:
    with pytest.raises(ParseError):
        parse_principal(text)


def test_principal_is_immutable() -> None:
    principal = Principal(primary="joe", realm="AD.COM")
    with pytest.raises(dataclasses.FrozenInstanceError):
        principal.primary = "jack"  # type: ignore[misc]
