from __future__ import annotations

import pytest

from namemapper.core.exceptions import BadFormatError, NoMatchingRuleError
from namemapper.services.principal_service import parse_principal
from namemapper.services.rule_service import RuleTranslator, parse_rules


def _translate(rules: str, text: str, default_realm: str | None = None) -> str:
    translator = RuleTranslator(default_realm=default_realm)
    translator.load_rules(rules)
    return translator.translate(parse_principal(text))


def test_simple_rule_strips_realm() -> None:
    assert _translate("RULE:[1:$1]", "user@REALM") == "user"


def test_simple_defaults_cover_both_component_counts() -> None:
    rules = "RULE:[1:$1] RULE:[2:$1]"
    assert _translate(rules, "joe@AD.COM") == "joe"
    assert _translate(rules, "hdfs/host@AD.COM") == "hdfs"


def test_default_rule_requires_default_realm() -> None:
    assert _translate("DEFAULT", "joe@EXAMPLE.COM", default_realm="EXAMPLE.COM") == "joe"
    assert _translate("DEFAULT", "hdfs/nn1@EXAMPLE.COM", default_realm="EXAMPLE.COM") == "hdfs"
    with pytest.raises(NoMatchingRuleError):
        _translate("DEFAULT", "joe@OTHER.COM", default_realm="EXAMPLE.COM")
    with pytest.raises(NoMatchingRuleError):
        _translate("DEFAULT", "joe@EXAMPLE.COM")


def test_first_matching_rule_wins() -> None:
    rules = """
        RULE:[2:$1@$0](hdfs@.*)s/.*/hdfs/
        RULE:[2:$1@$0](nn@.*)s/.*/namenode/
        RULE:[2:$1]
    """
    assert _translate(rules, "hdfs/host@AD.COM") == "hdfs"
    assert _translate(rules, "nn/host@AD.COM") == "namenode"
    assert _translate(rules, "yarn/host@AD.COM") == "yarn"


def test_match_must_cover_whole_formatted_name() -> None:
    with pytest.raises(NoMatchingRuleError):
        _translate("RULE:[1:$1@$0](joe)", "joe@AD.COM")


def test_substitution_first_and_global() -> None:
    assert _translate("RULE:[1:$1](.*)s/a/x/", "banana@R") == "bxnana"
    assert _translate("RULE:[1:$1](.*)s/a/x/g", "banana@R") == "bxnxnx"


def test_substitution_group_reference() -> None:
    assert _translate(r"RULE:[1:$1@$0](.*@CORP)s/(.*)@CORP/corp_$1/", "joe@CORP") == "corp_joe"


def test_group_reference_digits_stop_at_group_count() -> None:
    assert _translate("RULE:[1:$1]s/(j)oe/$10/", "joe@R") == "j0"
    assert _translate("RULE:[1:$1]s/(a)(b)(c)(d)(e)(f)(g)(h)(i)(j)/$10/", "abcdefghij@R") == "j"


def test_lowercase_flag() -> None:
    assert _translate("RULE:[1:$1]/L", "JackJohn@BC.COM") == "jackjohn"
    assert _translate("DEFAULT/L", "JOE@EXAMPLE.COM", default_realm="EXAMPLE.COM") == "joe"


def test_non_simple_result_is_rejected() -> None:
    with pytest.raises(NoMatchingRuleError, match="Non-simple name"):
        _translate("RULE:[1:$1@$0]", "joe@AD.COM")


def test_no_rule_applies() -> None:
    with pytest.raises(NoMatchingRuleError, match="No rules applied to hdfs/host@AD.COM"):
        _translate("RULE:[1:$1]", "hdfs/host@AD.COM")


def test_format_index_out_of_range() -> None:
    with pytest.raises(BadFormatError):
        _translate("RULE:[1:$2]", "joe@AD.COM")
    with pytest.raises(BadFormatError):
        _translate("RULE:[1:$]", "joe@AD.COM")


@pytest.mark.parametrize("rules", ["GARBAGE", "RULE:[x:$1]", "RULE:[1:$1](", "RULE:[1:$1](.*)s/(a)/$2/"])
def test_invalid_rule_text(rules: str) -> None:
    with pytest.raises(BadFormatError):
        parse_rules(rules)


def test_rule_text_is_preserved() -> None:
    text = "RULE:[2:$1@$0](hdfs@.*)s/.*/hdfs/g/L"
    (rule,) = parse_rules(text)
    assert str(rule) == text
    assert [str(rule) for rule in parse_rules("DEFAULT RULE:[1:$1]")] == ["DEFAULT", "RULE:[1:$1]"]


def test_load_rules_replaces_previous_set() -> None:
    translator = RuleTranslator()
    assert translator.has_rules is False
    with pytest.raises(NoMatchingRuleError):
        translator.translate(parse_principal("joe@AD.COM"))

    translator.load_rules("RULE:[1:$1]")
    translator.load_rules("RULE:[1:$0]")
    assert len(translator.rules) == 1
    assert translator.translate(parse_principal("joe@AD.COM")) == "AD.COM"
