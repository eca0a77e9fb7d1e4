import pytest

from offleash.services.errors import RecipeValidationError
from offleash.services.recurring import Fixed, Indefinite, WeeklyRule, INDEFINITE_WEEKS


def test_parse_fixed_rule():
    rule = WeeklyRule.parse("WEEKLY:1,3,5:8")
    assert rule.days == (1, 3, 5)
    assert rule.horizon == Fixed(8)
    assert rule.weeks == 8
    assert not rule.indefinite


def test_parse_indefinite_rule():
    rule = WeeklyRule.parse("WEEKLY:2:INDEFINITE")
    assert rule.horizon == Indefinite()
    assert rule.indefinite
    assert rule.weeks == INDEFINITE_WEEKS


@pytest.mark.parametrize("text", ["WEEKLY:1,3,5:8", "WEEKLY:0,6:INDEFINITE", "WEEKLY:4:52"])
def test_str_is_canonical(text):
    assert str(WeeklyRule.parse(text)) == text


def test_days_are_sorted_and_deduplicated():
    assert WeeklyRule.parse("WEEKLY:5,1,1:2").days == (1, 5)


@pytest.mark.parametrize("text", [
    "",
    "DAILY:1:4",
    "WEEKLY:1:4:extra",
    "WEEKLY::4",
    "WEEKLY:7:4",
    "WEEKLY:a,b:4",
    "WEEKLY:1:0",
    "WEEKLY:1:53",
    "WEEKLY:1:soon",
])
def test_invalid_rules_are_rejected(text):
    with pytest.raises(RecipeValidationError):
        WeeklyRule.parse(text)


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        WeeklyRule(days=(), horizon=Fixed(4))
