import pytest

from app.models.character import Attribute
from app.services import stats


@pytest.mark.parametrize(
    "value, expected",
    [(1, -3), (3, -3), (4, -2), (5, -2), (6, -1), (8, -1), (9, 0), (12, 0),
     (13, 1), (14, 1), (15, 2), (16, 2), (17, 3), (18, 3), (19, 4), (25, 4)],
)
def test_modifier_table_boundaries(value, expected):
    assert stats.modifier_for(value) == expected
    assert Attribute(code="FOR", value=value).modifier == expected


def test_attribute_name_defaults_to_code():
    assert Attribute(code="DES", value=10).name == "DES"
    assert Attribute(code="DES", name="Destreza", value=10).name == "Destreza"


def test_armor_class_counts_only_equipped_armor(make_character, chainmail, longsword):
    character = make_character(equipment=[chainmail, longsword])
    # DES 13 → +1
    assert stats.armor_class(character) == 11

    chainmail.equipped = True
    longsword.equipped = True
    assert stats.armor_class(character) == 15


def test_damage_uses_weapon_or_unarmed(make_character, longsword):
    character = make_character(equipment=[longsword])
    assert stats.damage(character) == "1d3+2"
    longsword.equipped = True
    assert stats.damage(character) == "1d8+2"

    weak = make_character(attributes={"FOR": 7, "DES": 10})
    assert stats.damage(weak) == "1d3-1"


def test_attack_bonus_by_level(make_character):
    character = make_character()
    assert stats.attack_bonus(character) == 1
    assert stats.attack_bonus(character.model_copy(update={"level": 4})) == 3
    assert stats.attack_bonus(character.model_copy(update={"level": 5})) == 3


def test_hp_max_by_class_family():
    assert stats.hp_max("Guerreiro", 1) == 11
    assert stats.hp_max("Mago", 0) == 4
    assert stats.hp_max("Ladrão", -1) == 5
    assert stats.hp_max("Clérigo", 2) == 10
    assert stats.hp_max("Mago", -3) == 1


def test_derived_stats_snapshot(make_character):
    derived = stats.derived_stats(make_character())
    assert derived["armor_class"] == 11
    assert derived["attack_bonus"] == 1
    assert derived["unarmed"] is True
    assert derived["modifiers"]["FOR"] == 2
    assert derived["modifiers"]["CAR"] == -1


def test_missing_attribute_counts_as_zero(make_character):
    character = make_character(attributes={"INT": 18})
    assert stats.armor_class(character) == 10
    assert stats.damage(character) == "1d3+0"
