import pytest

from app.models.character import Attribute, Item
from app.models.enums import AdjustableStat, ItemType, MessageType
from app.services import character_service, stats


def test_create_character_has_full_hit_points():
    character = character_service.create_character(
        name="Lia",
        race="Elfo",
        character_class="Mago",
        attributes=[Attribute(code="CON", value=13), Attribute(code="INT", value=17)],
        session_id="1",
        gold=90,
    )
    assert character.level == 1
    assert character.hp.current == character.hp.max == 5
    assert character.session_id == "1"
    assert character.attribute("INT").modifier == 3


def test_buy_item_deducts_gold(make_character):
    character = make_character(gold=30)
    sword = Item(name="Espada Longa", cost=10, type=ItemType.WEAPON, damage="1d8")

    updated = character_service.buy_item(character, sword)
    assert updated.gold == 20
    assert len(updated.equipment) == 1
    assert updated.equipment[0].equipped is False
    assert character.gold == 30

    with pytest.raises(ValueError, match="not_enough_gold"):
        character_service.buy_item(updated, Item(name="Cota de Malha", cost=60, type=ItemType.ARMOR, ac=4))


def test_refund_item_gives_cost_back(make_character):
    character = character_service.buy_item(make_character(gold=10), Item(name="Adaga", cost=2))
    instance_id = character.equipment[0].instance_id
    refunded = character_service.refund_item(character, instance_id)
    assert refunded.gold == 10
    assert refunded.equipment == []
    with pytest.raises(KeyError):
        character_service.refund_item(refunded, instance_id)


def test_toggle_equip_changes_armor_class(make_character, chainmail):
    character = make_character(equipment=[chainmail])
    equipped = character_service.toggle_equip(character, chainmail.instance_id)
    assert stats.armor_class(equipped) == 15
    unequipped = character_service.toggle_equip(equipped, chainmail.instance_id)
    assert stats.armor_class(unequipped) == 11


def test_set_attribute_recomputes_modifier(make_character):
    character = character_service.set_attribute(make_character(), "FOR", 18)
    assert character.attribute("FOR").value == 18
    assert character.attribute("FOR").modifier == 3
    with pytest.raises(KeyError):
        character_service.set_attribute(character, "XYZ", 10)


def test_adjust_hp_clamps_to_zero(make_character):
    character = make_character(name="Thorin", hp=(5, 10))
    updated, message = character_service.adjust_stat(character, AdjustableStat.HP, -999)
    assert updated.hp.current == 0
    assert updated.hp.max == 10
    assert message.type == MessageType.SYSTEM
    assert message.sender_name == "System"
    assert message.content == "Thorin lost 999 HP."


def test_adjust_hp_clamps_to_max(make_character):
    updated, message = character_service.adjust_stat(make_character(hp=(5, 10)), "hp", 20)
    assert updated.hp.current == 10
    assert message.content == "Thorin gained 20 HP."


def test_adjust_gold_and_xp_never_negative(make_character):
    character = make_character(gold=15, xp=40)
    poorer, message = character_service.adjust_stat(character, AdjustableStat.GOLD, -50)
    assert poorer.gold == 0
    assert message.content == "Thorin lost 50 Gold."

    wiser, message = character_service.adjust_stat(character, AdjustableStat.XP, 100)
    assert wiser.xp == 140
    assert message.content == "Thorin gained 100 XP."


def test_zero_delta_posts_nothing(make_character):
    updated, message = character_service.adjust_stat(make_character(gold=5), AdjustableStat.GOLD, 0)
    assert updated.gold == 5
    assert message is None
