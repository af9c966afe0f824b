from types import SimpleNamespace
from unittest.mock import Mock

import pytest

from app.models.character import Attribute, Character, HitPoints, InventoryItem
from app.models.enums import ItemType
from app.services import oracle, session_store
from app.services.storage import JsonFileStore


class SequenceRng:
    """Faux générateur : `randint` renvoie les valeurs fournies, dans l'ordre."""

    def __init__(self, *values):
        self.values = list(values)

    def randint(self, a, b):
        value = self.values.pop(0)
        assert a <= value <= b
        return value

    def choice(self, seq):
        return seq[0]


@pytest.fixture
def sequence_rng():
    return SequenceRng


@pytest.fixture
def store(tmp_path):
    """Store serveur isolé (sessions d'exemple incluses) branché sur le registre."""
    s = JsonFileStore(tmp_path / "database.json")
    session_store.use_store(s)
    yield s
    session_store.use_store(None)


@pytest.fixture(autouse=True)
def oracle_stub(monkeypatch):
    """Aucun appel réseau vers le LLM pendant les tests."""
    stub = SimpleNamespace(chat=Mock(return_value={"message": {"content": "Goblins fear fire."}}))
    monkeypatch.setattr(oracle, "CLIENT", stub)
    monkeypatch.setattr(oracle.settings, "LLM_PROVIDER", "ollama")
    return stub


@pytest.fixture
def make_character():
    def _make(
        name="Thorin",
        session_id="1",
        character_class="Guerreiro",
        hp=(10, 10),
        gold=0,
        xp=0,
        attributes=None,
        equipment=(),
    ):
        attrs = attributes or {"FOR": 16, "DES": 13, "CON": 14, "INT": 9, "SAB": 10, "CAR": 8}
        return Character(
            name=name,
            session_id=session_id,
            race="Anão",
            character_class=character_class,
            hp=HitPoints(current=hp[0], max=hp[1]),
            gold=gold,
            xp=xp,
            attributes=[Attribute(code=code, value=value) for code, value in attrs.items()],
            equipment=list(equipment),
        )

    return _make


@pytest.fixture
def chainmail():
    return InventoryItem(name="Cota de Malha", cost=60, type=ItemType.ARMOR, ac=4)


@pytest.fixture
def longsword():
    return InventoryItem(name="Espada Longa", cost=10, type=ItemType.WEAPON, damage="1d8")
