import pytest

pytest.importorskip("httpx", reason="httpx requis pour les tests client FastAPI")

from fastapi.testclient import TestClient

from app.config.settings import settings
from app.main import app
from app.services import session_store
from app.services.rules_catalog import RULES
from app.services.storage import StoreUnavailableError

GM_HEADERS = {"X-User-Id": "gm1"}
PLAYER_HEADERS = {"X-User-Id": "p1"}

OD2_ATTRIBUTES = [
    {"code": "FOR", "value": 16},
    {"code": "DES", "value": 13},
    {"code": "CON", "value": 14},
    {"code": "INT", "value": 9},
    {"code": "SAB", "value": 10},
    {"code": "CAR", "value": 8},
]


@pytest.fixture
def client(store):
    return TestClient(app)


def _create_thorin(client, **overrides):
    payload = {
        "name": "Thorin",
        "playerName": "Alice",
        "race": "Anão",
        "class": "Guerreiro",
        "attributes": OD2_ATTRIBUTES,
        "gold": 100,
        "purchases": ["Espada Longa", "Cota de Malha"],
    }
    payload.update(overrides)
    return client.post("/games/1/characters/create", json=payload)


def test_health_endpoints(client):
    assert client.get("/health").json() == {"ok": True, "service": settings.APP_NAME}
    llm = client.get("/health/llm").json()
    assert llm["ok"] is True
    assert llm["sample"] == "Goblins fear fire."
    assert client.get("/").json()["ok"] is True


def test_login_is_idempotent_by_username(client):
    first = client.post("/login", json={"username": "alice"})
    second = client.post("/login", json={"username": "alice", "avatarUrl": "x.png"})
    assert first.status_code == 200
    assert first.json()["id"] == second.json()["id"]
    assert client.post("/login", json={"username": "  "}).status_code == 400


def test_games_list_join_create_update(client):
    games = client.get("/games").json()
    assert {g["id"] for g in games} == {"1", "2"}

    joined = client.get("/games/join/skel123")
    assert joined.status_code == 200
    assert joined.json()["id"] == "1"

    missing = client.get("/games/join/NOPE99")
    assert missing.status_code == 404
    assert missing.json()["detail"] == "session_not_found"

    created = client.post("/games", json={"name": "Nova Campanha", "gmId": "gm3", "gmName": "Bia"}).json()
    code = created["inviteCode"]
    assert len(code) == settings.INVITE_CODE_LENGTH
    assert code == code.upper()
    assert client.get(f"/games/join/{code.lower()}").json()["id"] == created["id"]

    updated = client.put(f"/games/{created['id']}", json={"description": "Sexta, 21h"}).json()
    assert updated["description"] == "Sexta, 21h"
    assert updated["name"] == "Nova Campanha"
    assert updated["inviteCode"] == code

    assert client.put("/games/nope", json={"name": "x"}).status_code == 404


def test_duplicate_invite_code_is_regenerated(client):
    created = client.post("/games", json={"name": "Copy", "gmId": "gm4", "inviteCode": "skel123"}).json()
    assert created["inviteCode"] != "SKEL123"
    assert client.get("/games/join/SKEL123").json()["id"] == "1"


def test_character_creation_flow(client):
    response = _create_thorin(client)
    assert response.status_code == 200
    sheet = response.json()
    character = sheet["character"]
    assert character["sessionId"] == "1"
    assert character["class"] == "Guerreiro"
    assert character["level"] == 1
    assert character["hp"] == {"current": 11, "max": 11}
    assert character["gold"] == 30
    assert [i["name"] for i in character["equipment"]] == ["Espada Longa", "Cota de Malha"]
    assert sheet["derived"]["armor_class"] == 11
    assert sheet["derived"]["damage"] == "1d3+2"

    roster = client.get("/games/1/characters").json()
    assert [c["id"] for c in roster] == [character["id"]]


def test_character_creation_rejections(client):
    assert _create_thorin(client, race="Lefou").status_code == 400
    assert _create_thorin(client, purchases=["Cota de Malha", "Cota de Malha"]).json()["detail"] == "not_enough_gold"
    assert _create_thorin(client, purchases=["Excalibur"]).status_code == 400
    assert _create_thorin(client, attributes=OD2_ATTRIBUTES[:3]).status_code == 400
    too_strong = [{"code": "FOR", "value": 99}] + OD2_ATTRIBUTES[1:]
    assert _create_thorin(client, attributes=too_strong).json()["detail"] == "attribute_out_of_range"
    too_weak = [{"code": "FOR", "value": 2}] + OD2_ATTRIBUTES[1:]
    assert _create_thorin(client, attributes=too_weak).status_code == 400
    assert client.get("/games/1/characters").json() == []
    assert client.post("/games/404/characters/create", json={"race": "Humano", "class": "Mago"}).status_code == 404


def test_character_creation_rolls_when_values_missing(client):
    response = _create_thorin(client, attributes=None, gold=None, purchases=[], method="HEROIC")
    character = response.json()["character"]
    assert [a["code"] for a in character["attributes"]] == ["FOR", "DES", "CON", "INT", "SAB", "CAR"]
    assert all(3 <= a["value"] <= 18 for a in character["attributes"])
    assert 30 <= character["gold"] <= 180


def test_roll_endpoints(client):
    rolled = client.post("/characters/roll", json={"systemId": "od2", "method": "ADVENTURER"}).json()
    assert len(rolled["attributes"]) == 6
    values = [a["value"] for a in rolled["attributes"]]

    reassigned = client.post(
        "/characters/roll/reassign",
        json={"attributes": rolled["attributes"], "values": list(reversed(values))},
    )
    assert reassigned.status_code == 200
    assert [a["value"] for a in reassigned.json()] == list(reversed(values))

    refused = client.post(
        "/characters/roll/reassign",
        json={"attributes": rolled["attributes"], "values": values, "method": "CLASSIC"},
    )
    assert refused.status_code == 400
    unknown = client.post("/characters/roll", json={"systemId": "gurps"})
    assert unknown.status_code == 404
    assert unknown.json()["detail"] == "system_not_found"
    alpha = client.post("/characters/roll", json={"systemId": "alpha"}).json()
    assert [a["code"] for a in alpha["attributes"]] == ["F", "H", "R", "A", "PdF"]


def test_attribute_codes_follow_system():
    assert RULES.attribute_codes("od2") == ["FOR", "DES", "CON", "INT", "SAB", "CAR"]
    assert RULES.attribute_codes("gurps") == []


def test_equip_and_attribute_update_recompute_sheet(client):
    character = _create_thorin(client).json()["character"]
    armor = next(i for i in character["equipment"] if i["type"] == "ARMOR")

    sheet = client.post(f"/characters/{character['id']}/equip/{armor['instanceId']}").json()
    assert sheet["derived"]["armor_class"] == 15

    sheet = client.put(f"/characters/{character['id']}/attributes/DES", json={"value": 18}).json()
    assert sheet["derived"]["armor_class"] == 17
    assert sheet["derived"]["modifiers"]["DES"] == 3

    assert client.get(f"/characters/{character['id']}/sheet").json()["derived"]["armor_class"] == 17
    assert client.put(f"/characters/{character['id']}/attributes/XYZ", json={"value": 3}).status_code == 404
    assert client.post(f"/characters/{character['id']}/equip/nothing").status_code == 404
    assert client.get("/characters/unknown").status_code == 404


def test_upsert_character_round_trip(client):
    character = _create_thorin(client).json()["character"]
    character["gold"] = 500
    saved = client.post("/characters", json=character)
    assert saved.status_code == 200
    assert client.get(f"/characters/{character['id']}").json()["gold"] == 500


def test_chat_send_oracle_and_roll(client):
    sent = client.post(
        "/games/1/chat/send",
        json={"senderId": "p1", "senderName": "Alice", "content": "/oracle what does a goblin fear?"},
    ).json()
    assert [m["type"] for m in sent] == ["TEXT", "AI"]
    assert sent[1]["content"] == "Goblins fear fire."

    roll = client.post("/games/1/chat/roll", json={"senderId": "gm1", "senderName": "Mestre", "formula": "1d20+2"}).json()
    assert roll["type"] == "ROLL"
    assert roll["isGM"] is True
    assert 3 <= roll["rollData"]["total"] <= 22

    history = client.get("/games/1/chat").json()
    assert [m["type"] for m in history] == ["TEXT", "AI", "ROLL"]

    empty = client.post("/games/1/chat/send", json={"senderId": "p1", "senderName": "Alice", "content": " "})
    assert empty.status_code == 400
    assert client.get("/games/404/chat").status_code == 404


def test_raw_chat_append(client):
    message = {"id": "m1", "senderId": "p1", "senderName": "Alice", "content": "offline note", "type": "TEXT"}
    assert client.post("/games/1/chat", json=message).json()["id"] == "m1"
    assert client.get("/games/1/chat").json()[-1]["content"] == "offline note"


def test_combat_requires_game_master(client):
    assert client.post("/games/1/combat/start").status_code == 403
    assert client.post("/games/1/combat/start", headers=PLAYER_HEADERS).status_code == 403
    bad_token = {"Authorization": "Bearer nope"}
    assert client.post("/games/1/combat/start", headers=bad_token).status_code == 403

    token = {"Authorization": f"Bearer {settings.GM_TOKEN}"}
    started = client.post("/games/1/combat/start", headers=token).json()
    assert started["started"] is True
    assert started["combat"]["phase"] == "ACTIVE"


def test_combat_flow(client):
    thorin = _create_thorin(client).json()["character"]

    added = client.post("/games/1/combat/monsters", json={"name": "goblin", "count": 2}, headers=GM_HEADERS).json()
    assert [m["name"] for m in added["added"]] == ["Goblin 1", "Goblin 2"]
    assert all(m["ac"] == 12 for m in added["added"])

    imported = client.post("/games/1/combat/players", headers=GM_HEADERS).json()
    assert [c["id"] for c in imported["added"]] == [thorin["id"]]
    assert len(imported["combat"]["combatants"]) == 3
    again = client.post("/games/1/combat/players", headers=GM_HEADERS).json()
    assert again["added"] == []

    initiatives = [c["initiative"] for c in again["combat"]["combatants"]]
    assert initiatives == sorted(initiatives, reverse=True)

    client.post("/games/1/combat/start", headers=GM_HEADERS)
    client.post("/games/1/combat/next", headers=GM_HEADERS)
    client.post("/games/1/combat/next", headers=GM_HEADERS)
    wrapped = client.post("/games/1/combat/next", headers=GM_HEADERS).json()
    assert wrapped["banner"]["content"] == "--- Round 2 begins ---"
    assert wrapped["combat"]["round"] == 2
    assert client.get("/games/1/chat").json()[-1]["senderName"] == "Combat"

    current = wrapped["combat"]["current_id"]
    removed = client.delete(f"/games/1/combat/combatants/{current}", headers=GM_HEADERS).json()
    assert removed["removed"] is True
    assert len(removed["combat"]["combatants"]) == 2

    ended = client.post("/games/1/combat/end", headers=GM_HEADERS).json()
    assert ended["combat"]["combatants"] == []
    assert client.get("/games/1/combat").json()["phase"] == "IDLE"


def test_gm_adjust(client):
    thorin = _create_thorin(client).json()["character"]
    payload = {"characterId": thorin["id"], "stat": "hp", "delta": -999}

    assert client.post("/games/1/gm/adjust", json=payload, headers=PLAYER_HEADERS).status_code == 403

    adjusted = client.post("/games/1/gm/adjust", json=payload, headers=GM_HEADERS).json()
    assert adjusted["character"]["hp"] == {"current": 0, "max": 11}
    assert client.get("/games/1/chat").json()[-1]["content"] == "Thorin lost 999 HP."

    gold = client.post(
        "/games/1/gm/adjust",
        json={"characterId": thorin["id"], "stat": "gold", "delta": -1000},
        headers=GM_HEADERS,
    ).json()
    assert gold["character"]["gold"] == 0

    missing = client.post(
        "/games/1/gm/adjust",
        json={"characterId": "ghost", "stat": "xp", "delta": 5},
        headers=GM_HEADERS,
    )
    assert missing.status_code == 404


def test_rules_library(client):
    systems = client.get("/rules/systems").json()
    assert {s["id"] for s in systems} == {"od2", "t20", "alpha"}
    assert client.get("/rules/systems/od2").json()["attributes"][0] == "FOR"
    assert client.get("/rules/systems/gurps").status_code == 404
    assert any(m["name"] == "Goblin" for m in client.get("/rules/monsters").json())
    assert any(i["name"] == "Espada Longa" for i in client.get("/rules/gear").json())
    assert "Guerreiro" in client.get("/rules/features").json()["classes"]


def test_store_outage_maps_to_503(client):
    class BrokenStore:
        def fetch_games(self):
            raise StoreUnavailableError("disk gone")

    session_store.use_store(BrokenStore())
    response = client.get("/games")
    assert response.status_code == 503
    assert response.json()["detail"] == "store_unavailable"
