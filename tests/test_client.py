import asyncio

import pytest
import requests

from app.client import TableClient
from app.models.game import User
from app.services.storage import FallbackStore, HttpStore, JsonFileStore


@pytest.fixture
def offline_store(tmp_path):
    """API injoignable (port fermé) → tout passe par la copie locale."""
    remote = HttpStore("http://127.0.0.1:9", session=requests.Session(), timeout=0.2)
    return FallbackStore(remote, JsonFileStore(tmp_path / "local.json"))


def test_join_by_invite_code_is_case_insensitive(store):
    client = TableClient(store=store)
    assert client.join("rubi456").id == "2"
    with pytest.raises(KeyError):
        client.join("ZZZZZZ")


def test_gm_opens_table_with_welcome_and_roster_sync(store, make_character):
    store.save_character(make_character())
    client = TableClient(store=store, interval=60)

    async def scenario():
        controller = await client.open(client.join("SKEL123"), client.login("gm-user"))
        assert client.sync.include_roster is False
        await client.close()
        return controller

    controller = asyncio.run(scenario())
    # gm-user n'est pas le MJ de la session d'exemple : pas de message d'ouverture
    assert controller.state.messages == []
    assert client.sync is None


def test_game_master_view(store, make_character):
    store.save_character(make_character())
    client = TableClient(store=store, interval=60)
    gm = User(id="gm1", username="Mestre Ancião")

    async def scenario():
        controller = await client.open(client.join("skel123"), gm)
        assert client.sync.include_roster is True
        assert len(controller.state.roster) == 1
        assert controller.state.messages[0].content.startswith("Adventure started")
        await client.close()

    asyncio.run(scenario())


def test_table_keeps_working_offline(offline_store):
    client = TableClient(store=offline_store, interval=60)
    user = client.login("alice")

    async def scenario():
        controller = await client.open(client.join("skel123"), user)
        controller.post_message(user.id, user.username, "anyone there?")
        await client.close()
        return controller

    controller = asyncio.run(scenario())
    history = offline_store.secondary.fetch_chat_history(controller.session.id)
    assert [m.content for m in history] == ["anyone there?"]
