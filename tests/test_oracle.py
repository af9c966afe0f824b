from unittest.mock import Mock

import pytest
import requests

from app.models.game import GameSession
from app.services import oracle
from app.services.oracle import LLMClient, OracleServiceError


def test_query_oracle_returns_answer(oracle_stub):
    answer = oracle.query_oracle("What does a goblin fear?", "Game master: Mestre.")
    assert answer == "Goblins fear fire."

    payload = oracle_stub.chat.call_args.args[0]
    assert payload["stream"] is False
    assert payload["messages"][1] == {"role": "user", "content": "What does a goblin fear?"}
    assert "Old Dragon" in payload["messages"][0]["content"]
    assert "Game master: Mestre." in payload["messages"][0]["content"]


def test_query_oracle_accepts_generate_style_payload(oracle_stub):
    oracle_stub.chat.return_value = {"response": "  Roll 1d20.  "}
    assert oracle.query_oracle("How do I attack?") == "Roll 1d20."


def test_query_oracle_apologizes_on_failure(oracle_stub):
    oracle_stub.chat.side_effect = OracleServiceError("boom")
    assert oracle.query_oracle("Hello?") == oracle.APOLOGY_UNREACHABLE


def test_query_oracle_never_raises_on_unexpected_error(oracle_stub):
    oracle_stub.chat.side_effect = KeyError("weird")
    assert oracle.query_oracle("Hello?") == oracle.APOLOGY_UNREACHABLE


def test_query_oracle_empty_answer_is_silence(oracle_stub):
    oracle_stub.chat.return_value = {"message": {"content": "   "}}
    assert oracle.query_oracle("Hello?") == oracle.APOLOGY_SILENT


@pytest.mark.parametrize(
    "payload",
    [
        {"message": "plain string"},
        {"message": {"content": 42}},
        {"response": ["not", "text"]},
        "not a dict",
    ],
)
def test_query_oracle_odd_payload_is_silence(oracle_stub, payload):
    oracle_stub.chat.return_value = payload
    assert oracle.query_oracle("Hello?") == oracle.APOLOGY_SILENT


def test_unknown_provider_is_not_configured(oracle_stub, monkeypatch):
    monkeypatch.setattr(oracle.settings, "LLM_PROVIDER", "none")
    assert oracle.query_oracle("Hello?") == oracle.APOLOGY_NOT_CONFIGURED
    oracle_stub.chat.assert_not_called()


def test_build_context_and_strip_command(make_character):
    session = GameSession(id="1", name="Tumba", gm_id="gm1", gm_name="Mestre")
    assert oracle.build_context(session, None, True) == "Game master: Mestre. The user is the Game Master."
    player = oracle.build_context(session, make_character(name="Lia"), False)
    assert "Player character: Lia, Anão Guerreiro." in player
    assert oracle.strip_command("/oracle  what is AC?") == "what is AC?"
    assert oracle.strip_command("/ORACLE") == ""


def test_llm_client_wraps_request_errors():
    session = Mock(spec=requests.Session)
    session.post.side_effect = requests.ConnectionError("refused")
    client = LLMClient("http://llm/api/chat", session=session)

    with pytest.raises(OracleServiceError):
        client.chat({"model": "llama3"}, request_id="req-1")


def test_llm_client_wraps_timeouts():
    session = Mock(spec=requests.Session)
    session.post.side_effect = requests.Timeout("slow")
    client = LLMClient("http://llm/api/chat", session=session)

    with pytest.raises(OracleServiceError, match="timed out"):
        client.chat({"model": "llama3"}, request_id="req-2")
