# tests/test_api_generate_endpoint.py
import json
import pytest
from fastapi.testclient import TestClient

import promptbench.generator as gen
from promptbench.app import create_app
from promptbench.db import Database
from promptbench.errors import LLMCallError

CPP = "int main(){}"
UML = "@startuml\n@enduml"
VALID_REPLY = json.dumps({"cpp": CPP, "uml": UML})


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'generate.db'}")
    yield db
    db.dispose()


@pytest.fixture
def client(database):
    return TestClient(create_app(database))


def patch_model(monkeypatch, text):
    monkeypatch.setattr(
        gen, "_call_llm",
        lambda prompt_text: {"text": text, "model": "gpt-test-1", "response_id": "r1"},
    )


@pytest.mark.parametrize("reply", [VALID_REPLY, "```json\n" + VALID_REPLY + "\n```"])
def test_generate_success(monkeypatch, client, database, reply):
    patch_model(monkeypatch, reply)
    r = client.post("/api/generate", json={"prompt": "foo"})
    assert r.status_code == 200
    j = r.json()
    assert j["cpp"] == CPP
    assert j["uml"] == UML
    assert j["model"] == "gpt-test-1"

    rec = database.get_prompt(j["id"])
    assert rec["cpp_code"] == CPP
    assert rec["uml_code"] == UML
    assert rec["response"] == reply


def test_generate_stores_tags(monkeypatch, client, database):
    patch_model(monkeypatch, VALID_REPLY)
    r = client.post("/api/generate", json={
        "prompt": "foo", "exp_name": "run-7", "architecture": "mvc", "description_type": "srs",
    })
    rec = database.get_prompt(r.json()["id"])
    assert (rec["exp_name"], rec["architecture"], rec["description_type"]) == ("run-7", "mvc", "srs")


def test_generate_bad_format_returns_422_with_raw(monkeypatch, client, database):
    patch_model(monkeypatch, "Sure! Here is your code: int main(){}")
    r = client.post("/api/generate", json={"prompt": "foo"})
    assert r.status_code == 422
    j = r.json()
    assert j["error_code"] == "E_LLM_FORMAT"
    assert j["output"] == "Sure! Here is your code: int main(){}"
    assert j["parsed"] == {"cpp_found": False, "uml_found": False}
    rec = database.get_prompt(j["id"])
    assert rec["response"] == j["output"]
    assert rec["cpp_code"] is None and rec["uml_code"] is None


def test_generate_partial_reply_reports_recovered_field(monkeypatch, client):
    patch_model(monkeypatch, json.dumps({"uml": UML}))
    r = client.post("/api/generate", json={"prompt": "foo"})
    assert r.status_code == 422
    j = r.json()
    assert j["parsed"] == {"cpp_found": False, "uml_found": True}
    assert j["recovered"]["uml"] == UML


def test_generate_empty_artifacts_are_a_format_error(monkeypatch, client, database):
    patch_model(monkeypatch, json.dumps({"cpp": "", "uml": ""}))
    r = client.post("/api/generate", json={"prompt": "foo"})
    assert r.status_code == 422
    j = r.json()
    assert j["error_code"] == "E_LLM_FORMAT"
    assert j["parsed"] == {"cpp_found": False, "uml_found": False}
    rows = client.get("/api/prompts").json()
    assert (rows[0]["has_cpp"], rows[0]["has_uml"]) == (False, False)
    assert client.get(f"/api/prompts/{j['id']}/cpp").status_code == 404


@pytest.mark.parametrize("body,code", [
    ({"prompt": ""}, "E_EMPTY_PROMPT"),
    ({"prompt": "   "}, "E_EMPTY_PROMPT"),
    ({}, "E_EMPTY_PROMPT"),
    ({"prompt": "x" * 18001}, "E_PROMPT_TOO_LONG"),
])
def test_generate_validation_errors(monkeypatch, client, database, body, code):
    patch_model(monkeypatch, VALID_REPLY)
    r = client.post("/api/generate", json=body)
    assert r.status_code == 400
    assert r.json()["error_code"] == code
    assert database.list_prompt_summaries() == []


def test_generate_model_failure(monkeypatch, client, database):
    def boom(prompt_text):
        raise LLMCallError("LLM call failed (openai): timeout")

    monkeypatch.setattr(gen, "_call_llm", boom)
    r = client.post("/api/generate", json={"prompt": "foo"})
    assert r.status_code == 422
    j = r.json()
    assert j["error_code"] == "E_LLM_CALL"
    rec = database.get_prompt(j["id"])
    assert rec["prompt"] == "foo"
    assert rec["response"] is None


def test_generate_with_mock_llm(monkeypatch, client):
    import promptbench.llm_wrapper as wrapper
    monkeypatch.setattr(wrapper, "MOCK_LLM", True)
    r = client.post("/api/generate", json={"prompt": "a parking lot system"})
    assert r.status_code == 200
    j = r.json()
    assert "int main()" in j["cpp"]
    assert j["uml"].startswith("@startuml")


def test_latest_after_generate(monkeypatch, client):
    assert client.get("/api/latest").json() is None
    patch_model(monkeypatch, VALID_REPLY)
    gid = client.post("/api/generate", json={"prompt": "foo"}).json()["id"]
    latest = client.get("/api/latest").json()
    assert latest["id"] == gid
    assert latest["cpp_code"] == CPP
    assert latest["uml_code"] == UML
