# tests/test_orchestrator.py
import json
import pytest

import promptbench.generator as gen
from promptbench.db import Database
from promptbench.errors import LLMCallError, ModelCallFailed, PromptValidationError
from promptbench.orchestrator import GenerationOrchestrator

CPP = "int main(){}"
UML = "@startuml\n@enduml"


@pytest.fixture
def database(tmp_path):
    db = Database(f"sqlite:///{tmp_path / 'orch.db'}")
    db.init_db()
    yield db
    db.dispose()


@pytest.fixture
def orchestrator(database):
    return GenerationOrchestrator(database, max_prompt_chars=50)


def fake_reply(text):
    def _call_llm(prompt_text):
        return {"text": text, "model": "gpt-test-1", "response_id": "resp-1", "raw": {}}
    return _call_llm


def test_success_stores_both_artifacts(monkeypatch, orchestrator, database):
    raw = json.dumps({"cpp": CPP, "uml": UML})
    monkeypatch.setattr(gen, "_call_llm", fake_reply(raw))
    out = orchestrator.handle_generate("  foo  ", exp_name="e1", architecture="mvc", description_type="srs")
    assert out.ok is True
    assert out.success_payload() == {"id": out.id, "model": "gpt-test-1", "cpp": CPP, "uml": UML}

    rec = database.get_prompt(out.id)
    assert rec["prompt"] == "foo"
    assert rec["exp_name"] == "e1"
    assert rec["response"] == raw
    assert rec["cpp_code"] == CPP and rec["uml_code"] == UML


def test_fenced_reply_is_accepted(monkeypatch, orchestrator, database):
    raw = "```json\n" + json.dumps({"cpp": CPP, "uml": UML}) + "\n```"
    monkeypatch.setattr(gen, "_call_llm", fake_reply(raw))
    out = orchestrator.handle_generate("foo")
    assert out.ok is True
    rec = database.get_prompt(out.id)
    assert rec["response"] == raw
    assert rec["cpp_code"] == CPP


def test_partial_reply_keeps_raw_but_no_artifacts(monkeypatch, orchestrator, database):
    raw = json.dumps({"cpp": CPP, "uml": 7})
    monkeypatch.setattr(gen, "_call_llm", fake_reply(raw))
    out = orchestrator.handle_generate("foo")
    assert out.ok is False
    payload = out.failure_payload()
    assert payload["error_code"] == "E_LLM_FORMAT"
    assert payload["output"] == raw
    assert payload["parsed"] == {"cpp_found": True, "uml_found": False}
    assert payload["recovered"] == {"cpp": CPP, "uml": None}

    rec = database.get_prompt(out.id)
    assert rec["response"] == raw
    assert rec["cpp_code"] is None and rec["uml_code"] is None


def test_wrapped_prompt_reaches_model(monkeypatch, orchestrator):
    seen = {}

    def _call_llm(prompt_text):
        seen["prompt"] = prompt_text
        return {"text": "{}", "model": "m"}

    monkeypatch.setattr(gen, "_call_llm", _call_llm)
    orchestrator.handle_generate("draw a class")
    assert seen["prompt"].startswith("You must respond with ONLY valid JSON.")
    assert seen["prompt"].endswith("User request:\ndraw a class")


@pytest.mark.parametrize("prompt,code", [("", "E_EMPTY_PROMPT"), ("   \n ", "E_EMPTY_PROMPT"), (None, "E_EMPTY_PROMPT"), ("x" * 51, "E_PROMPT_TOO_LONG")])
def test_invalid_prompt_is_rejected_before_storing(monkeypatch, orchestrator, database, prompt, code):
    monkeypatch.setattr(gen, "_call_llm", fake_reply("{}"))
    with pytest.raises(PromptValidationError) as ei:
        orchestrator.handle_generate(prompt)
    assert ei.value.error_code == code
    assert ei.value.status_code == 400
    assert database.list_prompt_summaries() == []


def test_prompt_at_limit_is_accepted(monkeypatch, orchestrator):
    monkeypatch.setattr(gen, "_call_llm", fake_reply(json.dumps({"cpp": "a", "uml": "b"})))
    assert orchestrator.handle_generate("x" * 50).ok is True


def test_model_failure_keeps_prompt_row(monkeypatch, orchestrator, database):
    calls = {"n": 0}

    def boom(prompt_text):
        calls["n"] += 1
        raise LLMCallError("upstream down")

    monkeypatch.setattr(gen, "_call_llm", boom)
    with pytest.raises(ModelCallFailed) as ei:
        orchestrator.handle_generate("foo")
    # single attempt, no retry
    assert calls["n"] == 1
    rec = database.get_prompt(ei.value.record_id)
    assert rec["prompt"] == "foo"
    assert rec["response"] is None
    assert "upstream down" in ei.value.message
