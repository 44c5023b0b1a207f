# promptbench/generator.py
import time
from dataclasses import dataclass
from typing import Optional

from promptbench import monitoring
from promptbench.llm_wrapper import call_llm as _llm_call, DEFAULT_MODEL, LLM_PROVIDER

JSON_INSTRUCTIONS = [
    "You must respond with ONLY valid JSON.",
    'Schema: {"cpp": string, "uml": string}',
    "No markdown. No explanations. No extra keys.",
    "The value of cpp must be valid C++ source code as a string.",
    "The value of uml must be valid PlantUML as a string.",
]


@dataclass
class ModelReply:
    text: str
    model: str
    response_id: Optional[str] = None


def wrap_prompt_for_json(prompt: str) -> str:
    return "\n".join(JSON_INSTRUCTIONS + ["", "User request:", prompt])


def _call_llm(prompt_text: str) -> dict:
    """
    Single LLM call through the centralized wrapper. No output cap: a truncated
    reply would be unparseable JSON.
    Isolated so tests can monkeypatch this function.
    """
    return _llm_call(
        messages=[{"role": "user", "content": prompt_text}],
        model=DEFAULT_MODEL,
    )


def call_model(prompt: str) -> ModelReply:
    """
    Ask the model for the {"cpp", "uml"} JSON reply. Exactly one attempt: any
    failure propagates to the caller.
    """
    start = time.time()
    try:
        resp = _call_llm(wrap_prompt_for_json(prompt))
    finally:
        monitoring.observe_model_call(start)
    monitoring.logger.info(
        "Model call completed",
        extra={"provider": LLM_PROVIDER, "model": resp.get("model"), "response_id": resp.get("response_id")},
    )
    return ModelReply(
        text=resp.get("text") or "",
        model=resp.get("model") or DEFAULT_MODEL,
        response_id=resp.get("response_id"),
    )
