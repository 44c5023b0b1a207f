# promptbench/llm_wrapper.py
"""
Centralized LLM wrapper. Supports OpenAI and Anthropic backends.
Returns a standardized dict:
{
  "text": "<assistant text>",
  "model": "<model used>",
  "response_id": "<model response id if available>",
  "raw": <raw response object>
}

Configuration (env vars):
  LLM_PROVIDER=openai|anthropic   (default: auto-detect based on available keys)
  OPENAI_API_KEY=...
  ANTHROPIC_API_KEY=...
  LLM_MODEL=...                   (default: depends on provider; OPENAI_MODEL also honoured)
  LLM_TIMEOUT=...                 (seconds; unset keeps the SDK default)
  ANTHROPIC_MAX_TOKENS=16000      (output cap, required by the Messages API)
  MOCK_LLM=true                   (mock mode for dev/tests)

Usage:
  from promptbench.llm_wrapper import call_llm
  resp = call_llm(messages=..., model="gpt-5.2")
  text = resp["text"]; model = resp["model"]; rid = resp["response_id"]
"""

import os
import json
import time
from typing import Dict, Any, Optional, List

from promptbench.errors import LLMCallError

MOCK_LLM = os.getenv("MOCK_LLM", "true").lower() in ("1", "true", "yes")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "").strip()
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT")) if os.getenv("LLM_TIMEOUT") else None
ANTHROPIC_MAX_TOKENS = int(os.getenv("ANTHROPIC_MAX_TOKENS", "16000"))

# Auto-detect provider: explicit > anthropic if key present > openai
_explicit_provider = os.getenv("LLM_PROVIDER", "").strip().lower()
if _explicit_provider in ("anthropic", "claude"):
    LLM_PROVIDER = "anthropic"
elif _explicit_provider in ("openai", "gpt"):
    LLM_PROVIDER = "openai"
elif ANTHROPIC_API_KEY:
    LLM_PROVIDER = "anthropic"
elif OPENAI_API_KEY:
    LLM_PROVIDER = "openai"
else:
    LLM_PROVIDER = "openai"  # fallback, will use mock anyway

# Default models per provider
_ANTHROPIC_DEFAULT = "claude-sonnet-4-20250514"
_OPENAI_DEFAULT = os.getenv("OPENAI_MODEL", "gpt-5.2")

DEFAULT_MODEL = os.getenv(
    "LLM_MODEL",
    _ANTHROPIC_DEFAULT if LLM_PROVIDER == "anthropic" else _OPENAI_DEFAULT
)


def _timeout_kwargs(timeout: Optional[float]) -> Dict[str, Any]:
    return {"timeout": timeout} if timeout is not None else {}


# ---------------------------------------------------------------------------
# Anthropic backend
# ---------------------------------------------------------------------------
def _real_anthropic_chat(messages: List[Dict[str, str]], model: str,
                         max_tokens: Optional[int] = None,
                         timeout: Optional[float] = LLM_TIMEOUT) -> Dict[str, Any]:
    from anthropic import Anthropic

    # single attempt, SDK retries off
    client = Anthropic(api_key=ANTHROPIC_API_KEY, max_retries=0, **_timeout_kwargs(timeout))

    # Anthropic uses a separate system param, not a system message in messages list
    system_text = ""
    chat_messages = []
    for m in messages:
        if m["role"] == "system":
            system_text += m["content"] + "\n"
        else:
            chat_messages.append({"role": m["role"], "content": m["content"]})

    # the Messages API requires an output cap
    kwargs = {
        "model": model,
        "max_tokens": max_tokens or ANTHROPIC_MAX_TOKENS,
        "messages": chat_messages,
    }
    if system_text.strip():
        kwargs["system"] = system_text.strip()

    resp = client.messages.create(**kwargs)

    text = ""
    for block in resp.content:
        if hasattr(block, "text"):
            text += block.text

    rid = getattr(resp, "id", None)
    return {"text": text, "model": model, "response_id": rid, "raw": resp}


# ---------------------------------------------------------------------------
# OpenAI backend
# ---------------------------------------------------------------------------
def _real_openai_response(messages: List[Dict[str, str]], model: str,
                          max_tokens: Optional[int] = None,
                          timeout: Optional[float] = LLM_TIMEOUT) -> Dict[str, Any]:
    """
    Responses API call. No temperature is sent: reasoning models only accept the
    default. No output cap either unless the caller passes one.
    """
    from openai import OpenAI
    client = OpenAI(api_key=OPENAI_API_KEY, max_retries=0, **_timeout_kwargs(timeout))

    system_text = "\n".join(m["content"] for m in messages if m["role"] == "system").strip()
    user_text = "\n\n".join(m["content"] for m in messages if m["role"] != "system")

    kwargs = {"model": model, "input": user_text}
    if system_text:
        kwargs["instructions"] = system_text
    if max_tokens:
        kwargs["max_output_tokens"] = max_tokens

    resp = client.responses.create(**kwargs)
    text = getattr(resp, "output_text", None) or ""
    rid = getattr(resp, "id", None)
    return {"text": text, "model": model, "response_id": rid, "raw": resp}


# ---------------------------------------------------------------------------
# Mock backend
# ---------------------------------------------------------------------------
def _mock_llm(messages: List[Dict[str, str]], model: str, **kwargs) -> Dict[str, Any]:
    """
    Deterministic mock used in dev/tests. Answers in the requested JSON shape with a
    stub program and diagram that echo the last line of the user request.
    """
    user_texts = [m["content"] for m in messages if m["role"] == "user"]
    request = (user_texts[-1].strip().splitlines() or [""])[-1][:200] if user_texts else ""
    text = json.dumps({
        "cpp": f"// {request}\nint main() {{\n    return 0;\n}}\n",
        "uml": f"@startuml\n' {request}\n@enduml\n",
    })
    rid = f"mock-{model}-{int(time.time() * 1000)}"
    return {"text": text, "model": model, "response_id": rid, "raw": {"mock": True}}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def call_llm(messages: List[Dict[str, str]], model: Optional[str] = None,
             max_tokens: Optional[int] = None,
             timeout: Optional[float] = LLM_TIMEOUT) -> Dict[str, Any]:
    """
    messages: list of {role, content}
    model: override model string
    max_tokens: output cap; None leaves OpenAI uncapped and uses ANTHROPIC_MAX_TOKENS
    Returns: dict with keys 'text','model','response_id','raw'
    """
    model = model or DEFAULT_MODEL
    if MOCK_LLM:
        return _mock_llm(messages, model=model, max_tokens=max_tokens, timeout=timeout)
    try:
        if LLM_PROVIDER == "anthropic":
            return _real_anthropic_chat(messages, model=model,
                                        max_tokens=max_tokens,
                                        timeout=timeout)
        else:
            return _real_openai_response(messages, model=model,
                                         max_tokens=max_tokens,
                                         timeout=timeout)
    except Exception as e:
        raise LLMCallError(f"LLM call failed ({LLM_PROVIDER}): {e}") from e
