# promptbench/orchestrator.py
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

# Import modules (not bare functions) so monkeypatching in tests works correctly
import promptbench.generator as _generator
from promptbench import monitoring
from promptbench.db import Database
from promptbench.errors import (
    E_EMPTY_PROMPT, E_PROMPT_TOO_LONG, E_LLM_FORMAT,
    ModelCallFailed, PromptValidationError,
)
from promptbench.extractor import Extraction, extract_artifacts

MAX_PROMPT_CHARS = int(os.getenv("MAX_PROMPT_CHARS", "18000"))

FORMAT_ERROR_MESSAGE = 'Invalid LLM format. Expected ONLY JSON: {"cpp": "...", "uml": "..."}'


@dataclass
class GenerationOutcome:
    id: int
    model: str
    output: str
    extraction: Extraction

    @property
    def ok(self) -> bool:
        return self.extraction.parsed

    def success_payload(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "model": self.model,
            "cpp": self.extraction.cpp_text,
            "uml": self.extraction.uml_text,
        }

    def failure_payload(self) -> Dict[str, Any]:
        return {
            "error": FORMAT_ERROR_MESSAGE,
            "error_code": E_LLM_FORMAT,
            "id": self.id,
            "model": self.model,
            "output": self.output,
            "parsed": self.extraction.found(),
            "recovered": {
                "cpp": self.extraction.cpp_text,
                "uml": self.extraction.uml_text,
            },
        }


class GenerationOrchestrator:
    def __init__(self, database: Database, max_prompt_chars: int = MAX_PROMPT_CHARS):
        self.database = database
        self.max_prompt_chars = max_prompt_chars

    def _validate_prompt(self, prompt: Optional[str]) -> str:
        prompt = (prompt or "").strip()
        if not prompt:
            raise PromptValidationError("Empty prompt", E_EMPTY_PROMPT)
        if len(prompt) > self.max_prompt_chars:
            raise PromptValidationError("Prompt too long", E_PROMPT_TOO_LONG, max_chars=self.max_prompt_chars)
        return prompt

    def handle_generate(
        self,
        prompt: Optional[str],
        exp_name: Optional[str] = None,
        architecture: Optional[str] = None,
        description_type: Optional[str] = None,
    ) -> GenerationOutcome:
        """
        Full synchronous flow:
        1. Validate and store the prompt (no response yet)
        2. Call the model once
        3. Extract cpp/uml from the reply
        4. Store raw reply and artifacts on the same row
        A failed model call leaves the stored prompt in place and raises ModelCallFailed.
        """
        prompt = self._validate_prompt(prompt)

        # 1) Store prompt
        row = self.database.create_prompt(
            prompt,
            exp_name=exp_name,
            architecture=architecture,
            description_type=description_type,
        )
        row_id = row["id"]

        # 2) Call model (request JSON-only output)
        try:
            reply = _generator.call_model(prompt)
        except Exception as e:
            monitoring.inc_generation("call_error")
            monitoring.logger.exception("Model call failed", extra={"prompt_id": row_id})
            raise ModelCallFailed(row_id, _generator.DEFAULT_MODEL, str(e)) from e

        # 3) Parse and validate format
        extraction = extract_artifacts(reply.text)

        # 4) Store raw response; artifacts only when both were recovered
        if extraction.parsed:
            self.database.record_response(row_id, reply.text, extraction.cpp_text, extraction.uml_text)
            monitoring.inc_generation("success")
        else:
            self.database.record_response(row_id, reply.text, None, None)
            monitoring.inc_generation("format_error")
            monitoring.logger.warning(
                "Model reply not in expected format",
                extra={"prompt_id": row_id, **extraction.found()},
            )

        return GenerationOutcome(id=row_id, model=reply.model, output=reply.text, extraction=extraction)
