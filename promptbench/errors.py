# promptbench/errors.py
"""
Domain errors raised by the store, template assembly and the generation flow.

Each carries the HTTP status and error code the API renders it with, so the
route handlers stay free of status bookkeeping.
"""

from typing import Any, Dict, List, Optional

E_EMPTY_PROMPT = "E_EMPTY_PROMPT"
E_PROMPT_TOO_LONG = "E_PROMPT_TOO_LONG"
E_INVALID_ID = "E_INVALID_ID"
E_INVALID_TAGS = "E_INVALID_TAGS"
E_EMPTY_NAME = "E_EMPTY_NAME"
E_NOT_FOUND = "E_NOT_FOUND"
E_LLM_FORMAT = "E_LLM_FORMAT"
E_LLM_CALL = "E_LLM_CALL"
E_MISSING_PARTS = "E_MISSING_PARTS"
E_INTERNAL = "E_INTERNAL"


class PromptBenchError(Exception):
    status_code = 500
    error_code = E_INTERNAL

    def __init__(self, message: str, error_code: Optional[str] = None, **details: Any):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.details = details

    def to_payload(self) -> Dict[str, Any]:
        payload = {"error": self.message, "error_code": self.error_code}
        payload.update(self.details)
        return payload


class BadRequest(PromptBenchError):
    status_code = 400


class PromptValidationError(BadRequest):
    pass


class InvalidTemplateTags(BadRequest):
    error_code = E_INVALID_TAGS

    def __init__(self, arch: str, spec: str):
        super().__init__(
            "Invalid arch/spec. Use arch=3tier|mvc|microservices and spec=srs|frnfr.",
            arch=arch,
            spec=spec,
        )


class NotFound(PromptBenchError):
    status_code = 404
    error_code = E_NOT_FOUND


class MissingFragments(PromptBenchError):
    status_code = 422
    error_code = E_MISSING_PARTS

    def __init__(self, missing: List[str]):
        super().__init__("Missing prompt parts in prompt_experiment.", missing=list(missing))
        self.missing = list(missing)


class LLMCallError(RuntimeError):
    """Raised by the provider wrapper when the model round trip fails."""


class ModelCallFailed(PromptBenchError):
    status_code = 422
    error_code = E_LLM_CALL

    def __init__(self, record_id: int, model: str, reason: str):
        super().__init__(f"Model call failed: {reason}", id=record_id, model=model)
        self.record_id = record_id
