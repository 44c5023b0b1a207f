# promptbench/extractor.py
"""
Extraction of the two artifacts from a model reply.

The model is asked for ONLY JSON of the form {"cpp": "...", "uml": "..."}.
Replies sometimes arrive wrapped in a ```json ... ``` fence or with extra
whitespace; that single case is unwrapped before parsing. No other recovery is
attempted.

- strip_fence(text) -> str
- safe_json_loads(text) -> parsed value or None
- extract_artifacts(raw_text) -> Extraction
"""

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

CPP_FIELD = "cpp"
UML_FIELD = "uml"

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)\s*```", flags=re.I | re.S)


@dataclass(frozen=True)
class Present:
    text: str


class Absent:
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False


ABSENT = Absent()

FieldValue = Union[Present, Absent]


@dataclass(frozen=True)
class Extraction:
    cpp: FieldValue = ABSENT
    uml: FieldValue = ABSENT

    @property
    def parsed(self) -> bool:
        """True only when both artifacts were recovered."""
        return isinstance(self.cpp, Present) and isinstance(self.uml, Present)

    @property
    def cpp_text(self) -> Optional[str]:
        return self.cpp.text if isinstance(self.cpp, Present) else None

    @property
    def uml_text(self) -> Optional[str]:
        return self.uml.text if isinstance(self.uml, Present) else None

    def found(self) -> Dict[str, bool]:
        return {
            "cpp_found": isinstance(self.cpp, Present),
            "uml_found": isinstance(self.uml, Present),
        }


def strip_fence(text: Optional[str]) -> str:
    trimmed = (text or "").strip()
    m = _FENCE_RE.fullmatch(trimmed)
    return m.group(1).strip() if m else trimmed


def safe_json_loads(text: Optional[str]) -> Any:
    payload = strip_fence(text)
    try:
        return json.loads(payload)
    except (ValueError, RecursionError):
        return None


def _string_field(obj: Dict[str, Any], key: str) -> FieldValue:
    # an empty string carries no artifact
    value = obj.get(key)
    return Present(value) if isinstance(value, str) and value else ABSENT


def extract_artifacts(raw_text: Optional[str]) -> Extraction:
    obj = safe_json_loads(raw_text)
    if not isinstance(obj, dict):
        return Extraction()
    return Extraction(cpp=_string_field(obj, CPP_FIELD), uml=_string_field(obj, UML_FIELD))
