# promptbench/schemas.py
from typing import Optional
from pydantic import BaseModel


class GenerateRequest(BaseModel):
    # blank/missing prompt is reported as 400 by the orchestrator, not as a 422 schema error
    prompt: Optional[str] = ""
    exp_name: Optional[str] = None
    architecture: Optional[str] = None
    description_type: Optional[str] = None


class GenerateResponse(BaseModel):
    id: int
    model: str
    cpp: str
    uml: str


class LatestPrompt(BaseModel):
    id: int
    created_at: Optional[str] = None
    prompt: str
    cpp_code: Optional[str] = None
    uml_code: Optional[str] = None


class PromptSummary(BaseModel):
    id: int
    created_at: Optional[str] = None
    exp_name: Optional[str] = None
    architecture: Optional[str] = None
    description_type: Optional[str] = None
    prompt: str
    has_cpp: bool
    has_uml: bool


class Fragment(BaseModel):
    name: str
    prompt_part: str


class FragmentUpdate(BaseModel):
    prompt_part: Optional[str] = ""


class TemplateResponse(BaseModel):
    arch: str
    spec: str
    prompt: str
