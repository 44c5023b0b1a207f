# promptbench/templates.py
"""
Prompt template assembly from the fragments stored in prompt_experiment.

A full prompt is four fragments joined by blank lines, always in this order:
task description, requirements document kind, architecture, final instructions.
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional

from promptbench import monitoring
from promptbench.errors import InvalidTemplateTags, MissingFragments

TASK_FRAGMENT = "1_task_description"
FINAL_FRAGMENT = "4_finalInstructions"

ARCH_FRAGMENTS = {
    "3tier": "3_3tier",
    "mvc": "3_mvc",
    "microservices": "3_micro",
}

SPEC_FRAGMENTS = {
    "srs": "2_srs",
    "frnfr": "2_frnfr",
}

SEPARATOR = "\n\n"


@dataclass
class AssembledTemplate:
    arch: str
    spec: str
    prompt: str


def _norm(tag: Optional[str]) -> str:
    return str(tag or "").strip().lower()


def fragment_names(arch: Optional[str], spec: Optional[str]) -> List[str]:
    arch_key = ARCH_FRAGMENTS.get(_norm(arch))
    spec_key = SPEC_FRAGMENTS.get(_norm(spec))
    if not arch_key or not spec_key:
        raise InvalidTemplateTags(_norm(arch), _norm(spec))
    return [TASK_FRAGMENT, spec_key, arch_key, FINAL_FRAGMENT]


def assemble(names: List[str], fragments: Mapping[str, str]) -> str:
    missing = [n for n in names if n not in fragments]
    if missing:
        raise MissingFragments(missing)
    return SEPARATOR.join(fragments[n] for n in names)


def build_template(database, arch: Optional[str], spec: Optional[str]) -> AssembledTemplate:
    try:
        names = fragment_names(arch, spec)
        prompt = assemble(names, database.get_fragments(names))
    except InvalidTemplateTags:
        monitoring.inc_template("invalid_tags")
        raise
    except MissingFragments as e:
        monitoring.inc_template("missing_parts")
        monitoring.logger.warning("Template assembly missing fragments", extra={"missing": e.missing})
        raise
    monitoring.inc_template("success")
    return AssembledTemplate(arch=_norm(arch), spec=_norm(spec), prompt=prompt)
