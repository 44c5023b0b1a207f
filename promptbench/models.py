# promptbench/models.py
from sqlalchemy import Column, Integer, DateTime, Text
import datetime

from promptbench.db import Base


def _utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc).replace(tzinfo=None)


class PromptRecord(Base):
    __tablename__ = "prompts"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    prompt = Column(Text, nullable=False)
    exp_name = Column(Text, nullable=True)
    architecture = Column(Text, nullable=True)
    description_type = Column(Text, nullable=True)
    response = Column(Text, nullable=True)
    cpp_code = Column(Text, nullable=True)
    uml_code = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=_utcnow)


class PromptFragment(Base):
    __tablename__ = "prompt_experiment"

    name = Column(Text, primary_key=True)
    prompt_part = Column(Text, nullable=False, default="")
