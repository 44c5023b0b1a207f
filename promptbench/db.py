# promptbench/db.py
import os
import contextlib
from typing import Optional, Dict, Any, List, Iterator, Iterable

from sqlalchemy import create_engine, inspect, select, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import sessionmaker, declarative_base, Session

from promptbench import monitoring
from promptbench.errors import NotFound

# Default dev DB
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./promptbench.db")

Base = declarative_base()

ARTIFACT_COLUMNS = {"cpp": "cpp_code", "uml": "uml_code"}
# ids are 64-bit signed integers in every supported backend
MAX_ROW_ID = 2 ** 63 - 1


def _make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


def _iso(value) -> Optional[str]:
    return value.isoformat() if hasattr(value, "isoformat") else value


class Database:
    """
    Process-scoped handle on the backing store: one engine (and its connection
    pool) plus a session factory. Created once by the app and handed to whoever
    needs it.
    """

    def __init__(self, url: Optional[str] = None):
        self.url = url or DATABASE_URL
        self.engine = _make_engine(self.url)
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=self.engine)

    @contextlib.contextmanager
    def session(self) -> Iterator[Session]:
        db: Session = self.SessionLocal()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def dispose(self):
        self.engine.dispose()

    # -----------------------------------------------------------------------
    # Schema bootstrap
    # -----------------------------------------------------------------------
    def init_db(self):
        """Create tables if they don't exist, then add any missing model columns."""
        # import models lazily so Base metadata has them
        import promptbench.models as models  # noqa: F401
        Base.metadata.create_all(bind=self.engine)
        self._add_missing_columns()

    def _add_missing_columns(self):
        inspector = inspect(self.engine)
        if_not_exists = "IF NOT EXISTS " if self.engine.dialect.name == "postgresql" else ""
        for table in Base.metadata.sorted_tables:
            existing = {c["name"] for c in inspector.get_columns(table.name)}
            for column in table.columns:
                if column.name in existing:
                    continue
                col_type = column.type.compile(dialect=self.engine.dialect)
                # added as nullable: existing rows have no value for it
                ddl = text(f"ALTER TABLE {table.name} ADD COLUMN {if_not_exists}{column.name} {col_type}")
                try:
                    with self.engine.begin() as conn:
                        conn.execute(ddl)
                except DBAPIError as e:
                    # another worker added it after we inspected
                    if "duplicate column" not in str(e.orig).lower():
                        raise
                    monitoring.logger.info(
                        "Column already present",
                        extra={"table": table.name, "column": column.name},
                    )
                    continue
                monitoring.logger.info(
                    "Added missing column",
                    extra={"table": table.name, "column": column.name},
                )

    # -----------------------------------------------------------------------
    # Prompt store
    # -----------------------------------------------------------------------
    def create_prompt(self, prompt: str, exp_name: Optional[str] = None,
                      architecture: Optional[str] = None,
                      description_type: Optional[str] = None) -> Dict[str, Any]:
        """Insert a new prompt row with no response yet. Returns {id, created_at}."""
        from promptbench.models import PromptRecord
        with self.session() as db:
            rec = PromptRecord(
                prompt=prompt,
                exp_name=exp_name,
                architecture=architecture,
                description_type=description_type,
            )
            db.add(rec)
            db.flush()
            db.refresh(rec)
            return {"id": rec.id, "created_at": _iso(rec.created_at)}

    def record_response(self, prompt_id: int, response: Optional[str],
                        cpp_code: Optional[str], uml_code: Optional[str]):
        """Attach the raw model reply and the artifacts to an existing row."""
        from promptbench.models import PromptRecord
        with self.session() as db:
            rec = db.get(PromptRecord, prompt_id)
            if rec is None:
                raise NotFound(f"Prompt {prompt_id} not found")
            rec.response = response
            rec.cpp_code = cpp_code
            rec.uml_code = uml_code

    def get_prompt(self, prompt_id: int) -> Optional[Dict[str, Any]]:
        if not 0 < prompt_id <= MAX_ROW_ID:
            return None
        from promptbench.models import PromptRecord
        with self.session() as db:
            rec = db.get(PromptRecord, prompt_id)
            if rec is None:
                return None
            return {
                "id": rec.id,
                "created_at": _iso(rec.created_at),
                "prompt": rec.prompt,
                "exp_name": rec.exp_name,
                "architecture": rec.architecture,
                "description_type": rec.description_type,
                "response": rec.response,
                "cpp_code": rec.cpp_code,
                "uml_code": rec.uml_code,
            }

    def latest_prompt(self) -> Optional[Dict[str, Any]]:
        from promptbench.models import PromptRecord
        with self.session() as db:
            rec = db.execute(
                select(PromptRecord).order_by(PromptRecord.id.desc()).limit(1)
            ).scalar_one_or_none()
            if rec is None:
                return None
            return {
                "id": rec.id,
                "created_at": _iso(rec.created_at),
                "prompt": rec.prompt,
                "cpp_code": rec.cpp_code,
                "uml_code": rec.uml_code,
            }

    def list_prompt_summaries(self) -> List[Dict[str, Any]]:
        """All prompts, newest first, with has_cpp/has_uml instead of the artifact bodies."""
        from promptbench.models import PromptRecord
        with self.session() as db:
            rows = db.execute(
                select(PromptRecord).order_by(PromptRecord.id.desc())
            ).scalars().all()
            return [
                {
                    "id": r.id,
                    "created_at": _iso(r.created_at),
                    "exp_name": r.exp_name,
                    "architecture": r.architecture,
                    "description_type": r.description_type,
                    "prompt": r.prompt,
                    "has_cpp": bool(r.cpp_code),
                    "has_uml": bool(r.uml_code),
                }
                for r in rows
            ]

    def get_artifact(self, prompt_id: int, kind: str) -> str:
        """Return artifact text ("cpp" or "uml"); NotFound if the row or artifact is missing."""
        from promptbench.models import PromptRecord
        column = ARTIFACT_COLUMNS[kind]
        if not 0 < prompt_id <= MAX_ROW_ID:
            raise NotFound(f"{kind.upper()} not found")
        with self.session() as db:
            value = db.execute(
                select(getattr(PromptRecord, column)).where(PromptRecord.id == prompt_id)
            ).scalar_one_or_none()
        if not value:
            raise NotFound(f"{kind.upper()} not found")
        return value

    # -----------------------------------------------------------------------
    # Template store
    # -----------------------------------------------------------------------
    def list_fragments(self) -> List[Dict[str, str]]:
        from promptbench.models import PromptFragment
        with self.session() as db:
            rows = db.execute(
                select(PromptFragment).order_by(PromptFragment.name)
            ).scalars().all()
            return [{"name": r.name, "prompt_part": r.prompt_part} for r in rows]

    def get_fragments(self, names: Iterable[str]) -> Dict[str, str]:
        """Map of name -> prompt_part for the requested names that exist."""
        from promptbench.models import PromptFragment
        names = list(names)
        with self.session() as db:
            rows = db.execute(
                select(PromptFragment).where(PromptFragment.name.in_(names))
            ).scalars().all()
            return {r.name: r.prompt_part for r in rows}

    def upsert_fragment(self, name: str, prompt_part: str) -> Dict[str, str]:
        from promptbench.models import PromptFragment
        values = {"name": name, "prompt_part": prompt_part}
        dialect = self.engine.dialect.name
        with self.session() as db:
            if dialect in ("sqlite", "postgresql"):
                insert = sqlite.insert if dialect == "sqlite" else postgresql.insert
                stmt = insert(PromptFragment).values(**values)
                stmt = stmt.on_conflict_do_update(
                    index_elements=[PromptFragment.name],
                    set_={"prompt_part": stmt.excluded.prompt_part},
                )
                db.execute(stmt)
            else:
                db.merge(PromptFragment(**values))
        return values
