from __future__ import annotations

import os
from contextlib import contextmanager

from sqlalchemy.orm import Session

from app.crm.db import build_engine, build_sessionmaker


def resolve_db_url(database_url: str | None = None) -> str:
    return (database_url or os.environ.get("DATABASE_URL") or "sqlite:///crm.db").strip()


@contextmanager
def script_session(db_url: str):
    engine = build_engine(db_url, pool_recycle=1800)
    sm = build_sessionmaker(engine)
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()


def actor_by_email(s: Session, email: str | None):
    from app.crm.models import User

    if not email:
        return None
    user = s.query(User).filter(User.email == email.strip().lower()).one_or_none()
    if user is None:
        raise SystemExit(f"No user with email {email!r}. Run scripts/init_db.py or pass another --as.")
    return user
