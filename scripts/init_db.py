import os
import sys
from pathlib import Path

# Ensure repo root is on sys.path when running as a script (Windows-friendly).
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.crm.db import build_engine
from app.crm.models import Base, User
from scripts._db_utils import resolve_db_url, script_session


def create_tables(*, database_url: str | None = None) -> None:
    """
    Create any missing tables. Local/dev convenience; production runs `alembic upgrade head`.
    """
    engine = build_engine(resolve_db_url(database_url))
    try:
        Base.metadata.create_all(engine)
    finally:
        engine.dispose()


def seed_only(*, database_url: str | None = None) -> User:
    """
    Seed the admin user in an idempotent way.
    """
    admin_email = (os.environ.get("ADMIN_EMAIL") or "admin@example.com").strip().lower()

    with script_session(resolve_db_url(database_url)) as s:
        user = s.query(User).filter(User.email == admin_email).one_or_none()
        if not user:
            user = User(email=admin_email, full_name="Admin", is_active=True)
            s.add(user)
            s.flush()

    print("Initialized database (seed_only).")
    print(f"Admin email: {admin_email}")
    return user


def main() -> None:
    create_tables()
    seed_only()


if __name__ == "__main__":
    main()
