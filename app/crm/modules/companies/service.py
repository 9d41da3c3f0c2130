from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Session

from app.crm.modules.companies.models import Company


def get_company_by_id(s: Session, company_id: int) -> Company | None:
    return s.get(Company, company_id)


def create_company(s: Session, doc: dict[str, Any]) -> Company:
    """Create a company from `name` and optional `website`; returns it with its id assigned."""
    name = (doc.get("name") or "").strip()
    if not name:
        raise ValueError("Company name is required.")
    now = datetime.utcnow()
    company = Company(
        name=name,
        website=(doc.get("website") or "").strip() or None,
        created_at=now,
        updated_at=now,
    )
    s.add(company)
    s.flush()
    return company
