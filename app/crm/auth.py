import uuid

from flask import current_app, g, request, session

from app.crm.db import db_session
from app.crm.models import User


def load_current_user() -> None:
    """
    Loads g.current_user from the signed session cookie.
    Also assigns a simple per-request request_id (for audit/log correlation).
    """
    if not getattr(g, "request_id", None):
        g.request_id = uuid.uuid4().hex
    if request.path.startswith(("/health", "/healthz")):
        g.current_user = None
        return

    user_id = session.get("user_id")
    if not user_id:
        g.current_user = None
        return

    s = db_session()
    user = s.get(User, int(user_id))
    if not user or not user.is_active:
        current_app.logger.info("Clearing session for unknown or inactive user_id=%s", user_id)
        session.pop("user_id", None)
        g.current_user = None
        return
    g.current_user = user
