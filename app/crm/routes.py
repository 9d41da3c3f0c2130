from flask import Blueprint, current_app, g, request

from app.crm.db import db_session
from app.crm.schema import schema

bp = Blueprint("routes", __name__)


@bp.get("/health")
def health():
    """Health check endpoint. Returns JSON."""
    return {"ok": True}


@bp.get("/healthz")
def healthz():
    """
    Fast health check for k8s/DO probes. No DB access, minimal overhead.
    """
    return "ok", 200


@bp.post("/graphql")
def graphql():
    """
    One GraphQL operation per request, one transaction per operation.
    Any error in the response rolls the whole operation back.
    """
    payload = request.get_json(silent=True) or {}
    query = payload.get("query")
    if not query:
        return {"errors": [{"message": "Request body must contain a query."}]}, 400

    s = db_session()
    result = schema.execute(
        query,
        variable_values=payload.get("variables"),
        operation_name=payload.get("operationName"),
        context_value={
            "session": s,
            "user": getattr(g, "current_user", None),
            "max_batch": current_app.config.get("GRAPHQL_MAX_BATCH"),
        },
    )
    if result.errors:
        s.rollback()
        for err in result.errors:
            if err.original_error is not None and not isinstance(err.original_error, ValueError):
                current_app.logger.error(
                    "GraphQL resolver error (request_id=%s)",
                    getattr(g, "request_id", None),
                    exc_info=err.original_error,
                )
            else:
                current_app.logger.info("GraphQL request rejected: %s", err.message)
    else:
        s.commit()
    return result.formatted, 200 if result.data is not None else 400
