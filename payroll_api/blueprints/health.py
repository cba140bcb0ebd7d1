from flask import Blueprint, current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from payroll_api.common.http import ok, fail
from payroll_api.extensions import db

bp = Blueprint("health", __name__, url_prefix="/api")


@bp.get("/health")
def health():
    """Liveness plus a DB round-trip. The DB clock is only shown outside production."""
    try:
        if current_app.config.get("EXPOSE_DB_TIME", True) and db.engine.dialect.name != "sqlite":
            now = db.session.execute(text("SELECT NOW()")).scalar()
            data = {"status": "ok", "db": "ok", "db_time": str(now)}
        else:
            db.session.execute(text("SELECT 1"))
            data = {"status": "ok", "db": "ok"}
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.error("health check: database unreachable: %s", e)
        return fail("Database unreachable", status=503, code="db_unavailable")
    return ok(data)
