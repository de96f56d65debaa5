import logging

from flask import jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from matchday import db, limiter
from matchday.routes.main import bp
from matchday.utils.cache_utils import get_cache_stats

logger = logging.getLogger(__name__)


@bp.route("/health")
@limiter.exempt
def health():
    """Liveness and database connectivity"""
    try:
        db.session.execute(text("SELECT 1"))
        database = "ok"
    except SQLAlchemyError as e:
        logger.error(f"Health check database error: {e}")
        db.session.rollback()
        database = "unavailable"

    status = "healthy" if database == "ok" else "degraded"
    return (
        jsonify({"status": status, "database": database, "cache": get_cache_stats()}),
        200 if database == "ok" else 503,
    )
