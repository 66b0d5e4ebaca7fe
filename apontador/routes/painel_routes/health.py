import logging

from flask import Blueprint
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from apontador import db
from apontador.models_sqla import utcnow
from apontador.utils.respostas import json_error, json_ok

logger = logging.getLogger(__name__)

health_bp = Blueprint("health_bp", __name__, url_prefix="/api")


@health_bp.route("/health", methods=["GET"])
def health():
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error(f"[HEALTH] Banco indisponível: {e}")
        return json_error(503, error="banco_indisponivel", message=str(e))
    return json_ok(status="healthy", database="connected", timestamp=utcnow().isoformat())
