from flask import Blueprint

from apontador.services.dashboard_service import resumo_dashboard
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import json_ok

dashboard_bp = Blueprint("dashboard_bp", __name__, url_prefix="/api/dashboard")


@dashboard_bp.route("/resumo", methods=["GET"])
@admin_required
def resumo():
    return json_ok(data=resumo_dashboard())
