import logging

from flask import Blueprint, Response, request

from apontador.services import relatorio_service
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import json_ok

logger = logging.getLogger(__name__)

relatorios_bp = Blueprint("relatorios_bp", __name__, url_prefix="/api/relatorios")


@relatorios_bp.route("", methods=["GET"])
@admin_required
def relatorio():
    """?tipo=producao|paradas|operadores|maquinas&inicio=AAAA-MM-DD&fim=AAAA-MM-DD"""
    tipo = request.args.get("tipo", "")
    dados = relatorio_service.gerar_relatorio(
        tipo, request.args.get("inicio"), request.args.get("fim")
    )
    return json_ok(tipo=tipo, data=dados)


@relatorios_bp.route("/exportar", methods=["GET"])
@admin_required
def exportar():
    """Mesmos parâmetros do relatório, em .xlsx."""
    tipo = request.args.get("tipo", "")
    inicio = request.args.get("inicio")
    fim = request.args.get("fim")
    excel_bytes = relatorio_service.exportar_relatorio_excel(tipo, inicio, fim)
    return Response(
        excel_bytes,
        mimetype="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={
            "Content-Disposition": f"attachment; filename=relatorio_{tipo}_{inicio}_{fim}.xlsx"
        },
    )
