# apontador/routes/integracao_routes/cron_routes.py
"""
Rota chamada por um agendador externo (cron do servidor, scheduler da
hospedagem) para reimportar as OPs do Systêxtil.

Se CRON_SECRET estiver configurado, exige:
    Authorization: Bearer <CRON_SECRET>
"""
import hmac
import logging

from flask import Blueprint, current_app, request

from apontador.services.importacao_service import importar_ops
from apontador.utils.respostas import json_error, json_ok
from apontador.utils.systextil_client import SystextilError, get_systextil_client

logger = logging.getLogger(__name__)

cron_bp = Blueprint("cron_bp", __name__, url_prefix="/api/cron")


def _autorizado() -> bool:
    segredo = current_app.config.get("CRON_SECRET") or ""
    if not segredo:
        return True
    recebido = request.headers.get("Authorization", "")
    return hmac.compare_digest(recebido, f"Bearer {segredo}")


@cron_bp.route("/importar-ops", methods=["GET", "POST"])
def importar_ops_cron():
    if not _autorizado():
        logger.warning("[CRON] Chamada recusada: segredo inválido")
        return json_error(401, error="nao_autorizado", message="Segredo do cron inválido")

    logger.info("[CRON] Importação automática de OPs iniciada")
    try:
        resultado = importar_ops(get_systextil_client())
    except SystextilError as e:
        logger.error(f"[CRON] Importação automática falhou: {e}")
        return json_error(500, error="systextil_indisponivel", message=str(e))
    return json_ok(**resultado)
