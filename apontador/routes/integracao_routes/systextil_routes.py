# apontador/routes/integracao_routes/systextil_routes.py
import logging

from flask import Blueprint

from apontador.services.importacao_service import importar_ops
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import json_error, json_ok
from apontador.utils.systextil_client import SystextilError, get_systextil_client

# Logger simples para este módulo
logger = logging.getLogger(__name__)

systextil_bp = Blueprint("systextil_bp", __name__, url_prefix="/api/systextil")


@systextil_bp.route("/importar", methods=["POST"])
@admin_required
def importar():
    """Importação manual de OPs (botão do painel ADM)."""
    try:
        resultado = importar_ops(get_systextil_client())
    except SystextilError as e:
        logger.error(f"[SYSTEXTIL] Importação manual abortada: {e}")
        return json_error(502, error="systextil_indisponivel", message=str(e))
    return json_ok(**resultado)


@systextil_bp.route("/testar", methods=["GET"])
@admin_required
def testar():
    """Testa token + listagem sem gravar nada."""
    try:
        items = get_systextil_client().listar_ops()
    except SystextilError as e:
        logger.error(f"[SYSTEXTIL] Teste de conexão falhou: {e}")
        return json_error(502, error="systextil_indisponivel", message=str(e))
    return json_ok(total=len(items), amostra=items[:5])
