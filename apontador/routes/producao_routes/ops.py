import logging

from flask import Blueprint, request
from flask_login import current_user, login_required

from apontador.models_sqla import OrdemProducao, StatusOP
from apontador.schemas import CancelarOP, MoverOP, OPCreate
from apontador.services import op_service
from apontador.services.apontamento_service import obter
from apontador.services.erros import RegraNegocioError
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import json_ok

logger = logging.getLogger(__name__)

ops_bp = Blueprint("ops_bp", __name__, url_prefix="/api/ops")


@ops_bp.route("", methods=["GET"])
@login_required
def listar_ops():
    status = (request.args.get("status") or "").upper() or None
    if status and status not in StatusOP.TODOS:
        raise RegraNegocioError(f"Status inválido: {status}", error="parametro_invalido")
    return json_ok(data=[op.as_dict() for op in op_service.listar_ops(status)])


@ops_bp.route("/kanban", methods=["GET"])
@login_required
def kanban():
    return json_ok(colunas=op_service.montar_kanban())


@ops_bp.route("/<int:numero>", methods=["GET"])
@login_required
def obter_op(numero):
    return json_ok(data=op_service.op_as_dict(obter(OrdemProducao, numero, "OP")))


@ops_bp.route("", methods=["POST"])
@admin_required
def criar_op():
    dados = OPCreate.model_validate(request.get_json(silent=True) or {})
    op = op_service.criar_op(dados.model_dump())
    return json_ok(201, data=op.as_dict())


@ops_bp.route("/<int:numero>/mover", methods=["POST"])
@login_required
def mover_op(numero):
    dados = MoverOP.model_validate(request.get_json(silent=True) or {})
    apontamento = op_service.mover_op(
        numero,
        estagio_id=dados.estagio_id,
        maquina_id=dados.maquina_id,
        operador_id=dados.operador_id or current_user.id,
        quantidade_finalizada=dados.quantidade_finalizada,
        is_reprocesso=dados.is_reprocesso,
    )
    return json_ok(data=apontamento.as_dict())


@ops_bp.route("/<int:numero>/desfazer", methods=["POST"])
@login_required
def desfazer_op(numero):
    apontamento = op_service.desfazer_op(numero, operador_id=current_user.id)
    return json_ok(data=apontamento.as_dict())


@ops_bp.route("/<int:numero>/cancelar", methods=["POST"])
@admin_required
def cancelar_op(numero):
    dados = CancelarOP.model_validate(request.get_json(silent=True) or {})
    op = op_service.cancelar_op(
        numero,
        motivo_cancelamento_id=dados.motivo_cancelamento_id,
        usuario_id=current_user.id,
    )
    return json_ok(data=op.as_dict())
