# ============================================================
# BLOCO 1: Imports e Blueprint
# ============================================================
import logging

from flask import Blueprint, request
from flask_login import current_user, login_required

from apontador.models_sqla import Apontamento, TipoApontamento
from apontador.schemas import (
    ApontamentoUpdate,
    FinalizarParada,
    FinalizarProducao,
    IniciarParadaProducao,
    IniciarProducao,
)
from apontador.services import apontamento_service as svc
from apontador.services.erros import RegraNegocioError
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import bool_param, int_param, json_ok, uuid_param

logger = logging.getLogger(__name__)

apontamentos_bp = Blueprint("apontamentos_bp", __name__, url_prefix="/api/apontamentos")


def _payload() -> dict:
    return request.get_json(silent=True) or {}


# ============================================================
# BLOCO 2: Consulta
# ============================================================
@apontamentos_bp.route("", methods=["GET"])
@login_required
def listar():
    """
    Filtros (query string):
      tipo=PRODUCAO|PARADA, ativas=true, maquina_id=<uuid>, op_id=<int>
    """
    tipo = (request.args.get("tipo") or "").upper() or None
    if tipo and tipo not in TipoApontamento.TODOS:
        raise RegraNegocioError(f"Tipo inválido: {tipo}", error="parametro_invalido")

    maquina_id = request.args.get("maquina_id")
    op_id = request.args.get("op_id")
    registros = svc.listar_apontamentos(
        tipo=tipo,
        ativas=bool_param(request.args.get("ativas")),
        maquina_id=uuid_param(maquina_id, "maquina_id") if maquina_id else None,
        op_id=int_param(op_id, "op_id") if op_id else None,
    )
    return json_ok(data=[a.as_dict() for a in registros])


@apontamentos_bp.route("/<uuid:apontamento_id>", methods=["GET"])
@login_required
def obter(apontamento_id):
    return json_ok(data=svc.obter(Apontamento, apontamento_id, "Apontamento").as_dict())


# ============================================================
# BLOCO 3: Produção
# ============================================================
@apontamentos_bp.route("", methods=["POST"])
@login_required
def iniciar_producao():
    dados = IniciarProducao.model_validate(_payload())
    apontamento = svc.iniciar_producao(
        maquina_id=dados.maquina_id,
        op_id=dados.op_id,
        estagio_id=dados.estagio_id,
        operador_id=dados.operador_id or current_user.id,
        is_reprocesso=dados.is_reprocesso,
        observacoes=dados.observacoes,
    )
    return json_ok(201, data=apontamento.as_dict())


@apontamentos_bp.route("/<uuid:apontamento_id>/parada", methods=["POST"])
@login_required
def iniciar_parada(apontamento_id):
    dados = IniciarParadaProducao.model_validate(_payload())
    parada = svc.iniciar_parada_da_producao(
        apontamento_id,
        motivo_parada_id=dados.motivo_parada_id,
        operador_id=dados.operador_id or current_user.id,
        op_id=dados.op_id,
        observacoes=dados.observacoes,
    )
    return json_ok(201, data=parada.as_dict())


@apontamentos_bp.route("/<uuid:apontamento_id>/finalizar", methods=["POST"])
@login_required
def finalizar(apontamento_id):
    """Finaliza produção ou parada, conforme o tipo do apontamento."""
    apontamento = svc.obter(Apontamento, apontamento_id, "Apontamento")

    if apontamento.tipo == TipoApontamento.PARADA:
        dados = FinalizarParada.model_validate(_payload())
        registro = svc.finalizar_parada(
            apontamento_id,
            operador_id=dados.operador_id or current_user.id,
            data_fim=dados.data_fim,
            observacoes=dados.observacoes,
        )
    else:
        dados = FinalizarProducao.model_validate(_payload())
        registro = svc.finalizar_producao(
            apontamento_id,
            quantidade_processada=dados.quantidade_processada,
            operador_id=dados.operador_id or current_user.id,
            observacoes=dados.observacoes,
        )
    return json_ok(data=registro.as_dict(), tipo=registro.tipo)


# ============================================================
# BLOCO 4: Manutenção (ADM)
# ============================================================
@apontamentos_bp.route("/<uuid:apontamento_id>", methods=["PUT"])
@admin_required
def atualizar(apontamento_id):
    dados = ApontamentoUpdate.model_validate(_payload())
    apontamento = svc.atualizar_apontamento(
        apontamento_id, dados.model_dump(exclude_unset=True)
    )
    return json_ok(data=apontamento.as_dict())


@apontamentos_bp.route("/<uuid:apontamento_id>", methods=["DELETE"])
@admin_required
def excluir(apontamento_id):
    svc.excluir_apontamento(apontamento_id)
    return json_ok()
