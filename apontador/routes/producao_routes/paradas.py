from flask import Blueprint, request
from flask_login import current_user, login_required

from apontador.models_sqla import TipoApontamento
from apontador.schemas import FinalizarParada, IniciarParadaMaquina
from apontador.services import apontamento_service as svc
from apontador.utils.respostas import bool_param, json_ok, uuid_param

paradas_bp = Blueprint("paradas_bp", __name__, url_prefix="/api/paradas")


@paradas_bp.route("", methods=["GET"])
@login_required
def listar_paradas():
    maquina_id = request.args.get("maquina_id")
    paradas = svc.listar_apontamentos(
        tipo=TipoApontamento.PARADA,
        ativas=bool_param(request.args.get("ativas")),
        maquina_id=uuid_param(maquina_id, "maquina_id") if maquina_id else None,
    )
    return json_ok(data=[p.as_dict() for p in paradas])


@paradas_bp.route("", methods=["POST"])
@login_required
def iniciar_parada():
    """Parada lançada direto na máquina (com ou sem produção em andamento)."""
    dados = IniciarParadaMaquina.model_validate(request.get_json(silent=True) or {})
    parada = svc.iniciar_parada(
        maquina_id=dados.maquina_id,
        motivo_parada_id=dados.motivo_parada_id,
        operador_id=dados.operador_id or current_user.id,
        op_id=dados.op_id,
        data_inicio=dados.data_inicio,
        observacoes=dados.observacoes,
    )
    return json_ok(201, data=parada.as_dict())


@paradas_bp.route("/<uuid:parada_id>/finalizar", methods=["POST"])
@login_required
def finalizar_parada(parada_id):
    dados = FinalizarParada.model_validate(request.get_json(silent=True) or {})
    parada = svc.finalizar_parada(
        parada_id,
        operador_id=dados.operador_id or current_user.id,
        data_fim=dados.data_fim,
        observacoes=dados.observacoes,
    )
    return json_ok(data=parada.as_dict(), maquina_status=parada.maquina.status)
