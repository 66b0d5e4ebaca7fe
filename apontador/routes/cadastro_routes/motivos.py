"""
Motivos de parada e de cancelamento.

Os dois cadastros têm o mesmo formato (código + descrição); cada um tem
seu blueprint, montado pela mesma função.
"""

from flask import Blueprint, request
from flask_login import login_required

from apontador.models_sqla import MotivoCancelamento, MotivoParada
from apontador.schemas import MotivoCreate, MotivoUpdate
from apontador.services import cadastro_service as cadastro
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import json_ok


def _montar_blueprint(nome_bp: str, url_prefix: str, modelo, nome: str) -> Blueprint:
    bp = Blueprint(nome_bp, __name__, url_prefix=url_prefix)

    @bp.route("", methods=["GET"])
    @login_required
    def listar():
        q = cadastro.filtro_ativo(modelo.query, modelo, request.args.get("ativo"))
        return json_ok(data=[m.as_dict() for m in q.order_by(modelo.codigo).all()])

    @bp.route("/<uuid:motivo_id>", methods=["GET"])
    @login_required
    def obter(motivo_id):
        return json_ok(data=cadastro.obter_ou_404(modelo, motivo_id, nome).as_dict())

    @bp.route("", methods=["POST"])
    @admin_required
    def criar():
        dados = MotivoCreate.model_validate(request.get_json(silent=True) or {})
        motivo = cadastro.criar(modelo, dados.model_dump(), unicos=("codigo",))
        return json_ok(201, data=motivo.as_dict())

    @bp.route("/<uuid:motivo_id>", methods=["PUT"])
    @admin_required
    def atualizar(motivo_id):
        motivo = cadastro.obter_ou_404(modelo, motivo_id, nome)
        dados = MotivoUpdate.model_validate(request.get_json(silent=True) or {})
        motivo = cadastro.atualizar(
            motivo, dados.model_dump(exclude_unset=True), unicos=("codigo",)
        )
        return json_ok(data=motivo.as_dict())

    @bp.route("/<uuid:motivo_id>", methods=["DELETE"])
    @admin_required
    def excluir(motivo_id):
        cadastro.excluir(cadastro.obter_ou_404(modelo, motivo_id, nome), nome)
        return json_ok()

    return bp


motivos_parada_bp = _montar_blueprint(
    "motivos_parada_bp", "/api/motivos-parada", MotivoParada, "Motivo de parada"
)
motivos_cancelamento_bp = _montar_blueprint(
    "motivos_cancelamento_bp",
    "/api/motivos-cancelamento",
    MotivoCancelamento,
    "Motivo de cancelamento",
)
