from flask import Blueprint, request
from flask_login import login_required

from apontador.models_sqla import Estagio
from apontador.schemas import EstagioCreate, EstagioUpdate
from apontador.services import cadastro_service as cadastro
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import json_ok

estagios_bp = Blueprint("estagios_bp", __name__, url_prefix="/api/estagios")


@estagios_bp.route("", methods=["GET"])
@login_required
def listar_estagios():
    q = cadastro.filtro_ativo(Estagio.query, Estagio, request.args.get("ativo"))
    return json_ok(data=[e.as_dict() for e in q.order_by(Estagio.ordem).all()])


@estagios_bp.route("/<uuid:estagio_id>", methods=["GET"])
@login_required
def obter_estagio(estagio_id):
    return json_ok(data=cadastro.obter_ou_404(Estagio, estagio_id, "Estágio").as_dict())


@estagios_bp.route("", methods=["POST"])
@admin_required
def criar_estagio():
    dados = EstagioCreate.model_validate(request.get_json(silent=True) or {})
    estagio = cadastro.criar(Estagio, dados.model_dump(), unicos=("codigo",))
    return json_ok(201, data=estagio.as_dict())


@estagios_bp.route("/<uuid:estagio_id>", methods=["PUT"])
@admin_required
def atualizar_estagio(estagio_id):
    estagio = cadastro.obter_ou_404(Estagio, estagio_id, "Estágio")
    dados = EstagioUpdate.model_validate(request.get_json(silent=True) or {})
    estagio = cadastro.atualizar(
        estagio, dados.model_dump(exclude_unset=True), unicos=("codigo",)
    )
    return json_ok(data=estagio.as_dict())


@estagios_bp.route("/<uuid:estagio_id>", methods=["DELETE"])
@admin_required
def excluir_estagio(estagio_id):
    cadastro.excluir(cadastro.obter_ou_404(Estagio, estagio_id, "Estágio"), "Estágio")
    return json_ok()
