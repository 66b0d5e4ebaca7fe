from flask import Blueprint, request
from flask_login import login_required

from apontador.models_sqla import Area, Setor
from apontador.schemas import SetorCreate, SetorUpdate
from apontador.services import cadastro_service as cadastro
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import json_ok, uuid_param

setores_bp = Blueprint("setores_bp", __name__, url_prefix="/api/setores")


@setores_bp.route("", methods=["GET"])
@login_required
def listar_setores():
    q = cadastro.filtro_ativo(Setor.query, Setor, request.args.get("ativo"))
    area_id = request.args.get("area_id")
    if area_id:
        q = q.filter(Setor.area_id == uuid_param(area_id, "area_id"))
    return json_ok(data=[s.as_dict() for s in q.order_by(Setor.nome).all()])


@setores_bp.route("/<uuid:setor_id>", methods=["GET"])
@login_required
def obter_setor(setor_id):
    return json_ok(data=cadastro.obter_ou_404(Setor, setor_id, "Setor").as_dict())


@setores_bp.route("", methods=["POST"])
@admin_required
def criar_setor():
    dados = SetorCreate.model_validate(request.get_json(silent=True) or {})
    cadastro.obter_ou_404(Area, dados.area_id, "Área")
    setor = cadastro.criar(Setor, dados.model_dump())
    return json_ok(201, data=setor.as_dict())


@setores_bp.route("/<uuid:setor_id>", methods=["PUT"])
@admin_required
def atualizar_setor(setor_id):
    setor = cadastro.obter_ou_404(Setor, setor_id, "Setor")
    dados = SetorUpdate.model_validate(request.get_json(silent=True) or {})
    if dados.area_id is not None:
        cadastro.obter_ou_404(Area, dados.area_id, "Área")
    setor = cadastro.atualizar(setor, dados.model_dump(exclude_unset=True))
    return json_ok(data=setor.as_dict())


@setores_bp.route("/<uuid:setor_id>", methods=["DELETE"])
@admin_required
def excluir_setor(setor_id):
    cadastro.excluir(cadastro.obter_ou_404(Setor, setor_id, "Setor"), "Setor")
    return json_ok()

