from flask import Blueprint, request
from flask_login import login_required

from apontador.models_sqla import Area
from apontador.schemas import AreaCreate, AreaUpdate
from apontador.services import cadastro_service as cadastro
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import json_ok

areas_bp = Blueprint("areas_bp", __name__, url_prefix="/api/areas")


@areas_bp.route("", methods=["GET"])
@login_required
def listar_areas():
    q = cadastro.filtro_ativo(Area.query, Area, request.args.get("ativo"))
    return json_ok(data=[a.as_dict() for a in q.order_by(Area.nome).all()])


@areas_bp.route("/<uuid:area_id>", methods=["GET"])
@login_required
def obter_area(area_id):
    return json_ok(data=cadastro.obter_ou_404(Area, area_id, "Área").as_dict())


@areas_bp.route("", methods=["POST"])
@admin_required
def criar_area():
    dados = AreaCreate.model_validate(request.get_json(silent=True) or {})
    area = cadastro.criar(Area, dados.model_dump(), unicos=("nome",))
    return json_ok(201, data=area.as_dict())


@areas_bp.route("/<uuid:area_id>", methods=["PUT"])
@admin_required
def atualizar_area(area_id):
    area = cadastro.obter_ou_404(Area, area_id, "Área")
    dados = AreaUpdate.model_validate(request.get_json(silent=True) or {})
    area = cadastro.atualizar(area, dados.model_dump(exclude_unset=True), unicos=("nome",))
    return json_ok(data=area.as_dict())


@areas_bp.route("/<uuid:area_id>", methods=["DELETE"])
@admin_required
def excluir_area(area_id):
    cadastro.excluir(cadastro.obter_ou_404(Area, area_id, "Área"), "Área")
    return json_ok()
