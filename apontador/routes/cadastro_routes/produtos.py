from flask import Blueprint, request
from flask_login import login_required

from apontador.models_sqla import Produto
from apontador.schemas import ProdutoCreate, ProdutoUpdate
from apontador.services import cadastro_service as cadastro
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import json_ok

produtos_bp = Blueprint("produtos_bp", __name__, url_prefix="/api/produtos")


@produtos_bp.route("", methods=["GET"])
@login_required
def listar_produtos():
    q = cadastro.filtro_ativo(Produto.query, Produto, request.args.get("ativo"))
    busca = (request.args.get("q") or "").strip()
    if busca:
        q = q.filter(Produto.codigo.ilike(f"%{busca}%") | Produto.nome.ilike(f"%{busca}%"))
    return json_ok(data=[p.as_dict() for p in q.order_by(Produto.codigo).all()])


@produtos_bp.route("/<uuid:produto_id>", methods=["GET"])
@login_required
def obter_produto(produto_id):
    return json_ok(data=cadastro.obter_ou_404(Produto, produto_id, "Produto").as_dict())


@produtos_bp.route("", methods=["POST"])
@admin_required
def criar_produto():
    dados = ProdutoCreate.model_validate(request.get_json(silent=True) or {})
    produto = cadastro.criar(Produto, dados.model_dump(), unicos=("codigo",))
    return json_ok(201, data=produto.as_dict())


@produtos_bp.route("/<uuid:produto_id>", methods=["PUT"])
@admin_required
def atualizar_produto(produto_id):
    produto = cadastro.obter_ou_404(Produto, produto_id, "Produto")
    dados = ProdutoUpdate.model_validate(request.get_json(silent=True) or {})
    produto = cadastro.atualizar(
        produto, dados.model_dump(exclude_unset=True), unicos=("codigo",)
    )
    return json_ok(data=produto.as_dict())


@produtos_bp.route("/<uuid:produto_id>", methods=["DELETE"])
@admin_required
def excluir_produto(produto_id):
    cadastro.excluir(cadastro.obter_ou_404(Produto, produto_id, "Produto"), "Produto")
    return json_ok()
