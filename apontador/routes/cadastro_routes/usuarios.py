import logging

from flask import Blueprint, request
from flask_login import current_user, login_required

from apontador.models_sqla import NivelUsuario, Usuario
from apontador.schemas import UsuarioCreate, UsuarioUpdate
from apontador.services import cadastro_service as cadastro
from apontador.services.erros import RegraNegocioError
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import json_ok

logger = logging.getLogger(__name__)

usuarios_bp = Blueprint("usuarios_bp", __name__, url_prefix="/api/usuarios")


@usuarios_bp.route("", methods=["GET"])
@login_required
def listar_usuarios():
    q = cadastro.filtro_ativo(Usuario.query, Usuario, request.args.get("ativo"))
    nivel = (request.args.get("nivel") or "").upper()
    if nivel:
        if nivel not in NivelUsuario.TODOS:
            raise RegraNegocioError(f"Nível inválido: {nivel}", error="parametro_invalido")
        q = q.filter(Usuario.nivel == nivel)
    return json_ok(data=[u.as_dict() for u in q.order_by(Usuario.nome).all()])


@usuarios_bp.route("/<uuid:usuario_id>", methods=["GET"])
@login_required
def obter_usuario(usuario_id):
    return json_ok(data=cadastro.obter_ou_404(Usuario, usuario_id, "Usuário").as_dict())


@usuarios_bp.route("", methods=["POST"])
@admin_required
def criar_usuario():
    dados = UsuarioCreate.model_validate(request.get_json(silent=True) or {}).model_dump()
    senha = dados.pop("senha", None)
    cadastro.checar_unicos(Usuario, dados, ("matricula",))

    usuario = Usuario(**dados)
    if senha:
        usuario.set_senha(senha)
    usuario = cadastro.criar_instancia(usuario)
    logger.info(f"[AUTH] Usuário criado: {usuario.matricula} ({usuario.nivel})")
    return json_ok(201, data=usuario.as_dict())


@usuarios_bp.route("/<uuid:usuario_id>", methods=["PUT"])
@admin_required
def atualizar_usuario(usuario_id):
    usuario = cadastro.obter_ou_404(Usuario, usuario_id, "Usuário")
    dados = UsuarioUpdate.model_validate(request.get_json(silent=True) or {}).model_dump(
        exclude_unset=True
    )
    senha = dados.pop("senha", None)

    nivel_final = dados.get("nivel", usuario.nivel)
    if nivel_final == NivelUsuario.ADM and not (senha or usuario.senha_hash):
        raise RegraNegocioError("Administradores precisam de senha", error="senha_obrigatoria")
    if usuario.id == current_user.id and dados.get("ativo") is False:
        raise RegraNegocioError("Não é possível inativar o próprio usuário", error="regra_negocio")

    if senha:
        usuario.set_senha(senha)
    usuario = cadastro.atualizar(usuario, dados, unicos=("matricula",))
    return json_ok(data=usuario.as_dict())


@usuarios_bp.route("/<uuid:usuario_id>", methods=["DELETE"])
@admin_required
def excluir_usuario(usuario_id):
    usuario = cadastro.obter_ou_404(Usuario, usuario_id, "Usuário")
    if usuario.id == current_user.id:
        raise RegraNegocioError("Não é possível excluir o próprio usuário", error="regra_negocio")
    cadastro.excluir(usuario, "Usuário")
    return json_ok()
