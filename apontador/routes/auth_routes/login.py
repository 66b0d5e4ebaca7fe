import logging

from flask import Blueprint, request, session
from flask_login import current_user, login_required, login_user, logout_user

from apontador.models_sqla import Usuario
from apontador.schemas import LoginPayload
from apontador.utils.respostas import json_error, json_ok

logger = logging.getLogger(__name__)

auth_bp = Blueprint("auth_bp", __name__, url_prefix="/api/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    """
    Login por matrícula.
    - OPERADOR: só a matrícula (leitura do crachá/QR).
    - ADM: matrícula + senha.
    """
    dados = LoginPayload.model_validate(request.get_json(silent=True) or {})

    user = Usuario.query.filter_by(matricula=dados.matricula).first()
    if not user or not user.ativo:
        logger.info(f"[AUTH] Login recusado: matrícula {dados.matricula} inexistente/inativa")
        return json_error(401, error="credenciais_invalidas", message="Matrícula inválida")

    if user.is_admin and not user.check_senha(dados.senha or ""):
        logger.info(f"[AUTH] Senha incorreta para ADM {dados.matricula}")
        return json_error(401, error="credenciais_invalidas", message="Senha incorreta")

    session.permanent = True
    login_user(user)
    logger.info(f"[AUTH] Login: {user.matricula} ({user.nivel})")
    return json_ok(usuario=user.as_dict())


@auth_bp.route("/logout", methods=["POST"])
@login_required
def logout():
    logger.info(f"[AUTH] Logout: {current_user.matricula}")
    logout_user()
    return json_ok()


@auth_bp.route("/me", methods=["GET"])
@login_required
def me():
    return json_ok(usuario=current_user.as_dict())
