"""Sessão (Flask-Login) e controle de acesso por nível."""

import logging
import uuid
from functools import wraps

from flask_login import LoginManager, current_user

from apontador import db
from apontador.models_sqla import Usuario
from apontador.utils.respostas import json_error

logger = logging.getLogger(__name__)


def init_login_manager(login_manager: LoginManager) -> None:
    @login_manager.user_loader
    def _carregar_usuario(user_id: str):
        try:
            uid = uuid.UUID(user_id)
        except (TypeError, ValueError):
            return None
        usuario = db.session.get(Usuario, uid)
        if usuario is None or not usuario.ativo:
            return None
        return usuario

    @login_manager.unauthorized_handler
    def _nao_autenticado():
        return json_error(401, error="nao_autenticado", message="Login necessário")


def admin_required(f):
    """Exige sessão ativa com nível ADM (401 sem sessão, 403 sem permissão)."""

    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not current_user.is_authenticated:
            return json_error(401, error="nao_autenticado", message="Login necessário")
        if not current_user.is_admin:
            logger.info(
                f"[AUTH] Acesso negado a {current_user.matricula} (nível {current_user.nivel})"
            )
            return json_error(
                403,
                error="acesso_negado",
                message="Apenas administradores podem executar esta operação",
            )
        return f(*args, **kwargs)

    return decorated_function
