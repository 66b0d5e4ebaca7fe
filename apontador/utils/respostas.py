"""
Helpers de resposta JSON e handlers de erro da API.

Envelope:
  sucesso -> {"ok": true, ...}
  erro    -> {"ok": false, "error": <código>, "message": <texto>, "detalhes"?: [...]}
"""

import json
import logging
import uuid
from typing import Optional

from flask import Flask, jsonify
from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError
from werkzeug.exceptions import HTTPException

from apontador import db
from apontador.services.erros import RegistroNaoEncontrado, RegraNegocioError

logger = logging.getLogger(__name__)


def json_error(
    codigo_http: int,
    *,
    error: str,
    message: str,
    hint: Optional[str] = None,
    detalhes: Optional[list] = None,
):
    payload = {"ok": False, "error": error, "message": message}
    if hint:
        payload["hint"] = hint
    if detalhes:
        payload["detalhes"] = detalhes
    return jsonify(payload), codigo_http


def json_ok(codigo_http: int = 200, **kwargs):
    payload = {"ok": True}
    payload.update(kwargs)
    return jsonify(payload), codigo_http


def detalhes_validacao(e: ValidationError) -> list:
    # e.json() já converte os contextos (ex.: exceções) em texto
    return json.loads(e.json(include_url=False))


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ValidationError)
    def _validacao(e: ValidationError):
        return json_error(
            400,
            error="dados_invalidos",
            message="Dados inválidos",
            detalhes=detalhes_validacao(e),
        )

    @app.errorhandler(RegraNegocioError)
    def _regra(e: RegraNegocioError):
        db.session.rollback()
        return json_error(400, error=e.error, message=e.message)

    @app.errorhandler(RegistroNaoEncontrado)
    def _nao_encontrado(e: RegistroNaoEncontrado):
        db.session.rollback()
        return json_error(404, error=e.error, message=e.message)

    @app.errorhandler(IntegrityError)
    def _integridade(e: IntegrityError):
        db.session.rollback()
        logger.warning(f"[API] Violação de integridade: {e.orig}")
        return json_error(
            400,
            error="integridade",
            message="Operação viola uma restrição do banco (duplicidade ou registro em uso)",
        )

    @app.errorhandler(HTTPException)
    def _http(e: HTTPException):
        return json_error(
            e.code or 500,
            error=(e.name or "erro").lower().replace(" ", "_"),
            message=e.description or e.name,
        )

    @app.errorhandler(Exception)
    def _inesperado(e: Exception):
        db.session.rollback()
        logger.exception(f"[API] Erro inesperado: {e}")
        return json_error(500, error="erro_interno", message=str(e))


def uuid_param(valor: str, campo: str) -> uuid.UUID:
    """Converte parâmetro de query string em UUID (400 se inválido)."""
    try:
        return uuid.UUID(str(valor))
    except ValueError:
        raise RegraNegocioError(f"'{campo}' inválido: {valor!r}", error="parametro_invalido")


def int_param(valor: str, campo: str) -> int:
    try:
        return int(valor)
    except (TypeError, ValueError):
        raise RegraNegocioError(f"'{campo}' inválido: {valor!r}", error="parametro_invalido")


def bool_param(valor) -> bool:
    return str(valor or "").lower() in ("1", "true", "sim")
