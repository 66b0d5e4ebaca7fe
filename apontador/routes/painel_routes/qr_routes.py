"""
QR codes (deep links) do chão de fábrica.

- /api/qrcodes/<tipo>/<ident>.png  → PNG para impressão (tipo: machine|op|operator)
- /qr/machine/<uuid>                → contexto da máquina + apontamentos abertos
- /qr/op/<numero>                   → contexto da OP + produção em andamento
- /qr/operator/<matricula>          → operador ativo + apontamentos que ele abriu
"""

import logging
import uuid

from flask import Blueprint, Response, current_app
from flask_login import current_user, login_required

from apontador.models_sqla import Apontamento, Maquina, MotivoParada, OrdemProducao, Usuario
from apontador.services.apontamento_service import (
    abertos_da_maquina,
    obter,
    producao_aberta_da_op,
)
from apontador.services.erros import RegistroNaoEncontrado, RegraNegocioError
from apontador.utils.qrcode_utils import TIPOS_QR, gerar_qrcode_png, montar_url_qr
from apontador.utils.respostas import json_ok

logger = logging.getLogger(__name__)

qr_bp = Blueprint("qr_bp", __name__)


def _usuario_ativo(matricula: str) -> Usuario:
    usuario = Usuario.query.filter_by(matricula=matricula).first()
    if usuario is None or not usuario.ativo:
        raise RegistroNaoEncontrado("Operador", matricula)
    return usuario


def _alvo_qr(tipo: str, ident: str):
    """Resolve (valor usado na URL, legenda da etiqueta) para o tipo de QR."""
    destino = TIPOS_QR.get(tipo.lower())
    if destino == "machine":
        try:
            maquina_id = uuid.UUID(ident)
        except ValueError:
            raise RegistroNaoEncontrado("Máquina", ident)
        maquina = obter(Maquina, maquina_id, "Máquina")
        return str(maquina.id), f"{maquina.codigo} - {maquina.nome}"
    if destino == "op":
        try:
            numero = int(ident)
        except ValueError:
            raise RegistroNaoEncontrado("OP", ident)
        op = obter(OrdemProducao, numero, "OP")
        return str(op.op), f"OP {op.op}"
    if destino == "operator":
        usuario = _usuario_ativo(ident)
        return usuario.matricula, f"{usuario.matricula} - {usuario.nome}"
    raise RegraNegocioError(f"Tipo de QR inválido: {tipo!r}", error="parametro_invalido")


# ============================================================
# PNG
# ============================================================
@qr_bp.route("/api/qrcodes/<tipo>/<ident>.png", methods=["GET"])
@login_required
def qrcode_png(tipo, ident):
    valor, legenda = _alvo_qr(tipo, ident)
    url = montar_url_qr(current_app.config["APP_URL"], tipo, valor)
    logger.info(f"[QR] Gerando QR {tipo} -> {url}")
    return Response(
        gerar_qrcode_png(url, legenda),
        mimetype="image/png",
        headers={"Content-Disposition": f"inline; filename=qr_{tipo}_{valor}.png"},
    )


# ============================================================
# Deep links
# ============================================================
@qr_bp.route("/qr/machine/<uuid:maquina_id>", methods=["GET"])
@login_required
def qr_maquina(maquina_id):
    maquina = obter(Maquina, maquina_id, "Máquina")
    abertos = abertos_da_maquina(maquina.id)
    motivos = MotivoParada.query.filter_by(ativo=True).order_by(MotivoParada.codigo).all()
    return json_ok(
        maquina=maquina.as_dict(com_setores=True),
        apontamentos_abertos=[a.as_dict() for a in abertos],
        motivos_parada=[m.as_dict() for m in motivos],
        operador=current_user.as_dict(),
    )


@qr_bp.route("/qr/op/<int:numero>", methods=["GET"])
@login_required
def qr_op(numero):
    op = obter(OrdemProducao, numero, "OP")
    producao = producao_aberta_da_op(op.op)
    paradas = (
        Apontamento.query.filter_by(producao_id=producao.id, data_fim=None).all()
        if producao
        else []
    )
    return json_ok(
        op=op.as_dict(),
        producao_aberta=producao.as_dict() if producao else None,
        paradas_abertas=[p.as_dict() for p in paradas],
    )


@qr_bp.route("/qr/operator/<matricula>", methods=["GET"])
def qr_operador(matricula):
    """Não exige sessão: o crachá serve justamente para entrar."""
    usuario = _usuario_ativo(matricula)
    abertos = (
        Apontamento.query.filter_by(operador_inicio_id=usuario.id, data_fim=None)
        .order_by(Apontamento.data_inicio)
        .all()
    )
    return json_ok(
        operador={"nome": usuario.nome, "matricula": usuario.matricula, "nivel": usuario.nivel},
        apontamentos_abertos=[a.as_dict() for a in abertos],
        login={"url": "/api/auth/login", "matricula": usuario.matricula,
               "exige_senha": usuario.is_admin},
    )
