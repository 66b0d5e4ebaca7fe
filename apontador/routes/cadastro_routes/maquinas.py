import logging

from flask import Blueprint, request
from flask_login import login_required

from apontador import db
from apontador.models_sqla import Estagio, Maquina, MaquinaSetor, Setor
from apontador.schemas import MaquinaCreate, MaquinaUpdate
from apontador.services import cadastro_service as cadastro
from apontador.services.maquina_state import StatusMaquina
from apontador.utils.auth_utils import admin_required
from apontador.utils.respostas import json_ok, uuid_param

logger = logging.getLogger(__name__)

maquinas_bp = Blueprint("maquinas_bp", __name__, url_prefix="/api/maquinas")


def _definir_setores(maquina: Maquina, setor_ids) -> None:
    """Substitui os vínculos máquina x setor (sem commit)."""
    for setor_id in setor_ids:
        cadastro.obter_ou_404(Setor, setor_id, "Setor")
    MaquinaSetor.query.filter_by(maquina_id=maquina.id).delete()
    for setor_id in dict.fromkeys(setor_ids):
        db.session.add(MaquinaSetor(maquina_id=maquina.id, setor_id=setor_id))


@maquinas_bp.route("", methods=["GET"])
@login_required
def listar_maquinas():
    q = cadastro.filtro_ativo(Maquina.query, Maquina, request.args.get("ativo"))
    status = request.args.get("status")
    if status:
        q = q.filter(Maquina.status == status.upper())
    return json_ok(data=[m.as_dict(com_setores=True) for m in q.order_by(Maquina.codigo).all()])


@maquinas_bp.route("/disponiveis", methods=["GET"])
@login_required
def listar_disponiveis():
    """
    Máquinas DISPONIVEL e ativas.
    Com ?estagio_id=, só as dos setores cujo nome contém o nome do estágio.
    """
    q = Maquina.query.filter(
        Maquina.status == StatusMaquina.DISPONIVEL.value, Maquina.ativo.is_(True)
    )
    estagio_id = request.args.get("estagio_id")
    if estagio_id:
        estagio = cadastro.obter_ou_404(Estagio, uuid_param(estagio_id, "estagio_id"), "Estágio")
        setores_ids = [
            s.id
            for s in Setor.query.filter(
                Setor.nome.ilike(f"%{estagio.nome}%"), Setor.ativo.is_(True)
            ).all()
        ]
        if not setores_ids:
            return json_ok(data=[])
        q = q.join(MaquinaSetor, MaquinaSetor.maquina_id == Maquina.id).filter(
            MaquinaSetor.setor_id.in_(setores_ids)
        ).distinct()
    return json_ok(data=[m.as_dict() for m in q.order_by(Maquina.codigo).all()])


@maquinas_bp.route("/<uuid:maquina_id>", methods=["GET"])
@login_required
def obter_maquina(maquina_id):
    maquina = cadastro.obter_ou_404(Maquina, maquina_id, "Máquina")
    return json_ok(data=maquina.as_dict(com_setores=True))


@maquinas_bp.route("/<uuid:maquina_id>/setores", methods=["GET"])
@login_required
def setores_da_maquina(maquina_id):
    maquina = cadastro.obter_ou_404(Maquina, maquina_id, "Máquina")
    return json_ok(data=[s.as_dict() for s in maquina.setores])


@maquinas_bp.route("", methods=["POST"])
@admin_required
def criar_maquina():
    dados = MaquinaCreate.model_validate(request.get_json(silent=True) or {}).model_dump()
    setor_ids = dados.pop("setor_ids")
    cadastro.checar_unicos(Maquina, dados, ("codigo",))

    try:
        maquina = Maquina(status=StatusMaquina.DISPONIVEL.value, **dados)
        db.session.add(maquina)
        db.session.flush()
        _definir_setores(maquina, setor_ids)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"[CADASTRO] Máquina criada: {maquina.codigo}")
    return json_ok(201, data=maquina.as_dict(com_setores=True))


@maquinas_bp.route("/<uuid:maquina_id>", methods=["PUT"])
@admin_required
def atualizar_maquina(maquina_id):
    maquina = cadastro.obter_ou_404(Maquina, maquina_id, "Máquina")
    dados = MaquinaUpdate.model_validate(request.get_json(silent=True) or {}).model_dump(
        exclude_unset=True
    )
    setor_ids = dados.pop("setor_ids", None)
    cadastro.checar_unicos(Maquina, dados, ("codigo",), ignorar_id=maquina.id)

    try:
        for campo, valor in dados.items():
            setattr(maquina, campo, valor)
        if setor_ids is not None:
            _definir_setores(maquina, setor_ids)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    db.session.refresh(maquina)
    return json_ok(data=maquina.as_dict(com_setores=True))


@maquinas_bp.route("/<uuid:maquina_id>", methods=["DELETE"])
@admin_required
def excluir_maquina(maquina_id):
    maquina = cadastro.obter_ou_404(Maquina, maquina_id, "Máquina")
    cadastro.excluir(maquina, "Máquina")
    return json_ok()
