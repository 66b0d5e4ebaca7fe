# -*- coding: utf-8 -*-
"""
apontador/services/op_service.py

Quadro de OPs (kanban) e movimentações manuais:
- montar_kanban()        → colunas por estágio com as OPs não encerradas.
- criar_op(dados)        → cadastro manual de OP (status ABERTA).
- mover_op(...)          → fecha a produção atual e abre outra na máquina/estágio destino.
- desfazer_op(...)       → volta a OP ao estágio anterior (código - 1).
- cancelar_op(...)       → CANCELADA com motivo; bloqueado com produção em andamento.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional
from uuid import UUID

from apontador import db
from apontador.models_sqla import (
    COD_ESTAGIO_FINALIZADA,
    COD_ESTAGIO_INICIAL,
    ESTAGIO_INICIAL,
    Apontamento,
    Estagio,
    MotivoCancelamento,
    OrdemProducao,
    Produto,
    StatusApontamento,
    StatusOP,
    TipoApontamento,
    Usuario,
    utcnow,
)
from apontador.services.apontamento_service import (
    abrir_producao,
    commit_unidade,
    fechar_producao,
    obter,
    producao_aberta_da_op,
    travar_maquina,
)
from apontador.services.erros import RegraNegocioError

logger = logging.getLogger(__name__)

COR_COLUNA_INICIAL = "#9ca3af"


def op_as_dict(op: OrdemProducao) -> dict:
    d = op.as_dict()
    producao = producao_aberta_da_op(op.op)
    d["producao_aberta_id"] = str(producao.id) if producao else None
    return d


def listar_ops(status: Optional[str] = None) -> List[OrdemProducao]:
    q = OrdemProducao.query
    if status:
        q = q.filter(OrdemProducao.status == status)
    return q.order_by(OrdemProducao.op.desc()).all()


def criar_op(dados: dict) -> OrdemProducao:
    numero = dados["op"]
    if db.session.get(OrdemProducao, numero) is not None:
        raise RegraNegocioError(f"OP {numero} já cadastrada", error="op_existente")

    produto = Produto.query.filter_by(codigo=dados["produto"]).first()
    op = OrdemProducao(**dados)
    op.produto_id = produto.id if produto else None
    op.status = StatusOP.ABERTA
    op.data_importacao = utcnow()
    try:
        db.session.add(op)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(f"[OP] OP {numero} cadastrada manualmente")
    return op


def montar_kanban() -> List[Dict]:
    """
    Colunas do quadro: "00 / NENHUM" primeiro, depois os estágios ativos
    marcados para o kanban, pela ordem. Só entram OPs não encerradas.
    """
    ops = (
        OrdemProducao.query.filter(OrdemProducao.status.notin_(StatusOP.TERMINAIS))
        .order_by(OrdemProducao.op)
        .all()
    )
    por_estagio: Dict[str, List[dict]] = {}
    for op in ops:
        por_estagio.setdefault(op.cod_estagio_atual, []).append(op_as_dict(op))

    colunas = [
        {
            "codigo": COD_ESTAGIO_INICIAL,
            "nome": ESTAGIO_INICIAL,
            "cor": COR_COLUNA_INICIAL,
            "ordem": 0,
            "ops": por_estagio.get(COD_ESTAGIO_INICIAL, []),
        }
    ]
    estagios = (
        Estagio.query.filter_by(ativo=True, mostrar_no_kanban=True)
        .order_by(Estagio.ordem)
        .all()
    )
    for estagio in estagios:
        colunas.append(
            {
                "id": str(estagio.id),
                "codigo": estagio.codigo,
                "nome": estagio.nome,
                "cor": estagio.cor,
                "ordem": estagio.ordem,
                "ops": por_estagio.get(estagio.codigo, []),
            }
        )
    return colunas


def mover_op(
    numero: int,
    *,
    estagio_id: UUID,
    maquina_id: UUID,
    operador_id: UUID,
    quantidade_finalizada: Optional[float] = None,
    is_reprocesso: bool = False,
) -> Apontamento:
    try:
        op = obter(OrdemProducao, numero, "OP")
        if op.terminal:
            raise RegraNegocioError(
                f"OP {numero} está {op.status} e não pode ser movida", error="op_encerrada"
            )
        estagio = obter(Estagio, estagio_id, "Estágio")
        obter(Usuario, operador_id, "Operador")
        agora = utcnow()

        atual = producao_aberta_da_op(numero)
        if atual is not None:
            fechar_producao(
                atual,
                agora,
                quantidade_processada=quantidade_finalizada,
                operador_fim_id=operador_id,
            )
            if quantidade_finalizada is not None:
                op.qtde_produzida = quantidade_finalizada

        maquina = travar_maquina(maquina_id)
        novo = abrir_producao(
            maquina, op, estagio, operador_id, agora, is_reprocesso=is_reprocesso
        )
        commit_unidade("mover_op")
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        f"[OP] OP {numero} movida para {estagio.codigo}/{maquina.codigo}"
        f"{' (reprocesso)' if is_reprocesso else ''}"
    )
    return novo


def _estagio_anterior(op: OrdemProducao, ultimo: Apontamento) -> Optional[Estagio]:
    if op.cod_estagio_atual == COD_ESTAGIO_FINALIZADA:
        # OP finalizada volta para o estágio da última produção
        return ultimo.estagio
    try:
        codigo_anterior = f"{int(op.cod_estagio_atual) - 1:02d}"
    except (TypeError, ValueError):
        return None
    return Estagio.query.filter_by(codigo=codigo_anterior).first()


def desfazer_op(numero: int, *, operador_id: UUID) -> Apontamento:
    """
    Desfaz o último avanço da OP: fecha a produção aberta (se houver) e
    reabre produção no estágio anterior, na máquina da última produção concluída.
    """
    try:
        op = obter(OrdemProducao, numero, "OP")
        if op.status == StatusOP.CANCELADA:
            raise RegraNegocioError(f"OP {numero} está cancelada", error="op_encerrada")
        if not op.cod_estagio_atual or op.cod_estagio_atual == COD_ESTAGIO_INICIAL:
            raise RegraNegocioError(
                "Não é possível desfazer: OP no estágio inicial", error="sem_estagio_anterior"
            )

        ultimo = (
            Apontamento.query.filter_by(
                op_id=numero,
                tipo=TipoApontamento.PRODUCAO,
                status=StatusApontamento.CONCLUIDO,
            )
            .order_by(Apontamento.data_fim.desc())
            .first()
        )
        if ultimo is None:
            raise RegraNegocioError(
                "Não há processo anterior para desfazer", error="sem_estagio_anterior"
            )

        anterior = _estagio_anterior(op, ultimo)
        if anterior is None:
            raise RegraNegocioError(
                "Não é possível desfazer: estágio anterior não encontrado",
                error="sem_estagio_anterior",
            )

        obter(Usuario, operador_id, "Operador")
        agora = utcnow()
        atual = producao_aberta_da_op(numero)
        if atual is not None:
            fechar_producao(atual, agora, operador_fim_id=operador_id)

        maquina = travar_maquina(ultimo.maquina_id)
        # reabre OP finalizada para aceitar o novo apontamento
        op.status = StatusOP.EM_ANDAMENTO
        novo = abrir_producao(maquina, op, anterior, operador_id, agora)
        commit_unidade("desfazer_op")
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"[OP] OP {numero} desfeita para {anterior.codigo} na máquina {maquina.codigo}")
    return novo


def cancelar_op(numero: int, *, motivo_cancelamento_id: UUID, usuario_id: UUID) -> OrdemProducao:
    try:
        op = obter(OrdemProducao, numero, "OP")
        if op.terminal:
            raise RegraNegocioError(
                f"OP {numero} já está {op.status}", error="op_encerrada"
            )
        if producao_aberta_da_op(numero) is not None:
            raise RegraNegocioError(
                f"OP {numero} possui produção em andamento; finalize antes de cancelar",
                error="op_em_producao",
            )
        motivo = obter(MotivoCancelamento, motivo_cancelamento_id, "Motivo de cancelamento")

        op.status = StatusOP.CANCELADA
        op.cod_motivo_cancelamento = motivo.codigo
        op.motivo_cancelamento = motivo.descricao
        op.data_cancelamento = utcnow()
        op.usuario_cancelamento_id = usuario_id
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise

    logger.info(f"[OP] OP {numero} cancelada (motivo {motivo.codigo})")
    return op
