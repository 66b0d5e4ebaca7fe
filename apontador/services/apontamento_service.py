# -*- coding: utf-8 -*-
"""
apontador/services/apontamento_service.py

Regras de apontamento de produção e de parada de máquina.
Cada função pública é uma unidade de trabalho: trava a máquina, grava o
registro, aplica a transição de status e faz um único commit (rollback em
qualquer falha).

Funções públicas:
- iniciar_producao(...)              → abre PRODUCAO, máquina → EM_PROCESSO, OP → EM_ANDAMENTO.
- iniciar_parada(...)                → abre PARADA direto na máquina (DISPONIVEL ou EM_PROCESSO).
- iniciar_parada_da_producao(...)    → abre PARADA a partir de uma produção em andamento.
- finalizar_parada(...)              → fecha PARADA; máquina volta a EM_PROCESSO (com OP) ou DISPONIVEL.
- finalizar_producao(...)            → fecha PRODUCAO, avança a OP de estágio, máquina → DISPONIVEL.
- listar_apontamentos(...), atualizar_apontamento(...), excluir_apontamento(...)
"""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from apontador import db
from apontador.models_sqla import (
    COD_ESTAGIO_FINALIZADA,
    COD_MAQUINA_VAZIA,
    ESTAGIO_FINALIZADA,
    MAQUINA_VAZIA,
    Apontamento,
    Estagio,
    Maquina,
    MotivoParada,
    OrdemProducao,
    StatusApontamento,
    StatusOP,
    TipoApontamento,
    Usuario,
    utcnow,
)
from apontador.services.erros import RegistroNaoEncontrado, RegraNegocioError
from apontador.services.maquina_state import EventoMaquina, aplicar_evento

logger = logging.getLogger(__name__)


# ============================================================
# Helpers
# ============================================================
def normalizar_data(valor: Optional[datetime]) -> Optional[datetime]:
    """Converte datas com fuso para UTC sem tzinfo (formato gravado no banco)."""
    if valor is None:
        return None
    if valor.tzinfo is not None:
        valor = valor.astimezone(timezone.utc).replace(tzinfo=None)
    return valor


def obter(modelo, ident, nome: str):
    obj = db.session.get(modelo, ident) if ident is not None else None
    if obj is None:
        raise RegistroNaoEncontrado(nome, ident)
    return obj


def travar_maquina(maquina_id: UUID) -> Maquina:
    # SELECT ... FOR UPDATE (ignorado no SQLite)
    maquina = db.session.get(Maquina, maquina_id, with_for_update=True)
    if maquina is None:
        raise RegistroNaoEncontrado("Máquina", maquina_id)
    return maquina


def producao_aberta_da_op(op_id: int) -> Optional[Apontamento]:
    return Apontamento.query.filter_by(
        op_id=op_id, tipo=TipoApontamento.PRODUCAO, data_fim=None
    ).first()


def aberto_da_maquina(maquina_id: UUID, tipo: str) -> Optional[Apontamento]:
    return Apontamento.query.filter_by(
        maquina_id=maquina_id, tipo=tipo, data_fim=None
    ).first()


def abertos_da_maquina(maquina_id: UUID) -> List[Apontamento]:
    return (
        Apontamento.query.filter_by(maquina_id=maquina_id, data_fim=None)
        .order_by(Apontamento.data_inicio)
        .all()
    )


def commit_unidade(contexto: str) -> None:
    """Commit da unidade de trabalho; violação do índice parcial vira 400."""
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        logger.warning(f"[APONTAMENTO] {contexto}: violação de integridade -> {e.orig}")
        raise RegraNegocioError(
            "Já existe um apontamento aberto do mesmo tipo para esta máquina ou OP",
            error="apontamento_aberto_existente",
        )


def abrir_producao(
    maquina: Maquina,
    op: OrdemProducao,
    estagio: Estagio,
    operador_id: UUID,
    agora: datetime,
    *,
    is_reprocesso: bool = False,
    observacoes: Optional[str] = None,
) -> Apontamento:
    """Abre o registro de produção e posiciona a OP (sem commit)."""
    if op.terminal:
        raise RegraNegocioError(
            f"OP {op.op} está {op.status} e não aceita novos apontamentos",
            error="op_encerrada",
        )
    if producao_aberta_da_op(op.op) is not None:
        raise RegraNegocioError(
            f"OP {op.op} já possui produção em andamento", error="op_em_producao"
        )
    if not maquina.ativo:
        raise RegraNegocioError(f"Máquina {maquina.codigo} está inativa", error="maquina_inativa")

    aplicar_evento(maquina, EventoMaquina.INICIAR_PRODUCAO)

    apontamento = Apontamento(
        tipo=TipoApontamento.PRODUCAO,
        status=StatusApontamento.EM_ANDAMENTO,
        maquina_id=maquina.id,
        op_id=op.op,
        estagio_id=estagio.id,
        operador_inicio_id=operador_id,
        data_inicio=agora,
        data_fim=None,
        quantidade_programada=op.qtde_programado,
        is_reprocesso=bool(is_reprocesso),
        observacoes=observacoes,
    )
    db.session.add(apontamento)

    op.status = StatusOP.EM_ANDAMENTO
    op.cod_estagio_atual = estagio.codigo
    op.estagio_atual = estagio.nome
    op.cod_maquina_atual = maquina.codigo
    op.maquina_atual = maquina.nome
    op.data_ultimo_apontamento = agora
    return apontamento


def fechar_producao(
    apontamento: Apontamento,
    agora: datetime,
    *,
    quantidade_processada: Optional[float] = None,
    operador_fim_id: Optional[UUID] = None,
    observacoes: Optional[str] = None,
) -> Maquina:
    """Fecha a produção e libera a máquina (sem commit). Retorna a máquina."""
    maquina = travar_maquina(apontamento.maquina_id)
    if aberto_da_maquina(maquina.id, TipoApontamento.PARADA) is not None:
        raise RegraNegocioError(
            f"Máquina {maquina.codigo} está parada; finalize a parada antes",
            error="parada_em_aberto",
        )

    apontamento.data_fim = agora
    apontamento.status = StatusApontamento.CONCLUIDO
    apontamento.operador_fim_id = operador_fim_id
    if quantidade_processada is not None:
        apontamento.quantidade_processada = quantidade_processada
    if observacoes:
        apontamento.observacoes = observacoes

    aplicar_evento(maquina, EventoMaquina.FINALIZAR_PRODUCAO)
    return maquina


def proximo_estagio(estagio: Optional[Estagio]) -> Optional[Estagio]:
    """Próximo estágio ativo pela ordem; None quando ``estagio`` é o último."""
    q = Estagio.query.filter(Estagio.ativo.is_(True))
    if estagio is not None:
        q = q.filter(Estagio.ordem > estagio.ordem)
    return q.order_by(Estagio.ordem).first()


# ============================================================
# Produção
# ============================================================
def iniciar_producao(
    *,
    maquina_id: UUID,
    op_id: int,
    estagio_id: UUID,
    operador_id: UUID,
    is_reprocesso: bool = False,
    observacoes: Optional[str] = None,
) -> Apontamento:
    try:
        maquina = travar_maquina(maquina_id)
        op = obter(OrdemProducao, op_id, "OP")
        estagio = obter(Estagio, estagio_id, "Estágio")
        obter(Usuario, operador_id, "Operador")

        apontamento = abrir_producao(
            maquina,
            op,
            estagio,
            operador_id,
            utcnow(),
            is_reprocesso=is_reprocesso,
            observacoes=observacoes,
        )
        commit_unidade("iniciar_producao")
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        f"[APONTAMENTO] Produção iniciada: OP {op_id} na máquina {maquina.codigo} "
        f"(estágio {estagio.codigo})"
    )
    return apontamento


def finalizar_producao(
    apontamento_id: UUID,
    *,
    quantidade_processada: float,
    operador_id: UUID,
    observacoes: Optional[str] = None,
) -> Apontamento:
    """
    Fecha a produção e avança a OP.

    - Existe próximo estágio ativo: OP vai para ele (EM_ANDAMENTO), sem máquina.
    - Estágio atual é o último: OP FINALIZADA (estágio 99).
    """
    try:
        apontamento = obter(Apontamento, apontamento_id, "Apontamento")
        if apontamento.tipo != TipoApontamento.PRODUCAO:
            raise RegraNegocioError("Apontamento não é de produção", error="tipo_invalido")
        if not apontamento.aberto:
            raise RegraNegocioError(
                "Produção já finalizada", error="producao_ja_finalizada"
            )

        agora = utcnow()
        fechar_producao(
            apontamento,
            agora,
            quantidade_processada=quantidade_processada,
            operador_fim_id=operador_id,
            observacoes=observacoes,
        )

        op = obter(OrdemProducao, apontamento.op_id, "OP")
        op.qtde_produzida = quantidade_processada
        op.data_ultimo_apontamento = agora
        op.cod_maquina_atual = COD_MAQUINA_VAZIA
        op.maquina_atual = MAQUINA_VAZIA

        estagio_atual = apontamento.estagio or Estagio.query.filter_by(
            codigo=op.cod_estagio_atual
        ).first()
        proximo = proximo_estagio(estagio_atual)
        if proximo is not None:
            op.status = StatusOP.EM_ANDAMENTO
            op.cod_estagio_atual = proximo.codigo
            op.estagio_atual = proximo.nome
        else:
            op.status = StatusOP.FINALIZADA
            op.cod_estagio_atual = COD_ESTAGIO_FINALIZADA
            op.estagio_atual = ESTAGIO_FINALIZADA

        commit_unidade("finalizar_producao")
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        f"[APONTAMENTO] Produção finalizada: OP {op.op} -> {op.cod_estagio_atual} "
        f"({op.status}), quantidade={quantidade_processada}"
    )
    return apontamento


# ============================================================
# Paradas
# ============================================================
def _abrir_parada(
    maquina: Maquina,
    *,
    motivo_parada_id: UUID,
    operador_id: UUID,
    op_id: Optional[int],
    producao: Optional[Apontamento],
    data_inicio: datetime,
    observacoes: Optional[str],
) -> Apontamento:
    obter(MotivoParada, motivo_parada_id, "Motivo de parada")
    obter(Usuario, operador_id, "Operador")
    if op_id is not None:
        obter(OrdemProducao, op_id, "OP")
    if aberto_da_maquina(maquina.id, TipoApontamento.PARADA) is not None:
        raise RegraNegocioError(
            f"Máquina {maquina.codigo} já possui parada em aberto",
            error="parada_em_aberto",
        )

    aplicar_evento(maquina, EventoMaquina.INICIAR_PARADA)

    parada = Apontamento(
        tipo=TipoApontamento.PARADA,
        status=StatusApontamento.EM_ANDAMENTO,
        maquina_id=maquina.id,
        op_id=op_id,
        estagio_id=producao.estagio_id if producao else None,
        operador_inicio_id=operador_id,
        motivo_parada_id=motivo_parada_id,
        producao_id=producao.id if producao else None,
        data_inicio=data_inicio,
        data_fim=None,
        observacoes=observacoes,
    )
    db.session.add(parada)
    return parada


def iniciar_parada(
    *,
    maquina_id: UUID,
    motivo_parada_id: UUID,
    operador_id: UUID,
    op_id: Optional[int] = None,
    data_inicio: Optional[datetime] = None,
    observacoes: Optional[str] = None,
) -> Apontamento:
    """
    Parada lançada direto na máquina.

    Se a máquina tiver produção aberta, a parada fica vinculada a ela
    (``producao_id``) e herda a OP quando ``op_id`` não é informado.
    Sem produção aberta, a parada não aceita OP: a máquina voltaria para
    EM_PROCESSO sem nenhuma produção em andamento.
    """
    try:
        inicio = normalizar_data(data_inicio) or utcnow()
        if inicio > utcnow():
            raise RegraNegocioError(
                "Data de início da parada está no futuro", error="data_inicio_invalida"
            )

        maquina = travar_maquina(maquina_id)
        producao = aberto_da_maquina(maquina.id, TipoApontamento.PRODUCAO)
        if producao is None and op_id is not None:
            raise RegraNegocioError(
                f"OP {op_id} informada, mas a máquina {maquina.codigo} não tem produção em andamento",
                error="op_sem_producao",
            )
        if op_id is None and producao is not None:
            op_id = producao.op_id

        parada = _abrir_parada(
            maquina,
            motivo_parada_id=motivo_parada_id,
            operador_id=operador_id,
            op_id=op_id,
            producao=producao,
            data_inicio=inicio,
            observacoes=observacoes,
        )
        commit_unidade("iniciar_parada")
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        f"[APONTAMENTO] Parada iniciada na máquina {maquina.codigo} (OP {op_id or '-'})"
    )
    return parada


def iniciar_parada_da_producao(
    producao_id: UUID,
    *,
    motivo_parada_id: UUID,
    operador_id: UUID,
    op_id: Optional[int] = None,
    observacoes: Optional[str] = None,
) -> Apontamento:
    """Parada a partir da tela da produção: a produção continua aberta."""
    try:
        producao = obter(Apontamento, producao_id, "Apontamento")
        if producao.tipo != TipoApontamento.PRODUCAO:
            raise RegraNegocioError("Apontamento não é de produção", error="tipo_invalido")
        if not producao.aberto:
            raise RegraNegocioError(
                "Produção não está em andamento", error="producao_ja_finalizada"
            )

        maquina = travar_maquina(producao.maquina_id)
        parada = _abrir_parada(
            maquina,
            motivo_parada_id=motivo_parada_id,
            operador_id=operador_id,
            op_id=op_id if op_id is not None else producao.op_id,
            producao=producao,
            data_inicio=utcnow(),
            observacoes=observacoes,
        )
        commit_unidade("iniciar_parada_da_producao")
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        f"[APONTAMENTO] Parada iniciada na produção {producao.id} (máquina {maquina.codigo})"
    )
    return parada


def finalizar_parada(
    parada_id: UUID,
    *,
    operador_id: UUID,
    data_fim: Optional[datetime] = None,
    observacoes: Optional[str] = None,
) -> Apontamento:
    """Fecha a parada. Com OP vinculada a máquina volta a EM_PROCESSO, senão DISPONIVEL."""
    try:
        parada = obter(Apontamento, parada_id, "Parada")
        if parada.tipo != TipoApontamento.PARADA:
            raise RegraNegocioError("Apontamento não é uma parada", error="tipo_invalido")
        if not parada.aberto:
            raise RegraNegocioError("Parada já finalizada", error="parada_ja_finalizada")

        fim = normalizar_data(data_fim) or utcnow()
        if fim < parada.data_inicio:
            raise RegraNegocioError(
                "Data de fim anterior à data de início da parada",
                error="data_fim_invalida",
            )

        maquina = travar_maquina(parada.maquina_id)
        evento = (
            EventoMaquina.FINALIZAR_PARADA_COM_OP
            if parada.op_id is not None
            else EventoMaquina.FINALIZAR_PARADA_SEM_OP
        )
        aplicar_evento(maquina, evento)

        parada.data_fim = fim
        parada.status = StatusApontamento.CONCLUIDO
        parada.operador_fim_id = operador_id
        if observacoes:
            parada.observacoes = observacoes

        commit_unidade("finalizar_parada")
    except Exception:
        db.session.rollback()
        raise

    logger.info(
        f"[APONTAMENTO] Parada finalizada na máquina {maquina.codigo} -> {maquina.status} "
        f"({parada.duracao_minutos():.1f} min)"
    )
    return parada


# ============================================================
# Consulta / manutenção (ADM)
# ============================================================
def listar_apontamentos(
    *,
    tipo: Optional[str] = None,
    ativas: bool = False,
    maquina_id: Optional[UUID] = None,
    op_id: Optional[int] = None,
    limite: int = 500,
) -> List[Apontamento]:
    q = Apontamento.query
    if tipo:
        q = q.filter(Apontamento.tipo == tipo)
    if ativas:
        q = q.filter(Apontamento.data_fim.is_(None))
    if maquina_id:
        q = q.filter(Apontamento.maquina_id == maquina_id)
    if op_id:
        q = q.filter(Apontamento.op_id == op_id)
    return q.order_by(Apontamento.data_inicio.desc()).limit(limite).all()


def atualizar_apontamento(apontamento_id: UUID, dados: dict) -> Apontamento:
    """Correção manual de quantidades/observações (não mexe em status nem datas)."""
    try:
        apontamento = obter(Apontamento, apontamento_id, "Apontamento")
        for campo, valor in dados.items():
            setattr(apontamento, campo, valor)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    return apontamento


def excluir_apontamento(apontamento_id: UUID) -> None:
    """Exclui um apontamento já encerrado. Registros abertos devem ser finalizados antes."""
    try:
        apontamento = obter(Apontamento, apontamento_id, "Apontamento")
        if apontamento.aberto:
            raise RegraNegocioError(
                "Apontamento em andamento não pode ser excluído; finalize-o antes",
                error="apontamento_aberto",
            )
        Apontamento.query.filter_by(producao_id=apontamento.id).update(
            {"producao_id": None}
        )
        db.session.delete(apontamento)
        db.session.commit()
    except Exception:
        db.session.rollback()
        raise
    logger.info(f"[APONTAMENTO] Apontamento {apontamento_id} excluído")
