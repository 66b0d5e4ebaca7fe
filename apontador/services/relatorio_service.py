"""
Relatórios gerenciais (produção, paradas, operadores, máquinas).

As agregações são feitas em pandas sobre os apontamentos concluídos do
período, o que mantém o mesmo resultado em PostgreSQL e SQLite.
"""

import logging
from datetime import datetime, time
from io import BytesIO
from typing import Dict, List, Optional, Tuple

import pandas as pd

from apontador.models_sqla import Apontamento, StatusApontamento, TipoApontamento
from apontador.services.erros import RegraNegocioError

logger = logging.getLogger(__name__)

TIPOS_RELATORIO = ("producao", "paradas", "operadores", "maquinas")

ABAS_EXCEL = {
    "producao": "Produção",
    "paradas": "Paradas",
    "operadores": "Operadores",
    "maquinas": "Máquinas",
}


def _parse_data(valor: Optional[str], *, fim_do_dia: bool) -> datetime:
    try:
        data = datetime.fromisoformat(valor.strip())
    except (AttributeError, ValueError):
        raise RegraNegocioError(
            f"Data inválida: {valor!r} (use AAAA-MM-DD)", error="periodo_invalido"
        )
    # só a data: fim considera o dia inteiro
    if fim_do_dia and len(valor.strip()) == 10:
        data = datetime.combine(data.date(), time.max)
    return data


def periodo(inicio: Optional[str], fim: Optional[str]) -> Tuple[datetime, datetime]:
    if not inicio or not fim:
        raise RegraNegocioError("Período não informado (inicio e fim)", error="periodo_invalido")
    data_inicio = _parse_data(inicio, fim_do_dia=False)
    data_fim = _parse_data(fim, fim_do_dia=True)
    if data_fim < data_inicio:
        raise RegraNegocioError("Fim do período anterior ao início", error="periodo_invalido")
    return data_inicio, data_fim


def _concluidos(inicio: datetime, fim: datetime, tipo: Optional[str] = None) -> List[Apontamento]:
    q = Apontamento.query.filter(
        Apontamento.status == StatusApontamento.CONCLUIDO,
        Apontamento.data_fim >= inicio,
        Apontamento.data_fim <= fim,
    )
    if tipo:
        q = q.filter(Apontamento.tipo == tipo)
    return q.order_by(Apontamento.data_fim).all()


def _operador(a: Apontamento):
    return a.operador_fim or a.operador_inicio


def _registros(df: pd.DataFrame) -> List[Dict]:
    if df.empty:
        return []
    df = df.round(2).astype(object)
    return df.where(pd.notna(df), None).to_dict(orient="records")


# ============================================================
# Relatórios
# ============================================================
def relatorio_producao(inicio: datetime, fim: datetime) -> pd.DataFrame:
    linhas = []
    for a in _concluidos(inicio, fim, TipoApontamento.PRODUCAO):
        operador = _operador(a)
        linhas.append(
            {
                "data": a.data_fim.date().isoformat(),
                "op": a.op_id,
                "produto": a.op.produto if a.op else None,
                "estagio": a.estagio.nome if a.estagio else None,
                "maquina": a.maquina.nome if a.maquina else None,
                "operador": operador.nome if operador else None,
                "quantidade": a.quantidade_processada,
                "minutos": a.duracao_minutos(),
                "reprocesso": bool(a.is_reprocesso),
            }
        )
    return pd.DataFrame(linhas)


def relatorio_paradas(inicio: datetime, fim: datetime) -> pd.DataFrame:
    linhas = [
        {
            "motivo": a.motivo_parada.descricao if a.motivo_parada else "Sem motivo",
            "minutos": a.duracao_minutos(),
        }
        for a in _concluidos(inicio, fim, TipoApontamento.PARADA)
        if a.data_inicio >= inicio
    ]
    if not linhas:
        return pd.DataFrame(columns=["motivo", "quantidade", "minutos"])
    df = pd.DataFrame(linhas)
    return (
        df.groupby("motivo", as_index=False)
        .agg(quantidade=("minutos", "size"), minutos=("minutos", "sum"))
        .sort_values("minutos", ascending=False)
    )


def relatorio_operadores(inicio: datetime, fim: datetime) -> pd.DataFrame:
    linhas = []
    for a in _concluidos(inicio, fim, TipoApontamento.PRODUCAO):
        operador = _operador(a)
        programado = a.quantidade_programada or (a.op.qtde_programado if a.op else None)
        eficiencia = None
        if programado and a.quantidade_processada is not None:
            eficiencia = a.quantidade_processada / programado * 100
        linhas.append(
            {
                "nome": operador.nome if operador else None,
                "matricula": operador.matricula if operador else None,
                "quantidade": a.quantidade_processada or 0.0,
                "minutos": a.duracao_minutos(),
                "eficiencia": eficiencia,
            }
        )
    if not linhas:
        return pd.DataFrame(
            columns=["nome", "matricula", "total_quantidade", "tempo_total", "eficiencia"]
        )
    df = pd.DataFrame(linhas)
    return (
        df.groupby(["nome", "matricula"], as_index=False, dropna=False)
        .agg(
            total_quantidade=("quantidade", "sum"),
            tempo_total=("minutos", "sum"),
            eficiencia=("eficiencia", "mean"),
        )
        .sort_values("total_quantidade", ascending=False)
    )


def relatorio_maquinas(inicio: datetime, fim: datetime) -> pd.DataFrame:
    linhas = []
    for a in _concluidos(inicio, fim):
        producao = a.tipo == TipoApontamento.PRODUCAO
        minutos = a.duracao_minutos()
        linhas.append(
            {
                "nome": a.maquina.nome if a.maquina else None,
                "codigo": a.maquina.codigo if a.maquina else None,
                "quantidade": (a.quantidade_processada or 0.0) if producao else 0.0,
                "min_producao": minutos if producao else 0.0,
                "min_parada": 0.0 if producao else minutos,
            }
        )
    colunas = [
        "nome",
        "codigo",
        "total_quantidade",
        "tempo_producao",
        "tempo_parada",
        "disponibilidade",
    ]
    if not linhas:
        return pd.DataFrame(columns=colunas)
    df = (
        pd.DataFrame(linhas)
        .groupby(["nome", "codigo"], as_index=False, dropna=False)
        .agg(
            total_quantidade=("quantidade", "sum"),
            tempo_producao=("min_producao", "sum"),
            tempo_parada=("min_parada", "sum"),
        )
    )
    total = df["tempo_producao"] + df["tempo_parada"]
    df["disponibilidade"] = (100 * (1 - df["tempo_parada"] / total)).where(total > 0)
    return df[colunas].sort_values("codigo")


GERADORES = {
    "producao": relatorio_producao,
    "paradas": relatorio_paradas,
    "operadores": relatorio_operadores,
    "maquinas": relatorio_maquinas,
}


def _gerar_df(tipo: str, inicio: str, fim: str) -> pd.DataFrame:
    if tipo not in GERADORES:
        raise RegraNegocioError(
            f"Tipo de relatório inválido: {tipo!r} (use {', '.join(TIPOS_RELATORIO)})",
            error="tipo_invalido",
        )
    data_inicio, data_fim = periodo(inicio, fim)
    return GERADORES[tipo](data_inicio, data_fim)


def gerar_relatorio(tipo: str, inicio: str, fim: str) -> List[Dict]:
    return _registros(_gerar_df(tipo, inicio, fim))


def exportar_relatorio_excel(tipo: str, inicio: str, fim: str) -> bytes:
    """
    Exporta o relatório para Excel.

    Returns:
        Bytes do arquivo .xlsx
    """
    df = _gerar_df(tipo, inicio, fim)
    output = BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.round(2).to_excel(writer, sheet_name=ABAS_EXCEL[tipo], index=False)
    output.seek(0)
    logger.info(f"[RELATORIO] Exportado {tipo} ({len(df)} linhas) {inicio}..{fim}")
    return output.getvalue()
