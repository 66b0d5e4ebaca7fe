import logging

from apontador import db
from apontador.models_sqla import (
    Apontamento,
    Maquina,
    NivelUsuario,
    OrdemProducao,
    StatusOP,
    TipoApontamento,
    Usuario,
)

logger = logging.getLogger(__name__)


def resumo_dashboard() -> dict:
    """Contadores do painel ADM."""
    maquinas_por_status = dict(
        db.session.query(Maquina.status, db.func.count(Maquina.id))
        .filter(Maquina.ativo.is_(True))
        .group_by(Maquina.status)
        .all()
    )
    abertos = Apontamento.query.filter(Apontamento.data_fim.is_(None))

    return {
        "total_maquinas": Maquina.query.count(),
        "total_operadores": Usuario.query.filter_by(nivel=NivelUsuario.OPERADOR).count(),
        "ops_abertas": OrdemProducao.query.filter_by(status=StatusOP.ABERTA).count(),
        "ops_em_andamento": OrdemProducao.query.filter_by(
            status=StatusOP.EM_ANDAMENTO
        ).count(),
        "apontamentos_em_andamento": abertos.count(),
        "producoes_em_andamento": abertos.filter(
            Apontamento.tipo == TipoApontamento.PRODUCAO
        ).count(),
        "paradas_em_andamento": abertos.filter(
            Apontamento.tipo == TipoApontamento.PARADA
        ).count(),
        "maquinas_por_status": maquinas_por_status,
    }
