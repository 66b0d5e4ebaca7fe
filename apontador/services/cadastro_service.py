"""
Operações comuns dos cadastros (áreas, setores, máquinas, estágios,
motivos, produtos, usuários).

Duplicidade de campo único e exclusão de registro ainda referenciado
viram RegraNegocioError (400) em vez de erro de banco.
"""

import logging
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError

from apontador import db
from apontador.services.erros import RegistroNaoEncontrado, RegraNegocioError

logger = logging.getLogger(__name__)


def obter_ou_404(modelo, ident, nome: str):
    obj = db.session.get(modelo, ident)
    if obj is None:
        raise RegistroNaoEncontrado(nome, ident)
    return obj


def checar_unicos(modelo, dados: dict, campos: Iterable[str], *, ignorar_id=None) -> None:
    for campo in campos:
        valor = dados.get(campo)
        if valor is None:
            continue
        q = modelo.query.filter(getattr(modelo, campo) == valor)
        if ignorar_id is not None:
            q = q.filter(modelo.id != ignorar_id)
        if q.first() is not None:
            raise RegraNegocioError(
                f"Já existe {modelo.__name__} com {campo} '{valor}'", error="duplicado"
            )


def _commit(contexto: str, erro: str, mensagem: str) -> None:
    try:
        db.session.commit()
    except IntegrityError as e:
        db.session.rollback()
        logger.warning(f"[CADASTRO] {contexto}: {e.orig}")
        raise RegraNegocioError(mensagem, error=erro)
    except Exception:
        db.session.rollback()
        raise


def criar_instancia(obj):
    db.session.add(obj)
    _commit(f"criar {type(obj).__name__}", "duplicado", "Registro duplicado")
    logger.info(f"[CADASTRO] {type(obj).__name__} criado: {obj.id}")
    return obj


def criar(modelo, dados: dict, *, unicos: Iterable[str] = ()):
    checar_unicos(modelo, dados, unicos)
    return criar_instancia(modelo(**dados))


def atualizar(obj, dados: dict, *, unicos: Iterable[str] = ()):
    checar_unicos(type(obj), dados, unicos, ignorar_id=obj.id)
    for campo, valor in dados.items():
        setattr(obj, campo, valor)
    _commit(f"atualizar {type(obj).__name__}", "duplicado", "Registro duplicado")
    return obj


def excluir(obj, nome: Optional[str] = None) -> None:
    db.session.delete(obj)
    _commit(
        f"excluir {type(obj).__name__}",
        "registro_em_uso",
        f"{nome or type(obj).__name__} está em uso e não pode ser excluído(a); inative-o(a)",
    )
    logger.info(f"[CADASTRO] {type(obj).__name__} excluído: {obj.id}")


def filtro_ativo(q, modelo, ativo: Optional[str]):
    """Aplica ?ativo=true|false quando informado."""
    if ativo is None or ativo == "":
        return q
    return q.filter(modelo.ativo.is_(ativo.lower() in ("1", "true", "sim")))
