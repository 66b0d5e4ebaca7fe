"""
Importação de OPs do Systêxtil.

Usado pela rota manual (/api/systextil/importar) e pelo cron
(/api/cron/importar-ops). Cada OP nova é gravada e comitada
individualmente; OPs já existentes são ignoradas.
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError

from apontador import db
from apontador.models_sqla import (
    COD_ESTAGIO_INICIAL,
    COD_MAQUINA_VAZIA,
    ESTAGIO_INICIAL,
    MAQUINA_VAZIA,
    OrdemProducao,
    Produto,
    StatusOP,
    utcnow,
)
from apontador.utils.systextil_client import SystextilClient

logger = logging.getLogger(__name__)

CAMPOS_TEXTO = (
    "deposito_final",
    "pecas_vinculadas",
    "obs",
    "um",
    "narrativa",
    "nivel",
    "grupo",
    "sub",
    "item",
)
CAMPOS_NUMERICOS = ("qtde_programado", "qtde_carregado", "calculo_quebra")


def _texto(valor) -> Optional[str]:
    if valor is None:
        return None
    valor = str(valor).strip()
    return valor or None


def _numero(valor) -> Optional[float]:
    if valor is None or valor == "":
        return None
    try:
        return float(valor)
    except (TypeError, ValueError):
        return None


def _numero_op(valor) -> Optional[int]:
    """Número da OP: inteiro positivo, sem truncar fração e sem aceitar booleano."""
    if isinstance(valor, bool):
        return None
    if isinstance(valor, float):
        valor = int(valor) if valor.is_integer() else None
    elif isinstance(valor, str):
        try:
            valor = int(valor.strip())
        except ValueError:
            return None
    if not isinstance(valor, int) or valor <= 0:
        return None
    return valor


def montar_op(item: Dict[str, Any], numero: int, produto_codigo: str) -> OrdemProducao:
    """Monta a OP a partir de um item da listagem (sem gravar)."""
    produto = Produto.query.filter_by(codigo=produto_codigo).first()
    op = OrdemProducao(
        op=numero,
        produto=produto_codigo,
        produto_id=produto.id if produto else None,
        qtde_produzida=_numero(item.get("qtde_produzida")) or 0.0,
        cod_estagio_atual=COD_ESTAGIO_INICIAL,
        estagio_atual=ESTAGIO_INICIAL,
        cod_maquina_atual=COD_MAQUINA_VAZIA,
        maquina_atual=MAQUINA_VAZIA,
        status=StatusOP.ABERTA,
        data_importacao=utcnow(),
    )
    for campo in CAMPOS_TEXTO:
        setattr(op, campo, _texto(item.get(campo)))
    for campo in CAMPOS_NUMERICOS:
        setattr(op, campo, _numero(item.get(campo)))
    return op


def importar_ops(client: SystextilClient) -> Dict[str, Any]:
    """
    Busca as OPs no Systêxtil e grava as que ainda não existem.

    Returns:
        {"sucesso": bool, "importadas": int, "ignoradas": int,
         "erros": [str], "detalhes": [{"op": ..., "resultado": ...}]}

    Raises:
        SystextilError: falha de token ou de listagem (lote abortado)
    """
    logger.info("[SYSTEXTIL] Iniciando importação de OPs")
    items = client.listar_ops()

    resultado = {
        "sucesso": True,
        "importadas": 0,
        "ignoradas": 0,
        "erros": [],
        "detalhes": [],
    }

    for item in items:
        if not isinstance(item, dict):
            msg = f"Item da listagem não é um objeto: {item!r}"
            logger.warning(f"[SYSTEXTIL] {msg}")
            resultado["erros"].append(msg)
            resultado["detalhes"].append({"op": None, "resultado": "erro"})
            continue

        numero_bruto = item.get("op")
        produto_codigo = _texto(item.get("produto"))
        numero = _numero_op(numero_bruto)

        if numero is None or not produto_codigo:
            msg = f"Item sem OP ou produto válido: op={numero_bruto!r} produto={item.get('produto')!r}"
            logger.warning(f"[SYSTEXTIL] {msg}")
            resultado["erros"].append(msg)
            resultado["detalhes"].append({"op": numero_bruto, "resultado": "erro"})
            continue

        if db.session.get(OrdemProducao, numero) is not None:
            resultado["ignoradas"] += 1
            resultado["detalhes"].append({"op": numero, "resultado": "ignorada"})
            continue

        try:
            db.session.add(montar_op(item, numero, produto_codigo))
            db.session.commit()
        except IntegrityError:
            # outra importação gravou a mesma OP entre a checagem e o commit
            db.session.rollback()
            logger.info(f"[SYSTEXTIL] OP {numero} gravada em paralelo; ignorada")
            resultado["ignoradas"] += 1
            resultado["detalhes"].append({"op": numero, "resultado": "ignorada"})
            continue
        except Exception as e:
            db.session.rollback()
            logger.exception(f"[SYSTEXTIL] Erro ao gravar OP {numero}: {e}")
            resultado["erros"].append(f"OP {numero}: {e}")
            resultado["detalhes"].append({"op": numero, "resultado": "erro"})
            continue

        resultado["importadas"] += 1
        resultado["detalhes"].append({"op": numero, "resultado": "importada"})

    logger.info(
        f"[SYSTEXTIL] Importação concluída: {resultado['importadas']} importadas, "
        f"{resultado['ignoradas']} ignoradas, {len(resultado['erros'])} erros"
    )
    return resultado
