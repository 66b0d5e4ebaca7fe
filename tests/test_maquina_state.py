"""Testes da máquina de estados de status das máquinas."""

from types import SimpleNamespace

import pytest

from apontador.services.erros import RegraNegocioError
from apontador.services.maquina_state import (
    EventoMaquina,
    StatusMaquina,
    TransicaoInvalida,
    aplicar_evento,
    proximo_status,
)


@pytest.mark.parametrize(
    "atual, evento, esperado",
    [
        ("DISPONIVEL", EventoMaquina.INICIAR_PRODUCAO, StatusMaquina.EM_PROCESSO),
        ("EM_PROCESSO", EventoMaquina.INICIAR_PARADA, StatusMaquina.PARADA),
        ("DISPONIVEL", EventoMaquina.INICIAR_PARADA, StatusMaquina.PARADA),
        ("PARADA", EventoMaquina.FINALIZAR_PARADA_COM_OP, StatusMaquina.EM_PROCESSO),
        ("PARADA", EventoMaquina.FINALIZAR_PARADA_SEM_OP, StatusMaquina.DISPONIVEL),
        ("EM_PROCESSO", EventoMaquina.FINALIZAR_PRODUCAO, StatusMaquina.DISPONIVEL),
    ],
)
def test_transicoes_validas(atual, evento, esperado):
    """Garante cada aresta da tabela de transições."""
    assert proximo_status(atual, evento) is esperado


@pytest.mark.parametrize(
    "atual, evento",
    [
        ("PARADA", EventoMaquina.INICIAR_PRODUCAO),
        ("PARADA", EventoMaquina.INICIAR_PARADA),
        ("EM_PROCESSO", EventoMaquina.INICIAR_PRODUCAO),
        ("DISPONIVEL", EventoMaquina.FINALIZAR_PRODUCAO),
        ("DISPONIVEL", EventoMaquina.FINALIZAR_PARADA_SEM_OP),
    ],
)
def test_transicoes_invalidas(atual, evento):
    """Garante que eventos fora da tabela levantem TransicaoInvalida (400)."""
    with pytest.raises(TransicaoInvalida) as exc:
        proximo_status(atual, evento)
    assert isinstance(exc.value, RegraNegocioError)
    assert exc.value.error == "transicao_invalida"


def test_status_desconhecido_e_invalido():
    with pytest.raises(TransicaoInvalida):
        proximo_status("MANUTENCAO", EventoMaquina.INICIAR_PRODUCAO)


def test_aplicar_evento_grava_status_texto():
    """Garante que o status gravado seja o texto do enum e que falha não altere a máquina."""
    maquina = SimpleNamespace(codigo="M01", status="DISPONIVEL")

    aplicar_evento(maquina, EventoMaquina.INICIAR_PRODUCAO)
    assert maquina.status == "EM_PROCESSO"

    with pytest.raises(TransicaoInvalida):
        aplicar_evento(maquina, EventoMaquina.FINALIZAR_PARADA_COM_OP)
    assert maquina.status == "EM_PROCESSO"
