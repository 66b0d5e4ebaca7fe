"""
Máquina de estados do status das máquinas.

Único ponto do sistema que escreve ``Maquina.status``. Os serviços de
apontamento chamam ``aplicar_evento`` dentro da mesma transação em que
gravam o registro de produção/parada.

    DISPONIVEL  --INICIAR_PRODUCAO-------->  EM_PROCESSO
    EM_PROCESSO --INICIAR_PARADA---------->  PARADA
    DISPONIVEL  --INICIAR_PARADA---------->  PARADA
    PARADA      --FINALIZAR_PARADA_COM_OP->  EM_PROCESSO
    PARADA      --FINALIZAR_PARADA_SEM_OP->  DISPONIVEL
    EM_PROCESSO --FINALIZAR_PRODUCAO------>  DISPONIVEL
"""

import logging
from enum import Enum

from apontador.services.erros import RegraNegocioError

logger = logging.getLogger(__name__)


class StatusMaquina(str, Enum):
    DISPONIVEL = "DISPONIVEL"
    EM_PROCESSO = "EM_PROCESSO"
    PARADA = "PARADA"


class EventoMaquina(str, Enum):
    INICIAR_PRODUCAO = "INICIAR_PRODUCAO"
    INICIAR_PARADA = "INICIAR_PARADA"
    FINALIZAR_PARADA_COM_OP = "FINALIZAR_PARADA_COM_OP"
    FINALIZAR_PARADA_SEM_OP = "FINALIZAR_PARADA_SEM_OP"
    FINALIZAR_PRODUCAO = "FINALIZAR_PRODUCAO"


TRANSICOES = {
    (StatusMaquina.DISPONIVEL, EventoMaquina.INICIAR_PRODUCAO): StatusMaquina.EM_PROCESSO,
    (StatusMaquina.EM_PROCESSO, EventoMaquina.INICIAR_PARADA): StatusMaquina.PARADA,
    (StatusMaquina.DISPONIVEL, EventoMaquina.INICIAR_PARADA): StatusMaquina.PARADA,
    (StatusMaquina.PARADA, EventoMaquina.FINALIZAR_PARADA_COM_OP): StatusMaquina.EM_PROCESSO,
    (StatusMaquina.PARADA, EventoMaquina.FINALIZAR_PARADA_SEM_OP): StatusMaquina.DISPONIVEL,
    (StatusMaquina.EM_PROCESSO, EventoMaquina.FINALIZAR_PRODUCAO): StatusMaquina.DISPONIVEL,
}


class TransicaoInvalida(RegraNegocioError):
    def __init__(self, status_atual: str, evento: EventoMaquina):
        super().__init__(
            f"Máquina em {status_atual} não aceita o evento {evento.value}",
            error="transicao_invalida",
        )
        self.status_atual = status_atual
        self.evento = evento


def proximo_status(status_atual: str, evento: EventoMaquina) -> StatusMaquina:
    """Retorna o status resultante ou levanta TransicaoInvalida."""
    try:
        atual = StatusMaquina(status_atual)
    except ValueError:
        raise TransicaoInvalida(status_atual, evento)
    destino = TRANSICOES.get((atual, evento))
    if destino is None:
        raise TransicaoInvalida(atual.value, evento)
    return destino


def aplicar_evento(maquina, evento: EventoMaquina) -> StatusMaquina:
    """Aplica o evento na máquina (sem commit; quem chama controla a transação)."""
    destino = proximo_status(maquina.status, evento)
    logger.info(
        f"[MAQUINA] {maquina.codigo}: {maquina.status} --{evento.value}--> {destino.value}"
    )
    maquina.status = destino.value
    return destino
