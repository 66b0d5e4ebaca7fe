"""
Utilitários para integração com o Systêxtil (ERP).
Implementa o token OAuth (client credentials) e a listagem de OPs.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

import requests
from flask import Flask, current_app

logger = logging.getLogger(__name__)

# Margem de segurança antes da expiração real do token
TOKEN_SKEW_SEGUNDOS = 60


class SystextilError(Exception):
    """Falha de comunicação ou de autenticação com o Systêxtil."""


class SystextilTokenProvider:
    """
    Guarda o access token e sua validade.

    Um provider por aplicação (ver init_systextil); o token é reaproveitado
    até ``expires_in - 60s`` e renovado sob demanda.
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        token_url: str,
        *,
        timeout: int = 30,
        relogio: Callable[[], float] = time.time,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_url = token_url
        self.timeout = timeout
        self._relogio = relogio
        self._token: Optional[str] = None
        self._expira_em: float = 0.0

    @property
    def configurado(self) -> bool:
        return bool(self.client_id and self.client_secret and self.token_url)

    def invalidar(self) -> None:
        self._token = None
        self._expira_em = 0.0

    def obter_token(self) -> str:
        """
        Retorna um token válido, buscando um novo se necessário.

        Raises:
            SystextilError: credenciais ausentes ou falha no endpoint de token
        """
        if self._token and self._relogio() < self._expira_em:
            return self._token

        if not self.configurado:
            raise SystextilError(
                "Credenciais Systêxtil não configuradas "
                "(SYSTEXTIL_CLIENT_ID/SYSTEXTIL_CLIENT_SECRET/SYSTEXTIL_TOKEN_URL)"
            )

        try:
            response = requests.post(
                self.token_url,
                auth=(self.client_id, self.client_secret),
                data={"grant_type": "client_credentials"},
                headers={"Content-Type": "application/x-www-form-urlencoded"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"[SYSTEXTIL] Erro ao obter token: {e}")
            raise SystextilError(f"Falha ao obter token do Systêxtil: {e}")
        except ValueError as e:
            logger.error(f"[SYSTEXTIL] Resposta de token inválida: {e}")
            raise SystextilError("Resposta de token do Systêxtil não é JSON válido")

        token = data.get("access_token")
        if not token:
            raise SystextilError("Resposta de token do Systêxtil sem access_token")

        expires_in = float(data.get("expires_in") or 0)
        self._token = token
        self._expira_em = self._relogio() + expires_in - TOKEN_SKEW_SEGUNDOS
        logger.info(f"[SYSTEXTIL] Novo token obtido (expira em {int(expires_in)}s)")
        return token


class SystextilClient:
    def __init__(self, token_provider: SystextilTokenProvider, api_url: str, *, timeout: int = 30):
        self.token_provider = token_provider
        self.api_url = api_url
        self.timeout = timeout

    def _get(self, token: str) -> requests.Response:
        return requests.get(
            self.api_url,
            headers={
                "Authorization": f"Bearer {token}",
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
        )

    def listar_ops(self) -> List[Dict[str, Any]]:
        """
        Busca a lista de OPs disponíveis no Systêxtil.

        Returns:
            Lista de itens ({"op", "produto", "deposito_final", ...})

        Raises:
            SystextilError: se o token ou a listagem falharem
        """
        if not self.api_url:
            raise SystextilError("SYSTEXTIL_API_URL não configurada")

        token = self.token_provider.obter_token()
        try:
            response = self._get(token)
            if response.status_code == 401:
                # token revogado antes do prazo: renova uma vez
                logger.warning("[SYSTEXTIL] Token recusado (401); renovando")
                self.token_provider.invalidar()
                response = self._get(self.token_provider.obter_token())
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"[SYSTEXTIL] Erro na listagem de OPs: {e}")
            raise SystextilError(f"Falha na comunicação com o Systêxtil: {e}")
        except ValueError as e:
            logger.error(f"[SYSTEXTIL] Resposta de listagem inválida: {e}")
            raise SystextilError("Resposta da listagem do Systêxtil não é JSON válido")

        if not isinstance(data, dict):
            logger.error(f"[SYSTEXTIL] Resposta de listagem sem objeto JSON: {type(data).__name__}")
            raise SystextilError("Resposta da listagem do Systêxtil em formato inesperado")

        items = data.get("items") or []
        if not isinstance(items, list):
            logger.error(f"[SYSTEXTIL] Campo items não é lista: {type(items).__name__}")
            raise SystextilError("Campo 'items' da listagem do Systêxtil não é uma lista")

        logger.info(f"[SYSTEXTIL] {len(items)} OPs recebidas")
        return items


def init_systextil(app: Flask) -> None:
    provider = SystextilTokenProvider(
        app.config.get("SYSTEXTIL_CLIENT_ID", ""),
        app.config.get("SYSTEXTIL_CLIENT_SECRET", ""),
        app.config.get("SYSTEXTIL_TOKEN_URL", ""),
        timeout=app.config.get("SYSTEXTIL_TIMEOUT", 30),
    )
    app.extensions["systextil"] = SystextilClient(
        provider,
        app.config.get("SYSTEXTIL_API_URL", ""),
        timeout=app.config.get("SYSTEXTIL_TIMEOUT", 30),
    )


def get_systextil_client() -> SystextilClient:
    return current_app.extensions["systextil"]
