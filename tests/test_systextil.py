"""Testes da integração com o Systêxtil.

Valida:
    - Cache e renovação do token (relógio falso)
    - Nova tentativa única após 401 na listagem
    - Importação idempotente de OPs (rota manual e cron)
"""

import pytest
import requests

from apontador import db
from apontador.models_sqla import OrdemProducao
from apontador.services.importacao_service import importar_ops
from apontador.utils import systextil_client as sc
from apontador.utils.systextil_client import (
    SystextilClient,
    SystextilError,
    SystextilTokenProvider,
)


class FakeResponse:
    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload

    def json(self):
        return self._payload

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} erro")


class Relogio:
    def __init__(self, agora=1000.0):
        self.agora = agora

    def __call__(self):
        return self.agora


class FakeClient:
    def __init__(self, items=None, erro=None):
        self.items = items or []
        self.erro = erro

    def listar_ops(self):
        if self.erro:
            raise self.erro
        return list(self.items)


ITENS = [
    {"op": 8300, "produto": "CAM-01", "qtde_programado": "120", "um": "UN", "obs": " urgente "},
    {"op": "8301", "produto": "CAL-02", "qtde_programado": 40},
    {"op": None, "produto": "CAM-01"},
]


@pytest.fixture
def token_calls(monkeypatch):
    calls = []

    def fake_post(url, auth=None, data=None, headers=None, timeout=None):
        calls.append({"url": url, "auth": auth, "data": data, "timeout": timeout})
        return FakeResponse(payload={"access_token": f"tok{len(calls)}", "expires_in": 3600})

    monkeypatch.setattr(sc.requests, "post", fake_post)
    return calls


def test_token_reaproveitado_ate_expirar(token_calls):
    """Garante o cache até expires_in - 60s e a renovação depois disso."""
    relogio = Relogio()
    provider = SystextilTokenProvider("id", "segredo", "https://erp.test/token", relogio=relogio)

    assert provider.obter_token() == "tok1"
    relogio.agora += 3539
    assert provider.obter_token() == "tok1"
    assert len(token_calls) == 1

    relogio.agora += 1
    assert provider.obter_token() == "tok2"
    assert len(token_calls) == 2
    assert token_calls[0]["auth"] == ("id", "segredo")
    assert token_calls[0]["data"] == {"grant_type": "client_credentials"}


def test_token_sem_credenciais():
    provider = SystextilTokenProvider("", "", "")
    with pytest.raises(SystextilError):
        provider.obter_token()


def test_token_falha_de_rede(monkeypatch):
    def fake_post(*args, **kwargs):
        raise requests.exceptions.ConnectionError("sem rota")

    monkeypatch.setattr(sc.requests, "post", fake_post)
    provider = SystextilTokenProvider("id", "segredo", "https://erp.test/token")
    with pytest.raises(SystextilError):
        provider.obter_token()


def test_listagem_renova_token_apos_401(monkeypatch, token_calls):
    respostas = [FakeResponse(401), FakeResponse(200, {"items": ITENS})]
    headers_usados = []

    def fake_get(url, headers=None, timeout=None):
        headers_usados.append(headers["Authorization"])
        return respostas.pop(0)

    monkeypatch.setattr(sc.requests, "get", fake_get)
    provider = SystextilTokenProvider("id", "segredo", "https://erp.test/token")
    client = SystextilClient(provider, "https://erp.test/ops")

    assert client.listar_ops() == ITENS
    assert headers_usados == ["Bearer tok1", "Bearer tok2"]


def test_listagem_com_erro_http(monkeypatch, token_calls):
    monkeypatch.setattr(sc.requests, "get", lambda *a, **k: FakeResponse(500))
    client = SystextilClient(
        SystextilTokenProvider("id", "segredo", "https://erp.test/token"), "https://erp.test/ops"
    )
    with pytest.raises(SystextilError):
        client.listar_ops()


@pytest.mark.parametrize("corpo", [["lixo"], {"items": "lixo"}, "texto"])
def test_listagem_com_corpo_fora_do_formato(monkeypatch, token_calls, corpo):
    """Garante que corpo sem objeto ou com items que não é lista vira SystextilError."""
    monkeypatch.setattr(sc.requests, "get", lambda *a, **k: FakeResponse(200, corpo))
    client = SystextilClient(
        SystextilTokenProvider("id", "segredo", "https://erp.test/token"), "https://erp.test/ops"
    )
    with pytest.raises(SystextilError):
        client.listar_ops()


def test_importacao_idempotente(app, fab):
    with app.app_context():
        primeira = importar_ops(FakeClient(ITENS))
        assert primeira["importadas"] == 2
        assert primeira["ignoradas"] == 0
        assert len(primeira["erros"]) == 1

        op = db.session.get(OrdemProducao, 8300)
        assert op.status == "ABERTA"
        assert op.cod_estagio_atual == "00"
        assert op.maquina_atual == "NENHUMA"
        assert op.qtde_programado == 120.0
        assert op.obs == "urgente"
        assert op.produto_id == fab.produto_id
        assert db.session.get(OrdemProducao, 8301).produto_id is None

        segunda = importar_ops(FakeClient(ITENS))
        assert segunda["importadas"] == 0
        assert segunda["ignoradas"] == 2
        assert OrdemProducao.query.count() == 3


def test_importacao_nao_altera_op_existente(app, fab):
    with app.app_context():
        resultado = importar_ops(FakeClient([{"op": 8209, "produto": "OUTRO", "obs": "novo"}]))
        assert resultado["ignoradas"] == 1
        assert db.session.get(OrdemProducao, 8209).produto == "CAM-01"


def test_rota_importar_manual(app, fab, cliente_admin):
    app.extensions["systextil"] = FakeClient(ITENS)
    resp = cliente_admin.post("/api/systextil/importar")
    assert resp.status_code == 200
    assert resp.get_json()["importadas"] == 2

    app.extensions["systextil"] = FakeClient(erro=SystextilError("token recusado"))
    resp = cliente_admin.post("/api/systextil/importar")
    assert resp.status_code == 502
    assert resp.get_json()["error"] == "systextil_indisponivel"


def test_rota_testar_conexao(app, fab, cliente_admin):
    app.extensions["systextil"] = FakeClient(ITENS)
    body = cliente_admin.get("/api/systextil/testar").get_json()
    assert body["total"] == 3
    with app.app_context():
        assert OrdemProducao.query.count() == 1


def test_cron_exige_segredo(app, fab, client):
    app.config["CRON_SECRET"] = "s3gr3do"
    app.extensions["systextil"] = FakeClient(ITENS)

    assert client.get("/api/cron/importar-ops").status_code == 401
    resp = client.get(
        "/api/cron/importar-ops", headers={"Authorization": "Bearer errado"}
    )
    assert resp.status_code == 401

    resp = client.post("/api/cron/importar-ops", headers={"Authorization": "Bearer s3gr3do"})
    assert resp.status_code == 200
    assert resp.get_json()["importadas"] == 2


def test_cron_falha_do_erp_retorna_500(app, fab, client):
    app.extensions["systextil"] = FakeClient(erro=SystextilError("fora do ar"))
    resp = client.get("/api/cron/importar-ops")
    assert resp.status_code == 500
    assert resp.get_json()["ok"] is False


def test_importacao_item_que_nao_e_objeto(app, fab):
    """Garante que item fora do formato vira erro do item sem interromper a importação."""
    with app.app_context():
        resultado = importar_ops(FakeClient(["lixo", 42, {"op": 9001, "produto": "CAM-01"}]))
        assert resultado["importadas"] == 1
        assert len(resultado["erros"]) == 2
        assert resultado["detalhes"][0] == {"op": None, "resultado": "erro"}
        assert db.session.get(OrdemProducao, 9001) is not None


def test_importacao_numero_de_op_invalido(app, fab):
    """Garante que número fracionário ou booleano não vira OP truncada."""
    with app.app_context():
        resultado = importar_ops(
            FakeClient(
                [
                    {"op": 8209.9, "produto": "CAM-01"},
                    {"op": True, "produto": "CAM-01"},
                    {"op": " 8400 ", "produto": "CAM-01"},
                    {"op": 8401.0, "produto": "CAM-01"},
                ]
            )
        )
        assert resultado["importadas"] == 2
        assert len(resultado["erros"]) == 2
        assert db.session.get(OrdemProducao, 1) is None
        assert db.session.get(OrdemProducao, 8400) is not None
        assert db.session.get(OrdemProducao, 8401) is not None
        assert db.session.get(OrdemProducao, 8209).produto == "CAM-01"
