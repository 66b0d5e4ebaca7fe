"""Testes do painel: dashboard, relatórios, QR codes e health check."""

from io import BytesIO

import openpyxl
import pytest

from apontador.models_sqla import utcnow
from apontador.utils.qrcode_utils import gerar_qrcode_png, montar_url_qr
from apontador.utils.respostas import json_ok


def _producao_concluida(c, fab, quantidade=80):
    producao = c.post(
        "/api/apontamentos",
        json={"maquina_id": str(fab.m1_id), "op_id": fab.op, "estagio_id": str(fab.corte_id)},
    ).get_json()["data"]
    parada = c.post(
        f"/api/apontamentos/{producao['id']}/parada",
        json={"motivo_parada_id": str(fab.motivo_id)},
    ).get_json()["data"]
    c.post(f"/api/paradas/{parada['id']}/finalizar", json={})
    c.post(
        f"/api/apontamentos/{producao['id']}/finalizar",
        json={"quantidade_processada": quantidade},
    )
    return producao


def _hoje():
    return utcnow().date().isoformat()


# ============================================================
# Dashboard
# ============================================================
def test_resumo_dashboard(app, fab, cliente_admin):
    cliente_admin.post(
        "/api/apontamentos",
        json={"maquina_id": str(fab.m1_id), "op_id": fab.op, "estagio_id": str(fab.corte_id)},
    )

    data = cliente_admin.get("/api/dashboard/resumo").get_json()["data"]
    assert data["total_maquinas"] == 2
    assert data["total_operadores"] == 1
    assert data["ops_abertas"] == 0
    assert data["ops_em_andamento"] == 1
    assert data["producoes_em_andamento"] == 1
    assert data["paradas_em_andamento"] == 0
    assert data["maquinas_por_status"] == {"DISPONIVEL": 1, "EM_PROCESSO": 1}


# ============================================================
# Relatórios
# ============================================================
def test_relatorio_producao(app, fab, cliente_admin):
    _producao_concluida(cliente_admin, fab)

    resp = cliente_admin.get(f"/api/relatorios?tipo=producao&inicio={_hoje()}&fim={_hoje()}")
    assert resp.status_code == 200
    linhas = resp.get_json()["data"]
    assert len(linhas) == 1
    assert linhas[0]["op"] == 8209
    assert linhas[0]["quantidade"] == 80
    assert linhas[0]["estagio"] == "Corte"
    assert linhas[0]["operador"] == "Ana Admin"


def test_relatorio_paradas_operadores_maquinas(app, fab, cliente_admin):
    _producao_concluida(cliente_admin, fab)
    periodo = f"inicio={_hoje()}&fim={_hoje()}"

    paradas = cliente_admin.get(f"/api/relatorios?tipo=paradas&{periodo}").get_json()["data"]
    assert paradas[0]["motivo"] == "Falta de material"
    assert paradas[0]["quantidade"] == 1

    operadores = cliente_admin.get(f"/api/relatorios?tipo=operadores&{periodo}").get_json()["data"]
    assert operadores[0]["matricula"] == "900"
    assert operadores[0]["total_quantidade"] == 80
    assert operadores[0]["eficiencia"] == 80

    maquinas = cliente_admin.get(f"/api/relatorios?tipo=maquinas&{periodo}").get_json()["data"]
    assert [m["codigo"] for m in maquinas] == ["M01"]
    assert maquinas[0]["total_quantidade"] == 80


def test_relatorio_periodo_sem_dados(app, fab, cliente_admin):
    resp = cliente_admin.get("/api/relatorios?tipo=maquinas&inicio=2020-01-01&fim=2020-01-31")
    assert resp.status_code == 200
    assert resp.get_json()["data"] == []


@pytest.mark.parametrize(
    "query, erro",
    [
        ("tipo=vendas&inicio=2024-01-01&fim=2024-01-31", "tipo_invalido"),
        ("tipo=producao", "periodo_invalido"),
        ("tipo=producao&inicio=2024-02-01&fim=2024-01-01", "periodo_invalido"),
        ("tipo=producao&inicio=ontem&fim=hoje", "periodo_invalido"),
    ],
)
def test_relatorio_parametros_invalidos(app, fab, cliente_admin, query, erro):
    resp = cliente_admin.get(f"/api/relatorios?{query}")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == erro


def test_exportar_relatorio_excel(app, fab, cliente_admin):
    _producao_concluida(cliente_admin, fab)

    resp = cliente_admin.get(
        f"/api/relatorios/exportar?tipo=producao&inicio={_hoje()}&fim={_hoje()}"
    )
    assert resp.status_code == 200
    assert resp.mimetype.endswith("spreadsheetml.sheet")
    assert "attachment" in resp.headers["Content-Disposition"]

    wb = openpyxl.load_workbook(BytesIO(resp.data))
    assert wb.sheetnames == ["Produção"]
    cabecalho = [c.value for c in wb["Produção"][1]]
    assert "quantidade" in cabecalho
    assert wb["Produção"].max_row == 2


# ============================================================
# QR codes
# ============================================================
def test_montar_url_qr():
    assert montar_url_qr("https://fab.local/", "op", 8209) == "https://fab.local/qr/op/8209"
    assert montar_url_qr("https://fab.local", "maquina", "abc") == "https://fab.local/qr/machine/abc"
    with pytest.raises(ValueError):
        montar_url_qr("https://fab.local", "pallet", 1)


def test_gerar_qrcode_png_com_legenda():
    png = gerar_qrcode_png("http://fabrica.test/qr/op/8209", "OP 8209")
    assert png.startswith(b"\x89PNG")


def test_rota_qrcode_png(app, fab, cliente_operador):
    resp = cliente_operador.get(f"/api/qrcodes/machine/{fab.m1_id}.png")
    assert resp.status_code == 200
    assert resp.mimetype == "image/png"
    assert resp.data.startswith(b"\x89PNG")

    assert cliente_operador.get("/api/qrcodes/op/8209.png").status_code == 200
    assert cliente_operador.get("/api/qrcodes/operator/100.png").status_code == 200
    assert cliente_operador.get("/api/qrcodes/op/1.png").status_code == 404
    assert cliente_operador.get("/api/qrcodes/pallet/1.png").status_code == 400


def test_deep_link_maquina(app, fab, cliente_operador, client):
    assert client.get(f"/qr/machine/{fab.m1_id}").status_code == 401

    body = cliente_operador.get(f"/qr/machine/{fab.m1_id}").get_json()
    assert body["maquina"]["codigo"] == "M01"
    assert body["apontamentos_abertos"] == []
    assert [m["codigo"] for m in body["motivos_parada"]] == ["MP01"]
    assert body["operador"]["matricula"] == "100"


def test_deep_link_op(app, fab, cliente_operador):
    body = cliente_operador.get("/qr/op/8209").get_json()
    assert body["op"]["op"] == 8209
    assert body["producao_aberta"] is None

    cliente_operador.post(
        "/api/apontamentos",
        json={"maquina_id": str(fab.m1_id), "op_id": fab.op, "estagio_id": str(fab.corte_id)},
    )
    body = cliente_operador.get("/qr/op/8209").get_json()
    assert body["producao_aberta"]["maquina_id"] == str(fab.m1_id)
    assert body["paradas_abertas"] == []


def test_deep_link_operador_publico(app, fab, client, cliente_operador):
    body = client.get("/qr/operator/100").get_json()
    assert body["operador"]["nome"] == "Otávio Operador"
    assert body["login"]["exige_senha"] is False
    assert body["apontamentos_abertos"] == []

    cliente_operador.post(
        "/api/paradas",
        json={"maquina_id": str(fab.m2_id), "motivo_parada_id": str(fab.motivo_id)},
    )
    abertos = client.get("/qr/operator/100").get_json()["apontamentos_abertos"]
    assert [a["tipo"] for a in abertos] == ["PARADA"]

    assert client.get("/qr/operator/900").get_json()["login"]["exige_senha"] is True
    assert client.get("/qr/operator/777").status_code == 404


# ============================================================
# Health
# ============================================================
def test_health(app, client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "healthy"
    assert resp.get_json()["database"] == "connected"


def test_json_ok_aceita_campo_status_no_corpo(app):
    """Garante que o campo status do corpo não se confunde com o código HTTP."""
    with app.test_request_context():
        resposta, codigo = json_ok(status="healthy")
        assert codigo == 200
        assert resposta.get_json() == {"ok": True, "status": "healthy"}
