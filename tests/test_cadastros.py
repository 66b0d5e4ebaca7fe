"""Testes dos cadastros (dados de referência).

Cobertura principal:
    - Validação de payload (400 sem gravar nada)
    - Duplicidade de campos únicos
    - Exclusão de registro em uso
    - Vínculo máquina x setor e máquinas disponíveis por estágio
"""

import pytest

from apontador import db
from apontador.models_sqla import Area, Estagio, Maquina, Usuario


def _contar(app, modelo):
    with app.app_context():
        return modelo.query.count()


@pytest.mark.parametrize(
    "payload",
    [
        {"codigo": "03", "nome": "Acabamento", "ordem": 3, "cor": "azul"},
        {"codigo": "3", "nome": "Acabamento", "ordem": 3},
        {"codigo": "03", "nome": "Ac", "ordem": 3},
        {"codigo": "03", "nome": "Acabamento", "ordem": 0},
    ],
)
def test_estagio_invalido_nao_grava(app, fab, cliente_admin, payload):
    antes = _contar(app, Estagio)

    resp = cliente_admin.post("/api/estagios", json=payload)

    assert resp.status_code == 400
    body = resp.get_json()
    assert body["ok"] is False
    assert body["error"] == "dados_invalidos"
    assert body["detalhes"]
    assert _contar(app, Estagio) == antes


def test_estagio_crud(app, fab, cliente_admin):
    resp = cliente_admin.post(
        "/api/estagios", json={"codigo": "03", "nome": "Acabamento", "ordem": 3, "cor": "#A1B2C3"}
    )
    assert resp.status_code == 201
    estagio = resp.get_json()["data"]
    assert estagio["mostrar_no_kanban"] is True

    resp = cliente_admin.put(f"/api/estagios/{estagio['id']}", json={"mostrar_no_kanban": False})
    assert resp.get_json()["data"]["mostrar_no_kanban"] is False

    resp = cliente_admin.put(f"/api/estagios/{estagio['id']}", json={"nome": None})
    assert resp.status_code == 400

    assert cliente_admin.delete(f"/api/estagios/{estagio['id']}").status_code == 200
    assert cliente_admin.get(f"/api/estagios/{estagio['id']}").status_code == 404


def test_area_nome_vazio_ou_duplicado(app, fab, cliente_admin):
    resp = cliente_admin.post("/api/areas", json={"nome": "   "})
    assert resp.status_code == 400
    assert _contar(app, Area) == 1

    resp = cliente_admin.post("/api/areas", json={"nome": "Confecção"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "duplicado"


def test_setor_filtra_por_area(app, fab, cliente_admin):
    resp = cliente_admin.post(
        "/api/setores", json={"nome": "Costura", "area_id": str(fab.area_id)}
    )
    assert resp.status_code == 201
    assert resp.get_json()["data"]["area_nome"] == "Confecção"

    setores = cliente_admin.get(f"/api/setores?area_id={fab.area_id}").get_json()["data"]
    assert {s["nome"] for s in setores} == {"Corte", "Costura"}
    assert cliente_admin.get("/api/setores?area_id=abc").status_code == 400


def test_maquina_com_setores(app, fab, cliente_admin):
    resp = cliente_admin.post(
        "/api/maquinas",
        json={"nome": "Mesa de corte 3", "codigo": "M03", "setor_ids": [str(fab.setor_id)]},
    )
    assert resp.status_code == 201
    maquina = resp.get_json()["data"]
    assert maquina["status"] == "DISPONIVEL"
    assert [s["nome"] for s in maquina["setores"]] == ["Corte"]

    resp = cliente_admin.put(f"/api/maquinas/{maquina['id']}", json={"setor_ids": []})
    assert resp.get_json()["data"]["setores"] == []

    resp = cliente_admin.post("/api/maquinas", json={"nome": "Outra", "codigo": "M01"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "duplicado"


def test_maquinas_disponiveis_por_estagio(app, fab, cliente_operador):
    todas = cliente_operador.get("/api/maquinas/disponiveis").get_json()["data"]
    assert {m["codigo"] for m in todas} == {"M01", "M02"}

    corte = cliente_operador.get(
        f"/api/maquinas/disponiveis?estagio_id={fab.corte_id}"
    ).get_json()["data"]
    assert [m["codigo"] for m in corte] == ["M01"]

    costura = cliente_operador.get(
        f"/api/maquinas/disponiveis?estagio_id={fab.costura_id}"
    ).get_json()["data"]
    assert costura == []


def test_maquina_em_uso_nao_pode_ser_excluida(app, fab, cliente_admin):
    cliente_admin.post(
        "/api/paradas",
        json={"maquina_id": str(fab.m2_id), "motivo_parada_id": str(fab.motivo_id)},
    )

    resp = cliente_admin.delete(f"/api/maquinas/{fab.m2_id}")
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "registro_em_uso"
    assert _contar(app, Maquina) == 2


def test_motivos_parada_e_cancelamento(app, fab, cliente_admin):
    resp = cliente_admin.post(
        "/api/motivos-parada", json={"codigo": "MP02", "descricao": "Manutenção corretiva"}
    )
    assert resp.status_code == 201
    assert len(cliente_admin.get("/api/motivos-parada").get_json()["data"]) == 2

    resp = cliente_admin.post("/api/motivos-cancelamento", json={"codigo": "MC01", "descricao": "Repetido"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "duplicado"


def test_produto_busca(app, fab, cliente_admin):
    cliente_admin.post("/api/produtos", json={"codigo": "CAL-02", "nome": "Calça jeans", "um": "UN"})

    achados = cliente_admin.get("/api/produtos?q=jeans").get_json()["data"]
    assert [p["codigo"] for p in achados] == ["CAL-02"]


def test_usuario_adm_precisa_de_senha(app, fab, cliente_admin):
    resp = cliente_admin.post(
        "/api/usuarios", json={"nome": "Bruno Gestor", "matricula": "901", "nivel": "ADM"}
    )
    assert resp.status_code == 400

    resp = cliente_admin.post(
        "/api/usuarios",
        json={"nome": "Bruno Gestor", "matricula": "901", "nivel": "ADM", "senha": "s3nh4"},
    )
    assert resp.status_code == 201
    with app.app_context():
        assert Usuario.query.filter_by(matricula="901").one().check_senha("s3nh4")


def test_adm_nao_inativa_a_si_mesmo(app, fab, cliente_admin):
    resp = cliente_admin.put(f"/api/usuarios/{fab.admin_id}", json={"ativo": False})
    assert resp.status_code == 400
    assert cliente_admin.delete(f"/api/usuarios/{fab.admin_id}").status_code == 400

    operadores = cliente_admin.get("/api/usuarios?nivel=operador").get_json()["data"]
    assert [u["matricula"] for u in operadores] == ["100"]
