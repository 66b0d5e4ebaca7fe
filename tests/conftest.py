"""Configuração de testes (pytest).

Cada teste recebe uma aplicação nova sobre SQLite em memória, com o
cadastro mínimo do chão de fábrica já gravado (fixture ``fab``).
"""

from types import SimpleNamespace

import pytest

from apontador import create_app, db
from apontador.models_sqla import (
    Area,
    Estagio,
    Maquina,
    MaquinaSetor,
    MotivoCancelamento,
    MotivoParada,
    NivelUsuario,
    OrdemProducao,
    Produto,
    Setor,
    Usuario,
)

SENHA_ADM = "adm-1234"


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": "teste",
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "SYSTEXTIL_CLIENT_ID": "cliente",
            "SYSTEXTIL_CLIENT_SECRET": "segredo",
            "SYSTEXTIL_TOKEN_URL": "https://erp.test/oauth/token",
            "SYSTEXTIL_API_URL": "https://erp.test/api/ops",
            "CRON_SECRET": "",
            "APP_URL": "http://fabrica.test",
        }
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def fab(app):
    """Cadastro base: 1 área, 1 setor, 2 máquinas, 2 estágios, motivos, 1 OP e 2 usuários."""
    with app.app_context():
        area = Area(nome="Confecção")
        db.session.add(area)
        db.session.flush()

        setor = Setor(nome="Corte", area_id=area.id)
        m1 = Maquina(nome="Mesa de corte 1", codigo="M01")
        m2 = Maquina(nome="Reta 2", codigo="M02")
        corte = Estagio(codigo="01", nome="Corte", ordem=1, cor="#ef4444")
        costura = Estagio(codigo="02", nome="Costura", ordem=2, cor="#22c55e")
        motivo = MotivoParada(codigo="MP01", descricao="Falta de material")
        motivo_canc = MotivoCancelamento(codigo="MC01", descricao="Pedido cancelado")
        produto = Produto(codigo="CAM-01", nome="Camiseta básica", um="UN")
        admin = Usuario(nome="Ana Admin", matricula="900", nivel=NivelUsuario.ADM)
        admin.set_senha(SENHA_ADM)
        operador = Usuario(nome="Otávio Operador", matricula="100")
        db.session.add_all(
            [setor, m1, m2, corte, costura, motivo, motivo_canc, produto, admin, operador]
        )
        db.session.flush()

        db.session.add(MaquinaSetor(maquina_id=m1.id, setor_id=setor.id))
        db.session.add(
            OrdemProducao(op=8209, produto="CAM-01", produto_id=produto.id, qtde_programado=100)
        )
        db.session.commit()

        return SimpleNamespace(
            area_id=area.id,
            setor_id=setor.id,
            m1_id=m1.id,
            m2_id=m2.id,
            corte_id=corte.id,
            costura_id=costura.id,
            motivo_id=motivo.id,
            motivo_canc_id=motivo_canc.id,
            produto_id=produto.id,
            admin_id=admin.id,
            operador_id=operador.id,
            op=8209,
        )


def login(client, matricula, senha=None):
    payload = {"matricula": matricula}
    if senha is not None:
        payload["senha"] = senha
    return client.post("/api/auth/login", json=payload)


@pytest.fixture
def fazer_login():
    return login


@pytest.fixture
def cliente_admin(app, fab):
    c = app.test_client()
    assert login(c, "900", SENHA_ADM).status_code == 200
    return c


@pytest.fixture
def cliente_operador(app, fab):
    c = app.test_client()
    assert login(c, "100").status_code == 200
    return c
