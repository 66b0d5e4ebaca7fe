"""Modelos SQLAlchemy do Apontador.

Todas as tabelas do chão de fábrica ficam declaradas aqui, sobre a
instância única ``db`` criada em ``apontador/__init__.py``.

Usage:
    from apontador import db
    from apontador.models_sqla import Maquina, OrdemProducao, Apontamento

Convenções:
- Chaves primárias UUID (``db.Uuid``), exceto ``ops.op``, que é o número
  da OP vindo do ERP.
- Status gravados como texto (ver as classes de constantes abaixo).
- Um apontamento está aberto enquanto ``data_fim`` é NULL.
"""

import sqlite3
import uuid
from datetime import datetime, timezone

from flask_login import UserMixin
from sqlalchemy import event
from sqlalchemy.engine import Engine
from werkzeug.security import check_password_hash, generate_password_hash

from apontador import db


@event.listens_for(Engine, "connect")
def _sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite só respeita FKs com o pragma ligado por conexão
    if isinstance(dbapi_connection, sqlite3.Connection):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def utcnow() -> datetime:
    """Agora em UTC, sem tzinfo (mesmo formato gravado no banco)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _serializar(valor):
    if isinstance(valor, uuid.UUID):
        return str(valor)
    if isinstance(valor, datetime):
        return valor.isoformat()
    return valor


class TimestampMixin:
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def as_dict(self) -> dict:
        return {c.name: _serializar(getattr(self, c.name)) for c in self.__table__.columns}


# ============================
# Constantes de status
# ============================


class NivelUsuario:
    ADM = "ADM"
    OPERADOR = "OPERADOR"
    TODOS = (ADM, OPERADOR)


class StatusOP:
    ABERTA = "ABERTA"
    EM_ANDAMENTO = "EM_ANDAMENTO"
    FINALIZADA = "FINALIZADA"
    CANCELADA = "CANCELADA"
    TODOS = (ABERTA, EM_ANDAMENTO, FINALIZADA, CANCELADA)
    TERMINAIS = (FINALIZADA, CANCELADA)


class TipoApontamento:
    PRODUCAO = "PRODUCAO"
    PARADA = "PARADA"
    TODOS = (PRODUCAO, PARADA)


class StatusApontamento:
    EM_ANDAMENTO = "EM_ANDAMENTO"
    CONCLUIDO = "CONCLUIDO"
    CANCELADO = "CANCELADO"


# Valores gravados na OP quando ela ainda não entrou (ou já saiu) de uma máquina/estágio
COD_ESTAGIO_INICIAL = "00"
ESTAGIO_INICIAL = "NENHUM"
COD_MAQUINA_VAZIA = "00"
MAQUINA_VAZIA = "NENHUMA"
COD_ESTAGIO_FINALIZADA = "99"
ESTAGIO_FINALIZADA = "FINALIZADA"


# ============================
# Estrutura da fábrica
# ============================


class Area(TimestampMixin, db.Model):
    __tablename__ = "areas"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    nome = db.Column(db.String(100), nullable=False, unique=True)
    descricao = db.Column(db.Text, nullable=True)
    ativo = db.Column(db.Boolean, nullable=False, default=True)


class Setor(TimestampMixin, db.Model):
    __tablename__ = "setores"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    nome = db.Column(db.String(100), nullable=False)
    area_id = db.Column(db.Uuid, db.ForeignKey("areas.id"), nullable=False)
    descricao = db.Column(db.Text, nullable=True)
    ativo = db.Column(db.Boolean, nullable=False, default=True)

    area = db.relationship("Area")

    def as_dict(self) -> dict:
        d = super().as_dict()
        d["area_nome"] = self.area.nome if self.area else None
        return d


class Maquina(TimestampMixin, db.Model):
    __tablename__ = "maquinas"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    nome = db.Column(db.String(100), nullable=False)
    codigo = db.Column(db.String(20), nullable=False, unique=True)
    qr_code = db.Column(db.String(255), nullable=True)
    status = db.Column(db.String(20), nullable=False, default="DISPONIVEL")
    ativo = db.Column(db.Boolean, nullable=False, default=True)

    setores = db.relationship(
        "Setor", secondary="maquinas_setores", viewonly=True, order_by="Setor.nome"
    )

    def as_dict(self, com_setores: bool = False) -> dict:
        d = super().as_dict()
        if com_setores:
            d["setores"] = [{"id": str(s.id), "nome": s.nome} for s in self.setores]
        return d


class MaquinaSetor(db.Model):
    __tablename__ = "maquinas_setores"
    __table_args__ = (
        db.UniqueConstraint("maquina_id", "setor_id", name="uq_maquina_setor"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    maquina_id = db.Column(
        db.Uuid, db.ForeignKey("maquinas.id", ondelete="CASCADE"), nullable=False
    )
    setor_id = db.Column(
        db.Uuid, db.ForeignKey("setores.id", ondelete="CASCADE"), nullable=False
    )
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)


class Estagio(TimestampMixin, db.Model):
    __tablename__ = "estagios"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    codigo = db.Column(db.String(2), nullable=False, unique=True)
    nome = db.Column(db.String(50), nullable=False)
    ordem = db.Column(db.Integer, nullable=False)
    descricao = db.Column(db.Text, nullable=True)
    cor = db.Column(db.String(7), nullable=False, default="#3b82f6")
    mostrar_no_kanban = db.Column(db.Boolean, nullable=False, default=True)
    ativo = db.Column(db.Boolean, nullable=False, default=True)


class MotivoParada(TimestampMixin, db.Model):
    __tablename__ = "motivos_parada"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    codigo = db.Column(db.String(10), nullable=False, unique=True)
    descricao = db.Column(db.String(255), nullable=False)
    ativo = db.Column(db.Boolean, nullable=False, default=True)


class MotivoCancelamento(TimestampMixin, db.Model):
    __tablename__ = "motivos_cancelamento"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    codigo = db.Column(db.String(10), nullable=False, unique=True)
    descricao = db.Column(db.String(255), nullable=False)
    ativo = db.Column(db.Boolean, nullable=False, default=True)


class Produto(TimestampMixin, db.Model):
    __tablename__ = "produtos"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    codigo = db.Column(db.String(50), nullable=False, unique=True)
    nome = db.Column(db.String(200), nullable=False)
    um = db.Column(db.String(10), nullable=False)
    nivel = db.Column(db.String(10), nullable=True)
    grupo = db.Column(db.String(10), nullable=True)
    sub = db.Column(db.String(10), nullable=True)
    item = db.Column(db.String(10), nullable=True)
    parametros_eficiencia = db.Column(db.JSON, nullable=True)
    ativo = db.Column(db.Boolean, nullable=False, default=True)


# ============================
# Usuários
# ============================


class Usuario(UserMixin, TimestampMixin, db.Model):
    __tablename__ = "usuarios"

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    nome = db.Column(db.String(100), nullable=False)
    matricula = db.Column(db.String(20), nullable=False, unique=True)
    nivel = db.Column(db.String(10), nullable=False, default=NivelUsuario.OPERADOR)
    senha_hash = db.Column(db.String(255), nullable=True)
    qr_code = db.Column(db.String(255), nullable=True)
    ativo = db.Column(db.Boolean, nullable=False, default=True)

    def get_id(self):
        return str(self.id)

    @property
    def is_active(self):
        return bool(self.ativo)

    @property
    def is_admin(self) -> bool:
        return self.nivel == NivelUsuario.ADM

    def set_senha(self, senha: str) -> None:
        self.senha_hash = generate_password_hash(senha)

    def check_senha(self, senha: str) -> bool:
        if not self.senha_hash:
            return False
        return check_password_hash(self.senha_hash, senha)

    def as_dict(self) -> dict:
        d = super().as_dict()
        d.pop("senha_hash", None)
        return d


# ============================
# Ordens de produção
# ============================


class OrdemProducao(TimestampMixin, db.Model):
    __tablename__ = "ops"

    op = db.Column(db.Integer, primary_key=True, autoincrement=False)

    # Campos vindos do Systêxtil
    produto = db.Column(db.String(255), nullable=False)
    deposito_final = db.Column(db.String(50), nullable=True)
    pecas_vinculadas = db.Column(db.String(50), nullable=True)
    qtde_programado = db.Column(db.Float, nullable=True)
    qtde_carregado = db.Column(db.Float, nullable=True)
    qtde_produzida = db.Column(db.Float, nullable=True)
    calculo_quebra = db.Column(db.Float, nullable=True)
    obs = db.Column(db.Text, nullable=True)
    um = db.Column(db.String(10), nullable=True)
    narrativa = db.Column(db.Text, nullable=True)
    nivel = db.Column(db.String(10), nullable=True)
    grupo = db.Column(db.String(10), nullable=True)
    sub = db.Column(db.String(10), nullable=True)
    item = db.Column(db.String(10), nullable=True)

    produto_id = db.Column(db.Uuid, db.ForeignKey("produtos.id"), nullable=True)

    # Posição atual no fluxo
    cod_estagio_atual = db.Column(db.String(2), nullable=False, default=COD_ESTAGIO_INICIAL)
    estagio_atual = db.Column(db.String(50), nullable=False, default=ESTAGIO_INICIAL)
    cod_maquina_atual = db.Column(db.String(20), nullable=False, default=COD_MAQUINA_VAZIA)
    maquina_atual = db.Column(db.String(100), nullable=False, default=MAQUINA_VAZIA)

    # Cancelamento
    cod_motivo_cancelamento = db.Column(db.String(10), nullable=True)
    motivo_cancelamento = db.Column(db.String(255), nullable=True)
    data_cancelamento = db.Column(db.DateTime, nullable=True)
    usuario_cancelamento_id = db.Column(
        db.Uuid, db.ForeignKey("usuarios.id"), nullable=True
    )

    data_importacao = db.Column(db.DateTime, nullable=False, default=utcnow)
    data_ultimo_apontamento = db.Column(db.DateTime, nullable=True)
    status = db.Column(db.String(20), nullable=False, default=StatusOP.ABERTA)

    @property
    def terminal(self) -> bool:
        return self.status in StatusOP.TERMINAIS


# ============================
# Apontamentos (produção e parada)
# ============================


class Apontamento(TimestampMixin, db.Model):
    """Registro de tempo de uma máquina: produção ou parada.

    Enquanto ``data_fim`` é NULL o registro está aberto. O índice parcial
    ``uq_apontamento_aberto_maquina_tipo`` garante no banco no máximo um
    registro aberto por máquina e por tipo; ``uq_apontamento_producao_aberta_op``
    garante no máximo uma produção aberta por OP.
    """

    __tablename__ = "apontamentos"
    __table_args__ = (
        db.Index(
            "uq_apontamento_aberto_maquina_tipo",
            "maquina_id",
            "tipo",
            unique=True,
            postgresql_where=db.text("data_fim IS NULL"),
            sqlite_where=db.text("data_fim IS NULL"),
        ),
        db.Index(
            "uq_apontamento_producao_aberta_op",
            "op_id",
            unique=True,
            postgresql_where=db.text("data_fim IS NULL AND tipo = 'PRODUCAO'"),
            sqlite_where=db.text("data_fim IS NULL AND tipo = 'PRODUCAO'"),
        ),
        db.Index("ix_apontamentos_data_inicio", "data_inicio"),
    )

    id = db.Column(db.Uuid, primary_key=True, default=uuid.uuid4)
    tipo = db.Column(db.String(10), nullable=False)
    status = db.Column(
        db.String(20), nullable=False, default=StatusApontamento.EM_ANDAMENTO
    )

    maquina_id = db.Column(db.Uuid, db.ForeignKey("maquinas.id"), nullable=False)
    op_id = db.Column(db.Integer, db.ForeignKey("ops.op"), nullable=True)
    estagio_id = db.Column(db.Uuid, db.ForeignKey("estagios.id"), nullable=True)
    operador_inicio_id = db.Column(db.Uuid, db.ForeignKey("usuarios.id"), nullable=False)
    operador_fim_id = db.Column(db.Uuid, db.ForeignKey("usuarios.id"), nullable=True)
    motivo_parada_id = db.Column(
        db.Uuid, db.ForeignKey("motivos_parada.id"), nullable=True
    )
    producao_id = db.Column(db.Uuid, db.ForeignKey("apontamentos.id"), nullable=True)

    data_inicio = db.Column(db.DateTime, nullable=False, default=utcnow)
    data_fim = db.Column(db.DateTime, nullable=True)
    quantidade_programada = db.Column(db.Float, nullable=True)
    quantidade_processada = db.Column(db.Float, nullable=True)
    is_reprocesso = db.Column(db.Boolean, nullable=False, default=False)
    observacoes = db.Column(db.Text, nullable=True)

    maquina = db.relationship("Maquina")
    op = db.relationship("OrdemProducao")
    estagio = db.relationship("Estagio")
    operador_inicio = db.relationship("Usuario", foreign_keys=[operador_inicio_id])
    operador_fim = db.relationship("Usuario", foreign_keys=[operador_fim_id])
    motivo_parada = db.relationship("MotivoParada")
    producao = db.relationship("Apontamento", remote_side=[id])

    @property
    def aberto(self) -> bool:
        return self.data_fim is None

    def duracao_minutos(self, ate: datetime | None = None) -> float:
        """Minutos entre início e fim (ou ``ate``/agora, se ainda aberto)."""
        fim = self.data_fim or ate or utcnow()
        return max((fim - self.data_inicio).total_seconds() / 60.0, 0.0)

    def as_dict(self) -> dict:
        d = super().as_dict()
        d["maquina_nome"] = self.maquina.nome if self.maquina else None
        d["estagio_nome"] = self.estagio.nome if self.estagio else None
        d["operador_inicio_nome"] = (
            self.operador_inicio.nome if self.operador_inicio else None
        )
        d["operador_fim_nome"] = self.operador_fim.nome if self.operador_fim else None
        d["motivo_parada_descricao"] = (
            self.motivo_parada.descricao if self.motivo_parada else None
        )
        return d
