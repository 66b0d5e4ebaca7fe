"""
Schemas pydantic dos payloads da API.

Padrão:
- <Entidade>Create: campos obrigatórios do cadastro.
- <Entidade>Update: todos opcionais; só os enviados são aplicados
  (model_dump(exclude_unset=True)). Campos NOT NULL não aceitam null explícito.
"""

from datetime import datetime
from typing import ClassVar, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, PositiveInt, model_validator

HEX_COR = r"^#[0-9A-Fa-f]{6}$"


class _Base(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class _Atualizacao(_Base):
    CAMPOS_NAO_NULOS: ClassVar[tuple] = ()

    @model_validator(mode="after")
    def _rejeita_nulos(self):
        for campo in self.model_fields_set:
            if campo in self.CAMPOS_NAO_NULOS and getattr(self, campo) is None:
                raise ValueError(f"'{campo}' não pode ser nulo")
        return self


# 🔹 Áreas / Setores
class AreaCreate(_Base):
    nome: str = Field(min_length=3, max_length=100)
    descricao: Optional[str] = None
    ativo: bool = True


class AreaUpdate(_Atualizacao):
    CAMPOS_NAO_NULOS = ("nome", "ativo")
    nome: Optional[str] = Field(default=None, min_length=3, max_length=100)
    descricao: Optional[str] = None
    ativo: Optional[bool] = None


class SetorCreate(_Base):
    nome: str = Field(min_length=3, max_length=100)
    area_id: UUID
    descricao: Optional[str] = None
    ativo: bool = True


class SetorUpdate(_Atualizacao):
    CAMPOS_NAO_NULOS = ("nome", "area_id", "ativo")
    nome: Optional[str] = Field(default=None, min_length=3, max_length=100)
    area_id: Optional[UUID] = None
    descricao: Optional[str] = None
    ativo: Optional[bool] = None


# 🔹 Máquinas
class MaquinaCreate(_Base):
    nome: str = Field(min_length=3, max_length=100)
    codigo: str = Field(min_length=1, max_length=20)
    qr_code: Optional[str] = Field(default=None, max_length=255)
    ativo: bool = True
    setor_ids: List[UUID] = Field(default_factory=list)


class MaquinaUpdate(_Atualizacao):
    CAMPOS_NAO_NULOS = ("nome", "codigo", "ativo", "setor_ids")
    nome: Optional[str] = Field(default=None, min_length=3, max_length=100)
    codigo: Optional[str] = Field(default=None, min_length=1, max_length=20)
    qr_code: Optional[str] = Field(default=None, max_length=255)
    ativo: Optional[bool] = None
    setor_ids: Optional[List[UUID]] = None


# 🔹 Estágios
class EstagioCreate(_Base):
    codigo: str = Field(min_length=2, max_length=2)
    nome: str = Field(min_length=3, max_length=50)
    ordem: PositiveInt
    descricao: Optional[str] = None
    cor: str = Field(default="#3b82f6", pattern=HEX_COR)
    mostrar_no_kanban: bool = True
    ativo: bool = True


class EstagioUpdate(_Atualizacao):
    CAMPOS_NAO_NULOS = ("codigo", "nome", "ordem", "cor", "mostrar_no_kanban", "ativo")
    codigo: Optional[str] = Field(default=None, min_length=2, max_length=2)
    nome: Optional[str] = Field(default=None, min_length=3, max_length=50)
    ordem: Optional[PositiveInt] = None
    descricao: Optional[str] = None
    cor: Optional[str] = Field(default=None, pattern=HEX_COR)
    mostrar_no_kanban: Optional[bool] = None
    ativo: Optional[bool] = None


# 🔹 Motivos (parada e cancelamento têm o mesmo formato)
class MotivoCreate(_Base):
    codigo: str = Field(min_length=1, max_length=10)
    descricao: str = Field(min_length=3, max_length=255)
    ativo: bool = True


class MotivoUpdate(_Atualizacao):
    CAMPOS_NAO_NULOS = ("codigo", "descricao", "ativo")
    codigo: Optional[str] = Field(default=None, min_length=1, max_length=10)
    descricao: Optional[str] = Field(default=None, min_length=3, max_length=255)
    ativo: Optional[bool] = None


# 🔹 Produtos
class ProdutoCreate(_Base):
    codigo: str = Field(min_length=1, max_length=50)
    nome: str = Field(min_length=3, max_length=200)
    um: str = Field(min_length=1, max_length=10)
    nivel: Optional[str] = Field(default=None, max_length=10)
    grupo: Optional[str] = Field(default=None, max_length=10)
    sub: Optional[str] = Field(default=None, max_length=10)
    item: Optional[str] = Field(default=None, max_length=10)
    parametros_eficiencia: Optional[dict] = None
    ativo: bool = True


class ProdutoUpdate(_Atualizacao):
    CAMPOS_NAO_NULOS = ("codigo", "nome", "um", "ativo")
    codigo: Optional[str] = Field(default=None, min_length=1, max_length=50)
    nome: Optional[str] = Field(default=None, min_length=3, max_length=200)
    um: Optional[str] = Field(default=None, min_length=1, max_length=10)
    nivel: Optional[str] = Field(default=None, max_length=10)
    grupo: Optional[str] = Field(default=None, max_length=10)
    sub: Optional[str] = Field(default=None, max_length=10)
    item: Optional[str] = Field(default=None, max_length=10)
    parametros_eficiencia: Optional[dict] = None
    ativo: Optional[bool] = None


# 🔹 Usuários
class UsuarioCreate(_Base):
    nome: str = Field(min_length=3, max_length=100)
    matricula: str = Field(min_length=1, max_length=20)
    nivel: Literal["ADM", "OPERADOR"] = "OPERADOR"
    senha: Optional[str] = Field(default=None, min_length=4, max_length=128)
    qr_code: Optional[str] = Field(default=None, max_length=255)
    ativo: bool = True

    @model_validator(mode="after")
    def _adm_exige_senha(self):
        if self.nivel == "ADM" and not self.senha:
            raise ValueError("Administradores precisam de senha")
        return self


class UsuarioUpdate(_Atualizacao):
    CAMPOS_NAO_NULOS = ("nome", "matricula", "nivel", "ativo")
    nome: Optional[str] = Field(default=None, min_length=3, max_length=100)
    matricula: Optional[str] = Field(default=None, min_length=1, max_length=20)
    nivel: Optional[Literal["ADM", "OPERADOR"]] = None
    senha: Optional[str] = Field(default=None, min_length=4, max_length=128)
    qr_code: Optional[str] = Field(default=None, max_length=255)
    ativo: Optional[bool] = None


class LoginPayload(_Base):
    matricula: str = Field(min_length=1, max_length=20)
    senha: Optional[str] = None


# 🔹 Ordens de produção
class OPCreate(_Base):
    op: PositiveInt
    produto: str = Field(min_length=1, max_length=255)
    deposito_final: Optional[str] = None
    pecas_vinculadas: Optional[str] = None
    qtde_programado: Optional[float] = Field(default=None, ge=0)
    qtde_carregado: Optional[float] = Field(default=None, ge=0)
    calculo_quebra: Optional[float] = None
    obs: Optional[str] = None
    um: Optional[str] = Field(default=None, max_length=10)
    narrativa: Optional[str] = None
    nivel: Optional[str] = Field(default=None, max_length=10)
    grupo: Optional[str] = Field(default=None, max_length=10)
    sub: Optional[str] = Field(default=None, max_length=10)
    item: Optional[str] = Field(default=None, max_length=10)


class MoverOP(_Base):
    estagio_id: UUID
    maquina_id: UUID
    quantidade_finalizada: Optional[float] = Field(default=None, gt=0)
    is_reprocesso: bool = False
    operador_id: Optional[UUID] = None


class CancelarOP(_Base):
    motivo_cancelamento_id: UUID


# 🔹 Apontamentos
class IniciarProducao(_Base):
    maquina_id: UUID
    op_id: PositiveInt
    estagio_id: UUID
    operador_id: Optional[UUID] = None
    is_reprocesso: bool = False
    observacoes: Optional[str] = None


class IniciarParadaProducao(_Base):
    motivo_parada_id: UUID
    op_id: Optional[PositiveInt] = None
    operador_id: Optional[UUID] = None
    observacoes: Optional[str] = None


class IniciarParadaMaquina(_Base):
    maquina_id: UUID
    motivo_parada_id: UUID
    op_id: Optional[PositiveInt] = None
    operador_id: Optional[UUID] = None
    data_inicio: Optional[datetime] = None
    observacoes: Optional[str] = None


class FinalizarParada(_Base):
    data_fim: Optional[datetime] = None
    operador_id: Optional[UUID] = None
    observacoes: Optional[str] = None


class FinalizarProducao(_Base):
    quantidade_processada: float = Field(gt=0)
    operador_id: Optional[UUID] = None
    observacoes: Optional[str] = None


class ApontamentoUpdate(_Atualizacao):
    CAMPOS_NAO_NULOS = ("is_reprocesso",)
    quantidade_programada: Optional[float] = Field(default=None, ge=0)
    quantidade_processada: Optional[float] = Field(default=None, ge=0)
    is_reprocesso: Optional[bool] = None
    observacoes: Optional[str] = None
