"""Criando tabelas do apontador (cadastros, OPs e apontamentos)

Revision ID: a1f3c9d2e7b4
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1f3c9d2e7b4'
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def upgrade():
    # --- 1. Estrutura da fábrica ---
    op.create_table('areas',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('nome', sa.String(length=100), nullable=False),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('nome')
    )
    op.create_table('setores',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('nome', sa.String(length=100), nullable=False),
        sa.Column('area_id', sa.Uuid(), nullable=False),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['area_id'], ['areas.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_table('maquinas',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('nome', sa.String(length=100), nullable=False),
        sa.Column('codigo', sa.String(length=20), nullable=False),
        sa.Column('qr_code', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('ativo', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('codigo')
    )
    op.create_table('maquinas_setores',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('maquina_id', sa.Uuid(), nullable=False),
        sa.Column('setor_id', sa.Uuid(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['maquina_id'], ['maquinas.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['setor_id'], ['setores.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('maquina_id', 'setor_id', name='uq_maquina_setor')
    )
    op.create_table('estagios',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('codigo', sa.String(length=2), nullable=False),
        sa.Column('nome', sa.String(length=50), nullable=False),
        sa.Column('ordem', sa.Integer(), nullable=False),
        sa.Column('descricao', sa.Text(), nullable=True),
        sa.Column('cor', sa.String(length=7), nullable=False),
        sa.Column('mostrar_no_kanban', sa.Boolean(), nullable=False),
        sa.Column('ativo', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('codigo')
    )

    # --- 2. Motivos e produtos ---
    for tabela in ('motivos_parada', 'motivos_cancelamento'):
        op.create_table(tabela,
            sa.Column('id', sa.Uuid(), nullable=False),
            sa.Column('codigo', sa.String(length=10), nullable=False),
            sa.Column('descricao', sa.String(length=255), nullable=False),
            sa.Column('ativo', sa.Boolean(), nullable=False),
            *_timestamps(),
            sa.PrimaryKeyConstraint('id'),
            sa.UniqueConstraint('codigo')
        )
    op.create_table('produtos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('codigo', sa.String(length=50), nullable=False),
        sa.Column('nome', sa.String(length=200), nullable=False),
        sa.Column('um', sa.String(length=10), nullable=False),
        sa.Column('nivel', sa.String(length=10), nullable=True),
        sa.Column('grupo', sa.String(length=10), nullable=True),
        sa.Column('sub', sa.String(length=10), nullable=True),
        sa.Column('item', sa.String(length=10), nullable=True),
        sa.Column('parametros_eficiencia', sa.JSON(), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('codigo')
    )

    # --- 3. Usuários ---
    op.create_table('usuarios',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('nome', sa.String(length=100), nullable=False),
        sa.Column('matricula', sa.String(length=20), nullable=False),
        sa.Column('nivel', sa.String(length=10), nullable=False),
        sa.Column('senha_hash', sa.String(length=255), nullable=True),
        sa.Column('qr_code', sa.String(length=255), nullable=True),
        sa.Column('ativo', sa.Boolean(), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('matricula')
    )

    # --- 4. Ordens de produção ---
    op.create_table('ops',
        sa.Column('op', sa.Integer(), autoincrement=False, nullable=False),
        sa.Column('produto', sa.String(length=255), nullable=False),
        sa.Column('deposito_final', sa.String(length=50), nullable=True),
        sa.Column('pecas_vinculadas', sa.String(length=50), nullable=True),
        sa.Column('qtde_programado', sa.Float(), nullable=True),
        sa.Column('qtde_carregado', sa.Float(), nullable=True),
        sa.Column('qtde_produzida', sa.Float(), nullable=True),
        sa.Column('calculo_quebra', sa.Float(), nullable=True),
        sa.Column('obs', sa.Text(), nullable=True),
        sa.Column('um', sa.String(length=10), nullable=True),
        sa.Column('narrativa', sa.Text(), nullable=True),
        sa.Column('nivel', sa.String(length=10), nullable=True),
        sa.Column('grupo', sa.String(length=10), nullable=True),
        sa.Column('sub', sa.String(length=10), nullable=True),
        sa.Column('item', sa.String(length=10), nullable=True),
        sa.Column('produto_id', sa.Uuid(), nullable=True),
        sa.Column('cod_estagio_atual', sa.String(length=2), nullable=False),
        sa.Column('estagio_atual', sa.String(length=50), nullable=False),
        sa.Column('cod_maquina_atual', sa.String(length=20), nullable=False),
        sa.Column('maquina_atual', sa.String(length=100), nullable=False),
        sa.Column('cod_motivo_cancelamento', sa.String(length=10), nullable=True),
        sa.Column('motivo_cancelamento', sa.String(length=255), nullable=True),
        sa.Column('data_cancelamento', sa.DateTime(), nullable=True),
        sa.Column('usuario_cancelamento_id', sa.Uuid(), nullable=True),
        sa.Column('data_importacao', sa.DateTime(), nullable=False),
        sa.Column('data_ultimo_apontamento', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(['produto_id'], ['produtos.id']),
        sa.ForeignKeyConstraint(['usuario_cancelamento_id'], ['usuarios.id']),
        sa.PrimaryKeyConstraint('op')
    )

    # --- 5. Apontamentos (produção + parada) ---
    op.create_table('apontamentos',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tipo', sa.String(length=10), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('maquina_id', sa.Uuid(), nullable=False),
        sa.Column('op_id', sa.Integer(), nullable=True),
        sa.Column('estagio_id', sa.Uuid(), nullable=True),
        sa.Column('operador_inicio_id', sa.Uuid(), nullable=False),
        sa.Column('operador_fim_id', sa.Uuid(), nullable=True),
        sa.Column('motivo_parada_id', sa.Uuid(), nullable=True),
        sa.Column('producao_id', sa.Uuid(), nullable=True),
        sa.Column('data_inicio', sa.DateTime(), nullable=False),
        sa.Column('data_fim', sa.DateTime(), nullable=True),
        sa.Column('quantidade_programada', sa.Float(), nullable=True),
        sa.Column('quantidade_processada', sa.Float(), nullable=True),
        sa.Column('is_reprocesso', sa.Boolean(), nullable=False),
        sa.Column('observacoes', sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(['maquina_id'], ['maquinas.id']),
        sa.ForeignKeyConstraint(['op_id'], ['ops.op']),
        sa.ForeignKeyConstraint(['estagio_id'], ['estagios.id']),
        sa.ForeignKeyConstraint(['operador_inicio_id'], ['usuarios.id']),
        sa.ForeignKeyConstraint(['operador_fim_id'], ['usuarios.id']),
        sa.ForeignKeyConstraint(['motivo_parada_id'], ['motivos_parada.id']),
        sa.ForeignKeyConstraint(['producao_id'], ['apontamentos.id']),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_apontamentos_data_inicio', 'apontamentos', ['data_inicio'])

    # Um registro aberto por máquina e tipo; uma produção aberta por OP
    op.create_index(
        'uq_apontamento_aberto_maquina_tipo', 'apontamentos', ['maquina_id', 'tipo'],
        unique=True,
        postgresql_where=sa.text('data_fim IS NULL'),
        sqlite_where=sa.text('data_fim IS NULL'),
    )
    op.create_index(
        'uq_apontamento_producao_aberta_op', 'apontamentos', ['op_id'],
        unique=True,
        postgresql_where=sa.text("data_fim IS NULL AND tipo = 'PRODUCAO'"),
        sqlite_where=sa.text("data_fim IS NULL AND tipo = 'PRODUCAO'"),
    )


def downgrade():
    op.drop_index('uq_apontamento_producao_aberta_op', table_name='apontamentos')
    op.drop_index('uq_apontamento_aberto_maquina_tipo', table_name='apontamentos')
    op.drop_index('ix_apontamentos_data_inicio', table_name='apontamentos')
    op.drop_table('apontamentos')
    op.drop_table('ops')
    op.drop_table('usuarios')
    op.drop_table('produtos')
    op.drop_table('motivos_cancelamento')
    op.drop_table('motivos_parada')
    op.drop_table('estagios')
    op.drop_table('maquinas_setores')
    op.drop_table('maquinas')
    op.drop_table('setores')
    op.drop_table('areas')
