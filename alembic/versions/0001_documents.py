"""documents

Revision ID: 0001_documents
Revises: 
Create Date: 2026-10-12 10:15:00.000000
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_documents"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "documents",
        sa.Column("id", sa.String(length=36), primary_key=True, nullable=False),
        sa.Column("collection", sa.String(length=255), nullable=False),
        sa.Column("doc_id", sa.String(length=128), nullable=False),
        sa.Column("data", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("collection", "doc_id", name="uq_document_collection_doc"),
    )
    op.create_index(op.f("ix_documents_collection"), "documents", ["collection"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_documents_collection"), table_name="documents")
    op.drop_table("documents")
