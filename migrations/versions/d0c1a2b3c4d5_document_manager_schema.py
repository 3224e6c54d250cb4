"""Document manager schema: project hierarchy, checklists, files, content, RACI, comments

Revision ID: d0c1a2b3c4d5
Revises:
Create Date: 2026-10-19 09:12:40.118302

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'd0c1a2b3c4d5'
down_revision = None
branch_labels = None
depends_on = None

# level → (owner table, owner column)
_LEVELS = (
    ('process', 'project_processes', 'process_id'),
    ('task', 'project_tasks', 'task_id'),
    ('activity', 'project_activities', 'activity_id'),
    ('subactivity', 'project_subactivities', 'subactivity_id'),
)


def _owner_table(name, parent_table, parent_col):
    op.create_table(
        name,
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column(parent_col, sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.ForeignKeyConstraint([parent_col], [f'{parent_table}.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(f'ix_{name}_{parent_col}', name, [parent_col])


def upgrade():
    # ── User scope & projects ────────────────────────────────────────────
    op.create_table(
        'project_users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pmwb_user_id', sa.Integer(), nullable=False),
        sa.Column('pmweb_project_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_project_users_pmwb_user_id', 'project_users', ['pmwb_user_id'])
    op.create_index('idx_pu_user_project', 'project_users', ['pmwb_user_id', 'pmweb_project_id'])

    op.create_table(
        'sg_projects',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('pmweb_project_id', sa.Integer(), nullable=False),
        sa.Column('pmweb_project_name', sa.String(length=255), nullable=True),
        sa.Column('project_community', sa.String(length=255), nullable=True),
        sa.Column('project_phase_or_project', sa.String(length=255), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_sg_projects_pmweb_project_id', 'sg_projects', ['pmweb_project_id'])

    op.create_table(
        'project_phase_asset_details',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('pmweb_project_id', sa.Integer(), nullable=False),
        sa.Column('community', sa.String(length=255), nullable=True),
        sa.Column('project', sa.String(length=255), nullable=True, comment='Phase label'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_project_phase_asset_details_pmweb_project_id',
                    'project_phase_asset_details', ['pmweb_project_id'])

    # ── Stage-gate → sub-activity chain ──────────────────────────────────
    op.create_table(
        'project_stagegates',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('project_id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.ForeignKeyConstraint(['project_id'], ['sg_projects.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('idx_sg_project_active', 'project_stagegates', ['project_id', 'is_active'])

    _owner_table('project_processes', 'project_stagegates', 'stagegate_id')
    _owner_table('project_tasks', 'project_processes', 'process_id')
    _owner_table('project_activities', 'project_tasks', 'task_id')
    _owner_table('project_subactivities', 'project_activities', 'activity_id')

    # ── Checklists, checklist files, RACI rows (one table per level) ─────
    for level, owner_table, owner_col in _LEVELS:
        checklists = f'project_{level}_checklists'
        op.create_table(
            checklists,
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column(owner_col, sa.String(length=36), nullable=False),
            sa.Column('title', sa.String(length=255), nullable=True),
            sa.ForeignKeyConstraint([owner_col], [f'{owner_table}.id'], ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(f'ix_{checklists}_{owner_col}', checklists, [owner_col])

        files = f'project_{level}_files'
        op.create_table(
            files,
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column('checklist_id', sa.String(length=36), nullable=False),
            sa.Column('file_id', sa.String(length=36), nullable=True,
                      comment='NULL → row id is the file id'),
            sa.Column('file_name', sa.String(length=255), nullable=True),
            sa.Column('name', sa.String(length=255), nullable=True, comment='Legacy display name'),
            sa.Column('uploaded_at', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(f'ix_{files}_checklist_id', files, ['checklist_id'])

        raci = f'project_{level}_raci'
        op.create_table(
            raci,
            sa.Column('id', sa.String(length=36), nullable=False),
            sa.Column(owner_col, sa.String(length=36), nullable=True),
            sa.PrimaryKeyConstraint('id'),
        )
        op.create_index(f'ix_{raci}_{owner_col}', raci, [owner_col])

    op.create_table(
        'project_threads',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('checklist_id', sa.String(length=36), nullable=False),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('participants', sa.JSON(), nullable=True),
        sa.Column('sample_attachments', sa.JSON(), nullable=True),
        sa.Column('sample_attachements', sa.JSON(), nullable=True),
        sa.Column('thread_attachments', sa.JSON(), nullable=True),
        sa.Column('thread_attachements', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_project_threads_checklist_id', 'project_threads', ['checklist_id'])

    op.create_table(
        'raci_assignees',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('assignee_id', sa.Integer(), nullable=False),
        sa.Column('raci_id', sa.String(length=36), nullable=True),
        sa.Column('raci_id_alt', sa.String(length=36), nullable=True, comment='Legacy RaciId'),
        sa.Column('raci_group', sa.String(length=50), nullable=True),
        sa.Column('raci_group_alt', sa.String(length=50), nullable=True, comment='Legacy RaciGroup'),
        sa.Column('role', sa.String(length=1), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_raci_assignees_assignee_id', 'raci_assignees', ['assignee_id'])

    # ── Users, content, versions, comments ───────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('object_ref', sa.String(length=36), nullable=True),
        sa.Column('code', sa.Integer(), nullable=True, comment='Numeric PMWB user code'),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('username', sa.String(length=150), nullable=True),
        sa.Column('display_name', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('object_ref'),
    )
    op.create_index('ix_users_code', 'users', ['code'])
    op.create_index('ix_users_email', 'users', ['email'])
    op.create_index('ix_users_username', 'users', ['username'])

    op.create_table(
        'file_contents',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=True),
        sa.Column('file_type', sa.String(length=100), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('content_text', sa.Text(), nullable=True),
        sa.Column('content_blob', sa.LargeBinary(), nullable=True, comment='Legacy raw payload'),
        sa.Column('storage_path', sa.String(length=500), nullable=True),
        sa.Column('created_date', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_file_contents_file_name', 'file_contents', ['file_name'])

    op.create_table(
        'file_content_versions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('file_id', sa.String(length=36), nullable=False),
        sa.Column('version_no', sa.Integer(), nullable=False),
        sa.Column('file_name', sa.String(length=255), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('created_date', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('file_id', 'version_no', name='uq_fcv_file_version'),
    )
    op.create_index('ix_file_content_versions_file_id', 'file_content_versions', ['file_id'])

    op.create_table(
        'file_comments',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('file_id', sa.String(length=36), nullable=False),
        sa.Column('comment', sa.Text(), nullable=False),
        sa.Column('author_id', sa.Integer(), nullable=True),
        sa.Column('created_by_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['author_id'], ['users.id'], ondelete='SET NULL'),
        sa.ForeignKeyConstraint(['created_by_id'], ['users.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_file_comments_file_id', 'file_comments', ['file_id'])


def downgrade():
    op.drop_table('file_comments')
    op.drop_table('file_content_versions')
    op.drop_table('file_contents')
    op.drop_table('users')
    op.drop_table('raci_assignees')
    op.drop_table('project_threads')
    for level, _owner_table, _owner_col in reversed(_LEVELS):
        op.drop_table(f'project_{level}_raci')
        op.drop_table(f'project_{level}_files')
        op.drop_table(f'project_{level}_checklists')
    op.drop_table('project_subactivities')
    op.drop_table('project_activities')
    op.drop_table('project_tasks')
    op.drop_table('project_processes')
    op.drop_table('project_stagegates')
    op.drop_table('project_phase_asset_details')
    op.drop_table('sg_projects')
    op.drop_table('project_users')
