"""initial exam schema

Revision ID: 0a1b2c3d4e5f
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = '0a1b2c3d4e5f'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), 'postgresql')

user_role = sa.Enum('teacher', 'student', 'admin', name='user_role')
user_status = sa.Enum('active', 'inactive', name='user_status')
quiz_status = sa.Enum('draft', 'active', 'started', 'finished', name='quiz_status')
question_type = sa.Enum('multiple_choice', 'multiple_selection', 'true_false', 'short_answer', name='question_type')
attempt_status = sa.Enum('waiting', 'in_progress', 'paused', 'submitted', name='attempt_status')


def _base_columns():
    return [
        sa.Column('id', sa.Uuid(as_uuid=True), primary_key=True, nullable=False, index=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        'users',
        *_base_columns(),
        sa.Column('user_id', sa.String(50), nullable=False, unique=True, index=True),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=False),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('role', user_role, nullable=False, index=True),
        sa.Column('status', user_status, nullable=False),
    )

    op.create_table(
        'classes',
        *_base_columns(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('teacher_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
    )

    op.create_table(
        'class_students',
        sa.Column('class_id', sa.Uuid(as_uuid=True), sa.ForeignKey('classes.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('student_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'quizzes',
        *_base_columns(),
        sa.Column('teacher_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('room_code', sa.String(12), nullable=False, unique=True, index=True),
        sa.Column('material_url', sa.String(500), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', quiz_status, nullable=False, index=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
    )

    op.create_table(
        'quiz_classes',
        sa.Column('quiz_id', sa.Uuid(as_uuid=True), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('class_id', sa.Uuid(as_uuid=True), sa.ForeignKey('classes.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'quiz_allowed_students',
        sa.Column('quiz_id', sa.Uuid(as_uuid=True), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('student_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'questions',
        *_base_columns(),
        sa.Column('quiz_id', sa.Uuid(as_uuid=True), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('question_type', question_type, nullable=False),
        sa.Column('question_text', sa.Text(), nullable=False),
        sa.Column('options', JSON_TYPE, nullable=True),
        sa.Column('correct_answer', sa.String(500), nullable=False),
        sa.Column('points', sa.Float(), nullable=False),
        sa.Column('time_limit_seconds', sa.Integer(), nullable=True),
        sa.Column('display_order', sa.Integer(), nullable=False),
    )

    op.create_table(
        'attempts',
        *_base_columns(),
        sa.Column('student_id', sa.Uuid(as_uuid=True), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('quiz_id', sa.Uuid(as_uuid=True), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('status', attempt_status, nullable=False, index=True),
        sa.Column('is_blocked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_paused', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('score', sa.Float(), nullable=True),
        sa.Column('total_points', sa.Float(), nullable=True),
        sa.Column('version', sa.Integer(), nullable=False, server_default='1'),
        sa.UniqueConstraint('student_id', 'quiz_id', name='uq_attempts_student_quiz'),
    )

    op.create_table(
        'answers',
        *_base_columns(),
        sa.Column('attempt_id', sa.Uuid(as_uuid=True), sa.ForeignKey('attempts.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('question_id', sa.Uuid(as_uuid=True), sa.ForeignKey('questions.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('response', JSON_TYPE, nullable=False),
        sa.Column('points_awarded', sa.Float(), nullable=True),
        sa.Column('is_correct', sa.Boolean(), nullable=True),
        sa.Column('time_taken_seconds', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('answered_at', sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint('attempt_id', 'question_id', name='uq_answers_attempt_question'),
    )

    op.create_table(
        'invalid_entries',
        *_base_columns(),
        sa.Column('quiz_id', sa.Uuid(as_uuid=True), sa.ForeignKey('quizzes.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('student_identifier', sa.String(50), nullable=False),
    )


def downgrade() -> None:
    op.drop_table('invalid_entries')
    op.drop_table('answers')
    op.drop_table('attempts')
    op.drop_table('questions')
    op.drop_table('quiz_allowed_students')
    op.drop_table('quiz_classes')
    op.drop_table('quizzes')
    op.drop_table('class_students')
    op.drop_table('classes')
    op.drop_table('users')

    bind = op.get_bind()
    for enum_type in (attempt_status, question_type, quiz_status, user_status, user_role):
        enum_type.drop(bind, checkfirst=True)
