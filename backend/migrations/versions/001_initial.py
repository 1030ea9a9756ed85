"""Initial migration - create all tables

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

Creates all database tables for the Exam Grading Service:
- users: Students, teachers and admins
- exams, questions, mcq_options, exam_questions: Exam definitions
- attempts: A student's try at an exam, with its grading status
- answers: One response per attempt and exam question
- answer_grades: The grade of each answer (SYSTEM / AI / TEACHER)
- exam_results: Computed result of a finalized attempt
- notifications, audit_logs: Side-effect sinks

Also creates indexes for common query patterns.
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # ── Users Table ───────────────────────────────────────────
    op.create_table(
        'users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('full_name', sa.Text(), nullable=False),
        sa.Column('email', sa.Text(), nullable=True),
        sa.Column('role', sa.Text(), nullable=False, server_default='STUDENT'),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    # ── Exams Table ───────────────────────────────────────────
    op.create_table(
        'exams',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('subject_name', sa.Text(), nullable=False, server_default='General'),
        sa.Column('total_marks', sa.Float(), nullable=False, server_default='0'),
        sa.Column('passing_marks', sa.Float(), nullable=False, server_default='0'),
        sa.Column('duration_minutes', sa.Integer(), nullable=False, server_default='60'),
        sa.Column('max_attempts', sa.Integer(), nullable=True),
        sa.Column('status', sa.Text(), nullable=False, server_default='DRAFT'),
        sa.Column('created_by_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )

    # ── Question Bank ─────────────────────────────────────────
    op.create_table(
        'questions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('type', sa.Text(), nullable=False, server_default='MCQ'),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('model_answer', sa.Text(), nullable=True),
        sa.Column('difficulty', sa.Text(), nullable=False, server_default='MEDIUM'),
    )

    op.create_table(
        'mcq_options',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('question_id', sa.String(36), sa.ForeignKey('questions.id'), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('is_correct', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_index('ix_mcq_options_question_id', 'mcq_options', ['question_id'])

    op.create_table(
        'exam_questions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('exam_id', sa.String(36), sa.ForeignKey('exams.id'), nullable=False),
        sa.Column('question_id', sa.String(36), sa.ForeignKey('questions.id'), nullable=False),
        sa.Column('marks', sa.Float(), nullable=False, server_default='1'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_index('ix_exam_questions_exam_id', 'exam_questions', ['exam_id'])

    # ── Attempts Table ────────────────────────────────────────
    op.create_table(
        'attempts',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('exam_id', sa.String(36), sa.ForeignKey('exams.id'), nullable=False),
        sa.Column('student_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('attempt_number', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('status', sa.Text(), nullable=False, server_default='NOT_STARTED'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('proctoring_flags', sa.Text(), nullable=True),
    )

    # Indexes for common query patterns on attempts
    op.create_index('ix_attempts_exam_id', 'attempts', ['exam_id'])
    op.create_index('ix_attempts_student_id', 'attempts', ['student_id'])
    op.create_index('ix_attempts_status', 'attempts', ['status'])

    # ── Answers Table ─────────────────────────────────────────
    op.create_table(
        'answers',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('attempt_id', sa.String(36), sa.ForeignKey('attempts.id'), nullable=False),
        sa.Column('exam_question_id', sa.String(36),
                  sa.ForeignKey('exam_questions.id'), nullable=False),
        sa.Column('answer_text', sa.Text(), nullable=True),
        sa.Column('selected_option_id', sa.String(36),
                  sa.ForeignKey('mcq_options.id'), nullable=True),
        sa.Column('answered_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=True),
        sa.UniqueConstraint('attempt_id', 'exam_question_id', name='uq_answers_attempt_question'),
    )

    # ── Answer Grades Table ───────────────────────────────────
    op.create_table(
        'answer_grades',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('answer_id', sa.String(36), sa.ForeignKey('answers.id'),
                  nullable=False, unique=True),
        sa.Column('graded_by', sa.Text(), nullable=False),
        sa.Column('grader_id', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('marks_awarded', sa.Float(), nullable=False, server_default='0'),
        sa.Column('max_marks', sa.Float(), nullable=False),
        sa.Column('feedback', sa.Text(), nullable=True),
        sa.Column('ai_confidence', sa.Float(), nullable=True),
        sa.Column('ai_model_used', sa.Text(), nullable=True),
        sa.Column('ai_prompt_tokens', sa.Integer(), nullable=True),
        sa.Column('ai_response_tokens', sa.Integer(), nullable=True),
        sa.Column('is_reviewed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by_id', sa.String(36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint('marks_awarded >= 0 AND marks_awarded <= max_marks',
                           name='ck_answer_grades_marks_range'),
    )

    # ── Exam Results Table ────────────────────────────────────
    op.create_table(
        'exam_results',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('attempt_id', sa.String(36), sa.ForeignKey('attempts.id'),
                  nullable=False, unique=True),
        sa.Column('student_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('exam_id', sa.String(36), sa.ForeignKey('exams.id'), nullable=False),
        sa.Column('obtained_marks', sa.Float(), nullable=False, server_default='0'),
        sa.Column('total_marks', sa.Float(), nullable=False, server_default='0'),
        sa.Column('percentage', sa.Float(), nullable=False, server_default='0'),
        sa.Column('grade', sa.Text(), nullable=False),
        sa.Column('is_passed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('computed_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_exam_results_student_id', 'exam_results', ['student_id'])

    # ── Side-effect sinks ─────────────────────────────────────
    op.create_table(
        'notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('kind', sa.Text(), nullable=False),
        sa.Column('title', sa.Text(), nullable=False),
        sa.Column('body', sa.Text(), nullable=False),
        sa.Column('link', sa.Text(), nullable=True),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('actor_id', sa.String(36), nullable=False),
        sa.Column('action', sa.Text(), nullable=False),
        sa.Column('entity_type', sa.Text(), nullable=False),
        sa.Column('entity_id', sa.String(36), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True),
                  server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'])


def downgrade() -> None:
    """Drop all tables in reverse dependency order."""
    op.drop_index('ix_audit_logs_entity', table_name='audit_logs')
    op.drop_table('audit_logs')
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_exam_results_student_id', table_name='exam_results')
    op.drop_table('exam_results')
    op.drop_table('answer_grades')
    op.drop_table('answers')
    op.drop_index('ix_attempts_status', table_name='attempts')
    op.drop_index('ix_attempts_student_id', table_name='attempts')
    op.drop_index('ix_attempts_exam_id', table_name='attempts')
    op.drop_table('attempts')
    op.drop_index('ix_exam_questions_exam_id', table_name='exam_questions')
    op.drop_table('exam_questions')
    op.drop_index('ix_mcq_options_question_id', table_name='mcq_options')
    op.drop_table('mcq_options')
    op.drop_table('questions')
    op.drop_table('exams')
    op.drop_table('users')
