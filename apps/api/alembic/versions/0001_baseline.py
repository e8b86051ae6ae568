"""Baseline migration - tenants, custom properties, saved reports and schedules

Revision ID: 0001_baseline
Revises: 
Create Date: 2026-10-16

Creates the tenant/auth tables, the audit log, custom property definitions,
scheduled exports and saved reports.
"""
from typing import Sequence, Union

from alembic import op


# revision identifiers, used by Alembic.
revision: str = '0001_baseline'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all report engine tables."""

    op.execute('CREATE EXTENSION IF NOT EXISTS pgcrypto')  # For gen_random_uuid()
    op.execute('CREATE EXTENSION IF NOT EXISTS citext')    # For case-insensitive email

    # ==========================================================================
    # Tenants and users
    # ==========================================================================
    op.execute('''
        CREATE TABLE organizations (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(255) NOT NULL,
            slug VARCHAR(100) UNIQUE NOT NULL,
            timezone VARCHAR(50) NOT NULL DEFAULT 'America/New_York',
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    op.execute('''
        CREATE TABLE users (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            email CITEXT UNIQUE NOT NULL,
            display_name VARCHAR(255) NOT NULL,
            token_version INTEGER NOT NULL DEFAULT 1,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    op.execute('''
        CREATE TABLE memberships (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            user_id UUID UNIQUE NOT NULL REFERENCES users(id) ON DELETE CASCADE,
            organization_id UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            role VARCHAR(50) NOT NULL,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')

    # ==========================================================================
    # Audit log (hash-chained per organization)
    # ==========================================================================
    op.execute('''
        CREATE TABLE audit_logs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            organization_id UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            actor_user_id UUID REFERENCES users(id) ON DELETE SET NULL,
            event_type VARCHAR(50) NOT NULL,
            target_type VARCHAR(50),
            target_id UUID,
            details JSONB,
            ip_address VARCHAR(45),
            user_agent TEXT,
            prev_hash VARCHAR(64),
            entry_hash VARCHAR(64),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute('CREATE INDEX idx_audit_org_created ON audit_logs(organization_id, created_at)')
    op.execute(
        'CREATE INDEX idx_audit_org_event_created '
        'ON audit_logs(organization_id, event_type, created_at)'
    )
    op.execute(
        'CREATE INDEX idx_audit_org_target ON audit_logs(organization_id, target_type, target_id)'
    )

    # ==========================================================================
    # Custom property definitions
    # ==========================================================================
    op.execute('''
        CREATE TABLE custom_fields (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            organization_id UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            entity_type VARCHAR(30) NOT NULL,
            key VARCHAR(100) NOT NULL,
            label VARCHAR(255) NOT NULL,
            data_type VARCHAR(30) NOT NULL,
            group_name VARCHAR(100),
            display_order INTEGER NOT NULL DEFAULT 0,
            options JSONB,
            is_active BOOLEAN NOT NULL DEFAULT true,
            created_by_user_id UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_custom_field_key UNIQUE (organization_id, entity_type, key)
        )
    ''')
    op.execute(
        'CREATE INDEX idx_custom_fields_org_entity '
        'ON custom_fields(organization_id, entity_type, is_active)'
    )

    # ==========================================================================
    # Scheduled exports (must exist before saved_reports references them)
    # ==========================================================================
    op.execute('''
        CREATE TABLE scheduled_exports (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            organization_id UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            name VARCHAR(200) NOT NULL,
            description TEXT,
            format VARCHAR(10) NOT NULL,
            schedule_type VARCHAR(10) NOT NULL,
            schedule_config JSONB NOT NULL DEFAULT '{}'::jsonb,
            timezone VARCHAR(50) NOT NULL,
            recipients JSONB NOT NULL DEFAULT '[]'::jsonb,
            is_active BOOLEAN NOT NULL DEFAULT true,
            last_run_at TIMESTAMPTZ,
            next_run_at TIMESTAMPTZ,
            created_by_user_id UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute(
        'CREATE INDEX idx_scheduled_exports_due ON scheduled_exports(is_active, next_run_at)'
    )
    op.execute('CREATE INDEX idx_scheduled_exports_org ON scheduled_exports(organization_id)')

    op.execute('''
        CREATE TABLE scheduled_export_runs (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            scheduled_export_id UUID NOT NULL REFERENCES scheduled_exports(id) ON DELETE CASCADE,
            organization_id UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            status VARCHAR(10) NOT NULL DEFAULT 'PENDING',
            requested_by_user_id UUID REFERENCES users(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute(
        'CREATE INDEX idx_scheduled_export_runs_export '
        'ON scheduled_export_runs(scheduled_export_id, created_at)'
    )

    # ==========================================================================
    # Saved reports
    # ==========================================================================
    op.execute('''
        CREATE TABLE saved_reports (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            organization_id UUID NOT NULL REFERENCES organizations(id) ON DELETE CASCADE,
            created_by_user_id UUID NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
            name VARCHAR(200) NOT NULL,
            description TEXT,
            entity_type VARCHAR(30) NOT NULL,
            columns JSONB NOT NULL DEFAULT '[]'::jsonb,
            filters JSONB NOT NULL DEFAULT '[]'::jsonb,
            group_by JSONB,
            aggregation JSONB,
            visualization VARCHAR(20) NOT NULL DEFAULT 'table',
            chart_config JSONB,
            sort_by VARCHAR(100),
            sort_order VARCHAR(4),
            is_template BOOLEAN NOT NULL DEFAULT false,
            template_category VARCHAR(30),
            visibility VARCHAR(10) NOT NULL DEFAULT 'PRIVATE',
            is_favorite BOOLEAN NOT NULL DEFAULT false,
            last_run_at TIMESTAMPTZ,
            last_run_duration INTEGER,
            last_run_row_count INTEGER,
            scheduled_export_id UUID REFERENCES scheduled_exports(id) ON DELETE SET NULL,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        )
    ''')
    op.execute(
        'CREATE INDEX idx_saved_reports_org_updated ON saved_reports(organization_id, updated_at)'
    )
    op.execute(
        'CREATE INDEX idx_saved_reports_org_creator '
        'ON saved_reports(organization_id, created_by_user_id)'
    )
    op.execute(
        'CREATE INDEX idx_saved_reports_org_visibility ON saved_reports(organization_id, visibility)'
    )
    op.execute(
        'CREATE INDEX idx_saved_reports_org_template ON saved_reports(organization_id, is_template)'
    )


def downgrade() -> None:
    """Drop all report engine tables."""
    op.execute('DROP TABLE IF EXISTS saved_reports CASCADE')
    op.execute('DROP TABLE IF EXISTS scheduled_export_runs CASCADE')
    op.execute('DROP TABLE IF EXISTS scheduled_exports CASCADE')
    op.execute('DROP TABLE IF EXISTS custom_fields CASCADE')
    op.execute('DROP TABLE IF EXISTS audit_logs CASCADE')
    op.execute('DROP TABLE IF EXISTS memberships CASCADE')
    op.execute('DROP TABLE IF EXISTS users CASCADE')
    op.execute('DROP TABLE IF EXISTS organizations CASCADE')
