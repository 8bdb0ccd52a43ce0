"""Database initialization and schema management."""

from typing import Any, Dict

import psycopg
from psycopg.errors import DatabaseError

from ..logging_config import get_logger
from .connection import get_connection

logger = get_logger(__name__)


SCHEMA_SQL = """
-- Cluster definitions
CREATE TABLE IF NOT EXISTS clusters (
    id SERIAL PRIMARY KEY,
    name TEXT NOT NULL,
    category TEXT NOT NULL DEFAULT 'general',
    description TEXT,
    max_members INTEGER NOT NULL DEFAULT 5 CHECK (max_members >= 1),
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- One row per cohort of a cluster
CREATE TABLE IF NOT EXISTS cohorts (
    cohort_id TEXT PRIMARY KEY,
    cluster_id INTEGER NOT NULL REFERENCES clusters(id) ON DELETE CASCADE,
    state TEXT NOT NULL DEFAULT 'open'
        CHECK (state IN ('open', 'full_pending_exchange', 'exchange_ready', 'reset')),
    current_members INTEGER NOT NULL DEFAULT 0,
    max_members INTEGER NOT NULL,
    vcf_file_name TEXT,
    vcf_generated_at TIMESTAMPTZ,
    vcf_download_count INTEGER NOT NULL DEFAULT 0,
    opened_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    full_at TIMESTAMPTZ,
    fill_cycle INTEGER NOT NULL DEFAULT 0,
    reset_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    CHECK (current_members >= 0 AND current_members <= max_members)
);

-- Counts how often the cohort reached capacity; a leave starts a new fill
ALTER TABLE cohorts ADD COLUMN IF NOT EXISTS fill_cycle INTEGER NOT NULL DEFAULT 0;

-- At most one non-reset cohort per cluster
CREATE UNIQUE INDEX IF NOT EXISTS uq_cohorts_active_per_cluster
    ON cohorts(cluster_id) WHERE state <> 'reset';

-- Profiles written by the waitlist signup
CREATE TABLE IF NOT EXISTS user_profiles (
    user_id TEXT PRIMARY KEY,
    email TEXT,
    full_name TEXT,
    nickname TEXT NOT NULL,
    whatsapp_number TEXT,
    age INTEGER,
    gender TEXT,
    country TEXT,
    state TEXT,
    city TEXT,
    profession TEXT,
    display_profession BOOLEAN NOT NULL DEFAULT FALSE,
    hobbies TEXT[] NOT NULL DEFAULT '{}',
    services TEXT[] NOT NULL DEFAULT '{}',
    friend_reasons TEXT[] NOT NULL DEFAULT '{}',
    referral_code TEXT UNIQUE,
    referrals INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP
);

-- Cohort memberships; one row per user per cluster until leave or reset
CREATE TABLE IF NOT EXISTS cluster_members (
    id SERIAL PRIMARY KEY,
    cluster_id INTEGER NOT NULL REFERENCES clusters(id) ON DELETE CASCADE,
    cohort_id TEXT NOT NULL REFERENCES cohorts(cohort_id) ON DELETE CASCADE,
    user_id TEXT NOT NULL,
    display_profession BOOLEAN NOT NULL DEFAULT FALSE,
    joined_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    vcf_downloaded_at TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ NOT NULL DEFAULT CURRENT_TIMESTAMP,
    UNIQUE (cluster_id, user_id)
);

-- Create indexes
CREATE INDEX IF NOT EXISTS idx_cohorts_cluster_id ON cohorts(cluster_id);
CREATE INDEX IF NOT EXISTS idx_cluster_members_cohort_id ON cluster_members(cohort_id);
CREATE INDEX IF NOT EXISTS idx_user_profiles_referrals ON user_profiles(referrals DESC);

-- Update trigger function
CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = CURRENT_TIMESTAMP;
    RETURN NEW;
END;
$$ language 'plpgsql';

-- Create update triggers
CREATE OR REPLACE TRIGGER update_clusters_updated_at BEFORE UPDATE ON clusters
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

CREATE OR REPLACE TRIGGER update_cohorts_updated_at BEFORE UPDATE ON cohorts
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

CREATE OR REPLACE TRIGGER update_user_profiles_updated_at BEFORE UPDATE ON user_profiles
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

CREATE OR REPLACE TRIGGER update_cluster_members_updated_at BEFORE UPDATE ON cluster_members
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
"""


def validate_connection(config: Dict[str, Any]) -> bool:
    """Validate database connection."""
    try:
        with get_connection(config) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1 AS ok")
                result = cur.fetchone()
                return result is not None and result["ok"] == 1
    except psycopg.Error as e:
        logger.error(f"Database connection failed: {e}")
        return False


def init_database(config: Dict[str, Any]) -> None:
    """Initialize database schema."""
    try:
        with get_connection(config) as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
            conn.commit()
            logger.info("Database schema initialized successfully")
    except DatabaseError as e:
        logger.error(f"Failed to initialize database schema: {e}")
        raise
