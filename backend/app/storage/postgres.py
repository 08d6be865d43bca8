"""
Postgres schema for FitCheck.

Two tables: one profile row per user, and one usage row per user per UTC day.
"""

import logging

import asyncpg

logger = logging.getLogger(__name__)


# ==================== Schema ====================

CREATE_PROFILES_TABLE = """
CREATE TABLE IF NOT EXISTS profiles (
    id UUID PRIMARY KEY,
    full_name TEXT,
    resume_text TEXT,
    preferred_tone TEXT NOT NULL DEFAULT 'neutral'
        CHECK (preferred_tone IN ('neutral', 'warm', 'formal')),
    target_role TEXT,
    location TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);
"""

CREATE_USAGE_TABLE = """
CREATE TABLE IF NOT EXISTS job_analysis_usage (
    user_id UUID NOT NULL,
    usage_date DATE NOT NULL,
    usage_count INTEGER NOT NULL DEFAULT 0 CHECK (usage_count >= 0),
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    PRIMARY KEY (user_id, usage_date)
);
"""


async def init_schema(conn: asyncpg.Connection) -> None:
    """Initialize database schema.

    Designed to be idempotent and safe on startup.
    """
    await conn.execute(CREATE_PROFILES_TABLE)
    await conn.execute(CREATE_USAGE_TABLE)
    logger.info("Schema ready (profiles, job_analysis_usage)")
