import os
import sys

import structlog

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)) + '/..')

from db import get_conn
from settings import settings
from log_config import configure_logging

DDL = '''
CREATE TABLE IF NOT EXISTS users (
    id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
    email TEXT NOT NULL UNIQUE,
    name TEXT NOT NULL,
    phone TEXT NOT NULL DEFAULT '',
    pact_id TEXT,
    primary_activity_id TEXT,
    secondary_activity_id TEXT,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
    updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS pacts (
    id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
    title TEXT NOT NULL,
    description TEXT,
    participants TEXT[] NOT NULL DEFAULT '{}',
    status TEXT NOT NULL DEFAULT 'active',
    start_date TIMESTAMP WITH TIME ZONE,
    end_date TIMESTAMP WITH TIME ZONE,
    min_days_per_week INT NOT NULL CHECK (min_days_per_week BETWEEN 1 AND 7),
    max_activities_per_user INT NOT NULL CHECK (max_activities_per_user >= 1),
    skip_fine NUMERIC NOT NULL DEFAULT 0,
    leave_fine NUMERIC NOT NULL DEFAULT 0,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_pacts_participants ON pacts USING GIN (participants);

CREATE TABLE IF NOT EXISTS activities (
    id TEXT PRIMARY KEY DEFAULT gen_random_uuid()::text,
    pact_id TEXT NOT NULL REFERENCES pacts (id),
    user_id TEXT NOT NULL REFERENCES users (id),
    name TEXT NOT NULL,
    description TEXT,
    number_of_days INT NOT NULL DEFAULT 0,
    is_primary BOOLEAN NOT NULL DEFAULT false,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
);

-- at most one primary activity per (pact, user)
CREATE UNIQUE INDEX IF NOT EXISTS uq_activities_primary
    ON activities (pact_id, user_id) WHERE is_primary;

CREATE TABLE IF NOT EXISTS activity_logs (
    id BIGSERIAL PRIMARY KEY,
    pact_id TEXT NOT NULL REFERENCES pacts (id),
    activity_id TEXT NOT NULL REFERENCES activities (id),
    user_id TEXT NOT NULL REFERENCES users (id),
    occurred_at TIMESTAMP WITH TIME ZONE NOT NULL,
    day_key TEXT NOT NULL,
    notes TEXT,
    verified BOOLEAN NOT NULL DEFAULT false,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
    CONSTRAINT uq_activity_logs_day UNIQUE (pact_id, user_id, day_key)
);

CREATE INDEX IF NOT EXISTS idx_activity_logs_pact_activity_ts
    ON activity_logs (pact_id, activity_id, occurred_at);
CREATE INDEX IF NOT EXISTS idx_activity_logs_user_ts
    ON activity_logs (user_id, occurred_at);

CREATE TABLE IF NOT EXISTS media (
    id BIGSERIAL PRIMARY KEY,
    pact_id TEXT NOT NULL REFERENCES pacts (id),
    activity_id TEXT NOT NULL REFERENCES activities (id),
    user_id TEXT NOT NULL REFERENCES users (id),
    provider TEXT NOT NULL DEFAULT 'gdrive' CHECK (provider IN ('gdrive')),
    provider_file_id TEXT NOT NULL,
    name TEXT NOT NULL,
    mime_type TEXT NOT NULL,
    size_bytes BIGINT NOT NULL,
    visibility TEXT NOT NULL DEFAULT 'link' CHECK (visibility IN ('link', 'private')),
    web_view_link TEXT,
    web_content_link TEXT,
    created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_media_owner_created
    ON media (pact_id, activity_id, user_id, created_at);
'''

configure_logging()
logger = structlog.get_logger('scripts')

logger.info('connecting', db_url=settings.db_url.rsplit('@', 1)[-1])
with get_conn() as conn:
    with conn.cursor() as cur:
        cur.execute(DDL)
    conn.commit()
logger.info('ddl_applied')
