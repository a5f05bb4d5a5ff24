#!/usr/bin/env python3
"""Check that the knowledge entries table exists using the Supabase client."""
import sys

from travel_journal.core.config import get_settings
from travel_journal.core.errors import StoreUnavailable
from travel_journal.db.supabase_client import get_supabase

CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS {table} (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    location TEXT,
    content TEXT NOT NULL,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS {table}_created_at_idx ON {table} (created_at DESC);
"""


def run_migration():
    table = get_settings().KNOWLEDGE_TABLE

    try:
        supabase = get_supabase()
    except StoreUnavailable as e:
        print(f"❌ {e}")
        sys.exit(1)

    try:
        print(f"🔍 Checking that table {table} exists...")
        supabase.table(table).select("id").limit(1).execute()
        print("✅ Table exists!")

    except Exception as e:
        print(f"❌ Check failed: {e}")
        print("💡 Try running this SQL manually in your Supabase SQL editor:")
        print(CREATE_TABLE_SQL.format(table=table))
        sys.exit(1)


if __name__ == "__main__":
    run_migration()
