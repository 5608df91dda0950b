# database.py

from contextlib import contextmanager

import psycopg2
import psycopg2.extras
from flask import g

import config


SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS book_metadata (
        provider_id TEXT NOT NULL,
        book_id TEXT NOT NULL,
        title_original TEXT NOT NULL,
        title_translated TEXT,
        authors JSONB NOT NULL DEFAULT '[]'::jsonb,
        introduction_original TEXT NOT NULL DEFAULT '',
        introduction_translated TEXT,
        glossary JSONB NOT NULL DEFAULT '{}'::jsonb,
        toc JSONB NOT NULL DEFAULT '[]'::jsonb,
        visited BIGINT NOT NULL DEFAULT 0,
        downloaded BIGINT NOT NULL DEFAULT 0,
        created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        sync_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (provider_id, book_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS book_episodes (
        provider_id TEXT NOT NULL,
        book_id TEXT NOT NULL,
        episode_id TEXT NOT NULL,
        paragraphs_original JSONB NOT NULL DEFAULT '[]'::jsonb,
        paragraphs_translated JSONB,
        updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
        PRIMARY KEY (provider_id, book_id, episode_id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_book_metadata_created_at ON book_metadata (created_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_book_metadata_sync_at ON book_metadata (sync_at DESC)",
    "CREATE INDEX IF NOT EXISTS idx_book_metadata_visited ON book_metadata (visited DESC)",
)


def _connect_kwargs():
    # Timestamps come back as aware datetimes in this zone.
    options = f"-c timezone={config.DB_TIMEZONE}"
    if config.DATABASE_URL:
        return {
            'dsn': config.DATABASE_URL,
            'application_name': config.DB_APPLICATION_NAME,
            'options': options,
        }
    return {
        'dbname': config.DB_NAME,
        'user': config.DB_USER,
        'password': config.DB_PASSWORD,
        'host': config.DB_HOST,
        'port': config.DB_PORT,
        'application_name': config.DB_APPLICATION_NAME,
        'options': options,
    }


def create_standalone_connection():
    """Open a connection outside the Flask app context (scripts, init)."""
    return psycopg2.connect(**_connect_kwargs())


def get_db():
    """Return the single DB connection bound to the current app context."""
    if 'db' not in g:
        g.db = create_standalone_connection()
    return g.db


def close_db(exception=None):
    """Close the request-scoped connection on app context teardown."""
    db = g.pop('db', None)
    if db is not None:
        db.close()


def get_cursor(conn):
    return conn.cursor(cursor_factory=psycopg2.extras.RealDictCursor)


@contextmanager
def managed_cursor(conn):
    cursor = get_cursor(conn)
    try:
        yield cursor
    finally:
        cursor.close()


def setup_database(conn):
    """Create tables and indexes if they do not exist yet."""
    with managed_cursor(conn) as cursor:
        for statement in SCHEMA_STATEMENTS:
            cursor.execute(statement)
    conn.commit()


def setup_database_standalone():
    conn = create_standalone_connection()
    try:
        setup_database(conn)
    except psycopg2.Error:
        conn.rollback()
        raise
    finally:
        conn.close()
