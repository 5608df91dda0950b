"""Repository for chapter body persistence."""

import psycopg2
from psycopg2.extras import Json

from database import get_db, managed_cursor
from models.novel import BookEpisode
from repositories.base import EpisodeStore
from repositories.metadata_repo import load_json
from utils.record import read_field


class PostgresEpisodeStore(EpisodeStore):
    def __init__(self, conn_provider=None):
        self._conn_provider = conn_provider

    def _conn(self):
        return self._conn_provider() if self._conn_provider else get_db()

    def get(self, provider_id, book_id, episode_id):
        with managed_cursor(self._conn()) as cursor:
            cursor.execute(
                """
                SELECT paragraphs_original, paragraphs_translated
                FROM book_episodes
                WHERE provider_id = %s AND book_id = %s AND episode_id = %s
                """,
                (provider_id, book_id, episode_id),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        translated = load_json(read_field(row, "paragraphs_translated"), None)
        return BookEpisode(
            provider_id=provider_id,
            book_id=book_id,
            episode_id=episode_id,
            paragraphs_original=list(load_json(read_field(row, "paragraphs_original"), [])),
            paragraphs_translated=list(translated) if translated is not None else None,
        )

    def _count(self, provider_id, book_id, extra_condition=""):
        with managed_cursor(self._conn()) as cursor:
            cursor.execute(
                f"SELECT COUNT(*) AS count FROM book_episodes WHERE provider_id = %s AND book_id = %s{extra_condition}",
                (provider_id, book_id),
            )
            row = cursor.fetchone()
        return int(read_field(row, "count", 0) or 0)

    def count_original(self, provider_id, book_id):
        return self._count(provider_id, book_id)

    def count_translated(self, provider_id, book_id):
        return self._count(provider_id, book_id, " AND paragraphs_translated IS NOT NULL")

    def upsert_original(self, provider_id, book_id, episode_id, paragraphs):
        """Store the original track; a translation survives only if the original is unchanged."""
        conn = self._conn()
        try:
            with managed_cursor(conn) as cursor:
                cursor.execute(
                    """
                    INSERT INTO book_episodes (provider_id, book_id, episode_id, paragraphs_original)
                    VALUES (%s, %s, %s, %s)
                    ON CONFLICT (provider_id, book_id, episode_id) DO UPDATE SET
                        paragraphs_translated = CASE
                            WHEN book_episodes.paragraphs_original = EXCLUDED.paragraphs_original
                            THEN book_episodes.paragraphs_translated
                        END,
                        paragraphs_original = EXCLUDED.paragraphs_original,
                        updated_at = NOW()
                    """,
                    (provider_id, book_id, episode_id, Json(list(paragraphs))),
                )
            conn.commit()
        except psycopg2.Error:
            conn.rollback()
            raise
