"""Repository for book metadata persistence."""

import json
from dataclasses import asdict

import psycopg2
from psycopg2.extras import Json

from database import get_db, managed_cursor
from models.novel import BookAuthor, BookListItem, BookMetadata, BookTocItem, ListSort
from repositories.base import MetadataStore, RepositoryError
from utils.record import read_field

SORT_ORDER = {
    ListSort.CREATED: "created_at DESC",
    ListSort.UPDATED: "sync_at DESC",
    ListSort.VISITED: "visited DESC",
}

CHAPTER_TOTAL_SQL = (
    "(SELECT COUNT(*) FROM jsonb_array_elements(toc) AS item "
    "WHERE item->>'episode_id' IS NOT NULL)"
)


def load_json(value, default):
    if value is None:
        return default
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError as exc:
            raise RepositoryError(f"stored json is malformed: {exc.msg}") from exc
    return value


def _authors_from_json(value):
    authors = []
    for raw in load_json(value, []):
        if not isinstance(raw, dict) or not raw.get("name"):
            continue
        authors.append(BookAuthor(name=raw["name"], link=raw.get("link")))
    return authors


def _toc_from_json(value):
    toc = []
    for raw in load_json(value, []):
        if not isinstance(raw, dict):
            raise RepositoryError("stored toc entry is not an object")
        episode_id = raw.get("episode_id")
        toc.append(
            BookTocItem(
                title_original=raw.get("title_original") or "",
                title_translated=raw.get("title_translated"),
                episode_id=str(episode_id) if episode_id is not None else None,
            )
        )
    return toc


def row_to_metadata(row) -> BookMetadata:
    return BookMetadata(
        provider_id=read_field(row, "provider_id"),
        book_id=read_field(row, "book_id"),
        title_original=read_field(row, "title_original") or "",
        title_translated=read_field(row, "title_translated"),
        authors=_authors_from_json(read_field(row, "authors")),
        introduction_original=read_field(row, "introduction_original") or "",
        introduction_translated=read_field(row, "introduction_translated"),
        glossary=dict(load_json(read_field(row, "glossary"), {})),
        toc=_toc_from_json(read_field(row, "toc")),
        visited=int(read_field(row, "visited", 0) or 0),
        downloaded=int(read_field(row, "downloaded", 0) or 0),
        sync_at=read_field(row, "sync_at"),
    )


class PostgresMetadataStore(MetadataStore):
    """
    ``list_rank`` is not backed by the database: it resolves the provider and
    fetches its live ranking through the shared ``HttpContext``.
    """

    def __init__(self, registry, http, conn_provider=None):
        self.registry = registry
        self.http = http
        self._conn_provider = conn_provider

    def _conn(self):
        return self._conn_provider() if self._conn_provider else get_db()

    def list(self, page, page_size, option):
        where_sql = ""
        params = []
        if option.provider_id is not None:
            where_sql = "WHERE provider_id = %s"
            params.append(option.provider_id)
        order_sql = SORT_ORDER[option.sort]
        params.extend([page_size, page * page_size])

        with managed_cursor(self._conn()) as cursor:
            cursor.execute(
                f"""
                SELECT provider_id, book_id, title_original, title_translated,
                       {CHAPTER_TOTAL_SQL} AS chapter_total
                FROM book_metadata
                {where_sql}
                ORDER BY {order_sql}, provider_id ASC, book_id ASC
                LIMIT %s OFFSET %s
                """,
                tuple(params),
            )
            rows = cursor.fetchall()

        return [
            BookListItem(
                provider_id=read_field(row, "provider_id"),
                book_id=read_field(row, "book_id"),
                title_original=read_field(row, "title_original") or "",
                title_translated=read_field(row, "title_translated"),
                extra=str(read_field(row, "chapter_total", 0) or 0),
            )
            for row in rows
        ]

    def get(self, provider_id, book_id):
        with managed_cursor(self._conn()) as cursor:
            cursor.execute(
                """
                SELECT provider_id, book_id, title_original, title_translated, authors,
                       introduction_original, introduction_translated, glossary, toc,
                       visited, downloaded, sync_at
                FROM book_metadata
                WHERE provider_id = %s AND book_id = %s
                """,
                (provider_id, book_id),
            )
            row = cursor.fetchone()
        if row is None:
            return None
        return row_to_metadata(row)

    def count(self):
        with managed_cursor(self._conn()) as cursor:
            cursor.execute("SELECT COUNT(*) AS count FROM book_metadata")
            row = cursor.fetchone()
        return int(read_field(row, "count", 0) or 0)

    def count_for_provider(self, provider_id):
        with managed_cursor(self._conn()) as cursor:
            cursor.execute(
                "SELECT COUNT(*) AS count FROM book_metadata WHERE provider_id = %s",
                (provider_id,),
            )
            row = cursor.fetchone()
        return int(read_field(row, "count", 0) or 0)

    def list_rank(self, provider_id, options):
        provider = self.registry.get(provider_id)
        listings = self.http.run(provider.rank(options))
        return [
            BookListItem(
                provider_id=provider_id,
                book_id=listing.novel_id,
                title_original=listing.title,
                extra=listing.meta,
            )
            for listing in listings
        ]

    def increase_visited(self, provider_id, book_id):
        conn = self._conn()
        try:
            with managed_cursor(conn) as cursor:
                cursor.execute(
                    "UPDATE book_metadata SET visited = visited + 1 WHERE provider_id = %s AND book_id = %s",
                    (provider_id, book_id),
                )
            conn.commit()
        except psycopg2.Error:
            conn.rollback()
            raise

    def upsert(self, metadata):
        conn = self._conn()
        try:
            with managed_cursor(conn) as cursor:
                cursor.execute(
                    """
                    INSERT INTO book_metadata (
                        provider_id, book_id, title_original, title_translated, authors,
                        introduction_original, introduction_translated, glossary, toc, sync_at
                    )
                    VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, COALESCE(%s, NOW()))
                    ON CONFLICT (provider_id, book_id) DO UPDATE SET
                        title_original = EXCLUDED.title_original,
                        title_translated = EXCLUDED.title_translated,
                        authors = EXCLUDED.authors,
                        introduction_original = EXCLUDED.introduction_original,
                        introduction_translated = EXCLUDED.introduction_translated,
                        glossary = EXCLUDED.glossary,
                        toc = EXCLUDED.toc,
                        sync_at = EXCLUDED.sync_at
                    """,
                    (
                        metadata.provider_id,
                        metadata.book_id,
                        metadata.title_original,
                        metadata.title_translated,
                        Json([asdict(author) for author in metadata.authors]),
                        metadata.introduction_original,
                        metadata.introduction_translated,
                        Json(metadata.glossary),
                        Json([asdict(item) for item in metadata.toc]),
                        metadata.sync_at,
                    ),
                )
            conn.commit()
        except psycopg2.Error:
            conn.rollback()
            raise
