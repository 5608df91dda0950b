import asyncio
import json
from datetime import datetime, timezone

import psycopg2
import pytest

from models.novel import BookAuthor, BookMetadata, BookTocItem, ListOption, ListSort
from providers.base_provider import ProviderNotFoundError, RemoteListing
from providers.registry import ProviderRegistry
from repositories.base import RepositoryError
from repositories.metadata_repo import PostgresMetadataStore, row_to_metadata


class FakeCursor:
    def __init__(self, fetchone_values=None, fetchall_values=None, fail=False):
        self.fetchone_values = list(fetchone_values or [])
        self.fetchall_values = list(fetchall_values or [])
        self.executed = []
        self.closed = False
        self.fail = fail

    def execute(self, query, params=None):
        if self.fail:
            raise psycopg2.OperationalError("server closed the connection")
        self.executed.append((query, params))

    def fetchone(self):
        if not self.fetchone_values:
            return None
        return self.fetchone_values.pop(0)

    def fetchall(self):
        if not self.fetchall_values:
            return []
        return self.fetchall_values.pop(0)

    def close(self):
        self.closed = True


class FakeConn:
    def __init__(self, cursors=None):
        self.cursors = list(cursors or [])
        self.commit_calls = 0
        self.rollback_calls = 0

    def cursor(self, cursor_factory=None):
        if self.cursors:
            return self.cursors.pop(0)
        return FakeCursor()

    def commit(self):
        self.commit_calls += 1

    def rollback(self):
        self.rollback_calls += 1


class FakeProvider:
    def __init__(self, provider_id="syosetu"):
        self.provider_id = provider_id
        self.options = None

    async def rank(self, options):
        self.options = options
        return [RemoteListing(novel_id="n9", title="ランキング一位", meta="作者 / 完結 全3話")]


class FakeHttp:
    def __init__(self):
        self.ran = 0

    def run(self, coro):
        self.ran += 1
        return asyncio.run(coro)


def _store(conn, registry=None, http=None):
    return PostgresMetadataStore(
        registry or ProviderRegistry(), http or FakeHttp(), conn_provider=lambda: conn
    )


def _row(**overrides):
    row = {
        "provider_id": "kakuyomu",
        "book_id": "1177354054",
        "title_original": "題名",
        "title_translated": None,
        "authors": [{"name": "著者", "link": None}, {"name": ""}],
        "introduction_original": "紹介",
        "introduction_translated": "简介",
        "glossary": {"勇者": "勇者"},
        "toc": [
            {"title_original": "第一章", "title_translated": None, "episode_id": None},
            {"title_original": "一話", "title_translated": "第一话", "episode_id": 1001},
        ],
        "visited": 3,
        "downloaded": None,
        "sync_at": datetime(2024, 5, 1, tzinfo=timezone.utc),
    }
    row.update(overrides)
    return row


def test_row_to_metadata_maps_json_columns():
    metadata = row_to_metadata(_row())

    assert metadata.authors == [BookAuthor(name="著者")]
    assert metadata.toc[1] == BookTocItem("一話", "第一话", "1001")
    assert metadata.downloaded == 0
    assert [item.episode_id for item in metadata.chapters()] == ["1001"]


def test_row_to_metadata_accepts_json_text():
    metadata = row_to_metadata(_row(toc=json.dumps([{"title_original": "x", "episode_id": "1"}])))

    assert metadata.toc == [BookTocItem("x", None, "1")]


def test_row_to_metadata_rejects_malformed_json():
    with pytest.raises(RepositoryError):
        row_to_metadata(_row(toc="[{broken"))


@pytest.mark.parametrize(
    "sort, expected",
    [
        (ListSort.CREATED, "ORDER BY created_at DESC"),
        (ListSort.UPDATED, "ORDER BY sync_at DESC"),
        (ListSort.VISITED, "ORDER BY visited DESC"),
    ],
)
def test_list_orders_by_sort_key(sort, expected):
    cursor = FakeCursor(fetchall_values=[[]])
    store = _store(FakeConn([cursor]))

    store.list(0, 10, ListOption(sort=sort))

    query, params = cursor.executed[0]
    assert expected in query
    assert "WHERE provider_id" not in query
    assert params == (10, 0)


def test_list_filters_by_provider_and_maps_chapter_total():
    cursor = FakeCursor(
        fetchall_values=[
            [
                {
                    "provider_id": "hameln",
                    "book_id": "123",
                    "title_original": "タイトル",
                    "title_translated": "标题",
                    "chapter_total": 12,
                }
            ]
        ]
    )
    store = _store(FakeConn([cursor]))

    items = store.list(2, 10, ListOption(provider_id="hameln"))

    query, params = cursor.executed[0]
    assert "WHERE provider_id = %s" in query
    assert params == ("hameln", 10, 20)
    assert items[0].extra == "12"
    assert items[0].title_translated == "标题"
    assert cursor.closed is True


def test_get_returns_none_for_missing_row():
    store = _store(FakeConn([FakeCursor(fetchone_values=[None])]))

    assert store.get("syosetu", "n0") is None


def test_count_reads_count_column():
    cursor = FakeCursor(fetchone_values=[{"count": 25}])
    store = _store(FakeConn([cursor]))

    assert store.count_for_provider("syosetu") == 25
    assert cursor.executed[0][1] == ("syosetu",)


def test_list_rank_resolves_provider_and_maps_listing():
    provider = FakeProvider()
    http = FakeHttp()
    store = _store(FakeConn(), registry=ProviderRegistry([provider]), http=http)

    items = store.list_rank("syosetu", {"order": "weeklypoint"})

    assert provider.options == {"order": "weeklypoint"}
    assert http.ran == 1
    assert items[0].provider_id == "syosetu"
    assert items[0].book_id == "n9"
    assert items[0].extra == "作者 / 完結 全3話"


def test_list_rank_unknown_provider_raises():
    store = _store(FakeConn())

    with pytest.raises(ProviderNotFoundError):
        store.list_rank("nope", {})


def test_increase_visited_is_single_atomic_update():
    cursor = FakeCursor()
    conn = FakeConn([cursor])

    _store(conn).increase_visited("syosetu", "n1")

    query, params = cursor.executed[0]
    assert "visited = visited + 1" in query
    assert params == ("syosetu", "n1")
    assert conn.commit_calls == 1


def test_each_visit_is_its_own_increment_without_reading_the_counter():
    first, second = FakeCursor(), FakeCursor()
    conn = FakeConn([first, second])
    store = _store(conn)

    store.increase_visited("syosetu", "n1")
    store.increase_visited("syosetu", "n1")

    for cursor in (first, second):
        assert len(cursor.executed) == 1
        query = cursor.executed[0][0]
        assert query.startswith("UPDATE book_metadata SET visited = visited + 1")
        assert "SELECT" not in query
    assert conn.commit_calls == 2


def test_increase_visited_rolls_back_on_error():
    conn = FakeConn([FakeCursor(fail=True)])

    with pytest.raises(psycopg2.OperationalError):
        _store(conn).increase_visited("syosetu", "n1")

    assert conn.rollback_calls == 1
    assert conn.commit_calls == 0


def test_upsert_keeps_counters_out_of_update():
    cursor = FakeCursor()
    conn = FakeConn([cursor])
    metadata = BookMetadata(
        provider_id="syosetu",
        book_id="n1",
        title_original="題名",
        authors=[BookAuthor("作者")],
        toc=[BookTocItem("一話", episode_id="1")],
    )

    _store(conn).upsert(metadata)

    query, params = cursor.executed[0]
    update_clause = query.split("DO UPDATE SET", 1)[1]
    assert "visited" not in update_clause
    assert "created_at" not in update_clause
    assert params[0:3] == ("syosetu", "n1", "題名")
    assert params[4].adapted == [{"name": "作者", "link": None}]
    assert params[8].adapted == [{"title_original": "一話", "title_translated": None, "episode_id": "1"}]
    assert conn.commit_calls == 1
