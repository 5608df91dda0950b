import pytest

from app import app as flask_app
from models.novel import BookListItem, ListSort
from services.novel_service import BookPage, BookState
from utils.result import Ok, internal_error, not_found


class FakeNovelService:
    def __init__(self):
        self.calls = []
        self.rank_result = Ok(BookPage(1, [BookListItem("syosetu", "n1", "一位", extra="meta")]))

    def list(self, page, page_size, provider_id=None, sort=ListSort.CREATED):
        self.calls.append(("list", page, page_size, provider_id, sort))
        return Ok(BookPage(3, [BookListItem("syosetu", "n1", "題名", extra="原文(1/2) 译文(0/2)")]))

    def list_rank(self, provider_id, options):
        self.calls.append(("rank", provider_id, options))
        return self.rank_result

    def get_state(self, provider_id, book_id):
        if book_id == "missing":
            return not_found("book not found")
        return Ok(BookState(total=2, count_original=1, count_translated=0))

    def get_metadata(self, provider_id, book_id):
        raise RuntimeError("db password=hunter2")

    def get_episode(self, provider_id, book_id, episode_id):
        self.calls.append(("episode", provider_id, book_id, episode_id))
        return internal_error("episode id not in toc")


@pytest.fixture
def client_and_service(monkeypatch):
    service = FakeNovelService()
    monkeypatch.setitem(flask_app.extensions, "novel_service", service)
    flask_app.config["TESTING"] = True
    return flask_app.test_client(), service


def test_list_wraps_page_in_success_envelope(client_and_service):
    client, service = client_and_service

    response = client.get("/novel/list?page=2&provider=syosetu&sort=visited")

    assert response.status_code == 200
    assert response.get_json() == {
        "success": True,
        "data": {
            "page_number": 3,
            "items": [
                {
                    "provider_id": "syosetu",
                    "book_id": "n1",
                    "title_original": "題名",
                    "title_translated": None,
                    "extra": "原文(1/2) 译文(0/2)",
                }
            ],
        },
    }
    assert service.calls == [("list", 2, 10, "syosetu", ListSort.VISITED)]


def test_list_clamps_negative_page_and_defaults_sort(client_and_service):
    client, service = client_and_service

    client.get("/novel/list?page=-4")

    assert service.calls == [("list", 0, 10, None, ListSort.CREATED)]


def test_list_rejects_unknown_sort(client_and_service):
    client, service = client_and_service

    response = client.get("/novel/list?sort=random")

    payload = response.get_json()
    assert response.status_code == 400
    assert payload["success"] is False
    assert payload["error"]["code"] == "BAD_REQUEST"
    assert service.calls == []


def test_rank_forwards_query_and_sets_cache_header(client_and_service):
    client, service = client_and_service

    response = client.get("/novel/rank/syosetu?order=weeklypoint&genre=201")

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "max-age=7200"
    assert service.calls == [("rank", "syosetu", {"order": "weeklypoint", "genre": "201"})]


def test_rank_error_is_not_cached(client_and_service):
    client, service = client_and_service
    service.rank_result = not_found("unknown provider: nope")

    response = client.get("/novel/rank/nope")

    assert response.status_code == 404
    assert "max-age" not in response.headers.get("Cache-Control", "")
    assert response.get_json()["error"] == {"code": "NOT_FOUND", "message": "unknown provider: nope"}


def test_state_maps_not_found(client_and_service):
    client, _ = client_and_service

    ok = client.get("/novel/state/syosetu/n1")
    missing = client.get("/novel/state/syosetu/missing")

    assert ok.get_json()["data"] == {"total": 2, "count_original": 1, "count_translated": 0}
    assert missing.status_code == 404


def test_metadata_unhandled_error_does_not_leak(client_and_service):
    client, _ = client_and_service

    response = client.get("/novel/metadata/syosetu/n1")

    assert response.status_code == 500
    assert response.get_json()["error"] == {"code": "INTERNAL", "message": "internal error"}
    assert "hunter2" not in response.get_data(as_text=True)


def test_episode_passes_path_segments(client_and_service):
    client, service = client_and_service

    response = client.get("/novel/episode/hameln/123/7")

    assert response.status_code == 500
    assert response.get_json()["error"]["code"] == "INTERNAL"
    assert service.calls == [("episode", "hameln", "123", "7")]


def test_healthz():
    client = flask_app.test_client()

    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.get_json() == {"status": "ok"}
