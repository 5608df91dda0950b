import pytest

from providers.base_provider import ProviderNotFoundError, WebNovelProvider
from providers.http_context import HttpContext
from providers.registry import ProviderRegistry, build_provider_registry


class StubProvider(WebNovelProvider):
    async def rank(self, options):
        return []

    async def fetch_metadata(self, novel_id):
        raise NotImplementedError

    async def fetch_chapter(self, novel_id, chapter_id):
        raise NotImplementedError


def test_build_registry_shares_one_http_context():
    http = HttpContext()

    registry = build_provider_registry(http)

    assert registry.ids() == ["syosetu", "kakuyomu", "hameln"]
    assert all(registry.get(provider_id).http is http for provider_id in registry.ids())
    assert [str(url) for _, url in http._site_cookies] == ["https://syosetu.org"]


def test_get_unknown_provider_raises_lookup_error():
    registry = ProviderRegistry([StubProvider("a", http=None)])

    with pytest.raises(ProviderNotFoundError) as excinfo:
        registry.get("b")

    assert isinstance(excinfo.value, LookupError)
    assert str(excinfo.value) == "unknown provider: b"


def test_register_rejects_duplicate_ids():
    registry = ProviderRegistry([StubProvider("a", http=None)])

    with pytest.raises(ValueError):
        registry.register(StubProvider("a", http=None))


def test_contains():
    registry = ProviderRegistry([StubProvider("a", http=None)])

    assert "a" in registry
    assert "b" not in registry
