from typing import Dict, Iterable, List

from providers.base_provider import ProviderNotFoundError, WebNovelProvider
from providers.hameln import HamelnProvider
from providers.kakuyomu import KakuyomuProvider
from providers.syosetu import SyosetuProvider

ALL_PROVIDERS = [
    SyosetuProvider,
    KakuyomuProvider,
    HamelnProvider,
]


class ProviderRegistry:
    """Maps provider ids to provider instances."""

    def __init__(self, providers: Iterable[WebNovelProvider] = ()):
        self._providers: Dict[str, WebNovelProvider] = {}
        for provider in providers:
            self.register(provider)

    def register(self, provider: WebNovelProvider) -> None:
        if provider.provider_id in self._providers:
            raise ValueError(f"duplicate provider id: {provider.provider_id}")
        self._providers[provider.provider_id] = provider

    def get(self, provider_id: str) -> WebNovelProvider:
        provider = self._providers.get(provider_id)
        if provider is None:
            raise ProviderNotFoundError(provider_id)
        return provider

    def ids(self) -> List[str]:
        return list(self._providers.keys())

    def __contains__(self, provider_id) -> bool:
        return provider_id in self._providers


def build_provider_registry(http) -> ProviderRegistry:
    return ProviderRegistry(provider_class(http) for provider_class in ALL_PROVIDERS)
