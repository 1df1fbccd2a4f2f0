"""Provider option storage."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping


class OptionStore(ABC):
    """Where provider settings and the current provider selection live."""

    @abstractmethod
    def get(self, provider_id: str, field: str) -> str:
        ...

    @abstractmethod
    def set(self, provider_id: str, field: str, value: str) -> None:
        ...

    @abstractmethod
    def get_current_provider(self) -> str:
        ...

    @abstractmethod
    def set_current_provider(self, provider_id: str) -> None:
        ...


class InMemoryOptionStore(OptionStore):
    """Process-local store, usually seeded from the YAML config."""

    def __init__(
        self,
        providers: Mapping[str, Mapping[str, str]] | None = None,
        current_provider: str = "",
    ):
        self._values: dict[str, dict[str, str]] = {
            provider_id: {key: str(value) for key, value in (fields or {}).items() if value is not None}
            for provider_id, fields in (providers or {}).items()
        }
        self._current = current_provider

    def get(self, provider_id: str, field: str) -> str:
        return self._values.get(provider_id, {}).get(field, "")

    def set(self, provider_id: str, field: str, value: str) -> None:
        self._values.setdefault(provider_id, {})[field] = value

    def get_current_provider(self) -> str:
        return self._current

    def set_current_provider(self, provider_id: str) -> None:
        self._current = provider_id
