"""Identity gates checked before any chat work is done."""

from __future__ import annotations

import hmac
from abc import ABC, abstractmethod
from collections.abc import Mapping


class AccessGate(ABC):
    @abstractmethod
    def allows(self, headers: Mapping[str, str]) -> bool:
        ...


class AllowAllGate(AccessGate):
    """No authentication. Meant for local use behind a trusted proxy."""

    def allows(self, headers: Mapping[str, str]) -> bool:
        return True


class ApiKeyGate(AccessGate):
    """Requires ``Authorization: Bearer <key>``."""

    def __init__(self, api_key: str):
        if not api_key:
            raise ValueError("ApiKeyGate needs a non-empty API key")
        self.api_key = api_key

    def allows(self, headers: Mapping[str, str]) -> bool:
        auth = headers.get("authorization", "")
        if not auth.startswith("Bearer "):
            return False
        return hmac.compare_digest(auth[len("Bearer "):].encode(), self.api_key.encode())


def gate_for(api_key: str) -> AccessGate:
    return ApiKeyGate(api_key) if api_key else AllowAllGate()
