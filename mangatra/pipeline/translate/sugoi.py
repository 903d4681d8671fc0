from __future__ import annotations

from typing import List, Optional, Sequence

import httpx

from mangatra.core.errors import BackendError


class SugoiTranslator:
    """Client for a locally running Sugoi translator server."""

    def __init__(
        self,
        url: str = "http://localhost:14366",
        timeout: float = 60.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._transport = transport

    def translate(self, texts: Sequence[str]) -> List[str]:
        if not texts:
            return []
        payload = {"content": list(texts), "message": "translate sentences"}
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(self.url, json=payload)
                resp.raise_for_status()
                translated = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise BackendError(f"Sugoi translation request failed: {exc}") from exc

        if not isinstance(translated, list) or len(translated) != len(texts):
            raise BackendError(
                f"Sugoi returned {len(translated) if isinstance(translated, list) else 'no'} "
                f"translations for {len(texts)} inputs"
            )
        return [str(t) for t in translated]
