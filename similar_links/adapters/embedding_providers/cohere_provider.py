from __future__ import annotations
from typing import List
import httpx
from similar_links.core.config import settings

class CohereProvider:
    """Minimal Cohere embedder for document-to-document similarity."""
    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        input_type: str | None = None,
        timeout: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.api_key = api_key or settings.COHERE_API_KEY
        self.model = model or settings.COHERE_MODEL
        self.input_type = input_type or settings.COHERE_INPUT_TYPE
        self._client = client or httpx.Client(timeout=timeout or settings.EMBED_TIMEOUT)

    def embed_text(self, text: str) -> List[float]:
        if not self.api_key:
            raise ValueError("COHERE_API_KEY not configured")
        r = self._client.post(
            "https://api.cohere.ai/v1/embed",
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            json={
                "texts": [text],
                "model": self.model,
                "input_type": self.input_type,  # Required for v3.0 models
                "truncate": "END",
            },
        )
        r.raise_for_status()
        return r.json()["embeddings"][0]
