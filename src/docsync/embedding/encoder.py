"""Embedding model management."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Literal, Sequence

import numpy as np
from sentence_transformers import SentenceTransformer

DEFAULT_MODEL = "sentence-transformers/all-mpnet-base-v2"

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    batch_size: int = 16
    normalize: bool = True
    backend: Literal["torch", "onnx", "openvino"] = "torch"
    device: str | None = None


@dataclass(slots=True)
class SectionEmbedding:
    """Vector for one section plus the number of tokens the model consumed."""

    vector: np.ndarray
    token_count: int


class EmbeddingModel:
    """Thin wrapper around `SentenceTransformer` for section embeddings."""

    def __init__(self, config: EmbeddingConfig | None = None) -> None:
        self.config = config or EmbeddingConfig()
        self._model = self._load_model()
        self.dimension = int(self._model.get_sentence_embedding_dimension())
        logger.info(
            "Loaded %s | Backend: %s | Dimension: %d",
            self.config.model_name,
            self.config.backend,
            self.dimension,
        )

    def _load_model(self) -> SentenceTransformer:
        return SentenceTransformer(
            self.config.model_name,
            backend=self.config.backend,
            device=self.config.device,
        )

    def embed(self, texts: Sequence[str] | Iterable[str]) -> np.ndarray:
        """Return float32 embeddings for input texts."""
        sentences = list(texts)
        embeddings = self._model.encode(
            sentences,
            batch_size=self.config.batch_size,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.config.normalize,
        )
        return embeddings.astype("float32", copy=False)

    def count_tokens(self, text: str) -> int:
        return len(self._model.tokenizer(text)["input_ids"])

    def embed_section(self, text: str) -> SectionEmbedding:
        """Embed a single section and report its token usage."""
        vector = self.embed([text])[0]
        return SectionEmbedding(vector=vector, token_count=self.count_tokens(text))
