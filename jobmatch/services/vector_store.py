"""
Vector store adapters.

The store holds disposable embedded projections of candidates and postings.
Every public coroutine on ``VectorStore`` is total: backend failures are logged
and turned into neutral results (``False`` for upserts, an unavailable
``StoreQueryResult`` for queries) so callers can treat "store down" as an
ordinary state.
"""
import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional, Tuple

import chromadb
import numpy as np
from chromadb.api.types import Documents, EmbeddingFunction, Embeddings

from jobmatch.models.models import DocType, EmbeddedDocument, StoreQueryResult
from jobmatch.models.settings import EmbeddingSettings, VectorStoreSettings
from jobmatch.utils.exceptions import VectorStoreError
from jobmatch.utils.logging_config import get_logger
from jobmatch.utils.utils import ollama_embed

logger = get_logger(__name__)


class VectorStore(ABC):
    """Async facade over a blocking vector index."""

    name = "vector_store"

    def __init__(self, request_timeout: float = 10.0):
        self.request_timeout = request_timeout
        self._ready = False
        self._lock = asyncio.Lock()

    @property
    def ready(self) -> bool:
        return self._ready

    # --- backend hooks (blocking, run in a worker thread) ---

    @abstractmethod
    def _connect(self) -> None: ...

    def _disconnect(self) -> None:
        pass

    @abstractmethod
    def _upsert(self, doc_id: str, text: str, metadata: Dict[str, Any]) -> None: ...

    @abstractmethod
    def _query(self, text: str, k: int, doc_type: Optional[str]) -> Dict[str, Any]: ...

    # --- public API ---

    async def initialize(self) -> bool:
        """Connect once; later calls are no-ops while the store is ready."""
        if self._ready:
            return True
        async with self._lock:
            if self._ready:
                return True
            try:
                await self._run(self._connect)
                self._ready = True
                logger.info(f"{self.name} connected")
            except Exception as e:
                logger.warning(f"{self.name} unavailable, continuing with exact matching only: {e}")
                self._ready = False
        return self._ready

    async def close(self) -> None:
        if not self._ready:
            return
        try:
            await self._run(self._disconnect)
        except Exception as e:
            logger.warning(f"{self.name} teardown failed: {e}")
        finally:
            self._ready = False
            logger.info(f"{self.name} closed")

    async def upsert(self, doc_id: str, text: str, metadata: Dict[str, Any]) -> bool:
        if not await self.initialize():
            return False
        try:
            await self._run(self._upsert, doc_id, text, dict(metadata))
            logger.debug(f"Upserted {doc_id} into {self.name}")
            return True
        except Exception as e:
            logger.error(f"{self.name} upsert failed for {doc_id}: {e}")
            return False

    async def upsert_document(self, doc: EmbeddedDocument) -> bool:
        metadata = {**doc.metadata, "type": doc.doc_type.value}
        return await self.upsert(doc.id, doc.text, metadata)

    async def query(self, text: str, k: int, doc_type: Optional[DocType] = None) -> StoreQueryResult:
        if not await self.initialize():
            return StoreQueryResult.unavailable()
        try:
            raw = await self._run(self._query, text, k, doc_type.value if doc_type else None)
            return self._parse_query_response(raw)
        except Exception as e:
            logger.error(f"{self.name} query failed: {e}")
            return StoreQueryResult.unavailable()

    async def _run(self, fn: Callable, *args):
        return await asyncio.wait_for(asyncio.to_thread(fn, *args), timeout=self.request_timeout)

    def _parse_query_response(self, raw: Any) -> StoreQueryResult:
        # Chroma-shaped: one inner list per query text, we always send one text
        try:
            ids = raw["ids"][0] if raw.get("ids") else []
            distances = raw["distances"][0] if raw.get("distances") else []
            metadatas = raw["metadatas"][0] if raw.get("metadatas") else []
        except (AttributeError, KeyError, IndexError, TypeError) as e:
            raise VectorStoreError("Malformed query response", store_name=self.name,
                                   operation="query", cause=e) from e
        if len(distances) != len(ids):
            raise VectorStoreError(
                f"Query returned {len(ids)} ids but {len(distances)} distances",
                store_name=self.name, operation="query",
            )
        try:
            distances = np.asarray(distances, dtype=float)
        except (TypeError, ValueError) as e:
            raise VectorStoreError("Non-numeric distances in query response", store_name=self.name,
                                   operation="query", cause=e) from e
        if not np.isfinite(distances).all():
            raise VectorStoreError("Non-finite distance in query response",
                                   store_name=self.name, operation="query")
        return StoreQueryResult(
            ids=[str(i) for i in ids],
            distances=distances.tolist(),
            metadatas=[dict(m or {}) for m in metadatas],
        )


class OllamaEmbeddingFunction(EmbeddingFunction[Documents]):
    """Chroma embedding function backed by the Ollama embed endpoint."""

    def __init__(self, settings: EmbeddingSettings = None):
        self.settings = settings or EmbeddingSettings()

    @staticmethod
    def name() -> str:
        return "ollama_jobmatch"

    def __call__(self, input: Documents) -> Embeddings:
        vectors = ollama_embed(
            list(input),
            model=self.settings.model_name,
            base_url=self.settings.base_url,
            timeout=self.settings.timeout,
        )
        return [np.asarray(v, dtype=np.float32) for v in vectors]


class ChromaVectorStore(VectorStore):
    name = "chromadb"

    def __init__(self, settings: VectorStoreSettings = None, embedding_settings: EmbeddingSettings = None,
                 embedding_function: EmbeddingFunction = None):
        self.settings = settings or VectorStoreSettings()
        super().__init__(request_timeout=self.settings.request_timeout)
        self._embedding_function = embedding_function or OllamaEmbeddingFunction(embedding_settings)
        self._client = None
        self._collection = None

    def _connect(self) -> None:
        s = self.settings
        if s.api_key:
            self._client = chromadb.CloudClient(tenant=s.tenant, database=s.database, api_key=s.api_key)
        else:
            kwargs = {}
            if s.tenant:
                kwargs["tenant"] = s.tenant
            if s.database:
                kwargs["database"] = s.database
            self._client = chromadb.HttpClient(host=s.host, port=s.port, ssl=s.ssl, **kwargs)
        self._client.heartbeat()
        self._collection = self._client.get_or_create_collection(
            name=s.collection_name,
            embedding_function=self._embedding_function,
            # distances must be cosine for 1 - d to read as a similarity
            metadata={"hnsw:space": "cosine", "description": "Candidate and job embeddings for matching"},
        )

    def _disconnect(self) -> None:
        self._collection = None
        self._client = None

    def _upsert(self, doc_id: str, text: str, metadata: Dict[str, Any]) -> None:
        if self._collection is None:
            raise VectorStoreError("Collection not initialized", store_name=self.name, operation="upsert")
        self._collection.upsert(ids=[doc_id], documents=[text], metadatas=[metadata])

    def _query(self, text: str, k: int, doc_type: Optional[str]) -> Dict[str, Any]:
        if self._collection is None:
            raise VectorStoreError("Collection not initialized", store_name=self.name, operation="query")
        return self._collection.query(
            query_texts=[text],
            n_results=k,
            where={"type": doc_type} if doc_type else None,
            include=["distances", "metadatas"],
        )


def cosine_distance(a: np.ndarray, b: np.ndarray) -> float:
    num = float(np.dot(a, b))
    den = float(np.linalg.norm(a) * np.linalg.norm(b)) or 1e-8
    return 1.0 - num / den


class InMemoryVectorStore(VectorStore):
    """Process-local store with exact cosine search over an injected embedder."""

    name = "in_memory"

    def __init__(self, embed_fn: Callable[[str], Any] = None, request_timeout: float = 10.0):
        super().__init__(request_timeout=request_timeout)
        self._embed = embed_fn or ollama_embed
        self._docs: Dict[str, Tuple[np.ndarray, str, Dict[str, Any]]] = {}

    def __len__(self) -> int:
        return len(self._docs)

    def _connect(self) -> None:
        pass

    def _upsert(self, doc_id: str, text: str, metadata: Dict[str, Any]) -> None:
        vec = np.asarray(self._embed(text), dtype=np.float32)
        self._docs[doc_id] = (vec, text, metadata)

    def _query(self, text: str, k: int, doc_type: Optional[str]) -> Dict[str, Any]:
        q = np.asarray(self._embed(text), dtype=np.float32)
        rows = []
        for doc_id, (vec, _, meta) in list(self._docs.items()):
            if doc_type and meta.get("type") != doc_type:
                continue
            rows.append((cosine_distance(q, vec), doc_id, meta))
        rows.sort(key=lambda r: (r[0], r[1]))
        rows = rows[:k]
        return {
            "ids": [[r[1] for r in rows]],
            "distances": [[r[0] for r in rows]],
            "metadatas": [[r[2] for r in rows]],
        }


def create_vector_store(settings: VectorStoreSettings = None,
                        embedding_settings: EmbeddingSettings = None) -> VectorStore:
    return ChromaVectorStore(settings=settings, embedding_settings=embedding_settings)
