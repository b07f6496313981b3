"""
Engine Settings Models for Configuration Management
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, validator
from pydantic import ValidationError as PydanticValidationError

from jobmatch.utils.exceptions import ConfigurationError


class ScoringWeights(BaseModel):
    """Weights of the combined match score"""
    skill_weight: float = Field(default=0.6, ge=0.0, le=1.0, description="Weight of the (blended) skill score")
    experience_weight: float = Field(default=0.2, ge=0.0, le=1.0, description="Weight of experience alignment")
    track_weight: float = Field(default=0.2, ge=0.0, le=1.0, description="Weight of track alignment")

    # Blend of embedding similarity and exact overlap inside the skill score
    embedding_blend: float = Field(default=0.4, ge=0.0, le=1.0, description="Share of embedding similarity in the skill score")
    overlap_blend: float = Field(default=0.6, ge=0.0, le=1.0, description="Share of exact skill overlap in the skill score")

    @validator('track_weight', always=True)
    def validate_total_weights(cls, v, values):
        total = v + values.get('skill_weight', 0) + values.get('experience_weight', 0)
        if abs(total - 1.0) > 0.01:  # Allow small floating point errors
            raise ValueError('Score weights must sum to 1.0')
        return v

    @validator('overlap_blend', always=True)
    def validate_blend(cls, v, values):
        if abs(v + values.get('embedding_blend', 0) - 1.0) > 0.01:
            raise ValueError('Blend weights must sum to 1.0')
        return v


class ExperienceScores(BaseModel):
    """Experience alignment score per distance below the required level"""
    meets_requirement: float = Field(default=1.0, ge=0.0, le=1.0)
    one_level_below: float = Field(default=0.7, ge=0.0, le=1.0)
    two_levels_below: float = Field(default=0.4, ge=0.0, le=1.0)
    too_far_below: float = Field(default=0.1, ge=0.0, le=1.0)


class BatchSettings(BaseModel):
    """Batch ranking windows"""
    prefilter_window: int = Field(default=20, ge=1, le=1000, description="Postings kept after the overlap pre-filter (K1)")
    result_window: int = Field(default=10, ge=1, le=1000, description="Results returned (K2)")

    @validator('result_window', always=True)
    def validate_windows(cls, v, values):
        if 'prefilter_window' in values and v > values['prefilter_window']:
            raise ValueError('result_window cannot exceed prefilter_window')
        return v


class SimilaritySettings(BaseModel):
    """Bidirectional similarity query settings"""
    query_k: int = Field(default=50, ge=1, le=1000, description="Neighbours requested per direction")
    timeout_seconds: Optional[float] = Field(default=5.0, gt=0.0, description="Deadline for the similarity stage, None disables it")
    no_match_threshold: float = Field(default=0.1, ge=0.0, le=1.0, description="Similarity below which zero-overlap pairs are no match")


class EmbeddingSettings(BaseModel):
    """Embedding Model Configuration"""
    model_name: str = Field(default="nomic-embed-text", description="Embedding model name")
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")


class LLMSettings(BaseModel):
    """LLM Configuration Settings (key reasons only)"""
    model_name: str = Field(default="llama3.1:8b", description="LLM model name")
    base_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="Generation temperature")
    timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")


class VectorStoreSettings(BaseModel):
    """Chroma connection settings"""
    host: str = Field(default="localhost", description="Chroma server host")
    port: int = Field(default=8000, ge=1, le=65535, description="Chroma server port")
    ssl: bool = Field(default=False)
    api_key: Optional[str] = Field(default=None, description="Chroma Cloud API key; switches to CloudClient")
    tenant: Optional[str] = Field(default=None)
    database: Optional[str] = Field(default=None)
    collection_name: str = Field(default="skills_jobs")
    request_timeout: float = Field(default=10.0, gt=0.0, description="Upper bound for a single store call in seconds")


class EngineSettings(BaseModel):
    """Complete engine configuration"""
    weights: ScoringWeights = Field(default_factory=ScoringWeights)
    experience_scores: ExperienceScores = Field(default_factory=ExperienceScores)
    batch: BatchSettings = Field(default_factory=BatchSettings)
    similarity: SimilaritySettings = Field(default_factory=SimilaritySettings)
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    vector_store: VectorStoreSettings = Field(default_factory=VectorStoreSettings)

    @classmethod
    def from_env(cls) -> "EngineSettings":
        """Build settings from environment variables (and .env when present)."""
        load_dotenv()
        env = os.environ

        def pick(section: dict, key: str, var: str):
            value = env.get(var)
            if value is not None and value != "":
                section[key] = value

        store: dict = {}
        pick(store, "host", "CHROMA_HOST")
        pick(store, "port", "CHROMA_PORT")
        pick(store, "ssl", "CHROMA_SSL")
        pick(store, "api_key", "CHROMA_API_KEY")
        pick(store, "tenant", "CHROMA_TENANT")
        pick(store, "database", "CHROMA_DATABASE")
        pick(store, "collection_name", "CHROMA_COLLECTION")

        embedding: dict = {}
        pick(embedding, "base_url", "OLLAMA_BASE_URL")
        pick(embedding, "model_name", "EMBED_MODEL")

        llm: dict = {}
        pick(llm, "base_url", "OLLAMA_BASE_URL")
        pick(llm, "model_name", "LLM_MODEL")

        similarity: dict = {}
        pick(similarity, "timeout_seconds", "SIMILARITY_TIMEOUT")

        batch: dict = {}
        pick(batch, "prefilter_window", "PREFILTER_WINDOW")
        pick(batch, "result_window", "RESULT_WINDOW")

        try:
            return cls(
                vector_store=VectorStoreSettings(**store),
                embedding=EmbeddingSettings(**embedding),
                llm=LLMSettings(**llm),
                similarity=SimilaritySettings(**similarity),
                batch=BatchSettings(**batch),
            )
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid engine configuration: {e}", cause=e) from e
