"""Pydantic models for tradeassist.yaml configuration."""

from typing import Literal

from pydantic import BaseModel, Field


class ModelConfig(BaseModel):
    """Generation model configuration."""

    name: str = Field(default="qwen2.5:7b", description="Model name served by the backend")
    temperature: float = Field(default=0.7, description="Sampling temperature", ge=0.0, le=2.0)
    max_tokens: int | None = Field(
        default=2048,
        description="Maximum tokens per generation call (None = backend default)",
        ge=1,
    )


class InferenceConfig(BaseModel):
    """OpenAI-compatible inference backend configuration."""

    backend: Literal["openai", "ollama", "vllm"] = Field(
        default="ollama",
        description="Which OpenAI-compatible server hosts the model",
    )
    base_url: str = Field(
        default="http://localhost:11434",
        description="Server URL (without the /v1 suffix)",
    )
    api_key: str | None = Field(default=None, description="API key (if the server requires one)")
    timeout: int = Field(default=120, description="Request timeout in seconds", ge=1)


class ChatConfig(BaseModel):
    """Chat turn configuration."""

    max_tool_rounds: int = Field(
        default=5,
        description="Maximum generate -> tool -> generate rounds per user turn",
        ge=1,
        le=20,
    )
    history_limit: int = Field(
        default=20,
        description="Number of prior messages fed into generation",
        ge=0,
        le=200,
    )
    history_api_limit: int = Field(
        default=50,
        description="Maximum messages returned by the history endpoint",
        ge=1,
        le=500,
    )
    prompt_tier: Literal["lite", "standard", "full"] = Field(
        default="standard",
        description="How much guidance the system instruction carries",
    )
    enable_functions: bool = Field(
        default=True,
        description="Expose shopping tools to the generation backend",
    )
    sanitizer_discard_ratio: float = Field(
        default=0.5,
        description="Share of a chunk a meta-commentary match must exceed to drop the chunk",
        gt=0.0,
        le=1.0,
    )


class RateLimitConfig(BaseModel):
    """Per-caller chat rate limits."""

    per_minute: int = Field(default=20, description="Chat requests per caller per minute", ge=1)
    per_hour: int = Field(default=100, description="Chat requests per caller per hour", ge=1)
    sweep_interval: float = Field(
        default=300.0,
        description="Seconds between expired-record sweeps",
        gt=0,
    )


class RetrievalConfig(BaseModel):
    """Retrieval-augmented context configuration."""

    enabled: bool = Field(default=True, description="Inject retrieved context into the prompt")
    deadline_seconds: float = Field(
        default=2.5,
        description="Deadline for the combined product + knowledge lookup",
        gt=0,
        le=30,
    )
    product_limit: int = Field(default=5, description="Maximum product hits", ge=0, le=20)
    knowledge_limit: int = Field(default=3, description="Maximum knowledge hits", ge=0, le=20)
    product_min_score: float = Field(
        default=0.7,
        description="Minimum similarity for product hits (0.0-1.0)",
        ge=0.0,
        le=1.0,
    )
    knowledge_min_score: float = Field(
        default=0.3,
        description="Minimum similarity for knowledge hits (0.0-1.0)",
        ge=0.0,
        le=1.0,
    )


class VectorStoreConfig(BaseModel):
    """Vector store configuration for semantic search."""

    backend: Literal["chromadb"] = Field(
        default="chromadb",
        description="Vector store backend (currently only chromadb is supported)",
    )
    embedding_model: str = Field(
        default="sentence-transformers/paraphrase-multilingual-MiniLM-L12-v2",
        description="Local sentence-transformers model (must cover Arabic and English)",
    )
    query_prefix: str = Field(default="", description="Prefix for queries ('query: ' for E5)")
    document_prefix: str = Field(
        default="", description="Prefix for indexed documents ('passage: ' for E5)"
    )
    persist_directory: str | None = Field(
        default="~/.tradeassist/vectors",
        description="Directory for persistent vector storage (None = in-memory)",
    )
    product_collection: str = Field(default="tradeassist_products")
    knowledge_collection: str = Field(default="tradeassist_knowledge")


class MemoryConfig(BaseModel):
    """Conversation persistence configuration."""

    storage_path: str = Field(
        default="~/.tradeassist/conversations.db",
        description="Path to SQLite database for conversation storage",
    )
    archive_retention_days: int = Field(
        default=30,
        description="Archived conversations older than this are pruned",
        ge=1,
    )


class CatalogConfig(BaseModel):
    """Product and order catalog source."""

    path: str | None = Field(
        default=None,
        description="YAML file with products and orders (None = empty catalog)",
    )


class ServerConfig(BaseModel):
    """API server configuration."""

    host: str = Field(default="127.0.0.1", description="Server bind address")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)
    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="Allowed CORS origins (the storefront)",
    )


class TradeAssistConfig(BaseModel):
    """Root configuration schema for TradeAssist."""

    model: ModelConfig = Field(default_factory=ModelConfig)
    inference: InferenceConfig = Field(default_factory=InferenceConfig)
    chat: ChatConfig = Field(default_factory=ChatConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    vector_store: VectorStoreConfig = Field(default_factory=VectorStoreConfig)
    memory: MemoryConfig = Field(default_factory=MemoryConfig)
    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
