"""Search, corpus and metrics models for the retrieval engine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_AUTHOR = "Unknown Author"


@dataclass(frozen=True)
class EmbeddingRecord:
    """A chunk of a document together with its embedding vector."""

    chunk_id: str
    document_id: str
    text: str
    vector: Tuple[float, ...]
    created_at: Optional[datetime] = None

    @property
    def dimensions(self) -> int:
        return len(self.vector)


@dataclass(frozen=True)
class TextChunk:
    """A chunk of extracted text waiting to be embedded."""

    id: str
    text: str
    metadata: Dict[str, Any] = field(default_factory=dict)


class DocumentMetadata(BaseModel):
    """Document-level metadata held by the document store."""
    document_id: str = Field(..., description="Document ID")
    title: Optional[str] = Field(None, description="Document title")
    author: Optional[str] = Field(None, description="Document author")
    date: Optional[datetime] = Field(None, description="Publication or upload date")
    text: Optional[str] = Field(None, description="Full extracted text, used for page estimation")


class ResultMetadata(BaseModel):
    """Citation metadata attached to every search result."""
    title: str = Field(UNKNOWN_TITLE, description="Document title")
    author: str = Field(UNKNOWN_AUTHOR, description="Document author")
    page: int = Field(1, ge=1, description="Estimated page number")


class SearchResult(BaseModel):
    """A single ranked passage."""
    chunk_id: str = Field(..., description="Chunk ID")
    document_id: str = Field(..., description="Owning document ID")
    text: str = Field(..., description="Chunk text")
    score: float = Field(..., description="Relevance score")
    metadata: ResultMetadata = Field(default_factory=ResultMetadata)

    model_config = ConfigDict(frozen=True)

    def with_score(self, score: float) -> "SearchResult":
        """Return a copy carrying a different score."""
        return self.model_copy(update={"score": score})


class DateRange(BaseModel):
    """Inclusive date window."""
    start: Optional[datetime] = Field(None, description="Earliest date (inclusive)")
    end: Optional[datetime] = Field(None, description="Latest date (inclusive)")

    @model_validator(mode="after")
    def _check_order(self) -> "DateRange":
        if self.start and self.end and self.start > self.end:
            raise ValueError("date_range.start must not be after date_range.end")
        return self

    def contains(self, value: Optional[datetime]) -> bool:
        if value is None:
            return False
        if self.start and value < self.start:
            return False
        if self.end and value > self.end:
            return False
        return True


class SearchFilters(BaseModel):
    """Caller-supplied corpus pre-filters."""
    document_ids: Optional[List[str]] = Field(None, description="Restrict to these documents")
    authors: Optional[List[str]] = Field(None, description="Restrict to documents by these authors")
    date_range: Optional[DateRange] = Field(None, description="Restrict by document date")

    def is_empty(self) -> bool:
        return not self.document_ids and not self.authors and self.date_range is None

    def cache_payload(self) -> Dict[str, Any]:
        """Canonical, order-independent form used in cache keys."""
        payload: Dict[str, Any] = {}
        if self.document_ids:
            payload["document_ids"] = sorted(set(self.document_ids))
        if self.authors:
            payload["authors"] = sorted(set(self.authors))
        if self.date_range is not None:
            payload["date_range"] = self.date_range.model_dump(mode="json")
        return payload


class Metrics(BaseModel):
    """Process-wide retrieval metrics snapshot."""
    query_count: int = Field(0, ge=0)
    cache_hit_rate: float = Field(0.0, ge=0.0, le=1.0)
    total_cache_size: int = Field(0, ge=0)
    average_response_time_ms: float = Field(0.0, ge=0.0)
    last_reset: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class CacheStatsSnapshot(BaseModel):
    """Read-only view of all cache tiers."""
    query_cache_size: int
    embedding_cache_size: int
    response_cache_size: int
    total_cache_size: int
    cache_hit_rate: float
    query_count: int
    evictions: int = 0
    expired: int = 0
