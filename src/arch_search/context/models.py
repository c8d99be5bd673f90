"""
Context Provider Wire Models

Request and response payloads exchanged with the external vector-context
API. Field aliases carry the provider's camelCase names; requests are sent
with ``model_dump(by_alias=True, exclude_none=True)``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


# ---------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------

class Document(BaseModel):
    """A single text document attached to an add request."""

    content: str
    file_name: Optional[str] = Field(default=None, alias="fileName")
    file_type: Optional[str] = Field(default=None, alias="fileType")
    file_size: Optional[int] = Field(default=None, ge=0, alias="fileSize")
    last_modified: Optional[str] = Field(default=None, alias="lastModified")

    model_config = ConfigDict(extra="forbid", populate_by_name=True)


class AddContextRequest(BaseModel):
    documents: List[Document] = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    context_type: Literal["resource", "conversation", "instruction"] = "resource"
    scope: Literal["internal", "external"] = "internal"
    metadata: Dict[str, Any] = Field(default_factory=dict)
    chained: bool = False

    model_config = ConfigDict(extra="forbid")


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1)
    similarity_threshold: float = Field(..., ge=0.0, le=1.0)
    minimum_similarity_threshold: float = Field(..., ge=0.0, le=1.0)
    scope: Optional[str] = None
    metadata: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="forbid")


class DeleteContextRequest(BaseModel):
    source: str = Field(..., min_length=1)
    by_doc: bool = True
    by_id: bool = False

    model_config = ConfigDict(extra="forbid")


# ---------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------

class ContextSearchResult(BaseModel):
    """
    One raw hit returned by the provider.

    Providers may return the hit text as ``contextData`` or ``text``; a
    native ``score`` and ``metadata`` are passed through when present but are
    not relied upon. Explicit nulls read as empty values so one sparse hit
    cannot invalidate the whole response.
    """

    context_id: Optional[str] = Field(default="", alias="contextId")
    context_data: Optional[str] = Field(default="", alias="contextData")
    text: Optional[str] = None
    score: Optional[float] = None
    metadata: Optional[Dict[str, Any]] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("context_id", "context_data", mode="before")
    @classmethod
    def null_text_as_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("metadata", mode="before")
    @classmethod
    def null_metadata_as_empty(cls, v: Any) -> Any:
        return {} if v is None else v

    @property
    def content(self) -> str:
        return self.context_data or self.text or ""


class SearchResponse(BaseModel):
    results: List[ContextSearchResult] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @field_validator("results", mode="before")
    @classmethod
    def null_results_as_empty(cls, v: Any) -> Any:
        return [] if v is None else v


class ContextItem(BaseModel):
    """Stored context entry as listed by ``/view``."""

    id: str = Field(default="", alias="_id")
    source: str = ""
    context_type: Optional[str] = None
    text: Optional[str] = None
    indexed: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class ViewContextResponse(BaseModel):
    context: List[ContextItem] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")
