"""Pydantic models for similarity search results."""

from pydantic import BaseModel


class SearchHit(BaseModel):
    """A single raw hit returned by the vector backend search."""

    point_id: str
    score: float
    payload: dict = {}


class SimilarityResultItem(BaseModel):
    """A single similar document."""

    path: str
    score: float


class SimilarityResult(BaseModel):
    """Ranked list of documents similar to the queried document.

    Results are sorted by score in descending order, never contain the
    queried path itself and never exceed the configured limit.
    """

    path: str
    results: list[SimilarityResultItem]
    total: int
