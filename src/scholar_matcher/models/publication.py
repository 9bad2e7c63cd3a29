"""Publication data models returned by a publication source."""

from typing import Optional
from pydantic import BaseModel, Field


class Article(BaseModel):
    """A single publication on a researcher's profile.

    Attributes:
        title: Publication title
        year: Publication year as reported by the source (kept as text, may be missing)
        citation_count: Number of citations (optional)
        authors: Author list as a display string (optional)
    """

    title: str
    year: Optional[str] = None
    citation_count: Optional[int] = Field(default=None, ge=0)
    authors: Optional[str] = None


class AuthorPublications(BaseModel):
    """Author profile with publication list, as fetched for one source id."""

    source_id: str
    name: str = "Unknown"
    affiliations: str = ""
    articles: list[Article] = Field(default_factory=list)
    thumbnail: Optional[str] = None


class AuthorCandidate(BaseModel):
    """A candidate profile returned by an author search."""

    name: str
    source_id: str
    link: Optional[str] = None
    affiliations: Optional[str] = None
    email: Optional[str] = None
    cited_by: Optional[int] = None
