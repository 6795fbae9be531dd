"""News API Pydantic models."""

from datetime import datetime

from pydantic import BaseModel

from baseball_news.engines.article_normalizer import GeneratedArticle


class NewsResponse(BaseModel):
    """A stored article."""

    reference_url: str
    reference_name: str
    reference_published_at: datetime
    header: str
    subheader: str
    summary: str
    body: str
    category: str

    @classmethod
    def from_article(cls, article: GeneratedArticle) -> "NewsResponse":
        return cls(
            reference_url=article.reference_url,
            reference_name=article.reference_name,
            reference_published_at=article.reference_published_at,
            header=article.header,
            subheader=article.subheader,
            summary=article.summary,
            body=article.body,
            category=article.category.value,
        )


class SeedStatusResponse(BaseModel):
    """Seed state of one category; unset fields are null."""

    status: str
    started_at: datetime | None = None
    finished_at: datetime | None = None
    inserted: int | None = None
    error: str | None = None


class SyncResponse(BaseModel):
    category: str
    inserted: int
