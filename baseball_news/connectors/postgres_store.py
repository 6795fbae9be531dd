"""Postgres-backed news repository."""

import logging
from contextlib import contextmanager
from typing import Any, Iterator

import psycopg2
from psycopg2.extras import RealDictCursor

from baseball_news.engines.article_normalizer import Category, GeneratedArticle, normalize_url


logger = logging.getLogger(__name__)


CREATE_TABLE_SQL = """
    CREATE TABLE IF NOT EXISTS news (
        id SERIAL PRIMARY KEY,
        category VARCHAR(16) NOT NULL,
        header VARCHAR(100) NOT NULL,
        subheader VARCHAR(100) NOT NULL,
        body VARCHAR(1000) NOT NULL,
        summary VARCHAR(300) NOT NULL,
        reference_name VARCHAR(200) NOT NULL,
        reference_url VARCHAR(600) NOT NULL UNIQUE,
        reference_published_at TIMESTAMP WITH TIME ZONE NOT NULL,
        created_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now(),
        updated_at TIMESTAMP WITH TIME ZONE NOT NULL DEFAULT now()
    )
"""

CREATE_INDEXES_SQL = (
    "CREATE INDEX IF NOT EXISTS idx_news_category ON news (category)",
    "CREATE INDEX IF NOT EXISTS idx_news_created_at ON news (created_at)",
)

INSERT_SQL = """
    INSERT INTO news (
        category, header, subheader, body, summary,
        reference_name, reference_url, reference_published_at
    )
    VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
    ON CONFLICT (reference_url) DO NOTHING
"""

SELECT_COLUMNS = (
    "category, header, subheader, body, summary, "
    "reference_name, reference_url, reference_published_at"
)


class PostgresNewsRepository:
    """Repository storing articles in the ``news`` table.

    Each ``save`` runs in one transaction; every row is inserted under its
    own savepoint, so a row that violates a constraint is skipped without
    losing the rows around it.
    """

    def __init__(self, database_url: str) -> None:
        self.database_url = database_url

    def _connect(self):
        return psycopg2.connect(self.database_url)

    @contextmanager
    def _cursor(self) -> Iterator[Any]:
        """Context manager for database cursor with automatic commit/rollback."""
        conn = self._connect()
        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                yield cur
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def ensure_schema(self) -> None:
        """Create the news table and its indexes if they don't exist."""
        with self._cursor() as cur:
            cur.execute(CREATE_TABLE_SQL)
            for statement in CREATE_INDEXES_SQL:
                cur.execute(statement)

    def count(self, category: Category) -> int:
        with self._cursor() as cur:
            cur.execute("SELECT COUNT(*) AS n FROM news WHERE category = %s", (category.value,))
            row = cur.fetchone()
            return int(row["n"]) if row else 0

    def existing_reference_urls(self, category: Category) -> set[str]:
        with self._cursor() as cur:
            cur.execute("SELECT reference_url FROM news WHERE category = %s", (category.value,))
            return {row["reference_url"] for row in cur.fetchall()}

    def save(self, articles: list[GeneratedArticle]) -> int:
        if not articles:
            return 0

        inserted = 0
        with self._cursor() as cur:
            for article in articles:
                cur.execute("SAVEPOINT news_row")
                try:
                    cur.execute(INSERT_SQL, _row_values(article))
                    added = cur.rowcount == 1
                except (psycopg2.IntegrityError, psycopg2.DataError) as e:
                    cur.execute("ROLLBACK TO SAVEPOINT news_row")
                    logger.warning(f"Skipping article {article.reference_url}: {e}")
                    continue
                cur.execute("RELEASE SAVEPOINT news_row")
                if added:
                    inserted += 1
                else:
                    logger.info(f"Skipping duplicate reference_url: {article.reference_url}")

        logger.info(f"Inserted {inserted} of {len(articles)} articles")
        return inserted

    def find_by_category(self, category: Category, limit: int = 100) -> list[GeneratedArticle]:
        with self._cursor() as cur:
            cur.execute(
                f"SELECT {SELECT_COLUMNS} FROM news WHERE category = %s "
                "ORDER BY reference_published_at DESC LIMIT %s",
                (category.value, limit),
            )
            return [_row_to_article(row) for row in cur.fetchall()]

    def find_by_reference_url(self, reference_url: str) -> GeneratedArticle | None:
        with self._cursor() as cur:
            cur.execute(
                f"SELECT {SELECT_COLUMNS} FROM news WHERE reference_url = %s",
                (normalize_url(reference_url),),
            )
            row = cur.fetchone()
            return _row_to_article(row) if row else None


def _row_values(article: GeneratedArticle) -> tuple:
    return (
        article.category.value,
        article.header,
        article.subheader,
        article.body,
        article.summary,
        article.reference_name,
        article.reference_url,
        article.reference_published_at,
    )


def _row_to_article(row: dict[str, Any]) -> GeneratedArticle:
    return GeneratedArticle(
        reference_url=row["reference_url"],
        reference_name=row["reference_name"],
        reference_published_at=row["reference_published_at"],
        header=row["header"],
        subheader=row["subheader"],
        summary=row["summary"],
        body=row["body"],
        category=Category(row["category"]),
    )
