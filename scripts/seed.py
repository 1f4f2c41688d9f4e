"""Database seeder for local development."""
import argparse
import asyncio
import random
import time
from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from article_api.database import async_session, engine
from article_api.models import Article, Author
from article_api.repositories.article_repository import new_article_id

AUTHORS = [
    ("author-1", "Ada Lovelace"),
    ("author-2", "Grace Hopper"),
    ("author-3", "Barbara Liskov"),
    ("author-4", "Edsger Dijkstra"),
    ("author-5", "Donald Knuth"),
]

TOPICS = ["caching", "postgresql", "redis", "pagination", "indexes",
          "query planning", "connection pools", "observability"]


async def seed(num_articles: int):
    start = time.perf_counter()

    async with async_session() as session:
        existing = set((await session.execute(select(Author.id))).scalars().all())
        created_authors = 0
        for author_id, name in AUTHORS:
            if author_id not in existing:
                session.add(Author(id=author_id, name=name))
                created_authors += 1
        await session.flush()
        print(f"  Created {created_authors} authors")

        for i in range(num_articles):
            topic = random.choice(TOPICS)
            session.add(Article(
                id=new_article_id(),
                author_id=random.choice(AUTHORS)[0],
                title=f"Notes on {topic} #{i}",
                body=f"A practical walkthrough of {topic}. " * 10,
                created_at=datetime.now(timezone.utc) - timedelta(minutes=random.randint(0, 60 * 24 * 90)),
            ))
        await session.commit()

    await engine.dispose()
    elapsed = time.perf_counter() - start
    print(f"Seeding complete in {elapsed:.1f}s ({num_articles} articles)")


def main():
    parser = argparse.ArgumentParser(description="Seed the article database")
    parser.add_argument("--articles", type=int, default=20, help="Number of sample articles to insert")
    args = parser.parse_args()
    asyncio.run(seed(args.articles))


if __name__ == "__main__":
    main()
