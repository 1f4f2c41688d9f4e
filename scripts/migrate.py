"""Apply pending database migrations and exit."""
import logging

from article_api.migrations import run_migrations


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s [%(name)s] %(message)s")
    run_migrations()


if __name__ == "__main__":
    main()
