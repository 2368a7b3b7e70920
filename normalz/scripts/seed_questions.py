#!/usr/bin/env python3
"""
Load questions from a JSON seed file into the configured question store.

Usage:
    python -m normalz.scripts.seed_questions questions.example.json
    python -m normalz.scripts.seed_questions questions.example.json --database-url sqlite:///normalz.db

Existing question ids are skipped, so the script can be re-run safely.
"""
import argparse
import sys

from normalz.core.config import settings
from normalz.core.database import build_engine, create_all_tables, make_session_factory
from normalz.features.questions.persistence import SqlQuestionStore
from normalz.features.questions.seed import load_seed_questions


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Seed the Normalz question pool")
    parser.add_argument("path", help="JSON list of {\"options\": [...], \"prompt\": ..., \"questionId\": ...}")
    parser.add_argument("--database-url", default=settings.DATABASE_URL, help="Defaults to DATABASE_URL")
    args = parser.parse_args(argv)

    if not args.database_url:
        print("ERROR: no database configured (set DATABASE_URL or pass --database-url)", file=sys.stderr)
        return 2

    engine = build_engine(args.database_url)
    try:
        create_all_tables(engine)
        store = SqlQuestionStore(make_session_factory(engine))
        created = load_seed_questions(store, args.path)
        print(f"✅ Seeded {created} question(s); {len(store.active_ids())} active")
    finally:
        engine.dispose()
    return 0


if __name__ == "__main__":
    sys.exit(main())
