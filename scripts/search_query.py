"""
CLI for similarity search over the document collection.

Usage:
    python -m scripts.search_query --query "dessert recipes" --top-k 5
"""

from __future__ import annotations

import argparse
import asyncio
import json

from docstore.config import setup_logging
from docstore.context import StoreContext


async def search(query: str, top_k: int, where: dict | None, snippet: int) -> None:
    async with StoreContext() as context:
        results = await context.query_engine.query(query, n_results=top_k, where=where)

    if not results:
        print("No results")
        return

    for idx, match in enumerate(results, start=1):
        text = match.text[:snippet].replace("\n", " ")
        print(f"\n#{idx} distance={match.distance:.4f} similarity={match.similarity:.4f} id={match.id}")
        print("metadata:", match.metadata)
        print("text:", text + ("..." if len(match.text) > snippet else ""))


def main() -> None:
    parser = argparse.ArgumentParser(description="Search stored documents by text query.")
    parser.add_argument("--query", "-q", required=True, help="Query text")
    parser.add_argument("--top-k", type=int, default=5, help="How many results to return")
    parser.add_argument("--where", default=None, help="Chroma metadata filter as JSON")
    parser.add_argument("--snippet", type=int, default=300, help="Snippet length")
    args = parser.parse_args()

    setup_logging()
    where = json.loads(args.where) if args.where else None
    asyncio.run(search(args.query, args.top_k, where, args.snippet))


if __name__ == "__main__":
    main()
