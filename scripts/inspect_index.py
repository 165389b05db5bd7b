"""
Utility script to inspect stored documents without embeddings.

Usage:
    python -m scripts.inspect_index --limit 5 --offset 0
"""

from __future__ import annotations

import argparse
import asyncio
import json

from docstore.context import StoreContext


async def inspect(limit: int, offset: int) -> None:
    async with StoreContext() as context:
        info = await context.store.info()
        documents = await context.store.get()

    page = documents[offset : offset + limit]
    print(f"Collection: {info.name}")
    print(f"Total documents in collection: {info.count}")
    print(f"Showing {len(page)} documents (offset={offset}, limit={limit})")
    for idx, doc in enumerate(page, start=offset + 1):
        print(f"\n#{idx}: {doc.id}")
        # Put the synthesized fields first
        order = ["index", "createdAt"]
        ordered_meta = {k: doc.metadata[k] for k in order if k in doc.metadata} | {
            k: v for k, v in doc.metadata.items() if k not in order and k != "text"
        }
        print("Metadata:", json.dumps(ordered_meta, ensure_ascii=False))
        snippet = doc.text[:400].replace("\n", " ")
        print("Text:", snippet + ("..." if len(doc.text) > 400 else ""))


def main() -> None:
    parser = argparse.ArgumentParser(description="Inspect stored documents in Chroma.")
    parser.add_argument("--limit", type=int, default=5, help="Number of documents to show")
    parser.add_argument("--offset", type=int, default=0, help="Offset for pagination")
    args = parser.parse_args()

    asyncio.run(inspect(args.limit, args.offset))


if __name__ == "__main__":
    main()
