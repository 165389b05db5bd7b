"""
CLI for bulk-loading documents from a text file, one document per non-empty line.

Usage:
    python -m scripts.load_documents --file notes.txt --batch 32
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List

from tqdm import tqdm

from docstore.config import setup_logging
from docstore.context import StoreContext
from docstore.errors import DocumentStoreError


def read_documents(path: Path) -> List[str]:
    with path.open(encoding="utf-8") as fh:
        return [line.strip() for line in fh if line.strip()]


async def load(texts: List[str], batch: int, clear: bool) -> int:
    added = 0
    async with StoreContext() as context:
        if clear:
            await context.store.clear()
        for i in tqdm(range(0, len(texts), batch), desc="Loading", unit="batch"):
            chunk = texts[i : i + batch]
            ids = await context.store.add(chunk)
            added += len(ids)
    return added


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Load documents into the collection.")
    parser.add_argument("--file", "-f", required=True, type=Path, help="Text file, one document per line")
    parser.add_argument("--batch", type=int, default=32, help="Documents per add() call")
    parser.add_argument("--clear", action="store_true", help="Clear the collection first")
    return parser.parse_args()


def main() -> None:
    setup_logging()
    logger = logging.getLogger(__name__)
    args = parse_args()

    texts = read_documents(args.file)
    if not texts:
        print("No documents found in file")
        return

    try:
        added = asyncio.run(load(texts, max(1, args.batch), args.clear))
    except DocumentStoreError:
        logger.exception("Loading documents failed")
        sys.exit(1)

    print(f"Added documents: {added}")


if __name__ == "__main__":
    main()
