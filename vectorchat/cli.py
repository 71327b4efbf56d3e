"""
Maintenance utility for the per-user vector stores.

    vectorchat-admin list alice
    vectorchat-admin index alice "The capital of France is Paris."
    vectorchat-admin query alice "What is the capital of France?"
    vectorchat-admin reembed alice
    vectorchat-admin clear alice
    vectorchat-admin check

reembed rebuilds a store with the configured embedding model; use it after
switching models, since a store only accepts one embedding dimension.
"""

import argparse
import os
import sys

import dotenv

from .core import config
from .core.errors import DimensionMismatch, EmbeddingError, ValidationError
from .vector.embeddings import EmbeddingClient
from .vector.ranker import find_best_match
from .vector.store import VectorStoreRegistry


def _registry() -> VectorStoreRegistry:
    return VectorStoreRegistry(config.get_storage(), os.getenv("VECTOR_NAMESPACE", config.VECTOR_NAMESPACE))


def cmd_list(args) -> int:
    store = _registry().for_user(args.user)
    entries = store.list()
    if store.last_corruption:
        print(f"WARNING: {store.last_corruption}")
    print(f"{len(entries)} entries (dimension: {store.dimension})")
    for entry in entries:
        preview = entry.content if len(entry.content) <= 70 else entry.content[:70] + "..."
        print(f"  {entry.id}  {preview}")
    return 0


def cmd_index(args) -> int:
    client = EmbeddingClient(config.get_embedding_provider())
    try:
        entry = _registry().for_user(args.user).add(args.content, client.embed(args.content))
    except (ValidationError, EmbeddingError, DimensionMismatch) as e:
        print(f"ERROR: {e}")
        return 1
    print(f"✓ Indexed {entry.id} ({entry.dimension} dimensions)")
    return 0


def cmd_query(args) -> int:
    entries = _registry().for_user(args.user).list()
    if not entries:
        print("Store is empty.")
        return 0

    client = EmbeddingClient(config.get_embedding_provider())
    try:
        query = client.embed(args.question)
    except (ValidationError, EmbeddingError) as e:
        print(f"ERROR: {e}")
        return 1

    threshold = args.threshold if args.threshold is not None else config.get_relevance_threshold()
    result = find_best_match(query, entries, threshold=threshold, top_k=args.top_k)
    verdict = "injected" if result.cleared_threshold else "below threshold"
    print(f"Best match {result.entry.id} score={result.score:.4f} ({verdict}, threshold {threshold})")
    print(f"  {result.entry.content}")
    return 0


def cmd_reembed(args) -> int:
    store = _registry().for_user(args.user)
    count = len(store)
    if not count:
        print("No entries to rebuild. Exiting.")
        return 0

    client = EmbeddingClient(config.get_embedding_provider())
    print(f"Re-embedding {count} entries with {client.provider.model_name}...")
    try:
        rebuilt = store.rebuild(client.embed)
    except (EmbeddingError, DimensionMismatch) as e:
        # Nothing has been written, the old store is intact
        print(f"ERROR: {e}")
        return 1

    print(f"✓ Rebuilt {rebuilt} entries at dimension {store.dimension}")
    return 0


def cmd_clear(args) -> int:
    store = _registry().for_user(args.user)
    count = len(store)
    store.clear()
    print(f"✓ Cleared {count} entries")
    return 0


def cmd_check(args) -> int:
    issues = config.validate_config()
    storage = config.get_storage()
    print(f"Storage: {type(storage).__name__} ({'healthy' if storage.health() else 'unhealthy'})")
    for issue in issues:
        print(f"  ✗ {issue}")
    if not issues:
        print("  ✓ Configuration is valid")
    return 1 if issues else 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="vectorchat-admin", description="Vector store maintenance")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="List a user's stored documents")
    p.add_argument("user")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("index", help="Embed and store a document")
    p.add_argument("user")
    p.add_argument("content")
    p.set_defaults(func=cmd_index)

    p = sub.add_parser("query", help="Show the best match for a question")
    p.add_argument("user")
    p.add_argument("question")
    p.add_argument("--threshold", type=float, default=None)
    p.add_argument("--top-k", type=int, default=1)
    p.set_defaults(func=cmd_query)

    p = sub.add_parser("reembed", help="Rebuild a store with the configured embedding model")
    p.add_argument("user")
    p.set_defaults(func=cmd_reembed)

    p = sub.add_parser("clear", help="Delete all of a user's documents")
    p.add_argument("user")
    p.set_defaults(func=cmd_clear)

    p = sub.add_parser("check", help="Validate configuration and storage")
    p.set_defaults(func=cmd_check)

    return parser


def main(argv=None) -> int:
    dotenv.load_dotenv()
    args = build_parser().parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
