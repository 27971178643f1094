import argparse
import asyncio
import json
import logging
from pathlib import Path

from hybrid_search.config.settings import settings
from hybrid_search.container import configure_container, container
from hybrid_search.core.errors import HybridSearchError
from hybrid_search.core.protocols.embedder import EmbedderProtocol
from hybrid_search.core.protocols.stores import ConfigStoreProtocol, HistoryStoreProtocol
from hybrid_search.core.services.chat_service import ConversationalSearchService
from hybrid_search.core.services.ingest_service import IngestService
from hybrid_search.core.services.search_service import SearchService

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hybrid-search", description="Hybrid vector + lexical retrieval"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    def command(name: str, help_text: str, with_files: bool = True, with_debug: bool = False):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("collection")
        if with_files:
            sub.add_argument(
                "--file",
                dest="files",
                action="append",
                default=[],
                help="Text file to ingest first (repeatable)",
            )
        if with_debug:
            sub.add_argument("--debug", action="store_true", help="Include debug payload")
        return sub

    ingest = command("ingest", "Chunk and index text files", with_files=False)
    ingest.add_argument("paths", nargs="+")

    search = command("search", "Run one hybrid search", with_debug=True)
    search.add_argument("query", nargs="+")

    command("chat", "Conversational retrieval over stdin", with_debug=True)

    config = command("config", "Show or update a retrieval config", with_files=False)
    config.add_argument("assignments", nargs="*", metavar="key=value")

    command("backfill", "Embed fragments that have no vector yet")

    terms = command("terms", "Show which fragments contain which terms")
    terms.add_argument("terms", help="Comma-separated terms")

    return parser


def _parse_value(raw: str):
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False, default=str))


async def _ingest_files(collection_id: str, files: list[str]) -> None:
    ingest_service = container.resolve(IngestService)
    for name in files:
        path = Path(name)
        text = path.read_text(encoding="utf-8")
        result = await ingest_service.ingest_text(
            collection_id, title=path.stem, text=text, source_ref=str(path)
        )
        logger.info(
            f"{path.name}: {result.fragment_count} fragments, embedded={result.embedded}"
        )


async def cmd_ingest(collection_id: str, files: list[str]) -> None:
    """Ingest command - chunk and index text files."""
    await _ingest_files(collection_id, files)


async def cmd_search(collection_id: str, query: str, files: list[str], debug: bool) -> None:
    """Search command - index files, then run one hybrid search."""
    await _ingest_files(collection_id, files)
    response = await container.resolve(SearchService).search(
        collection_id, query, debug=debug
    )
    _print_json(response.to_dict())


async def cmd_chat(collection_id: str, files: list[str], debug: bool) -> None:
    """Chat command - conversational retrieval over stdin."""
    await _ingest_files(collection_id, files)
    chat_service = container.resolve(ConversationalSearchService)
    history_store = container.resolve(HistoryStoreProtocol)
    conversation_id = "cli"

    print("Type a question, empty line to quit.")
    while True:
        try:
            query = input("> ").strip()
        except EOFError:
            break
        if not query:
            break

        response = await chat_service.search_conversation(
            collection_id, conversation_id, query, debug=debug
        )
        _print_json(response.to_dict())

        history_store.append(conversation_id, "user", query)
        top = response.results[0].content if response.results else "No relevant fragments."
        history_store.append(conversation_id, "assistant", top)


def cmd_config(collection_id: str, assignments: list[str]) -> None:
    """Config command - show or update a collection's retrieval config."""
    config_store = container.resolve(ConfigStoreProtocol)
    partial = {}
    for assignment in assignments:
        key, sep, value = assignment.partition("=")
        if not sep:
            raise SystemExit(f"Expected key=value, got '{assignment}'")
        partial[key.strip()] = _parse_value(value.strip())

    if partial:
        config = config_store.update(collection_id, partial)
    else:
        config = config_store.get_or_create(collection_id)
    _print_json(config.to_dict())


async def cmd_backfill(collection_id: str, files: list[str]) -> None:
    """Backfill command - embed fragments that have no vector yet."""
    await _ingest_files(collection_id, files)
    result = await container.resolve(IngestService).backfill_embeddings(collection_id)
    _print_json(result.to_dict())


async def cmd_terms(collection_id: str, terms: str, files: list[str]) -> None:
    """Terms command - show which fragments contain which terms."""
    await _ingest_files(collection_id, files)
    report = await container.resolve(IngestService).term_report(
        collection_id, terms.split(",")
    )
    _print_json(report.to_dict())


def _warmup_embedder() -> None:
    """Load the local model before the first question, not during it."""
    if settings.embedding_backend.lower() != "sentence_transformers":
        return
    embedder = container.resolve(EmbedderProtocol)
    if embedder is not None:
        embedder.warmup()


def main(argv: list[str] | None = None):
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    configure_container(settings)

    try:
        if args.command == "ingest":
            asyncio.run(cmd_ingest(args.collection, args.paths))
        elif args.command == "search":
            asyncio.run(
                cmd_search(args.collection, " ".join(args.query), args.files, args.debug)
            )
        elif args.command == "chat":
            _warmup_embedder()
            asyncio.run(cmd_chat(args.collection, args.files, args.debug))
        elif args.command == "config":
            cmd_config(args.collection, args.assignments)
        elif args.command == "backfill":
            asyncio.run(cmd_backfill(args.collection, args.files))
        elif args.command == "terms":
            asyncio.run(cmd_terms(args.collection, args.terms, args.files))
    except (HybridSearchError, ValueError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
