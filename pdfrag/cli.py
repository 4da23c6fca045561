"""Command-line entry point for PDF ingestion and question answering.

Usage:
    pdfrag                                        # interactive menu
    pdfrag --ingest paper.pdf embeddings.json     # build a store
    pdfrag --query "What is X?" [embeddings.json] # ask a question
"""
import argparse
import asyncio
import sys
from typing import List, Optional

import structlog

from pdfrag import config
from pdfrag.config import RAGConfig
from pdfrag.errors import RAGError
from pdfrag.llm_client import OllamaClient
from pdfrag.logging_config import configure_logging
from pdfrag.rag.ingest import IngestPipeline, IngestResult
from pdfrag.rag.retriever import Answer, Retriever

logger = structlog.get_logger()


class UsageError(Exception):
    """Raised for invocations that do not match any mode."""


class _ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        raise UsageError(message)


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="pdfrag",
        description="Ingest a PDF into a JSON embedding store and ask questions about it",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  pdfrag --ingest paper.pdf embeddings.json
  pdfrag --query "What is multi-head attention?" embeddings.json
  pdfrag                                   # interactive mode
        """,
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--ingest",
        nargs=2,
        metavar=("PDF_PATH", "OUTPUT_PATH"),
        help="Extract, chunk and embed a PDF, writing the store to OUTPUT_PATH",
    )
    mode.add_argument(
        "--query",
        nargs="+",
        metavar="ARG",
        help=f"QUESTION [STORE_PATH] (default store: {config.DEFAULT_STORE_PATH})",
    )
    return parser


def print_usage() -> None:
    print("Usage:")
    print("  pdfrag --ingest <pdf-path> <output-path>")
    print("  pdfrag --query <question> [embeddings-path]")
    print("  pdfrag (interactive mode)")


def print_ingest_result(result: IngestResult) -> None:
    print(f"\n  Pages loaded:    {result.pages_loaded}")
    print(f"  Pages kept:      {result.pages_kept}")
    print(f"  Chunks created:  {result.chunks_created}")
    print(f"  Chunks kept:     {result.chunks_kept}")
    print(f"  Saved {result.records_written} embeddings to {result.output_path}\n")


def print_answer(answer: Answer) -> None:
    if answer.skipped:
        print(f"Skipped {answer.skipped} items with missing/invalid embeddings.")
    print(f"Top {len(answer.results)} chunks:")
    for result in answer.results:
        print(f"{result.rank}. id={result.id} score={result.score:.4f} page={result.page}")
    print("\n---Assistant response---\n")
    print(answer.text)


async def run_ingest(cfg: RAGConfig, pdf_path: str, output_path: str) -> IngestResult:
    client = OllamaClient.from_config(cfg)
    pipeline = IngestPipeline(cfg, embedder=client)
    return await pipeline.ingest(pdf_path, output_path)


async def run_query(cfg: RAGConfig, question: str, store_path: str) -> Answer:
    client = OllamaClient.from_config(cfg)
    retriever = Retriever(cfg, embedder=client, chat=client)
    return await retriever.answer(question, store_path)


def _prompt(message: str, default: Optional[str] = None) -> str:
    value = input(message).strip()
    if not value and default is not None:
        return default
    return value


def interactive(cfg: RAGConfig) -> int:
    """Menu loop: ingest, query or exit. Errors are logged and the menu shown again."""
    while True:
        print("\n=== RAG System ===")
        print("Choose an option:")
        print("1. Ingest PDF and create embeddings")
        print("2. Query existing embeddings")
        print("3. Exit")

        try:
            choice = _prompt("Enter your choice (1-3): ")

            if choice == "1":
                pdf_path = _prompt("Enter PDF file path: ")
                output_path = _prompt(
                    f"Enter output JSON file path (default: {config.DEFAULT_STORE_PATH}): ",
                    config.DEFAULT_STORE_PATH,
                )
                try:
                    print_ingest_result(asyncio.run(run_ingest(cfg, pdf_path, output_path)))
                except RAGError as e:
                    logger.error("ingest_failed", error=str(e), error_type=type(e).__name__)
                    print(f"Failed to ingest PDF: {e}")

            elif choice == "2":
                store_path = _prompt(
                    f"Enter embeddings JSON file path (default: {config.DEFAULT_STORE_PATH}): ",
                    config.DEFAULT_STORE_PATH,
                )
                question = _prompt("Enter your question: ")
                try:
                    print_answer(asyncio.run(run_query(cfg, question, store_path)))
                except RAGError as e:
                    logger.error("query_failed", error=str(e), error_type=type(e).__name__)
                    print(f"Failed to process query: {e}")

            elif choice == "3":
                print("Goodbye!")
                return 0

            else:
                print("Invalid choice. Please try again.")

        except (EOFError, KeyboardInterrupt):
            print("\nGoodbye!")
            return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Parse arguments, configure logging and dispatch. Returns the exit status."""
    argv = sys.argv[1:] if argv is None else argv

    try:
        args = build_parser().parse_args(argv)
        if args.query is not None and len(args.query) > 2:
            raise UsageError("--query takes a question and an optional store path")
    except UsageError as e:
        print(f"error: {e}")
        print_usage()
        return 1

    try:
        cfg = RAGConfig.from_env()
    except ValueError as e:
        print(f"Invalid configuration: {e}")
        return 1

    configure_logging(cfg.log_level, cfg.log_format)

    if args.ingest is None and args.query is None:
        return interactive(cfg)

    try:
        if args.ingest is not None:
            pdf_path, output_path = args.ingest
            print_ingest_result(asyncio.run(run_ingest(cfg, pdf_path, output_path)))
        else:
            question = args.query[0]
            store_path = args.query[1] if len(args.query) > 1 else config.DEFAULT_STORE_PATH
            print_answer(asyncio.run(run_query(cfg, question, store_path)))

    except KeyboardInterrupt:
        print("\nCancelled by user.")
        return 1

    except RAGError as e:
        logger.error("command_failed", error=str(e), error_type=type(e).__name__)
        print(f"Error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
