#!/usr/bin/env python
"""Check that pdfrag can run here: interpreter, packages, config and Ollama.

Usage:
    python scripts/validate_setup.py

Exits with status 1 when any check fails.
"""
import asyncio
import sys
from pathlib import Path
from typing import List

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

PACKAGES = [
    ("fitz", "PyMuPDF"),
    ("httpx", "httpx"),
    ("numpy", "numpy"),
    ("structlog", "structlog"),
    ("pytest", "pytest (tests only)"),
]


class Report:
    """Collects check outcomes and prints them as they arrive."""

    def __init__(self):
        self.failures: List[str] = []
        self.warnings: List[str] = []

    def heading(self, title: str) -> None:
        print(f"\n== {title} ==")

    def ok(self, message: str) -> None:
        print(f"  [ok]   {message}")

    def note(self, message: str) -> None:
        print(f"         {message}")

    def warn(self, message: str) -> None:
        print(f"  [warn] {message}")
        self.warnings.append(message)

    def fail(self, message: str, hint: str = "") -> None:
        print(f"  [fail] {message}")
        if hint:
            self.note(hint)
        self.failures.append(message)


def check_python(report: Report) -> None:
    report.heading("Python")
    version = ".".join(str(part) for part in sys.version_info[:3])
    if sys.version_info >= (3, 9):
        report.ok(f"Python {version}")
    else:
        report.fail(f"Python {version} is older than 3.9")

    if sys.prefix == getattr(sys, "base_prefix", sys.prefix):
        report.warn("not running inside a virtual environment")


def check_packages(report: Report) -> None:
    report.heading("Packages")
    for module_name, label in PACKAGES:
        try:
            __import__(module_name)
        except ImportError as e:
            report.fail(f"{label} is not importable ({e})", hint='pip install -e ".[test]"')
        else:
            report.ok(label)


def check_config(report: Report):
    from pdfrag.config import RAGConfig
    report.heading("Configuration")
    cfg = RAGConfig.from_env()
    report.ok("environment parsed")
    report.note(f"Ollama URL:      {cfg.ollama_base_url}")
    report.note(f"Chat model:      {cfg.chat_model}")
    report.note(f"Embedding model: {cfg.embedding_model}")
    report.note(f"Chunking:        {cfg.chunk_size} chars, {cfg.chunk_overlap} overlap")
    report.note(f"Top-K:           {cfg.top_k}")
    return cfg


async def check_ollama(report: Report, cfg) -> None:
    from pdfrag.llm_client import OllamaClient
    report.heading("Ollama")
    client = OllamaClient.from_config(cfg)

    try:
        installed = set(await client.list_models())
    except Exception as e:
        report.fail(f"cannot reach {cfg.ollama_base_url}: {e}", hint="start it with: ollama serve")
        return

    report.ok(f"{len(installed)} models installed")
    for role, model in (("chat", cfg.chat_model), ("embedding", cfg.embedding_model)):
        # untagged names are listed with a ":latest" suffix
        if model in installed or f"{model}:latest" in installed:
            report.ok(f"{role} model {model}")
        else:
            report.fail(f"{role} model {model} is not installed", hint=f"ollama pull {model}")

    try:
        vector = await client.embed_query("setup check")
    except Exception as e:
        report.fail(f"embedding request failed: {e}")
    else:
        report.ok(f"embedding request returned {len(vector)} dimensions")


async def main() -> int:
    report = Report()
    check_python(report)
    before = len(report.failures)
    check_packages(report)
    if len(report.failures) > before:
        print("\n  install the missing packages before checking Ollama")
        return 1

    try:
        cfg = check_config(report)
    except ValueError as e:
        report.fail(f"invalid configuration: {e}")
    else:
        await check_ollama(report, cfg)

    report.heading("Result")
    if report.failures:
        print(f"  {len(report.failures)} check(s) failed, {len(report.warnings)} warning(s)")
        return 1

    print(f"  all checks passed, {len(report.warnings)} warning(s)")
    print("  next: pdfrag --ingest <pdf-path> ./embeddings.json")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
