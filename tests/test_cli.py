"""Tests for the command-line entry point."""
import pytest

from pdfrag import cli
from pdfrag.rag.store_json import JSONEmbeddingStore


@pytest.fixture(autouse=True)
def quiet_cli(monkeypatch):
    """Keep the CLI from reconfiguring logging and read a clean environment."""
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    for name in ("TOP_K", "OLLAMA_MODEL", "CHUNK_SIZE", "CHUNK_OVERLAP"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_service(monkeypatch, ollama):
    """Route every OllamaClient the CLI builds to the shared fake."""
    monkeypatch.setattr(cli.OllamaClient, "from_config", classmethod(lambda cls, cfg: ollama))
    return ollama


@pytest.mark.parametrize(
    "argv",
    [
        ["--bogus"],
        ["--ingest", "only-one.pdf"],
        ["--query"],
        ["--query", "question", "store.json", "extra"],
        ["--ingest", "a.pdf", "b.json", "--query", "q"],
        ["stray"],
    ],
)
def test_bad_invocation_prints_usage(argv, capsys):
    """Test that anything other than the three modes exits with status 1."""
    assert cli.main(argv) == 1
    assert "Usage:" in capsys.readouterr().out


def test_ingest_command(pdf_factory, tmp_path, fake_service, capsys):
    """Test --ingest end to end with a generated PDF."""
    pdf_path = pdf_factory(
        ["Every chunk is embedded once and written to the JSON store for later use."]
    )
    output = tmp_path / "out.json"

    assert cli.main(["--ingest", str(pdf_path), str(output)]) == 0

    records = JSONEmbeddingStore(output).read()
    assert [r.id for r in records] == ["chunk-0"]
    assert f"Saved 1 embeddings to {output}" in capsys.readouterr().out


def test_ingest_missing_pdf_fails(tmp_path, fake_service, capsys):
    """Test that extraction errors exit with status 1 and write nothing."""
    output = tmp_path / "out.json"
    assert cli.main(["--ingest", str(tmp_path / "missing.pdf"), str(output)]) == 1
    assert "Error:" in capsys.readouterr().out
    assert not output.exists()


def test_query_command(tmp_path, sample_records, fake_service, capsys):
    """Test --query prints the top chunks and the reply."""
    store = tmp_path / "embeddings.json"
    JSONEmbeddingStore(store).write(sample_records)
    fake_service.query_vector = [1.0, 0.0, 0.0]

    assert cli.main(["--query", "What is attention?", str(store)]) == 0

    out = capsys.readouterr().out
    assert "1. id=chunk-0 score=1.0000 page=1" in out
    assert "page=Unknown" in out
    assert "---Assistant response---" in out
    assert "The answer is 42." in out
    assert fake_service.query_calls == ["What is attention?"]


def test_query_uses_default_store_path(tmp_path, monkeypatch, sample_records, fake_service):
    """Test that the store path defaults to ./embeddings.json."""
    monkeypatch.chdir(tmp_path)
    JSONEmbeddingStore(tmp_path / "embeddings.json").write(sample_records)

    assert cli.main(["--query", "anything"]) == 0


def test_query_missing_store_fails(tmp_path, fake_service, capsys):
    """Test that an unreadable store exits with status 1."""
    assert cli.main(["--query", "q", str(tmp_path / "missing.json")]) == 1
    assert "Error:" in capsys.readouterr().out


def test_invalid_top_k(monkeypatch, capsys):
    """Test that bad configuration is reported before anything runs."""
    monkeypatch.setenv("TOP_K", "many")
    assert cli.main(["--query", "q"]) == 1
    assert "TOP_K" in capsys.readouterr().out


def _feed(monkeypatch, answers):
    replies = iter(answers)
    monkeypatch.setattr("builtins.input", lambda prompt="": next(replies))


def test_interactive_query_then_exit(tmp_path, monkeypatch, sample_records, fake_service, capsys):
    """Test the menu: answer one question, then exit."""
    store = tmp_path / "embeddings.json"
    JSONEmbeddingStore(store).write(sample_records)
    _feed(monkeypatch, ["2", str(store), "What is attention?", "3"])

    assert cli.main([]) == 0

    out = capsys.readouterr().out
    assert "The answer is 42." in out
    assert "Goodbye!" in out


def test_interactive_error_returns_to_menu(tmp_path, monkeypatch, fake_service, capsys):
    """Test that a failed query is reported and the menu is shown again."""
    _feed(monkeypatch, ["2", str(tmp_path / "missing.json"), "q", "9", "3"])

    assert cli.main([]) == 0

    out = capsys.readouterr().out
    assert "Failed to process query" in out
    assert "Invalid choice" in out
    assert out.count("=== RAG System ===") == 3


def test_interactive_ingest_default_output(pdf_factory, tmp_path, monkeypatch, fake_service):
    """Test that a blank output path falls back to ./embeddings.json."""
    monkeypatch.chdir(tmp_path)
    pdf_path = pdf_factory([""])
    _feed(monkeypatch, ["1", str(pdf_path), "", "3"])

    assert cli.main([]) == 0
    assert (tmp_path / "embeddings.json").read_text(encoding="utf-8") == "[]"


def test_interactive_end_of_input(monkeypatch, capsys):
    """Test that EOF on stdin leaves the menu cleanly."""

    def raise_eof(prompt=""):
        raise EOFError

    monkeypatch.setattr("builtins.input", raise_eof)
    assert cli.main([]) == 0


def test_interactive_write_error_returns_to_menu(pdf_factory, tmp_path, monkeypatch, fake_service, capsys):
    """Test that an unwritable output path is reported and the menu comes back."""
    pdf_path = pdf_factory(
        ["Every chunk is embedded once and written to the JSON store for later use."]
    )
    outdir = tmp_path / "outdir"
    outdir.mkdir()
    _feed(monkeypatch, ["1", str(pdf_path), str(outdir), "3"])

    assert cli.main([]) == 0

    out = capsys.readouterr().out
    assert "Failed to ingest PDF" in out
    assert out.count("=== RAG System ===") == 2
    assert "Goodbye!" in out


def test_ingest_command_write_error(pdf_factory, tmp_path, fake_service, capsys):
    """Test that --ingest exits with status 1 when the store cannot be written."""
    pdf_path = pdf_factory(
        ["Every chunk is embedded once and written to the JSON store for later use."]
    )
    outdir = tmp_path / "outdir"
    outdir.mkdir()

    assert cli.main(["--ingest", str(pdf_path), str(outdir)]) == 1
    assert "Error:" in capsys.readouterr().out
