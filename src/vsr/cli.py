"""
Index a directory of documents and answer queries interactively.

Usage:
    vsr [--html] [--stopwords] [--stem] [--feedback] DIRECTORY
"""

from __future__ import annotations

import argparse
import logging
from collections.abc import Callable

from vsr.config import Config
from vsr.documents import iter_directory
from vsr.errors import UsageError
from vsr.index import DocumentReference, IndexBuilder
from vsr.logging_config import setup_logging
from vsr.session import SearchSession

logger = logging.getLogger(__name__)

# Lines of a document shown by the "show" command
PREVIEW_LINES = 20

InputFn = Callable[[str], str]
OutputFn = Callable[[str], None]


def show_document(document: DocumentReference, output: OutputFn = print) -> None:
    """Prints where a document lives and the start of its text."""
    source = document.source
    path = getattr(source, "path", None)
    output(f"Document {document.doc_id}" + (f" ({path})" if path is not None else ""))
    text = getattr(source, "text", None)
    if text is None and hasattr(source, "read_text"):
        text = source.read_text()
    if text:
        for line in text.strip().splitlines()[:PREVIEW_LINES]:
            output(f"  {line}")


def _help(session: SearchSession, output: OutputFn) -> None:
    output("Enter `m' to see more, a number to show the nth document, nothing to exit.")
    if session.feedback is not None:
        output("Enter `r' to use any relevance feedback given to `redo' with a revised query.")


def show_results(session: SearchSession, output: OutputFn = print) -> bool:
    """Prints the first page of results; False when there are none."""
    if not session.retrievals:
        output("No matching documents found.")
        return False
    output(f"Top {session.config.max_retrievals} matching Documents from most to least relevant:")
    for line in session.format_page(0):
        output(line)
    _help(session, output)
    return True


def _ask_relevance(session: SearchSession, rank: int, input_fn: InputFn, output: OutputFn) -> None:
    while True:
        answer = input_fn("Is this document relevant to your query? (y/n): ").strip().lower()
        if answer in ("y", "yes", "n", "no"):
            session.judge(rank, answer.startswith("y"))
            return
        output("Please answer y or n.")


def browse_results(
    session: SearchSession,
    input_fn: InputFn = input,
    output: OutputFn = print,
) -> None:
    """Command loop for one query: paging, showing documents, feedback."""
    if not show_results(session, output):
        return
    position = session.config.max_retrievals
    while True:
        command = input_fn("Enter command: ").strip()
        if not command:
            return
        if command == "m":
            for line in session.format_page(position):
                output(line)
            position += session.config.max_retrievals
            continue
        if command == "r" and session.feedback is not None:
            if session.feedback.is_empty():
                output("Need to first view some documents and provide feedback.")
                continue
            output(f"Positive docs: {[d.doc_id for d in session.feedback.good]}")
            output(f"Negative docs: {[d.doc_id for d in session.feedback.bad]}")
            output("Executing New Expanded and Reweighted Query:")
            session.refine()
            position = session.config.max_retrievals
            if not show_results(session, output):
                return
            continue
        try:
            rank = int(command)
        except ValueError:
            output("Unknown command.")
            _help(session, output)
            continue
        try:
            document = session.document_at(rank)
        except ValueError as e:
            output(str(e))
            continue
        show_document(document, output)
        if session.feedback is not None and not session.has_feedback(rank):
            _ask_relevance(session, rank, input_fn, output)


def run_console(
    session: SearchSession,
    input_fn: InputFn = input,
    output: OutputFn = print,
) -> None:
    """Reads queries until an empty one is entered or input ends."""
    output("Now able to process queries. When done, enter an empty query to exit.")
    while True:
        try:
            query = input_fn("Enter query: ").strip()
            if not query:
                return
            session.search(query)
            browse_results(session, input_fn, output)
        except UsageError as e:
            output(f"Error: {e}")
        except EOFError:
            # Ctrl-D ends the session like an empty query
            output("")
            return


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vsr",
        description="Index a directory of documents and run ranked TF-IDF retrieval.",
    )
    parser.add_argument("directory", help="Directory whose files are indexed.")
    parser.add_argument("--html", action="store_true", default=None, help="Strip HTML tags from documents.")
    parser.add_argument("--stopwords", action="store_true", default=None, help="Remove English stopwords.")
    parser.add_argument("--stem", action="store_true", default=None, help="Reduce tokens to Porter stems.")
    parser.add_argument("--feedback", action="store_true", default=None, help="Enable relevance feedback.")
    parser.add_argument(
        "--max-retrievals",
        type=int,
        default=None,
        help="Number of results shown per page (default: 10).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Console log level (default: INFO).",
    )
    parser.add_argument("--log-file", default=None, help="Also write detailed logs to this file.")
    return parser


def main(argv: list[str] | None = None, input_fn: InputFn = input, output: OutputFn = print) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config = Config.from_args(args)
    except ValueError as e:
        parser.error(str(e))
    setup_logging(config.log_level, config.log_file)

    logger.info("Indexing documents in %s", args.directory)
    try:
        documents = iter_directory(
            args.directory, html=config.html, stopwords=config.stopword_set, stem=config.stem
        )
        index = IndexBuilder().build(documents)
    except FileNotFoundError as e:
        parser.error(str(e))

    run_console(SearchSession(index, config), input_fn, output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
