"""Command-line front end for reading papers with a language model.

Usage::

    python -m paperlens.cli ask paper.pdf "What dataset do they use?"
    python -m paperlens.cli ask paper.pdf "Explain eq. 3" --pages 4-5
    python -m paperlens.cli brief paper.pdf
    python -m paperlens.cli models --provider ollama
    python -m paperlens.cli ping
    python -m paperlens.cli info paper.pdf --json

Answers stream to stdout; progress and logs go to stderr.  Ctrl-C while an
answer is streaming stops it and keeps what arrived so far.

Provider, model, base URL and key come from the environment / ``.env``
(see :class:`~paperlens.config.settings.Settings`) and can be overridden
per invocation with ``--provider``, ``--model``, ``--base-url`` and
``--api-key``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from collections.abc import Callable
from typing import Any

from paperlens.config.settings import Settings
from paperlens.models.chat import FailedEvent, TokenEvent
from paperlens.models.document import IngestionProgress, PageRangeOption
from paperlens.utils.errors import PaperLensError, RequestCancelledError
from paperlens.utils.logging import configure_logging


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {}
    for option, field in (
        ("provider", "llm_provider"),
        ("model", "llm_model"),
        ("base_url", "llm_base_url"),
        ("api_key", "llm_api_key"),
    ):
        value = getattr(args, option, None)
        if value:
            overrides[field] = value
    return Settings(**overrides)


def _install_interrupt(handler: Callable[[], None]) -> bool:
    """Route Ctrl-C to *handler* instead of cancelling the event loop."""
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, handler)
    except (NotImplementedError, RuntimeError):
        return False
    return True


def _remove_interrupt() -> None:
    try:
        asyncio.get_running_loop().remove_signal_handler(signal.SIGINT)
    except (NotImplementedError, RuntimeError):
        pass


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def _cmd_ask(args: argparse.Namespace) -> int:
    from paperlens.main import build_chat_session, open_document

    s = _settings_from_args(args)
    session = build_chat_session(s)

    def _on_progress(document_id: str, progress: IngestionProgress) -> None:
        print(f"\rIndexing {progress.phase.value.lower():<10} {progress.fraction:4.0%}", end="", file=sys.stderr)

    document = open_document(args.document)
    session.assembler.progress_tracker.register_listener(document.document_id, _on_progress)
    await session.open_document(document)
    print(file=sys.stderr)

    if args.pages:
        option = PageRangeOption.CUSTOM
    elif args.page is not None:
        option = PageRangeOption.CURRENT_PAGE
    else:
        option = PageRangeOption.ALL
    if args.selection:
        session.set_selection(args.selection)

    _install_interrupt(session.stop)
    exit_code = 0
    try:
        async for event in session.send(
            args.question,
            page_range_option=option,
            current_page=max(0, (args.page or 1) - 1),
            custom_range=args.pages or "",
        ):
            if isinstance(event, TokenEvent):
                sys.stdout.write(event.text)
                sys.stdout.flush()
            elif isinstance(event, FailedEvent):
                print(f"\nError: {event.message}", file=sys.stderr)
                exit_code = 1
            elif event.type == "cancelled":
                print("\n[stopped]", file=sys.stderr)
        print()
    finally:
        _remove_interrupt()
    return exit_code


async def _cmd_brief(args: argparse.Namespace) -> int:
    from paperlens.main import build_briefing_service, build_gateway, open_document

    s = _settings_from_args(args)
    gateway = build_gateway(s)
    briefing = build_briefing_service(s)

    def _on_progress(fraction: float) -> None:
        print(f"\rGenerating brief {fraction:4.0%}", end="", file=sys.stderr)

    document = open_document(args.document)
    _install_interrupt(briefing.cancel)
    try:
        brief = await briefing.generate_brief(document, gateway, on_progress=_on_progress)
    except RequestCancelledError:
        print("\n[stopped]", file=sys.stderr)
        return 130
    finally:
        _remove_interrupt()
        await gateway.aclose()
    print(file=sys.stderr)

    if args.json_output:
        print(brief.model_dump_json(indent=2))
    else:
        print(brief.to_markdown())
    return 0


async def _cmd_models(args: argparse.Namespace) -> int:
    from paperlens.main import build_gateway

    gateway = build_gateway(_settings_from_args(args))
    try:
        for model in await gateway.list_models():
            print(model)
    finally:
        await gateway.aclose()
    return 0


async def _cmd_ping(args: argparse.Namespace) -> int:
    from paperlens.main import build_gateway

    gateway = build_gateway(_settings_from_args(args))
    try:
        ok = await gateway.test_connection()
    finally:
        await gateway.aclose()
    print(f"{gateway.get_provider_name()}: {'ok' if ok else 'unreachable'}")
    return 0 if ok else 1


async def _cmd_info(args: argparse.Namespace) -> int:
    from paperlens.main import open_document
    from paperlens.services.extraction.extractor import DocumentExtractor

    document = open_document(args.document)
    info = DocumentExtractor().document_info(document)
    if args.json_output:
        print(info.model_dump_json(indent=2))
        return 0

    print(f"Pages:  {info.page_count}")
    if info.title:
        print(f"Title:  {info.title}")
    if info.author:
        print(f"Author: {info.author}")
    print(f"Tokens: ~{info.estimated_tokens:,}")
    return 0


_COMMANDS = {
    "ask": _cmd_ask,
    "brief": _cmd_brief,
    "models": _cmd_models,
    "ping": _cmd_ping,
    "info": _cmd_info,
}


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def _add_provider_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--provider", help="Provider preset (openai, ollama, siliconflow, deepseek, 302ai).")
    parser.add_argument("--model", help="Model identifier.")
    parser.add_argument("--base-url", dest="base_url", help="Server root URL.")
    parser.add_argument("--api-key", dest="api_key", help="API key.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m paperlens.cli",
        description="Ask questions about research papers using a streaming language model.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level for stderr output (default: WARNING).",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    ask = sub.add_parser("ask", help="Stream an answer to a question about a document.")
    ask.add_argument("document", help="PDF (or .txt) file.")
    ask.add_argument("question", help="The question to ask.")
    ask.add_argument("--pages", help='Only use these pages, e.g. "1-3, 5".')
    ask.add_argument("--page", type=int, help="Only use this (1-based) page.")
    ask.add_argument("--selection", help="Text to treat as the reader's selection.")
    _add_provider_options(ask)

    brief = sub.add_parser("brief", help="Generate a structured brief of a paper.")
    brief.add_argument("document", help="PDF (or .txt) file.")
    brief.add_argument("--json", action="store_true", dest="json_output", help="Print JSON.")
    _add_provider_options(brief)

    models = sub.add_parser("models", help="List the provider's models.")
    _add_provider_options(models)

    ping = sub.add_parser("ping", help="Check the provider is reachable.")
    _add_provider_options(ping)

    info = sub.add_parser("info", help="Show document metadata and token estimate.")
    info.add_argument("document", help="PDF (or .txt) file.")
    info.add_argument("--json", action="store_true", dest="json_output", help="Print JSON.")

    return parser


async def run(args: argparse.Namespace) -> int:
    try:
        return await _COMMANDS[args.command](args)
    except PaperLensError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)
    configure_logging(log_level=args.log_level)
    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
