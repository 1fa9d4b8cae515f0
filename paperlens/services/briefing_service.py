"""One-shot structured paper briefs.

The :class:`BriefingService` asks the language model for a JSON object
describing a paper (title, authors, research question, methodology, key
findings, contributions, limitations, keywords) and turns the reply into a
:class:`~paperlens.models.brief.PaperBrief`.

Only part of the paper is sent: the first five pages (abstract,
introduction) and the last two (conclusions), separated by an elision
marker.  Papers of seven pages or fewer are sent whole, up to a 12000-token
budget.

Model replies are often not clean JSON.  Markdown code fences are stripped
first; if the remainder still does not decode, each string field is pulled
out with a ``"key": "value"`` regex and a missing title becomes
``"Parse failed"``.

Progress is reported to an optional callback as a fraction:

    0.10  content extracted
    0.15  prompt built
    0.15 + 0.8 * fields_seen / 8   while the reply streams in
    1.00  brief parsed

Finished briefs are cached per document in an injected
:class:`~paperlens.interfaces.cache_provider.ICacheProvider`.
"""

from __future__ import annotations

import asyncio
import json
import re
from collections.abc import Callable
from contextlib import aclosing

import structlog

from paperlens.config.prompts import BRIEFING_SYSTEM_PROMPT, render_briefing_prompt
from paperlens.interfaces.cache_provider import ICacheProvider
from paperlens.interfaces.document_source import IDocumentSource
from paperlens.interfaces.inference_gateway import IChatStream, IInferenceGateway
from paperlens.models.brief import BRIEF_FIELDS, PaperBrief
from paperlens.models.chat import ChatMessage, RequestState, TokenEvent
from paperlens.services.extraction.extractor import DocumentExtractor
from paperlens.utils.errors import RequestCancelledError

logger = structlog.get_logger(logger_name=__name__)

# Called with the overall fraction in [0, 1]; may return an awaitable.
BriefProgressCallback = Callable[[float], object]

FRONT_PAGES = 5
BACK_PAGES = 2
SHORT_DOCUMENT_BUDGET = 12000
ELISION_MARKER = "\n\n--- ... ---\n\n"
PARSE_FAILED_TITLE = "Parse failed"

_CACHE_PREFIX = "brief:"
# Longest quoted key; a key split across tokens lies within this many chars of the tail.
_KEY_WINDOW = max(len(key) for key in BRIEF_FIELDS) + 2


def strip_code_fences(text: str) -> str:
    """Return the content between the first opening and the last closing fence."""
    start = text.find("```json")
    if start != -1:
        text = text[start + len("```json") :]
    else:
        start = text.find("```")
        if start != -1:
            text = text[start + 3 :]
    end = text.rfind("```")
    if end != -1:
        text = text[:end]
    return text.strip()


def extract_field(text: str, key: str) -> str | None:
    match = re.search(rf'"{re.escape(key)}"\s*:\s*"([^"]*)"', text, re.DOTALL)
    return match.group(1) if match else None


def parse_brief(text: str) -> PaperBrief:
    """Turn a model reply into a :class:`PaperBrief`, falling back to regex extraction."""
    candidate = strip_code_fences(text)
    try:
        payload = json.loads(candidate)
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        return PaperBrief.from_payload(payload)

    logger.info("brief_json_parse_failed_using_fallback", reply_chars=len(text))
    fields = {key: extract_field(text, key) for key in BRIEF_FIELDS if key != "keywords"}
    fields["title"] = fields.get("title") or PARSE_FAILED_TITLE
    return PaperBrief.from_payload({k: v for k, v in fields.items() if v is not None})


def fields_in(text: str) -> set[str]:
    """Brief keys that appear (quoted) in *text*."""
    return {key for key in BRIEF_FIELDS if f'"{key}"' in text}


class BriefingService:
    """Generates and caches paper briefs.

    Parameters
    ----------
    extractor:
        Used to pull the front/back pages or a budgeted extract.
    cache:
        Where finished briefs are stored, keyed by document identity.
    """

    def __init__(self, extractor: DocumentExtractor, cache: ICacheProvider) -> None:
        self._extractor = extractor
        self._cache = cache
        self._stream: IChatStream | None = None

    @property
    def is_generating(self) -> bool:
        return self._stream is not None and not self._stream.state.is_terminal

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def get_cached_brief(self, document_key: str) -> PaperBrief | None:
        return await self._cache.get(_CACHE_PREFIX + document_key)

    async def generate_brief(
        self,
        document: IDocumentSource,
        gateway: IInferenceGateway,
        document_key: str | None = None,
        on_progress: BriefProgressCallback | None = None,
    ) -> PaperBrief:
        """Return the brief for *document*, generating it if it is not cached.

        Parameters
        ----------
        document:
            The paper.
        gateway:
            Inference backend the briefing prompt is sent to.
        document_key:
            Cache key; defaults to ``document.document_id``.
        on_progress:
            Receives progress fractions (see module docstring).

        Raises
        ------
        RequestCancelledError
            If :meth:`cancel` was called while generating.  Nothing is cached.
        PaperLensError
            The typed error of a failed inference request.
        """
        key = document_key or document.document_id
        cached = await self.get_cached_brief(key)
        if cached is not None:
            logger.info("brief_cache_hit", document_key=key[:16])
            await self._report(on_progress, 1.0)
            return cached

        content = self.extract_briefing_content(document)
        await self._report(on_progress, 0.1)
        prompt = render_briefing_prompt(content)
        await self._report(on_progress, 0.15)

        reply = await self._stream_reply(gateway, prompt, on_progress)
        brief = parse_brief(reply)

        await self._cache.set(_CACHE_PREFIX + key, brief)
        await self._report(on_progress, 1.0)
        logger.info(
            "brief_generated",
            document_key=key[:16],
            provider=gateway.get_provider_name(),
            reply_chars=len(reply),
            title=brief.title[:80],
        )
        return brief

    async def regenerate(
        self,
        document: IDocumentSource,
        gateway: IInferenceGateway,
        document_key: str | None = None,
        on_progress: BriefProgressCallback | None = None,
    ) -> PaperBrief:
        """Drop any cached brief for *document* and generate a fresh one."""
        key = document_key or document.document_id
        await self._cache.delete(_CACHE_PREFIX + key)
        return await self.generate_brief(document, gateway, key, on_progress)

    async def clear_cache(self) -> None:
        await self._cache.clear()

    def cancel(self) -> None:
        """Stop the brief being generated, if any."""
        if self._stream is not None:
            self._stream.cancel()

    def extract_briefing_content(self, document: IDocumentSource) -> str:
        """Text sent to the model: front and back pages, or the whole short paper."""
        page_count = document.page_count
        if page_count <= FRONT_PAGES + BACK_PAGES:
            return self._extractor.extract_with_budget(document, SHORT_DOCUMENT_BUDGET).text

        front = self._extractor.extract_range(document, range(FRONT_PAGES))
        back = self._extractor.extract_range(document, range(page_count - BACK_PAGES, page_count))
        return ELISION_MARKER.join((front.text, back.text))

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _stream_reply(
        self,
        gateway: IInferenceGateway,
        prompt: str,
        on_progress: BriefProgressCallback | None,
    ) -> str:
        stream = gateway.send_message([ChatMessage.user(prompt)], BRIEFING_SYSTEM_PROMPT)
        self._stream = stream
        parts: list[str] = []
        seen: set[str] = set()
        tail = ""
        try:
            async with aclosing(stream.__aiter__()) as events:
                async for event in events:
                    if not isinstance(event, TokenEvent):
                        continue
                    parts.append(event.text)
                    window = tail + event.text
                    tail = window[-(_KEY_WINDOW - 1) :]
                    new_fields = fields_in(window) - seen
                    if new_fields:
                        seen |= new_fields
                        await self._report(on_progress, 0.15 + 0.8 * len(seen) / len(BRIEF_FIELDS))
        finally:
            self._stream = None

        if stream.state is RequestState.CANCELLED:
            logger.info("brief_cancelled")
            raise RequestCancelledError(provider_name=gateway.get_provider_name())
        if stream.error is not None:
            raise stream.error
        return "".join(parts)

    @staticmethod
    async def _report(callback: BriefProgressCallback | None, fraction: float) -> None:
        if callback is None:
            return
        try:
            result = callback(fraction)
            if asyncio.iscoroutine(result):
                await result
        except Exception as exc:
            logger.warning("brief_progress_callback_error", error=str(exc))

