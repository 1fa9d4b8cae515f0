"""Prompt templates.

Templates use literal placeholders that are substituted with
``str.replace`` rather than ``str.format`` so that braces in paper text (or
in the JSON example of the briefing prompt) never need escaping:

- ``{pdf_content}`` -- the assembled document context (system prompt)
- ``{selection}``   -- the user's selected text (quick actions)
- ``{content}``     -- extracted paper text (briefing prompt)
"""

from __future__ import annotations

from enum import Enum

PDF_CONTENT_PLACEHOLDER = "{pdf_content}"
SELECTION_PLACEHOLDER = "{selection}"
CONTENT_PLACEHOLDER = "{content}"

DEFAULT_SYSTEM_PROMPT = """\
You are a professional academic paper analysis assistant. The user is reading an academic paper and may ask questions about its content.

Paper content:
{pdf_content}

Requirements:
1. Answer questions based only on the paper content, do not make up information
2. Cite page numbers when referencing specific content
3. Clearly state if a question is beyond the scope of the paper
4. Respond in the same language as the user's question"""


class SelectionAction(str, Enum):  # noqa: UP042 — StrEnum requires Python 3.11+
    """Quick actions offered on a text selection."""

    TRANSLATE = "translate"
    EXPLAIN = "explain"
    SUMMARIZE = "summarize"


SELECTION_PROMPTS: dict[SelectionAction, str] = {
    SelectionAction.TRANSLATE: (
        "Translate the following passage into the reader's language, keeping the "
        "original formatting and the precise meaning of technical terms:\n\n{selection}"
    ),
    SelectionAction.EXPLAIN: (
        "Explain the following passage in detail, including the technical terms, "
        "concepts and what it means in the context of the paper:\n\n{selection}"
    ),
    SelectionAction.SUMMARIZE: (
        "Summarize the main points of the following passage in a few concise "
        "sentences:\n\n{selection}"
    ),
}

BRIEFING_SYSTEM_PROMPT = (
    "You are an expert academic paper analyst. You help readers quickly understand "
    "research papers by extracting key information and presenting it in a structured "
    "format. Always respond in the same language as the paper content."
)

BRIEFING_PROMPT = """\
Analyse the following academic paper content and return a structured brief in the JSON format below. Return only the JSON, with no other text.

Requirements:
1. Keep each field concise, 2-5 sentences
2. "keywords" is an array of 3-6 keywords

Format:
```json
{
    "title": "paper title",
    "authors": "author list",
    "researchQuestion": "the research question",
    "methodology": "the research method",
    "keyFindings": "main findings",
    "contributions": "main contributions",
    "limitations": "limitations",
    "keywords": ["keyword1", "keyword2", "keyword3"]
}
```

Paper content:
{content}"""


def render_system_prompt(template: str, context: str) -> str:
    """Substitute the assembled context into a system prompt template."""
    return template.replace(PDF_CONTENT_PLACEHOLDER, context)


def render_selection_prompt(action: SelectionAction, selection: str) -> str:
    """Fill the quick-action template for *action* with the selected text."""
    return SELECTION_PROMPTS[action].replace(SELECTION_PLACEHOLDER, selection)


def render_briefing_prompt(content: str) -> str:
    return BRIEFING_PROMPT.replace(CONTENT_PLACEHOLDER, content)
