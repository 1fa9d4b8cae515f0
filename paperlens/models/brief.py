"""Structured paper brief produced by the briefing service."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

# JSON keys requested from the model, in display order.
BRIEF_FIELDS: tuple[str, ...] = (
    "title",
    "authors",
    "researchQuestion",
    "methodology",
    "keyFindings",
    "contributions",
    "limitations",
    "keywords",
)


class PaperBrief(BaseModel):
    """A one-screen summary of a research paper.

    Field names are snake_case; :meth:`from_payload` maps the camelCase keys
    the briefing prompt asks the model for.
    """

    model_config = ConfigDict(frozen=True)

    title: str = ""
    authors: str = ""
    research_question: str = ""
    methodology: str = ""
    key_findings: str = ""
    contributions: str = ""
    limitations: str = ""
    keywords: list[str] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=lambda: datetime.now(tz=timezone.utc))

    @classmethod
    def from_payload(cls, payload: dict[str, object]) -> PaperBrief:
        """Build a brief from a decoded model reply, ignoring wrongly typed values."""

        def _text(key: str) -> str:
            value = payload.get(key)
            return value if isinstance(value, str) else ""

        raw_keywords = payload.get("keywords")
        keywords = (
            [str(k) for k in raw_keywords if isinstance(k, (str, int, float))]
            if isinstance(raw_keywords, list)
            else []
        )
        return cls(
            title=_text("title"),
            authors=_text("authors"),
            research_question=_text("researchQuestion"),
            methodology=_text("methodology"),
            key_findings=_text("keyFindings"),
            contributions=_text("contributions"),
            limitations=_text("limitations"),
            keywords=keywords,
        )

    def to_markdown(self) -> str:
        """Render the brief as a Markdown document; empty sections are omitted."""
        parts = [f"# {self.title}\n\n"]
        if self.authors:
            parts.append(f"**Authors:** {self.authors}\n\n")

        sections = (
            ("Research Question", self.research_question),
            ("Methodology", self.methodology),
            ("Key Findings", self.key_findings),
            ("Contributions", self.contributions),
            ("Limitations", self.limitations),
        )
        for heading, body in sections:
            if body:
                parts.append(f"## {heading}\n\n{body}\n\n")

        if self.keywords:
            parts.append(f"## Keywords\n\n{', '.join(self.keywords)}\n\n")

        parts.append(f"---\n*Generated on {self.generated_at:%Y-%m-%d %H:%M} UTC*\n")
        return "".join(parts)
