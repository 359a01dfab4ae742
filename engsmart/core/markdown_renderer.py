"""Markdown rendering for question text shown in browser clients.

Generated questions often carry light markup (underlined sounds in phonetics
items, bold keywords, short reading passages split into paragraphs). The API
ships both the raw text and an HTML fragment so a client can pick either.
Raw HTML in the source is escaped rather than passed through.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from markdown_it import MarkdownIt


@dataclass(slots=True)
class MarkdownRenderer:
    """Converts markdown into HTML fragments."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str | None) -> str:
        """Render block markdown, e.g. a question stem or explanation."""
        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return ""
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str | None) -> str:
        """Render a single line without the wrapping paragraph, e.g. an option."""
        sanitized = (markdown_text or "").strip()
        if not sanitized:
            return ""
        return self._markdown.renderInline(sanitized)


renderer = MarkdownRenderer()
# Shared instance; MarkdownIt is safe to reuse for read-only renders across API threads.
