"""Markdown rendering of decoded note content."""

from typing import Iterable

from .models import (
    Bold,
    ContentToken,
    Heading,
    Hyperlink,
    Italic,
    ListItem,
    PlainText,
    Strikethrough,
)


def render_token(token: ContentToken) -> str:
    """Return the Markdown text for a single token."""
    if isinstance(token, PlainText):
        return token.text
    if isinstance(token, Bold):
        return f"**{token.text}**"
    if isinstance(token, Italic):
        return f"_{token.text}_"
    if isinstance(token, Strikethrough):
        return f"~~{token.text}~~"
    if isinstance(token, Heading):
        return f"{'#' * token.level} {token.text}"
    if isinstance(token, ListItem):
        if token.ordered:
            return f"{token.index if token.index is not None else 1}. {token.text}"
        return f"- {token.text}"
    if isinstance(token, Hyperlink):
        return f"[{token.display_text}]({token.url})"
    raise TypeError(f"Unknown content token: {token!r}")


def render_markdown(tokens: Iterable[ContentToken]) -> str:
    """Concatenate tokens into a Markdown document."""
    return "".join(render_token(t) for t in tokens).strip()
