"""Transform strategies turning fetched content into results."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from selectolax.lexbor import LexborHTMLParser

from ..config.models import TransformKind
from .errors import TransformError

T = TypeVar("T")


def _as_text(content: str | bytes) -> str:
    if isinstance(content, bytes):
        try:
            return content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise TransformError(f"Content is not valid UTF-8: {exc}") from exc
    if not isinstance(content, str):
        raise TransformError(f"Unsupported content type: {type(content).__name__}")
    return content


class BaseTransform(ABC, Generic[T]):
    """Pure content -> result step; must be safe to call from many threads."""

    @abstractmethod
    def transform(self, content: str | bytes) -> T:
        """Return the result for ``content`` or raise :class:`TransformError`."""


class IdentityTransform(BaseTransform[str]):
    """Pass content through unchanged."""

    def transform(self, content: str | bytes) -> str:
        return _as_text(content)


@dataclass
class PageSummary:
    """Title, outbound links and size of an HTML page."""

    title: str | None
    links: list[str] = field(default_factory=list)
    content_length: int = 0


class HtmlTransform(BaseTransform[PageSummary]):
    """Extract the page title and absolute http(s) links."""

    def transform(self, content: str | bytes) -> PageSummary:
        html = _as_text(content)
        parser = LexborHTMLParser(html)
        return PageSummary(
            title=self._extract_title(parser),
            links=self._extract_links(parser),
            content_length=len(html),
        )

    @staticmethod
    def _extract_title(parser: LexborHTMLParser) -> str | None:
        node = parser.css_first("title")
        if node is None:
            return None
        title = node.text(strip=True)
        return title or None

    @staticmethod
    def _extract_links(parser: LexborHTMLParser) -> list[str]:
        links: list[str] = []
        seen: set[str] = set()
        for node in parser.css("a[href]"):
            href = (node.attributes.get("href") or "").strip()
            if not href.startswith("http"):
                continue
            if href not in seen:
                seen.add(href)
                links.append(href)
        return links


class JsonTransform(BaseTransform[Any]):
    """Decode JSON documents."""

    def transform(self, content: str | bytes) -> Any:
        text = _as_text(content)
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise TransformError(f"Malformed JSON: {exc}") from exc


def build_transform(kind: TransformKind | str) -> BaseTransform:
    kind = TransformKind(kind)
    if kind is TransformKind.HTML:
        return HtmlTransform()
    if kind is TransformKind.JSON:
        return JsonTransform()
    return IdentityTransform()


__all__ = [
    "BaseTransform",
    "HtmlTransform",
    "IdentityTransform",
    "JsonTransform",
    "PageSummary",
    "build_transform",
]
