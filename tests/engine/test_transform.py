from __future__ import annotations

import pytest

from relay_crawler.config import TransformKind
from relay_crawler.engine import (
    HtmlTransform,
    IdentityTransform,
    JsonTransform,
    PageSummary,
    TransformError,
    build_transform,
)

PAGE = """
<html><head><TITLE>  Example Domain </TITLE></head>
<body>
  <a href="https://example.com/a">A</a>
  <a href="/relative">skip</a>
  <a href="http://other.org/b">B</a>
  <a href="https://example.com/a">dup</a>
  <a href="mailto:me@example.com">mail</a>
</body></html>
"""


def test_html_transform_extracts_title_and_absolute_links() -> None:
    summary = HtmlTransform().transform(PAGE)
    assert summary == PageSummary(
        title="Example Domain",
        links=["https://example.com/a", "http://other.org/b"],
        content_length=len(PAGE),
    )


def test_html_transform_without_title() -> None:
    summary = HtmlTransform().transform(b"<p>no title here</p>")
    assert summary.title is None
    assert summary.links == []
    assert summary.content_length == len("<p>no title here</p>")


def test_identity_transform_decodes_bytes() -> None:
    assert IdentityTransform().transform("plain") == "plain"
    assert IdentityTransform().transform("héllo".encode("utf-8")) == "héllo"


def test_invalid_utf8_raises_transform_error() -> None:
    with pytest.raises(TransformError):
        IdentityTransform().transform(b"\xff\xfe\xfa")


def test_json_transform() -> None:
    assert JsonTransform().transform('{"a": [1, 2]}') == {"a": [1, 2]}
    with pytest.raises(TransformError):
        JsonTransform().transform("{not json")


@pytest.mark.parametrize(
    ("kind", "expected"),
    [
        (TransformKind.HTML, HtmlTransform),
        ("identity", IdentityTransform),
        ("json", JsonTransform),
    ],
)
def test_build_transform(kind, expected) -> None:
    assert isinstance(build_transform(kind), expected)


def test_build_transform_rejects_unknown_kind() -> None:
    with pytest.raises(ValueError):
        build_transform("xml")


def test_html_transform_tolerates_unclosed_markup() -> None:
    summary = HtmlTransform().transform(
        "<html><head><title> Broken  </title><body><p>text<a href='https://example.com/x'>x<div>"
    )
    assert summary.title == "Broken"
    assert summary.links == ["https://example.com/x"]
