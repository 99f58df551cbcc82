"""
Content normalization for stable change detection.

HTML is parsed with BeautifulSoup and re-serialized into a canonical form
that keeps the visible structure and text but drops metadata, scripts,
comments, presentational attributes and insignificant whitespace. Anything
that is not HTML, or that fails to normalize, is compared as raw bytes.
"""

import html
import re
from typing import Iterator, List, Optional, Union

import structlog
from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PageElement, PreformattedString

from watcher.exceptions import NormalizationError

logger = structlog.get_logger(__name__)

# Elements that never contribute visible content.
DROPPED_TAGS = frozenset({
    "script", "style", "noscript", "template", "meta", "link", "base",
})

# Attributes that carry visible-content structure; everything else is dropped.
KEPT_ATTRIBUTES = ("href", "src", "alt")

HTML_SNIFF_PATTERN = re.compile(rb"^\s*(<!--.*?-->\s*)*<(!doctype\s+html|html|head|body)\b", re.IGNORECASE | re.DOTALL)
CHARSET_PATTERN = re.compile(r"charset\s*=\s*[\"']?([\w.:-]+)", re.IGNORECASE)


class ContentNormalizer:
    """Converts fetched bytes into a comparable canonical form."""

    def __init__(self, parser: str = "html.parser"):
        self.parser = parser
        self.logger = logger.bind(component="normalizer")

    def normalize(self, raw: bytes, content_type: Optional[str] = None) -> bytes:
        """
        Normalize fetched content.

        Args:
            raw: Raw response body
            content_type: Content-Type header of the response, if any

        Returns:
            Canonical bytes for HTML, the raw bytes otherwise or on failure
        """
        if not self.is_html(raw, content_type):
            return raw

        try:
            return self.canonicalize_html(raw, self._charset(content_type))
        except NormalizationError as e:
            self.logger.debug("Normalization failed, comparing raw bytes", error=str(e))
            return raw

    def is_html(self, raw: bytes, content_type: Optional[str] = None) -> bool:
        """Decide whether content should be treated as HTML."""
        if content_type:
            media_type = content_type.split(";", 1)[0].strip().lower()
            if "html" in media_type:
                return True
            if media_type not in ("", "application/octet-stream", "text/plain"):
                return False
        return bool(HTML_SNIFF_PATTERN.match(raw[:2048]))

    def canonicalize_html(self, raw: bytes, encoding: Optional[str] = None) -> bytes:
        """
        Parse HTML and serialize its visible structure.

        Raises:
            NormalizationError: if the document cannot be parsed or rendered
        """
        try:
            soup = BeautifulSoup(raw, self.parser, from_encoding=encoding)
            return self._render(soup).encode("utf-8")
        except NormalizationError:
            raise
        except Exception as e:
            raise NormalizationError(f"{type(e).__name__}: {e}") from e

    def _render(self, root: Tag) -> str:
        """Serialize the tree depth-first without recursion."""
        parts: List[str] = []
        # Each entry is a child iterator or a pending closing tag.
        stack: List[Union[Iterator[PageElement], str]] = [iter(root.children)]

        while stack:
            top = stack[-1]
            if isinstance(top, str):
                parts.append(top)
                stack.pop()
                continue

            child = next(top, None)
            if child is None:
                stack.pop()
            elif isinstance(child, Tag):
                if child.name in DROPPED_TAGS:
                    continue
                opening = f"<{child.name}{self._attributes(child)}"
                if child.is_empty_element:
                    parts.append(opening + "/>")
                    continue
                parts.append(opening + ">")
                stack.append(f"</{child.name}>")
                stack.append(iter(child.children))
            elif isinstance(child, PreformattedString):
                # comments, doctype, CDATA, processing instructions
                continue
            elif isinstance(child, NavigableString):
                text = " ".join(str(child).split())
                if text:
                    parts.append(html.escape(text, quote=False))

        return "".join(parts)

    def _attributes(self, tag: Tag) -> str:
        attributes = ""
        for name in KEPT_ATTRIBUTES:
            value = tag.get(name)
            if value is not None:
                attributes += f' {name}="{html.escape(str(value).strip(), quote=True)}"'
        return attributes

    def _charset(self, content_type: Optional[str]) -> Optional[str]:
        if not content_type:
            return None
        match = CHARSET_PATTERN.search(content_type)
        return match.group(1) if match else None
