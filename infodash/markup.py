"""Lenient HTML/XML parsing, XPath queries and RSS/Atom item extraction."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from html.entities import name2codepoint
from typing import List, Optional, Union

from lxml import etree
from lxml import html as lxml_html

from .models import FeedItem
from .sanitize import sanitize_utf8

logger = logging.getLogger(__name__)

MEDIA_NS = "http://search.yahoo.com/mrss/"
CONTENT_NS = "http://purl.org/rss/1.0/modules/content/"
DC_NS = "http://purl.org/dc/elements/1.1/"
ATOM_NS = "http://www.w3.org/2005/Atom"

RSS_NAMESPACES = {"media": MEDIA_NS, "content": CONTENT_NS, "dc": DC_NS}

DESCRIPTION_LIMIT = 200

_IMG_SRC = re.compile(r"""<img[^>]+src\s*=\s*["']([^"']+)["']""", re.IGNORECASE)
_TAG = re.compile(r"<[^>]*>")
_ENTITIES = (
    ("&amp;", "&"),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&nbsp;", " "),
    ("&#39;", "'"),
)

# HTML named entities are undefined in feeds without a DTD; CDATA is left alone.
_NAMED_ENTITY = re.compile(rb"<!\[CDATA\[.*?\]\]>|&([A-Za-z][A-Za-z0-9]*);", re.DOTALL)
_XML_ENTITIES = frozenset({"amp", "lt", "gt", "quot", "apos"})

Markup = Union[str, bytes]


def _as_bytes(value: Markup) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def _node_text(node) -> str:
    if node is None:
        return ""
    if isinstance(node, str):
        return str(node).strip()
    return "".join(node.itertext()).strip()


def ci_contains(attribute: str, needle: str) -> str:
    """XPath predicate: ``attribute`` contains ``needle``, ignoring case."""
    return (
        f"contains(translate(@{attribute}, "
        "'ABCDEFGHIJKLMNOPQRSTUVWXYZ', 'abcdefghijklmnopqrstuvwxyz'), "
        f"'{needle.lower()}')"
    )


def meta_content_xpath(key: str) -> str:
    """First ``<meta>`` whose ``property`` or ``name`` equals ``key``."""
    return f"(//meta[@property='{key}' or @name='{key}'])[1]"


def link_xpath(rel: str, type_contains: Optional[str] = None) -> str:
    predicate = f"[@rel='{rel}']"
    if type_contains:
        predicate += f"[contains(@type, '{type_contains}')]"
    return f"(//link{predicate})[1]"


class MarkupDocument:
    """A parsed HTML document queried with XPath expressions."""

    def __init__(self, root) -> None:
        self.root = root

    @classmethod
    def parse(cls, markup: Markup) -> Optional["MarkupDocument"]:
        """Parse ``markup`` leniently; ``None`` when nothing usable came out."""
        if not markup:
            return None
        parser = lxml_html.HTMLParser(
            recover=True, remove_comments=True, no_network=True, encoding="utf-8"
        )
        try:
            root = lxml_html.fromstring(_as_bytes(markup), parser=parser)
        except (etree.ParserError, etree.XMLSyntaxError, ValueError) as exc:
            logger.debug("HTML parse failed: %s", exc)
            return None
        if root is None:
            return None
        return cls(root)

    def select(self, xpath: str) -> list:
        """Evaluate ``xpath``; an invalid expression selects nothing."""
        try:
            result = self.root.xpath(xpath)
        except etree.XPathError as exc:
            logger.debug("XPath '%s' failed: %s", xpath, exc)
            return []
        if isinstance(result, list):
            return result
        return []

    def query_text(self, xpath: str) -> str:
        nodes = self.select(xpath)
        return _node_text(nodes[0]) if nodes else ""

    def query_text_all(self, xpath: str) -> List[str]:
        return [_node_text(node) for node in self.select(xpath)]

    def query_attribute(self, xpath: str, attribute: str) -> str:
        for node in self.select(xpath):
            if hasattr(node, "get"):
                return (node.get(attribute) or "").strip()
            return ""
        return ""


@dataclass
class ParsedFeedRecord:
    """Fields captured from one ``<item>``/``<entry>`` before validation."""

    title: Optional[str] = None
    link: Optional[str] = None
    description: Optional[str] = None
    pub_date: Optional[str] = None
    image_url: Optional[str] = None
    author: Optional[str] = None

    def to_feed_item(self, source_name: str = "") -> Optional[FeedItem]:
        """Return the display item, or ``None`` when the title is missing."""
        title = sanitize_utf8(self.title or "").strip()
        if not title:
            return None
        return FeedItem(
            title=title,
            link=(self.link or "").strip(),
            description=sanitize_utf8(self.description or ""),
            published_date=(self.pub_date or "").strip(),
            source_name=source_name,
            image_url=(self.image_url or "").strip(),
            author=sanitize_utf8(self.author or "").strip(),
        )


def first_image_src(markup: str) -> str:
    """Return the ``src`` of the first ``<img>`` tag in raw HTML text."""
    match = _IMG_SRC.search(markup or "")
    return match.group(1) if match else ""


def strip_html(value: str, limit: int = DESCRIPTION_LIMIT) -> str:
    """Remove tags, decode common entities, trim and truncate to ``limit``."""
    text = _TAG.sub("", value or "")
    for entity, replacement in _ENTITIES:
        text = text.replace(entity, replacement)
    text = text.strip()
    if len(text) > limit:
        text = text[:limit] + "..."
    return text


def _numeric_entity(match) -> bytes:
    if match.group(1) is None:
        return match.group(0)
    name = match.group(1).decode("ascii")
    codepoint = name2codepoint.get(name)
    if name in _XML_ENTITIES or codepoint is None:
        return match.group(0)
    return b"&#%d;" % codepoint


def numeric_entities(xml: bytes) -> bytes:
    """Rewrite HTML named entities such as ``&nbsp;`` as character references."""
    return _NAMED_ENTITY.sub(_numeric_entity, xml)


def _parse_xml(xml: Markup):
    parser = etree.XMLParser(
        recover=True, no_network=True, resolve_entities=False, huge_tree=True
    )
    try:
        return etree.fromstring(numeric_entities(_as_bytes(xml)), parser=parser)
    except (etree.XMLSyntaxError, ValueError) as exc:
        logger.debug("XML parse failed: %s", exc)
        return None


def _select_entries(root):
    items = root.xpath("//item", namespaces=RSS_NAMESPACES)
    if items:
        return items, False
    namespaces = dict(RSS_NAMESPACES, atom=ATOM_NS)
    return root.xpath("//atom:entry", namespaces=namespaces), True


def _record_from_node(node, is_atom: bool) -> ParsedFeedRecord:
    record = ParsedFeedRecord()
    description_html = ""

    for child in node:
        if not isinstance(child.tag, str):
            continue
        qname = etree.QName(child)
        name, namespace = qname.localname, qname.namespace
        content = _node_text(child)

        if name == "title":
            record.title = content
        elif name == "link":
            href = child.get("href")
            rel = child.get("rel", "alternate")
            if record.link and is_atom and rel != "alternate":
                continue
            if href:
                record.link = href.strip()
            elif content:
                record.link = content
        elif name in ("description", "summary"):
            record.description = content
            description_html = content
        elif name == "encoded" and namespace == CONTENT_NS:
            description_html = content
            if not record.description:
                record.description = content
        elif name in ("pubDate", "published", "updated", "date"):
            record.pub_date = content
        elif name in ("creator", "author"):
            if is_atom and not content:
                continue
            record.author = content
        elif name == "enclosure":
            if "image" in (child.get("type") or "") and child.get("url"):
                record.image_url = child.get("url")
        elif name in ("thumbnail", "content") and namespace == MEDIA_NS:
            if child.get("url"):
                record.image_url = child.get("url")
        elif name == "image":
            if child.get("href"):
                record.image_url = child.get("href")
            elif content.startswith("http"):
                record.image_url = content

    if not record.image_url and description_html:
        record.image_url = first_image_src(description_html) or None

    if record.description:
        record.description = strip_html(record.description)

    return record


def extract_feed_records(xml: Markup) -> List[ParsedFeedRecord]:
    """Extract titled item records from an RSS 2.0 or Atom document."""
    if not xml:
        return []
    root = _parse_xml(xml)
    if root is None:
        return []

    entries, is_atom = _select_entries(root)
    records: List[ParsedFeedRecord] = []
    for node in entries:
        record = _record_from_node(node, is_atom)
        if not record.title:
            continue
        records.append(record)

    logger.debug(
        "Extracted %d %s records", len(records), "Atom" if is_atom else "RSS"
    )
    return records
