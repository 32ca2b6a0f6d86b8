"""
Markdown metadata extraction.

Builds the structural cache of a note: front-matter, inline tags,
headings, wikilinks, embeds and markdown links. Line numbers are 0-based.
"""

import re
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import unquote

import yaml

FRONTMATTER_DELIMITER = "---"

HEADING_RE = re.compile(r"^(#{1,6})[ \t]+(.+?)(?:[ \t]+#+)?[ \t]*$")
TAG_RE = re.compile(r"(?<![\w/#&])#([\w\-/]*[A-Za-z_\-/][\w\-/]*)")
WIKILINK_RE = re.compile(r"(!?)\[\[([^\[\]|]+?)(?:\|([^\[\]]*))?\]\]")
MDLINK_RE = re.compile(r"(!?)\[([^\[\]]*)\]\(([^()\s]+)\)")
LIST_ITEM_RE = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+")
FENCE_RE = re.compile(r"^\s*(```|~~~)")
URL_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")


def split_frontmatter(text: str) -> Tuple[Optional[Dict[str, Any]], int]:
    """
    Parse a leading YAML front-matter block.
    Returns (frontmatter or None, index of the first body line).
    """
    lines = text.split("\n")
    if not lines or lines[0].strip() != FRONTMATTER_DELIMITER:
        return None, 0

    for idx in range(1, len(lines)):
        if lines[idx].strip() == FRONTMATTER_DELIMITER:
            block = "\n".join(lines[1:idx])
            try:
                data = yaml.safe_load(block) if block.strip() else {}
            except yaml.YAMLError:
                return None, idx + 1
            return (data if isinstance(data, dict) else None), idx + 1

    return None, 0


def _body_lines(text: str, start: int):
    """Yield (line number, line) outside fenced code blocks."""
    in_fence = False
    for number, line in enumerate(text.split("\n")):
        if number < start:
            continue
        if FENCE_RE.match(line):
            in_fence = not in_fence
            continue
        if not in_fence:
            yield number, line


def link_target(link: str) -> str:
    """Strip the #heading / #^block subpath from a link."""
    return link.split("#", 1)[0].strip()


def find_links(text: str) -> List[Dict[str, Any]]:
    """
    Every internal link occurrence with its span, in document order.
    Each entry: {link, displayText, line, embed, kind, start, end}
    where start/end are offsets into the line.
    """
    _, body_start = split_frontmatter(text)
    found: List[Dict[str, Any]] = []

    for number, line in _body_lines(text, body_start):
        for match in WIKILINK_RE.finditer(line):
            embed, link, alias = match.group(1), match.group(2).strip(), match.group(3)
            found.append({
                "link": link,
                "displayText": alias if alias is not None else link,
                "line": number,
                "embed": embed == "!",
                "kind": "wiki",
                "start": match.start(),
                "end": match.end(),
            })
        for match in MDLINK_RE.finditer(line):
            embed, label, url = match.group(1), match.group(2), match.group(3)
            if URL_SCHEME_RE.match(url) or url.startswith("#"):
                continue
            found.append({
                "link": unquote(url),
                "displayText": label,
                "line": number,
                "embed": embed == "!",
                "kind": "markdown",
                "start": match.start(),
                "end": match.end(),
            })

    found.sort(key=lambda item: (item["line"], item["start"]))
    return found


def _count_sections(lines: List[str], start: int) -> int:
    sections = 0
    in_block = False
    in_fence = False
    for line in lines[start:]:
        if FENCE_RE.match(line):
            if not in_fence:
                sections += 1
            in_fence = not in_fence
            in_block = False
            continue
        if in_fence:
            continue
        if not line.strip():
            in_block = False
        elif HEADING_RE.match(line):
            sections += 1
            in_block = False
        elif not in_block:
            sections += 1
            in_block = True
    return sections


def parse_metadata(text: str) -> Dict[str, Any]:
    """Build the metadata cache for one markdown document."""
    frontmatter, body_start = split_frontmatter(text)
    lines = text.split("\n")

    tags: List[Dict[str, Any]] = []
    headings: List[Dict[str, Any]] = []
    list_items = 0

    for number, line in _body_lines(text, body_start):
        heading = HEADING_RE.match(line)
        if heading:
            headings.append({
                "heading": heading.group(2).strip(),
                "level": len(heading.group(1)),
                "line": number,
            })
        if LIST_ITEM_RE.match(line):
            list_items += 1
        stripped = line if not heading else heading.group(2)
        for match in TAG_RE.finditer(stripped):
            tags.append({"tag": f"#{match.group(1)}", "line": number})

    links: List[Dict[str, Any]] = []
    embeds: List[Dict[str, Any]] = []
    for item in find_links(text):
        entry = {"link": item["link"], "displayText": item["displayText"], "line": item["line"]}
        (embeds if item["embed"] else links).append(entry)

    return {
        "frontmatter": frontmatter,
        "tags": tags,
        "headings": headings,
        "links": links,
        "embeds": embeds,
        "listItems": list_items,
        "sections": _count_sections(lines, body_start) + (1 if frontmatter is not None else 0),
    }
