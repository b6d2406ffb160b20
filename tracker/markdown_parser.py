"""Markdown upload validation and H1 header extraction."""

from __future__ import annotations

import html
import re
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any

from tracker.errors import TrackerError

ALLOWED_MARKDOWN_EXTENSIONS = (".md", ".markdown", ".mdown", ".mkdn", ".mdwn")
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
ALLOWED_CONTENT_TYPES = {
    "text/markdown",
    "text/x-markdown",
    "text/plain",
    "application/octet-stream",
    "",
}
BINARY_CONTENT_TYPE_PREFIXES = ("image/", "video/", "audio/")
BINARY_CONTENT_TYPE_MARKERS = ("pdf", "zip", "binary")

INVALID_EXTENSION_MESSAGE = (
    "Invalid file type. Please upload a markdown file "
    f"({', '.join(ALLOWED_MARKDOWN_EXTENSIONS)})"
)
FILE_TOO_LARGE_MESSAGE = "File size too large. Maximum size is 5MB."
BINARY_CONTENT_MESSAGE = "File must be a text-based markdown file."
READ_FAILED_MESSAGE = "Failed to process markdown file."
NO_HEADERS_MESSAGE = (
    'No H1 headers found in markdown file. Please add headers starting with "# " '
    "to generate timeline events."
)

H1_PATTERN = re.compile(r"^#[ \t]+(.*)$", re.MULTILINE)

# Longest prefix first so "### " is never consumed by the "# " rule.
_PREVIEW_RULES = (
    (re.compile(r"^### (.+)$", re.MULTILINE), r"<h3>\1</h3>"),
    (re.compile(r"^## (.+)$", re.MULTILINE), r"<h2>\1</h2>"),
    (re.compile(r"^# (.+)$", re.MULTILINE), r"<h1>\1</h1>"),
    (re.compile(r"\*\*(.+?)\*\*"), r"<strong>\1</strong>"),
    (re.compile(r"\*(.+?)\*"), r"<em>\1</em>"),
    (re.compile(r"`(.+?)`"), r"<code>\1</code>"),
)


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.error is None:
            return {"valid": self.valid}
        return {"valid": self.valid, "error": self.error}


@dataclass(frozen=True)
class MarkdownParseResult:
    headers: list[str] = field(default_factory=list)
    content: str = ""
    preview_html: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "headers": list(self.headers),
            "content": self.content,
            "previewHtml": self.preview_html,
        }


def validate_markdown_file(
    filename: str, size: int, content_type: str | None = None
) -> ValidationResult:
    """Decide whether an upload is admissible from its metadata alone."""
    extension = PurePosixPath(filename.replace("\\", "/")).suffix.lower()
    if extension not in ALLOWED_MARKDOWN_EXTENSIONS:
        return ValidationResult(valid=False, error=INVALID_EXTENSION_MESSAGE)

    if size > MAX_UPLOAD_BYTES:
        return ValidationResult(valid=False, error=FILE_TOO_LARGE_MESSAGE)

    # Markdown often arrives with a generic or missing type, so only clearly
    # binary families are rejected.
    if content_type and content_type not in ALLOWED_CONTENT_TYPES:
        lowered = content_type.lower()
        if lowered.startswith(BINARY_CONTENT_TYPE_PREFIXES) or any(
            marker in lowered for marker in BINARY_CONTENT_TYPE_MARKERS
        ):
            return ValidationResult(valid=False, error=BINARY_CONTENT_MESSAGE)

    return ValidationResult(valid=True)


def extract_h1_headers(content: str) -> list[str]:
    headers: list[str] = []
    for match in H1_PATTERN.finditer(content):
        header = match.group(1).strip()
        if header:
            headers.append(header)
    return headers


def render_preview_html(content: str) -> str:
    """Lossy markdown-to-HTML conversion used only for the upload preview."""
    preview = html.escape(content.replace("\r\n", "\n"), quote=False)
    for pattern, replacement in _PREVIEW_RULES:
        preview = pattern.sub(replacement, preview)
    preview = preview.replace("\n\n", "</p><p>").replace("\n", "<br>")
    return f"<p>{preview}</p>"


def parse_markdown_headers(content: str) -> MarkdownParseResult:
    """
    Extract ordered H1 headers and a preview from raw markdown text.

    Empty or whitespace-only input yields an empty result. Finding no headers
    is not an error at this level; callers that need at least one event must
    check ``headers`` themselves.
    """
    if not content.strip():
        return MarkdownParseResult()

    return MarkdownParseResult(
        headers=extract_h1_headers(content),
        content=content,
        preview_html=render_preview_html(content),
    )


def decode_upload(raw: bytes) -> str:
    """Decode uploaded bytes as UTF-8 text."""
    try:
        return raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise TrackerError(
            "FILE_READ_FAILED",
            READ_FAILED_MESSAGE,
            {"error": str(exc)},
        ) from exc
