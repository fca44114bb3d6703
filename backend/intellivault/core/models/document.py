"""Structured rich-text documents and their plain-text projection.

Documents use the ProseMirror/Tiptap JSON shape produced by the editor::

    {"type": "doc", "content": [
        {"type": "heading", "attrs": {"level": 1},
         "content": [{"type": "text", "text": "Groceries"}]},
        {"type": "paragraph", "content": [
            {"type": "text", "text": "Milk", "marks": [{"type": "bold"}]}]}
    ]}

Nodes carrying ``text`` and ``hardBreak`` nodes are inline; every other node is
a block. A block without block children is a text block, and the projection is
the inline text of each text block joined by newlines.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from pydantic import ConfigDict, Field, ValidationError, model_validator

from intellivault.core.exceptions import ErrorCode, ValidationFailure

from .base import AppBaseModel

ROOT_NODE_TYPE = "doc"
HARD_BREAK_TYPE = "hardBreak"
BLOCK_SEPARATOR = "\n"


class Mark(AppBaseModel):
    """Inline formatting applied to a text node (bold, link, ...)."""

    model_config = ConfigDict(extra="ignore")

    type: str = Field(min_length=1)
    attrs: dict[str, Any] | None = None


class DocumentNode(AppBaseModel):
    """One node of a structured document tree."""

    model_config = ConfigDict(extra="ignore")

    type: str = Field(min_length=1)
    attrs: dict[str, Any] | None = None
    content: list[DocumentNode] | None = None
    marks: list[Mark] | None = None
    text: str | None = None

    @model_validator(mode="after")
    def validate_text_node(self) -> DocumentNode:
        if self.type == "text":
            if self.text is None:
                raise ValueError("text nodes require a 'text' value")
            if self.content:
                raise ValueError("text nodes cannot have child nodes")
        return self

    @property
    def is_inline(self) -> bool:
        return self.text is not None or self.type == HARD_BREAK_TYPE

    def to_json(self) -> dict[str, Any]:
        """Serialize the way the editor expects: absent keys, never nulls."""
        return self.model_dump(mode="json", exclude_none=True)


@dataclass(frozen=True)
class DocumentLimits:
    max_bytes: int
    max_depth: int


def empty_document() -> DocumentNode:
    return DocumentNode(type=ROOT_NODE_TYPE, content=[DocumentNode(type="paragraph")])


def document_depth(node: DocumentNode) -> int:
    depth = 0
    stack = [(node, 1)]
    while stack:
        current, level = stack.pop()
        depth = max(depth, level)
        for child in current.content or []:
            stack.append((child, level + 1))
    return depth


def parse_document(raw: DocumentNode | dict[str, Any], limits: DocumentLimits) -> DocumentNode:
    """Validate a document against structural rules and size limits.

    Raises:
        ValidationFailure: if the document is malformed or too large
    """
    try:
        document = raw if isinstance(raw, DocumentNode) else DocumentNode.model_validate(raw)
    except ValidationError as err:
        raise ValidationFailure(
            f"Malformed document: {err.errors()[0]['msg']}",
            field="content",
            code=ErrorCode.DOCUMENT_INVALID,
        ) from err

    if document.type != ROOT_NODE_TYPE:
        raise ValidationFailure(
            f"Document root must be of type '{ROOT_NODE_TYPE}'",
            field="content",
            code=ErrorCode.DOCUMENT_INVALID,
        )
    if document_depth(document) > limits.max_depth:
        raise ValidationFailure(
            f"Document nesting exceeds {limits.max_depth} levels",
            field="content",
            code=ErrorCode.DOCUMENT_INVALID,
        )
    size = len(document.model_dump_json(exclude_none=True).encode("utf-8"))
    if size > limits.max_bytes:
        raise ValidationFailure(
            f"Document exceeds {limits.max_bytes} bytes",
            field="content",
            code=ErrorCode.DOCUMENT_INVALID,
        )
    return document


def _inline_text(node: DocumentNode) -> str:
    if node.text is not None:
        return node.text
    return "\n"  # hardBreak


def _collect_blocks(node: DocumentNode, out: list[str]) -> None:
    children = node.content or []
    if all(child.is_inline for child in children):
        out.append("".join(_inline_text(child) for child in children))
        return

    # Mixed content: consecutive inline runs form their own text block.
    run: list[str] = []
    for child in children:
        if child.is_inline:
            run.append(_inline_text(child))
            continue
        if run:
            out.append("".join(run))
            run = []
        _collect_blocks(child, out)
    if run:
        out.append("".join(run))


def project_text(document: DocumentNode) -> str:
    """Return the deterministic plain-text projection of a document."""
    if document.is_inline:
        return _inline_text(document).strip()
    blocks: list[str] = []
    _collect_blocks(document, blocks)
    return BLOCK_SEPARATOR.join(blocks).strip()
