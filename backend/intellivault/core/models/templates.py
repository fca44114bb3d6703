"""Built-in starting documents for new notes."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from .document import DocumentNode, empty_document


def _text(value: str) -> DocumentNode:
    return DocumentNode(type="text", text=value)


def _heading(value: str, level: int = 2) -> DocumentNode:
    return DocumentNode(type="heading", attrs={"level": level}, content=[_text(value)])


def _paragraph(value: str | None = None) -> DocumentNode:
    return DocumentNode(type="paragraph", content=[_text(value)] if value else None)


def _bullet_list(*items: str) -> DocumentNode:
    return DocumentNode(
        type="bulletList",
        content=[DocumentNode(type="listItem", content=[_paragraph(item or None)]) for item in items],
    )


def _task_list(*items: str) -> DocumentNode:
    return DocumentNode(
        type="taskList",
        content=[
            DocumentNode(type="taskItem", attrs={"checked": False}, content=[_paragraph(item or None)])
            for item in items
        ],
    )


def _doc(*blocks: DocumentNode) -> DocumentNode:
    return DocumentNode(type="doc", content=list(blocks))


@dataclass(frozen=True)
class NoteTemplate:
    name: str
    title: str
    build: Callable[[], DocumentNode]


TEMPLATES: dict[str, NoteTemplate] = {
    "blank": NoteTemplate("blank", "Untitled", empty_document),
    "meeting": NoteTemplate(
        "meeting",
        "Meeting notes",
        lambda: _doc(
            _heading("Attendees"),
            _bullet_list(""),
            _heading("Agenda"),
            _bullet_list(""),
            _heading("Action items"),
            _task_list(""),
        ),
    ),
    "journal": NoteTemplate(
        "journal",
        "Journal",
        lambda: _doc(
            _heading("Today"),
            _paragraph(),
            _heading("Grateful for"),
            _bullet_list(""),
        ),
    ),
    "todo": NoteTemplate("todo", "To do", lambda: _doc(_task_list(""))),
}


def get_template(name: str) -> NoteTemplate | None:
    return TEMPLATES.get(name.strip().lower())
