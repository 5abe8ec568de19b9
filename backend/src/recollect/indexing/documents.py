"""Conversion of todo and memory rows into indexable documents."""

import json
import logging
from datetime import datetime, timezone

from recollect.db.content import MemoryRecord, TodoRecord
from recollect.search.schemas import ContentType, Document

logger = logging.getLogger(__name__)


def parse_timestamp(raw: str | None) -> datetime:
    """Parse a SQLite timestamp, assuming UTC when no offset is given."""
    if raw:
        try:
            parsed = datetime.fromisoformat(raw)
        except ValueError:
            logger.debug(f"Unparseable timestamp {raw!r}, using current time")
        else:
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return datetime.now(timezone.utc)


def tags_from_metadata(metadata: dict[str, str]) -> list[str]:
    """Decode the JSON tag list stored in document metadata."""
    raw = metadata.get("tags")
    if not raw:
        return []
    try:
        tags = json.loads(raw)
    except json.JSONDecodeError:
        return [raw]
    return [str(tag) for tag in tags] if isinstance(tags, list) else []


def todo_metadata(todo: TodoRecord) -> dict[str, str]:
    metadata = {"priority": todo.priority, "status": todo.status}
    if todo.group_id:
        metadata["group_id"] = todo.group_id
    if todo.tags:
        metadata["tags"] = json.dumps(todo.tags)
    if todo.due_date:
        metadata["due_date"] = todo.due_date
    return metadata


def memory_metadata(memory: MemoryRecord) -> dict[str, str]:
    metadata = {"category": memory.category}
    if memory.url:
        metadata["url"] = memory.url
    return metadata


def todo_to_document(todo: TodoRecord) -> Document:
    """Document for a todo; the title leads the content so both are embedded."""
    content = todo.title
    if todo.description:
        content += "\n" + todo.description
    return Document(
        content_id=todo.id,
        content_type=ContentType.TODO,
        user_id=todo.user_id,
        title=todo.title,
        content=content,
        metadata=todo_metadata(todo),
        created_at=parse_timestamp(todo.created_at),
    )


def memory_to_document(memory: MemoryRecord) -> Document:
    """Document for a memory, with its summary appended to the content."""
    content = memory.content
    if memory.summary:
        content += "\nSummary: " + memory.summary
    return Document(
        content_id=memory.id,
        content_type=ContentType.MEMORY,
        user_id=memory.user_id,
        title=memory.url_title,
        content=content,
        metadata=memory_metadata(memory),
        created_at=parse_timestamp(memory.created_at),
    )
