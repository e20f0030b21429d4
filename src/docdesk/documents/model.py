"""Dataclasses describing documents served by the document service."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Iterable, Mapping

from ..errors import DocumentIntegrityError

__all__ = [
    "Document",
    "DocumentGroup",
    "DocumentNode",
    "DocumentType",
    "PermissionSet",
    "MASK_MIN",
    "MASK_MAX",
]

LOGGER = logging.getLogger(__name__)

MASK_MIN = 0
MASK_MAX = 7


class DocumentType(Enum):
    """Kind of entry stored in the document tree."""

    FILE = "File"
    FOLDER = "Folder"

    @classmethod
    def parse(cls, value: Any) -> "DocumentType":
        if isinstance(value, DocumentType):
            return value
        if value is None:
            return cls.FILE
        normalized = str(value).strip().lower()
        for member in cls:
            if member.value.lower() == normalized:
                return member
        raise DocumentIntegrityError(f"Unknown document type: {value!r}", field="type")


def _validate_mask(name: str, value: Any) -> int:
    # bool is an int subclass; a True/False mask is always a payload bug
    if isinstance(value, bool) or not isinstance(value, int):
        raise DocumentIntegrityError(
            f"Permission mask {name!r} must be an integer, got {type(value).__name__}",
            field=f"permissions.{name}",
        )
    if not MASK_MIN <= value <= MASK_MAX:
        raise DocumentIntegrityError(
            f"Permission mask {name!r} out of range: {value}",
            field=f"permissions.{name}",
        )
    return value


@dataclass(slots=True, frozen=True)
class PermissionSet:
    """Owner/group/other permission masks (bit2=read, bit1=write, bit0=execute)."""

    owner: int = 6
    group: int = 4
    other: int = 4

    def __post_init__(self) -> None:
        for name in ("owner", "group", "other"):
            _validate_mask(name, getattr(self, name))

    @classmethod
    def from_payload(cls, payload: Any) -> "PermissionSet":
        if not isinstance(payload, Mapping):
            raise DocumentIntegrityError("Permission payload must be a mapping", field="permissions")
        values: dict[str, int] = {}
        for name in ("owner", "group", "other"):
            if name not in payload:
                raise DocumentIntegrityError(
                    f"Permission payload is missing {name!r}", field=f"permissions.{name}"
                )
            values[name] = _validate_mask(name, payload[name])
        return cls(**values)

    def as_tuple(self) -> tuple[int, int, int]:
        return (self.owner, self.group, self.other)


@dataclass(slots=True, frozen=True)
class DocumentGroup:
    """Group attached to a document; membership is keyed by user identifier."""

    members: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_payload(cls, payload: Any) -> "DocumentGroup":
        """Build a group from service data, dropping member entries that carry no user id."""

        if not isinstance(payload, Mapping):
            LOGGER.debug("Ignoring malformed group payload of type %s", type(payload).__name__)
            return cls()
        raw_members = payload.get("members")
        if not isinstance(raw_members, (list, tuple, set, frozenset)):
            if raw_members is not None:
                LOGGER.debug("Ignoring malformed group members of type %s", type(raw_members).__name__)
            return cls()
        return cls(members=frozenset(_iter_member_ids(raw_members)))


def _coerce_user_id(value: Any) -> str | None:
    if isinstance(value, str):
        return value or None
    if isinstance(value, Mapping):
        candidate = value.get("_id", value.get("id"))
        if isinstance(candidate, str) and candidate:
            return candidate
    return None


def _iter_member_ids(entries: Iterable[Any]) -> Iterable[str]:
    for entry in entries:
        user_id = None
        if isinstance(entry, Mapping) and "user" in entry:
            user_id = _coerce_user_id(entry["user"])
        else:
            user_id = _coerce_user_id(entry)
        if user_id is not None:
            yield user_id


@dataclass(slots=True)
class Document:
    """A file or folder as seen by the editing session.

    ``content`` is the only field mutated locally; everything else is
    replaced wholesale when the service returns a confirmed copy.
    """

    id: str
    owner: str
    name: str = ""
    type: DocumentType = DocumentType.FILE
    content: str = ""
    group: DocumentGroup | None = None
    permissions: PermissionSet = field(default_factory=PermissionSet)

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id:
            raise DocumentIntegrityError("Document id must be a non-empty string", field="id")
        if not isinstance(self.owner, str) or not self.owner:
            raise DocumentIntegrityError("Document owner must be a non-empty string", field="owner")

    @property
    def is_folder(self) -> bool:
        return self.type is DocumentType.FOLDER

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Document":
        """Parse a document from service JSON.

        Both the canonical shape (``id``, ``owner``, ``permissions``) and the
        legacy shape (``_id``, ``owner._id``, ``memberAccess``) are accepted.
        """

        if not isinstance(payload, Mapping):
            raise DocumentIntegrityError("Document payload must be a mapping")
        document_id = payload.get("id", payload.get("_id"))
        if not isinstance(document_id, str) or not document_id:
            raise DocumentIntegrityError("Document payload is missing an id", field="id")
        owner = _coerce_user_id(payload.get("owner"))
        if owner is None:
            raise DocumentIntegrityError(
                f"Document {document_id} is missing an owner", field="owner"
            )
        permissions_payload = payload.get("permissions", payload.get("memberAccess"))
        group_payload = payload.get("group")
        content = payload.get("content")
        return cls(
            id=document_id,
            owner=owner,
            name=str(payload.get("name") or ""),
            type=DocumentType.parse(payload.get("type")),
            content=content if isinstance(content, str) else "",
            group=DocumentGroup.from_payload(group_payload) if group_payload is not None else None,
            permissions=PermissionSet.from_payload(permissions_payload),
        )


@dataclass(slots=True)
class DocumentNode:
    """Node of a document tree as listed by the browse endpoints."""

    document: Document
    children: list["DocumentNode"] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "DocumentNode":
        if not isinstance(payload, Mapping):
            raise DocumentIntegrityError("Tree node payload must be a mapping")
        data = payload.get("data", payload)
        raw_children = payload.get("children") or []
        if not isinstance(raw_children, list):
            raw_children = []
        return cls(
            document=Document.from_payload(data),
            children=[cls.from_payload(child) for child in raw_children],
        )
