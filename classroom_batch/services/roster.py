from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from ..db.documents import Collection, Database
from ..models.roster_result import MemberAddResult, MemberDeleteResult
from ..models.row_record import RowRecord
from .errors import BatchRejected, ClassNotFound, RosterPreconditionError

"""Class roster reconciliation.

Add resolves every requested email with one batched users.find, delete
populates the current members with one batched users.find; both finish with a
single classes.save. Identifiers are opaque: anything that does not resolve
lands in ``failed`` exactly as it was sent.

Two concurrent requests on the same class can lose an update (last save wins).
"""

__all__ = [
    "EMAIL_ALREADY_ADDED",
    "EMAIL_NOT_FOUND",
    "add_members",
    "find_class",
    "members_from_csv",
    "parse_member_list",
    "remove_members",
]

logger = logging.getLogger(__name__)

EMAIL_NOT_FOUND = "Email does not exist in the system"
EMAIL_ALREADY_ADDED = "Email has already been added"


def parse_member_list(raw: Any) -> list[Any]:
    """Decode a member list sent as a JSON string or as an already-decoded value.

    Raises:
        BatchRejected: missing, not JSON, or not an array.
    """
    if raw is None:
        raise BatchRejected("Members list is required")
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:  # JSONDecodeError, or bytes that are not UTF-8
            raise BatchRejected("Array members invalid") from None
    if not isinstance(raw, list):
        raise BatchRejected("Array members invalid")
    return raw


def members_from_csv(rows: Sequence[RowRecord], column: str = "email") -> list[str]:
    if not rows:
        raise BatchRejected("CSV file is empty")
    if all(column not in r.values for r in rows):
        raise BatchRejected(f"CSV file has no {column} column")
    return [r.get(column) for r in rows if r.get(column)]


def find_class(classes: Collection, class_id: str | None) -> dict[str, Any]:
    if class_id is None or not str(class_id).strip():
        raise ClassNotFound(class_id)
    class_doc = classes.find_one({"class_id": class_id})
    if class_doc is None:
        raise ClassNotFound(class_id)
    return class_doc


def _member_refs(class_doc: dict[str, Any]) -> list[Any]:
    refs = class_doc.get("class_members")
    if not isinstance(refs, list):
        raise RosterPreconditionError(f"class {class_doc.get('class_id')} has no member set")
    return refs


def add_members(db: Database, class_doc: dict[str, Any], identifiers: Sequence[Any]) -> MemberAddResult:
    refs = _member_refs(class_doc)
    requested = list(identifiers)

    users = db.users.find({"email": {"$in": requested}})
    by_email: dict[str, dict[str, Any]] = {}
    for user in users:
        by_email.setdefault(user.get("email"), user)

    members = list(refs)
    registered: list[dict[str, Any]] = []
    failed: list[dict[str, Any]] = []
    for ident in requested:
        user = by_email.get(ident) if isinstance(ident, str) else None
        if user is None:
            failed.append({"email": ident, "error": EMAIL_NOT_FOUND})
        elif user["_id"] in members:
            failed.append({"email": ident, "error": EMAIL_ALREADY_ADDED})
        else:
            members.append(user["_id"])
            registered.append({"email": ident})

    class_doc["class_members"] = members
    db.classes.save(class_doc)
    logger.info(
        f"roster add {class_doc.get('class_id')}: requested={len(requested)} "
        f"registered={len(registered)} failed={len(failed)}"
    )
    return MemberAddResult(members=list(members), registered=registered, failed=failed)


def remove_members(db: Database, class_doc: dict[str, Any], identifiers: Sequence[Any]) -> MemberDeleteResult:
    refs = _member_refs(class_doc)
    requested = list(identifiers)

    populated = {m["_id"]: m for m in db.users.find({"_id": {"$in": list(refs)}})}

    # each removed member reference consumes one matching request; what is
    # left over (unknown ids, repeats) fails in request order
    pending = list(requested)
    kept: list[Any] = []
    deleted: list[dict[str, Any]] = []
    for ref in refs:
        member = populated.get(ref)
        vnu_id = member.get("vnu_id") if member is not None else None
        if member is not None and vnu_id in pending:
            pending.remove(vnu_id)
            deleted.append(member)
        else:
            kept.append(ref)
    failed = pending

    class_doc["class_members"] = kept
    db.classes.save(class_doc)
    logger.info(
        f"roster remove {class_doc.get('class_id')}: requested={len(requested)} "
        f"deleted={len(deleted)} failed={len(failed)}"
    )
    return MemberDeleteResult(deleted=deleted, failed=failed, members=list(kept))
