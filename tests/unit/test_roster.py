from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest

from classroom_batch.db.memory import MemoryDatabase
from classroom_batch.models.row_record import RowRecord
from classroom_batch.services.errors import BatchRejected, ClassNotFound, RosterPreconditionError
from classroom_batch.services.roster import (
    EMAIL_ALREADY_ADDED,
    EMAIL_NOT_FOUND,
    add_members,
    find_class,
    members_from_csv,
    parse_member_list,
    remove_members,
)
from classroom_batch.services.responses import add_members_request, remove_members_request


@pytest.fixture()
def roster_db() -> tuple[MemoryDatabase, dict]:
    db = MemoryDatabase()
    users = {
        key: db.users.save({"vnu_id": key, "email": f"{key}@x.com", "name": key.upper()})
        for key in ("a", "b", "c", "s1", "s2")
    }
    db.classes.save({"class_id": "C1", "class_members": [users["a"]["_id"], users["b"]["_id"]]})
    db.reset_calls()
    return db, users


def _class(db):
    return db.classes.find_one({"class_id": "C1"})


def test_add_resolves_new_member_with_one_write(roster_db):
    db, users = roster_db
    result = add_members(db, _class(db), ["c@x.com"])

    ids = [users[k]["_id"] for k in ("a", "b", "c")]
    assert result.members == ids
    assert result.registered == [{"email": "c@x.com"}]
    assert result.failed == []
    assert db.classes.writes == 1
    assert _class(db)["class_members"] == ids


def test_add_uses_one_batched_lookup(roster_db):
    db, _ = roster_db
    add_members(db, _class(db), ["c@x.com", "s1@x.com", "ghost@x.com"])
    finds = [c for c in db.users.calls if c[0] in ("find", "find_one")]
    assert finds == [("find", {"email": {"$in": ["c@x.com", "s1@x.com", "ghost@x.com"]}})]


def test_add_distinguishes_missing_and_existing(roster_db):
    db, _ = roster_db
    result = add_members(db, _class(db), ["a@x.com", "ghost@x.com", 123, {"email": "c@x.com"}])
    assert result.registered == []
    assert result.failed == [
        {"email": "a@x.com", "error": EMAIL_ALREADY_ADDED},
        {"email": "ghost@x.com", "error": EMAIL_NOT_FOUND},
        {"email": 123, "error": EMAIL_NOT_FOUND},
        {"email": {"email": "c@x.com"}, "error": EMAIL_NOT_FOUND},
    ]


def test_add_is_idempotent(roster_db):
    db, _ = roster_db
    first = add_members(db, _class(db), ["c@x.com", "s1@x.com"])
    second = add_members(db, _class(db), ["c@x.com", "s1@x.com"])
    assert second.members == first.members
    assert second.registered == []
    assert [f["error"] for f in second.failed] == [EMAIL_ALREADY_ADDED] * 2


def test_add_repeated_identifier_in_one_request(roster_db):
    db, _ = roster_db
    result = add_members(db, _class(db), ["c@x.com", "c@x.com"])
    assert result.registered == [{"email": "c@x.com"}]
    assert result.failed == [{"email": "c@x.com", "error": EMAIL_ALREADY_ADDED}]
    assert len(result.members) == 3
    assert result.requested == 2


def test_add_empty_request_still_single_lookup_and_write(roster_db):
    db, users = roster_db
    result = add_members(db, _class(db), [])
    assert result.members == [users["a"]["_id"], users["b"]["_id"]]
    assert [c[0] for c in db.users.calls] == ["find"]
    assert db.classes.writes == 1


def test_remove_deletes_matches_and_reports_unknown(roster_db):
    db, users = roster_db
    cls = _class(db)
    cls["class_members"] = [users["s1"]["_id"], users["s2"]["_id"]]
    db.classes.save(cls)
    db.reset_calls()

    result = remove_members(db, _class(db), ["s1", "s9"])
    assert [m["vnu_id"] for m in result.deleted] == ["s1"]
    assert result.deleted[0] == users["s1"]
    assert result.failed == ["s9"]
    assert result.members == [users["s2"]["_id"]]
    assert _class(db)["class_members"] == [users["s2"]["_id"]]
    assert [c[0] for c in db.users.calls] == ["find"]
    assert db.classes.writes == 1


def test_remove_repeated_identifier_fails_second(roster_db):
    db, _ = roster_db
    result = remove_members(db, _class(db), ["a", "a", 42])
    assert [m["vnu_id"] for m in result.deleted] == ["a"]
    assert result.failed == ["a", 42]
    assert len(result.deleted) + len(result.failed) == 3


def test_remove_member_listed_twice_consumes_one_request_per_copy(roster_db):
    db, users = roster_db
    cls = _class(db)
    cls["class_members"] = [users["a"]["_id"], users["b"]["_id"], users["a"]["_id"]]
    db.classes.save(cls)

    result = remove_members(db, _class(db), ["a"])
    assert [m["vnu_id"] for m in result.deleted] == ["a"]
    assert result.failed == []
    assert result.members == [users["b"]["_id"], users["a"]["_id"]]

    result = remove_members(db, _class(db), ["a", "a"])
    assert [m["vnu_id"] for m in result.deleted] == ["a"]
    assert result.failed == ["a"]
    assert len(result.deleted) + len(result.failed) == 2
    assert _class(db)["class_members"] == [users["b"]["_id"]]


def test_missing_member_set_is_fatal(roster_db):
    db, _ = roster_db
    cls = _class(db)
    cls["class_members"] = None
    with pytest.raises(RosterPreconditionError):
        add_members(db, cls, ["c@x.com"])
    with pytest.raises(RosterPreconditionError):
        remove_members(db, cls, ["a"])
    assert db.users.calls == []


def test_save_failure_propagates(roster_db):
    db, _ = roster_db
    db.classes.save = MagicMock(side_effect=RuntimeError("write failed"))
    with pytest.raises(RuntimeError):
        add_members(db, _class(db), ["c@x.com"])


class TestParseMemberList:
    def test_json_string(self):
        assert parse_member_list(json.dumps(["a@x.com", 1])) == ["a@x.com", 1]

    def test_decoded_list(self):
        assert parse_member_list(["a@x.com"]) == ["a@x.com"]

    def test_missing(self):
        with pytest.raises(BatchRejected, match="Members list is required"):
            parse_member_list(None)

    @pytest.mark.parametrize("raw", ["invalid_json", '{"a": 1}', "null", 5, b'["\xff"]'])
    def test_not_an_array(self, raw):
        with pytest.raises(BatchRejected, match="Array members invalid"):
            parse_member_list(raw)


def test_find_class(roster_db):
    db, _ = roster_db
    assert find_class(db.classes, "C1")["class_id"] == "C1"
    with pytest.raises(ClassNotFound):
        find_class(db.classes, "NOPE")


def test_find_class_blank_id_skips_lookup(roster_db):
    db, _ = roster_db
    with pytest.raises(ClassNotFound):
        find_class(db.classes, "  ")
    assert db.classes.calls == []


def test_members_from_csv():
    rows = [RowRecord(2, {"email": "a@x.com"}), RowRecord(3, {"email": ""}), RowRecord(4, {"email": "b@x.com"})]
    assert members_from_csv(rows) == ["a@x.com", "b@x.com"]
    with pytest.raises(BatchRejected, match="CSV file is empty"):
        members_from_csv([])
    with pytest.raises(BatchRejected, match="no vnu_id column"):
        members_from_csv(rows, "vnu_id")


class TestRequests:
    def test_add_request_success(self, roster_db):
        db, users = roster_db
        response, _ = add_members_request(db, "C1", '["c@x.com", "ghost@x.com"]')
        assert response.status_code == 200
        assert response.body["status"] == "Success"
        assert response.body["message"]["registered"] == [{"email": "c@x.com"}]
        assert response.body["message"]["failed"] == [{"email": "ghost@x.com", "error": EMAIL_NOT_FOUND}]
        assert response.body["message"]["members"][-1] == users["c"]["_id"]

    def test_malformed_list_makes_no_persistence_calls(self, roster_db):
        db, _ = roster_db
        response, result = add_members_request(db, "C1", "invalid_json")
        assert result is None
        assert response.status_code == 400
        assert response.body == {"status": "Error", "message": "Array members invalid"}
        assert db.users.calls == [] and db.classes.calls == []

    def test_undecodable_body_is_400(self, roster_db):
        db, _ = roster_db
        response, result = add_members_request(db, "C1", b'["\xff"]')
        assert result is None
        assert response.status_code == 400
        assert response.body == {"status": "Error", "message": "Array members invalid"}
        assert db.users.calls == [] and db.classes.calls == []

    def test_unknown_class_is_404(self, roster_db):
        db, _ = roster_db
        response, _ = remove_members_request(db, "NOPE", '["a"]')
        assert response.status_code == 404
        assert response.body == {"status": "Error", "message": "Class not found"}

    def test_missing_member_set_is_500(self, roster_db):
        db, _ = roster_db
        cls = _class(db)
        cls["class_members"] = None
        db.classes.save(cls)
        response, _ = add_members_request(db, "C1", '["c@x.com"]')
        assert response.status_code == 500

    def test_remove_request_message_shape(self, roster_db):
        db, _ = roster_db
        response, _ = remove_members_request(db, "C1", ["a", "zzz"])
        assert set(response.body["message"]) == {"deleted", "failed"}
        assert response.body["message"]["failed"] == ["zzz"]
