"""Integration tests for the token-protected moderation routes."""

import pytest

from guestbook.models.entry import Entry


@pytest.fixture
def pending_entry(sync_db_session):
    entry = Entry(name="Alice", message="Hi", status="pending", created_at="2026-10-18T08:00:00.000Z")
    sync_db_session.add(entry)
    sync_db_session.commit()
    sync_db_session.refresh(entry)
    return entry


def _status(session, entry_id):
    session.expire_all()
    return session.get(Entry, entry_id).status


class TestAuthorization:
    @pytest.mark.parametrize("path", ["/admin/pending", "/admin/approve", "/admin/reject"])
    def test_missing_token_is_unauthorized(self, sync_client, path):
        response = sync_client.get(path, params={"id": 1})
        assert response.status_code == 401
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Unauthorized"
        assert response.headers["www-authenticate"] == "Bearer"

    @pytest.mark.parametrize("path", ["/admin/approve", "/admin/reject"])
    def test_wrong_token_does_not_mutate(self, sync_client, sync_db_session, pending_entry, path):
        response = sync_client.get(path, params={"id": pending_entry.id, "token": "wrong"})
        assert response.status_code == 401
        assert _status(sync_db_session, pending_entry.id) == "pending"

    def test_bearer_header_is_accepted(self, sync_client, admin_params):
        response = sync_client.get(
            "/admin/pending", headers={"Authorization": f"Bearer {admin_params['token']}"}
        )
        assert response.status_code == 200

    def test_wrong_bearer_header_is_rejected(self, sync_client):
        response = sync_client.get("/admin/pending", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    def test_unauthorized_before_id_validation(self, sync_client):
        response = sync_client.get("/admin/approve", params={"token": "wrong"})
        assert response.status_code == 401


class TestPending:
    def test_lists_pending_with_status(self, sync_client, sync_db_session, admin_params):
        sync_db_session.add_all(
            [
                Entry(name="old", message="m", status="pending", created_at="t1"),
                Entry(name="done", message="m", status="approved", created_at="t2"),
                Entry(name="new", message="m", status="pending", created_at="t3"),
            ]
        )
        sync_db_session.commit()

        response = sync_client.get("/admin/pending", params=admin_params)
        assert response.status_code == 200
        assert response.json() == [
            {"id": 3, "name": "new", "message": "m", "status": "pending", "created_at": "t3"},
            {"id": 1, "name": "old", "message": "m", "status": "pending", "created_at": "t1"},
        ]


class TestApproveReject:
    def test_approve(self, sync_client, sync_db_session, pending_entry, admin_params):
        response = sync_client.get(
            "/admin/approve", params={"id": pending_entry.id, **admin_params}
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert "Approved" in response.text
        assert _status(sync_db_session, pending_entry.id) == "approved"

    def test_reject(self, sync_client, sync_db_session, pending_entry, admin_params):
        response = sync_client.get("/admin/reject", params={"id": pending_entry.id, **admin_params})
        assert response.status_code == 200
        assert "Rejected" in response.text
        assert _status(sync_db_session, pending_entry.id) == "rejected"

    @pytest.mark.parametrize("path", ["/admin/approve", "/admin/reject"])
    def test_missing_id(self, sync_client, admin_params, path):
        response = sync_client.get(path, params=admin_params)
        assert response.status_code == 400
        assert response.text == "Missing id"

    @pytest.mark.parametrize(
        "raw_id",
        ["abc", "0", "-3", "1.5", "+3", "0_3", "1_000", "\uff15", "9" * 20, str(2**63)],
    )
    def test_invalid_id(self, sync_client, admin_params, raw_id):
        response = sync_client.get("/admin/approve", params={"id": raw_id, **admin_params})
        assert response.status_code == 400
        assert response.text == "Invalid id"

    @pytest.mark.parametrize("raw_id", ["0_3", "\uff13", "3_"])
    def test_malformed_id_does_not_touch_other_entries(
        self, sync_client, sync_db_session, admin_params, raw_id
    ):
        sync_db_session.add_all(
            [Entry(name=f"n{i}", message="m", status="pending", created_at="t") for i in range(3)]
        )
        sync_db_session.commit()

        response = sync_client.get("/admin/approve", params={"id": raw_id, **admin_params})

        assert response.status_code == 400
        sync_db_session.expire_all()
        assert [e.status for e in sync_db_session.query(Entry).order_by(Entry.id)] == [
            "pending",
            "pending",
            "pending",
        ]

    def test_largest_storable_id_is_accepted(self, sync_client, admin_params):
        response = sync_client.get("/admin/approve", params={"id": str(2**63 - 1), **admin_params})
        assert response.status_code == 200

    def test_surrounding_whitespace_is_ignored(
        self, sync_client, sync_db_session, pending_entry, admin_params
    ):
        response = sync_client.get(
            "/admin/approve", params={"id": f" {pending_entry.id} ", **admin_params}
        )
        assert response.status_code == 200
        assert _status(sync_db_session, pending_entry.id) == "approved"

    def test_unknown_id_is_not_an_error(self, sync_client, sync_db_session, admin_params):
        response = sync_client.get("/admin/approve", params={"id": 999, **admin_params})
        assert response.status_code == 200
        assert sync_db_session.query(Entry).count() == 0
