import pytest

from app.models.admin_action import AdminAction
from app.models.issue import Issue, IssueStatus
from app.models.vote import Vote
from app.services import admin as admin_service


def _actions(db):
    return db.query(AdminAction).order_by(AdminAction.id).all()


# -------------------------------------------------------
# Status changes
# -------------------------------------------------------

def test_admin_changes_status_and_audits(client, db_session, make_issue, admin_user, headers_for):
    issue = make_issue()
    response = client.patch(
        f"/issues/{issue.id}/status",
        json={"status": "in_progress"},
        headers=headers_for(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["status"] == "in_progress"
    assert response.json()["status_label"] == "IN PROGRESS"

    actions = _actions(db_session)
    assert len(actions) == 1
    assert actions[0].admin_id == admin_user.id
    assert actions[0].action_type == "status_change"
    assert actions[0].target_type == "issue"
    assert actions[0].target_id == str(issue.id)
    assert actions[0].details == {"old_status": "open", "new_status": "in_progress"}


def test_resident_cannot_change_status(client, db_session, make_issue, resident, headers_for):
    issue = make_issue()
    response = client.patch(
        f"/issues/{issue.id}/status",
        json={"status": "resolved"},
        headers=headers_for(resident),
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "Admin access required"
    db_session.expire_all()
    assert db_session.get(Issue, issue.id).status == IssueStatus.open
    assert _actions(db_session) == []


def test_any_status_can_follow_any_other(client, db_session, make_issue, admin_user, headers_for):
    issue = make_issue(status=IssueStatus.closed)
    for target in ["open", "resolved", "in_progress", "closed"]:
        response = client.patch(
            f"/issues/{issue.id}/status",
            json={"status": target},
            headers=headers_for(admin_user),
        )
        assert response.status_code == 200
        assert response.json()["status"] == target
    assert len(_actions(db_session)) == 4


def test_setting_same_status_writes_nothing(db_session, make_issue, admin_user):
    issue = make_issue(status=IssueStatus.resolved)
    admin_service.change_status(db_session, admin_user.id, issue.id, "resolved")
    assert _actions(db_session) == []


def test_unknown_status_is_rejected(client, make_issue, admin_user, headers_for):
    issue = make_issue()
    response = client.patch(
        f"/issues/{issue.id}/status",
        json={"status": "workdone"},
        headers=headers_for(admin_user),
    )
    assert response.status_code == 422


def test_status_change_on_missing_issue(client, admin_user, headers_for):
    response = client.patch("/issues/404/status", json={"status": "closed"}, headers=headers_for(admin_user))
    assert response.status_code == 404


# -------------------------------------------------------
# Deletes
# -------------------------------------------------------

def test_admin_delete_removes_votes_and_audits(client, db_session, make_issue, admin_user, resident, headers_for):
    issue = make_issue(title="Duplicate report of pothole")
    client.post(f"/issues/{issue.id}/upvote", headers=headers_for(resident))
    issue_id = issue.id

    response = client.delete(f"/issues/{issue_id}", headers=headers_for(admin_user))
    assert response.status_code == 200
    assert response.json() == {"ok": True}

    db_session.expire_all()
    assert db_session.get(Issue, issue_id) is None
    assert db_session.query(Vote).filter(Vote.issue_id == issue_id).count() == 0
    actions = _actions(db_session)
    assert len(actions) == 1
    assert actions[0].action_type == "delete_issue"
    assert actions[0].details == {"title": "Duplicate report of pothole", "status": "open"}

    assert client.get(f"/issues/{issue_id}").status_code == 404


def test_resident_cannot_delete(client, db_session, make_issue, resident, headers_for):
    issue = make_issue()
    response = client.delete(f"/issues/{issue.id}", headers=headers_for(resident))
    assert response.status_code == 403
    assert db_session.query(Issue).count() == 1


def test_delete_missing_issue(db_session, admin_user):
    with pytest.raises(LookupError):
        admin_service.delete_issue(db_session, admin_user.id, 12345)
    assert _actions(db_session) == []


# -------------------------------------------------------
# Audit log and summary
# -------------------------------------------------------

def test_action_log_lists_newest_first(client, make_issue, admin_user, headers_for):
    first = make_issue(title="First issue to triage")
    second = make_issue(title="Second issue to triage")
    client.patch(f"/issues/{first.id}/status", json={"status": "resolved"}, headers=headers_for(admin_user))
    client.delete(f"/issues/{second.id}", headers=headers_for(admin_user))

    body = client.get("/admin/actions", headers=headers_for(admin_user)).json()
    assert body["total"] == 2
    assert [a["action_type"] for a in body["items"]] == ["delete_issue", "status_change"]


def test_admin_endpoints_require_admin(client, resident, headers_for):
    assert client.get("/admin/actions").status_code == 401
    assert client.get("/admin/actions", headers=headers_for(resident)).status_code == 403
    assert client.get("/admin/summary", headers=headers_for(resident)).status_code == 403


def test_status_summary_counts(client, make_issue, admin_user, headers_for):
    make_issue(status=IssueStatus.open)
    make_issue(status=IssueStatus.open)
    make_issue(status=IssueStatus.resolved)
    body = client.get("/admin/summary", headers=headers_for(admin_user)).json()
    assert body == {"total": 3, "open": 2, "in_progress": 0, "resolved": 1, "closed": 0}


# -------------------------------------------------------
# Per-role actions on the detail view
# -------------------------------------------------------

def test_detail_actions_depend_on_role(client, make_issue, resident, admin_user, headers_for):
    issue = make_issue()

    assert client.get(f"/issues/{issue.id}").json()["actions"] == []
    assert client.get(f"/issues/{issue.id}", headers=headers_for(resident)).json()["actions"] == [
        "upvote", "downvote",
    ]
    admin_actions = client.get(f"/issues/{issue.id}", headers=headers_for(admin_user)).json()["actions"]
    assert "status:open" not in admin_actions
    assert {"status:in_progress", "status:resolved", "status:closed", "delete"} <= set(admin_actions)
