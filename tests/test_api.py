"""End-to-end tests through the HTTP surface.

Checks the uniform envelope, status codes, preflight handling and the
ownership rules as seen by real requests.
"""

import pytest
from fastapi.testclient import TestClient

from conftest import PASSWORD, auth_headers
from portal.core.ids import utcnow
from portal.main import allowed_methods, app
from portal.models.user import UserRole

YEAR = utcnow().year


def _login(client, user_id: str, display_name: str, password: str = PASSWORD):
    return client.post("/api/auth/login", json={"id": user_id, "display_name": display_name, "password": password})


# ===================================================================
# Envelope and ambient behaviour
# ===================================================================

class TestEnvelope:
    def test_health(self, client) -> None:
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}

    def test_unknown_route_uses_error_envelope(self, client) -> None:
        response = client.get("/api/nowhere")
        assert response.status_code == 404
        assert response.json()["success"] is False
        assert "error" in response.json()

    def test_missing_credential(self, client) -> None:
        response = client.get("/api/tickets")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Authorization token required"}

    def test_invalid_credential(self, client) -> None:
        response = client.get("/api/tickets", headers={"Authorization": "Bearer garbage"})
        assert response.status_code == 401
        assert response.json()["success"] is False

    def test_request_validation_is_400(self, client, admin) -> None:
        response = client.post("/api/projects", json={"name": "No client"}, headers=auth_headers(admin))
        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "client_id" in body["error"]

    def test_invalid_query_parameter_is_400(self, client, admin) -> None:
        response = client.get("/api/users?page=0", headers=auth_headers(admin))
        assert response.status_code == 400

    def test_large_page_size_is_honoured(self, client, admin) -> None:
        response = client.get("/api/tickets?limit=500", headers=auth_headers(admin))
        assert response.status_code == 200
        assert response.json()["data"]["pagination"]["limit"] == 500

    def test_unexpected_error_hides_details(self, client, admin, monkeypatch) -> None:
        from portal.api.endpoints import projects

        def explode(self, *args, **kwargs):
            raise RuntimeError("connection string user:secret@db")

        monkeypatch.setattr(projects.ProjectRepository, "list", explode)
        quiet_client = TestClient(app, raise_server_exceptions=False)
        response = quiet_client.get("/api/projects", headers=auth_headers(admin))
        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "Internal server error"}
        assert "secret" not in response.text


class TestPreflight:
    def test_collection_preflight(self, client) -> None:
        response = client.options("/api/tickets")
        assert response.status_code == 204
        assert response.content == b""
        allowed = response.headers["Allow"]
        assert "GET" in allowed and "POST" in allowed
        assert response.headers["Access-Control-Allow-Methods"] == allowed
        assert response.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"

    def test_item_preflight_lists_item_methods(self, client) -> None:
        response = client.options("/api/projects/abc")
        assert response.status_code == 204
        for method in ("GET", "PUT", "DELETE"):
            assert method in response.headers["Allow"]

    def test_browser_preflight_without_credential(self, client) -> None:
        response = client.options("/api/users", headers={
            "Origin": "https://portal.acme.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "authorization,content-type",
        })
        assert response.status_code == 204

    def test_allow_lists_exactly_the_registered_methods(self, client) -> None:
        assert client.options("/api/tickets").headers["Allow"] == "GET, OPTIONS, POST"
        assert client.options("/api/tickets/abc").headers["Allow"] == "GET, OPTIONS, PUT"
        assert client.options("/api/tickets/abc/comments").headers["Allow"] == "GET, OPTIONS, POST"
        assert client.options("/api/users/abc").headers["Allow"] == "DELETE, GET, OPTIONS, PUT"

    def test_route_table_covers_nested_routers(self) -> None:
        assert allowed_methods("/api/health") == {"GET"}
        assert allowed_methods("/api/auth/login") == {"POST"}
        assert allowed_methods("/api/projects/abc") == {"GET", "PUT", "DELETE"}
        assert allowed_methods("/api/nowhere") == set()

    def test_unknown_path_is_not_answered(self, client) -> None:
        response = client.options("/api/nowhere")
        assert response.status_code == 404


# ===================================================================
# Authentication
# ===================================================================

class TestAuth:
    def test_login_returns_token_and_user(self, client, client_user) -> None:
        response = _login(client, client_user.id, client_user.display_name)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Login successful"
        assert body["data"]["token"]
        assert body["data"]["user"]["id"] == client_user.id
        assert "password_hash" not in body["data"]["user"]
        assert body["data"]["user"]["last_login"] is not None

    def test_login_bad_password(self, client, client_user) -> None:
        response = _login(client, client_user.id, client_user.display_name, "wrong")
        assert response.status_code == 401
        assert response.json() == {"success": False, "error": "Invalid credentials"}

    def test_login_missing_fields(self, client) -> None:
        response = client.post("/api/auth/login", json={"id": "abc"})
        assert response.status_code == 400

    def test_verify_header_and_body(self, client, developer) -> None:
        token = _login(client, developer.id, developer.display_name).json()["data"]["token"]

        by_header = client.post("/api/auth/verify", headers={"Authorization": f"Bearer {token}"})
        assert by_header.status_code == 200
        assert by_header.json()["data"]["user"]["id"] == developer.id
        assert by_header.json()["data"]["user"]["role"] == "developer"

        by_body = client.post("/api/auth/verify", json={"token": token})
        assert by_body.status_code == 200

    def test_verify_rejects_missing_and_bad_tokens(self, client) -> None:
        assert client.post("/api/auth/verify").status_code == 401
        assert client.post("/api/auth/verify", json={"token": "x.y.z"}).status_code == 401

    def test_register_requires_admin(self, client, client_user) -> None:
        payload = {"display_name": "New", "email": "new@acme.com", "password": "pw", "role": "admin"}
        assert client.post("/api/auth/register", json=payload).status_code == 401
        response = client.post("/api/auth/register", json=payload, headers=auth_headers(client_user))
        assert response.status_code == 403

    def test_register_admin_and_duplicate(self, client, admin) -> None:
        payload = {"display_name": "Second Admin", "email": "admin2@acme.com", "password": "pw", "role": "admin"}
        created = client.post("/api/auth/register", json=payload, headers=auth_headers(admin))
        assert created.status_code == 201
        assert created.json()["data"]["user"]["account_code"].startswith("admin-")

        duplicate = client.post("/api/auth/register", json=payload, headers=auth_headers(admin))
        assert duplicate.status_code == 409
        assert duplicate.json()["success"] is False


# ===================================================================
# Users
# ===================================================================

class TestUsersApi:
    def test_staff_endpoint_rejects_admin_role(self, client, admin) -> None:
        payload = {"display_name": "X", "email": "x@acme.com", "password": "pw", "role": "admin"}
        response = client.post("/api/users", json=payload, headers=auth_headers(admin))
        assert response.status_code == 400

    def test_non_admin_forbidden(self, client, developer) -> None:
        assert client.get("/api/users", headers=auth_headers(developer)).status_code == 403

    def test_crud(self, client, admin) -> None:
        headers = auth_headers(admin)
        created = client.post("/api/users", json={
            "display_name": "Dana Dev", "email": "dana@acme.com", "password": "pw", "role": "developer",
        }, headers=headers)
        assert created.status_code == 201
        user_id = created.json()["data"]["user"]["id"]

        fetched = client.get(f"/api/users/{user_id}", headers=headers)
        assert fetched.json()["data"]["user"]["email"] == "dana@acme.com"

        updated = client.put(f"/api/users/{user_id}", json={"phone": "555-0100"}, headers=headers)
        assert updated.status_code == 200
        assert updated.json()["data"]["user"]["phone"] == "555-0100"
        assert updated.json()["data"]["user"]["display_name"] == "Dana Dev"

        listed = client.get("/api/users?role=developer", headers=headers).json()["data"]
        assert [user["id"] for user in listed["users"]] == [user_id]
        assert listed["pagination"]["total"] == 1

        deleted = client.delete(f"/api/users/{user_id}", headers=headers)
        assert deleted.status_code == 200
        assert deleted.json()["data"]["user"]["is_active"] is False

    def test_empty_update_is_400(self, client, admin, client_user) -> None:
        response = client.put(f"/api/users/{client_user.id}", json={}, headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["error"] == "No fields to update"

    def test_missing_user_is_404(self, client, admin) -> None:
        response = client.get("/api/users/ffffffffffffffff", headers=auth_headers(admin))
        assert response.status_code == 404


# ===================================================================
# Full workflow
# ===================================================================

class TestTicketWorkflow:
    def test_client_ticket_lifecycle(self, client, admin, developer, other_developer) -> None:
        admin_headers = auth_headers(admin)

        created = client.post("/api/users", json={
            "display_name": "Acme Corp", "email": "ops@acme.com", "password": "client-pw",
            "role": "client", "company_name": "Acme",
        }, headers=admin_headers)
        customer = created.json()["data"]["user"]
        assert customer["account_code"].startswith("user-")

        project = client.post("/api/projects", json={
            "name": "Acme Store", "type": "Desarrollo Web", "client_id": customer["id"],
        }, headers=admin_headers)
        assert project.status_code == 201
        project = project.json()["data"]["project"]
        assert project["project_code"] == f"NX-WEB-{YEAR}-001"
        assert project["type"] == "web"

        login = _login(client, customer["id"], "Acme Corp", "client-pw")
        client_headers = {"Authorization": f"Bearer {login.json()['data']['token']}"}

        ticket = client.post("/api/tickets", json={
            "project_id": project["id"], "title": "Checkout fails", "priority": "high", "category": "bug",
        }, headers=client_headers)
        assert ticket.status_code == 201
        ticket = ticket.json()["data"]["ticket"]
        assert ticket["ticket_number"] == f"NX-{YEAR}-001"
        assert ticket["status"] == "open"
        assert ticket["client_id"] == customer["id"]

        reassign = client.put(f"/api/tickets/{ticket['id']}", json={"assigned_developer_id": developer.id},
                              headers=client_headers)
        assert reassign.status_code == 403
        assert reassign.json()["success"] is False

        progress = client.put(f"/api/tickets/{ticket['id']}", json={"status": "in_progress"}, headers=client_headers)
        assert progress.status_code == 403

        claimed = client.put(f"/api/tickets/{ticket['id']}", json={"assigned_developer_id": developer.id},
                             headers=auth_headers(developer))
        assert claimed.status_code == 200
        assert claimed.json()["data"]["ticket"]["assigned_developer_id"] == developer.id

        steal = client.put(f"/api/tickets/{ticket['id']}", json={"assigned_developer_id": other_developer.id},
                           headers=client_headers)
        assert steal.status_code == 403

        resolved = client.put(f"/api/tickets/{ticket['id']}", json={"status": "resolved"},
                              headers=auth_headers(developer))
        assert resolved.status_code == 200
        assert resolved.json()["data"]["ticket"]["resolved_at"] is not None

        comment = client.post(f"/api/tickets/{ticket['id']}/comments", json={"body": "Works now, thanks"},
                              headers=client_headers)
        assert comment.status_code == 201

        closed = client.put(f"/api/tickets/{ticket['id']}", json={"status": "closed"}, headers=client_headers)
        assert closed.status_code == 200
        assert closed.json()["data"]["ticket"]["status"] == "closed"
        assert closed.json()["data"]["ticket"]["assigned_developer_id"] == developer.id

        detail = client.get(f"/api/tickets/{ticket['id']}", headers=client_headers).json()["data"]
        assert detail["ticket"]["status"] == "closed"
        assert [c["body"] for c in detail["comments"]] == ["Works now, thanks"]

    def test_reads_carry_display_names(
        self, client, admin, client_user, developer, make_project, make_ticket,
    ) -> None:
        ticket_id = make_ticket(make_project(client_user, name="Storefront")).id
        admin_headers = auth_headers(admin)
        assigned = client.put(f"/api/tickets/{ticket_id}", json={"assigned_developer_id": developer.id},
                              headers=admin_headers)
        assert assigned.json()["data"]["ticket"]["developer_name"] == "Dev One"
        comment = client.post(f"/api/tickets/{ticket_id}/comments", json={"body": "Taking a look"},
                              headers=auth_headers(developer))
        assert comment.json()["data"]["comment"]["author_name"] == "Dev One"

        detail = client.get(f"/api/tickets/{ticket_id}", headers=admin_headers).json()["data"]
        assert detail["ticket"]["project_name"] == "Storefront"
        assert detail["ticket"]["client_name"] == "Carla Client"
        assert detail["ticket"]["developer_email"] == developer.email
        assert detail["comments"][0]["author_role"] == "developer"

        listed = client.get("/api/tickets", headers=admin_headers).json()["data"]["tickets"]
        assert listed[0]["client_email"] == client_user.email

        projects = client.get("/api/projects", headers=auth_headers(client_user)).json()["data"]["projects"]
        assert projects[0]["client_name"] == "Carla Client"

    def test_invalid_enum_rejected_before_policy(self, client, client_user, make_project) -> None:
        project = make_project(client_user)
        response = client.post("/api/tickets", json={
            "project_id": project.id, "title": "x", "priority": "critical", "category": "bug",
        }, headers=auth_headers(client_user))
        assert response.status_code == 400

    def test_unknown_project_is_404(self, client, client_user) -> None:
        response = client.post("/api/tickets", json={
            "project_id": "ffffffffffffffff", "title": "x", "priority": "low", "category": "bug",
        }, headers=auth_headers(client_user))
        assert response.status_code == 404


class TestOwnership:
    def test_clients_only_see_their_own(self, client, client_user, other_client, make_project, make_ticket) -> None:
        ticket = make_ticket(make_project(client_user))
        project_id = ticket.project_id
        ticket_id = ticket.id

        outsider = auth_headers(other_client)
        assert client.get(f"/api/tickets/{ticket_id}", headers=outsider).status_code == 403
        assert client.get(f"/api/projects/{project_id}", headers=outsider).status_code == 403
        assert client.get(f"/api/tickets/{ticket_id}/comments", headers=outsider).status_code == 403

        listed = client.get("/api/tickets", headers=outsider).json()["data"]
        assert listed["tickets"] == []
        assert listed["pagination"] == {"page": 1, "limit": 10, "total": 0, "totalPages": 0}

        owner = client.get("/api/tickets", headers=auth_headers(client_user)).json()["data"]
        assert [t["id"] for t in owner["tickets"]] == [ticket_id]

    def test_developer_project_access(self, client, developer, client_user, make_project) -> None:
        project = make_project(client_user)
        headers = auth_headers(developer)
        assert client.get("/api/projects", headers=headers).json()["data"]["projects"] == []
        assert client.get(f"/api/projects/{project.id}", headers=headers).status_code == 403

    def test_project_mutations_are_admin_only(self, client, client_user, make_project) -> None:
        project = make_project(client_user)
        headers = auth_headers(client_user)
        assert client.put(f"/api/projects/{project.id}", json={"name": "Mine"}, headers=headers).status_code == 403
        assert client.delete(f"/api/projects/{project.id}", headers=headers).status_code == 403

    def test_project_delete_conflict(self, client, admin, client_user, make_project, make_ticket) -> None:
        project = make_project(client_user)
        make_ticket(project)
        response = client.delete(f"/api/projects/{project.id}", headers=auth_headers(admin))
        assert response.status_code == 409


@pytest.mark.parametrize("role", [UserRole.CLIENT, UserRole.DEVELOPER, UserRole.ADMIN])
def test_every_role_can_list_tickets(client, make_user, role) -> None:
    user = make_user(role)
    response = client.get("/api/tickets", headers=auth_headers(user))
    assert response.status_code == 200
    assert response.json()["success"] is True
