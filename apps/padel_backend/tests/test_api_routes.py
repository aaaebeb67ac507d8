"""
Unit tests for the API endpoints.
Services are mocked; these tests cover routing, auth, request validation
and the {"error": ...} response format.
"""
import pytest
from unittest.mock import patch, AsyncMock
from fastapi.testclient import TestClient
from padel_backend.api.main import app
from padel_backend.services import auth_service, user_service
from padel_backend.utils.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError


# ============================================================================
# Test Fixtures and Helpers
# ============================================================================

def make_client_with_auth(monkeypatch, role="admin", user_id=1, gender="male"):
    """Helper to create an authenticated test client."""
    def fake_verify_token(token):
        return {"user_id": user_id}

    async def fake_get_user_by_id(session, uid):
        return {
            "id": user_id,
            "email": "user@example.com",
            "first_name": "Test",
            "last_name": "User",
            "phone": None,
            "gender": gender,
            "role": role,
            "claimed_level": None,
            "level_validation_status": "none",
            "level_validated_at": None,
            "level_validated_by": None,
            "level_validation_notes": None,
        }

    monkeypatch.setattr(auth_service, "verify_token", fake_verify_token, raising=True)
    monkeypatch.setattr(user_service, "get_user_by_id", fake_get_user_by_id, raising=True)

    return TestClient(app), {"Authorization": "Bearer dummy"}


MATCH = {
    "id": 11,
    "league_id": 1,
    "week_number": 1,
    "home_team_id": 1,
    "home_team_name": "Aces",
    "away_team_id": 2,
    "away_team_name": "Bandeja",
    "match_date": "2024-01-01",
    "match_time": "10:00:00",
    "home_score": None,
    "away_score": None,
    "played": False,
}


# ============================================================================
# Health and auth
# ============================================================================

def test_health():
    client = TestClient(app)
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_missing_token_is_rejected():
    client = TestClient(app)
    response = client.get("/api/leagues/1/calendar")
    assert response.status_code in (401, 403)
    assert "error" in response.json()


def test_invalid_token_is_401(monkeypatch):
    monkeypatch.setattr(auth_service, "verify_token", lambda token: None, raising=True)
    client = TestClient(app)
    response = client.get("/api/leagues/1/calendar", headers={"Authorization": "Bearer nope"})
    assert response.status_code == 401
    assert response.json() == {"error": "Invalid authentication token"}


def test_player_cannot_generate_calendar(monkeypatch):
    client, headers = make_client_with_auth(monkeypatch, role="player")
    response = client.post(
        "/api/leagues/1/generate-calendar", json={"start_date": "2024-01-01"}, headers=headers
    )
    assert response.status_code == 403
    assert response.json() == {"error": "Admin access required"}


# ============================================================================
# Calendar endpoints
# ============================================================================

class TestCalendarEndpoints:
    """Tests for calendar generation, listing and editing."""

    @patch("padel_backend.services.calendar_service.generate_calendar", new_callable=AsyncMock)
    def test_generate_calendar(self, mock_generate, monkeypatch):
        mock_generate.return_value = {
            "league_id": 1,
            "matches": [MATCH],
            "byes": [],
            "total_weeks": 1,
            "total_matches": 1,
            "start_date": "2024-01-01",
            "end_date": "2024-01-08",
        }
        client, headers = make_client_with_auth(monkeypatch)

        response = client.post(
            "/api/leagues/1/generate-calendar", json={"start_date": "2024-01-01"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["total_matches"] == 1
        args = mock_generate.call_args.args
        assert args[1:] == (1, "2024-01-01")

    @pytest.mark.parametrize(
        "error,status",
        [
            (ValidationError("Insufficient teams: at least 2 teams are required to generate a calendar (got 1)"), 400),
            (NotFoundError("League 1 not found"), 404),
            (ConflictError("League 1 already has a calendar (6 matches); clear it before regenerating"), 409),
        ],
    )
    def test_generate_calendar_domain_errors(self, monkeypatch, error, status):
        client, headers = make_client_with_auth(monkeypatch)
        with patch(
            "padel_backend.services.calendar_service.generate_calendar",
            new_callable=AsyncMock,
            side_effect=error,
        ):
            response = client.post(
                "/api/leagues/1/generate-calendar", json={"start_date": "2024-01-01"}, headers=headers
            )
        assert response.status_code == status
        assert response.json() == {"error": error.message}

    def test_generate_calendar_database_failure_is_500(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)
        with patch(
            "padel_backend.services.calendar_service.generate_calendar",
            new_callable=AsyncMock,
            side_effect=RuntimeError("connection lost"),
        ):
            response = client.post(
                "/api/leagues/1/generate-calendar", json={"start_date": "2024-01-01"}, headers=headers
            )
        assert response.status_code == 500
        assert response.json() == {"error": "Error generating calendar"}

    def test_generate_calendar_missing_body_is_400(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)
        response = client.post("/api/leagues/1/generate-calendar", json={}, headers=headers)
        assert response.status_code == 400
        assert "start_date" in response.json()["error"]

    @patch("padel_backend.services.calendar_service.get_calendar", new_callable=AsyncMock)
    def test_get_calendar_as_player(self, mock_get, monkeypatch):
        mock_get.return_value = {
            "league_id": 1,
            "matches": [MATCH],
            "needs_assignment": [],
            "byes": [{"week_number": 1, "team_id": 3, "team_name": "Chiquita"}],
            "total_weeks": 1,
            "total_matches": 1,
        }
        client, headers = make_client_with_auth(monkeypatch, role="player")

        response = client.get("/api/leagues/1/calendar", headers=headers)

        assert response.status_code == 200
        data = response.json()
        assert data["matches"][0]["week_number"] == 1
        assert data["byes"][0]["team_name"] == "Chiquita"

    @patch("padel_backend.services.calendar_service.clear_calendar", new_callable=AsyncMock)
    def test_clear_calendar(self, mock_clear, monkeypatch):
        mock_clear.return_value = {"success": True, "league_id": 1, "deleted": 6}
        client, headers = make_client_with_auth(monkeypatch)

        response = client.delete("/api/leagues/1/calendar", headers=headers)

        assert response.status_code == 200
        assert response.json()["deleted"] == 6

    @patch("padel_backend.services.calendar_service.update_match_date", new_callable=AsyncMock)
    def test_update_match_date(self, mock_update, monkeypatch):
        mock_update.return_value = {**MATCH, "match_date": "2024-01-03", "match_time": "18:30:00"}
        client, headers = make_client_with_auth(monkeypatch)

        response = client.put(
            "/api/leagues/1/matches/11/date",
            json={"match_date": "2024-01-03", "match_time": "18:30"},
            headers=headers,
        )

        assert response.status_code == 200
        assert response.json()["match_date"] == "2024-01-03"
        assert mock_update.call_args.args[1:] == (1, 11, "2024-01-03", "18:30")

    def test_update_match_date_malformed_is_400(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)
        with patch(
            "padel_backend.services.calendar_service.update_match_date",
            new_callable=AsyncMock,
            side_effect=ValidationError("Invalid match_date 'not-a-date': expected YYYY-MM-DD"),
        ):
            response = client.put(
                "/api/leagues/1/matches/11/date",
                json={"match_date": "not-a-date", "match_time": "10:00"},
                headers=headers,
            )
        assert response.status_code == 400
        assert response.json() == {"error": "Invalid match_date 'not-a-date': expected YYYY-MM-DD"}

    def test_record_tied_result_is_400(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)
        response = client.put(
            "/api/leagues/1/matches/11/result",
            json={"home_score": 6, "away_score": 6},
            headers=headers,
        )
        assert response.status_code == 400
        assert "tie" in response.json()["error"]

    @patch("padel_backend.services.calendar_service.get_classification", new_callable=AsyncMock)
    def test_get_classifications(self, mock_classification, monkeypatch):
        mock_classification.return_value = [
            {
                "position": 1, "team_id": 1, "team_name": "Aces", "played": 1, "won": 1, "lost": 0,
                "points_for": 6, "points_against": 2, "point_difference": 4, "points": 2,
            },
            {
                "position": 2, "team_id": 2, "team_name": "Bandeja", "played": 1, "won": 0, "lost": 1,
                "points_for": 2, "points_against": 6, "point_difference": -4, "points": 0,
            },
        ]
        client, headers = make_client_with_auth(monkeypatch, role="player")

        response = client.get("/api/leagues/1/classifications", headers=headers)

        assert response.status_code == 200
        assert [row["team_name"] for row in response.json()] == ["Aces", "Bandeja"]


# ============================================================================
# League and team endpoints
# ============================================================================

class TestLeagueEndpoints:
    """Tests for league management endpoints."""

    @patch("padel_backend.services.data_service.create_league", new_callable=AsyncMock)
    def test_create_league(self, mock_create, monkeypatch):
        mock_create.return_value = {
            "id": 1, "name": "Winter", "start_date": None, "end_date": None,
            "level": "3", "gender": "mixed", "created_by": 1, "team_count": 0,
        }
        client, headers = make_client_with_auth(monkeypatch)

        response = client.post(
            "/api/leagues", json={"name": "Winter", "level": "3", "gender": "mixed"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["name"] == "Winter"
        assert mock_create.call_args.kwargs["creator_user_id"] == 1

    def test_create_league_invalid_level_is_400(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)
        response = client.post(
            "/api/leagues", json={"name": "Winter", "level": "7", "gender": "mixed"}, headers=headers
        )
        assert response.status_code == 400
        assert "level" in response.json()["error"]

    def test_add_team_mismatch_is_400(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch)
        with patch(
            "padel_backend.services.data_service.add_team_to_league",
            new_callable=AsyncMock,
            side_effect=ValidationError("Team level 3 does not match league level 2"),
        ):
            response = client.post("/api/leagues/1/teams", json={"team_id": 5}, headers=headers)
        assert response.status_code == 400
        assert response.json() == {"error": "Team level 3 does not match league level 2"}


class TestTeamEndpoints:
    """Tests for team endpoints."""

    @patch("padel_backend.services.team_service.join_team", new_callable=AsyncMock)
    def test_join_team(self, mock_join, monkeypatch):
        mock_join.return_value = {"id": 3, "name": "Lobos", "passcode": "ABC123", "members": [], "member_count": 2}
        client, headers = make_client_with_auth(monkeypatch, role="player")

        response = client.post("/api/teams/join", json={"passcode": "abc123"}, headers=headers)

        assert response.status_code == 200
        assert response.json()["name"] == "Lobos"
        assert mock_join.call_args.args[1] == "abc123"

    def test_join_team_bad_passcode_is_404(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="player")
        with patch(
            "padel_backend.services.team_service.join_team",
            new_callable=AsyncMock,
            side_effect=NotFoundError("Invalid passcode"),
        ):
            response = client.post("/api/teams/join", json={"passcode": "ZZZZZZ"}, headers=headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Invalid passcode"}

    @patch("padel_backend.services.team_service.remove_team_member", new_callable=AsyncMock)
    def test_leave_team_uses_current_user(self, mock_remove, monkeypatch):
        mock_remove.return_value = {"success": True, "team_id": 3, "user_id": 8}
        client, headers = make_client_with_auth(monkeypatch, role="player", user_id=8)

        response = client.delete("/api/teams/3/members/me", headers=headers)

        assert response.status_code == 200
        assert mock_remove.call_args.args[1:] == (3, 8)


class TestUserEndpoints:
    """Tests for profile endpoints."""

    def test_get_me(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="player", user_id=4)
        response = client.get("/api/me", headers=headers)
        assert response.status_code == 200
        assert response.json()["id"] == 4

    @patch("padel_backend.services.user_service.validate_player_level", new_callable=AsyncMock)
    def test_validate_level_requires_admin(self, mock_validate, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="player")
        response = client.put(
            "/api/admin/players/2/level-validation", json={"status": "approved"}, headers=headers
        )
        assert response.status_code == 403
        mock_validate.assert_not_called()

    @patch("padel_backend.services.user_service.get_or_create_user", new_callable=AsyncMock)
    def test_email_token_provisions_account(self, mock_provision, monkeypatch):
        mock_provision.return_value = {
            "id": 21,
            "email": "new@example.com",
            "first_name": "Nora",
            "last_name": "Vidal",
            "role": "player",
            "level_validation_status": "none",
        }
        monkeypatch.setattr(
            auth_service,
            "verify_token",
            lambda token: {"email": "new@example.com", "given_name": "Nora", "family_name": "Vidal"},
            raising=True,
        )
        client = TestClient(app)

        response = client.get("/api/me", headers={"Authorization": "Bearer idp-token"})

        assert response.status_code == 200
        assert response.json()["id"] == 21
        assert mock_provision.call_args.args[1] == "new@example.com"
        assert mock_provision.call_args.kwargs == {"first_name": "Nora", "last_name": "Vidal"}

    def test_token_without_identity_is_401(self, monkeypatch):
        monkeypatch.setattr(auth_service, "verify_token", lambda token: {"sub": "12345"}, raising=True)
        client = TestClient(app)
        response = client.get("/api/me", headers={"Authorization": "Bearer idp-token"})
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid token payload"}

    @patch("padel_backend.services.user_service.search_players", new_callable=AsyncMock)
    def test_search_players_excludes_caller(self, mock_search, monkeypatch):
        mock_search.return_value = [{"id": 5, "first_name": "Luz", "last_name": None, "gender": "female"}]
        client, headers = make_client_with_auth(monkeypatch, role="player", user_id=8)

        response = client.get("/api/players/search?level=3&gender=mixed", headers=headers)

        assert response.status_code == 200
        assert response.json()[0]["id"] == 5
        assert mock_search.call_args.args[1] == 8
        assert mock_search.call_args.kwargs == {"level": "3", "gender": "mixed", "league_id": None}

    @patch("padel_backend.services.team_service.list_player_teams", new_callable=AsyncMock)
    def test_player_teams_for_admin(self, mock_list, monkeypatch):
        mock_list.return_value = [{"id": 3, "name": "Lobos", "league": None, "paid": False}]
        client, headers = make_client_with_auth(monkeypatch, role="admin")

        response = client.get("/api/admin/players/8/teams", headers=headers)

        assert response.status_code == 200
        assert response.json()[0]["paid"] is False
        assert mock_list.call_args.args[1] == 8

    def test_player_teams_unknown_user_is_404(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="admin")
        with patch(
            "padel_backend.services.team_service.list_player_teams",
            new_callable=AsyncMock,
            side_effect=NotFoundError("User 99 not found"),
        ):
            response = client.get("/api/admin/players/99/teams", headers=headers)
        assert response.status_code == 404
        assert response.json() == {"error": "User 99 not found"}


class TestTeamAdministration:
    """Tests for team edit, delete, availability and admin listing endpoints."""

    @patch("padel_backend.services.team_service.update_team", new_callable=AsyncMock)
    def test_update_team(self, mock_update, monkeypatch):
        mock_update.return_value = {"id": 3, "name": "Lobos II", "level": "4"}
        client, headers = make_client_with_auth(monkeypatch, role="admin")

        response = client.put("/api/teams/3", json={"name": "Lobos II", "level": "4"}, headers=headers)

        assert response.status_code == 200
        assert response.json()["name"] == "Lobos II"
        assert mock_update.call_args.args[1] == 3
        assert mock_update.call_args.kwargs == {"name": "Lobos II", "level": "4"}

    def test_update_team_duplicate_name_is_409(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="admin")
        with patch(
            "padel_backend.services.team_service.update_team",
            new_callable=AsyncMock,
            side_effect=ConflictError("A team named 'Toros' already exists"),
        ):
            response = client.put("/api/teams/3", json={"name": "Toros"}, headers=headers)
        assert response.status_code == 409
        assert response.json() == {"error": "A team named 'Toros' already exists"}

    @patch("padel_backend.services.team_service.delete_team", new_callable=AsyncMock)
    def test_player_cannot_delete_team(self, mock_delete, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="player")
        response = client.delete("/api/teams/3", headers=headers)
        assert response.status_code == 403
        mock_delete.assert_not_called()

    def test_delete_team_with_fixtures_is_409(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="admin")
        with patch(
            "padel_backend.services.team_service.delete_team",
            new_callable=AsyncMock,
            side_effect=ConflictError("Team has matches in a league calendar; clear the calendar first"),
        ):
            response = client.delete("/api/teams/3", headers=headers)
        assert response.status_code == 409

    @patch("padel_backend.services.team_service.set_team_availability", new_callable=AsyncMock)
    def test_set_availability(self, mock_set, monkeypatch):
        mock_set.return_value = {"team_id": 3, "availability": []}
        client, headers = make_client_with_auth(monkeypatch, role="player", user_id=8)
        body = {"availability": [{"day_of_week": "friday", "is_available": True, "start_time": "18:00", "end_time": "20:00"}]}

        response = client.put("/api/teams/3/availability", json=body, headers=headers)

        assert response.status_code == 200
        team_id, entries, user = mock_set.call_args.args[1:]
        assert team_id == 3
        assert entries == [{"day_of_week": "friday", "is_available": True, "start_time": "18:00", "end_time": "20:00"}]
        assert user["id"] == 8

    @patch("padel_backend.services.team_service.set_team_availability", new_callable=AsyncMock)
    def test_set_availability_unknown_day_is_400(self, mock_set, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="player")
        response = client.put(
            "/api/teams/3/availability", json={"availability": [{"day_of_week": "funday"}]}, headers=headers
        )
        assert response.status_code == 400
        assert "error" in response.json()
        mock_set.assert_not_called()

    def test_get_availability_outsider_is_403(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="player")
        with patch(
            "padel_backend.services.team_service.get_team_availability",
            new_callable=AsyncMock,
            side_effect=ForbiddenError("Only team members can view availability"),
        ):
            response = client.get("/api/teams/3/availability", headers=headers)
        assert response.status_code == 403
        assert response.json() == {"error": "Only team members can view availability"}

    @patch("padel_backend.services.team_service.list_teams", new_callable=AsyncMock)
    def test_admin_team_list(self, mock_list, monkeypatch):
        mock_list.return_value = [{"id": 3, "name": "Lobos", "availability": []}]
        client, headers = make_client_with_auth(monkeypatch, role="admin")

        response = client.get("/api/admin/teams?level=3&gender=male", headers=headers)

        assert response.status_code == 200
        assert mock_list.call_args.kwargs == {"level": "3", "gender": "male"}

    def test_admin_team_list_requires_admin(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="player")
        assert client.get("/api/admin/teams", headers=headers).status_code == 403


class TestNotificationEndpoints:
    """Tests for the admin feed of roster changes."""

    @patch("padel_backend.services.notification_service.list_team_change_notifications", new_callable=AsyncMock)
    def test_list_defaults_to_unread(self, mock_list, monkeypatch):
        mock_list.return_value = [{"id": 1, "action": "joined", "read": False}]
        client, headers = make_client_with_auth(monkeypatch, role="admin")

        response = client.get("/api/admin/team-change-notifications", headers=headers)

        assert response.status_code == 200
        assert mock_list.call_args.kwargs == {"filter": "unread"}

    def test_list_bad_filter_is_400(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="admin")
        with patch(
            "padel_backend.services.notification_service.list_team_change_notifications",
            new_callable=AsyncMock,
            side_effect=ValidationError("Invalid filter 'archived': must be one of unread, read, all"),
        ):
            response = client.get("/api/admin/team-change-notifications?filter=archived", headers=headers)
        assert response.status_code == 400

    @patch("padel_backend.services.notification_service.mark_as_read", new_callable=AsyncMock)
    def test_mark_read(self, mock_mark, monkeypatch):
        mock_mark.return_value = {"id": 4, "read": True, "read_at": "2024-01-01T10:00:00+00:00"}
        client, headers = make_client_with_auth(monkeypatch, role="admin")

        response = client.post("/api/admin/team-change-notifications/4/read", headers=headers)

        assert response.status_code == 200
        assert response.json()["read"] is True
        assert mock_mark.call_args.args[1] == 4

    def test_mark_read_unknown_is_404(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="admin")
        with patch(
            "padel_backend.services.notification_service.mark_as_read",
            new_callable=AsyncMock,
            side_effect=NotFoundError("Notification 99 not found"),
        ):
            response = client.post("/api/admin/team-change-notifications/99/read", headers=headers)
        assert response.status_code == 404
        assert response.json() == {"error": "Notification 99 not found"}

    def test_feed_requires_admin(self, monkeypatch):
        client, headers = make_client_with_auth(monkeypatch, role="player")
        response = client.get("/api/admin/team-change-notifications", headers=headers)
        assert response.status_code == 403
