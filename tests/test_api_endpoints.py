"""
API endpoint tests for Sofia.
Run with: pytest tests/test_api_endpoints.py -v
"""

from uuid import uuid4

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from conftest import audit_entries, promote_to_admin, sign_in
from sofia.database import ConversationSession, User, async_session_maker
from sofia.dependencies import get_audit_repository
from sofia.server import app


class TestHealth:
    """Health check endpoint tests."""

    async def test_health_check(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    async def test_health_under_api_prefix(self, client):
        response = await client.get("/api/health")
        assert response.status_code == 200


class TestAuth:
    """Name-based authentication."""

    async def test_first_auth_creates_user(self, client):
        response = await client.post("/api/users/auth", json={"name": "Alice", "age": 72})

        assert response.status_code == 200
        data = response.json()
        assert data["token"]
        assert data["user"]["name"] == "Alice"
        assert data["user"]["age"] == 72
        assert data["user"]["role"] == "user"

    async def test_second_auth_reuses_user(self, client):
        first = await client.post("/api/users/auth", json={"name": "Alice", "age": 72})
        second = await client.post("/api/users/auth", json={"name": "Alice"})

        assert first.json()["user"]["id"] == second.json()["user"]["id"]
        async with async_session_maker() as session:
            count = await session.scalar(
                select(func.count()).select_from(User).where(User.name == "Alice")
            )
        assert count == 1

    async def test_auth_is_audited(self, client):
        alice = await sign_in(client, "Alice")
        await sign_in(client, "Alice")

        created = await audit_entries("USER_CREATED")
        logins = await audit_entries("USER_LOGIN")
        assert len(created) == 1
        assert len(logins) == 1
        assert str(created[0].user_id) == alice.user_id

    async def test_missing_name_is_400(self, client):
        response = await client.post("/api/users/auth", json={})

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    async def test_missing_token_is_401(self, client):
        response = await client.get("/api/users/profile")

        assert response.status_code == 401
        assert response.json()["error"] == "Access token required"

    async def test_invalid_token_is_401(self, client):
        response = await client.get(
            "/api/users/profile", headers={"Authorization": "Bearer not-a-token"}
        )

        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired token"


class TestProfile:
    """Profile and About Me endpoints."""

    async def test_new_user_profile(self, auth_client):
        response = await auth_client.get("/api/users/profile")

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["name"] == "Alice"
        assert data["aboutMe"]["profile_completeness"] == 0
        assert data["goals"] == []
        assert data["storyChapters"] == []

    async def test_update_about_me(self, auth_client):
        response = await auth_client.put("/api/users/about-me", json={
            "bestLifeElements": [{"element": "Family", "description": "Sunday dinners"}],
            "concerns": [],
            "confidenceLevel": 7,
        })

        assert response.status_code == 200
        data = response.json()
        assert data["profile_completeness"] == 60
        assert data["confidence_level"] == 7
        assert data["best_life_elements"][0]["element"] == "Family"

    async def test_about_me_changes_are_tracked(self, auth_client):
        await auth_client.put("/api/users/about-me", json={
            "bestLifeElements": [{"element": "Family"}],
            "concerns": [],
            "confidenceLevel": 7,
        })

        response = await auth_client.get(f"/api/profile-history/{auth_client.user_id}")
        assert response.status_code == 200
        history = response.json()

        # concerns did not change
        assert sorted(h["variable_name"] for h in history) == ["bestLifeElements", "confidenceLevel"]
        assert all(h["source"] == "manual" for h in history)
        assert all(h["source_details"]["action"] == "about_me_update" for h in history)

    async def test_history_filter_by_variable(self, auth_client):
        await auth_client.put("/api/users/about-me", json={
            "bestLifeElements": [{"element": "Family"}],
            "confidenceLevel": 7,
        })

        response = await auth_client.get(
            f"/api/profile-history/{auth_client.user_id}",
            params={"variableName": "confidenceLevel"},
        )
        history = response.json()
        assert len(history) == 1
        assert history[0]["variable_value"] == 7
        assert history[0]["previous_value"] is None

    async def test_confidence_out_of_range(self, auth_client):
        response = await auth_client.put("/api/users/about-me", json={"confidenceLevel": 11})
        assert response.status_code == 400

    async def test_other_users_history_forbidden(self, client, auth_client):
        bob = await sign_in(client, "Bob")

        response = await bob.get(f"/api/profile-history/{auth_client.user_id}")
        assert response.status_code == 403


class TestSessions:
    """Conversation sessions."""

    async def test_create_session_counts(self, auth_client):
        response = await auth_client.post("/api/sessions")
        assert response.status_code == 201

        profile = await auth_client.get("/api/users/profile")
        assert profile.json()["user"]["total_sessions"] == 1

    async def test_transcript_encrypted_at_rest(self, auth_client):
        created = await auth_client.post("/api/sessions")
        session_id = created.json()["id"]
        log = [{"speaker": "user", "text": "I miss my garden"}]

        response = await auth_client.put(f"/api/sessions/{session_id}", json={
            "duration_minutes": 12,
            "main_topics": ["garden"],
            "conversation_log": log,
        })

        assert response.status_code == 200
        assert response.json()["conversation_log"] == log

        async with async_session_maker() as session:
            stored = await session.scalar(
                select(ConversationSession.conversation_log)
            )
        assert "garden" not in stored

    async def test_update_unknown_session(self, auth_client):
        response = await auth_client.put(f"/api/sessions/{uuid4()}", json={"duration_minutes": 1})
        assert response.status_code == 404


class TestItems:
    """User-owned list items."""

    async def test_create_goal(self, auth_client):
        response = await auth_client.post("/api/goals", json={
            "goal": "Walk daily",
            "confidence": 6,
            "userNote": "after breakfast",
        })

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "active"
        assert data["user_note"] == "after breakfast"
        assert data["last_edited"] is not None

    async def test_items_show_in_profile(self, auth_client):
        await auth_client.post("/api/concerns", json={"concern": "Memory"})
        await auth_client.post("/api/values", json={"value": "Independence"})
        await auth_client.post("/api/education-topics", json={"topic": "Sleep"})
        await auth_client.post("/api/story-chapters", json={"title": "Moving house", "moodArc": "up"})

        data = (await auth_client.get("/api/users/profile")).json()
        assert [c["concern"] for c in data["concerns"]] == ["Memory"]
        assert [v["value"] for v in data["values"]] == ["Independence"]
        assert [t["topic"] for t in data["educationTopics"]] == ["Sleep"]
        assert data["storyChapters"][0]["title"] == "Moving house"

    async def test_empty_goal_rejected(self, auth_client):
        response = await auth_client.post("/api/goals", json={"goal": ""})
        assert response.status_code == 400

    async def test_feedback_review_queue_is_admin_only(self, client, auth_client, admin_client):
        await auth_client.post("/api/feedback", json={"feedbackText": "Too many questions"})

        assert (await auth_client.get("/api/feedback/unreviewed")).status_code == 403

        response = await admin_client.get("/api/feedback/unreviewed")
        assert response.status_code == 200
        assert [f["feedback_text"] for f in response.json()] == ["Too many questions"]


class TestSafety:
    """Safety events and clinical alerts."""

    async def test_low_severity_has_no_alert(self, auth_client, admin_client):
        response = await auth_client.post("/api/safety-events", json={
            "triggerType": "sadness",
            "severity": "low",
        })

        assert response.status_code == 201
        assert response.json()["clinician_notified"] is False
        assert (await admin_client.get("/api/admin/clinical-alerts/pending")).json() == []

    async def test_high_severity_raises_alert(self, auth_client, admin_client):
        response = await auth_client.post("/api/safety-events", json={
            "triggerType": "crisis_keywords",
            "severity": "high",
            "keywords": ["hopeless"],
            "context": "I feel hopeless",
        })
        assert response.json()["clinician_notified"] is True

        alerts = (await admin_client.get("/api/admin/clinical-alerts/pending")).json()
        assert len(alerts) == 1
        assert alerts[0]["priority"] == 3
        assert alerts[0]["severity"] == "high"
        assert alerts[0]["user_name"] == "Alice"
        assert alerts[0]["context"] == "I feel hopeless"
        assert alerts[0]["message"] == "User requires immediate clinical attention. Context: I feel hopeless"

    async def test_pending_alerts_by_priority(self, auth_client, admin_client):
        for severity in ("high", "critical", "high"):
            await auth_client.post("/api/safety-events", json={
                "triggerType": "crisis_keywords",
                "severity": severity,
            })

        alerts = (await admin_client.get("/api/admin/clinical-alerts/pending")).json()
        assert [a["priority"] for a in alerts] == [4, 3, 3]

    async def test_unknown_severity_rejected(self, auth_client):
        response = await auth_client.post("/api/safety-events", json={
            "triggerType": "x",
            "severity": "extreme",
        })
        assert response.status_code == 400

    async def test_acknowledge_alert(self, auth_client, admin_client):
        await auth_client.post("/api/safety-events", json={
            "triggerType": "crisis_keywords",
            "severity": "critical",
        })
        alert_id = (await admin_client.get("/api/admin/clinical-alerts/pending")).json()[0]["id"]

        response = await admin_client.put(f"/api/admin/clinical-alerts/{alert_id}/acknowledge")
        assert response.status_code == 200
        assert response.json()["acknowledged"] is True
        assert response.json()["acknowledged_at"] is not None

        assert (await admin_client.get("/api/admin/clinical-alerts/pending")).json() == []

    async def test_acknowledge_unknown_alert(self, admin_client):
        response = await admin_client.put(f"/api/admin/clinical-alerts/{uuid4()}/acknowledge")
        assert response.status_code == 404


class TestAdmin:
    """Admin-only endpoints."""

    async def test_non_admin_forbidden(self, auth_client):
        response = await auth_client.get("/api/admin/clinical-alerts/pending")

        assert response.status_code == 403
        assert response.json()["error"] == "Admin access required"

    async def test_audit_trail(self, auth_client, admin_client):
        await auth_client.get("/api/users/profile")

        response = await admin_client.get(f"/api/admin/audit-trail/{auth_client.user_id}")
        assert response.status_code == 200
        trail = response.json()

        assert [e["action"] for e in trail] == ["PROFILE_VIEWED", "USER_CREATED"]
        assert all(e["user_name"] == "Alice" for e in trail)

    async def test_audit_trail_date_bounds(self, auth_client, admin_client):
        response = await admin_client.get(
            f"/api/admin/audit-trail/{auth_client.user_id}",
            params={"startDate": "2000-01-01T00:00:00", "endDate": "2000-12-31T00:00:00"},
        )
        assert response.json() == []

    async def test_database_failure_is_500(self, auth_client, admin_client):
        def broken_repository():
            raise SQLAlchemyError("connection lost")

        app.dependency_overrides[get_audit_repository] = broken_repository
        response = await admin_client.get(f"/api/admin/audit-trail/{auth_client.user_id}")

        assert response.status_code == 500
        assert response.json()["error"] == "Database error"
        assert response.json()["detail"] == "connection lost"

    async def test_admin_promotion_takes_effect(self, client):
        carol = await sign_in(client, "Carol")
        assert (await carol.get("/api/admin/clinical-alerts/pending")).status_code == 403

        await promote_to_admin("Carol")
        assert (await carol.get("/api/admin/clinical-alerts/pending")).status_code == 200


class TestAlignment:
    """Value alignment endpoints."""

    async def _setup_values(self, auth_client):
        await auth_client.put("/api/users/about-me", json={
            "bestLifeElements": [{"element": "Family"}],
            "concerns": [{"concern": "memory loss"}],
            "confidenceLevel": 5,
        })
        await auth_client.post("/api/goals", json={"goal": "walk daily"})

    async def test_unaligned_response(self, auth_client):
        await self._setup_values(auth_client)

        response = await auth_client.post("/api/alignment/score", json={"response": "Nice weather today."})
        assert response.status_code == 200
        data = response.json()

        assert data["score"] == 0
        assert data["alignedElements"] == []
        assert data["misalignments"][0]["type"] == "no_value_alignment"
        assert [r["type"] for r in data["recommendations"]] == [
            "reference_best_life",
            "address_concern",
            "align_with_goal",
        ]

    async def test_aligned_response(self, auth_client):
        await self._setup_values(auth_client)

        response = await auth_client.post("/api/alignment/score", json={
            "response": "Spending time with family can help with memory loss.",
        })
        data = response.json()

        assert data["score"] == 4
        assert data["alignedElements"] == ["Family", "memory loss"]
        assert data["recommendations"] == []

    async def test_enhance(self, auth_client):
        await self._setup_values(auth_client)

        response = await auth_client.post("/api/alignment/enhance", json={"response": "Nice weather today."})
        data = response.json()

        assert data["score"] == 0
        assert data["response"].startswith("Nice weather today.\n\n")
        assert "family is important in your life" in data["response"]

    async def test_enhance_leaves_aligned_response(self, auth_client):
        await self._setup_values(auth_client)
        text = "Family and memory loss both matter here."

        response = await auth_client.post("/api/alignment/enhance", json={"response": text})
        assert response.json()["response"] == text
