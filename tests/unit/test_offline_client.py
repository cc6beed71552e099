"""
Unit tests for the offline queue and the client's replay behaviour.

The API is replaced with ``httpx.MockTransport`` so every request the client
makes can be inspected.
"""

import asyncio
import json

import httpx
import pytest

from sofia.client import (
    QUEUED_STATUS,
    ApiError,
    AuthenticationRequired,
    NetworkUnavailable,
    OfflineQueue,
    SofiaClient,
)


class FakeApi:
    """Records requests and answers from a per-path status table."""

    def __init__(self):
        self.requests = []
        self.statuses = {}
        self.empty = set()
        self.down = False
        self.hook = None

    def __call__(self, request: httpx.Request) -> httpx.Response:
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)

        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, request.url.path, body))
        if self.hook is not None:
            hook, self.hook = self.hook, None
            hook()

        status = self.statuses.get(request.url.path, 200)
        if status >= 400:
            return httpx.Response(status, json={"error": f"status {status}"})
        if request.url.path in self.empty:
            return httpx.Response(204)
        if request.url.path == "/api/users/auth":
            return httpx.Response(200, json={
                "token": "token-123",
                "user": {"id": "u1", "name": body["name"]},
            })
        return httpx.Response(200, json={"id": "s1", "ok": True})

    @property
    def paths(self):
        return [path for _, path, _ in self.requests]


@pytest.fixture
def api():
    return FakeApi()


@pytest.fixture
async def sofia_client(api, queue_dir):
    client = SofiaClient(
        base_url="http://test/api",
        queue_dir=queue_dir,
        token="token-abc",
        transport=httpx.MockTransport(api),
        reconnect_delay=0,
        auth_sync_delay=0,
    )
    yield client
    await client.aclose()


class TestOfflineQueue:
    def test_enqueue_assigns_id_and_timestamp(self, tmp_path):
        queue = OfflineQueue(tmp_path / "q.json")
        entry = queue.enqueue(endpoint="/goals", method="POST", data={"goal": "walk"})

        assert entry["id"]
        assert entry["timestamp"]
        assert queue.entries() == [entry]
        assert len(queue) == 1

    def test_persists_across_instances(self, tmp_path):
        OfflineQueue(tmp_path / "q.json").enqueue(endpoint="/goals")
        assert len(OfflineQueue(tmp_path / "q.json")) == 1

    def test_remove_by_id(self, tmp_path):
        queue = OfflineQueue(tmp_path / "q.json")
        first = queue.enqueue(n=1)
        second = queue.enqueue(n=2)

        assert queue.remove([first["id"]]) == 1
        assert queue.entries() == [second]

    def test_removing_everything_deletes_file(self, tmp_path):
        queue = OfflineQueue(tmp_path / "q.json")
        entry = queue.enqueue(n=1)

        assert queue.remove([entry["id"]]) == 0
        assert not queue.path.exists()

    def test_corrupt_file_is_set_aside(self, tmp_path):
        path = tmp_path / "q.json"
        path.write_text("{not json")

        queue = OfflineQueue(path)
        assert queue.entries() == []
        assert (tmp_path / "q.json.corrupt").exists()


class TestApiCall:
    async def test_sends_bearer_token(self, sofia_client, api):
        await sofia_client.api_call("/users/profile")
        assert api.requests[0][:2] == ("GET", "/api/users/profile")

    async def test_401_clears_token(self, sofia_client, api):
        api.statuses["/api/users/profile"] = 401

        with pytest.raises(AuthenticationRequired):
            await sofia_client.api_call("/users/profile")
        assert sofia_client.token is None
        assert not sofia_client.is_authenticated()

    async def test_error_status_raises_api_error(self, sofia_client, api):
        api.statuses["/api/goals"] = 400

        with pytest.raises(ApiError) as exc_info:
            await sofia_client.api_call("/goals", "POST", {"goal": ""})
        assert exc_info.value.status_code == 400
        assert exc_info.value.message == "status 400"

    async def test_transport_failure(self, sofia_client, api):
        api.down = True
        with pytest.raises(NetworkUnavailable):
            await sofia_client.api_call("/users/profile")

    async def test_empty_body_returns_none(self, sofia_client, api):
        api.empty.add("/api/goals")
        assert await sofia_client.api_call("/goals", "POST", {"goal": "walk"}) is None


class TestOfflineSupport:
    async def test_offline_mutation_is_queued(self, sofia_client, api):
        sofia_client.online = False

        result = await sofia_client.create_goal({"goal": "walk daily"})

        assert result == {
            "status": QUEUED_STATUS,
            "message": "Request queued for when connection is restored",
            "queueLength": 1,
        }
        assert api.requests == []

    async def test_network_failure_is_queued(self, sofia_client, api):
        api.down = True

        result = await sofia_client.update_about_me({"bestLifeElements": []})

        assert result["status"] == QUEUED_STATUS
        assert sofia_client.get_offline_queue_status() == {"apiRequests": 1, "dataItems": 0, "total": 1}

    async def test_server_error_is_not_queued(self, sofia_client, api):
        api.statuses["/api/goals"] = 500

        with pytest.raises(ApiError):
            await sofia_client.create_goal({"goal": "walk daily"})
        assert len(sofia_client.api_queue) == 0


class TestReplay:
    async def test_replays_in_fifo_order(self, sofia_client, api):
        sofia_client.online = False
        await sofia_client.create_goal({"goal": "one"})
        await sofia_client.create_chapter({"title": "two"})
        await sofia_client.create_goal({"goal": "three"})
        sofia_client.online = True

        result = await sofia_client.process_offline_queue()

        assert result == {"processed": 3, "failed": 0, "dropped": 0}
        assert [body for _, _, body in api.requests] == [
            {"goal": "one"},
            {"title": "two"},
            {"goal": "three"},
        ]
        assert len(sofia_client.api_queue) == 0

    async def test_failed_entries_stay_in_order(self, sofia_client, api):
        sofia_client.online = False
        await sofia_client.create_goal({"goal": "one"})
        await sofia_client.create_chapter({"title": "two"})
        await sofia_client.create_goal({"goal": "three"})
        sofia_client.online = True
        api.statuses["/api/story-chapters"] = 500

        result = await sofia_client.process_offline_queue()

        assert result == {"processed": 2, "failed": 1, "dropped": 0}
        remaining = sofia_client.api_queue.entries()
        assert [e["data"] for e in remaining] == [{"title": "two"}]

    async def test_entries_queued_during_a_pass_survive(self, sofia_client, api):
        sofia_client.online = False
        await sofia_client.create_goal({"goal": "one"})
        await sofia_client.create_chapter({"title": "two"})
        sofia_client.online = True
        api.statuses["/api/story-chapters"] = 500
        api.hook = lambda: sofia_client.api_queue.enqueue(
            endpoint="/goals", method="POST", data={"goal": "late"}
        )

        await sofia_client.process_offline_queue()

        remaining = sofia_client.api_queue.entries()
        assert [e["data"] for e in remaining] == [{"title": "two"}, {"goal": "late"}]

    async def test_empty_answer_counts_as_confirmed(self, sofia_client, api):
        sofia_client.online = False
        await sofia_client.create_chapter({"title": "Childhood"})
        await sofia_client.create_goal({"goal": "walk"})
        sofia_client.online = True
        api.empty.add("/api/goals")

        first = await sofia_client.sync_offline_data()
        second = await sofia_client.sync_offline_data()

        assert first["api"] == {"processed": 2, "failed": 0, "dropped": 0}
        assert second["api"] == {"processed": 0, "failed": 0, "dropped": 0}
        assert api.paths == ["/api/story-chapters", "/api/goals"]

    async def test_interrupted_pass_keeps_confirmed_entries_out(self, sofia_client, api):
        sofia_client.online = False
        await sofia_client.create_goal({"goal": "one"})
        await sofia_client.create_goal({"goal": "two"})
        sofia_client.online = True

        def fail_next():
            def boom():
                raise RuntimeError("server crashed")
            api.hook = boom
        api.hook = fail_next

        with pytest.raises(RuntimeError):
            await sofia_client.process_offline_queue()

        remaining = sofia_client.api_queue.entries()
        assert [e["data"] for e in remaining] == [{"goal": "two"}]

    async def test_auth_failure_drops_entry(self, sofia_client, api):
        sofia_client.online = False
        await sofia_client.create_goal({"goal": "one"})
        sofia_client.online = True
        api.statuses["/api/goals"] = 401

        result = await sofia_client.process_offline_queue()

        assert result["dropped"] == 1
        assert len(sofia_client.api_queue) == 0

    async def test_queued_auth_calls_are_skipped(self, sofia_client, api):
        sofia_client.api_queue.enqueue(endpoint="/users/auth", method="POST", data={"name": "Alice"})
        sofia_client.api_queue.enqueue(endpoint="/goals", method="POST", data={"goal": "one"})

        await sofia_client.process_offline_queue()

        assert api.paths == ["/api/goals"]
        assert len(sofia_client.api_queue) == 0

    async def test_sync_is_not_reentrant(self, sofia_client):
        async with sofia_client._sync_lock:
            assert await sofia_client.sync_offline_data() is None

    async def test_reconnect_triggers_sync(self, sofia_client, api):
        sofia_client.set_online(False)
        await sofia_client.create_goal({"goal": "one"})

        sofia_client.set_online(True)
        await asyncio.gather(*sofia_client._tasks)

        assert api.paths == ["/api/goals"]
        assert len(sofia_client.api_queue) == 0

    async def test_authenticate_triggers_sync(self, sofia_client, api):
        sofia_client.online = False
        await sofia_client.create_goal({"goal": "one"})
        sofia_client.online = True

        response = await sofia_client.authenticate("Alice", 72)
        await asyncio.gather(*sofia_client._tasks)

        assert response["token"] == "token-123"
        assert sofia_client.token == "token-123"
        assert api.paths == ["/api/users/auth", "/api/goals"]


class TestDataQueue:
    async def test_failed_save_is_queued_and_replayed(self, sofia_client, api):
        api.down = True
        result = await sofia_client.save("goal", {"goal": "walk"})
        assert result["status"] == QUEUED_STATUS
        assert len(sofia_client.data_queue) == 1

        api.down = False
        sync = await sofia_client.sync_offline_data()

        assert sync["data"] == {"processed": 1, "failed": 0, "dropped": 0}
        assert api.requests == [("POST", "/api/goals", {"goal": "walk"})]
        assert len(sofia_client.data_queue) == 0

    @pytest.mark.parametrize("status,error", [
        (401, AuthenticationRequired),
        (400, ApiError),
        (500, ApiError),
    ])
    async def test_error_answers_are_not_queued(self, sofia_client, api, status, error):
        api.statuses["/api/goals"] = status

        with pytest.raises(error):
            await sofia_client.save("goal", {"goal": "walk"})
        assert len(sofia_client.data_queue) == 0

    async def test_offline_save_is_queued_unsent(self, sofia_client, api):
        sofia_client.online = False

        result = await sofia_client.save("chapter", {"title": "Childhood"})

        assert result["status"] == QUEUED_STATUS
        assert result["queueLength"] == 1
        assert api.requests == []

    async def test_feedback_payload_mapping(self, sofia_client, api):
        sofia_client.current_session_id = "s1"
        await sofia_client.save("feedback", {"text": "too fast", "context": {"turn": 3}})

        assert api.requests[0][2] == {
            "sessionId": "s1",
            "feedbackText": "too fast",
            "conversationContext": {"turn": 3},
        }


class TestSessions:
    async def test_create_session_tracks_id(self, sofia_client):
        session = await sofia_client.create_session()
        assert sofia_client.current_session_id == session["id"]

    async def test_update_without_session_is_noop(self, sofia_client, api):
        assert await sofia_client.update_session(10, ["sleep"], []) is None
        assert api.requests == []
