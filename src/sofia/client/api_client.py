"""
Python client for the Sofia API with offline support.

Mutating calls made while disconnected, or whose transport fails, are kept
in a durable queue and replayed later: when connectivity comes back, on a
periodic timer, and right after a successful sign in.
"""

import asyncio
import os
from pathlib import Path
from typing import Any, Awaitable, Dict, Optional, Set, Union

import httpx
from loguru import logger

from .offline_queue import OfflineQueue


DEFAULT_API_URL = "http://localhost:3001/api"
AUTH_ENDPOINT = "/users/auth"
QUEUED_STATUS = "queued_offline"

SYNC_INTERVAL = 30.0
RECONNECT_DELAY = 2.0
AUTH_SYNC_DELAY = 1.0
STARTUP_SYNC_DELAY = 5.0


class SofiaClientError(Exception):
    """Base exception for client errors."""


class NetworkUnavailable(SofiaClientError):
    """The request never reached the server."""


class ApiError(SofiaClientError):
    """The server answered with an error status."""

    def __init__(self, status_code: int, message: str):
        self.status_code = status_code
        self.message = message
        super().__init__(f"API error {status_code}: {message}")


class AuthenticationRequired(ApiError):
    """401 from the server. The stored token has been discarded."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(401, message)


class SofiaClient:
    """
    Async API client.

    Args:
        base_url: API root including the ``/api`` prefix
            (default ``$SOFIA_API_URL`` or localhost)
        queue_dir: Where the offline queues are persisted
            (default ``$SOFIA_QUEUE_DIR`` or ``~/.sofia``)
        token: Bearer token from an earlier sign in
        transport: Optional httpx transport (tests use ``httpx.MockTransport``)
        sync_interval: Seconds between periodic replay attempts
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        queue_dir: Optional[Union[str, Path]] = None,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 30.0,
        sync_interval: float = SYNC_INTERVAL,
        reconnect_delay: float = RECONNECT_DELAY,
        auth_sync_delay: float = AUTH_SYNC_DELAY,
    ):
        self.base_url = base_url or os.getenv("SOFIA_API_URL", DEFAULT_API_URL)
        queue_dir = Path(queue_dir or os.getenv("SOFIA_QUEUE_DIR", "~/.sofia")).expanduser()

        self.api_queue = OfflineQueue(queue_dir / "offline_api_queue.json")
        self.data_queue = OfflineQueue(queue_dir / "offline_data_queue.json")

        self.token = token
        self.current_user: Optional[Dict[str, Any]] = None
        self.current_session_id: Optional[str] = None
        self.online = True

        self.sync_interval = sync_interval
        self.reconnect_delay = reconnect_delay
        self.auth_sync_delay = auth_sync_delay

        self._http = httpx.AsyncClient(base_url=self.base_url, timeout=timeout, transport=transport)
        self._sync_lock = asyncio.Lock()
        self._periodic_task: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    async def __aenter__(self) -> "SofiaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        self.stop_periodic_sync()
        for task in list(self._tasks):
            task.cancel()
        await self._http.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    async def api_call(self, endpoint: str, method: str = "GET", data: Any = None) -> Any:
        """
        Send one request.

        Raises:
            NetworkUnavailable: transport failure
            AuthenticationRequired: 401 (the token is cleared)
            ApiError: any other error status

        Returns the decoded JSON body, or None when the body is empty.
        """
        headers = {}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"

        try:
            response = await self._http.request(
                method,
                endpoint,
                json=data if data is not None and method != "GET" else None,
                headers=headers,
            )
        except httpx.TransportError as e:
            raise NetworkUnavailable(f"{method} {endpoint}: {e}") from e

        if response.status_code == 401:
            self.token = None
            raise AuthenticationRequired(_error_message(response))
        if response.is_error:
            raise ApiError(response.status_code, _error_message(response))

        return _response_body(response)

    async def api_call_with_offline_support(
        self, endpoint: str, method: str = "GET", data: Any = None
    ) -> Any:
        """Like :meth:`api_call`, but queue the call instead of failing when offline."""
        if not self.online and method != "GET":
            return self._queue_api_call(endpoint, method, data)

        try:
            return await self.api_call(endpoint, method, data)
        except NetworkUnavailable as e:
            logger.warning(f"Network unavailable, queueing {method} {endpoint}: {e}")
            return self._queue_api_call(endpoint, method, data)

    def _queue_api_call(self, endpoint: str, method: str, data: Any) -> Dict[str, Any]:
        self.api_queue.enqueue(endpoint=endpoint, method=method, data=data)
        logger.info(f"Request queued for offline sync: {method} {endpoint}")
        return {
            "status": QUEUED_STATUS,
            "message": "Request queued for when connection is restored",
            "queueLength": len(self.api_queue),
        }

    # ------------------------------------------------------------------
    # Replay
    # ------------------------------------------------------------------

    async def process_offline_queue(self) -> Dict[str, int]:
        """
        One replay pass over the API-call queue.

        Queued sign-in calls are discarded unsent. Calls rejected for
        authentication are dropped. Anything else that fails stays queued in
        its original position.
        """
        entries = self.api_queue.entries()
        if not entries:
            return {"processed": 0, "failed": 0, "dropped": 0}

        logger.info(f"Processing {len(entries)} offline API requests")
        done = []
        processed = failed = dropped = 0

        # Confirmed entries leave the queue even if the pass is cut short
        try:
            for entry in entries:
                if entry.get("endpoint") == AUTH_ENDPOINT:
                    logger.debug("Skipping queued auth request")
                    done.append(entry["id"])
                    continue
                try:
                    await self.api_call(entry["endpoint"], entry.get("method", "GET"), entry.get("data"))
                    processed += 1
                    done.append(entry["id"])
                except AuthenticationRequired:
                    logger.warning(f"Dropping queued {entry.get('method')} {entry['endpoint']}: not authenticated")
                    dropped += 1
                    done.append(entry["id"])
                except SofiaClientError as e:
                    logger.warning(f"Queued request still failing: {e}")
                    failed += 1
        finally:
            self.api_queue.remove(done)
        result = {"processed": processed, "failed": failed, "dropped": dropped}
        logger.info(f"Offline queue processing complete: {result}")
        return result

    async def process_data_queue(self) -> Dict[str, int]:
        """One replay pass over the data-mutation queue. Same rules as the API queue."""
        entries = self.data_queue.entries()
        if not entries:
            return {"processed": 0, "failed": 0, "dropped": 0}

        logger.info(f"Syncing {len(entries)} offline data items")
        done = []
        processed = failed = dropped = 0

        try:
            for entry in entries:
                try:
                    await self._send_data(entry["type"], entry.get("data"))
                    processed += 1
                    done.append(entry["id"])
                except AuthenticationRequired:
                    dropped += 1
                    done.append(entry["id"])
                except (SofiaClientError, ValueError) as e:
                    logger.warning(f"Failed to sync offline {entry.get('type')}: {e}")
                    failed += 1
        finally:
            remaining = self.data_queue.remove(done)
        if remaining:
            logger.info(f"{remaining} items remain in offline queue")
        return {"processed": processed, "failed": failed, "dropped": dropped}

    async def sync_offline_data(self) -> Optional[Dict[str, Dict[str, int]]]:
        """
        Replay both queues, API calls first.

        Returns None without doing anything when a pass is already running.
        """
        if self._sync_lock.locked():
            logger.debug("Offline sync already in progress")
            return None

        async with self._sync_lock:
            api_result = await self.process_offline_queue()
            data_result = await self.process_data_queue()

        return {"api": api_result, "data": data_result}

    def set_online(self, online: bool) -> None:
        """Connectivity change. Coming back online schedules a sync."""
        was_online = self.online
        self.online = online
        if online and not was_online:
            logger.info("Connection restored - syncing offline data")
            self._schedule(self._sync_after(self.reconnect_delay))

    def start(self, startup_delay: float = STARTUP_SYNC_DELAY) -> None:
        """Kick off an initial sync and the periodic timer. Needs a running loop."""
        if self.online:
            self._schedule(self._sync_after(startup_delay))
        self.start_periodic_sync()

    def start_periodic_sync(self) -> None:
        if self._periodic_task is None or self._periodic_task.done():
            self._periodic_task = asyncio.create_task(self._periodic_sync())

    def stop_periodic_sync(self) -> None:
        if self._periodic_task is not None:
            self._periodic_task.cancel()
            self._periodic_task = None

    async def _periodic_sync(self) -> None:
        while True:
            await asyncio.sleep(self.sync_interval)
            status = self.get_offline_queue_status()
            if self.online and status["total"] > 0:
                logger.info(f"Attempting periodic sync of {status['total']} queued items")
                await self._safe_sync()

    async def _sync_after(self, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._safe_sync()

    async def _safe_sync(self) -> None:
        # Background passes must not kill the timer
        try:
            await self.sync_offline_data()
        except OSError as e:
            logger.error(f"Offline sync failed: {e}")

    def _schedule(self, coro: Awaitable) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ------------------------------------------------------------------
    # Data-mutation queue
    # ------------------------------------------------------------------

    async def save(self, data_type: str, data: Any) -> Any:
        """
        Save one profile item. When the network is unavailable the item joins
        the data queue; error answers from the server are raised.

        ``data_type`` is one of aboutMe, chapter, goal, feedback, safetyEvent.
        """
        try:
            return await self._send_data(data_type, data)
        except NetworkUnavailable as e:
            logger.warning(f"Failed to save {data_type} to API, queued: {e}")
            self.data_queue.enqueue(type=data_type, data=data)
            return {
                "status": QUEUED_STATUS,
                "message": "Data queued for when connection is restored",
                "queueLength": len(self.data_queue),
            }

    async def _send_data(self, data_type: str, data: Any) -> Any:
        if not self.online:
            raise NetworkUnavailable("offline")

        data = data or {}
        if data_type == "aboutMe":
            return await self.api_call("/users/about-me", "PUT", data)
        if data_type == "chapter":
            return await self.api_call("/story-chapters", "POST", data)
        if data_type == "goal":
            return await self.api_call("/goals", "POST", data)
        if data_type == "feedback":
            return await self.api_call("/feedback", "POST", {
                "sessionId": data.get("sessionId", self.current_session_id),
                "feedbackText": data.get("text"),
                "conversationContext": data.get("context"),
            })
        if data_type == "safetyEvent":
            return await self.api_call("/safety-events", "POST", {
                "sessionId": self.current_session_id,
                **data,
            })
        raise ValueError(f"Unknown data type: {data_type}")

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    async def authenticate(self, name: str, age: Optional[int] = None) -> Dict[str, Any]:
        """Sign in by name, then replay anything queued."""
        response = await self.api_call(AUTH_ENDPOINT, "POST", {"name": name, "age": age})
        self.token = response["token"]
        self.current_user = response["user"]

        if self.online:
            self._schedule(self._sync_after(self.auth_sync_delay))
        return response

    def is_authenticated(self) -> bool:
        return bool(self.token)

    def logout(self) -> None:
        self.token = None
        self.current_user = None
        self.current_session_id = None

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    async def get_user_profile(self) -> Dict[str, Any]:
        return await self.api_call("/users/profile")

    async def create_session(self) -> Dict[str, Any]:
        session = await self.api_call_with_offline_support("/sessions", "POST")
        if session.get("status") != QUEUED_STATUS:
            self.current_session_id = session["id"]
        return session

    async def update_session(self, duration: int, topics: list, conversation_log: Any) -> Optional[Dict[str, Any]]:
        if not self.current_session_id:
            return None
        return await self.api_call_with_offline_support(
            f"/sessions/{self.current_session_id}",
            "PUT",
            {
                "duration_minutes": duration,
                "main_topics": topics,
                "conversation_log": conversation_log,
            },
        )

    async def update_about_me(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api_call_with_offline_support("/users/about-me", "PUT", data)

    async def create_chapter(self, chapter: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api_call_with_offline_support("/story-chapters", "POST", chapter)

    async def create_goal(self, goal: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api_call_with_offline_support("/goals", "POST", goal)

    async def submit_feedback(self, feedback_text: str, conversation_context: Any = None) -> Dict[str, Any]:
        return await self.api_call_with_offline_support("/feedback", "POST", {
            "sessionId": self.current_session_id,
            "feedbackText": feedback_text,
            "conversationContext": conversation_context,
        })

    async def create_safety_event(self, event: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api_call_with_offline_support("/safety-events", "POST", {
            "sessionId": self.current_session_id,
            **event,
        })

    async def track_document_upload(self, upload: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api_call_with_offline_support("/document-uploads", "POST", upload)

    async def update_document_upload(self, upload_id: str, applied_count: int) -> Dict[str, Any]:
        return await self.api_call_with_offline_support(
            f"/document-uploads/{upload_id}", "PUT", {"appliedCount": applied_count}
        )

    async def track_profile_change(self, change: Dict[str, Any]) -> Dict[str, Any]:
        return await self.api_call_with_offline_support("/profile-history", "POST", change)

    async def upload_document(
        self,
        content: bytes,
        filename: str,
        content_type: str = "application/octet-stream",
    ) -> Dict[str, Any]:
        """Multipart upload. Never queued: the payload is not persisted offline."""
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}
        try:
            response = await self._http.post(
                "/documents/upload",
                files={"document": (filename, content, content_type)},
                headers=headers,
            )
        except httpx.TransportError as e:
            raise NetworkUnavailable(f"document upload: {e}") from e

        if response.status_code == 401:
            self.token = None
            raise AuthenticationRequired(_error_message(response))
        if response.is_error:
            raise ApiError(response.status_code, _error_message(response))
        return _response_body(response)

    async def get_document_content(self, document_id: str) -> Dict[str, Any]:
        return await self.api_call(f"/documents/content/{document_id}")

    async def get_document_notifications(self, user_id: str) -> list:
        return await self.api_call(f"/documents/notifications/{user_id}")

    async def mark_notification_delivered(self, notification_id: str) -> Dict[str, Any]:
        return await self.api_call(f"/documents/notifications/{notification_id}/delivered", "PUT")

    def get_offline_queue_status(self) -> Dict[str, int]:
        api_requests = len(self.api_queue)
        data_items = len(self.data_queue)
        return {
            "apiRequests": api_requests,
            "dataItems": data_items,
            "total": api_requests + data_items,
        }


def _response_body(response: httpx.Response) -> Any:
    if response.status_code == 204 or not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or body)
    return str(body)
