"""HTTP client for the task server's JSON API."""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import TypeAdapter, ValidationError

from ...core.config import ServerConfig
from ...core.models import ExecutionProcess, FollowUpRequest, TaskAttempt
from ...core.profiles import ProfileCatalog
from ...errors import TaskServerError
from .base import ProcessFetcher

logger = logging.getLogger(__name__)

_PROCESS_LIST = TypeAdapter(List[ExecutionProcess])


class TaskServerClient(ProcessFetcher):
    """Async task-server client.

    Every response body is an envelope ``{"success": bool, "data": ...,
    "message": str | null}``; a ``success: false`` envelope is treated the
    same as an HTTP error.
    """

    def __init__(self, config: ServerConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config
        headers = {"Accept": "application/json"}
        if config.auth_token:
            headers["Authorization"] = f"Bearer {config.auth_token}"
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            timeout=config.timeout_seconds,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "TaskServerClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, path, **kwargs)
            response.raise_for_status()
            payload = response.json()
        except httpx.TimeoutException as e:
            raise TaskServerError(f"Request to {path} timed out: {e}", endpoint=path) from e
        except httpx.HTTPStatusError as e:
            raise TaskServerError(
                f"Task server returned {e.response.status_code} for {path}",
                status_code=e.response.status_code,
                endpoint=path,
            ) from e
        except httpx.RequestError as e:
            raise TaskServerError(f"Connection error calling {path}: {e}", endpoint=path) from e
        except ValueError as e:
            raise TaskServerError(f"Invalid JSON from {path}: {e}", endpoint=path) from e

        if not isinstance(payload, dict) or not payload.get("success", False):
            message = payload.get("message") if isinstance(payload, dict) else None
            raise TaskServerError(
                message or f"Task server reported failure for {path}",
                status_code=response.status_code,
                endpoint=path,
            )
        return payload.get("data")

    async def list_processes(self, attempt_id: str) -> List[ExecutionProcess]:
        data = await self._request(
            "GET", "/api/execution-processes", params={"task_attempt_id": attempt_id}
        )
        # Server orders by creation, ascending
        return self._parse(_PROCESS_LIST, data or [], "/api/execution-processes")

    async def get_process_details(self, process_id: str) -> ExecutionProcess:
        path = f"/api/execution-processes/{process_id}"
        data = await self._request("GET", path)
        return self._parse(TypeAdapter(ExecutionProcess), data, path)

    async def submit_follow_up(self, attempt_id: str, request: FollowUpRequest) -> None:
        path = f"/api/task-attempts/{attempt_id}/follow-up"
        await self._request("POST", path, json=request.model_dump())
        logger.debug(f"Follow-up submitted for attempt {attempt_id}")

    async def open_editor(self, attempt_id: str, editor_type: Optional[str] = None) -> bool:
        path = f"/api/task-attempts/{attempt_id}/open-editor"
        body: Dict[str, Any] = {"editor_type": editor_type} if editor_type else {}
        await self._request("POST", path, json=body)
        return True

    async def get_attempt(self, attempt_id: str) -> TaskAttempt:
        path = f"/api/task-attempts/{attempt_id}"
        data = await self._request("GET", path)
        return self._parse(TypeAdapter(TaskAttempt), data, path)

    async def get_profiles(self) -> ProfileCatalog:
        path = "/api/profiles"
        data = await self._request("GET", path)
        # Served as {"content": "<profiles json>", "path": "<file on the server>"}
        if isinstance(data, dict) and isinstance(data.get("content"), str):
            try:
                data = json.loads(data["content"])
            except ValueError as e:
                raise TaskServerError(f"Invalid profiles content from {path}: {e}", endpoint=path) from e
        return self._parse(TypeAdapter(ProfileCatalog), data or {}, path)

    @staticmethod
    def _parse(adapter: TypeAdapter, data: Any, path: str):
        try:
            return adapter.validate_python(data)
        except ValidationError as e:
            raise TaskServerError(f"Unexpected payload from {path}: {e}", endpoint=path) from e
