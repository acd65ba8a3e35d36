"""SIM implementation - hardcoded scenario for exercising the API."""

import asyncio
import random
from typing import Protocol

import httpx

from tracecore.logging_config import get_logger
from tracecore.pipeline import IEventPipeline

logger = get_logger(__name__)


class ISim(Protocol):
    """Generate interaction traffic. Hardcoded scenario."""

    async def start(self) -> None:
        """Start hardcoded scenario."""
        ...

    async def stop(self) -> None:
        """Stop scenario."""
        ...


class Sim:
    """SIM with hardcoded scenario: prompts, AI responses, edits and a revert."""

    def __init__(
        self,
        api_url: str = "http://localhost:8000",
        pipeline: IEventPipeline | None = None,
        delay_range: tuple[float, float] = (1.0, 3.0),
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._api_url = api_url
        self._pipeline = pipeline
        self._delay_range = delay_range
        self._transport = transport
        self._running = False
        self._task: asyncio.Task | None = None
        self._client: httpx.AsyncClient | None = None

    def set_pipeline(self, pipeline: IEventPipeline) -> None:
        """Inject pipeline for SIM lifecycle events."""
        self._pipeline = pipeline

    async def start(self) -> None:
        """Start hardcoded scenario."""
        if self._running:
            return

        self._running = True
        self._client = httpx.AsyncClient(
            base_url=self._api_url, timeout=10.0, transport=self._transport
        )

        # Start background task
        self._task = asyncio.create_task(self._run_scenario())

    async def stop(self) -> None:
        """Stop scenario."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        if self._client:
            await self._client.aclose()
            self._client = None

    async def _run_scenario(self) -> None:
        """Run hardcoded scenario."""
        views = ["chat", "weaver", "editor"]
        drafts = [
            "# Plan\n- collect requirements",
            "# Plan\n- collect requirements\n- draft schema",
            "# Plan\n- collect requirements\n- draft schema\n- review with team",
        ]
        first_version_id = None

        try:
            self._emit("sim_started", {"scenario": "hardcoded", "rounds": len(drafts)})

            for i, draft in enumerate(drafts):
                if not self._running:
                    break

                view = views[i % len(views)]
                await self._post("/api/events", {
                    "event_type": "user_input",
                    "interaction_type": "plan_request",
                    "view": view,
                    "user_input": f"Extend the plan, step {i + 1}",
                })
                await self._post("/api/events", {
                    "event_type": "ai_response",
                    "interaction_type": "plan_generated",
                    "view": view,
                    "ai_output": draft,
                    "latency_ms": random.uniform(200, 1500),
                    "model_used": "sim-model",
                })

                record = await self._post("/api/versions", {
                    "content_type": "development_plan",
                    "content_ref": "sim_plan",
                    "content": draft,
                    "event_type": "ai_response",
                    "summary": f"Plan draft {i + 1}",
                })
                if record and first_version_id is None:
                    first_version_id = record.get("version_id")

                await asyncio.sleep(random.uniform(*self._delay_range))

            if self._running and first_version_id:
                await self._post(f"/api/versions/{first_version_id}/revert", None)

        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.error("SIM scenario error: %s", e)
        finally:
            self._emit("sim_completed", {"scenario": "hardcoded", "rounds": len(drafts)})

    def _emit(self, interaction_type: str, data: dict) -> None:
        if self._pipeline:
            self._pipeline.record_event(
                "system_action",
                interaction_type=interaction_type,
                view="sim",
                custom_data=data,
            )

    async def _post(self, path: str, body: dict | None) -> dict | None:
        """POST to the API; return the JSON body on success."""
        if not self._client:
            return None

        try:
            response = await self._client.post(path, json=body)

            if response.is_success:
                logger.info("SIM: %s -> %s", path, response.status_code)
                return response.json()

            logger.error("SIM: %s failed with status %s", path, response.status_code)

        except httpx.HTTPError as e:
            logger.error("SIM: Failed to call %s: %s", path, e)

        return None
