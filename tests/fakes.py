import asyncio
import json
from typing import Any, Callable

PROFILE_TEXT = "Senior backend engineer, 10 years, built distributed caching layer"


def stage_responses(
    *,
    vigor: Any = 80,
    immunity: Any = 70,
    depth: Any = 90,
    width: Any = 60,
    variance: Any = 55,
    experience: Any = 65,
) -> list[str]:
    return [
        json.dumps({"structured_profile": "Backend engineer focused on distributed caching.", "vigor_score": vigor}),
        json.dumps({"research_insights": "- Routine CRUD work is exposed.\n- Cache design is not.", "immunity_score": immunity}),
        json.dumps(
            {
                "domain_depth": depth,
                "knowledge_width": width,
                "domain_variance": variance,
                "experience_context": experience,
            }
        ),
        json.dumps(
            {
                "cyber_roadmap": ["Own the consistency model.", "Lead capacity planning."],
                "level_up_quests": [
                    "Implement Raft-backed cache invalidation.",
                    "Design a multi-region write path.",
                    "Profile and tune a kernel-bypass network stack.",
                ],
            }
        ),
    ]


class ScriptedModelClient:
    """Returns canned provider text per call and records every prompt it saw."""

    def __init__(
        self,
        responses: list[Any],
        model: str = "gemini-2.5-flash",
        on_call: Callable[[int], None] | None = None,
    ):
        self.model = model
        self._responses = list(responses)
        self._on_call = on_call
        self.calls: list[tuple[str, str, float]] = []

    async def generate(self, system_prompt: str, user_prompt: str, temperature: float = 0.0) -> str:
        self.calls.append((system_prompt, user_prompt, temperature))
        if not self._responses:
            raise AssertionError("ScriptedModelClient ran out of responses")
        item = self._responses.pop(0)
        if self._on_call is not None:
            self._on_call(len(self.calls))
        if isinstance(item, BaseException):
            raise item
        return item


class HangingModelClient:
    def __init__(self, model: str = "gemini-2.5-flash"):
        self.model = model
        self.calls = 0
        self.cancelled = False

    async def generate(self, system_prompt: str, user_prompt: str, temperature: float = 0.0) -> str:
        self.calls += 1
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return "{}"


class ClientFactorySpy:
    def __init__(self, make_client: Callable[[str], Any]):
        self._make_client = make_client
        self.models: list[str] = []
        self.clients: list[Any] = []

    def __call__(self, model: str):
        self.models.append(model)
        client = self._make_client(model)
        self.clients.append(client)
        return client
