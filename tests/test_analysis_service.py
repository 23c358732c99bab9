import asyncio
import threading
import unittest
from unittest.mock import patch

import httpx

from app.pipeline import prompts
from app.pipeline.cache import InMemoryCacheStore, cache_key
from app.pipeline.errors import (
    AnalysisCancelledError,
    AnalysisTimeoutError,
    ProviderError,
    SourceUnavailableError,
    StageParseError,
)
from app.pipeline.profile_source import Provenance
from app.services.analysis_service import run_analysis
from fakes import PROFILE_TEXT, ClientFactorySpy, HangingModelClient, ScriptedModelClient, stage_responses


class ThreadRecordingCache(InMemoryCacheStore):
    def __init__(self):
        super().__init__()
        self.threads: list[int] = []

    def get(self, key):
        self.threads.append(threading.get_ident())
        return super().get(key)

    def put(self, key, report):
        self.threads.append(threading.get_ident())
        super().put(key, report)


class RunAnalysisTests(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.cache = InMemoryCacheStore()
        self.factory = ClientFactorySpy(lambda model: ScriptedModelClient(stage_responses(), model=model))

    async def test_end_to_end_report(self):
        result = await run_analysis(PROFILE_TEXT, cache=self.cache, client_factory=self.factory)

        report = result.report
        self.assertFalse(result.cache_hit)
        self.assertIs(result.provenance, Provenance.TRUSTED)
        self.assertEqual(result.model, "gemini-2.5-flash")
        self.assertEqual(result.cache_key, cache_key(PROFILE_TEXT, "gemini-2.5-flash"))
        self.assertEqual(report.final_score, 3.0)
        self.assertEqual(report.score_bundle.total, 420)
        self.assertIn("Routine CRUD", report.insights)
        self.assertEqual(len(report.roadmap), 2)
        self.assertEqual(len(report.quests), 3)
        self.assertEqual(len(self.cache), 1)

    async def test_stage_order_prompts_and_temperatures(self):
        await run_analysis(PROFILE_TEXT, cache=self.cache, client_factory=self.factory)
        calls = self.factory.clients[0].calls

        self.assertEqual(
            [system for system, _user, _temp in calls],
            [
                prompts.EXTRACTOR_SYSTEM_PROMPT,
                prompts.ORACLE_SYSTEM_PROMPT,
                prompts.JUDGE_SYSTEM_PROMPT,
                prompts.MENTOR_SYSTEM_PROMPT,
            ],
        )
        self.assertEqual([temp for _system, _user, temp in calls], [0.0, 0.0, 0.0, 0.2])
        self.assertIn(PROFILE_TEXT, calls[0][1])
        self.assertNotIn(prompts.SCRAPED_PROFILE_PREFIX, calls[0][1])
        self.assertIn("Backend engineer focused on distributed caching.", calls[1][1])
        self.assertIn("Routine CRUD", calls[2][1])
        self.assertIn("3/10", calls[3][1])

    async def test_repeat_request_is_served_from_cache(self):
        first = await run_analysis(PROFILE_TEXT, cache=self.cache, client_factory=self.factory)
        second = await run_analysis(PROFILE_TEXT, cache=self.cache, client_factory=self.factory)

        self.assertTrue(second.cache_hit)
        self.assertEqual(second.report, first.report)
        self.assertEqual(second.report.to_payload(), first.report.to_payload())
        self.assertEqual(len(self.factory.models), 1)

    async def test_model_change_runs_independently(self):
        await run_analysis(PROFILE_TEXT, cache=self.cache, client_factory=self.factory)
        other = await run_analysis(PROFILE_TEXT, "gpt-4o-mini", cache=self.cache, client_factory=self.factory)

        self.assertFalse(other.cache_hit)
        self.assertEqual(self.factory.models, ["gemini-2.5-flash", "gpt-4o-mini"])
        self.assertEqual(len(self.cache), 2)

    async def test_invalid_scores_fall_back_to_defaults(self):
        factory = ClientFactorySpy(
            lambda model: ScriptedModelClient(
                stage_responses(vigor="high", immunity=None, depth="n/a", width=0, variance=250, experience=True),
                model=model,
            )
        )
        result = await run_analysis(PROFILE_TEXT, cache=self.cache, client_factory=factory)
        self.assertEqual(result.report.score_bundle.total, 300)
        self.assertEqual(result.report.final_score, 5.0)

    async def test_cancel_between_stages_stores_nothing(self):
        cancel_event = asyncio.Event()
        client = ScriptedModelClient(
            stage_responses(),
            on_call=lambda count: cancel_event.set() if count == 2 else None,
        )

        with self.assertRaises(AnalysisCancelledError):
            await run_analysis(
                PROFILE_TEXT,
                cache=self.cache,
                client_factory=lambda model: client,
                cancel_event=cancel_event,
            )
        self.assertEqual(len(client.calls), 2)
        self.assertEqual(len(self.cache), 0)

    async def test_cancel_during_provider_call_abandons_it(self):
        cancel_event = asyncio.Event()
        client = HangingModelClient()
        asyncio.get_running_loop().call_later(0.05, cancel_event.set)

        with self.assertRaises(AnalysisCancelledError):
            await run_analysis(
                PROFILE_TEXT,
                cache=self.cache,
                client_factory=lambda model: client,
                cancel_event=cancel_event,
                timeout_s=5,
            )
        self.assertEqual(client.calls, 1)
        self.assertTrue(client.cancelled)
        self.assertEqual(len(self.cache), 0)

    async def test_time_budget_exceeded(self):
        client = HangingModelClient()
        with self.assertRaises(AnalysisTimeoutError) as ctx:
            await run_analysis(
                PROFILE_TEXT,
                cache=self.cache,
                client_factory=lambda model: client,
                timeout_s=0.05,
            )
        self.assertEqual(ctx.exception.code, "timeout")
        self.assertEqual(len(self.cache), 0)

    async def test_stage_parse_failure_stores_nothing(self):
        responses = stage_responses()
        responses[2] = "The judge declined to answer."
        client = ScriptedModelClient(responses)

        with self.assertRaises(StageParseError) as ctx:
            await run_analysis(PROFILE_TEXT, cache=self.cache, client_factory=lambda model: client)
        self.assertEqual(ctx.exception.stage, "judge")
        self.assertEqual(len(client.calls), 3)
        self.assertEqual(len(self.cache), 0)

    async def test_provider_failure_stores_nothing(self):
        client = ScriptedModelClient([ProviderError("upstream 503")])

        with self.assertRaises(ProviderError):
            await run_analysis(PROFILE_TEXT, cache=self.cache, client_factory=lambda model: client)
        self.assertEqual(len(self.cache), 0)

    async def test_unexpected_failure_is_logged_and_reraised(self):
        def broken_factory(model: str):
            raise RuntimeError("disk full")

        with patch("app.services.analysis_service.log_analysis_run") as log_run:
            with self.assertRaises(RuntimeError):
                await run_analysis(PROFILE_TEXT, cache=self.cache, client_factory=broken_factory)

        log_run.assert_called_once()
        self.assertEqual(log_run.call_args.kwargs["status"], "error")
        self.assertEqual(log_run.call_args.kwargs["error_code"], "unexpected")

    async def test_cache_is_accessed_off_the_event_loop_thread(self):
        cache = ThreadRecordingCache()
        await run_analysis(PROFILE_TEXT, cache=cache, client_factory=self.factory)
        await run_analysis(PROFILE_TEXT, cache=cache, client_factory=self.factory)

        loop_thread = threading.get_ident()
        self.assertEqual(len(cache.threads), 3)
        self.assertNotIn(loop_thread, cache.threads)


@patch("app.pipeline.profile_source.host_is_private_or_local", return_value=False)
class ScrapedProfileAnalysisTests(unittest.IsolatedAsyncioTestCase):
    linked_text = "LinkedIn Profile Link: https://www.linkedin.com/in/jane-doe"

    def _transport(self, status_code: int, body: str) -> httpx.MockTransport:
        return httpx.MockTransport(lambda request: httpx.Response(status_code, text=body))

    async def test_scraped_text_is_framed_as_untrusted(self, _host_check):
        body = "<body><p>" + "Principal data engineer for logistics pipelines. " * 6 + "</p></body>"
        cache = InMemoryCacheStore()
        client = ScriptedModelClient(stage_responses())

        result = await run_analysis(
            self.linked_text,
            cache=cache,
            client_factory=lambda model: client,
            transport=self._transport(200, body),
        )

        self.assertIs(result.provenance, Provenance.UNTRUSTED_SCRAPED)
        self.assertTrue(client.calls[0][1].startswith("Analyze this profile carefully: " + prompts.SCRAPED_PROFILE_PREFIX))
        self.assertNotEqual(result.cache_key, cache_key(self.linked_text, result.model))

    async def test_malformed_link_is_reported_as_unavailable(self, _host_check):
        factory = ClientFactorySpy(lambda model: ScriptedModelClient(stage_responses(), model=model))

        with self.assertRaises(SourceUnavailableError):
            await run_analysis(
                "LinkedIn Profile Link: https://www.linkedin.com/in/jane\u0001doe",
                cache=InMemoryCacheStore(),
                client_factory=factory,
                transport=self._transport(200, ""),
            )
        self.assertEqual(factory.models, [])

    async def test_blocked_scrape_never_reaches_the_provider(self, _host_check):
        factory = ClientFactorySpy(lambda model: ScriptedModelClient(stage_responses(), model=model))

        with self.assertRaises(SourceUnavailableError):
            await run_analysis(
                self.linked_text,
                cache=InMemoryCacheStore(),
                client_factory=factory,
                transport=self._transport(999, ""),
            )
        self.assertEqual(factory.models, [])


if __name__ == "__main__":
    unittest.main()
