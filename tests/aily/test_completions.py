import asyncio
import unittest

import httpx

from lark_aily.aily import Aily, ExecStatus
from lark_aily.cache import SessionCache
from tests.aily.fakes import (
    SESSIONS,
    FakeTransport,
    make_client,
    message,
    message_created,
    messages_path,
    ok,
    page,
    run_created,
    run_path,
    run_status,
    runs_path,
    session_created,
)


def _script_happy_path(
    transport: FakeTransport,
    *,
    session_id: str = "s1",
    run_id: str = "r1",
    statuses: tuple[str, ...] = ("COMPLETED",),
    pages: tuple[dict, ...] | None = None,
) -> None:
    transport.on("POST", SESSIONS, session_created(session_id))
    transport.on("POST", messages_path(session_id), message_created())
    transport.on("POST", runs_path(session_id), run_created(run_id))
    transport.on("GET", run_path(session_id, run_id), *[run_status(run_id, s) for s in statuses])
    if pages is None:
        pages = (page([message("m-user", "USER", "hi"), message("m-bot", "ASSISTANT", "hello")]),)
    transport.on("GET", messages_path(session_id), *pages)


class CompletionsTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.transport = FakeTransport()
        self.client = make_client(self.transport)
        self.aily = Aily(self.client, SessionCache(), poll_interval=0)

    def _create(self, **kwargs):
        kwargs.setdefault("message", "hi")
        kwargs.setdefault("app_id", "spring_app")
        return asyncio.run(self.aily.completions.create(**kwargs))


class CompletionsCreateTests(CompletionsTestCase):
    def test_returns_assistant_reply_after_run_completes(self) -> None:
        _script_happy_path(self.transport, statuses=("QUEUED", "IN_PROGRESS", "COMPLETED"))

        result = self._create()

        self.assertEqual(ExecStatus.SUCCESS, result.code)
        self.assertTrue(result.ok)
        self.assertEqual("m-bot", result.message["id"])
        self.assertEqual(3, len(self.transport.calls_to("GET", run_path("s1", "r1"))))

    def test_steps_run_in_order(self) -> None:
        _script_happy_path(self.transport)

        self._create()

        self.assertEqual(
            [
                ("POST", SESSIONS),
                ("POST", messages_path("s1")),
                ("POST", runs_path("s1")),
                ("GET", run_path("s1", "r1")),
                ("GET", messages_path("s1")),
            ],
            [(c.method, c.path) for c in self.transport.calls],
        )

    def test_message_payload_carries_idempotency_token_and_content_type(self) -> None:
        _script_happy_path(self.transport)

        self._create(
            message="what is new?",
            message_info={"content": "ignored", "content_type": "TEXT", "file_ids": ["f1"]},
        )

        sent = self.transport.calls_to("POST", messages_path("s1"))[0].data
        self.assertEqual("what is new?", sent["content"])
        self.assertEqual("MDX", sent["content_type"])
        self.assertEqual(["f1"], sent["file_ids"])
        self.assertTrue(sent["idempotent_id"].isdigit())

    def test_run_payload_includes_app_skill_and_run_info(self) -> None:
        _script_happy_path(self.transport)

        self._create(app_id="spring_app", skill_id="skill_1", run_info={"metadata": "{}"})

        sent = self.transport.calls_to("POST", runs_path("s1"))[0].data
        self.assertEqual({"app_id": "spring_app", "skill_id": "skill_1", "metadata": "{}"}, sent)

    def test_run_payload_omits_missing_skill(self) -> None:
        _script_happy_path(self.transport)

        self._create()

        sent = self.transport.calls_to("POST", runs_path("s1"))[0].data
        self.assertEqual({"app_id": "spring_app"}, sent)

    def test_reply_listing_is_scoped_to_run(self) -> None:
        _script_happy_path(self.transport)

        self._create()

        params = self.transport.calls_to("GET", messages_path("s1"))[0].params
        self.assertEqual({"run_id": "r1"}, params)

    def test_last_assistant_message_across_pages_wins(self) -> None:
        pages = (
            page([message("a1", "ASSISTANT", "first")], has_more=True, page_token="p2"),
            page([message("u2", "USER"), message("a2", "ASSISTANT", "second")]),
        )
        _script_happy_path(self.transport, pages=pages)

        result = self._create()

        self.assertEqual(ExecStatus.SUCCESS, result.code)
        self.assertEqual("a2", result.message["id"])
        list_calls = self.transport.calls_to("GET", messages_path("s1"))
        self.assertEqual(2, len(list_calls))
        self.assertEqual("p2", list_calls[1].params["page_token"])

    def test_no_assistant_message_is_error(self) -> None:
        _script_happy_path(self.transport, pages=(page([message("u1", "USER")]),))

        result = self._create()

        self.assertEqual(ExecStatus.ERROR, result.code)
        self.assertIsNone(result.message)

    def test_failed_listing_without_earlier_reply_is_error(self) -> None:
        _script_happy_path(self.transport, pages=(httpx.ConnectError("boom"),))

        result = self._create()

        self.assertEqual(ExecStatus.ERROR, result.code)

    def test_reply_found_before_listing_failure_is_kept(self) -> None:
        pages = (
            page([message("a1", "ASSISTANT", "first")], has_more=True, page_token="p2"),
            httpx.ConnectError("boom"),
        )
        _script_happy_path(self.transport, pages=pages)

        result = self._create()

        self.assertEqual(ExecStatus.SUCCESS, result.code)
        self.assertEqual("a1", result.message["id"])


class CompletionsTerminalStatusTests(CompletionsTestCase):
    def test_non_success_terminal_status_is_returned_without_reply_lookup(self) -> None:
        cases = {
            "FAILED": ExecStatus.FAILED,
            "EXPIRED": ExecStatus.EXPIRED,
            "CANCELLED": ExecStatus.CANCELLED,
            "REQUIRES_ACTION": ExecStatus.OTHER,
        }
        for status, expected in cases.items():
            with self.subTest(status=status):
                transport = FakeTransport()
                _script_happy_path(transport, statuses=(status,))
                aily = Aily(make_client(transport), poll_interval=0)

                result = asyncio.run(aily.completions.create(message="hi", app_id="spring_app"))

                self.assertEqual(expected, result.code)
                self.assertIsNone(result.message)
                self.assertEqual([], transport.calls_to("GET", messages_path("s1")))

    def test_failed_status_call_maps_to_failed(self) -> None:
        self.transport.on("POST", SESSIONS, session_created("s1"))
        self.transport.on("POST", messages_path("s1"), message_created())
        self.transport.on("POST", runs_path("s1"), run_created("r1"))
        self.transport.on("GET", run_path("s1", "r1"), {"code": 99991663, "msg": "denied"})

        result = self._create()

        self.assertEqual(ExecStatus.FAILED, result.code)
        self.assertEqual([], self.transport.calls_to("GET", messages_path("s1")))

    def test_status_transport_failure_maps_to_failed(self) -> None:
        self.transport.on("POST", SESSIONS, session_created("s1"))
        self.transport.on("POST", messages_path("s1"), message_created())
        self.transport.on("POST", runs_path("s1"), run_created("r1"))
        self.transport.on("GET", run_path("s1", "r1"), httpx.ReadTimeout("slow"))

        result = self._create()

        self.assertEqual(ExecStatus.FAILED, result.code)


class CompletionsFailureTests(CompletionsTestCase):
    def test_session_creation_failure_is_error(self) -> None:
        self.transport.on("POST", SESSIONS, {"code": 2320001, "msg": "invalid app"})

        result = self._create()

        self.assertEqual(ExecStatus.ERROR, result.code)
        self.assertEqual(1, len(self.transport.calls))
        self.client.logger.error.assert_called()

    def test_message_transport_failure_is_error_not_exception(self) -> None:
        self.transport.on("POST", SESSIONS, session_created("s1"))
        self.transport.on("POST", messages_path("s1"), httpx.ConnectError("network down"))

        result = self._create()

        self.assertEqual(ExecStatus.ERROR, result.code)
        self.assertEqual([], self.transport.calls_to("POST", runs_path("s1")))
        self.client.logger.error.assert_called()

    def test_message_semantic_failure_is_error(self) -> None:
        self.transport.on("POST", SESSIONS, session_created("s1"))
        self.transport.on("POST", messages_path("s1"), {"code": 1, "msg": "bad content"})

        result = self._create()

        self.assertEqual(ExecStatus.ERROR, result.code)

    def test_run_without_id_is_error(self) -> None:
        self.transport.on("POST", SESSIONS, session_created("s1"))
        self.transport.on("POST", messages_path("s1"), message_created())
        self.transport.on("POST", runs_path("s1"), ok({"run": {"status": "QUEUED"}}))

        result = self._create()

        self.assertEqual(ExecStatus.ERROR, result.code)
        self.assertEqual([], self.transport.calls_to("GET", run_path("s1", "r1")))

    def test_stream_variant_is_not_implemented(self) -> None:
        with self.assertRaises(NotImplementedError):
            asyncio.run(self.aily.completions.create_with_stream(message="hi", app_id="spring_app"))


class SessionResolutionTests(CompletionsTestCase):
    def test_known_session_key_skips_session_creation(self) -> None:
        asyncio.run(self.aily.completions.session_records.update({"chat-1": "s9"}))
        _script_happy_path(self.transport, session_id="s9")

        result = self._create(session_key="chat-1")

        self.assertEqual(ExecStatus.SUCCESS, result.code)
        self.assertEqual([], self.transport.calls_to("POST", SESSIONS))
        self.assertEqual(1, len(self.transport.calls_to("POST", messages_path("s9"))))

    def test_new_session_key_is_recorded_and_reused(self) -> None:
        _script_happy_path(self.transport)

        self._create(session_key="chat-1")
        self._create(session_key="chat-1")

        self.assertEqual(1, len(self.transport.calls_to("POST", SESSIONS)))
        records = asyncio.run(self.aily.completions.session_records.get())
        self.assertEqual({"chat-1": "s1"}, records)

    def test_recording_keeps_unrelated_keys(self) -> None:
        asyncio.run(self.aily.completions.session_records.update({"other": "s0"}))
        _script_happy_path(self.transport)

        self._create(session_key="chat-1")

        records = asyncio.run(self.aily.completions.session_records.get())
        self.assertEqual({"other": "s0", "chat-1": "s1"}, records)

    def test_without_session_key_every_call_creates_a_session(self) -> None:
        _script_happy_path(self.transport)

        self._create()
        self._create()

        self.assertEqual(2, len(self.transport.calls_to("POST", SESSIONS)))
        self.assertEqual({}, asyncio.run(self.aily.completions.session_records.get()))

    def test_get_session_id_sends_session_info(self) -> None:
        self.transport.on("POST", SESSIONS, session_created("s1"))

        session_id = asyncio.run(
            self.aily.completions.get_session_id(session_info={"channel_context": "{}"})
        )

        self.assertEqual("s1", session_id)
        self.assertEqual({"channel_context": "{}"}, self.transport.calls[0].data)

    def test_get_session_id_returns_none_on_failure(self) -> None:
        self.transport.on("POST", SESSIONS, {"code": 1, "msg": "nope"})

        self.assertIsNone(asyncio.run(self.aily.completions.get_session_id("chat-1")))
        self.assertEqual({}, asyncio.run(self.aily.completions.session_records.get()))


class AilyCompositionTests(unittest.TestCase):
    def test_default_cache_is_private_to_instance(self) -> None:
        client = make_client(FakeTransport())
        first = Aily(client)
        second = Aily(client)

        self.assertIsInstance(first.cache, SessionCache)
        self.assertIsNot(first.cache, second.cache)

    def test_injected_cache_is_used(self) -> None:
        cache = SessionCache()
        asyncio.run(cache.set("aily_session_record", {"chat-1": "s1"}))

        aily = Aily(make_client(FakeTransport()), cache)

        self.assertEqual({"chat-1": "s1"}, asyncio.run(aily.completions.session_records.get()))

    def test_poll_settings_reach_poller(self) -> None:
        aily = Aily(make_client(FakeTransport()), poll_interval=0.25, max_poll_attempts=4)

        self.assertEqual(0.25, aily.poller.interval)
        self.assertEqual(4, aily.poller.max_attempts)
