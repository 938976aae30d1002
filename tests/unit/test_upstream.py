"""Unit tests for SSE parsing and the upstream client."""

import httpx
import pytest
import pytest_check as check

from sonic_chat.relay.config import RelayConfig
from sonic_chat.relay.upstream import (
    SseLineSplitter,
    UpstreamClient,
    UpstreamError,
    is_done_line,
    parse_sse_line,
)
from tests.helpers import FakeUpstream, delta_frame, sse_body


class TestParseSseLine:
    """Tests for single-line SSE parsing."""

    def test_extracts_delta_text(self) -> None:
        assert parse_sse_line(f"data: {delta_frame('Hel')}") == "Hel"

    def test_accepts_data_prefix_without_space(self) -> None:
        assert parse_sse_line(f"data:{delta_frame('x')}") == "x"

    def test_preserves_whitespace_in_delta(self) -> None:
        assert parse_sse_line(f"data: {delta_frame('  two spaces')}") == "  two spaces"

    def test_sentinel_is_not_json_decoded(self) -> None:
        """[DONE] yields nothing and is recognized as the end marker."""
        check.is_none(parse_sse_line("data: [DONE]"))
        check.is_true(is_done_line("data: [DONE]"))

    def test_ignores_blank_and_comment_lines(self) -> None:
        check.is_none(parse_sse_line(""))
        check.is_none(parse_sse_line(": keep-alive"))
        check.is_none(parse_sse_line("event: ping"))

    def test_malformed_json_is_skipped(self) -> None:
        assert parse_sse_line("data: {not json") is None

    def test_frame_without_delta_content(self) -> None:
        check.is_none(parse_sse_line(f"data: {delta_frame(None, 'stop')}"))
        check.is_none(parse_sse_line('data: {"choices": []}'))

    def test_wrong_shape_is_skipped(self) -> None:
        assert parse_sse_line('data: {"choices": "nope"}') is None

    def test_unknown_fields_are_tolerated(self) -> None:
        line = 'data: {"choices":[{"delta":{"content":"ok","refusal":null}}],"usage":{}}'

        assert parse_sse_line(line) == "ok"


class TestSseLineSplitter:
    """Tests for SSE line splitting."""

    def test_splits_on_lf_crlf_and_cr(self) -> None:
        splitter = SseLineSplitter()

        assert splitter.feed("a\nb\r\nc\rd") == ["a", "b", "c"]

    def test_unicode_separators_stay_inside_line(self) -> None:
        """U+2028, U+2029 and U+0085 are text, not line ends."""
        splitter = SseLineSplitter()

        lines = splitter.feed("data: a\u2028b\u2029c\x85d\n")

        assert lines == ["data: a\u2028b\u2029c\x85d"]

    def test_crlf_split_across_feeds(self) -> None:
        """A CR at the end of a feed does not produce an extra line."""
        splitter = SseLineSplitter()

        check.equal(splitter.feed("data: x\r"), [])
        check.equal(splitter.feed("\ndata: y\r\n"), ["data: x", "data: y"])

    def test_flush_returns_unterminated_line(self) -> None:
        splitter = SseLineSplitter()
        splitter.feed("data: tail")

        check.equal(splitter.flush(), ["data: tail"])
        check.equal(splitter.flush(), [])


class TestUpstreamClient:
    """Tests for the streaming completion request."""

    async def _collect(self, client: UpstreamClient, messages: list) -> list[str]:
        async with client.open_stream(messages) as deltas:
            return [d async for d in deltas]

    async def test_yields_deltas_in_order(
        self, relay_config: RelayConfig, fake_upstream: FakeUpstream
    ) -> None:
        fake_upstream.body = sse_body(
            delta_frame("one"), delta_frame(" two"), delta_frame(" three")
        )
        client = UpstreamClient(relay_config, fake_upstream.client())

        deltas = await self._collect(client, [{"role": "user", "content": "count"}])

        assert deltas == ["one", " two", " three"]

    async def test_sends_credentials_and_stream_flag(
        self, relay_config: RelayConfig, fake_upstream: FakeUpstream
    ) -> None:
        client = UpstreamClient(relay_config, fake_upstream.client())

        await self._collect(client, [{"role": "user", "content": "Hi"}])

        request = fake_upstream.requests[0]
        check.equal(str(request.url), "https://llm.test/v1/chat/completions")
        check.equal(request.headers["authorization"], "Bearer sk-test-key")
        check.equal(fake_upstream.last_body["stream"], True)
        check.equal(fake_upstream.last_body["model"], "gpt-4o-mini")
        check.is_not_in("temperature", fake_upstream.last_body)

    async def test_sends_temperature_and_org_headers_when_configured(
        self, relay_config: RelayConfig, fake_upstream: FakeUpstream
    ) -> None:
        config = relay_config.model_copy(
            update={"temperature": 0.2, "organization": "org-1", "project": "proj-1"}
        )
        client = UpstreamClient(config, fake_upstream.client())

        await self._collect(client, [{"role": "user", "content": "Hi"}])

        request = fake_upstream.requests[0]
        check.equal(fake_upstream.last_body["temperature"], 0.2)
        check.equal(request.headers["openai-organization"], "org-1")
        check.equal(request.headers["openai-project"], "proj-1")

    async def test_malformed_frame_does_not_stop_stream(
        self, relay_config: RelayConfig, fake_upstream: FakeUpstream
    ) -> None:
        fake_upstream.body = sse_body(
            delta_frame("before"), "{not json", delta_frame(" after")
        )
        client = UpstreamClient(relay_config, fake_upstream.client())

        assert await self._collect(client, []) == ["before", " after"]

    async def test_frame_split_across_chunks(
        self, relay_config: RelayConfig, fake_upstream: FakeUpstream
    ) -> None:
        """Lines split at arbitrary byte offsets are reassembled."""
        fake_upstream.body = sse_body(delta_frame("naïve "), delta_frame("café"))
        fake_upstream.chunk_size = 7
        client = UpstreamClient(relay_config, fake_upstream.client())

        assert await self._collect(client, []) == ["naïve ", "café"]

    async def test_stops_at_sentinel(
        self, relay_config: RelayConfig, fake_upstream: FakeUpstream
    ) -> None:
        fake_upstream.body = sse_body(delta_frame("kept")) + sse_body(
            delta_frame("ignored"), done=False
        )
        client = UpstreamClient(relay_config, fake_upstream.client())

        assert await self._collect(client, []) == ["kept"]

    async def test_error_status_raises_before_streaming(
        self, relay_config: RelayConfig, fake_upstream: FakeUpstream
    ) -> None:
        fake_upstream.status_code = 401
        fake_upstream.body = b'{"error": {"message": "bad key"}}'
        client = UpstreamClient(relay_config, fake_upstream.client())

        with pytest.raises(UpstreamError, match="HTTP 401") as exc_info:
            await self._collect(client, [])

        assert exc_info.value.status_code == 401

    async def test_connection_failure_raises_upstream_error(
        self, relay_config: RelayConfig, fake_upstream: FakeUpstream
    ) -> None:
        fake_upstream.error = httpx.ConnectError("connection refused")
        client = UpstreamClient(relay_config, fake_upstream.client())

        with pytest.raises(UpstreamError, match="connection refused") as exc_info:
            await self._collect(client, [])

        assert exc_info.value.status_code is None

    async def test_empty_body_raises(
        self, relay_config: RelayConfig, fake_upstream: FakeUpstream
    ) -> None:
        fake_upstream.status_code = 204
        fake_upstream.body = b""
        client = UpstreamClient(relay_config, fake_upstream.client())

        with pytest.raises(UpstreamError, match="no body"):
            await self._collect(client, [])

    async def test_raw_unicode_line_separators_in_delta(
        self, relay_config: RelayConfig, fake_upstream: FakeUpstream
    ) -> None:
        """Raw U+2028 / U+0085 inside JSON strings do not split frames."""
        deltas = ["Hel", "lo\u2028world", "\u0085!", "para\u2029graph"]
        fake_upstream.body = sse_body(
            *(delta_frame(d, ensure_ascii=False) for d in deltas)
        )
        fake_upstream.chunk_size = 5
        client = UpstreamClient(relay_config, fake_upstream.client())

        assert await self._collect(client, []) == deltas

    async def test_crlf_terminated_frames(
        self, relay_config: RelayConfig, fake_upstream: FakeUpstream
    ) -> None:
        fake_upstream.body = sse_body(delta_frame("a"), delta_frame("b")).replace(
            b"\n", b"\r\n"
        )
        fake_upstream.chunk_size = 3
        client = UpstreamClient(relay_config, fake_upstream.client())

        assert await self._collect(client, []) == ["a", "b"]
