"""Unit tests for the response normalizer."""

from typing import Any

import httpx
import pytest
from structlog.testing import capture_logs

from fetch_helper.errors import InterceptorCancelledError
from fetch_helper.interceptors import InterceptorPipeline, InterceptorSignal
from fetch_helper.metrics import FetchMetrics
from fetch_helper.models import RequestInit
from fetch_helper.normalizer import ResponseNormalizer
from tests.helpers.fakes import FakeResponse


URL = "http://api.test/resource"


@pytest.fixture
def pipeline() -> InterceptorPipeline[Any]:
    """Create an empty after-response pipeline."""
    return InterceptorPipeline("after_response")


@pytest.fixture
def metrics() -> FetchMetrics:
    """Create fresh metrics."""
    return FetchMetrics()


@pytest.fixture
def normalizer(
    pipeline: InterceptorPipeline[Any], metrics: FetchMetrics
) -> ResponseNormalizer:
    """Create a normalizer over the pipeline."""
    return ResponseNormalizer(pipeline, metrics)


class TestFromResponse:
    """Tests for normalizing HTTP responses."""

    @pytest.mark.asyncio
    async def test_json_body(self, normalizer: ResponseNormalizer) -> None:
        """Test that a JSON body becomes the data."""
        response = FakeResponse(200, {"data": "any"})

        result = await normalizer.from_response(URL, response, RequestInit())

        assert result == ({"data": "any"}, 200)

    @pytest.mark.asyncio
    async def test_json_error_body_keeps_status(
        self, normalizer: ResponseNormalizer
    ) -> None:
        """Test that error statuses with JSON bodies are still decoded."""
        response = FakeResponse(404, {"message": "not found"})

        assert await normalizer.from_response(URL, response, RequestInit()) == (
            {"message": "not found"},
            404,
        )

    @pytest.mark.asyncio
    async def test_interceptors_receive_parsed_json(
        self,
        normalizer: ResponseNormalizer,
        pipeline: InterceptorPipeline[Any],
    ) -> None:
        """Test the arguments passed for a JSON body."""
        seen: list[tuple[Any, ...]] = []
        pipeline.add(lambda *args: seen.append(args))
        response = FakeResponse(200, [1, 2])

        await normalizer.from_response(URL, response, RequestInit())

        assert seen == [(response, [1, 2], None)]

    @pytest.mark.asyncio
    async def test_cancel_after_json(
        self,
        normalizer: ResponseNormalizer,
        pipeline: InterceptorPipeline[Any],
        metrics: FetchMetrics,
    ) -> None:
        """Test that a cancel replaces the data with a cancellation error."""
        pipeline.add(lambda *args: InterceptorSignal.CANCEL)

        data, status = await normalizer.from_response(
            URL, FakeResponse(200, {"a": 1}), RequestInit()
        )

        assert isinstance(data, InterceptorCancelledError)
        assert data.phase == "after_response"
        assert status == 200
        assert metrics.interceptor_cancellations_total == {"after_response": 1}

    @pytest.mark.asyncio
    async def test_unparseable_success(
        self,
        normalizer: ResponseNormalizer,
        pipeline: InterceptorPipeline[Any],
    ) -> None:
        """Test that a 204 without JSON returns the response object quietly."""
        seen: list[tuple[Any, ...]] = []
        pipeline.add(lambda *args: seen.append(args))
        response = FakeResponse(204, raw_body="")
        init = RequestInit(method="DELETE")

        with capture_logs() as logs:
            data, status = await normalizer.from_response(URL, response, init)

        assert data is response
        assert status == 204
        assert seen == [(response, None, init)]
        assert [entry["event"] for entry in logs] == ["json_body_absent"]
        assert logs[0]["log_level"] == "debug"
        assert logs[0]["status_code"] == 204

    @pytest.mark.asyncio
    async def test_unparseable_error_logs_warning(
        self, normalizer: ResponseNormalizer, metrics: FetchMetrics
    ) -> None:
        """Test that a non-2xx body without JSON emits a diagnostic."""
        response = FakeResponse(400, raw_body="<html>bad</html>")

        with capture_logs() as logs:
            data, status = await normalizer.from_response(URL, response, RequestInit())

        assert data is response
        assert status == 400
        warnings = [entry for entry in logs if entry["event"] == "json_parse_failed"]
        assert len(warnings) == 1
        assert warnings[0]["log_level"] == "warning"
        assert warnings[0]["status_code"] == 400
        assert metrics.json_parse_failures_total == 1

    @pytest.mark.asyncio
    async def test_cancel_after_unparseable(
        self,
        normalizer: ResponseNormalizer,
        pipeline: InterceptorPipeline[Any],
    ) -> None:
        """Test that a cancel on a non-JSON body is reported too."""
        pipeline.add(lambda *args: InterceptorSignal.CANCEL)

        data, status = await normalizer.from_response(
            URL, FakeResponse(200, raw_body="plain"), RequestInit()
        )

        assert isinstance(data, InterceptorCancelledError)
        assert status == 200


class ClosedStreamResponse(FakeResponse):
    """Response whose body can no longer be read."""

    async def json(self) -> Any:
        msg = "body stream closed"
        raise RuntimeError(msg)


class TestUnreadableBody:
    """Tests for bodies whose decoding fails with a non-ValueError."""

    @pytest.mark.asyncio
    async def test_any_decode_error_returns_response(
        self,
        normalizer: ResponseNormalizer,
        pipeline: InterceptorPipeline[Any],
        metrics: FetchMetrics,
    ) -> None:
        """Test that a RuntimeError from json() is treated as no JSON body."""
        seen: list[tuple[Any, ...]] = []
        pipeline.add(lambda *args: seen.append(args))
        response = ClosedStreamResponse(200)
        init = RequestInit()

        with capture_logs() as logs:
            data, status = await normalizer.from_response(URL, response, init)

        assert data is response
        assert status == 200
        assert seen == [(response, None, init)]
        assert logs[0]["event"] == "json_body_absent"
        assert logs[0]["error_type"] == "RuntimeError"
        assert metrics.json_parse_failures_total == 1

    @pytest.mark.asyncio
    async def test_decode_error_on_error_status_warns(
        self, normalizer: ResponseNormalizer
    ) -> None:
        """Test that the parse warning covers non-ValueError failures too."""
        with capture_logs() as logs:
            _, status = await normalizer.from_response(
                URL, ClosedStreamResponse(503), RequestInit()
            )

        assert status == 503
        warnings = [entry for entry in logs if entry["event"] == "json_parse_failed"]
        assert warnings[0]["error"] == "body stream closed"


class TestFromFailure:
    """Tests for normalizing transport failures."""

    def test_failure_tuple(
        self,
        normalizer: ResponseNormalizer,
        pipeline: InterceptorPipeline[Any],
        metrics: FetchMetrics,
    ) -> None:
        """Test that errors resolve to (error, -1) after interceptors run."""
        seen: list[tuple[Any, ...]] = []
        pipeline.add(lambda *args: seen.append(args))
        error = httpx.ConnectError("refused")

        with capture_logs() as logs:
            result = normalizer.from_failure(URL, error)

        assert result == (error, -1)
        assert seen == [(error, None, None)]
        assert logs[0]["event"] == "fetch_failed"
        assert metrics.transport_failures_total == {"ConnectError": 1}

    def test_cancel_does_not_change_failure_tuple(
        self,
        normalizer: ResponseNormalizer,
        pipeline: InterceptorPipeline[Any],
    ) -> None:
        """Test that interceptor cancellation keeps the failure result."""
        pipeline.add(lambda *args: InterceptorSignal.CANCEL)
        error = httpx.ReadTimeout("slow")

        assert normalizer.from_failure(URL, error) == (error, -1)
