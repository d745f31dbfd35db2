"""
Tests for the video provider adapters.
"""
import pytest

from vlogstudio.core.errors import AuthError, JobFailed, JobTimedOut, MalformedResponse, QuotaExhausted
from vlogstudio.core.models import MediaKind, ProviderId
from vlogstudio.core.profiles import resolve
from vlogstudio.providers.video import FalVideoProvider, GatewayVideoProvider, HuggingFaceVideoProvider

from utils import FakeResponse, RecordingSleep, b64, json_response, make_request, make_settings

VIDEO_BYTES = b"\x00\x00\x00\x18ftypmp42fake-video"


def _profile(provider_id, tier="cheap", aspect="9:16"):
    return resolve(tier, "video", "cinematic", aspect, provider_id)


def _request(**overrides):
    return make_request("temple festival at night", media_kind=MediaKind.VIDEO, **overrides)


class TestHuggingFaceVideoProvider:
    """Tests for the Hugging Face video task."""

    @pytest.mark.asyncio
    async def test_success(self, settings, session):
        session.queue(FakeResponse(200, VIDEO_BYTES, "video/mp4"))
        provider = HuggingFaceVideoProvider(settings, session)

        artifact = await provider.invoke(_profile(ProviderId.HUGGINGFACE), _request())

        assert artifact.payload == VIDEO_BYTES
        assert artifact.mime_type == "video/mp4"
        call = session.calls[0]
        assert call["url"].endswith("/cerspense/zeroscope_v2_576w")
        assert call["json"]["parameters"]["num_frames"] == 48
        assert call["timeout"].total == 180

    @pytest.mark.asyncio
    async def test_loading_model_status_document(self, settings, session):
        session.queue(json_response({"error": "Model is loading", "estimated_time": 40}))
        with pytest.raises(MalformedResponse):
            await HuggingFaceVideoProvider(settings, session).invoke(_profile(ProviderId.HUGGINGFACE), _request())


class TestGatewayVideoProvider:
    """Tests for the AI gateway."""

    @pytest.mark.asyncio
    async def test_inline_base64(self, settings, session):
        session.queue(json_response({"data": [{"b64_json": b64(VIDEO_BYTES)}]}))
        provider = GatewayVideoProvider(settings, session)

        artifact = await provider.invoke(_profile(ProviderId.GATEWAY), _request(duration=8))

        assert artifact.payload == VIDEO_BYTES
        call = session.calls[0]
        assert call["url"] == "https://gateway.test/v1/videos/generations"
        assert call["json"]["model"] == "bytedance/seedance-v1-lite"
        assert call["json"]["duration"] == 8
        assert call["json"]["size"] == "480x848"

    @pytest.mark.asyncio
    async def test_url_result_is_downloaded(self, settings, session):
        session.queue(
            json_response({"data": [{"url": "https://cdn.test/clip.mp4"}]}),
            FakeResponse(200, VIDEO_BYTES, "video/mp4"),
        )
        provider = GatewayVideoProvider(settings, session)

        artifact = await provider.invoke(_profile(ProviderId.GATEWAY), _request())

        assert artifact.payload == VIDEO_BYTES
        assert artifact.url == "https://cdn.test/clip.mp4"
        assert session.calls[0]["json"]["duration"] == 5
        assert session.calls[1]["method"] == "GET"
        assert session.calls[1]["url"] == "https://cdn.test/clip.mp4"

    @pytest.mark.asyncio
    async def test_download_returning_json(self, settings, session):
        session.queue(
            json_response({"video": {"url": "https://cdn.test/clip.mp4"}}),
            json_response({"status": "expired"}),
        )
        with pytest.raises(MalformedResponse):
            await GatewayVideoProvider(settings, session).invoke(_profile(ProviderId.GATEWAY), _request())

    def test_model_override(self, session):
        provider = GatewayVideoProvider(make_settings(GATEWAY_VIDEO_MODELS="openai/sora-2"), session)
        assert [p.model_id for p in provider.profiles(_request())] == ["openai/sora-2"]

    def test_tier_models(self, settings, session):
        provider = GatewayVideoProvider(settings, session)
        models = [p.model_id for p in provider.profiles(_request())]
        assert models == ["bytedance/seedance-v1-lite", "alibaba/wan-v2.2-5b"]


class TestFalVideoProvider:
    """Tests for the fal queue adapter."""

    @pytest.mark.asyncio
    async def test_submit_poll_fetch(self, settings, session):
        sleep = RecordingSleep()
        session.queue(
            json_response({"request_id": "req-1"}),
            json_response({"status": "IN_QUEUE"}),
            json_response({"status": "IN_PROGRESS"}),
            json_response({"status": "COMPLETED"}),
            json_response({"video": {"url": "https://fal.media/out.mp4", "content_type": "video/mp4"}}),
            FakeResponse(200, VIDEO_BYTES, "video/mp4"),
        )
        provider = FalVideoProvider(settings, session, sleep=sleep)

        artifact = await provider.invoke(_profile(ProviderId.FAL), _request())

        assert artifact.payload == VIDEO_BYTES
        assert artifact.source_provider is ProviderId.FAL
        assert sleep.delays == [2.0, 2.0, 2.0]

        urls = [call["url"] for call in session.calls]
        assert urls[0] == "https://queue.fal.test/fal-ai/ltx-video"
        assert urls[1] == "https://queue.fal.test/fal-ai/ltx-video/requests/req-1/status"
        assert urls[4] == "https://queue.fal.test/fal-ai/ltx-video/requests/req-1"
        assert urls[5] == "https://fal.media/out.mp4"
        assert session.calls[0]["headers"]["Authorization"] == "Key fal-test"
        assert session.calls[0]["json"]["duration"] == "5"

    @pytest.mark.asyncio
    async def test_inline_result_skips_polling(self, settings, session):
        sleep = RecordingSleep()
        session.queue(
            json_response({"video": {"url": "https://fal.media/fast.mp4"}}),
            FakeResponse(200, VIDEO_BYTES, "video/mp4"),
        )
        artifact = await FalVideoProvider(settings, session, sleep=sleep).invoke(_profile(ProviderId.FAL), _request())

        assert artifact.url == "https://fal.media/fast.mp4"
        assert sleep.delays == []
        assert len(session.calls) == 2

    @pytest.mark.asyncio
    async def test_failed_job(self, settings, session):
        session.queue(
            json_response({"request_id": "req-2", "status_url": "https://queue.fal.test/s/req-2"}),
            json_response({"status": "FAILED"}),
        )
        with pytest.raises(JobFailed) as exc_info:
            await FalVideoProvider(settings, session, sleep=RecordingSleep()).invoke(
                _profile(ProviderId.FAL), _request()
            )
        assert exc_info.value.provider == "fal"
        assert session.calls[1]["url"] == "https://queue.fal.test/s/req-2"

    @pytest.mark.asyncio
    async def test_poll_budget(self, session):
        settings = make_settings(POLL_MAX_ATTEMPTS=2)
        session.queue(
            json_response({"request_id": "req-3"}),
            json_response({"status": "IN_PROGRESS"}),
            json_response({"status": "IN_PROGRESS"}),
        )
        with pytest.raises(JobTimedOut):
            await FalVideoProvider(settings, session, sleep=RecordingSleep()).invoke(
                _profile(ProviderId.FAL), _request()
            )

    @pytest.mark.asyncio
    async def test_locked_balance_is_quota(self, settings, session):
        session.queue(json_response({"detail": "User is locked. Reason: Exhausted balance."}, 403))
        with pytest.raises(QuotaExhausted) as exc_info:
            await FalVideoProvider(settings, session).invoke(_profile(ProviderId.FAL), _request())
        assert exc_info.value.http_status == 402

    @pytest.mark.asyncio
    async def test_auth_error_while_polling(self, settings, session):
        session.queue(
            json_response({"request_id": "req-4"}),
            json_response({"detail": "Invalid key"}, 401),
        )
        with pytest.raises(AuthError):
            await FalVideoProvider(settings, session, sleep=RecordingSleep()).invoke(
                _profile(ProviderId.FAL), _request()
            )
