import json
import base64
import httpx
import pytest

from app.core.errors import ConfigurationError, LanguageDetectionFailed, NetworkError, NoTranscriptFound
from app.services.bhashini_client import (
    BhashiniClient, LanguagePath, TranscriptPath, decode_language, decode_pipeline_endpoint, decode_transcript,
)

DISCOVERY_BODY = {
    "pipelineResponseConfig": [
        {"config": [{"serviceId": "ai4bharat/conformer-hi", "modelId": "model-42"}]}
    ]
}


def make_client(test_settings, inference_body, calls, inference_status=200, discovery_body=DISCOVERY_BODY):
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        calls.append((str(request.url), dict(request.headers), body))
        if str(request.url) == test_settings.BHASHINI_CONFIG_ENDPOINT:
            return httpx.Response(200, json=discovery_body)
        return httpx.Response(inference_status, json=inference_body)

    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return BhashiniClient(test_settings, http_client)


@pytest.mark.asyncio
async def test_transcribe_runs_discovery_then_inference(test_settings):
    calls = []
    client = make_client(test_settings, {"pipelineResponse": [{"output": [{"source": "  मेरा फोन चोरी हो गया  "}]}]}, calls)

    transcript = await client.transcribe(b"\x00\x01audio", "hi")

    assert transcript == "मेरा फोन चोरी हो गया"
    assert len(calls) == 2
    discovery_url, discovery_headers, discovery_payload = calls[0]
    assert discovery_url == test_settings.BHASHINI_CONFIG_ENDPOINT
    assert discovery_headers["authorization"] == "test-bhashini-key"
    assert discovery_payload["pipelineRequestConfig"] == {"pipelineId": "pipeline-123"}
    assert discovery_payload["pipelineTasks"][0]["config"]["language"]["sourceLanguage"] == "hi"

    inference_url, _, inference_payload = calls[1]
    assert inference_url == test_settings.BHASHINI_INFERENCE_ENDPOINT
    task_config = inference_payload["pipelineTasks"][0]["config"]
    assert task_config["serviceId"] == "ai4bharat/conformer-hi"
    assert task_config["modelId"] == "model-42"
    audio_content = inference_payload["inputData"]["audio"][0]["audioContent"]
    assert base64.b64decode(audio_content) == b"\x00\x01audio"


@pytest.mark.asyncio
async def test_transcribe_falls_back_to_top_level_output(test_settings):
    calls = []
    client = make_client(test_settings, {"output": [{"source": "hello"}]}, calls)

    decoded = await client.transcribe_with_path(b"audio")

    assert decoded.text == "hello"
    assert decoded.path == TranscriptPath.OUTPUT


@pytest.mark.asyncio
async def test_transcribe_non_200_raises_network_error(test_settings):
    client = make_client(test_settings, {"detail": "boom"}, [], inference_status=500)

    with pytest.raises(NetworkError) as exc_info:
        await client.transcribe(b"audio")
    assert exc_info.value.message == "HTTP 500"


@pytest.mark.asyncio
async def test_transcribe_bad_discovery_shape_raises_configuration_error(test_settings):
    client = make_client(test_settings, {}, [], discovery_body={"pipelineResponseConfig": []})

    with pytest.raises(ConfigurationError):
        await client.transcribe(b"audio")


@pytest.mark.asyncio
async def test_transcribe_empty_transcript_raises(test_settings):
    client = make_client(test_settings, {"pipelineResponse": [{"output": [{"source": "   "}]}]}, [])

    with pytest.raises(NoTranscriptFound):
        await client.transcribe(b"audio")


@pytest.mark.asyncio
async def test_transport_error_raises_network_error(test_settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = BhashiniClient(test_settings, httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    with pytest.raises(NetworkError):
        await client.transcribe(b"audio")


@pytest.mark.asyncio
async def test_detect_language_inference_has_no_language(test_settings):
    calls = []
    body = {"pipelineResponse": [{"output": [{"langPrediction": [{"langCode": "gu"}]}]}]}
    client = make_client(test_settings, body, calls)

    code = await client.detect_language_from_audio(b"audio")

    assert code == "gu"
    assert calls[0][2]["pipelineTasks"][0]["taskType"] == "ald"
    assert calls[0][2]["pipelineTasks"][0]["config"]["language"]["sourceLanguage"] == "hi"
    assert "language" not in calls[1][2]["pipelineTasks"][0]["config"]


def test_decode_pipeline_endpoint_missing_model_id():
    with pytest.raises(ConfigurationError):
        decode_pipeline_endpoint({"pipelineResponseConfig": [{"config": [{"serviceId": "x"}]}]})


def test_decode_transcript_without_source():
    with pytest.raises(NoTranscriptFound):
        decode_transcript({"pipelineResponse": [{"output": [{}]}]})


def test_decode_language_parse_order():
    both = {
        "pipelineResponse": [{"output": [{"langPrediction": [{"langCode": "mr"}], "language": "hi"}]}],
        "output": [{"langPrediction": [{"langCode": "ur"}]}],
    }
    assert decode_language(both).code == "mr"
    assert decode_language(both).path == LanguagePath.PIPELINE_PREDICTION

    top_level = {"output": [{"langPrediction": [{"langCode": "ur"}]}]}
    assert decode_language(top_level).path == LanguagePath.OUTPUT_PREDICTION

    language_only = {"pipelineResponse": [{"output": [{"language": "en"}]}]}
    decoded = decode_language(language_only)
    assert decoded.code == "en"
    assert decoded.path == LanguagePath.PIPELINE_LANGUAGE

    with pytest.raises(LanguageDetectionFailed):
        decode_language({"pipelineResponse": []})
