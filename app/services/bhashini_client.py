# app/services/bhashini_client.py
import base64
import enum
import httpx
import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ValidationError
from app.core.config import AppSettings
from app.core.errors import ConfigurationError, LanguageDetectionFailed, NetworkError, NoTranscriptFound

logger = logging.getLogger(__name__)

ASR_TASK = "asr"
ALD_TASK = "ald"
# Discovery needs a language even though detection itself takes none
ALD_DISCOVERY_LANGUAGE = "hi"


# --- Discovery response schema ---

class PipelineServiceConfig(BaseModel):
    serviceId: str
    modelId: str


class PipelineTaskConfig(BaseModel):
    config: List[PipelineServiceConfig]


class PipelineDiscoveryResponse(BaseModel):
    pipelineResponseConfig: List[PipelineTaskConfig]


class PipelineEndpoint(BaseModel):
    service_id: str
    model_id: str


# --- Inference decoding ---

class TranscriptPath(str, enum.Enum):
    PIPELINE_RESPONSE = "pipelineResponse[0].output[0].source"
    OUTPUT = "output[0].source"


class LanguagePath(str, enum.Enum):
    PIPELINE_PREDICTION = "pipelineResponse[0].output[0].langPrediction[0].langCode"
    OUTPUT_PREDICTION = "output[0].langPrediction[0].langCode"
    PIPELINE_LANGUAGE = "pipelineResponse[0].output[0].language"


class TranscriptDecode(BaseModel):
    text: str
    path: TranscriptPath


class LanguageDecode(BaseModel):
    code: str
    path: LanguagePath


def _first(value: Any) -> Optional[Dict[str, Any]]:
    if isinstance(value, list) and value and isinstance(value[0], dict):
        return value[0]
    return None


def _first_output(container: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if not container:
        return None
    return _first(container.get("output"))


def decode_pipeline_endpoint(body: Any) -> PipelineEndpoint:
    try:
        parsed = PipelineDiscoveryResponse.model_validate(body)
        service = parsed.pipelineResponseConfig[0].config[0]
    except (ValidationError, IndexError) as e:
        raise ConfigurationError("Pipeline discovery response is missing serviceId/modelId") from e
    return PipelineEndpoint(service_id=service.serviceId, model_id=service.modelId)


def decode_transcript(body: Any) -> TranscriptDecode:
    if not isinstance(body, dict):
        raise NoTranscriptFound("No transcript found in response")
    candidates = [
        (TranscriptPath.PIPELINE_RESPONSE, _first_output(_first(body.get("pipelineResponse")))),
        (TranscriptPath.OUTPUT, _first_output(body)),
    ]
    for path, output in candidates:
        if output and isinstance(output.get("source"), str):
            return TranscriptDecode(text=output["source"].strip(), path=path)
    raise NoTranscriptFound("No transcript found in response")


def decode_language(body: Any) -> LanguageDecode:
    if not isinstance(body, dict):
        raise LanguageDetectionFailed("No language prediction in response")
    pipeline_output = _first_output(_first(body.get("pipelineResponse")))
    output = _first_output(body)

    for path, container in ((LanguagePath.PIPELINE_PREDICTION, pipeline_output),
                            (LanguagePath.OUTPUT_PREDICTION, output)):
        prediction = _first(container.get("langPrediction")) if container else None
        if prediction and isinstance(prediction.get("langCode"), str):
            return LanguageDecode(code=prediction["langCode"], path=path)

    if pipeline_output and isinstance(pipeline_output.get("language"), str):
        return LanguageDecode(code=pipeline_output["language"], path=LanguagePath.PIPELINE_LANGUAGE)
    raise LanguageDetectionFailed("No language prediction in response")


class BhashiniClient:
    """Two-step Bhashini protocol: discover the serving model, then run inference."""

    def __init__(self, settings: AppSettings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.http_client = http_client

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": self.settings.BHASHINI_AUTH_KEY,
            "Content-Type": "application/json",
        }

    async def _post_json(self, url: str, payload: dict, step: str) -> Any:
        try:
            if self.http_client is not None:
                response = await self.http_client.post(url, headers=self._headers(), json=payload,
                                                       timeout=self.settings.SPEECH_TIMEOUT_SECONDS)
            else:
                async with httpx.AsyncClient(timeout=self.settings.SPEECH_TIMEOUT_SECONDS) as client:
                    response = await client.post(url, headers=self._headers(), json=payload)
        except httpx.RequestError as e:
            logger.error(f"Bhashini {step} request error: {type(e).__name__} - {e}")
            raise NetworkError(f"Bhashini {step} request failed: {e}") from e

        logger.info(f"Bhashini {step} response code: {response.status_code}")
        if response.status_code != 200:
            raise NetworkError(f"HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as e:
            if step == "discovery":
                raise ConfigurationError("Pipeline discovery response is not JSON") from e
            raise NetworkError(f"Bhashini {step} response is not JSON") from e

    async def discover(self, task_type: str, source_language: Optional[str] = None) -> PipelineEndpoint:
        task: Dict[str, Any] = {"taskType": task_type}
        if source_language:
            task["config"] = {"language": {"sourceLanguage": source_language}}
        payload = {
            "pipelineTasks": [task],
            "pipelineRequestConfig": {"pipelineId": self.settings.BHASHINI_PIPELINE_ID},
        }
        body = await self._post_json(self.settings.BHASHINI_CONFIG_ENDPOINT, payload, "discovery")
        endpoint = decode_pipeline_endpoint(body)
        logger.debug(f"Discovered {task_type} service {endpoint.service_id} / model {endpoint.model_id}")
        return endpoint

    def _inference_payload(self, task_type: str, endpoint: PipelineEndpoint, audio_bytes: bytes,
                           source_language: Optional[str]) -> dict:
        config: Dict[str, Any] = {"modelId": endpoint.model_id, "serviceId": endpoint.service_id}
        if source_language:
            config["language"] = {"sourceLanguage": source_language}
        return {
            "pipelineTasks": [{"taskType": task_type, "config": config}],
            "inputData": {"audio": [{"audioContent": base64.b64encode(audio_bytes).decode("utf-8")}]},
        }

    async def transcribe_with_path(self, audio_bytes: bytes, source_language: str = "hi") -> TranscriptDecode:
        endpoint = await self.discover(ASR_TASK, source_language)
        payload = self._inference_payload(ASR_TASK, endpoint, audio_bytes, source_language)
        body = await self._post_json(self.settings.BHASHINI_INFERENCE_ENDPOINT, payload, "asr inference")
        decoded = decode_transcript(body)
        logger.info(f"ASR transcript decoded via {decoded.path.value} ({len(decoded.text)} chars)")
        return decoded

    async def transcribe(self, audio_bytes: bytes, source_language: str = "hi") -> str:
        decoded = await self.transcribe_with_path(audio_bytes, source_language)
        if not decoded.text:
            raise NoTranscriptFound("Transcript is empty")
        return decoded.text

    async def detect_language_from_audio(self, audio_bytes: bytes) -> str:
        endpoint = await self.discover(ALD_TASK, ALD_DISCOVERY_LANGUAGE)
        payload = self._inference_payload(ALD_TASK, endpoint, audio_bytes, None)
        body = await self._post_json(self.settings.BHASHINI_INFERENCE_ENDPOINT, payload, "ald inference")
        decoded = decode_language(body)
        logger.info(f"ALD language '{decoded.code}' decoded via {decoded.path.value}")
        return decoded.code
