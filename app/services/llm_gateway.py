# app/services/llm_gateway.py
import httpx
import logging
from typing import Optional, List, Dict

from pydantic import BaseModel, ValidationError
from app.core.config import AppSettings
from app.core.errors import ApiError, InvalidResponse, NetworkError

logger = logging.getLogger(__name__)


class ChatMessage(BaseModel):
    role: str = "assistant"
    content: Optional[str] = None


class ChatChoice(BaseModel):
    message: ChatMessage


class ChatCompletionResponse(BaseModel):
    choices: List[ChatChoice]


class AzureOpenAIClient:
    """Chat-completion primitive over an Azure OpenAI deployment.

    Higher level behaviour (classification, extraction, drafting) lives in the
    prompts built by LegalAssistant; this class only moves text in and out.
    """

    def __init__(self, settings: AppSettings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self.http_client = http_client

    def _headers(self) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "api-key": self.settings.AZURE_OPENAI_API_KEY,
        }

    async def _post(self, payload: dict) -> httpx.Response:
        url = self.settings.AZURE_CHAT_COMPLETIONS_URL
        if self.http_client is not None:
            return await self.http_client.post(url, headers=self._headers(), json=payload,
                                               timeout=self.settings.LLM_TIMEOUT_SECONDS)
        async with httpx.AsyncClient(timeout=self.settings.LLM_TIMEOUT_SECONDS) as client:
            return await client.post(url, headers=self._headers(), json=payload)

    async def complete(self, system_prompt: str, user_prompt: str, max_tokens: int, temperature: float) -> str:
        payload = {
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        logger.debug(f"Chat completion request: max_tokens={max_tokens}, temperature={temperature}, prompt chars={len(user_prompt)}")

        try:
            response = await self._post(payload)
        except httpx.RequestError as e:
            logger.error(f"Azure OpenAI request error: {type(e).__name__} - {e}")
            raise NetworkError(f"Azure OpenAI request failed: {e}") from e

        logger.info(f"Azure OpenAI response code: {response.status_code}")
        if response.status_code != 200:
            raise ApiError(response.status_code, response.text or "Unknown error")

        try:
            parsed = ChatCompletionResponse.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"Could not decode Azure OpenAI response: {e}")
            raise InvalidResponse("Invalid response from Azure OpenAI") from e

        if not parsed.choices or parsed.choices[0].message.content is None:
            raise InvalidResponse("Azure OpenAI response has no message content")
        return parsed.choices[0].message.content
