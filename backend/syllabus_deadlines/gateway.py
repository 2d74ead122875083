import base64
import logging
from typing import Any, Dict, List, Optional, Union

import openai

from .config import (
    OPENAI_API_KEY,
    OPENAI_TEXT_MODEL,
    OPENAI_TIMEOUT_S,
    OPENAI_VISION_MODEL,
)
from .errors import EmptyModelResponse, GatewayUnavailable
from .prompts import IMAGE_INSTRUCTION, SYSTEM_PROMPT

logger = logging.getLogger(__name__)

UserContent = Union[str, List[Dict[str, Any]]]


def image_data_url(data: bytes, mime_type: str) -> str:
    b64 = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type};base64,{b64}"


class CompletionGateway:
    """Sends the fixed extraction prompt plus one payload to a chat completion.

    Nothing is retried here; failures surface as GatewayUnavailable or
    EmptyModelResponse and the caller decides what to do.
    """

    def __init__(
        self,
        client: Optional[openai.OpenAI] = None,
        text_model: str = OPENAI_TEXT_MODEL,
        vision_model: str = OPENAI_VISION_MODEL,
        system_prompt: str = SYSTEM_PROMPT,
    ):
        self._client = client
        self.text_model = text_model
        self.vision_model = vision_model
        self.system_prompt = system_prompt

    @property
    def client(self) -> openai.OpenAI:
        if self._client is None:
            try:
                self._client = openai.OpenAI(
                    api_key=OPENAI_API_KEY or None,
                    timeout=OPENAI_TIMEOUT_S,
                    max_retries=0,
                )
            except openai.OpenAIError as e:
                logger.error("OpenAI client could not be configured: %s", e)
                raise GatewayUnavailable() from e
        return self._client

    def complete_text(self, text: str) -> str:
        return self._complete(self.text_model, text.strip())

    def complete_image(self, data: bytes, mime_type: str) -> str:
        content = [
            {"type": "text", "text": IMAGE_INSTRUCTION},
            {"type": "image_url", "image_url": {"url": image_data_url(data, mime_type)}},
        ]
        return self._complete(self.vision_model, content)

    def _complete(self, model: str, user_content: UserContent) -> str:
        client = self.client
        try:
            resp = client.chat.completions.create(
                model=model,
                response_format={"type": "json_object"},
                messages=[
                    {"role": "system", "content": self.system_prompt},
                    {"role": "user", "content": user_content},
                ],
            )
        except openai.OpenAIError as e:
            logger.warning("Completion request to %s failed: %s", model, e)
            raise GatewayUnavailable() from e

        choices = getattr(resp, "choices", None) or []
        raw = choices[0].message.content if choices else None
        if not raw or not raw.strip():
            raise EmptyModelResponse()
        return raw
