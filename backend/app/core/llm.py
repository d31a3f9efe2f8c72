import httpx
import json
import logging
from typing import Dict, List, Any, Optional
from app.core.config import settings

logger = logging.getLogger(__name__)


class LLMClient:
    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = settings.openai_base_url
        self.model = settings.openai_model
        self.headers = {"Authorization": f"Bearer {settings.openai_api_key}"}
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=settings.llm_timeout_s,
            transport=transport,
        )

    async def chat_completion(
        self,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Send chat completion request to OpenAI-compatible endpoint"""

        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": temperature,
        }

        if max_tokens:
            payload["max_tokens"] = max_tokens

        if response_format:
            payload["response_format"] = response_format

        try:
            logger.info(f"Sending chat request to {self.base_url}")
            response = await self.client.post("/chat/completions", json=payload)
            response.raise_for_status()

            result = response.json()
            logger.info("Chat completion successful")
            return result

        except httpx.HTTPError as e:
            logger.error(f"HTTP error in chat completion: {e}")
            raise

    async def complete_json(self, system_prompt: str, user_prompt: str, temperature: float = 0.4) -> Dict[str, Any]:
        """Ask for a JSON object and parse it out of the first choice"""

        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        result = await self.chat_completion(
            messages=messages,
            temperature=temperature,
            response_format={"type": "json_object"},
        )
        content = result["choices"][0]["message"]["content"]
        parsed = json.loads(content)
        if not isinstance(parsed, dict):
            raise ValueError("LLM response is not a JSON object")
        return parsed

    async def close(self):
        await self.client.aclose()


# Global LLM client instance
llm_client = LLMClient()
