"""
Turn OCR text into structured receipt data with a chat-completion model
"""
import json
import logging
from typing import Any, Optional

import httpx

from services.errors import UpstreamEmptyReplyError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a receipt parser. Extract item names and their prices from the receipt text. "
    "Also extract subtotal, tax, and total. Return as JSON."
)

def strip_code_fences(text: str) -> str:
    """Remove a surrounding ``` fence (with optional language tag)"""
    t = text.strip()
    if t.startswith("```"):
        nl = t.find("\n")
        t = t[nl + 1:] if nl != -1 else t[3:]
        if t.endswith("```"):
            t = t[:-3]
    return t.strip()

def _reject_constant(name: str):
    raise ValueError(f"Non-standard JSON constant: {name}")

def decode_reply(content: str) -> Any:
    """
    Decode the model reply as JSON.
    A reply that is not strict JSON (including NaN, Infinity and numbers
    that overflow a float) is wrapped as {"raw": content} instead of failing.
    """
    try:
        value = json.loads(strip_code_fences(content), parse_constant=_reject_constant)
        # 1e400 decodes to inf, which cannot be serialized back
        json.dumps(value, allow_nan=False)
        return value
    except ValueError:
        logger.info("Model reply is not valid JSON, returning raw text")
        return {"raw": content}

class ReceiptParser:
    """Client for an OpenAI-compatible chat completions endpoint"""

    def __init__(
        self,
        http: httpx.AsyncClient,
        api_key: str,
        api_url: str,
        model: str = "gpt-4o",
        temperature: float = 0.3,
    ):
        self.http = http
        self.api_key = api_key
        self.api_url = api_url
        self.model = model
        self.temperature = temperature

    async def _call_model(self, text: str) -> dict:
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": text},
            ],
            "temperature": self.temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        response = await self.http.post(self.api_url, headers=headers, json=payload)
        data = response.json()
        logger.debug(f"LLM API response: {json.dumps(data, indent=2)}")
        return data

    @staticmethod
    def reply_content(data: dict) -> Optional[str]:
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None
        message = choices[0].get("message") or {}
        return message.get("content")

    async def parse(self, text: str) -> Any:
        """
        Extract items, subtotal, tax and total from receipt text.
        Returns the decoded JSON reply, or {"raw": reply} if it is not JSON.
        """
        data = await self._call_model(text)
        content = self.reply_content(data)
        if not content:
            raise UpstreamEmptyReplyError("Failed to get response from the language model.")
        return decode_reply(content)

def build_receipt_parser(config, http: httpx.AsyncClient) -> ReceiptParser:
    return ReceiptParser(
        http,
        api_key=config.LLM_API_KEY,
        api_url=config.LLM_API_URL,
        model=config.LLM_MODEL,
        temperature=config.LLM_TEMPERATURE,
    )
