"""
Thin REST client for the Gemini generative language API.
Covers generateContent (plain, streamed and search-grounded), embedContent
and Imagen predict.
"""

import json
import time
from typing import Any, Dict, Iterator, List, Optional

import requests

from ..core.errors import RemoteServiceError
from ..util.logging import logger


class GeminiClient:
    """HTTP client for generativelanguage.googleapis.com."""

    def __init__(self, api_key: Optional[str], base_url: str = "https://generativelanguage.googleapis.com/v1beta",
                 timeout: int = 60, session: Optional[requests.Session] = None):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        if not self.api_key:
            raise RemoteServiceError("GEMINI_API_KEY environment variable not set.")
        return {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

    def _post(self, path: str, body: Dict[str, Any], params: Optional[Dict[str, str]] = None,
              stream: bool = False) -> requests.Response:
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.post(url, headers=self._headers(), json=body, params=params,
                                         timeout=self.timeout, stream=stream)
        except requests.RequestException as e:
            raise RemoteServiceError(f"Request to {path} failed: {e}") from e

        if response.status_code >= 400:
            detail = response.text[:200] if not stream else ""
            raise RemoteServiceError(f"{path} returned HTTP {response.status_code} {detail}".strip())
        return response

    @staticmethod
    def build_contents(prompt: str, history: Optional[List[Dict[str, str]]] = None) -> List[Dict[str, Any]]:
        """Convert role/content history plus the new prompt to Gemini contents."""
        contents = []
        for msg in history or []:
            contents.append({"role": msg["role"], "parts": [{"text": msg["content"]}]})
        contents.append({"role": "user", "parts": [{"text": prompt}]})
        return contents

    @staticmethod
    def build_body(contents: List[Dict[str, Any]], system_instruction: Optional[str] = None,
                   thinking_budget: Optional[int] = None, max_output_tokens: Optional[int] = None,
                   response_schema: Optional[Dict[str, Any]] = None,
                   tools: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        body: Dict[str, Any] = {"contents": contents}
        if system_instruction:
            body["systemInstruction"] = {"parts": [{"text": system_instruction}]}

        generation_config: Dict[str, Any] = {}
        if thinking_budget is not None:
            generation_config["thinkingConfig"] = {"thinkingBudget": thinking_budget}
        if max_output_tokens is not None:
            generation_config["maxOutputTokens"] = max_output_tokens
        if response_schema is not None:
            generation_config["responseMimeType"] = "application/json"
            generation_config["responseSchema"] = response_schema
        if generation_config:
            body["generationConfig"] = generation_config

        if tools:
            body["tools"] = tools
        return body

    @staticmethod
    def extract_text(response: Dict[str, Any]) -> str:
        """Concatenate the text parts of the first candidate."""
        candidates = response.get("candidates") or []
        if not candidates:
            return ""
        parts = (candidates[0].get("content") or {}).get("parts") or []
        return "".join(part.get("text", "") for part in parts if not part.get("thought"))

    @staticmethod
    def extract_sources(response: Dict[str, Any]) -> List[Dict[str, str]]:
        """Web sources from groundingMetadata; title falls back to the uri."""
        candidates = response.get("candidates") or []
        if not candidates:
            return []
        metadata = candidates[0].get("groundingMetadata") or {}
        sources = []
        for chunk in metadata.get("groundingChunks") or []:
            web = chunk.get("web") or {}
            if web.get("uri"):
                sources.append({"uri": web["uri"], "title": web.get("title") or web["uri"]})
        return sources

    def generate_content(self, model: str, body: Dict[str, Any]) -> Dict[str, Any]:
        """Call models/{model}:generateContent and return the decoded response."""
        start_time = time.time()
        try:
            response = self._post(f"models/{model}:generateContent", body)
            data = response.json()
        except ValueError as e:
            logger.log_remote_call("generate", model, (time.time() - start_time) * 1000, status="failed")
            raise RemoteServiceError(f"Malformed generateContent response: {e}") from e
        except RemoteServiceError as e:
            logger.log_remote_call("generate", model, (time.time() - start_time) * 1000,
                                   status="failed", details={"error": str(e)})
            raise

        logger.log_remote_call("generate", model, (time.time() - start_time) * 1000)
        return data

    def stream_generate_content(self, model: str, body: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
        """Call streamGenerateContent with server-sent events; yields each decoded event."""
        response = self._post(f"models/{model}:streamGenerateContent", body, params={"alt": "sse"}, stream=True)
        try:
            for line in response.iter_lines(decode_unicode=True):
                if not line or not line.startswith("data:"):
                    continue
                payload = line[len("data:"):].strip()
                if not payload:
                    continue
                try:
                    yield json.loads(payload)
                except ValueError as e:
                    raise RemoteServiceError(f"Malformed stream event: {e}") from e
        except requests.RequestException as e:
            raise RemoteServiceError(f"Stream interrupted: {e}") from e
        finally:
            response.close()

    def embed_content(self, model: str, text: str) -> List[float]:
        """Call models/{model}:embedContent and return the embedding values."""
        body = {"model": f"models/{model}", "content": {"parts": [{"text": text}]}}
        try:
            data = self._post(f"models/{model}:embedContent", body).json()
        except ValueError as e:
            raise RemoteServiceError(f"Malformed embedContent response: {e}") from e

        values = (data.get("embedding") or {}).get("values")
        if not isinstance(values, list):
            raise RemoteServiceError("embedContent response has no embedding values")
        return values

    def generate_images(self, model: str, prompt: str, number_of_images: int = 1,
                        aspect_ratio: str = "1:1", mime_type: str = "image/png") -> List[str]:
        """Call models/{model}:predict (Imagen); returns base64 encoded images."""
        body = {
            "instances": [{"prompt": prompt}],
            "parameters": {
                "sampleCount": number_of_images,
                "aspectRatio": aspect_ratio,
                "outputOptions": {"mimeType": mime_type},
            },
        }
        start_time = time.time()
        try:
            data = self._post(f"models/{model}:predict", body).json()
        except ValueError as e:
            raise RemoteServiceError(f"Malformed predict response: {e}") from e

        logger.log_remote_call("image", model, (time.time() - start_time) * 1000)
        return [p["bytesBase64Encoded"] for p in data.get("predictions") or [] if p.get("bytesBase64Encoded")]
