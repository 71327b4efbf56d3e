"""
Ollama-backed chat completion for running against a local model.
"""

from typing import Any, Dict, Iterator, List, Optional

import ollama

from ..core.errors import RemoteServiceError
from .agent import ChatMessage, IChatProvider, ReasoningMode, filter_history


class OllamaChatProvider(IChatProvider):
    """
    Chat provider that talks to a local Ollama instance.
    Gemini's "model" role maps to Ollama's "assistant" role.
    """

    def __init__(self, model_name: str, options: Optional[Dict[str, Any]] = None):
        super().__init__(model_name)
        self.options = options or {'temperature': 0.7, 'top_p': 0.9}

    def _build_ollama_messages(self, prompt: str, history: Optional[List[ChatMessage]],
                               system_instruction: Optional[str]) -> List[Dict[str, str]]:
        messages = []

        if system_instruction:
            messages.append({'role': 'system', 'content': system_instruction})

        for msg in filter_history(history):
            messages.append({
                'role': 'assistant' if msg.role == 'model' else msg.role,
                'content': msg.content
            })

        messages.append({'role': 'user', 'content': prompt})
        return messages

    def stream_chat(self, prompt: str, history: Optional[List[ChatMessage]] = None,
                    system_instruction: Optional[str] = None,
                    reasoning_mode: ReasoningMode = ReasoningMode.NORMAL) -> Iterator[str]:
        messages = self._build_ollama_messages(prompt, history, system_instruction)
        try:
            stream = ollama.chat(
                model=self.model_name,
                messages=messages,
                options=self.options,
                think=False if reasoning_mode == ReasoningMode.FAST else None,
                stream=True
            )
            for chunk in stream:
                content = chunk.get('message', {}).get('content', '')
                if content:
                    yield content
        except ollama.ResponseError as e:
            raise RemoteServiceError(f"Ollama model error: {e}") from e
        except ConnectionError as e:
            raise RemoteServiceError(f"Ollama is unreachable: {e}") from e

    def generate(self, prompt: str, system_instruction: Optional[str] = None,
                 thinking: bool = True, max_output_tokens: Optional[int] = None,
                 response_schema: Optional[Dict[str, Any]] = None) -> str:
        options = dict(self.options)
        if max_output_tokens is not None:
            options['num_predict'] = max_output_tokens

        try:
            response = ollama.chat(
                model=self.model_name,
                messages=self._build_ollama_messages(prompt, None, system_instruction),
                options=options,
                think=None if thinking else False,
                format=response_schema
            )
        except ollama.ResponseError as e:
            raise RemoteServiceError(f"Ollama model error: {e}") from e
        except ConnectionError as e:
            raise RemoteServiceError(f"Ollama is unreachable: {e}") from e

        return response.get('message', {}).get('content', '')

    def get_status(self) -> Dict[str, Any]:
        status = super().get_status()
        status['ollama_available'] = check_ollama_health(self.model_name)
        return status


def check_ollama_health(model_name: str) -> bool:
    """Check if Ollama is available and the model is pulled."""
    try:
        models = ollama.list()
        names = [getattr(m, 'model', None) or m.get('model') or m.get('name') for m in models.get('models', [])]
        return model_name in names
    except Exception:
        return False
