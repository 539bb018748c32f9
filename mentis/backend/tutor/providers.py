from __future__ import annotations

import asyncio
import base64
import binascii
from typing import Any, Optional, Protocol

import httpx
from google import genai
from google.genai import types as genai_types
from openai import APITimeoutError, AsyncOpenAI

from mentis.backend.tutor.errors import ConfigurationError, ProviderFailure
from mentis.backend.tutor.history import text_with_file
from mentis.backend.tutor.types import AdaptedHistory, Attachment, GenerationParams


DEFAULT_PRIMARY_MODEL = "llama-3.3-70b-versatile"
DEFAULT_PRIMARY_BASE_URL = "https://api.groq.com/openai/v1"
DEFAULT_VISION_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT_S = 30.0
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"

_TIMEOUT_ERRORS = (TimeoutError, asyncio.TimeoutError, APITimeoutError, httpx.TimeoutException)


class ProviderClient(Protocol):
	name: str

	@property
	def ready(self) -> bool: ...

	async def invoke(
		self,
		system_instruction: str,
		history: AdaptedHistory,
		user_text: str,
		attachment: Optional[Attachment] = None,
		*,
		params: GenerationParams,
	) -> str: ...


def _provider_failure(provider: str, exc: BaseException) -> ProviderFailure:
	name = exc.__class__.__name__
	if isinstance(exc, _TIMEOUT_ERRORS):
		return ProviderFailure(provider, "request timed out", timed_out=True)
	status_code = getattr(exc, "status_code", None) or getattr(exc, "code", None)
	if status_code is not None:
		return ProviderFailure(provider, f"{name} (status {status_code}): {exc}")
	return ProviderFailure(provider, f"{name}: {exc}")


def _first_choice_text(completion: Any) -> str:
	choices = getattr(completion, "choices", None)
	if not choices:
		return ""
	message = getattr(choices[0], "message", None)
	content = getattr(message, "content", None)
	return content if isinstance(content, str) else ""


def _response_text(response: Any) -> str:
	text = getattr(response, "text", None)
	return text if isinstance(text, str) else ""


def decode_image(attachment: Attachment, provider: str) -> bytes:
	payload = attachment.content.strip()
	if payload.startswith("data:") and "," in payload:
		payload = payload.split(",", 1)[1]
	try:
		data = base64.b64decode(payload, validate=True)
	except (binascii.Error, ValueError) as exc:
		raise ProviderFailure(provider, "malformed image data") from exc
	if not data:
		raise ProviderFailure(provider, "malformed image data")
	return data


class TextProvider:
	"""OpenAI-compatible chat completion backend. Text only."""

	name = "primary"

	def __init__(
		self,
		*,
		api_key: str = "",
		model: str = DEFAULT_PRIMARY_MODEL,
		base_url: str = DEFAULT_PRIMARY_BASE_URL,
		timeout_s: float = DEFAULT_TIMEOUT_S,
		client: Any = None,
	):
		self._api_key = api_key.strip()
		self.model = model
		self._base_url = base_url
		self._timeout_s = timeout_s
		self._client = client

	@property
	def ready(self) -> bool:
		return self._client is not None or bool(self._api_key)

	def _sdk_client(self) -> Any:
		if self._client is None:
			if not self._api_key:
				raise ConfigurationError("Primary provider API key not configured. Set GROQ_API_KEY.")
			self._client = AsyncOpenAI(
				api_key=self._api_key,
				base_url=self._base_url,
				timeout=self._timeout_s,
				max_retries=0,
			)
		return self._client

	async def invoke(
		self,
		system_instruction: str,
		history: AdaptedHistory,
		user_text: str,
		attachment: Optional[Attachment] = None,
		*,
		params: GenerationParams,
	) -> str:
		if attachment is not None and attachment.is_image:
			raise ProviderFailure(self.name, "image attachments are not supported")
		client = self._sdk_client()
		messages = [
			{"role": "system", "content": system_instruction},
			*history.chat_messages,
			{"role": "user", "content": text_with_file(user_text, attachment)},
		]
		try:
			completion = await asyncio.wait_for(
				client.chat.completions.create(
					model=self.model,
					messages=messages,
					temperature=params.temperature,
					max_tokens=params.max_output_tokens,
				),
				timeout=self._timeout_s,
			)
		except Exception as exc:
			raise _provider_failure(self.name, exc) from exc

		text = _first_choice_text(completion)
		if not text.strip():
			raise ProviderFailure(self.name, "response contained no completion choice")
		return text


class VisionProvider:
	"""Gemini backend. Handles images directly and serves as the text fallback."""

	name = "vision"

	def __init__(
		self,
		*,
		api_key: str = "",
		model: str = DEFAULT_VISION_MODEL,
		timeout_s: float = DEFAULT_TIMEOUT_S,
		client: Any = None,
	):
		self._api_key = api_key.strip()
		self.model = model
		self._timeout_s = timeout_s
		self._client = client

	@property
	def ready(self) -> bool:
		return self._client is not None or bool(self._api_key)

	def _sdk_client(self) -> Any:
		if self._client is None:
			if not self._api_key:
				raise ConfigurationError("Vision provider API key not configured. Set GEMINI_API_KEY.")
			self._client = genai.Client(
				api_key=self._api_key,
				http_options=genai_types.HttpOptions(timeout=int(self._timeout_s * 1000)),
			)
		return self._client

	def _user_content(self, user_text: str, attachment: Optional[Attachment]) -> genai_types.Content:
		if attachment is not None and attachment.is_image:
			return genai_types.Content(
				role="user",
				parts=[
					genai_types.Part.from_text(text=user_text),
					genai_types.Part.from_bytes(
						data=decode_image(attachment, self.name),
						mime_type=attachment.mime_type or DEFAULT_IMAGE_MIME_TYPE,
					),
				],
			)
		text = user_text
		if attachment is not None and attachment.kind == "text":
			text = f"{user_text}\n\nFile Content:\n{attachment.content}"
		return genai_types.Content(role="user", parts=[genai_types.Part.from_text(text=text)])

	async def invoke(
		self,
		system_instruction: str,
		history: AdaptedHistory,
		user_text: str,
		attachment: Optional[Attachment] = None,
		*,
		params: GenerationParams,
	) -> str:
		client = self._sdk_client()
		contents = [genai_types.Content.model_validate(item) for item in history.contents]
		contents.append(self._user_content(user_text, attachment))
		config = genai_types.GenerateContentConfig(
			system_instruction=system_instruction,
			temperature=params.temperature,
			max_output_tokens=params.max_output_tokens,
		)
		try:
			response = await asyncio.wait_for(
				client.aio.models.generate_content(model=self.model, contents=contents, config=config),
				timeout=self._timeout_s,
			)
		except Exception as exc:
			raise _provider_failure(self.name, exc) from exc

		text = _response_text(response)
		if not text.strip():
			raise ProviderFailure(self.name, "response contained no completion candidate")
		return text
