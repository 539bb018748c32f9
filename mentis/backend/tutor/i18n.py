from __future__ import annotations

from typing import Dict, List, Optional, Tuple


DEFAULT_LANGUAGE = "en"

SUPPORTED_LANGUAGES: Tuple[Tuple[str, str], ...] = (
	("en", "English"),
	("es", "Español"),
	("fr", "Français"),
	("de", "Deutsch"),
	("pt", "Português"),
	("it", "Italiano"),
	("nl", "Nederlands"),
	("ru", "Русский"),
	("zh", "中文"),
	("ja", "日本語"),
	("ko", "한국어"),
	("ar", "العربية"),
	("hi", "हिन्दी"),
	("tr", "Türkçe"),
	("pl", "Polski"),
	("vi", "Tiếng Việt"),
	("th", "ไทย"),
	("id", "Bahasa Indonesia"),
	("uk", "Українська"),
	("sv", "Svenska"),
)

_LANGUAGE_NAMES: Dict[str, str] = dict(SUPPORTED_LANGUAGES)


def normalize_language(code: Optional[str]) -> str:
	candidate = (code or "").strip().lower()
	return candidate if candidate in _LANGUAGE_NAMES else DEFAULT_LANGUAGE


def language_name(code: Optional[str]) -> str:
	return _LANGUAGE_NAMES[normalize_language(code)]


def language_directive(code: Optional[str]) -> str:
	"""Instruction appended to the system prompt; empty for the default language."""
	resolved = normalize_language(code)
	if resolved == DEFAULT_LANGUAGE:
		return ""
	name = language_name(resolved)
	return (
		f"\n\nIMPORTANT: You MUST respond entirely in {name} ({resolved}). "
		f"All explanations, examples, and text should be in {name}."
	)


def list_languages() -> List[Dict[str, str]]:
	return [{"code": code, "name": name} for code, name in SUPPORTED_LANGUAGES]
