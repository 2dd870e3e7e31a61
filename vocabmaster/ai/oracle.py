"""Translation oracle: structured linguistic lookups over an AI provider."""

import asyncio
import json
import logging
import re
from typing import Any, Optional

from vocabmaster.ai.base import AIProvider
from vocabmaster.core.errors import OracleError, ParseError
from vocabmaster.core.models import Level, LinguisticRecord, Meaning, WordType

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = """You are an English vocabulary assistant.
You help {language} speakers learn English words, phrases and idioms.
Give accurate, natural {language} translations and short English examples.
When asked for JSON, reply with a single JSON object and nothing else."""

CODE_FENCE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)
JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

WORD_TYPES = "|".join(t.value for t in WordType)


def extract_json(text: str) -> dict:
    """
    Pull the JSON object out of a model response.

    Code fences are removed and everything from the first "{" to the last
    "}" is parsed.

    Raises:
        ParseError: no object found, or it is not valid JSON
    """
    cleaned = CODE_FENCE.sub("", text or "").strip()
    match = JSON_OBJECT.search(cleaned)
    if not match:
        raise ParseError("No JSON object in oracle response")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON in oracle response: {e}") from e
    if not isinstance(payload, dict):
        raise ParseError("Oracle response is not a JSON object")
    return payload


def _text(payload: dict, *keys: str) -> Optional[str]:
    """First non-empty string (or list of strings) under any of ``keys``."""
    for key in keys:
        value = payload.get(key)
        if isinstance(value, list):
            value = ", ".join(str(v).strip() for v in value if isinstance(v, str) and v.strip())
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _word_type(value: Any) -> Optional[WordType]:
    if not isinstance(value, str):
        return None
    try:
        return WordType(value.strip().lower())
    except ValueError:
        return None


def _level(value: Any) -> Optional[Level]:
    if not isinstance(value, str):
        return None
    try:
        return Level(value.strip().upper())
    except ValueError:
        return None


def _meanings(payload: dict) -> tuple[Meaning, ...]:
    meanings = []
    raw = payload.get("meanings")
    if isinstance(raw, list):
        for item in raw:
            if not isinstance(item, dict):
                continue
            translation = _text(item, "translation", "ru")
            if translation:
                meanings.append(Meaning(
                    translation=translation,
                    example=_text(item, "example") or "",
                    meaning_en=_text(item, "meaning_en", "meaningEn") or "",
                ))
    if not meanings:
        translation = _text(payload, "translation", "meaningRu")
        if translation:
            meanings.append(Meaning(translation=translation, example=_text(payload, "example") or ""))
    return tuple(meanings)


def parse_record(payload: dict) -> LinguisticRecord:
    """
    Validate an oracle payload into a LinguisticRecord.

    Unknown word classes and levels, empty strings and values of the wrong
    type are treated as absent.
    """
    return LinguisticRecord(
        word_type=_word_type(payload.get("type") or payload.get("word_type")),
        level=_level(payload.get("level")),
        phonetic=_text(payload, "phonetic"),
        meaning_en=_text(payload, "meaning_en", "meaningEn"),
        meanings=_meanings(payload),
        related_forms=_text(payload, "related_forms", "relatedForms", "singleRootWords"),
        synonyms=_text(payload, "synonyms"),
    )


def _type_label(word_type) -> str:
    return word_type.value if isinstance(word_type, WordType) else str(word_type or "word")


class TranslationOracle:
    """Best-effort translations and word data from an AI provider.

    All methods are coroutines. The provider call runs in a worker thread.
    """

    def __init__(self, provider: AIProvider, language: str = "Russian"):
        self.provider = provider
        self.language = language
        self.system_prompt = SYSTEM_PROMPT.format(language=language)

    @property
    def available(self) -> bool:
        return self.provider.is_available()

    async def _generate(self, prompt: str, max_tokens: int = 500) -> str:
        try:
            return await asyncio.to_thread(
                self.provider.generate,
                prompt,
                self.system_prompt,
                max_tokens,
            )
        except Exception as e:
            # SDKs raise their own hierarchies; callers only see OracleError
            raise OracleError(f"{self.provider.name} request failed: {e}") from e

    async def _generate_json(self, prompt: str, max_tokens: int = 500) -> dict:
        text = await self._generate(prompt, max_tokens)
        try:
            return extract_json(text)
        except ParseError:
            logger.warning("Unparsable oracle response: %.200r", text)
            raise

    async def translate(self, text: str) -> str:
        """Short translation of a word or phrase."""
        prompt = (
            f'Translate "{text}" to {self.language}. '
            f"Reply with ONLY the {self.language} translation, nothing else."
        )
        response = (await self._generate(prompt, max_tokens=100)).strip().strip('"').strip()
        if not response:
            raise ParseError(f"Empty translation for {text!r}")
        return response

    async def lookup(self, text: str) -> LinguisticRecord:
        """Structured record for a word or phrase, with 2-4 common meanings."""
        prompt = f"""Analyze the English word or phrase: "{text}"

Return JSON with the 2-4 most common meanings:
{{"type": "{WORD_TYPES}",
 "level": "A1|A2|B1|B2|C1|C2",
 "phonetic": "/ipa/",
 "meaning_en": "main English definition",
 "meanings": [{{"translation": "{self.language} translation", "example": "English example sentence"}}],
 "related_forms": "comma-separated words with the same root",
 "synonyms": "comma-separated synonyms"}}

Only JSON."""
        return parse_record(await self._generate_json(prompt))

    async def related_forms(self, word: str, word_type=None) -> str:
        """Comma-separated words sharing the root of ``word``."""
        prompt = (
            f'List 5-10 English words with the same root as "{word}" ({_type_label(word_type)}). '
            "Example: cook -> cooker, cooking, cooked, cookbook. "
            'Return JSON: {"words": "word1, word2, word3"}. Only JSON.'
        )
        payload = await self._generate_json(prompt)
        value = _text(payload, "words", "related_forms", "relatedForms")
        if value is None:
            raise ParseError(f"No related forms for {word!r}")
        return value

    async def synonyms(self, word: str, word_type=None) -> str:
        """Comma-separated synonyms of ``word``."""
        prompt = (
            f'For the word "{word}" ({_type_label(word_type)}), provide 4-6 synonyms. '
            'Return JSON: {"synonyms": "synonym1, synonym2"}. Only JSON.'
        )
        payload = await self._generate_json(prompt)
        value = _text(payload, "synonyms")
        if value is None:
            raise ParseError(f"No synonyms for {word!r}")
        return value

    async def explain_song(self, title: str, text: str) -> str:
        """Explanation of a song's lyrics in the learner's language."""
        prompt = f"""Explain this song in {self.language}:
"{title}"
{text}

Include: main theme, metaphors, slang, cultural context. Write in {self.language}."""
        response = (await self._generate(prompt, max_tokens=2000)).strip()
        if not response:
            raise ParseError(f"Empty explanation for {title!r}")
        return response
