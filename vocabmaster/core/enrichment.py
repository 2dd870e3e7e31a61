"""Batch enrichment of existing words through the translation oracle."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from vocabmaster.core.errors import OracleError, StoreError
from vocabmaster.core.models import LinguisticRecord, Word

if TYPE_CHECKING:
    from vocabmaster.ai.oracle import TranslationOracle
    from vocabmaster.core.vocabulary import VocabularyManager

logger = logging.getLogger(__name__)

# Fields filled one at a time; None means a full lookup
FIELDS = (None, "related_forms", "synonyms")

ProgressCallback = Callable[[int, int, Word], None]


@dataclass
class EnrichmentResult:
    updated: list[Word] = field(default_factory=list)
    unchanged: list[Word] = field(default_factory=list)
    failed: list[Word] = field(default_factory=list)

    def summary(self) -> str:
        text = f"Updated {len(self.updated)} words"
        if self.failed:
            text += f", {len(self.failed)} failed"
        return text


def needs_translation(word: Word) -> bool:
    return not word.translation.strip()


async def _record_for(oracle: "TranslationOracle", word: Word, field_name: Optional[str]) -> LinguisticRecord:
    if field_name is None:
        return await oracle.lookup(word.word)
    if field_name == "related_forms":
        return LinguisticRecord(related_forms=await oracle.related_forms(word.word, word.word_type))
    return LinguisticRecord(synonyms=await oracle.synonyms(word.word, word.word_type))


async def enrich_words(
    vocabulary: "VocabularyManager",
    oracle: "TranslationOracle",
    words: Iterable[Word],
    field_name: Optional[str] = None,
    on_progress: Optional[ProgressCallback] = None,
    delay: float = 0.5,
) -> EnrichmentResult:
    """
    Fill in word data one word at a time.

    With ``field_name`` None every word gets a full lookup; otherwise only
    ``related_forms`` or ``synonyms`` is fetched. A failed lookup or save
    leaves that word as it was and the batch continues.
    """
    if field_name not in FIELDS:
        raise ValueError(f"Cannot enrich field {field_name!r}")

    words = list(words)
    result = EnrichmentResult()

    for position, word in enumerate(words, start=1):
        if on_progress:
            on_progress(position, len(words), word)

        try:
            record = await _record_for(oracle, word, field_name)
            updated = vocabulary.enrich_word(word.id, record)
        except (OracleError, StoreError) as e:
            logger.warning("Could not enrich %r: %s", word.word, e)
            result.failed.append(word)
        else:
            if updated is None:
                result.unchanged.append(word)
            else:
                result.updated.append(updated)

        if delay and position < len(words):
            await asyncio.sleep(delay)

    logger.info("Enriched %d of %d words", len(result.updated), len(words))
    return result
