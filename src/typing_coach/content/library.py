"""In-memory content library with content-hash deduplication.

Builtin, user-pasted and corpus-imported code all pass through the same
normalize -> hash -> dedup pipeline, so a given (language, code) pair has one
identity no matter where it came from.
"""

from collections.abc import Iterable
from typing import Protocol

import structlog
from pydantic import BaseModel, Field

from typing_coach.config import Settings
from typing_coach.content.identity import content_id
from typing_coach.content.metrics import compute_metrics, estimate_difficulty
from typing_coach.content.normalizer import normalize
from typing_coach.models.difficulty import clamp_tier
from typing_coach.models.snippet import CodeItem, ContentSource, Snippet

logger = structlog.get_logger()

TITLE_MAX_LENGTH = 60


class CandidateRepository(Protocol):
    """Anything that can hand out the candidate pool for a language."""

    def get(self, language: str) -> list[Snippet]: ...


class BuiltinOverlay(BaseModel):
    """Authored metadata layered over a builtin item."""

    content_id: str
    legacy_id: str
    difficulty: int
    topics: list[str] = Field(default_factory=list)


class AddResult(BaseModel):
    """Outcome of adding one piece of code to the library."""

    snippet: Snippet | None = None
    error: str | None = None
    duplicate: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


class ImportResult(BaseModel):
    """Outcome of a bulk corpus import."""

    added: int = 0
    duplicates: int = 0
    skipped: int = 0
    error: str | None = None


def derive_title(code: str, fallback: str = "Pasted code") -> str:
    """Title from the first non-empty line, truncated for display."""
    first = next((line.strip() for line in code.split("\n") if line.strip()), fallback)
    if len(first) > TITLE_MAX_LENGTH:
        return first[: TITLE_MAX_LENGTH - 3] + "..."
    return first


class ContentLibrary:
    """Unified store of builtin, user and corpus practice items.

    Args:
        settings: Engine settings (library size limits).
    """

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or Settings()
        self._items: dict[str, CodeItem] = {}
        self._overlays: dict[str, BuiltinOverlay] = {}
        self._legacy_to_content: dict[str, str] = {}
        self._pool_cache: dict[str, list[Snippet]] = {}

    # Query API

    def get(self, language: str) -> list[Snippet]:
        """Candidate pool for a language."""
        lang = language.strip().lower()
        pool = self._pool_cache.get(lang)
        if pool is None:
            pool = [self._to_snippet(item) for item in self._items.values() if item.language == lang]
            self._pool_cache[lang] = pool
        return list(pool)

    def get_by_id(self, snippet_id: str) -> Snippet | None:
        """Look up by content id or legacy builtin id (case-insensitive)."""
        key = snippet_id.lower()
        cid = self._legacy_to_content.get(key, key)
        item = self._items.get(cid)
        return self._to_snippet(item) if item else None

    def content_id_for_legacy(self, legacy_id: str) -> str | None:
        return self._legacy_to_content.get(legacy_id.lower())

    def languages(self) -> list[str]:
        return sorted({item.language for item in self._items.values()})

    def count(self, language: str | None = None, source: ContentSource | None = None) -> int:
        return sum(
            1
            for item in self._items.values()
            if (language is None or item.language == language.strip().lower())
            and (source is None or item.source == source)
        )

    def __len__(self) -> int:
        return len(self._items)

    # Add flows

    def add_builtin(
        self,
        language: str,
        code: str,
        legacy_id: str | None = None,
        title: str = "",
        difficulty: int | None = None,
        topics: list[str] | None = None,
    ) -> AddResult:
        """Register a builtin snippet and its authored metadata."""
        if not code.strip():
            return AddResult(error="No code to add")

        lang = language.strip().lower()
        normalized = normalize(code)
        cid = content_id(lang, normalized)
        metrics = compute_metrics(normalized)

        overlay = BuiltinOverlay(
            content_id=cid,
            legacy_id=legacy_id or cid,
            difficulty=clamp_tier(difficulty) if difficulty is not None else estimate_difficulty(metrics),
            topics=list(topics or []),
        )
        self._overlays[cid] = overlay
        self._legacy_to_content[overlay.legacy_id.lower()] = cid

        if cid in self._items:
            existing = self._items[cid]
            if existing.source != ContentSource.BUILTIN:
                # Builtin wins: the overlay now applies to previously added content
                self._items[cid] = existing.model_copy(update={"source": ContentSource.BUILTIN})
            self._invalidate(lang)
            return AddResult(snippet=self._to_snippet(self._items[cid]), duplicate=True)

        item = CodeItem(
            id=cid,
            language=lang,
            source=ContentSource.BUILTIN,
            title=title or derive_title(normalized, f"{lang} snippet"),
            code=normalized,
            metrics=metrics,
        )
        self._store(item)
        return AddResult(snippet=self._to_snippet(item))

    def add_pasted(self, code: str, language: str) -> AddResult:
        """Add user-pasted code, returning the existing item on duplicates."""
        if not code or not code.strip():
            return AddResult(error="No code to add")
        if not language or not language.strip():
            return AddResult(error="Language is required")

        max_length = self.settings.library_max_paste_length
        if len(code) > max_length:
            return AddResult(
                error=f"Code exceeds {max_length} character limit ({len(code)} chars)"
            )

        lang = language.strip().lower()
        normalized = normalize(code)
        cid = content_id(lang, normalized)

        existing = self._items.get(cid)
        if existing is not None:
            logger.debug("content_duplicate", content_id=cid, source=existing.source.value)
            return AddResult(snippet=self._to_snippet(existing), duplicate=True)

        max_user = self.settings.library_max_user_items
        if self.count(source=ContentSource.USER) >= max_user:
            return AddResult(error=f"Library limit reached ({max_user} user items)")

        item = CodeItem(
            id=cid,
            language=lang,
            source=ContentSource.USER,
            title=derive_title(normalized),
            code=normalized,
            metrics=compute_metrics(normalized),
        )
        self._store(item)
        return AddResult(snippet=self._to_snippet(item))

    def import_items(self, language: str, codes: Iterable[str]) -> ImportResult:
        """Bulk-add corpus code for a language, skipping duplicates.

        Stops adding once the corpus limit is reached.
        """
        lang = language.strip().lower()
        remaining = self.settings.library_max_corpus_items - self.count(source=ContentSource.CORPUS)
        if remaining <= 0:
            return ImportResult(
                error=f"Corpus limit reached ({self.settings.library_max_corpus_items} items)"
            )

        result = ImportResult()
        for code in codes:
            if not code or not code.strip():
                result.skipped += 1
                continue
            normalized = normalize(code)
            cid = content_id(lang, normalized)
            if cid in self._items:
                result.duplicates += 1
                continue
            if result.added >= remaining:
                result.skipped += 1
                continue
            self._store(
                CodeItem(
                    id=cid,
                    language=lang,
                    source=ContentSource.CORPUS,
                    title=derive_title(normalized, f"{lang} snippet"),
                    code=normalized,
                    metrics=compute_metrics(normalized),
                ),
                log=False,
            )
            result.added += 1

        logger.info(
            "corpus_imported",
            language=lang,
            added=result.added,
            duplicates=result.duplicates,
            skipped=result.skipped,
        )
        return result

    # Internals

    def _store(self, item: CodeItem, log: bool = True) -> None:
        self._items[item.id] = item
        self._invalidate(item.language)
        if log:
            logger.info(
                "content_added",
                content_id=item.id,
                language=item.language,
                source=item.source.value,
            )

    def _invalidate(self, language: str) -> None:
        self._pool_cache.pop(language, None)

    def _to_snippet(self, item: CodeItem) -> Snippet:
        overlay = self._overlays.get(item.id)
        return Snippet(
            id=overlay.legacy_id if overlay else item.id,
            language=item.language,
            code=item.code,
            difficulty=overlay.difficulty if overlay else estimate_difficulty(item.metrics),
            title=item.title,
            topics=list(overlay.topics) if overlay else [],
            source=item.source,
            content_id=item.id,
        )
