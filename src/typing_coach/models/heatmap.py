"""Per-character mistake tracking and symbol-group classification."""

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field

DEFAULT_BUFFER_CAPACITY = 40


class SymbolGroup(StrEnum):
    """Coarse character classes used to aggregate weaknesses."""

    LETTER = "letter"
    DIGIT = "digit"
    BRACKET = "bracket"  # { } ( ) [ ] < >
    QUOTE = "quote"  # ' " `
    OPERATOR = "operator"  # + - * / % = ! & | ^ ~
    PUNCTUATION = "punctuation"  # ; : , . ?
    WHITESPACE = "whitespace"  # space, tab
    SPECIAL = "special"  # # @ $ _ \
    OTHER = "other"


_GROUP_BY_CHAR: dict[str, SymbolGroup] = {
    **{c: SymbolGroup.BRACKET for c in "{}()[]<>"},
    **{c: SymbolGroup.QUOTE for c in "'\"`"},
    **{c: SymbolGroup.OPERATOR for c in "+-*/%=!&|^~"},
    **{c: SymbolGroup.PUNCTUATION for c in ";:,.?"},
    **{c: SymbolGroup.WHITESPACE for c in " \t"},
    **{c: SymbolGroup.SPECIAL for c in "#@$_\\"},
}


def get_symbol_group(c: str) -> SymbolGroup:
    """Classify a single character into its symbol group."""
    group = _GROUP_BY_CHAR.get(c)
    if group is not None:
        return group
    if c.isdigit():
        return SymbolGroup.DIGIT
    if c.isalpha():
        return SymbolGroup.LETTER
    return SymbolGroup.OTHER


def _is_symbol(c: object) -> bool:
    return isinstance(c, str) and len(c) == 1


class MistakeRecord(BaseModel):
    """Hit/miss counters for a single expected character."""

    hits: int = Field(default=0, ge=0)
    misses: int = Field(default=0, ge=0)
    last_missed_at: datetime | None = None
    # What was typed instead: wrong char -> count
    confused_with: dict[str, int] = Field(default_factory=dict)
    # Oldest first; True = hit
    recent_attempts: list[bool] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return self.hits + self.misses

    @property
    def error_rate(self) -> float:
        total = self.total
        return self.misses / total if total > 0 else 0.0

    @property
    def top_confusion(self) -> str | None:
        if not self.confused_with:
            return None
        return max(self.confused_with.items(), key=lambda kv: kv[1])[0]

    def push_attempt(self, hit: bool, capacity: int) -> None:
        self.recent_attempts.append(hit)
        overflow = len(self.recent_attempts) - capacity
        if overflow > 0:
            del self.recent_attempts[:overflow]


class CharWeakness(BaseModel):
    """Weakness info for a single character."""

    character: str
    error_rate: float
    total_attempts: int
    total_misses: int
    group: SymbolGroup
    top_confusion: str | None = None


class GroupWeakness(BaseModel):
    """Weakness info for a group of characters (e.g. all brackets)."""

    group: SymbolGroup
    error_rate: float
    total_attempts: int
    total_misses: int
    characters: list[str] = Field(default_factory=list)


class MistakeHeatmap(BaseModel):
    """Per-character mistake frequency, keyed by the expected character.

    Unknown symbols read as zero and invalid input is ignored; nothing here
    raises on sparse data.
    """

    records: dict[str, MistakeRecord] = Field(default_factory=dict)
    buffer_capacity: int = Field(default=DEFAULT_BUFFER_CAPACITY, ge=1)

    def record_hit(self, expected: str) -> None:
        """Record a correctly typed character."""
        if not _is_symbol(expected):
            return
        record = self._get_or_create(expected)
        record.hits += 1
        record.push_attempt(True, self.buffer_capacity)

    def record_miss(self, expected: str, actual: str | None = None) -> None:
        """Record an incorrectly typed character and what was typed instead."""
        if not _is_symbol(expected):
            return
        record = self._get_or_create(expected)
        record.misses += 1
        record.last_missed_at = datetime.now()
        record.push_attempt(False, self.buffer_capacity)

        if _is_symbol(actual):
            record.confused_with[actual] = record.confused_with.get(actual, 0) + 1

    def get_error_rate(self, c: str) -> float:
        """Error rate for a character (0.0 = perfect, 1.0 = always wrong)."""
        record = self.records.get(c)
        if record is None:
            return 0.0
        return record.error_rate

    def get_recent_error_rate(self, c: str, window: int = 20) -> float:
        """Error rate over the last ``window`` attempts of the rolling buffer."""
        record = self.records.get(c)
        if record is None or window <= 0:
            return 0.0
        tail = record.recent_attempts[-window:]
        if not tail:
            return 0.0
        return sum(1 for hit in tail if not hit) / len(tail)

    def get_weakest(self, count: int = 10, min_attempts: int = 5) -> list[CharWeakness]:
        """Top ``count`` weakest characters with at least ``min_attempts`` attempts.

        Sorted by error rate descending, ties broken by raw miss count.
        """
        weaknesses = [
            CharWeakness(
                character=c,
                error_rate=record.error_rate,
                total_attempts=record.total,
                total_misses=record.misses,
                group=get_symbol_group(c),
                top_confusion=record.top_confusion,
            )
            for c, record in self.records.items()
            if record.total >= min_attempts and record.misses > 0
        ]
        weaknesses.sort(key=lambda w: (-w.error_rate, -w.total_misses))
        return weaknesses[:max(0, count)]

    def get_weakest_groups(self, min_attempts: int = 10) -> list[GroupWeakness]:
        """Aggregated error rates by symbol group, weakest first.

        Letters are left out; they are rarely the problem when typing code.
        """
        totals: dict[SymbolGroup, list] = {}
        for c, record in self.records.items():
            group = get_symbol_group(c)
            if group == SymbolGroup.LETTER:
                continue
            entry = totals.setdefault(group, [0, 0, []])
            entry[0] += record.hits
            entry[1] += record.misses
            entry[2].append(c)

        groups = []
        for group, (hits, misses, characters) in totals.items():
            total = hits + misses
            if total < min_attempts or misses == 0:
                continue
            groups.append(
                GroupWeakness(
                    group=group,
                    error_rate=misses / total,
                    total_attempts=total,
                    total_misses=misses,
                    characters=characters,
                )
            )
        groups.sort(key=lambda g: (-g.error_rate, -g.total_misses))
        return groups

    def get_weak_char_set(self, threshold: float = 0.15, min_attempts: int = 5) -> set[str]:
        """Flat set of weak characters (legacy selector input)."""
        return {
            c
            for c, record in self.records.items()
            if record.total >= min_attempts and record.error_rate >= threshold
        }

    def prune(self) -> None:
        """Trim every rolling buffer to capacity. Idempotent."""
        for record in self.records.values():
            overflow = len(record.recent_attempts) - self.buffer_capacity
            if overflow > 0:
                del record.recent_attempts[:overflow]

    def _get_or_create(self, c: str) -> MistakeRecord:
        record = self.records.get(c)
        if record is None:
            record = MistakeRecord()
            self.records[c] = record
        return record
