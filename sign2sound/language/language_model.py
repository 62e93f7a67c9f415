"""
Adaptive word prediction.

Vocabulary memory is three typed tables:
    core_words  word -> CoreWord        always-available words
    user_words  word -> WordStats       words the user finalized
    ngrams      context -> word -> count
where a context is the 1..N-1 words before a word, joined by one space.

Scoring (per candidate, summed over every place the candidate shows up):
    n-gram hit       100 * order + 10 * log(count + 1)
    generic fallback 2 * log(frequency + 1)
    recently used    +30 (user word used within `recency_seconds`)
    repeats          -500 if it equals the previous word, -50 for the one before
    exact prefix     +20 once, when the typed prefix is itself a candidate
"""

import math
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Sequence


CORE_DEFAULT_WORDS = (
    "HELLO", "YES", "NO", "GOOD", "BAD", "HELP", "STOP", "GO", "COME",
    "I", "YOU", "HE", "SHE", "IT", "WE", "THEY", "THE", "AND", "TO", "A",
)


def clean_word(word) -> str:
    return str(word or "").strip().upper()


@dataclass
class CoreWord:
    source: str = "default"


@dataclass
class WordStats:
    frequency: int = 0
    last_used: float = 0.0


@dataclass
class VocabularyMemory:
    core_words: Dict[str, CoreWord] = field(default_factory=dict)
    user_words: Dict[str, WordStats] = field(default_factory=dict)
    ngrams: Dict[str, Dict[str, int]] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "VocabularyMemory":
        return cls(stats={"created": time.time(), "source": "python"})

    @classmethod
    def from_dict(cls, raw) -> "VocabularyMemory":
        """
        Build memory from a decoded JSON object.

        Sections that are not mappings are replaced by empty ones, and
        entries that cannot be read are skipped, so any JSON value yields a
        usable memory.
        """
        memory = cls.empty()
        if not isinstance(raw, dict):
            return memory

        core = raw.get("core_words")
        if isinstance(core, dict):
            for word, info in core.items():
                source = info.get("source", "default") if isinstance(info, dict) else "default"
                memory.core_words[clean_word(word)] = CoreWord(source=str(source))

        user = raw.get("user_words")
        if isinstance(user, dict):
            for word, info in user.items():
                if not isinstance(info, dict):
                    continue
                # keys differing only by case collapse into one entry
                stats = memory.user_words.setdefault(clean_word(word), WordStats())
                stats.frequency += _as_int(info.get("frequency"))
                stats.last_used = max(stats.last_used, _as_float(info.get("last_used")))

        ngrams = raw.get("ngrams")
        if isinstance(ngrams, dict):
            for context, next_map in ngrams.items():
                if not isinstance(next_map, dict):
                    continue
                counts = memory.ngrams.setdefault(clean_word(context), {})
                for w, c in next_map.items():
                    w = clean_word(w)
                    counts[w] = counts.get(w, 0) + _as_int(c)

        stats = raw.get("stats")
        if isinstance(stats, dict):
            memory.stats = dict(stats)

        return memory

    def to_dict(self) -> Dict[str, Any]:
        return {
            "core_words": {w: {"source": c.source} for w, c in self.core_words.items()},
            "user_words": {
                w: {"frequency": s.frequency, "last_used": s.last_used}
                for w, s in self.user_words.items()
            },
            "ngrams": {ctx: dict(nxt) for ctx, nxt in self.ngrams.items()},
            "stats": dict(self.stats),
        }


def _as_float(value) -> float:
    # json.load accepts NaN and Infinity; treat them as missing
    try:
        number = float(value or 0.0)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _as_int(value) -> int:
    return int(_as_float(value))


class AdaptiveLanguageModel:
    """Owns the vocabulary memory and ranks next-word suggestions."""

    def __init__(
        self,
        memory: Optional[VocabularyMemory] = None,
        n_order: int = 5,
        recency_seconds: float = 300.0,
        clock: Callable[[], float] = time.time,
    ):
        self.memory = memory if memory is not None else VocabularyMemory.empty()
        self.n_order = int(n_order)
        self.recency_seconds = float(recency_seconds)
        self.clock = clock

    def ensure_core_defaults(self, words: Sequence[str] = CORE_DEFAULT_WORDS) -> int:
        """Add missing core words; returns how many were added."""
        added = 0
        for word in words:
            if word not in self.memory.core_words:
                self.memory.core_words[word] = CoreWord(source="default")
                added += 1
        return added

    def known_words(self) -> List[str]:
        """User words first, then core words, without duplicates."""
        return list(dict.fromkeys(list(self.memory.user_words) + list(self.memory.core_words)))

    def register_word(self, word: str) -> None:
        word = clean_word(word)
        if not word:
            return
        now = self.clock()
        stats = self.memory.user_words.get(word)
        if stats is None:
            self.memory.user_words[word] = WordStats(frequency=1, last_used=now)
        else:
            stats.frequency += 1
            stats.last_used = now

    def register_sequence(self, transcript: Sequence[str]) -> None:
        """Count the last word of `transcript` after each of its 1..N-1 word contexts."""
        history = [clean_word(w) for w in transcript]
        history = [w for w in history if w]
        if len(history) < 2:
            return

        target = history[-1]
        for length in range(1, self.n_order):
            if len(history) < length + 1:
                break
            context = " ".join(history[-(length + 1):-1])
            next_map = self.memory.ngrams.setdefault(context, {})
            next_map[target] = next_map.get(target, 0) + 1

    def compute_smart_predictions(self, prefix: str = "", history: Sequence[str] = (), top_k: int = 3) -> List[str]:
        """
        Rank completions of `prefix` given the finalized words in `history`.

        Longer matching contexts score a full tier (100 points per word of
        context) above shorter ones, so a rare continuation of a specific
        context beats a common continuation of a generic one.
        """
        return [word for word, _ in self.score_candidates(prefix, history)[:top_k]]

    def score_candidates(self, prefix: str = "", history: Sequence[str] = ()):
        """All scored candidates as (word, score), best first."""
        prefix = str(prefix or "").upper()
        hist = [clean_word(w) for w in (history or [])]
        hist = [w for w in hist if w]
        now = self.clock()
        candidates: Dict[str, float] = {}

        previous = hist[-1] if len(hist) >= 1 else None
        before_previous = hist[-2] if len(hist) >= 2 else None

        def add_score(word: str, base: float) -> None:
            word = clean_word(word)
            if not word:
                return
            if prefix and not word.startswith(prefix):
                return
            total = base
            stats = self.memory.user_words.get(word)
            if stats is not None and (now - stats.last_used) < self.recency_seconds:
                total += 30
            if word == previous:
                total -= 500
            if word == before_previous:
                total -= 50
            candidates[word] = candidates.get(word, 0.0) + total

        context_found = False
        for order in range(self.n_order - 1, 0, -1):
            if len(hist) < order:
                continue
            next_map = self.memory.ngrams.get(" ".join(hist[-order:]))
            if not next_map:
                continue
            tier = 100 * order
            for next_word, count in next_map.items():
                add_score(next_word, tier + math.log(count + 1) * 10)
                context_found = True

        if prefix or not context_found:
            for word in self.known_words():
                if candidates.get(word, 0.0) > 50:
                    continue
                if prefix and not word.startswith(prefix):
                    continue
                stats = self.memory.user_words.get(word)
                freq = stats.frequency if stats is not None else 0
                add_score(word, math.log(freq + 1) * 2)

        if prefix and prefix in candidates:
            candidates[prefix] += 20

        return sorted(candidates.items(), key=lambda item: item[1], reverse=True)


__all__ = [
    "CORE_DEFAULT_WORDS",
    "clean_word",
    "CoreWord",
    "WordStats",
    "VocabularyMemory",
    "AdaptiveLanguageModel",
]
