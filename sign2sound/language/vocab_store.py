"""
Vocabulary persistence.

The learned memory is written as one JSON snapshot after every finalized
word. Writes go to a temporary file in the same directory which then
replaces the target, so a crash never leaves a half-written file.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from sign2sound.language.language_model import AdaptiveLanguageModel, VocabularyMemory


class VocabularyStore:
    """Load/save interface; `load` returns None when nothing usable is stored."""

    def load(self) -> Optional[VocabularyMemory]:
        raise NotImplementedError

    def save(self, memory: VocabularyMemory) -> bool:
        raise NotImplementedError


class JsonFileVocabularyStore(VocabularyStore):
    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[VocabularyMemory]:
        raw = read_json(self.path)
        if raw is None:
            return None
        return VocabularyMemory.from_dict(raw)

    def save(self, memory: VocabularyMemory) -> bool:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(prefix=self.path.name, suffix=".tmp", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, 'w', encoding='utf-8') as f:
                    json.dump(memory.to_dict(), f, indent=2)
                os.replace(tmp_path, self.path)
            except BaseException:
                if os.path.exists(tmp_path):
                    os.unlink(tmp_path)
                raise
            return True
        except OSError as e:
            print(f"⚠ Could not save vocabulary memory to {self.path}: {e}")
            return False


class InMemoryVocabularyStore(VocabularyStore):
    """Keeps the last saved snapshot as a plain dict (tests, dry runs)."""

    def __init__(self, snapshot: Optional[dict] = None):
        self.snapshot = snapshot

    def load(self) -> Optional[VocabularyMemory]:
        if self.snapshot is None:
            return None
        return VocabularyMemory.from_dict(self.snapshot)

    def save(self, memory: VocabularyMemory) -> bool:
        self.snapshot = json.loads(json.dumps(memory.to_dict()))
        return True


def read_json(path: Union[str, Path, None]):
    """Decoded JSON at `path`, or None when missing or unreadable."""
    if not path:
        return None
    path = Path(path)
    if not path.exists():
        return None
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        print(f"⚠ Failed to read vocabulary file {path}: {e}")
        return None


def load_vocabulary(store: VocabularyStore, seed_path: Union[str, Path, None] = None) -> VocabularyMemory:
    """
    Stored memory if any, else the seed snapshot, else an empty memory.
    Never raises on bad data.
    """
    memory = store.load()
    if memory is not None:
        print("✓ Loaded vocabulary memory")
        return memory

    seed = read_json(seed_path)
    if seed is not None:
        print(f"✓ Loaded seed vocabulary from {seed_path}")
        return VocabularyMemory.from_dict(seed)

    print("  No stored vocabulary, starting empty")
    return VocabularyMemory.empty()


def open_language_model(
    store: VocabularyStore,
    seed_path: Union[str, Path, None] = None,
    n_order: int = 5,
    recency_seconds: float = 300.0,
) -> AdaptiveLanguageModel:
    """Load memory, add missing core words and write the result back once."""
    model = AdaptiveLanguageModel(
        load_vocabulary(store, seed_path),
        n_order=n_order,
        recency_seconds=recency_seconds,
    )
    model.ensure_core_defaults()
    store.save(model.memory)
    return model


__all__ = [
    "VocabularyStore",
    "JsonFileVocabularyStore",
    "InMemoryVocabularyStore",
    "read_json",
    "load_vocabulary",
    "open_language_model",
]
