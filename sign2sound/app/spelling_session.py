"""
Spelling session.

One session owns everything that changes per frame: the letter stabilizer,
the gesture recognizer, the word in progress, the transcript and the
language model. All mutation happens in `process_frame` or in the editing
actions, which must be called from the same thread (see FrameWorker).

Mode arbitration per frame:
    no hand                 -> reset letter buffers, SPELLING display
    gesture committed       -> reset letter buffers, dispatch, suppress spelling
    gesture likely + no word -> GESTURE (command lock), letters not classified
    spelling suppressed     -> GESTURE
    otherwise               -> SPELLING, frame goes to the letter stabilizer
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

from sign2sound.app.action_dispatcher import ActionDispatcher, DEFAULT_ACTION_MAP
from sign2sound.detectors.gesture_detectors import GestureLabel, GestureRecognizer
from sign2sound.detectors.letter_stabilizer import LetterStabilizer, LetterUpdate, NO_LETTER
from sign2sound.language.language_model import AdaptiveLanguageModel, clean_word
from sign2sound.language.vocab_store import VocabularyStore


class Mode(str, Enum):
    SPELLING = "SPELLING"
    GESTURE = "GESTURE"


class EventKind(str, Enum):
    LETTER_COMMITTED = "letter_committed"
    WORD_FINALIZED = "word_finalized"
    SUGGESTIONS_UPDATED = "suggestions_updated"
    GESTURE_RECOGNIZED = "gesture_recognized"
    SPEAK = "speak"
    DISPLAY = "display"


@dataclass
class SessionEvent:
    kind: EventKind
    payload: Dict[str, Any] = field(default_factory=dict)


@dataclass
class FrameOutcome:
    """What the arbiter decided for one frame."""
    mode: Mode
    hand_present: bool = True
    gesture: Optional[GestureLabel] = None
    command_lock: bool = False
    letter: Optional[LetterUpdate] = None


class SpellingSession:
    def __init__(
        self,
        stabilizer: LetterStabilizer,
        gestures: GestureRecognizer,
        language_model: AdaptiveLanguageModel,
        store: Optional[VocabularyStore] = None,
        spelling_cooldown_frames: int = 45,
        top_k: int = 3,
        action_map: Optional[List[Dict]] = None,
    ):
        self.stabilizer = stabilizer
        self.gestures = gestures
        self.language_model = language_model
        self.store = store
        self.spelling_cooldown_frames = int(spelling_cooldown_frames)
        self.top_k = int(top_k)

        self.dispatcher = ActionDispatcher(self)
        self.dispatcher.load_map(DEFAULT_ACTION_MAP if action_map is None else action_map)

        self.letters: List[str] = []
        self.transcript: List[str] = []
        self.suggestions: List[str] = []
        self.spelling_cooldown = 0
        self.mode = Mode.SPELLING
        self.hint = "Gesture: none"

        self._listeners: List[Callable[[SessionEvent], None]] = []
        self.update_suggestions()

    @classmethod
    def from_config(cls, cfg, classifier, language_model, store=None) -> "SpellingSession":
        return cls(
            stabilizer=LetterStabilizer.from_config(cfg, classifier),
            gestures=GestureRecognizer.from_config(cfg),
            language_model=language_model,
            store=store,
            spelling_cooldown_frames=cfg.get('arbiter', 'spelling_cooldown_frames', default=45),
            top_k=cfg.get('vocabulary', 'suggestion_top_k', default=3),
            action_map=cfg.get('action_map', default=None),
        )

    # Events

    def add_listener(self, listener: Callable[[SessionEvent], None]) -> None:
        self._listeners.append(listener)

    def emit(self, kind: EventKind, **payload) -> None:
        event = SessionEvent(kind, payload)
        for listener in self._listeners:
            listener(event)

    # State

    @property
    def current_word(self) -> str:
        return "".join(self.letters)

    def set_hint(self, text: str) -> None:
        self.hint = text

    def update_suggestions(self) -> List[str]:
        self.suggestions = self.language_model.compute_smart_predictions(
            self.current_word, self.transcript, self.top_k
        )
        self.emit(EventKind.SUGGESTIONS_UPDATED, suggestions=list(self.suggestions))
        return self.suggestions

    # Frame processing / mode arbitration

    def process_frame(self, landmarks: Optional[Iterable]) -> FrameOutcome:
        """
        Handle one frame of landmarks; `None` means no hand was detected.
        """
        if self.spelling_cooldown > 0:
            self.spelling_cooldown -= 1

        if landmarks is None:
            self.stabilizer.reset()
            self.mode = Mode.SPELLING
            self.set_hint("Gesture: none")
            self._emit_display(LetterUpdate())
            return FrameOutcome(mode=Mode.SPELLING, hand_present=False)

        gesture = self.gestures.update_and_check(landmarks)
        if gesture is not None:
            self.spelling_cooldown = self.spelling_cooldown_frames
            self.stabilizer.reset()
            self.mode = Mode.GESTURE
            self.emit(EventKind.GESTURE_RECOGNIZED, gesture=gesture.value)
            self.dispatcher.dispatch(gesture)
            self._emit_display(LetterUpdate())
            return FrameOutcome(mode=Mode.GESTURE, gesture=gesture)

        command_lock = self.gestures.is_potential_gesture() and self.current_word == ""
        if command_lock or self.spelling_cooldown > 0:
            self.mode = Mode.GESTURE
            if command_lock:
                self.set_hint("Gesture ready (CMD LOCK)")
            self._emit_display(LetterUpdate())
            return FrameOutcome(mode=Mode.GESTURE, command_lock=command_lock)

        self.mode = Mode.SPELLING
        last_letter = self.letters[-1] if self.letters else None
        update = self.stabilizer.process(landmarks, last_letter)
        if update.committed is not None:
            self.letters.append(update.committed)
            self.emit(EventKind.LETTER_COMMITTED, letter=update.committed, progress=update.progress)
            self.update_suggestions()
        self._emit_display(update)
        return FrameOutcome(mode=Mode.SPELLING, letter=update)

    def _emit_display(self, update: LetterUpdate) -> None:
        self.emit(
            EventKind.DISPLAY,
            letter=update.letter or NO_LETTER,
            confidence=update.confidence,
            progress=update.progress,
            mode=self.mode.value,
            hint=self.hint,
        )

    # Editing actions

    def finalize_word(self, raw_word: str, source_tag: str = "WORD", speak: bool = True) -> Optional[str]:
        """Append a word to the transcript, learn from it and persist the vocabulary."""
        word = clean_word(raw_word)
        if not word:
            return None

        self.transcript.append(word)
        self.language_model.register_word(word)
        self.language_model.register_sequence(self.transcript)
        if self.store is not None:
            self.store.save(self.language_model.memory)

        self.letters = []
        self.update_suggestions()
        self.set_hint(f"{source_tag}: {word}")
        self.emit(EventKind.WORD_FINALIZED, word=word, source=source_tag)
        if speak:
            self.emit(EventKind.SPEAK, text=word)
        return word

    def confirm_word(self) -> Optional[str]:
        if self.current_word:
            return self.finalize_word(self.current_word, "RAW INPUT")
        if self.suggestions:
            return self.finalize_word(self.suggestions[0], "CONFIRMED")
        return None

    def accept_top_suggestion(self) -> Optional[str]:
        if self.suggestions:
            return self.finalize_word(self.suggestions[0], "AUTO-COMPLETE")
        if self.current_word:
            return self.finalize_word(self.current_word, "RAW INPUT")
        return None

    def accept_suggestion_at(self, index: int) -> Optional[str]:
        if not 0 <= index < len(self.suggestions):
            return None
        return self.finalize_word(self.suggestions[index], "SELECTED")

    def backspace(self) -> None:
        if not self.letters:
            return
        self.letters.pop()
        self.update_suggestions()
        self.set_hint("Edited current word")

    def undo_last_word(self) -> Optional[str]:
        if not self.transcript:
            return None
        removed = self.transcript.pop()
        self.update_suggestions()
        self.set_hint(f"UNDO: {removed}")
        return removed

    def clear_word(self) -> None:
        if not self.letters:
            return
        self.letters = []
        self.update_suggestions()
        self.set_hint("Cleared current word")

    def clear_or_undo(self) -> None:
        if self.current_word:
            self.clear_word()
            self.set_hint("Gesture THUMB_DOWN: clear word")
        else:
            self.undo_last_word()
            self.set_hint("Gesture THUMB_DOWN: undo word")

    def complete_sentence(self) -> None:
        if self.transcript:
            self.emit(EventKind.SPEAK, text=" ".join(self.transcript))
        self.set_hint("Gesture OPEN_PALM: sentence completed")

    def speak_current(self) -> Optional[str]:
        text = self.current_word or " ".join(self.transcript)
        if not text:
            return None
        self.emit(EventKind.SPEAK, text=text)
        return text
