import unittest
from unittest.mock import patch
import sys
import os

import numpy as np

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sign2sound.app.spelling_session import EventKind, Mode, SpellingSession
from sign2sound.detectors.gesture_detectors import GestureLabel, GestureRecognizer
from sign2sound.detectors.letter_classifier import LetterClassifier
from sign2sound.detectors.letter_stabilizer import LetterStabilizer
from sign2sound.language.language_model import AdaptiveLanguageModel, VocabularyMemory
from sign2sound.language.vocab_store import InMemoryVocabularyStore
from tests import hand_poses

LABELS = list("ABCDEFGHIKLMNOPQRSTUVWXY")


def always(letter, confidence=0.95):
    def predict(features):
        scores = np.zeros(len(LABELS))
        scores[LABELS.index(letter)] = confidence
        return scores
    return predict


def build_session(letter="D", store=None):
    classifier = LetterClassifier(always(letter), LABELS)
    stabilizer = LetterStabilizer(classifier=classifier,
                                  confidence_thresholds={"N": 0.75, "default": 0.6})
    lm = AdaptiveLanguageModel(VocabularyMemory.empty())
    lm.ensure_core_defaults()
    return SpellingSession(stabilizer, GestureRecognizer(), lm, store=store)


class TestModeArbitration(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryVocabularyStore()
        self.session = build_session(store=self.store)
        self.events = []
        self.session.add_listener(self.events.append)

    def run_frames(self, pose, count):
        return [self.session.process_frame(pose) for _ in range(count)]

    def test_letter_commits_after_hold(self):
        outcomes = self.run_frames(hand_poses.letter_pose(), 10)
        self.assertTrue(all(o.mode == Mode.SPELLING for o in outcomes))
        self.assertEqual([o.letter.committed for o in outcomes if o.letter.committed], ["D"])
        self.assertEqual(outcomes[-1].letter.committed, "D")
        self.assertEqual(self.session.current_word, "D")

        kinds = [e.kind for e in self.events]
        self.assertIn(EventKind.LETTER_COMMITTED, kinds)
        committed = [e for e in self.events if e.kind == EventKind.LETTER_COMMITTED][0]
        self.assertEqual(committed.payload["letter"], "D")

    def test_no_hand_resets_letters_but_not_gestures(self):
        self.run_frames(hand_poses.thumb_up(), 3)
        self.assertGreater(len(self.session.stabilizer.raw_buffer), 0)

        outcome = self.session.process_frame(None)
        self.assertFalse(outcome.hand_present)
        self.assertEqual(outcome.mode, Mode.SPELLING)
        self.assertEqual(len(self.session.stabilizer.raw_buffer), 0)
        self.assertEqual(len(self.session.gestures.debouncer.buffer), 3)

        display = [e for e in self.events if e.kind == EventKind.DISPLAY][-1]
        self.assertEqual(display.payload["letter"], "_")

    def test_gesture_commit_dispatches_action(self):
        outcomes = self.run_frames(hand_poses.thumb_up(), 7)
        self.assertEqual(outcomes[-1].gesture, GestureLabel.THUMB_UP)
        self.assertEqual(outcomes[-1].mode, Mode.GESTURE)
        # empty word: THUMB_UP confirms the top suggestion
        self.assertEqual(self.session.transcript, ["HELLO"])
        self.assertEqual(self.session.spelling_cooldown, 45)
        self.assertEqual(len(self.session.stabilizer.raw_buffer), 0)

        recognized = [e for e in self.events if e.kind == EventKind.GESTURE_RECOGNIZED]
        self.assertEqual([e.payload["gesture"] for e in recognized], ["THUMB_UP"])

    def test_spelling_suppressed_after_gesture(self):
        self.run_frames(hand_poses.thumb_up(), 7)
        outcomes = self.run_frames(hand_poses.letter_pose(), 45)
        self.assertTrue(all(o.mode == Mode.GESTURE for o in outcomes[:44]))
        self.assertTrue(all(o.letter is None for o in outcomes[:44]))
        self.assertEqual(outcomes[44].mode, Mode.SPELLING)

    def test_command_lock_skips_letter_classification(self):
        with patch.object(self.session.stabilizer, 'process',
                          wraps=self.session.stabilizer.process) as process:
            outcomes = self.run_frames(hand_poses.open_palm(), 6)
        # 4 of 10 frames look like a gesture from the 4th frame on
        self.assertEqual(process.call_count, 3)
        self.assertEqual([o.command_lock for o in outcomes], [False] * 3 + [True] * 3)
        self.assertTrue(all(o.mode == Mode.GESTURE for o in outcomes[3:]))
        self.assertEqual(self.session.hint, "Gesture ready (CMD LOCK)")

    def test_no_command_lock_while_spelling_a_word(self):
        self.session.letters = ["A"]
        with patch.object(self.session.stabilizer, 'process',
                          wraps=self.session.stabilizer.process) as process:
            outcomes = self.run_frames(hand_poses.open_palm(), 6)
        self.assertEqual(process.call_count, 6)
        self.assertFalse(any(o.command_lock for o in outcomes))

    def displays(self):
        return [e.payload for e in self.events if e.kind == EventKind.DISPLAY]

    def test_every_frame_updates_display(self):
        self.run_frames(hand_poses.open_palm(), 6)
        shown = self.displays()
        self.assertEqual(len(shown), 6)
        self.assertEqual([d["mode"] for d in shown], ["SPELLING"] * 3 + ["GESTURE"] * 3)
        self.assertEqual(shown[-1]["hint"], "Gesture ready (CMD LOCK)")
        self.assertEqual(shown[-1]["letter"], "_")

    def test_gesture_and_cooldown_frames_show_gesture_mode(self):
        self.run_frames(hand_poses.thumb_up(), 7)
        committed = self.displays()[-1]
        self.assertEqual(committed["mode"], "GESTURE")
        self.assertEqual(committed["hint"], "CONFIRMED: HELLO")

        self.events.clear()
        self.run_frames(hand_poses.letter_pose(), 3)
        shown = self.displays()
        self.assertEqual(len(shown), 3)
        self.assertTrue(all(d["mode"] == "GESTURE" for d in shown))

    def test_no_hand_frames_count_down_spelling_cooldown(self):
        self.run_frames(hand_poses.thumb_up(), 7)
        for _ in range(44):
            self.session.process_frame(None)
        self.assertEqual(self.session.process_frame(hand_poses.letter_pose()).mode, Mode.SPELLING)


class TestEditingActions(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryVocabularyStore()
        self.session = build_session(store=self.store)
        self.events = []
        self.session.add_listener(self.events.append)

    def type_word(self, word):
        self.session.letters = list(word)
        self.session.update_suggestions()

    def spoken(self):
        return [e.payload["text"] for e in self.events if e.kind == EventKind.SPEAK]

    def test_confirm_raw_word_learns_and_saves(self):
        self.type_word("hi")
        self.assertEqual(self.session.confirm_word(), "HI")
        self.assertEqual(self.session.transcript, ["HI"])
        self.assertEqual(self.session.letters, [])
        self.assertEqual(self.session.hint, "RAW INPUT: HI")
        self.assertEqual(self.spoken(), ["HI"])
        self.assertEqual(self.store.snapshot["user_words"]["HI"]["frequency"], 1)

        self.type_word("YO")
        self.session.confirm_word()
        self.assertEqual(self.session.language_model.memory.ngrams["HI"], {"YO": 1})
        self.assertEqual(self.store.snapshot["ngrams"]["HI"], {"YO": 1})

    def test_confirm_empty_word_uses_top_suggestion(self):
        self.assertEqual(self.session.confirm_word(), "HELLO")
        finalized = [e for e in self.events if e.kind == EventKind.WORD_FINALIZED][-1]
        self.assertEqual(finalized.payload, {"word": "HELLO", "source": "CONFIRMED"})

    def test_accept_top_suggestion_completes_prefix(self):
        self.type_word("HEL")
        self.assertEqual(self.session.suggestions[0], "HELLO")
        self.assertEqual(self.session.accept_top_suggestion(), "HELLO")
        self.assertEqual(self.session.hint, "AUTO-COMPLETE: HELLO")

    def test_accept_top_suggestion_falls_back_to_raw(self):
        self.type_word("QZX")
        self.assertEqual(self.session.suggestions, [])
        self.assertEqual(self.session.accept_top_suggestion(), "QZX")

    def test_accept_suggestion_at(self):
        self.type_word("HE")
        self.assertIsNone(self.session.accept_suggestion_at(5))
        chosen = self.session.suggestions[1]
        self.assertEqual(self.session.accept_suggestion_at(1), chosen)

    def test_backspace_refreshes_suggestions(self):
        self.type_word("HEX")
        self.assertEqual(self.session.suggestions, [])
        self.session.backspace()
        self.assertEqual(self.session.current_word, "HE")
        self.assertEqual(self.session.suggestions[0], "HE")

    def test_backspace_on_empty_word_does_nothing(self):
        self.session.backspace()
        self.assertEqual(self.session.letters, [])

    def test_clear_or_undo(self):
        self.type_word("YES")
        self.session.confirm_word()
        self.type_word("NO")
        self.session.clear_or_undo()
        self.assertEqual(self.session.current_word, "")
        self.assertEqual(self.session.transcript, ["YES"])
        self.assertEqual(self.session.hint, "Gesture THUMB_DOWN: clear word")

        self.session.clear_or_undo()
        self.assertEqual(self.session.transcript, [])
        self.assertEqual(self.session.hint, "Gesture THUMB_DOWN: undo word")

    def test_undo_with_empty_transcript(self):
        self.assertIsNone(self.session.undo_last_word())

    def test_complete_sentence_speaks_transcript(self):
        for word in ("I", "SEE", "YOU"):
            self.type_word(word)
            self.session.confirm_word()
        self.events.clear()
        self.session.complete_sentence()
        self.assertEqual(self.spoken(), ["I SEE YOU"])

    def test_speak_current(self):
        self.assertIsNone(self.session.speak_current())
        self.type_word("GO")
        self.assertEqual(self.session.speak_current(), "GO")

    def test_from_config(self):
        from sign2sound.config.config_manager import Config, DEFAULT_CONFIG_PATH
        cfg = Config(str(DEFAULT_CONFIG_PATH))
        classifier = LetterClassifier(always("A"), LABELS)
        session = SpellingSession.from_config(cfg, classifier, self.session.language_model)
        self.assertEqual(session.spelling_cooldown_frames, 45)
        self.assertEqual(session.top_k, 3)
        self.assertEqual(session.dispatcher.action_for(GestureLabel.PINCH), "backspace")
        self.assertEqual(session.gestures.debouncer.cooldown_frames, 20)


if __name__ == '__main__':
    unittest.main()
