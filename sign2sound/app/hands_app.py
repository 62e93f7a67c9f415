#!/usr/bin/env python3
"""
Sign2Sound - live fingerspelling to words
Main Application

Reads the webcam, tracks one hand with MediaPipe and feeds the landmarks to
a spelling session running on its own worker thread. Letters accumulate into
words, gestures edit them, and the language model suggests completions.
"""

import argparse
import sys

import cv2
import mediapipe as mp

from sign2sound.app.frame_worker import FrameWorker
from sign2sound.app.spelling_session import EventKind, SessionEvent, SpellingSession
from sign2sound.config.config_manager import (
    Config,
    config,
    get_gesture_setting,
    get_labels,
    get_stabilization_setting,
    get_vocabulary_setting,
)
from sign2sound.detectors.letter_classifier import ClassifierShapeError, load_letter_classifier
from sign2sound.language.vocab_store import JsonFileVocabularyStore, open_language_model

# MediaPipe setup
mp_hands = mp.solutions.hands
mp_drawing = mp.solutions.drawing_utils

KEY_ACTIONS = {
    13: "confirm_word",            # Enter
    9: "accept_top_suggestion",    # Tab
    8: "backspace",                # Backspace
    127: "backspace",              # Backspace on macOS
    ord('u'): "undo_last_word",
    ord('c'): "clear_word",
    ord('s'): "speak_current",
}


class Sign2SoundApplication:
    """Main Sign2Sound application controller."""

    def __init__(self, camera_idx=None, weights_path=None):
        print("\n" + "=" * 60)
        print("Sign2Sound - live fingerspelling")
        print("=" * 60 + "\n")

        self.config = config

        labels = get_labels(config)
        weights_path = weights_path or config.get('classifier', 'weights_path')
        if not weights_path:
            raise RuntimeError("❌ No classifier weights configured (classifier.weights_path or --weights)")
        self.classifier = load_letter_classifier(weights_path, labels)

        store = JsonFileVocabularyStore(get_vocabulary_setting('path', default='vocab_memory.json'))
        self.language_model = open_language_model(
            store,
            seed_path=get_vocabulary_setting('seed_path'),
            n_order=get_vocabulary_setting('n_order', default=5),
            recency_seconds=get_vocabulary_setting('recency_seconds', default=300),
        )
        print(f"✓ Vocabulary ready: {len(self.language_model.known_words())} known words")

        self.session = SpellingSession.from_config(config, self.classifier, self.language_model, store)
        self.session.add_listener(self.on_event)
        self.worker = FrameWorker(self.session)
        print("✓ Spelling session initialized")
        print(f"  Letter hold: {get_stabilization_setting('hold_frames')} frames "
              f"(fast {get_stabilization_setting('fast_hold_frames')}, "
              f"repeat {get_stabilization_setting('repeat_hold_frames')})")
        print(f"  Gesture vote: {get_gesture_setting('buffer_size')} frames, "
              f"cooldown {get_gesture_setting('cooldown_frames')}")

        if camera_idx is None:
            camera_idx = config.get('camera', 'index', default=0)
        self.cap = cv2.VideoCapture(camera_idx)
        if not self.cap.isOpened():
            raise RuntimeError(f"❌ Could not open camera {camera_idx}")
        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, config.get('camera', 'width', default=640))
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, config.get('camera', 'height', default=480))
        self.cap.set(cv2.CAP_PROP_FPS, config.get('camera', 'fps', default=30))
        print(f"✓ Camera {camera_idx} opened")

        self.hands = mp_hands.Hands(
            max_num_hands=1,
            model_complexity=config.get('performance', 'model_complexity', default=1),
            min_detection_confidence=config.get('performance', 'min_detection_confidence', default=0.5),
            min_tracking_confidence=config.get('performance', 'min_tracking_confidence', default=0.5),
        )
        print("✓ MediaPipe Hands initialized (max_hands=1)")

        self.running = True
        self.show_preview = config.get('display', 'show_preview', default=True)
        self.unmirror = config.get('display', 'unmirror_preview', default=True)
        self.window_name = config.get('display', 'window_name', default='Sign2Sound')
        self.display = {"letter": "_", "confidence": 0.0, "progress": 0.0, "mode": "SPELLING", "hint": ""}

    def on_event(self, event: SessionEvent):
        """Session events arrive on the worker thread."""
        if event.kind == EventKind.DISPLAY:
            self.display = dict(event.payload)
        elif event.kind == EventKind.LETTER_COMMITTED:
            print(f"  + {event.payload['letter']}")
        elif event.kind == EventKind.WORD_FINALIZED:
            print(f"✓ {event.payload['source']}: {event.payload['word']}")
        elif event.kind == EventKind.GESTURE_RECOGNIZED:
            print(f"✋ Gesture: {event.payload['gesture']}")
        elif event.kind == EventKind.SPEAK:
            print(f"🔊 {event.payload['text']}")

    def run(self):
        """Main application loop."""
        self.print_controls()
        self.worker.start()
        try:
            while self.running and self.worker.running:
                ret, frame_bgr = self.cap.read()
                if not ret:
                    print("❌ Failed to read frame")
                    break

                frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)
                results = self.hands.process(frame_rgb)

                landmarks = None
                if results.multi_hand_landmarks:
                    hand = results.multi_hand_landmarks[0]
                    landmarks = [(lm.x, lm.y, lm.z) for lm in hand.landmark]
                    if self.show_preview:
                        mp_drawing.draw_landmarks(frame_bgr, hand, mp_hands.HAND_CONNECTIONS)

                self.worker.submit_frame(landmarks)

                if self.show_preview:
                    self.draw_overlay(frame_bgr)
                    cv2.imshow(self.window_name, frame_bgr)
                    k = cv2.waitKey(1) & 0xFF
                    if k == ord('q'):
                        self.running = False
                    elif k in KEY_ACTIONS:
                        self.worker.submit_action(KEY_ACTIONS[k])
        finally:
            self.cleanup()

    def draw_overlay(self, frame):
        if self.unmirror:
            frame[:] = cv2.flip(frame, 1)
        d = self.display
        lines = [
            f"[{d.get('mode', '')}] {d.get('letter', '_')} {d.get('confidence', 0.0):.2f}",
            f"Word: {self.session.current_word}",
            f"Text: {' '.join(self.session.transcript[-6:])}",
            f"Next: {' | '.join(self.session.suggestions)}",
            d.get('hint', ''),
        ]
        for i, line in enumerate(lines):
            cv2.putText(frame, line, (10, 30 + 28 * i), cv2.FONT_HERSHEY_SIMPLEX, 0.7, (0, 255, 0), 2)
        w = frame.shape[1]
        progress = max(0.0, min(1.0, float(d.get('progress', 0.0))))
        cv2.rectangle(frame, (10, frame.shape[0] - 20), (10 + int((w - 20) * progress), frame.shape[0] - 10),
                      (0, 200, 255), -1)

    def cleanup(self):
        """Clean up resources."""
        print("\n🧹 Cleaning up...")
        self.worker.stop()
        print(f"  Frames processed: {self.worker.frames_processed}, dropped: {self.worker.frames_dropped}, "
              f"errors: {self.worker.errors}")
        if self.cap:
            self.cap.release()
        if self.hands:
            self.hands.close()
        cv2.destroyAllWindows()
        print("✓ Sign2Sound stopped\n")

    def print_controls(self):
        print("\n" + "=" * 60)
        print("KEYBOARD CONTROLS")
        print("=" * 60)
        print("  Q - Quit application")
        print("  Enter - Confirm word       Tab - Accept top suggestion")
        print("  Backspace - Delete letter  U - Undo last word")
        print("  C - Clear word             S - Speak")
        print("\n" + "=" * 60)
        print("GESTURE CONTROLS")
        print("=" * 60)
        print("  👍 Thumb up - Confirm word")
        print("  🤟 Index + pinky - Accept top suggestion")
        print("  👎 Thumb down - Clear word / undo last word")
        print("  🤏 Pinch - Backspace")
        print("  ✋ Open palm - Complete sentence")
        print("=" * 60 + "\n")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Sign2Sound - live fingerspelling to words")
    parser.add_argument('--camera', type=int, default=None, help='Camera device index')
    parser.add_argument('--weights', type=str, default=None, help='Letter classifier weights (.npz)')
    parser.add_argument('--config', type=str, default=None, help='Path to config.json')
    parser.add_argument('--no-preview', action='store_true', help='Run without the preview window')
    parser.add_argument('--save-config', action='store_true',
                        help='Write the command-line overrides back to the config file')
    args = parser.parse_args()

    if args.config:
        Config(args.config)
    if args.camera is not None:
        config.set('camera', 'index', value=args.camera)
    if args.weights:
        config.set('classifier', 'weights_path', value=args.weights)
    if args.no_preview:
        config.set('display', 'show_preview', value=False)
    if args.save_config:
        config.save()

    try:
        app = Sign2SoundApplication(camera_idx=args.camera, weights_path=args.weights)
    except ClassifierShapeError as e:
        print(f"\n❌ Classifier does not match configuration: {e}")
        return 1
    except (RuntimeError, OSError) as e:
        print(f"\n❌ Error: {e}")
        return 1

    try:
        app.run()
    except KeyboardInterrupt:
        print("\n⚠ Interrupted by user")
    return 0


if __name__ == "__main__":
    sys.exit(main())
