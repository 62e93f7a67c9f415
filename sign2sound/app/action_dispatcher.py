"""
Action Dispatcher for Sign2Sound

Decouples gesture recognition from what a gesture does. A committed gesture
is looked up in the configured action map and the matching editing action
is called on the spelling session.

Map entries look like {"gesture": "PINCH", "action": "backspace"}; actions
are the session methods listed in `ACTIONS`.
"""

from typing import Dict, List, Optional

from sign2sound.detectors.gesture_detectors import GestureLabel


# Session methods a gesture can trigger
ACTIONS = (
    "confirm_word",
    "accept_top_suggestion",
    "clear_or_undo",
    "backspace",
    "complete_sentence",
    "undo_last_word",
    "clear_word",
    "speak_current",
)

DEFAULT_ACTION_MAP = [
    {"gesture": "THUMB_UP", "action": "confirm_word"},
    {"gesture": "SMART_SELECT", "action": "accept_top_suggestion"},
    {"gesture": "THUMB_DOWN", "action": "clear_or_undo"},
    {"gesture": "PINCH", "action": "backspace"},
    {"gesture": "OPEN_PALM", "action": "complete_sentence"},
]


class ActionDispatcher:
    def __init__(self, session):
        """
        Initialize the dispatcher.

        Args:
            session: SpellingSession whose editing actions are triggered.
        """
        self.session = session
        self.gesture_map: Dict[str, str] = {}

    def load_map(self, action_map_list: Optional[List[Dict]]):
        """
        Build the gesture -> action lookup from the raw configuration list.
        Entries with an unknown gesture or action are skipped.
        """
        self.gesture_map.clear()
        if not action_map_list:
            return

        for entry in action_map_list:
            gesture = str(entry.get("gesture", "")).upper()
            action = entry.get("action")
            if gesture not in GestureLabel.__members__:
                print(f"⚠ Unknown gesture in action map: {gesture!r}")
                continue
            if action not in ACTIONS:
                print(f"⚠ Unknown action in action map: {action!r}")
                continue
            self.gesture_map[gesture] = action

        print(f"✓ Action Dispatcher loaded: {len(self.gesture_map)} gesture mappings.")

    def action_for(self, gesture) -> Optional[str]:
        key = gesture.value if isinstance(gesture, GestureLabel) else str(gesture)
        return self.gesture_map.get(key)

    def dispatch(self, gesture) -> Optional[str]:
        """
        Execute the action mapped to `gesture`.

        Returns:
            The action name that ran, or None when the gesture is unmapped.
        """
        action = self.action_for(gesture)
        if action is None:
            return None
        getattr(self.session, action)()
        return action
