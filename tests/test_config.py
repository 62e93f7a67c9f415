import unittest
import sys
import os
import json
import tempfile

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sign2sound.config.config_manager import (
    Config,
    DEFAULT_CONFIG_PATH,
    DEFAULTS,
    get_gesture_setting,
    get_labels,
    get_stabilization_setting,
    get_vocabulary_setting,
)


class TestConfig(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    def tearDown(self):
        # Config is a singleton; leave it pointing at the shipped file
        Config(str(DEFAULT_CONFIG_PATH))
        self.tmp.cleanup()

    def write(self, name, data):
        path = os.path.join(self.tmp.name, name)
        with open(path, 'w') as f:
            if isinstance(data, str):
                f.write(data)
            else:
                json.dump(data, f)
        return path

    def test_singleton(self):
        self.assertIs(Config(), Config())

    def test_missing_file_uses_defaults(self):
        cfg = Config(os.path.join(self.tmp.name, "missing.json"))
        self.assertEqual(cfg.get('stabilization', 'hold_frames'), 15)
        self.assertEqual(cfg.get('gestures', 'pinch', 'touch_ratio'), 0.15)
        self.assertEqual(cfg.get('action_map'), DEFAULTS['action_map'])

    def test_bad_json_uses_defaults(self):
        cfg = Config(self.write("bad.json", "{oops"))
        self.assertEqual(cfg.get('arbiter', 'spelling_cooldown_frames'), 45)

    def test_described_values(self):
        cfg = Config(self.write("c.json", {"stabilization": {"hold_frames": [20, "slower"]}}))
        self.assertEqual(cfg.get('stabilization', 'hold_frames'), 20)
        self.assertEqual(cfg.get('stabilization', 'missing', default=7), 7)
        self.assertEqual(cfg.get('nope', default=1), 1)

    def test_set_keeps_description_through_save(self):
        path = self.write("c.json", {"camera": {"index": [0, "Camera device index"]}})
        cfg = Config(path)
        cfg.set('camera', 'index', value=2)
        self.assertEqual(cfg.get('camera', 'index'), 2)
        self.assertTrue(cfg.save())
        with open(path) as f:
            self.assertEqual(json.load(f)["camera"]["index"], [2, "Camera device index"])

    def test_set_creates_sections(self):
        cfg = Config(os.path.join(self.tmp.name, "missing.json"))
        cfg.set('display', 'show_preview', value=False)
        cfg.set('extra', 'nested', 'value', value=3)
        self.assertFalse(cfg.get('display', 'show_preview'))
        self.assertEqual(cfg.get('extra', 'nested', 'value'), 3)

    def test_save_round_trip(self):
        path = os.path.join(self.tmp.name, "saved.json")
        cfg = Config(os.path.join(self.tmp.name, "missing.json"))
        cfg._config_path = path
        cfg.set('vocabulary', 'n_order', value=4)
        self.assertTrue(cfg.save())
        self.assertEqual(Config(path).get('vocabulary', 'n_order'), 4)

    def test_shipped_config_matches_defaults(self):
        cfg = Config(str(DEFAULT_CONFIG_PATH))

        def check(section, expected, keys):
            for key, value in expected.items():
                if isinstance(value, dict):
                    check(section, value, keys + (key,))
                else:
                    self.assertEqual(cfg.get(*keys, key), value, msg=".".join(keys + (key,)))

        check(None, DEFAULTS, ())

    def test_accessors_read_global_config(self):
        Config(str(DEFAULT_CONFIG_PATH))
        self.assertEqual(get_stabilization_setting('repeat_hold_frames'), 45)
        self.assertEqual(get_gesture_setting('pinch', 'touch_ratio'), 0.15)
        self.assertEqual(get_vocabulary_setting('n_order'), 5)
        self.assertEqual(get_vocabulary_setting('missing', default='x'), 'x')


class TestLabels(unittest.TestCase):
    def tearDown(self):
        Config(str(DEFAULT_CONFIG_PATH))

    def test_default_labels(self):
        labels = get_labels(Config(str(DEFAULT_CONFIG_PATH)))
        self.assertEqual(len(labels), 24)
        self.assertNotIn("J", labels)
        self.assertNotIn("Z", labels)

    def test_labels_file_overrides(self):
        with tempfile.TemporaryDirectory() as tmp:
            labels_path = os.path.join(tmp, "labels.json")
            with open(labels_path, 'w') as f:
                json.dump(["A", "B", "SPACE"], f)
            cfg_path = os.path.join(tmp, "config.json")
            with open(cfg_path, 'w') as f:
                json.dump({"labels": "XYZ", "labels_path": labels_path}, f)
            self.assertEqual(get_labels(Config(cfg_path)), ["A", "B", "SPACE"])

    def test_unreadable_labels_file_falls_back(self):
        with tempfile.TemporaryDirectory() as tmp:
            cfg_path = os.path.join(tmp, "config.json")
            with open(cfg_path, 'w') as f:
                json.dump({"labels": "XYZ", "labels_path": os.path.join(tmp, "nope.json")}, f)
            self.assertEqual(get_labels(Config(cfg_path)), ["X", "Y", "Z"])


if __name__ == '__main__':
    unittest.main()
