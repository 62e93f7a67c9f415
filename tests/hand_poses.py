"""Synthetic 21-point hands for the tests.

Image-style coordinates: x to the right, y downwards, wrist near the bottom.
Palm size (wrist to middle MCP) is 0.22.
"""

import numpy as np

WRIST = np.array([0.5, 0.8, 0.0])

MCP = {
    'index': np.array([0.44, 0.60, 0.0]),
    'middle': np.array([0.50, 0.58, 0.0]),
    'ring': np.array([0.56, 0.60, 0.0]),
    'pinky': np.array([0.61, 0.63, 0.0]),
}

THUMB_BASE = [
    np.array([0.42, 0.75, 0.0]),  # CMC
    np.array([0.38, 0.70, 0.0]),  # MCP
    np.array([0.35, 0.66, 0.0]),  # IP
]

FINGER_ORDER = ('index', 'middle', 'ring', 'pinky')


def _direction(finger):
    d = MCP[finger] - WRIST
    return d / np.linalg.norm(d)


def finger_points(finger, state):
    """PIP, DIP, TIP for a finger that is 'extended', 'half' or 'folded'."""
    mcp = MCP[finger]
    u = _direction(finger)
    if state == 'extended':
        return [mcp + u * 0.05, mcp + u * 0.09, mcp + u * 0.13]
    if state == 'half':
        return [mcp + u * 0.03, mcp + u * 0.04, mcp + u * 0.05]
    bend = np.array([0.0, 0.0, -0.03])
    return [mcp + u * 0.04 + bend, mcp + u * 0.01 + bend, mcp - u * 0.06 + bend]


def make_hand(thumb_tip, index='folded', middle='folded', ring='folded', pinky='folded'):
    """Build a (21, 3) landmark array."""
    states = {'index': index, 'middle': middle, 'ring': ring, 'pinky': pinky}
    pts = [WRIST] + THUMB_BASE + [np.asarray(thumb_tip, dtype=float)]
    for finger in FINGER_ORDER:
        pts.append(MCP[finger])
        pts.extend(finger_points(finger, states[finger]))
    return np.array(pts, dtype=float)


def open_palm():
    return make_hand([0.30, 0.60, 0.0], 'extended', 'extended', 'extended', 'extended')


def thumb_up():
    return make_hand([0.30, 0.55, 0.0])


def thumb_down():
    return make_hand([0.30, 0.95, 0.0])


def smart_select():
    return make_hand([0.30, 0.60, 0.0], index='extended', pinky='extended')


def pinch():
    index_tip = finger_points('index', 'half')[2]
    return make_hand(index_tip + np.array([0.01, 0.0, 0.0]), index='half')


def fist():
    """Folded fingers, thumb tucked against the index base: no gesture."""
    return make_hand([0.42, 0.62, 0.0])


def letter_pose():
    """A spelling pose that matches no gesture rule (index and middle up)."""
    return make_hand([0.45, 0.64, 0.0], index='extended', middle='extended')
