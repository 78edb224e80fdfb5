"""
Mock Engine and Screen for Testing.

Record what the installation sends to the synth engine and the screen.
"""

from typing import Dict, List


class RecordingSink:
    """Parameter sink that remembers every value it receives."""

    def __init__(self):
        self.params: Dict[str, float] = {}
        self.history: List[tuple] = []
        self.weather_pushes: List = []

    def set_param(self, name: str, value: float) -> None:
        self.params[name] = value
        self.history.append((name, value))

    def set_weather(self, state) -> None:
        self.weather_pushes.append(state)


class RecordingSurface:
    """Render surface that keeps drawn frames."""

    def __init__(self):
        self.frames: List = []

    def draw(self, frame) -> None:
        self.frames.append(frame)
