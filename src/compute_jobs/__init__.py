"""Fan-out/fan-in arithmetic job coordinator."""

__version__ = "0.1.0"
