"""
Exception hierarchy for the hand-driven particle cloud.
"""


class HandParticlesError(Exception):
    """Base class for all application errors."""


class DetectorError(HandParticlesError):
    """Hand landmark model failed to initialize or run."""


class ShapeError(HandParticlesError, KeyError):
    """Requested shape template is not registered."""

    def __str__(self):
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""
