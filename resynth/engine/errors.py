"""Error taxonomy for spectrogram reconstruction.

Every error is fatal to the in-flight call: no partial waveform is returned.
"""


class ReconstructionError(Exception):
    """Base class for all reconstruction failures."""


class InvalidInput(ReconstructionError, ValueError):
    """Malformed magnitude matrix or configuration."""


class InvalidSpectrogramShape(InvalidInput):
    """Bin count inconsistent with an even frame size."""


class InsufficientSamples(InvalidInput):
    """Audio shorter than one analysis frame."""


class OperationCancelled(ReconstructionError):
    """Cancelled (or past its deadline) at an iteration boundary."""


class NumericInstability(ReconstructionError, ArithmeticError):
    """NaN or infinity in the magnitude or an intermediate waveform."""
