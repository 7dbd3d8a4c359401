"""CrowdSignal: confidence-scored stock signals from community posts."""

__version__ = "0.1.0"
