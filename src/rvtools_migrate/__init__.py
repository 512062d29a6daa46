"""RVTools migration assessment and IBM Cloud sizing engine."""

__version__ = "0.1.0"
