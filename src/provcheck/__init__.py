"""provcheck - verify explorer-published contract source against a pinned reference tree."""

__version__ = "0.1.0"
