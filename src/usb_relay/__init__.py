"""Driver and reconciliation daemon for CH341-based 8-channel USB relay boards."""

__version__ = "0.2.0"
