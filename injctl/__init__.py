"""Host-side client for the four-channel fuel injector test rig."""

__version__ = "0.1.0"
