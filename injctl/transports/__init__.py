"""Byte-stream transports to the rig."""
