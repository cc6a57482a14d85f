"""Packaged rig profiles."""
