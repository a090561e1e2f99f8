"""Packaged configuration resources for :mod:`loopwatch`."""
