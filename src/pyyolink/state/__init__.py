"""State layer.

This package is the single source of truth for how data from REST pulls,
MQTT pushes and set-command replies is merged into each device's cached
snapshot, and for the per-device gate that serializes that access.
"""
