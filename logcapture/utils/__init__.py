"""Support utilities for logcapture."""
