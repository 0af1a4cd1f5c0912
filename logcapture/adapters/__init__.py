"""
Adapters that feed host logging frameworks into a capture sink.
"""
