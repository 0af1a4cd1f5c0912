"""
Core capture and assertion engine.

Contains the captured event model, the capture sink, matchers,
expectations, count policies, the assertion engine, failure rendering
and the capture session.
"""
