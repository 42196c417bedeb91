"""Core text-to-slide pipeline.

WHY: The core package is the pure, in-memory heart of the engine. It
turns strings and reader settings into timed slides and knows nothing
about HTTP, files or sessions, so every surface (CLI, API, tests) can
drive it the same way.

HOW: models.py defines the dataclasses, tokenizer.py and orp.py build
untimed slides, timing.py times and summarizes them, chunked.py runs the
same pipeline lazily over large text, content.py adapts structured
blocks, and pipeline.py is the public entry point.

RULES:
- No module here imports rsvp_engine.config; settings arrive as arguments
- Degenerate input degrades to an empty result, never an exception
- Slides are only mutated in place by rescaling and offset recalculation
"""
