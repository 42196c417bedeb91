"""RSVP Engine: text to timed, fixation-aligned slides for speed reading.

WHY: Rapid serial visual presentation shows one word (or a few) at a
time at a fixed point on screen. Doing that well needs more than
splitting on spaces: long words are broken up, punctuation earns a
pause, every slide needs a duration and a fixation letter, and a whole
book must be readable before it has been fully processed.

HOW: Three layers, each independently testable:
  core     — pure pipeline (tokenizer, ORP, timing, chunked processor,
             content-block adapter)
  session  — one loaded document, read by index, live speed/font changes
  surfaces — CLI (cli.py) and HTTP API (server/)

RULES:
- The core is pure in-memory transformation of strings and settings
- Configuration (RSVP_* env vars, .env) is read only by the outer layers
"""

__version__ = "0.1.0"
