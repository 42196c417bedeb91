"""Package entry point for ``python -m rsvp_engine``.

WHY: Users run the engine as ``python -m rsvp_engine book.txt``. Python's
``-m`` flag looks for ``__main__.py`` inside the package and executes it.

HOW: Delegates to the CLI's main() function.
"""

from rsvp_engine.cli import main

if __name__ == "__main__":
    main()
