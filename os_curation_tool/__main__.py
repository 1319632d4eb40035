"""Module entrypoint for `python -m os_curation_tool`.

Delegates to the CLI implementation.
"""

from .cli import main

main()
