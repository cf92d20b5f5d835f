"""Allow ``python -m wanna2play``."""

from .cli import main

main()
