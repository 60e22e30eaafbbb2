"""Allow ``python -m certyaml``."""

from certyaml.cli.main import main

main()
