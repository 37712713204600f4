"""Allow ``python -m oauth2cli``."""

from oauth2cli.app import main

main()
