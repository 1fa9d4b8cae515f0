"""Allow ``python -m paperlens.cli`` execution."""

from paperlens.cli.chat import main

main()
