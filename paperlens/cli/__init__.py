"""Command-line interface.

- ``python -m paperlens.cli ask <pdf> <question>`` -- stream an answer
- ``python -m paperlens.cli brief <pdf>`` -- structured paper brief
- ``python -m paperlens.cli models`` -- list the provider's models
- ``python -m paperlens.cli ping`` -- test the provider connection
- ``python -m paperlens.cli info <pdf>`` -- document metadata and token estimate

Heavy imports are deferred inside each command so ``--help`` stays fast.
"""
