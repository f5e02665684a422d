"""Entry point for python -m issuerelay command.

This module is an alias to `python -m issuerelay_client`.
"""

from issuerelay_client.__main__ import main

if __name__ == "__main__":
  main()
