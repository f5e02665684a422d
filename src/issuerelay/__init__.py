"""issuerelay package alias.

Lets users run `python -m issuerelay` and `import issuerelay` instead of the
longer `issuerelay_client` import name.
"""

# Re-export the client API
from issuerelay_client import *  # noqa: F403, F401
