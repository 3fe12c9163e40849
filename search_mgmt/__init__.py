"""Azure AI Search management client.

Manages ``Microsoft.Search`` services through Azure Resource Manager:
provider registration, service create/scale/delete, and admin and
query API keys.  Asynchronous operations are awaited with a reusable
provisioning poller.
"""

__version__ = "0.1.0"
