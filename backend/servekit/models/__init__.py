# Importing this package registers every model on Base.metadata
from servekit.models.user import User

__all__ = ["User"]
