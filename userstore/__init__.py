__version__ = "0.1.0"

from .database import User
from .repository import NewUser, UserCreationError, UserRepository

__all__ = ["User", "NewUser", "UserCreationError", "UserRepository", "__version__"]
