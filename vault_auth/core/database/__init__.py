from .connection import Database
from .credential_store import CredentialStore, SqlCredentialStore, InMemoryCredentialStore

__all__ = ["Database", "CredentialStore", "SqlCredentialStore", "InMemoryCredentialStore"]
