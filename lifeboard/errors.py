"""Exceptions raised across the lifeboard core."""
import sqlite3


class ConfigError(Exception):
    """Raised when configuration is invalid or unreadable."""
    pass


class ValidationError(Exception):
    """Raised when an input field fails its constraints."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NotFound(Exception):
    """Raised when a referenced row does not exist."""

    def __init__(self, entity: str, entity_id: int):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


# Store failures propagate as the driver raised them.
StoreError = sqlite3.Error
