"""
Configuration management for MDB_PERMISSIONS.

Every value can be passed directly or picked up from the environment.
"""

import os

from .constants import DEFAULT_ID_FIELD, DEFAULT_OWNER_FIELD
from .exceptions import ConfigurationError


class PermissionsConfig:
    """
    Permission engine configuration.

    Example:
        # Using environment variables
        config = PermissionsConfig()
        config.validate()

        # Or using direct parameters
        config = PermissionsConfig(
            mongo_uri="mongodb://localhost:27017",
            db_name="my_db",
            owner_field="created_by",
        )
    """

    def __init__(
        self,
        mongo_uri: str | None = None,
        db_name: str | None = None,
        id_field: str | None = None,
        owner_field: str | None = None,
        collection_prefix: str | None = None,
    ):
        """
        Initialize configuration.

        Args:
            mongo_uri: MongoDB connection URI (defaults to MONGO_URI env var)
            db_name: Database name (defaults to DB_NAME env var)
            id_field: Domain object id field used by object filters
                (defaults to PERMISSIONS_ID_FIELD or "id")
            owner_field: Domain object owner field used by owner grants
                (defaults to PERMISSIONS_OWNER_FIELD or "owner")
            collection_prefix: Prefix for the permission collections
                (defaults to PERMISSIONS_COLLECTION_PREFIX or "")
        """
        self.mongo_uri = mongo_uri or os.getenv("MONGO_URI", "")
        self.db_name = db_name or os.getenv("DB_NAME", "")
        self.id_field = id_field or os.getenv("PERMISSIONS_ID_FIELD", DEFAULT_ID_FIELD)
        self.owner_field = owner_field or os.getenv("PERMISSIONS_OWNER_FIELD", DEFAULT_OWNER_FIELD)
        if collection_prefix is None:
            collection_prefix = os.getenv("PERMISSIONS_COLLECTION_PREFIX", "")
        self.collection_prefix = collection_prefix

    def collection_name(self, name: str) -> str:
        """Return the prefixed name of a permission collection."""
        return f"{self.collection_prefix}{name}"

    def validate(self, require_database: bool = False) -> None:
        """
        Validate configuration values.

        Args:
            require_database: Also require mongo_uri and db_name

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        if require_database:
            if not self.mongo_uri:
                raise ConfigurationError(
                    "mongo_uri is required (set MONGO_URI environment variable or pass directly)",
                    config_key="mongo_uri",
                )
            if not self.db_name:
                raise ConfigurationError(
                    "db_name is required (set DB_NAME environment variable or pass directly)",
                    config_key="db_name",
                )

        if not self.id_field:
            raise ConfigurationError("id_field must not be empty", config_key="id_field")

        if not self.owner_field:
            raise ConfigurationError("owner_field must not be empty", config_key="owner_field")

        if self.id_field == self.owner_field:
            raise ConfigurationError(
                f"id_field and owner_field must differ, both are '{self.id_field}'",
                config_key="owner_field",
                config_value=self.owner_field,
            )

        if self.collection_prefix.startswith("system."):
            raise ConfigurationError(
                "collection_prefix cannot use the reserved 'system.' namespace",
                config_key="collection_prefix",
                config_value=self.collection_prefix,
            )
