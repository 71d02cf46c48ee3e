"""Connection settings, parsed and validated with pydantic."""

from typing import Any

import pydantic


class ConnectionConfig(pydantic.BaseModel):
    host: str
    """The IMAP server hostname."""

    port: int = pydantic.Field(default=993, gt=0, le=65535)
    """The port the IMAP server listens on (993 for IMAPS)."""

    username: str = ""
    """IMAP username, usually the email address."""

    password: str = ""
    """IMAP password or app-specific password."""

    ssl: bool = True
    """Use an implicit TLS connection."""

    timeout: int | float = pydantic.Field(default=10, gt=0)
    """Socket timeout in seconds."""

    @staticmethod
    def from_json(json_object: dict[str, Any]) -> "ConnectionConfig":
        """Build a config from a JSON object, accepting ``login`` for ``username``."""
        data = dict(json_object)
        if "username" not in data and "login" in data:
            data["username"] = data.pop("login")
        return ConnectionConfig(**data)
