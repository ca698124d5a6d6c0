"""
Connection settings for the eXist-db server backing a workspace.

Settings come from the client's ``existdb`` configuration section, from a
``.existdb.json`` file at the workspace root, or from defaults, and are passed
explicitly into every remote call.
"""

import json
import logging
import posixpath
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError
from pygls import uris

logger = logging.getLogger("xqls")

WORKSPACE_CONFIG_FILE = ".existdb.json"

DEFAULT_ROOT_COLLECTION = "/db"


class ServerSettings(BaseModel):
    """
    Connection settings for an eXist-db instance.

    Attributes:
        uri: Base URI eXist is running on, usually ``http://host:8080/exist``.
        user: User name for basic authentication.
        password: Password for basic authentication.
        path: Database collection of the app matching the workspace,
            usually ``/db/apps/my-app``. Used to resolve relative imports.
        timeout: Seconds to wait for the server before giving up.
    """

    uri: str = "http://localhost:8080/exist"
    user: str = "admin"
    password: str = ""
    path: Optional[str] = None
    timeout: float = 10.0


def read_workspace_config(workspace_path: Optional[str]) -> Optional[ServerSettings]:
    """
    Read the ``.existdb.json`` file of a workspace, if there is one.

    The ``sync.server`` entry selects which of the ``servers`` to use; without
    it the first server is taken. Returns None if the file is missing or has no
    usable server definition.
    """
    if not workspace_path:
        return None
    config = Path(workspace_path) / WORKSPACE_CONFIG_FILE
    if not config.is_file():
        return None

    try:
        data = json.loads(config.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Unable to read %s: %s", config, exc)
        return None

    servers = data.get("servers") if isinstance(data, dict) else None
    if not servers or not isinstance(servers, dict):
        return None

    sync = data.get("sync") or {}
    server = servers.get(sync.get("server")) if sync.get("server") else None
    if server is not None:
        return _settings_from_server(
            server,
            user=sync.get("user"),
            password=sync.get("password"),
            root=sync.get("root"),
        )

    first = next(iter(servers.values()), None)
    if not isinstance(first, dict):
        return None
    return _settings_from_server(first)


def _settings_from_server(
    server: Dict[str, Any],
    user: Optional[str] = None,
    password: Optional[str] = None,
    root: Optional[str] = None,
) -> Optional[ServerSettings]:
    values = {
        "uri": server.get("server"),
        "user": user or server.get("user"),
        "password": password or server.get("password"),
        "path": root or server.get("root") or DEFAULT_ROOT_COLLECTION,
    }
    try:
        return ServerSettings(**{k: v for k, v in values.items() if v is not None})
    except ValidationError as exc:
        logger.warning("Invalid server definition in %s: %s", WORKSPACE_CONFIG_FILE, exc)
        return None


def settings_from_client(
    config: Any, workspace_name: Optional[str] = None
) -> Optional[ServerSettings]:
    """Build settings from the client's ``existdb`` configuration section."""
    if not isinstance(config, dict) or not config:
        return None
    try:
        settings = ServerSettings.model_validate(config)
    except ValidationError as exc:
        logger.warning("Ignoring invalid client settings: %s", exc)
        return None
    return with_default_path(settings, workspace_name)


def with_default_path(
    settings: ServerSettings, workspace_name: Optional[str]
) -> ServerSettings:
    """Fill in ``/db/apps/<workspace name>`` if no collection is configured."""
    if settings.path:
        return settings
    path = f"/db/apps/{workspace_name}" if workspace_name else DEFAULT_ROOT_COLLECTION
    return settings.model_copy(update={"path": path})


def relative_collection_path(workspace_uri: Optional[str], document_uri: str) -> str:
    """
    Directory of a document relative to the workspace root, e.g. ``modules``.

    Returns an empty string for documents at the workspace root and for
    documents outside the workspace.
    """
    if not workspace_uri:
        return ""
    root = workspace_uri.rstrip("/") + "/"
    if not document_uri.startswith(root):
        return ""
    return posixpath.dirname(document_uri[len(root) :])


def base_collection(settings: ServerSettings, rel_path: str) -> str:
    """The database collection a document lives in."""
    root = (settings.path or DEFAULT_ROOT_COLLECTION).rstrip("/")
    if not rel_path:
        return root
    return f"{root}/{rel_path.strip('/')}"


def workspace_name(workspace_uri: Optional[str]) -> Optional[str]:
    if not workspace_uri:
        return None
    path = uris.to_fs_path(workspace_uri)
    return Path(path).name if path else None
