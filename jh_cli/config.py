from __future__ import annotations

import json
import logging
import os
import re
from pathlib import Path

from .errors import ConfigError
from .models import Config, Defaults, Workspace

logger = logging.getLogger(__name__)

# --- paths ---

CONFIG_DIR = Path.home() / ".config" / "jh-cli"
CONFIG_NAME = "config"
CREDENTIALS_NAME = "credentials"

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PROJECT_RE = re.compile(r"^[A-Z][A-Z0-9]*$")


def default_config_dir() -> Path:
    if env := os.environ.get("JH_CONFIG_DIR"):
        return Path(env).expanduser()
    return CONFIG_DIR


# --- key=value file helpers ---


def _read_kv(path: Path) -> dict[str, str]:
    if not path.exists():
        return {}
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise ConfigError(f"{path}: not valid UTF-8") from e
    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if "=" in line and not line.startswith("#"):
            key, _, value = line.partition("=")
            values[key.strip()] = value.strip()
    return values


def _write_kv(path: Path, values: dict[str, str], mode: int | None = None) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("\n".join(f"{k}={v}" for k, v in sorted(values.items())) + "\n", encoding="utf-8")
    if mode is not None:
        path.chmod(mode)


# --- schema ---


def _parse_workspace(name: str, raw: str) -> Workspace:
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, ValueError) as e:
        raise ConfigError(f"workspace.{name}: invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise ConfigError(f"workspace.{name}: expected an object")
    domain = str(data.get("domain") or "").strip()
    email = str(data.get("email") or "").strip()
    project = str(data.get("default_project") or "").strip()
    if not domain:
        raise ConfigError(f"workspace.{name}: domain is required")
    if not _EMAIL_RE.match(email):
        raise ConfigError(f"workspace.{name}: '{email}' is not a valid email")
    if not _PROJECT_RE.match(project):
        raise ConfigError(
            f"workspace.{name}: default_project '{project}' must look like PROJ"
        )
    return Workspace(domain=domain, email=email, default_project=project)


def _parse_defaults(values: dict[str, str]) -> Defaults:
    defaults = Defaults()
    if v := values.get("defaults.branch_format"):
        defaults.branch_format = v
    if v := values.get("defaults.slug_max_length"):
        try:
            defaults.slug_max_length = int(v)
        except ValueError:
            raise ConfigError(f"defaults.slug_max_length: '{v}' is not a number") from None
        if defaults.slug_max_length <= 0:
            raise ConfigError("defaults.slug_max_length must be positive")
    if v := values.get("defaults.default_issue_type"):
        defaults.default_issue_type = v
    if v := values.get("defaults.base_branch"):
        defaults.base_branch = v
    return defaults


def parse_config(values: dict[str, str]) -> Config:
    """Validate raw ``key=value`` pairs and build a :class:`Config`."""
    try:
        version = int(values.get("version", "1"))
    except ValueError:
        raise ConfigError(f"version: '{values['version']}' is not a number") from None
    workspaces = {
        key[len("workspace."):]: _parse_workspace(key[len("workspace."):], raw)
        for key, raw in values.items()
        if key.startswith("workspace.")
    }
    mappings = {
        key[len("mapping."):]: value
        for key, value in values.items()
        if key.startswith("mapping.") and value
    }
    for repo, ws in mappings.items():
        if ws not in workspaces:
            raise ConfigError(f"mapping.{repo}: unknown workspace '{ws}'")
    return Config(
        version=version,
        defaults=_parse_defaults(values),
        workspaces=workspaces,
        mappings=mappings,
    )


def dump_config(config: Config) -> dict[str, str]:
    d = config.defaults
    values = {
        "version": str(config.version),
        "defaults.branch_format": d.branch_format,
        "defaults.slug_max_length": str(d.slug_max_length),
        "defaults.default_issue_type": d.default_issue_type,
        "defaults.base_branch": d.base_branch,
    }
    for name, ws in config.workspaces.items():
        values[f"workspace.{name}"] = json.dumps(ws.to_dict(), separators=(",", ":"))
    for repo, ws_name in config.mappings.items():
        values[f"mapping.{repo}"] = ws_name
    return values


# --- store ---


class ConfigStore:
    """Settings (``config``) and secrets (``credentials``) under one directory.

    Both files hold ``key=value`` lines. Structured entries (workspaces) are
    stored as compact JSON values::

        defaults.base_branch=main
        workspace.acme={"domain":"acme.atlassian.net","email":"me@acme.com","default_project":"PROJ"}
        mapping.acme-org/*=acme

    The credentials file holds ``token.<workspace>=<api token>`` and is
    written with mode 600.
    """

    def __init__(self, config_dir: Path | None = None) -> None:
        self.config_dir = config_dir or default_config_dir()

    @property
    def path(self) -> Path:
        return self.config_dir / CONFIG_NAME

    @property
    def credentials_path(self) -> Path:
        return self.config_dir / CREDENTIALS_NAME

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Config:
        if not self.path.exists():
            raise ConfigError(f"No configuration found at {self.path}. Run: jh --setup")
        return parse_config(_read_kv(self.path))

    def save(self, config: Config) -> None:
        _write_kv(self.path, dump_config(config))
        logger.info("Saved configuration to %s", self.path)

    def initialize(self, config: Config) -> None:
        self.save(config)

    # --- credentials ---

    def get_token(self, workspace: str) -> str | None:
        return _read_kv(self.credentials_path).get(f"token.{workspace}") or None

    def set_token(self, workspace: str, token: str) -> None:
        creds = _read_kv(self.credentials_path)
        creds[f"token.{workspace}"] = token
        _write_kv(self.credentials_path, creds, mode=0o600)

    # --- lookups ---

    def resolve_workspace(self, repo_identifier: str) -> str | None:
        """Map ``owner/repo`` to a workspace name: exact match, then ``owner/*``."""
        mappings = self.load().mappings
        if repo_identifier in mappings:
            return mappings[repo_identifier]
        owner = repo_identifier.split("/")[0]
        return mappings.get(f"{owner}/*")

    def get_workspace_config(self, name: str) -> Workspace | None:
        return self.load().workspaces.get(name)

    @staticmethod
    def create_config(
        workspace_name: str,
        workspace: Workspace,
        repo_mapping: str | None = None,
    ) -> Config:
        config = Config(workspaces={workspace_name: workspace})
        if repo_mapping:
            config.mappings[repo_mapping] = workspace_name
        return config
