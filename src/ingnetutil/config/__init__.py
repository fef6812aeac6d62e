"""Configuration — Pydantic model for ingnetutil settings."""

from __future__ import annotations

import json
import os
import re
from typing import Any

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ingnetutil.errors import ConfigurationError, ExecutableNotFoundError


class NetutilConfig(BaseModel):
    """Where to find netutil and how to talk to it.

    ``ii_system`` is the Ingres installation root, the same value the
    ``II_SYSTEM`` environment variable carries. The utility lives at
    ``$II_SYSTEM/ingres/bin/netutil``.
    """

    model_config = ConfigDict(validate_assignment=True)

    ii_system: str | None = Field(
        default=None, description="Ingres installation root (II_SYSTEM)"
    )
    user_id: str | None = Field(
        default=None,
        description="User whose private vnodes are managed (netutil -u<user>)",
    )
    timeout: float = Field(
        default=10.0, gt=0, description="Seconds to wait for the netutil prompt"
    )
    prompt: str = Field(
        default=r"Netutil>\s*$", description="Regex matching the netutil prompt"
    )
    utility: str = Field(default="netutil", description="Utility file name")

    @field_validator("prompt")
    @classmethod
    def _compile_prompt(cls, value: str) -> str:
        # ConfigurationError is not a ValueError, so pydantic lets it through
        try:
            re.compile(value, re.MULTILINE)
        except re.error as e:
            raise ConfigurationError(f"Invalid prompt pattern {value!r}: {e}") from e
        return value

    @classmethod
    def load(cls, config_path: str | None = None) -> NetutilConfig:
        """Load config from file, env vars, or defaults.

        Priority: env vars > config file > defaults.

        Env vars:
            II_SYSTEM            - Ingres installation root
            INGNETUTIL_USER      - Default user for private vnodes
            INGNETUTIL_TIMEOUT   - Prompt timeout in seconds
            INGNETUTIL_PROMPT    - Prompt regex override
        """
        load_dotenv()

        config_data: dict[str, Any] = {}

        if config_path and os.path.exists(config_path):
            with open(config_path) as f:
                try:
                    config_data = json.load(f)
                except json.JSONDecodeError as e:
                    raise ConfigurationError(
                        f"Invalid config file {config_path}: {e}"
                    ) from e

        env_ii_system = os.environ.get("II_SYSTEM")
        if env_ii_system:
            config_data["ii_system"] = env_ii_system

        env_user = os.environ.get("INGNETUTIL_USER")
        if env_user:
            config_data["user_id"] = env_user

        env_timeout = os.environ.get("INGNETUTIL_TIMEOUT")
        if env_timeout:
            config_data["timeout"] = env_timeout

        env_prompt = os.environ.get("INGNETUTIL_PROMPT")
        if env_prompt:
            config_data["prompt"] = env_prompt

        try:
            return cls.model_validate(config_data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid configuration: {e}") from e

    def executable_path(self) -> str:
        """Resolve the netutil binary and check that it can be run."""
        if not self.ii_system:
            raise ConfigurationError("Ingres environment variable II_SYSTEM not set")
        path = os.path.join(self.ii_system, "ingres", "bin", self.utility)
        if not (os.path.isfile(path) and os.access(path, os.X_OK)):
            raise ExecutableNotFoundError(f"Ingres utility cannot be executed: {path}")
        return path

    def command(self, user_id: str | None = None) -> list[str]:
        """Build the argv used to start netutil.

        ``user_id`` overrides the configured user for this one session.
        """
        cmd = [self.executable_path()]
        user = user_id or self.user_id
        if user:
            cmd.append(f"-u{user}")
        return cmd
