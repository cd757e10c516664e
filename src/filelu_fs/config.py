"""
Configuration management for filelu_fs.
Loads environment variables (and a .env file, if present) and validates them.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

from filelu_fs._internal.api import DEFAULT_ENDPOINT, DEFAULT_TIMEOUT
from filelu_fs.exceptions import ConfigError
from filelu_fs.models import AmbiguityPolicy, DuplicatePolicy


@dataclass(frozen=True)
class Settings:
    """Validated settings for a FileLu client."""

    key: str
    endpoint: str = DEFAULT_ENDPOINT
    root: str = ""
    timeout: float = DEFAULT_TIMEOUT
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.SKIP
    ambiguity_policy: AmbiguityPolicy = AmbiguityPolicy.FIRST


def get_settings(
    *,
    key: str | None = None,
    root: str | None = None,
    load_env_file: bool = True,
) -> Settings:
    """
    Load and validate settings from environment variables.
    Explicit key and root arguments take precedence over the environment.
    Raises ConfigError if a required variable is missing or a value is invalid.
    """
    if load_env_file:
        load_dotenv()

    key = key or os.getenv("FILELU_KEY")
    if not key:
        raise ConfigError("Missing required environment variables: FILELU_KEY")

    errors = []
    timeout_value = os.getenv("FILELU_TIMEOUT", str(DEFAULT_TIMEOUT))
    try:
        timeout = float(timeout_value)
    except ValueError:
        errors.append(f"FILELU_TIMEOUT={timeout_value!r} is not a number")
        timeout = DEFAULT_TIMEOUT

    duplicate_value = os.getenv("FILELU_DUPLICATE_POLICY", DuplicatePolicy.SKIP.value).lower()
    try:
        duplicate_policy = DuplicatePolicy(duplicate_value)
    except ValueError:
        errors.append(
            f"FILELU_DUPLICATE_POLICY={duplicate_value!r} is not one of skip, error, proceed"
        )
        duplicate_policy = DuplicatePolicy.SKIP

    ambiguity_value = os.getenv("FILELU_AMBIGUITY_POLICY", AmbiguityPolicy.FIRST.value).lower()
    try:
        ambiguity_policy = AmbiguityPolicy(ambiguity_value)
    except ValueError:
        errors.append(f"FILELU_AMBIGUITY_POLICY={ambiguity_value!r} is not one of first, error")
        ambiguity_policy = AmbiguityPolicy.FIRST

    if errors:
        raise ConfigError(f"Invalid configuration: {'; '.join(errors)}")

    return Settings(
        key=key,
        endpoint=os.getenv("FILELU_ENDPOINT", DEFAULT_ENDPOINT),
        root=root if root is not None else os.getenv("FILELU_ROOT", ""),
        timeout=timeout,
        duplicate_policy=duplicate_policy,
        ambiguity_policy=ambiguity_policy,
    )
