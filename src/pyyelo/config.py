"""Client configuration for pyyelo."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pyyelo._constants import (
    BASE_URL,
    DEFAULT_BATCH_SIZE,
    MAX_RECENT_SEARCHES,
    NOTIFICATION_RESET_DELAY,
    PROGRESSIVE_REVEAL_DELAY,
)
from pyyelo.exceptions import YeloConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class YeloConfig:
    """Client configuration.

    Parameters
    ----------
    base_url : str
        API base URL used for the wishlist and listing endpoints.
    storage_dir : str or None
        Directory for durable JSON storage.  ``None`` keeps all
        collections in memory for the lifetime of the process.
    batch_size : int
        Items requested per listing page; also the initial skeleton count
        unless ``initial_skeleton_count`` is set.
    initial_skeleton_count : int or None
        Placeholders shown before the first page arrives.
    progressive_delay : float
        Seconds between revealed items in progressive fetch mode.
    notification_reset_delay : float
        Seconds before the notification latch is released after firing.
    max_recent_searches : int
        Cap on the persisted recent-search history.
    clear_on_sign_out : bool
        Clear remotely-backed collections when the user signs out.
    """

    base_url: str = BASE_URL
    storage_dir: str | None = None
    batch_size: int = DEFAULT_BATCH_SIZE
    initial_skeleton_count: int | None = None
    progressive_delay: float = PROGRESSIVE_REVEAL_DELAY
    notification_reset_delay: float = NOTIFICATION_RESET_DELAY
    max_recent_searches: int = MAX_RECENT_SEARCHES
    clear_on_sign_out: bool = True

    def __post_init__(self) -> None:
        if self.batch_size <= 0:
            raise YeloConfigError(f"batch_size must be positive, got {self.batch_size}")
        if self.initial_skeleton_count is not None and self.initial_skeleton_count < 0:
            raise YeloConfigError(
                f"initial_skeleton_count must not be negative, got {self.initial_skeleton_count}"
            )
        if self.progressive_delay < 0 or self.notification_reset_delay < 0:
            raise YeloConfigError("delays must not be negative")
        if self.max_recent_searches <= 0:
            raise YeloConfigError(f"max_recent_searches must be positive, got {self.max_recent_searches}")

    @property
    def skeleton_count(self) -> int:
        """Effective initial skeleton count."""
        if self.initial_skeleton_count is None:
            return self.batch_size
        return self.initial_skeleton_count

    @classmethod
    def from_env(cls, **overrides: Any) -> YeloConfig:
        """Create configuration from environment variables.

        Reads optional ``YELO_*`` variables.  Explicit keyword arguments
        override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        YeloConfig
            Populated configuration.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        _ENV_STR_MAP = {
            "YELO_BASE_URL": "base_url",
            "YELO_STORAGE_DIR": "storage_dir",
        }
        for env_key, field_name in _ENV_STR_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        _ENV_NUMERIC_MAP: dict[str, tuple[str, type]] = {
            "YELO_BATCH_SIZE": ("batch_size", int),
            "YELO_INITIAL_SKELETON_COUNT": ("initial_skeleton_count", int),
            "YELO_PROGRESSIVE_DELAY": ("progressive_delay", float),
            "YELO_NOTIFICATION_RESET_DELAY": ("notification_reset_delay", float),
            "YELO_MAX_RECENT_SEARCHES": ("max_recent_searches", int),
        }
        for env_key, (field_name, caster) in _ENV_NUMERIC_MAP.items():
            val = env.get(env_key)
            if val is None or field_name in overrides:
                continue
            try:
                config_kwargs[field_name] = caster(val)
            except ValueError as exc:
                raise YeloConfigError(f"{env_key} must be numeric, got {val!r}") from exc

        if "clear_on_sign_out" not in overrides:
            config_kwargs["clear_on_sign_out"] = _env_bool(env.get("YELO_CLEAR_ON_SIGN_OUT"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
