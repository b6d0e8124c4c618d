"""
Engine configuration.

Values come from environment variables (optionally loaded from a ``.env``
file); explicit keyword overrides take precedence.
"""

import os
from typing import Any, Mapping, Optional

import psutil
from dotenv import load_dotenv

from .validation import ParameterValidator, ParameterValidationError

ENV_PREFIX = "DOCSIM_"

TRUTHY = ("true", "1", "yes", "on")
FALSY = ("false", "0", "no", "off")


def available_cpu_count() -> int:
    """Number of logical CPUs, never less than one."""
    return psutil.cpu_count(logical=True) or os.cpu_count() or 1


def _parse_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUTHY:
        return True
    if text in FALSY:
        return False
    raise ParameterValidationError(f"{field} must be a boolean flag, got {value!r}", field=field, value=value)


class EngineConfig:
    """Runtime settings for the similarity engine."""

    DEFAULTS = {
        'max_workers': None,  # resolved to the CPU count
        'sentence_block_size': 64,
        'vectorize_batch_size': 256,
        'default_threshold': 0.3,
        'min_documents': 2,
        'max_documents': 5,
        'show_progress': False,
        'abbreviation_guard': False,
        'log_level': 'INFO',
        'log_dir': 'logs',
        'structured_logging': True,
        'log_to_file': False,
    }

    def __init__(self, **overrides):
        unknown = set(overrides) - set(self.DEFAULTS)
        if unknown:
            raise ParameterValidationError(
                f"Unknown configuration option(s): {', '.join(sorted(unknown))}",
                field="config",
                value=sorted(unknown)
            )

        settings = dict(self.DEFAULTS)
        settings.update({k: v for k, v in overrides.items() if v is not None})

        cpus = available_cpu_count()
        workers = settings['max_workers']
        self.max_workers = cpus if workers is None else ParameterValidator.validate_positive_integer(
            workers, "max_workers", min_value=1, max_value=256)
        self.sentence_block_size = ParameterValidator.validate_positive_integer(
            settings['sentence_block_size'], "sentence_block_size", min_value=1)
        self.vectorize_batch_size = ParameterValidator.validate_positive_integer(
            settings['vectorize_batch_size'], "vectorize_batch_size", min_value=1)
        self.default_threshold = ParameterValidator.validate_float_range(
            settings['default_threshold'], "default_threshold", 0.0, 1.0)
        self.min_documents = ParameterValidator.validate_positive_integer(
            settings['min_documents'], "min_documents", min_value=2)
        self.max_documents = ParameterValidator.validate_positive_integer(
            settings['max_documents'], "max_documents", min_value=self.min_documents)
        self.show_progress = _parse_bool(settings['show_progress'], "show_progress")
        self.abbreviation_guard = _parse_bool(settings['abbreviation_guard'], "abbreviation_guard")
        self.log_level = ParameterValidator.validate_string(settings['log_level'], "log_level", min_length=1).upper()
        self.log_dir = ParameterValidator.validate_string(settings['log_dir'], "log_dir", min_length=1)
        self.structured_logging = _parse_bool(settings['structured_logging'], "structured_logging")
        self.log_to_file = _parse_bool(settings['log_to_file'], "log_to_file")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, load_env_file: bool = True, **overrides) -> "EngineConfig":
        """
        Build a config from ``DOCSIM_*`` environment variables.

        Args:
            environ: Mapping to read instead of ``os.environ``
            load_env_file: Whether to load a ``.env`` file first
            **overrides: Values that win over the environment
        """
        if load_env_file and environ is None:
            load_dotenv()
        source = os.environ if environ is None else environ

        values = {}
        for option in cls.DEFAULTS:
            raw = source.get(ENV_PREFIX + option.upper())
            if raw is not None and raw.strip() != "":
                values[option] = raw.strip()
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)

    def as_dict(self) -> dict:
        return {option: getattr(self, option) for option in self.DEFAULTS}

    def __repr__(self):
        settings = ", ".join(f"{k}={v!r}" for k, v in self.as_dict().items())
        return f"EngineConfig({settings})"
