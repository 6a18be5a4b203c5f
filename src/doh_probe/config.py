"""
Configuration dataclasses for the DoH probe.

This module defines the configuration structures (timeout, default test
domain, reference resolvers, language, logging) and their loading from
the environment (including a .env file) and from JSON files.
"""

import json
import math
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv

from .enums import LogLevel
from .i18n import DEFAULT_LANGUAGE, SUPPORTED_LANGUAGES
from .models import ProviderEndpoint


DEFAULT_TIMEOUT_MS = 5000
DEFAULT_TEST_DOMAIN = "linux.do"

CLOUDFLARE_DOH_ENDPOINT = "https://cloudflare-dns.com/dns-query"
GOOGLE_DOH_ENDPOINT = "https://dns.google/resolve"

DEFAULT_REFERENCES = [
    ProviderEndpoint(key="cloudflare", url=CLOUDFLARE_DOH_ENDPOINT, label="Cloudflare"),
    ProviderEndpoint(key="google", url=GOOGLE_DOH_ENDPOINT, label="Google"),
]

DEFAULT_CONFIG_PATH = Path.home() / ".doh_probe" / "config.json"

LOG_FORMATS = ("json", "text", "both")


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"  # 'debug', 'info', 'warn', 'error'
    output_format: str = "text"  # 'json', 'text', 'both'

    @property
    def log_level(self) -> LogLevel:
        try:
            return LogLevel(self.level.lower())
        except ValueError:
            return LogLevel.INFO


@dataclass
class ProbeConfig:
    """Main configuration of the probe."""

    timeout_ms: int = DEFAULT_TIMEOUT_MS
    default_test_domain: str = DEFAULT_TEST_DOMAIN
    references: list[ProviderEndpoint] = field(
        default_factory=lambda: list(DEFAULT_REFERENCES)
    )
    language: str = DEFAULT_LANGUAGE  # 'en' or 'zh'
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def resolve_timeout(setting: Any) -> int:
    """
    Interpret a timeout setting in milliseconds.

    Any positive finite number (or numeric string) is used as is; anything
    else falls back to the default of 5000 ms.
    """
    if setting is None or isinstance(setting, bool):
        return DEFAULT_TIMEOUT_MS
    try:
        value = float(setting)
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT_MS
    if not math.isfinite(value) or value <= 0:
        return DEFAULT_TIMEOUT_MS
    return max(1, int(value))


def _language(value: Optional[str]) -> str:
    value = (value or "").strip().lower()
    return value if value in SUPPORTED_LANGUAGES else DEFAULT_LANGUAGE


def load_config_from_env(
    environ: Optional[Mapping[str, str]] = None,
    dotenv_path: Optional[Path] = None,
) -> ProbeConfig:
    """
    Build a configuration from environment variables.

    When environ is None the process environment is used, after loading a
    .env file (existing variables are not overridden).

    Variables:
        DOH_PROBE_TIMEOUT_MS (alias REQUEST_TIMEOUT_MS), DEFAULT_TEST_DOMAIN,
        DOH_PROBE_LANGUAGE, DOH_PROBE_LOG_LEVEL, DOH_PROBE_LOG_FORMAT
    """
    if environ is None:
        load_dotenv(dotenv_path)
        environ = os.environ

    timeout = environ.get("DOH_PROBE_TIMEOUT_MS") or environ.get("REQUEST_TIMEOUT_MS")
    test_domain = (environ.get("DEFAULT_TEST_DOMAIN") or "").strip() or DEFAULT_TEST_DOMAIN

    log_format = (environ.get("DOH_PROBE_LOG_FORMAT") or "text").strip().lower()
    if log_format not in LOG_FORMATS:
        log_format = "text"

    return ProbeConfig(
        timeout_ms=resolve_timeout(timeout),
        default_test_domain=test_domain,
        references=list(DEFAULT_REFERENCES),
        language=_language(environ.get("DOH_PROBE_LANGUAGE")),
        logging=LoggingConfig(
            level=(environ.get("DOH_PROBE_LOG_LEVEL") or "info").strip().lower(),
            output_format=log_format,
        ),
    )


def config_to_dict(config: ProbeConfig) -> dict:
    return {
        "timeout_ms": config.timeout_ms,
        "default_test_domain": config.default_test_domain,
        "references": [
            {"key": ref.key, "url": ref.url, "label": ref.label}
            for ref in config.references
        ],
        "language": config.language,
        "logging": {
            "level": config.logging.level,
            "output_format": config.logging.output_format,
        },
    }


def load_config_from_file(config_path: Path) -> Optional[ProbeConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        ProbeConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        references = [
            ProviderEndpoint(
                key=ref_data["key"],
                url=ref_data["url"],
                label=ref_data.get("label", ""),
            )
            for ref_data in data.get("references", [])
        ]
        if not references:
            references = list(DEFAULT_REFERENCES)

        logging_data = data.get("logging", {})
        return ProbeConfig(
            timeout_ms=resolve_timeout(data.get("timeout_ms")),
            default_test_domain=data.get("default_test_domain") or DEFAULT_TEST_DOMAIN,
            references=references,
            language=_language(data.get("language")),
            logging=LoggingConfig(
                level=logging_data.get("level", "info"),
                output_format=logging_data.get("output_format", "text"),
            ),
        )

    except (json.JSONDecodeError, KeyError, TypeError, AttributeError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: ProbeConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: ProbeConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        # Ensure parent directory exists
        config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(config_to_dict(config), f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False
