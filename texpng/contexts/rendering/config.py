"""
Render Configuration

Defines the resolved configuration record for a single render and the pure merge
that produces it from instance defaults and per-call overrides.

Instance defaults are read from the environment (a .env file is honored) and may
additionally be loaded from a YAML file:

    # texpng.yaml
    density: 200
    fallback_font: /usr/share/fonts/truetype/dejavu/DejaVuSerif.ttf
    fallback_font_size: 18
"""

import dataclasses
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv
from omegaconf import OmegaConf

load_dotenv()

DEFAULT_DENSITY = 160
DEFAULT_FALLBACK_FONT = "DejaVuSans.ttf"
DEFAULT_FALLBACK_FONT_SIZE = 16

# Format tags separating typeset images from fallback bitmaps in the cache
FORMAT_IMAGE = "image"
FORMAT_FALLBACK = "fallback"

TRUE_STRINGS = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class RenderConfig:
    """
    Fully resolved parameters for one render.

    Attributes:
        density: dvipng resolution in dots per inch
        fallback_enabled: Produce a plain-text bitmap when typesetting fails
        fallback_font: TrueType font file (path or name) for fallback bitmaps
        fallback_font_size: Font size in points for fallback bitmaps
        check_only: Validate renderability; never produce a fallback bitmap
        debug: Emit diagnostics and terminate the process after a successful convert
        output_file: Explicit output path, bypassing cache path derivation
    """

    density: int = DEFAULT_DENSITY
    fallback_enabled: bool = True
    fallback_font: str = DEFAULT_FALLBACK_FONT
    fallback_font_size: int = DEFAULT_FALLBACK_FONT_SIZE
    check_only: bool = False
    debug: bool = False
    output_file: Optional[Path] = None

    def cache_fields(self, render_format: str) -> Dict[str, Any]:
        """
        Fields that participate in the cache key.

        debug and output_file are excluded: neither changes the produced image.
        """
        return {
            "density": self.density,
            "fallback_enabled": self.fallback_enabled,
            "fallback_font": self.fallback_font,
            "fallback_font_size": self.fallback_font_size,
            "check_only": self.check_only,
            "format": render_format,
        }


CONFIG_FIELDS = frozenset(f.name for f in dataclasses.fields(RenderConfig))


def resolve_config(defaults: RenderConfig, overrides: Optional[Mapping[str, Any]] = None) -> RenderConfig:
    """
    Merge per-call overrides over instance defaults.

    Overrides win; None values are ignored. A check-only render never falls back
    to a bitmap, so check_only=True forces fallback_enabled=False.

    Args:
        defaults: Instance-level configuration
        overrides: Per-call parameters (keys are RenderConfig field names)

    Returns:
        New RenderConfig; defaults is left untouched

    Raises:
        ValueError: If overrides contain an unknown parameter
    """
    overrides = {k: v for k, v in (overrides or {}).items() if v is not None}

    unknown = set(overrides) - CONFIG_FIELDS
    if unknown:
        raise ValueError(
            f"Unknown render parameter(s): {sorted(unknown)}. Available: {sorted(CONFIG_FIELDS)}"
        )

    if "output_file" in overrides:
        overrides["output_file"] = Path(overrides["output_file"])

    resolved = dataclasses.replace(defaults, **overrides)

    if resolved.check_only and resolved.fallback_enabled:
        resolved = dataclasses.replace(resolved, fallback_enabled=False)

    return resolved


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in TRUE_STRINGS


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def config_from_env() -> RenderConfig:
    """Build instance defaults from TEXPNG_* environment variables."""
    return RenderConfig(
        density=_env_int("TEXPNG_DENSITY", DEFAULT_DENSITY),
        fallback_enabled=_env_bool("TEXPNG_FALLBACK_ENABLED", True),
        fallback_font=os.getenv("TEXPNG_FALLBACK_FONT") or DEFAULT_FALLBACK_FONT,
        fallback_font_size=_env_int("TEXPNG_FALLBACK_FONT_SIZE", DEFAULT_FALLBACK_FONT_SIZE),
    )


def load_config_file(config_path: Path, base: Optional[RenderConfig] = None) -> RenderConfig:
    """
    Load render defaults from a YAML file.

    Keys must be RenderConfig field names; values are merged over base
    (environment defaults when base is None).

    Args:
        config_path: Path to YAML file
        base: Configuration to merge over

    Returns:
        Resolved RenderConfig
    """
    if base is None:
        base = config_from_env()

    loaded = OmegaConf.to_container(OmegaConf.load(config_path), resolve=True) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    return resolve_config(base, loaded)
