"""
Configuration loading/saving.

Pure functions operating on dataclasses.
- TOML for project configuration ([finder] and [generator] sections)
- .npz for computed object/image points
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import rtoml

from .types import FinderConfig, GeneratorConfig, ProjectConfig


# ============================================================================
# TOML Project Configuration
# ============================================================================


def parse_finder_config(data: dict) -> FinderConfig:
    """Build a FinderConfig from a [finder] table, filling in defaults."""
    defaults = FinderConfig(pattern_width=1.0, pattern_height=1.0)
    return FinderConfig(
        pattern_width=float(data.get("pattern_width", 0.0)),
        pattern_height=float(data.get("pattern_height", 0.0)),
        min_matches=int(data.get("min_matches", defaults.min_matches)),
        dtype=data.get("dtype", defaults.dtype),
        verbose=int(data.get("verbose", defaults.verbose)),
        show_extraction=bool(data.get("show_extraction", defaults.show_extraction)),
        knn=int(data.get("knn", defaults.knn)),
        ransac_threshold=data.get("ransac_threshold"),
        epipolar_check=bool(data.get("epipolar_check", defaults.epipolar_check)),
        epipolar_threshold=float(data.get("epipolar_threshold", defaults.epipolar_threshold)),
        confidence=float(data.get("confidence", defaults.confidence)),
        max_workers=data.get("max_workers"),
        detector=data.get("detector", defaults.detector),
        matcher=data.get("matcher", defaults.matcher),
    )


def parse_generator_config(data: dict) -> GeneratorConfig:
    """Build a GeneratorConfig from a [generator] table, filling in defaults."""
    defaults = GeneratorConfig()
    return GeneratorConfig(
        width=int(data.get("width", defaults.width)),
        height=int(data.get("height", defaults.height)),
        style=data.get("style", defaults.style),
        seed=data.get("seed"),
    )


def load_project_config(path: Path) -> ProjectConfig:
    """
    Load project configuration from TOML file.

    Args:
        path: Path to config.toml file

    Returns:
        ProjectConfig dataclass

    Raises:
        ValueError: If the [finder] section is missing or invalid
    """
    data = rtoml.load(Path(path))

    if "finder" not in data:
        raise ValueError(f"{path}: missing [finder] section")

    return ProjectConfig(
        finder=parse_finder_config(data["finder"]),
        generator=parse_generator_config(data.get("generator", {})),
    )


def finder_config_to_dict(config: FinderConfig) -> dict:
    data = {
        "pattern_width": config.pattern_width,
        "pattern_height": config.pattern_height,
        "min_matches": config.min_matches,
        "dtype": config.dtype,
        "verbose": config.verbose,
        "show_extraction": config.show_extraction,
        "knn": config.knn,
        "epipolar_check": config.epipolar_check,
        "epipolar_threshold": config.epipolar_threshold,
        "confidence": config.confidence,
        "detector": config.detector,
        "matcher": config.matcher,
    }
    # TOML has no null
    if config.ransac_threshold is not None:
        data["ransac_threshold"] = config.ransac_threshold
    if config.max_workers is not None:
        data["max_workers"] = config.max_workers
    return data


def generator_config_to_dict(config: GeneratorConfig) -> dict:
    data = {
        "width": config.width,
        "height": config.height,
        "style": config.style,
    }
    if config.seed is not None:
        data["seed"] = config.seed
    return data


def save_project_config(config: ProjectConfig, path: Path) -> None:
    """
    Save project configuration to TOML file.

    Args:
        config: ProjectConfig dataclass
        path: Path to save config.toml
    """
    path = Path(path)
    data = {
        "finder": finder_config_to_dict(config.finder),
        "generator": generator_config_to_dict(config.generator),
    }

    # Ensure parent directory exists
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w") as f:
        rtoml.dump(data, f)


def create_default_project_config(
    pattern_width: float = 200.0,
    pattern_height: float = 150.0,
) -> ProjectConfig:
    """
    Create a default project configuration.

    The default pattern prints at 200 x 150 units from a 1000 x 750 image.

    Returns:
        ProjectConfig with sensible defaults
    """
    return ProjectConfig(
        finder=FinderConfig(pattern_width=pattern_width, pattern_height=pattern_height),
        generator=GeneratorConfig(width=1000, height=750),
    )


# ============================================================================
# Point Files
# ============================================================================


def save_points(
    path: Path,
    image_points: list[np.ndarray],
    object_points: list[np.ndarray],
) -> None:
    """
    Save per-image point arrays to a single .npz file.

    Arrays are stored as image_points_0000, object_points_0000, ...

    Args:
        path: Output .npz path
        image_points: (n_i, 2) arrays, one per accepted image
        object_points: (n_i, 3) arrays, parallel to image_points
    """
    if len(image_points) != len(object_points):
        raise ValueError(
            f"Mismatched point lists: {len(image_points)} image vs "
            f"{len(object_points)} object"
        )

    arrays = {}
    for i, (img, obj) in enumerate(zip(image_points, object_points)):
        arrays[f"image_points_{i:04d}"] = img
        arrays[f"object_points_{i:04d}"] = obj

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    np.savez(path, count=np.array(len(image_points)), **arrays)


def load_points(path: Path) -> tuple[list[np.ndarray], list[np.ndarray]]:
    """
    Load per-image point arrays written by save_points.

    Returns:
        (image_points, object_points) lists in saved order
    """
    with np.load(Path(path)) as data:
        count = int(data["count"])
        image_points = [data[f"image_points_{i:04d}"] for i in range(count)]
        object_points = [data[f"object_points_{i:04d}"] for i in range(count)]
    return image_points, object_points
