# randpattern - Random-pattern correspondences for camera calibration

__version__ = "0.1.0"

# Core types
from randpattern.types import (
    Abandoned,
    Accepted,
    FinderConfig,
    FinderState,
    GeneratorConfig,
    MatchedLocations,
    PatternStore,
    PerImageResult,
    ProjectConfig,
)

# Configuration
from randpattern.config import (
    create_default_project_config,
    load_points,
    load_project_config,
    save_points,
    save_project_config,
)

# Corner finding and pattern generation
from randpattern.calibration import (
    RandomPatternCornerFinder,
    RandomPatternGenerator,
    cross_check_matching,
    generate_pattern_image,
    homography_inlier_mask,
)

__all__ = [
    # Core types
    "Abandoned",
    "Accepted",
    "FinderConfig",
    "FinderState",
    "GeneratorConfig",
    "MatchedLocations",
    "PatternStore",
    "PerImageResult",
    "ProjectConfig",
    # Configuration
    "create_default_project_config",
    "load_points",
    "load_project_config",
    "save_points",
    "save_project_config",
    # Corner finding
    "RandomPatternCornerFinder",
    "RandomPatternGenerator",
    "cross_check_matching",
    "generate_pattern_image",
    "homography_inlier_mask",
]
