"""
Path utilities for archive member names and output locations.
"""

import os
from pathlib import Path, PurePosixPath

from colored_logger import get_colored_logger
from .errors import PathSecurityError
from .models import LayerPlan

logger = get_colored_logger(__name__)


def archive_base(root: Path) -> Path:
    """
    Directory archive names are computed against.

    Names are relative to the parent of the input root, so a directory root
    keeps its own name as the top-level folder and a file root becomes just
    its file name.
    """
    return root.parent


def archive_name_for(file_path: Path, root: Path) -> str:
    """Compute the normalized member name of ``file_path`` under ``root``."""
    try:
        rel_path = file_path.relative_to(archive_base(root))
    except ValueError:
        raise PathSecurityError(
            f"File {file_path} is outside of the input root {root}"
        ) from None

    name = str(rel_path).replace(os.sep, "/").replace("\\", "/")
    while name.startswith("./"):
        name = name[2:]

    parts = PurePosixPath(name).parts
    if not name or not parts or name in (".", "/"):
        raise PathSecurityError(f"Empty archive name for {file_path}")
    if ".." in parts:
        raise PathSecurityError(f"Archive name escapes the archive root: {name}")

    return name


def root_display_name(root: Path) -> str:
    """Name used for the whole-tree archive and its HTML file."""
    return root.name or "archive"


def download_name(root_name: str, plan: LayerPlan) -> str:
    """
    Name of the downloadable artifact embedded in the HTML page.

    Every front end goes through this function so the name only depends on
    the root name and the layer plan.
    """
    plan = LayerPlan.parse(plan)
    if plan is LayerPlan.NONE:
        return root_name
    if plan is LayerPlan.SINGLE:
        return f"{root_name}.zip"
    return f"{root_name}_outer.zip"


def outer_member_name(root_name: str) -> str:
    """Member name of the inner archive inside the outer archive."""
    return f"{root_name}_outer.zip"


def ensure_dir_exists(directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    return directory
