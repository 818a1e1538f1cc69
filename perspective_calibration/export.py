"""
Scene export module.

Writes the recovered camera and the original image file bytes to a binary scene
file. The file is written to a temporary name in the target directory and
renamed into place, so a failed export never leaves a partial file behind.
"""

import os
import stat
import tempfile
from pathlib import Path
from typing import Optional, Tuple
import logging

from .codec import decode, encode
from .errors import SceneIOError
from .loader import read_image_size
from .pose import CameraPose
from .scene import SceneData, SceneDescription

logger = logging.getLogger(__name__)


def _target_mode(target: Path) -> int:
    """Mode of the file being replaced, or the umask default for a new file."""
    if target.exists():
        return stat.S_IMODE(target.stat().st_mode)

    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


def write_atomic(output_path: str, payload: bytes) -> None:
    """
    Write bytes to a file via a temporary file and rename.

    The temporary file gets the permissions of the file it replaces, or those
    of a freshly created file when there is none.

    Raises:
        SceneIOError: If the file cannot be written
    """
    target = Path(output_path)
    directory = target.parent if str(target.parent) else Path('.')

    tmp_name = None
    try:
        mode = _target_mode(target)
        with tempfile.NamedTemporaryFile(
            mode='wb', dir=directory, prefix=f".{target.name}.", suffix='.tmp', delete=False
        ) as f:
            tmp_name = f.name
            f.write(payload)
            f.flush()
            os.fsync(f.fileno())
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, target)
    except OSError as e:
        if tmp_name is not None and os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise SceneIOError(f"Cannot write scene file {output_path}: {e}") from e


def export_scene(
    pose: CameraPose,
    image_path: str,
    output_path: str,
    image_size: Optional[Tuple[int, int]] = None,
) -> SceneDescription:
    """
    Export a calibrated camera and its source image to a scene file.

    Args:
        pose: Calibrated camera pose
        image_path: Source image; its bytes are embedded unchanged
        output_path: Destination scene file
        image_size: (width, height); read from the image when None

    Returns:
        The SceneDescription that was written

    Raises:
        FileNotFoundError: If the image does not exist
        SceneIOError: If the scene file cannot be written
    """
    path = Path(image_path)
    if not path.exists():
        raise FileNotFoundError(f"Image file not found: {image_path}")

    if image_size is None:
        image_size = read_image_size(image_path)

    image = path.read_bytes()
    description = SceneDescription.from_pose(pose, image_size[0], image_size[1])

    write_atomic(output_path, encode(SceneData(description=description, image=image)))

    logger.info(f"Scene exported to {output_path} ({len(image)} image bytes)")
    return description


def read_scene(scene_path: str) -> SceneData:
    """
    Read and decode a scene file.

    Raises:
        FileNotFoundError: If the file does not exist
        MalformedInputError: If the file is not a valid scene file
    """
    path = Path(scene_path)
    if not path.exists():
        raise FileNotFoundError(f"Scene file not found: {scene_path}")

    scene = decode(path.read_bytes())
    logger.info(f"Loaded scene {scene_path}")
    return scene
