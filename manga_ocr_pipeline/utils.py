"""Utility functions for the manga OCR pipeline."""

import logging
import logging.handlers
from pathlib import Path
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np
import yaml
from PIL import Image, UnidentifiedImageError

from .exceptions import (
    DecodeFailureError,
    ImageNotFoundError,
    InvalidArgumentError,
    UnsupportedFormatError,
)

TRACE = 5
logging.addLevelName(TRACE, 'TRACE')

DEFAULT_CONFIG_PATH = Path(__file__).parent / 'config.yaml'

SUPPORTED_EXTENSIONS = ('.jpg', '.jpeg', '.png', '.bmp', '.gif', '.webp', '.tiff', '.tif')

DEFAULT_LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def load_config(config_path: Union[str, Path] = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load configuration from YAML file.

    Args:
        config_path: Path to configuration file

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If config file is invalid
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config = yaml.safe_load(f)

    return config or {}


def setup_logging(config: Optional[Dict[str, Any]] = None) -> logging.Logger:
    """Setup logging for the package logger.

    Args:
        config: Logging configuration dictionary

    Returns:
        Configured logger instance
    """
    if config is None:
        config = {
            'level': 'INFO',
            'format': DEFAULT_LOG_FORMAT,
        }

    logger = logging.getLogger('manga_ocr_pipeline')
    logger.setLevel(logging.getLevelName(config.get('level', 'INFO')))
    formatter = logging.Formatter(config.get('format', DEFAULT_LOG_FORMAT))

    # Repeated calls must not stack handlers
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    # File handler with rotation
    if config.get('file'):
        file_handler = logging.handlers.RotatingFileHandler(
            config['file'],
            maxBytes=config.get('max_bytes', 10485760),
            backupCount=config.get('backup_count', 5),
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def is_supported_format(image_path: Union[str, Path, None]) -> bool:
    """Check whether the file extension is a supported image format."""
    if not image_path or not str(image_path).strip():
        return False
    return Path(image_path).suffix.lower() in SUPPORTED_EXTENSIONS


def validate_image_path(image_path: Union[str, Path, None]) -> Path:
    """Validate that an image path is non-empty and exists.

    Args:
        image_path: Path to image file

    Returns:
        The path as a Path object

    Raises:
        InvalidArgumentError: If the path is None or blank
        ImageNotFoundError: If the file doesn't exist
    """
    if image_path is None or not str(image_path).strip():
        raise InvalidArgumentError("Image path must not be empty")

    path = Path(image_path)
    if not path.is_file():
        raise ImageNotFoundError(f"Image file not found: {path}")

    return path


def load_image(image_path: Union[str, Path]) -> np.ndarray:
    """Load image from file path.

    OpenCV is tried first; formats it cannot read (GIF) go through Pillow.

    Args:
        image_path: Path to image file

    Returns:
        Image as numpy array in BGR format

    Raises:
        InvalidArgumentError: If the path is empty
        ImageNotFoundError: If image file doesn't exist
        UnsupportedFormatError: If the extension or content is not an image format
        DecodeFailureError: If the pixels cannot be decoded
    """
    path = validate_image_path(image_path)

    if not is_supported_format(path):
        raise UnsupportedFormatError(
            f"Unsupported image format: {path.suffix or '<none>'}. "
            f"Supported formats: {', '.join(SUPPORTED_EXTENSIONS)}"
        )

    image = cv2.imread(str(path), cv2.IMREAD_COLOR)
    if image is not None:
        return image

    try:
        with Image.open(path) as pil_image:
            return pil_to_cv2(pil_image)
    except UnidentifiedImageError as e:
        raise UnsupportedFormatError(f"Unrecognized image content: {path}") from e
    except (OSError, ValueError) as e:
        raise DecodeFailureError(f"Failed to load image: {path} ({e})") from e


def save_image(image: np.ndarray, output_path: Union[str, Path]) -> None:
    """Save image to file.

    Args:
        image: Image as numpy array
        output_path: Path to save image
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    cv2.imwrite(str(output_path), image)


def pil_to_cv2(pil_image: Image.Image) -> np.ndarray:
    """Convert PIL Image to OpenCV format.

    Args:
        pil_image: PIL Image object

    Returns:
        Image as numpy array in BGR format
    """
    rgb_image = np.array(pil_image.convert('RGB'))
    return cv2.cvtColor(rgb_image, cv2.COLOR_RGB2BGR)


def ensure_grayscale(image: np.ndarray) -> np.ndarray:
    """Ensure image is in grayscale format.

    Args:
        image: Image as numpy array

    Returns:
        Grayscale image
    """
    if len(image.shape) == 3:
        if image.shape[2] == 4:
            return cv2.cvtColor(image, cv2.COLOR_BGRA2GRAY)
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    return image


def ensure_color(image: np.ndarray) -> np.ndarray:
    """Ensure image is in color (BGR) format.

    Args:
        image: Image as numpy array

    Returns:
        Color image in BGR format
    """
    if len(image.shape) == 2:
        return cv2.cvtColor(image, cv2.COLOR_GRAY2BGR)
    return image
