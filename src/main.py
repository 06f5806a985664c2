"""
Command-line runner for the image segmenter.

Segments one image and writes the mask, a background overlay and the
extracted foreground next to each other.

Usage:
    python src/main.py path/to/image.png --config config/config.yaml --output-dir output

Arguments:
    image: Image file to segment
    --config: Path to configuration file
    --output-dir: Directory for output_mask.png, output_overlay.png, output_foreground.png
"""

import os
import sys
import argparse
import logging
import time
import yaml
import cv2
from typing import Dict, Any, Tuple, Optional

from models.config import Config
from ops.errors import SegmenterError
from ops.logging import setup_logging
from segmentation.segmenter import FeatureReadyState, ImageSegmenter, ensure_ready, get_ready_state


def _deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into base and return base."""
    for k, v in (override or {}).items():
        if isinstance(v, dict) and isinstance(base.get(k), dict):
            _deep_merge(base[k], v)
        else:
            base[k] = v
    return base


def load_config(config_path: str) -> Dict[str, Any]:
    """
    Load configuration with layering:
    - `config/default.yaml` (checked in)
    - `config/config.yaml` (local overrides)
    - plus any explicitly provided `--config` path (treated as overrides)
    """
    try:
        base_path = os.path.join(os.path.dirname(config_path), "default.yaml")
        base_cfg: Dict[str, Any] = {}
        if os.path.exists(base_path):
            with open(base_path, "r") as f:
                base_cfg = yaml.safe_load(f) or {}

        local_overrides_path = os.path.join(os.path.dirname(config_path), "config.yaml")
        local_cfg: Dict[str, Any] = {}
        if os.path.exists(local_overrides_path):
            with open(local_overrides_path, "r") as f:
                local_cfg = yaml.safe_load(f) or {}

        merged = _deep_merge(base_cfg, local_cfg)

        # Finally apply explicit config_path if it's not the local override file itself
        if os.path.exists(config_path) and os.path.abspath(config_path) != os.path.abspath(local_overrides_path):
            with open(config_path, "r") as f:
                explicit_cfg = yaml.safe_load(f) or {}
            merged = _deep_merge(merged, explicit_cfg)

        return merged
    except Exception as e:
        logging.error(f"Failed to load configuration: {e}")
        sys.exit(1)


def _is_positive_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(config: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate configuration file structure and values.

    Args:
        config: Configuration dictionary

    Returns:
        Tuple of (is_valid, error_message)
    """
    # Required top-level sections
    required_sections = ['model', 'log_path', 'log_level']
    for section in required_sections:
        if section not in config:
            return False, f"Missing required configuration section: {section}"

    # Validate model settings
    model = config.get('model') or {}
    if not isinstance(model, dict):
        return False, "model must be a mapping"
    for key in ('float_model_path', 'quantized_model_path'):
        if key in model and not isinstance(model[key], str):
            return False, f"model.{key} must be a string"
    if not model.get('float_model_path') and not model.get('quantized_model_path'):
        return False, "model.float_model_path or model.quantized_model_path is required"
    for key in ('input_width', 'input_height'):
        if model.get(key) is not None and not _is_positive_int(model[key]):
            return False, f"model.{key} must be a positive integer"

    # Optional backend selection
    backend = config.get('backend', {}) or {}
    for key in ('accelerator_provider', 'cpu_provider'):
        if key in backend and (not isinstance(backend[key], str) or not backend[key]):
            return False, f"backend.{key} must be a non-empty string"
    libraries = backend.get('provider_libraries', {}) or {}
    if not isinstance(libraries, dict) or not all(isinstance(v, str) for v in libraries.values()):
        return False, "backend.provider_libraries must map provider names to library paths"
    if 'prepare_timeout' in backend:
        timeout = backend['prepare_timeout']
        if not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0:
            return False, "backend.prepare_timeout must be a positive number"

    # Optional reconstruction parallelism
    reconstruction = config.get('reconstruction', {}) or {}
    for key in ('workers', 'rows_per_task'):
        if reconstruction.get(key) is not None and not _is_positive_int(reconstruction[key]):
            return False, f"reconstruction.{key} must be a positive integer"

    # Optional overlay color
    overlay = config.get('overlay', {}) or {}
    if 'color' in overlay:
        color = overlay['color']
        if not isinstance(color, list) or len(color) != 4:
            return False, "overlay.color must be a list of [r, g, b, a]"
        if not all(isinstance(c, int) and 0 <= c <= 255 for c in color):
            return False, "overlay.color values must be integers between 0 and 255"

    # Validate log settings
    valid_log_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
    if config['log_level'] not in valid_log_levels:
        return False, f"log_level must be one of: {', '.join(valid_log_levels)}"

    return True, None


def main() -> int:
    """Main application function."""
    # Parse command-line arguments
    parser = argparse.ArgumentParser(description='Image Segmenter - foreground/background segmentation')
    parser.add_argument('image', type=str,
                        help='Image file to segment')
    parser.add_argument('--config', type=str, default='config/config.yaml',
                        help='Path to configuration file')
    parser.add_argument('--output-dir', type=str, default='.',
                        help='Directory for the output images')
    args = parser.parse_args()

    # Load configuration
    raw_config = load_config(args.config)

    # Validate configuration
    is_valid, error_msg = validate_config(raw_config)
    if not is_valid:
        logging.error(f"Configuration validation failed: {error_msg}")
        return 1

    # Setup logging
    setup_logging(raw_config['log_path'], raw_config['log_level'])
    config = Config.from_dict(raw_config)

    image = cv2.imread(args.image, cv2.IMREAD_UNCHANGED)
    if image is None:
        logging.error(f"Image not found or unreadable: {args.image}")
        return 1
    logging.info(f"Loaded image {args.image}: {image.shape[1]}x{image.shape[0]}")

    try:
        if get_ready_state(config) is not FeatureReadyState.READY:
            logging.info("Image segmenter is not ready, preparing...")
            ensure_ready(config)

        with ImageSegmenter.create(config) as segmenter:
            start = time.time()
            result = segmenter.segment_image(image)
            elapsed_ms = (time.time() - start) * 1000
    except SegmenterError as e:
        logging.error(f"Segmentation failed: {e}")
        return 1

    summary = result.to_dict()
    logging.info(f"Segmentation completed in: {elapsed_ms:.0f}ms")
    logging.info(f"Image dimensions: {summary['width']}x{summary['height']}")
    logging.info(f"Has foreground: {summary['has_foreground']}")
    logging.info(f"Foreground pixels: {summary['foreground_pixels']:,}")
    logging.info(f"Background pixels: {summary['background_pixels']:,}")
    logging.info(f"Foreground percentage: {summary['foreground_percentage']:.2%}")

    os.makedirs(args.output_dir, exist_ok=True)
    mask_path = os.path.join(args.output_dir, 'output_mask.png')
    overlay_path = os.path.join(args.output_dir, 'output_overlay.png')
    foreground_path = os.path.join(args.output_dir, 'output_foreground.png')

    result.mask.save(mask_path)
    cv2.imwrite(overlay_path, ImageSegmenter.create_mask_overlay(image, result, config.overlay.color))
    cv2.imwrite(foreground_path, ImageSegmenter.extract_foreground(image, result))
    logging.info(f"Saved {mask_path}, {overlay_path}, {foreground_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
