"""File utilities for atomic writes and JSON operations."""
import json
import os

from loguru import logger


def atomic_write(file_path: str, content: str) -> bool:
    """
    Atomically write text to a file.
    Writes a sibling temporary file, then replaces the target.
    """
    temp_path = file_path + ".tmp"
    try:
        directory = os.path.dirname(file_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(temp_path, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(temp_path, file_path)
        return True
    except OSError as e:
        logger.error(f"Failed to write file {file_path}: {e}")
        try:
            if os.path.exists(temp_path):
                os.remove(temp_path)
        except OSError:
            pass
        return False


def atomic_write_json(file_path: str, data) -> bool:
    """Atomically write JSON data to a file."""
    try:
        content = json.dumps(data, indent=2, sort_keys=True)
    except (TypeError, ValueError) as e:
        logger.error(f"Failed to serialize JSON for {file_path}: {e}")
        return False
    return atomic_write(file_path, content)


def load_json_file(file_path: str, default=None):
    """Load JSON from file, returning default when missing or unreadable."""
    if not os.path.exists(file_path):
        return default
    try:
        with open(file_path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Error loading {file_path}: {e}")
        return default
