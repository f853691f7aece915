"""
File Utilities
Handles file operations, path management, and JSON serialization
"""
import os
import json
import time
from pathlib import Path
from typing import Any
import logging

logger = logging.getLogger(__name__)

def ensure_dir(path: str) -> None:
    """
    Ensure directory exists, create if it doesn't
    
    Args:
        path: Directory path to ensure exists
    """
    Path(path).mkdir(parents=True, exist_ok=True)

def get_file_size(path: str) -> int:
    """
    Get file size in bytes
    
    Args:
        path: File path
    
    Returns:
        File size in bytes, or 0 if file doesn't exist
    """
    try:
        return os.path.getsize(path) if os.path.exists(path) else 0
    except OSError as e:
        logger.warning(f"Failed to get file size for {path}: {e}")
        return 0

def get_timestamped_filename(prefix: str, extension: str = "", directory: str = "") -> str:
    """
    Generate timestamped filename
    
    Args:
        prefix: Filename prefix
        extension: File extension (with or without dot)
        directory: Optional directory path
    
    Returns:
        Full path to timestamped file
    """
    timestamp = int(time.time() * 1000)
    if extension and not extension.startswith('.'):
        extension = f'.{extension}'
    
    filename = f"{prefix}_{timestamp}{extension}"
    
    if directory:
        ensure_dir(directory)
        return os.path.join(directory, filename)
    
    return filename

def to_json_compatible(obj: Any) -> Any:
    """Convert numpy scalars/arrays and tuples into plain JSON types"""
    # numpy is optional here; duck-type on .tolist()/.item()
    if hasattr(obj, 'tolist') and not isinstance(obj, (str, bytes)):
        return obj.tolist()
    if hasattr(obj, 'item') and not isinstance(obj, (str, bytes, dict, list, tuple)):
        return obj.item()
    if isinstance(obj, dict):
        return {str(key): to_json_compatible(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [to_json_compatible(item) for item in obj]
    return obj

def save_json(
    data: Any,
    filepath: str,
    indent: int = 2,
    ensure_directory: bool = True
) -> bool:
    """
    Save data to JSON file
    
    Args:
        data: Data to serialize
        filepath: Path to save file
        indent: JSON indentation (None for compact)
        ensure_directory: Whether to create parent directory if needed
    
    Returns:
        True if successful, False otherwise
    """
    try:
        if ensure_directory:
            directory = os.path.dirname(filepath)
            if directory:
                ensure_dir(directory)
        
        with open(filepath, 'w', encoding='utf-8') as f:
            json.dump(to_json_compatible(data), f, indent=indent)
        
        return True
    except (OSError, TypeError, ValueError) as e:
        logger.error(f"Failed to save JSON to {filepath}: {e}")
        return False

def load_json(filepath: str, default: Any = None) -> Any:
    """
    Load data from JSON file
    
    Args:
        filepath: Path to JSON file
        default: Default value to return if file doesn't exist or load fails
    
    Returns:
        Loaded data, or default value if failed
    """
    try:
        if not os.path.exists(filepath):
            logger.warning(f"JSON file not found: {filepath}")
            return default
        
        with open(filepath, 'r', encoding='utf-8') as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.error(f"Failed to load JSON from {filepath}: {e}")
        return default

def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format
    
    Args:
        size_bytes: Size in bytes
    
    Returns:
        Formatted string (e.g., "1.50 MB")
    """
    size = float(size_bytes)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"
