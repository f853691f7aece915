"""
Local Store: small string key/value store with a byte quota
Backed by a directory (one file per key) or kept in memory
"""
import os
import logging
from typing import Dict, List, Optional
from urllib.parse import quote, unquote
from automata_ai.config import config
from automata_ai.utils.file_utils import ensure_dir

logger = logging.getLogger(__name__)

class StorageQuotaError(Exception):
    """Raised when a write would push the store over its quota"""

class LocalStore:
    """
    Key/value store for serialized documents
    
    Args:
        path: Directory to persist into, or None for an in-memory store
        quota: Maximum total bytes across all values
    """
    
    def __init__(self, path: Optional[str] = None, quota: int = None):
        self.path = path
        self.quota = quota or config.LOCAL_STORE_QUOTA
        self._memory: Dict[str, str] = {}
        if self.path:
            ensure_dir(self.path)
        logger.debug(f"Local store ready - {'dir ' + self.path if self.path else 'memory'}, quota={self.quota}B")
    
    def _file_for(self, key: str) -> str:
        return os.path.join(self.path, quote(key, safe='') + '.json')
    
    def keys(self) -> List[str]:
        if not self.path:
            return sorted(self._memory)
        return sorted(
            unquote(name[:-len('.json')])
            for name in os.listdir(self.path) if name.endswith('.json')
        )
    
    def _size_of(self, key: str) -> int:
        if not self.path:
            value = self._memory.get(key)
            return len(value.encode('utf-8')) if value is not None else 0
        file_path = self._file_for(key)
        return os.path.getsize(file_path) if os.path.exists(file_path) else 0
    
    def usage(self) -> int:
        """Bytes used by all stored values"""
        return sum(self._size_of(key) for key in self.keys())
    
    def get_item(self, key: str) -> Optional[str]:
        if not self.path:
            return self._memory.get(key)
        file_path = self._file_for(key)
        if not os.path.exists(file_path):
            return None
        with open(file_path, 'r', encoding='utf-8') as f:
            return f.read()
    
    def set_item(self, key: str, value: str):
        """
        Store a value
        
        Raises:
            StorageQuotaError: if the store would exceed its quota
        """
        size = len(value.encode('utf-8'))
        projected = self.usage() - self._size_of(key) + size
        if projected > self.quota:
            raise StorageQuotaError(
                f"Writing {size} bytes to {key!r} would use {projected} of {self.quota} bytes"
            )
        if not self.path:
            self._memory[key] = value
            return
        with open(self._file_for(key), 'w', encoding='utf-8') as f:
            f.write(value)
    
    def remove_item(self, key: str) -> bool:
        if not self.path:
            return self._memory.pop(key, None) is not None
        file_path = self._file_for(key)
        if os.path.exists(file_path):
            os.remove(file_path)
            return True
        return False
    
    def clear(self):
        for key in self.keys():
            self.remove_item(key)
