"""
Storage components: quota-limited local store and model persistence
"""
from automata_ai.storage.local_store import LocalStore, StorageQuotaError
from automata_ai.storage.model_store import ModelStore, ModelLoadError, SaveResult, SaveStatus

__all__ = ['LocalStore', 'StorageQuotaError', 'ModelStore', 'ModelLoadError', 'SaveResult', 'SaveStatus']
