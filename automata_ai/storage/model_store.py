"""
Model Store: persists policy networks as JSON documents
Primary location is the quota-limited local store, with an indented file export
as the fallback when the document is too large or the store rejects it
"""
import json
import os
import time
import logging
import numpy as np
import torch
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple
from automata_ai.config import Config, config as default_config
from automata_ai.core.model import ModelKind, PolicyModel, KIND_ARCHITECTURES, build_network
from automata_ai.storage.local_store import LocalStore, StorageQuotaError
from automata_ai.utils.file_utils import (
    format_file_size, get_file_size, get_timestamped_filename, load_json, save_json
)

logger = logging.getLogger(__name__)

MODEL_FORMAT = "automata-ai-model"
MODEL_FORMAT_VERSION = 2

class SaveStatus(str, Enum):
    OK = "ok"
    FALLBACK = "fallback"
    ERROR = "error"

@dataclass
class SaveResult:
    status: SaveStatus
    location: Optional[str] = None
    size_bytes: int = 0
    error: Optional[str] = None

    @property
    def saved(self) -> bool:
        return self.status != SaveStatus.ERROR

class ModelLoadError(Exception):
    """Raised when a persisted model is missing, corrupt or incompatible"""

class ModelStore:
    """
    Saves and loads PolicyModels

    Document layout:
        {format, format_version, kind, architecture,
         weights: [{name, shape, values}], metrics, saved_at}
    """

    def __init__(self, local_store: LocalStore = None, export_path: str = None, cfg: Config = None):
        self.config = cfg or default_config
        self.local_store = local_store or LocalStore(self.config.LOCAL_STORE_PATH, self.config.LOCAL_STORE_QUOTA)
        self.export_path = export_path or self.config.EXPORT_PATH

    def key_for(self, name: str) -> str:
        return f"{self.config.MODEL_KEY_PREFIX}{name}"

    @staticmethod
    def build_document(model: PolicyModel, metrics: Optional[Dict] = None) -> Dict:
        """Serialize a model into the persisted document layout"""
        weights = []
        for tensor_name, tensor in model.network.state_dict().items():
            array = tensor.detach().cpu().numpy()
            weights.append({
                'name': tensor_name,
                'shape': list(array.shape),
                'values': array.ravel().tolist(),
            })
        return {
            'format': MODEL_FORMAT,
            'format_version': MODEL_FORMAT_VERSION,
            'kind': ModelKind(model.kind).value,
            'architecture': model.architecture,
            'weights': weights,
            'metrics': metrics or {},
            'saved_at': time.time(),
        }

    def save(self, model: PolicyModel, name: str, metrics: Optional[Dict] = None) -> SaveResult:
        """
        Persist a model

        Args:
            model: Model to save
            name: Model name (key suffix / export file prefix)
            metrics: Training metrics stored alongside the weights

        Returns:
            SaveResult - OK (local store), FALLBACK (file export) or ERROR (both failed)
        """
        try:
            document = self.build_document(model, metrics)
            payload = json.dumps(document, separators=(',', ':'))
        except (TypeError, ValueError, RuntimeError) as e:
            logger.error(f"❌ Could not serialize model '{name}': {e}")
            return SaveResult(SaveStatus.ERROR, error=str(e))

        size = len(payload.encode('utf-8'))
        reason = None
        if size > self.config.MAX_LOCAL_MODEL_BYTES:
            reason = f"document is {format_file_size(size)}, over the {format_file_size(self.config.MAX_LOCAL_MODEL_BYTES)} local limit"
        else:
            key = self.key_for(name)
            try:
                self.local_store.set_item(key, payload)
                logger.info(f"💾 Saved {document['kind']} model '{name}' ({format_file_size(size)})")
                return SaveResult(SaveStatus.OK, location=key, size_bytes=size)
            except (StorageQuotaError, OSError) as e:
                reason = str(e)

        logger.warning(f"⚠️  Local save of '{name}' failed ({reason}) - exporting to file")
        file_path = get_timestamped_filename(name, 'json', self.export_path)
        if save_json(document, file_path, indent=2):
            logger.info(f"📁 Exported model '{name}' to {file_path}")
            return SaveResult(SaveStatus.FALLBACK, location=file_path,
                              size_bytes=get_file_size(file_path), error=reason)

        logger.error(f"❌ Model '{name}' could not be saved anywhere")
        return SaveResult(SaveStatus.ERROR, error=reason)

    def _read_document(self, name: Optional[str], path: Optional[str]) -> Dict:
        if path:
            if not os.path.exists(path):
                raise ModelLoadError(f"Model file not found: {path}")
            document = load_json(path)
            if document is None:
                raise ModelLoadError(f"Model file is not valid JSON: {path}")
            return document
        if not name:
            raise ModelLoadError("Either a model name or a file path is required")
        payload = self.local_store.get_item(self.key_for(name))
        if payload is None:
            raise ModelLoadError(f"No stored model named '{name}'")
        try:
            return json.loads(payload)
        except ValueError as e:
            raise ModelLoadError(f"Stored model '{name}' is corrupt: {e}") from e

    def load(self, name: str = None, path: str = None,
             kind: ModelKind = ModelKind.IMITATION) -> Tuple[PolicyModel, Dict]:
        """
        Load and validate a model

        Args:
            name: Model name in the local store
            path: Exported file path (takes precedence over name)
            kind: Expected model kind

        Returns:
            (PolicyModel marked trained, metrics)

        Raises:
            ModelLoadError: missing document, wrong format/version/kind/architecture,
                or tensor name/shape mismatch
        """
        kind = ModelKind(kind)
        document = self._read_document(name, path)
        if not isinstance(document, dict):
            raise ModelLoadError("Model document must be a JSON object")

        if document.get('format') != MODEL_FORMAT:
            raise ModelLoadError(f"Unknown model format: {document.get('format')!r}")
        if document.get('format_version') != MODEL_FORMAT_VERSION:
            raise ModelLoadError(
                f"Unsupported format version {document.get('format_version')!r} (expected {MODEL_FORMAT_VERSION})"
            )
        if document.get('kind') != kind.value:
            raise ModelLoadError(f"Expected a {kind.value} model, found {document.get('kind')!r}")

        architecture = document.get('architecture') or {}
        if architecture.get('type') != KIND_ARCHITECTURES[kind]:
            raise ModelLoadError(f"Architecture {architecture.get('type')!r} does not match kind {kind.value}")
        try:
            network = build_network(architecture)
        except ValueError as e:
            raise ModelLoadError(str(e)) from e

        state_dict = self._validated_state_dict(network, document.get('weights'))
        network.load_state_dict(state_dict)
        network.to(self.config.DEVICE)
        network.eval()

        source = path or self.key_for(name)
        logger.info(f"📂 Loaded {kind.value} model from {source}")
        return PolicyModel(kind=kind, network=network, trained=True), document.get('metrics') or {}

    @staticmethod
    def _validated_state_dict(network: torch.nn.Module, weights) -> Dict[str, torch.Tensor]:
        expected = network.state_dict()
        if not isinstance(weights, list):
            raise ModelLoadError("Model document has no weight list")

        entries = {}
        for entry in weights:
            try:
                entries[entry['name']] = entry
            except (KeyError, TypeError) as e:
                raise ModelLoadError(f"Malformed weight entry: {e}") from e

        if set(entries) != set(expected):
            missing = sorted(set(expected) - set(entries))
            unexpected = sorted(set(entries) - set(expected))
            raise ModelLoadError(f"Tensor names mismatch - missing={missing} unexpected={unexpected}")

        state_dict = {}
        for tensor_name, reference in expected.items():
            entry = entries[tensor_name]
            shape = tuple(entry.get('shape') or ())
            if shape != tuple(reference.shape):
                raise ModelLoadError(
                    f"Tensor {tensor_name} has shape {list(shape)}, expected {list(reference.shape)}"
                )
            try:
                values = np.asarray(entry['values'], dtype=np.float32).reshape(shape)
            except (KeyError, TypeError, ValueError) as e:
                raise ModelLoadError(f"Tensor {tensor_name} values are invalid: {e}") from e
            state_dict[tensor_name] = torch.from_numpy(values).to(reference.dtype)
        return state_dict

    def list_models(self):
        """Names of models in the local store"""
        prefix = self.config.MODEL_KEY_PREFIX
        return [key[len(prefix):] for key in self.local_store.keys() if key.startswith(prefix)]

    def delete(self, name: str) -> bool:
        return self.local_store.remove_item(self.key_for(name))
