"""
Artifact Cache

Makes sure the model files a transcription engine needs exist on local disk,
downloading them on first use. Files are cached indefinitely under
<cache_root>/<model_id>/<file> and shared across requests.

Downloads stream into a temp file beside the destination and are renamed into
place only after the transfer completes, so concurrent requests for the same
model never observe a partially written file.
"""

import logging
import os
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import requests

from linkdigest.core.config import Config
from linkdigest.core.errors import DownloadFailedError
from linkdigest.core.types import ModelArtifacts

DOWNLOAD_CHUNK_SIZE = 1024 * 1024


@dataclass(frozen=True)
class ModelFile:
    name: str
    path: str


@dataclass(frozen=True)
class ModelSource:
    repo: str
    files: Tuple[ModelFile, ...]


MODEL_SOURCES: Dict[str, ModelSource] = {
    'parakeet': ModelSource(
        repo='istupakov/parakeet-tdt-0.6b-v3-onnx',
        files=(ModelFile('model', 'model.onnx'), ModelFile('vocab', 'vocab.txt')),
    ),
    'canary': ModelSource(
        repo='istupakov/canary-1b-v2-onnx',
        files=(ModelFile('model', 'model.onnx'), ModelFile('vocab', 'vocab.txt')),
    ),
}


class ArtifactCache:
    """Downloads and locates model artifacts for local transcription engines"""

    def __init__(
        self,
        cache_root: Path,
        base_url: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: float = Config.LONG_TIMEOUT,
    ):
        self.cache_root = Path(cache_root)
        self.base_url = base_url.rstrip('/') if base_url else None
        self.session = session if session else requests.Session()
        self.timeout = timeout
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def source_url(self, model_id: str, file: ModelFile) -> str:
        source = MODEL_SOURCES[model_id]
        base_url = self.base_url or f"{Config.HUGGINGFACE_BASE_URL}/{source.repo}/resolve/main"
        return f"{base_url}/{file.path}"

    def ensure_artifacts(self, model_id: str, notes: Optional[List[str]] = None) -> ModelArtifacts:
        """
        Ensure every file of a model is present locally

        Args:
            model_id: Key of MODEL_SOURCES (e.g. 'parakeet')
            notes: Optional list that receives a note when files were downloaded

        Returns:
            ModelArtifacts pointing at the populated files

        Raises:
            KeyError: unknown model id
            DownloadFailedError: any file failed to download (nothing partial is left behind)
        """
        source = MODEL_SOURCES[model_id]
        model_dir = self.cache_root / model_id
        model_dir.mkdir(parents=True, exist_ok=True)

        downloaded = False
        for file in source.files:
            target = model_dir / file.path
            if target.exists():
                continue
            url = self.source_url(model_id, file)
            self.logger.info(f"📥 [ARTIFACTS] Downloading {model_id}/{file.path} from {url}")
            self._download_file(model_id, url, target)
            downloaded = True

        if downloaded:
            self.logger.info(f"✅ [ARTIFACTS] {model_id} files ready in {model_dir}")
            if notes is not None:
                notes.append(f"Downloaded {model_id} ONNX files to {model_dir}")
        else:
            self.logger.debug(f"♻️ [ARTIFACTS] Reusing cached {model_id} files in {model_dir}")

        return ModelArtifacts(
            model_dir=model_dir,
            model_path=model_dir / 'model.onnx',
            vocab_path=model_dir / 'vocab.txt',
        )

    def _download_file(self, model_id: str, url: str, destination: Path) -> None:
        destination.parent.mkdir(parents=True, exist_ok=True)
        temp_path = destination.with_name(f".{destination.name}.{uuid.uuid4().hex}.part")

        try:
            response = self.session.get(url, stream=True, timeout=self.timeout)
            try:
                if response.status_code != 200:
                    reason = response.reason or 'unknown error'
                    raise DownloadFailedError(
                        f"{model_id} model download",
                        f"download failed ({response.status_code}): {reason}"
                    )
                with open(temp_path, 'wb') as f:
                    for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                        if chunk:
                            f.write(chunk)
            finally:
                response.close()
            os.replace(temp_path, destination)
        except requests.exceptions.RequestException as e:
            raise DownloadFailedError(f"{model_id} model download", str(e)) from e
        finally:
            if temp_path.exists():
                temp_path.unlink()
