"""Publishing configuration.

Where compiled artifacts are published is configured through the same
environment variables the console server uses:

    BASE_URL              https://openpropertyassociation.ca
    CONTEXT_FOLDER_PATH   credentials/contexts
    SCHEMA_FOLDER_PATH    credentials/schemas
    VOCAB_FOLDER_PATH     credentials/contexts
    DICTIONARY_API_URL    http://localhost:5174

Library functions take these values as explicit arguments; only CLIs read the
environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping

DEFAULT_BASE_URL = "https://openpropertyassociation.ca"
DEFAULT_CONTEXT_FOLDER_PATH = "credentials/contexts"
DEFAULT_SCHEMA_FOLDER_PATH = "credentials/schemas"
DEFAULT_VOCAB_FOLDER_PATH = "credentials/contexts"
DEFAULT_DICTIONARY_API_URL = "http://localhost:5174"

# Vocabulary document published under VOCAB_FOLDER_PATH
VOCAB_DOCUMENT = "vocab.jsonld"


def _join(base: str, *parts: str) -> str:
    segments = [base.rstrip("/")]
    segments.extend(p.strip("/") for p in parts if p and p.strip("/"))
    return "/".join(segments)


@dataclass(frozen=True)
class PublishingConfig:
    """Base URL and folder layout of the governance repository."""

    base_url: str = DEFAULT_BASE_URL
    context_folder_path: str = DEFAULT_CONTEXT_FOLDER_PATH
    schema_folder_path: str = DEFAULT_SCHEMA_FOLDER_PATH
    vocab_folder_path: str = DEFAULT_VOCAB_FOLDER_PATH
    dictionary_api_url: str = DEFAULT_DICTIONARY_API_URL

    @property
    def context_base_url(self) -> str:
        return _join(self.base_url, self.context_folder_path)

    @property
    def schema_base_url(self) -> str:
        return _join(self.base_url, self.schema_folder_path)

    @property
    def vocab_namespace(self) -> str:
        """Namespace that vocabulary property ids are appended to."""
        return _join(self.base_url, self.vocab_folder_path, VOCAB_DOCUMENT) + "#"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> PublishingConfig:
        """Read configuration from the environment, falling back to defaults."""
        env = os.environ if environ is None else environ
        return cls(
            base_url=env.get("BASE_URL") or DEFAULT_BASE_URL,
            context_folder_path=env.get("CONTEXT_FOLDER_PATH")
            or DEFAULT_CONTEXT_FOLDER_PATH,
            schema_folder_path=env.get("SCHEMA_FOLDER_PATH")
            or DEFAULT_SCHEMA_FOLDER_PATH,
            vocab_folder_path=env.get("VOCAB_FOLDER_PATH")
            or DEFAULT_VOCAB_FOLDER_PATH,
            dictionary_api_url=env.get("DICTIONARY_API_URL")
            or DEFAULT_DICTIONARY_API_URL,
        )
