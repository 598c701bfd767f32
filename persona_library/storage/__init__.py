"""Storage module for persona_library.

Provides path resolution and JSON document persistence with atomic writes.

Public Interface:
    - DocumentStore: Hierarchical JSON document store
    - MalformedDocumentError: Raised for documents failing validation
    - new_document_id: Generate a document id
    - get_home_dir: Get PERSONAD_HOME
    - get_config_dir: Get config directory
    - get_state_dir: Get state directory
    - get_log_dir: Get log directory
"""

from .documents import DocumentStore
from .documents import MalformedDocumentError
from .documents import new_document_id
from .paths import get_config_dir
from .paths import get_home_dir
from .paths import get_log_dir
from .paths import get_state_dir

__all__ = [
    "DocumentStore",
    "MalformedDocumentError",
    "new_document_id",
    "get_home_dir",
    "get_config_dir",
    "get_state_dir",
    "get_log_dir",
]
