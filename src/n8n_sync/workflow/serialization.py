"""Workflow file serialization.

Files are JSON or YAML, chosen by extension. Written files always carry an
extra ``originalName`` field which is used only to keep a file's path stable
when the workflow is renamed remotely; it is dropped again on decode.
"""

from __future__ import annotations

import datetime as dt
import json
import logging
from pathlib import Path
from typing import Any

import yaml

from ..errors import WorkflowFileError
from ..sync.drift import clean_workflow
from .models import Workflow, coerce_id

logger = logging.getLogger(__name__)

JSON_EXTENSIONS = (".json",)
YAML_EXTENSIONS = (".yaml", ".yml")
SUPPORTED_EXTENSIONS = JSON_EXTENSIONS + YAML_EXTENSIONS

ORIGINAL_NAME_FIELD = "originalName"
YAML_DOCUMENT_MARKER = "---\n"


def is_yaml_path(path: str | Path) -> bool:
    return Path(path).suffix.lower() in YAML_EXTENSIONS


def is_supported_path(path: str | Path) -> bool:
    return Path(path).suffix.lower() in SUPPORTED_EXTENSIONS


def _jsonable(value: Any) -> Any:
    """Undo YAML's implicit typing so both formats decode to the same values."""
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_jsonable(v) for v in value]
    if isinstance(value, dt.datetime):
        if value.tzinfo is not None and value.utcoffset() == dt.timedelta(0):
            timespec = "milliseconds" if value.microsecond else "seconds"
            return value.replace(tzinfo=None).isoformat(timespec=timespec) + "Z"
        return value.isoformat()
    if isinstance(value, dt.date):
        return value.isoformat()
    return value


def decode_document(raw: str | bytes) -> dict[str, Any]:
    """Parse JSON or YAML text into a mapping.

    Raises:
        WorkflowFileError: if the text is neither, or is not a mapping.
    """
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8-sig")
    text = raw.strip()
    if not text:
        raise WorkflowFileError("workflow file is empty")

    data: Any = None
    if text.startswith("{"):
        try:
            data = json.loads(text)
        except ValueError:
            data = None
    if data is None:
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as e:
            raise WorkflowFileError(f"failed to parse workflow: {e}") from e

    if not isinstance(data, dict):
        raise WorkflowFileError("workflow file must contain a mapping at the top level")
    return _jsonable(data)


# Expected container type for each typed field; null is always accepted.
_FIELD_TYPES: dict[str, tuple[type, ...]] = {
    "id": (str, int, float),
    "name": (str,),
    "active": (bool,),
    "nodes": (list,),
    "connections": (dict,),
    "settings": (dict,),
    "tags": (list,),
}


def check_field_types(data: dict[str, Any]) -> None:
    """Reject documents whose known fields have the wrong JSON type.

    Raises:
        WorkflowFileError: naming the first offending field.
    """
    for field, types in _FIELD_TYPES.items():
        value = data.get(field)
        if value is None:
            continue
        if not isinstance(value, types) or (field == "id" and isinstance(value, bool)):
            raise WorkflowFileError(
                f"field '{field}' has invalid type {type(value).__name__}"
            )
    for tag in data.get("tags") or []:
        if not isinstance(tag, (dict, str)):
            raise WorkflowFileError(f"tag entry has invalid type {type(tag).__name__}")


def decode_workflow(raw: str | bytes) -> Workflow:
    data = decode_document(raw)
    check_field_types(data)
    return Workflow.from_dict(data)


def read_document(path: str | Path) -> dict[str, Any]:
    path = Path(path)
    if not is_supported_path(path):
        raise WorkflowFileError(
            f"unsupported file extension '{path.suffix}' (expected .json, .yaml or .yml)",
            path,
        )
    try:
        raw = path.read_bytes()
    except OSError as e:
        raise WorkflowFileError(f"failed to read {path}: {e}", path) from e
    try:
        return decode_document(raw)
    except WorkflowFileError as e:
        raise WorkflowFileError(f"{path}: {e.message}", path) from e


def read_workflow(path: str | Path) -> Workflow:
    """Read and decode one workflow file."""
    data = read_document(path)
    try:
        check_field_types(data)
    except WorkflowFileError as e:
        raise WorkflowFileError(f"{path}: {e.message}", path) from e
    return Workflow.from_dict(data)


def extract_workflow_id(path: str | Path) -> str | None:
    """Return the ``id`` stored in a workflow file, or None if absent/unreadable."""
    try:
        data = read_document(path)
    except WorkflowFileError as e:
        logger.debug("Skipping %s: %s", path, e.message)
        return None
    return coerce_id(data.get("id")) or None


def extract_original_name(path: str | Path) -> str | None:
    """Return the ``originalName`` marker stored in a workflow file, if any."""
    try:
        data = read_document(path)
    except WorkflowFileError:
        return None
    value = data.get(ORIGINAL_NAME_FIELD)
    return value if isinstance(value, str) and value else None


def serialize_workflow(
    workflow: Workflow,
    path: str | Path,
    minimal: bool = False,
    original_name: str | None = None,
) -> str:
    """Render a workflow for ``path``; the extension picks JSON or YAML.

    Keys are sorted so repeated writes of the same workflow are byte-identical.
    With ``minimal`` the server-owned fields are dropped first.
    """
    if minimal:
        workflow = clean_workflow(workflow)

    data = workflow.to_dict()
    if ORIGINAL_NAME_FIELD not in data and (original_name or workflow.name):
        data[ORIGINAL_NAME_FIELD] = original_name or workflow.name

    if is_yaml_path(path):
        body = yaml.safe_dump(
            data,
            sort_keys=True,
            indent=2,
            allow_unicode=True,
            default_flow_style=False,
        )
        return YAML_DOCUMENT_MARKER + body
    return json.dumps(data, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def write_workflow_file(path: str | Path, content: str) -> None:
    path = Path(path)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise WorkflowFileError(f"failed to write {path}: {e}", path) from e
