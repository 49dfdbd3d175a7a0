"""Local workflow files: directory index, filenames and destination paths."""

from __future__ import annotations

import logging
from enum import Enum
from pathlib import Path

from ..errors import ValidationError, WorkflowFileError
from .models import Workflow, coerce_id
from .serialization import (
    ORIGINAL_NAME_FIELD,
    SUPPORTED_EXTENSIONS,
    YAML_EXTENSIONS,
    is_supported_path,
    is_yaml_path,
    read_document,
)

logger = logging.getLogger(__name__)

_INVALID_FILENAME_CHARS = set('<>:"/\\|?*')
_RESERVED_NAMES = {"CON", "PRN", "AUX", "NUL"} | {
    f"{prefix}{n}" for prefix in ("COM", "LPT") for n in range(1, 10)
}

OUTPUT_FORMATS = ("json", "yaml", "yml")


class FileAction(str, Enum):
    """What writing a workflow to its destination will do."""

    CREATING = "Creating"
    UPDATING = "Updating"
    CONVERTING = "Converting"

    @property
    def verb(self) -> str:
        return {"Creating": "create", "Updating": "update", "Converting": "convert"}[self.value]


def _is_reserved_name(name: str) -> bool:
    return name.split(".", 1)[0].upper() in _RESERVED_NAMES


def sanitize_filename(name: str) -> str:
    """Turn a workflow name into a portable file name (without extension).

    Whitespace, control characters, path separators, characters Windows
    rejects and pictographs are replaced with ``_``. Trailing dots and spaces
    are trimmed and Windows device names get a ``_`` prefix.

    Examples:
        >>> sanitize_filename("Name/With/Slashes")
        'Name_With_Slashes'
        >>> sanitize_filename("CON")
        '_CON'
    """
    chars = []
    for ch in name:
        code = ord(ch)
        if ch.isspace() or code < 32 or code == 127 or code >= 0x1F000 or ch in _INVALID_FILENAME_CHARS:
            chars.append("_")
        else:
            chars.append(ch)

    sanitized = "".join(chars).rstrip(" .")
    if not sanitized:
        return "_"
    if _is_reserved_name(sanitized):
        sanitized = "_" + sanitized
    return sanitized


def normalize_output_format(output: str | None) -> str:
    """Validate an ``--output`` value; returns "", "json" or "yaml"."""
    if not output:
        return ""
    value = output.lower()
    if value not in OUTPUT_FORMATS:
        raise ValidationError(f"invalid output format '{output}' (expected json or yaml)")
    return "yaml" if value == "yml" else value


def looks_like_file_path(value: str) -> bool:
    """True if ``value`` reads as a path rather than a workflow name."""
    return is_supported_path(value) or "/" in value or "\\" in value


def validate_workflow_file_extension(path: str | Path) -> None:
    if not is_supported_path(path):
        raise ValidationError(
            f"unsupported file extension '{Path(path).suffix}' (expected .json, .yaml or .yml)"
        )


def iter_workflow_files(directory: str | Path) -> list[Path]:
    """Supported files directly inside ``directory``, in name order."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir() if p.is_file() and p.suffix.lower() in SUPPORTED_EXTENSIONS
    )


def build_index(directory: str | Path) -> dict[str, Path]:
    """Map workflow id -> file path for the files in ``directory``.

    When two files claim the same id a YAML file beats a JSON one; otherwise
    the later file in scan order wins. Files without a readable id are left
    out. A missing directory gives an empty index.
    """
    index: dict[str, Path] = {}
    for path in iter_workflow_files(directory):
        try:
            workflow_id = coerce_id(read_document(path).get("id"))
        except WorkflowFileError as e:
            logger.warning("Skipping unreadable workflow file %s", e.message)
            continue
        if not workflow_id:
            continue

        existing = index.get(workflow_id)
        if existing is not None:
            if is_yaml_path(existing) and not is_yaml_path(path):
                logger.warning(
                    "Workflow %s is in both %s and %s; using %s",
                    workflow_id, existing.name, path.name, existing.name,
                )
                continue
            logger.warning(
                "Workflow %s is in both %s and %s; using %s",
                workflow_id, existing.name, path.name, path.name,
            )
        index[workflow_id] = path
    return index


def _extension_for(output: str, existing: Path | None) -> str:
    if output == "yaml":
        return ".yaml"
    if output == "json":
        return ".json"
    if existing is not None and existing.suffix.lower() in YAML_EXTENSIONS:
        return existing.suffix.lower()
    return ".json"


def resolve_destination(
    workflow: Workflow,
    index: dict[str, Path],
    directory: str | Path,
    output: str = "",
    overwrite: bool = False,
    original_name: str | None = None,
) -> tuple[Path, FileAction]:
    """Decide where a remote workflow is written and what that write means.

    A tracked file keeps its (possibly custom) path unless overwrite is set or
    the requested output format needs a different extension, in which case the
    default ``<sanitized name>.<ext>`` path is used.
    """
    output = normalize_output_format(output)
    existing = index.get(workflow.id) if workflow.id else None
    extension = _extension_for(output, existing)
    default_path = Path(directory) / (sanitize_filename(original_name or workflow.name) + extension)

    if existing is None or overwrite:
        return default_path, FileAction.CREATING

    existing_is_yaml = existing.suffix.lower() in YAML_EXTENSIONS
    if (output == "yaml" and not existing_is_yaml) or (output == "json" and existing_is_yaml):
        return default_path, FileAction.CONVERTING

    return existing, FileAction.UPDATING


def find_local_workflow_by_name(directory: str | Path, name: str) -> Path | None:
    """First file in ``directory`` whose ``originalName`` or ``name`` equals ``name``."""
    for path in iter_workflow_files(directory):
        try:
            data = read_document(path)
        except WorkflowFileError as e:
            logger.debug("Skipping %s: %s", path, e.message)
            continue
        if data.get(ORIGINAL_NAME_FIELD) == name or data.get("name") == name:
            return path
    return None


def with_output_extension(path: str | Path, output: str) -> Path:
    """``path`` with the extension for ``output``; unchanged when no format is requested."""
    path = Path(path)
    if not output:
        return path
    return path.with_suffix(".yaml" if output == "yaml" else ".json")
