"""Utilities for loading and saving IR from/to JSON files."""

from pathlib import Path
from typing import Dict, List
from pydantic import TypeAdapter
from schemair.ir.schema import Application, Component

_COMPONENTS = TypeAdapter(List[Component])


def _read_json_text(path: Path) -> str:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"IR file not found: {path}")
    content = path.read_text(encoding="utf-8").strip()
    if not content:
        raise ValueError(f"IR file is empty: {path}")
    return content


def _load(path: Path, adapter: TypeAdapter, label: str):
    content = _read_json_text(path)
    try:
        return adapter.validate_json(content)
    except Exception as e:
        raise ValueError(f"Failed to load {label} from {path}: {e}") from e


def load_application(path: Path) -> Application:
    """
    Load an Application from a JSON file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is empty or does not describe an Application
    """
    return _load(path, TypeAdapter(Application), "application")


def load_components(path: Path) -> List[Component]:
    """Load a component plan (a JSON array of components)."""
    return _load(path, _COMPONENTS, "components")


def save_application(application: Application, path: Path) -> None:
    """Save an Application as JSON, using the camelCase wire keys."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(application.model_dump_json(by_alias=True, indent=2), encoding="utf-8")


def save_components(components: List[Component], path: Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(_COMPONENTS.dump_json(components, by_alias=True, indent=2))


def write_rendered_files(files: Dict[str, str], out_dir: Path) -> List[Path]:
    """
    Write rendered schema texts to ``out_dir``.

    Returns:
        Paths written, in input order
    """
    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    written = []
    for filename, text in files.items():
        target = out_dir / filename
        target.write_text(text, encoding="utf-8")
        written.append(target)
    return written
