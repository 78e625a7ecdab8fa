from __future__ import annotations

import re
from pathlib import Path
from typing import Dict, Optional, Union

_ENTRY = re.compile(r"""^\s+(\d+)\s*:\s*['"]?(.*?)['"]?\s*$""")


def load_class_names(metadata_path: Union[str, Path]) -> Dict[int, str]:
    """
    Read the `names:` block of a model metadata file:

        names:
          0: person
          1: bicycle

    Indented `id: label` lines are collected until the next top-level key.
    """

    path = Path(metadata_path)
    if not path.exists():
        raise FileNotFoundError(f"Class metadata not found: {path}")

    names: Dict[int, str] = {}
    in_names = False
    for raw in path.read_text(encoding="utf-8").splitlines():
        if not raw.strip() or raw.lstrip().startswith("#"):
            continue
        if not raw[0].isspace():
            if in_names:
                break
            in_names = raw.rstrip() == "names:"
            continue
        if in_names:
            match = _ENTRY.match(raw)
            if match:
                names[int(match.group(1))] = match.group(2)
    return names


def class_name(names: Optional[Dict[int, str]], label: int) -> str:
    if names and label in names:
        return names[label]
    return str(label)
