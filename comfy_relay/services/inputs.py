"""Input overrides for execution-format prompts."""

import copy
from typing import Any, Dict, Mapping, Optional


def set_by_path(target: Dict[str, Any], path: str, value: Any) -> None:
    """Set ``target["a"]["b"]["c"] = value`` for path "a.b.c", creating dicts."""
    parts = path.split(".")
    current = target

    for part in parts[:-1]:
        if not isinstance(current.get(part), dict):
            current[part] = {}
        current = current[part]

    current[parts[-1]] = value


def apply_inputs(prompt: Dict[str, Any], inputs: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    """
    Merge overrides into a deep copy of a prompt.

    Keys are resolved one at a time:
    - "6.inputs.text": dotted path, replaces the value at that path
    - "6" with a dict value: shallow-merged into node 6's ``inputs``
    - anything else: set at the top level

    Args:
        prompt: Execution-format prompt, left untouched
        inputs: Override mapping

    Returns:
        New prompt with overrides applied
    """
    cloned = copy.deepcopy(prompt)

    for key, value in (inputs or {}).items():
        if "." in key:
            set_by_path(cloned, key, value)
            continue

        node = cloned.get(key)
        if isinstance(node, dict) and isinstance(node.get("inputs"), dict) and isinstance(value, dict):
            node["inputs"] = {**node["inputs"], **value}
            continue

        cloned[key] = value

    return cloned
