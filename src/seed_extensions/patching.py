"""JSON merge patch utilities.

This module computes RFC 7386 merge patches so updates only send the
fields that actually changed.
"""

from typing import Any


def create_merge_patch(original: dict[str, Any], modified: dict[str, Any]) -> dict[str, Any]:
    """Compute the JSON merge patch turning ``original`` into ``modified``.

    Keys removed in ``modified`` map to None. Nested mappings are diffed
    recursively; every other value (including lists) is replaced as a whole.

    Args:
        original: The document as currently stored.
        modified: The desired document.

    Returns:
        The merge patch. An empty dict means both documents are equal.

    """
    patch: dict[str, Any] = {}

    for key in original.keys() - modified.keys():
        patch[key] = None

    for key, new_value in modified.items():
        if key not in original:
            patch[key] = new_value
            continue

        old_value = original[key]
        if isinstance(old_value, dict) and isinstance(new_value, dict):
            nested = create_merge_patch(old_value, new_value)
            if nested:
                patch[key] = nested
        elif old_value != new_value:
            patch[key] = new_value

    return patch


def set_label(obj: dict[str, Any], key: str, value: str) -> None:
    """Set a metadata label on a raw object, creating the label map if needed."""
    metadata: dict[str, Any] = obj.setdefault("metadata", {})
    labels = metadata.get("labels")
    if labels is None:
        labels = metadata["labels"] = {}
    labels[key] = value
