"""Merge strategies used to accumulate UPDATE documents."""

from __future__ import annotations

from collections.abc import Mapping
from copy import deepcopy
from typing import TYPE_CHECKING, Any

from .ports.merge import IMergeStrategy

if TYPE_CHECKING:
    from collections.abc import Callable


def as_document(value: Any) -> Any:
    """Return a plain dict for pydantic models and mappings; other values as-is."""
    if hasattr(value, "model_dump"):
        return value.model_dump()
    if isinstance(value, Mapping) and not isinstance(value, dict):
        return dict(value)
    return value


class DeepMergeStrategy(IMergeStrategy):
    """
    Recursively merges documents, incoming wins at the leaves.

    - Mappings are merged key by key, recursively.
    - Lists are replaced by default, appended if ``append_lists`` is True,
      or merged item by item when ``list_identity_key`` is set.
    - Scalars are overwritten by incoming.
    """

    def __init__(
        self,
        *,
        append_lists: bool = False,
        list_identity_key: str | Callable[[Any], Any] | None = None,
    ) -> None:
        self.append_lists = append_lists
        self.list_identity_key = list_identity_key

    def merge(self, existing: Any, incoming: Any) -> Any:
        e_val = as_document(existing)
        i_val = as_document(incoming)

        if isinstance(e_val, dict) and isinstance(i_val, dict):
            return self._merge_dicts(e_val, i_val)

        if isinstance(e_val, list) and isinstance(i_val, list):
            return self._merge_lists(e_val, i_val)

        return deepcopy(i_val)

    def _merge_dicts(self, d1: dict[str, Any], d2: dict[str, Any]) -> dict[str, Any]:
        result = deepcopy(d1)
        for k, v in d2.items():
            if k in result:
                result[k] = self.merge(result[k], v)
            else:
                result[k] = deepcopy(v)
        return result

    def _merge_lists(self, l1: list[Any], l2: list[Any]) -> list[Any]:
        if self.list_identity_key is None:
            return deepcopy(l1 + l2 if self.append_lists else l2)

        result_map = {self._get_identity(item): deepcopy(item) for item in l1}
        for item in l2:
            identity = self._get_identity(item)
            if identity in result_map:
                result_map[identity] = self.merge(result_map[identity], item)
            else:
                result_map[identity] = deepcopy(item)

        return list(result_map.values())

    def _get_identity(self, item: Any) -> Any:
        if callable(self.list_identity_key):
            return self.list_identity_key(item)

        key = self.list_identity_key
        if isinstance(item, Mapping) and key in item:
            return item[key]
        return id(item)


class FieldLevelMergeStrategy(IMergeStrategy):
    """
    Merges documents at the top level only.

    Incoming fields replace existing ones wholesale, nested values included.
    """

    def merge(self, existing: Any, incoming: Any) -> Any:
        e_val = as_document(existing)
        i_val = as_document(incoming)
        if not (isinstance(e_val, dict) and isinstance(i_val, dict)):
            return deepcopy(i_val)
        merged = deepcopy(e_val)
        merged.update(deepcopy(i_val))
        return merged


def deep_merge(existing: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    return DeepMergeStrategy().merge(existing, incoming)
