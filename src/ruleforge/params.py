"""Parameter store for RuleForge.

Parameters live in a flat namespace: nested maps are addressed with dotted
keys (``user.login``) and array elements with indexed keys (``phone:0``).
``flatten`` and ``unflatten`` convert between the nested and flat forms:

    flatten({"user": {"phones": ["1", "2"]}})
    # {"user.phones:0": "1", "user.phones:1": "2"}

The round-trip law ``unflatten(flatten(tree)) == tree`` holds for any tree
of maps, lists and scalars whose keys contain neither delimiter.
"""

import re
from typing import Any, Iterator, Mapping

from ruleforge.exceptions import MalformedParameterError

HASH_DELIMITER = "."
ARRAY_DELIMITER = ":"

_TOKEN = re.compile(r"([.:])([^.:]*)")


def _is_container(value: Any) -> bool:
    return isinstance(value, (Mapping, list, tuple))


def flatten(tree: Mapping[str, Any]) -> dict[str, Any]:
    """Flatten a nested structure of maps and lists into a flat dict.

    Empty maps and lists are kept as leaf values so that ``unflatten``
    can rebuild them.
    """
    flat: dict[str, Any] = {}

    def walk(prefix: str, value: Any) -> None:
        if isinstance(value, Mapping) and value:
            for key, item in value.items():
                walk(f"{prefix}{HASH_DELIMITER}{key}", item)
        elif isinstance(value, (list, tuple)) and value:
            for index, item in enumerate(value):
                walk(f"{prefix}{ARRAY_DELIMITER}{index}", item)
        elif isinstance(value, Mapping):
            flat[prefix] = {}
        elif isinstance(value, (list, tuple)):
            flat[prefix] = []
        else:
            flat[prefix] = value

    for key, value in tree.items():
        walk(str(key), value)

    return flat


def _split_key(key: str) -> list[tuple[str, str | int]]:
    """Split a flat key into (kind, token) path steps.

    The first step is always a map key; ``.`` steps are map keys and
    ``:`` steps are list indexes (non-numeric ``:`` tokens are map keys).
    """
    head, _, _ = key.partition(HASH_DELIMITER)
    head, _, _ = head.partition(ARRAY_DELIMITER)
    steps: list[tuple[str, str | int]] = [("map", head)]
    for delimiter, token in _TOKEN.findall(key[len(head):]):
        if delimiter == ARRAY_DELIMITER and token.isdigit():
            steps.append(("list", int(token)))
        else:
            steps.append(("map", token))
    return steps


def unflatten(flat: Mapping[str, Any]) -> dict[str, Any]:
    """Rebuild a nested structure from a flat dict produced by ``flatten``."""
    root: dict[str, Any] = {}

    for key, value in flat.items():
        steps = _split_key(str(key))
        container: Any = root
        for position, (_, token) in enumerate(steps):
            last = position == len(steps) - 1
            if last:
                next_value = value
            else:
                next_kind = steps[position + 1][0]
                next_value = [] if next_kind == "list" else {}

            if isinstance(container, list):
                while len(container) <= token:  # type: ignore[operator]
                    container.append(None)
                if last:
                    container[token] = next_value  # type: ignore[index]
                elif not _is_container(container[token]):  # type: ignore[index]
                    container[token] = next_value  # type: ignore[index]
                container = container[token]  # type: ignore[index]
            else:
                if last:
                    container[token] = next_value
                elif not _is_container(container.get(token)):
                    container[token] = next_value
                container = container[token]

    return root


def is_nested(value: Any) -> bool:
    """True when a parameter value needs flattening before it can be stored."""
    if isinstance(value, Mapping):
        return bool(value)
    if isinstance(value, (list, tuple)):
        return any(_is_container(item) for item in value)
    return False


class Params:
    """Flat key/value store of parameters (scalars and lists of scalars).

    Example:
        params = Params({"login": "admin"})
        params.add("user", {"email": "a@b.io"})   # stored as "user.email"
        params.get("user.email")
    """

    def __init__(self, params: Mapping[str, Any] | None = None):
        self._data: dict[str, Any] = {}
        if params:
            self.add(params)

    @classmethod
    def from_nested(cls, tree: Mapping[str, Any]) -> "Params":
        """Build a store from an arbitrarily nested structure."""
        store = cls()
        store._data = flatten(tree)
        return store

    def add(self, key: str | Mapping[str, Any], value: Any = None) -> "Params":
        """Store a parameter, or every pair of a mapping.

        A scalar or a list of scalars is stored as is. A mapping of scalars
        (or lists of scalars) is stored one level deep as ``key.sub``.
        Anything deeper raises MalformedParameterError.
        """
        if isinstance(key, Mapping):
            for name, item in key.items():
                self.add(name, item)
            return self

        if isinstance(value, Mapping):
            for sub, item in value.items():
                if isinstance(item, Mapping) or (
                    isinstance(item, (list, tuple))
                    and any(_is_container(i) for i in item)
                ):
                    raise MalformedParameterError(
                        f"Parameter {key} contains the nested structure {sub}; "
                        "flatten the parameters before adding them"
                    )
                self._store(f"{key}{HASH_DELIMITER}{sub}", item)
            return self

        if isinstance(value, (list, tuple)) and any(_is_container(i) for i in value):
            raise MalformedParameterError(
                f"Parameter {key} contains a list of nested structures; "
                "flatten the parameters before adding them"
            )

        self._store(str(key), value)
        return self

    def _store(self, key: str, value: Any) -> None:
        if isinstance(value, tuple):
            value = list(value)
        self._data[key] = value

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def has(self, key: str) -> bool:
        return key in self._data

    def delete(self, key: str) -> Any:
        """Remove a parameter and return its value (None if absent)."""
        return self._data.pop(key, None)

    def clear(self) -> "Params":
        self._data.clear()
        return self

    def keys(self) -> list[str]:
        return list(self._data.keys())

    def items(self) -> list[tuple[str, Any]]:
        return list(self._data.items())

    def to_dict(self) -> dict[str, Any]:
        return {
            k: list(v) if isinstance(v, list) else v for k, v in self._data.items()
        }

    def replace(self, data: Mapping[str, Any]) -> "Params":
        """Swap the whole content for ``data`` (already flat)."""
        self._data = dict(data)
        return self

    def has_nested(self) -> bool:
        return any(is_nested(v) for v in self._data.values())

    def flatten(self) -> dict[str, Any]:
        """Return a fully flattened copy of the stored parameters."""
        return flatten(self._data)

    def unflatten(self) -> dict[str, Any]:
        """Return the stored parameters rebuilt as a nested structure."""
        return unflatten(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __setitem__(self, key: str, value: Any) -> None:
        self.add(key, value)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._data))

    def __len__(self) -> int:
        return len(self._data)

    def __bool__(self) -> bool:
        return bool(self._data)

    def __repr__(self) -> str:
        return f"Params({self._data!r})"
