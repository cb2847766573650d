"""Field composition: mixins, mixin fields and alias checks.

Merging never overrides a directive the field declares explicitly; the
only exception is ``multi`` directives, whose values are unioned.
"""

import copy
import logging
from typing import Any, Iterable

from ruleforge.directives.registry import DirectiveRegistry
from ruleforge.exceptions import AliasShadowsFieldError, DuplicateAliasError
from ruleforge.fields import Field, Mixin

logger = logging.getLogger(__name__)

# Directives that identify the target field and are never inherited
_OWN_DIRECTIVES = ("name", "label")


def _as_list(value: Any) -> list[Any]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]


def union(first: Any, second: Any) -> list[Any]:
    """Ordered union of two directive values, first values first."""
    merged: list[Any] = []
    for item in _as_list(first) + _as_list(second):
        if item not in merged:
            merged.append(item)
    return merged


def _merge_directive(
    field: Field, key: str, value: Any, registry: DirectiveRegistry
) -> None:
    multi = registry.is_registered(key) and registry.get(key).multi
    if key in field.directives:
        if multi:
            field.directives[key] = union(field.directives[key], value)
        return
    field.directives[key] = union([], value) if multi else copy.deepcopy(value)


def merge_mixin_into_field(
    field: Field, mixin: Mixin, registry: DirectiveRegistry
) -> Field:
    """Copy a mixin's directives into a field.

    Keys the field already declares are kept, except ``multi`` directives,
    which become the de-duplicated union (field values first).
    """
    for key, value in mixin.directives.items():
        _merge_directive(field, key, value, registry)
    return field


def merge_field_into_field(
    target: Field,
    source: Field,
    registry: DirectiveRegistry,
    mixins: dict[str, Mixin] | None = None,
) -> Field:
    """Copy the mixin-compatible directives of ``source`` into ``target``.

    The target keeps its own name and label. Mixins referenced by the
    source are merged into the target as well.
    """
    for key, value in source.directives.items():
        if key in _OWN_DIRECTIVES:
            continue
        if not (registry.is_registered(key) and registry.get(key).mixin):
            continue
        _merge_directive(target, key, value, registry)

    for mixin_name in _as_list(source.get("mixin")):
        if mixins and mixin_name in mixins:
            merge_mixin_into_field(target, mixins[mixin_name], registry)

    return target


def check_aliases(fields: Iterable[Field]) -> dict[str, str]:
    """Build the alias -> field name index.

    Raises:
        DuplicateAliasError: Two fields declare the same alias
        AliasShadowsFieldError: An alias equals an existing field name
    """
    fields = list(fields)
    names = {f.name for f in fields}
    index: dict[str, str] = {}

    for field in fields:
        for alias in field.aliases:
            if alias in index:
                raise DuplicateAliasError(
                    f"The field {field.name} contains the alias {alias} which "
                    f"is also defined in the field {index[alias]}"
                )
            if alias in names:
                raise AliasShadowsFieldError(
                    f"The field {field.name} contains the alias {alias} which "
                    "is the name of an existing field"
                )
            index[alias] = field.name

    return index
