"""
Conversion between datastore dictionaries and Item records.

Pure and synchronous: no I/O, no shared state.
"""

import json
from typing import Any, Protocol, runtime_checkable

from lockbox_core.exceptions import InvalidDictionaryError, InvalidItemError
from lockbox_core.models.item import Item, ItemEntry

_ENTRY_TEXT_FIELDS = ("username", "password", "notes")
_TIMESTAMP_FIELDS = ("created", "modified", "last_used")


@runtime_checkable
class ItemParser(Protocol):
    """Interface used by the datastore service to read and write items."""

    def item_from_dictionary(self, dictionary: dict[str, Any]) -> Item:
        """
        Build an item from the datastore's dictionary form.

        Raises:
            InvalidDictionaryError: If the dictionary is not a valid item.
        """
        ...

    def json_string_from_item(self, item: Item) -> str:
        """
        Serialize an item to the JSON text the datastore expects.

        Raises:
            InvalidItemError: If the item cannot be serialized.
        """
        ...


def _optional_str(source: dict[str, Any], key: str) -> str | None:
    value = source.get(key)
    if value is None or isinstance(value, str):
        return value
    msg = "Field must be a string"
    raise InvalidDictionaryError(msg, field=key)


def _string_list(source: dict[str, Any], key: str) -> tuple[str, ...]:
    value = source.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        msg = "Field must be a list of strings"
        raise InvalidDictionaryError(msg, field=key)
    return tuple(value)


class Parser:
    """Default ItemParser for the lockbox datastore wire format."""

    def item_from_dictionary(self, dictionary: dict[str, Any]) -> Item:
        if "origins" not in dictionary:
            msg = "Missing origins"
            raise InvalidDictionaryError(msg)
        origins = _string_list(dictionary, "origins")

        raw_entry = dictionary.get("entry")
        if not isinstance(raw_entry, dict):
            msg = "Missing entry"
            raise InvalidDictionaryError(msg)
        kind = raw_entry.get("kind")
        if not isinstance(kind, str):
            msg = "Entry kind must be a string"
            raise InvalidDictionaryError(msg, field="kind")

        entry = ItemEntry(
            kind=kind,
            **{name: _optional_str(raw_entry, name) for name in _ENTRY_TEXT_FIELDS},
        )

        timestamps: dict[str, int | None] = {}
        for name in _TIMESTAMP_FIELDS:
            value = dictionary.get(name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, int)):
                msg = "Timestamp must be an integer"
                raise InvalidDictionaryError(msg, field=name)
            timestamps[name] = value

        return Item(
            id=_optional_str(dictionary, "id"),
            title=_optional_str(dictionary, "title") or "",
            origins=origins,
            entry=entry,
            tags=_string_list(dictionary, "tags"),
            **timestamps,
        )

    def item_to_dictionary(self, item: Item) -> dict[str, Any]:
        """
        Build the datastore's dictionary form of an item.

        Unset optional fields are left out.

        Args:
            item: Item to convert.

        Returns:
            Dictionary ready for JSON encoding.
        """
        entry: dict[str, Any] = {"kind": item.entry.kind}
        for name in _ENTRY_TEXT_FIELDS:
            value = getattr(item.entry, name)
            if value is not None:
                entry[name] = value

        result: dict[str, Any] = {
            "title": item.title,
            "origins": list(item.origins),
            "entry": entry,
        }
        if item.id is not None:
            result["id"] = item.id
        if item.tags:
            result["tags"] = list(item.tags)
        for name in _TIMESTAMP_FIELDS:
            value = getattr(item, name)
            if value is not None:
                result[name] = value
        return result

    def json_string_from_item(self, item: Item) -> str:
        try:
            return json.dumps(self.item_to_dictionary(item), allow_nan=False)
        except (TypeError, ValueError, AttributeError) as e:
            msg = "Item cannot be serialized"
            raise InvalidItemError(msg, item_id=getattr(item, "id", None)) from e
