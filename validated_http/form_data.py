"""Form containers and the multi-value flatten/rebuild rule.

Two wire containers carry key/value fields:
- FormData: multipart/form-data, may hold files (FormFile).
- httpx.QueryParams: application/x-www-form-urlencoded.

Schemas validate a plain structure, so both are flattened into a dict where
a key that occurs once maps to its value and a key that repeats maps to the
ordered list of its values. Rebuilding expands lists back into repeated
entries in the same order, so the asymmetry survives the round trip.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from email import policy
from email.parser import BytesParser
from typing import Any, Union

import httpx

from validated_http.coercion import as_mapping, coerce_value
from validated_http.errors import BodyDecodeError
from validated_http.models import ValueMode
from validated_http.serializer import media_type

MULTIPART_MEDIA_TYPE = "multipart/form-data"
URLENCODED_MEDIA_TYPE = "application/x-www-form-urlencoded"
URLENCODED_CONTENT_TYPE = "application/x-www-form-urlencoded;charset=UTF-8"

# Filename used for files appended without one
DEFAULT_FILENAME = "blob"


@dataclass(frozen=True)
class FormFile:
    """A file field of a multipart form."""

    content: bytes
    filename: str | None = None
    content_type: str | None = None


FormValue = Union[str, FormFile]


class FormData:
    """Ordered, multi-valued multipart form fields.

    Usage:
        form = FormData()
        form.append("name", "Ada")
        form.append("tags", "a")
        form.append("tags", "b")
        form.append("avatar", FormFile(b"...", "ada.png", "image/png"))
    """

    def __init__(
        self,
        fields: Mapping[str, Any] | Iterable[tuple[str, Any]] | None = None,
    ) -> None:
        self._fields: list[tuple[str, FormValue]] = []
        if fields is None:
            return
        items = fields.items() if isinstance(fields, Mapping) else fields
        for name, value in items:
            if isinstance(value, (list, tuple)):
                for item in value:
                    self.append(name, item)
            else:
                self.append(name, value)

    def append(self, name: str, value: str | bytes | FormFile) -> None:
        """Add a field, keeping any existing fields with the same name."""
        if isinstance(value, bytes):
            value = FormFile(value)
        if not isinstance(value, (str, FormFile)):
            raise TypeError(
                f"Form field '{name}' must be str, bytes or FormFile, "
                f"got {type(value).__name__}"
            )
        self._fields.append((name, value))

    def set(self, name: str, value: str | bytes | FormFile) -> None:
        """Replace every field named *name* with a single value."""
        self.delete(name)
        self.append(name, value)

    def delete(self, name: str) -> None:
        self._fields = [(k, v) for k, v in self._fields if k != name]

    def get(self, name: str) -> FormValue | None:
        """First value for *name*, or None."""
        for key, value in self._fields:
            if key == name:
                return value
        return None

    def get_all(self, name: str) -> list[FormValue]:
        return [value for key, value in self._fields if key == name]

    def keys(self) -> list[str]:
        return list(dict.fromkeys(key for key, _ in self._fields))

    def items(self) -> list[tuple[str, FormValue]]:
        """All (name, value) entries in insertion order, repeats included."""
        return list(self._fields)

    def __iter__(self) -> Iterator[tuple[str, FormValue]]:
        return iter(list(self._fields))

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, name: object) -> bool:
        return any(key == name for key, _ in self._fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FormData):
            return NotImplemented
        return self._fields == other._fields

    def __repr__(self) -> str:
        return f"FormData({self._fields!r})"


# ---------------------------------------------------------------------------
# Flatten (wire container -> plain structure)
# ---------------------------------------------------------------------------


def flatten_multi_items(items: Iterable[tuple[str, Any]]) -> dict[str, Any]:
    """Collapse (name, value) entries into a dict using the multi-value rule."""
    result: dict[str, Any] = {}
    for key, value in items:
        if key not in result:
            result[key] = value
        elif isinstance(result[key], list):
            result[key].append(value)
        else:
            result[key] = [result[key], value]
    return result


def flatten_form_data(form: FormData) -> dict[str, Any]:
    return flatten_multi_items(form.items())


def flatten_query_params(params: httpx.QueryParams) -> dict[str, Any]:
    return flatten_multi_items(params.multi_items())


# ---------------------------------------------------------------------------
# Rebuild (validated structure -> wire container)
# ---------------------------------------------------------------------------


def _expand(mapping: dict[Any, Any]) -> Iterator[tuple[str, Any]]:
    for key, value in mapping.items():
        if isinstance(value, (list, tuple)):
            for item in value:
                yield str(key), item
        else:
            yield str(key), value


def build_form_data(validated: Any, value_mode: ValueMode) -> FormData:
    """Rebuild FormData from a validated structure.

    Files (FormFile or bytes) stay files; everything else is coerced to a
    string with *value_mode*.

    Raises:
        UnrepresentableResultError: If *validated* is not a mapping.
        ValueCoercionError: If strict coercion refuses a value.
    """
    mapping = as_mapping(validated, "Form data validation")
    form = FormData()
    for key, item in _expand(mapping):
        if isinstance(item, (FormFile, bytes)):
            form.append(key, item)
        else:
            form.append(key, coerce_value(item, value_mode, f"form field '{key}'"))
    return form


def build_query_params(validated: Any, value_mode: ValueMode) -> httpx.QueryParams:
    """Rebuild url-encoded params from a validated structure.

    Raises:
        UnrepresentableResultError: If *validated* is not a mapping.
        ValueCoercionError: If strict coercion refuses a value.
    """
    mapping = as_mapping(validated, "URL-encoded form validation")
    pairs = [
        (key, coerce_value(item, value_mode, f"form field '{key}'"))
        for key, item in _expand(mapping)
    ]
    return httpx.QueryParams(pairs)


# ---------------------------------------------------------------------------
# Wire encoding / decoding
# ---------------------------------------------------------------------------


def form_data_to_files(form: FormData) -> list[tuple[str, tuple[Any, ...]]]:
    """Express FormData as an httpx ``files=`` list.

    Plain fields use a None filename, which httpx renders as an ordinary
    form field. Passing everything through ``files=`` keeps field order and
    forces multipart encoding even when the form holds no files.
    """
    files: list[tuple[str, tuple[Any, ...]]] = []
    for name, value in form.items():
        if isinstance(value, FormFile):
            files.append((
                name,
                (
                    value.filename or DEFAULT_FILENAME,
                    value.content,
                    value.content_type or "application/octet-stream",
                ),
            ))
        else:
            files.append((name, (None, value)))
    return files


def parse_urlencoded(content: bytes) -> httpx.QueryParams:
    try:
        return httpx.QueryParams(content.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise BodyDecodeError(f"Invalid URL-encoded body: {e}") from e


def parse_form_body(content: bytes, content_type: str | None) -> FormData:
    """Parse a multipart or url-encoded body into FormData.

    Raises:
        BodyDecodeError: If the content-type is neither form type, or the
            multipart payload is malformed.
    """
    mtype = media_type(content_type)
    if mtype == URLENCODED_MEDIA_TYPE:
        return FormData(parse_urlencoded(content).multi_items())
    if mtype == MULTIPART_MEDIA_TYPE:
        return _parse_multipart(content, content_type or "")
    raise BodyDecodeError(
        f"Cannot parse form data from content-type '{content_type or ''}'"
    )


def _parse_multipart(content: bytes, content_type: str) -> FormData:
    if "boundary=" not in content_type.lower():
        raise BodyDecodeError("Invalid multipart body: content-type has no boundary")

    # The email package parses MIME multipart; give it the envelope header
    # it would normally read from the message itself.
    envelope = f"Content-Type: {content_type}\r\nMIME-Version: 1.0\r\n\r\n"
    message = BytesParser(policy=policy.HTTP).parsebytes(
        envelope.encode("latin-1") + content
    )
    if not message.is_multipart():
        raise BodyDecodeError("Invalid multipart body: no parts found")

    form = FormData()
    for part in message.iter_parts():
        name = part.get_param("name", header="content-disposition")
        if name is None:
            raise BodyDecodeError("Invalid multipart body: part without a field name")
        payload = part.get_payload(decode=True) or b""
        filename = part.get_filename()
        if filename is None:
            charset = part.get_content_charset() or "utf-8"
            form.append(str(name), payload.decode(charset, errors="replace"))
        else:
            form.append(
                str(name), FormFile(payload, filename, part.get_content_type())
            )
    return form
