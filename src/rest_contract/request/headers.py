"""Header layering.

Layers in increasing precedence: surface, property, operation, parameter.
A name present in a higher layer replaces every occurrence from the lower
ones; an entry whose value is None contributes nothing, so it removes the
header. A name repeated within a layer is sent once, its values joined
with a single space in declaration order.
"""

from dataclasses import dataclass, field

from rest_contract.request.content import HttpContent, is_content_header, join_header_values
from rest_contract.request.descriptor import HeaderValue


@dataclass
class ComposedHeaders:
    envelope: list[tuple[str, str]] = field(default_factory=list)
    content: list[tuple[str, str]] = field(default_factory=list)
    # lower-cased content header names mentioned at any layer, removals included
    touched_content: set[str] = field(default_factory=set)

    def apply_to(self, body: HttpContent | None) -> HttpContent | None:
        """Move content headers onto the body, synthesizing an empty one if needed."""
        if body is None:
            if not self.content:
                return None
            body = HttpContent.empty()
        for name in self._ordered_names():
            values = [v for k, v in self.content if k.lower() == name.lower()]
            body.replace_header(name, values)
        return body

    def _ordered_names(self) -> list[str]:
        names: dict[str, str] = {}
        for k, _ in self.content:
            names.setdefault(k.lower(), k)
        for lowered in sorted(self.touched_content):
            names.setdefault(lowered, lowered)
        return list(names.values())


def layer_headers(layers: list[list[HeaderValue]]) -> list[tuple[str, str]]:
    effective: list[tuple[str, str]] = []
    for layer in layers:
        names = {h.name.strip().lower() for h in layer}
        effective = [(k, v) for k, v in effective if k.lower() not in names]
        effective.extend((h.name.strip(), h.value) for h in layer if h.value is not None)
    return _join_repeats(effective)


def _join_repeats(headers: list[tuple[str, str]]) -> list[tuple[str, str]]:
    names: dict[str, str] = {}
    values: dict[str, list[str]] = {}
    for name, value in headers:
        key = name.lower()
        names.setdefault(key, name)
        values.setdefault(key, []).append(value)
    return [(names[key], join_header_values(values[key])) for key in names]


def compose_headers(layers: list[list[HeaderValue]]) -> ComposedHeaders:
    composed = ComposedHeaders()
    for name, value in layer_headers(layers):
        if is_content_header(name):
            composed.content.append((name, value))
        else:
            composed.envelope.append((name, value))
    for layer in layers:
        composed.touched_content.update(h.name.strip().lower() for h in layer if is_content_header(h.name))
    return composed
